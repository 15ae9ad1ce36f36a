#!/usr/bin/env python3
"""
Interactive Everdrive Test Script.

Connects to the cartridge (auto-detect, or the port given as first argument),
prints its status and mode, and reads back the first bytes of the ROM window.
"""

import sys
import logging
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from megalink import Everdrive, MegalinkError, SerialPortProvider
from megalink.protocol.constants import ADDR_ROM

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)

def main():
    port = sys.argv[1] if len(sys.argv) > 1 else None

    print("Connecting to cartridge...")
    try:
        everdrive = Everdrive(SerialPortProvider(port=port))
    except MegalinkError as e:
        print(f"Failed to connect: {e}")
        return

    with everdrive:
        print(f"Status: {everdrive.get_status()}")
        print(f"Mode:   {everdrive.get_mode().lower_name}")

        header = everdrive.read_memory(ADDR_ROM + 0x100, 16)
        print(f"ROM header @ 0x100: {header!r}")

    print("Done.")

if __name__ == "__main__":
    main()
