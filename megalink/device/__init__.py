"""Protocol driver for the cartridge.

This package provides:
- Connection acquisition and the framed command channel (CommandChannel)
- The session driver implementing the cartridge operations (Everdrive)
"""

from .channel import CommandChannel, acquire_connection
from .everdrive import Everdrive

__all__ = [
    "CommandChannel",
    "acquire_connection",
    "Everdrive",
]
