"""Serial port discovery for the cartridge.

The cartridge enumerates as a plain USB CDC serial port and comes back under a
new port name after every firmware switch, so the port is looked up afresh on
each connection attempt. Without a matcher every port is a candidate, and the
machine must expose exactly one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from serial.tools import list_ports

from ..errors import DeviceNotFoundError, MultipleDevicesError

logger = logging.getLogger(__name__)

PortMatcher = Callable[["PortInfo"], bool]


@dataclass(frozen=True)
class PortInfo:
    """A serial port as listed by pyserial.

    Attributes:
        port: Name to open with pyserial (e.g. 'COM3', '/dev/ttyACM0')
        description: Human readable description, if the OS provides one
        hwid: Raw hardware ID string (for debugging)
    """
    port: str
    description: Optional[str]
    hwid: str


def find_ports(matcher: Optional[PortMatcher] = None) -> List[PortInfo]:
    """List the candidate ports, optionally narrowed by a predicate."""
    ports = [
        PortInfo(port=p.device, description=p.description, hwid=p.hwid)
        for p in list_ports.comports()
    ]
    if matcher is None:
        return ports
    return [info for info in ports if matcher(info)]


def find_single_port(matcher: Optional[PortMatcher] = None) -> PortInfo:
    """
    Find exactly one candidate port.

    Behaviour:
        - 0 candidates  -> DeviceNotFoundError
        - 1 candidate   -> return it
        - >1 candidates -> MultipleDevicesError (never picks one implicitly)
    """
    matches = find_ports(matcher)

    if not matches:
        raise DeviceNotFoundError("no serial ports available")

    if len(matches) > 1:
        logger.debug("Refusing to choose between ports: %s", matches)
        raise MultipleDevicesError(
            f"multiple serial ports available ({len(matches)} devices)",
            devices=matches,
        )

    return matches[0]
