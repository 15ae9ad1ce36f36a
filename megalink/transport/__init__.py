"""Transport layer for cartridge communication."""

from .base import Connection, TransportProvider
from .port_finder import PortInfo, find_ports, find_single_port
from .serial_port import SerialConnection, SerialPortProvider

__all__ = [
    "Connection",
    "TransportProvider",
    "PortInfo",
    "find_ports",
    "find_single_port",
    "SerialConnection",
    "SerialPortProvider",
]
