"""megalink - driver for the Mega Everdrive Pro USB serial interface."""

from .device import Everdrive
from .errors import (
    MegalinkError,
    TransportUnavailable,
    DeviceNotFoundError,
    MultipleDevicesError,
    TransportError,
    ReadTimeout,
    ProtocolViolation,
    UnexpectedResponse,
    DeviceRejected,
    ChunkRejected,
    MalformedResponse,
    ReconnectTimeout,
    FileOperationError,
    DeviceFileNotFound,
)
from .models import DeviceMode, ResetMode, FileMode, FileMetadata
from .transport import Connection, TransportProvider, SerialPortProvider

__all__ = [
    "Everdrive",
    "DeviceMode",
    "ResetMode",
    "FileMode",
    "FileMetadata",
    "Connection",
    "TransportProvider",
    "SerialPortProvider",
    "MegalinkError",
    "TransportUnavailable",
    "DeviceNotFoundError",
    "MultipleDevicesError",
    "TransportError",
    "ReadTimeout",
    "ProtocolViolation",
    "UnexpectedResponse",
    "DeviceRejected",
    "ChunkRejected",
    "MalformedResponse",
    "ReconnectTimeout",
    "FileOperationError",
    "DeviceFileNotFound",
]
