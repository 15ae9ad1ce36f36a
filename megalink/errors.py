"""Error types raised by the megalink driver."""
from __future__ import annotations

from typing import Optional


class MegalinkError(RuntimeError):
    """Base class for all driver errors."""
    pass


class TransportUnavailable(MegalinkError):
    """Raised when no usable connection to the cartridge can be opened."""
    pass


class DeviceNotFoundError(TransportUnavailable):
    """Raised when no matching serial port could be found."""
    pass


class MultipleDevicesError(TransportUnavailable):
    """Raised when more than one matching serial port is found."""
    def __init__(self, message, devices):
        super().__init__(message)
        self.devices = devices  # list[PortInfo]


class TransportError(MegalinkError):
    """Raised when the underlying byte stream fails."""
    pass


class ReadTimeout(TransportError):
    """Raised when a read did not complete within the connection timeout."""
    def __init__(self, message, expected: int = 0, received: int = 0):
        super().__init__(message)
        self.expected = expected
        self.received = received


class ProtocolViolation(MegalinkError):
    """Raised when a response does not have the shape the protocol requires.

    Usually means the port is not a cartridge, or the firmware speaks a
    different protocol version.
    """
    def __init__(self, message, response: Optional[int] = None):
        super().__init__(message)
        self.response = response


class UnexpectedResponse(MegalinkError):
    """Raised when a handshake byte during game load has the wrong value."""
    def __init__(self, step: str, expected: int, actual: int):
        super().__init__(
            f"unexpected {step} response: expected {expected:#04x} "
            f"({chr(expected)!r}), got {actual:#04x}"
        )
        self.step = step
        self.expected = expected
        self.actual = actual


class DeviceRejected(MegalinkError):
    """Raised when the cartridge reports a non-zero status for an operation."""
    def __init__(self, operation: str, code: int, message: Optional[str] = None):
        super().__init__(message or f"{operation}: device returned status {code}")
        self.operation = operation
        self.code = code


class ChunkRejected(DeviceRejected):
    """Raised when the cartridge refuses a block of an acknowledged transfer."""
    def __init__(self, code: int, chunk: int):
        super().__init__(
            "acknowledged transfer",
            code,
            f"error transferring data: device rejected chunk {chunk} with status {code}",
        )
        self.chunk = chunk


class MalformedResponse(MegalinkError):
    """Raised when a string response is not valid UTF-8."""
    pass


class ReconnectTimeout(MegalinkError):
    """Raised when the cartridge did not come back after a mode switch."""
    def __init__(self, attempts: int):
        super().__init__(f"timeout reconnecting to device after {attempts} attempts")
        self.attempts = attempts


class FileOperationError(MegalinkError):
    """Raised when an SD card file command fails on the device."""
    def __init__(self, operation: str, path: str, code: int):
        super().__init__(f"{operation} {path!r}: device returned error {code}")
        self.operation = operation
        self.path = path
        self.code = code


class DeviceFileNotFound(FileOperationError):
    """Raised when the SD card has no file or directory at the given path."""
    pass
