"""Abstract base classes for the transport layer.

The driver talks to the cartridge through a Connection: a duplex byte stream
with an explicit read timeout. Connections come from a TransportProvider,
which the driver asks for a fresh one whenever the physical link may have
changed (the cartridge drops its USB endpoint when it switches firmware).

Key principles:
- The driver never discovers ports itself
- Connections are owned by exactly one driver and never shared
- Timeouts are set explicitly on the connection, never ambient
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class Connection(ABC):
    """Duplex byte stream to the cartridge."""

    @property
    @abstractmethod
    def timeout(self) -> float:
        """Current read timeout in seconds."""
        pass

    @abstractmethod
    def set_timeout(self, timeout: float) -> None:
        """Change the read timeout.

        Args:
            timeout: Seconds a read may block before returning short
        """
        pass

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Read up to size bytes.

        Blocks until size bytes are available or the timeout expires.

        Returns:
            The bytes read; fewer than size (possibly none) on timeout

        Raises:
            TransportError: if the underlying stream fails
        """
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Write all of data to the stream.

        Raises:
            TransportError: if the underlying stream fails
        """
        pass

    @abstractmethod
    def flush(self) -> None:
        """Block until buffered writes have been handed to the wire."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the stream. Safe to call more than once."""
        pass

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class TransportProvider(ABC):
    """Source of connections to the cartridge.

    Implementations decide which physical port to use. Since the link has to
    be re-established after every firmware switch, the provider may be asked
    to open a connection many times during one driver's lifetime.
    """

    @abstractmethod
    def open(self) -> Connection:
        """Open a new connection.

        Returns:
            A freshly opened Connection

        Raises:
            TransportUnavailable: if no single candidate port can be opened
        """
        pass
