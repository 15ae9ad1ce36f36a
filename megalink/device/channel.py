"""Framed command channel over a single connection.

This module handles:
- Acquiring a connection from a provider and draining stale bytes
- Writing command frames and big-endian arguments
- Exact-length reads with timeout detection
- Acknowledgment-gated block transfers

The channel is strictly request/reply: callers issue one exchange at a time.
"""
from __future__ import annotations

import logging
import time

from ..errors import ChunkRejected, MegalinkError, ReadTimeout
from ..protocol import ProtocolCodec
from ..protocol.constants import ACK_BLOCK_SIZE
from ..transport.base import Connection, TransportProvider

logger = logging.getLogger(__name__)

DRAIN_TIMEOUT = 0.1  # seconds
READ_TIMEOUT = 1.0  # seconds
DRAIN_CHUNK_SIZE = 1024  # bytes
SETTLE_DELAY = 0.0  # seconds


def acquire_connection(provider: TransportProvider,
                       drain_timeout: float = DRAIN_TIMEOUT,
                       read_timeout: float = READ_TIMEOUT,
                       chunk_size: int = DRAIN_CHUNK_SIZE) -> Connection:
    """Open a connection and bring it to a quiescent state.

    Boot banners and half-read responses from a previous session are read and
    thrown away with a short timeout before the steady-state timeout is set.

    Raises:
        TransportUnavailable: if the provider cannot supply a connection
        TransportError: if the stream fails while draining
    """
    connection = provider.open()
    try:
        connection.set_timeout(drain_timeout)
        drained = 0
        while True:
            try:
                stale = connection.read(chunk_size)
            except ReadTimeout:
                break
            if not stale:
                break
            drained += len(stale)

        if drained:
            logger.debug(f"Drained {drained} stale bytes")
        connection.set_timeout(read_timeout)
    except MegalinkError:
        connection.close()
        raise
    return connection


class CommandChannel:
    """Encodes commands onto a connection and decodes the replies."""

    def __init__(self, connection: Connection, settle_delay: float = SETTLE_DELAY):
        """Initialize channel.

        Args:
            connection: Open connection, exclusively owned by this channel
            settle_delay: Seconds to wait after each flush before the device
                is assumed to have consumed the data
        """
        self._connection = connection
        self._settle_delay = settle_delay

    @property
    def connection(self) -> Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    # --- Transmit ---

    def send_command(self, opcode: int) -> None:
        logger.debug(f"tx cmd {opcode:02x}")
        self._connection.write(ProtocolCodec.encode_command(opcode))

    def send_u8(self, value: int) -> None:
        self._connection.write(ProtocolCodec.encode_u8(value))

    def send_u16(self, value: int) -> None:
        self._connection.write(ProtocolCodec.encode_u16(value))

    def send_u32(self, value: int) -> None:
        self._connection.write(ProtocolCodec.encode_u32(value))

    def send_string(self, value: str) -> None:
        self._connection.write(ProtocolCodec.encode_string(value))

    def send_bytes(self, data: bytes) -> None:
        self._connection.write(bytes(data))

    def send_acked(self, data: bytes, block_size: int = ACK_BLOCK_SIZE) -> None:
        """Send data in blocks, each authorized by a status byte from the device.

        Raises:
            ChunkRejected: if the device answers a non-zero status before a block;
                that block and everything after it are not sent
        """
        view = memoryview(bytes(data))
        for index, offset in enumerate(range(0, len(view), block_size)):
            response = self.recv_u8()
            if response != 0:
                raise ChunkRejected(response, index)

            self._connection.write(view[offset:offset + block_size].tobytes())
            self.flush()

    def flush(self) -> None:
        """Push buffered writes to the wire and wait for the device to settle."""
        self._connection.flush()
        if self._settle_delay > 0:
            time.sleep(self._settle_delay)

    # --- Receive ---

    def recv_exact(self, size: int) -> bytes:
        """Read exactly size bytes.

        Raises:
            ReadTimeout: if the connection stops delivering bytes first
        """
        data = bytearray()
        while len(data) < size:
            chunk = self._connection.read(size - len(data))
            if not chunk:
                raise ReadTimeout(
                    f"timed out waiting for {size} bytes (received {len(data)})",
                    expected=size,
                    received=len(data),
                )
            data += chunk
        return bytes(data)

    def recv_u8(self) -> int:
        value = self.recv_exact(1)[0]
        logger.debug(f"rx u8 {value:02x}")
        return value

    def recv_u16(self) -> int:
        value = ProtocolCodec.decode_u16(self.recv_exact(2))
        logger.debug(f"rx u16 {value:04x}")
        return value

    def recv_u32(self) -> int:
        value = ProtocolCodec.decode_u32(self.recv_exact(4))
        logger.debug(f"rx u32 {value:08x}")
        return value

    def recv_string(self) -> str:
        length = self.recv_u16()
        return ProtocolCodec.decode_text(self.recv_exact(length))
