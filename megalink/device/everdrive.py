"""Protocol driver for the Mega Everdrive Pro's USB serial interface.

The Everdrive class owns one logical session with the cartridge. It composes
the primitive exchanges of CommandChannel into the cartridge's operations:
status and mode handling, target reset, memory access, game loading and FPGA
configuration.

Switching firmware (service <-> app) makes the cartridge drop its USB
endpoint and boot again. The driver then throws its connection away and asks
the TransportProvider for new ones until the cartridge answers a status
query.

Example:
    >>> from megalink.transport import SerialPortProvider
    >>> with Everdrive(SerialPortProvider()) as everdrive:
    ...     everdrive.load_game("sonic.md", rom, skip_fpga=False)
"""
from __future__ import annotations

import logging
import time
from typing import Optional

from ..errors import (
    DeviceFileNotFound,
    DeviceRejected,
    FileOperationError,
    ProtocolViolation,
    ReconnectTimeout,
    TransportError,
    TransportUnavailable,
    UnexpectedResponse,
)
from ..models import DeviceMode, FileMetadata, FileMode, ResetMode
from ..protocol import ProtocolCodec
from ..protocol import constants as c
from ..transport.base import TransportProvider
from .channel import (
    DRAIN_TIMEOUT,
    READ_TIMEOUT,
    SETTLE_DELAY,
    CommandChannel,
    acquire_connection,
)

logger = logging.getLogger(__name__)

RECONNECT_ATTEMPTS = 100
RECONNECT_DELAY = 0.1  # seconds


class Everdrive:
    """Driver for one cartridge session.

    Responsibilities:
    - Own the current connection and replace it after firmware switches
    - Frame commands and check their responses
    - Run the multi-step game and FPGA load protocols

    FPGA images come from memory (`load_fpga_from_bytes`, which accepts any
    bytes-like slice), cartridge flash (`load_fpga_from_flash`) or the SD card
    (`load_fpga_from_sd`). The SD variant queries the file info and then opens
    the file with F_FOPN before sending FPG_SDC; the firmware streams the image
    from the open file.

    Not thread-safe: every operation runs to completion before the next.
    """

    def __init__(self,
                 provider: TransportProvider,
                 *,
                 settle_delay: float = SETTLE_DELAY,
                 drain_timeout: float = DRAIN_TIMEOUT,
                 read_timeout: float = READ_TIMEOUT,
                 reconnect_attempts: int = RECONNECT_ATTEMPTS,
                 reconnect_delay: float = RECONNECT_DELAY,
                 ack_block_size: int = c.ACK_BLOCK_SIZE):
        """Open a session and check the cartridge answers.

        A status query is issued straight away so that talking to the wrong
        device, or a cartridge in a bad state, fails here rather than halfway
        through an operation.

        Args:
            provider: Source of connections to the cartridge
            settle_delay: Seconds to wait after each flush
            drain_timeout: Read timeout while discarding stale bytes
            read_timeout: Steady-state read timeout
            reconnect_attempts: Connection attempts after a firmware switch
            reconnect_delay: Seconds between failed connection attempts
            ack_block_size: Block size of acknowledged transfers

        Raises:
            TransportUnavailable: if no connection can be opened
            ProtocolViolation: if the device does not answer like a cartridge
        """
        self._provider = provider
        self._settle_delay = settle_delay
        self._drain_timeout = drain_timeout
        self._read_timeout = read_timeout
        self._reconnect_attempts = reconnect_attempts
        self._reconnect_delay = reconnect_delay
        self._ack_block_size = ack_block_size

        self._channel: Optional[CommandChannel] = self._open_channel()
        try:
            status = self._read_status(self._channel)
        except Exception:
            self.close()
            raise
        logger.debug(f"Initial status {status}")

    # --- Session ---

    def _open_channel(self) -> CommandChannel:
        connection = acquire_connection(
            self._provider,
            drain_timeout=self._drain_timeout,
            read_timeout=self._read_timeout,
        )
        return CommandChannel(connection, settle_delay=self._settle_delay)

    @property
    def _link(self) -> CommandChannel:
        if self._channel is None:
            raise TransportError("not connected to device")
        return self._channel

    @property
    def is_connected(self) -> bool:
        return self._channel is not None

    def close(self) -> None:
        """Close the current connection. Safe to call multiple times."""
        channel, self._channel = self._channel, None
        if channel is None:
            return
        try:
            channel.close()
        except Exception as e:
            logger.error(f"Error closing connection: {e}")

    def __enter__(self) -> Everdrive:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # --- Status & mode ---

    @staticmethod
    def _read_status(channel: CommandChannel) -> int:
        channel.send_command(c.CMD_STATUS)
        channel.flush()
        response = channel.recv_u16()

        if response >> 8 != c.STATUS_SENTINEL:
            raise ProtocolViolation(
                f"invalid status response: {response:04x}", response=response
            )
        return response & 0xFF

    def get_status(self) -> int:
        """Get the return code of the previous operation.

        The device clears it once read. 0 indicates success.

        Raises:
            ProtocolViolation: if the response lacks the status sentinel
        """
        return self._read_status(self._link)

    def _check_status(self, operation: str) -> None:
        status = self.get_status()
        if status != 0:
            raise DeviceRejected(operation, status)

    def get_mode(self) -> DeviceMode:
        """Get the firmware personality the cartridge is running."""
        link = self._link
        link.send_command(c.CMD_GET_MODE)
        link.flush()

        if link.recv_u8() == c.SERVICE_MODE_SENTINEL:
            return DeviceMode.SERVICE
        return DeviceMode.APP

    def set_mode(self, target: DeviceMode) -> None:
        """Switch the cartridge's firmware, reconnecting once it has rebooted.

        Does nothing beyond the mode query if the cartridge is already in the
        target mode.

        Raises:
            ReconnectTimeout: if the cartridge did not come back in time
            ProtocolViolation: if it came back but answers the status query wrongly
        """
        if self.get_mode() == target:
            return

        logger.info(f"Changing to {target.lower_name} mode")

        link = self._link
        if target == DeviceMode.SERVICE:
            link.send_command(c.CMD_IO_RST)
            link.send_u8(0)
        else:
            link.send_command(c.CMD_RUN_APP)
        link.flush()

        # The endpoint is going away; the next session needs a new connection.
        self.close()
        self._channel = self._reconnect()

    def _reconnect(self) -> CommandChannel:
        for attempt in range(1, self._reconnect_attempts + 1):
            try:
                channel = self._open_channel()
            except (TransportUnavailable, TransportError) as e:
                logger.debug(f"Error waiting for reset (attempt {attempt}): {e}")
                time.sleep(self._reconnect_delay)
                continue

            try:
                self._read_status(channel)
            except Exception:
                channel.close()
                raise

            logger.debug(f"Reconnected after {attempt} attempt(s)")
            return channel

        raise ReconnectTimeout(self._reconnect_attempts)

    # --- Target control ---

    def reset_host(self, mode: ResetMode) -> None:
        """Drive the target's reset line. No response is read."""
        link = self._link
        link.send_command(c.CMD_HOST_RST)
        link.send_u8(int(mode))
        link.flush()

    # --- Memory ---

    def _send_memory_command(self, opcode: int, address: int, length: int) -> None:
        link = self._link
        link.send_command(opcode)
        link.send_u32(address)
        link.send_u32(length)
        link.send_u8(0)
        link.flush()

    def write_memory(self, address: int, data: bytes) -> None:
        """Write to the target's address space (including the ROM area)."""
        if not data:
            return

        logger.debug(f"Write {len(data)} bytes to {address:x}")
        self._send_memory_command(c.CMD_MEM_WR, address, len(data))

        link = self._link
        link.send_bytes(data)
        link.flush()

    def read_memory(self, address: int, size: int) -> bytes:
        """Read size bytes from the target's address space."""
        if size <= 0:
            return b""

        logger.debug(f"Read {size} bytes from {address:x}")
        self._send_memory_command(c.CMD_MEM_RD, address, size)
        return self._link.recv_exact(size)

    # FIFO to the cartridge's IO co-processor, layered on the memory window

    def fifo_write(self, data: bytes) -> None:
        self.write_memory(c.ADDR_FIFO, data)

    def fifo_write_u16(self, value: int) -> None:
        self.fifo_write(ProtocolCodec.encode_u16(value))

    def fifo_write_u32(self, value: int) -> None:
        self.fifo_write(ProtocolCodec.encode_u32(value))

    def fifo_write_str(self, value: str) -> None:
        encoded = ProtocolCodec.encode_string(value)
        self.fifo_write(encoded[:2])
        self.fifo_write(encoded[2:])

    def fifo_read(self, size: int) -> bytes:
        return self.read_memory(c.ADDR_FIFO, size)

    # --- Game loading ---

    def _expect_byte(self, step: str, expected: int) -> None:
        actual = self._link.recv_u8()
        if actual != expected:
            raise UnexpectedResponse(step, expected, actual)

    def _fifo_command(self, command: bytes) -> None:
        self.fifo_write(command)
        self._link.flush()

    def load_game(self, name: str, image: bytes, skip_fpga: bool = False) -> None:
        """Load a ROM image and boot it.

        Args:
            name: Name registered with the cartridge menu (shown as USB:<name>)
            image: ROM image
            skip_fpga: Ask the cartridge not to reconfigure its FPGA for this game

        Raises:
            ValueError: if the image does not fit the ROM window
            UnexpectedResponse: if a handshake byte is wrong
        """
        if len(image) > c.MAX_ROM_SIZE:
            raise ValueError(
                f"ROM image too large: {len(image)} bytes (max {c.MAX_ROM_SIZE})"
            )

        logger.debug(f"Writing ROM: {name} ({len(image)} bytes)")
        self.set_mode(DeviceMode.APP)
        self.reset_host(ResetMode.SOFT)
        self.write_memory(c.ADDR_ROM, image)
        self.reset_host(ResetMode.OFF)
        self._expect_byte("ROM ready", c.ACK_ROM_READY)

        logger.debug("Testing")
        self._fifo_command(c.FIFO_CMD_TEST)
        self._expect_byte("test", c.ACK_TEST_OK)

        if skip_fpga:
            self._fifo_command(c.FIFO_CMD_SKIP_FPGA)

        logger.debug("Setting game info")
        self.fifo_write(c.FIFO_CMD_GAME_INFO)
        self.fifo_write_u32(len(image))
        self.fifo_write_str(c.GAME_NAME_PREFIX + name)
        self._link.flush()

        # Clear response
        self._link.recv_u8()
        logger.info(f"Loaded {name} ({len(image)} bytes)")

    # --- FPGA ---

    def _prepare_fpga_load(self) -> None:
        self.set_mode(DeviceMode.APP)
        self.reset_host(ResetMode.SOFT)

    def load_fpga_from_bytes(self, data: bytes) -> None:
        """Configure the FPGA from an image held in memory.

        Raises:
            ChunkRejected: if the device refuses a block mid-transfer
            DeviceRejected: if the device reports failure afterwards
        """
        logger.debug(f"Loading FPGA image ({len(data)} bytes)")
        self._prepare_fpga_load()

        link = self._link
        link.send_command(c.CMD_FPG_USB)
        link.send_u32(len(data))
        link.flush()
        link.send_acked(data, self._ack_block_size)
        self._check_status("load FPGA from USB")

    def load_fpga_from_flash(self, address: int) -> None:
        """Configure the FPGA from an image in the cartridge's flash."""
        logger.debug(f"Loading FPGA image @ {address:x}")
        self._prepare_fpga_load()

        link = self._link
        link.send_command(c.CMD_FPG_FLA)
        link.send_u32(address)
        link.flush()
        self._check_status("load FPGA from flash")

    def load_fpga_from_sd(self, path: str) -> None:
        """Configure the FPGA from an image file on the SD card.

        The file is opened for reading with F_FOPN before FPG_SDC is sent.

        Raises:
            DeviceFileNotFound: if the file is missing or cannot be opened
            DeviceRejected: if the device reports failure afterwards
        """
        logger.debug(f"Loading FPGA from {path}")
        self._prepare_fpga_load()

        info = self.get_file_metadata(path)
        self.open_file(path, FileMode.READ)

        link = self._link
        link.send_command(c.CMD_FPG_SDC)
        link.send_u32(info.size)
        link.send_u8(0)
        link.flush()
        self._check_status("load FPGA from SD")

    # --- SD card ---

    @staticmethod
    def _file_error(operation: str, path: str, code: int) -> FileOperationError:
        if code in (c.FAT_NO_FILE, c.FAT_NO_PATH):
            return DeviceFileNotFound(operation, path, code)
        return FileOperationError(operation, path, code)

    def get_file_metadata(self, path: str) -> FileMetadata:
        """Fetch the metadata for a file on the SD card.

        Raises:
            DeviceFileNotFound: if there is no such file
            FileOperationError: for any other device-reported failure
        """
        link = self._link
        link.send_command(c.CMD_F_FINFO)
        link.send_string(path)
        link.flush()

        response = link.recv_u8()
        if response != 0:
            raise self._file_error("file info", path, response)

        size = link.recv_u32()
        date = link.recv_u16()
        time_ = link.recv_u16()
        attrib = link.recv_u8()
        name = link.recv_string()
        return FileMetadata(name=name, size=size, date=date, time=time_, attrib=attrib)

    def open_file(self, path: str, mode: FileMode) -> None:
        """Set the cartridge's current file handle to a file on the SD card."""
        link = self._link
        link.send_command(c.CMD_F_FOPN)
        link.send_u8(int(mode))
        link.send_string(path)
        link.flush()

        status = self.get_status()
        if status != 0:
            raise self._file_error("open", path, status)
