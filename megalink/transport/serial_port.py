"""pyserial-backed transport for the cartridge.

SerialConnection adapts a serial.Serial to the Connection interface and
translates pyserial failures into driver errors. SerialPortProvider opens one,
either on an explicit port or on the single port the finder can see.
"""
from __future__ import annotations

import logging
from typing import Optional

import serial

from ..errors import (
    DeviceNotFoundError,
    MultipleDevicesError,
    TransportError,
    TransportUnavailable,
)
from .base import Connection, TransportProvider
from .port_finder import PortMatcher, find_ports, find_single_port

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 115200  # ignored by USB CDC, but pyserial needs one
OPEN_TIMEOUT = 1.0  # seconds


class SerialConnection(Connection):
    """Connection over an open pyserial port."""

    def __init__(self, port: serial.Serial):
        self._serial = port

    @property
    def port(self) -> Optional[str]:
        return self._serial.port

    @property
    def timeout(self) -> float:
        return self._serial.timeout

    def set_timeout(self, timeout: float) -> None:
        self._serial.timeout = timeout

    def read(self, size: int) -> bytes:
        try:
            return self._serial.read(size)
        except serial.SerialException as e:
            raise TransportError(f"serial read failed on {self.port}: {e}") from e

    def write(self, data: bytes) -> None:
        try:
            self._serial.write(data)
        except serial.SerialException as e:
            raise TransportError(f"serial write failed on {self.port}: {e}") from e

    def flush(self) -> None:
        try:
            self._serial.flush()
        except serial.SerialException as e:
            raise TransportError(f"serial flush failed on {self.port}: {e}") from e

    def close(self) -> None:
        if self._serial.is_open:
            self._serial.close()


class SerialPortProvider(TransportProvider):
    """Opens the cartridge's serial port.

    With an explicit port, that port is opened every time. Otherwise the
    machine must expose exactly one candidate port; on the first attempt only,
    the operator is told what was found so they can pick one explicitly.
    Later attempts (reconnects while the cartridge reboots) stay quiet.
    """

    def __init__(self,
                 port: Optional[str] = None,
                 baudrate: int = DEFAULT_BAUDRATE,
                 matcher: Optional[PortMatcher] = None):
        """Initialize provider.

        Args:
            port: Serial port path (e.g. '/dev/ttyACM0'), or None to auto-detect
            baudrate: Serial baud rate
            matcher: Predicate narrowing the auto-detected candidates
        """
        self._port = port
        self._baudrate = baudrate
        self._matcher = matcher
        self._first = True

    def open(self) -> SerialConnection:
        first = self._first
        self._first = False

        port = self._port or self._select_port(report=first)
        logger.info(f"Using serial port {port}")

        try:
            handle = serial.Serial(
                port=port,
                baudrate=self._baudrate,
                timeout=OPEN_TIMEOUT,
            )
        except serial.SerialException as e:
            raise TransportUnavailable(f"unable to open {port}: {e}") from e

        return SerialConnection(handle)

    def _select_port(self, report: bool) -> str:
        try:
            return find_single_port(self._matcher).port
        except (DeviceNotFoundError, MultipleDevicesError) as e:
            if report:
                self._report_candidates(e)
            raise

    def _report_candidates(self, error: TransportUnavailable) -> None:
        prefix = "multiple" if isinstance(error, MultipleDevicesError) else "no"
        logger.warning(
            f"{prefix} serial ports available, pick one with --port=PATH."
        )
        candidates = find_ports()
        if candidates:
            logger.warning("available serial ports:")
            for info in candidates:
                logger.warning(f" {info.port}")
