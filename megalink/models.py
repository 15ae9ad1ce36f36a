"""Data models exchanged with the cartridge.

Enums mirror the numeric codes used on the wire; FileMetadata is a frozen
snapshot decoded from a file-info response.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum, IntFlag
from typing import Optional

# Attribute bit set on directory entries
FAT_ATTRIB_DIRECTORY = 0x10


class DeviceMode(Enum):
    """Firmware personality the cartridge is currently running."""
    SERVICE = "service"
    APP = "app"

    @property
    def lower_name(self) -> str:
        """Lower-case name used in log messages."""
        return self.value


class ResetMode(IntEnum):
    """Reset line state sent with the host reset command.

    OFF clears a previously asserted reset and lets the target run.
    SOFT sends the target to its entry point.
    HARD resets the target entirely.
    """
    OFF = 0
    SOFT = 1
    HARD = 2


class FileMode(IntFlag):
    """FAT open flags for the file-open command."""
    OPEN_EXISTING = 0x00
    READ = 0x01
    WRITE = 0x02
    CREATE_NEW = 0x04
    CREATE_ALWAYS = 0x08
    OPEN_ALWAYS = 0x10
    OPEN_APPEND = 0x30


@dataclass(frozen=True)
class FileMetadata:
    """Metadata for a file on the cartridge's SD card.

    Attributes:
        name: File name as stored on the card
        size: Size in bytes
        date: FAT packed date (bits 15-9 year-1980, 8-5 month, 4-0 day)
        time: FAT packed time (bits 15-11 hour, 10-5 minute, 4-0 seconds/2)
        attrib: FAT attribute byte
    """
    name: str
    size: int
    date: int
    time: int
    attrib: int

    @property
    def is_directory(self) -> bool:
        return bool(self.attrib & FAT_ATTRIB_DIRECTORY)

    @property
    def modified(self) -> Optional[datetime]:
        """Modification timestamp, or None if the FAT fields are not a valid date."""
        try:
            return datetime(
                1980 + (self.date >> 9),
                (self.date >> 5) & 0x0F,
                self.date & 0x1F,
                self.time >> 11,
                (self.time >> 5) & 0x3F,
                (self.time & 0x1F) * 2,
            )
        except ValueError:
            return None
