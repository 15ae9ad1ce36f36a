"""Wire protocol for the cartridge's USB serial interface."""

from . import constants
from .codec import ProtocolCodec

__all__ = [
    "constants",
    "ProtocolCodec",
]
