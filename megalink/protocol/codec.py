"""Encoder/decoder for the cartridge wire alphabet.

Converts integers, strings and opcodes to their big-endian wire form and back.
Pure functions with no side effects.
"""
from __future__ import annotations

import struct

from ..errors import MalformedResponse
from .constants import PACKET_CMD, MAX_STRING_LENGTH

_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")


class ProtocolCodec:
    """Codec for the cartridge's binary command protocol."""

    @staticmethod
    def encode_command(opcode: int) -> bytes:
        """Build the 4-byte frame that prefixes every command.

        Examples:
            >>> ProtocolCodec.encode_command(0x10).hex()
            '2bd410ef'
        """
        if not 0 <= opcode <= 0xFF:
            raise ValueError(f"opcode out of range: {opcode}")
        return bytes((PACKET_CMD, PACKET_CMD ^ 0xFF, opcode, opcode ^ 0xFF))

    @staticmethod
    def encode_u8(value: int) -> bytes:
        if not 0 <= value <= 0xFF:
            raise ValueError(f"u8 out of range: {value}")
        return bytes((value,))

    @staticmethod
    def encode_u16(value: int) -> bytes:
        try:
            return _U16.pack(value)
        except struct.error as e:
            raise ValueError(f"u16 out of range: {value}") from e

    @staticmethod
    def encode_u32(value: int) -> bytes:
        try:
            return _U32.pack(value)
        except struct.error as e:
            raise ValueError(f"u32 out of range: {value}") from e

    @staticmethod
    def encode_string(value: str) -> bytes:
        """Encode a string as a u16 byte length followed by its UTF-8 bytes."""
        raw = value.encode("utf-8")
        if len(raw) > MAX_STRING_LENGTH:
            raise ValueError(f"string too long for the wire: {len(raw)} bytes")
        return _U16.pack(len(raw)) + raw

    @staticmethod
    def decode_u16(data: bytes) -> int:
        return _U16.unpack(data)[0]

    @staticmethod
    def decode_u32(data: bytes) -> int:
        return _U32.unpack(data)[0]

    @staticmethod
    def decode_text(data: bytes) -> str:
        """Decode the payload of a string response."""
        try:
            return bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedResponse(f"string response is not valid UTF-8: {e}") from e
