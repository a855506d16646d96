"""Sphere cassette block format: marker bytes and decoder phases."""

from __future__ import annotations

from enum import IntEnum

# ##########  Marker bytes  ##########

HEADER_SYNC = 0x16
HEADER_ESC = 0x1B
HEADER_ETB = 0x17

# The stored length is a 16-bit value holding (payload length - 1), so a
# payload never exceeds LENGTH_MASK bytes.
LENGTH_MASK = 0xFFFF


class Phase(IntEnum):
    """Decoder phases, in wire order."""

    SEEK_SYNC = 0
    SYNC_CONFIRM = 1
    LENGTH_HIGH = 2
    LENGTH_LOW = 3
    NAME_1 = 4
    NAME_2 = 5
    DATA = 6
    TRAILER = 7
    CHECKSUM = 8


def payload_length(high: int, low: int) -> int:
    """
    Payload length for a raw big-endian length field.

    The format stores the length minus one; ``0xFFFF`` wraps to ``0``.
    """

    return (((high << 8) | low) + 1) & LENGTH_MASK
