"""Mod-256 payload checksum."""

from __future__ import annotations


def add_byte(checksum: int, byte: int) -> int:
    """Advance the rolling checksum by one payload byte."""

    return (checksum + byte) & 0xFF
