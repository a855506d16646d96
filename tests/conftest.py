from __future__ import annotations

from typing import Callable, Optional

import pytest

SYNC = 0x16
ESC = 0x1B
ETB = 0x17

BlockBuilder = Callable[..., bytes]


def build_block(
    name: bytes,
    payload: bytes,
    *,
    sync_run: int = 3,
    end_marker: int = ETB,
    checksum: Optional[int] = None,
    pad: Optional[bytes] = None,
    declared_length: Optional[int] = None,
) -> bytes:
    """Frame ``payload`` the way a Sphere tape stores a block."""
    length = (len(payload) - 1) & 0xFFFF if declared_length is None else declared_length
    csum = sum(payload) & 0xFF if checksum is None else checksum
    trailer = bytes([csum] * 3) if pad is None else pad
    return (
        bytes([SYNC] * sync_run)
        + bytes([ESC, length >> 8, length & 0xFF])
        + name
        + payload
        + bytes([end_marker, csum])
        + trailer
    )


@pytest.fixture
def make_block() -> BlockBuilder:
    return build_block
