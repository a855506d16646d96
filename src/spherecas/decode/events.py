"""Block events emitted by the decoder."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class BlockKind(str, Enum):
    """Content classification of a block payload."""

    TEXT = "Text"
    OBJECT = "Object"


class BlockError(str, Enum):
    """Error classification of a delimited block."""

    NONE = ""
    TRAILER = "Trailer"
    CHECKSUM = "Checksum"


@dataclass(frozen=True)
class BlockEvent:
    """
    One delimited block, as handed to the sink.

    Parameters
    ----------
    index
        0-based ordinal of the block within the decoded stream.
    name
        The two raw name bytes.
    declared_length
        Raw 16-bit length field as stored on tape (payload length - 1).
    payload
        Payload bytes accumulated for the block. For trailer errors this is
        everything read before the bad end marker.
    kind
        ``BlockKind.OBJECT`` once any payload byte had its high bit set.
    error
        ``BlockError.NONE`` on success.
    checksum
        Rolling mod-256 sum of ``payload``.
    stored_checksum
        Checksum byte read from the stream; ``None`` when the trailer failed
        before the checksum was reached.
    start_offset, end_offset
        Stream offsets of the escape marker and of the last byte consumed.

    Usage example
    -------------
        event = decode_bytes(data)[0]
        print(event.ordinal, event.name_text, event.length, event.kind.value)
    """

    index: int
    name: bytes
    declared_length: int
    payload: bytes
    kind: BlockKind
    error: BlockError
    checksum: int
    stored_checksum: Optional[int] = None
    start_offset: int = 0
    end_offset: int = 0

    def __post_init__(self) -> None:
        if len(self.name) != 2:
            raise ValueError(f"Block name must be exactly 2 bytes, got {len(self.name)}.")
        if not 0 <= self.checksum <= 0xFF:
            raise ValueError(f"checksum must be in 0..255, got {self.checksum}.")

    @property
    def ordinal(self) -> int:
        """1-based block number used in listings and file names."""
        return self.index + 1

    @property
    def length(self) -> int:
        return len(self.payload)

    @property
    def name_text(self) -> str:
        """Name rendered one character per byte."""
        return self.name.decode("latin-1")

    @property
    def ok(self) -> bool:
        return self.error is BlockError.NONE

    def describe(self) -> Dict[str, Any]:
        """JSON-ready summary without the payload bytes."""
        return {
            "block": self.ordinal,
            "name": self.name_text,
            "name_hex": self.name.hex(),
            "length": self.length,
            "declared_length": self.declared_length,
            "type": self.kind.value,
            "error": self.error.value,
            "checksum": self.checksum,
            "stored_checksum": self.stored_checksum,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
        }
