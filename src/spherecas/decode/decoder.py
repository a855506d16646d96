"""Byte-at-a-time block decoder for raw Sphere cassette dumps."""

from __future__ import annotations

from typing import Callable, Iterable, Iterator, List, Optional, Union

import numpy as np

from spherecas.decode.checksum import add_byte
from spherecas.decode.events import BlockError, BlockEvent, BlockKind
from spherecas.decode.tape_format import (
    HEADER_ESC,
    HEADER_ETB,
    HEADER_SYNC,
    Phase,
    payload_length,
)

BlockSink = Callable[[BlockEvent], None]
ByteSource = Union[bytes, bytearray, memoryview, np.ndarray, Iterable[int]]


def _as_byte_iterable(data: ByteSource) -> Iterable[int]:
    if isinstance(data, np.ndarray):
        return data.astype(np.uint8, copy=False).tobytes()
    if isinstance(data, memoryview):
        return data.tobytes()
    return data


class BlockDecoder:
    """
    Finite-state parser recovering named blocks from a cassette byte stream.

    Every delimited block is reported exactly once, in stream order: it is
    passed to ``sink`` (if given) and returned from the ``feed`` call that
    completed it. Malformed input never raises; it surfaces as the ``error``
    of the emitted ``BlockEvent``. A block cut off by the end of the stream is
    never emitted.

    Usage example
    -------------
        events = []
        dec = BlockDecoder(sink=events.append)
        dec.feed_all(raw)
    """

    def __init__(self, sink: Optional[BlockSink] = None) -> None:
        self._sink = sink
        self._blocks_emitted = 0
        self._position = 0
        self._payload = bytearray()
        self.begin()

    # ---------- state ----------

    def begin(self) -> None:
        """Reset per-block state and go back to seeking a sync byte."""

        self._phase = Phase.SEEK_SYNC
        self._length_high = 0
        self._declared_length = 0
        self._expected_length = 0
        self._name = bytearray(2)
        self._payload.clear()
        self._checksum = 0
        self._kind = BlockKind.TEXT
        self._start_offset = 0

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def expected_length(self) -> int:
        return self._expected_length

    @property
    def bytes_consumed(self) -> int:
        return len(self._payload)

    @property
    def checksum(self) -> int:
        return self._checksum

    @property
    def block_kind(self) -> BlockKind:
        return self._kind

    @property
    def block_name(self) -> bytes:
        return bytes(self._name)

    @property
    def blocks_emitted(self) -> int:
        return self._blocks_emitted

    @property
    def position(self) -> int:
        """Number of bytes fed so far."""
        return self._position

    # ---------- feeding ----------

    def feed(self, byte: int) -> Optional[BlockEvent]:
        """
        Consume one byte.

        Returns
        -------
        event
            The block completed by this byte, or ``None``.
        """

        if not 0 <= byte <= 0xFF:
            raise ValueError(f"byte must be in 0..255, got {byte}.")
        offset = self._position
        self._position += 1
        phase = self._phase

        if phase is Phase.SEEK_SYNC:
            if byte == HEADER_SYNC:
                self._phase = Phase.SYNC_CONFIRM
        elif phase is Phase.SYNC_CONFIRM:
            if byte == HEADER_ESC:
                self._start_offset = offset
                self._phase = Phase.LENGTH_HIGH
            elif byte != HEADER_SYNC:
                # desync
                self._phase = Phase.SEEK_SYNC
        elif phase is Phase.LENGTH_HIGH:
            self._length_high = byte
            self._phase = Phase.LENGTH_LOW
        elif phase is Phase.LENGTH_LOW:
            self._declared_length = (self._length_high << 8) | byte
            self._expected_length = payload_length(self._length_high, byte)
            self._phase = Phase.NAME_1
        elif phase is Phase.NAME_1:
            self._name[0] = byte
            self._phase = Phase.NAME_2
        elif phase is Phase.NAME_2:
            self._name[1] = byte
            self._phase = Phase.DATA if self._expected_length > 0 else Phase.TRAILER
        elif phase is Phase.DATA:
            self._payload.append(byte)
            self._checksum = add_byte(self._checksum, byte)
            # High-bit bytes mark the block as object code for good. This
            # mirrors the heuristic of Programma's Tape Directory program.
            if byte & 0x80:
                self._kind = BlockKind.OBJECT
            if len(self._payload) == self._expected_length:
                self._phase = Phase.TRAILER
        elif phase is Phase.TRAILER:
            if byte == HEADER_ETB:
                self._phase = Phase.CHECKSUM
            else:
                # The offending byte is dropped, not rescanned for sync.
                return self._emit(BlockError.TRAILER, stored_checksum=None, end_offset=offset)
        elif phase is Phase.CHECKSUM:
            error = BlockError.NONE if byte == self._checksum else BlockError.CHECKSUM
            return self._emit(error, stored_checksum=byte, end_offset=offset)
        return None

    def feed_all(self, data: ByteSource) -> List[BlockEvent]:
        """Feed every byte of ``data`` in order; return the blocks completed."""

        events: List[BlockEvent] = []
        for byte in _as_byte_iterable(data):
            event = self.feed(byte)
            if event is not None:
                events.append(event)
        return events

    def _emit(self, error: BlockError, *, stored_checksum: Optional[int], end_offset: int) -> BlockEvent:
        event = BlockEvent(
            index=self._blocks_emitted,
            name=bytes(self._name),
            declared_length=self._declared_length,
            payload=bytes(self._payload),
            kind=self._kind,
            error=error,
            checksum=self._checksum,
            stored_checksum=stored_checksum,
            start_offset=self._start_offset,
            end_offset=end_offset,
        )
        self._blocks_emitted += 1
        self.begin()
        if self._sink is not None:
            self._sink(event)
        return event


def iter_blocks(data: ByteSource) -> Iterator[BlockEvent]:
    """Lazily decode ``data``, yielding blocks as soon as they are delimited."""

    dec = BlockDecoder()
    for byte in _as_byte_iterable(data):
        event = dec.feed(byte)
        if event is not None:
            yield event


def decode_bytes(data: ByteSource) -> List[BlockEvent]:
    """Decode a complete byte sequence into its list of blocks."""

    return BlockDecoder().feed_all(data)
