from __future__ import annotations

import numpy as np
import pytest

from spherecas.decode import BlockDecoder, BlockError, BlockKind, Phase, decode_bytes, iter_blocks

PAYLOAD = bytes([0x01, 0x02, 0x03, 0x04, 0x05])
SCENARIO = bytes([0x16, 0x16, 0x16, 0x1B, 0x00, 0x04, 0x41, 0x42]) + PAYLOAD + bytes([0x17, 0x0F, 0x0F, 0x0F, 0x0F])


def test_reference_block_decodes_cleanly() -> None:
    events = decode_bytes(SCENARIO)

    assert len(events) == 1
    ev = events[0]
    assert ev.name == b"AB"
    assert ev.name_text == "AB"
    assert ev.length == 5
    assert ev.declared_length == 4
    assert ev.payload == PAYLOAD
    assert ev.kind is BlockKind.TEXT
    assert ev.error is BlockError.NONE
    assert ev.checksum == 0x0F
    assert ev.stored_checksum == 0x0F
    assert ev.ordinal == 1
    assert ev.start_offset == 3
    assert ev.end_offset == 14


def test_wrong_checksum_byte_is_reported() -> None:
    data = bytearray(SCENARIO)
    data[14] = 0xFF

    (ev,) = decode_bytes(bytes(data))

    assert ev.error is BlockError.CHECKSUM
    assert ev.payload == PAYLOAD
    assert ev.checksum == 0x0F
    assert ev.stored_checksum == 0xFF


def test_stream_truncated_mid_payload_emits_nothing() -> None:
    dec = BlockDecoder()
    events = dec.feed_all(SCENARIO[:10])

    assert events == []
    assert dec.blocks_emitted == 0
    assert dec.phase is Phase.DATA
    assert dec.bytes_consumed == 2


def test_valid_blocks_roundtrip_payload(make_block) -> None:
    payload = bytes(range(0x20, 0x7F))
    (ev,) = decode_bytes(make_block(b"HI", payload))
    assert ev.payload == payload
    assert ev.error is BlockError.NONE


@pytest.mark.parametrize("position", [0, 7, 63])
def test_single_flipped_payload_byte_breaks_checksum(make_block, position: int) -> None:
    payload = bytes((i * 7) & 0x7F for i in range(64))
    good = make_block(b"CK", payload)
    corrupted = bytearray(good)
    # 3 sync + esc + 2 length + 2 name
    corrupted[8 + position] ^= 0x01

    (ev,) = decode_bytes(bytes(corrupted))

    assert ev.error is BlockError.CHECKSUM


def test_checksum_wraps_modulo_256(make_block) -> None:
    payload = bytes([0xFF] * 300)
    (ev,) = decode_bytes(make_block(b"WR", payload))
    assert ev.checksum == (0xFF * 300) % 256
    assert ev.error is BlockError.NONE


def test_bad_end_marker_is_trailer_error(make_block) -> None:
    (ev,) = decode_bytes(make_block(b"TR", b"hello", end_marker=0x00))

    assert ev.error is BlockError.TRAILER
    assert ev.payload == b"hello"
    assert ev.stored_checksum is None


def test_bad_end_marker_byte_is_not_rescanned_as_sync() -> None:
    data = (
        bytes([0x16, 0x16, 0x16, 0x1B, 0x00, 0x01])
        + b"AB"
        + b"\x01\x02"
        # end marker replaced by a sync byte
        + bytes([0x16])
        # would decode as block "CD" if that sync byte were reconsidered
        + bytes([0x1B, 0x00, 0x00])
        + b"CD"
        + bytes([0x41, 0x17, 0x41])
    )

    events = decode_bytes(data)

    assert [ev.name for ev in events] == [b"AB"]
    assert events[0].error is BlockError.TRAILER


def test_trailer_error_resets_to_seek_sync(make_block) -> None:
    dec = BlockDecoder()
    data = make_block(b"TR", b"xy", end_marker=0x42, pad=b"")
    # stop right after the bad end marker
    events = dec.feed_all(data[:-1])

    assert len(events) == 1
    assert dec.phase is Phase.SEEK_SYNC
    assert dec.bytes_consumed == 0
    assert dec.checksum == 0


def test_consecutive_blocks_recovered_in_order(make_block) -> None:
    data = make_block(b"A1", b"first") + make_block(b"A2", b"second") + make_block(b"A3", b"third")

    events = decode_bytes(data)

    assert [ev.name for ev in events] == [b"A1", b"A2", b"A3"]
    assert [ev.payload for ev in events] == [b"first", b"second", b"third"]
    assert [ev.index for ev in events] == [0, 1, 2]
    assert all(ev.ok for ev in events)


def test_corrupted_block_does_not_prevent_next_block(make_block) -> None:
    data = (
        make_block(b"B1", b"broken", checksum=0x00)
        + make_block(b"B2", b"cut", end_marker=0x99)
        + b"\x00\xff\x16\x42\x16\x00"
        + make_block(b"B3", b"good")
    )

    events = decode_bytes(data)

    assert [(ev.name, ev.error) for ev in events] == [
        (b"B1", BlockError.CHECKSUM),
        (b"B2", BlockError.TRAILER),
        (b"B3", BlockError.NONE),
    ]
    assert events[2].payload == b"good"


def test_noise_before_sync_is_ignored(make_block) -> None:
    noise = bytes([0x00, 0x1B, 0x17, 0xFF, 0x16, 0x00])
    (ev,) = decode_bytes(noise + make_block(b"NZ", b"data"))
    assert ev.payload == b"data"
    assert ev.start_offset == len(noise) + 3


def test_sync_run_length_does_not_matter(make_block) -> None:
    (short,) = decode_bytes(make_block(b"SR", b"payload", sync_run=1))
    (longer,) = decode_bytes(make_block(b"SR", b"payload", sync_run=5))

    for attr in ("name", "declared_length", "payload", "kind", "error", "checksum", "stored_checksum"):
        assert getattr(short, attr) == getattr(longer, attr)


def test_length_ffff_means_empty_payload(make_block) -> None:
    dec = BlockDecoder()
    data = make_block(b"EM", b"", declared_length=0xFFFF)
    # sync x3, esc, length x2, name x2
    dec.feed_all(data[:8])

    assert dec.expected_length == 0
    assert dec.bytes_consumed == 0
    assert dec.phase is Phase.TRAILER

    events = dec.feed_all(data[8:])
    assert len(events) == 1
    assert events[0].payload == b""
    assert events[0].declared_length == 0xFFFF
    assert events[0].error is BlockError.NONE
    assert events[0].kind is BlockKind.TEXT


def test_length_zero_means_one_byte(make_block) -> None:
    (ev,) = decode_bytes(make_block(b"ON", b"\x80"))
    assert ev.declared_length == 0
    assert ev.payload == b"\x80"


def test_largest_block_fits(make_block) -> None:
    payload = bytes(i & 0x7F for i in range(0xFFFF))
    (ev,) = decode_bytes(make_block(b"BG", payload))
    assert ev.length == 0xFFFF
    assert ev.declared_length == 0xFFFE
    assert ev.error is BlockError.NONE


def test_high_bit_byte_marks_object_and_sticks(make_block) -> None:
    dec = BlockDecoder()
    data = make_block(b"OB", b"AB\x80CD")
    dec.feed_all(data[:10])
    assert dec.block_kind is BlockKind.TEXT
    dec.feed_all(data[10:11])
    assert dec.block_kind is BlockKind.OBJECT

    events = dec.feed_all(data[11:])
    assert events[0].kind is BlockKind.OBJECT


def test_seven_bit_payload_is_text(make_block) -> None:
    (ev,) = decode_bytes(make_block(b"TX", bytes(range(0x80))))
    assert ev.kind is BlockKind.TEXT


def test_kind_resets_between_blocks(make_block) -> None:
    events = decode_bytes(make_block(b"O1", b"\xff") + make_block(b"T1", b"text"))
    assert [ev.kind for ev in events] == [BlockKind.OBJECT, BlockKind.TEXT]


def test_checksum_covers_payload_only(make_block) -> None:
    dec = BlockDecoder()
    data = make_block(b"\x16\x1b", b"\x10\x20")
    dec.feed_all(data[:8])
    assert dec.checksum == 0
    assert dec.block_name == b"\x16\x1b"
    dec.feed_all(data[8:10])
    assert dec.checksum == 0x30


def test_bytes_consumed_never_exceeds_expected(make_block) -> None:
    dec = BlockDecoder()
    for byte in make_block(b"IN", bytes(range(40))) * 2:
        dec.feed(byte)
        assert dec.bytes_consumed <= dec.expected_length <= 0xFFFF


def test_sink_receives_each_block_once_after_reset(make_block) -> None:
    seen = []
    dec = BlockDecoder(sink=lambda ev: seen.append((ev.name, dec.phase)))

    returned = dec.feed_all(make_block(b"S1", b"one") + make_block(b"S2", b"two"))

    assert seen == [(b"S1", Phase.SEEK_SYNC), (b"S2", Phase.SEEK_SYNC)]
    assert [ev.name for ev in returned] == [b"S1", b"S2"]


def test_feed_returns_event_only_on_completing_byte(make_block) -> None:
    dec = BlockDecoder()
    data = make_block(b"FE", b"z", pad=b"")
    results = [dec.feed(b) for b in data]
    assert all(r is None for r in results[:-1])
    assert results[-1] is not None and results[-1].name == b"FE"


def test_begin_discards_partial_block(make_block) -> None:
    dec = BlockDecoder()
    data = make_block(b"PB", b"partial")
    dec.feed_all(data[:10])
    dec.begin()

    assert dec.phase is Phase.SEEK_SYNC
    assert dec.bytes_consumed == 0
    assert dec.expected_length == 0
    assert dec.checksum == 0
    assert dec.block_kind is BlockKind.TEXT
    assert dec.feed_all(data[10:]) == []


def test_feed_rejects_out_of_range_values() -> None:
    dec = BlockDecoder()
    with pytest.raises(ValueError):
        dec.feed(256)
    with pytest.raises(ValueError):
        dec.feed(-1)


def test_feed_all_accepts_numpy_and_memoryview(make_block) -> None:
    data = make_block(b"NP", b"array")
    arr = np.frombuffer(data, dtype=np.uint8)

    assert decode_bytes(arr)[0].payload == b"array"
    assert decode_bytes(memoryview(data))[0].payload == b"array"
    assert decode_bytes(list(data))[0].payload == b"array"


def test_iter_blocks_is_lazy(make_block) -> None:
    source = iter(make_block(b"L1", b"lazy") + make_block(b"L2", b"more"))
    blocks = iter_blocks(source)

    first = next(blocks)
    assert first.name == b"L1"
    # the second block has not been read yet
    rest = bytes(source)
    assert b"L2" in rest
    assert list(blocks) == []


def test_position_counts_all_bytes(make_block) -> None:
    dec = BlockDecoder()
    data = b"\x00\x00" + make_block(b"PO", b"abc")
    dec.feed_all(data)
    assert dec.position == len(data)
