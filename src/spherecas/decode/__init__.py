"""Block decoding for Sphere cassette dumps."""

from spherecas.decode.decoder import BlockDecoder, decode_bytes, iter_blocks
from spherecas.decode.events import BlockError, BlockEvent, BlockKind
from spherecas.decode.tape_format import Phase

__all__ = [
    "BlockDecoder",
    "BlockError",
    "BlockEvent",
    "BlockKind",
    "Phase",
    "decode_bytes",
    "iter_blocks",
]
