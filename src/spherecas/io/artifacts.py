"""Artifact naming and writing for decoded blocks."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, List, Optional, Sequence, Set, Tuple

from spherecas.decode.events import BlockEvent

_SAFE_NAME_CHARS = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.")


def remove_path_extension(path: str) -> str:
    """Drop the extension of the last path component, keeping the directory part."""

    dot = path.rfind(".")
    sep = max(path.rfind("/"), path.rfind(os.sep))
    if dot > sep:
        return path[:dot]
    return path


def safe_block_name(name: bytes) -> str:
    """Render a two-byte block name for use in a file name."""

    return "".join(ch if ch in _SAFE_NAME_CHARS else "_" for ch in name.decode("latin-1"))


def artifact_stem(input_path: Path) -> str:
    """File name of ``input_path`` without its extension."""

    return remove_path_extension(input_path.name)


def block_output_path(
    input_path: Path,
    event: BlockEvent,
    *,
    out_dir: Optional[Path] = None,
    stem: Optional[str] = None,
) -> Path:
    """
    Output path for a block: ``<input without extension>-<name>_<ordinal>.bin``.

    With ``out_dir`` the same file name is placed there instead of next to
    the input. ``stem`` overrides the input-derived prefix (see
    ``unique_stems``).
    """

    if stem is None:
        stem = artifact_stem(input_path)
    filename = f"{stem}-{safe_block_name(event.name)}_{event.ordinal}.bin"
    target = out_dir if out_dir is not None else input_path.parent
    return target / filename


def unique_stems(inputs: Sequence[Path], *, out_dir: Optional[Path] = None) -> List[str]:
    """
    Artifact stems for ``inputs`` such that no two inputs write to the same files.

    Inputs whose artifacts would land in the same directory under the same
    stem (``a/tape.bin`` and ``b/tape.bin`` with one ``out_dir``, or
    ``tape.bin`` and ``tape.raw`` side by side) keep the stem of the first
    one; later ones get ``_<position>`` appended, position being 1-based.

    Usage example
    -------------
        unique_stems([Path("d1/tape.bin"), Path("d2/tape.bin")], out_dir=Path("out"))
        # ['tape', 'tape_2']
    """

    taken: Set[Tuple[Path, str]] = set()
    stems: List[str] = []
    for position, input_path in enumerate(inputs, start=1):
        target = (out_dir if out_dir is not None else input_path.parent).resolve()
        stem = artifact_stem(input_path)
        candidate = stem
        suffix = position
        while (target, candidate) in taken:
            candidate = f"{stem}_{suffix}"
            suffix += 1
        taken.add((target, candidate))
        stems.append(candidate)
    return stems

def write_block(path: Path, payload: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    return path


def save_json(data: Any, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    return path
