"""Raw tape dump loading."""

from __future__ import annotations

from pathlib import Path

import numpy as np

from spherecas.errors.types import TapeReadError


def load_tape(path: Path) -> np.ndarray:
    """
    Load a raw cassette dump as bytes.

    Parameters
    ----------
    path
        File holding the demodulated byte stream. There is no header; the
        whole file is decoder input.

    Returns
    -------
    data : np.ndarray
        Shape (N,), dtype uint8.

    Raises
    ------
    TapeReadError
        When the file is missing, is not a regular file, or cannot be read.
    """

    if not path.exists():
        raise TapeReadError(f"Unable to open {path}")
    if not path.is_file():
        raise TapeReadError(f"{path} is not a regular file")
    try:
        expected = path.stat().st_size
        data = np.fromfile(path, dtype=np.uint8)
    except (OSError, MemoryError) as error:
        raise TapeReadError(f"Error reading {path}: {error}") from error
    if data.size != expected:
        raise TapeReadError(f"Error reading {path}: short read ({data.size} of {expected} bytes)")
    return data
