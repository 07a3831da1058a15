"""SHA-256 digests for basis tables and written lookup tables."""
from __future__ import annotations

import hashlib
from pathlib import Path

import numpy as np


def sha256_ndarray(arr: np.ndarray) -> str:
    """Digest of an array's dtype, shape and little-endian contents."""
    data = np.ascontiguousarray(arr, dtype=arr.dtype.newbyteorder("<"))
    h = hashlib.sha256(f"{data.dtype.str}{data.shape}".encode("ascii"))
    h.update(data.tobytes())
    return h.hexdigest()


def sha256_path(path: str | Path, chunk_size: int = 1 << 20) -> str:
    with Path(path).open("rb") as fh:
        h = hashlib.sha256()
        for chunk in iter(lambda: fh.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


__all__ = ["sha256_ndarray", "sha256_path"]
