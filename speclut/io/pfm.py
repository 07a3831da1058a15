"""Portable float map (PFM) images, RGB only."""
from __future__ import annotations

from pathlib import Path

import numpy as np

from speclut.colorimetry.tables import NDArrayF

__all__ = ["write_pfm", "read_pfm", "abney_debug_image"]


def write_pfm(path: str | Path, image: NDArrayF) -> None:
    """Write ``image`` (height, width, 3) as little-endian float32 scanlines, first row first."""
    image = np.asarray(image)
    if image.ndim != 3 or image.shape[-1] != 3:
        raise ValueError(f"pfm image must be (height, width, 3), got {image.shape}")
    height, width = image.shape[:2]
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as fh:
        fh.write(f"PF\n{width} {height}\n-1.0\n".encode("ascii"))
        fh.write(np.ascontiguousarray(image, dtype="<f4").tobytes())


def read_pfm(path: str | Path) -> NDArrayF:
    path = Path(path)
    raw = path.read_bytes()
    parts = raw.split(b"\n", 3)
    if len(parts) < 4 or parts[0] != b"PF":
        raise ValueError(f"{path}: not an RGB pfm file")
    width, height = (int(v) for v in parts[1].split())
    scale = float(parts[2])
    dtype = "<f4" if scale < 0 else ">f4"
    data = np.frombuffer(parts[3], dtype=dtype, count=width * height * 3)
    return data.reshape(height, width, 3).astype(np.float32)


def abney_debug_image(table: NDArrayF) -> NDArrayF:
    """Visualise an (L, S + 1, 2) abney table: xy → (x, y, 1 − x − y), boundary column → (b709, b2020, 0)."""
    table = np.asarray(table, dtype=np.float64)
    image = np.zeros(table.shape[:2] + (3,), dtype=np.float32)
    x = table[:, :-1, 0]
    y = table[:, :-1, 1]
    image[:, :-1] = np.stack([x, y, 1.0 - x - y], axis=-1)
    image[:, -1, :2] = table[:, -1]
    return image
