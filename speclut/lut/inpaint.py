"""Push-pull hole filling over a mip pyramid.

Push: every coarser level averages the occupied cells among its (up to) four
children. Pull: walking back down, every empty cell copies its parent, which
is occupied by then. One pass leaves no empty cell as long as the finest level
holds at least one sample.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List

import numpy as np

from speclut.colorimetry.tables import NDArrayF
from speclut.lut.binning import LambdaSaturationBuffer

__all__ = ["MipLevel", "push", "pull", "push_pull", "fill_holes"]


@dataclass
class MipLevel:
    values: NDArrayF     # (h, w, c)
    occupied: np.ndarray  # (h, w) bool

    def __post_init__(self) -> None:
        if self.values.ndim != 3 or self.values.shape[:2] != self.occupied.shape:
            raise ValueError("values must be (h, w, c) matching occupied (h, w)")

    @property
    def shape(self) -> tuple[int, int]:
        return self.values.shape[0], self.values.shape[1]


def _downsample(level: MipLevel) -> MipLevel:
    h, w = level.shape
    h2, w2 = (h + 1) // 2, (w + 1) // 2
    c = level.values.shape[2]
    vals = np.zeros((2 * h2, 2 * w2, c), dtype=np.float64)
    mask = np.zeros((2 * h2, 2 * w2), dtype=np.float64)
    mask[:h, :w] = level.occupied
    vals[:h, :w] = level.values * mask[:h, :w, None]

    total = vals.reshape(h2, 2, w2, 2, c).sum(axis=(1, 3))
    count = mask.reshape(h2, 2, w2, 2).sum(axis=(1, 3))
    occupied = count > 0
    mean = np.where(occupied[..., None], total / np.maximum(count, 1.0)[..., None], 0.0)
    return MipLevel(values=mean, occupied=occupied)


def push(base: MipLevel) -> List[MipLevel]:
    """Build the pyramid, finest first, down to a single cell."""
    levels = [base]
    while levels[-1].shape != (1, 1):
        levels.append(_downsample(levels[-1]))
    return levels


def pull(levels: List[MipLevel]) -> MipLevel:
    """Fill empty cells from the coarsest level down; returns the finest level."""
    if not bool(levels[-1].occupied.all()):
        raise ValueError("cannot fill holes in a buffer without any sample")
    for k in range(len(levels) - 2, -1, -1):
        fine, coarse = levels[k], levels[k + 1]
        h, w = fine.shape
        parent = coarse.values.repeat(2, axis=0).repeat(2, axis=1)[:h, :w]
        values = np.where(fine.occupied[..., None], fine.values, parent)
        levels[k] = MipLevel(values=values, occupied=np.ones((h, w), dtype=bool))
    return levels[0]


def push_pull(values: NDArrayF, occupied: np.ndarray) -> NDArrayF:
    """Complete ``values`` (h, w, c) wherever ``occupied`` is False."""
    base = MipLevel(values=np.asarray(values, dtype=np.float64), occupied=np.asarray(occupied, dtype=bool))
    return pull(push(base)).values


def fill_holes(buffer: LambdaSaturationBuffer) -> int:
    """Fill every empty bucket of ``buffer`` in place. Returns how many were filled."""
    holes = buffer.empty_count
    if holes == 0:
        return 0
    buffer.xy = push_pull(buffer.xy, buffer.occupied)
    buffer.occupied = np.ones_like(buffer.occupied)
    return holes
