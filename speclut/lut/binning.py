# speclut/lut/binning.py
"""
Lambda/saturation binning.

Each fitted cell is addressed by a (dominant wavelength, saturation) bucket of
a square grid of side ``size``. The lambda axis is split in two halves by the
sign of the curvature: troughs (curvature ≤ 0) in the lower half, peaks in the
upper half, so two reflectance shapes sharing a dominant wavelength do not
collide. A bucket keeps the one sample whose fractional coordinate lies closest
to the bucket centre.

Rows are fitted concurrently; they only *propose* :class:`BinCandidate`s and a
single thread reduces them into the :class:`LambdaSaturationBuffer`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

import numpy as np

from speclut.colorimetry.tables import NDArrayF

# dominant wavelengths are normalised over this range before the remap
REMAP_LAMBDA_MIN = 400.0
REMAP_LAMBDA_MAX = 700.0
REMAP_GAIN = 2.0

__all__ = [
    "BinCandidate",
    "BinCoordinates",
    "LambdaSaturationBuffer",
    "lambda_remap",
    "saturation_remap",
    "bin_coordinates",
    "make_candidates",
]


def _logistic(x: NDArrayF) -> NDArrayF:
    return 1.0 / (1.0 + np.exp(-x))


def lambda_remap(dominant_nm: NDArrayF, gain: float = REMAP_GAIN) -> NDArrayF:
    """Dominant wavelength → (0, 1), unit slope in normalised units at 550 nm."""
    n = (np.asarray(dominant_nm, dtype=np.float64) - REMAP_LAMBDA_MIN) / (REMAP_LAMBDA_MAX - REMAP_LAMBDA_MIN)
    return _logistic(gain * (2.0 * n - 1.0))


def saturation_remap(saturation: NDArrayF, gain: float = REMAP_GAIN) -> NDArrayF:
    """Logistic remap of [0, 1] onto itself, endpoints fixed."""
    s = np.asarray(saturation, dtype=np.float64)
    lo, hi = _logistic(-gain), _logistic(gain)
    return (_logistic(gain * (2.0 * s - 1.0)) - lo) / (hi - lo)


@dataclass
class BinCoordinates:
    """Bucket address of a batch of samples."""

    lam_index: np.ndarray    # (n,) int, already shifted into the curvature half
    sat_index: np.ndarray    # (n,) int
    distance: NDArrayF       # (n,) squared distance to the bucket centre
    size: int

    @property
    def lam_center(self) -> NDArrayF:
        return (self.lam_index + 0.5) / self.size

    @property
    def sat_center(self) -> NDArrayF:
        return (self.sat_index + 0.5) / self.size


def bin_coordinates(encoded: NDArrayF, saturation: NDArrayF, size: int) -> BinCoordinates:
    """
    Parameters
    ----------
    encoded : (n, 3) (curvature, peak, dominant wavelength)
    saturation : (n,) relative saturation in [0, 1]
    size : bucket grid side; must be even and >= 2
    """
    if size < 2 or size % 2:
        raise ValueError(f"bucket grid size must be even and >= 2, got {size}")
    encoded = np.asarray(encoded, dtype=np.float64).reshape(-1, 3)
    half = size // 2

    lamc = lambda_remap(encoded[:, 2]) * half
    lami = np.clip(np.floor(lamc), 0, half - 1).astype(np.int64)
    satc = saturation_remap(saturation).reshape(-1) * size
    sati = np.clip(np.floor(satc), 0, size - 1).astype(np.int64)

    distance = (lamc - lami - 0.5) ** 2 + (satc - sati - 0.5) ** 2
    lami = np.where(encoded[:, 0] > 0.0, lami + half, lami)
    return BinCoordinates(lam_index=lami, sat_index=sati, distance=distance, size=size)


@dataclass(frozen=True)
class BinCandidate:
    """One sample proposed for a bucket."""

    lam: int
    sat: int
    distance: float
    x: float
    y: float


class LambdaSaturationBuffer:
    """
    (size, size) buckets indexed ``[lam, sat]``, each holding an xy sample.

    Empty buckets hold zeros with an infinite distance and ``occupied=False``.
    """

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("buffer size must be positive")
        self.size = int(size)
        self.xy = np.zeros((size, size, 2), dtype=np.float64)
        self.distance = np.full((size, size), np.inf, dtype=np.float64)
        self.occupied = np.zeros((size, size), dtype=bool)

    @property
    def empty_count(self) -> int:
        return int((~self.occupied).sum())

    @property
    def xyz(self) -> NDArrayF:
        """Samples as (x, y, 1 − x − y)."""
        x = self.xy[..., 0]
        y = self.xy[..., 1]
        return np.stack([x, y, 1.0 - x - y], axis=-1)

    def propose(self, candidate: BinCandidate) -> bool:
        """Keep ``candidate`` if it is closer to its bucket centre than the incumbent."""
        key = (candidate.lam, candidate.sat)
        if not candidate.distance < self.distance[key]:
            return False
        self.xy[key] = (candidate.x, candidate.y)
        self.distance[key] = candidate.distance
        self.occupied[key] = True
        return True

    def reduce(self, candidates: Iterable[BinCandidate]) -> int:
        """Fold candidates in order; ties keep the earlier one. Returns the number accepted."""
        return sum(1 for c in candidates if self.propose(c))


def make_candidates(coords: BinCoordinates, xy: NDArrayF) -> List[BinCandidate]:
    xy = np.asarray(xy, dtype=np.float64).reshape(-1, 2)
    return [
        BinCandidate(int(l), int(s), float(d), float(p[0]), float(p[1]))
        for l, s, d, p in zip(coords.lam_index, coords.sat_index, coords.distance, xy)
    ]

