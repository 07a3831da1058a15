"""Spectral locus of the standard observer in CIE xy chromaticity."""
from __future__ import annotations

import functools
from dataclasses import dataclass, field

import numpy as np
from matplotlib.path import Path as PolygonPath

from speclut.colorimetry.tables import NDArrayF, observer_table

# Beyond ~700 nm the locus folds back onto itself; below 380 nm it loops.
LOCUS_LAMBDA_MIN = 380.0
LOCUS_LAMBDA_MAX = 700.0

__all__ = ["SpectralLocus", "spectral_locus", "xyz_to_xy"]


def xyz_to_xy(xyz: NDArrayF) -> NDArrayF:
    """Chromaticity of XYZ triples (..., 3); zero-sum inputs map to (0, 0)."""
    xyz = np.asarray(xyz, dtype=np.float64)
    total = xyz.sum(axis=-1, keepdims=True)
    safe = np.where(total == 0.0, 1.0, total)
    return np.where(total == 0.0, 0.0, xyz[..., :2] / safe)


def _cross(a: NDArrayF, b: NDArrayF) -> NDArrayF:
    return a[..., 0] * b[..., 1] - a[..., 1] * b[..., 0]


@dataclass(frozen=True, eq=False)
class SpectralLocus:
    """
    Closed horseshoe polygon: monochromatic chromaticities joined by the
    purple line between its two ends.
    """

    vertices: NDArrayF   # [M, 2] xy, ordered by wavelength
    _path: PolygonPath = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.vertices.ndim != 2 or self.vertices.shape[1] != 2 or self.vertices.shape[0] < 3:
            raise ValueError("vertices must be (M, 2) with M >= 3")
        object.__setattr__(self, "_path", PolygonPath(self.vertices))

    def contains(self, xy: NDArrayF) -> np.ndarray:
        """Boolean mask of chromaticities (..., 2) inside the locus."""
        xy = np.asarray(xy, dtype=np.float64)
        flat = xy.reshape(-1, 2)
        inside = self._path.contains_points(flat)
        return inside.reshape(xy.shape[:-1])

    def boundary_distance(self, xy: NDArrayF, white: NDArrayF) -> NDArrayF:
        """
        Ray parameter at which ``white + t·(xy − white)`` meets the locus.

        ``t`` is 1 for points on the boundary and above 1 for points inside.
        Returns ``inf`` where ``xy`` coincides with ``white``.
        """
        xy = np.atleast_2d(np.asarray(xy, dtype=np.float64))
        white = np.asarray(white, dtype=np.float64)
        d = xy - white                                       # [n, 2]
        p = self.vertices                                    # [m, 2]
        e = np.roll(p, -1, axis=0) - p                       # [m, 2] closing edge included
        w = p - white                                        # [m, 2]
        denom = _cross(d[:, None, :], e[None, :, :])         # [n, m]
        parallel = np.abs(denom) < 1e-15
        safe = np.where(parallel, 1.0, denom)
        t = _cross(w[None, :, :], e[None, :, :]) / safe
        u = _cross(w[None, :, :], d[:, None, :]) / safe
        hit = ~parallel & (u >= 0.0) & (u <= 1.0) & (t > 0.0)
        t = np.where(hit, t, np.inf)
        return t.min(axis=1)

    def saturation(self, xy: NDArrayF, white: NDArrayF) -> NDArrayF:
        """
        Relative saturation in [0, 1]: distance to ``white`` over the distance
        from ``white`` to the locus along the same direction.
        """
        t = self.boundary_distance(xy, white)
        with np.errstate(divide="ignore"):
            sat = np.where(np.isfinite(t), 1.0 / t, 0.0)
        return np.clip(sat, 0.0, 1.0)


@functools.lru_cache(maxsize=None)
def spectral_locus(
    lambda_min: float = LOCUS_LAMBDA_MIN,
    lambda_max: float = LOCUS_LAMBDA_MAX,
) -> SpectralLocus:
    """Locus from the tabulated observer between ``lambda_min`` and ``lambda_max``."""
    lam, xyz_bar = observer_table()
    keep = (lam >= lambda_min) & (lam <= lambda_max)
    vertices = xyz_to_xy(xyz_bar[keep])
    return SpectralLocus(vertices=np.ascontiguousarray(vertices))
