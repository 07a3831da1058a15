"""Tabulated colorimetric data, resampled onto arbitrary wavelength grids.

The CIE 1931 2° observer and the illuminant spectra come from
``colour-science``; this module only resamples them. Resampling is linear
interpolation between tabulated samples and holds the end values outside the
tabulated range.
"""
from __future__ import annotations

import functools

import colour
import numpy as np
import numpy.typing as npt

NDArrayF = npt.NDArray[np.floating]

OBSERVER = "CIE 1931 2 Degree Standard Observer"

__all__ = [
    "OBSERVER",
    "cmfs_at",
    "illuminant_at",
    "observer_table",
]


@functools.lru_cache(maxsize=None)
def observer_table() -> tuple[NDArrayF, NDArrayF]:
    """Return the tabulated observer as ``(wavelengths [M], xyz_bar [M, 3])``."""
    cmfs = colour.MSDS_CMFS[OBSERVER]
    wavelengths = np.asarray(cmfs.wavelengths, dtype=np.float64)
    values = np.asarray(cmfs.values, dtype=np.float64)
    wavelengths.setflags(write=False)
    values.setflags(write=False)
    return wavelengths, values


def cmfs_at(wavelengths_nm: NDArrayF) -> NDArrayF:
    """Colour matching functions sampled at ``wavelengths_nm``, shape (N, 3)."""
    lam = np.asarray(wavelengths_nm, dtype=np.float64)
    if lam.ndim != 1:
        raise ValueError("wavelengths_nm must be 1-D")
    table_lam, table_xyz = observer_table()
    return np.stack([np.interp(lam, table_lam, table_xyz[:, k]) for k in range(3)], axis=-1)


def _illuminant_sd(name: str):
    if name == "D60":
        # ACES white; D-series spectrum synthesised from its chromaticity.
        xy = colour.RGB_COLOURSPACES["ACES2065-1"].whitepoint
        return colour.sd_CIE_illuminant_D_series(np.asarray(xy, dtype=np.float64))
    if name in ("D50", "D65"):
        return colour.SDS_ILLUMINANTS[name]
    raise ValueError(f"Unknown illuminant '{name}'")


def illuminant_at(name: str, wavelengths_nm: NDArrayF) -> NDArrayF:
    """
    Relative spectral power of illuminant ``name`` at ``wavelengths_nm``.

    ``"E"`` is the equal-energy illuminant and is constant. The result is not
    normalised; callers scale it against the observer.
    """
    lam = np.asarray(wavelengths_nm, dtype=np.float64)
    if lam.ndim != 1:
        raise ValueError("wavelengths_nm must be 1-D")
    if name == "E":
        return np.ones_like(lam)
    sd = _illuminant_sd(name)
    return np.interp(
        lam,
        np.asarray(sd.wavelengths, dtype=np.float64),
        np.asarray(sd.values, dtype=np.float64),
    )
