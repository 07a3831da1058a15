"""Where the display gamuts end inside the lambda/saturation table."""
from __future__ import annotations

from typing import Mapping

import numpy as np

from speclut.colorimetry.tables import NDArrayF

__all__ = ["scan_gamut_boundaries"]


def scan_gamut_boundaries(xyz: NDArrayF, xyz_to_rgb: Mapping[str, NDArrayF]) -> NDArrayF:
    """
    For each lambda row, walk increasing saturation and record the first
    bucket whose colour leaves each gamut (any negative RGB component).

    Parameters
    ----------
    xyz : (L, S, 3) bucket colours
    xyz_to_rgb : ordered mapping name → 3×3 matrix

    Returns
    -------
    bounds : (L, G) with ``(i − 0.5)/S`` for the first outside bucket ``i``,
        or 1.0 when a row never leaves the gamut
    """
    xyz = np.asarray(xyz, dtype=np.float64)
    if xyz.ndim != 3 or xyz.shape[-1] != 3:
        raise ValueError(f"xyz must be (L, S, 3), got {xyz.shape}")
    size = xyz.shape[1]
    columns = []
    for matrix in xyz_to_rgb.values():
        rgb = xyz @ np.asarray(matrix, dtype=np.float64).T
        outside = (rgb < 0.0).any(axis=-1)            # (L, S)
        first = outside.argmax(axis=1)
        columns.append(np.where(outside.any(axis=1), (first - 0.5) / size, 1.0))
    return np.stack(columns, axis=-1)
