"""Tests for the gamut-boundary scan."""
from __future__ import annotations

import numpy as np
import pytest

from speclut.colorimetry.gamut import display_matrices
from speclut.lut.boundary import scan_gamut_boundaries


def test_first_negative_bucket_is_reported() -> None:
    xyz = np.full((2, 4, 3), 0.2)
    xyz[0, 2, 0] = -0.1
    xyz[0, 3, 1] = -0.1
    bounds = scan_gamut_boundaries(xyz, {"identity": np.eye(3), "swapped": np.eye(3)[[1, 0, 2]]})
    assert bounds.shape == (2, 2)
    np.testing.assert_allclose(bounds[0], [(2 - 0.5) / 4, (2 - 0.5) / 4])
    np.testing.assert_allclose(bounds[1], [1.0, 1.0])


def test_white_rows_never_leave_display_gamuts() -> None:
    xyz = np.broadcast_to([0.3127, 0.3290, 1.0 - 0.3127 - 0.3290], (3, 6, 3)).copy()
    bounds = scan_gamut_boundaries(xyz, display_matrices())
    np.testing.assert_array_equal(bounds, np.ones((3, 2)))


def test_rec2020_is_wider_than_rec709() -> None:
    # saturated green ramp from white towards the locus
    white = np.array([0.3127, 0.3290])
    green = np.array([0.18, 0.75])
    t = np.linspace(0.0, 1.0, 16)[:, None]
    xy = white + t * (green - white)
    xyz = np.concatenate([xy, 1.0 - xy.sum(axis=1, keepdims=True)], axis=1)[None]
    b709, b2020 = scan_gamut_boundaries(xyz, display_matrices())[0]
    assert b709 < b2020 <= 1.0


def test_shape_is_validated() -> None:
    with pytest.raises(ValueError):
        scan_gamut_boundaries(np.zeros((4, 3)), display_matrices())
