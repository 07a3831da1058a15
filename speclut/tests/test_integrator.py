"""Tests for the colorimetric quadrature tables."""
from __future__ import annotations

import numpy as np
import pytest

from speclut.colorimetry.gamut import DEFAULT_GAMUT, FALLBACK_GAMUT, Gamut, gamut_spec, parse_gamut
from speclut.colorimetry.integrator import (
    CIE_FINE_SAMPLES,
    CIE_LAMBDA_MAX,
    CIE_LAMBDA_MIN,
    build_context,
    fine_wavelengths,
    simpson38_weights,
)


def test_simpson_weights_pattern() -> None:
    w = simpson38_weights(10, 1.0) / (3.0 / 8.0)
    assert w.tolist() == [1.0, 3.0, 3.0, 2.0, 3.0, 3.0, 2.0, 3.0, 3.0, 1.0]


def test_simpson_integrates_cubic_exactly() -> None:
    x = np.linspace(0.0, 3.0, 7)
    w = simpson38_weights(7, 0.5)
    assert np.isclose(np.sum(w * x**3), 81.0 / 4.0)


def test_simpson_rejects_bad_sample_count() -> None:
    with pytest.raises(ValueError):
        simpson38_weights(9, 1.0)


def test_fine_grid_covers_visible_range() -> None:
    lam, step = fine_wavelengths()
    assert lam.size == CIE_FINE_SAMPLES == 283
    assert lam[0] == CIE_LAMBDA_MIN
    assert np.isclose(lam[-1], CIE_LAMBDA_MAX)
    assert np.isclose(step, (CIE_LAMBDA_MAX - CIE_LAMBDA_MIN) / 282.0)


def test_white_has_unit_luminance() -> None:
    ctx = build_context(Gamut.XYZ)
    assert np.isclose(ctx.xyz_whitepoint[1], 1.0)
    np.testing.assert_allclose(ctx.integrate(np.ones(ctx.num_samples)), ctx.white_rgb, atol=1e-12)
    # equal-energy white
    np.testing.assert_allclose(ctx.white_xy, [1.0 / 3.0, 1.0 / 3.0], atol=2e-3)


def test_srgb_white_maps_to_unit_rgb() -> None:
    ctx = build_context(Gamut.SRGB)
    np.testing.assert_allclose(ctx.white_rgb, np.ones(3), atol=1e-2)


def test_basis_is_bit_identical_across_builds() -> None:
    a = build_context(Gamut.REC2020)
    b = build_context(Gamut.REC2020)
    assert np.array_equal(a.basis, b.basis)
    assert a.sha256 == b.sha256
    assert a.sha256 != build_context(Gamut.SRGB).sha256


def test_context_tables_are_read_only() -> None:
    ctx = build_context(Gamut.XYZ)
    assert not ctx.basis.flags.writeable
    with pytest.raises(ValueError):
        ctx.basis[0, 0] = 1.0


@pytest.mark.parametrize("gamut", list(Gamut))
def test_every_gamut_has_inverse_matrices(gamut: Gamut) -> None:
    spec = gamut_spec(gamut)
    np.testing.assert_allclose(spec.rgb_to_xyz @ spec.xyz_to_rgb, np.eye(3), atol=1e-9)
    np.testing.assert_allclose(spec.xyz_to_rgb @ spec.rgb_to_xyz, np.eye(3), atol=1e-9)


def test_parse_gamut_is_case_insensitive() -> None:
    assert parse_gamut("srgb") is Gamut.SRGB
    assert parse_gamut("REC2020") is Gamut.REC2020
    assert parse_gamut("aces2065_1") is Gamut.ACES2065_1
    assert parse_gamut("prophotorgb") is Gamut.PROPHOTO_RGB


def test_parse_gamut_defaults() -> None:
    assert parse_gamut(None) is DEFAULT_GAMUT is Gamut.XYZ
    assert parse_gamut("not-a-gamut") is FALLBACK_GAMUT is Gamut.SRGB
