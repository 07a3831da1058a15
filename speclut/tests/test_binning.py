"""Tests for lambda/saturation binning and the candidate reduction."""
from __future__ import annotations

import numpy as np
import pytest

from speclut.lut.binning import (
    BinCandidate,
    LambdaSaturationBuffer,
    bin_coordinates,
    lambda_remap,
    make_candidates,
    saturation_remap,
)


def test_remaps_fix_their_anchor_points() -> None:
    assert np.isclose(lambda_remap(550.0), 0.5)
    np.testing.assert_allclose(saturation_remap(np.array([0.0, 0.5, 1.0])), [0.0, 0.5, 1.0], atol=1e-12)
    lam = lambda_remap(np.linspace(380.0, 720.0, 50))
    assert bool(np.all(np.diff(lam) > 0.0))
    assert bool(np.all((lam > 0.0) & (lam < 1.0)))


def test_bin_grid_must_be_even() -> None:
    with pytest.raises(ValueError):
        bin_coordinates(np.zeros((1, 3)), np.zeros(1), 3)


def test_curvature_sign_selects_half() -> None:
    encoded = np.array([[-1e-4, 0.0, 550.0], [1e-4, 0.0, 550.0]])
    coords = bin_coordinates(encoded, np.array([0.6, 0.6]), 4)
    # 550 nm sits exactly on the middle of the remap, bucket 1 of each half
    assert coords.lam_index.tolist() == [1, 3]
    assert coords.sat_index[0] == coords.sat_index[1]
    assert coords.distance[0] == coords.distance[1]
    np.testing.assert_allclose(coords.lam_center, [0.375, 0.875])
    expected_sat = int(np.floor(saturation_remap(0.6) * 4))
    assert coords.sat_index.tolist() == [expected_sat, expected_sat]


def test_indices_stay_in_range_for_extreme_inputs() -> None:
    encoded = np.array([[-1.0, 0.0, -1e4], [1.0, 0.0, 1e4], [0.0, 0.0, 0.0]])
    coords = bin_coordinates(encoded, np.array([0.0, 1.0, 1.0]), 6)
    assert bool(np.all((coords.lam_index >= 0) & (coords.lam_index < 6)))
    assert bool(np.all((coords.sat_index >= 0) & (coords.sat_index < 6)))


def test_buffer_keeps_closest_sample() -> None:
    buffer = LambdaSaturationBuffer(4)
    assert buffer.empty_count == 16
    assert buffer.propose(BinCandidate(1, 2, 0.3, 0.2, 0.3))
    assert not buffer.propose(BinCandidate(1, 2, 0.4, 0.5, 0.5))
    assert buffer.propose(BinCandidate(1, 2, 0.1, 0.25, 0.35))
    # ties keep the incumbent
    assert not buffer.propose(BinCandidate(1, 2, 0.1, 0.9, 0.9))
    np.testing.assert_allclose(buffer.xy[1, 2], [0.25, 0.35])
    assert buffer.empty_count == 15
    np.testing.assert_allclose(buffer.xyz[1, 2], [0.25, 0.35, 0.4])


def test_reduce_is_order_sensitive_only_for_ties() -> None:
    candidates = [
        BinCandidate(0, 0, 0.2, 0.1, 0.1),
        BinCandidate(0, 0, 0.05, 0.2, 0.2),
        BinCandidate(0, 0, 0.05, 0.3, 0.3),
        BinCandidate(1, 1, 0.4, 0.4, 0.4),
    ]
    forward = LambdaSaturationBuffer(2)
    assert forward.reduce(candidates) == 3
    np.testing.assert_allclose(forward.xy[0, 0], [0.2, 0.2])
    backward = LambdaSaturationBuffer(2)
    backward.reduce(reversed(candidates))
    np.testing.assert_allclose(backward.xy[0, 0], [0.3, 0.3])
    np.testing.assert_allclose(backward.xy[1, 1], forward.xy[1, 1])


def test_make_candidates_carries_coordinates() -> None:
    coords = bin_coordinates(np.array([[1e-4, 0.0, 600.0]]), np.array([0.25]), 4)
    (candidate,) = make_candidates(coords, np.array([[0.4, 0.35]]))
    assert (candidate.lam, candidate.sat) == (int(coords.lam_index[0]), int(coords.sat_index[0]))
    assert (candidate.x, candidate.y) == (0.4, 0.35)
