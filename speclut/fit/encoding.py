"""Coefficient re-encoding between the normalised polynomial and physical terms.

The solver works on ``poly(λn) = A·λn² + B·λn + C`` with
``λn = (λ − c0)·c1``, ``c0 = λ_min`` and ``c1 = 1/(λ_max − λ_min)``.
Expanding in nanometres gives ``A2·λ² + B2·λ + C2`` (:func:`denormalise_coeffs`)
and completing the square gives the encoding

    curvature = A2
    dominant  = −B2 / (2·A2)                 (vertex wavelength, nm)
    peak      = C2 − B2² / (4·A2)            (polynomial value at the vertex)

so that ``poly = curvature·(λ − dominant)² + peak``. When |A2| < 1e-12 the
vertex is undefined and all three terms collapse to zero.
"""
from __future__ import annotations

import numpy as np
import torch

from speclut.colorimetry.integrator import CIE_LAMBDA_MAX, CIE_LAMBDA_MIN, SpectralContext
from speclut.colorimetry.tables import NDArrayF
from speclut.fit.model import sigmoid

DEGENERATE_CURVATURE = 1e-12

# float16 cannot hold curvatures of ~1e-5 with useful precision.
CURVATURE_STORAGE_SCALE = 1e5

__all__ = [
    "DEGENERATE_CURVATURE",
    "denormalise_coeffs",
    "normalise_coeffs",
    "encode",
    "decode",
    "quantise_encoding",
    "quantisation_error",
]


def _split(values: NDArrayF) -> tuple[NDArrayF, NDArrayF, NDArrayF]:
    values = np.asarray(values, dtype=np.float64)
    if values.shape[-1] != 3:
        raise ValueError(f"expected a trailing dimension of 3, got {values.shape}")
    return values[..., 0], values[..., 1], values[..., 2]


def denormalise_coeffs(
    coeffs: NDArrayF,
    lambda_min: float = CIE_LAMBDA_MIN,
    lambda_max: float = CIE_LAMBDA_MAX,
) -> NDArrayF:
    """(A, B, C) over normalised wavelength → (A2, B2, C2) over nanometres."""
    a, b, c = _split(coeffs)
    c0, c1 = lambda_min, 1.0 / (lambda_max - lambda_min)
    a2 = a * c1 * c1
    b2 = b * c1 - 2.0 * a * c0 * c1 * c1
    c2 = c - b * c0 * c1 + a * (c0 * c1) ** 2
    return np.stack([a2, b2, c2], axis=-1)


def normalise_coeffs(
    poly_nm: NDArrayF,
    lambda_min: float = CIE_LAMBDA_MIN,
    lambda_max: float = CIE_LAMBDA_MAX,
) -> NDArrayF:
    """Inverse of :func:`denormalise_coeffs`."""
    a2, b2, c2 = _split(poly_nm)
    c0, c1 = lambda_min, 1.0 / (lambda_max - lambda_min)
    a = a2 / (c1 * c1)
    b = (b2 + 2.0 * a * c0 * c1 * c1) / c1
    c = c2 + b * c0 * c1 - a * (c0 * c1) ** 2
    return np.stack([a, b, c], axis=-1)


def encode(
    coeffs: NDArrayF,
    lambda_min: float = CIE_LAMBDA_MIN,
    lambda_max: float = CIE_LAMBDA_MAX,
) -> NDArrayF:
    """(A, B, C) → (curvature, peak, dominant wavelength)."""
    a2, b2, c2 = _split(denormalise_coeffs(coeffs, lambda_min, lambda_max))
    degenerate = np.abs(a2) < DEGENERATE_CURVATURE
    safe = np.where(degenerate, 1.0, a2)
    dominant = -b2 / (2.0 * safe)
    peak = c2 - b2 * b2 / (4.0 * safe)
    out = np.stack([a2, peak, dominant], axis=-1)
    return np.where(degenerate[..., None], 0.0, out)


def decode(
    encoded: NDArrayF,
    lambda_min: float = CIE_LAMBDA_MIN,
    lambda_max: float = CIE_LAMBDA_MAX,
) -> NDArrayF:
    """(curvature, peak, dominant wavelength) → (A, B, C)."""
    curvature, peak, dominant = _split(encoded)
    poly_nm = np.stack(
        [curvature, -2.0 * curvature * dominant, peak + curvature * dominant * dominant],
        axis=-1,
    )
    return normalise_coeffs(poly_nm, lambda_min, lambda_max)


def quantise_encoding(encoded: NDArrayF) -> NDArrayF:
    """Round an encoding through float16 storage, as the runtime reads it back."""
    curvature, peak, dominant = _split(encoded)
    stored = np.stack([curvature * CURVATURE_STORAGE_SCALE, peak, dominant], axis=-1).astype(np.float16)
    restored = stored.astype(np.float64)
    restored[..., 0] /= CURVATURE_STORAGE_SCALE
    return restored


def quantisation_error(context: SpectralContext, encoded: NDArrayF, target: NDArrayF) -> NDArrayF:
    """
    Colour error of the float16-stored encoding against ``target``.

    Evaluates ``sigmoid(curvature·(λ − dominant)² + peak)`` directly in
    nanometres, which is how the encoded table is consumed.
    """
    q = quantise_encoding(encoded)
    lam = context.lambdas_nm
    x = q[..., 0:1] * (lam - q[..., 2:3]) ** 2 + q[..., 1:2]
    spectrum = sigmoid(torch.as_tensor(x, dtype=torch.float64)).numpy()
    colour = context.integrate(spectrum)
    return np.linalg.norm(colour - np.asarray(target, dtype=np.float64), axis=-1)
