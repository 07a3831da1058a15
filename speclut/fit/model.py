# speclut/fit/model.py
"""Sigmoid-polynomial reflectance model and its residual/Jacobian.

Features
--------
- reflectance(λ) = sigmoid(A·λn² + B·λn + C) with λn ∈ [0, 1] the wavelength
  normalised over the quadrature range
- sigmoid(x) = ½·x/√(1+x²) + ½, bounded in (0, 1) without a hard clamp
- residual = target − ∫ basis · reflectance, batched over leading dims
- central-difference 3×3 Jacobian (row = channel, column = coefficient)
- any non-finite value raises :class:`FloatingPointError`
"""
from __future__ import annotations

import torch
from torch import Tensor

from speclut.colorimetry.integrator import SpectralContext

JACOBIAN_EPS = 1e-4

__all__ = [
    "JACOBIAN_EPS",
    "sigmoid",
    "polynomial",
    "reflectance",
    "integrate_coeffs",
    "eval_residual",
    "eval_jacobian",
]


def sigmoid(x: Tensor) -> Tensor:
    return 0.5 * x / torch.sqrt(1.0 + x * x) + 0.5


def polynomial(coeffs: Tensor, lambdas: Tensor) -> Tensor:
    """Evaluate (..., 3) coefficients on a 1-D grid → (..., L), Horner form."""
    a = coeffs[..., 0:1]
    b = coeffs[..., 1:2]
    c = coeffs[..., 2:3]
    return (a * lambdas + b) * lambdas + c


def reflectance(context: SpectralContext, coeffs: Tensor) -> Tensor:
    """Model reflectance on the context's fine grid, (..., 3) → (..., N)."""
    return sigmoid(polynomial(coeffs, context.lambdas_norm_t.to(coeffs)))


def _check_finite(values: Tensor, what: str) -> Tensor:
    if not bool(torch.isfinite(values).all()):
        raise FloatingPointError(f"non-finite {what} in spectral model evaluation")
    return values


def integrate_coeffs(context: SpectralContext, coeffs: Tensor) -> Tensor:
    """Colour produced by the model, (..., 3) coefficients → (..., 3)."""
    if coeffs.shape[-1] != 3:
        raise ValueError(f"coeffs must have a trailing dimension of 3, got {tuple(coeffs.shape)}")
    basis = context.basis_t.to(coeffs)
    return reflectance(context, coeffs) @ basis.transpose(0, 1)


def eval_residual(context: SpectralContext, coeffs: Tensor, target: Tensor) -> Tensor:
    """``target − integrate_coeffs(coeffs)``; shapes broadcast over leading dims."""
    residual = target.to(coeffs) - integrate_coeffs(context, coeffs)
    return _check_finite(residual, "residual")


def eval_jacobian(
    context: SpectralContext,
    coeffs: Tensor,
    target: Tensor,
    eps: float = JACOBIAN_EPS,
) -> Tensor:
    """
    Central finite-difference Jacobian of :func:`eval_residual`.

    Parameters
    ----------
    coeffs : (..., 3)
    target : (..., 3)

    Returns
    -------
    jac : (..., 3, 3) with ``jac[..., j, i] = ∂residual_j / ∂coeff_i``
    """
    step = eps * torch.eye(3, dtype=coeffs.dtype, device=coeffs.device)  # (i, :)
    lo = coeffs.unsqueeze(-2) - step                                     # (..., i, 3)
    hi = coeffs.unsqueeze(-2) + step
    t = target.to(coeffs).unsqueeze(-2)
    r0 = eval_residual(context, lo, t)                                   # (..., i, j)
    r1 = eval_residual(context, hi, t)
    jac = ((r1 - r0) / (2.0 * eps)).transpose(-1, -2)
    return _check_finite(jac, "jacobian")
