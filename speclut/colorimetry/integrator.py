# speclut/colorimetry/integrator.py
"""
Colorimetric quadrature: wavelength grid, Simpson 3/8 weights and the
per-gamut tristimulus basis that turns a reflectance spectrum into RGB.

Design goals
------------
- One immutable :class:`SpectralContext` per gamut, built once and passed
  explicitly to the model and the solver (no module-level tables).
- Bit-reproducible: building the same gamut twice yields identical arrays,
  checked through the SHA-256 digest stored on the context.
- Numpy float64 for the tables; a float64 torch copy of the basis is kept on
  the context for the batched evaluator.

The basis is

    basis[k, i] = Σ_j xyz_to_rgb[k, j] · cmf_j(λ_i) · I(λ_i) · w_i

so that ``basis @ R(λ)`` integrates a reflectance ``R`` sampled on the fine
grid. The illuminant is scaled so that a perfect reflector has Y = 1.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np
import torch

from speclut.colorimetry.gamut import Gamut, gamut_spec
from speclut.colorimetry.tables import NDArrayF, cmfs_at, illuminant_at
from speclut.utils.hashing import sha256_ndarray

Tensor = torch.Tensor

CIE_LAMBDA_MIN = 360.0
CIE_LAMBDA_MAX = 830.0
CIE_SAMPLES = 95
CIE_FINE_SAMPLES = (CIE_SAMPLES - 1) * 3 + 1

__all__ = [
    "CIE_LAMBDA_MIN",
    "CIE_LAMBDA_MAX",
    "CIE_SAMPLES",
    "CIE_FINE_SAMPLES",
    "SpectralContext",
    "simpson38_weights",
    "fine_wavelengths",
    "build_context",
]


def simpson38_weights(num_samples: int, step: float) -> NDArrayF:
    """
    Composite Simpson's 3/8 weights on a uniform grid of ``num_samples`` points.

    The pattern is ``3h/8 · [1, 3, 3, 2, 3, 3, 2, ..., 3, 3, 1]``; it needs
    ``num_samples - 1`` to be a multiple of 3.
    """
    if num_samples < 4 or (num_samples - 1) % 3 != 0:
        raise ValueError("Simpson 3/8 needs 3k+1 samples with k >= 1")
    w = np.full(num_samples, 3.0, dtype=np.float64)
    w[3:-1:3] = 2.0
    w[0] = 1.0
    w[-1] = 1.0
    return w * (3.0 / 8.0 * step)


def fine_wavelengths(
    lambda_min: float = CIE_LAMBDA_MIN,
    lambda_max: float = CIE_LAMBDA_MAX,
    num_samples: int = CIE_FINE_SAMPLES,
) -> Tuple[NDArrayF, float]:
    """Uniform quadrature grid and its step."""
    step = (lambda_max - lambda_min) / (num_samples - 1.0)
    lam = lambda_min + np.arange(num_samples, dtype=np.float64) * step
    return lam, step


@dataclass(frozen=True, eq=False)
class SpectralContext:
    """Read-only quadrature tables for one gamut."""

    gamut: Gamut
    lambdas_nm: NDArrayF        # [N] fine grid, uniform
    weights: NDArrayF           # [N] Simpson 3/8 weights (nm)
    basis: NDArrayF             # [3, N] weighted RGB basis
    xyz_whitepoint: NDArrayF    # [3] XYZ of a perfect reflector
    rgb_to_xyz: NDArrayF        # [3, 3]
    xyz_to_rgb: NDArrayF        # [3, 3]
    sha256: str = ""
    basis_t: Tensor = field(init=False, repr=False)
    lambdas_norm_t: Tensor = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.lambdas_nm.ndim != 1 or self.lambdas_nm.size < 4:
            raise ValueError("lambdas_nm must be 1-D with at least 4 samples")
        if self.basis.shape != (3, self.lambdas_nm.size):
            raise ValueError(f"basis must be (3, {self.lambdas_nm.size}), got {self.basis.shape}")
        if self.weights.shape != self.lambdas_nm.shape:
            raise ValueError("weights must match lambdas_nm")
        for arr in (self.lambdas_nm, self.weights, self.basis, self.xyz_whitepoint,
                    self.rgb_to_xyz, self.xyz_to_rgb):
            arr.setflags(write=False)
        lam_norm = (self.lambdas_nm - self.lambda_min) / (self.lambda_max - self.lambda_min)
        object.__setattr__(self, "basis_t", torch.tensor(self.basis.copy(), dtype=torch.float64))
        object.__setattr__(self, "lambdas_norm_t", torch.tensor(lam_norm, dtype=torch.float64))

    @property
    def num_samples(self) -> int:
        return int(self.lambdas_nm.size)

    @property
    def lambda_min(self) -> float:
        return float(self.lambdas_nm[0])

    @property
    def lambda_max(self) -> float:
        return float(self.lambdas_nm[-1])

    @property
    def white_rgb(self) -> NDArrayF:
        """Target colour of a perfect reflector in this gamut."""
        return self.xyz_to_rgb @ self.xyz_whitepoint

    @property
    def white_xy(self) -> NDArrayF:
        return self.xyz_whitepoint[:2] / self.xyz_whitepoint.sum()

    def integrate(self, spectrum: NDArrayF) -> NDArrayF:
        """Integrate spectra (..., N) sampled on the fine grid → (..., 3)."""
        spectrum = np.asarray(spectrum, dtype=np.float64)
        if spectrum.shape[-1] != self.num_samples:
            raise ValueError(f"spectrum must have {self.num_samples} samples, got {spectrum.shape[-1]}")
        return spectrum @ self.basis.T


def build_context(
    gamut: Gamut,
    *,
    lambda_min: float = CIE_LAMBDA_MIN,
    lambda_max: float = CIE_LAMBDA_MAX,
    num_samples: int = CIE_FINE_SAMPLES,
) -> SpectralContext:
    """Build the quadrature tables for ``gamut``. Rebuild whenever the gamut changes."""
    spec = gamut_spec(gamut)
    lam, step = fine_wavelengths(lambda_min, lambda_max, num_samples)
    weights = simpson38_weights(num_samples, step)
    xyz_bar = cmfs_at(lam)                       # [N, 3]
    illum = illuminant_at(spec.illuminant, lam)  # [N]

    # scale so that Y of the perfect reflector is exactly one
    illum = illum / float(np.sum(xyz_bar[:, 1] * illum * weights))

    weighted = xyz_bar * (illum * weights)[:, None]  # [N, 3]
    basis = spec.xyz_to_rgb @ weighted.T             # [3, N]
    whitepoint = weighted.sum(axis=0)

    return SpectralContext(
        gamut=gamut,
        lambdas_nm=lam,
        weights=weights,
        basis=np.ascontiguousarray(basis),
        xyz_whitepoint=whitepoint,
        rgb_to_xyz=spec.rgb_to_xyz.copy(),
        xyz_to_rgb=spec.xyz_to_rgb.copy(),
        sha256=sha256_ndarray(np.ascontiguousarray(basis)),
    )
