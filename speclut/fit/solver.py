# speclut/fit/solver.py
"""
Gauss-Newton inversion of the sigmoid-polynomial model.

Given a target colour, find coefficients whose integrated reflectance
reproduces it. The solver is batched: a (B, 3) block of targets is iterated
together and each cell is frozen as soon as it converges or its Jacobian turns
out singular, so one bad cell never stops its neighbours.

Per iteration and active cell:
    1. clamp |coeffs| to ``clamp`` by uniform rescaling
    2. residual r and finite-difference Jacobian J
    3. LU with partial pivoting, solve J·Δ = r
    4. coeffs -= Δ, r² = |r|²; converged once r² < ``tolerance``
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple

import torch
from torch import Tensor

from speclut.colorimetry.integrator import SpectralContext
from speclut.fit.model import JACOBIAN_EPS, eval_jacobian, eval_residual

logger = logging.getLogger(__name__)

# Residual reported for cells whose linear system could not be solved.
SINGULAR_RESIDUAL = 666.0

__all__ = [
    "FitStatus",
    "SolverConfig",
    "CellFit",
    "FitResult",
    "SINGULAR_RESIDUAL",
    "initial_coeffs",
    "clamp_coeffs",
    "lu_solve",
    "gauss_newton",
    "solve_cell",
]


class FitStatus(IntEnum):
    SKIPPED = 0          # never fit (outside the spectral locus)
    CONVERGED = 1
    NOT_CONVERGED = 2    # ran out of iterations
    SINGULAR = 3         # Jacobian failed LU decomposition


@dataclass
class SolverConfig:
    """Configuration for :func:`gauss_newton`."""

    max_iterations: int = 40
    tolerance: float = 1e-6      # on the squared residual norm
    clamp: float = 1000.0
    jacobian_eps: float = JACOBIAN_EPS
    pivot_tol: float = 1e-15


@dataclass(frozen=True)
class CellFit:
    coeffs: Tuple[float, float, float]
    residual: float
    status: FitStatus
    iterations: int

    @property
    def ok(self) -> bool:
        return self.status is FitStatus.CONVERGED


@dataclass
class FitResult:
    """Per-cell outcome of a batched solve."""

    coeffs: Tensor       # (B, 3)
    residual: Tensor     # (B,)  √ of the last squared residual, or SINGULAR_RESIDUAL
    status: Tensor       # (B,)  FitStatus codes
    iterations: Tensor   # (B,)

    def __len__(self) -> int:
        return int(self.coeffs.shape[0])

    @property
    def converged(self) -> Tensor:
        return self.status == FitStatus.CONVERGED

    @property
    def singular(self) -> Tensor:
        return self.status == FitStatus.SINGULAR

    def cell(self, index: int) -> CellFit:
        c = self.coeffs[index].tolist()
        return CellFit(
            coeffs=(c[0], c[1], c[2]),
            residual=float(self.residual[index]),
            status=FitStatus(int(self.status[index])),
            iterations=int(self.iterations[index]),
        )


def initial_coeffs(batch: int, *, dtype: torch.dtype = torch.float64, device: Optional[torch.device] = None) -> Tensor:
    """Flat mid-grey start: curvature 0, linear term 1, constant 0."""
    start = torch.tensor([0.0, 1.0, 0.0], dtype=dtype, device=device)
    return start.expand(batch, 3).clone()


def clamp_coeffs(coeffs: Tensor, limit: float = 1000.0) -> Tensor:
    """Rescale rows whose largest magnitude exceeds ``limit`` back onto it."""
    peak = coeffs.abs().amax(dim=-1, keepdim=True)
    scale = torch.where(peak > limit, limit / peak, torch.ones_like(peak))
    return (coeffs * scale).clamp(-limit, limit)


def lu_solve(matrix: Tensor, rhs: Tensor, pivot_tol: float = 1e-15) -> Tuple[Tensor, Tensor]:
    """
    Solve ``matrix · x = rhs`` for a batch of small systems.

    Parameters
    ----------
    matrix : (B, n, n)
    rhs    : (B, n)

    Returns
    -------
    x        : (B, n), zero for singular systems
    singular : (B,) bool, True where a pivot magnitude fell below ``pivot_tol``
    """
    if matrix.ndim != 3 or matrix.shape[-1] != matrix.shape[-2]:
        raise ValueError(f"matrix must be (B, n, n), got {tuple(matrix.shape)}")
    lu, pivots, info = torch.linalg.lu_factor_ex(matrix)
    diag = lu.diagonal(dim1=-2, dim2=-1).abs()
    singular = (info != 0) | (diag < pivot_tol).any(dim=-1)
    if bool(singular.any()):
        eye = torch.eye(matrix.shape[-1], dtype=matrix.dtype, device=matrix.device).expand_as(matrix)
        lu, pivots, _ = torch.linalg.lu_factor_ex(torch.where(singular[:, None, None], eye, matrix))
    x = torch.linalg.lu_solve(lu, pivots, rhs.unsqueeze(-1)).squeeze(-1)
    x = torch.where(singular.unsqueeze(-1), torch.zeros_like(x), x)
    return x, singular


def gauss_newton(
    context: SpectralContext,
    target: Tensor,
    coeffs: Optional[Tensor] = None,
    config: Optional[SolverConfig] = None,
) -> FitResult:
    """
    Fit model coefficients to each row of ``target``.

    Parameters
    ----------
    target : (B, 3) or (3,)
        Colours in the context's gamut, already brightness-scaled.
    coeffs : (B, 3), optional
        Starting point; defaults to :func:`initial_coeffs`.
    """
    config = config or SolverConfig()
    target = torch.as_tensor(target, dtype=torch.float64)
    if target.ndim == 1:
        target = target.unsqueeze(0)
    if target.ndim != 2 or target.shape[-1] != 3:
        raise ValueError(f"target must be (B, 3) or (3,), got {tuple(target.shape)}")
    batch = target.shape[0]
    if coeffs is None:
        coeffs = initial_coeffs(batch, device=target.device)
    else:
        coeffs = torch.as_tensor(coeffs, dtype=torch.float64).reshape(batch, 3).clone()

    sq_residual = torch.zeros(batch, dtype=torch.float64, device=target.device)
    status = torch.full((batch,), int(FitStatus.NOT_CONVERGED), dtype=torch.long, device=target.device)
    iterations = torch.zeros(batch, dtype=torch.long, device=target.device)
    active = torch.ones(batch, dtype=torch.bool, device=target.device)

    for _ in range(config.max_iterations):
        idx = active.nonzero(as_tuple=True)[0]
        if idx.numel() == 0:
            break
        c = clamp_coeffs(coeffs[idx], config.clamp)
        t = target[idx]
        r = eval_residual(context, c, t)
        jac = eval_jacobian(context, c, t, eps=config.jacobian_eps)
        delta, singular = lu_solve(jac, r, config.pivot_tol)

        solved = ~singular
        r2 = (r * r).sum(dim=-1)
        coeffs[idx] = torch.where(solved.unsqueeze(-1), c - delta, c)
        sq_residual[idx] = torch.where(solved, r2, sq_residual[idx])
        iterations[idx] += 1

        done = solved & (r2 < config.tolerance)
        status[idx[done]] = int(FitStatus.CONVERGED)
        status[idx[singular]] = int(FitStatus.SINGULAR)
        active[idx[done | singular]] = False

        if bool(singular.any()) and logger.isEnabledFor(logging.DEBUG):
            for k in singular.nonzero(as_tuple=True)[0].tolist():
                logger.debug(
                    "singular jacobian: target %s coeffs %s J %s",
                    t[k].tolist(), c[k].tolist(), jac[k].tolist(),
                )

    residual = sq_residual.sqrt()
    residual = torch.where(status == FitStatus.SINGULAR, torch.full_like(residual, SINGULAR_RESIDUAL), residual)
    return FitResult(coeffs=coeffs, residual=residual, status=status, iterations=iterations)


def solve_cell(
    context: SpectralContext,
    target: Tensor,
    config: Optional[SolverConfig] = None,
) -> CellFit:
    """Single-target convenience wrapper around :func:`gauss_newton`."""
    return gauss_newton(context, torch.as_tensor(target, dtype=torch.float64).reshape(1, 3), config=config).cell(0)
