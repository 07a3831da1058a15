"""Sigmoid-polynomial model, Gauss-Newton solver and coefficient encodings."""

from speclut.fit.encoding import decode, denormalise_coeffs, encode, normalise_coeffs, quantisation_error
from speclut.fit.model import eval_jacobian, eval_residual, integrate_coeffs, sigmoid
from speclut.fit.solver import CellFit, FitResult, FitStatus, SolverConfig, gauss_newton, solve_cell

__all__ = [
    "sigmoid",
    "eval_residual",
    "eval_jacobian",
    "integrate_coeffs",
    "FitStatus",
    "FitResult",
    "CellFit",
    "SolverConfig",
    "gauss_newton",
    "solve_cell",
    "encode",
    "decode",
    "denormalise_coeffs",
    "normalise_coeffs",
    "quantisation_error",
]
