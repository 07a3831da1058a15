# speclut/lut/driver.py
"""
Per-pixel driver: fit every chromaticity of an R×R grid.

Cell ``(i, j)`` stands for the colour ``(x, y, 1 − x − y)`` with ``x = i/R`` and
``y = j/R`` in the target gamut; row ``j`` of every output array is ``y = j/R``
(no vertical flip). Cells whose XYZ projection falls outside the spectral locus
are skipped and keep zeros. The others are scaled by
``max(floor, scale · brightness)`` so that fits sit near the brightest
achievable colour of their chromaticity, then solved.

Rows are independent and fitted on a thread pool. The only shared state is the
lambda/saturation buffer, which rows never touch: each row returns its bin
candidates and the caller reduces them after all rows are done, followed by
hole filling and the gamut-boundary scan.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import List

import numpy as np
import torch

from speclut.colorimetry.gamut import display_matrices
from speclut.colorimetry.integrator import SpectralContext
from speclut.colorimetry.locus import SpectralLocus, spectral_locus, xyz_to_xy
from speclut.colorimetry.tables import NDArrayF
from speclut.fit.encoding import denormalise_coeffs, encode, quantisation_error
from speclut.fit.solver import SINGULAR_RESIDUAL, FitStatus, SolverConfig, gauss_newton
from speclut.lut.binning import (
    BinCandidate,
    LambdaSaturationBuffer,
    bin_coordinates,
    make_candidates,
)
from speclut.lut.boundary import scan_gamut_boundaries
from speclut.lut.brightness import BrightnessMap
from speclut.lut.inpaint import fill_holes

logger = logging.getLogger(__name__)

__all__ = ["DriverConfig", "RowFit", "LutResult", "grid_colours", "fit_row", "run"]


@dataclass
class DriverConfig:
    """Configuration for :func:`run`."""

    resolution: int
    brightness_scale: float = 0.5
    brightness_floor: float = 1e-3
    sampling: str = "nearest"       # "nearest" | "bilinear"
    workers: int = 1
    check_quantisation: bool = False
    progress: bool = True
    solver: SolverConfig = field(default_factory=SolverConfig)

    def __post_init__(self) -> None:
        if self.resolution < 8:
            raise ValueError(f"resolution must be at least 8, got {self.resolution}")
        if self.sampling not in ("nearest", "bilinear"):
            raise ValueError(f"unknown brightness sampling '{self.sampling}'")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")

    @property
    def bucket_size(self) -> int:
        size = self.resolution // 4
        return size + (size % 2)


@dataclass
class RowFit:
    """Fit results of one grid row; arrays are indexed by column."""

    row: int
    coeffs: NDArrayF          # (R, 3)
    residual: NDArrayF        # (R,)
    status: np.ndarray        # (R,) FitStatus codes
    aux: NDArrayF             # (R, 2) lambda / saturation bucket centres
    encoded: NDArrayF         # (R, 3)
    candidates: List[BinCandidate]


@dataclass
class LutResult:
    """Everything the serialisers need."""

    resolution: int
    coeffs: NDArrayF          # (R, R, 3) [row=y, col=x]
    residual: NDArrayF        # (R, R)
    status: np.ndarray        # (R, R)
    aux: NDArrayF             # (R, R, 2)
    encoded: NDArrayF         # (R, R, 3)
    buffer: LambdaSaturationBuffer
    boundaries: NDArrayF      # (L, 2) rec709, rec2020

    def spectra_table(self, lambda_min: float, lambda_max: float) -> NDArrayF:
        """
        (R, R, 4) float32: polynomial in nanometres + saturation bucket centre.

        Skipped cells are all zeros. Singular cells carry a zero polynomial and
        ``SINGULAR_RESIDUAL`` in the last channel.
        """
        poly = denormalise_coeffs(self.coeffs, lambda_min, lambda_max)
        singular = self.status == FitStatus.SINGULAR
        poly = np.where(((self.status == FitStatus.SKIPPED) | singular)[..., None], 0.0, poly)
        aux = np.where(singular, SINGULAR_RESIDUAL, self.aux[..., 1])
        return np.concatenate([poly, aux[..., None]], axis=-1).astype(np.float32)

    def abney_table(self) -> NDArrayF:
        """(L, S + 1, 2): per lambda row the xy of every bucket, then the boundary pair."""
        return np.concatenate([self.buffer.xy, self.boundaries[:, None, :]], axis=1)

    def count(self, status: FitStatus) -> int:
        return int((self.status == status).sum())


def grid_colours(resolution: int, row: int) -> NDArrayF:
    """Colours (R, 3) of grid row ``row``."""
    x = np.arange(resolution, dtype=np.float64) / resolution
    y = np.full(resolution, row / resolution, dtype=np.float64)
    return np.stack([x, y, 1.0 - x - y], axis=-1)


def _brightness(brightness: BrightnessMap, config: DriverConfig, row: int, columns: np.ndarray) -> NDArrayF:
    if config.sampling == "bilinear":
        r = config.resolution
        return brightness.bilinear(columns / r, np.full(columns.shape, row / r))
    return brightness.nearest(columns, row, config.resolution)


def fit_row(
    context: SpectralContext,
    brightness: BrightnessMap,
    config: DriverConfig,
    row: int,
    locus: SpectralLocus | None = None,
) -> RowFit:
    locus = locus or spectral_locus()
    r = config.resolution
    rgb = grid_colours(r, row)

    coeffs = np.zeros((r, 3), dtype=np.float64)
    residual = np.zeros(r, dtype=np.float64)
    status = np.full(r, int(FitStatus.SKIPPED), dtype=np.int64)
    aux = np.zeros((r, 2), dtype=np.float64)
    encoded = np.zeros((r, 3), dtype=np.float64)
    candidates: List[BinCandidate] = []

    xyz = rgb @ context.rgb_to_xyz.T
    xy = xyz_to_xy(xyz)
    keep = (xyz.sum(axis=-1) > 0.0) & locus.contains(xy)
    columns = np.nonzero(keep)[0]

    if columns.size:
        scale = np.maximum(config.brightness_floor, config.brightness_scale * _brightness(brightness, config, row, columns))
        target = rgb[columns] * scale[:, None]
        fit = gauss_newton(context, torch.from_numpy(target), config=config.solver)

        fit_coeffs = fit.coeffs.numpy()
        fit_status = fit.status.numpy()
        coeffs[columns] = fit_coeffs
        residual[columns] = fit.residual.numpy()
        status[columns] = fit_status
        enc = encode(fit_coeffs, context.lambda_min, context.lambda_max)
        encoded[columns] = enc

        sat = locus.saturation(xy[columns], context.white_xy)
        bins = bin_coordinates(enc, sat, config.bucket_size)
        aux[columns, 0] = bins.lam_center
        aux[columns, 1] = bins.sat_center

        usable = fit_status != FitStatus.SINGULAR
        if usable.any():
            sub = bin_coordinates(enc[usable], sat[usable], config.bucket_size)
            candidates = make_candidates(sub, xy[columns][usable])

        if config.check_quantisation:
            err = quantisation_error(context, enc, target)
            res = fit.residual.numpy()
            for k in np.nonzero((err > res) & (err > 0.1))[0]:
                logger.warning(
                    "quantised encoding loses accuracy at row %d col %d: residual %.4g -> %.4g, encoded %s",
                    row, int(columns[k]), res[k], err[k], enc[k].tolist(),
                )

    if config.progress:
        print(".", end="", flush=True)
    return RowFit(row=row, coeffs=coeffs, residual=residual, status=status, aux=aux,
                  encoded=encoded, candidates=candidates)


def run(context: SpectralContext, brightness: BrightnessMap, config: DriverConfig) -> LutResult:
    """Fit the whole grid, then build the lambda/saturation table."""
    locus = spectral_locus()
    task = partial(fit_row, context, brightness, config, locus=locus)
    rows = range(config.resolution)
    if config.workers == 1:
        fits = [task(row) for row in rows]
    else:
        with ThreadPoolExecutor(max_workers=config.workers) as pool:
            fits = list(pool.map(task, rows))
    if config.progress:
        print()

    buffer = LambdaSaturationBuffer(config.bucket_size)
    accepted = buffer.reduce(c for f in fits for c in f.candidates)
    if accepted == 0:
        logger.warning("no usable fit to bin; lambda/saturation table set to the white point")
        buffer.xy[...] = context.white_xy
        buffer.occupied[...] = True
    filled = fill_holes(buffer)
    logger.info("binned %d samples, filled %d empty buckets", accepted, filled)
    boundaries = scan_gamut_boundaries(buffer.xyz, display_matrices())

    return LutResult(
        resolution=config.resolution,
        coeffs=np.stack([f.coeffs for f in fits]),
        residual=np.stack([f.residual for f in fits]),
        status=np.stack([f.status for f in fits]),
        aux=np.stack([f.aux for f in fits]),
        encoded=np.stack([f.encoded for f in fits]),
        buffer=buffer,
        boundaries=boundaries,
    )
