"""Build the spectral upsampling tables for one gamut."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from hydra import compose, initialize_config_module
from hydra.errors import HydraException
from omegaconf import DictConfig
from omegaconf.errors import OmegaConfBaseException

from speclut.colorimetry.gamut import parse_gamut
from speclut.colorimetry.integrator import build_context
from speclut.fit.solver import FitStatus, SolverConfig
from speclut.io.lut import read_brightness_map, write_abney_lut, write_spectra_lut
from speclut.io.pfm import abney_debug_image, write_pfm
from speclut.lut.driver import DriverConfig, run
from speclut.utils.hashing import sha256_path

logger = logging.getLogger("speclut.createlut")


def _load_config(overrides: List[str]) -> DictConfig:
    with initialize_config_module(version_base=None, config_module="speclut.configs"):
        cfg = compose(config_name="createlut", overrides=overrides)
    return cfg


def _solver_config(cfg: DictConfig) -> SolverConfig:
    return SolverConfig(
        max_iterations=int(cfg.solver.max_iterations),
        tolerance=float(cfg.solver.tolerance),
        clamp=float(cfg.solver.clamp),
        jacobian_eps=float(cfg.solver.jacobian_eps),
        pivot_tol=float(cfg.solver.pivot_tol),
    )


def _driver_config(resolution: int, cfg: DictConfig) -> DriverConfig:
    return DriverConfig(
        resolution=resolution,
        brightness_scale=float(cfg.brightness.scale),
        brightness_floor=float(cfg.brightness.floor),
        sampling=str(cfg.brightness.sampling),
        workers=int(cfg.workers),
        check_quantisation=bool(cfg.check_quantisation),
        progress=bool(cfg.get("progress", True)),
        solver=_solver_config(cfg),
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="createlut",
        description="Fit sigmoid-polynomial spectra over a chromaticity grid and write the lookup tables",
        epilog="Trailing key=value arguments override the Hydra config (speclut/configs/createlut.yaml).",
    )
    parser.add_argument("resolution", type=int, help="Grid resolution R of the R×R spectra table")
    parser.add_argument("output", help="Path of the debug PFM image")
    parser.add_argument("gamut", nargs="?", help="sRGB, eRGB, XYZ, ProPhotoRGB, ACES2065_1, ACES_AP1 or REC2020")
    return parser


def _check_output(path: Path) -> Path:
    if path.is_dir():
        raise IsADirectoryError(f"output path is a directory: {path}")
    for parent in path.parents:
        if parent.exists():
            if not parent.is_dir():
                raise NotADirectoryError(f"cannot create output under {parent}")
            break
    return path


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args, overrides = parser.parse_known_args(argv)
    if args.gamut and "=" in args.gamut:
        overrides.insert(0, args.gamut)
        args.gamut = None

    try:
        cfg = _load_config(overrides)
        logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
        logging.getLogger("speclut").setLevel(str(cfg.get("log_level", "WARNING")).upper())
        config = _driver_config(args.resolution, cfg)
        brightness = read_brightness_map(cfg.macadam)
        output_dir = Path(cfg.output_dir)
        spectra_path = _check_output(output_dir / str(cfg.spectra_name))
        abney_path = _check_output(output_dir / str(cfg.abney_name))
        image_path = _check_output(Path(args.output))
        gamut = parse_gamut(args.gamut if args.gamut is not None else cfg.get("gamut"))
    except (OSError, ValueError, HydraException, OmegaConfBaseException) as exc:
        print(f"createlut: {exc}", file=sys.stderr)
        return 2

    context = build_context(gamut)
    logger.info("basis table for %s: %s", gamut.value, context.sha256)
    print(f"optimising {args.resolution}x{args.resolution} grid for {gamut.value}")
    result = run(context, brightness, config)

    abney = result.abney_table()
    try:
        write_pfm(image_path, abney_debug_image(abney))
        write_spectra_lut(spectra_path, result.spectra_table(context.lambda_min, context.lambda_max))
        write_abney_lut(abney_path, abney)
    except OSError as exc:
        print(f"createlut: {exc}", file=sys.stderr)
        return 2

    print(
        f"fitted {result.count(FitStatus.CONVERGED)} cells, "
        f"{result.count(FitStatus.NOT_CONVERGED)} not converged, "
        f"{result.count(FitStatus.SINGULAR)} singular, "
        f"{result.count(FitStatus.SKIPPED)} outside the locus"
    )
    for path in (spectra_path, abney_path):
        print(f"wrote {path} sha256={sha256_path(path)}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
