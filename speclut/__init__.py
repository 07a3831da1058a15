"""Spectral upsampling lookup tables: chromaticity to sigmoid-polynomial reflectance."""
from importlib import metadata

from speclut.colorimetry import Gamut, SpectralContext, build_context, parse_gamut
from speclut.fit import FitStatus, SolverConfig, decode, encode, gauss_newton, solve_cell
from speclut.lut import BrightnessMap, DriverConfig, LutResult, run

__all__ = [
    "__version__",
    "Gamut",
    "parse_gamut",
    "SpectralContext",
    "build_context",
    "FitStatus",
    "SolverConfig",
    "gauss_newton",
    "solve_cell",
    "encode",
    "decode",
    "BrightnessMap",
    "DriverConfig",
    "LutResult",
    "run",
]


def _get_version() -> str:
    try:
        return metadata.version("speclut")
    except metadata.PackageNotFoundError:  # pragma: no cover - fallback for dev installs
        return "0.0.0"


__version__ = _get_version()
