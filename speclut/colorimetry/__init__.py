"""Colorimetric tables, gamuts and the quadrature integrator."""

from speclut.colorimetry.gamut import Gamut, display_matrices, gamut_spec, parse_gamut
from speclut.colorimetry.integrator import SpectralContext, build_context, simpson38_weights
from speclut.colorimetry.locus import SpectralLocus, spectral_locus, xyz_to_xy

__all__ = [
    "Gamut",
    "parse_gamut",
    "gamut_spec",
    "display_matrices",
    "SpectralContext",
    "build_context",
    "simpson38_weights",
    "SpectralLocus",
    "spectral_locus",
    "xyz_to_xy",
]
