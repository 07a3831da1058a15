"""Target gamuts: primaries, white illuminant and RGB↔XYZ matrices."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict

import colour
import numpy as np

from speclut.colorimetry.tables import NDArrayF


class Gamut(Enum):
    """Colour spaces a lookup table can be fitted for."""

    SRGB = "sRGB"
    ERGB = "eRGB"
    XYZ = "XYZ"
    PROPHOTO_RGB = "ProPhotoRGB"
    ACES2065_1 = "ACES2065_1"
    ACES_AP1 = "ACES_AP1"
    REC2020 = "REC2020"


DEFAULT_GAMUT = Gamut.XYZ
FALLBACK_GAMUT = Gamut.SRGB

# colour-science names of the RGB colourspaces backing each gamut.
_COLOURSPACES: Dict[Gamut, str] = {
    Gamut.SRGB: "sRGB",
    Gamut.PROPHOTO_RGB: "ProPhoto RGB",
    Gamut.ACES2065_1: "ACES2065-1",
    Gamut.ACES_AP1: "ACEScg",
    Gamut.REC2020: "ITU-R BT.2020",
}

_ILLUMINANTS: Dict[Gamut, str] = {
    Gamut.SRGB: "D65",
    Gamut.ERGB: "E",
    Gamut.XYZ: "E",
    Gamut.PROPHOTO_RGB: "D50",
    Gamut.ACES2065_1: "D60",
    Gamut.ACES_AP1: "D60",
    Gamut.REC2020: "D65",
}


@dataclass(frozen=True, eq=False)
class GamutSpec:
    """Matrices and illuminant of one gamut."""

    gamut: Gamut
    illuminant: str
    rgb_to_xyz: NDArrayF   # [3, 3]
    xyz_to_rgb: NDArrayF   # [3, 3]

    def __post_init__(self) -> None:
        if self.rgb_to_xyz.shape != (3, 3) or self.xyz_to_rgb.shape != (3, 3):
            raise ValueError("gamut matrices must be 3x3")


def parse_gamut(name: str | None) -> Gamut:
    """
    Case-insensitive lookup of a gamut by name.

    ``None`` selects :data:`DEFAULT_GAMUT`; names that match nothing fall back
    to :data:`FALLBACK_GAMUT` without complaint.
    """
    if name is None:
        return DEFAULT_GAMUT
    key = name.strip().lower()
    for gamut in Gamut:
        if gamut.value.lower() == key or gamut.name.lower() == key:
            return gamut
    return FALLBACK_GAMUT


def gamut_spec(gamut: Gamut) -> GamutSpec:
    illuminant = _ILLUMINANTS[gamut]
    if gamut is Gamut.XYZ:
        eye = np.eye(3, dtype=np.float64)
        return GamutSpec(gamut, illuminant, eye, eye.copy())
    if gamut is Gamut.ERGB:
        # Rec.709 primaries balanced to the equal-energy white.
        primaries = colour.RGB_COLOURSPACES["sRGB"].primaries
        rgb_to_xyz = colour.normalised_primary_matrix(primaries, np.array([1.0 / 3.0, 1.0 / 3.0]))
        rgb_to_xyz = np.asarray(rgb_to_xyz, dtype=np.float64)
        return GamutSpec(gamut, illuminant, rgb_to_xyz, np.linalg.inv(rgb_to_xyz))
    space = colour.RGB_COLOURSPACES[_COLOURSPACES[gamut]]
    # exact inverse of the published forward matrix
    rgb_to_xyz = np.asarray(space.matrix_RGB_to_XYZ, dtype=np.float64)
    return GamutSpec(gamut, illuminant, rgb_to_xyz, np.linalg.inv(rgb_to_xyz))


def display_matrices() -> Dict[str, NDArrayF]:
    """XYZ→RGB matrices of the reference display gamuts used for boundary scans."""
    return {
        "rec709": gamut_spec(Gamut.SRGB).xyz_to_rgb,
        "rec2020": gamut_spec(Gamut.REC2020).xyz_to_rgb,
    }


__all__ = [
    "Gamut",
    "GamutSpec",
    "DEFAULT_GAMUT",
    "FALLBACK_GAMUT",
    "parse_gamut",
    "gamut_spec",
    "display_matrices",
]
