"""Grid driver and the lambda/saturation side table."""

from speclut.lut.binning import LambdaSaturationBuffer, bin_coordinates
from speclut.lut.boundary import scan_gamut_boundaries
from speclut.lut.brightness import BrightnessMap
from speclut.lut.driver import DriverConfig, LutResult, fit_row, run
from speclut.lut.inpaint import fill_holes, push_pull

__all__ = [
    "BrightnessMap",
    "DriverConfig",
    "LutResult",
    "fit_row",
    "run",
    "LambdaSaturationBuffer",
    "bin_coordinates",
    "fill_holes",
    "push_pull",
    "scan_gamut_boundaries",
]
