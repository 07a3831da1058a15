"""Binary table and debug image formats."""

from speclut.io.lut import LutDatatype, LutHeader, read_brightness_map, read_lut, write_lut
from speclut.io.pfm import read_pfm, write_pfm

__all__ = [
    "LutDatatype",
    "LutHeader",
    "read_lut",
    "write_lut",
    "read_brightness_map",
    "read_pfm",
    "write_pfm",
]
