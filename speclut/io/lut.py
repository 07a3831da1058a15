# speclut/io/lut.py
"""
Reader/writer for ``.lut`` tables.

A ``.lut`` file is a 16-byte little-endian header followed by the row-major
payload, ``height × width × channels`` values of the declared datatype::

    u32 magic     (1234)
    u16 version   (2)
    u8  channels
    u8  datatype  (0 = float16, 1 = float32)
    u32 width
    u32 height
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

import numpy as np

from speclut.colorimetry.tables import NDArrayF
from speclut.lut.brightness import BrightnessMap

LUT_MAGIC = 1234
LUT_VERSION = 2

HEADER_DTYPE = np.dtype(
    [
        ("magic", "<u4"),
        ("version", "<u2"),
        ("channels", "u1"),
        ("datatype", "u1"),
        ("width", "<u4"),
        ("height", "<u4"),
    ]
)
assert HEADER_DTYPE.itemsize == 16

__all__ = [
    "LUT_MAGIC",
    "LUT_VERSION",
    "HEADER_DTYPE",
    "LutDatatype",
    "LutHeader",
    "read_lut",
    "write_lut",
    "read_brightness_map",
    "write_spectra_lut",
    "write_abney_lut",
]


class LutDatatype(IntEnum):
    FLOAT16 = 0
    FLOAT32 = 1

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype("<f2") if self is LutDatatype.FLOAT16 else np.dtype("<f4")


@dataclass(frozen=True)
class LutHeader:
    channels: int
    datatype: LutDatatype
    width: int
    height: int
    magic: int = LUT_MAGIC
    version: int = LUT_VERSION

    @property
    def payload_size(self) -> int:
        return self.width * self.height * self.channels

    def to_bytes(self) -> bytes:
        header = np.zeros((), dtype=HEADER_DTYPE)
        header["magic"] = self.magic
        header["version"] = self.version
        header["channels"] = self.channels
        header["datatype"] = int(self.datatype)
        header["width"] = self.width
        header["height"] = self.height
        return header.tobytes()

    @classmethod
    def from_bytes(cls, raw: bytes) -> "LutHeader":
        if len(raw) < HEADER_DTYPE.itemsize:
            raise ValueError(f"truncated lut header: {len(raw)} bytes")
        header = np.frombuffer(raw[: HEADER_DTYPE.itemsize], dtype=HEADER_DTYPE)[0]
        try:
            datatype = LutDatatype(int(header["datatype"]))
        except ValueError:
            raise ValueError(f"unknown lut datatype {int(header['datatype'])}") from None
        return cls(
            channels=int(header["channels"]),
            datatype=datatype,
            width=int(header["width"]),
            height=int(header["height"]),
            magic=int(header["magic"]),
            version=int(header["version"]),
        )


def read_lut(path: str | Path) -> tuple[LutHeader, NDArrayF]:
    """Load a whole table. Returns the header and a (height, width, channels) array."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"lut file not found: {path}")
    raw = path.read_bytes()
    header = LutHeader.from_bytes(raw)
    if header.magic != LUT_MAGIC:
        raise ValueError(f"{path}: bad magic {header.magic}, expected {LUT_MAGIC}")
    if header.version != LUT_VERSION:
        raise ValueError(f"{path}: unsupported lut version {header.version}")
    dtype = header.datatype.numpy_dtype
    expected = header.payload_size * dtype.itemsize
    payload = raw[HEADER_DTYPE.itemsize:]
    if len(payload) < expected:
        raise ValueError(f"{path}: payload has {len(payload)} bytes, header declares {expected}")
    data = np.frombuffer(payload[:expected], dtype=dtype)
    return header, data.reshape(header.height, header.width, header.channels)


def write_lut(path: str | Path, data: NDArrayF, datatype: LutDatatype = LutDatatype.FLOAT32) -> LutHeader:
    """Write ``data`` (height, width, channels) with the given storage precision."""
    data = np.asarray(data)
    if data.ndim == 2:
        data = data[..., None]
    if data.ndim != 3:
        raise ValueError(f"lut data must be (height, width, channels), got {data.shape}")
    height, width, channels = data.shape
    if not 1 <= channels <= 255:
        raise ValueError(f"unsupported channel count {channels}")
    header = LutHeader(channels=channels, datatype=datatype, width=width, height=height)
    payload = np.ascontiguousarray(data, dtype=datatype.numpy_dtype)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as fh:
        fh.write(header.to_bytes())
        fh.write(payload.tobytes())
    return header


def read_brightness_map(path: str | Path) -> BrightnessMap:
    """Load the single-channel maximum-brightness table (``macadam.lut``)."""
    header, data = read_lut(path)
    if header.channels != 1:
        raise ValueError(f"{path}: brightness map must have 1 channel, got {header.channels}")
    return BrightnessMap(data[..., 0].astype(np.float32))


def write_spectra_lut(path: str | Path, table: NDArrayF) -> LutHeader:
    """(R, R, 4) coefficient table, stored as float32."""
    table = np.asarray(table)
    if table.ndim != 3 or table.shape[-1] != 4:
        raise ValueError(f"spectra table must be (R, R, 4), got {table.shape}")
    return write_lut(path, table, LutDatatype.FLOAT32)


def write_abney_lut(path: str | Path, table: NDArrayF) -> LutHeader:
    """(L, S + 1, 2) chromaticity/boundary table, stored as float16."""
    table = np.asarray(table)
    if table.ndim != 3 or table.shape[-1] != 2:
        raise ValueError(f"abney table must be (L, S + 1, 2), got {table.shape}")
    return write_lut(path, table, LutDatatype.FLOAT16)
