"""Tests for the .lut and .pfm formats."""
from __future__ import annotations

import struct
from pathlib import Path

import numpy as np
import pytest

from speclut.io.lut import (
    HEADER_DTYPE,
    LUT_MAGIC,
    LutDatatype,
    LutHeader,
    read_brightness_map,
    read_lut,
    write_abney_lut,
    write_lut,
    write_spectra_lut,
)
from speclut.io.pfm import abney_debug_image, read_pfm, write_pfm


def test_header_layout() -> None:
    raw = LutHeader(channels=4, datatype=LutDatatype.FLOAT32, width=640, height=480).to_bytes()
    assert len(raw) == HEADER_DTYPE.itemsize == 16
    assert struct.unpack("<IHBBII", raw) == (LUT_MAGIC, 2, 4, 1, 640, 480)


def test_round_trip_float32(tmp_path: Path) -> None:
    data = np.arange(2 * 3 * 4, dtype=np.float32).reshape(2, 3, 4) / 7.0
    written = write_lut(tmp_path / "t.lut", data)
    header, back = read_lut(tmp_path / "t.lut")
    assert header == written
    assert (header.width, header.height, header.channels) == (3, 2, 4)
    np.testing.assert_array_equal(back, data)
    assert (tmp_path / "t.lut").stat().st_size == 16 + data.nbytes


def test_float16_storage(tmp_path: Path) -> None:
    data = np.linspace(0.0, 1.0, 12).reshape(2, 3, 2)
    write_abney_lut(tmp_path / "a.lut", data)
    header, back = read_lut(tmp_path / "a.lut")
    assert header.datatype is LutDatatype.FLOAT16
    assert back.dtype == np.float16
    np.testing.assert_allclose(back, data, atol=1e-3)


def test_spectra_table_must_have_four_channels(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        write_spectra_lut(tmp_path / "s.lut", np.zeros((2, 2, 3)))


def _patch(path: Path, offset: int, fmt: str, value: int) -> None:
    raw = bytearray(path.read_bytes())
    struct.pack_into(fmt, raw, offset, value)
    path.write_bytes(bytes(raw))


@pytest.mark.parametrize(
    "offset, fmt, value",
    [(0, "<I", 4321), (4, "<H", 1), (7, "B", 9)],
    ids=["magic", "version", "datatype"],
)
def test_malformed_headers_are_rejected(tmp_path: Path, offset: int, fmt: str, value: int) -> None:
    path = tmp_path / "bad.lut"
    write_lut(path, np.ones((2, 2, 1)), LutDatatype.FLOAT16)
    _patch(path, offset, fmt, value)
    with pytest.raises(ValueError):
        read_lut(path)


def test_truncated_payload_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "short.lut"
    write_lut(path, np.ones((4, 4, 1)), LutDatatype.FLOAT16)
    path.write_bytes(path.read_bytes()[:-2])
    with pytest.raises(ValueError):
        read_lut(path)
    path.write_bytes(b"\x00" * 8)
    with pytest.raises(ValueError):
        read_lut(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_lut(tmp_path / "nope.lut")


def test_brightness_map_loading(tmp_path: Path) -> None:
    values = np.linspace(0.0, 1.0, 20, dtype=np.float32).reshape(4, 5)
    write_lut(tmp_path / "macadam.lut", values, LutDatatype.FLOAT16)
    brightness = read_brightness_map(tmp_path / "macadam.lut")
    assert (brightness.height, brightness.width) == (4, 5)
    np.testing.assert_allclose(brightness.values, values, atol=1e-3)

    write_lut(tmp_path / "rgb.lut", np.ones((4, 5, 3)), LutDatatype.FLOAT16)
    with pytest.raises(ValueError):
        read_brightness_map(tmp_path / "rgb.lut")


def test_pfm_round_trip(tmp_path: Path) -> None:
    image = np.random.default_rng(0).uniform(size=(2, 3, 3)).astype(np.float32)
    write_pfm(tmp_path / "img.pfm", image)
    raw = (tmp_path / "img.pfm").read_bytes()
    assert raw.startswith(b"PF\n3 2\n-1.0\n")
    np.testing.assert_array_equal(read_pfm(tmp_path / "img.pfm"), image)


def test_abney_debug_image() -> None:
    table = np.zeros((2, 3, 2))
    table[:, :2] = (0.3, 0.3)
    table[:, 2] = (0.5, 0.75)
    image = abney_debug_image(table)
    assert image.shape == (2, 3, 3)
    np.testing.assert_allclose(image[0, 0], [0.3, 0.3, 0.4], atol=1e-6)
    np.testing.assert_allclose(image[1, 2], [0.5, 0.75, 0.0])
