"""Tests for the createlut command."""
from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from speclut.io.lut import LutDatatype, read_lut, write_lut
from speclut.io.pfm import read_pfm
from speclut.scripts.createlut import _load_config, main


@pytest.fixture
def macadam(tmp_path: Path) -> Path:
    path = tmp_path / "macadam.lut"
    write_lut(path, np.ones((8, 8), dtype=np.float32), LutDatatype.FLOAT16)
    return path


def _overrides(macadam: Path, out: Path) -> list[str]:
    return [f"macadam='{macadam}'", f"output_dir='{out}'", "progress=false"]


def test_writes_all_tables(tmp_path: Path, macadam: Path, capsys) -> None:
    out = tmp_path / "out"
    image = out / "abney.pfm"
    assert main(["8", str(image), "xyz", *_overrides(macadam, out)]) == 0

    header, spectra = read_lut(out / "spectra.lut")
    assert (header.width, header.height, header.channels) == (8, 8, 4)
    assert header.datatype is LutDatatype.FLOAT32
    assert np.isfinite(spectra).all()

    header, abney = read_lut(out / "abney.lut")
    assert (header.width, header.height, header.channels) == (3, 2, 2)
    assert header.datatype is LutDatatype.FLOAT16

    assert read_pfm(image).shape == (2, 3, 3)
    stdout = capsys.readouterr().out
    assert "optimising" in stdout
    assert "sha256=" in stdout


def test_override_in_gamut_position(tmp_path: Path, macadam: Path, capsys) -> None:
    out = tmp_path / "out"
    argv = ["8", str(out / "a.pfm"), "spectra_name=coeffs.lut", *_overrides(macadam, out)]
    assert main(argv) == 0
    assert (out / "coeffs.lut").is_file()
    assert "for XYZ" in capsys.readouterr().out


def test_unknown_gamut_falls_back_to_srgb(tmp_path: Path, macadam: Path, capsys) -> None:
    out = tmp_path / "out"
    assert main(["8", str(out / "a.pfm"), "wide-gamut-x", *_overrides(macadam, out)]) == 0
    assert "for sRGB" in capsys.readouterr().out


def test_missing_brightness_map_is_fatal(tmp_path: Path, capsys) -> None:
    out = tmp_path / "out"
    code = main(["8", str(out / "a.pfm"), *_overrides(tmp_path / "missing.lut", out)])
    assert code == 2
    assert "createlut:" in capsys.readouterr().err
    assert not out.exists()


def test_resolution_too_small(tmp_path: Path, macadam: Path) -> None:
    assert main(["4", str(tmp_path / "a.pfm"), *_overrides(macadam, tmp_path)]) == 2


def test_missing_arguments_exit_nonzero() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2


@pytest.mark.parametrize("override", ["no_such_key=1", "log_level=LOUD", "workers=many"])
def test_bad_config_is_reported(tmp_path: Path, macadam: Path, override: str, capsys) -> None:
    out = tmp_path / "out"
    assert main(["8", str(out / "a.pfm"), override, *_overrides(macadam, out)]) == 2
    assert "createlut:" in capsys.readouterr().err
    assert not out.exists()


def test_unwritable_image_leaves_no_tables(tmp_path: Path, macadam: Path, capsys) -> None:
    out = tmp_path / "out"
    image = tmp_path / "image.pfm"
    image.mkdir()
    assert main(["8", str(image), *_overrides(macadam, out)]) == 2
    assert "createlut:" in capsys.readouterr().err
    assert not (out / "spectra.lut").exists()
    assert not (out / "abney.lut").exists()


def test_brightness_map_defaults_to_working_directory() -> None:
    assert _load_config([]).macadam == "macadam.lut"
    assert _load_config(["macadam=maps/other.lut"]).macadam == "maps/other.lut"
