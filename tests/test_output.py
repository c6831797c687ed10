"""Tests for dioecy_evo.output — file names, BMP, gnuplot table, report text."""

import numpy as np
import pytest
from PIL import Image

from dioecy_evo.genotypes import ONE_LOCUS, TWO_LOCUS
from dioecy_evo.output import (
    format_settings,
    format_single_run,
    label_image,
    output_stem,
    write_bitmap,
    write_female_table,
)
from dioecy_evo.sweep import ResultGrid, SingleRunResult, SweepSettings, run_single
from dioecy_evo.types import (
    LABEL_COLORS,
    Aggregates,
    Label,
    Mapping,
    ParameterRecord,
    StartState,
)


def _grid(n=3, record_female=False):
    grid = ResultGrid.allocate(n, record_female=record_female)
    grid.labels[0, 0] = Label.DIO
    grid.labels[n - 1, 0] = Label.PGD
    grid.labels[0, n - 1] = Label.SSD
    grid.labels[n - 1, n - 1] = Label.INC
    return grid


# ── File names ───────────────────────────────────────────────────────

class TestOutputStem:
    def test_defaults(self):
        stem = output_stem(1, ParameterRecord(), StartState.DIOECY)
        assert stem == "model1_startDIO_V1_S0_d0_h0.5_PSatF0_ppY1"

    def test_pgd_start_and_values(self):
        params = ParameterRecord(h=0.25, S=0.1, d=0.75, V=0.0, PSatF=2.0, ppY=0.9)
        stem = output_stem(2, params, "pgd")
        assert stem == "model2_startPGD_V0_S0.1_d0.75_h0.25_PSatF2_ppY0.9"


# ── Bitmap ───────────────────────────────────────────────────────────

class TestLabelImage:
    def test_orientation(self):
        img = label_image(_grid().labels)
        assert img.shape == (3, 3, 3)
        assert img.dtype == np.uint8
        # bottom-left pixel is cell (0, 0)
        assert tuple(img[2, 0]) == LABEL_COLORS[Label.DIO]
        assert tuple(img[2, 2]) == LABEL_COLORS[Label.PGD]
        assert tuple(img[0, 0]) == LABEL_COLORS[Label.SSD]
        assert tuple(img[0, 2]) == LABEL_COLORS[Label.INC]
        assert tuple(img[1, 1]) == LABEL_COLORS[Label.NONE]

    def test_scale(self):
        img = label_image(_grid().labels, scale=4)
        assert img.shape == (12, 12, 3)
        assert tuple(img[11, 0]) == LABEL_COLORS[Label.DIO]
        assert tuple(img[8, 3]) == LABEL_COLORS[Label.DIO]


class TestWriteBitmap:
    def test_header(self, tmp_path):
        path = write_bitmap(_grid(), tmp_path / "map.bmp")
        raw = path.read_bytes()
        assert raw[:2] == b"BM"
        assert int.from_bytes(raw[18:22], "little", signed=True) == 3    # width
        assert int.from_bytes(raw[28:30], "little") == 24                # bits per pixel
        assert int.from_bytes(raw[30:34], "little") == 0                 # no compression

    def test_pixels(self, tmp_path):
        path = write_bitmap(_grid(), tmp_path / "map.bmp")
        with Image.open(path) as img:
            assert img.mode == "RGB"
            assert img.size == (3, 3)
            assert img.getpixel((0, 2)) == LABEL_COLORS[Label.DIO]
            assert img.getpixel((2, 2)) == LABEL_COLORS[Label.PGD]
            assert img.getpixel((0, 0)) == LABEL_COLORS[Label.SSD]
            assert img.getpixel((1, 1)) == (0, 0, 0)

    def test_scaled_size(self, tmp_path):
        path = write_bitmap(_grid(5), tmp_path / "map.bmp", scale=2)
        with Image.open(path) as img:
            assert img.size == (10, 10)


# ── Gnuplot table ────────────────────────────────────────────────────

class TestFemaleTable:
    def test_layout(self, tmp_path):
        grid = _grid(3, record_female=True)
        grid.female[:] = np.arange(9, dtype=float).reshape(3, 3) / 10.0
        path = write_female_table(grid, tmp_path / "female.txt")

        lines = path.read_text().splitlines()
        assert len(lines) == 3
        # line y holds female[x, y] for x = 0..n-1
        assert lines[0].split("\t") == ["0.000000", "0.300000", "0.600000"]
        np.testing.assert_allclose(np.loadtxt(path), grid.female.T)

    def test_requires_female(self, tmp_path):
        with pytest.raises(ValueError, match="not recorded"):
            write_female_table(_grid(), tmp_path / "female.txt")


# ── Console text ─────────────────────────────────────────────────────

class TestFormatSettings:
    def test_single_run(self):
        text = format_settings(1, ParameterRecord(Q=0.5, F=0.25, V=0.75), 100)
        assert "Q = 0.5 (K = 1, pi = 2)" in text
        assert 'F = 0.25 (k = 3, "omega" = 4)' in text
        assert "YY viability = 0.75 (YY penalty = 0.25)" in text
        assert "ppY = 1" in text
        assert "Iterations = 100" in text
        assert "combinations" not in text

    def test_model2_omits_ppy(self):
        assert "ppY" not in format_settings(2, ParameterRecord(), 10)

    def test_grid_banner(self):
        text = format_settings(1, ParameterRecord(), 10, SweepSettings(subdivisions=11))
        assert "Running 121 Q and F combinations" in text
        assert "pi =" not in text

    def test_oldformat_axes(self):
        settings = SweepSettings(subdivisions=5, mapping=Mapping.OLDFORMAT, limit=3.0)
        text = format_settings(1, ParameterRecord(), 10, settings)
        assert "Running 25 K and k combinations" in text
        assert "3 |" in text


class TestFormatSingleRun:
    def test_model1_report(self):
        result = run_single(ParameterRecord(), ONE_LOCUS, generations=0)
        text = format_single_run(result, ONE_LOCUS)
        assert "0.499000      0.499000      0.002000" in text
        assert "AA (1)" in text and "a*a* (6)" in text
        assert "M*M*" in text
        assert "C&C:  mm (1)    Mm (2)    M*m (4)   MM (3)    M*M (5)   M*M* (6)" in text
        assert text.endswith("Final state: DIO")

    def test_model2_names(self):
        result = run_single(ParameterRecord(), TWO_LOCUS, StartState.PGD, generations=0)
        text = format_single_run(result, TWO_LOCUS)
        assert "aa mm (9)" in text
        assert "MM aa (9)" in text
        assert "Final state: PGD" in text

    def test_unclassified(self):
        result = SingleRunResult(
            params=ParameterRecord(),
            freqs=np.zeros(6),
            aggregates=Aggregates(0.0, 0.0, 0.0),
            label=Label.NONE,
        )
        assert format_single_run(result, ONE_LOCUS).endswith("Final state: ???")
