"""Tests for dioecy_evo.classify — outcome labels from morph frequencies."""

import itertools

import numpy as np
import pytest

from dioecy_evo.classify import (
    DEFAULT_THRESHOLD,
    classify,
    classify_aggregates,
    classify_array,
)
from dioecy_evo.types import Aggregates, Label


EPS = 1e-6
T = DEFAULT_THRESHOLD


class TestRules:
    def test_all_three_is_ssd(self):
        assert classify(T + EPS, T + EPS, T + EPS) is Label.SSD

    def test_ssd_beats_dio(self):
        """Satisfies the DIO condition too; SSD must win."""
        assert classify(0.45, 0.45, 0.1) is Label.SSD

    def test_dio(self):
        assert classify(0.5, 0.5, 0.0) is Label.DIO

    def test_pgd(self):
        assert classify(0.6, 0.0, 0.4) is Label.PGD

    def test_pad(self):
        assert classify(0.0, 0.3, 0.7) is Label.PAD

    def test_inc(self):
        assert classify(0.0, 0.0, 1.0) is Label.INC

    def test_females_only_is_none(self):
        assert classify(1.0, 0.0, 0.0) is Label.NONE

    def test_males_only_is_none(self):
        assert classify(0.0, 1.0, 0.0) is Label.NONE

    def test_extinct_is_none(self):
        assert classify(0.0, 0.0, 0.0) is Label.NONE

    def test_threshold_is_strict(self):
        assert classify(T, T, T) is Label.NONE
        assert classify(0.5, 0.5, T) is Label.DIO

    def test_custom_threshold(self):
        assert classify(0.3, 0.3, 0.3, threshold=0.5) is Label.NONE
        assert classify(0.3, 0.3, 0.3, threshold=0.2) is Label.SSD

    def test_aggregates_wrapper(self):
        assert classify_aggregates(Aggregates(0.5, 0.0, 0.5)) is Label.PGD


class TestClassifyArray:
    def test_matches_scalar_rules(self):
        levels = [0.0, T, T + EPS, 0.5]
        combos = np.array(list(itertools.product(levels, repeat=3)))
        labels = classify_array(combos[:, 0], combos[:, 1], combos[:, 2])
        for (f, m, i), code in zip(combos, labels):
            assert Label(int(code)) is classify(f, m, i)

    def test_dtype_and_shape(self):
        female = np.full((3, 4), 0.5)
        labels = classify_array(female, female, np.zeros((3, 4)))
        assert labels.dtype == np.int8
        assert labels.shape == (3, 4)
        assert np.all(labels == Label.DIO)

    @pytest.mark.parametrize("threshold", [0.001, 0.1])
    def test_threshold_passed_through(self, threshold):
        labels = classify_array(np.array([0.05]), np.array([0.05]), np.array([0.05]), threshold)
        assert Label(int(labels[0])) is classify(0.05, 0.05, 0.05, threshold)
