"""Reduce final morph frequencies to a mating-system label.

Rules, first match wins (all comparisons strict ``>``):
  1. female, male and inconstant above threshold  → SSD
  2. male and female                              → DIO
  3. female and inconstant                        → PGD
  4. male and inconstant                          → PAD
  5. inconstant                                   → INC
  6. otherwise                                    → NONE
"""

from __future__ import annotations

import numpy as np

from dioecy_evo.types import Aggregates, Label


DEFAULT_THRESHOLD: float = 0.01


def classify(
    female: float,
    male: float,
    inconstant: float,
    threshold: float = DEFAULT_THRESHOLD,
) -> Label:
    """Label of a single population."""
    has_f = female > threshold
    has_m = male > threshold
    has_i = inconstant > threshold

    if has_m and has_f and has_i:
        return Label.SSD
    if has_m and has_f:
        return Label.DIO
    if has_f and has_i:
        return Label.PGD
    if has_m and has_i:
        return Label.PAD
    if has_i:
        return Label.INC
    return Label.NONE


def classify_aggregates(agg: Aggregates, threshold: float = DEFAULT_THRESHOLD) -> Label:
    return classify(agg.female, agg.male, agg.inconstant, threshold)


def classify_array(
    female: np.ndarray,
    male: np.ndarray,
    inconstant: np.ndarray,
    threshold: float = DEFAULT_THRESHOLD,
) -> np.ndarray:
    """Elementwise ``classify`` over arrays of aggregates.

    Returns:
        int8 array of Label codes, shape of the broadcast inputs.
    """
    has_f = np.asarray(female) > threshold
    has_m = np.asarray(male) > threshold
    has_i = np.asarray(inconstant) > threshold

    # np.select picks the first true condition, matching the precedence above
    labels = np.select(
        [
            has_m & has_f & has_i,
            has_m & has_f,
            has_f & has_i,
            has_m & has_i,
            has_i,
        ],
        [int(lab) for lab in (Label.SSD, Label.DIO, Label.PGD, Label.PAD, Label.INC)],
        default=int(Label.NONE),
    )
    return labels.astype(np.int8)
