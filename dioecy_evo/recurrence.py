"""Deterministic genotype-frequency recurrence.

One generation, for any GenotypeSpace:
  1. Pollen: males shed their gametes at rate 1, inconstants at
     h·Q (as cosex) + (1-h) (as male). Y-like pollen bins × ppY.
  2. Pollen pool normalized to 1 (when its raw total is positive).
  3. Eggs: females at rate 1, inconstants at h·(1-S)·F. Each receiver
     class is pollen-limited linearly below its saturation point
     (PSatF for females, PSatC = PSatF·F·(1-S) for cosexes), judged
     on the RAW pollen total.
     The egg pool is NOT normalized: selfed offspring are added later,
     and normalizing here would double-count the outcrossed share.
  4. Outcrossed zygotes: pollen ⊗ eggs through the zygote table.
  5. Selfed zygotes: inconstants × S·(1-d)·h·F, Mendelian self-cross
     with self-pollen weighted by pollen viability.
  6. YY class × V.
  7. Offspring normalized to 1 (when the raw total is positive).

All functions are vectorized: ``freqs`` may carry any number of leading
batch axes (one population per grid cell) with genotypes on the last
axis, and Q / F in the ParameterRecord may be arrays of the batch shape.
A zero-total population stays all-zero (extinction is absorbing).

References:
  - Ehlers & Bataillon (2007), recursion equations of models 1 and 2
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from dioecy_evo.genotypes import GenotypeSpace
from dioecy_evo.types import Morph, ParameterRecord


DEFAULT_GENERATIONS: int = 10000


# ═══════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════


def _normalize(raw: np.ndarray, total: np.ndarray) -> np.ndarray:
    """Divide rows by their total where it is positive; zero elsewhere."""
    total = np.asarray(total)[..., None]
    out = np.zeros(np.broadcast_shapes(raw.shape, total.shape))
    np.divide(raw, total, out=out, where=total > 0)
    return out


def saturation(pollen_total, threshold) -> np.ndarray:
    """Fraction of ovules fertilized given the raw pollen supply.

    1 when ``pollen_total >= threshold`` (always, for threshold 0),
    else ``pollen_total / threshold``.
    """
    total, thresh = np.broadcast_arrays(
        np.asarray(pollen_total, dtype=np.float64),
        np.asarray(threshold, dtype=np.float64),
    )
    out = np.ones(total.shape)
    np.divide(total, thresh, out=out, where=total < thresh)
    return out


def selfing_matrix(space: GenotypeSpace, ppY: float = 1.0) -> np.ndarray:
    """Offspring distribution of each genotype under self-fertilization.

    Row g is the Mendelian self-cross of genotype g. On the pollen side
    the gametes are weighted by pollen viability and renormalized, so
    X- and Y-bearing self-pollen compete (Aa* in model 1 gives
    0.5/(1+ppY), 0.5, 0.5·ppY/(1+ppY)). If no self-pollen is viable
    the unweighted gametes are used.

    Returns:
        (n_genotypes, n_genotypes) array; every row sums to 1.
    """
    viability = np.where(space.ppy_bins, ppY, 1.0)
    zygotes = space.zygote_tensor()
    rows = np.zeros((space.n_genotypes, space.n_genotypes))
    for g, eggs in enumerate(space.gametes):
        pollen = eggs * viability
        total = pollen.sum()
        pollen = pollen / total if total > 0 else eggs
        rows[g] = np.einsum('i,j,ijk->k', pollen, eggs, zygotes)
    return rows


# ═══════════════════════════════════════════════════════════════════════
# PER-RUN COEFFICIENTS
# ═══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StepCoefficients:
    """Everything one generation needs that depends only on parameters.

    Array shapes broadcast against the frequency batch: (..., n_genotypes)
    for per-genotype weights, (...,) for saturation points.
    """
    pollen_weight: np.ndarray     # Pollen output per genotype
    pollen_viability: np.ndarray  # (n_bins,) ppY on Y-like bins
    female_eggs: np.ndarray       # (n_genotypes,) 1 on females
    cosex_eggs: np.ndarray        # h·(1-S)·F on inconstants
    psat_f: float
    psat_c: np.ndarray
    self_weight: np.ndarray       # S·(1-d)·h·F on inconstants
    self_matrix: np.ndarray       # (n_genotypes, n_genotypes)
    zygotes: np.ndarray           # (n_bins², n_genotypes)
    survival: np.ndarray          # (n_genotypes,) V on the YY class


def prepare(params: ParameterRecord, space: GenotypeSpace) -> StepCoefficients:
    """Precompute the parameter-dependent weights for ``space``."""
    Q = np.asarray(params.Q, dtype=np.float64)[..., None]
    F = np.asarray(params.F, dtype=np.float64)[..., None]
    h, S, d = params.h, params.S, params.d

    female = space.mask(Morph.FEMALE)
    male = space.mask(Morph.MALE)
    inconstant = space.mask(Morph.INCONSTANT)

    pollen_weight = np.where(
        inconstant, h * Q + (1.0 - h), np.where(male, 1.0, 0.0)
    )
    ppY = params.ppY if space.uses_ppy else 1.0

    return StepCoefficients(
        pollen_weight=pollen_weight,
        pollen_viability=np.where(space.ppy_bins, ppY, 1.0),
        female_eggs=female.astype(np.float64),
        cosex_eggs=np.where(inconstant, h * (1.0 - S) * F, 0.0),
        psat_f=float(params.PSatF),
        psat_c=np.asarray(params.PSatC, dtype=np.float64),
        self_weight=np.where(inconstant, S * (1.0 - d) * h * F, 0.0),
        self_matrix=selfing_matrix(space, ppY),
        zygotes=space.zygote_tensor().reshape(space.n_bins ** 2, space.n_genotypes),
        survival=np.where(space.yy, params.V, 1.0),
    )


# ═══════════════════════════════════════════════════════════════════════
# ONE GENERATION
# ═══════════════════════════════════════════════════════════════════════


def _pollen(
    freqs: np.ndarray,
    coeffs: StepCoefficients,
    space: GenotypeSpace,
) -> Tuple[np.ndarray, np.ndarray]:
    raw = (freqs * coeffs.pollen_weight) @ space.gametes * coeffs.pollen_viability
    total = raw.sum(axis=-1)
    return _normalize(raw, total), total


def _eggs(
    freqs: np.ndarray,
    coeffs: StepCoefficients,
    space: GenotypeSpace,
    pollen_total: np.ndarray,
) -> np.ndarray:
    lim_f = saturation(pollen_total, coeffs.psat_f)[..., None]
    lim_c = saturation(pollen_total, coeffs.psat_c)[..., None]
    weight = coeffs.female_eggs * lim_f + coeffs.cosex_eggs * lim_c
    return (freqs * weight) @ space.gametes


def _step(
    freqs: np.ndarray,
    coeffs: StepCoefficients,
    space: GenotypeSpace,
) -> np.ndarray:
    pollen, pollen_total = _pollen(freqs, coeffs, space)
    eggs = _eggs(freqs, coeffs, space, pollen_total)

    pairs = pollen[..., :, None] * eggs[..., None, :]
    pairs = pairs.reshape(pairs.shape[:-2] + (space.n_bins ** 2,))
    offspring = pairs @ coeffs.zygotes
    offspring += (freqs * coeffs.self_weight) @ coeffs.self_matrix
    offspring *= coeffs.survival

    return _normalize(offspring, offspring.sum(axis=-1))


def pollen_pool(
    freqs: np.ndarray,
    params: ParameterRecord,
    space: GenotypeSpace,
) -> Tuple[np.ndarray, np.ndarray]:
    """Outcrossing pollen pool of a population.

    Returns:
        (pool, raw_total): pool sums to 1 where raw_total > 0, else 0.
    """
    freqs = np.asarray(freqs, dtype=np.float64)
    return _pollen(freqs, prepare(params, space), space)


def egg_pool(
    freqs: np.ndarray,
    params: ParameterRecord,
    space: GenotypeSpace,
) -> np.ndarray:
    """Outcrossing egg pool after pollen limitation (not normalized)."""
    freqs = np.asarray(freqs, dtype=np.float64)
    coeffs = prepare(params, space)
    _, total = _pollen(freqs, coeffs, space)
    return _eggs(freqs, coeffs, space, total)


def advance(
    freqs: np.ndarray,
    params: ParameterRecord,
    space: GenotypeSpace,
) -> np.ndarray:
    """Genotype frequencies of the next generation.

    Pure: ``freqs`` is not modified.

    Args:
        freqs: (..., n_genotypes) current frequencies (sum 1, or all zero).
        params: Model parameters; Q and F may be batch-shaped arrays.
        space: Genotype space of the model variant.

    Returns:
        New (..., n_genotypes) array, renormalized where the raw total > 0.
    """
    freqs = np.asarray(freqs, dtype=np.float64)
    return _step(freqs, prepare(params, space), space)


# ═══════════════════════════════════════════════════════════════════════
# FIXED-LENGTH ITERATION
# ═══════════════════════════════════════════════════════════════════════


def iterate(
    initial: np.ndarray,
    params: ParameterRecord,
    space: GenotypeSpace,
    generations: int = DEFAULT_GENERATIONS,
) -> np.ndarray:
    """Run exactly ``generations`` steps from ``initial``.

    There is no convergence test: the generation count is the proxy
    for equilibrium. ``initial`` is broadcast against the batch shape
    of Q and F, so a single starting vector seeds a whole grid.

    Raises:
        ValueError: If generations is negative.
    """
    if generations < 0:
        raise ValueError(f"generations must be >= 0, got {generations}")

    initial = np.asarray(initial, dtype=np.float64)
    batch = np.broadcast_shapes(
        initial.shape[:-1], np.shape(params.Q), np.shape(params.F)
    )
    freqs = np.broadcast_to(initial, batch + (space.n_genotypes,)).copy()

    coeffs = prepare(params, space)
    for _ in range(generations):
        freqs = _step(freqs, coeffs, space)
    return freqs
