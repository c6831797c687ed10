"""Genotype spaces for the two Ehlers & Bataillon (2007) models.

A GenotypeSpace is a table-driven description of one model variant:
  - the genotypes (diploid, unordered allele pairs at each locus)
  - the gamete bins (haplotypes) shared by pollen and eggs
  - each genotype's Mendelian gamete distribution (free recombination)
  - the zygote table: pollen bin × egg bin → offspring genotype
  - the sex morph of each genotype and membership of the YY class
  - which pollen bins carry the Y-like allele (subject to ppY)
  - the two fixed initial conditions

Model 1 — one locus, alleles A (X-like), a (Y-like, male), a* (Y-like,
inconstant). AA are females, Aa and aa males, any genotype carrying a*
is inconstant.

Model 2 — two unlinked loci. Locus A/a sets femaleness (AA female);
locus M/m turns non-females into inconstants when M is present.

The recurrence engine never names a genotype; everything it needs is
in these tables, so both models run through the same code path.

References:
  - Ehlers & Bataillon (2007), models 1 and 2
  - Crossman & Charlesworth (2012) notation (C&C labels below)
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from dioecy_evo.types import Aggregates, Morph, StartState


# Genotype key: one sorted allele-index pair per locus
GenotypeKey = Tuple[Tuple[int, int], ...]


# ═══════════════════════════════════════════════════════════════════════
# GENOTYPE SPACE
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class GenotypeSpace:
    """Tables describing one model variant.

    Attributes:
        model: Model number (1 or 2).
        genotype_names: E&B names, in frequency-vector order.
        alt_names: C&C (2012) names, same order.
        alt_numbers: C&C genotype numbers, same order.
        bin_names: Gamete bin (haplotype) names.
        gametes: (n_genotypes, n_bins) Mendelian gamete distribution.
        combine: (n_bins, n_bins) int — offspring genotype of pollen i × egg j.
        morphs: (n_genotypes,) int — Morph of each genotype.
        yy: (n_genotypes,) bool — homozygous for the recessive sex allele.
        ppy_bins: (n_bins,) bool — pollen bins weighted by ppY.
        initial: StartState → (n_genotypes,) starting frequencies.
    """
    model: int
    genotype_names: Tuple[str, ...]
    alt_names: Tuple[str, ...]
    alt_numbers: Tuple[int, ...]
    bin_names: Tuple[str, ...]
    gametes: np.ndarray
    combine: np.ndarray
    morphs: np.ndarray
    yy: np.ndarray
    ppy_bins: np.ndarray
    initial: Dict[StartState, np.ndarray]

    @property
    def n_genotypes(self) -> int:
        return len(self.genotype_names)

    @property
    def n_bins(self) -> int:
        return len(self.bin_names)

    @property
    def uses_ppy(self) -> bool:
        return bool(self.ppy_bins.any())

    def mask(self, morph: Morph) -> np.ndarray:
        """Boolean mask of genotypes expressing ``morph``."""
        return self.morphs == int(morph)

    def zygote_tensor(self) -> np.ndarray:
        """One-hot (n_bins, n_bins, n_genotypes) form of ``combine``."""
        tensor = np.zeros((self.n_bins, self.n_bins, self.n_genotypes))
        i, j = np.indices(self.combine.shape)
        tensor[i, j, self.combine] = 1.0
        return tensor

    def index(self, name: str) -> int:
        """Position of a genotype (E&B or C&C name) in the frequency vector."""
        for names in (self.genotype_names, self.alt_names):
            if name in names:
                return names.index(name)
        raise ValueError(
            f"Unknown genotype '{name}' for model {self.model}; "
            f"expected one of {self.genotype_names}"
        )

    def initial_frequencies(self, start: StartState) -> np.ndarray:
        """Fresh copy of the starting frequency vector."""
        return self.initial[StartState(start)].copy()

    def aggregates(self, freqs: np.ndarray) -> Aggregates:
        """Sum genotype frequencies into female / male / inconstant.

        Works on a single vector or any batch with genotypes on the
        last axis.
        """
        freqs = np.asarray(freqs, dtype=np.float64)
        female = freqs[..., self.mask(Morph.FEMALE)].sum(axis=-1)
        male = freqs[..., self.mask(Morph.MALE)].sum(axis=-1)
        inconstant = freqs[..., self.mask(Morph.INCONSTANT)].sum(axis=-1)
        if freqs.ndim == 1:
            return Aggregates(float(female), float(male), float(inconstant))
        return Aggregates(female, male, inconstant)


# ═══════════════════════════════════════════════════════════════════════
# CONSTRUCTION
# ═══════════════════════════════════════════════════════════════════════


def _enumerate_genotypes(loci: Sequence[Sequence[str]]) -> List[GenotypeKey]:
    """All diploid genotypes, ordered locus by locus (first locus slowest)."""
    per_locus = [
        list(itertools.combinations_with_replacement(range(len(alleles)), 2))
        for alleles in loci
    ]
    return [tuple(key) for key in itertools.product(*per_locus)]


def _gamete_distribution(
    key: GenotypeKey,
    haplotypes: List[Tuple[int, ...]],
) -> np.ndarray:
    """Mendelian gametes of one genotype, loci assorting independently."""
    dist = np.zeros(len(haplotypes))
    weight = 0.5 ** len(key)
    for choice in itertools.product((0, 1), repeat=len(key)):
        haplotype = tuple(pair[c] for pair, c in zip(key, choice))
        dist[haplotypes.index(haplotype)] += weight
    return dist


def build_genotype_space(
    model: int,
    loci: Sequence[Sequence[str]],
    morph_of: Callable[[GenotypeKey], Morph],
    yy_of: Callable[[GenotypeKey], bool],
    ppy_of: Callable[[Tuple[int, ...]], bool],
    initial: Dict[StartState, Dict[str, float]],
    alt_names: Sequence[str],
    alt_numbers: Optional[Sequence[int]] = None,
    name_sep: str = "",
) -> GenotypeSpace:
    """Derive all tables of a GenotypeSpace from its locus structure.

    Args:
        model: Model number.
        loci: Allele names per locus, e.g. ``[("A", "a", "a*")]``.
        morph_of: Morph of a genotype key.
        yy_of: Whether a genotype key belongs to the YY class.
        ppy_of: Whether a pollen haplotype is subject to ppY.
        initial: Non-zero starting frequencies by genotype name.
        alt_names: C&C names in genotype order.
        alt_numbers: C&C numbers in genotype order (default 1..n).
        name_sep: Separator between loci in genotype names.

    Returns:
        Fully populated GenotypeSpace.
    """
    keys = _enumerate_genotypes(loci)
    haplotypes = list(itertools.product(*(range(len(a)) for a in loci)))

    names = tuple(
        name_sep.join(alleles[p[0]] + alleles[p[1]] for alleles, p in zip(loci, key))
        for key in keys
    )
    bin_names = tuple(
        "".join(alleles[i] for alleles, i in zip(loci, hap)) for hap in haplotypes
    )

    gametes = np.array([_gamete_distribution(key, haplotypes) for key in keys])

    combine = np.empty((len(haplotypes), len(haplotypes)), dtype=np.intp)
    for i, hp in enumerate(haplotypes):
        for j, he in enumerate(haplotypes):
            key = tuple(tuple(sorted((a, b))) for a, b in zip(hp, he))
            combine[i, j] = keys.index(key)

    starts = {}
    for state, freqs in initial.items():
        vec = np.zeros(len(keys))
        for name, value in freqs.items():
            vec[names.index(name)] = value
        starts[state] = vec

    return GenotypeSpace(
        model=model,
        genotype_names=names,
        alt_names=tuple(alt_names),
        alt_numbers=tuple(alt_numbers or range(1, len(keys) + 1)),
        bin_names=bin_names,
        gametes=gametes,
        combine=combine,
        morphs=np.array([int(morph_of(k)) for k in keys], dtype=np.int8),
        yy=np.array([yy_of(k) for k in keys], dtype=bool),
        ppy_bins=np.array([ppy_of(h) for h in haplotypes], dtype=bool),
        initial=starts,
    )


# ═══════════════════════════════════════════════════════════════════════
# MODEL 1 — one locus, A / a / a*
# ═══════════════════════════════════════════════════════════════════════

_A, _a, _as = 0, 1, 2


def _morph_model1(key: GenotypeKey) -> Morph:
    pair = key[0]
    if pair == (_A, _A):
        return Morph.FEMALE
    if _as in pair:
        return Morph.INCONSTANT
    return Morph.MALE


ONE_LOCUS = build_genotype_space(
    model=1,
    loci=[("A", "a", "a*")],
    morph_of=_morph_model1,
    yy_of=lambda key: _A not in key[0],
    ppy_of=lambda hap: hap[0] != _A,
    initial={
        StartState.DIOECY: {"AA": 0.499, "Aa": 0.499, "Aa*": 0.002},
        StartState.PGD: {"AA": 0.499, "Aa": 0.002, "Aa*": 0.499},
    },
    alt_names=("mm", "Mm", "M*m", "MM", "M*M", "M*M*"),
    alt_numbers=(1, 2, 4, 3, 5, 6),
)


# ═══════════════════════════════════════════════════════════════════════
# MODEL 2 — two loci, A/a × M/m
# ═══════════════════════════════════════════════════════════════════════

_M = 0


def _morph_model2(key: GenotypeKey) -> Morph:
    a_locus, m_locus = key
    if a_locus == (_A, _A):
        return Morph.FEMALE
    if _M in m_locus:
        return Morph.INCONSTANT
    return Morph.MALE


TWO_LOCUS = build_genotype_space(
    model=2,
    loci=[("A", "a"), ("M", "m")],
    morph_of=_morph_model2,
    yy_of=lambda key: key[0] == (1, 1),
    ppy_of=lambda hap: False,
    initial={
        StartState.DIOECY: {"AA mm": 0.499, "Aa Mm": 0.002, "Aa mm": 0.499},
        StartState.PGD: {"AA MM": 0.499, "Aa MM": 0.499, "Aa mm": 0.002},
    },
    alt_names=("mm AA", "mm Aa", "mm aa", "Mm AA", "Mm Aa",
               "Mm aa", "MM AA", "MM Aa", "MM aa"),
    name_sep=" ",
)


GENOTYPE_SPACES: Dict[int, GenotypeSpace] = {1: ONE_LOCUS, 2: TWO_LOCUS}


def get_genotype_space(model: int) -> GenotypeSpace:
    """Return the GenotypeSpace of model 1 or 2.

    Raises:
        ValueError: For any other model number.
    """
    try:
        return GENOTYPE_SPACES[int(model)]
    except (KeyError, TypeError, ValueError):
        raise ValueError(
            f"model must be one of {sorted(GENOTYPE_SPACES)}, got {model!r}"
        ) from None
