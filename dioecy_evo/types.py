"""Core data types for dioecy-evo.

This module is the SINGLE SOURCE OF TRUTH for:
  - Label, Morph, StartState, Mapping enumerations
  - ParameterRecord: the per-run (or per-cell) model parameters
  - Aggregates: female / male / inconstant morph frequencies
  - LABEL_COLORS: RGB triple for every outcome label

All modules import these types from here.

References:
  - Ehlers & Bataillon (2007), models 1 and 2
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Tuple, Union

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class Label(IntEnum):
    """Long-run mating-system outcome of a grid cell.

    Integer codes match the values stored in the result grid.
    """
    NONE = 0   # No morph above threshold (extinct or degenerate)
    PGD  = 1   # Pseudo-gynodioecy: females + inconstants
    SSD  = 2   # Stable sexual-system diversity: all three morphs
    DIO  = 3   # Dioecy: females + males
    PAD  = 4   # Males + inconstants
    INC  = 5   # Inconstants only


class Morph(IntEnum):
    """Sex morph expressed by a genotype."""
    FEMALE     = 0   # Ovules only
    MALE       = 1   # Pollen only
    INCONSTANT = 2   # Cosex with probability h, male otherwise


class StartState(str, Enum):
    """Initial condition of every cell's simulation."""
    DIOECY = "dioecy"   # Dioecy invaded by a few inconstants
    PGD    = "pgd"      # Pseudo-gynodioecy invaded by a few males


class Mapping(str, Enum):
    """How grid coordinates map onto (Q, F)."""
    LINEAR    = "linear"      # Q, F in [0, 1]
    OLDFORMAT = "oldformat"   # K, k in [0, limit]; Q = 1/(1+K), F = 1/(1+k)


# ═══════════════════════════════════════════════════════════════════════
# OUTPUT COLOURS
# ═══════════════════════════════════════════════════════════════════════

LABEL_COLORS: Dict[Label, Tuple[int, int, int]] = {
    Label.NONE: (0, 0, 0),
    Label.PGD:  (255, 127, 127),
    Label.SSD:  (255, 255, 0),
    Label.DIO:  (127, 0, 255),
    Label.PAD:  (180, 180, 255),
    Label.INC:  (255, 255, 255),
}


# ═══════════════════════════════════════════════════════════════════════
# PARAMETERS
# ═══════════════════════════════════════════════════════════════════════

ArrayLike = Union[float, np.ndarray]


@dataclass(frozen=True)
class ParameterRecord:
    """Model parameters for one run.

    In a grid sweep Q and F are arrays (one value per cell); every other
    field is a scalar shared by all cells.
    """
    h: float = 0.5        # P(inconstant acts as cosex)
    S: float = 0.0        # Cosex selfing rate
    d: float = 0.0        # Inbreeding depression on selfed offspring
    V: float = 1.0        # Viability of the YY class (0 = ancient, 1 = recent dioecy)
    Q: ArrayLike = 1.0    # Cosex pollen output relative to a male
    F: ArrayLike = 1.0    # Cosex ovule output relative to a female
    PSatF: float = 0.0    # Pollen needed to saturate female ovules (0 = no limitation)
    ppY: float = 1.0      # Viability of Y pollen (model 1 only)

    @property
    def PSatC(self) -> ArrayLike:
        """Pollen needed to saturate a cosex's outcrossing ovules."""
        return self.PSatF * np.asarray(self.F, dtype=np.float64) * (1.0 - self.S)


# ═══════════════════════════════════════════════════════════════════════
# AGGREGATES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class Aggregates:
    """Morph frequencies summed over genotypes.

    Scalars for a single run; arrays of the grid shape for a sweep.
    """
    female: ArrayLike
    male: ArrayLike
    inconstant: ArrayLike

    def as_tuple(self) -> Tuple[ArrayLike, ArrayLike, ArrayLike]:
        return (self.female, self.male, self.inconstant)
