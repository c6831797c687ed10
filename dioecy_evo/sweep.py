"""Parameter sweep over the (Q, F) plane.

Each grid cell (x, y) gets its own (Q, F), starts from the chosen initial
condition, runs a fixed number of generations and is classified. Cells
never share state, so the whole grid (or a block of rows of it) advances
as one numpy batch, and blocks can be handed to a thread pool; each
block writes a disjoint slice of the pre-allocated result grid.

Coordinate mappings (n = subdivisions):
  linear:     Q = x/(n-1),  F = y/(n-1)
  oldformat:  K = x/(n-1)·limit,  k = y/(n-1)·limit,
              Q = 1/(1+K),  F = 1/(1+k)

Grids are indexed [x, y]; x runs along Q (or K), y along F (or k).
"""

from __future__ import annotations

import dataclasses
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from dioecy_evo.classify import DEFAULT_THRESHOLD, classify, classify_array
from dioecy_evo.config import SimulationConfig
from dioecy_evo.genotypes import GenotypeSpace
from dioecy_evo.recurrence import DEFAULT_GENERATIONS, iterate
from dioecy_evo.types import Aggregates, Label, Mapping, ParameterRecord, StartState


# ═══════════════════════════════════════════════════════════════════════
# COORDINATE MAPPING
# ═══════════════════════════════════════════════════════════════════════


def _map_axes(u, v, mapping: Mapping, limit: float):
    """Map unit coordinates (u, v) ∈ [0, 1]² onto (Q, F)."""
    mapping = Mapping(mapping)
    if mapping is Mapping.LINEAR:
        return u, v
    K = u * limit
    k = v * limit
    return 1.0 / (1.0 + K), 1.0 / (1.0 + k)


def cell_parameters(
    x: int,
    y: int,
    subdivisions: int,
    mapping: Mapping = Mapping.LINEAR,
    limit: float = 4.0,
) -> Tuple[float, float]:
    """(Q, F) of grid cell (x, y)."""
    span = subdivisions - 1
    Q, F = _map_axes(x / span, y / span, mapping, limit)
    return float(Q), float(F)


def grid_parameters(
    subdivisions: int,
    mapping: Mapping = Mapping.LINEAR,
    limit: float = 4.0,
) -> Tuple[np.ndarray, np.ndarray]:
    """(Q, F) of every cell as two (n, n) arrays indexed [x, y]."""
    unit = np.arange(subdivisions, dtype=np.float64) / (subdivisions - 1)
    u, v = np.meshgrid(unit, unit, indexing='ij')
    return _map_axes(u, v, mapping, limit)


# ═══════════════════════════════════════════════════════════════════════
# SETTINGS & RESULTS
# ═══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class SweepSettings:
    """How to drive the grid."""
    subdivisions: int = 201
    generations: int = DEFAULT_GENERATIONS
    threshold: float = DEFAULT_THRESHOLD
    start: StartState = StartState.DIOECY
    mapping: Mapping = Mapping.LINEAR
    limit: float = 4.0
    record_female: bool = False
    workers: int = 1
    block_rows: Optional[int] = None   # Rows (y values) per batch; None = split evenly across workers

    @classmethod
    def from_config(cls, config: SimulationConfig) -> "SweepSettings":
        s = config.sweep
        return cls(
            subdivisions=s.subdivisions,
            generations=s.iterations,
            threshold=s.threshold,
            start=config.start_state,
            mapping=config.mapping,
            limit=s.oldformat_limit,
            record_female=config.output.gnuplot,
            workers=s.workers,
        )

    def blocks(self) -> list:
        """Row slices covering 0..subdivisions-1."""
        n = self.subdivisions
        rows = self.block_rows or math.ceil(n / self.workers)
        return [slice(y0, min(y0 + rows, n)) for y0 in range(0, n, rows)]


@dataclass
class ResultGrid:
    """Owned, bounds-checked result of a sweep.

    Attributes:
        labels: (n, n) int8 Label codes, indexed [x, y].
        female: (n, n) female frequency, or None when not recorded.
        Q, F: (n, n) parameter values of every cell.
        mapping, limit: Coordinate mapping used.
    """
    labels: np.ndarray
    female: Optional[np.ndarray]
    Q: np.ndarray
    F: np.ndarray
    mapping: Mapping = Mapping.LINEAR
    limit: float = 4.0

    @classmethod
    def allocate(
        cls,
        subdivisions: int,
        record_female: bool = False,
        mapping: Mapping = Mapping.LINEAR,
        limit: float = 4.0,
    ) -> "ResultGrid":
        """Pre-allocate all arrays. MemoryError propagates to the caller."""
        Q, F = grid_parameters(subdivisions, mapping, limit)
        labels = np.zeros((subdivisions, subdivisions), dtype=np.int8)
        female = (
            np.zeros((subdivisions, subdivisions), dtype=np.float64)
            if record_female else None
        )
        return cls(labels=labels, female=female, Q=Q, F=F,
                   mapping=Mapping(mapping), limit=limit)

    @property
    def subdivisions(self) -> int:
        return self.labels.shape[0]

    def __getitem__(self, xy: Tuple[int, int]) -> Label:
        x, y = xy
        n = self.subdivisions
        if not (0 <= x < n and 0 <= y < n):
            raise IndexError(f"cell ({x}, {y}) outside {n}×{n} grid")
        return Label(int(self.labels[x, y]))

    def label_counts(self) -> Dict[Label, int]:
        """Number of cells carrying each label."""
        counts = np.bincount(self.labels.ravel(), minlength=len(Label))
        return {label: int(counts[label]) for label in Label}


@dataclass
class SingleRunResult:
    """Final state of one (Q, F) run."""
    params: ParameterRecord
    freqs: np.ndarray
    aggregates: Aggregates
    label: Label


# ═══════════════════════════════════════════════════════════════════════
# DRIVERS
# ═══════════════════════════════════════════════════════════════════════


def run_single(
    params: ParameterRecord,
    space: GenotypeSpace,
    start: StartState = StartState.DIOECY,
    generations: int = DEFAULT_GENERATIONS,
    threshold: float = DEFAULT_THRESHOLD,
) -> SingleRunResult:
    """Run one population with the Q and F given in ``params``."""
    freqs = iterate(space.initial_frequencies(start), params, space, generations)
    agg = space.aggregates(freqs)
    label = classify(agg.female, agg.male, agg.inconstant, threshold)
    return SingleRunResult(params=params, freqs=freqs, aggregates=agg, label=label)


def run_grid(
    params: ParameterRecord,
    space: GenotypeSpace,
    settings: SweepSettings = SweepSettings(),
    progress: Optional[Callable[[int, int], None]] = None,
) -> ResultGrid:
    """Sweep the (Q, F) grid.

    The Q and F of ``params`` are ignored; each cell's come from the
    coordinate mapping.

    Args:
        params: Shared model parameters.
        space: Genotype space of the model variant.
        settings: Grid size, generations, threshold, start, mapping, workers.
        progress: Optional callback(done_rows, total_rows) after each block.

    Returns:
        ResultGrid with labels (and female frequencies if requested).
    """
    grid = ResultGrid.allocate(
        settings.subdivisions, settings.record_female,
        settings.mapping, settings.limit,
    )
    initial = space.initial_frequencies(settings.start)
    blocks = settings.blocks()
    n = settings.subdivisions

    def run_block(ys: slice) -> int:
        block_params = dataclasses.replace(params, Q=grid.Q[:, ys], F=grid.F[:, ys])
        freqs = iterate(initial, block_params, space, settings.generations)
        agg = space.aggregates(freqs)
        grid.labels[:, ys] = classify_array(
            agg.female, agg.male, agg.inconstant, settings.threshold
        )
        if grid.female is not None:
            grid.female[:, ys] = agg.female
        return ys.stop - ys.start

    done = 0
    if settings.workers <= 1:
        for ys in blocks:
            done += run_block(ys)
            if progress is not None:
                progress(done, n)
    else:
        with ThreadPoolExecutor(max_workers=settings.workers) as pool:
            futures = [pool.submit(run_block, ys) for ys in blocks]
            for future in as_completed(futures):
                done += future.result()
                if progress is not None:
                    progress(done, n)

    return grid
