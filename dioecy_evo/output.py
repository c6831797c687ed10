"""Writers for sweep and single-run results.

  - write_bitmap: uncompressed 24-bit BMP of the outcome map (Pillow)
  - write_female_table: tab-separated female frequencies for gnuplot
  - output_stem: file name shared by the .bmp / .txt / .png outputs
  - format_settings / format_single_run: console text for the CLI

Nothing here prints; the CLI decides what goes to stdout.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image

from dioecy_evo.genotypes import GenotypeSpace
from dioecy_evo.sweep import ResultGrid, SingleRunResult, SweepSettings
from dioecy_evo.types import LABEL_COLORS, Label, Mapping, ParameterRecord, StartState


PathLike = Union[str, Path]

# Row i holds the RGB triple of Label i
_PALETTE = np.array([LABEL_COLORS[label] for label in Label], dtype=np.uint8)


# ═══════════════════════════════════════════════════════════════════════
# FILE NAMES
# ═══════════════════════════════════════════════════════════════════════


def output_stem(model: int, params: ParameterRecord, start: StartState) -> str:
    """Base file name encoding the model and its fixed parameters."""
    tag = "PGD" if StartState(start) is StartState.PGD else "DIO"
    p = params
    return (
        f"model{model}_start{tag}_V{p.V:G}_S{p.S:G}_d{p.d:G}"
        f"_h{p.h:G}_PSatF{p.PSatF:G}_ppY{p.ppY:G}"
    )


# ═══════════════════════════════════════════════════════════════════════
# BITMAP
# ═══════════════════════════════════════════════════════════════════════


def label_image(labels: np.ndarray, scale: int = 1) -> np.ndarray:
    """RGB image of a [x, y] label grid, top row = highest y.

    Returns:
        (n·scale, n·scale, 3) uint8 array in display orientation.
    """
    rgb = _PALETTE[labels.T][::-1]
    if scale > 1:
        rgb = np.repeat(np.repeat(rgb, scale, axis=0), scale, axis=1)
    return np.ascontiguousarray(rgb)


def write_bitmap(grid: ResultGrid, path: PathLike, scale: int = 1) -> Path:
    """Save the outcome map as an uncompressed 24-bit BMP.

    Cell (0, 0) is the bottom-left pixel. Unclassified cells are black.
    """
    path = Path(path)
    Image.fromarray(label_image(grid.labels, scale)).save(path, format="BMP")
    return path


# ═══════════════════════════════════════════════════════════════════════
# GNUPLOT TABLE
# ═══════════════════════════════════════════════════════════════════════


def write_female_table(grid: ResultGrid, path: PathLike) -> Path:
    """Female frequency per cell: one line per y, x values tab-separated."""
    if grid.female is None:
        raise ValueError("female frequencies were not recorded for this sweep")
    path = Path(path)
    np.savetxt(path, grid.female.T, fmt="%f", delimiter="\t")
    return path


# ═══════════════════════════════════════════════════════════════════════
# CONSOLE TEXT
# ═══════════════════════════════════════════════════════════════════════


def _reciprocal(value) -> float:
    value = float(value)
    return 1.0 / value if value else float("inf")


def _axis_names(mapping: Mapping):
    return ("K", "k") if Mapping(mapping) is Mapping.OLDFORMAT else ("Q", "F")


def format_settings(
    model: int,
    params: ParameterRecord,
    generations: int,
    settings: Optional[SweepSettings] = None,
) -> str:
    """Settings banner. Pass ``settings`` for a grid sweep, None for one run."""
    p = params
    lines = [f"Model {model}", ""]
    if settings is None:
        pi, omega = _reciprocal(p.Q), _reciprocal(p.F)
        lines += [
            f"Q = {float(p.Q):G} (K = {pi - 1:G}, pi = {pi:G})",
            f"F = {float(p.F):G} (k = {omega - 1:G}, \"omega\" = {omega:G})",
            "",
        ]
    lines += [
        f"h = {p.h:G}",
        f"Selfing rate = {p.S:G}",
        f"Inbreeding depression = {p.d:G}",
        f"YY viability = {p.V:G} (YY penalty = {1 - p.V:G})",
        f"PSatF = {p.PSatF:G}",
    ]
    if model == 1:
        lines.append(f"ppY = {p.ppY:G}")
    lines += ["", f"Iterations = {generations}", ""]

    if settings is not None:
        n = settings.subdivisions
        top = f"{settings.limit:G}" if Mapping(settings.mapping) is Mapping.OLDFORMAT else "1"
        x_name, y_name = _axis_names(settings.mapping)
        lines += [
            f"Running {n * n} {x_name} and {y_name} combinations ({n}×{n} grid).",
            "This may take a long time; use --onerun for a single run.",
            "",
            f"                       {top} |",
            f"Output format:       {y_name}   |",
            "                       0 |",
            "                          -----",
            f"                          0   {top}",
            f"                            {x_name}",
            "",
        ]
    return "\n".join(lines)


def format_single_run(result: SingleRunResult, space: GenotypeSpace) -> str:
    """Aggregates, genotype frequencies and final state of one run."""
    agg = result.aggregates
    eb = "".join(
        f"{name + f' ({i + 1})':<10}" for i, name in enumerate(space.genotype_names)
    )
    cc = "".join(
        f"{name + f' ({num})':<10}"
        for name, num in zip(space.alt_names, space.alt_numbers)
    )
    values = "  ".join(f"{v:.6f}" for v in result.freqs)
    state = result.label.name if result.label is not Label.NONE else "???"

    return "\n".join([
        "Females       Males         Inconstants",
        f"{agg.female:.6f}      {agg.male:.6f}      {agg.inconstant:.6f}",
        "",
        "Genotype frequencies, as notated by E&B (2007), or C&C (2012):",
        "",
        f"E&B:  {eb.rstrip()}",
        f"C&C:  {cc.rstrip()}",
        f"      {values}",
        "",
        f"Final state: {state}",
    ])
