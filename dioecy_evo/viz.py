"""Annotated outcome map for dioecy-evo sweeps.

Draws the label grid of a ResultGrid with axes in (Q, F) or (K, k) and a
legend of the outcomes present. Same dark theme helpers as the rest of
the plotting code: every function returns a matplotlib Figure and takes
an optional ``save_path``.

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from pathlib import Path
from typing import Optional, Union

import matplotlib.colors as mcolors
import matplotlib.patches as mpatches
import matplotlib.pyplot as plt
import numpy as np

from dioecy_evo.sweep import ResultGrid
from dioecy_evo.types import LABEL_COLORS, Label, Mapping


DARK_BG = '#1a1a2e'
DARK_PANEL = '#16213e'
TEXT_COLOR = '#e0e0e0'
GRID_COLOR = '#2a2a4a'

LABEL_DESCRIPTIONS = {
    Label.NONE: 'none above threshold',
    Label.PGD: 'PGD (females + inconstants)',
    Label.SSD: 'SSD (all three morphs)',
    Label.DIO: 'DIO (females + males)',
    Label.PAD: 'PAD (males + inconstants)',
    Label.INC: 'INC (inconstants only)',
}


def label_colormap() -> mcolors.ListedColormap:
    """Colormap indexed by Label code, matching the BMP palette."""
    return mcolors.ListedColormap(
        [np.array(LABEL_COLORS[label]) / 255.0 for label in Label],
        name='dioecy_labels',
    )


def apply_dark_theme(fig=None, ax=None):
    """Apply dark theme to a matplotlib Figure and/or Axes."""
    if fig is not None:
        fig.patch.set_facecolor(DARK_BG)
    if ax is not None:
        ax.set_facecolor(DARK_PANEL)
        ax.tick_params(colors=TEXT_COLOR)
        ax.xaxis.label.set_color(TEXT_COLOR)
        ax.yaxis.label.set_color(TEXT_COLOR)
        ax.title.set_color(TEXT_COLOR)
        for spine in ax.spines.values():
            spine.set_color(GRID_COLOR)


def plot_outcome_map(
    grid: ResultGrid,
    title: str = '',
    save_path: Optional[Union[str, Path]] = None,
    dpi: int = 150,
):
    """Outcome map of a sweep.

    Args:
        grid: Result of ``run_grid``.
        title: Axes title.
        save_path: If given, save the figure there (PNG) and close it.
        dpi: Resolution when saving.

    Returns:
        matplotlib Figure.
    """
    oldformat = Mapping(grid.mapping) is Mapping.OLDFORMAT
    top = grid.limit if oldformat else 1.0
    x_name, y_name = ('K', 'k') if oldformat else ('Q', 'F')

    fig, ax = plt.subplots(figsize=(7, 6))
    apply_dark_theme(fig=fig, ax=ax)

    n_labels = len(Label)
    ax.imshow(
        grid.labels.T,
        origin='lower',
        extent=(0.0, top, 0.0, top),
        cmap=label_colormap(),
        norm=mcolors.BoundaryNorm(np.arange(n_labels + 1) - 0.5, n_labels),
        interpolation='nearest',
    )
    ax.set_xlabel(x_name)
    ax.set_ylabel(y_name)
    if title:
        ax.set_title(title, fontsize=11)

    present = grid.label_counts()
    handles = [
        mpatches.Patch(
            facecolor=np.array(LABEL_COLORS[label]) / 255.0,
            edgecolor=GRID_COLOR,
            label=f'{LABEL_DESCRIPTIONS[label]}: {count} cells',
        )
        for label, count in present.items() if count > 0
    ]
    legend = ax.legend(handles=handles, loc='upper left', bbox_to_anchor=(1.02, 1.0),
                       fontsize=8, frameon=False)
    for text in legend.get_texts():
        text.set_color(TEXT_COLOR)

    if save_path is not None:
        fig.savefig(save_path, dpi=dpi, facecolor=fig.get_facecolor(),
                    edgecolor='none', bbox_inches='tight')
        plt.close(fig)
    return fig
