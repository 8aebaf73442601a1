"""Sample-level QC figures: VST distributions and library sizes."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from degreport.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from degreport.plotting.utils import save_figure


def plot_vst_boxplot(
    vst_counts: pd.DataFrame,
    out_png: Path,
    *,
    title: str = "VST-transformed counts",
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> None:
    """Per-sample boxplot of variance-stabilized counts, outliers hidden."""
    values = [vst_counts[col].to_numpy(dtype=float) for col in vst_counts.columns]
    values = [v[np.isfinite(v)] for v in values]

    fig, ax = plt.subplots(figsize=style.figsize_boxplot)
    box = ax.boxplot(values, showfliers=False, patch_artist=True)
    for patch in box["boxes"]:
        patch.set_facecolor(style.box_color)
    ax.set_xticks(np.arange(1, len(values) + 1))
    ax.set_xticklabels([str(c) for c in vst_counts.columns], rotation=90)
    ax.set_ylabel("VST expression")
    ax.set_title(title)
    fig.tight_layout()
    save_figure(fig, out_png, style=style)


def plot_library_sizes(
    library_sizes: pd.Series,
    out_png: Path,
    *,
    title: str = "Library sizes (total raw counts)",
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> None:
    fig, ax = plt.subplots(figsize=style.figsize_barplot)
    x = np.arange(library_sizes.size)
    ax.bar(x, library_sizes.to_numpy(dtype=float), color=style.bar_color)
    ax.set_xticks(x)
    ax.set_xticklabels([str(s) for s in library_sizes.index], rotation=90)
    ax.set_ylabel("Total counts")
    ax.set_title(title)
    fig.tight_layout()
    save_figure(fig, out_png, style=style)
