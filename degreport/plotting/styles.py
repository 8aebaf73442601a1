"""Shared plotting style settings for deterministic figure outputs."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import matplotlib
import matplotlib.pyplot as plt
import numpy as np


@dataclass(frozen=True)
class PlotStyle:
    """Centralized plotting defaults used across pipeline figures."""

    dpi: int = 150
    figsize_boxplot: tuple[float, float] = (9.3, 6.0)
    figsize_barplot: tuple[float, float] = (8.0, 5.3)
    figsize_heatmap: tuple[float, float] = (8.0, 6.0)
    figsize_scatter: tuple[float, float] = (6.7, 5.3)
    box_color: str = "#d9d9d9"
    bar_color: str = "#8c8c8c"
    point_color: str = "#1f1f1f"
    point_size: float = 28.0
    cmap_heat: str = "RdBu_r"
    condition_cmap: str = "tab10"
    legend_fontsize: int = 8
    axis_label_fontsize: int = 10
    tick_fontsize: int = 8
    title_fontsize: int = 11
    annotation_fontsize: int = 7
    colorbar_shrink: float = 0.8
    colorbar_pad: float = 0.02


DEFAULT_PLOT_STYLE = PlotStyle()


def apply_plot_style(style: PlotStyle = DEFAULT_PLOT_STYLE) -> None:
    """Apply deterministic matplotlib rcParams for pipeline plots."""
    plt.rcParams.update(
        {
            "figure.dpi": style.dpi,
            "savefig.dpi": style.dpi,
            "savefig.facecolor": "white",
            "font.family": "DejaVu Sans",
            "axes.titlesize": style.title_fontsize,
            "axes.labelsize": style.axis_label_fontsize,
            "xtick.labelsize": style.tick_fontsize,
            "ytick.labelsize": style.tick_fontsize,
            "legend.fontsize": style.legend_fontsize,
            "axes.grid": False,
        }
    )


def plot_style_dict(style: PlotStyle = DEFAULT_PLOT_STYLE) -> dict[str, Any]:
    """Return style + dependency versions for metadata manifests."""
    d = asdict(style)
    d["matplotlib_version"] = str(matplotlib.__version__)
    d["numpy_version"] = str(np.__version__)
    return d
