"""Shared plotting utilities used by figure factories."""

from __future__ import annotations

from pathlib import Path

import matplotlib.figure
import matplotlib.pyplot as plt

from degreport.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle


def save_figure(
    fig: matplotlib.figure.Figure,
    out_path: Path,
    *,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
    bbox_tight: bool = False,
) -> None:
    """Save figure deterministically; the figure is closed even if saving fails."""
    save_kwargs: dict[str, object] = {
        "dpi": style.dpi,
        "facecolor": "white",
        "pad_inches": 0.02,
    }
    if bbox_tight:
        save_kwargs["bbox_inches"] = "tight"
    try:
        fig.savefig(out_path, **save_kwargs)
    finally:
        plt.close(fig)


def condition_colors(
    labels: list[str], style: PlotStyle = DEFAULT_PLOT_STYLE
) -> dict[str, tuple[float, float, float, float]]:
    """Stable colour per condition level (sorted order)."""
    cmap = plt.get_cmap(style.condition_cmap)
    return {lvl: cmap(i % cmap.N) for i, lvl in enumerate(sorted(set(labels)))}
