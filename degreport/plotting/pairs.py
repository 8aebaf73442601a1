"""Two-feature scatter across samples."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from degreport.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from degreport.plotting.utils import save_figure


def plot_feature_scatter(
    x: np.ndarray,
    y: np.ndarray,
    sample_labels: list[str],
    out_png: Path,
    *,
    x_label: str,
    y_label: str,
    title: str = "Scatter of two genes",
    subtitle: str | None = None,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> None:
    """Scatter of two features with each point labelled by its sample."""
    xa = np.asarray(x, dtype=float)
    ya = np.asarray(y, dtype=float)
    if xa.size != ya.size or xa.size != len(sample_labels):
        raise ValueError("x, y and sample_labels must have the same length.")

    fig, ax = plt.subplots(figsize=style.figsize_scatter)
    ax.scatter(xa, ya, s=style.point_size, color=style.point_color)
    span = float(np.ptp(ya)) if ya.size else 0.0
    offset = 0.02 * span if span > 0 else 0.05
    for xi, yi, lab in zip(xa, ya, sample_labels):
        ax.text(
            xi,
            yi + offset,
            str(lab),
            ha="center",
            va="bottom",
            fontsize=style.annotation_fontsize,
        )
    ax.set_xlabel(x_label)
    ax.set_ylabel(y_label)
    ax.set_title(title)
    if subtitle:
        ax.text(0.02, 0.02, subtitle, transform=ax.transAxes, fontsize=8)
    fig.tight_layout()
    save_figure(fig, out_png, style=style)
