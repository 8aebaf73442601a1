"""Clustered expression heatmap for top-ranked features."""

from __future__ import annotations

from pathlib import Path

import matplotlib.patches as mpatches
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import leaves_list, linkage

from degreport.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from degreport.plotting.utils import condition_colors, save_figure


def center_rows(matrix: pd.DataFrame) -> pd.DataFrame:
    """Subtract each row's mean."""
    return matrix.sub(matrix.mean(axis=1), axis=0)


def cluster_order(values: np.ndarray, method: str = "complete") -> np.ndarray:
    """Leaf order of euclidean hierarchical clustering over rows."""
    arr = np.asarray(values, dtype=float)
    if arr.shape[0] < 3:
        return np.arange(arr.shape[0])
    return leaves_list(linkage(arr, method=method, metric="euclidean"))


def plot_top_heatmap(
    vst_counts: pd.DataFrame,
    feature_ids: list[str],
    conditions: pd.Series,
    out_png: Path,
    *,
    row_labels: list[str] | None = None,
    condition_name: str = "condition",
    cluster: bool = True,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> None:
    """Row-centred VST heatmap with a condition bar above the columns."""
    if not feature_ids:
        raise ValueError("Heatmap needs at least one feature.")
    mat = center_rows(vst_counts.loc[feature_ids].astype(float))
    labels = list(row_labels) if row_labels is not None else list(feature_ids)
    if len(labels) != len(feature_ids):
        raise ValueError("row_labels must match feature_ids in length.")

    row_idx = cluster_order(mat.to_numpy()) if cluster else np.arange(mat.shape[0])
    col_idx = cluster_order(mat.to_numpy().T) if cluster else np.arange(mat.shape[1])
    data = mat.to_numpy()[np.ix_(row_idx, col_idx)]
    samples = [str(mat.columns[i]) for i in col_idx]
    labels = [labels[i] for i in row_idx]
    cond = conditions.astype(str).reindex(mat.columns).to_numpy()[col_idx]

    colors = condition_colors(list(cond), style=style)
    vmax = float(np.nanmax(np.abs(data))) if data.size else 1.0
    vmax = vmax if vmax > 0 else 1.0

    fig, (ax_bar, ax) = plt.subplots(
        2,
        1,
        figsize=style.figsize_heatmap,
        gridspec_kw={"height_ratios": [1, 12], "hspace": 0.04},
        sharex=True,
    )
    ax_bar.imshow(
        np.array([[colors[c] for c in cond]]), aspect="auto", interpolation="nearest"
    )
    ax_bar.set_yticks([0])
    ax_bar.set_yticklabels([condition_name])
    ax_bar.tick_params(axis="x", bottom=False, labelbottom=False)

    img = ax.imshow(
        data,
        aspect="auto",
        cmap=style.cmap_heat,
        vmin=-vmax,
        vmax=vmax,
        interpolation="nearest",
    )
    ax.set_yticks(np.arange(len(labels)))
    ax.set_yticklabels(labels)
    ax.set_xticks(np.arange(len(samples)))
    ax.set_xticklabels(samples, rotation=90)

    cbar = fig.colorbar(
        img, ax=[ax_bar, ax], shrink=style.colorbar_shrink, pad=style.colorbar_pad
    )
    cbar.set_label("centred VST", fontsize=style.axis_label_fontsize)
    handles = [mpatches.Patch(color=colors[c], label=c) for c in sorted(colors)]
    ax_bar.legend(
        handles=handles,
        loc="lower left",
        bbox_to_anchor=(0.0, 1.05),
        ncol=len(handles),
        fontsize=style.legend_fontsize,
        frameon=False,
    )
    save_figure(fig, out_png, style=style, bbox_tight=True)
