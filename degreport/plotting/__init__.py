"""Figure factories for degreport pipelines."""

from degreport.plotting.heatmap import center_rows, cluster_order, plot_top_heatmap
from degreport.plotting.pairs import plot_feature_scatter
from degreport.plotting.qc import plot_library_sizes, plot_vst_boxplot
from degreport.plotting.styles import (
    DEFAULT_PLOT_STYLE,
    PlotStyle,
    apply_plot_style,
    plot_style_dict,
)
from degreport.plotting.utils import condition_colors, save_figure

__all__ = [
    "PlotStyle",
    "DEFAULT_PLOT_STYLE",
    "apply_plot_style",
    "plot_style_dict",
    "save_figure",
    "condition_colors",
    "plot_vst_boxplot",
    "plot_library_sizes",
    "plot_top_heatmap",
    "center_rows",
    "cluster_order",
    "plot_feature_scatter",
]
