"""End-to-end differential-expression report pipeline."""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from degreport._version import __version__
from degreport.annotation import build_name_lookup
from degreport.config import PipelineParams, build_pipeline_params, load_json_config
from degreport.core.selection import NameSource, annotate, display_labels, rank, top_k
from degreport.core.types import STATUS_MAPPED, STATUS_UNAVAILABLE, CorrelationResult
from degreport.data import CountData, load_dataset, validate_count_data
from degreport.model import DifferentialExpressionModel, ModelFit, PyDESeq2Model
from degreport.pipeline.export import ArtifactExporter, ExportReport
from degreport.pipeline.io import (
    close_logger,
    ensure_dir,
    setup_logger,
    write_json,
    write_results_csv,
    write_text,
)
from degreport.plotting import (
    apply_plot_style,
    plot_feature_scatter,
    plot_library_sizes,
    plot_style_dict,
    plot_top_heatmap,
    plot_vst_boxplot,
)
from degreport.stats import (
    ensure_adjusted,
    format_correlation_report,
    log2_normalized,
    pearson_correlation,
)

LOGGER_NAME = "degreport"
MIN_CORRELATION_SAMPLES = 3


@dataclass
class RunSummary:
    """Counts and artifact outcome of one pipeline run."""

    n_features: int
    n_ranked: int
    n_annotated: int
    n_annotation_unavailable: int
    n_significant: dict[float, int]
    tested_level: str
    reference_level: str
    correlation: CorrelationResult | None
    export: ExportReport = field(default_factory=ExportReport)

    @property
    def failed_artifacts(self) -> dict[str, str]:
        return dict(self.export.failed)

    @property
    def ok(self) -> bool:
        return self.export.ok


def top_table_name(threshold: float, k: int) -> str:
    return f"top{int(k)}_alpha_{float(threshold):g}.csv"


def prepare_output_dirs(params: PipelineParams) -> tuple[Path, Path]:
    """Create the results and figures directories once per run."""
    return ensure_dir(params.results_dir), ensure_dir(params.figures_dir)


def summarize_results(
    results: pd.DataFrame, alpha: float, tested_level: str, reference_level: str
) -> str:
    """Plain-text counts of up/down-regulated and untestable features."""
    adj = results["adjusted_p_value"].to_numpy(dtype=float)
    lfc = results["log2_fold_change"].to_numpy(dtype=float)
    n_total = int(results.shape[0])
    sig = np.isfinite(adj) & (adj < alpha)
    n_up = int(np.sum(sig & (lfc > 0)))
    n_down = int(np.sum(sig & (lfc < 0)))
    n_untestable = int(np.sum(~np.isfinite(adj)))
    n_zero = int(np.sum(~np.isfinite(lfc)))

    def pct(n: int) -> str:
        return f"{100.0 * n / n_total:.2g}%" if n_total else "0%"

    lines = [
        f"contrast: {tested_level} vs {reference_level}",
        f"out of {n_total} features",
        f"adjusted p-value < {alpha:g}",
        f"LFC > 0 (up)       : {n_up}, {pct(n_up)}",
        f"LFC < 0 (down)     : {n_down}, {pct(n_down)}",
        f"untestable (NA padj): {n_untestable}, {pct(n_untestable)}",
        f"  of which not estimable (NA LFC): {n_zero}",
        "",
    ]
    return "\n".join(lines)


def pair_skip_reason(ranked: pd.DataFrame, normalized_counts: pd.DataFrame) -> str | None:
    if ranked.shape[0] < 2:
        return "fewer than two ranked features"
    if normalized_counts.shape[1] < MIN_CORRELATION_SAMPLES:
        return f"fewer than {MIN_CORRELATION_SAMPLES} samples"
    return None


def correlate_top_pair(
    ranked: pd.DataFrame, normalized_counts: pd.DataFrame
) -> CorrelationResult | None:
    """Pearson test between the two best-ranked features on log2(normalized + 1).

    Returns None when there is no pair to test or too few samples to test it.
    """
    if pair_skip_reason(ranked, normalized_counts) is not None:
        return None
    pair = ranked.head(2)
    ids = pair["feature_id"].astype(str).tolist()
    labels = display_labels(pair)
    logged = log2_normalized(normalized_counts.loc[ids])
    return pearson_correlation(
        logged.loc[ids[0]].to_numpy(),
        logged.loc[ids[1]].to_numpy(),
        feature_x=ids[0],
        feature_y=ids[1],
        label_x=labels[0],
        label_y=labels[1],
    )


def _run_metadata(
    params: PipelineParams, data: CountData, fit: ModelFit, summary: RunSummary
) -> dict[str, Any]:
    return {
        "degreport_version": __version__,
        "python_version": platform.python_version(),
        "pandas_version": str(pd.__version__),
        "params": params.to_dict(),
        "n_features": summary.n_features,
        "n_samples": data.n_samples,
        "samples": list(data.counts.columns),
        "conditions": {
            str(k): int(v) for k, v in data.design.value_counts().sort_index().items()
        },
        "tested_level": fit.tested_level,
        "reference_level": fit.reference_level,
        "n_ranked": summary.n_ranked,
        "n_annotated": summary.n_annotated,
        "n_annotation_unavailable": summary.n_annotation_unavailable,
        "n_significant": {f"{k:g}": v for k, v in summary.n_significant.items()},
        "plot_style": plot_style_dict(),
    }


def run_analysis(
    params: PipelineParams,
    *,
    data: CountData | None = None,
    model: DifferentialExpressionModel | None = None,
    name_lookup: NameSource | None = None,
    logger: logging.Logger | None = None,
) -> RunSummary:
    """Run ingest, model fit, selection, annotation and export in one pass.

    Any of `data`, `model` and `name_lookup` may be supplied to replace the
    configured provider, PyDESeq2 model or lookup backend.
    """
    log = logger or logging.getLogger(LOGGER_NAME)
    results_dir, figures_dir = prepare_output_dirs(params)

    if data is None:
        data = load_dataset(
            params.dataset,
            condition_column=params.condition_column,
            reference_level=params.reference_level,
            tested_level=params.tested_level,
            logger=log,
        )
    else:
        data = validate_count_data(
            data.counts,
            data.samples,
            params.condition_column,
            params.reference_level,
            params.tested_level,
        )

    if model is None:
        model = PyDESeq2Model(
            condition_column=params.condition_column,
            alpha=params.alpha,
            n_cpus=params.n_cpus,
            logger=log,
        )
    fit = model.fit(data.counts, data.design, params.reference_level, params.tested_level)
    results = ensure_adjusted(fit.results)

    ranked = rank(results)
    log.info(
        "Ranked %d/%d features (%d untestable)",
        ranked.shape[0],
        results.shape[0],
        results.shape[0] - ranked.shape[0],
    )

    if name_lookup is None:
        name_lookup = build_name_lookup(params.annotation, logger=log)
    annotated = annotate(
        ranked, name_lookup, batch_size=params.annotation.batch_size, logger=log
    )
    status = annotated["annotation_status"]
    n_mapped = int((status == STATUS_MAPPED).sum())
    n_unavailable = int((status == STATUS_UNAVAILABLE).sum())
    log.info(
        "Annotated %d/%d ranked features (%d unavailable)",
        n_mapped,
        annotated.shape[0],
        n_unavailable,
    )

    top_tables = {thr: top_k(annotated, thr, params.top_k) for thr in params.thresholds}
    n_significant = {
        thr: int((annotated["adjusted_p_value"] < thr).sum()) for thr in params.thresholds
    }
    for thr, table in top_tables.items():
        log.info(
            "padj < %g: %d features, exporting top %d",
            thr,
            n_significant[thr],
            table.shape[0],
        )

    correlation = correlate_top_pair(annotated, fit.normalized_counts)

    exporter = ArtifactExporter(logger=log)
    summary = RunSummary(
        n_features=int(results.shape[0]),
        n_ranked=int(ranked.shape[0]),
        n_annotated=n_mapped,
        n_annotation_unavailable=n_unavailable,
        n_significant=n_significant,
        tested_level=fit.tested_level,
        reference_level=fit.reference_level,
        correlation=correlation,
        export=exporter.report,
    )

    exporter.export(
        "results_all",
        results_dir / "deseq2_results_all.csv",
        lambda p: write_results_csv(p, annotated),
    )
    for thr, table in top_tables.items():
        exporter.export(
            f"top_{thr:g}",
            results_dir / top_table_name(thr, params.top_k),
            lambda p, t=table: write_results_csv(p, t),
        )
    exporter.export(
        "summary",
        results_dir / "deseq2_summary.txt",
        lambda p: write_text(
            p,
            summarize_results(
                results, params.alpha, fit.tested_level, fit.reference_level
            ),
        ),
    )

    apply_plot_style()
    exporter.export(
        "boxplot_vst",
        figures_dir / "boxplot_vst.png",
        lambda p: plot_vst_boxplot(fit.vst_counts, p),
    )
    exporter.export(
        "barplot_library_sizes",
        figures_dir / "barplot_library_sizes.png",
        lambda p: plot_library_sizes(data.library_sizes(), p),
    )

    heat = annotated.head(params.heatmap_top_n)
    if heat.empty:
        exporter.skip("heatmap_top", "no ranked features")
    else:
        exporter.export(
            "heatmap_top",
            figures_dir / f"heatmap_top{params.heatmap_top_n}.png",
            lambda p: plot_top_heatmap(
                fit.vst_counts,
                heat["feature_id"].tolist(),
                data.design,
                p,
                row_labels=display_labels(heat),
                condition_name=params.condition_column,
            ),
        )

    if correlation is None:
        reason = pair_skip_reason(annotated, fit.normalized_counts)
        exporter.skip("correlation_test", reason)
        exporter.skip("scatter_two_genes", reason)
    else:
        exporter.export(
            "correlation_test",
            results_dir / "correlation_test.txt",
            lambda p: write_text(p, format_correlation_report(correlation)),
        )
        logged = log2_normalized(
            fit.normalized_counts.loc[[correlation.feature_x, correlation.feature_y]]
        )
        exporter.export(
            "scatter_two_genes",
            figures_dir / "scatter_two_genes.png",
            lambda p: plot_feature_scatter(
                logged.loc[correlation.feature_x].to_numpy(),
                logged.loc[correlation.feature_y].to_numpy(),
                [str(s) for s in logged.columns],
                p,
                x_label=correlation.label_x,
                y_label=correlation.label_y,
                subtitle=f"r={correlation.r:.3g} | p={correlation.p_value:.3g}",
            ),
        )

    exporter.export(
        "run_metadata",
        results_dir / "run_metadata.json",
        lambda p: write_json(p, _run_metadata(params, data, fit, summary)),
    )

    if summary.ok:
        log.info("Analysis complete. Results in %s", Path(params.outdir).as_posix())
    else:
        log.error(
            "Analysis finished with %d failed artifact(s): %s",
            len(summary.failed_artifacts),
            ", ".join(sorted(summary.failed_artifacts)),
        )
    return summary


def run_pipeline(config_path: str | Path, *, outdir: str | Path | None = None) -> RunSummary:
    """Load a JSON config and run the full pipeline with logging to file."""
    params = build_pipeline_params(load_json_config(config_path), outdir=outdir)
    prepare_output_dirs(params)
    logger = setup_logger(params.log_path, LOGGER_NAME)
    try:
        logger.info("Config: %s", Path(config_path).as_posix())
        return run_analysis(params, logger=logger)
    finally:
        close_logger(logger)
