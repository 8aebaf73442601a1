from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pandas as pd

from degreport.config import build_pipeline_params
from degreport.core.types import FeatureResult, results_to_frame
from degreport.model import ModelFit, choose_tested_level
from degreport.pipeline import runner

TOY_CFG = {
    "condition_column": "dex",
    "reference_level": "untrt",
    "tested_level": "trt",
    "thresholds": [0.05, 0.001],
    "top_k": 10,
    "heatmap_top_n": 10,
}


def _params(tmp_path: Path, **overrides):
    return build_pipeline_params({**TOY_CFG, **overrides}, outdir=tmp_path)


def test_run_analysis_writes_all_artifacts(tmp_path: Path, toy_data, fake_model):
    params = _params(tmp_path)
    summary = runner.run_analysis(
        params,
        data=toy_data,
        model=fake_model,
        name_lookup={"ENSG00000000001": ["GENE1", "GENE1-AS"]},
    )

    assert summary.ok
    assert fake_model.calls == 1
    assert summary.n_features == 30
    assert summary.n_ranked == 29
    assert summary.tested_level == "trt"
    assert summary.reference_level == "untrt"
    assert summary.correlation is not None

    results = tmp_path / "results"
    figures = tmp_path / "figures"
    for name in (
        "deseq2_results_all.csv",
        "top10_alpha_0.05.csv",
        "top10_alpha_0.001.csv",
        "deseq2_summary.txt",
        "correlation_test.txt",
        "run_metadata.json",
    ):
        assert (results / name).is_file(), name
    for name in (
        "boxplot_vst.png",
        "barplot_library_sizes.png",
        "heatmap_top10.png",
        "scatter_two_genes.png",
    ):
        assert (figures / name).stat().st_size > 0, name

    all_df = pd.read_csv(results / "deseq2_results_all.csv")
    assert list(all_df.columns) == [
        "ensembl_id",
        "symbol",
        "baseMean",
        "log2FoldChange",
        "lfcSE",
        "stat",
        "pvalue",
        "padj",
    ]
    assert all_df.shape[0] == 29
    assert all_df["padj"].is_monotonic_increasing
    assert "ENSG00000000030" not in set(all_df["ensembl_id"])
    gene1 = all_df.loc[all_df["ensembl_id"] == "ENSG00000000001", "symbol"]
    assert gene1.tolist() == ["GENE1"]

    top = pd.read_csv(results / "top10_alpha_0.05.csv")
    assert top.shape[0] == min(10, summary.n_significant[0.05])
    assert (top["padj"] < 0.05).all()
    assert top["ensembl_id"].tolist() == all_df["ensembl_id"].tolist()[: top.shape[0]]
    # strongly induced/repressed features lead the ranking
    assert set(all_df["ensembl_id"].head(3)) <= {f"ENSG{i:011d}" for i in range(1, 7)}

    meta = json.loads((results / "run_metadata.json").read_text(encoding="utf-8"))
    assert meta["conditions"] == {"trt": 3, "untrt": 3}
    assert meta["n_ranked"] == 29
    assert meta["params"]["thresholds"] == [0.05, 0.001]

    report = (results / "correlation_test.txt").read_text(encoding="utf-8")
    assert "Pearson's product-moment correlation" in report
    assert "df = 4" in report


def test_failed_artifact_does_not_stop_the_rest(tmp_path: Path, toy_data, fake_model, monkeypatch):
    def _disk_full(*_args, **_kwargs):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(runner, "plot_vst_boxplot", _disk_full)
    summary = runner.run_analysis(_params(tmp_path), data=toy_data, model=fake_model)

    assert not summary.ok
    assert list(summary.failed_artifacts) == ["boxplot_vst"]
    assert "No space left on device" in summary.failed_artifacts["boxplot_vst"]
    assert (tmp_path / "results" / "deseq2_results_all.csv").is_file()
    assert (tmp_path / "figures" / "heatmap_top10.png").is_file()
    assert (tmp_path / "results" / "run_metadata.json").is_file()


def test_unavailable_annotation_keeps_run_going(tmp_path: Path, toy_data, fake_model):
    from degreport.errors import AnnotationUnavailable

    def _offline(ids):
        raise AnnotationUnavailable(ids, "offline")

    summary = runner.run_analysis(
        _params(tmp_path), data=toy_data, model=fake_model, name_lookup=_offline
    )
    assert summary.ok
    assert summary.n_annotated == 0
    assert summary.n_annotation_unavailable == 29
    all_df = pd.read_csv(tmp_path / "results" / "deseq2_results_all.csv")
    assert all_df["symbol"].isna().all()


def test_single_testable_feature_skips_pair_artifacts(tmp_path: Path, toy_data, fake_model):
    counts = toy_data.counts.copy()
    counts.iloc[1:, :] = 0
    data = runner.validate_count_data(counts, toy_data.samples, "dex", "untrt", "trt")
    summary = runner.run_analysis(_params(tmp_path), data=data, model=fake_model)

    assert summary.n_ranked == 1
    assert summary.correlation is None
    assert summary.ok
    assert set(summary.export.skipped) == {"correlation_test", "scatter_two_genes"}
    assert not (tmp_path / "results" / "correlation_test.txt").exists()


class _FixedResultsModel:
    """Returns preset statistics for the first three features."""

    def fit(self, counts, design, reference_level, tested_level=None):
        records = [
            FeatureResult(fid, 100.0, 2.0 - i, 0.3, 5.0, 1e-4 * (i + 1), 1e-3 * (i + 1))
            for i, fid in enumerate(counts.index[:3])
        ]
        normalized = counts.astype(float)
        return ModelFit(
            results=results_to_frame(records),
            normalized_counts=normalized,
            vst_counts=np.log2(normalized + 1.0),
            tested_level=choose_tested_level(design, reference_level, tested_level),
            reference_level=str(reference_level),
        )


def test_two_sample_design_skips_correlation(tmp_path: Path, toy_data):
    counts = toy_data.counts.iloc[:3, :2]
    samples = toy_data.samples.iloc[:2]
    data = runner.validate_count_data(counts, samples, "dex", "untrt", "trt")
    summary = runner.run_analysis(_params(tmp_path), data=data, model=_FixedResultsModel())

    assert summary.ok
    assert summary.n_ranked == 3
    assert summary.correlation is None
    assert summary.export.skipped == {
        "correlation_test": "fewer than 3 samples",
        "scatter_two_genes": "fewer than 3 samples",
    }
    all_df = pd.read_csv(tmp_path / "results" / "deseq2_results_all.csv")
    assert all_df["ensembl_id"].tolist() == list(counts.index)
    assert (tmp_path / "figures" / "heatmap_top10.png").is_file()


def test_run_pipeline_from_config(tmp_path: Path, toy_tables, fake_model, monkeypatch):
    counts, samples = toy_tables
    counts.to_csv(tmp_path / "counts.csv")
    samples.to_csv(tmp_path / "coldata.csv")
    cfg = {
        **TOY_CFG,
        "dataset": {
            "source": "csv",
            "counts_path": str(tmp_path / "counts.csv"),
            "samples_path": str(tmp_path / "coldata.csv"),
        },
        "annotation": {"backend": "none"},
    }
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(json.dumps(cfg), encoding="utf-8")
    monkeypatch.setattr(runner, "PyDESeq2Model", lambda **_kwargs: fake_model)

    out = tmp_path / "run"
    summary = runner.run_pipeline(cfg_path, outdir=out)

    assert summary.ok
    log_text = (out / "results" / "logs" / "degreport.log").read_text(encoding="utf-8")
    assert "Loaded 30 features x 6 samples" in log_text
    assert "Analysis complete" in log_text
    assert (out / "figures" / "boxplot_vst.png").is_file()
