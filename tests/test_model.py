from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from degreport.core.types import RESULT_COLUMNS
from degreport.errors import DataShapeError
from degreport.model import choose_tested_level, results_from_pydeseq2


def test_choose_tested_level():
    design = pd.Series(["B", "A", "C", "A"])
    assert choose_tested_level(design, "A") == "B"
    assert choose_tested_level(design, "A", "C") == "C"
    with pytest.raises(DataShapeError):
        choose_tested_level(design, "Z")
    with pytest.raises(DataShapeError):
        choose_tested_level(design, "A", "A")


def test_results_from_pydeseq2_restores_feature_order():
    results_df = pd.DataFrame(
        {
            "baseMean": [10.0, 250.0],
            "log2FoldChange": [0.5, -2.0],
            "lfcSE": [0.4, 0.2],
            "stat": [1.25, -10.0],
            "pvalue": [0.21, 1e-20],
            "padj": [np.nan, 1e-18],
        },
        index=["g3", "g1"],
    )
    out = results_from_pydeseq2(results_df, pd.Index(["g1", "g2", "g3"]))
    assert list(out.columns) == list(RESULT_COLUMNS)
    assert out["feature_id"].tolist() == ["g1", "g2", "g3"]
    assert out.loc[0, "log2_fold_change"] == -2.0
    assert out.loc[1, ["base_mean", "p_value", "adjusted_p_value"]].isna().all()
    assert np.isnan(out.loc[2, "adjusted_p_value"])
    assert out["display_name"].isna().all()


def test_pydeseq2_fit_on_example_dataset():
    pytest.importorskip("pydeseq2")
    from degreport.data import load_example_dataset, validate_count_data
    from degreport.model import PyDESeq2Model

    counts, samples = load_example_dataset()
    counts = counts.iloc[:40]
    data = validate_count_data(counts, samples, "condition", "A")
    fit = PyDESeq2Model(condition_column="condition").fit(data.counts, data.design, "A")

    assert fit.tested_level == "B"
    assert fit.results["feature_id"].tolist() == list(data.counts.index)
    assert fit.normalized_counts.shape == data.counts.shape
    assert fit.vst_counts.shape == data.counts.shape
    padj = fit.results["adjusted_p_value"].dropna()
    assert ((padj >= 0) & (padj <= 1)).all()
