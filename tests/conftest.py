from __future__ import annotations

import math
import os

os.environ.setdefault("MPLBACKEND", "Agg")
os.environ.setdefault("MPLCONFIGDIR", "/tmp/mpl-test")

import matplotlib

matplotlib.use("Agg", force=True)

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from degreport.core.types import FeatureResult, results_to_frame
from degreport.data import CountData, validate_count_data
from degreport.model import ModelFit, choose_tested_level


class FakeModel:
    """Welch t-test on log2 size-normalized counts.

    Leaves `adjusted_p_value` out so the pipeline's BH stage fills it.
    """

    def __init__(self) -> None:
        self.calls = 0

    def fit(self, counts, design, reference_level, tested_level=None):
        self.calls += 1
        tested = choose_tested_level(design, reference_level, tested_level)
        lib = counts.sum(axis=0).astype(float)
        normalized = counts.astype(float) / (lib / lib.mean())
        logged = np.log2(normalized + 1.0)
        labels = design.astype(str).to_numpy()
        ref_mask = labels == str(reference_level)
        test_mask = labels == tested

        records = []
        for fid in counts.index:
            if counts.loc[fid].sum() == 0:
                records.append(
                    FeatureResult(fid, 0.0, math.nan, math.nan, math.nan, math.nan)
                )
                continue
            a = logged.loc[fid].to_numpy()[test_mask]
            b = logged.loc[fid].to_numpy()[ref_mask]
            se = math.sqrt(a.var(ddof=1) / a.size + b.var(ddof=1) / b.size)
            if se == 0.0:
                t, p = math.nan, math.nan
            else:
                res = stats.ttest_ind(a, b, equal_var=False)
                t, p = float(res.statistic), float(res.pvalue)
            records.append(
                FeatureResult(
                    feature_id=fid,
                    base_mean=float(normalized.loc[fid].mean()),
                    log2_fold_change=float(a.mean() - b.mean()),
                    standard_error=se,
                    test_statistic=t,
                    p_value=p,
                )
            )
        results = results_to_frame(records).drop(columns=["adjusted_p_value"])
        return ModelFit(
            results=results,
            normalized_counts=normalized,
            vst_counts=logged,
            tested_level=tested,
            reference_level=str(reference_level),
        )


def make_toy_counts(n_features: int = 30, seed: int = 7) -> tuple[pd.DataFrame, pd.DataFrame]:
    rng = np.random.default_rng(seed)
    samples = [f"SRR{1000 + i}" for i in range(6)]
    conditions = ["untrt", "trt"] * 3
    base = rng.integers(50, 400, size=(n_features, 1))
    counts = rng.poisson(np.repeat(base, 6, axis=1)).astype(np.int64)
    trt = np.array([c == "trt" for c in conditions])
    # first five features strongly induced, sixth strongly repressed
    counts[:5, trt] = counts[:5, trt] * 8 + 20
    counts[5, trt] = counts[5, trt] // 10
    counts[-1, :] = 0
    ids = [f"ENSG{i:011d}" for i in range(1, n_features + 1)]
    counts_df = pd.DataFrame(counts, index=ids, columns=samples)
    samples_df = pd.DataFrame({"dex": conditions, "cell": ["N61311", "N61311", "N052611", "N052611", "N080611", "N080611"]}, index=samples)
    return counts_df, samples_df


@pytest.fixture
def toy_tables():
    return make_toy_counts()


@pytest.fixture
def toy_data(toy_tables) -> CountData:
    counts, samples = toy_tables
    return validate_count_data(counts, samples, "dex", "untrt", "trt")


@pytest.fixture
def fake_model() -> FakeModel:
    return FakeModel()


@pytest.fixture
def results_table() -> pd.DataFrame:
    return results_to_frame(
        [
            FeatureResult("ENSG1", 100.0, 2.0, 0.3, 6.6, 1e-6, 0.2),
            FeatureResult("ENSG2", 5.0, math.nan, math.nan, math.nan, math.nan, math.nan),
            FeatureResult("ENSG3", 800.0, -1.5, 0.2, -7.5, 1e-9, 0.01),
        ]
    )
