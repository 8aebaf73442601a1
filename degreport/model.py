"""Differential-expression model boundary and the PyDESeq2 implementation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import numpy as np
import pandas as pd

from degreport.errors import DataShapeError

# PyDESeq2 result column -> canonical column.
PYDESEQ2_COLUMNS: dict[str, str] = {
    "baseMean": "base_mean",
    "log2FoldChange": "log2_fold_change",
    "lfcSE": "standard_error",
    "stat": "test_statistic",
    "pvalue": "p_value",
    "padj": "adjusted_p_value",
}


@dataclass(frozen=True)
class ModelFit:
    """Model output consumed by the selection and export stages.

    - `results`: one row per input feature, canonical columns, input order.
    - `normalized_counts`: size-factor normalized counts, features x samples.
    - `vst_counts`: variance-stabilized counts, features x samples (plots only).
    """

    results: pd.DataFrame
    normalized_counts: pd.DataFrame
    vst_counts: pd.DataFrame
    tested_level: str
    reference_level: str


class DifferentialExpressionModel(Protocol):
    def fit(
        self,
        counts: pd.DataFrame,
        design: pd.Series,
        reference_level: str,
        tested_level: str | None = None,
    ) -> ModelFit: ...


def choose_tested_level(
    design: pd.Series, reference_level: str, tested_level: str | None = None
) -> str:
    """Level contrasted against the reference; first non-reference level by default."""
    levels = sorted(pd.unique(design.astype(str)))
    if str(reference_level) not in levels:
        raise DataShapeError(f"Reference level '{reference_level}' not in conditions {levels}.")
    if tested_level is not None:
        if str(tested_level) not in levels or str(tested_level) == str(reference_level):
            raise DataShapeError(
                f"Tested level '{tested_level}' must be a non-reference condition of {levels}."
            )
        return str(tested_level)
    others = [lvl for lvl in levels if lvl != str(reference_level)]
    if not others:
        raise DataShapeError("Design needs at least two conditions.")
    return others[0]


def results_from_pydeseq2(results_df: pd.DataFrame, feature_index: pd.Index) -> pd.DataFrame:
    """Map a PyDESeq2 `results_df` onto canonical columns in input feature order.

    Features PyDESeq2 dropped are restored with NaN statistics.
    """
    renamed = results_df.rename(columns=PYDESEQ2_COLUMNS)
    renamed = renamed.reindex(feature_index)
    out = pd.DataFrame({"feature_id": feature_index.astype(str)})
    out["display_name"] = pd.Series([None] * len(out), dtype=object)
    for col in PYDESEQ2_COLUMNS.values():
        if col in renamed.columns:
            out[col] = renamed[col].to_numpy(dtype=float)
        else:
            out[col] = np.nan
    return out


class PyDESeq2Model:
    """Negative-binomial GLM with Wald tests via PyDESeq2.

    Adjusted p-values come from PyDESeq2 (BH with independent filtering and
    Cook's outlier flagging); untestable features keep a NaN `padj`.
    """

    def __init__(
        self,
        condition_column: str = "condition",
        alpha: float = 0.05,
        n_cpus: int = 1,
        refit_cooks: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self.condition_column = str(condition_column)
        self.alpha = float(alpha)
        self.n_cpus = int(n_cpus)
        self.refit_cooks = bool(refit_cooks)
        self.logger = logger or logging.getLogger("degreport")

    def fit(
        self,
        counts: pd.DataFrame,
        design: pd.Series,
        reference_level: str,
        tested_level: str | None = None,
    ) -> ModelFit:
        from pydeseq2.dds import DeseqDataSet
        from pydeseq2.default_inference import DefaultInference
        from pydeseq2.ds import DeseqStats

        if list(design.index.astype(str)) != list(counts.columns.astype(str)):
            raise DataShapeError("Design index must match count-matrix columns in order.")
        tested = choose_tested_level(design, reference_level, tested_level)
        factor = self.condition_column

        # Effect sign is set by the contrast, not by the intercept level.
        metadata = pd.DataFrame({factor: design.astype(str).to_numpy()}, index=counts.columns)
        inference = DefaultInference(n_cpus=self.n_cpus)

        self.logger.info(
            "Fitting PyDESeq2 model: %d features, design ~%s, %s vs %s",
            counts.shape[0],
            factor,
            tested,
            reference_level,
        )
        dds = DeseqDataSet(
            counts=counts.T,
            metadata=metadata,
            design=f"~{factor}",
            refit_cooks=self.refit_cooks,
            inference=inference,
            quiet=True,
        )
        dds.deseq2()

        ds = DeseqStats(
            dds,
            contrast=[factor, tested, str(reference_level)],
            alpha=self.alpha,
            inference=inference,
            quiet=True,
        )
        ds.summary()
        results = results_from_pydeseq2(ds.results_df, counts.index)

        normalized = pd.DataFrame(
            np.asarray(dds.layers["normed_counts"]).T,
            index=counts.index,
            columns=counts.columns,
        )
        dds.vst(use_design=False)
        vst = pd.DataFrame(
            np.asarray(dds.layers["vst_counts"]).T,
            index=counts.index,
            columns=counts.columns,
        )
        n_tested = int(results["adjusted_p_value"].notna().sum())
        self.logger.info(
            "PyDESeq2 finished: %d/%d features with adjusted p-values",
            n_tested,
            results.shape[0],
        )
        return ModelFit(
            results=results,
            normalized_counts=normalized,
            vst_counts=vst,
            tested_level=tested,
            reference_level=str(reference_level),
        )
