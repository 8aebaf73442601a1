"""Typed containers and column conventions for differential-expression tables."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Iterable

import numpy as np
import pandas as pd

from degreport.errors import DataShapeError

RESULT_COLUMNS: tuple[str, ...] = (
    "feature_id",
    "display_name",
    "base_mean",
    "log2_fold_change",
    "standard_error",
    "test_statistic",
    "p_value",
    "adjusted_p_value",
)
NUMERIC_COLUMNS: tuple[str, ...] = RESULT_COLUMNS[2:]

# Header names of the exported tables, same order as RESULT_COLUMNS.
EXPORT_HEADERS: dict[str, str] = {
    "feature_id": "ensembl_id",
    "display_name": "symbol",
    "base_mean": "baseMean",
    "log2_fold_change": "log2FoldChange",
    "standard_error": "lfcSE",
    "test_statistic": "stat",
    "p_value": "pvalue",
    "adjusted_p_value": "padj",
}

STATUS_MAPPED = "mapped"
STATUS_MISSING = "missing"
STATUS_UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class FeatureResult:
    """One tested feature as produced by the model-fit stage."""

    feature_id: str
    base_mean: float
    log2_fold_change: float
    standard_error: float
    test_statistic: float
    p_value: float
    adjusted_p_value: float = math.nan
    display_name: str | None = None


@dataclass(frozen=True)
class CorrelationResult:
    """Pearson correlation between two features across samples."""

    feature_x: str
    feature_y: str
    label_x: str
    label_y: str
    r: float
    p_value: float
    ci_low: float
    ci_high: float
    t_statistic: float
    df: int
    n: int
    confidence_level: float = 0.95
    method: str = "pearson"


def results_to_frame(records: Iterable[FeatureResult]) -> pd.DataFrame:
    """Build a canonical results table from `FeatureResult` records."""
    rows = [asdict(r) for r in records]
    if not rows:
        return empty_results_frame()
    return pd.DataFrame(rows, columns=list(RESULT_COLUMNS))


def empty_results_frame() -> pd.DataFrame:
    frame = pd.DataFrame({col: pd.Series(dtype=float) for col in NUMERIC_COLUMNS})
    frame.insert(0, "display_name", pd.Series(dtype=object))
    frame.insert(0, "feature_id", pd.Series(dtype=object))
    return frame


def validate_results_frame(results: pd.DataFrame) -> pd.DataFrame:
    """Check canonical columns and identifier uniqueness; returns a typed copy."""
    missing = [c for c in ("feature_id", "adjusted_p_value") if c not in results.columns]
    if missing:
        raise DataShapeError(f"Results table missing required columns: {missing}")
    ids = results["feature_id"].astype(str)
    dup = ids[ids.duplicated()]
    if not dup.empty:
        raise DataShapeError(
            f"feature_id must be unique; duplicated: {sorted(set(dup))[:5]}"
        )
    out = results.copy()
    out["feature_id"] = ids.to_numpy()
    for col in NUMERIC_COLUMNS:
        if col in out.columns:
            out[col] = pd.to_numeric(out[col], errors="coerce").astype(float)
    adj = out["adjusted_p_value"].to_numpy(dtype=float)
    finite = adj[np.isfinite(adj)]
    if np.any((finite < 0.0) | (finite > 1.0)):
        raise DataShapeError("adjusted_p_value must be within [0, 1] (or NaN).")
    return out
