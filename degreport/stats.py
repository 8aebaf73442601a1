"""Multiple-testing adjustment and correlation helpers."""

from __future__ import annotations

import math

import numpy as np
import pandas as pd
from scipy import stats

from degreport.core.types import CorrelationResult


def bh_adjust(pvals: np.ndarray) -> np.ndarray:
    """Benjamini-Hochberg adjustment (pure NumPy, stable ordering).

    Length and order are preserved. NaN p-values stay NaN and do not count
    toward the family size.
    """
    arr = np.asarray(pvals, dtype=float)
    flat = arr.ravel()
    q_flat = np.full_like(flat, np.nan, dtype=float)

    finite_mask = np.isfinite(flat)
    if np.any((flat[finite_mask] < 0.0) | (flat[finite_mask] > 1.0)):
        raise ValueError("p-values must be within [0, 1] (or NaN).")

    if np.any(finite_mask):
        p = flat[finite_mask]
        m = int(p.size)
        order = np.argsort(p, kind="mergesort")
        ranked = p[order]
        ranks = np.arange(1, m + 1, dtype=float)
        adjusted = ranked * (float(m) / ranks)
        adjusted = np.minimum.accumulate(adjusted[::-1])[::-1]
        adjusted = np.clip(adjusted, 0.0, 1.0)

        q_valid = np.empty_like(ranked)
        q_valid[order] = adjusted
        q_flat[finite_mask] = q_valid

    return q_flat.reshape(arr.shape)


def ensure_adjusted(results: pd.DataFrame) -> pd.DataFrame:
    """Add BH `adjusted_p_value` when the model did not provide the column."""
    out = results.copy()
    if "adjusted_p_value" in out.columns:
        return out
    out["adjusted_p_value"] = bh_adjust(out["p_value"].to_numpy(dtype=float))
    return out


def log2_normalized(normalized_counts: pd.DataFrame, pseudocount: float = 1.0) -> pd.DataFrame:
    return np.log2(normalized_counts.astype(float) + float(pseudocount))


def pearson_correlation(
    x: np.ndarray,
    y: np.ndarray,
    *,
    feature_x: str,
    feature_y: str,
    label_x: str | None = None,
    label_y: str | None = None,
    confidence_level: float = 0.95,
) -> CorrelationResult:
    """Two-sided Pearson product-moment correlation test.

    The confidence interval (Fisher z) needs at least four samples and is NaN
    otherwise.
    """
    xa = np.asarray(x, dtype=float).ravel()
    ya = np.asarray(y, dtype=float).ravel()
    if xa.size != ya.size:
        raise ValueError("x and y must have the same length.")
    if xa.size < 3:
        raise ValueError("Correlation test needs at least 3 samples.")

    n = int(xa.size)
    df = n - 2
    if np.ptp(xa) == 0.0 or np.ptp(ya) == 0.0:
        r, p = math.nan, math.nan
        ci_low, ci_high = math.nan, math.nan
    else:
        res = stats.pearsonr(xa, ya)
        r, p = float(res.statistic), float(res.pvalue)
        if n > 3:
            ci = res.confidence_interval(confidence_level=confidence_level)
            ci_low, ci_high = float(ci.low), float(ci.high)
        else:
            ci_low, ci_high = math.nan, math.nan

    if not math.isfinite(r):
        t_stat = math.nan
    elif abs(r) >= 1.0:
        t_stat = math.copysign(math.inf, r)
    else:
        t_stat = r * math.sqrt(df / (1.0 - r * r))

    return CorrelationResult(
        feature_x=str(feature_x),
        feature_y=str(feature_y),
        label_x=str(label_x or feature_x),
        label_y=str(label_y or feature_y),
        r=r,
        p_value=p,
        ci_low=ci_low,
        ci_high=ci_high,
        t_statistic=t_stat,
        df=df,
        n=n,
        confidence_level=float(confidence_level),
    )


def format_correlation_report(result: CorrelationResult) -> str:
    """Render a correlation test in the familiar `cor.test` text layout."""
    pct = int(round(result.confidence_level * 100))
    lines = [
        "",
        "\tPearson's product-moment correlation",
        "",
        f"data:  {result.label_x} ({result.feature_x}) and {result.label_y} ({result.feature_y})",
        f"t = {result.t_statistic:.4g}, df = {result.df}, p-value = {result.p_value:.4g}",
        "alternative hypothesis: true correlation is not equal to 0",
        f"{pct} percent confidence interval:",
        f" {result.ci_low:.7f} {result.ci_high:.7f}",
        "sample estimates:",
        "      cor ",
        f"{result.r:.7f} ",
        "",
        f"n = {result.n}",
        "",
    ]
    return "\n".join(lines)
