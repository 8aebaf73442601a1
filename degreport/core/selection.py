"""Ranking, top-k filtering and display-name annotation of results tables.

All functions return new tables; inputs are never modified.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Mapping, Sequence, Union

import numpy as np
import pandas as pd

from degreport.annotation import NameLookup
from degreport.core.types import (
    STATUS_MAPPED,
    STATUS_MISSING,
    STATUS_UNAVAILABLE,
    validate_results_frame,
)
from degreport.errors import AnnotationUnavailable

DEFAULT_BATCH_SIZE = 1000

NameSource = Union[
    NameLookup,
    Mapping[str, Any],
    Callable[[list[str]], Mapping[str, Any]],
]


def rank(annotated: pd.DataFrame) -> pd.DataFrame:
    """Sort by adjusted p-value ascending, dropping rows without one.

    The sort is stable, so rows sharing an adjusted p-value keep their input
    order and ranking an already ranked table returns it unchanged.
    """
    table = validate_results_frame(annotated)
    keep = table["adjusted_p_value"].notna().to_numpy()
    ranked = table.loc[keep].sort_values(
        "adjusted_p_value", ascending=True, kind="mergesort"
    )
    return ranked.reset_index(drop=True)


def top_k(ranked: pd.DataFrame, threshold: float, k: int) -> pd.DataFrame:
    """First `k` rows of a ranked table with adjusted p-value below `threshold`."""
    if int(k) < 0:
        raise ValueError("k must be non-negative.")
    if not math.isfinite(float(threshold)):
        raise ValueError("threshold must be finite.")
    adj = pd.to_numeric(ranked["adjusted_p_value"], errors="coerce")
    passing = ranked.loc[(adj < float(threshold)).to_numpy()]
    return passing.head(int(k)).reset_index(drop=True)


def first_name(value: Any) -> str | None:
    """Reduce a lookup value to one display name; the first candidate wins."""
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    if isinstance(value, (Sequence, np.ndarray, pd.Series)):
        for candidate in list(value):
            name = first_name(candidate)
            if name is not None:
                return name
        return None
    if pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _query(name_lookup: NameSource, ids: list[str]) -> Mapping[str, Any]:
    if isinstance(name_lookup, Mapping):
        return {fid: name_lookup.get(fid) for fid in ids}
    if hasattr(name_lookup, "lookup_names"):
        return name_lookup.lookup_names(ids)
    if callable(name_lookup):
        return name_lookup(ids)
    raise TypeError(
        f"name_lookup must be a Mapping, a callable or provide lookup_names(); got {type(name_lookup).__name__}."
    )


def resolve_display_names(
    feature_ids: Sequence[str],
    name_lookup: NameSource,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    logger: logging.Logger | None = None,
) -> tuple[list[str | None], list[str]]:
    """Look up names batch by batch.

    Returns `(names, statuses)` aligned with `feature_ids`. A batch whose lookup
    raises `AnnotationUnavailable` is marked unavailable and the remaining
    batches still run; any other exception propagates.
    """
    if int(batch_size) <= 0:
        raise ValueError("batch_size must be > 0.")
    log = logger or logging.getLogger("degreport")
    ids = [str(f) for f in feature_ids]
    names: list[str | None] = [None] * len(ids)
    statuses: list[str] = [STATUS_MISSING] * len(ids)

    for start in range(0, len(ids), int(batch_size)):
        batch = ids[start : start + int(batch_size)]
        try:
            mapping = _query(name_lookup, batch)
        except AnnotationUnavailable as exc:
            log.warning(
                "Annotation skipped for %d identifier(s) starting at %s: %s",
                len(batch),
                batch[0],
                exc.reason or exc,
            )
            for offset in range(len(batch)):
                statuses[start + offset] = STATUS_UNAVAILABLE
            continue
        for offset, fid in enumerate(batch):
            name = first_name(mapping.get(fid))
            if name is not None:
                names[start + offset] = name
                statuses[start + offset] = STATUS_MAPPED
    return names, statuses


def annotate(
    results: pd.DataFrame,
    name_lookup: NameSource,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """Attach `display_name` and `annotation_status` without reordering rows.

    `name_lookup` is a Mapping of identifier to name(s), a callable taking a
    list of identifiers, or an object with `lookup_names(ids)`. When several
    names are returned for one identifier the first is used.
    """
    table = validate_results_frame(results)
    names, statuses = resolve_display_names(
        table["feature_id"].tolist(), name_lookup, batch_size=batch_size, logger=logger
    )
    out = table.drop(columns=["display_name", "annotation_status"], errors="ignore")
    out.insert(1, "display_name", pd.Series(names, index=out.index, dtype=object))
    out["annotation_status"] = statuses
    return out


def display_labels(table: pd.DataFrame) -> list[str]:
    """Display name where present, otherwise the feature identifier."""
    if "display_name" not in table.columns:
        return table["feature_id"].astype(str).tolist()
    labels = []
    for fid, name in zip(table["feature_id"], table["display_name"]):
        label = first_name(name)
        labels.append(label if label is not None else str(fid))
    return labels
