"""Count-matrix providers and design validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd
import scipy.sparse as sp

from degreport.errors import DataShapeError

EXAMPLE_CONDITION_COLUMN = "condition"
EXAMPLE_REFERENCE_LEVEL = "A"


@dataclass(frozen=True)
class CountData:
    """Raw counts (rows = features, columns = samples) plus a sample sheet."""

    counts: pd.DataFrame
    samples: pd.DataFrame
    condition_column: str

    @property
    def design(self) -> pd.Series:
        return self.samples[self.condition_column]

    @property
    def n_features(self) -> int:
        return int(self.counts.shape[0])

    @property
    def n_samples(self) -> int:
        return int(self.counts.shape[1])

    def library_sizes(self) -> pd.Series:
        return self.counts.sum(axis=0)


def _read_table(path: str | Path, **kwargs) -> pd.DataFrame:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input file '{p}' not found.")
    sep = "\t" if p.suffix.lower() in {".tsv", ".txt"} else ","
    return pd.read_csv(p, sep=sep, **kwargs)


def validate_count_data(
    counts: pd.DataFrame,
    samples: pd.DataFrame,
    condition_column: str,
    reference_level: str,
    tested_level: str | None = None,
) -> CountData:
    """Check that counts and design agree; raises `DataShapeError` otherwise.

    Samples are aligned to the count-matrix column order.
    """
    if counts.empty:
        raise DataShapeError("Count matrix is empty.")
    if condition_column not in samples.columns:
        raise DataShapeError(f"Sample sheet has no column '{condition_column}'.")

    counts = counts.copy()
    counts.index = counts.index.astype(str)
    counts.columns = counts.columns.astype(str)
    samples = samples.copy()
    samples.index = samples.index.astype(str)

    dup_features = counts.index[counts.index.duplicated()]
    if len(dup_features):
        raise DataShapeError(
            f"Feature identifiers must be unique; duplicated: {sorted(set(dup_features))[:5]}"
        )
    if counts.columns.duplicated().any():
        raise DataShapeError("Sample identifiers in the count matrix must be unique.")

    if counts.shape[1] != samples.shape[0]:
        raise DataShapeError(
            f"Count matrix has {counts.shape[1]} samples but the design has {samples.shape[0]}."
        )
    missing = [s for s in counts.columns if s not in samples.index]
    if missing:
        raise DataShapeError(f"Samples missing from the design: {missing[:5]}")
    samples = samples.loc[list(counts.columns)]

    try:
        values = counts.to_numpy(dtype=float)
    except (TypeError, ValueError) as exc:
        raise DataShapeError("Count matrix must be numeric.") from exc
    if not np.all(np.isfinite(values)):
        raise DataShapeError("Count matrix contains NaN/inf.")
    if np.any(values < 0):
        raise DataShapeError("Count matrix contains negative values.")
    if not np.all(values == np.round(values)):
        raise DataShapeError("Count matrix must contain integer counts.")
    counts = counts.astype(np.int64)

    design = samples[condition_column]
    if design.isna().any():
        raise DataShapeError(f"Design column '{condition_column}' has missing labels.")
    samples[condition_column] = design.astype(str)
    levels = sorted(samples[condition_column].unique())
    if len(levels) < 2:
        raise DataShapeError(
            f"Design column '{condition_column}' needs at least two conditions; found {levels}."
        )
    if str(reference_level) not in levels:
        raise DataShapeError(
            f"Reference level '{reference_level}' not in conditions {levels}."
        )
    if tested_level is not None and (
        str(tested_level) not in levels or str(tested_level) == str(reference_level)
    ):
        raise DataShapeError(
            f"Tested level '{tested_level}' must be a non-reference condition of {levels}."
        )

    return CountData(counts=counts, samples=samples, condition_column=condition_column)


def load_example_dataset() -> tuple[pd.DataFrame, pd.DataFrame]:
    """PyDESeq2's bundled synthetic dataset as (counts, samples)."""
    from pydeseq2.utils import load_example_data

    counts = load_example_data(modality="raw_counts", dataset="synthetic", debug=False)
    samples = load_example_data(modality="metadata", dataset="synthetic", debug=False)
    return counts.T, samples


def load_count_tables(
    counts_path: str | Path, samples_path: str | Path
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Read a count matrix (features x samples) and a sample sheet (samples x columns)."""
    counts = _read_table(counts_path, index_col=0)
    samples = _read_table(samples_path, index_col=0)
    return counts, samples


def load_h5ad(path: str | Path, layer: str | None = None) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Read an AnnData file with samples in `obs` and features in `var`."""
    import anndata as ad

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input file '{p}' not found.")
    adata = ad.read_h5ad(p)
    if layer is not None:
        if layer not in adata.layers:
            raise KeyError(f"adata.layers['{layer}'] not found.")
        X = adata.layers[layer]
    else:
        X = adata.X
    dense = X.toarray() if sp.issparse(X) else np.asarray(X)
    counts = pd.DataFrame(
        dense.T, index=adata.var_names.astype(str), columns=adata.obs_names.astype(str)
    )
    return counts, adata.obs.copy()


def load_dataset(
    dataset,
    *,
    condition_column: str,
    reference_level: str,
    tested_level: str | None = None,
    logger: logging.Logger | None = None,
) -> CountData:
    """Load and validate the dataset described by `DatasetParams`."""
    log = logger or logging.getLogger("degreport")
    if dataset.source == "example":
        counts, samples = load_example_dataset()
    elif dataset.source == "csv":
        counts, samples = load_count_tables(dataset.counts_path, dataset.samples_path)
    elif dataset.source == "h5ad":
        counts, samples = load_h5ad(dataset.h5ad_path, layer=dataset.layer)
    else:
        raise ValueError(f"Unknown dataset source '{dataset.source}'.")

    data = validate_count_data(
        counts, samples, condition_column, reference_level, tested_level
    )
    log.info(
        "Loaded %d features x %d samples (source=%s, design=%s)",
        data.n_features,
        data.n_samples,
        dataset.source,
        condition_column,
    )
    return data
