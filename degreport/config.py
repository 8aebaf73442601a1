"""Configuration loading utilities for degreport pipelines."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

DATASET_SOURCES = ("example", "csv", "h5ad")
ANNOTATION_BACKENDS = ("none", "table", "mygene")


def load_json_config(path: str | Path) -> dict[str, Any]:
    """Load and validate a pipeline config from a JSON file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if config_path.suffix.lower() != ".json":
        raise ValueError(
            f"Unsupported config format for '{config_path}'. Use a .json config file."
        )

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config '{config_path}' at line {exc.lineno}, "
            f"column {exc.colno}: {exc.msg}"
        ) from exc

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid config root in '{config_path}': expected JSON object, got {type(data).__name__}."
        )
    return data


@dataclass(frozen=True)
class DatasetParams:
    source: str = "example"
    counts_path: str | None = None
    samples_path: str | None = None
    h5ad_path: str | None = None
    layer: str | None = None


@dataclass(frozen=True)
class AnnotationParams:
    backend: str = "none"
    table_path: str | None = None
    id_column: str = "ensembl_id"
    name_column: str = "symbol"
    species: str = "human"
    batch_size: int = 1000


@dataclass(frozen=True)
class PipelineParams:
    """Resolved parameters for one pipeline run."""

    dataset: DatasetParams = field(default_factory=DatasetParams)
    annotation: AnnotationParams = field(default_factory=AnnotationParams)
    condition_column: str = "condition"
    reference_level: str = "A"
    tested_level: str | None = None
    alpha: float = 0.05
    thresholds: tuple[float, ...] = (0.05, 0.001)
    top_k: int = 10
    heatmap_top_n: int = 10
    n_cpus: int = 1
    outdir: str = "."

    @property
    def results_dir(self) -> Path:
        return Path(self.outdir) / "results"

    @property
    def figures_dir(self) -> Path:
        return Path(self.outdir) / "figures"

    @property
    def log_path(self) -> Path:
        return self.results_dir / "logs" / "degreport.log"

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["thresholds"] = list(self.thresholds)
        return d


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _build_dataset_params(raw: dict[str, Any]) -> DatasetParams:
    source = str(raw.get("source", "example")).strip().lower()
    if source not in DATASET_SOURCES:
        raise ValueError(
            f"Unknown dataset source '{source}'. Expected one of: {', '.join(DATASET_SOURCES)}."
        )
    params = DatasetParams(
        source=source,
        counts_path=_optional_str(raw.get("counts_path")),
        samples_path=_optional_str(raw.get("samples_path")),
        h5ad_path=_optional_str(raw.get("h5ad_path")),
        layer=_optional_str(raw.get("layer")),
    )
    if source == "csv" and (params.counts_path is None or params.samples_path is None):
        raise ValueError("dataset.source 'csv' requires counts_path and samples_path.")
    if source == "h5ad" and params.h5ad_path is None:
        raise ValueError("dataset.source 'h5ad' requires h5ad_path.")
    return params


def _build_annotation_params(raw: dict[str, Any]) -> AnnotationParams:
    backend = str(raw.get("backend", "none")).strip().lower()
    if backend not in ANNOTATION_BACKENDS:
        raise ValueError(
            f"Unknown annotation backend '{backend}'. Expected one of: {', '.join(ANNOTATION_BACKENDS)}."
        )
    params = AnnotationParams(
        backend=backend,
        table_path=_optional_str(raw.get("table_path")),
        id_column=str(raw.get("id_column", "ensembl_id")),
        name_column=str(raw.get("name_column", "symbol")),
        species=str(raw.get("species", "human")),
        batch_size=int(raw.get("batch_size", 1000)),
    )
    if backend == "table" and params.table_path is None:
        raise ValueError("annotation.backend 'table' requires table_path.")
    if params.batch_size <= 0:
        raise ValueError("annotation.batch_size must be > 0.")
    return params


def build_pipeline_params(
    cfg: dict[str, Any], *, outdir: str | Path | None = None
) -> PipelineParams:
    """Resolve a raw config dict into `PipelineParams`, applying defaults."""
    dataset_raw = cfg.get("dataset", {}) or {}
    annotation_raw = cfg.get("annotation", {}) or {}
    if not isinstance(dataset_raw, dict) or not isinstance(annotation_raw, dict):
        raise ValueError("'dataset' and 'annotation' must be JSON objects.")

    thresholds = tuple(float(t) for t in cfg.get("thresholds", (0.05, 0.001)))
    if not thresholds:
        raise ValueError("thresholds must contain at least one value.")
    for t in thresholds:
        if not 0.0 < t <= 1.0:
            raise ValueError(f"threshold {t} must be in (0, 1].")

    tested = cfg.get("tested_level")
    params = PipelineParams(
        dataset=_build_dataset_params(dataset_raw),
        annotation=_build_annotation_params(annotation_raw),
        condition_column=str(cfg.get("condition_column", "condition")),
        reference_level=str(cfg.get("reference_level", "A")),
        tested_level=None if tested is None else str(tested),
        alpha=float(cfg.get("alpha", 0.05)),
        thresholds=thresholds,
        top_k=int(cfg.get("top_k", 10)),
        heatmap_top_n=int(cfg.get("heatmap_top_n", 10)),
        n_cpus=int(cfg.get("n_cpus", 1)),
        outdir=str(outdir if outdir is not None else cfg.get("outdir", ".")),
    )
    if params.top_k < 0 or params.heatmap_top_n < 0:
        raise ValueError("top_k and heatmap_top_n must be non-negative.")
    if not 0.0 < params.alpha < 1.0:
        raise ValueError("alpha must be in (0, 1).")
    return params
