"""degreport public API."""

from degreport._version import __version__
from degreport.core.selection import annotate, rank, top_k
from degreport.core.types import FeatureResult, results_to_frame
from degreport.errors import (
    AnnotationUnavailable,
    DataShapeError,
    DegReportError,
    ExportIOError,
)
from degreport.stats import bh_adjust


def run_pipeline(*args, **kwargs):
    """Lazy wrapper to avoid importing plotting and model dependencies at import time."""
    from degreport.pipeline.runner import run_pipeline as _run_pipeline

    return _run_pipeline(*args, **kwargs)


__all__ = [
    "__version__",
    "annotate",
    "rank",
    "top_k",
    "bh_adjust",
    "FeatureResult",
    "results_to_frame",
    "DegReportError",
    "DataShapeError",
    "AnnotationUnavailable",
    "ExportIOError",
    "run_pipeline",
]
