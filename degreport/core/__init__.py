"""Core selection subpackage."""

from degreport.core.selection import annotate, display_labels, first_name, rank, top_k
from degreport.core.types import (
    EXPORT_HEADERS,
    RESULT_COLUMNS,
    CorrelationResult,
    FeatureResult,
    results_to_frame,
    validate_results_frame,
)

__all__ = [
    "FeatureResult",
    "CorrelationResult",
    "RESULT_COLUMNS",
    "EXPORT_HEADERS",
    "results_to_frame",
    "validate_results_frame",
    "annotate",
    "rank",
    "top_k",
    "first_name",
    "display_labels",
]
