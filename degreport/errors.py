"""Exception types raised by degreport pipelines."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


class DegReportError(Exception):
    """Base class for degreport errors."""


class DataShapeError(DegReportError, ValueError):
    """Count matrix and sample design are inconsistent; raised before any fit."""


class AnnotationUnavailable(DegReportError):
    """A name lookup could not be reached for a set of identifiers."""

    def __init__(self, feature_ids: Iterable[str], reason: str = "") -> None:
        self.feature_ids = tuple(str(f) for f in feature_ids)
        self.reason = str(reason)
        msg = f"Annotation unavailable for {len(self.feature_ids)} identifier(s)"
        if self.reason:
            msg = f"{msg}: {self.reason}"
        super().__init__(msg)


class ExportIOError(DegReportError, OSError):
    """Writing one output artifact failed."""

    def __init__(self, path: str | Path, reason: str = "") -> None:
        self.path = Path(path)
        self.reason = str(reason)
        super().__init__(f"Failed to write '{self.path}': {self.reason}")
