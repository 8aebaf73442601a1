"""Per-artifact export with failure isolation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from degreport.errors import ExportIOError
from degreport.pipeline.io import guarded_write


@dataclass
class ExportReport:
    """Artifacts written during a run and those that failed."""

    written: dict[str, Path] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class ArtifactExporter:
    """Runs artifact writers one by one; an `ExportIOError` fails only that artifact."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("degreport")
        self.report = ExportReport()

    def export(self, name: str, path: Path, writer: Callable[[Path], Any]) -> bool:
        """Call `writer(path)`; returns True when it succeeded."""
        try:
            with guarded_write(path):
                writer(Path(path))
        except ExportIOError as exc:
            self.logger.error("Export of %s failed: %s", name, exc)
            self.report.failed[name] = str(exc)
            return False
        self.report.written[name] = Path(path)
        self.logger.info("Wrote %s -> %s", name, Path(path).as_posix())
        return True

    def skip(self, name: str, reason: str) -> None:
        self.logger.warning("Skipped %s: %s", name, reason)
        self.report.skipped[name] = reason
