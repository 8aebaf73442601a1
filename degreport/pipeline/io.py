"""Pipeline I/O, logging, and writer helpers."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import pandas as pd

from degreport.core.types import EXPORT_HEADERS, RESULT_COLUMNS
from degreport.errors import ExportIOError


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents); no error if it already exists."""
    p = Path(path)
    try:
        p.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ExportIOError(p, str(exc)) from exc
    return p


@contextmanager
def guarded_write(path: str | Path) -> Iterator[Path]:
    """Translate filesystem errors raised while writing `path` into `ExportIOError`."""
    out = Path(path)
    try:
        yield out
    except ExportIOError:
        raise
    except OSError as exc:
        raise ExportIOError(out, exc.strerror or str(exc)) from exc


def write_json(path: str | Path, payload: dict[str, Any]) -> None:
    with guarded_write(path) as out:
        with out.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True, default=str)


def write_text(path: str | Path, text: str) -> None:
    with guarded_write(path) as out:
        out.write_text(text, encoding="utf-8")


def export_frame(table: pd.DataFrame) -> pd.DataFrame:
    """Canonical columns in fixed order, renamed to the exported headers."""
    out = table.copy()
    for col in RESULT_COLUMNS:
        if col not in out.columns:
            out[col] = None
    out = out.loc[:, list(RESULT_COLUMNS)]
    return out.rename(columns=EXPORT_HEADERS)


def write_results_csv(path: str | Path, table: pd.DataFrame) -> None:
    """Write a results table with the fixed export column order."""
    frame = export_frame(table)
    with guarded_write(path) as out:
        frame.to_csv(out, index=False, na_rep="")


def setup_logger(log_path: Path, logger_name: str) -> logging.Logger:
    ensure_dir(log_path.parent)
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    fh = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    fh.setFormatter(formatter)
    logger.addHandler(fh)
    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)
    return logger


def close_logger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
