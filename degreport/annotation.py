"""Identifier-to-name lookup backends used by `annotate`."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

import pandas as pd

from degreport.errors import AnnotationUnavailable

_ENSEMBL_VERSION = re.compile(r"^(ENS[A-Z]*G\d+)\.\d+$")


@runtime_checkable
class NameLookup(Protocol):
    def lookup_names(
        self, ids: list[str]
    ) -> Mapping[str, str | Sequence[str] | None]: ...


def strip_version(feature_id: str) -> str:
    """Drop an Ensembl version suffix (`ENSG00000141510.17` -> `ENSG00000141510`)."""
    m = _ENSEMBL_VERSION.match(str(feature_id))
    return m.group(1) if m else str(feature_id)


class NullNameLookup:
    """Maps nothing; every identifier ends up without a display name."""

    def lookup_names(self, ids: list[str]) -> dict[str, None]:
        return {fid: None for fid in ids}


class TableNameLookup:
    """Offline mapping table, e.g. an org.Hs.eg.db or BioMart export.

    The table is read on first use. Candidate names keep file order, so the
    first row for an identifier wins when several map to it.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        id_column: str = "ensembl_id",
        name_column: str = "symbol",
        table: pd.DataFrame | None = None,
    ) -> None:
        if path is None and table is None:
            raise ValueError("TableNameLookup needs a path or a table.")
        self.path = None if path is None else Path(path)
        self.id_column = str(id_column)
        self.name_column = str(name_column)
        self._table = table
        self._index: dict[str, list[str]] | None = None

    def _load(self) -> dict[str, list[str]]:
        if self._index is not None:
            return self._index
        table = self._table
        if table is None:
            sep = "\t" if self.path.suffix.lower() in {".tsv", ".txt"} else ","
            # ValueError covers empty files, malformed rows and undecodable bytes.
            try:
                table = pd.read_csv(self.path, sep=sep, dtype=str)
            except (OSError, ValueError) as exc:
                raise AnnotationUnavailable([], f"cannot read {self.path}: {exc}") from exc
        missing = [c for c in (self.id_column, self.name_column) if c not in table.columns]
        if missing:
            raise ValueError(f"Mapping table missing columns: {missing}")

        index: dict[str, list[str]] = {}
        for fid, name in zip(table[self.id_column], table[self.name_column]):
            if pd.isna(fid) or pd.isna(name):
                continue
            index.setdefault(strip_version(str(fid).strip()), []).append(str(name).strip())
        self._index = index
        return index

    def lookup_names(self, ids: list[str]) -> dict[str, list[str]]:
        try:
            index = self._load()
        except AnnotationUnavailable as exc:
            raise AnnotationUnavailable(ids, exc.reason) from exc
        return {fid: list(index.get(strip_version(fid), [])) for fid in ids}


class MyGeneNameLookup:
    """Remote symbol lookup through the MyGene.info service."""

    def __init__(
        self,
        *,
        species: str = "human",
        scopes: str = "ensembl.gene",
        field: str = "symbol",
        client: Any = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.species = species
        self.scopes = scopes
        self.field = field
        self._client = client
        self.logger = logger or logging.getLogger("degreport")

    def _get_client(self):
        if self._client is None:
            import mygene

            self._client = mygene.MyGeneInfo()
        return self._client

    def lookup_names(self, ids: list[str]) -> dict[str, list[str]]:
        queries = {fid: strip_version(fid) for fid in ids}
        unique = list(dict.fromkeys(queries.values()))
        try:
            hits = self._get_client().querymany(
                unique,
                scopes=self.scopes,
                fields=self.field,
                species=self.species,
                returnall=False,
                verbose=False,
            )
        # Transport and service errors differ by client version; all of them
        # mean the service could not answer for this batch.
        except Exception as exc:
            raise AnnotationUnavailable(ids, f"MyGene.info query failed: {exc}") from exc

        by_query: dict[str, list[str]] = {}
        for hit in hits or []:
            if not isinstance(hit, dict) or hit.get("notfound"):
                continue
            name = hit.get(self.field)
            if name is None:
                continue
            by_query.setdefault(str(hit.get("query")), []).append(str(name))
        self.logger.info(
            "MyGene.info mapped %d/%d identifiers", len(by_query), len(unique)
        )
        return {fid: list(by_query.get(q, [])) for fid, q in queries.items()}


def build_name_lookup(annotation, logger: logging.Logger | None = None) -> NameLookup:
    """Create the lookup backend described by `AnnotationParams`."""
    if annotation.backend == "none":
        return NullNameLookup()
    if annotation.backend == "table":
        return TableNameLookup(
            annotation.table_path,
            id_column=annotation.id_column,
            name_column=annotation.name_column,
        )
    if annotation.backend == "mygene":
        return MyGeneNameLookup(species=annotation.species, logger=logger)
    raise ValueError(f"Unknown annotation backend '{annotation.backend}'.")
