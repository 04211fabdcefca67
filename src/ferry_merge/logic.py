from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .ingest import IngestResult, ingest_entries
from .reconcile import ChunkTable, ReconciliationReport, reconcile_tagged
from .sources import read_source


@dataclass
class Collection:
    results: list[IngestResult]
    table: ChunkTable
    report: ReconciliationReport

    @property
    def record_count(self) -> int:
        return sum(len(r.tagged) for r in self.results)

    @property
    def skipped(self) -> int:
        return sum(r.skipped for r in self.results)

    @property
    def found_files(self) -> list[str]:
        """File names of every parsed record, before any filter, in first-seen order."""
        names: dict[str, None] = {}
        for r in self.results:
            for rec, _ in r.tagged:
                names.setdefault(rec.file_name)
        return list(names)


def collect(paths: Iterable[Path], file_filter: str | None = None) -> Collection:
    """Read, ingest and reconcile sources in the order given."""
    results: list[IngestResult] = []
    for p in paths:
        src = read_source(Path(p))
        if src is None:
            continue
        source_id, entries = src
        results.append(ingest_entries(source_id, entries))

    tagged = (
        (rec, tag)
        for r in results
        for rec, tag in r.tagged
        if file_filter is None or rec.file_name == file_filter
    )
    table, report = reconcile_tagged(tagged)
    return Collection(results=results, table=table, report=report)
