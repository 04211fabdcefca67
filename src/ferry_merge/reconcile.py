"""qrferry - Reconciliation engine.

Merges tagged records from any number of collection sessions into one
ChunkTable. The first record seen for a (file, index) wins; later copies are
kept as provenance history only. Missing or conflicting data never raises:
it is reported.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable

from ferry_core.records import ChunkRecord, ProvenanceTag
from .const import ERRORS

Tagged = tuple[ChunkRecord, ProvenanceTag]

# Provenance statuses
WINNER = "WINNER"
DUPLICATE = "DUPLICATE"
CONFLICT = "CONFLICT"
PAYLOAD_CONFLICT = "PAYLOAD_CONFLICT"
INCONSISTENT_TOTAL = "INCONSISTENT_TOTAL"


@dataclass(frozen=True)
class Gap:
    start: int
    end: int
    size: int

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "size": self.size}


@dataclass
class ChunkTable:
    """Per-file winners plus the bookkeeping needed to explain them.

    files:  file name -> index -> first-seen (record, tag) for that file
    totals: file name -> authoritative (first-seen) total count
    claims: index -> first-seen (record, tag) across all files
    """

    files: dict[str, dict[int, Tagged]] = field(default_factory=dict)
    totals: dict[str, int] = field(default_factory=dict)
    claims: dict[int, Tagged] = field(default_factory=dict)
    sources: dict[str, list[str]] = field(default_factory=dict)
    duplicates: dict[str, int] = field(default_factory=dict)
    history: list[dict] = field(default_factory=list)
    conflicts: list[dict] = field(default_factory=list)
    payload_conflicts: list[dict] = field(default_factory=list)
    inconsistent_totals: list[dict] = field(default_factory=list)

    def copy(self) -> ChunkTable:
        return ChunkTable(
            files={fn: dict(chunks) for fn, chunks in self.files.items()},
            totals=dict(self.totals),
            claims=dict(self.claims),
            sources={fn: list(s) for fn, s in self.sources.items()},
            duplicates=dict(self.duplicates),
            history=list(self.history),
            conflicts=list(self.conflicts),
            payload_conflicts=list(self.payload_conflicts),
            inconsistent_totals=list(self.inconsistent_totals),
        )

    def file_names(self) -> list[str]:
        return list(self.files)

    def winner(self, index: int, file_name: str | None = None) -> Tagged | None:
        """Winning (record, tag) for an index, within one file or across all files."""
        if file_name is None:
            return self.claims.get(index)
        return self.files.get(file_name, {}).get(index)

    def winners(self) -> dict[str, dict[int, ChunkRecord]]:
        return {fn: {i: rec for i, (rec, _) in chunks.items()} for fn, chunks in self.files.items()}

    def present(self, file_name: str) -> list[int]:
        return sorted(self.files.get(file_name, {}))


def _observe(table: ChunkTable, rec: ChunkRecord, tag: ProvenanceTag, status: str) -> None:
    table.history.append({
        "file_name": rec.file_name,
        "chunk_index": rec.index,
        "total_count": rec.total_count,
        "source_id": tag.source_id,
        "entry": tag.entry,
        "payload_len": len(rec.payload),
        "status": status,
    })


def _merge(table: ChunkTable, rec: ChunkRecord, tag: ProvenanceTag) -> None:
    fn = rec.file_name
    if fn not in table.files:
        table.files[fn] = {}
        table.totals[fn] = rec.total_count
        table.sources[fn] = []
        table.duplicates[fn] = 0
    if tag.source_id not in table.sources[fn]:
        table.sources[fn].append(tag.source_id)

    # First-seen total is authoritative; disagreeing records are quarantined.
    expected = table.totals[fn]
    if rec.total_count != expected:
        table.inconsistent_totals.append({
            "code": "E_INCONSISTENT_TOTAL",
            "file_name": fn,
            "index": rec.index,
            "declared": rec.total_count,
            "expected": expected,
            "source_id": tag.source_id,
            "entry": tag.entry,
        })
        _observe(table, rec, tag, INCONSISTENT_TOTAL)
        return

    per_file = table.files[fn]
    existing = per_file.get(rec.index)
    if existing is not None:
        table.duplicates[fn] += 1
        first_rec, first_tag = existing
        if first_rec.payload != rec.payload:
            table.payload_conflicts.append({
                "code": "E_PAYLOAD_CONFLICT",
                "file_name": fn,
                "index": rec.index,
                "winner_source": first_tag.source_id,
                "winner_entry": first_tag.entry,
                "source_id": tag.source_id,
                "entry": tag.entry,
            })
            _observe(table, rec, tag, PAYLOAD_CONFLICT)
        else:
            _observe(table, rec, tag, DUPLICATE)
        return

    per_file[rec.index] = (rec, tag)

    claim = table.claims.get(rec.index)
    if claim is None:
        table.claims[rec.index] = (rec, tag)
        _observe(table, rec, tag, WINNER)
        return

    claim_rec, claim_tag = claim
    if claim_rec.file_name == fn:
        _observe(table, rec, tag, WINNER)
        return

    # Each (index, file) pair lands in per_file once, so this fires once per pair.
    table.conflicts.append({
        "code": "E_INDEX_CONFLICT",
        "index": rec.index,
        "file_name": fn,
        "source_id": tag.source_id,
        "entry": tag.entry,
        "claimed_by_file": claim_rec.file_name,
        "claimed_by_source": claim_tag.source_id,
    })
    _observe(table, rec, tag, CONFLICT)


def find_gaps(present: Iterable[int], total: int) -> list[Gap]:
    """Maximal runs of absent indices within [0, total-1], boundaries included."""
    gaps: list[Gap] = []
    expected = 0
    for idx in sorted({i for i in present if 0 <= i < total}):
        if idx > expected:
            gaps.append(Gap(expected, idx - 1, idx - expected))
        expected = idx + 1
    if expected < total:
        gaps.append(Gap(expected, total - 1, total - expected))
    return gaps


@dataclass(frozen=True)
class FileReport:
    file_name: str
    total_count: int
    present: int
    missing_count: int
    gaps: tuple[Gap, ...]
    missing_at_start: bool
    missing_at_end: bool
    duplicates: int
    sources: tuple[str, ...]

    @property
    def complete(self) -> bool:
        return self.missing_count == 0

    def iter_missing(self):
        for gap in self.gaps:
            yield from range(gap.start, gap.end + 1)

    @property
    def missing(self) -> tuple[int, ...]:
        return tuple(self.iter_missing())

    @property
    def progress(self) -> float:
        return 100.0 * self.present / self.total_count

    def to_dict(self) -> dict:
        return {
            "file_name": self.file_name,
            "total_count": self.total_count,
            "present": self.present,
            "missing_count": self.missing_count,
            "gaps": [g.to_dict() for g in self.gaps],
            "missing_at_start": self.missing_at_start,
            "missing_at_end": self.missing_at_end,
            "duplicates": self.duplicates,
            "sources": list(self.sources),
            "progress": round(self.progress, 1),
        }


@dataclass(frozen=True)
class ReconciliationReport:
    files: tuple[FileReport, ...]
    conflicts: tuple[dict, ...] = ()
    payload_conflicts: tuple[dict, ...] = ()
    inconsistent_totals: tuple[dict, ...] = ()

    @property
    def multiple_files(self) -> bool:
        return len(self.files) > 1

    @property
    def file_names(self) -> list[str]:
        return [f.file_name for f in self.files]

    def get(self, file_name: str) -> FileReport | None:
        for f in self.files:
            if f.file_name == file_name:
                return f
        return None

    def errors(self) -> list[dict]:
        errors: list[dict] = []
        if not self.files:
            errors.append({"code": "E_NO_RECORDS", "message": ERRORS["E_NO_RECORDS"]})
        if self.multiple_files:
            errors.append({
                "code": "E_MULTIPLE_FILES",
                "message": ERRORS["E_MULTIPLE_FILES"],
                "files": self.file_names,
            })
        for f in self.files:
            if not f.complete:
                errors.append({
                    "code": "E_INCOMPLETE",
                    "message": ERRORS["E_INCOMPLETE"],
                    "file_name": f.file_name,
                    "gaps": [g.to_dict() for g in f.gaps],
                })
        for entry in self.conflicts + self.payload_conflicts + self.inconsistent_totals:
            errors.append({**entry, "message": ERRORS[entry["code"]]})
        return errors

    def to_dict(self) -> dict:
        errors = self.errors()
        return {
            "status": "PASS" if not errors else "FAIL",
            "multiple_files": self.multiple_files,
            "files": [f.to_dict() for f in self.files],
            "error_count": len(errors),
            "errors": errors,
        }


def build_report(table: ChunkTable) -> ReconciliationReport:
    """Read-only view over a table."""
    files: list[FileReport] = []
    for fn, chunks in table.files.items():
        if not chunks:
            raise ValueError(f"FATAL: file {fn!r} registered with no chunks")
        total = table.totals[fn]
        present = set(chunks)
        files.append(FileReport(
            file_name=fn,
            total_count=total,
            present=len(present),
            missing_count=total - len(present),
            gaps=tuple(find_gaps(present, total)),
            missing_at_start=0 not in present,
            missing_at_end=(total - 1) not in present,
            duplicates=table.duplicates[fn],
            sources=tuple(table.sources[fn]),
        ))
    return ReconciliationReport(
        files=tuple(files),
        conflicts=tuple(table.conflicts),
        payload_conflicts=tuple(table.payload_conflicts),
        inconsistent_totals=tuple(table.inconsistent_totals),
    )


def reconcile_tagged(
    tagged: Iterable[Tagged], table: ChunkTable | None = None
) -> tuple[ChunkTable, ReconciliationReport]:
    """Merge tagged records into a copy of the prior table, in the given order."""
    table = ChunkTable() if table is None else table.copy()
    for rec, tag in tagged:
        _merge(table, rec, tag)
    return table, build_report(table)


def reconcile(
    streams: Iterable[tuple[str, Iterable[ChunkRecord]]], table: ChunkTable | None = None
) -> tuple[ChunkTable, ReconciliationReport]:
    """Merge (source_id, records) streams. Earlier sources win every tie."""
    def _tag_all():
        for source_id, records in streams:
            tag = ProvenanceTag(source_id=source_id)
            for rec in records:
                yield rec, tag

    return reconcile_tagged(_tag_all(), table)


class ChunkRegistry:
    """Long-lived holder for a ChunkTable that is fed batch by batch.

    Registrations are serialized so first-seen-wins stays deterministic.
    Each registration publishes a new table, so a snapshot is never mutated
    afterwards and readers need no lock.
    """

    def __init__(self, table: ChunkTable | None = None):
        self._table = table if table is not None else ChunkTable()
        self._lock = threading.Lock()

    def register(self, tagged: Iterable[Tagged]) -> ReconciliationReport:
        with self._lock:
            table, report = reconcile_tagged(tagged, self._table)
            self._table = table
        return report

    def snapshot(self) -> ChunkTable:
        return self._table

    def report(self) -> ReconciliationReport:
        return build_report(self._table)
