"""qrferry - Source ingest.

Parses raw texts from one collection session into tagged records. Noise is
expected: a malformed text is counted and skipped, never fatal to the batch.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable
from warnings import warn

from ferry_core.records import ChunkRecord, MalformedRecord, ProvenanceTag, decode_record


@dataclass
class IngestResult:
    source_id: str
    tagged: list[tuple[ChunkRecord, ProvenanceTag]] = field(default_factory=list)
    failures: list[dict] = field(default_factory=list)

    @property
    def records(self) -> list[ChunkRecord]:
        return [rec for rec, _ in self.tagged]

    @property
    def skipped(self) -> int:
        return len(self.failures)

    def get_stats(self) -> dict:
        return {"source_id": self.source_id, "records": len(self.tagged), "skipped": self.skipped}


def ingest_entries(source_id: str, entries: Iterable[tuple[str, str | bytes]]) -> IngestResult:
    """Parse named texts, tagging each record with its source and entry name.

    Raw bytes are decoded as strict UTF-8; an undecodable entry is warned
    about and counted as malformed.
    """
    result = IngestResult(source_id=source_id)
    for entry, text in entries:
        if isinstance(text, bytes):
            try:
                text = text.decode("utf-8")
            except UnicodeDecodeError as e:
                warn(f"Undecodable text entry {entry} in {source_id}: {e} (skipping)")
                result.failures.append({"code": "E_MALFORMED_RECORD", "entry": entry, "detail": f"not UTF-8: {e}"})
                continue
        try:
            rec = decode_record(text)
        except MalformedRecord as e:
            result.failures.append({"code": "E_MALFORMED_RECORD", "entry": entry, "detail": str(e)})
            continue
        result.tagged.append((rec, ProvenanceTag(source_id=source_id, entry=entry)))
    return result


def ingest(source_id: str, texts: Iterable[str]) -> IngestResult:
    """Parse anonymous texts; entries are named by their position in the batch."""
    return ingest_entries(source_id, ((f"#{i}", t) for i, t in enumerate(texts)))
