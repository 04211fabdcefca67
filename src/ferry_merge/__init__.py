"""qrferry merge - Ingest, reconciliation and reconstruction."""
from .ingest import IngestResult, ingest, ingest_entries
from .reconcile import (
    ChunkRegistry,
    ChunkTable,
    FileReport,
    Gap,
    ReconciliationReport,
    build_report,
    find_gaps,
    reconcile,
    reconcile_tagged,
)
from .reconstruct import CorruptPayload, IncompleteChunkSet, Reconstruction, reconstruct

__all__ = [
    "IngestResult", "ingest", "ingest_entries",
    "ChunkRegistry", "ChunkTable", "FileReport", "Gap", "ReconciliationReport",
    "build_report", "find_gaps", "reconcile", "reconcile_tagged",
    "CorruptPayload", "IncompleteChunkSet", "Reconstruction", "reconstruct",
]
