from __future__ import annotations

import base64
import math
from datetime import datetime, timezone
from pathlib import Path

from ferry_core.protocol import DEFAULT_CHUNK_SIZE, INDEX_FILE, MAX_TOTAL_COUNT, RECORD_FILE_FMT
from ferry_core.records import ChunkRecord, encode_record


def split(payload: bytes, file_name: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[ChunkRecord]:
    """Split a binary payload into ordered records of at most chunk_size base64 characters.

    An empty payload yields exactly one record with an empty fragment.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    text = base64.b64encode(payload).decode("ascii")
    total = max(1, math.ceil(len(text) / chunk_size))
    if total > MAX_TOTAL_COUNT:
        raise ValueError(f"{total} records exceed limit {MAX_TOTAL_COUNT}; increase chunk_size")

    records: list[ChunkRecord] = []
    for i in range(total):
        fragment = text[i * chunk_size:(i + 1) * chunk_size]
        records.append(ChunkRecord(file_name=file_name, index=i, total_count=total, payload=fragment))
    return records


def write_records(
    records: list[ChunkRecord],
    out_dir: Path,
    original_size: int | None = None,
    chunk_size: int | None = None,
    timestamp: str | None = None,
) -> list[Path]:
    """Write one wire-text file per record plus a README index. Returns the record paths."""
    if not records:
        raise ValueError("No records to write")

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths: list[Path] = []
    for rec in records:
        p = out_dir / RECORD_FILE_FMT.format(rec.index)
        p.write_text(encode_record(rec.file_name, rec.index, rec.total_count, rec.payload), encoding="utf-8")
        paths.append(p)

    if timestamp is None:
        timestamp = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")

    first = records[0]
    lines = [
        "qrferry chunk set",
        "=================",
        f"File: {first.file_name}",
        f"Total records: {first.total_count}",
    ]
    if original_size is not None:
        lines.append(f"Original size: {original_size} bytes")
    if chunk_size is not None:
        lines.append(f"Chunk size: {chunk_size} base64 characters")
    lines += [
        "",
        "Instructions:",
        f"1. Render and scan every record ({paths[0].name} to {paths[-1].name})",
        "2. Save each scanned text as a .txt file; zip a session if convenient",
        "3. Run `ferry-merge report` on all sessions, then `ferry-merge reconstruct`",
        "",
        f"Generated on: {timestamp}",
    ]
    (out_dir / INDEX_FILE).write_text("\n".join(lines) + "\n", encoding="utf-8")
    return paths
