"""qrferry - Record codec.

Pure functions between one chunk record and its single-line wire text.
"""
from __future__ import annotations

from dataclasses import dataclass

from .protocol import DELIMITER, FIELD_COUNT, MAX_TOTAL_COUNT


class MalformedRecord(ValueError):
    """Text is not a well-formed chunk record."""


@dataclass(frozen=True)
class ChunkRecord:
    file_name: str
    index: int
    total_count: int
    payload: str


@dataclass(frozen=True)
class ProvenanceTag:
    """Which collection session (and which entry in it) produced a record."""

    source_id: str
    entry: str | None = None


def _parse_count(field: str, name: str) -> int:
    # int() would also accept signs, whitespace and underscores.
    if not field or not (field.isascii() and field.isdigit()):
        raise MalformedRecord(f"{name} is not a non-negative integer: {field[:32]!r}")
    if len(field) > len(str(MAX_TOTAL_COUNT)):
        raise MalformedRecord(f"{name} exceeds limit {MAX_TOTAL_COUNT}: {field[:32]!r}")
    return int(field)


def encode_record(file_name: str, index: int, total_count: int, payload: str) -> str:
    """Serialize one record to its wire text."""
    if not file_name or DELIMITER in file_name or "\n" in file_name or "\r" in file_name:
        raise ValueError(f"File name cannot be carried in a record: {file_name!r}")
    if DELIMITER in payload or "\n" in payload:
        raise ValueError("Payload contains reserved characters")
    if total_count > MAX_TOTAL_COUNT:
        raise ValueError(f"Total {total_count} exceeds limit {MAX_TOTAL_COUNT}")
    if total_count <= 0 or not 0 <= index < total_count:
        raise ValueError(f"Index {index} out of range for total {total_count}")
    return DELIMITER.join((file_name, str(index), str(total_count), payload))


def decode_record(text: str) -> ChunkRecord:
    """Parse wire text into a ChunkRecord, raising MalformedRecord on any violation."""
    parts = text.strip().split(DELIMITER)
    if len(parts) != FIELD_COUNT:
        raise MalformedRecord(f"Expected {FIELD_COUNT} fields, got {len(parts)}")

    file_name, index_s, total_s, payload = parts
    if not file_name:
        raise MalformedRecord("Empty file name")

    index = _parse_count(index_s, "index")
    total = _parse_count(total_s, "totalCount")
    if total == 0:
        raise MalformedRecord("totalCount must be positive")
    if total > MAX_TOTAL_COUNT:
        raise MalformedRecord(f"totalCount {total} exceeds limit {MAX_TOTAL_COUNT}")
    if index >= total:
        raise MalformedRecord(f"index {index} >= totalCount {total}")

    return ChunkRecord(file_name=file_name, index=index, total_count=total, payload=payload)
