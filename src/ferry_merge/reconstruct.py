"""qrferry - Reconstructor.

Strict mode refuses any gap. Partial mode substitutes an empty fragment for
each missing index (never skips it) and flags the result.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from pathlib import Path, PurePath

from ferry_core.protocol import MODE_PARTIAL, MODE_STRICT, MODES, PARTIAL_SUFFIX
from .reconcile import ChunkTable, Gap, find_gaps


class IncompleteChunkSet(ValueError):
    def __init__(self, file_name: str, missing: list[int], gaps: list[Gap]):
        self.file_name = file_name
        self.missing = missing
        self.gaps = gaps
        super().__init__(f"{file_name}: missing {len(missing)} chunks in {len(gaps)} ranges")


class CorruptPayload(ValueError):
    def __init__(self, file_name: str, detail: str):
        self.file_name = file_name
        self.detail = detail
        super().__init__(f"{file_name}: failed to decode base64 data ({detail})")


@dataclass(frozen=True)
class Reconstruction:
    file_name: str
    data: bytes
    was_partial: bool
    missing: tuple[int, ...] = ()

    @property
    def output_name(self) -> str:
        return output_name(self.file_name, self.was_partial)


def output_name(file_name: str, partial: bool) -> str:
    """Base name for the written file, with the partial marker before the extension."""
    name = PurePath(file_name.replace("\\", "/")).name or "recovered.bin"
    if not partial:
        return name
    p = PurePath(name)
    if p.suffix and p.stem:
        return f"{p.stem}{PARTIAL_SUFFIX}{p.suffix}"
    return name + PARTIAL_SUFFIX


def _lenient_align(text: str) -> str:
    # A dropped fragment can leave a trailing partial quantum.
    text = text.rstrip("=")
    rem = len(text) % 4
    if rem == 1:
        return text[:-1]
    if rem:
        return text + "=" * (4 - rem)
    return text


def reconstruct(table: ChunkTable, file_name: str, mode: str = MODE_STRICT) -> Reconstruction:
    if mode not in MODES:
        raise ValueError(f"Unknown mode {mode!r}; expected one of {MODES}")
    if file_name not in table.files:
        raise KeyError(f"No chunks for file {file_name!r}")

    chunks = table.files[file_name]
    total = table.totals[file_name]
    gaps = find_gaps(chunks, total)
    missing = [i for gap in gaps for i in range(gap.start, gap.end + 1)]

    if missing and mode == MODE_STRICT:
        raise IncompleteChunkSet(file_name, missing, gaps)

    text = "".join(chunks[i][0].payload if i in chunks else "" for i in range(total))
    if mode == MODE_PARTIAL:
        text = _lenient_align(text)

    try:
        data = base64.b64decode(text, validate=True)
    except binascii.Error as e:
        raise CorruptPayload(file_name, str(e)) from e

    return Reconstruction(file_name=file_name, data=data, was_partial=bool(missing), missing=tuple(missing))


def write_reconstruction(result: Reconstruction, out_dir: Path) -> Path:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / result.output_name
    out_path.write_bytes(result.data)
    return out_path
