"""Source readers: turn zip archives, directories and text files into (entry, content) pairs.

Content is returned as raw bytes; decoding belongs to ingest, which counts
undecodable entries as malformed.
"""
from __future__ import annotations

import zipfile
from pathlib import Path
from warnings import warn

from ferry_core.protocol import ARCHIVE_SUFFIX, INDEX_FILE, TEXT_SUFFIX


def list_archive_entries(archive: Path, prefix: str = "") -> list[tuple[str, bytes]]:
    """Text entries of a zip archive, in archive order. Directories are skipped."""
    entries: list[tuple[str, bytes]] = []
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            if info.is_dir() or not info.filename.lower().endswith(TEXT_SUFFIX):
                continue
            entries.append((prefix + info.filename, zf.read(info)))
    return entries


def list_directory_entries(directory: Path) -> list[tuple[str, bytes]]:
    """Text files directly inside a directory, sorted by name, then the text
    entries of any zip archive saved alongside them (e.g. qr_text_data.zip).
    """
    entries: list[tuple[str, bytes]] = []
    archives: list[Path] = []
    for p in sorted(directory.iterdir()):
        if not p.is_file():
            continue
        suffix = p.suffix.lower()
        if suffix == TEXT_SUFFIX and p.name != INDEX_FILE:
            entries.append((p.name, p.read_bytes()))
        elif suffix == ARCHIVE_SUFFIX:
            archives.append(p)

    for archive in archives:
        try:
            entries.extend(list_archive_entries(archive, prefix=f"{archive.name}/"))
        except (OSError, zipfile.BadZipFile) as e:
            warn(f"Failed to read archive {archive}: {e} (skipping)")
    return entries


def read_source(path: Path) -> tuple[str, list[tuple[str, bytes]]] | None:
    """Read one collection session. Returns (source_id, entries), or None when unreadable."""
    path = Path(path)
    if not path.exists():
        warn(f"Source not found: {path} (skipping)")
        return None

    source_id = path.name
    try:
        if path.is_dir():
            return source_id, list_directory_entries(path)
        if path.suffix.lower() == ARCHIVE_SUFFIX:
            return source_id, list_archive_entries(path)
        return source_id, [(path.name, path.read_bytes())]
    except (OSError, zipfile.BadZipFile) as e:
        warn(f"Failed to read source {path}: {e} (skipping)")
        return None
