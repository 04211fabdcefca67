"""qrferry - File to chunk record splitter."""
from __future__ import annotations

from pathlib import Path

import click

from ferry_core.protocol import DEFAULT_CHUNK_SIZE
from ferry_split.splitter import split, write_records


def split_file(in_path: Path, out_path: Path, chunk_size: int, name: str | None = None) -> int:
    """Split a file into record text files. Returns the record count."""
    print(f"Splitting: {in_path}")

    raw = in_path.read_bytes()
    file_name = name or in_path.name
    records = split(raw, file_name, chunk_size)
    paths = write_records(records, out_path, original_size=len(raw), chunk_size=chunk_size)

    print(f"PASS: {len(paths)} records written to {out_path}")
    print(f"  File: {file_name}")
    print(f"  Size: {len(raw)} bytes")
    print(f"  Chunk size: {chunk_size}")
    return len(paths)


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("out", type=click.Path(file_okay=False, path_type=Path))
@click.option("--chunk-size", type=click.IntRange(min=1), default=DEFAULT_CHUNK_SIZE, show_default=True,
              help="Base64 characters per record")
@click.option("--name", default=None, help="Logical file name carried in records (defaults to FILE's name)")
def main(file: Path, out: Path, chunk_size: int, name: str | None) -> None:
    """Split FILE into chunk records under OUT."""
    try:
        split_file(file, out, chunk_size, name)
    except Exception as e:
        print(f"FATAL: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
