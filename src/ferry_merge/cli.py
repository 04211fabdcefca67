"""qrferry - Merge scanned chunk records from many sessions, report gaps and rebuild files."""
import json
from pathlib import Path

import click

from ferry_core.protocol import DEFAULT_OUTPUT_DIR, MAX_LISTED_GAPS, MAX_LISTED_MISSING, MODE_PARTIAL, MODE_STRICT
from .export import export_provenance
from .logic import Collection, collect
from .reconcile import FileReport, Gap, ReconciliationReport
from .reconstruct import CorruptPayload, IncompleteChunkSet, reconstruct, write_reconstruction

CANONICAL_JSON_KW = {"sort_keys": True, "separators": (",", ":"), "ensure_ascii": False}

SOURCES = click.argument("sources", nargs=-1, required=True, type=click.Path(path_type=Path))


def _gap_line(gap: Gap) -> str:
    if gap.size == 1:
        return f"Chunk {gap.start}"
    return f"Chunks {gap.start} to {gap.end} ({gap.size} chunks)"


def _echo_missing(missing) -> None:
    shown = ", ".join(str(i) for i in missing[:MAX_LISTED_MISSING])
    if len(missing) > MAX_LISTED_MISSING:
        click.echo(f"  First {MAX_LISTED_MISSING}: {shown}...")
        click.echo(f"  ...and {len(missing) - MAX_LISTED_MISSING} more")
    else:
        click.echo(f"  {shown}")


def _echo_file(f: FileReport) -> None:
    click.echo(f"File: {f.file_name}")
    click.echo(f"  Expected chunks: {f.total_count}")
    click.echo(f"  Chunks found: {f.present} ({f.progress:.1f}%)")
    click.echo(f"  Duplicates: {f.duplicates}")
    click.echo(f"  Found in: {', '.join(f.sources)}")
    if not f.gaps:
        click.echo("  No gaps")
        return
    click.echo(f"  Missing ranges ({len(f.gaps)} gaps):")
    if len(f.gaps) <= MAX_LISTED_GAPS:
        for gap in f.gaps:
            click.echo(f"    - {_gap_line(gap)}")
    else:
        click.echo(f"    - First gap: {_gap_line(f.gaps[0])}")
        click.echo(f"    - Last gap: {_gap_line(f.gaps[-1])}")
    if f.missing_at_start:
        click.echo(f"  Missing from beginning: {_gap_line(f.gaps[0])}")
    if f.missing_at_end:
        click.echo(f"  Missing at end: {_gap_line(f.gaps[-1])}")


def _echo_report(col: Collection) -> None:
    report = col.report
    for r in col.results:
        click.echo(f"Source {r.source_id}: {len(r.tagged)} records, {r.skipped} skipped")
    click.echo("")

    for f in report.files:
        _echo_file(f)
        click.echo("")

    for c in report.conflicts:
        click.echo(
            f"CONFLICT at chunk {c['index']}: {c['claimed_by_file']} (from {c['claimed_by_source']})"
            f" vs {c['file_name']} (from {c['source_id']})"
        )
    for c in report.payload_conflicts:
        click.echo(
            f"PAYLOAD CONFLICT at {c['file_name']} chunk {c['index']}:"
            f" {c['winner_source']} vs {c['source_id']}"
        )
    for c in report.inconsistent_totals:
        click.echo(
            f"INCONSISTENT TOTAL for {c['file_name']} chunk {c['index']} from {c['source_id']}:"
            f" declared {c['declared']}, expected {c['expected']}"
        )
    _echo_recommendations(report)


def _echo_recommendations(report: ReconciliationReport) -> None:
    if report.multiple_files:
        click.echo("PROBLEM: records from multiple files were mixed:")
        for f in report.files:
            click.echo(f"  - {f.file_name} ({f.present} chunks)")
        click.echo("Rescan only the file you want, or reconstruct one with --filter NAME")
        return
    for f in report.files:
        if f.complete:
            click.echo("PASS: all chunks present")
        else:
            click.echo(f"INCOMPLETE: {f.present}/{f.total_count} chunks")
            click.echo("Next: scan the missing codes and add another source, or reconstruct with --partial")


@click.group(help=__doc__)
def main():
    pass


@main.command("report")
@SOURCES
@click.option("--json", "as_json", is_flag=True, help="Print the report as canonical JSON")
@click.option("--export", "export_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write record provenance to this Parquet file")
def report_cmd(sources, as_json: bool, export_path: Path | None):
    """Reconcile SOURCES and print a diagnostic report."""
    col = collect(sources)
    if export_path is not None:
        export_provenance(col.table, export_path)

    if as_json:
        out = col.report.to_dict()
        out["skipped"] = col.skipped
        click.echo(json.dumps(out, **CANONICAL_JSON_KW))
    else:
        _echo_report(col)

    if col.record_count == 0:
        if not as_json:
            click.echo("FATAL: no valid chunk records found")
        raise SystemExit(1)


@main.command("reconstruct")
@SOURCES
@click.option("--partial", is_flag=True, help="Write a flagged best-effort file when chunks are missing")
@click.option("--filter", "file_filter", default=None, help="Only reconstruct records for this file name")
@click.option("--out", "out_dir", type=click.Path(file_okay=False, path_type=Path),
              default=Path(DEFAULT_OUTPUT_DIR), show_default=True)
def reconstruct_cmd(sources, partial: bool, file_filter: str | None, out_dir: Path):
    """Rebuild the original file from SOURCES."""
    col = collect(sources, file_filter=file_filter)
    report = col.report

    if not report.files:
        found = col.found_files
        if file_filter is not None and found:
            click.echo(f"FATAL: no records matched {file_filter}")
            click.echo("Files found:")
            for name in found:
                click.echo(f"  - {name}")
        else:
            click.echo("FATAL: no valid chunk records found")
        raise SystemExit(1)
    if report.multiple_files:
        click.echo("FATAL: records from multiple files; choose one with --filter")
        for f in report.files:
            click.echo(f"  - {f.file_name} ({f.present}/{f.total_count} chunks)")
        raise SystemExit(1)

    file_name = report.files[0].file_name
    try:
        result = reconstruct(col.table, file_name, MODE_PARTIAL if partial else MODE_STRICT)
    except IncompleteChunkSet as e:
        click.echo(f"FATAL: {e}")
        _echo_missing(e.missing)
        for gap in e.gaps[:MAX_LISTED_GAPS]:
            click.echo(f"    - {_gap_line(gap)}")
        click.echo("Options: scan the missing codes and add another source, or rerun with --partial")
        raise SystemExit(1)
    except CorruptPayload as e:
        click.echo(f"FATAL: {e}")
        raise SystemExit(1)

    try:
        out_path = write_reconstruction(result, out_dir)
    except OSError as e:
        click.echo(f"FATAL: cannot write {result.output_name} to {out_dir}: {e}")
        raise SystemExit(1)
    click.echo(f"File saved: {out_path}")
    click.echo(f"  Size: {len(result.data)} bytes")
    if result.was_partial:
        click.echo(f"WARNING: {len(result.missing)} chunks missing; file is incomplete and may be corrupted")
    else:
        click.echo("PASS: file reconstructed")


if __name__ == "__main__":
    main()
