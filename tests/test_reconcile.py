import threading

from ferry_core.protocol import MAX_TOTAL_COUNT
from ferry_core.records import ChunkRecord, ProvenanceTag
from ferry_merge.reconcile import (
    ChunkRegistry,
    Gap,
    build_report,
    find_gaps,
    reconcile,
)
from ferry_split.splitter import split


def rec(index, total=10, name="a.bin", payload="QUFB"):
    return ChunkRecord(name, index, total, payload)


def test_gaps_interior_only():
    report = reconcile([("s1", [rec(i) for i in (0, 1, 2, 5, 6, 9)])])[1]
    f = report.get("a.bin")
    assert list(f.gaps) == [Gap(3, 4, 2), Gap(7, 8, 2)]
    assert f.missing == (3, 4, 7, 8)
    assert f.missing_at_start is False
    assert f.missing_at_end is False
    assert f.present == 6


def test_boundary_gaps_have_the_same_shape():
    assert find_gaps([2, 3], 6) == [Gap(0, 1, 2), Gap(4, 5, 2)]
    assert find_gaps([], 3) == [Gap(0, 2, 3)]
    assert find_gaps([0, 1, 2], 3) == []

    f = reconcile([("s1", [rec(i, total=6) for i in (2, 3)])])[1].get("a.bin")
    assert f.missing_at_start and f.missing_at_end


def test_first_source_wins_index_conflict():
    table, report = reconcile([
        ("first", [rec(5, name="x.docx")]),
        ("second", [rec(5, name="y.xlsx")]),
    ])
    winner, tag = table.winner(5)
    assert winner.file_name == "x.docx"
    assert tag.source_id == "first"

    assert len(report.conflicts) == 1
    conflict = report.conflicts[0]
    assert conflict["index"] == 5
    assert conflict["claimed_by_source"] == "first"
    assert conflict["source_id"] == "second"


def test_multiple_files_are_flagged_and_tracked_independently():
    table, report = reconcile([
        ("s1", [rec(0, total=2, name="x"), rec(1, total=2, name="x")]),
        ("s2", [rec(0, total=3, name="y")]),
    ])
    assert report.multiple_files
    assert report.file_names == ["x", "y"]
    assert report.get("x").complete
    assert report.get("y").missing == (1, 2)
    assert table.winner(0, "y")[0].file_name == "y"
    assert "E_MULTIPLE_FILES" in [e["code"] for e in report.errors()]


def test_reconciling_same_source_twice_is_idempotent():
    records = split(b"some binary \x00\xff payload" * 10, "p.bin", 12)
    once, _ = reconcile([("s", records)])
    twice, report = reconcile([("s", records), ("s", records)])

    assert twice.winners() == once.winners()
    assert twice.claims == once.claims
    assert report.get("p.bin").duplicates == len(records)
    assert not report.payload_conflicts


def test_duplicates_never_replace_the_winner():
    table, report = reconcile([
        ("s1", [rec(0, total=1, payload="QUFB")]),
        ("s2", [rec(0, total=1, payload="QkJC")]),
    ])
    winner, tag = table.winner(0, "a.bin")
    assert winner.payload == "QUFB"
    assert tag.source_id == "s1"
    assert len(report.payload_conflicts) == 1
    assert report.payload_conflicts[0]["source_id"] == "s2"


def test_inconsistent_total_first_seen_is_authoritative():
    table, report = reconcile([
        ("s1", [rec(0, total=3)]),
        ("s2", [rec(1, total=4), rec(1, total=3)]),
    ])
    assert table.totals["a.bin"] == 3
    assert table.present("a.bin") == [0, 1]
    (entry,) = report.inconsistent_totals
    assert entry["declared"] == 4
    assert entry["expected"] == 3
    assert entry["source_id"] == "s2"


def test_prior_table_is_not_mutated():
    first, _ = reconcile([("s1", [rec(0, total=2)])])
    second, report = reconcile([("s2", [rec(1, total=2)])], first)
    assert first.present("a.bin") == [0]
    assert second.present("a.bin") == [0, 1]
    assert report.get("a.bin").sources == ("s1", "s2")


def test_history_records_every_instance():
    table, _ = reconcile([("s1", [rec(0), rec(0)]), ("s2", [rec(0, name="b")])])
    assert [h["status"] for h in table.history] == ["WINNER", "DUPLICATE", "CONFLICT"]


def test_report_dict_status():
    _, complete = reconcile([("s", split(b"abc", "abc.txt", 4))])
    assert complete.to_dict()["status"] == "PASS"

    _, empty = reconcile([])
    out = empty.to_dict()
    assert out["status"] == "FAIL"
    assert out["errors"][0]["code"] == "E_NO_RECORDS"


def test_registry_serializes_concurrent_registrations():
    registry = ChunkRegistry()
    batches = [
        [(rec(i, total=40), ProvenanceTag(f"s{i}")) for i in range(start, start + 10)]
        for start in range(0, 40, 10)
    ]
    threads = [threading.Thread(target=registry.register, args=(b,)) for b in batches]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    snapshot = registry.snapshot()
    assert snapshot.present("a.bin") == list(range(40))
    assert registry.report().get("a.bin").complete
    assert build_report(snapshot) == registry.report()


def test_sparse_file_at_total_limit_reports_gaps_not_indices():
    f = reconcile([("s1", [rec(5, total=MAX_TOTAL_COUNT)])])[1].get("a.bin")
    assert f.missing_count == MAX_TOTAL_COUNT - 1
    assert list(f.gaps) == [Gap(0, 4, 5), Gap(6, MAX_TOTAL_COUNT - 1, MAX_TOTAL_COUNT - 6)]
    assert f.to_dict()["missing_count"] == MAX_TOTAL_COUNT - 1
    assert next(f.iter_missing()) == 0
