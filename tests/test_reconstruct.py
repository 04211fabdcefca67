import base64
import os

import pytest

from ferry_core.protocol import MODE_PARTIAL
from ferry_core.records import ChunkRecord, encode_record
from ferry_merge.ingest import ingest
from ferry_merge.reconcile import Gap, reconcile, reconcile_tagged
from ferry_merge.reconstruct import (
    CorruptPayload,
    IncompleteChunkSet,
    output_name,
    reconstruct,
    write_reconstruction,
)
from ferry_split.splitter import split


@pytest.mark.parametrize("size", [1, 3, 4, 6, 7, 800])
@pytest.mark.parametrize("payload", [b"", b"hello world", bytes(range(256)), os.urandom(1000)])
def test_round_trip_through_the_whole_pipeline(payload, size):
    texts = [encode_record(r.file_name, r.index, r.total_count, r.payload) for r in split(payload, "f.bin", size)]
    table, _ = reconcile_tagged(ingest("s", reversed(texts)).tagged)
    result = reconstruct(table, "f.bin")
    assert result.data == payload
    assert result.was_partial is False


def test_strict_mode_reports_missing_ranges():
    records = split(b"hello world", "hello.txt", 6)
    table, _ = reconcile([("s", [records[0], records[2]])])
    with pytest.raises(IncompleteChunkSet) as exc:
        reconstruct(table, "hello.txt")
    assert exc.value.missing == [1]
    assert exc.value.gaps == [Gap(1, 1, 1)]


def test_partial_mode_substitutes_empty_fragments():
    records = split(b"0123456789abcdef" * 3, "p.bin", 8)
    kept = [r for r in records if r.index != 2]
    table, _ = reconcile([("s", kept)])

    result = reconstruct(table, "p.bin", MODE_PARTIAL)
    expected = base64.b64decode("".join(r.payload for r in kept))
    assert result.data == expected
    assert result.was_partial is True
    assert result.missing == (2,)
    assert result.output_name == "p_PARTIAL.bin"


def test_partial_mode_handles_unaligned_fragments():
    records = split(b"hello world", "hello.txt", 6)
    table, _ = reconcile([("s", [records[0], records[2]])])
    result = reconstruct(table, "hello.txt", MODE_PARTIAL)
    # "aGVsbG" + "bGQ=" loses alignment; the dangling character is dropped.
    assert result.data == base64.b64decode("aGVsbGbG")
    assert result.was_partial


def test_partial_mode_on_complete_set_is_not_flagged():
    table, _ = reconcile([("s", split(b"abc", "abc.txt", 2))])
    result = reconstruct(table, "abc.txt", MODE_PARTIAL)
    assert result.data == b"abc"
    assert not result.was_partial
    assert result.output_name == "abc.txt"


def test_corrupt_payload_is_distinct_from_incomplete():
    table, _ = reconcile([("s", [ChunkRecord("c.bin", 0, 2, "QUF*"), ChunkRecord("c.bin", 1, 2, "QUFB")])])
    with pytest.raises(CorruptPayload):
        reconstruct(table, "c.bin")
    assert not issubclass(CorruptPayload, IncompleteChunkSet)


def test_unknown_file_and_mode():
    table, _ = reconcile([("s", split(b"abc", "abc.txt", 4))])
    with pytest.raises(KeyError):
        reconstruct(table, "other.txt")
    with pytest.raises(ValueError):
        reconstruct(table, "abc.txt", "lenient")


@pytest.mark.parametrize(
    "name,partial,expected",
    [
        ("report.xlsx", True, "report_PARTIAL.xlsx"),
        ("archive.tar.gz", True, "archive.tar_PARTIAL.gz"),
        ("README", True, "README_PARTIAL"),
        (".bashrc", True, ".bashrc_PARTIAL"),
        ("../../etc/passwd", False, "passwd"),
        ("C:\\Users\\me\\f.doc", False, "f.doc"),
    ],
)
def test_output_name(name, partial, expected):
    assert output_name(name, partial) == expected


def test_write_reconstruction(tmp_path):
    table, _ = reconcile([("s", split(b"\x00\x01binary", "bin.dat", 4))])
    out = write_reconstruction(reconstruct(table, "bin.dat"), tmp_path / "rebuilt")
    assert out == tmp_path / "rebuilt" / "bin.dat"
    assert out.read_bytes() == b"\x00\x01binary"
