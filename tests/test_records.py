import pytest

from ferry_core.protocol import MAX_TOTAL_COUNT
from ferry_core.records import ChunkRecord, MalformedRecord, decode_record, encode_record


def test_encode_joins_fields_with_delimiter():
    assert encode_record("report.xlsx", 2, 3, "bGQ=") == "report.xlsx|~|2|~|3|~|bGQ="


def test_decode_tolerates_surrounding_whitespace():
    rec = decode_record("  report.xlsx|~|0|~|3|~|aGVsbG\r\n")
    assert rec == ChunkRecord("report.xlsx", 0, 3, "aGVsbG")


def test_decode_accepts_empty_payload():
    assert decode_record("empty.bin|~|0|~|1|~|").payload == ""


@pytest.mark.parametrize(
    "text",
    [
        "",
        "just some text",
        "a|~|0|~|1",
        "a|~|0|~|1|~|x|~|y",
        "a|~|x|~|1|~|aGVs",
        "a|~|-1|~|1|~|aGVs",
        "a|~|+1|~|2|~|aGVs",
        "a|~|0|~|0|~|aGVs",
        "a|~|3|~|3|~|aGVs",
        "|~|0|~|1|~|aGVs",
        "a|~|1_0|~|20|~|aGVs",
    ],
)
def test_decode_rejects_malformed(text):
    with pytest.raises(MalformedRecord):
        decode_record(text)


def test_malformed_is_a_value_error():
    assert issubclass(MalformedRecord, ValueError)


@pytest.mark.parametrize("name", ["", "bad|~|name", "two\nlines"])
def test_encode_rejects_unsafe_file_names(name):
    with pytest.raises(ValueError):
        encode_record(name, 0, 1, "")


def test_encode_rejects_index_out_of_range():
    with pytest.raises(ValueError):
        encode_record("a", 1, 1, "")


def test_records_are_immutable():
    rec = ChunkRecord("a", 0, 1, "")
    with pytest.raises(AttributeError):
        rec.index = 5


@pytest.mark.parametrize(
    "text",
    [
        "x.bin|~|0|~|400000000|~|QUFB",
        "f.bin|~|0|~|3000000000|~|QUFB",
        f"x.bin|~|0|~|{MAX_TOTAL_COUNT + 1}|~|QUFB",
        "x.bin|~|0|~|" + "9" * 5000 + "|~|QUFB",
        "x.bin|~|" + "1" * 5000 + "|~|2|~|QUFB",
    ],
)
def test_decode_rejects_totals_beyond_limit(text):
    with pytest.raises(MalformedRecord):
        decode_record(text)


def test_decode_accepts_total_at_limit():
    rec = decode_record(f"x.bin|~|{MAX_TOTAL_COUNT - 1}|~|{MAX_TOTAL_COUNT}|~|QUFB")
    assert rec.total_count == MAX_TOTAL_COUNT


def test_encode_rejects_total_beyond_limit():
    with pytest.raises(ValueError):
        encode_record("x.bin", 0, MAX_TOTAL_COUNT + 1, "")
