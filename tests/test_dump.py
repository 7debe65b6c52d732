"""Tests for the row dump tool."""

import datetime
import json
from decimal import Decimal

import pytest

from columnar_rows.dump import (
    dump_rows,
    encode_dictionaries,
    format_value,
    load_table,
    main,
    value_from_json,
    value_to_json,
)
from columnar_rows.parsing import parse_data_type
from columnar_rows.types import DayTimeInterval, TimeOfDay, Timestamp, TimeUnit

DOCUMENT = {
    "schema": [
        {"name": "id", "type": "int32", "nullable": False},
        {"name": "lang", "type": "dictionary<int8, utf8>"},
        {"name": "at", "type": "timestamp[ns]"},
        {"name": "price", "type": "decimal128(8, 2)"},
        {"name": "raw", "type": "binary"},
    ],
    "batches": [
        {
            "id": [1, 2],
            "lang": ["Ruby", None],
            "at": ["2017-08-23T14:57:02.987654321", None],
            "price": ["92.92", 29.29],
            "raw": ["00ff", None],
        },
        {
            "id": [3],
            "lang": ["あ"],
            "at": ["1960-01-01T02:09:30"],
            "price": [None],
            "raw": [""],
        },
    ],
}


@pytest.fixture
def document_path(tmp_path):
    path = tmp_path / "table.json"
    path.write_text(json.dumps(DOCUMENT))
    return path


def write_document(tmp_path, document):
    path = tmp_path / "custom.json"
    path.write_text(json.dumps(document))
    return path


class TestJsonValues:
    """Tests for converting between JSON and logical values."""

    def test_from_json(self):
        assert value_from_json(None, parse_data_type("int8")) is None
        assert value_from_json("00ff", parse_data_type("binary")) == b"\x00\xff"
        assert value_from_json("2017-08-23", parse_data_type("date32")) == datetime.date(
            2017, 8, 23
        )
        assert value_from_json(1.5, parse_data_type("decimal128(8, 2)")) == Decimal("1.5")
        assert value_from_json("Ruby", parse_data_type("dictionary<int8, utf8>")) == "Ruby"

    def test_from_json_keeps_nanoseconds(self):
        value = value_from_json("2017-08-23T14:57:02.987654321Z", parse_data_type("timestamp[ns]"))
        assert isinstance(value, Timestamp)
        assert value.nanosecond == 321
        assert value.microsecond == 987654
        assert value.utcoffset() == datetime.timedelta(0)

    def test_from_json_time(self):
        assert value_from_json("00:10:00", parse_data_type("time32[s]")) == datetime.time(0, 10)
        assert value_from_json(600, parse_data_type("time32[s]")) == 600

    def test_to_json(self):
        assert value_to_json(b"\x00\xff") == "00ff"
        assert value_to_json(Decimal("92.92")) == "92.92"
        assert value_to_json(datetime.date(1960, 1, 1)) == "1960-01-01"
        assert value_to_json(TimeOfDay(TimeUnit.SECOND, 600)) == "00:10:00"
        assert value_to_json(DayTimeInterval(1, 100)) == {"day": 1, "millisecond": 100}
        assert value_to_json(None) is None

    def test_format_value(self):
        assert format_value(None) == "null"
        assert format_value(True) == "true"
        assert format_value(0.1 + 0.2) == "0.3"
        assert format_value("Ruby") == "'Ruby'"
        assert format_value(DayTimeInterval(1, 100)) == "(day=1, millisecond=100)"


class TestLoadTable:
    def test_batches(self, document_path):
        table = load_table(document_path)
        assert table.num_batches == 2
        assert table.num_rows == 3
        assert table.column_names() == ["id", "lang", "at", "price", "raw"]

    def test_single_columns_object(self, tmp_path):
        path = write_document(
            tmp_path,
            {"schema": [{"name": "a", "type": "int8"}], "columns": {"a": [1, None]}},
        )
        assert load_table(path).raw_records() == [[1], [None]]

    def test_missing_data(self, tmp_path):
        path = write_document(tmp_path, {"schema": []})
        with pytest.raises(ValueError):
            load_table(path)


class TestEncodeDictionaries:
    def test_schema_and_rows(self, document_path):
        table = load_table(document_path)
        encoded = encode_dictionaries(table)
        assert str(encoded.schema.field("id")) == "id: dictionary<int32, int32> not null"
        assert encoded.schema.field("lang").data_type == table.schema.field("lang").data_type
        assert encoded.num_batches == 2
        assert encoded.raw_records() == table.raw_records()


class TestDumpRows:
    def test_text(self, document_path, capsys):
        dump_rows(load_table(document_path))
        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "[0] id=1, lang='Ruby', at=2017-08-23T14:57:02.987654321, "
            "price=92.92, raw=b'\\x00\\xff'",
            "[1] id=2, lang=null, at=null, price=29.29, raw=null",
            "[2] id=3, lang='あ', at=1960-01-01T02:09:30, price=null, raw=b''",
        ]

    def test_json(self, document_path, capsys):
        dump_rows(load_table(document_path), as_json=True)
        records = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert records[0] == {
            "_index": 0,
            "id": 1,
            "lang": "Ruby",
            "at": "2017-08-23T14:57:02.987654321",
            "price": "92.92",
            "raw": "00ff",
        }
        assert records[2]["lang"] == "あ"

    def test_limit(self, document_path, capsys):
        dump_rows(load_table(document_path), limit=1)
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("[0] id=1")
        assert lines[1] == "... (2 more rows)"

    def test_start(self, document_path, capsys):
        dump_rows(load_table(document_path), start=2)
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 1
        assert lines[0].startswith("[2] id=3")


class TestMain:
    """Tests for the command line entry point."""

    def test_dump(self, document_path, capsys):
        assert main([str(document_path)]) == 0
        assert len(capsys.readouterr().out.splitlines()) == 3

    def test_schema_and_limit(self, document_path, capsys):
        assert main([str(document_path), "-s", "-n", "2"]) == 0
        out = capsys.readouterr().out
        assert "id: int32 not null" in out
        assert "lang: dictionary<int8, utf8>" in out
        assert "... (1 more rows)" in out

    def test_json_with_start(self, document_path, capsys):
        assert main([str(document_path), "--json", "--start", "1"]) == 0
        records = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert [r["_index"] for r in records] == [1, 2]

    def test_dictionary_encode_prints_same_rows(self, document_path, capsys):
        assert main([str(document_path)]) == 0
        plain = capsys.readouterr().out
        assert main([str(document_path), "--dictionary-encode", "-s"]) == 0
        out = capsys.readouterr().out
        assert "at: dictionary<int32, timestamp[ns]>" in out
        assert "lang: dictionary<int8, utf8>" in out
        assert out.split("-" * 40 + "\n")[1] == plain

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.json")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_bad_type(self, tmp_path, capsys):
        path = write_document(
            tmp_path,
            {"schema": [{"name": "a", "type": "int128"}], "columns": {"a": [1]}},
        )
        assert main([str(path)]) == 1
        assert "Error loading data" in capsys.readouterr().err

    def test_null_in_non_nullable_column(self, tmp_path, capsys):
        path = write_document(
            tmp_path,
            {
                "schema": [{"name": "a", "type": "int8", "nullable": False}],
                "columns": {"a": [None]},
            },
        )
        assert main([str(path)]) == 1
        assert "not nullable" in capsys.readouterr().err

    def test_date_outside_python_range(self, tmp_path, capsys):
        path = write_document(
            tmp_path,
            {"schema": [{"name": "d", "type": "date32"}], "columns": {"d": [1, 3000000]}},
        )
        assert main([str(path)]) == 1
        captured = capsys.readouterr()
        assert captured.out.startswith("[0] d=1970-01-02")
        assert "Error decoding data" in captured.err

    def test_start_out_of_range(self, document_path, capsys):
        assert main([str(document_path), "--start", "4"]) == 1
        assert "Error decoding data" in capsys.readouterr().err
