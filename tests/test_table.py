"""Tests for record batches and chunked tables."""

import pytest

from columnar_rows import (
    ChunkedTable,
    Field,
    RecordBatch,
    Schema,
    SchemaMismatchError,
    array,
    data_type,
    record_batch,
)


@pytest.fixture
def schema():
    return Schema.from_pairs([("x", data_type("int16")), ("label", data_type("utf8"))])


def make_batch(schema, xs, labels):
    return record_batch({"x": xs, "label": labels}, schema)


@pytest.fixture
def table(schema):
    """Batch lengths 2, 0, 3, 0, 1."""
    return ChunkedTable(
        schema,
        [
            make_batch(schema, [0, 1], ["a", "b"]),
            make_batch(schema, [], []),
            make_batch(schema, [2, 3, 4], ["c", None, "e"]),
            make_batch(schema, [], []),
            make_batch(schema, [5], ["f"]),
        ],
    )


class TestRecordBatch:
    """Tests for the RecordBatch class."""

    def test_basic_properties(self, schema):
        batch = make_batch(schema, [1, 2, 3], ["a", None, "c"])
        assert batch.num_rows == 3
        assert batch.row_count() == 3
        assert len(batch) == 3
        assert batch.column_names() == ["x", "label"]
        assert batch.column("label").to_pylist() == ["a", None, "c"]
        assert batch.column_at(0).to_pylist() == [1, 2, 3]
        assert batch.batches == (batch,)

    def test_locate(self, schema):
        batch = make_batch(schema, [1, 2, 3], ["a", "b", "c"])
        assert batch.locate(2) == (0, 2)
        with pytest.raises(IndexError):
            batch.locate(3)

    def test_column_count_mismatch(self, schema):
        with pytest.raises(SchemaMismatchError):
            RecordBatch(schema, [array([1], data_type("int16"))])

    def test_column_type_mismatch(self, schema):
        with pytest.raises(SchemaMismatchError):
            RecordBatch(
                schema,
                [array([1], data_type("int32")), array(["a"], data_type("utf8"))],
            )

    def test_column_length_mismatch(self, schema):
        with pytest.raises(ValueError):
            RecordBatch(
                schema,
                [array([1, 2], data_type("int16")), array(["a"], data_type("utf8"))],
            )

    def test_non_nullable_field_rejects_nulls(self):
        strict = Schema((Field("x", data_type("int8"), nullable=False),))
        with pytest.raises(ValueError):
            RecordBatch(strict, [array([1, None], data_type("int8"))])
        assert RecordBatch(strict, [array([1, 2], data_type("int8"))]).num_rows == 2

    def test_from_columns(self):
        batch = RecordBatch.from_columns(
            {"a": array([True], data_type("bool")), "b": array([1.5], data_type("float64"))}
        )
        assert batch.schema.names == ["a", "b"]
        assert batch.schema.field("b").data_type == data_type("float64")

    def test_slice(self, schema):
        batch = make_batch(schema, [1, 2, 3, 4], ["a", "b", "c", "d"])
        sliced = batch.slice(1, 2)
        assert sliced.num_rows == 2
        assert sliced.raw_records() == [[2, "b"], [3, "c"]]
        assert batch.slice(3, 10).num_rows == 1
        with pytest.raises(IndexError):
            batch.slice(5)

    def test_to_table(self, schema):
        batch = make_batch(schema, [1], ["a"])
        table = batch.to_table()
        assert table.num_batches == 1
        assert table.batches[0] is batch


class TestLocate:
    """Tests for mapping table rows to batch positions."""

    def test_positions(self, table):
        assert [table.locate(row) for row in range(6)] == [
            (0, 0),
            (0, 1),
            (2, 0),
            (2, 1),
            (2, 2),
            (4, 0),
        ]

    def test_never_returns_empty_batch(self, table):
        for row in range(table.num_rows):
            batch_index, batch_row = table.locate(row)
            assert 0 <= batch_row < table.batches[batch_index].num_rows

    def test_monotonic(self, table):
        positions = [table.locate(row) for row in range(table.num_rows)]
        assert positions == sorted(positions)

    def test_matches_batch_contents(self, table):
        for row in range(table.num_rows):
            batch_index, batch_row = table.locate(row)
            assert table.batches[batch_index].column("x")[batch_row] == row

    @pytest.mark.parametrize("row", [-1, 6, 100])
    def test_out_of_range(self, table, row):
        with pytest.raises(IndexError):
            table.locate(row)

    def test_empty_table(self, schema):
        table = ChunkedTable(schema, [make_batch(schema, [], [])])
        assert table.num_rows == 0
        with pytest.raises(IndexError):
            table.locate(0)


class TestChunkedTable:
    """Tests for the ChunkedTable class."""

    def test_counts(self, table):
        assert table.num_rows == 6
        assert table.row_count() == 6
        assert len(table) == 6
        assert table.num_batches == 5
        assert table.column_names() == ["x", "label"]

    def test_no_batches(self, schema):
        table = ChunkedTable(schema, [])
        assert table.num_rows == 0
        assert table.num_batches == 0

    def test_schema_mismatch(self, schema):
        other = Schema.from_pairs([("x", data_type("int16")), ("label", data_type("binary"))])
        with pytest.raises(SchemaMismatchError):
            ChunkedTable(schema, [record_batch({"x": [1], "label": [b"a"]}, other)])

    def test_from_batches_infers_schema(self, schema):
        batches = [make_batch(schema, [1], ["a"]), make_batch(schema, [2], ["b"])]
        table = ChunkedTable.from_batches(batches)
        assert table.schema == schema
        assert table.num_rows == 2

    def test_from_batches_empty(self, schema):
        with pytest.raises(ValueError):
            ChunkedTable.from_batches([])
        assert ChunkedTable.from_batches([], schema).num_rows == 0

    def test_column_chunks(self, table):
        chunks = table.column("x")
        assert [len(chunk) for chunk in chunks] == [2, 0, 3, 0, 1]

    def test_slice_across_batches(self, table):
        sliced = table.slice(1, 4)
        assert sliced.num_rows == 4
        assert sliced.raw_records() == [[1, "b"], [2, "c"], [3, None], [4, "e"]]
        assert sliced.num_batches == 2

    def test_slice_to_end(self, table):
        assert table.slice(4).raw_records() == [[4, "e"], [5, "f"]]
        assert table.slice(6).num_rows == 0
        with pytest.raises(IndexError):
            table.slice(7)

    def test_combine_batches(self, table):
        combined = table.combine_batches()
        assert isinstance(combined, RecordBatch)
        assert combined.num_rows == 6
        assert combined.column("x").to_pylist() == [0, 1, 2, 3, 4, 5]
        assert combined.column("label").null_count == 1

    def test_repr(self, table):
        assert repr(table) == "ChunkedTable(x, label; num_rows=6, num_batches=5)"
