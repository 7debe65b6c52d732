"""Record batches: equal-length columns under one schema."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator, Mapping, Sequence

from columnar_rows.column import Column
from columnar_rows.errors import SchemaMismatchError
from columnar_rows.traversal import each_raw_record, raw_record, raw_records
from columnar_rows.types import Field, Schema

if TYPE_CHECKING:
    from columnar_rows.table import ChunkedTable


class RecordBatch:
    """A single contiguous column set. Immutable once constructed."""

    def __init__(
        self,
        schema: Schema,
        columns: Sequence[Column],
        num_rows: int | None = None,
    ) -> None:
        """Initialize a record batch.

        Args:
            schema: Names and types of the columns.
            columns: One column per schema field, in schema order.
            num_rows: Expected row count; required when there are no columns.
        """
        if len(columns) != len(schema):
            raise SchemaMismatchError(
                f"Schema has {len(schema)} fields but {len(columns)} columns were given"
            )

        for f, column in zip(schema, columns):
            if column.data_type != f.data_type:
                raise SchemaMismatchError(
                    f"Column '{f.name}' has type {column.data_type}, schema says {f.data_type}"
                )
            if num_rows is None:
                num_rows = column.length
            elif column.length != num_rows:
                raise ValueError(
                    f"Column '{f.name}' has {column.length} rows, expected {num_rows}"
                )
            if not f.nullable and column.null_count:
                raise ValueError(
                    f"Column '{f.name}' is not nullable but holds {column.null_count} nulls"
                )

        self.schema = schema
        self._columns = tuple(columns)
        self.num_rows = num_rows or 0

    @classmethod
    def from_columns(cls, columns: Mapping[str, Column]) -> RecordBatch:
        """Build a batch from a name -> column mapping, inferring the schema."""
        schema = Schema(tuple(Field(name, column.data_type) for name, column in columns.items()))
        return cls(schema, list(columns.values()))

    @property
    def columns(self) -> tuple[Column, ...]:
        return self._columns

    @property
    def batches(self) -> tuple[RecordBatch, ...]:
        """A batch is a one-batch column set."""
        return (self,)

    def column_names(self) -> list[str]:
        return self.schema.names

    def row_count(self) -> int:
        return self.num_rows

    def column(self, name: str) -> Column:
        """Get a column by name."""
        return self._columns[self.schema.index(name)]

    def column_at(self, index: int) -> Column:
        return self._columns[index]

    def locate(self, row: int) -> tuple[int, int]:
        """Map a row to (batch index, row within batch)."""
        if row < 0 or row >= self.num_rows:
            raise IndexError(f"Index {row} out of range [0, {self.num_rows})")
        return (0, row)

    def slice(self, offset: int, length: int | None = None) -> RecordBatch:
        """Return a zero-copy batch of ``length`` rows starting at ``offset``."""
        if offset < 0 or offset > self.num_rows:
            raise IndexError(f"Slice offset {offset} out of range [0, {self.num_rows}]")
        available = self.num_rows - offset
        if length is None or length > available:
            length = available
        return RecordBatch(
            self.schema,
            [column.slice(offset, length) for column in self._columns],
            num_rows=length,
        )

    def to_table(self) -> ChunkedTable:
        """Wrap this batch in a one-batch table."""
        from columnar_rows.table import ChunkedTable

        return ChunkedTable(self.schema, [self])

    def each_raw_record(self, start: int = 0) -> Iterator[list[Any]]:
        return each_raw_record(self, start)

    def raw_records(self) -> list[list[Any]]:
        return raw_records(self)

    def raw_record(self, row: int) -> list[Any]:
        return raw_record(self, row)

    def __len__(self) -> int:
        return self.num_rows

    def __repr__(self) -> str:
        names = ", ".join(self.schema.names)
        return f"RecordBatch({names}; num_rows={self.num_rows})"
