"""Chunked tables: same-schema record batches addressed as one row space."""

from __future__ import annotations

import bisect
import itertools
import logging
from typing import Any, Iterator, Sequence

from columnar_rows.batch import RecordBatch
from columnar_rows.builder import concat_columns
from columnar_rows.column import Column
from columnar_rows.errors import SchemaMismatchError
from columnar_rows.traversal import each_raw_record, raw_record, raw_records
from columnar_rows.types import Schema

logger = logging.getLogger(__name__)


class ChunkedTable:
    """An ordered sequence of record batches sharing one schema.

    Row ``i`` of the table is found by a binary search over the cumulative
    batch lengths, so batches are never combined to address a row.
    """

    def __init__(self, schema: Schema, batches: Sequence[RecordBatch]) -> None:
        for i, batch in enumerate(batches):
            if batch.schema != schema:
                raise SchemaMismatchError(
                    f"Batch {i} schema ({', '.join(batch.schema.names)}) "
                    f"does not match table schema ({', '.join(schema.names)})"
                )
        self.schema = schema
        self._batches = tuple(batches)
        # _ends[i] is the table row just past batch i
        self._ends = list(itertools.accumulate(batch.num_rows for batch in self._batches))
        logger.debug(
            "Built table of %d rows in %d batches", self.num_rows, len(self._batches)
        )

    @classmethod
    def from_batches(
        cls, batches: Sequence[RecordBatch], schema: Schema | None = None
    ) -> ChunkedTable:
        """Build a table, taking the schema from the first batch if not given."""
        if schema is None:
            if not batches:
                raise ValueError("Cannot infer a schema from an empty list of batches")
            schema = batches[0].schema
        return cls(schema, batches)

    @property
    def batches(self) -> tuple[RecordBatch, ...]:
        return self._batches

    @property
    def num_batches(self) -> int:
        return len(self._batches)

    @property
    def num_rows(self) -> int:
        return self._ends[-1] if self._ends else 0

    def row_count(self) -> int:
        return self.num_rows

    def column_names(self) -> list[str]:
        return self.schema.names

    def column(self, name: str) -> list[Column]:
        """Get the per-batch chunks of a column."""
        index = self.schema.index(name)
        return [batch.column_at(index) for batch in self._batches]

    def locate(self, row: int) -> tuple[int, int]:
        """Map a table row to (batch index, row within that batch).

        Empty batches are never returned.
        """
        if row < 0 or row >= self.num_rows:
            raise IndexError(f"Index {row} out of range [0, {self.num_rows})")
        batch_index = bisect.bisect_right(self._ends, row)
        start = self._ends[batch_index - 1] if batch_index else 0
        return (batch_index, row - start)

    def slice(self, offset: int, length: int | None = None) -> ChunkedTable:
        """Return a zero-copy table of ``length`` rows starting at ``offset``."""
        if offset < 0 or offset > self.num_rows:
            raise IndexError(f"Slice offset {offset} out of range [0, {self.num_rows}]")
        available = self.num_rows - offset
        if length is None or length > available:
            length = available

        batches = []
        start = 0
        for batch in self._batches:
            end = start + batch.num_rows
            lo = max(offset, start)
            hi = min(offset + length, end)
            if lo < hi:
                batches.append(batch.slice(lo - start, hi - lo))
            start = end
        return ChunkedTable(self.schema, batches)

    def combine_batches(self) -> RecordBatch:
        """Concatenate every batch into a single record batch (copies data)."""
        columns = [
            concat_columns(self.column(name), self.schema.field(name).data_type)
            for name in self.schema.names
        ]
        return RecordBatch(self.schema, columns, num_rows=self.num_rows)

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
        return f"ChunkedTable({names}; num_rows={self.num_rows}, num_batches={self.num_batches})"
