"""Row traversal over record batches and chunked tables."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterator, Sequence

from columnar_rows.decoder import decode

if TYPE_CHECKING:
    from columnar_rows.batch import RecordBatch
    from columnar_rows.column import Column
    from columnar_rows.table import ChunkedTable

    ColumnSet = RecordBatch | ChunkedTable

logger = logging.getLogger(__name__)


def _materialize(
    names: Sequence[str], columns: Sequence[Column], row: int, table_row: int
) -> list[Any]:
    """Decode one row of a batch, one value (or None) per column."""
    record = []
    for name, column in zip(names, columns):
        try:
            record.append(decode(column, row))
        except Exception:
            logger.debug("Failed to decode column %r at row %d", name, table_row)
            raise
    return record


def _iter_rows(
    batches: Sequence[RecordBatch], batch_index: int, batch_row: int, table_row: int
) -> Iterator[list[Any]]:
    while batch_index < len(batches):
        batch = batches[batch_index]
        names = batch.column_names()
        columns = batch.columns
        for row in range(batch_row, batch.num_rows):
            yield _materialize(names, columns, row, table_row)
            table_row += 1
        batch_index += 1
        batch_row = 0


def each_raw_record(column_set: ColumnSet, start: int = 0) -> Iterator[list[Any]]:
    """Lazily yield every row of a batch or table, in order.

    Each row is a list with one decoded value per column, in column order,
    and None where the value is null. Tables are walked batch by batch
    without being combined. Every call starts a fresh, independent pass.

    Args:
        column_set: A RecordBatch or ChunkedTable.
        start: First row to yield.

    Returns:
        An iterator of rows.
    """
    total = column_set.num_rows
    if start < 0 or start > total:
        raise IndexError(f"Start row {start} out of range [0, {total}]")
    batches = column_set.batches
    if start == total:
        batch_index, batch_row = len(batches), 0
    else:
        batch_index, batch_row = column_set.locate(start)
    logger.debug(
        "Traversing %d rows from row %d (batch %d, row %d)",
        total - start,
        start,
        batch_index,
        batch_row,
    )
    return _iter_rows(batches, batch_index, batch_row, start)


def raw_records(column_set: ColumnSet) -> list[list[Any]]:
    """Return every row of a batch or table as a list."""
    return list(each_raw_record(column_set))


def raw_record(column_set: ColumnSet, row: int) -> list[Any]:
    """Return the single row at ``row``."""
    batch_index, batch_row = column_set.locate(row)
    batch = column_set.batches[batch_index]
    return _materialize(batch.column_names(), batch.columns, batch_row, row)
