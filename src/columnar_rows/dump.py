"""Tool for dumping the rows of a JSON-described table to the console."""

from __future__ import annotations

import argparse
import dataclasses
import datetime
import itertools
import json
import logging
import re
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any

from columnar_rows.batch import RecordBatch
from columnar_rows.builder import dictionary_encode, record_batch
from columnar_rows.parsing import parse_data_type
from columnar_rows.table import ChunkedTable
from columnar_rows.traversal import each_raw_record
from columnar_rows.types import (
    DataType,
    DayTimeInterval,
    DictionaryType,
    Field,
    MonthDayNanoInterval,
    PhysicalKind,
    Schema,
    TimeOfDay,
    Timestamp,
)

logger = logging.getLogger(__name__)

_FRACTION = re.compile(r"\.(\d+)")


def _parse_datetime(text: str) -> datetime.datetime:
    """Parse an ISO 8601 datetime, keeping up to nanosecond precision."""
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    nanosecond = 0
    match = _FRACTION.search(text)
    if match and len(match.group(1)) > 6:
        digits = match.group(1).ljust(9, "0")[:9]
        nanosecond = int(digits[6:])
        text = f"{text[: match.start()]}.{digits[:6]}{text[match.end():]}"
    value = datetime.datetime.fromisoformat(text)
    if nanosecond:
        return Timestamp.from_datetime(value, nanosecond)
    return value


def value_from_json(value: Any, data_type: DataType) -> Any:
    """Convert a JSON value to the logical value the builder expects.

    Kinds JSON cannot express directly use strings: binary as hex, dates
    and datetimes as ISO 8601, decimals as decimal literals. Times are
    integer counts of the type's unit (or ISO times), intervals objects.
    """
    if value is None:
        return None
    if isinstance(data_type, DictionaryType):
        return value_from_json(value, data_type.value_type)

    kind = data_type.kind
    if kind is PhysicalKind.BINARY:
        return bytes.fromhex(value)
    if kind is PhysicalKind.DATE32 and isinstance(value, str):
        return datetime.date.fromisoformat(value)
    if kind in (PhysicalKind.DATE64, PhysicalKind.TIMESTAMP) and isinstance(value, str):
        return _parse_datetime(value)
    if kind in (PhysicalKind.TIME32, PhysicalKind.TIME64) and isinstance(value, str):
        return datetime.time.fromisoformat(value)
    if kind in (PhysicalKind.DECIMAL128, PhysicalKind.DECIMAL256):
        return Decimal(value) if isinstance(value, str) else Decimal(str(value))
    return value


def value_to_json(value: Any) -> Any:
    """Convert a decoded value to a JSON-compatible value."""
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (Decimal, TimeOfDay)):
        return str(value)
    if isinstance(value, (DayTimeInterval, MonthDayNanoInterval)):
        return dataclasses.asdict(value)
    return value


def format_value(value: Any) -> str:
    """Format a decoded value for display."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:.6g}"
    if isinstance(value, (str, bytes)):
        return repr(value)
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, DayTimeInterval):
        return f"(day={value.day}, millisecond={value.millisecond})"
    if isinstance(value, MonthDayNanoInterval):
        return f"(month={value.month}, day={value.day}, nanosecond={value.nanosecond})"
    return str(value)


def load_schema(spec: Any) -> Schema:
    """Load a schema from a list of {"name", "type", "nullable"} objects."""
    if not isinstance(spec, list):
        raise ValueError("Document needs a 'schema' list")
    return Schema(
        tuple(
            Field(entry["name"], parse_data_type(entry["type"]), entry.get("nullable", True))
            for entry in spec
        )
    )


def load_table(path: Path) -> ChunkedTable:
    """Load a table from a JSON document.

    The document holds a ``schema`` list and either a ``batches`` list of
    column-name -> values objects or a single ``columns`` object.
    """
    with open(path) as f:
        document = json.load(f)

    schema = load_schema(document.get("schema"))
    if "batches" in document:
        raw_batches = document["batches"]
    elif "columns" in document:
        raw_batches = [document["columns"]]
    else:
        raise ValueError("Document needs 'batches' or 'columns'")

    batches = []
    for raw in raw_batches:
        data = {
            f.name: [value_from_json(v, f.data_type) for v in raw[f.name]]
            for f in schema
        }
        batches.append(record_batch(data, schema))
    logger.debug("Loaded %d batches from %s", len(batches), path)
    return ChunkedTable(schema, batches)


def encode_dictionaries(table: ChunkedTable) -> ChunkedTable:
    """Dictionary-encode every column that is not encoded already."""
    fields = []
    for f in table.schema:
        dt = f.data_type
        if dt.kind is not PhysicalKind.DICTIONARY:
            dt = DictionaryType(DataType(PhysicalKind.INT32), dt)
        fields.append(Field(f.name, dt, f.nullable))
    schema = Schema(tuple(fields))

    batches = []
    for batch in table.batches:
        columns = [
            column if column.data_type == f.data_type else dictionary_encode(column)
            for f, column in zip(schema, batch.columns)
        ]
        batches.append(RecordBatch(schema, columns, num_rows=batch.num_rows))
    return ChunkedTable(schema, batches)


def dump_rows(
    table: ChunkedTable,
    start: int = 0,
    limit: int | None = None,
    as_json: bool = False,
) -> None:
    """Print rows of a table, one line per row."""
    names = table.column_names()
    rows = each_raw_record(table, start)
    if limit is not None:
        rows = itertools.islice(rows, limit)

    shown = 0
    for index, row in enumerate(rows, start):
        if as_json:
            record = {"_index": index}
            record.update((name, value_to_json(v)) for name, v in zip(names, row))
            print(json.dumps(record))
        else:
            values = ", ".join(f"{name}={format_value(v)}" for name, v in zip(names, row))
            print(f"[{index}] {values}")
        shown += 1

    remaining = table.num_rows - start - shown
    if limit is not None and remaining > 0 and not as_json:
        print(f"... ({remaining} more rows)")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Dump the rows of a columnar table described by a JSON document"
    )
    parser.add_argument(
        "path",
        type=Path,
        help="Path to the JSON document",
    )
    parser.add_argument(
        "-n", "--limit",
        type=int,
        default=None,
        help="Limit number of rows to display",
    )
    parser.add_argument(
        "--start",
        type=int,
        default=0,
        help="First row to display",
    )
    parser.add_argument(
        "-j", "--json",
        action="store_true",
        help="Output rows as JSON lines",
    )
    parser.add_argument(
        "-s", "--schema",
        action="store_true",
        help="Print the schema before the rows",
    )
    parser.add_argument(
        "-d", "--dictionary-encode",
        action="store_true",
        help="Dictionary-encode every column before dumping",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.path.exists():
        print(f"Error: File not found: {args.path}", file=sys.stderr)
        return 1

    try:
        table = load_table(args.path)
        if args.dictionary_encode:
            table = encode_dictionaries(table)
    except Exception as e:
        print(f"Error loading data: {e}", file=sys.stderr)
        return 1

    if args.schema:
        print(table.schema)
        print("-" * 40)

    try:
        dump_rows(table, args.start, args.limit, args.json)
    except (IndexError, ValueError, TypeError, OverflowError) as e:
        print(f"Error decoding data: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
