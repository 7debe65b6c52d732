"""Building columns from logical Python values.

This is the inverse of decoding: it lays logical values out in the buffers
a Column expects. It exists so batches can be produced from plain Python
data (tests, the dump tool); decoding never depends on it.
"""

from __future__ import annotations

import datetime
import struct
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Sequence

from columnar_rows.batch import RecordBatch
from columnar_rows.column import Column
from columnar_rows.decoder import EPOCH, EPOCH_DATE, SLOT_FORMATS
from columnar_rows.types import (
    DataType,
    DayTimeInterval,
    DecimalType,
    DictionaryType,
    MonthDayNanoInterval,
    PhysicalKind,
    Schema,
    TimeOfDay,
    TimestampType,
    TimeType,
    Timestamp,
    TimeUnit,
)

MAX_OFFSET = 2**31 - 1


def _pack_bits(flags: Sequence[bool]) -> bytes:
    """Pack booleans into an LSB-first bitmap."""
    bitmap = bytearray((len(flags) + 7) // 8)
    for i, flag in enumerate(flags):
        if flag:
            bitmap[i // 8] |= 1 << (i % 8)
    return bytes(bitmap)


def _pack(kind: PhysicalKind, *parts: Any) -> bytes:
    try:
        return SLOT_FORMATS[kind].pack(*parts)
    except struct.error as e:
        raise OverflowError(f"{parts} does not fit in {kind.value}: {e}") from None


def _encode_integer(value: Any, data_type: DataType) -> bytes:
    if not isinstance(value, int):
        raise TypeError(f"Expected int for {data_type}, got {type(value).__name__}")
    kind = data_type.kind
    bits = kind.byte_width * 8
    if kind.is_signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1
    if not low <= value <= high:
        raise OverflowError(f"{value} does not fit in {data_type} [{low}, {high}]")
    return value.to_bytes(kind.byte_width, "little", signed=kind.is_signed)


def _encode_float(value: Any, data_type: DataType) -> bytes:
    return _pack(data_type.kind, float(value))


def _nanoseconds_since_epoch(value: Any) -> int:
    """Convert a date or datetime to nanoseconds since the epoch.

    Naive datetimes are taken as UTC wall clock time.
    """
    nanosecond = value.nanosecond if isinstance(value, Timestamp) else 0
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    elif isinstance(value, datetime.date):
        value = datetime.datetime.combine(value, datetime.time())
    else:
        raise TypeError(f"Expected a date or datetime, got {type(value).__name__}")
    delta = value - EPOCH
    seconds = delta.days * 86400 + delta.seconds
    return seconds * 1_000_000_000 + delta.microseconds * 1000 + nanosecond


def _to_count(nanoseconds: int, unit: TimeUnit, value: Any) -> int:
    count, remainder = divmod(nanoseconds, unit.nanoseconds)
    if remainder:
        raise ValueError(f"{value} is not a whole number of {unit.name.lower()}s")
    return count


def _encode_date32(value: Any, data_type: DataType) -> bytes:
    if isinstance(value, datetime.datetime):
        value = value.date()
    if isinstance(value, datetime.date):
        value = (value - EPOCH_DATE).days
    return _pack(data_type.kind, value)


def _encode_date64(value: Any, data_type: DataType) -> bytes:
    if not isinstance(value, int):
        value = _to_count(_nanoseconds_since_epoch(value), TimeUnit.MILLISECOND, value)
    return _pack(data_type.kind, value)


def _encode_timestamp(value: Any, data_type: DataType) -> bytes:
    assert isinstance(data_type, TimestampType)
    if not isinstance(value, int):
        value = _to_count(_nanoseconds_since_epoch(value), data_type.unit, value)
    return _pack(data_type.kind, value)


def _encode_time(value: Any, data_type: DataType) -> bytes:
    assert isinstance(data_type, TimeType)
    if isinstance(value, TimeOfDay):
        value = _to_count(value.value * value.unit.nanoseconds, data_type.unit, value)
    elif isinstance(value, datetime.time):
        seconds = (value.hour * 60 + value.minute) * 60 + value.second
        nanoseconds = seconds * 1_000_000_000 + value.microsecond * 1000
        value = _to_count(nanoseconds, data_type.unit, value)
    return _pack(data_type.kind, value)


def decimal_to_unscaled(value: Any, data_type: DecimalType) -> int:
    """Return the integer a decimal value is stored as (``value * 10 ** scale``).

    Raises:
        ValueError: If the value needs rounding or exceeds the precision.
    """
    number = value if isinstance(value, Decimal) else Decimal(str(value))
    if not number.is_finite():
        raise ValueError(f"Cannot store {value} in {data_type}")
    sign, digits, exponent = number.as_tuple()
    coefficient = int("".join(map(str, digits)))
    shift = exponent + data_type.scale
    if shift >= 0:
        unscaled = coefficient * 10**shift
    else:
        unscaled, remainder = divmod(coefficient, 10**-shift)
        if remainder:
            raise ValueError(f"{value} cannot be stored in {data_type} without rounding")
    if len(str(unscaled)) > data_type.precision:
        raise ValueError(f"{value} exceeds the precision of {data_type}")
    return -unscaled if sign else unscaled


def _encode_decimal(value: Any, data_type: DataType) -> bytes:
    assert isinstance(data_type, DecimalType)
    unscaled = decimal_to_unscaled(value, data_type)
    return unscaled.to_bytes(data_type.byte_width, "little", signed=True)


def _interval_parts(value: Any, names: tuple[str, ...]) -> tuple[int, ...]:
    if isinstance(value, Mapping):
        return tuple(value[name] for name in names)
    if isinstance(value, (DayTimeInterval, MonthDayNanoInterval)):
        return tuple(getattr(value, name) for name in names)
    parts = tuple(value)
    if len(parts) != len(names):
        raise ValueError(f"Expected ({', '.join(names)}), got {value!r}")
    return parts


def _encode_month_interval(value: Any, data_type: DataType) -> bytes:
    return _pack(data_type.kind, value)


def _encode_day_time_interval(value: Any, data_type: DataType) -> bytes:
    return _pack(data_type.kind, *_interval_parts(value, ("day", "millisecond")))


def _encode_month_day_nano_interval(value: Any, data_type: DataType) -> bytes:
    parts = _interval_parts(value, ("month", "day", "nanosecond"))
    return _pack(data_type.kind, *parts)


ENCODERS: dict[PhysicalKind, Callable[[Any, DataType], bytes]] = {
    PhysicalKind.INT8: _encode_integer,
    PhysicalKind.UINT8: _encode_integer,
    PhysicalKind.INT16: _encode_integer,
    PhysicalKind.UINT16: _encode_integer,
    PhysicalKind.INT32: _encode_integer,
    PhysicalKind.UINT32: _encode_integer,
    PhysicalKind.INT64: _encode_integer,
    PhysicalKind.UINT64: _encode_integer,
    PhysicalKind.FLOAT32: _encode_float,
    PhysicalKind.FLOAT64: _encode_float,
    PhysicalKind.DATE32: _encode_date32,
    PhysicalKind.DATE64: _encode_date64,
    PhysicalKind.TIMESTAMP: _encode_timestamp,
    PhysicalKind.TIME32: _encode_time,
    PhysicalKind.TIME64: _encode_time,
    PhysicalKind.DECIMAL128: _encode_decimal,
    PhysicalKind.DECIMAL256: _encode_decimal,
    PhysicalKind.MONTH_INTERVAL: _encode_month_interval,
    PhysicalKind.DAY_TIME_INTERVAL: _encode_day_time_interval,
    PhysicalKind.MONTH_DAY_NANO_INTERVAL: _encode_month_day_nano_interval,
}


def _build_variable_width(values: Sequence[Any], data_type: DataType) -> list[bytes]:
    """Build the offsets and data buffers of a binary/utf8 column."""
    offsets = [0]
    chunks = []
    for value in values:
        if value is not None:
            if data_type.kind is PhysicalKind.UTF8:
                if not isinstance(value, str):
                    raise TypeError(f"Expected str for utf8, got {type(value).__name__}")
                value = value.encode("utf-8")
            elif isinstance(value, str):
                raise TypeError("Expected bytes for binary, got str")
            chunk = bytes(value)
            chunks.append(chunk)
            offsets.append(offsets[-1] + len(chunk))
        else:
            offsets.append(offsets[-1])
    if offsets[-1] > MAX_OFFSET:
        raise OverflowError(f"{data_type} data exceeds {MAX_OFFSET} bytes")
    return [struct.pack(f"<{len(offsets)}i", *offsets), b"".join(chunks)]


def array(values: Iterable[Any], data_type: DataType) -> Column:
    """Build a column from logical values, None marking nulls.

    Args:
        values: The logical values, in row order.
        data_type: The column's data type.

    Returns:
        A new Column.
    """
    values = list(values)
    kind = data_type.kind
    length = len(values)

    if kind is PhysicalKind.NULL:
        if any(v is not None for v in values):
            raise ValueError("Null columns can only hold None")
        return Column(data_type, length)

    if isinstance(data_type, DictionaryType):
        return dictionary_encode(array(values, data_type.value_type), data_type.index_type)

    validity = None
    if any(v is None for v in values):
        validity = _pack_bits([v is not None for v in values])

    if kind is PhysicalKind.BOOLEAN:
        buffers = [_pack_bits([bool(v) for v in values])]
    elif kind in (PhysicalKind.BINARY, PhysicalKind.UTF8):
        buffers = _build_variable_width(values, data_type)
    else:
        encode = ENCODERS[kind]
        empty = bytes(data_type.byte_width)
        buffers = [
            b"".join(empty if v is None else encode(v, data_type) for v in values)
        ]

    return Column(data_type, length, buffers, validity)


def _dictionary_key(value: Any) -> Any:
    # Keep -0.0 and 0.0 apart, and let NaN find itself
    if isinstance(value, float):
        return (float, struct.pack("<d", value))
    if isinstance(value, Timestamp):
        return (value, value.nanosecond)
    return value


def dictionary_encode(column: Column, index_type: DataType | None = None) -> Column:
    """Dictionary-encode a column.

    Distinct non-null values are stored once, in first-occurrence order;
    null positions stay null in the indices.

    Args:
        column: A column of any non-dictionary type.
        index_type: Integer type of the indices (int32 by default).

    Returns:
        A dictionary-typed column.
    """
    if column.kind is PhysicalKind.DICTIONARY:
        raise TypeError("Column is already dictionary encoded")
    if index_type is None:
        index_type = DataType(PhysicalKind.INT32)

    positions: dict[Any, int] = {}
    dictionary_values: list[Any] = []
    indices: list[int | None] = []
    for value in column:
        if value is None:
            indices.append(None)
            continue
        key = _dictionary_key(value)
        position = positions.get(key)
        if position is None:
            position = positions[key] = len(dictionary_values)
            dictionary_values.append(value)
        indices.append(position)

    dictionary = array(dictionary_values, column.data_type)
    encoded = array(indices, index_type)
    return Column(
        DictionaryType(index_type, column.data_type),
        encoded.length,
        encoded.buffers,
        encoded.validity,
        dictionary=dictionary,
    )


def concat_columns(columns: Sequence[Column], data_type: DataType) -> Column:
    """Concatenate columns of one type into a single new column."""
    for column in columns:
        if column.data_type != data_type:
            raise TypeError(f"Cannot concatenate {column.data_type} into {data_type}")
    return array([value for column in columns for value in column], data_type)


def record_batch(data: Mapping[str, Any], schema: Schema | None = None) -> RecordBatch:
    """Build a record batch from columns or lists of logical values.

    Args:
        data: Column name -> Column or sequence of logical values.
        schema: Field order and types; inferred from Columns when omitted.

    Returns:
        A new RecordBatch.
    """
    if schema is None:
        for name, values in data.items():
            if not isinstance(values, Column):
                raise TypeError(f"A schema is required to build column '{name}' from values")
        return RecordBatch.from_columns(data)

    columns = []
    for f in schema:
        values = data[f.name]
        columns.append(values if isinstance(values, Column) else array(values, f.data_type))
    return RecordBatch(schema, columns)
