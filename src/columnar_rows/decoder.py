"""Decoding of single logical values out of column buffers."""

from __future__ import annotations

import datetime
import struct
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable

from columnar_rows.errors import DictionaryIndexError, InvalidUTF8Error
from columnar_rows.types import (
    DayTimeInterval,
    DecimalType,
    DictionaryType,
    MonthDayNanoInterval,
    PhysicalKind,
    TimeOfDay,
    TimestampType,
    TimeType,
    Timestamp,
)

if TYPE_CHECKING:
    from columnar_rows.column import Column

EPOCH_DATE = datetime.date(1970, 1, 1)
EPOCH = datetime.datetime(1970, 1, 1)

# Slot layouts of the fixed-width kinds read with struct
SLOT_FORMATS: dict[PhysicalKind, struct.Struct] = {
    kind: struct.Struct(fmt)
    for kind, fmt in {
        PhysicalKind.INT8: "<b",
        PhysicalKind.UINT8: "<B",
        PhysicalKind.INT16: "<h",
        PhysicalKind.UINT16: "<H",
        PhysicalKind.INT32: "<i",
        PhysicalKind.UINT32: "<I",
        PhysicalKind.INT64: "<q",
        PhysicalKind.UINT64: "<Q",
        PhysicalKind.FLOAT32: "<f",
        PhysicalKind.FLOAT64: "<d",
        PhysicalKind.DATE32: "<i",
        PhysicalKind.DATE64: "<q",
        PhysicalKind.TIMESTAMP: "<q",
        PhysicalKind.TIME32: "<i",
        PhysicalKind.TIME64: "<q",
        PhysicalKind.MONTH_INTERVAL: "<i",
        PhysicalKind.DAY_TIME_INTERVAL: "<ii",
        PhysicalKind.MONTH_DAY_NANO_INTERVAL: "<iiq",
    }.items()
}

_OFFSET = struct.Struct("<i")


def _unpack(column: Column, slot: int) -> tuple[Any, ...]:
    layout = SLOT_FORMATS[column.kind]
    return layout.unpack_from(column.buffers[0], slot * layout.size)


def _decode_boolean(column: Column, slot: int) -> bool:
    return bool((column.buffers[0][slot >> 3] >> (slot & 7)) & 1)


def _decode_number(column: Column, slot: int) -> int | float:
    return _unpack(column, slot)[0]


def _read_bytes(column: Column, slot: int) -> bytes:
    offsets, data = column.buffers
    start = _OFFSET.unpack_from(offsets, slot * _OFFSET.size)[0]
    end = _OFFSET.unpack_from(offsets, (slot + 1) * _OFFSET.size)[0]
    return bytes(data[start:end])


def _decode_binary(column: Column, slot: int) -> bytes:
    return _read_bytes(column, slot)


def _decode_utf8(column: Column, slot: int) -> str:
    raw = _read_bytes(column, slot)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidUTF8Error(slot - column.offset, raw, e.reason) from e


def _decode_date32(column: Column, slot: int) -> datetime.date:
    """Days since the epoch.

    Raises OverflowError for days outside of years 1-9999, which
    datetime.date cannot represent.
    """
    return EPOCH_DATE + datetime.timedelta(days=_unpack(column, slot)[0])


def _decode_date64(column: Column, slot: int) -> datetime.datetime:
    """Milliseconds since the epoch; OverflowError outside of years 1-9999."""
    return EPOCH + datetime.timedelta(milliseconds=_unpack(column, slot)[0])


def _decode_timestamp(column: Column, slot: int) -> Timestamp:
    """Count of units since the epoch, in the type's timezone when it has one.

    Raises OverflowError for instants outside of years 1-9999.
    """
    data_type = column.data_type
    assert isinstance(data_type, TimestampType)
    count = _unpack(column, slot)[0]

    seconds, fraction = divmod(count, data_type.unit.per_second)
    nanoseconds = fraction * data_type.unit.nanoseconds
    value = EPOCH + datetime.timedelta(seconds=seconds, microseconds=nanoseconds // 1000)
    tzinfo = data_type.tzinfo
    if tzinfo is not None:
        value = value.replace(tzinfo=datetime.timezone.utc).astimezone(tzinfo)
    return Timestamp.from_datetime(value, nanoseconds % 1000)


def _decode_time(column: Column, slot: int) -> TimeOfDay:
    data_type = column.data_type
    assert isinstance(data_type, TimeType)
    return TimeOfDay(data_type.unit, _unpack(column, slot)[0])


def _decode_decimal(column: Column, slot: int) -> Decimal:
    data_type = column.data_type
    assert isinstance(data_type, DecimalType)
    width = data_type.byte_width
    raw = column.buffers[0][slot * width : (slot + 1) * width]
    unscaled = int.from_bytes(raw, "little", signed=True)
    sign, digits, _ = Decimal(unscaled).as_tuple()
    return Decimal((sign, digits, -data_type.scale))


def _decode_day_time_interval(column: Column, slot: int) -> DayTimeInterval:
    day, millisecond = _unpack(column, slot)
    return DayTimeInterval(day, millisecond)


def _decode_month_day_nano_interval(column: Column, slot: int) -> MonthDayNanoInterval:
    month, day, nanosecond = _unpack(column, slot)
    return MonthDayNanoInterval(month, day, nanosecond)


DECODERS: dict[PhysicalKind, Callable[[Column, int], Any]] = {
    PhysicalKind.BOOLEAN: _decode_boolean,
    PhysicalKind.INT8: _decode_number,
    PhysicalKind.UINT8: _decode_number,
    PhysicalKind.INT16: _decode_number,
    PhysicalKind.UINT16: _decode_number,
    PhysicalKind.INT32: _decode_number,
    PhysicalKind.UINT32: _decode_number,
    PhysicalKind.INT64: _decode_number,
    PhysicalKind.UINT64: _decode_number,
    PhysicalKind.FLOAT32: _decode_number,
    PhysicalKind.FLOAT64: _decode_number,
    PhysicalKind.BINARY: _decode_binary,
    PhysicalKind.UTF8: _decode_utf8,
    PhysicalKind.DATE32: _decode_date32,
    PhysicalKind.DATE64: _decode_date64,
    PhysicalKind.TIMESTAMP: _decode_timestamp,
    PhysicalKind.TIME32: _decode_time,
    PhysicalKind.TIME64: _decode_time,
    PhysicalKind.DECIMAL128: _decode_decimal,
    PhysicalKind.DECIMAL256: _decode_decimal,
    PhysicalKind.MONTH_INTERVAL: _decode_number,
    PhysicalKind.DAY_TIME_INTERVAL: _decode_day_time_interval,
    PhysicalKind.MONTH_DAY_NANO_INTERVAL: _decode_month_day_nano_interval,
}

# Null columns have no values and dictionaries resolve through decode_dictionary
_UNDECODED = {PhysicalKind.NULL, PhysicalKind.DICTIONARY}

_missing = set(PhysicalKind) - set(DECODERS) - _UNDECODED
if _missing:
    raise RuntimeError(f"No decoder for: {sorted(k.value for k in _missing)}")
for _kind, _layout in SLOT_FORMATS.items():
    if _layout.size != _kind.byte_width:
        raise RuntimeError(f"Slot layout of {_kind.value} does not match its byte width")


def decode_value(column: Column, row: int) -> Any:
    """Decode the value at ``row``, which the caller knows to be present.

    Args:
        column: A column of any kind but null and dictionary.
        row: Position within the column.

    Returns:
        The logical value.
    """
    column.check_row(row)
    decoder = DECODERS.get(column.kind)
    if decoder is None:
        raise TypeError(f"Cannot decode {column.data_type} values directly")
    return decoder(column, column.offset + row)


def read_index(column: Column, row: int) -> int:
    """Read the raw dictionary index stored at ``row``."""
    data_type = column.data_type
    if not isinstance(data_type, DictionaryType):
        raise TypeError(f"Expected a dictionary column, got {data_type}")
    column.check_row(row)
    layout = SLOT_FORMATS[data_type.index_type.kind]
    return layout.unpack_from(column.buffers[0], (column.offset + row) * layout.size)[0]


def decode_dictionary(column: Column, row: int) -> Any:
    """Resolve a dictionary-encoded value.

    A null index yields None without touching the dictionary. The
    dictionary entry is itself decoded null-aware.

    Raises:
        DictionaryIndexError: If the stored index is outside the dictionary.
    """
    if column.is_null(row):
        return None
    index = read_index(column, row)
    dictionary = column.dictionary
    assert dictionary is not None
    if index < 0 or index >= dictionary.length:
        raise DictionaryIndexError(row, index, dictionary.length)
    return decode(dictionary, index)


def decode(column: Column, row: int) -> Any:
    """Decode the value at ``row``, None if it is null."""
    if column.is_null(row):
        return None
    if column.kind is PhysicalKind.DICTIONARY:
        return decode_dictionary(column, row)
    return decode_value(column, row)
