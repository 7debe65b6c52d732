"""Data type definitions for the columnar_rows library."""

from __future__ import annotations

import datetime
import functools
import re
import zoneinfo
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterator, Sequence

from columnar_rows.errors import UnsupportedTypeError


class PhysicalKind(Enum):
    """Physical encodings a column's value buffers can use."""

    NULL = "null"
    BOOLEAN = "bool"
    INT8 = "int8"
    UINT8 = "uint8"
    INT16 = "int16"
    UINT16 = "uint16"
    INT32 = "int32"
    UINT32 = "uint32"
    INT64 = "int64"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BINARY = "binary"
    UTF8 = "utf8"
    DATE32 = "date32"
    DATE64 = "date64"
    TIMESTAMP = "timestamp"
    TIME32 = "time32"
    TIME64 = "time64"
    DECIMAL128 = "decimal128"
    DECIMAL256 = "decimal256"
    MONTH_INTERVAL = "month_interval"
    DAY_TIME_INTERVAL = "day_time_interval"
    MONTH_DAY_NANO_INTERVAL = "month_day_nano_interval"
    DICTIONARY = "dictionary"

    @property
    def byte_width(self) -> int | None:
        """Return the size in bytes of one value slot.

        None for kinds without a fixed-width value slot: null-only columns,
        bit-packed booleans, variable-width binary/text and dictionaries
        (whose width is the width of their index type).
        """
        sizes = {
            PhysicalKind.INT8: 1,
            PhysicalKind.UINT8: 1,
            PhysicalKind.INT16: 2,
            PhysicalKind.UINT16: 2,
            PhysicalKind.INT32: 4,
            PhysicalKind.UINT32: 4,
            PhysicalKind.INT64: 8,
            PhysicalKind.UINT64: 8,
            PhysicalKind.FLOAT32: 4,
            PhysicalKind.FLOAT64: 8,
            PhysicalKind.DATE32: 4,
            PhysicalKind.DATE64: 8,
            PhysicalKind.TIMESTAMP: 8,
            PhysicalKind.TIME32: 4,
            PhysicalKind.TIME64: 8,
            PhysicalKind.DECIMAL128: 16,
            PhysicalKind.DECIMAL256: 32,
            PhysicalKind.MONTH_INTERVAL: 4,
            PhysicalKind.DAY_TIME_INTERVAL: 8,
            PhysicalKind.MONTH_DAY_NANO_INTERVAL: 16,
        }
        return sizes.get(self)

    @property
    def is_integer(self) -> bool:
        return self in INTEGER_KINDS

    @property
    def is_signed(self) -> bool:
        """Return whether integer slots of this kind are two's complement."""
        return self in (
            PhysicalKind.INT8,
            PhysicalKind.INT16,
            PhysicalKind.INT32,
            PhysicalKind.INT64,
        )

    @property
    def is_temporal(self) -> bool:
        return self in (
            PhysicalKind.DATE32,
            PhysicalKind.DATE64,
            PhysicalKind.TIMESTAMP,
            PhysicalKind.TIME32,
            PhysicalKind.TIME64,
        )

    @property
    def is_parameterized(self) -> bool:
        """Return whether a data type of this kind needs extra parameters."""
        return self in (
            PhysicalKind.TIMESTAMP,
            PhysicalKind.TIME32,
            PhysicalKind.TIME64,
            PhysicalKind.DECIMAL128,
            PhysicalKind.DECIMAL256,
            PhysicalKind.DICTIONARY,
        )


INTEGER_KINDS = frozenset(
    {
        PhysicalKind.INT8,
        PhysicalKind.UINT8,
        PhysicalKind.INT16,
        PhysicalKind.UINT16,
        PhysicalKind.INT32,
        PhysicalKind.UINT32,
        PhysicalKind.INT64,
        PhysicalKind.UINT64,
    }
)

# Alternative spellings accepted when looking types up by name
TYPE_NAME_ALIASES: dict[str, str] = {
    "boolean": "bool",
    "string": "utf8",
    "float": "float32",
    "double": "float64",
}

_KINDS_BY_NAME: dict[str, PhysicalKind] = {kind.value: kind for kind in PhysicalKind}


class TimeUnit(Enum):
    """Granularity of a count-based temporal value."""

    SECOND = "s"
    MILLISECOND = "ms"
    MICROSECOND = "us"
    NANOSECOND = "ns"

    @property
    def per_second(self) -> int:
        """Return how many units make up one second."""
        counts = {
            TimeUnit.SECOND: 1,
            TimeUnit.MILLISECOND: 1_000,
            TimeUnit.MICROSECOND: 1_000_000,
            TimeUnit.NANOSECOND: 1_000_000_000,
        }
        return counts[self]

    @property
    def nanoseconds(self) -> int:
        """Return the length of one unit in nanoseconds."""
        return 1_000_000_000 // self.per_second

    @classmethod
    def from_name(cls, name: str) -> TimeUnit:
        """Look a unit up by its short ("ms") or long ("millisecond") name."""
        long_names = {
            "second": cls.SECOND,
            "milli": cls.MILLISECOND,
            "millisecond": cls.MILLISECOND,
            "micro": cls.MICROSECOND,
            "microsecond": cls.MICROSECOND,
            "nano": cls.NANOSECOND,
            "nanosecond": cls.NANOSECOND,
        }
        if name in long_names:
            return long_names[name]
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedTypeError(f"Unknown time unit '{name}'") from None


_UTC_OFFSET = re.compile(r"([+-])(\d{2}):?(\d{2})")


@functools.lru_cache(maxsize=None)
def resolve_timezone(name: str) -> datetime.tzinfo:
    """Resolve a timezone name ("UTC", "+09:00" or an IANA zone) to a tzinfo."""
    if name in ("UTC", "Z"):
        return datetime.timezone.utc
    match = _UTC_OFFSET.fullmatch(name)
    if match:
        sign, hours, minutes = match.groups()
        offset = datetime.timedelta(hours=int(hours), minutes=int(minutes))
        return datetime.timezone(-offset if sign == "-" else offset)
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        raise UnsupportedTypeError(f"Unknown timezone '{name}'") from None


@dataclass(frozen=True)
class DataType:
    """Base data type: a physical kind, plus parameters in subclasses."""

    kind: PhysicalKind

    def __post_init__(self) -> None:
        if type(self) is DataType and self.kind.is_parameterized:
            raise UnsupportedTypeError(
                f"Data type '{self.kind.value}' requires parameters"
            )

    @property
    def byte_width(self) -> int | None:
        return self.kind.byte_width

    def __str__(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class TimestampType(DataType):
    """Instant since the UNIX epoch; the timezone is metadata only."""

    kind: PhysicalKind = field(default=PhysicalKind.TIMESTAMP, init=False)
    unit: TimeUnit
    timezone: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.unit, TimeUnit):
            raise UnsupportedTypeError(f"Invalid time unit: {self.unit!r}")
        if self.timezone is not None:
            resolve_timezone(self.timezone)

    @property
    def tzinfo(self) -> datetime.tzinfo | None:
        if self.timezone is None:
            return None
        return resolve_timezone(self.timezone)

    def __str__(self) -> str:
        if self.timezone is None:
            return f"timestamp[{self.unit.value}]"
        return f'timestamp[{self.unit.value}, "{self.timezone}"]'


@dataclass(frozen=True)
class TimeType(DataType):
    """Time of day measured from midnight."""

    UNITS: ClassVar[tuple[TimeUnit, ...]] = ()

    unit: TimeUnit

    def __post_init__(self) -> None:
        if self.unit not in self.UNITS:
            allowed = ", ".join(u.value for u in self.UNITS)
            raise UnsupportedTypeError(
                f"{self.kind.value} does not support unit {self.unit!r} (expected one of {allowed})"
            )

    def __str__(self) -> str:
        return f"{self.kind.value}[{self.unit.value}]"


@dataclass(frozen=True)
class Time32Type(TimeType):
    UNITS: ClassVar[tuple[TimeUnit, ...]] = (TimeUnit.SECOND, TimeUnit.MILLISECOND)

    kind: PhysicalKind = field(default=PhysicalKind.TIME32, init=False)


@dataclass(frozen=True)
class Time64Type(TimeType):
    UNITS: ClassVar[tuple[TimeUnit, ...]] = (TimeUnit.MICROSECOND, TimeUnit.NANOSECOND)

    kind: PhysicalKind = field(default=PhysicalKind.TIME64, init=False)


@dataclass(frozen=True)
class DecimalType(DataType):
    """Fixed-precision decimal stored as a two's complement integer.

    The logical value is ``unscaled / 10 ** scale``. Precision bounds the
    number of digits a builder may store; decoding never checks it.
    """

    MAX_PRECISION: ClassVar[int] = 0

    precision: int
    scale: int

    def __post_init__(self) -> None:
        if type(self) is DecimalType:
            raise UnsupportedTypeError("Use Decimal128Type or Decimal256Type")
        if not 1 <= self.precision <= self.MAX_PRECISION:
            raise UnsupportedTypeError(
                f"{self.kind.value} precision must be in [1, {self.MAX_PRECISION}], "
                f"got {self.precision}"
            )

    def __str__(self) -> str:
        return f"{self.kind.value}({self.precision}, {self.scale})"


@dataclass(frozen=True)
class Decimal128Type(DecimalType):
    MAX_PRECISION: ClassVar[int] = 38

    kind: PhysicalKind = field(default=PhysicalKind.DECIMAL128, init=False)


@dataclass(frozen=True)
class Decimal256Type(DecimalType):
    MAX_PRECISION: ClassVar[int] = 76

    kind: PhysicalKind = field(default=PhysicalKind.DECIMAL256, init=False)


@dataclass(frozen=True)
class DictionaryType(DataType):
    """Integer indices into a shared dictionary of ``value_type`` values."""

    kind: PhysicalKind = field(default=PhysicalKind.DICTIONARY, init=False)
    index_type: DataType
    value_type: DataType

    def __post_init__(self) -> None:
        if not self.index_type.kind.is_integer:
            raise UnsupportedTypeError(
                f"Dictionary indices must be an integer type, got {self.index_type}"
            )
        if self.value_type.kind is PhysicalKind.DICTIONARY:
            raise UnsupportedTypeError("Dictionary values cannot be dictionary encoded")

    @property
    def byte_width(self) -> int | None:
        return self.index_type.byte_width

    def __str__(self) -> str:
        return f"dictionary<{self.index_type}, {self.value_type}>"


def data_type(name: str) -> DataType:
    """Return the parameterless data type with the given name.

    Args:
        name: A kind name such as "int32" or "utf8", or one of its aliases.

    Returns:
        The data type.
    """
    kind = _KINDS_BY_NAME.get(TYPE_NAME_ALIASES.get(name, name))
    if kind is None:
        raise UnsupportedTypeError(f"Unknown data type '{name}'")
    return DataType(kind)


def kind_from_name(name: str) -> PhysicalKind:
    """Look up a physical kind by name (aliases allowed)."""
    kind = _KINDS_BY_NAME.get(TYPE_NAME_ALIASES.get(name, name))
    if kind is None:
        raise UnsupportedTypeError(f"Unknown data type '{name}'")
    return kind


@dataclass(frozen=True)
class Field:
    """A named column slot in a schema."""

    name: str
    data_type: DataType
    nullable: bool = True

    def __str__(self) -> str:
        suffix = "" if self.nullable else " not null"
        return f"{self.name}: {self.data_type}{suffix}"


@dataclass(frozen=True)
class Schema:
    """Ordered, uniquely-named fields shared by the columns of a column set."""

    fields: tuple[Field, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        seen: set[str] = set()
        for f in self.fields:
            if f.name in seen:
                raise ValueError(f"Duplicate field name '{f.name}'")
            seen.add(f.name)

    @classmethod
    def from_pairs(cls, pairs: Sequence[tuple[str, DataType]]) -> Schema:
        return cls(tuple(Field(name, dt) for name, dt in pairs))

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def field(self, name: str) -> Field:
        """Get a field by name."""
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(f"Field '{name}' not found")

    def index(self, name: str) -> int:
        """Get the position of a field by name."""
        for i, f in enumerate(self.fields):
            if f.name == name:
                return i
        raise KeyError(f"Field '{name}' not found")

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    def __str__(self) -> str:
        return "\n".join(str(f) for f in self.fields)


# ---- Logical values ----


@dataclass(frozen=True)
class TimeOfDay:
    """A time32/time64 value: a literal count of ``unit`` since midnight.

    The count is kept as stored, so values outside of a day survive
    decoding unchanged.
    """

    unit: TimeUnit
    value: int

    def to_timedelta(self) -> datetime.timedelta:
        """Return the offset from midnight (truncated to microseconds)."""
        nanoseconds = self.value * self.unit.nanoseconds
        return datetime.timedelta(microseconds=nanoseconds // 1000)

    def to_time(self) -> datetime.time:
        """Return a datetime.time (truncated to microseconds).

        Raises:
            ValueError: If the value is outside of [0, 24h).
        """
        per_second = self.unit.per_second
        if not 0 <= self.value < 86400 * per_second:
            raise ValueError(f"{self} is not a valid time of day")
        seconds, fraction = divmod(self.value, per_second)
        hours, remainder = divmod(seconds, 3600)
        minutes, second = divmod(remainder, 60)
        return datetime.time(hours, minutes, second, fraction * 1_000_000 // per_second)

    def __str__(self) -> str:
        per_second = self.unit.per_second
        if not 0 <= self.value < 86400 * per_second:
            return f"{self.value}{self.unit.value}"
        seconds, fraction = divmod(self.value, per_second)
        hours, remainder = divmod(seconds, 3600)
        minutes, second = divmod(remainder, 60)
        text = f"{hours:02d}:{minutes:02d}:{second:02d}"
        if per_second > 1:
            digits = len(str(per_second)) - 1
            text += f".{fraction:0{digits}d}"
        return text


@dataclass(frozen=True)
class DayTimeInterval:
    """Independent day and millisecond components; never normalized."""

    day: int
    millisecond: int


@dataclass(frozen=True)
class MonthDayNanoInterval:
    """Independent month, day and nanosecond components; never normalized."""

    month: int
    day: int
    nanosecond: int


class Timestamp(datetime.datetime):
    """A datetime with an extra sub-microsecond ``nanosecond`` (0-999).

    Compares equal to a plain datetime when ``nanosecond`` is zero.
    """

    def __new__(cls, *args: Any, nanosecond: int = 0, **kwargs: Any) -> Timestamp:
        if not 0 <= nanosecond < 1000:
            raise ValueError(f"nanosecond must be in [0, 1000), got {nanosecond}")
        self = super().__new__(cls, *args, **kwargs)
        self._nanosecond = nanosecond
        return self

    @classmethod
    def from_datetime(cls, value: datetime.datetime, nanosecond: int = 0) -> Timestamp:
        return cls(
            value.year,
            value.month,
            value.day,
            value.hour,
            value.minute,
            value.second,
            value.microsecond,
            value.tzinfo,
            fold=value.fold,
            nanosecond=nanosecond,
        )

    @property
    def nanosecond(self) -> int:
        return getattr(self, "_nanosecond", 0)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Timestamp):
            return super().__eq__(other) and self.nanosecond == other.nanosecond
        if isinstance(other, datetime.datetime):
            return self.nanosecond == 0 and super().__eq__(other)
        return NotImplemented

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = datetime.datetime.__hash__

    def _compare(self, other: object) -> Any:
        """Return -1, 0 or 1, nanoseconds breaking ties (NotImplemented for non-datetimes)."""
        if not isinstance(other, datetime.datetime):
            return NotImplemented
        other_nanosecond = other.nanosecond if isinstance(other, Timestamp) else 0
        if super().__eq__(other):
            return (self.nanosecond > other_nanosecond) - (self.nanosecond < other_nanosecond)
        return -1 if super().__lt__(other) else 1

    def __lt__(self, other: object) -> bool:
        result = self._compare(other)
        return result if result is NotImplemented else result < 0

    def __le__(self, other: object) -> bool:
        result = self._compare(other)
        return result if result is NotImplemented else result <= 0

    def __gt__(self, other: object) -> bool:
        result = self._compare(other)
        return result if result is NotImplemented else result > 0

    def __ge__(self, other: object) -> bool:
        result = self._compare(other)
        return result if result is NotImplemented else result >= 0

    def __reduce_ex__(self, protocol: Any) -> tuple[Any, ...]:
        # datetime's own reduce would rebuild the value without its nanoseconds
        plain = datetime.datetime(
            self.year,
            self.month,
            self.day,
            self.hour,
            self.minute,
            self.second,
            self.microsecond,
            self.tzinfo,
            fold=self.fold,
        )
        return (_restore_timestamp, (plain, self.nanosecond))

    def isoformat(self, sep: str = "T", timespec: str = "auto") -> str:
        if not self.nanosecond or timespec != "auto":
            return super().isoformat(sep, timespec)
        text = super().isoformat(sep, "microseconds")
        # "YYYY-MM-DD" + sep + "HH:MM:SS.ffffff"
        cut = 10 + len(sep) + 15
        return f"{text[:cut]}{self.nanosecond:03d}{text[cut:]}"

    def __str__(self) -> str:
        return self.isoformat(" ")

    def __repr__(self) -> str:
        base = super().__repr__()
        if not self.nanosecond:
            return base
        return f"{base[:-1]}, nanosecond={self.nanosecond})"


def _restore_timestamp(value: datetime.datetime, nanosecond: int) -> Timestamp:
    return Timestamp.from_datetime(value, nanosecond)
