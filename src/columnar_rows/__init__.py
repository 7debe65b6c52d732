"""Columnar Rows - row materialization over columnar, dictionary-capable data."""

from columnar_rows.batch import RecordBatch
from columnar_rows.builder import array, concat_columns, dictionary_encode, record_batch
from columnar_rows.column import Column
from columnar_rows.decoder import decode, decode_dictionary, decode_value
from columnar_rows.errors import (
    ColumnarRowsError,
    DictionaryIndexError,
    InvalidUTF8Error,
    MalformedDataError,
    SchemaMismatchError,
    UnsupportedTypeError,
)
from columnar_rows.parsing import parse_data_type
from columnar_rows.table import ChunkedTable
from columnar_rows.traversal import each_raw_record, raw_record, raw_records
from columnar_rows.types import (
    DataType,
    DayTimeInterval,
    Decimal128Type,
    Decimal256Type,
    DictionaryType,
    Field,
    MonthDayNanoInterval,
    PhysicalKind,
    Schema,
    Time32Type,
    Time64Type,
    TimeOfDay,
    Timestamp,
    TimestampType,
    TimeUnit,
    data_type,
)

__all__ = [
    # Column sets
    "Column",
    "RecordBatch",
    "ChunkedTable",
    # Traversal
    "each_raw_record",
    "raw_records",
    "raw_record",
    # Decoding
    "decode",
    "decode_value",
    "decode_dictionary",
    # Building
    "array",
    "dictionary_encode",
    "concat_columns",
    "record_batch",
    # Types
    "PhysicalKind",
    "TimeUnit",
    "DataType",
    "TimestampType",
    "Time32Type",
    "Time64Type",
    "Decimal128Type",
    "Decimal256Type",
    "DictionaryType",
    "Field",
    "Schema",
    "data_type",
    "parse_data_type",
    # Logical values
    "Timestamp",
    "TimeOfDay",
    "DayTimeInterval",
    "MonthDayNanoInterval",
    # Errors
    "ColumnarRowsError",
    "MalformedDataError",
    "DictionaryIndexError",
    "InvalidUTF8Error",
    "UnsupportedTypeError",
    "SchemaMismatchError",
]

__version__ = "0.1.0"
