"""Exceptions raised while decoding columnar data."""

from __future__ import annotations


class ColumnarRowsError(Exception):
    """Base class for columnar_rows errors."""


class UnsupportedTypeError(ColumnarRowsError, TypeError):
    """A data type name or parameter combination is not supported."""


class SchemaMismatchError(ColumnarRowsError, ValueError):
    """Columns or batches do not agree with the schema they are placed under."""


class MalformedDataError(ColumnarRowsError, ValueError):
    """Column buffers hold data that violates the columnar layout."""


class DictionaryIndexError(MalformedDataError, IndexError):
    """A dictionary index points outside of its dictionary."""

    def __init__(self, row: int, index: int, dictionary_length: int) -> None:
        super().__init__(
            f"Dictionary index {index} at row {row} out of range [0, {dictionary_length})"
        )
        self.row = row
        self.index = index
        self.dictionary_length = dictionary_length


class InvalidUTF8Error(MalformedDataError):
    """A utf8 column holds bytes that are not valid UTF-8."""

    def __init__(self, row: int, data: bytes, reason: str) -> None:
        super().__init__(f"Invalid UTF-8 at row {row}: {reason} ({data!r})")
        self.row = row
        self.data = data
