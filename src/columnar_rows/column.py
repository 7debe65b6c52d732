"""Immutable columns: a validity bitmap plus value buffers."""

from __future__ import annotations

from functools import cached_property
from typing import Any, Iterator, Sequence

from columnar_rows.decoder import decode
from columnar_rows.types import DataType, DictionaryType, PhysicalKind

Buffer = bytes | bytearray | memoryview


class Column:
    """A typed, fixed-length sequence of values in columnar layout.

    Buffer layout per physical kind (all little-endian):

    - null: no buffers, every position is null.
    - bool: one LSB-first bit-packed buffer.
    - fixed width (integers, floats, temporal, decimal, interval):
      one buffer of ``byte_width`` bytes per slot.
    - binary/utf8: an int32 offsets buffer (length + 1 entries) and a data
      buffer; value ``i`` is ``data[offsets[i]:offsets[i + 1]]``.
    - dictionary: one indices buffer of the index type, plus a reference
      to the dictionary column the indices point into.

    The optional validity bitmap is LSB-first; a cleared bit marks a null.
    ``offset`` shifts every buffer (and the bitmap) by that many slots, which
    makes slicing zero-copy.
    """

    OFFSET_SIZE = 4  # binary/utf8 offsets are int32

    def __init__(
        self,
        data_type: DataType,
        length: int,
        buffers: Sequence[Buffer] = (),
        validity: Buffer | None = None,
        offset: int = 0,
        dictionary: Column | None = None,
    ) -> None:
        """Initialize a column over existing buffers.

        Args:
            data_type: The column's data type.
            length: Number of logical values.
            buffers: Value buffers for the data type's physical kind.
            validity: LSB-first validity bitmap, or None if nothing is null.
            offset: Slot offset applied to every buffer.
            dictionary: Dictionary values, required for dictionary types.
        """
        self.data_type = data_type
        self.length = length
        self.buffers = tuple(memoryview(b).cast("B") for b in buffers)
        self.validity = memoryview(validity).cast("B") if validity is not None else None
        self.offset = offset
        self.dictionary = dictionary

        self._validate()

    @property
    def kind(self) -> PhysicalKind:
        return self.data_type.kind

    def _validate(self) -> None:
        """Check the buffers can hold ``offset + length`` slots."""
        if self.length < 0 or self.offset < 0:
            raise ValueError(
                f"Invalid column extent: offset={self.offset}, length={self.length}"
            )

        end = self.offset + self.length
        kind = self.kind

        if self.validity is not None and len(self.validity) * 8 < end:
            raise ValueError(
                f"Validity bitmap holds {len(self.validity) * 8} bits, need {end}"
            )

        if kind is PhysicalKind.DICTIONARY:
            assert isinstance(self.data_type, DictionaryType)
            if self.dictionary is None:
                raise ValueError("Dictionary columns require a dictionary")
            if self.dictionary.data_type != self.data_type.value_type:
                raise ValueError(
                    f"Dictionary holds {self.dictionary.data_type}, "
                    f"expected {self.data_type.value_type}"
                )
        elif self.dictionary is not None:
            raise ValueError(f"Only dictionary columns take a dictionary, not {self.data_type}")

        if kind is PhysicalKind.NULL:
            return

        expected_buffers = 2 if kind in (PhysicalKind.BINARY, PhysicalKind.UTF8) else 1
        if len(self.buffers) != expected_buffers:
            raise ValueError(
                f"{self.data_type} columns take {expected_buffers} buffer(s), "
                f"got {len(self.buffers)}"
            )

        if kind is PhysicalKind.BOOLEAN:
            needed = (end + 7) // 8
        elif kind in (PhysicalKind.BINARY, PhysicalKind.UTF8):
            needed = (end + 1) * self.OFFSET_SIZE
        else:
            needed = end * self.data_type.byte_width
        if len(self.buffers[0]) < needed:
            raise ValueError(
                f"{self.data_type} buffer holds {len(self.buffers[0])} bytes, need {needed}"
            )

    def check_row(self, row: int) -> None:
        """Raise IndexError unless ``row`` addresses a slot of this column."""
        if row < 0 or row >= self.length:
            raise IndexError(f"Index {row} out of range [0, {self.length})")

    def is_null(self, row: int) -> bool:
        """Return whether the value at ``row`` is absent."""
        self.check_row(row)
        if self.kind is PhysicalKind.NULL:
            return True
        if self.validity is None:
            return False
        bit = self.offset + row
        return not (self.validity[bit >> 3] >> (bit & 7)) & 1

    def is_valid(self, row: int) -> bool:
        return not self.is_null(row)

    @cached_property
    def null_count(self) -> int:
        """Return the number of null positions."""
        if self.kind is PhysicalKind.NULL:
            return self.length
        if self.validity is None:
            return 0
        return sum(1 for row in range(self.length) if self.is_null(row))

    def slice(self, offset: int, length: int | None = None) -> Column:
        """Return a zero-copy view of ``length`` values starting at ``offset``.

        A length running past the end is truncated.
        """
        if offset < 0 or offset > self.length:
            raise IndexError(f"Slice offset {offset} out of range [0, {self.length}]")
        available = self.length - offset
        if length is None or length > available:
            length = available
        return Column(
            self.data_type,
            length,
            self.buffers,
            self.validity,
            self.offset + offset,
            self.dictionary,
        )

    def to_pylist(self) -> list[Any]:
        """Decode every value, None for nulls."""
        return [decode(self, row) for row in range(self.length)]

    def __getitem__(self, row: int) -> Any:
        return decode(self, row)

    def __iter__(self) -> Iterator[Any]:
        for row in range(self.length):
            yield decode(self, row)

    def __len__(self) -> int:
        return self.length

    def __repr__(self) -> str:
        return f"Column({self.data_type}, length={self.length}, null_count={self.null_count})"
