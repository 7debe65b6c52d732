"""Parsing of data type strings."""

from columnar_rows.parsing.type_parser import TypeParser, parse_data_type

__all__ = [
    "TypeParser",
    "parse_data_type",
]
