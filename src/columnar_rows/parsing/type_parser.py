"""Parser for data type strings."""

from __future__ import annotations

import functools
import threading
from typing import Any

import ply.yacc as yacc

from columnar_rows.errors import UnsupportedTypeError
from columnar_rows.parsing.type_lexer import TypeLexer
from columnar_rows.types import (
    DataType,
    Decimal128Type,
    Decimal256Type,
    DictionaryType,
    Time32Type,
    Time64Type,
    TimestampType,
    TimeUnit,
    data_type,
)

_DECIMAL_TYPES: dict[str, type[Decimal128Type] | type[Decimal256Type]] = {
    "decimal": Decimal128Type,
    "decimal128": Decimal128Type,
    "decimal256": Decimal256Type,
}


def _unit_type(name: str, unit_name: str, timezone: str | None = None) -> DataType:
    """Build a unit-parameterized temporal type."""
    unit = TimeUnit.from_name(unit_name)
    if name == "timestamp":
        return TimestampType(unit, timezone)
    if timezone is not None:
        raise UnsupportedTypeError(f"Type '{name}' does not take a timezone")
    if name == "time32":
        return Time32Type(unit)
    if name == "time64":
        return Time64Type(unit)
    raise UnsupportedTypeError(f"Type '{name}' does not take a unit")


class TypeParser:
    """Parser for data type strings.

    Grammar (canonical forms produced by ``str(data_type)``)::

        int32
        timestamp[ms]
        timestamp[ns, "Asia/Tokyo"]
        time32[s]
        decimal128(8, 2)
        dictionary<int32, utf8>
    """

    tokens = TypeLexer.tokens

    def __init__(self) -> None:
        self.lexer = TypeLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_data_type_simple(self, p: yacc.YaccProduction) -> None:
        """data_type : IDENTIFIER"""
        p[0] = data_type(p[1])

    def p_data_type_unit(self, p: yacc.YaccProduction) -> None:
        """data_type : IDENTIFIER LBRACKET IDENTIFIER RBRACKET"""
        p[0] = _unit_type(p[1], p[3])

    def p_data_type_unit_timezone(self, p: yacc.YaccProduction) -> None:
        """data_type : IDENTIFIER LBRACKET IDENTIFIER COMMA STRING RBRACKET"""
        p[0] = _unit_type(p[1], p[3], p[5])

    def p_data_type_decimal(self, p: yacc.YaccProduction) -> None:
        """data_type : IDENTIFIER LPAREN INTEGER COMMA INTEGER RPAREN"""
        decimal_type = _DECIMAL_TYPES.get(p[1])
        if decimal_type is None:
            raise UnsupportedTypeError(f"Type '{p[1]}' does not take a precision and scale")
        p[0] = decimal_type(p[3], p[5])

    def p_data_type_dictionary(self, p: yacc.YaccProduction) -> None:
        """data_type : IDENTIFIER LANGLE data_type COMMA data_type RANGLE"""
        if p[1] != "dictionary":
            raise UnsupportedTypeError(f"Type '{p[1]}' does not take type arguments")
        p[0] = DictionaryType(p[3], p[5])

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> DataType:
        """Parse a data type string."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)
        return self.parser.parse(data, lexer=self.lexer.lexer)


# ply parsers keep lexer state between tokens, so each thread gets its own
_local = threading.local()


def _thread_parser() -> TypeParser:
    parser = getattr(_local, "parser", None)
    if parser is None:
        parser = _local.parser = TypeParser()
    return parser


@functools.lru_cache(maxsize=256)
def parse_data_type(text: str) -> DataType:
    """Parse a data type string such as ``"decimal128(8, 2)"``.

    Results are cached per string; data types are immutable.
    """
    return _thread_parser().parse(text)
