"""Tests for the data type parser."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from columnar_rows.errors import UnsupportedTypeError
from columnar_rows.parsing import TypeParser, parse_data_type
from columnar_rows.parsing.type_lexer import TypeLexer
from columnar_rows.types import (
    Decimal128Type,
    Decimal256Type,
    DictionaryType,
    Time32Type,
    Time64Type,
    TimestampType,
    TimeUnit,
    data_type,
)


class TestTypeLexer:
    """Tests for the type lexer."""

    def test_tokenize_timestamp(self):
        lexer = TypeLexer()
        lexer.build()

        tokens = lexer.tokenize('timestamp[ms, "UTC"]')
        token_types = [t.type for t in tokens]

        assert token_types == [
            "IDENTIFIER",
            "LBRACKET",
            "IDENTIFIER",
            "COMMA",
            "STRING",
            "RBRACKET",
        ]
        assert tokens[4].value == "UTC"

    def test_tokenize_dictionary(self):
        lexer = TypeLexer()
        lexer.build()

        tokens = lexer.tokenize("dictionary<int32, decimal128(8, 2)>")
        token_types = [t.type for t in tokens]

        assert token_types == [
            "IDENTIFIER",
            "LANGLE",
            "IDENTIFIER",
            "COMMA",
            "IDENTIFIER",
            "LPAREN",
            "INTEGER",
            "COMMA",
            "INTEGER",
            "RPAREN",
            "RANGLE",
        ]
        assert tokens[6].value == 8

    def test_illegal_character(self):
        lexer = TypeLexer()
        lexer.build()

        with pytest.raises(SyntaxError):
            lexer.tokenize("int32;")


class TestTypeParser:
    """Tests for the type parser."""

    def test_parse_simple(self):
        parser = TypeParser()
        assert parser.parse("int8") == data_type("int8")
        assert parser.parse("utf8") == data_type("utf8")
        assert parser.parse("month_day_nano_interval") == data_type("month_day_nano_interval")

    def test_parse_aliases(self):
        assert parse_data_type("string") == data_type("utf8")
        assert parse_data_type("boolean") == data_type("bool")

    def test_parse_timestamp(self):
        assert parse_data_type("timestamp[ns]") == TimestampType(TimeUnit.NANOSECOND)
        assert parse_data_type('timestamp[s, "+09:00"]') == TimestampType(
            TimeUnit.SECOND, "+09:00"
        )

    def test_parse_times(self):
        assert parse_data_type("time32[ms]") == Time32Type(TimeUnit.MILLISECOND)
        assert parse_data_type("time64[micro]") == Time64Type(TimeUnit.MICROSECOND)

    def test_parse_decimals(self):
        assert parse_data_type("decimal128(8, 2)") == Decimal128Type(8, 2)
        assert parse_data_type("decimal256(38, 2)") == Decimal256Type(38, 2)
        assert parse_data_type("decimal(5, -1)") == Decimal128Type(5, -1)

    def test_parse_dictionary(self):
        parsed = parse_data_type("dictionary<int16, timestamp[ms]>")
        assert parsed == DictionaryType(data_type("int16"), TimestampType(TimeUnit.MILLISECOND))

    @pytest.mark.parametrize(
        "text",
        [
            "null",
            "bool",
            "uint64",
            "float32",
            "binary",
            "date64",
            "timestamp[us]",
            'timestamp[ms, "UTC"]',
            "time32[s]",
            "time64[ns]",
            "decimal128(8, 2)",
            "decimal256(76, 10)",
            "day_time_interval",
            "dictionary<int32, utf8>",
            "dictionary<uint8, decimal128(8, 2)>",
        ],
    )
    def test_canonical_strings_parse_back(self, text):
        assert str(parse_data_type(text)) == text

    def test_unit_on_simple_type(self):
        with pytest.raises(UnsupportedTypeError):
            parse_data_type("int32[ms]")

    def test_timezone_on_time_type(self):
        with pytest.raises(UnsupportedTypeError):
            parse_data_type('time32[s, "UTC"]')

    def test_invalid_unit_for_kind(self):
        with pytest.raises(UnsupportedTypeError):
            parse_data_type("time32[ns]")

    def test_precision_on_non_decimal(self):
        with pytest.raises(UnsupportedTypeError):
            parse_data_type("int32(8, 2)")

    def test_type_arguments_on_non_dictionary(self):
        with pytest.raises(UnsupportedTypeError):
            parse_data_type("list<int32, utf8>")

    def test_syntax_errors(self):
        with pytest.raises(SyntaxError):
            parse_data_type("timestamp[")
        with pytest.raises(SyntaxError):
            parse_data_type("")
        with pytest.raises(SyntaxError):
            parse_data_type("decimal128(8)")


class TestParseDataType:
    """Tests for the shared parse_data_type entry point."""

    def test_results_are_cached_per_string(self):
        assert parse_data_type("decimal128(9, 3)") is parse_data_type("decimal128(9, 3)")
        assert parse_data_type("int8") is not parse_data_type("int16")

    def test_errors_are_not_cached(self):
        for _ in range(2):
            with pytest.raises(SyntaxError):
                parse_data_type("decimal128(")

    def test_concurrent_parsing(self):
        texts = [
            f"dictionary<int32, decimal128({precision}, {scale})>"
            for precision in range(1, 39)
            for scale in range(0, 4)
        ]
        expected = [
            DictionaryType(data_type("int32"), Decimal128Type(p, s))
            for p in range(1, 39)
            for s in range(0, 4)
        ]
        # Bypass the cache so every call goes through a parser
        uncached = parse_data_type.__wrapped__
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(uncached, texts * 4))
        assert results == expected * 4
