"""Tests for the expression parser: argument splitting, literals and chains."""

from __future__ import annotations

import pytest

from stencil import DEFAULT_FILTERS, ErrorCode, TemplateSyntaxError
from stencil.nodes import FilterCall, Identifier
from stencil.parser import convert_literal, parse_expression, split_args


class TestSplitArgs:
    """Quote-aware argument splitting."""

    def test_single_field(self):
        assert split_args("15029582") == ["15029582"]

    def test_separator_inside_string(self):
        """Separators inside quotes do not split."""
        assert split_args('"hello, florian!"') == ['"hello, florian!"']

    def test_mixed_fields(self):
        """Empty interior fields are kept and escaped quotes stay inside strings."""
        text = (
            '"hello, florian!",123,456,blahblah,foo,,'
            '"this is \\"nice\\", isn\'t it?","yeah it is, dude.",1'
        )
        assert split_args(text) == [
            '"hello, florian!"',
            "123",
            "456",
            "blahblah",
            "foo",
            "",
            '"this is \\"nice\\", isn\'t it?"',
            '"yeah it is, dude."',
            "1",
        ]

    def test_fields_are_stripped(self):
        assert split_args('  a ,  "b c" ') == ["a", '"b c"']

    def test_trailing_separator_dropped(self):
        assert split_args("a,b,") == ["a", "b"]

    def test_custom_separator(self):
        """Pipes inside strings survive a pipe split."""
        assert split_args('"a|b"|upper', "|") == ['"a|b"', "upper"]


class TestConvertLiteral:
    """Literal conversion."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ('"Hallo"', "Hallo"),
            ('""', ""),
            ('"say \\"hi\\""', 'say "hi"'),
            ("true", True),
            ("false", False),
            ("5", 5),
            ("5.499999999999999", 5.499999999999999),
            ("7.", 7.0),
        ],
    )
    def test_values(self, text, expected):
        value = convert_literal(text)
        assert value == expected
        assert type(value) is type(expected)

    def test_identifier(self):
        assert convert_literal("person.Friends.0.Name") == Identifier("person.Friends.0.Name")

    def test_identifier_segments(self):
        assert Identifier("a.b.0").segments == ("a", "b", "0")

    @pytest.mark.parametrize(
        ("text", "message"),
        [
            ("", "Empty argument"),
            ('"unterminated', "String malformed"),
            ('"', "String malformed"),
            ("5.499999999999999.", "Float is not valid"),
            ("12ab", "Integer is not valid"),
            ("a-b", "is not valid"),
            ("a..b", "empty specifier"),
            ("a.", "empty specifier"),
        ],
    )
    def test_invalid(self, text, message):
        with pytest.raises(TemplateSyntaxError, match=message):
            convert_literal(text)

    def test_errors_have_no_location(self):
        """Parser errors are located later by the lexer."""
        with pytest.raises(TemplateSyntaxError) as exc_info:
            convert_literal("1.2.3")
        assert exc_info.value.lineno is None
        assert exc_info.value.code is ErrorCode.INVALID_LITERAL


class TestParseExpression:
    """Whole expressions."""

    def test_plain_identifier(self):
        expr = parse_expression("name", DEFAULT_FILTERS)
        assert expr.root == Identifier("name")
        assert expr.filters == ()
        assert expr.negate is False

    def test_negation(self):
        expr = parse_expression("!user.Banned", DEFAULT_FILTERS)
        assert expr.negate is True
        assert expr.root == Identifier("user.Banned")

    def test_root_arguments(self):
        """A colon on the root introduces call arguments."""
        expr = parse_expression('person.SayHelloTo:"Cowboy, Mike", other', DEFAULT_FILTERS)
        assert expr.root == Identifier("person.SayHelloTo")
        assert expr.root_args == ("Cowboy, Mike", Identifier("other"))

    def test_colon_inside_string_root(self):
        """A string root is never split on its colon."""
        expr = parse_expression('"a:b"', DEFAULT_FILTERS)
        assert expr.root == "a:b"
        assert expr.root_args == ()

    def test_filter_chain(self):
        """Filters keep their order and resolve their functions at parse time."""
        expr = parse_expression(
            '    "florian"    |           capitalize        |default:"x"    ',
            DEFAULT_FILTERS,
        )
        assert expr.root == "florian"
        assert expr.filters == (
            FilterCall(name="capitalize", func=None),
            FilterCall(name="default", func=None, args=("x",)),
        )
        assert expr.filters[0].func is DEFAULT_FILTERS["capitalize"]

    def test_marker_filter_has_no_function(self):
        expr = parse_expression("x|unsafe", DEFAULT_FILTERS)
        assert expr.filters[0].func is None

    def test_with_filter_returns_copy(self):
        expr = parse_expression("x", DEFAULT_FILTERS)
        extended = expr.with_filter(FilterCall(name="safe", func=DEFAULT_FILTERS["safe"]))
        assert expr.filters == ()
        assert [f.name for f in extended.filters] == ["safe"]

    @pytest.mark.parametrize(
        ("text", "message", "code"),
        [
            ("|upper", "Identifier is an empty string", ErrorCode.INVALID_EXPRESSION),
            ("!", "Identifier is an empty string", ErrorCode.INVALID_EXPRESSION),
            ("x||upper", "Filter name is empty", ErrorCode.UNKNOWN_FILTER),
            ("x|notexistent", "Filter 'notexistent' not found", ErrorCode.UNKNOWN_FILTER),
        ],
    )
    def test_invalid(self, text, message, code):
        with pytest.raises(TemplateSyntaxError, match=message) as exc_info:
            parse_expression(text, DEFAULT_FILTERS)
        assert exc_info.value.code is code

    def test_empty_filter_argument(self):
        """An empty argument between commas fails conversion."""
        with pytest.raises(TemplateSyntaxError, match="Empty argument"):
            parse_expression("x|default:1,,2", DEFAULT_FILTERS)
