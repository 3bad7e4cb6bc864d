"""Expression parser.

Parses the mini-language used inside ``{{ }}`` and in tag arguments::

    ["!"] root [":" arg ("," arg)*] ("|" filter [":" arg ("," arg)*])*

``root`` and every ``arg`` is a literal (``"string"``, ``true``/``false``,
an integer, a float) or a dotted identifier. Filters are looked up in the
filter registry at parse time, so an unknown filter fails compilation
rather than rendering.

Errors raised here carry no location; the lexer attaches one.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from stencil.environment.exceptions import ErrorCode, TemplateSyntaxError
from stencil.nodes import Argument, Expression, FilterCall, Identifier

_IDENTIFIER_RE = re.compile(r"[A-Za-z0-9_]+[A-Za-z0-9_.]*")
_INT_RE = re.compile(r"[0-9]+")
_FLOAT_RE = re.compile(r"[0-9]+\.[0-9]*")


def _error(message: str, code: ErrorCode = ErrorCode.INVALID_EXPRESSION) -> TemplateSyntaxError:
    return TemplateSyntaxError(message, code=code)


def split_args(text: str, sep: str = ",") -> list[str]:
    """Split ``text`` on ``sep``, keeping quoted sections intact.

    Double-quoted strings may contain the separator and escaped quotes
    (``\\"``). Fields are stripped. Empty fields between two separators are
    kept; an empty trailing field is dropped, so '"a, b",1,"c\\"d"' yields
    three fields.
    """
    fields: list[str] = []
    buf: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            buf.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
            buf.append(char)
        elif char == sep:
            fields.append("".join(buf).strip())
            buf = []
        else:
            buf.append(char)
    last = "".join(buf).strip()
    if last:
        fields.append(last)
    return fields


def _unquote(literal: str) -> str:
    return literal[1:-1].replace('\\"', '"')


def convert_literal(text: str) -> Argument:
    """Convert one argument or root token into its value.

    Raises:
        TemplateSyntaxError: malformed string, numeral or identifier
    """
    if not text:
        raise _error("Empty argument", ErrorCode.INVALID_LITERAL)
    if text[0] == '"':
        if len(text) < 2 or text[-1] != '"':
            raise _error(f"String malformed: {text}", ErrorCode.INVALID_LITERAL)
        return _unquote(text)
    if text == "true":
        return True
    if text == "false":
        return False
    if text[0].isdigit():
        if "." in text:
            if not _FLOAT_RE.fullmatch(text):
                raise _error(f"Float is not valid: {text}", ErrorCode.INVALID_LITERAL)
            return float(text)
        if not _INT_RE.fullmatch(text):
            raise _error(f"Integer is not valid: {text}", ErrorCode.INVALID_LITERAL)
        return int(text)
    if not _IDENTIFIER_RE.fullmatch(text):
        raise _error(f"Identifier '{text}' is not valid")
    if "" in text.split("."):
        raise _error(f"Identifier '{text}' contains an empty specifier")
    return Identifier(text)


def _convert_args(text: str) -> tuple[Argument, ...]:
    return tuple(convert_literal(arg) for arg in split_args(text, ","))


def parse_expression(
    text: str,
    filters: Mapping[str, Callable[..., Any] | None],
) -> Expression:
    """Parse an expression body against a filter registry.

    Example:
        >>> expr = parse_expression('name|default:"guest"|upper', env.filters)
        >>> [f.name for f in expr.filters]
        ['default', 'upper']
    """
    raw = text.strip()
    body = raw
    negate = body.startswith("!")
    if negate:
        body = body[1:]

    parts = split_args(body, "|") if body.strip() else []
    if not parts or not parts[0]:
        raise _error("Identifier is an empty string")

    root_text, *filter_texts = parts
    root_args: tuple[Argument, ...] = ()
    if not root_text.startswith('"') and ":" in root_text:
        root_text, arg_text = root_text.split(":", 1)
        root_text = root_text.strip()
        root_args = _convert_args(arg_text)
    root = convert_literal(root_text)

    calls: list[FilterCall] = []
    for filter_text in filter_texts:
        name, _, arg_text = filter_text.partition(":")
        name = name.strip()
        if not name:
            raise _error("Filter name is empty", ErrorCode.UNKNOWN_FILTER)
        if name not in filters:
            raise _error(f"Filter '{name}' not found", ErrorCode.UNKNOWN_FILTER)
        calls.append(FilterCall(name=name, func=filters[name], args=_convert_args(arg_text)))

    return Expression(
        raw=raw,
        root=root,
        root_args=root_args,
        filters=tuple(calls),
        negate=negate,
    )
