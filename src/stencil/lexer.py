"""Lexer for Stencil templates.

Turns template source into a flat tuple of nodes in one pass. The lexer
is a small state machine over four states:

- CONTENT: literal text, until ``{{``, ``{%`` or ``{#``
- EXPRESSION: ``{{ ... }}``, parsed by the expression parser
- TAG: ``{% name args %}``, the name must be a registered tag
- COMMENT: ``{# ... #}``, discarded (may span lines)

Block structure is *not* checked here: ``if``/``endif`` pairing and the
like is resolved at render time by scanning the node list.

Position tracking:
``line`` starts at 1 and ``column`` at 0, and both always describe the
character under the cursor. Entering a newline character moves to the next
line with column 0; any other character advances the column by one. Parse
errors report the position of the closing delimiter of the offending run.

Example:
    >>> lexer = Lexer("Hello {{ name }}!", filters=DEFAULT_FILTERS, tags=DEFAULT_TAGS)
    >>> [type(node).__name__ for node in lexer.tokenize()]
    ['Content', 'Output', 'Content']
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from stencil.environment.exceptions import ErrorCode, TemplateSyntaxError
from stencil.nodes import Content, Expression, FilterCall, Node, Output, Tag
from stencil.parser.expressions import parse_expression

if TYPE_CHECKING:
    from stencil.tags import TagHandler

_TAG_SPLIT_RE = re.compile(r"\s+")


class LexerState(Enum):
    CONTENT = auto()
    COMMENT = auto()
    EXPRESSION = auto()
    TAG = auto()


# Second character of an opener -> state it enters.
_OPENERS: dict[str, LexerState] = {
    "{": LexerState.EXPRESSION,
    "%": LexerState.TAG,
    "#": LexerState.COMMENT,
}

_CLOSERS: dict[LexerState, str] = {
    LexerState.EXPRESSION: "}}",
    LexerState.TAG: "%}",
    LexerState.COMMENT: "#}",
}

_UNCLOSED: dict[LexerState, tuple[str, ErrorCode]] = {
    LexerState.EXPRESSION: ("expression", ErrorCode.UNCLOSED_EXPRESSION),
    LexerState.TAG: ("tag", ErrorCode.UNCLOSED_TAG),
    LexerState.COMMENT: ("comment", ErrorCode.UNCLOSED_COMMENT),
}


class Lexer:
    """Single-use tokenizer producing template nodes.

    Args:
        source: Template source text
        name: Template name used in error messages
        filename: Source file, if any
        filters: Filter registry consulted while parsing expressions
        tags: Tag registry; tag names outside it are rejected
        autoescape: Append the ``safe`` filter to every ``{{ }}`` run
    """

    __slots__ = (
        "_autoescape",
        "_col",
        "_filename",
        "_filters",
        "_line",
        "_name",
        "_nodes",
        "_pos",
        "_source",
        "_start",
        "_start_col",
        "_start_line",
        "_tags",
    )

    def __init__(
        self,
        source: str,
        *,
        name: str | None = None,
        filename: str | None = None,
        filters: Mapping[str, Callable[..., Any] | None],
        tags: Mapping[str, TagHandler | None],
        autoescape: bool = True,
    ):
        self._source = source
        self._name = name
        self._filename = filename
        self._filters = filters
        self._tags = tags
        self._autoescape = autoescape
        self._nodes: list[Node] = []
        self._pos = 0
        self._line = 1
        self._col = 0
        self._start = 0
        self._start_line = 1
        self._start_col = 0

    def tokenize(self) -> tuple[Node, ...]:
        """Run the state machine to completion and return the nodes.

        Raises:
            TemplateSyntaxError: on any lexical or expression error
        """
        if not self._source:
            raise self._error("Template has no content", ErrorCode.NO_CONTENT)

        if self._source[0] == "\n":
            self._line += 1
        else:
            self._col += 1
        self._mark_start()

        handlers: dict[LexerState, Callable[[], LexerState | None]] = {
            LexerState.CONTENT: self._lex_content,
            LexerState.COMMENT: self._lex_comment,
            LexerState.EXPRESSION: self._lex_expression,
            LexerState.TAG: self._lex_tag,
        }
        state: LexerState | None = LexerState.CONTENT
        while state is not None:
            state = handlers[state]()
        return tuple(self._nodes)

    # -- position ----------------------------------------------------------

    def _advance(self, count: int) -> None:
        """Move the cursor forward, keeping line/column on the new character."""
        source = self._source
        old = self._pos
        self._pos = old + count
        end = min(self._pos, len(source) - 1)
        if end <= old:
            return
        newlines = source.count("\n", old + 1, end + 1)
        if newlines:
            self._line += newlines
            self._col = end - source.rindex("\n", old + 1, end + 1)
        else:
            self._col += end - old

    def _mark_start(self) -> None:
        self._start = self._pos
        self._start_line = self._line
        self._start_col = self._col

    def _error(self, message: str, code: ErrorCode) -> TemplateSyntaxError:
        return TemplateSyntaxError(
            message,
            lineno=self._line,
            name=self._name,
            filename=self._filename,
            source=self._source,
            col_offset=self._col,
            code=code,
        )

    # -- states ------------------------------------------------------------

    def _lex_content(self) -> LexerState | None:
        source = self._source
        search = self._pos
        while True:
            brace = source.find("{", search)
            if brace == -1 or brace + 1 >= len(source):
                self._advance(len(source) - self._pos)
                self._flush_content()
                return None
            state = _OPENERS.get(source[brace + 1])
            if state is not None:
                break
            search = brace + 1

        self._advance(brace - self._pos)
        self._flush_content()
        self._mark_start()
        self._advance(2)
        return state

    def _flush_content(self) -> None:
        end = min(self._pos, len(self._source))
        if end > self._start:
            self._nodes.append(
                Content(
                    lineno=self._start_line,
                    col_offset=self._start_col,
                    value=self._source[self._start : end],
                )
            )

    def _find_closer(self, state: LexerState) -> str:
        """Advance to the closer of the current run and return the body."""
        closer = _CLOSERS[state]
        body_start = self._pos
        found = self._source.find(closer, body_start)
        if found == -1:
            self._advance(len(self._source) - self._pos)
            what, code = _UNCLOSED[state]
            raise self._error(f"File end reached within {what}", code)
        self._advance(found - self._pos)
        return self._source[body_start:found]

    def _finish_run(self) -> LexerState:
        self._advance(2)
        self._mark_start()
        return LexerState.CONTENT

    def _lex_comment(self) -> LexerState:
        self._find_closer(LexerState.COMMENT)
        return self._finish_run()

    def _lex_expression(self) -> LexerState:
        body = self._find_closer(LexerState.EXPRESSION).strip()
        if not body:
            raise self._error("Identifier is an empty string", ErrorCode.EMPTY_BODY)
        try:
            expr = parse_expression(body, self._filters)
            if self._autoescape:
                expr = self._escaped(expr)
        except TemplateSyntaxError as e:
            raise e.locate(
                self._line,
                self._col,
                name=self._name,
                filename=self._filename,
                source=self._source,
            ) from None
        self._nodes.append(
            Output(
                lineno=self._start_line,
                col_offset=self._start_col,
                raw=self._source[self._start : self._pos + 2],
                expr=expr,
            )
        )
        return self._finish_run()

    def _escaped(self, expr: Expression) -> Expression:
        if "safe" not in self._filters:
            raise TemplateSyntaxError(
                "Autoescape requires the 'safe' filter", code=ErrorCode.UNKNOWN_FILTER
            )
        return expr.with_filter(FilterCall(name="safe", func=self._filters["safe"]))

    def _lex_tag(self) -> LexerState:
        body = self._find_closer(LexerState.TAG).strip()
        if not body:
            raise self._error("Empty tag", ErrorCode.EMPTY_BODY)
        name, *rest = _TAG_SPLIT_RE.split(body, maxsplit=1)
        if name not in self._tags:
            raise self._error(f"Tag '{name}' does not exist", ErrorCode.UNKNOWN_TAG)
        self._nodes.append(
            Tag(
                lineno=self._start_line,
                col_offset=self._start_col,
                raw=self._source[self._start : self._pos + 2],
                name=name,
                args=rest[0].strip() if rest else "",
                handler=self._tags[name],
            )
        )
        return self._finish_run()


def tokenize(
    source: str,
    *,
    filters: Mapping[str, Callable[..., Any] | None],
    tags: Mapping[str, TagHandler | None],
    name: str | None = None,
    autoescape: bool = True,
) -> tuple[Node, ...]:
    """Convenience wrapper: ``Lexer(...).tokenize()``."""
    return Lexer(source, name=name, filters=filters, tags=tags, autoescape=autoescape).tokenize()
