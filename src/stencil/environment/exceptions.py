"""Exceptions for the Stencil template engine.

Exception Hierarchy:
TemplateError
├── TemplateNotFoundError       # a loader has no template of that name
├── TemplateSyntaxError         # lexer/parser failure, located by line and column
└── TemplateRuntimeError        # failure while executing a node
    ├── TemplateScanError       # an open tag has no terminator
    └── TemplateEvaluationError # a filter or method call failed

Missing data is not an error: unknown variables, absent keys,
out-of-range indexes and calls with the wrong number of arguments render as
an empty string. Only syntactic and structural problems raise.

A located runtime error reads:

    Runtime Error: No end-node found (possible nodes: else, endif)
      Location: page.html:3:1
       |
    >  3 | {% if user %}
       |
      Expression: {% if user %}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from stencil.environment import terminal

_CATEGORIES = {"LEX": "lexer", "PAR": "parser", "RUN": "runtime", "TPL": "template"}


class ErrorCode(Enum):
    """Stable, searchable identifiers of the form ``S-<CATEGORY>-<NNN>``."""

    # lexer
    NO_CONTENT = "S-LEX-001"
    UNCLOSED_COMMENT = "S-LEX-002"
    UNCLOSED_EXPRESSION = "S-LEX-003"
    UNCLOSED_TAG = "S-LEX-004"
    EMPTY_BODY = "S-LEX-005"
    UNKNOWN_TAG = "S-LEX-006"

    # expression parser
    INVALID_EXPRESSION = "S-PAR-001"
    INVALID_LITERAL = "S-PAR-002"
    UNKNOWN_FILTER = "S-PAR-003"

    # execution
    RUNTIME_ERROR = "S-RUN-001"
    MISSING_END_TAG = "S-RUN-002"
    FILTER_ERROR = "S-RUN-003"
    METHOD_ERROR = "S-RUN-004"
    INCLUDE_DEPTH = "S-RUN-005"

    # loading
    TEMPLATE_NOT_FOUND = "S-TPL-001"
    SYNTAX_ERROR = "S-TPL-002"

    @property
    def category(self) -> str:
        """``lexer``, ``parser``, ``runtime`` or ``template``."""
        _, group, _ = self.value.split("-")
        return _CATEGORIES.get(group, "unknown")


def format_template_stack(stack: list[tuple[str, int]] | None) -> str:
    """Render the chain of include/extends hops that led to an error.

        >>> print(format_template_stack([("page.html", 4), ("nav.html", 2)]))
        Template stack:
          • page.html:4
          • nav.html:2
    """
    if not stack:
        return ""
    entries = (f"  • {terminal.style('location', f'{name}:{line}')}" for name, line in stack)
    return "\n".join([terminal.style("muted", "Template stack:"), *entries])


_GUTTER = "   |"


@dataclass(frozen=True, slots=True)
class SourceSnippet:
    """A window of numbered source lines around a failure.

    Attributes:
        lines: ``(lineno, text)`` pairs, in order
        error_line: The line that failed
        column: Caret position on the failing line, when known
    """

    lines: tuple[tuple[int, str], ...]
    error_line: int
    column: int | None = None

    @classmethod
    def from_source(
        cls,
        source: str,
        error_line: int,
        *,
        context_lines: int = 2,
        column: int | None = None,
    ) -> SourceSnippet:
        text_lines = source.splitlines()
        first = max(error_line - context_lines, 1)
        last = min(error_line + context_lines, len(text_lines))
        window = tuple((n, text_lines[n - 1]) for n in range(first, last + 1))
        return cls(lines=window, error_line=error_line, column=column)

    def format(self) -> str:
        gutter = terminal.style("muted", _GUTTER)
        rendered = [gutter]
        rendered.extend(
            terminal.format_source_line(n, text, is_error=n == self.error_line)
            for n, text in self.lines
        )
        if self.column is not None:
            caret = " " * max(self.column - 1, 0) + "^"
            rendered.append(f"{gutter} {terminal.style('caret', caret)}")
        rendered.append(gutter)
        return "\n".join(rendered)


def build_source_snippet(
    source: str,
    error_line: int,
    *,
    context_lines: int = 2,
    column: int | None = None,
) -> SourceSnippet:
    """Shorthand for :meth:`SourceSnippet.from_source`."""
    return SourceSnippet.from_source(
        source, error_line, context_lines=context_lines, column=column
    )


class TemplateError(Exception):
    """Root of every Stencil error.

    Attributes:
        code: The ErrorCode of this failure
    """

    code: ErrorCode | None = None

    def _header(self, message: str) -> str:
        return terminal.format_error_header(self.code.value if self.code else None, message)

    def format_compact(self) -> str:
        """A one-screen diagnostic for terminals, without traceback noise."""
        text = str(self)
        if self.code is not None and self.code.value in text:
            return text
        return self._header(text)


class TemplateNotFoundError(TemplateError):
    """No loader could supply the requested template.

    ``extends`` and ``include`` let it through untouched, so the message is
    always the loader's own.
    """

    code = ErrorCode.TEMPLATE_NOT_FOUND


class TemplateSyntaxError(TemplateError):
    """Template source that cannot be tokenized or parsed.

    Raised without a position by the expression parser; the lexer then
    calls :meth:`locate` with the position of the offending run. A located
    error reads::

        [Parsing error: page.html] [Line 4, Column 8] Tag 'iff' does not exist
    """

    code = ErrorCode.SYNTAX_ERROR

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        name: str | None = None,
        filename: str | None = None,
        source: str | None = None,
        col_offset: int | None = None,
        *,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.lineno = lineno
        self.col_offset = col_offset
        self.name = name
        self.filename = filename
        self.source = source
        if code is not None:
            self.code = code
        super().__init__(self._render())

    def locate(
        self,
        lineno: int,
        col_offset: int,
        *,
        name: str | None = None,
        filename: str | None = None,
        source: str | None = None,
    ) -> TemplateSyntaxError:
        """Fill in the position (and any missing template details); returns self."""
        self.lineno, self.col_offset = lineno, col_offset
        if self.name is None:
            self.name = name
        if self.filename is None:
            self.filename = filename
        if self.source is None:
            self.source = source
        self.args = (self._render(),)
        return self

    def _failing_line(self) -> str | None:
        if not self.source or not self.lineno:
            return None
        text_lines = self.source.splitlines()
        if self.lineno > len(text_lines):
            return None
        return text_lines[self.lineno - 1]

    def _render(self) -> str:
        if self.lineno is None:
            return self.message
        text = (
            f"[Parsing error: {self.name or '<template>'}] "
            f"[Line {self.lineno}, Column {self.col_offset}] {self.message}"
        )
        failing = self._failing_line()
        if failing is None:
            return text
        text += f"\n{_GUTTER}\n{self.lineno:>4} | {failing}"
        if self.col_offset:
            text += f"\n{_GUTTER} {' ' * (self.col_offset - 1)}^"
        return text

    def format_compact(self) -> str:
        where = self.filename or self.name or "<template>"
        if self.lineno:
            where = f"{where}:{self.lineno}:{self.col_offset}"
        report = [self._header(self.message), f"  --> {terminal.style('location', where)}"]
        if self._failing_line() is not None:
            snippet = SourceSnippet.from_source(
                self.source, self.lineno, context_lines=0, column=self.col_offset
            )
            report.append(snippet.format())
        return "\n".join(report)


class TemplateRuntimeError(TemplateError):
    """A node failed while the template was executing.

    Errors raised without a position are located by the executor, which
    records the template, the node's line and column, its raw source and
    the chain of enclosing templates::

        Runtime Error: If-argument is empty.
          Location: page.html:1:1
           |
        >  1 | {% if %}yes{% endif %}
           |
          Expression: {% if %}

    Attributes:
        message: What went wrong
        expression: Raw source of the failing node
        template_name: Template the node belongs to
        lineno: Line of the failing node
        col_offset: Column of the failing node
        suggestion: How to fix it, when there is an obvious fix
        source_snippet: Source lines around the node
        template_stack: ``(template_name, line)`` of each enclosing template
    """

    code = ErrorCode.RUNTIME_ERROR

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        template_name: str | None = None,
        lineno: int | None = None,
        col_offset: int | None = None,
        suggestion: str | None = None,
        source_snippet: SourceSnippet | None = None,
        template_stack: list[tuple[str, int]] | None = None,
    ):
        self.message = message
        self.suggestion = suggestion
        self.expression = expression
        self.template_name = template_name
        self.lineno = lineno
        self.col_offset = col_offset
        self.source_snippet = source_snippet
        self.template_stack = list(template_stack or ())
        super().__init__(self._render(compact=False))

    def locate(
        self,
        *,
        template_name: str | None,
        lineno: int,
        col_offset: int,
        expression: str | None = None,
        source_snippet: SourceSnippet | None = None,
        template_stack: list[tuple[str, int]] | None = None,
    ) -> TemplateRuntimeError:
        """Attach the failing node's position; returns self."""
        self.template_name = template_name
        self.lineno, self.col_offset = lineno, col_offset
        if self.expression is None:
            self.expression = expression
        self.source_snippet = source_snippet
        self.template_stack = list(template_stack or ())
        self.args = (self._render(compact=False),)
        return self

    @property
    def location(self) -> str:
        """``name:line:column``, as far as it is known."""
        where = self.template_name or "<template>"
        if not self.lineno:
            return where
        where = f"{where}:{self.lineno}"
        return where if self.col_offset is None else f"{where}:{self.col_offset}"

    def _render(self, *, compact: bool) -> str:
        if compact:
            report = [self._header(self.message)]
        else:
            report = [f"Runtime Error: {self.message}"]
        if compact or self.template_name or self.lineno:
            report.append(f"  Location: {terminal.style('location', self.location)}")
        if self.source_snippet is not None:
            report.append(self.source_snippet.format())
        if self.template_stack:
            report += ["", format_template_stack(self.template_stack)]
        if self.expression:
            report.append(f"  Expression: {self.expression}")
        if self.suggestion:
            label = "Hint:" if compact else "Suggestion:"
            lead = "  " if compact else "\n  "
            report.append(f"{lead}{terminal.style('hint', label)} {self.suggestion}")
        return "\n".join(report)

    def format_compact(self) -> str:
        return self._render(compact=True)


class TemplateScanError(TemplateRuntimeError):
    """A forward scan ran off the end of the template.

    ``expected`` holds the terminator names the scan was looking for:

        >>> env.from_string("{% if x %}yes").render(x=True)
        TemplateScanError: No end-node found (possible nodes: else, endif)
    """

    code = ErrorCode.MISSING_END_TAG

    def __init__(self, expected: tuple[str, ...], **kwargs):
        self.expected = expected
        if expected:
            kwargs.setdefault("suggestion", f"Close the tag with {{% {expected[-1]} %}}")
        super().__init__(f"No end-node found (possible nodes: {', '.join(expected)})", **kwargs)


class TemplateEvaluationError(TemplateRuntimeError):
    """A filter raised, or a method misbehaved, while evaluating an expression.

    Attributes:
        callable_name: The filter or method at fault
    """

    code = ErrorCode.FILTER_ERROR

    def __init__(
        self,
        message: str,
        *,
        callable_name: str,
        code: ErrorCode = ErrorCode.FILTER_ERROR,
        **kwargs,
    ):
        self.callable_name = callable_name
        self.code = code
        super().__init__(message, **kwargs)
