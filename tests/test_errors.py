"""Tests for error codes, error formatting and terminal colors."""

from __future__ import annotations

import io

import pytest

from stencil import (
    Environment,
    ErrorCode,
    TagHandler,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateScanError,
    TemplateSyntaxError,
)
from stencil.environment import terminal
from stencil.environment.exceptions import build_source_snippet, format_template_stack


def _syntax_error(source: str, name: str = "page") -> TemplateSyntaxError:
    with pytest.raises(TemplateSyntaxError) as exc_info:
        Environment().from_string(source, name=name)
    return exc_info.value


def _runtime_error(source: str, name: str = "page", **ctx) -> TemplateRuntimeError:
    with pytest.raises(TemplateRuntimeError) as exc_info:
        Environment().from_string(source, name=name).render(**ctx)
    return exc_info.value


class TestErrorCode:
    """ErrorCode values and categories."""

    @pytest.mark.parametrize(
        ("code", "category"),
        [
            (ErrorCode.NO_CONTENT, "lexer"),
            (ErrorCode.UNKNOWN_TAG, "lexer"),
            (ErrorCode.UNKNOWN_FILTER, "parser"),
            (ErrorCode.INVALID_LITERAL, "parser"),
            (ErrorCode.MISSING_END_TAG, "runtime"),
            (ErrorCode.INCLUDE_DEPTH, "runtime"),
            (ErrorCode.TEMPLATE_NOT_FOUND, "template"),
        ],
    )
    def test_category(self, code, category):
        assert code.category == category

    def test_values_unique(self):
        assert len({code.value for code in ErrorCode}) == len(ErrorCode)

    def test_default_codes(self):
        assert TemplateNotFoundError("x").code is ErrorCode.TEMPLATE_NOT_FOUND
        assert TemplateRuntimeError("x").code is ErrorCode.RUNTIME_ERROR
        assert TemplateScanError(("endif",)).code is ErrorCode.MISSING_END_TAG


class TestSyntaxErrors:
    """Parse-time diagnostics."""

    def test_message_format(self):
        err = _syntax_error("Hello {{ name|nope }}!")
        assert str(err).startswith("[Parsing error: page] [Line 1, Column ")
        assert "Filter 'nope' not found" in str(err)
        assert err.code is ErrorCode.UNKNOWN_FILTER

    def test_unnamed_template(self):
        with pytest.raises(TemplateSyntaxError, match=r"\[Parsing error: <string>\]"):
            Environment().from_string("{% nope %}")

    def test_snippet_in_message(self):
        err = _syntax_error("line one\n{% nope %}")
        assert "   2 | {% nope %}" in str(err)

    def test_format_compact(self):
        err = _syntax_error("Hello {{ name|nope }}!")
        text = err.format_compact()
        assert text.startswith("S-PAR-003: Filter 'nope' not found")
        assert "--> page:1:" in text
        assert ">  1 | Hello {{ name|nope }}!" in text
        assert "^" in text

    def test_unlocated(self):
        err = TemplateSyntaxError("bad")
        assert str(err) == "bad"
        assert err.format_compact().startswith("S-TPL-002: bad")


class TestRuntimeErrors:
    """Render-time diagnostics."""

    def test_location(self):
        err = _runtime_error("line one\n{% if %}x{% endif %}")
        assert err.template_name == "page"
        assert (err.lineno, err.col_offset) == (2, 1)
        assert err.expression == "{% if %}"
        assert err.source_snippet is not None
        assert err.source_snippet.error_line == 2

    def test_message(self):
        text = str(_runtime_error("{% if %}x{% endif %}"))
        assert text.startswith("Runtime Error: If-argument is empty.")
        assert "Location: page:1:1" in text
        assert "Expression: {% if %}" in text

    def test_format_compact(self):
        text = _runtime_error("{% if %}x{% endif %}").format_compact()
        assert text.startswith("S-RUN-001: If-argument is empty.")
        assert "Location: page:1:1" in text

    def test_scan_error(self):
        err = _runtime_error("{% if x %}yes", x=True)
        assert isinstance(err, TemplateScanError)
        assert err.expected == ("else", "endif")
        assert err.code is ErrorCode.MISSING_END_TAG
        assert "Close the tag with {% endif %}" in str(err)

    def test_unexpected_exception_wrapped(self):
        def boom(args, executor, ctx):
            raise ValueError("boom")

        env = Environment()
        env.add_tag("boom", TagHandler(execute=boom))
        with pytest.raises(TemplateRuntimeError, match="ValueError: boom") as exc_info:
            env.from_string("{% boom %}").render()
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert exc_info.value.lineno == 1

    def test_not_found_compact(self):
        assert TemplateNotFoundError("Template 'x' not found").format_compact() == (
            "S-TPL-001: Template 'x' not found"
        )


class TestSnippets:
    """Source snippets and template stacks."""

    def test_build_source_snippet(self):
        snippet = build_source_snippet("a\nb\nc\nd\ne", 3, context_lines=1, column=2)
        assert snippet.lines == ((2, "b"), (3, "c"), (4, "d"))
        text = snippet.format()
        assert ">  3 | c" in text
        assert "   2 | b" in text
        assert "   |  ^" in text

    def test_snippet_at_start(self):
        snippet = build_source_snippet("only", 1)
        assert snippet.lines == ((1, "only"),)
        assert snippet.column is None

    def test_template_stack(self):
        text = format_template_stack([("page.html", 4), ("nav.html", 2)])
        assert text == "Template stack:\n  • page.html:4\n  • nav.html:2"
        assert format_template_stack([]) == ""


class TestTerminalColors:
    """ANSI handling in diagnostics."""

    def test_plain_when_disabled(self):
        assert not terminal.supports_color()
        assert terminal.style("hint", "x") == "x"

    def test_force_color(self, monkeypatch):
        monkeypatch.setenv("FORCE_COLOR", "1")
        assert terminal.supports_color()
        colored = terminal.style("code", "x")
        assert colored != "x"
        assert terminal.strip_colors(colored) == "x"

    def test_force_color_wins(self, monkeypatch):
        monkeypatch.setenv("FORCE_COLOR", "1")
        monkeypatch.setenv("NO_COLOR", "1")
        assert terminal.supports_color()

    def test_stream_without_tty(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR")
        assert not terminal.supports_color(io.StringIO())

    def test_empty_text_unstyled(self, monkeypatch):
        monkeypatch.setenv("FORCE_COLOR", "1")
        assert terminal.style("muted", "") == ""

    def test_colored_diagnostic_strips_to_plain(self, monkeypatch):
        err = _syntax_error("Hello {{ name|nope }}!")
        plain = err.format_compact()
        monkeypatch.setenv("FORCE_COLOR", "1")
        colored = err.format_compact()
        assert colored != plain
        assert terminal.strip_colors(colored) == plain

    def test_error_header(self):
        assert terminal.format_error_header("S-RUN-001", "msg") == "S-RUN-001: msg"
        assert terminal.format_error_header(None, "msg") == "msg"
