"""Per-render state kept outside the user's context dict.

While a template renders, the engine tracks the template and line being
executed (for error messages), how many include/extends hops deep it is
(to stop circular templates) and which templates enclose the current one.
None of that may leak into template variables, so it lives in a
``ContextVar``: concurrent renders in other threads or tasks each see
their own state.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field, replace

from stencil.environment.exceptions import ErrorCode, TemplateRuntimeError

# Deep enough for real template hierarchies, shallow enough to catch
# A -> B -> A cycles before Python's recursion limit.
DEFAULT_MAX_INCLUDE_DEPTH = 50


@dataclass
class RenderContext:
    """State of one render, isolated from the template context.

    Attributes:
        template_name: Template currently executing
        source: Its source text, used for error snippets
        line: Line of the node currently executing
        include_depth: Include/extends hops from the top-level template
        max_include_depth: Largest allowed include_depth
        template_stack: ``(template_name, line)`` of each enclosing template,
            outermost first
    """

    template_name: str | None = None
    source: str | None = None
    line: int = 0
    include_depth: int = 0
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH
    template_stack: list[tuple[str, int]] = field(default_factory=list)

    def check_include_depth(self, template_name: str | None) -> None:
        """Fail before entering ``template_name`` would go one hop too deep."""
        if self.include_depth < self.max_include_depth:
            return
        err = TemplateRuntimeError(
            f"Maximum include depth exceeded ({self.max_include_depth}) "
            f"when entering '{template_name}'",
            template_name=self.template_name,
            suggestion="Check for templates that include or extend each other (A -> B -> A)",
        )
        err.code = ErrorCode.INCLUDE_DEPTH
        raise err

    def child_context(self, template_name: str | None, source: str | None) -> RenderContext:
        """State for a template entered from the current line."""
        here = [(self.template_name, self.line)] if self.template_name and self.line > 0 else []
        return replace(
            self,
            template_name=template_name,
            source=source,
            line=0,
            include_depth=self.include_depth + 1,
            template_stack=[*self.template_stack, *here],
        )


_current: ContextVar[RenderContext | None] = ContextVar("stencil_render_context", default=None)


def get_render_context() -> RenderContext | None:
    """The active render's state; None outside a render."""
    return _current.get()


def set_render_context(ctx: RenderContext) -> Token[RenderContext | None]:
    """Make ``ctx`` active; pass the token to :func:`reset_render_context` to undo."""
    return _current.set(ctx)


def reset_render_context(token: Token[RenderContext | None]) -> None:
    _current.reset(token)


@contextmanager
def render_context(
    template_name: str | None = None,
    source: str | None = None,
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
) -> Iterator[RenderContext]:
    """Run the body with a fresh top-level RenderContext.

        with render_context(template_name="page.html") as state:
            text = Executor(template).execute(data)
    """
    state = RenderContext(
        template_name=template_name,
        source=source,
        max_include_depth=max_include_depth,
    )
    token = set_render_context(state)
    try:
        yield state
    finally:
        reset_render_context(token)
