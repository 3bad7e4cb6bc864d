"""Execution engine.

A template is a flat tuple of nodes, so structure is recovered while
rendering. The executor walks the nodes with a cursor and offers two scan
primitives that tag handlers build on:

- ``execute_until(ctx, *names)``: render nodes after the cursor until a
  tag named in ``names`` is reached; return that tag and the text.
- ``ignore_until(*names)``: skip nodes after the cursor until such a tag
  is reached. Structural tags met on the way get their ``ignore`` hook
  called so their own terminators are skipped with them.

Both leave the cursor on the terminator they matched. Loop tags re-run a
body by resetting ``cursor`` to a saved index.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from stencil.environment.exceptions import (
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateScanError,
    TemplateSyntaxError,
    build_source_snippet,
)
from stencil.nodes import Content, Expression, Node, Output, Tag
from stencil.render_context import (
    get_render_context,
    render_context,
    reset_render_context,
    set_render_context,
)
from stencil.template.helpers import evaluate
from stencil.values import stringify

if TYPE_CHECKING:
    from stencil.environment.core import Environment
    from stencil.template.core import Template

logger = logging.getLogger(__name__)


class Executor:
    """Render state for one execution of one template.

    Attributes:
        template: The template being executed
        cursor: Index of the node currently executing
        blocks: Block overrides (name -> rendered text) shared along an
            ``extends`` chain
    """

    __slots__ = ("blocks", "cursor", "template")

    def __init__(self, template: Template, blocks: dict[str, str] | None = None):
        self.template = template
        self.cursor = 0
        self.blocks: dict[str, str] = {} if blocks is None else blocks

    @property
    def env(self) -> Environment:
        return self.template.env

    @property
    def nodes(self) -> tuple[Node, ...]:
        return self.template.nodes

    def execute(self, ctx: dict[str, Any]) -> str:
        """Render every node from the start of the template."""
        parts: list[str] = []
        nodes = self.nodes
        self.cursor = 0
        while self.cursor < len(nodes):
            parts.append(self._run(nodes[self.cursor], ctx))
            self.cursor += 1
        return "".join(parts)

    def execute_until(self, ctx: dict[str, Any], *names: str) -> tuple[Tag, str]:
        """Render forward from the cursor until one of ``names``.

        Raises:
            TemplateScanError: if no terminator follows
        """
        parts: list[str] = []
        nodes = self.nodes
        self.cursor += 1
        while self.cursor < len(nodes):
            node = nodes[self.cursor]
            if isinstance(node, Tag) and node.name in names:
                return node, "".join(parts)
            parts.append(self._run(node, ctx))
            self.cursor += 1
        raise TemplateScanError(names)

    def ignore_until(self, *names: str) -> Tag:
        """Skip forward from the cursor until one of ``names``.

        Raises:
            TemplateScanError: if no terminator follows
        """
        nodes = self.nodes
        self.cursor += 1
        while self.cursor < len(nodes):
            node = nodes[self.cursor]
            if isinstance(node, Tag):
                if node.name in names:
                    return node
                handler = node.handler
                if handler is not None and handler.ignore is not None:
                    handler.ignore(node.args, self)
            self.cursor += 1
        raise TemplateScanError(names)

    def parse(self, text: str) -> Expression:
        return self.env.parse_expression(text)

    def evaluate(self, text: str, ctx: dict[str, Any]) -> Any:
        """Parse and evaluate a tag argument expression.

        Tag arguments are not parsed at compile time, so a bad filter name
        here surfaces as a ``TemplateSyntaxError`` during rendering.
        """
        return evaluate(self.parse(text), ctx)

    def render_template(
        self,
        template: Template,
        ctx: dict[str, Any],
        blocks: dict[str, str] | None = None,
    ) -> str:
        """Execute another template one include level deeper."""
        parent = get_render_context()
        if parent is None:
            with render_context(
                template_name=template.name,
                source=template.source,
                max_include_depth=self.env.max_include_depth,
            ):
                return Executor(template, blocks).execute(ctx)
        parent.check_include_depth(template.name)
        logger.debug("Entering template %r at depth %d", template.name, parent.include_depth + 1)
        token = set_render_context(parent.child_context(template.name, template.source))
        try:
            return Executor(template, blocks).execute(ctx)
        finally:
            reset_render_context(token)

    def _run(self, node: Node, ctx: dict[str, Any]) -> str:
        render_ctx = get_render_context()
        if render_ctx is not None:
            render_ctx.line = node.lineno
        try:
            if isinstance(node, Content):
                return node.value
            if isinstance(node, Output):
                return stringify(evaluate(node.expr, ctx))
            if isinstance(node, Tag):
                if node.handler is None:
                    raise TemplateRuntimeError(
                        "Unhandled placeholder (for example 'endif' for an if-clause): "
                        f"'{node.name}'"
                    )
                return node.handler.execute(node.args, self, ctx)
            raise TemplateRuntimeError(f"Unknown node type {type(node).__name__}")
        except TemplateNotFoundError:
            raise
        except TemplateSyntaxError as e:
            if e.lineno is None:
                raise e.locate(
                    node.lineno,
                    node.col_offset,
                    name=self.template.name,
                    filename=self.template.filename,
                    source=self.template.source,
                ) from None
            raise
        except TemplateRuntimeError as e:
            if e.lineno is None:
                self._locate(e, node, render_ctx)
            raise
        except Exception as e:
            err = TemplateRuntimeError(f"{type(e).__name__}: {e}")
            self._locate(err, node, render_ctx)
            raise err from e

    def _locate(self, err: TemplateRuntimeError, node: Node, render_ctx: Any) -> None:
        source = self.template.source
        err.locate(
            template_name=self.template.name,
            lineno=node.lineno,
            col_offset=node.col_offset,
            expression=getattr(node, "raw", None),
            source_snippet=build_source_snippet(source, node.lineno, column=node.col_offset)
            if source
            else None,
            template_stack=render_ctx.template_stack if render_ctx is not None else None,
        )
