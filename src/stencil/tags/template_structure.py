"""Template composition tags: ``block``, ``extends`` and ``include``.

Inheritance works on rendered text. When a child template reaches
``{% extends "base" %}`` it renders each of its remaining ``block`` bodies
into a shared ``blocks`` dict, then renders the base template with that
dict. The base's own ``block`` tags emit the stored override instead of
their default body.

``extends`` and ``include`` take ``[static] <name>``. The static form is
resolved once while the template is compiled and kept in the template's
cache; the dynamic form evaluates ``<name>`` against the render context
and loads the template on every execution. Static loads nest while the
outermost template compiles, so a static chain that returns to a template
already being compiled, or grows past ``max_include_depth``, is rejected
with ``ErrorCode.INCLUDE_DEPTH``.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from stencil.environment.exceptions import (
    ErrorCode,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateScanError,
    TemplateSyntaxError,
)
from stencil.tags.base import PrepareHook, TagHandler, skip_to
from stencil.template.helpers import evaluate
from stencil.values import stringify

if TYPE_CHECKING:
    from stencil.nodes import Tag
    from stencil.template.core import Template
    from stencil.template.executor import Executor

logger = logging.getLogger(__name__)

# Names of the templates whose static sub-templates are being compiled.
_static_chain: ContextVar[tuple[str, ...]] = ContextVar("stencil_static_chain", default=())


def _split_static(args: str) -> tuple[bool, str]:
    head, _, rest = args.partition(" ")
    if head == "static":
        return True, rest.strip()
    return False, args


def _resolve_name(template: Template, args: str, ctx: dict[str, Any]) -> str:
    """Evaluate the first word of ``args`` to a template name."""
    words = args.split()
    if not words:
        raise TemplateRuntimeError("Please provide a proper template filename")
    name = stringify(evaluate(template.env.parse_expression(words[0]), ctx)).strip()
    if not name:
        raise TemplateRuntimeError(
            f"Please provide a proper template filename ('{words[0]}' resolved to an empty name)"
        )
    return name


def _prepare_static(kind: str) -> PrepareHook:
    def prepare(node: Tag, template: Template) -> None:
        static, name_args = _split_static(node.args)
        if not static:
            return
        if template.env.loader is None:
            raise TemplateNotFoundError(
                f"Cannot {kind} static template '{name_args}': no loader configured"
            )
        try:
            name = _resolve_name(template, name_args, {})
        except TemplateSyntaxError as e:
            if e.lineno is None:
                e.locate(
                    node.lineno,
                    node.col_offset,
                    name=template.name,
                    filename=template.filename,
                    source=template.source,
                )
            raise
        except TemplateRuntimeError as e:
            raise TemplateSyntaxError(
                e.message,
                lineno=node.lineno,
                name=template.name,
                filename=template.filename,
                source=template.source,
                col_offset=node.col_offset,
            ) from None
        _load_static(kind, name, node, template)

    return prepare


def _load_static(kind: str, name: str, node: Tag, template: Template) -> None:
    chain = (*_static_chain.get(), template.name or "<string>")
    limit = template.env.max_include_depth
    if name in chain:
        message = f"Circular static {kind}: {' -> '.join((*chain, name))}"
    elif len(chain) > limit:
        message = f"Maximum include depth exceeded ({limit}) when entering '{name}'"
    else:
        message = None
    if message is not None:
        raise TemplateSyntaxError(
            message,
            lineno=node.lineno,
            name=template.name,
            filename=template.filename,
            source=template.source,
            col_offset=node.col_offset,
            code=ErrorCode.INCLUDE_DEPTH,
        )
    token = _static_chain.set(chain)
    try:
        loaded = template.env.load_template(name)
    finally:
        _static_chain.reset(token)
    template.cache_template(f"{kind}_{node.args}", loaded)
    logger.debug("Cached static %s of %r in %r", kind, name, template.name)


def _load(kind: str, args: str, executor: Executor, ctx: dict[str, Any]) -> Template:
    cached = executor.template.cached_template(f"{kind}_{args}")
    if cached is not None:
        return cached
    _, name_args = _split_static(args)
    return executor.env.load_template(_resolve_name(executor.template, name_args, ctx))


def _execute_block(args: str, executor: Executor, ctx: dict[str, Any]) -> str:
    name = args.strip()
    if name in executor.blocks:
        executor.ignore_until("endblock")
        return executor.blocks[name]
    _, output = executor.execute_until(ctx, "endblock")
    return output


def _execute_extends(args: str, executor: Executor, ctx: dict[str, Any]) -> str:
    base = _load("extends", args, executor, ctx)
    blocks = executor.blocks
    while True:
        try:
            node = executor.ignore_until("block")
        except TemplateScanError as e:
            if e.expected != ("block",):
                raise
            break
        name = node.args.strip()
        if name in blocks:
            # A template further down the chain already overrides it.
            executor.ignore_until("endblock")
            continue
        _, blocks[name] = executor.execute_until(ctx, "endblock")
    return executor.render_template(base, ctx, blocks)


def _execute_include(args: str, executor: Executor, ctx: dict[str, Any]) -> str:
    return executor.render_template(_load("include", args, executor, ctx), ctx)


BLOCK = TagHandler(execute=_execute_block, ignore=skip_to("endblock"))
EXTENDS = TagHandler(execute=_execute_extends, prepare=_prepare_static("extends"))
INCLUDE = TagHandler(execute=_execute_include, prepare=_prepare_static("include"))
