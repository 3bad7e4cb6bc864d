"""Whitespace control tags: ``trim`` and ``remove``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from stencil.parser.expressions import split_args
from stencil.tags.base import TagHandler, skip_to
from stencil.values import stringify

if TYPE_CHECKING:
    from stencil.template.executor import Executor

DEFAULT_REMOVE_PATTERNS = (" ", "\t", "\n", "\r")


def _execute_trim(args: str, executor: Executor, ctx: dict[str, Any]) -> str:
    """``{% trim %}...{% endtrim %}``: strip surrounding whitespace."""
    _, output = executor.execute_until(ctx, "endtrim")
    return output.strip()


def _execute_remove(args: str, executor: Executor, ctx: dict[str, Any]) -> str:
    """``{% remove ["x", sep, ...] %}...{% endremove %}``.

    Deletes every occurrence of each pattern from the rendered body, in the
    order given. Without patterns, removes spaces, tabs and line breaks.
    """
    _, output = executor.execute_until(ctx, "endremove")
    if args:
        patterns = [stringify(executor.evaluate(text, ctx)) for text in split_args(args, ",")]
    else:
        patterns = list(DEFAULT_REMOVE_PATTERNS)
    for pattern in patterns:
        if pattern:
            output = output.replace(pattern, "")
    return output


TRIM = TagHandler(execute=_execute_trim, ignore=skip_to("endtrim"))
REMOVE = TagHandler(execute=_execute_remove, ignore=skip_to("endremove"))
