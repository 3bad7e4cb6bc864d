"""Tag handler protocol."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stencil.nodes import Tag
    from stencil.template.core import Template
    from stencil.template.executor import Executor

ExecuteHook = Callable[[str, "Executor", dict[str, Any]], str]
IgnoreHook = Callable[[str, "Executor"], None]
PrepareHook = Callable[["Tag", "Template"], None]


@dataclass(frozen=True, slots=True)
class TagHandler:
    """Hooks implementing one structural tag.

    Attributes:
        execute: ``(args, executor, ctx) -> text``. Called with the cursor on
            the tag; may move the cursor (e.g. to its ``end`` tag).
        ignore: ``(args, executor)``. Called when the tag is skipped by an
            enclosing ``ignore_until`` scan; must move the cursor past the
            tag's own terminators.
        prepare: ``(node, template)``. Called once when the template is
            compiled, before it is returned to the caller.

    Example:
        >>> def upper(args, executor, ctx):
        ...     _, body = executor.execute_until(ctx, "endupper")
        ...     return body.upper()
        >>> env.add_tag("upper", TagHandler(execute=upper, ignore=skip_to("endupper")))
        >>> env.add_tag("endupper", None)
    """

    execute: ExecuteHook
    ignore: IgnoreHook | None = None
    prepare: PrepareHook | None = None


def skip_to(*names: str) -> IgnoreHook:
    """Build an ignore hook that skips a tag's body up to ``names``."""

    def ignore(args: str, executor: Executor) -> None:
        executor.ignore_until(*names)

    return ignore
