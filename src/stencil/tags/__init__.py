"""Structural tags.

Every tag name a template may use must be registered. A ``TagHandler``
implements a tag; ``None`` registers a terminator name that only closes a
scan (``else``, ``endif``, ...). Executing a terminator on its own is an
error.
"""

from stencil.tags.base import TagHandler, skip_to
from stencil.tags.control_flow import FOR, IF, evaluate_condition
from stencil.tags.template_structure import BLOCK, EXTENDS, INCLUDE
from stencil.tags.whitespace import REMOVE, TRIM

DEFAULT_TAGS: dict[str, TagHandler | None] = {
    "if": IF,
    "else": None,
    "endif": None,
    "for": FOR,
    "endfor": None,
    "block": BLOCK,
    "endblock": None,
    "extends": EXTENDS,
    "include": INCLUDE,
    "trim": TRIM,
    "endtrim": None,
    "remove": REMOVE,
    "endremove": None,
}

__all__ = ["DEFAULT_TAGS", "TagHandler", "evaluate_condition", "skip_to"]
