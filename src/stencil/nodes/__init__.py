"""Template node types.

All nodes are frozen, slotted dataclasses. A compiled template is a flat
tuple of ``Content``, ``Output`` and ``Tag`` nodes.
"""

from stencil.nodes.base import Node
from stencil.nodes.expressions import Argument, Expression, FilterCall, Identifier
from stencil.nodes.output import Content, Output, Tag

__all__ = [
    "Argument",
    "Content",
    "Expression",
    "FilterCall",
    "Identifier",
    "Node",
    "Output",
    "Tag",
]
