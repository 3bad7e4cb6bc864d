"""Base node class for Stencil templates."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Node:
    """Base class for all template nodes.

    A compiled template is a flat tuple of nodes; structure (if/for/block)
    is recovered at render time by scanning for terminator tags. Every node
    records the line and column where its source text starts.
    """

    lineno: int
    col_offset: int
