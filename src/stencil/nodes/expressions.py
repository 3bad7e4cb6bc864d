"""Parsed expression structures.

These are the result of parsing the body of a ``{{ }}`` run or a tag
argument. They are immutable; evaluation resolves identifiers into fresh
local values and never writes back into them.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Identifier:
    """A dotted path such as ``person.Friends.0.Name``."""

    path: str

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self.path.split("."))


# A literal value (str/int/float/bool) or an identifier to resolve.
Argument = Any


@dataclass(frozen=True, slots=True)
class FilterCall:
    """One ``|name:args`` step of a filter chain.

    ``func`` is None for marker filters such as ``unsafe``.
    """

    name: str
    func: Callable[..., Any] | None = field(compare=False)
    args: tuple[Argument, ...] = ()


@dataclass(frozen=True, slots=True)
class Expression:
    """``["!"] root[:args] ("|" filter[:args])*``."""

    raw: str
    root: Argument
    root_args: tuple[Argument, ...] = ()
    filters: tuple[FilterCall, ...] = ()
    negate: bool = False

    def with_filter(self, call: FilterCall) -> Expression:
        """Return a copy with ``call`` appended to the filter chain."""
        return Expression(
            raw=self.raw,
            root=self.root,
            root_args=self.root_args,
            filters=(*self.filters, call),
            negate=self.negate,
        )
