"""Content, output and tag nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from stencil.nodes.base import Node
from stencil.nodes.expressions import Expression

if TYPE_CHECKING:
    from stencil.tags import TagHandler


@dataclass(frozen=True, slots=True)
class Content(Node):
    """Literal template text, emitted verbatim."""

    value: str

    @property
    def raw(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Output(Node):
    """A ``{{ expr }}`` run."""

    raw: str
    expr: Expression


@dataclass(frozen=True, slots=True)
class Tag(Node):
    """A ``{% name args %}`` run.

    ``handler`` is None for terminator names (``else``, ``endif``, ...),
    which only bound a scan and cannot be executed on their own.
    """

    raw: str
    name: str
    args: str
    handler: TagHandler | None = field(default=None, compare=False)
