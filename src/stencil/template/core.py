"""Stencil Template: a parsed template ready for rendering.

A Template holds the flat node tuple produced by the lexer plus the
Environment it was compiled in. It is immutable once constructed: the only
mutable piece, the static sub-template cache, is filled while
``_prepare()`` runs inside the constructor, before the template is handed
to any caller.

Thread-Safety:
- Nodes are frozen dataclasses in a tuple
- ``render()`` builds a fresh context dict and RenderContext per call
- Multiple threads can render the same Template concurrently

Example:
    >>> from stencil import Environment
    >>> t = Environment().from_string("Hello, {{ name|upper }}!")
    >>> t.render(name="World")
    'Hello, WORLD!'
    >>> t.render({"name": "World"})
    'Hello, WORLD!'
"""

from __future__ import annotations

import io
from collections.abc import Mapping
from typing import IO, TYPE_CHECKING, Any

from stencil.nodes import Tag
from stencil.render_context import render_context
from stencil.template.executor import Executor

if TYPE_CHECKING:
    from stencil.environment.core import Environment
    from stencil.nodes import Node


class Template:
    """Parsed template bound to its Environment.

    Attributes:
        name: Template identifier used in error messages and include stacks
        filename: Source file path, when loaded from disk
        source: Original source text
        autoescape: Whether ``{{ }}`` output was compiled with ``safe``

    Templates are normally created through ``Environment.from_string`` or
    ``Environment.get_template`` rather than directly.
    """

    __slots__ = ("_autoescape", "_cache", "_env", "_filename", "_name", "_nodes", "_source")

    def __init__(
        self,
        env: Environment,
        nodes: tuple[Node, ...],
        name: str | None,
        source: str,
        filename: str | None = None,
        autoescape: bool = True,
    ):
        self._env = env
        self._nodes = nodes
        self._name = name
        self._source = source
        self._filename = filename
        self._autoescape = autoescape
        self._cache: dict[str, Template] = {}
        self._prepare()

    @property
    def env(self) -> Environment:
        return self._env

    @property
    def nodes(self) -> tuple[Node, ...]:
        return self._nodes

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def source(self) -> str:
        return self._source

    @property
    def filename(self) -> str | None:
        return self._filename

    @property
    def autoescape(self) -> bool:
        return self._autoescape

    def cache_template(self, key: str, template: Template) -> Template:
        """Store a statically resolved sub-template; the first write wins."""
        return self._cache.setdefault(key, template)

    def cached_template(self, key: str) -> Template | None:
        return self._cache.get(key)

    def _prepare(self) -> None:
        for node in self._nodes:
            if isinstance(node, Tag) and node.handler is not None and node.handler.prepare:
                node.handler.prepare(node, self)

    def _build_context(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> dict[str, Any]:
        if len(args) > 1:
            raise TypeError(f"render() takes at most 1 positional argument ({len(args)} given)")
        ctx: dict[str, Any] = dict(self._env.globals)
        if args:
            if not isinstance(args[0], Mapping):
                raise TypeError(
                    f"render() expects a mapping as positional argument, got {type(args[0]).__name__}"
                )
            ctx.update(args[0])
        ctx.update(kwargs)
        return ctx

    def render(self, *args: Any, **kwargs: Any) -> str:
        """Render the template with the given variables.

        Args:
            *args: At most one mapping of context variables
            **kwargs: Context variables as keyword arguments

        Raises:
            TemplateRuntimeError: if a node fails while executing
            TemplateNotFoundError: if a dynamic extends/include misses
        """
        ctx = self._build_context(args, kwargs)
        with render_context(
            template_name=self._name,
            source=self._source,
            max_include_depth=self._env.max_include_depth,
        ):
            return Executor(self).execute(ctx)

    def render_to(self, sink: IO[Any], *args: Any, **kwargs: Any) -> None:
        """Render and write the result to ``sink`` in a single write.

        Binary streams (``io.BufferedIOBase``, ``io.RawIOBase`` or any file
        opened with a ``b`` mode) receive bytes encoded with
        ``Environment.encoding``. Everything else is offered ``str`` first
        and gets the encoded bytes only if it rejects text with a
        ``TypeError``. Nothing is written if rendering fails.
        """
        output = self.render(*args, **kwargs)
        mode = getattr(sink, "mode", "")
        if isinstance(sink, (io.BufferedIOBase, io.RawIOBase)) or (
            isinstance(mode, str) and "b" in mode
        ):
            sink.write(output.encode(self._env.encoding))
            return
        try:
            sink.write(output)
        except TypeError:
            sink.write(output.encode(self._env.encoding))

    def __repr__(self) -> str:
        return f"<Template {self._name or '(inline)'!r}>"
