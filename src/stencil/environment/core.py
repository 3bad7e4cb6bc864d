"""Stencil Environment: configuration, registries and template loading.

The Environment is the entry point for compiling templates. It owns:

- the loader used by ``get_template`` and by ``extends``/``include``
- the filter and tag registries handed to the lexer at compile time
- globals merged into every render context
- a cache of templates loaded by name

Registries start as copies of the built-in defaults, so registering a filter
or tag on one Environment never affects another.

Example:
    >>> from stencil import DictLoader, Environment
    >>> env = Environment(loader=DictLoader({"hello": "Hello, {{ name }}!"}))
    >>> env.get_template("hello").render(name="World")
    'Hello, World!'
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from stencil.environment.exceptions import TemplateNotFoundError
from stencil.environment.filters import DEFAULT_FILTERS, FilterFunc
from stencil.environment.loaders import FileSystemLoader, Loader
from stencil.environment.registry import Registry
from stencil.lexer import Lexer
from stencil.nodes import Expression, Node
from stencil.parser.expressions import parse_expression
from stencil.render_context import DEFAULT_MAX_INCLUDE_DEPTH
from stencil.tags import DEFAULT_TAGS, TagHandler
from stencil.template.core import Template

logger = logging.getLogger(__name__)


class Environment:
    """Central configuration for compiling and loading templates.

    Args:
        loader: Resolves template names for ``get_template``, ``extends`` and
            ``include``. Without one, only ``from_string`` works.
        autoescape: Pipe every ``{{ }}`` through the ``safe`` filter
        globals: Variables available in every render
        filters: Extra filters, added on top of the built-ins
        tags: Extra tags, added on top of the built-ins
        max_include_depth: Limit on nested include/extends hops
        encoding: Used by ``Template.render_to`` for binary sinks
        cache: Keep templates loaded through ``get_template``
    """

    def __init__(
        self,
        loader: Loader | None = None,
        *,
        autoescape: bool = True,
        globals: Mapping[str, Any] | None = None,
        filters: Mapping[str, FilterFunc | None] | None = None,
        tags: Mapping[str, TagHandler | None] | None = None,
        max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
        encoding: str = "utf-8",
        cache: bool = True,
    ):
        if max_include_depth < 1:
            raise ValueError("max_include_depth must be at least 1")
        self.loader = loader
        self.autoescape = autoescape
        self.globals: dict[str, Any] = dict(globals or {})
        self.max_include_depth = max_include_depth
        self.encoding = encoding
        self.cache = cache

        self._filters: dict[str, FilterFunc | None] = {**DEFAULT_FILTERS, **(filters or {})}
        self._tags: dict[str, TagHandler | None] = {**DEFAULT_TAGS, **(tags or {})}

        self._cache: dict[str, Template] = {}
        self._cache_lock = threading.Lock()

    # -- registries ----------------------------------------------------------

    @property
    def filters(self) -> Registry:
        return Registry(self, "_filters")

    @property
    def tags(self) -> Registry:
        return Registry(self, "_tags")

    def add_filter(self, name: str, func: FilterFunc | None) -> None:
        """Register ``func`` as filter ``name`` (``None`` for a marker filter)."""
        self._filters = {**self._filters, name: func}

    def filter(self, name: str | None = None) -> Callable[[FilterFunc], FilterFunc]:
        """Decorator form of :meth:`add_filter`.

        Example:
            >>> @env.filter()
            ... def double(value, args, chain):
            ...     return value * 2
        """

        def decorator(func: FilterFunc) -> FilterFunc:
            self.add_filter(name or func.__name__, func)
            return func

        return decorator

    def add_tag(self, name: str, handler: TagHandler | None) -> None:
        """Register a tag; ``None`` registers a terminator such as ``endfoo``."""
        self._tags = {**self._tags, name: handler}

    # -- compilation ---------------------------------------------------------

    def parse(
        self,
        source: str,
        name: str | None = None,
        filename: str | None = None,
    ) -> tuple[Node, ...]:
        """Tokenize ``source`` into nodes without building a Template."""
        return Lexer(
            source,
            name=name,
            filename=filename,
            filters=self._filters,
            tags=self._tags,
            autoescape=self.autoescape,
        ).tokenize()

    def parse_expression(self, text: str) -> Expression:
        """Parse a tag argument against this environment's filters."""
        return parse_expression(text, self._filters)

    def _compile(self, source: str, name: str | None, filename: str | None) -> Template:
        nodes = self.parse(source, name, filename)
        return Template(self, nodes, name, source, filename, self.autoescape)

    def from_string(self, source: str, name: str | None = None) -> Template:
        """Compile a template from source text.

        Raises:
            TemplateSyntaxError: on any lexical or expression error
        """
        return self._compile(source, name or "<string>", None)

    def load_template(self, name: str) -> Template:
        """Fetch and compile ``name`` through the loader, bypassing the cache.

        Raises:
            TemplateNotFoundError: if there is no loader or it misses
        """
        if self.loader is None:
            raise TemplateNotFoundError(f"Template '{name}' not found (no loader configured)")
        source, filename = self.loader.get_source(name)
        logger.debug("Loaded template %r from %s", name, filename or "loader")
        return self._compile(source, name, filename)

    def get_template(self, name: str) -> Template:
        """Load a template by name, reusing a cached copy when enabled."""
        if not self.cache:
            return self.load_template(name)
        with self._cache_lock:
            cached = self._cache.get(name)
        if cached is not None:
            logger.debug("Template cache hit for %r", name)
            return cached
        template = self.load_template(name)
        with self._cache_lock:
            return self._cache.setdefault(name, template)

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    def list_templates(self) -> list[str]:
        """Names the loader can provide, sorted; empty without a loader."""
        if self.loader is None:
            return []
        list_templates = getattr(self.loader, "list_templates", None)
        if list_templates is None:
            raise TypeError(f"{type(self.loader).__name__} cannot list templates")
        return sorted(list_templates())


def from_string(source: str, **options: Any) -> Template:
    """Compile ``source`` in a new Environment built from ``options``."""
    return Environment(**options).from_string(source)


def from_file(path: str | Path, **options: Any) -> Template:
    """Load the template at ``path``.

    Unless ``loader`` is given, ``extends``/``include`` names resolve
    against the file's directory.
    """
    path = Path(path)
    if "loader" not in options:
        options["loader"] = FileSystemLoader(path.parent, encoding=options.get("encoding", "utf-8"))
        return Environment(**options).get_template(path.name)
    env = Environment(**options)
    source = path.read_text(encoding=env.encoding)
    return env._compile(source, path.name, str(path))
