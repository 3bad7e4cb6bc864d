"""Template loaders for the Stencil environment.

``Environment.get_template`` and the ``extends``/``include`` tags never read
files themselves; they ask the environment's loader for the source of a
template name. Any object with a matching ``get_source`` method works:

    class RedisLoader:
        def __init__(self, client):
            self.client = client

        def get_source(self, name):
            source = self.client.get(f"templates:{name}")
            if source is None:
                raise TemplateNotFoundError(f"Template '{name}' not found in Redis")
            return source.decode(), None

Shipped implementations:

- ``FileSystemLoader``: one or more directories, first match wins
- ``DictLoader``: an in-memory mapping
- ``FunctionLoader``: a callable returning the source
- ``ChoiceLoader``: several loaders tried in order

None of them keep mutable state after construction, so ``get_source`` may be
called from several threads at once.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from difflib import get_close_matches
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

from stencil.environment.exceptions import TemplateNotFoundError

LoadResult = str | tuple[str, str | None] | None


@runtime_checkable
class Loader(Protocol):
    """Resolves a template name to ``(source, filename or None)``.

    Must raise ``TemplateNotFoundError`` for unknown names.
    """

    def get_source(self, name: str) -> tuple[str, str | None]: ...


def _not_found(name: str, known: Iterable[str]) -> TemplateNotFoundError:
    """Build a miss error that points at the closest known name."""
    names = sorted(known)
    message = f"Template '{name}' not found"
    closest = get_close_matches(name, names, n=1, cutoff=0.6)
    if closest:
        message = f"{message}. Did you mean '{closest[0]}'?"
    elif names:
        shown = ", ".join(names[:10])
        message = f"{message}. Available: {shown}"
    return TemplateNotFoundError(message)


def _template_parts(name: str) -> tuple[str, ...]:
    """Split a template name into path segments, refusing to leave the root."""
    parts = PurePosixPath(name.replace("\\", "/")).parts
    if not parts or parts[0] == "/" or ".." in parts:
        raise TemplateNotFoundError(f"Template '{name}' is outside the search path")
    return tuple(part for part in parts if part != ".")


class FileSystemLoader:
    """Read templates from directories on disk.

    The directories are searched in the order given:

        >>> loader = FileSystemLoader(["themes/custom", "themes/default"])
        >>> loader.get_source("pages/about.html")[1]
        'themes/custom/pages/about.html'

    Names are ``/``-separated and relative; ``..`` segments are rejected.
    """

    __slots__ = ("_encoding", "_search_path")

    def __init__(self, searchpath: str | Path | Iterable[str | Path], encoding: str = "utf-8"):
        if isinstance(searchpath, (str, Path)):
            searchpath = (searchpath,)
        self._search_path = tuple(Path(entry) for entry in searchpath)
        self._encoding = encoding

    @property
    def paths(self) -> list[Path]:
        return list(self._search_path)

    def get_source(self, name: str) -> tuple[str, str]:
        parts = _template_parts(name)
        for root in self._search_path:
            candidate = root.joinpath(*parts)
            if candidate.is_file():
                return candidate.read_text(encoding=self._encoding), str(candidate)
        searched = ", ".join(map(str, self._search_path))
        raise TemplateNotFoundError(f"Template '{name}' not found in: {searched}")

    def list_templates(self) -> list[str]:
        """Sorted names of all non-hidden files under the search path."""
        names = {
            candidate.relative_to(root).as_posix()
            for root in self._search_path
            if root.is_dir()
            for candidate in root.rglob("*")
            if candidate.is_file() and not candidate.name.startswith(".")
        }
        return sorted(names)


class DictLoader:
    """Serve templates from a mapping of name to source.

    Example:
        >>> env = Environment(loader=DictLoader({
        ...     "base": "Hello {% block name %}Josh{% endblock %}!",
        ...     "page": '{% extends "base" %}{% block name %}Florian{% endblock %}',
        ... }))
        >>> env.get_template("page").render()
        'Hello Florian!'
    """

    __slots__ = ("_templates",)

    def __init__(self, templates: Mapping[str, str]):
        self._templates = templates

    def get_source(self, name: str) -> tuple[str, None]:
        if name not in self._templates:
            raise _not_found(name, self._templates)
        return self._templates[name], None

    def list_templates(self) -> list[str]:
        return sorted(self._templates)


class FunctionLoader:
    """Adapt a plain callable into a loader.

    The callable gets the template name and returns the source, a
    ``(source, filename)`` pair, or ``None`` for an unknown name:

        >>> def from_db(name):
        ...     row = db.lookup(name)
        ...     return None if row is None else (row.body, f"db:{name}")
        >>> env = Environment(loader=FunctionLoader(from_db))
    """

    __slots__ = ("_load",)

    def __init__(self, load: Callable[[str], LoadResult]):
        self._load = load

    def get_source(self, name: str) -> tuple[str, str | None]:
        found = self._load(name)
        if found is None:
            raise TemplateNotFoundError(f"Template '{name}' not found")
        return (found, None) if isinstance(found, str) else found

    def list_templates(self) -> list[str]:
        # A callable has no way to enumerate what it can load.
        return []


class ChoiceLoader:
    """Ask several loaders in turn; the first that knows the name wins.

    Put overrides first:

        >>> loader = ChoiceLoader([FileSystemLoader("site"), DictLoader(BUILTIN)])
    """

    __slots__ = ("_choices",)

    def __init__(self, loaders: Iterable[Loader]):
        self._choices = tuple(loaders)

    def get_source(self, name: str) -> tuple[str, str | None]:
        for choice in self._choices:
            try:
                return choice.get_source(name)
            except TemplateNotFoundError:
                pass
        raise TemplateNotFoundError(
            f"Template '{name}' not found in any of {len(self._choices)} loaders"
        )

    def list_templates(self) -> list[str]:
        """Union of the names every listable loader reports."""
        names: set[str] = set()
        for choice in self._choices:
            if hasattr(choice, "list_templates"):
                names.update(choice.list_templates())
        return sorted(names)
