"""Filter and tag registries for the Stencil environment.

Each Environment owns its registries and hands them to the lexer and the
expression parser at compile time. Nothing is shared between environments.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stencil.environment.core import Environment


class Registry(MutableMapping[str, Any]):
    """Mutable mapping view of one Environment registry.

        >>> env.filters["shout"] = lambda value, args, chain: value.upper() + "!"
        >>> env.tags.update({"endshout": None})
        >>> "shout" in env.filters
        True

    ``None`` values are allowed. In the filter registry they name a marker
    filter that is recorded in the chain but never called; in the tag
    registry they name a terminator such as ``endif``.

    Every write swaps in a new dict on the Environment instead of mutating
    the current one, so a template compiled earlier keeps the callables it
    resolved.
    """

    __slots__ = ("_env", "_slot")

    def __init__(self, env: Environment, slot: str):
        self._env = env
        self._slot = slot

    @property
    def _current(self) -> dict[str, Any]:
        return getattr(self._env, self._slot)

    def _publish(self, entries: dict[str, Any]) -> None:
        setattr(self._env, self._slot, entries)

    def __getitem__(self, name: str) -> Any:
        return self._current[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._publish({**self._current, name: value})

    def __delitem__(self, name: str) -> None:
        current = self._current
        if name not in current:
            raise KeyError(name)
        self._publish({key: value for key, value in current.items() if key != name})

    def __iter__(self) -> Iterator[str]:
        return iter(self._current)

    def __len__(self) -> int:
        return len(self._current)

    def update(self, other: Mapping[str, Any] | Iterable[tuple[str, Any]] = (), /, **kwargs: Any) -> None:
        """Apply all changes in a single swap."""
        self._publish({**self._current, **dict(other), **kwargs})

    def copy(self) -> dict[str, Any]:
        return dict(self._current)

    def __repr__(self) -> str:
        return f"<Registry {self._slot.lstrip('_')}: {len(self)} entries>"
