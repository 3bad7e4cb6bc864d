"""Built-in filters.

A filter is a callable ``(value, args, chain) -> value``:

- ``value``: the current value of the expression
- ``args``: the filter's arguments, already resolved against the context
- ``chain``: the :class:`FilterChainContext` shared by one filter chain

Filters report failure by raising; the evaluator wraps the exception as a
``TemplateEvaluationError`` naming the filter. A registry value of ``None``
is a marker filter: it is never called, only recorded in the chain.

Custom filters:
    >>> @env.filter()
    ... def add(value, args, chain):
    ...     return value + args[0]
    >>> env.from_string("{{ 1|add:2 }}").render()
    '3'
"""

from __future__ import annotations

import html
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from stencil.values import ValueKind, is_zero, kind_of, stringify

FilterFunc = Callable[[Any, list[Any], "FilterChainContext"], Any]

_ALL_TAGS_RE = re.compile(r"<[^>]*?>")


@dataclass(slots=True)
class FilterChainContext:
    """State shared by the filters of one expression evaluation.

    Attributes:
        store: Free-form storage filters can use to talk to each other
        applied: Names of the filters applied so far, in order
    """

    store: dict[str, Any] = field(default_factory=dict)
    applied: list[str] = field(default_factory=list)

    def has_visited(self, *names: str) -> bool:
        return any(name in self.applied for name in names)

    def visit(self, name: str) -> None:
        self.applied.append(name)


def _require_string(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{stringify(value)} ({type(value).__name__}) is not of type string")
    return value


def _filter_safe(value: Any, args: list[Any], chain: FilterChainContext) -> Any:
    """Escape ``&``, ``<`` and ``>`` unless ``safe`` or ``unsafe`` already ran."""
    if chain.has_visited("unsafe", "safe"):
        return value
    if not isinstance(value, str):
        return value
    return html.escape(value, quote=False)


def _filter_lower(value: Any, args: list[Any], chain: FilterChainContext) -> str:
    return _require_string(value).lower()


def _filter_upper(value: Any, args: list[Any], chain: FilterChainContext) -> str:
    return _require_string(value).upper()


def _filter_capitalize(value: Any, args: list[Any], chain: FilterChainContext) -> str:
    """Upper-case the first letter of every word."""
    return re.sub(r"\S+", lambda m: m.group(0)[:1].upper() + m.group(0)[1:], _require_string(value))


def _filter_trim(value: Any, args: list[Any], chain: FilterChainContext) -> str:
    return _require_string(value).strip()


def _filter_default(value: Any, args: list[Any], chain: FilterChainContext) -> Any:
    if len(args) != 1:
        raise ValueError("Default filter takes only one argument")
    if is_zero(value):
        return args[0]
    return value


def _filter_length(value: Any, args: list[Any], chain: FilterChainContext) -> int:
    if kind_of(value) not in (ValueKind.SEQUENCE, ValueKind.STRING, ValueKind.MAPPING):
        raise TypeError(
            f"Cannot determine length from type {type(value).__name__} ('{stringify(value)}')."
        )
    return len(value)


def _filter_join(value: Any, args: list[Any], chain: FilterChainContext) -> str:
    if len(args) != 1:
        raise ValueError("Please provide a separator")
    sep = args[0]
    if not isinstance(sep, str):
        raise TypeError(f"Separator must be of type string, not {type(sep).__name__}")
    if kind_of(value) is not ValueKind.SEQUENCE:
        raise TypeError(
            f"Cannot join variable of type {type(value).__name__} ('{stringify(value)}')."
        )
    return sep.join(stringify(item) for item in value)


def _filter_striptags(value: Any, args: list[Any], chain: FilterChainContext) -> str:
    """Remove HTML tags: all of them, or only a comma-separated list."""
    text = _require_string(value)
    if len(args) > 1:
        raise ValueError(
            "Please provide a comma-separated string with tags "
            "(or no string to remove all tags)."
        )
    if args:
        taglist = args[0]
        if not isinstance(taglist, str):
            raise TypeError(f"Taglist must be a string, not {type(taglist).__name__}")
        for tag in taglist.split(","):
            text = re.sub(rf"</?{re.escape(tag.strip())}/?>", "", text)
    else:
        text = _ALL_TAGS_RE.sub("", text)
    return text.strip()


def _filter_time_format(value: Any, args: list[Any], chain: FilterChainContext) -> str:
    """Format a date/time with ``strftime``: ``{{ created|time_format:"%d.%m.%Y" }}``."""
    strftime = getattr(value, "strftime", None)
    if strftime is None:
        raise TypeError(f"{stringify(value)} ({type(value).__name__}) is not a date or time")
    if len(args) != 1 or not isinstance(args[0], str):
        raise ValueError("time_format requires a format string")
    return strftime(args[0])


def _filter_floatformat(value: Any, args: list[Any], chain: FilterChainContext) -> str:
    """Round a float, following Django's ``floatformat``.

    Without an argument, round to one decimal and drop a ``.0``. An integer
    argument rounds to that many decimals. A string argument that parses
    to ``n <= 0`` rounds to ``|n|`` decimals, dropping them when the value
    is integral; ``n > 0`` behaves like the integer form.

        {{ 34.23234|floatformat }}       34.2
        {{ 34.00000|floatformat }}       34
        {{ 34.26000|floatformat:3 }}     34.260
        {{ 39.56000|floatformat:"0" }}   40
        {{ 34.00000|floatformat:"-3" }}  34
    """
    if not isinstance(value, float):
        raise TypeError("Illegal type for floatformat (only floats are acceptable)")
    decimals, trim = 1, True
    if len(args) > 1:
        raise ValueError("Floatformat filter takes at most one argument")
    if args:
        arg = args[0]
        if isinstance(arg, bool):
            raise TypeError(f"{stringify(arg)} (bool) is not of type int or string")
        if isinstance(arg, int):
            decimals, trim = arg, False
        elif isinstance(arg, str):
            try:
                decimals = int(arg)
            except ValueError:
                raise ValueError(f"Illegal floatformat argument: {arg}") from None
            if decimals <= 0:
                decimals = -decimals
            else:
                trim = False
        else:
            raise TypeError(f"{stringify(arg)} ({type(arg).__name__}) is not of type int or string")
    if trim and value.is_integer():
        return str(int(value))
    return f"{value:.{max(decimals, 0)}f}"


DEFAULT_FILTERS: dict[str, FilterFunc | None] = {
    "safe": _filter_safe,
    "unsafe": None,
    "lower": _filter_lower,
    "upper": _filter_upper,
    "capitalize": _filter_capitalize,
    "default": _filter_default,
    "trim": _filter_trim,
    "length": _filter_length,
    "join": _filter_join,
    "striptags": _filter_striptags,
    "time_format": _filter_time_format,
    "floatformat": _filter_floatformat,
}
