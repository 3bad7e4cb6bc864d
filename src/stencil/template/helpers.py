"""Runtime resolution and evaluation of parsed expressions.

Resolution is forgiving: an unknown variable, a missing key or field, an
out-of-range index, a specifier of the wrong type or a call with the wrong
number of arguments all produce an empty string. Each such miss is logged
at DEBUG level so it can be traced without failing the render.

Thread-Safety:
All functions are stateless. Resolved call and filter arguments are built
into fresh lists on every evaluation; parsed expressions are never mutated.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from stencil.environment.exceptions import (
    ErrorCode,
    TemplateError,
    TemplateEvaluationError,
)
from stencil.environment.filters import FilterChainContext
from stencil.nodes import Argument, Expression, Identifier
from stencil.values import BoundMethod, ValueKind, kind_of, negate

logger = logging.getLogger(__name__)

_MISSING = object()


def _specifier(raw: str) -> int | str | None:
    """Convert a path segment into an index or a name; None if malformed."""
    if raw.isascii() and raw.isdigit():
        return int(raw)
    if raw[0].isdigit():
        return None
    return raw


def _lookup_context(name: str, ctx: Mapping[str, Any]) -> Any:
    return ctx.get(name, _MISSING)


def _find_method(record: Any, name: str) -> BoundMethod | None:
    if name.startswith("_"):
        return None
    attr = getattr(record, name, _MISSING)
    if attr is _MISSING or not callable(attr) or isinstance(attr, type):
        return None
    return BoundMethod.wrap(attr, name=name, receiver=record)


def _index(value: Any, specifier: int | str, ctx: Mapping[str, Any]) -> Any:
    if isinstance(specifier, str):
        specifier = _lookup_context(specifier, ctx)
        if isinstance(specifier, bool) or not isinstance(specifier, int):
            return _MISSING
    if 0 <= specifier < len(value):
        return value[specifier]
    return _MISSING


def _key(value: Mapping[Any, Any], raw: str, specifier: int | str, ctx: Mapping[str, Any]) -> Any:
    if raw in value:
        return value[raw]
    if isinstance(specifier, str):
        key = _lookup_context(specifier, ctx)
        if isinstance(key, str) and key in value:
            return value[key]
    return _MISSING


def _field(record: Any, specifier: int | str, ctx: Mapping[str, Any]) -> Any:
    if not isinstance(specifier, str):
        return _MISSING
    for name in (specifier, _lookup_context(specifier, ctx)):
        if isinstance(name, str) and name and not name.startswith("_"):
            found = getattr(record, name, _MISSING)
            if found is not _MISSING:
                return found
    return _MISSING


def call_method(method: BoundMethod, args: list[Any]) -> Any:
    """Invoke a resolved method and normalize its result.

    A tuple return is treated as multiple results: one item is unwrapped,
    none becomes an empty string, more than one is an error.
    """
    result = method(*args)
    if isinstance(result, tuple):
        if len(result) > 1:
            raise TemplateEvaluationError(
                f"Method '{method.name}' returns more than one value ({len(result)})",
                callable_name=method.name,
                code=ErrorCode.METHOD_ERROR,
            )
        return result[0] if result else ""
    return "" if result is None else result


def resolve(identifier: Identifier, ctx: Mapping[str, Any]) -> Any:
    """Resolve a dotted path against the context.

    Walks the path segment by segment:

    - Sequence/String: the segment is an integer index, or a variable
      holding one
    - Mapping: the segment is a key, or a variable holding the key
    - Record: a method of that name wins over a field; a method in the
      middle of a path is called with no arguments, a method at the end is
      returned uncalled
    - anything else: no further segments can apply

    Examples:
        >>> resolve(Identifier("name.1"), {"name": "Florian"})
        'l'
        >>> resolve(Identifier("missing.a.b"), {})
        ''
    """
    first, *rest = identifier.segments
    value = _lookup_context(first, ctx)
    if value is _MISSING:
        logger.debug("Variable '%s' not found in context", first)
        return ""

    last = len(rest) - 1
    for position, raw in enumerate(rest):
        specifier = _specifier(raw)
        if specifier is None:
            logger.debug("Specifier '%s' in '%s' is malformed", raw, identifier.path)
            return ""
        kind = kind_of(value)

        if kind is ValueKind.RECORD and isinstance(specifier, str):
            method = _find_method(value, specifier)
            if method is not None:
                if position == last:
                    return method
                if not method.accepts(0):
                    logger.debug(
                        "Method '%s' in '%s' needs arguments", specifier, identifier.path
                    )
                    return ""
                value = call_method(method, [])
                continue

        if kind in (ValueKind.SEQUENCE, ValueKind.STRING):
            value = _index(value, specifier, ctx)
        elif kind is ValueKind.MAPPING:
            value = _key(value, raw, specifier, ctx)
        elif kind is ValueKind.RECORD:
            value = _field(value, specifier, ctx)
        else:
            value = _MISSING

        if value is _MISSING:
            logger.debug("Cannot resolve '%s' in '%s'", raw, identifier.path)
            return ""

    if kind_of(value) is ValueKind.METHOD and not isinstance(value, BoundMethod):
        return BoundMethod.wrap(value, name=identifier.path)
    return value


def resolve_argument(arg: Argument, ctx: Mapping[str, Any]) -> Any:
    if isinstance(arg, Identifier):
        return resolve(arg, ctx)
    return arg


def evaluate(expr: Expression, ctx: Mapping[str, Any]) -> Any:
    """Evaluate a parsed expression against the context.

    Order: resolve the root, call it when it is a method, run the filter
    chain left to right, then apply ``!``.
    """
    value = resolve_argument(expr.root, ctx)

    if isinstance(value, BoundMethod):
        if value.accepts(len(expr.root_args)):
            value = call_method(value, [resolve_argument(a, ctx) for a in expr.root_args])
        else:
            logger.debug(
                "Method '%s' called with %d argument(s), expects %s",
                value.name,
                len(expr.root_args),
                value.arity,
            )
            value = ""

    chain = FilterChainContext()
    for call in expr.filters:
        if call.func is not None:
            args = [resolve_argument(a, ctx) for a in call.args]
            try:
                value = call.func(value, args, chain)
            except TemplateError:
                raise
            except Exception as e:
                raise TemplateEvaluationError(
                    f"Filter '{call.name}' failed: {e}",
                    callable_name=call.name,
                ) from e
        chain.visit(call.name)

    if expr.negate:
        return negate(value)
    return value
