"""Runtime value model.

Templates render arbitrary host objects. Rather than special-casing types
all over the resolver, every value is classified once into a
:class:`ValueKind` and the rest of the engine dispatches on that kind.

Kinds map onto the standard capability ABCs:

- ``SEQUENCE``: indexable (``collections.abc.Sequence``, strings excluded)
- ``MAPPING``: key lookup (``collections.abc.Mapping``)
- ``RECORD``: field/method bearing (plain attribute access)
- ``METHOD``: callable (:class:`BoundMethod`, functions, builtins)

Every kind has a zero value used for truthiness, negation and the
``default`` filter.
"""

from __future__ import annotations

import functools
import inspect
import numbers
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ValueKind(Enum):
    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    RECORD = "record"
    METHOD = "method"


_SCALAR_ZEROS: dict[ValueKind, Any] = {
    ValueKind.BOOL: False,
    ValueKind.INT: 0,
    ValueKind.FLOAT: 0.0,
    ValueKind.STRING: "",
}


@dataclass(frozen=True, slots=True)
class BoundMethod:
    """A callable reference plus what is needed to check a call's arity.

    Attributes:
        func: The callable (already bound to ``receiver`` for methods)
        name: Name used in error messages
        receiver: Object the method was looked up on, if any
        arity: Number of required positional parameters, or None when the
            signature cannot be inspected
        variadic: True if the callable takes ``*args``
    """

    func: Callable[..., Any]
    name: str
    receiver: Any = None
    arity: int | None = 0
    variadic: bool = False

    @classmethod
    def wrap(cls, func: Callable[..., Any], name: str, receiver: Any = None) -> BoundMethod:
        arity, variadic = _signature_arity(func)
        return cls(func=func, name=name, receiver=receiver, arity=arity, variadic=variadic)

    def accepts(self, count: int) -> bool:
        """True if the callable can be invoked with ``count`` positional args."""
        if self.arity is None:
            return True
        if self.variadic:
            return count >= self.arity
        return count == self.arity

    def __call__(self, *args: Any) -> Any:
        return self.func(*args)


@dataclass(frozen=True, slots=True)
class MapItem:
    """Key/value pair bound to the loop variable when iterating a mapping.

    Field names are the template-facing spelling (``{{ item.Key }}``).
    """

    Key: Any
    Value: Any


def _signature_arity(func: Callable[..., Any]) -> tuple[int | None, bool]:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return None, False
    required = 0
    variadic = False
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            variadic = True
        elif (
            param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
            and param.default is inspect.Parameter.empty
        ):
            required += 1
    return required, variadic


def is_routine(value: Any) -> bool:
    return isinstance(value, (BoundMethod, functools.partial)) or inspect.isroutine(value)


def kind_of(value: Any) -> ValueKind:
    """Classify a host value. ``bool`` is checked before ``int``."""
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, numbers.Integral):
        return ValueKind.INT
    if isinstance(value, numbers.Real):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return ValueKind.SEQUENCE
    if is_routine(value):
        return ValueKind.METHOD
    return ValueKind.RECORD


def is_zero(value: Any) -> bool:
    """True if ``value`` equals the zero value of its kind."""
    kind = kind_of(value)
    if kind is ValueKind.NULL:
        return True
    if kind in (ValueKind.SEQUENCE, ValueKind.MAPPING):
        return len(value) == 0
    if kind in (ValueKind.RECORD, ValueKind.METHOD):
        return False
    return value == _SCALAR_ZEROS[kind]


def is_truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return not is_zero(value)


def negate(value: Any) -> bool:
    """Apply ``!`` to an evaluated expression.

    Booleans are complemented. Any other value negates to "equals its
    kind's zero value", so ``!""`` is true and ``!"abc"`` is false.
    """
    if isinstance(value, bool):
        return not value
    return is_zero(value)


def is_number(value: Any) -> bool:
    return kind_of(value) in (ValueKind.INT, ValueKind.FLOAT)


def format_float(value: float) -> str:
    """Render a float the short way: ``34.0`` becomes ``34``."""
    if value != value or value in (float("inf"), float("-inf")):
        return repr(value)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def stringify(value: Any) -> str:
    """Convert an evaluated value into output text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format_float(value)
    return str(value)
