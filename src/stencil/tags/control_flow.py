"""``if`` and ``for`` tags.

Conditions accept a small operator set on top of plain expressions::

    {% if user.Age >= 18 && !user.Banned %}...{% endif %}

Precedence from lowest to highest is ``||``, ``&&``, then one comparison
(``==``, ``!=``, ``<>``, ``>=``, ``<=``, ``>``, ``<``). Operators inside
quoted strings are ignored. ``&&`` and ``||`` only combine booleans; any
other operand makes the whole test false (and logs a warning). Ordering
comparisons only apply to numbers.

Tag arguments are parsed each time the tag runs, not when the template is
compiled. An unknown filter in ``{% if x|nosuch %}`` therefore compiles
fine and raises a located ``TemplateSyntaxError`` the first time the
condition is evaluated; tags inside a skipped branch are never parsed.
"""

from __future__ import annotations

import logging
import operator
import re
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from stencil.environment.exceptions import TemplateRuntimeError
from stencil.tags.base import TagHandler
from stencil.template.loop_context import ForLoopContext
from stencil.values import MapItem, ValueKind, is_number, is_truthy, kind_of

if TYPE_CHECKING:
    from stencil.template.executor import Executor

logger = logging.getLogger(__name__)

_LOGICAL_OPERATORS = ("||", "&&")

_COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
}
_ORDERING = frozenset({">=", "<=", ">", "<"})

_FOR_IN_RE = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)\s+in\s+(.+)", re.DOTALL)
_LOOP_BINDINGS = ("forloop", "forcounter", "forcounter1")


def _split_operator(text: str, op: str) -> tuple[str, str] | None:
    """Split at the first ``op`` outside a quoted string."""
    in_string = False
    escaped = False
    for pos, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif text.startswith(op, pos):
            return text[:pos], text[pos + len(op) :]
    return None


def evaluate_condition(text: str, executor: Executor, ctx: dict[str, Any]) -> Any:
    """Evaluate an ``if`` condition; plain expressions return their value."""
    for op in _LOGICAL_OPERATORS:
        parts = _split_operator(text, op)
        if parts is None:
            continue
        left = evaluate_condition(parts[0], executor, ctx)
        right = evaluate_condition(parts[1], executor, ctx)
        if not isinstance(left, bool) or not isinstance(right, bool):
            logger.warning(
                "Operator '%s' needs boolean operands in '%s'; treating as false", op, text
            )
            return False
        return (left or right) if op == "||" else (left and right)

    for op, compare in _COMPARISONS.items():
        parts = _split_operator(text, op)
        if parts is None:
            continue
        left = executor.evaluate(parts[0], ctx)
        right = executor.evaluate(parts[1], ctx)
        if op in _ORDERING and not (is_number(left) and is_number(right)):
            logger.warning(
                "Operator '%s' needs numbers, got %s and %s; treating as false",
                op,
                type(left).__name__,
                type(right).__name__,
            )
            return False
        return compare(left, right)

    return executor.evaluate(text, ctx)


def _execute_if(args: str, executor: Executor, ctx: dict[str, Any]) -> str:
    if not args:
        raise TemplateRuntimeError("If-argument is empty.")
    if is_truthy(evaluate_condition(args, executor, ctx)):
        node, output = executor.execute_until(ctx, "else", "endif")
        if node.name == "else":
            executor.ignore_until("endif")
        return output
    node = executor.ignore_until("else", "endif")
    if node.name == "else":
        _, output = executor.execute_until(ctx, "endif")
        return output
    return ""


def _ignore_branches(end: str) -> Callable[[str, Executor], None]:
    def ignore(args: str, executor: Executor) -> None:
        node = executor.ignore_until("else", end)
        if node.name == "else":
            executor.ignore_until(end)

    return ignore


def _loop_items(value: Any, source: str) -> Sequence[Any]:
    kind = kind_of(value)
    if kind is ValueKind.MAPPING:
        return [MapItem(key, item) for key, item in value.items()]
    if kind in (ValueKind.SEQUENCE, ValueKind.STRING):
        return value
    raise TemplateRuntimeError(
        "For-loop 'in'-operator can only be used for sequences, strings and mappings "
        f"('{source}' is {type(value).__name__})."
    )


def _execute_for(args: str, executor: Executor, ctx: dict[str, Any]) -> str:
    if not args:
        raise TemplateRuntimeError("For-argument is empty.")

    match = _FOR_IN_RE.fullmatch(args)
    if match is not None:
        var, source = match.group(1), match.group(2).strip()
        items = _loop_items(executor.evaluate(source, ctx), source)
    else:
        var = None
        count = executor.evaluate(args, ctx)
        if kind_of(count) is not ValueKind.INT:
            raise TemplateRuntimeError(
                f"Cannot iterate over '{args}' (type {type(count).__name__}); "
                "use 'for <n>' with an integer or 'for <var> in <sequence>'."
            )
        items = range(max(count, 0))

    if len(items) == 0:
        node = executor.ignore_until("else", "endfor")
        if node.name == "else":
            _, output = executor.execute_until(ctx, "endfor")
            return output
        return ""
    return _run_loop(executor, ctx, var, items)


def _run_loop(
    executor: Executor,
    ctx: dict[str, Any],
    var: str | None,
    items: Sequence[Any],
) -> str:
    loop = ForLoopContext.for_length(len(items))

    # Nested loop: expose every active loop through ``forloops``.
    outer = ctx.get("forloop")
    stack: list[ForLoopContext] | None = None
    created_stack = False
    if isinstance(outer, ForLoopContext):
        stack = ctx.get("forloops")
        if not isinstance(stack, list):
            stack = [outer]
            ctx["forloops"] = stack
            created_stack = True
        stack.append(loop)

    names = (*_LOOP_BINDINGS, var) if var else _LOOP_BINDINGS
    saved = {name: ctx[name] for name in names if name in ctx}
    start = executor.cursor
    parts: list[str] = []
    try:
        for index, item in enumerate(items):
            if index:
                loop.advance()
            executor.cursor = start
            ctx["forloop"] = loop
            ctx["forcounter"] = loop.Counter
            ctx["forcounter1"] = loop.Counter1
            if var:
                ctx[var] = item
            node, output = executor.execute_until(ctx, "else", "endfor")
            parts.append(output)
            if node.name == "else":
                executor.ignore_until("endfor")
    finally:
        for name in names:
            if name in saved:
                ctx[name] = saved[name]
            else:
                ctx.pop(name, None)
        if stack is not None:
            stack.pop()
            if created_stack:
                ctx.pop("forloops", None)
    return "".join(parts)


IF = TagHandler(execute=_execute_if, ignore=_ignore_branches("endif"))
FOR = TagHandler(execute=_execute_for, ignore=_ignore_branches("endfor"))
