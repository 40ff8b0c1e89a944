"""Evaluated comparison predicates.

Built-ins such as ``LessThan(?T, 18)`` are not looked up in the fact base.
They are evaluated once every argument is bound. Numbers compare by value, so
``Equal(18, 18.0)`` holds. Ordering comparisons involving a string or
boolean are false; equality on them is structural.
"""

from __future__ import annotations

import operator
from typing import Callable, cast

from .terms import Constant, Literal

__all__ = [
    "BUILTINS",
    "is_builtin",
    "evaluate_builtin",
]

_ORDERING: dict[str, Callable[[object, object], bool]] = {
    "LessThan": operator.lt,
    "LessOrEqual": operator.le,
    "GreaterThan": operator.gt,
    "GreaterOrEqual": operator.ge,
}

_EQUALITY: dict[str, Callable[[object, object], bool]] = {
    "Equal": operator.eq,
    "NotEqual": operator.ne,
}

BUILTINS = frozenset(_ORDERING) | frozenset(_EQUALITY)


def is_builtin(literal: Literal) -> bool:
    return literal.predicate in BUILTINS and literal.arity == 2


def evaluate_builtin(literal: Literal) -> bool:
    """Evaluate a ground built-in literal.

    Raises:
        ValueError: If the literal is not a ground binary built-in
    """
    if not is_builtin(literal) or not literal.is_ground():
        raise ValueError(f"Cannot evaluate {literal}")

    left, right = cast("tuple[Constant, Constant]", literal.args)

    if left.is_number() and right.is_number():
        compare = _ORDERING.get(literal.predicate) or _EQUALITY[literal.predicate]
        return compare(left.value, right.value)

    if literal.predicate in _EQUALITY:
        return _EQUALITY[literal.predicate](left, right)
    return False
