"""Comparison operators shared by the routing and filtering nodes."""

import operator as _op
from typing import Any, Callable, Dict


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    # values without a common ordering never satisfy an ordering comparison
    def check(left: Any, right: Any) -> bool:
        try:
            return bool(compare(left, right))
        except TypeError:
            return False
    return check


def _contains(value: Any, comparison: Any) -> bool:
    if isinstance(value, str):
        return str(comparison) in value
    if isinstance(value, (list, tuple)):
        return comparison in value
    if isinstance(value, dict):
        try:
            return comparison in value
        except TypeError:
            return False
    return False


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "equals": _op.eq,
    "not_equals": _op.ne,
    "greater_than": _ordered(_op.gt),
    "less_than": _ordered(_op.lt),
    "greater_than_or_equal": _ordered(_op.ge),
    "less_than_or_equal": _ordered(_op.le),
    "contains": _contains,
}


def evaluate(value: Any, operator: str, comparison: Any) -> bool:
    """Apply ``operator`` to ``value`` and ``comparison``.

    Raises:
        ValueError: If the operator is unknown
    """
    try:
        check = OPERATORS[operator]
    except KeyError:
        raise ValueError(f"Unknown operator: {operator}")
    return check(value, comparison)
