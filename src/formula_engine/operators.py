from typing import Callable

from formula_engine.types import (
    FormulaValue,
    ScalarValue,
    ValueKind,
    value_kind,
)

# Two-character operators first so that "<=" is not read as "<"
COMPARISON_OPERATORS = ("<=", ">=", "<>", "<", ">", "=")

COMPARISON_TYPE_PRIORITY: dict[ValueKind, int] = {
    ValueKind.BOOLEAN: 3,
    ValueKind.TEXT: 2,
    ValueKind.NUMBER: 1,
}


def _blank_like(value: ScalarValue, other: ScalarValue) -> ScalarValue:
    # A blank cell compares as the empty string against text, zero otherwise
    if value is not None:
        return value
    if isinstance(other, str):
        return ""
    if isinstance(other, bool):
        return False
    return 0


def eq_scalar(left: ScalarValue, right: ScalarValue) -> bool:
    left, right = _blank_like(left, right), _blank_like(right, left)

    # String comparisons are case-insensitive
    if isinstance(left, str) and isinstance(right, str):
        return left.lower() == right.lower()

    return value_kind(left) == value_kind(right) and left == right


def neq_scalar(left: ScalarValue, right: ScalarValue) -> bool:
    return not eq_scalar(left, right)


def lt_scalar(left: ScalarValue, right: ScalarValue) -> bool:
    left, right = _blank_like(left, right), _blank_like(right, left)

    # Optimization, early exit
    if value_kind(left) == ValueKind.NUMBER and value_kind(right) == ValueKind.NUMBER:
        return left < right

    # Priority order: booleans > text > numbers
    lpriority = COMPARISON_TYPE_PRIORITY[value_kind(left)]
    rpriority = COMPARISON_TYPE_PRIORITY[value_kind(right)]
    if lpriority != rpriority:
        return lpriority < rpriority

    if isinstance(left, str) and isinstance(right, str):
        return left.lower() < right.lower()

    return left < right


def gt_scalar(left: ScalarValue, right: ScalarValue) -> bool:
    return lt_scalar(right, left)  # flip the arguments


def lte_scalar(left: ScalarValue, right: ScalarValue) -> bool:
    return lt_scalar(left, right) or eq_scalar(left, right)


def gte_scalar(left: ScalarValue, right: ScalarValue) -> bool:
    return not lt_scalar(left, right)


COMPARISONS: dict[str, Callable[[ScalarValue, ScalarValue], bool]] = {
    "=": eq_scalar,
    "<>": neq_scalar,
    "<": lt_scalar,
    ">": gt_scalar,
    "<=": lte_scalar,
    ">=": gte_scalar,
}


def compare(operator: str, left: FormulaValue, right: FormulaValue) -> FormulaValue:
    """Apply a comparison operator, element-wise if either side is an array."""
    if isinstance(left, list):
        if isinstance(right, list):
            if len(left) != len(right):
                raise ValueError("Array dimensions do not match")
            return [compare(operator, l, r) for l, r in zip(left, right)]
        return [compare(operator, l, right) for l in left]
    if isinstance(right, list):
        return [compare(operator, left, r) for r in right]
    return COMPARISONS[operator](left, right)
