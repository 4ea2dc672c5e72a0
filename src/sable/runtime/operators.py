"""
Operator and coercion rules over runtime values.

Each operator dispatches on the kinds of its operands:

- integer op integer gives an integer, checked against the signed 64-bit range
- integer op float (either order) promotes the integer and gives a float
- ``string + string`` concatenates, ``string * integer`` repeats
- ``==`` is total, mismatched kinds are simply unequal
- ordering is defined for numbers and for strings only
- ``and``/``or``/``not`` accept booleans only

Any other combination raises ``ExecutionError`` at the operator's span.
"""

import math
from typing import Callable, Dict, Optional

from ..errors import (
    error_invalid_operands,
    error_invalid_operand,
    error_type_mismatch,
    error_integer_overflow,
    error_division_by_zero,
    error_index_out_of_bounds,
    error_invalid_slice,
    error_not_iterable,
)
from ..tokens import SourceSpan, TokenType
from .values import (
    Value, ValueKind, SequenceIterator,
    int_val, float_val, bool_val, string_val, range_val, is_number,
)

INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1

BinaryOperator = Callable[[Value, Value, SourceSpan], Value]


def _checked_int(result: int, operator: str, span: SourceSpan) -> Value:
    if not INT64_MIN <= result <= INT64_MAX:
        raise error_integer_overflow(operator, span)
    return int_val(result)


def _both_integers(left: Value, right: Value) -> bool:
    return left.kind == ValueKind.INTEGER and right.kind == ValueKind.INTEGER


def _invalid(operator: str, left: Value, right: Value, span: SourceSpan):
    return error_invalid_operands(operator, left.type_name, right.type_name, span)


# =============================================================================
# Arithmetic
# =============================================================================

def add(left: Value, right: Value, span: SourceSpan) -> Value:
    if _both_integers(left, right):
        return _checked_int(left.data + right.data, "+", span)
    if is_number(left) and is_number(right):
        return float_val(float(left.data) + float(right.data))
    if left.kind == ValueKind.STRING and right.kind == ValueKind.STRING:
        return string_val(left.data + right.data)
    raise _invalid("+", left, right, span)


def subtract(left: Value, right: Value, span: SourceSpan) -> Value:
    if _both_integers(left, right):
        return _checked_int(left.data - right.data, "-", span)
    if is_number(left) and is_number(right):
        return float_val(float(left.data) - float(right.data))
    raise _invalid("-", left, right, span)


def multiply(left: Value, right: Value, span: SourceSpan) -> Value:
    if _both_integers(left, right):
        return _checked_int(left.data * right.data, "*", span)
    if is_number(left) and is_number(right):
        return float_val(float(left.data) * float(right.data))
    if left.kind == ValueKind.STRING and right.kind == ValueKind.INTEGER:
        if right.data < 0:
            raise error_type_mismatch("string repetition count", "a non-negative integer",
                                      str(right.data), span)
        return string_val(left.data * right.data)
    raise _invalid("*", left, right, span)


def _truncating_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _float_div(a: float, b: float) -> float:
    """IEEE division: a zero divisor gives a signed infinity or nan."""
    if b != 0.0:
        return a / b
    if a == 0.0 or math.isnan(a):
        return math.nan
    return math.copysign(1.0, a) * math.copysign(1.0, b) * math.inf


def divide(left: Value, right: Value, span: SourceSpan) -> Value:
    if _both_integers(left, right):
        if right.data == 0:
            raise error_division_by_zero(span)
        return _checked_int(_truncating_div(left.data, right.data), "/", span)
    if is_number(left) and is_number(right):
        return float_val(_float_div(float(left.data), float(right.data)))
    raise _invalid("/", left, right, span)


def negate(operand: Value, span: SourceSpan) -> Value:
    if operand.kind == ValueKind.INTEGER:
        return _checked_int(-operand.data, "-", span)
    if operand.kind == ValueKind.FLOAT:
        return float_val(-operand.data)
    raise error_invalid_operand("-", operand.type_name, span)


# =============================================================================
# Comparison
# =============================================================================

def _equal(left: Value, right: Value) -> bool:
    if _both_integers(left, right):
        return left.data == right.data
    if is_number(left) and is_number(right):
        return float(left.data) == float(right.data)
    if left.kind == right.kind and left.kind in (ValueKind.STRING, ValueKind.BOOLEAN):
        return left.data == right.data
    return False


def equals(left: Value, right: Value, span: SourceSpan) -> Value:
    return bool_val(_equal(left, right))


def not_equals(left: Value, right: Value, span: SourceSpan) -> Value:
    return bool_val(not _equal(left, right))


def _ordered_operands(operator: str, left: Value, right: Value, span: SourceSpan):
    if _both_integers(left, right):
        return left.data, right.data
    if is_number(left) and is_number(right):
        return float(left.data), float(right.data)
    if left.kind == ValueKind.STRING and right.kind == ValueKind.STRING:
        return left.data, right.data
    raise _invalid(operator, left, right, span)


def less_than(left: Value, right: Value, span: SourceSpan) -> Value:
    a, b = _ordered_operands("<", left, right, span)
    return bool_val(a < b)


def less_equals(left: Value, right: Value, span: SourceSpan) -> Value:
    a, b = _ordered_operands("<=", left, right, span)
    return bool_val(a <= b)


def greater_than(left: Value, right: Value, span: SourceSpan) -> Value:
    # Reported errors therefore name '<' with the operands swapped.
    return less_than(right, left, span)


def greater_equals(left: Value, right: Value, span: SourceSpan) -> Value:
    return less_equals(right, left, span)


# =============================================================================
# Logic
# =============================================================================

def _booleans(operator: str, left: Value, right: Value, span: SourceSpan) -> None:
    if left.kind != ValueKind.BOOLEAN or right.kind != ValueKind.BOOLEAN:
        raise _invalid(operator, left, right, span)


def logical_and(left: Value, right: Value, span: SourceSpan) -> Value:
    _booleans("and", left, right, span)
    return bool_val(left.data and right.data)


def logical_or(left: Value, right: Value, span: SourceSpan) -> Value:
    _booleans("or", left, right, span)
    return bool_val(left.data or right.data)


def logical_not(operand: Value, span: SourceSpan) -> Value:
    if operand.kind != ValueKind.BOOLEAN:
        raise error_invalid_operand("not", operand.type_name, span)
    return bool_val(not operand.data)


BINARY_OPERATORS: Dict[TokenType, BinaryOperator] = {
    TokenType.PLUS: add,
    TokenType.MINUS: subtract,
    TokenType.STAR: multiply,
    TokenType.SLASH: divide,
    TokenType.EQ: equals,
    TokenType.NE: not_equals,
    TokenType.LT: less_than,
    TokenType.LE: less_equals,
    TokenType.GT: greater_than,
    TokenType.GE: greater_equals,
    TokenType.AND: logical_and,
    TokenType.OR: logical_or,
}


# =============================================================================
# Strings, ranges and iteration
# =============================================================================

def index(target: Value, position: Value, span: SourceSpan) -> Value:
    """``text[i]``: a one-character string; no negative or clamped indexing."""
    if target.kind != ValueKind.STRING:
        raise error_type_mismatch("indexed value", "a string", target.type_name, span)
    if position.kind != ValueKind.INTEGER:
        raise error_type_mismatch("string index", "an integer", position.type_name, span)

    text, i = target.data, position.data
    if not 0 <= i < len(text):
        raise error_index_out_of_bounds(i, len(text), span)
    return string_val(text[i])


def _slice_bound(value: Optional[Value], default: int, label: str, span: SourceSpan) -> int:
    if value is None:
        return default
    if value.kind != ValueKind.INTEGER:
        raise error_type_mismatch(f"slice {label}", "an integer", value.type_name, span)
    return value.data


def slice_string(target: Value, start: Optional[Value], end: Optional[Value],
                 step: Optional[Value], span: SourceSpan) -> Value:
    """
    ``text[start:end:step]``.

    Walks ``i`` from ``start`` while ``i < end`` in increments of ``step``.
    Every visited index must lie inside the string. A zero step, or a
    negative step that would never reach ``end``, is an error.
    """
    if target.kind != ValueKind.STRING:
        raise error_type_mismatch("sliced value", "a string", target.type_name, span)

    text = target.data
    first = _slice_bound(start, 0, "start", span)
    stop = _slice_bound(end, len(text), "end", span)
    stride = _slice_bound(step, 1, "step", span)

    if stride == 0:
        raise error_invalid_slice("slice step cannot be 0", span)
    if first >= stop:
        return string_val("")
    if stride < 0:
        raise error_invalid_slice(
            f"slice step {stride} never reaches end {stop} from start {first}", span)

    last = first + ((stop - 1 - first) // stride) * stride
    if first < 0:
        raise error_index_out_of_bounds(first, len(text), span)
    if last >= len(text):
        size = len(text)
        bad = first if first >= size else first + -(-(size - first) // stride) * stride
        raise error_index_out_of_bounds(bad, size, span)
    return string_val(text[first:stop:stride])


def make_range(start: Value, end: Value, span: SourceSpan) -> Value:
    if not _both_integers(start, end):
        raise _invalid("..", start, end, span)
    return range_val(start.data, end.data)


def make_iterator(value: Value, span: SourceSpan) -> SequenceIterator:
    """Iterator over a string's characters, a range's integers, or an iterator itself."""
    if value.kind == ValueKind.STRING:
        return SequenceIterator.for_string(value.data)
    if value.kind == ValueKind.RANGE:
        return SequenceIterator.for_range(value.data)
    if value.kind == ValueKind.ITERATOR:
        return value.data
    raise error_not_iterable(value.type_name, span)
