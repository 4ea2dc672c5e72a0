"""
Runtime values for the sable interpreter.

Every runtime value is a ``Value`` carrying its ``ValueKind``. Values are
immutable and shared by reference: binding the same value in two places
never copies it. The only value with internal state is the iterator, whose
position advances for every holder at once.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, List, Optional, TYPE_CHECKING

from ..tokens import SourceSpan

if TYPE_CHECKING:
    from ..ast import Block
    from .scope import Scope


class ValueKind(Enum):
    """The closed set of runtime value kinds."""
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BOOLEAN = "boolean"
    RANGE = "range"
    ITERATOR = "iterator"
    FUNCTION = "function"
    BUILTIN = "built-in function"
    NOTHING = "nothing"


@dataclass(frozen=True, eq=False)
class Value:
    """
    A runtime value.

    ``data`` holds the Python payload for the kind:
    int, float, str, bool, ``range``, ``SequenceIterator``, ``Function``,
    the built-in's name, or None for Nothing.
    """
    data: Any
    kind: ValueKind

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.kind.name})"

    @property
    def type_name(self) -> str:
        return self.kind.value


@dataclass(eq=False)
class Function:
    """A user-defined function together with the scope it closes over."""
    name: Optional[str]
    parameters: List[str]
    body: "Block"
    scope: "Scope"
    span: SourceSpan

    @property
    def display_name(self) -> str:
        return self.name or "<lambda>"


class SequenceIterator:
    """
    Lazy, single-pass producer of values.

    Consuming an element advances the producer for every binding that holds
    the same iterator value.
    """

    def __init__(self, producer: Iterator[Value]):
        self._producer = producer

    @classmethod
    def for_string(cls, text: str) -> "SequenceIterator":
        return cls(string_val(ch) for ch in text)

    @classmethod
    def for_range(cls, bounds: range) -> "SequenceIterator":
        return cls(int_val(i) for i in bounds)

    def __iter__(self) -> "SequenceIterator":
        return self

    def __next__(self) -> Value:
        return next(self._producer)


# Convenience constructors

def int_val(n: int) -> Value:
    """Create an integer value."""
    return Value(int(n), ValueKind.INTEGER)


def float_val(x: float) -> Value:
    """Create a float value."""
    return Value(float(x), ValueKind.FLOAT)


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return TRUE if b else FALSE


def string_val(s: str) -> Value:
    """Create a string value."""
    return Value(str(s), ValueKind.STRING)


def range_val(start: int, end: int) -> Value:
    """Create a half-open range value ``[start, end)``."""
    return Value(range(start, end), ValueKind.RANGE)


def iterator_val(iterator: SequenceIterator) -> Value:
    return Value(iterator, ValueKind.ITERATOR)


def function_val(function: Function) -> Value:
    return Value(function, ValueKind.FUNCTION)


def builtin_val(name: str) -> Value:
    """Reference to a built-in function, resolved through the registry on call."""
    return Value(name, ValueKind.BUILTIN)


TRUE = Value(True, ValueKind.BOOLEAN)
FALSE = Value(False, ValueKind.BOOLEAN)
NOTHING = Value(None, ValueKind.NOTHING)


def is_number(value: Value) -> bool:
    return value.kind in (ValueKind.INTEGER, ValueKind.FLOAT)


# Text forms

def format_float(x: float) -> str:
    """Format a float the way ``print`` shows it: ``2.0`` prints as ``2``."""
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "inf" if x > 0 else "-inf"
    if x.is_integer():
        return str(int(x))
    return repr(x)


def render(value: Value) -> str:
    """Text used by ``print``: strings appear without quotes."""
    if value.kind == ValueKind.STRING:
        return value.data
    return represent(value)


def represent(value: Value) -> str:
    """Text used by the REPL to echo a result."""
    kind = value.kind
    if kind == ValueKind.INTEGER:
        return str(value.data)
    if kind == ValueKind.FLOAT:
        return format_float(value.data)
    if kind == ValueKind.STRING:
        return '"' + value.data.replace("\\", "\\\\").replace('"', '\\"') + '"'
    if kind == ValueKind.BOOLEAN:
        return "true" if value.data else "false"
    if kind == ValueKind.RANGE:
        return f"{value.data.start}..{value.data.stop}"
    if kind == ValueKind.ITERATOR:
        return "<iterator>"
    if kind == ValueKind.FUNCTION:
        function = value.data
        return f"<function {function.display_name}: {function.span.start}>"
    if kind == ValueKind.BUILTIN:
        return f"<built-in function {value.data}>"
    return "nothing"
