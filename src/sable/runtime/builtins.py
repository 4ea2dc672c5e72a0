"""
Built-in function registry for the interpreter.

Every built-in receives the call-site span and the already-evaluated
argument list, and returns a ``Value`` or raises ``ExecutionError``.
A bare reference to a built-in name evaluates to a built-in function
value; calling that value looks the implementation up here.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..errors import error_argument_count, error_type_mismatch
from ..tokens import SourceSpan
from .operators import make_iterator
from .values import (
    Value, ValueKind, NOTHING, int_val, string_val, iterator_val, render,
)

logger = logging.getLogger(__name__)

BuiltinImplementation = Callable[[SourceSpan, List[Value]], Value]

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1


@dataclass
class BuiltinFunction:
    """A built-in function with its implementation."""
    name: str
    implementation: BuiltinImplementation
    doc: str = ""


class BuiltinRegistry:
    """
    Registry of all built-in functions.

    Functions are registered by name and can be looked up for execution.
    """

    def __init__(self):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def is_builtin(self, name: str) -> bool:
        return name in self._functions

    def names(self) -> List[str]:
        return sorted(self._functions)

    def register(self, func: BuiltinFunction) -> None:
        """Register a function."""
        self._functions[func.name] = func

    def _register_all(self) -> None:
        self._register_io_functions()
        self._register_sequence_functions()
        self._register_process_functions()

    # --- Input / Output ---

    def _register_io_functions(self) -> None:

        def _print(span: SourceSpan, args: List[Value]) -> Value:
            print(" ".join(render(arg) for arg in args))
            return NOTHING

        def _input(span: SourceSpan, args: List[Value]) -> Value:
            if len(args) > 1:
                raise error_argument_count("input", "0 or 1", len(args), span)
            prompt = render(args[0]) if args else ""
            try:
                return string_val(input(prompt))
            except EOFError:
                return NOTHING

        self.register(BuiltinFunction(
            "print", _print,
            "Print the arguments separated by spaces, followed by a newline."))
        self.register(BuiltinFunction(
            "input", _input,
            "Read one line from standard input; nothing at end of input."))

    # --- Strings and iterators ---

    def _register_sequence_functions(self) -> None:

        def _len(span: SourceSpan, args: List[Value]) -> Value:
            if len(args) != 1:
                raise error_argument_count("len", "exactly 1", len(args), span)
            (arg,) = args
            if arg.kind != ValueKind.STRING:
                raise error_type_mismatch("len() argument", "a string", arg.type_name, span)
            return int_val(len(arg.data))

        def _iter(span: SourceSpan, args: List[Value]) -> Value:
            if len(args) != 1:
                raise error_argument_count("iter", "exactly 1", len(args), span)
            (arg,) = args
            if arg.kind == ValueKind.ITERATOR:
                return arg
            return iterator_val(make_iterator(arg, span))

        def _next(span: SourceSpan, args: List[Value]) -> Value:
            if len(args) != 1:
                raise error_argument_count("next", "exactly 1", len(args), span)
            (arg,) = args
            if arg.kind != ValueKind.ITERATOR:
                raise error_type_mismatch("next() argument", "an iterator", arg.type_name, span)
            return next(arg.data, NOTHING)

        self.register(BuiltinFunction(
            "len", _len, "Number of characters in a string."))
        self.register(BuiltinFunction(
            "iter", _iter, "Iterator over a string, a range or an iterator."))
        self.register(BuiltinFunction(
            "next", _next, "Next element of an iterator, or nothing when exhausted."))

    # --- Process control ---

    def _register_process_functions(self) -> None:

        def _exit(span: SourceSpan, args: List[Value]) -> Value:
            if len(args) > 1:
                raise error_argument_count("exit", "0 or 1", len(args), span)
            code = 0
            if args:
                if args[0].kind != ValueKind.INTEGER:
                    raise error_type_mismatch("exit() argument", "an integer",
                                              args[0].type_name, span)
                code = args[0].data
                if not INT32_MIN <= code <= INT32_MAX:
                    code = 1
            logger.debug("exit(%d) called at %s", code, span)
            raise SystemExit(code)

        self.register(BuiltinFunction(
            "exit", _exit, "Terminate the process with the given exit code (default 0)."))


_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global built-in function registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry


def call_builtin(name: str, span: SourceSpan, args: List[Value]) -> Value:
    """
    Call a built-in function by name.

    Raises KeyError if no built-in is registered under ``name``.
    """
    registry = get_builtin_registry()
    func = registry.get_function(name)
    if func is None:
        raise KeyError(f"Unknown built-in function: {name}")
    return func.implementation(span, args)
