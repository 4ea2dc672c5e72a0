"""
Runtime - tree-walking interpreter for sable programs.

This module provides:
- Interpreter: Executes a parsed program against a scope chain
- Value: Runtime values tagged with their ValueKind
- Scope: Lexical variable bindings shared by closures
- operators: Arithmetic, comparison and string rules over values
- BuiltinRegistry: Built-in function implementations
"""

from .values import (
    Value,
    ValueKind,
    Function,
    SequenceIterator,
    NOTHING,
    TRUE,
    FALSE,
    int_val,
    float_val,
    bool_val,
    string_val,
    range_val,
    iterator_val,
    function_val,
    builtin_val,
    render,
    represent,
)

from .scope import Scope

from .builtins import (
    BuiltinFunction,
    BuiltinRegistry,
    get_builtin_registry,
    call_builtin,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    Completion,
    Signal,
    execute,
    run_source,
)

__all__ = [
    # Values
    "Value",
    "ValueKind",
    "Function",
    "SequenceIterator",
    "NOTHING",
    "TRUE",
    "FALSE",
    "int_val",
    "float_val",
    "bool_val",
    "string_val",
    "range_val",
    "iterator_val",
    "function_val",
    "builtin_val",
    "render",
    "represent",
    # Scope
    "Scope",
    # Builtins
    "BuiltinFunction",
    "BuiltinRegistry",
    "get_builtin_registry",
    "call_builtin",
    # Interpreter
    "Interpreter",
    "ExecutionResult",
    "Completion",
    "Signal",
    "execute",
    "run_source",
]
