"""
sable - a small dynamically typed scripting language.

This package provides:
- Lexer: Tokenizes source text
- Parser: Builds the AST from tokens
- Interpreter: Walks the AST directly against a chain of lexical scopes
- Repl: Interactive loop over a persistent scope

Usage:
    from sable import run_source, parse_source, Interpreter, Scope

    result = run_source('let x = 6 * 7')
    print(result.value.data)   # 42

    # Or keep state between runs
    scope = Scope(name="global")
    interpreter = Interpreter()
    interpreter.execute(parse_source('let greeting = "hi"'), scope)
    interpreter.execute(parse_source('print(greeting * 3)'), scope)
"""

import logging
from importlib.metadata import PackageNotFoundError, version

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
    parse_source,
)

from .ast import (
    AstNode,
    AstVisitor,
    Block,
    format_ast,
    print_ast,
)

from .errors import (
    ErrorSeverity,
    Diagnostic,
    SableError,
    LexerError,
    ParserError,
    ExecutionError,
)

from .config import (
    SableConfig,
    ConfigError,
    load_config,
)

from .runtime import (
    Value,
    ValueKind,
    Scope,
    Interpreter,
    ExecutionResult,
    execute,
    run_source,
    get_builtin_registry,
)

from .repl import Repl

logging.getLogger(__name__).addHandler(logging.NullHandler())

try:
    __version__ = version("sable")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"

__all__ = [
    # Tokens
    "Token",
    "TokenType",
    "SourceLocation",
    "SourceSpan",
    "KEYWORDS",
    # Lexer / Parser
    "Lexer",
    "tokenize",
    "Parser",
    "parse",
    "parse_source",
    # AST
    "AstNode",
    "AstVisitor",
    "Block",
    "format_ast",
    "print_ast",
    # Errors
    "ErrorSeverity",
    "Diagnostic",
    "SableError",
    "LexerError",
    "ParserError",
    "ExecutionError",
    # Configuration
    "SableConfig",
    "ConfigError",
    "load_config",
    # Runtime
    "Value",
    "ValueKind",
    "Scope",
    "Interpreter",
    "ExecutionResult",
    "execute",
    "run_source",
    "get_builtin_registry",
    "Repl",
]
