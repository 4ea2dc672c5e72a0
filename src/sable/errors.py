"""
Exceptions and diagnostics shared by the lexer, parser and interpreter.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, E401, ...
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: SourceSpan
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = [f"{self.span.start}: {self.severity.value}[{self.code}]: {self.message}"]

        if show_source and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            if self.span.start.line == self.span.end.line:
                end_col = self.span.end.column
            else:
                end_col = len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            },
            "hints": self.hints,
        }


class SableError(Exception):
    """Base exception for every error reported against user source."""

    label = "Error"

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def span(self) -> SourceSpan:
        return self.diagnostic.span

    def attach_source(self, source_lines: List[str]) -> None:
        """Fill in the offending source line if it is not known yet."""
        if self.diagnostic.source_line is not None:
            return
        index = self.diagnostic.span.start.line - 1
        if 0 <= index < len(source_lines):
            self.diagnostic.source_line = source_lines[index]

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(SableError):
    """Error during lexical analysis (E0xx)."""
    label = "SyntaxError"


class ParserError(SableError):
    """Error during parsing (E1xx)."""
    label = "SyntaxError"


class ExecutionError(SableError):
    """Error raised while evaluating a program (E4xx)."""
    label = "RuntimeError"


def _diagnostic(code: str, message: str, span: SourceSpan,
                source_line: str = None, hints: List[str] = None) -> Diagnostic:
    return Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=hints or [],
    )


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    return LexerError(_diagnostic("E001", f"unexpected character '{char}'", span, source_line))


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    return LexerError(_diagnostic(
        "E002", "unterminated string literal", span, source_line,
        hints=["string literals must be closed with matching quotes on the same line"],
    ))


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E003: Invalid escape sequence in string."""
    return LexerError(_diagnostic(
        "E003", f"invalid escape sequence '\\{seq}'", span, source_line,
        hints=["valid escape sequences: \\n, \\t, \\r, \\\", \\', \\\\, \\0, \\x##, \\u####"],
    ))


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Unterminated block comment."""
    return LexerError(_diagnostic(
        "E004", "unterminated block comment (expected closing */)", span, source_line,
    ))


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None,
                                 reason: str = None) -> LexerError:
    """E005: Invalid number literal."""
    message = f"invalid number literal '{text}'"
    if reason:
        message = f"{message}: {reason}"
    return LexerError(_diagnostic("E005", message, span, source_line))


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    return ParserError(_diagnostic("E101", f"expected {expected}, found {found}", span, source_line))


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of input."""
    return ParserError(_diagnostic("E102", f"unexpected end of input, expected {expected}", span))


def error_nesting_too_deep(span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Expressions or blocks nested beyond what the parser can follow."""
    return ParserError(_diagnostic(
        "E103", "expression nested too deeply", span, source_line,
        hints=["split the expression into smaller parts with intermediate variables"],
    ))


def error_invalid_assignment_target(span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: Left side of an assignment is not a variable."""
    return ParserError(_diagnostic(
        "E104", "invalid assignment target", span, source_line,
        hints=["only plain variable names can be assigned to"],
    ))


# --- Runtime error codes ---

def error_invalid_operands(operator: str, left: str, right: str, span: SourceSpan) -> ExecutionError:
    """E401: Operator applied to an unsupported pair of kinds."""
    return ExecutionError(_diagnostic(
        "E401", f"unsupported operand types for '{operator}': {left} and {right}", span,
    ))


def error_invalid_operand(operator: str, kind: str, span: SourceSpan) -> ExecutionError:
    """E401: Unary operator applied to an unsupported kind."""
    return ExecutionError(_diagnostic(
        "E401", f"unsupported operand type for '{operator}': {kind}", span,
    ))


def error_type_mismatch(context: str, expected: str, found: str, span: SourceSpan) -> ExecutionError:
    """E401: A construct received a value of the wrong kind."""
    return ExecutionError(_diagnostic(
        "E401", f"{context} must be {expected}, found {found}", span,
    ))


def error_undefined_variable(name: str, span: SourceSpan) -> ExecutionError:
    """E402: Unknown variable."""
    return ExecutionError(_diagnostic("E402", f"variable '{name}' is not defined", span))


def error_assign_undeclared(name: str, span: SourceSpan) -> ExecutionError:
    """E402: Assignment to a variable that was never declared."""
    return ExecutionError(_diagnostic(
        "E402", f"cannot assign to undeclared variable '{name}'", span,
        hints=[f"declare it first with 'let {name} = ...'"],
    ))


def error_builtin_redeclared(name: str, span: SourceSpan) -> ExecutionError:
    """E403: A declaration reuses a built-in function name."""
    return ExecutionError(_diagnostic(
        "E403", f"'{name}' is a built-in function and can't be used as a variable", span,
    ))


def error_not_callable(kind: str, span: SourceSpan) -> ExecutionError:
    """E404: Calling a value that is not a function."""
    return ExecutionError(_diagnostic("E404", f"{kind} value is not callable", span))


def error_argument_count(name: str, expected: str, found: int, span: SourceSpan) -> ExecutionError:
    """E405: Wrong number of call arguments."""
    return ExecutionError(_diagnostic(
        "E405", f"{name}() expected {expected} argument(s), got {found}", span,
    ))


def error_index_out_of_bounds(index: int, length: int, span: SourceSpan) -> ExecutionError:
    """E406: Index outside the string."""
    return ExecutionError(_diagnostic(
        "E406", f"index {index} out of bounds for length {length}", span,
    ))


def error_invalid_slice(message: str, span: SourceSpan) -> ExecutionError:
    """E406: Slice step that cannot be walked."""
    return ExecutionError(_diagnostic("E406", message, span))


def error_assertion_failed(message: Optional[str], span: SourceSpan) -> ExecutionError:
    """E407: Assertion evaluated to false."""
    text = "assertion failed"
    if message:
        text = f"{text}: {message}"
    return ExecutionError(_diagnostic("E407", text, span))


def error_return_outside_function(span: SourceSpan) -> ExecutionError:
    """E408: ``return`` outside of a function body."""
    return ExecutionError(_diagnostic("E408", "'return' outside of function", span))


def error_loop_control_outside_loop(keyword: str, span: SourceSpan) -> ExecutionError:
    """E409: ``break`` or ``continue`` outside of a loop body."""
    return ExecutionError(_diagnostic("E409", f"'{keyword}' outside of loop", span))


def error_integer_overflow(operator: str, span: SourceSpan) -> ExecutionError:
    """E410: Integer result does not fit in 64 bits."""
    return ExecutionError(_diagnostic(
        "E410", f"integer overflow in '{operator}'", span,
        hints=["integers are 64-bit signed; use a float for larger magnitudes"],
    ))


def error_division_by_zero(span: SourceSpan) -> ExecutionError:
    """E410: Integer division by zero."""
    return ExecutionError(_diagnostic("E410", "integer division by zero", span))


def error_call_depth_exceeded(limit: int, span: SourceSpan) -> ExecutionError:
    """E411: Too many nested function calls."""
    return ExecutionError(_diagnostic(
        "E411", f"maximum call depth of {limit} exceeded", span,
        hints=["raise max_call_depth in the configuration for deeper recursion"],
    ))


def error_not_iterable(kind: str, span: SourceSpan) -> ExecutionError:
    """E412: ``for`` over a value with no iteration protocol."""
    return ExecutionError(_diagnostic("E412", f"{kind} value is not iterable", span))


def error_evaluation_too_deep(span: SourceSpan) -> ExecutionError:
    """E413: Evaluation nested beyond the interpreter stack."""
    return ExecutionError(_diagnostic(
        "E413", "expression nested too deeply to evaluate", span,
        hints=["split the expression into smaller parts with intermediate variables"],
    ))
