"""
Tree-walking interpreter for sable programs.

Statements produce a ``Completion``: either a normal result value or an
abrupt ``break``/``continue``/``return``. Blocks stop at the first abrupt
completion and hand it outward; loops consume ``break`` and ``continue``,
function calls consume ``return``. Expressions always produce a ``Value``.
No control-flow state lives on the interpreter itself.
"""

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .values import (
    Value, ValueKind, Function, NOTHING,
    int_val, float_val, bool_val, string_val, function_val, builtin_val,
)
from .operators import (
    BINARY_OPERATORS, add, subtract, negate, logical_not,
    index, slice_string, make_range, make_iterator,
)
from .scope import Scope
from .builtins import BuiltinRegistry, get_builtin_registry

from ..ast import (
    Statement, Expression,
    ExpressionStatement, VarDecl, AssertStatement, IfStatement,
    WhileStatement, ForStatement, CountingForStatement, ReturnStatement,
    BreakStatement, ContinueStatement, Block,
    Literal, NothingLiteral, Identifier, BinaryOp, UnaryOp, Increment,
    Assignment, FunctionCall, IndexAccess, Slice, RangeExpr, FunctionDef,
)
from ..config import SableConfig
from ..errors import (
    SableError,
    ExecutionError,
    error_type_mismatch,
    error_undefined_variable,
    error_assign_undeclared,
    error_builtin_redeclared,
    error_not_callable,
    error_argument_count,
    error_assertion_failed,
    error_return_outside_function,
    error_loop_control_outside_loop,
    error_call_depth_exceeded,
    error_evaluation_too_deep,
)
from ..parser import parse_source
from ..tokens import SourceSpan, TokenType

logger = logging.getLogger(__name__)

# Python frames used per nested call of a user function, with room for
# nested blocks and expressions inside the body.
FRAMES_PER_CALL = 40


class Signal(Enum):
    """How a statement finished."""
    NORMAL = "normal"
    BREAK = "break"
    CONTINUE = "continue"
    RETURN = "return"


@dataclass(frozen=True)
class Completion:
    """Outcome of executing a statement."""
    signal: Signal
    value: Value = NOTHING

    @property
    def is_abrupt(self) -> bool:
        return self.signal is not Signal.NORMAL


def normal(value: Value) -> Completion:
    return Completion(Signal.NORMAL, value)


NORMAL_NOTHING = Completion(Signal.NORMAL)
BREAK = Completion(Signal.BREAK)
CONTINUE = Completion(Signal.CONTINUE)


@dataclass
class ExecutionResult:
    """Result of running a piece of source text."""
    success: bool
    value: Value = NOTHING
    error: Optional[SableError] = None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return f"{self.error.label}: {self.error}"


@contextmanager
def _recursion_headroom(max_call_depth: int):
    """Raise the interpreter recursion limit so max_call_depth is reachable."""
    previous = sys.getrecursionlimit()
    needed = max_call_depth * FRAMES_PER_CALL + 500
    if needed > previous:
        sys.setrecursionlimit(needed)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


class Interpreter:
    """
    Tree-walking interpreter.

    Evaluates AST nodes by dispatching on node type. One interpreter may run
    many trees against the same root scope (the REPL does this).
    """

    def __init__(self, config: Optional[SableConfig] = None,
                 registry: Optional[BuiltinRegistry] = None,
                 source: Optional[str] = None):
        """
        Initialize the interpreter.

        Args:
            config: Runtime settings; defaults are used when omitted
            registry: Built-in functions; the global registry by default
            source: Source text, used to quote the offending line in errors
        """
        self.config = config or SableConfig()
        self.registry = registry or get_builtin_registry()
        self.source_lines: List[str] = source.splitlines() if source else []
        self._call_depth = 0

    def execute(self, tree: Block, scope: Optional[Scope] = None) -> Value:
        """
        Run a program.

        Args:
            tree: Top-level block of the program
            scope: Persistent root scope; a fresh one when omitted. The
                block runs directly in this scope, so declarations survive
                across calls.

        Returns:
            Value of the last top-level statement, or nothing

        Raises:
            ExecutionError: On the first runtime error
        """
        root = scope if scope is not None else Scope(name="global")
        self._call_depth = 0
        logger.debug("executing %d top-level statements", len(tree.statements))

        try:
            with _recursion_headroom(self.config.max_call_depth):
                completion = self._execute_block(tree, root, new_scope=False)
        except RecursionError:
            error = error_evaluation_too_deep(tree.span)
            error.attach_source(self.source_lines)
            raise error from None
        except ExecutionError as error:
            error.attach_source(self.source_lines)
            raise

        return completion.value

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute(self, stmt: Statement, scope: Scope) -> Completion:
        """Execute a single statement."""
        if isinstance(stmt, ExpressionStatement):
            return normal(self._evaluate(stmt.expression, scope))
        elif isinstance(stmt, VarDecl):
            return self._execute_var_decl(stmt, scope)
        elif isinstance(stmt, IfStatement):
            return self._execute_if(stmt, scope)
        elif isinstance(stmt, WhileStatement):
            return self._execute_while(stmt, scope)
        elif isinstance(stmt, ForStatement):
            return self._execute_for(stmt, scope)
        elif isinstance(stmt, CountingForStatement):
            return self._execute_counting_for(stmt, scope)
        elif isinstance(stmt, ReturnStatement):
            return self._execute_return(stmt, scope)
        elif isinstance(stmt, BreakStatement):
            if not scope.in_loop:
                raise error_loop_control_outside_loop("break", stmt.span)
            return BREAK
        elif isinstance(stmt, ContinueStatement):
            if not scope.in_loop:
                raise error_loop_control_outside_loop("continue", stmt.span)
            return CONTINUE
        elif isinstance(stmt, AssertStatement):
            return self._execute_assert(stmt, scope)
        elif isinstance(stmt, Block):
            return self._execute_block(stmt, scope)
        else:
            raise NotImplementedError(f"Unknown statement type: {type(stmt).__name__}")

    def _execute_block(self, block: Block, scope: Scope, new_scope: bool = True) -> Completion:
        """Run statements in order, stopping at the first abrupt completion."""
        if new_scope:
            scope = scope.child("block")

        result = NORMAL_NOTHING
        for stmt in block.statements:
            result = self._execute(stmt, scope)
            if result.is_abrupt:
                return result
        return result

    def _execute_var_decl(self, stmt: VarDecl, scope: Scope) -> Completion:
        if self.registry.is_builtin(stmt.name):
            raise error_builtin_redeclared(stmt.name, stmt.span)
        value = self._evaluate(stmt.initializer, scope)
        scope.declare(stmt.name, value)
        return normal(value)

    def _condition(self, expr: Expression, scope: Scope, context: str) -> bool:
        value = self._evaluate(expr, scope)
        if value.kind != ValueKind.BOOLEAN:
            raise error_type_mismatch(context, "a boolean", value.type_name, expr.span)
        return value.data

    def _execute_if(self, stmt: IfStatement, scope: Scope) -> Completion:
        if self._condition(stmt.condition, scope, "if condition"):
            return self._execute_block(stmt.then_branch, scope)
        if stmt.else_branch is not None:
            return self._execute(stmt.else_branch, scope)
        return NORMAL_NOTHING

    def _run_loop_body(self, body: Block, scope: Scope) -> Completion:
        return self._execute_block(body, scope.child("loop", in_loop=True), new_scope=False)

    def _execute_while(self, stmt: WhileStatement, scope: Scope) -> Completion:
        while self._condition(stmt.condition, scope, "while condition"):
            completion = self._run_loop_body(stmt.body, scope)
            if completion.signal is Signal.BREAK:
                break
            if completion.signal is Signal.RETURN:
                return completion
        return NORMAL_NOTHING

    def _execute_for(self, stmt: ForStatement, scope: Scope) -> Completion:
        if self.registry.is_builtin(stmt.variable):
            raise error_builtin_redeclared(stmt.variable, stmt.span)
        iterator = make_iterator(self._evaluate(stmt.iterable, scope), stmt.iterable.span)

        for item in iterator:
            # Fresh scope per iteration, so closures see this iteration's binding
            iteration = scope.child("for", in_loop=True)
            iteration.declare(stmt.variable, item)
            completion = self._execute_block(stmt.body, iteration, new_scope=False)
            if completion.signal is Signal.BREAK:
                break
            if completion.signal is Signal.RETURN:
                return completion
        return NORMAL_NOTHING

    def _execute_counting_for(self, stmt: CountingForStatement, scope: Scope) -> Completion:
        loop_scope = scope.child("for")
        if stmt.initializer is not None:
            self._execute(stmt.initializer, loop_scope)

        while True:
            if stmt.condition is not None:
                if not self._condition(stmt.condition, loop_scope, "for condition"):
                    break
            completion = self._run_loop_body(stmt.body, loop_scope)
            if completion.signal is Signal.BREAK:
                break
            if completion.signal is Signal.RETURN:
                return completion
            if stmt.step is not None:
                self._evaluate(stmt.step, loop_scope)
        return NORMAL_NOTHING

    def _execute_return(self, stmt: ReturnStatement, scope: Scope) -> Completion:
        if not scope.in_function:
            raise error_return_outside_function(stmt.span)
        value = NOTHING
        if stmt.value is not None:
            value = self._evaluate(stmt.value, scope)
        return Completion(Signal.RETURN, value)

    def _execute_assert(self, stmt: AssertStatement, scope: Scope) -> Completion:
        if not self._condition(stmt.condition, scope, "assertion condition"):
            raise error_assertion_failed(stmt.message, stmt.span)
        return NORMAL_NOTHING

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression, scope: Scope) -> Value:
        """Evaluate an expression to a value."""
        if isinstance(expr, Literal):
            return self._eval_literal(expr)
        elif isinstance(expr, NothingLiteral):
            return NOTHING
        elif isinstance(expr, Identifier):
            return self._eval_identifier(expr, scope)
        elif isinstance(expr, BinaryOp):
            # Both operands are evaluated, even for 'and'/'or'
            left = self._evaluate(expr.left, scope)
            right = self._evaluate(expr.right, scope)
            return BINARY_OPERATORS[expr.operator](left, right, expr.span)
        elif isinstance(expr, UnaryOp):
            return self._eval_unary_op(expr, scope)
        elif isinstance(expr, Increment):
            return self._eval_increment(expr, scope)
        elif isinstance(expr, Assignment):
            value = self._evaluate(expr.value, scope)
            self._assign(expr.target, value, scope)
            return value
        elif isinstance(expr, FunctionCall):
            return self._eval_function_call(expr, scope)
        elif isinstance(expr, IndexAccess):
            target = self._evaluate(expr.target, scope)
            return index(target, self._evaluate(expr.index, scope), expr.span)
        elif isinstance(expr, Slice):
            return self._eval_slice(expr, scope)
        elif isinstance(expr, RangeExpr):
            start = self._evaluate(expr.start, scope)
            end = self._evaluate(expr.end, scope)
            return make_range(start, end, expr.span)
        elif isinstance(expr, FunctionDef):
            return self._eval_function_def(expr, scope)
        else:
            raise NotImplementedError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_literal(self, lit: Literal) -> Value:
        if lit.literal_type == TokenType.INT_LITERAL:
            return int_val(lit.value)
        elif lit.literal_type == TokenType.FLOAT_LITERAL:
            return float_val(lit.value)
        elif lit.literal_type == TokenType.STRING_LITERAL:
            return string_val(lit.value)
        return bool_val(lit.value)

    def _eval_identifier(self, ident: Identifier, scope: Scope) -> Value:
        if self.registry.is_builtin(ident.name):
            return builtin_val(ident.name)
        value = scope.get(ident.name)
        if value is None:
            raise error_undefined_variable(ident.name, ident.span)
        return value

    def _assign(self, target: Identifier, value: Value, scope: Scope) -> None:
        if self.registry.is_builtin(target.name):
            raise error_builtin_redeclared(target.name, target.span)
        if not scope.update(target.name, value):
            raise error_assign_undeclared(target.name, target.span)

    def _eval_unary_op(self, op: UnaryOp, scope: Scope) -> Value:
        operand = self._evaluate(op.operand, scope)
        if op.operator == TokenType.NOT:
            return logical_not(operand, op.span)
        return negate(operand, op.span)

    def _eval_increment(self, expr: Increment, scope: Scope) -> Value:
        current = self._eval_identifier(expr.target, scope)
        if expr.delta > 0:
            updated = add(current, int_val(1), expr.span)
        else:
            updated = subtract(current, int_val(1), expr.span)
        self._assign(expr.target, updated, scope)
        return updated if expr.prefix else current

    def _eval_slice(self, expr: Slice, scope: Scope) -> Value:
        target = self._evaluate(expr.target, scope)
        parts = [None if part is None else self._evaluate(part, scope)
                 for part in (expr.start, expr.end, expr.step)]
        return slice_string(target, *parts, expr.span)

    def _eval_function_def(self, expr: FunctionDef, scope: Scope) -> Value:
        if expr.name is not None and self.registry.is_builtin(expr.name):
            raise error_builtin_redeclared(expr.name, expr.span)
        for name in expr.parameters:
            if self.registry.is_builtin(name):
                raise error_builtin_redeclared(name, expr.span)
        function = Function(
            name=expr.name,
            parameters=list(expr.parameters),
            body=expr.body,
            scope=scope,
            span=expr.span,
        )
        value = function_val(function)
        if expr.name is not None:
            scope.declare(expr.name, value)
        return value

    def _eval_function_call(self, call: FunctionCall, scope: Scope) -> Value:
        callee = self._evaluate(call.callee, scope)
        args = [self._evaluate(arg, scope) for arg in call.arguments]

        if callee.kind == ValueKind.FUNCTION:
            return self.call_function(callee.data, args, call.span)
        if callee.kind == ValueKind.BUILTIN:
            builtin = self.registry.get_function(callee.data)
            return builtin.implementation(call.span, args)
        raise error_not_callable(callee.type_name, call.span)

    def call_function(self, function: Function, args: List[Value], span: SourceSpan) -> Value:
        """
        Call a user-defined function.

        The body runs in a new scope over the function's captured scope.
        The call yields the returned value, or nothing without a return.
        """
        if len(args) != len(function.parameters):
            raise error_argument_count(function.display_name, str(len(function.parameters)),
                                       len(args), span)
        if self._call_depth >= self.config.max_call_depth:
            raise error_call_depth_exceeded(self.config.max_call_depth, span)

        call_scope = function.scope.child(f"call {function.display_name}",
                                          in_function=True, in_loop=False)
        for name, arg in zip(function.parameters, args):
            call_scope.declare(name, arg)

        self._call_depth += 1
        try:
            completion = self._execute_block(function.body, call_scope, new_scope=False)
        finally:
            self._call_depth -= 1

        if completion.signal is Signal.RETURN:
            return completion.value
        return NOTHING


def execute(tree: Block, scope: Optional[Scope] = None,
            config: Optional[SableConfig] = None) -> Value:
    """
    Run a parsed program.

    This is a convenience wrapper around Interpreter.execute().
    """
    return Interpreter(config).execute(tree, scope)


def run_source(
    source: str,
    filename: Optional[str] = None,
    scope: Optional[Scope] = None,
    config: Optional[SableConfig] = None,
) -> ExecutionResult:
    """
    Tokenize, parse and run source text in one call.

        from sable import run_source

        result = run_source('''
            def fact(n) { if n <= 1 { return 1 } return n * fact(n - 1) }
            fact(5)
        ''')

        if result.success:
            print(result.value.data)
        else:
            print(result.error_message)

    Args:
        source: Program text
        filename: Optional filename for error messages
        scope: Optional persistent root scope
        config: Optional runtime settings

    Returns:
        ExecutionResult with the final value or the first error
    """
    try:
        tree = parse_source(source, filename)
        value = Interpreter(config, source=source).execute(tree, scope)
    except SableError as error:
        error.attach_source(source.splitlines())
        logger.debug("run of %s failed with %s", filename or "<input>", error.code)
        return ExecutionResult(success=False, error=error)

    return ExecutionResult(success=True, value=value)
