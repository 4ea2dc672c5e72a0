"""
Tests for the sable interpreter: evaluation, control flow and runtime errors.
"""

import pytest
from sable import (
    run_source, parse_source, Interpreter, Scope, SableConfig,
    ExecutionError, ParserError, ValueKind, TokenType,
)
from sable.ast import Block, ExpressionStatement, Literal, UnaryOp
from sable.tokens import SourceLocation, SourceSpan


def run(source, config=None):
    """Run source and return the value of its last statement."""
    result = run_source(source, config=config)
    assert result.success, result.error_message
    return result.value


def run_error(source, config=None):
    """Run source that must fail and return the error."""
    result = run_source(source, config=config)
    assert not result.success
    return result.error


class TestExpressions:
    """Test evaluation of expressions."""

    def test_arithmetic(self):
        assert run("1 + 2 * 3").data == 7
        assert run("(1 + 2) * 3").data == 9

    def test_integer_division_truncates(self):
        assert run("7 / 2").data == 3
        assert run("-7 / 2").data == -3

    def test_mixed_arithmetic_is_float(self):
        value = run("1 + 2.5")
        assert value.kind == ValueKind.FLOAT
        assert value.data == 3.5

    def test_string_operations(self):
        assert run('"ab" + "cd"').data == "abcd"
        assert run('"-" * 3').data == "---"
        assert run('len("hello")').data == 5

    def test_comparisons_and_logic(self):
        assert run("1 < 2 and 2 <= 2").data is True
        assert run('"a" == "a" or false').data is True
        assert run("not (1 == 1)").data is False

    def test_logic_evaluates_both_operands(self):
        error = run_error("false and missing")
        assert error.code == "E402"

    def test_index_and_slice(self):
        assert run('"abc"[1]').data == "b"
        assert run('"abc"[1:3]').data == "bc"
        assert run('"abcdef"[0:6:2]').data == "ace"
        assert run('"abcdef"[::3]').data == "ad"

    def test_slice_step_zero(self):
        error = run_error('"abc"[0:3:0]')
        assert error.code == "E406"

    def test_assignment_yields_value(self):
        assert run("let a = 0\nlet b = (a = 5)\na + b").data == 10

    def test_increment_and_decrement(self):
        assert run("let i = 5\nlet j = i++\nj * 10 + i").data == 56
        assert run("let i = 5\nlet j = --i\nj * 10 + i").data == 44

    def test_nothing_literal(self):
        assert run("nothing").kind == ValueKind.NOTHING

    def test_empty_program(self):
        assert run("").kind == ValueKind.NOTHING


class TestVariables:
    """Test declaration, assignment and scoping."""

    def test_declare_and_assign(self):
        assert run("let x = 1\nx = x + 41\nx").data == 42

    def test_assign_undeclared(self):
        error = run_error("y = 2")
        assert error.code == "E402"
        assert "cannot assign to undeclared variable 'y'" in str(error)

    def test_undefined_variable(self):
        error = run_error("print(nope)")
        assert error.code == "E402"
        assert "variable 'nope' is not defined" in str(error)

    def test_block_declarations_are_local(self):
        assert run("let x = 1\nif true { let x = 2 }\nx").data == 1

    def test_block_assignment_reaches_outer(self):
        assert run("let x = 1\nif true { x = 3 }\nx").data == 3

    def test_redeclaration_overwrites(self):
        assert run('let x = 1\nlet x = "one"\nx').data == "one"

    def test_builtin_names_are_reserved(self):
        assert run_error("let print = 1").code == "E403"
        assert run_error("def len(s) { }").code == "E403"
        assert run_error("exit = 1").code == "E403"

    def test_builtin_names_rejected_as_parameters(self):
        error = run_error("def f(len) { return len }\nf(3)")
        assert error.code == "E403"
        assert "'len' is a built-in function" in str(error)
        assert run_error("let g = |print| => print").code == "E403"

    def test_builtin_name_rejected_as_loop_variable(self, capsys):
        error = run_error("for next in \"ab\" { print(next) }")
        assert error.code == "E403"
        assert capsys.readouterr().out == ""

    def test_builtin_reference(self):
        assert run('let size = len\nsize("abcd")').data == 4

    def test_persistent_scope(self):
        """One root scope can carry state across separate programs."""
        scope = Scope(name="global")
        interpreter = Interpreter()
        interpreter.execute(parse_source("let n = 20"), scope)
        value = interpreter.execute(parse_source("n = n + 1\nn * 2"), scope)
        assert value.data == 42


class TestControlFlow:
    """Test conditionals, loops and early exits."""

    def test_if_else_chain(self):
        source = """
        def sign(n) {
            if n < 0 { return -1 } else if n == 0 { return 0 } else { return 1 }
        }
        sign(-5) * 100 + sign(0) * 10 + sign(9)
        """
        assert run(source).data == -99

    def test_condition_must_be_boolean(self):
        error = run_error("if 1 { }")
        assert error.code == "E401"
        assert "if condition must be a boolean, found integer" in str(error)

    def test_while_loop(self):
        assert run("let i = 0\nlet total = 0\nwhile i < 5 { total = total + i; i = i + 1 }\ntotal").data == 10

    def test_for_over_range(self):
        assert run("let total = 0\nfor i in 1..5 { total = total + i }\ntotal").data == 10

    def test_for_over_string(self):
        assert run('let out = ""\nfor c in "abc" { out = c + out }\nout').data == "cba"

    def test_for_over_iterator(self):
        source = """
        let it = iter("xyz")
        next(it)
        let rest = ""
        for c in it { rest = rest + c }
        rest
        """
        assert run(source).data == "yz"

    def test_for_over_non_iterable(self):
        error = run_error("for x in 5 { }")
        assert error.code == "E412"

    def test_counting_for(self):
        assert run("let s = 0\nfor (let i = 0; i < 5; i++) { s = s + i }\ns").data == 10

    def test_counting_for_variable_is_local(self):
        assert run_error("for (let i = 0; i < 1; i++) { }\ni").code == "E402"

    def test_break_leaves_innermost_loop_only(self):
        source = """
        let total = 0
        for i in 0..3 {
            for j in 0..3 {
                if j == 1 { break }
                total = total + 1
            }
        }
        total
        """
        assert run(source).data == 3

    def test_continue_skips_rest_of_body(self):
        source = """
        let total = 0
        for i in 0..6 {
            if i / 2 * 2 == i { continue }
            total = total + i
        }
        total
        """
        assert run(source).data == 9

    def test_continue_in_counting_for_runs_step(self):
        source = """
        let seen = 0
        for (let i = 0; i < 4; i++) {
            if i == 1 { continue }
            seen = seen + 1
        }
        seen
        """
        assert run(source).data == 3

    def test_break_in_while(self):
        assert run("let i = 0\nwhile true { i = i + 1\nif i == 4 { break } }\ni").data == 4

    def test_return_from_inside_loop(self):
        source = """
        def find(text, ch) {
            let i = 0
            for c in text {
                if c == ch { return i }
                i = i + 1
            }
            return -1
        }
        find("hello", "l") * 10 + find("hello", "z")
        """
        assert run(source).data == 19

    def test_statements_after_return_do_not_run(self, capsys):
        run('def f() { return 1\nprint("unreachable") }\nf()')
        assert capsys.readouterr().out == ""

    def test_return_outside_function(self):
        error = run_error("return 5")
        assert error.code == "E408"
        assert "'return' outside of function" in str(error)

    def test_return_in_top_level_loop(self):
        assert run_error("while true { return }").code == "E408"

    def test_break_outside_loop(self):
        error = run_error("break")
        assert error.code == "E409"
        assert "'break' outside of loop" in str(error)

    def test_loop_control_does_not_cross_calls(self):
        error = run_error("def f() { continue }\nwhile true { f() }")
        assert error.code == "E409"

    def test_assert(self):
        assert run("assert 1 < 2").kind == ValueKind.NOTHING
        error = run_error('assert 1 > 2, "numbers are broken"')
        assert error.code == "E407"
        assert "assertion failed: numbers are broken" in str(error)


class TestFunctions:
    """Test function definitions, calls and closures."""

    def test_recursion(self):
        source = "def fact(n) { if n <= 1 { return 1 } return n * fact(n - 1) }\nfact(5)"
        assert run(source).data == 120

    def test_deep_recursion_within_limit(self):
        source = "def total(n) { if n == 0 { return 0 } return n + total(n - 1) }\ntotal(300)"
        assert run(source).data == 45150

    def test_call_depth_limit(self):
        config = SableConfig(max_call_depth=50)
        error = run_error("def f(n) { return f(n + 1) }\nf(0)", config=config)
        assert error.code == "E411"
        assert "maximum call depth of 50 exceeded" in str(error)

    def test_function_without_return_yields_nothing(self):
        assert run("def f() { 1 }\nf()").kind == ValueKind.NOTHING

    def test_bare_return_yields_nothing(self):
        assert run("def f() { return }\nf()").kind == ValueKind.NOTHING

    def test_shorthand_definition(self):
        assert run("def square(x) => x * x\nsquare(7)").data == 49

    def test_lambda(self):
        assert run("let add = |a, b| => a + b\nadd(2, 3)").data == 5

    def test_closure_keeps_state(self):
        source = """
        def make_counter() {
            let count = 0
            return || { count = count + 1; return count }
        }
        let c = make_counter()
        c()
        c()
        """
        assert run(source).data == 2

    def test_each_iteration_gets_fresh_binding(self):
        source = """
        let first = nothing
        let second = nothing
        for i in 0..2 {
            if i == 0 { first = || => i } else { second = || => i }
        }
        first() * 10 + second()
        """
        assert run(source).data == 1

    def test_higher_order_function(self):
        source = """
        def apply_twice(f, x) => f(f(x))
        apply_twice(|n| => n * 3, 2)
        """
        assert run(source).data == 18

    def test_decorator(self):
        source = """
        def twice(f) { return |x| => f(f(x)) }
        @twice
        def inc(x) => x + 1
        inc(5)
        """
        assert run(source).data == 7

    def test_argument_count(self):
        error = run_error("def f(a) { }\nf()")
        assert error.code == "E405"
        assert "f() expected 1 argument(s), got 0" in str(error)

    def test_not_callable(self):
        error = run_error("let x = 1\nx()")
        assert error.code == "E404"
        assert "integer value is not callable" in str(error)

    def test_function_value_text(self, capsys):
        run("def f() { }\nprint(f)\nprint(|| => 1)")
        assert capsys.readouterr().out == "<function f: 1:1>\n<function <lambda>: 3:7>\n"


class TestErrorReporting:
    """Test the ExecutionResult and formatted runtime errors."""

    def test_runtime_error_message(self):
        result = run_source("let a = 1\nb = 2", filename="t.sbl")
        assert not result.success
        assert isinstance(result.error, ExecutionError)
        assert result.error_message.startswith("RuntimeError: t.sbl:2:1: error[E402]")
        assert "b = 2" in result.error_message

    def test_syntax_error_message(self):
        result = run_source("let = 1")
        assert not result.success
        assert result.error_message.startswith("SyntaxError: ")

    def test_overflow_reported(self):
        error = run_error("9223372036854775807 + 1")
        assert error.code == "E410"

    def test_output_before_error_is_kept(self, capsys):
        run_error('print("before")\nnope')
        assert capsys.readouterr().out == "before\n"

    def test_deeply_nested_source(self):
        depth = 3000
        error = run_error("(" * depth + "1" + ")" * depth)
        assert isinstance(error, ParserError)
        assert error.code == "E103"
        assert "expression nested too deeply" in str(error)

    def test_deeply_nested_tree(self):
        """A tree nested past the interpreter stack fails with E413, not E411."""
        span = SourceSpan(SourceLocation(1, 1, 0), SourceLocation(1, 2, 1))
        expr = Literal(span=span, value=1, literal_type=TokenType.INT_LITERAL)
        for _ in range(5000):
            expr = UnaryOp(span=span, operator=TokenType.MINUS, operand=expr)
        tree = Block(span=span, statements=[ExpressionStatement(span=span, expression=expr)])

        with pytest.raises(ExecutionError) as exc_info:
            Interpreter(SableConfig(max_call_depth=1)).execute(tree)
        assert exc_info.value.code == "E413"
        assert "expression nested too deeply to evaluate" in str(exc_info.value)
