"""
Tests for the interactive loop, driven by scripted input.
"""

import io

from sable import Repl, SableConfig


def scripted(lines):
    """Return an input function replaying ``lines``, then end of input."""
    pending = list(lines)
    prompts = []

    def fake_input(prompt):
        prompts.append(prompt)
        if not pending:
            raise EOFError
        line = pending.pop(0)
        if isinstance(line, BaseException):
            raise line
        return line

    return fake_input, prompts


def session(lines, color=False):
    """Run a REPL over ``lines``; return (output lines, prompts, exit code)."""
    input_func, prompts = scripted(lines)
    output = io.StringIO()
    repl = Repl(SableConfig(color=color), input_func=input_func, output=output)
    code = repl.run()
    return output.getvalue().splitlines(), prompts, code


class TestRepl:
    """Test the read-eval-print loop."""

    def test_echoes_results(self):
        out, _, code = session(["6 * 7"])
        assert out[0] == "42"
        assert code == 0

    def test_strings_are_quoted(self):
        out, _, _ = session(['"a" + "b"'])
        assert out[0] == '"ab"'

    def test_nothing_is_not_echoed(self, capsys):
        out, _, _ = session(['print("hi")'])
        assert out == [""]
        assert capsys.readouterr().out == "hi\n"

    def test_state_persists_between_entries(self):
        out, _, _ = session(["let x = 2", "x = x * 21", "x"])
        assert out[-2] == "42"

    def test_multiline_input(self):
        out, prompts, _ = session(["def inc(n) {", "return n + 1", "}", "inc(1)"])
        assert prompts == [">>> ", "... ", "... ", ">>> ", ">>> "]
        assert "2" in out

    def test_dangling_operator_continues(self):
        out, prompts, _ = session(["1 +", "2"])
        assert prompts[1] == "... "
        assert out[0] == "3"

    def test_open_block_comment_continues(self):
        out, prompts, _ = session(["/* note", "*/ 5"])
        assert prompts[1] == "... "
        assert out[0] == "5"

    def test_runtime_error_is_reported(self):
        out, _, code = session(["nope", "1 + 1"])
        assert out[0] == "RuntimeError: <stdin>:1:1: error[E402]: variable 'nope' is not defined"
        assert "2" in out
        assert code == 0

    def test_error_keeps_earlier_state(self):
        out, _, _ = session(["let a = 1", "a = b", "a"])
        assert out[-2] == "1"

    def test_syntax_error_is_reported(self):
        out, prompts, _ = session(["let = 1", "3"])
        assert out[0].startswith("SyntaxError: <stdin>:1:5: error[E101]")
        assert prompts[1] == ">>> "

    def test_blank_line_forces_evaluation(self):
        out, _, _ = session(["if true {", "", "2"])
        assert out[0].startswith("SyntaxError:")
        assert "E102" in out[0]
        assert "2" in out

    def test_blank_lines_are_skipped(self):
        out, prompts, _ = session(["", "   ", "7"])
        assert prompts == [">>> ", ">>> ", ">>> ", ">>> "]
        assert out[0] == "7"

    def test_keyboard_interrupt_discards_buffer(self):
        out, prompts, _ = session(["def f() {", KeyboardInterrupt(), "8"])
        assert "KeyboardInterrupt" in out
        assert prompts[2] == ">>> "
        assert "8" in out

    def test_keyboard_interrupt_during_evaluation(self, monkeypatch):
        def interrupted(prompt=""):
            raise KeyboardInterrupt

        monkeypatch.setattr("builtins.input", interrupted)
        out, prompts, code = session(["let n = input()", "5"])
        assert "KeyboardInterrupt" in out
        assert prompts[1] == ">>> "
        assert "5" in out
        assert code == 0

    def test_deeply_nested_entry_is_reported(self):
        out, _, code = session(["(" * 3000 + "1" + ")" * 3000, "1 + 1"])
        assert out[0].startswith("SyntaxError: <stdin>:1:")
        assert "error[E103]" in out[0]
        assert "2" in out
        assert code == 0

    def test_color_output(self):
        out, _, _ = session(["nope"], color=True)
        assert out[0].startswith("\033[31mRuntimeError:")
        assert out[-2].endswith("\033[0m")

    def test_custom_prompts(self):
        input_func, prompts = scripted(["(1", ")"])
        config = SableConfig(prompt="sable> ", continuation_prompt="    > ", color=False)
        Repl(config, input_func=input_func, output=io.StringIO()).run()
        assert prompts[:2] == ["sable> ", "    > "]

    def test_feed_reports_incomplete_input(self):
        repl = Repl(SableConfig(color=False), output=io.StringIO())
        assert repl.feed("def f() {") is False
        assert repl.feed("def f() { }") is True
