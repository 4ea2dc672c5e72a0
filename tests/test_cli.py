"""
Tests for the command line interface.
"""

import io
import json

import pytest

from sable.__main__ import main, _insert_default_action


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Keep a stray sable.yaml or $SABLE_CONFIG from leaking into the tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SABLE_CONFIG", raising=False)


def write_script(tmp_path, text, name="prog.sbl"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestDefaultAction:
    """Test the implicit 'run' subcommand."""

    def test_bare_file_becomes_run(self):
        assert _insert_default_action(["prog.sbl"]) == ["run", "prog.sbl"]

    def test_options_before_file(self):
        assert _insert_default_action(["--config", "c.yaml", "-v", "prog.sbl"]) == [
            "--config", "c.yaml", "-v", "run", "prog.sbl",
        ]

    def test_explicit_subcommand_untouched(self):
        assert _insert_default_action(["check", "prog.sbl"]) == ["check", "prog.sbl"]

    def test_no_arguments(self):
        assert _insert_default_action([]) == []


class TestRun:
    """Test running scripts."""

    def test_run_file(self, tmp_path, capsys):
        path = write_script(tmp_path, 'let name = "sable"\nprint("hello", name)\n')
        assert main([path]) == 0
        assert capsys.readouterr().out == "hello sable\n"

    def test_explicit_run(self, tmp_path, capsys):
        path = write_script(tmp_path, "print(1 + 1)\n")
        assert main(["run", path]) == 0
        assert capsys.readouterr().out == "2\n"

    def test_runtime_error(self, tmp_path, capsys):
        path = write_script(tmp_path, "print(nope)\n")
        assert main([path]) == 1
        err = capsys.readouterr().err
        assert err.startswith("RuntimeError: ")
        assert "error[E402]" in err
        assert "print(nope)" in err

    def test_syntax_error(self, tmp_path, capsys):
        path = write_script(tmp_path, "let = 1\n")
        assert main([path]) == 1
        assert capsys.readouterr().err.startswith("SyntaxError: ")

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.sbl")]) == 1
        assert "Error: File not found" in capsys.readouterr().err

    def test_exit_code_from_script(self, tmp_path):
        path = write_script(tmp_path, "exit(4)\n")
        with pytest.raises(SystemExit) as exc_info:
            main([path])
        assert exc_info.value.code == 4

    def test_config_limits_call_depth(self, tmp_path, capsys):
        config = write_script(tmp_path, "max_call_depth: 10\n", name="limits.yaml")
        path = write_script(tmp_path, "def f(n) => f(n + 1)\nf(0)\n")
        assert main(["--config", config, path]) == 1
        assert "maximum call depth of 10 exceeded" in capsys.readouterr().err


class TestCheck:
    """Test syntax checking."""

    def test_check_ok(self, tmp_path, capsys):
        path = write_script(tmp_path, "let a = 1\nprint(a)\n")
        assert main(["check", path]) == 0
        assert capsys.readouterr().out == f"{path}: OK (2 top-level statements)\n"

    def test_check_does_not_run(self, tmp_path, capsys):
        path = write_script(tmp_path, "print(undefined_name)\n")
        assert main(["check", path]) == 0
        assert "undefined_name" not in capsys.readouterr().out

    def test_check_error(self, tmp_path, capsys):
        path = write_script(tmp_path, "if x {\n")
        assert main(["check", path]) == 1
        assert "error[E102]" in capsys.readouterr().err

    def test_check_json(self, tmp_path, capsys):
        path = write_script(tmp_path, "let 1 = 2\n")
        assert main(["check", path, "--json"]) == 1
        report = json.loads(capsys.readouterr().out)
        assert report["file"] == path
        (diagnostic,) = report["diagnostics"]
        assert diagnostic["code"] == "E101"
        assert diagnostic["range"]["start"] == {"line": 1, "column": 5, "offset": 4}

    def test_check_deep_nesting(self, tmp_path, capsys):
        path = write_script(tmp_path, "(" * 3000 + "1" + ")" * 3000 + "\n")
        assert main(["check", path, "--json"]) == 1
        (diagnostic,) = json.loads(capsys.readouterr().out)["diagnostics"]
        assert diagnostic["code"] == "E103"

    def test_check_json_clean(self, tmp_path, capsys):
        path = write_script(tmp_path, "1\n")
        assert main(["check", path, "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["diagnostics"] == []


class TestOtherCommands:
    """Test the ast, config and repl subcommands."""

    def test_ast(self, tmp_path, capsys):
        path = write_script(tmp_path, "let x = 1 + 2\n")
        assert main(["ast", path]) == 0
        out = capsys.readouterr().out
        assert out.startswith("Block")
        assert "VarDecl" in out
        assert "operator: PLUS" in out

    def test_ast_deep_nesting(self, tmp_path, capsys):
        path = write_script(tmp_path, "(" * 3000 + "1" + ")" * 3000 + "\n")
        assert main(["ast", path]) == 1
        assert "error[E103]" in capsys.readouterr().err

    def test_run_deep_nesting(self, tmp_path, capsys):
        path = write_script(tmp_path, "(" * 3000 + "1" + ")" * 3000 + "\n")
        assert main([path]) == 1
        assert capsys.readouterr().err.startswith("SyntaxError: ")

    def test_config_shows_defaults(self, capsys):
        assert main(["config"]) == 0
        assert "max_call_depth: 1000" in capsys.readouterr().out

    def test_config_from_file(self, tmp_path, capsys):
        config = write_script(tmp_path, "max_call_depth: 3\n", name="c.yaml")
        assert main(["--config", config, "config"]) == 0
        assert "max_call_depth: 3" in capsys.readouterr().out

    def test_bad_config(self, tmp_path, capsys):
        config = write_script(tmp_path, "nonsense: 1\n", name="c.yaml")
        assert main(["--config", config, "config"]) == 2
        assert "unknown setting 'nonsense'" in capsys.readouterr().err

    def test_repl_is_default(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("6 * 7\n"))
        assert main([]) == 0
        assert "42" in capsys.readouterr().out.splitlines()[0]
