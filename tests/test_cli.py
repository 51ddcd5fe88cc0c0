"""Tests for the plc command line."""

import io
import sys

import pytest

from plc.cli import USAGE, main

PROGRAM = """\
DEF main(): Integer DO
    print("running");
    RETURN 3;
END
"""


@pytest.fixture
def write_plc(tmp_path):
    def write(text: str) -> str:
        path = tmp_path / "prog.plc"
        path.write_text(text)
        return str(path)

    return write


def test_run_exits_with_main_value(write_plc, capsys):
    assert main([write_plc(PROGRAM)]) == 3
    assert capsys.readouterr().out == "running\n"


def test_check_prints_nothing(write_plc, capsys):
    assert main(["--check", write_plc(PROGRAM)]) == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""


def test_type_error(write_plc, capsys):
    path = write_plc("DEF main(): Integer DO RETURN 1.0; END")
    assert main(["--check", path]) == 1
    err = capsys.readouterr().err
    assert err == "plc: type error: Decimal is not assignable to Integer at offset 30\n"


def test_lex_error(write_plc, capsys):
    assert main([write_plc('LET s: String = "abc;')]) == 1
    assert capsys.readouterr().err.startswith("plc: lex error: unterminated string literal")


def test_parse_error(write_plc, capsys):
    assert main([write_plc("DEF main(): Integer DO RETURN 0 END")]) == 1
    assert capsys.readouterr().err == "plc: parse error: expected ';', got 'END' at offset 32\n"


def test_runtime_error(write_plc, capsys):
    assert main([write_plc("DEF main(): Integer DO RETURN 1 / 0; END")]) == 1
    assert capsys.readouterr().err.startswith("plc: runtime error: division by zero")


def test_unbounded_recursion(write_plc, capsys):
    path = write_plc(
        "DEF f(n: Integer): Integer DO RETURN f(n + 1); END\n"
        "DEF main(): Integer DO RETURN f(0); END"
    )
    assert main([path]) == 1
    assert "maximum recursion depth exceeded" in capsys.readouterr().err


def test_deep_recursion_runs(write_plc, capsys):
    path = write_plc(
        "DEF depth(n: Integer): Integer DO\n"
        "    IF n == 0 DO\n"
        "        RETURN 0;\n"
        "    END\n"
        "    RETURN 1 + depth(n - 1);\n"
        "END\n"
        "DEF main(): Integer DO\n"
        "    print(depth(600));\n"
        "    RETURN 0;\n"
        "END\n"
    )
    limit = sys.getrecursionlimit()
    assert main([path]) == 0
    assert capsys.readouterr().out == "600\n"
    assert sys.getrecursionlimit() == limit


def test_emit_java(write_plc, capsys):
    assert main(["--emit", "java", write_plc(PROGRAM)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("public class Main {\n")
    assert 'System.out.println("running");' in out
    assert "return 3;" in out


def test_emit_java_requires_valid_program(write_plc, capsys):
    assert main(["--emit", "java", write_plc("DEF f(): Integer DO RETURN 0; END")]) == 1
    assert "missing entry point" in capsys.readouterr().err


def test_emit_plc_skips_analysis(write_plc, capsys):
    path = write_plc("DEF helper():Integer DO RETURN x;END")
    assert main(["--emit", "plc", path]) == 0
    assert capsys.readouterr().out == "DEF helper(): Integer DO\n    RETURN x;\nEND\n"


def test_read_from_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(PROGRAM))
    assert main(["-"]) == 3
    assert capsys.readouterr().out == "running\n"


def test_main_falling_off_exits_zero(write_plc):
    assert main([write_plc("DEF main(): Integer DO END")]) == 0


def test_help(capsys):
    assert main(["--help"]) == 0
    assert capsys.readouterr().out == USAGE


@pytest.mark.parametrize(
    "argv,message",
    [
        ([], "missing file argument"),
        (["--emit"], "--emit requires a target"),
        (["--emit", "c", "x.plc"], "unknown emit target 'c'"),
        (["--verbose", "x.plc"], "unknown flag '--verbose'"),
        (["a.plc", "b.plc"], "unexpected argument 'b.plc'"),
    ],
)
def test_usage_errors(argv, message, capsys):
    assert main(argv) == 2
    assert message in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    path = str(tmp_path / "nope.plc")
    assert main([path]) == 1
    assert capsys.readouterr().err == "plc: " + path + ": No such file or directory\n"
