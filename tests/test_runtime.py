"""Tests for the public API, annotation slots and runtime arithmetic."""

import io
from decimal import Decimal

import pytest

from plc import LexError, ParseError, PlcRuntimeFault, PlcTypeError, analyze, execute, parse, run
from plc.ast import LIT_INTEGER, Access, Literal
from plc.environment import INTEGER, STRING
from plc.runtime import _decimal_divide, _int_div_trunc, _round_half_even


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def test_execute_returns_main_value():
    out = io.StringIO()
    result = execute('DEF main(): Integer DO print("x"); RETURN 7; END', out)
    assert result.type == INTEGER
    assert result.value == 7
    assert out.getvalue() == "x\n"


def test_execute_prints_to_stdout_by_default(capsys):
    execute('DEF main(): Integer DO print("hello"); RETURN 0; END')
    assert capsys.readouterr().out == "hello\n"


def test_errors_carry_kind_and_offset():
    with pytest.raises(LexError) as lex:
        execute('DEF main(): Integer DO RETURN "open; END')
    assert lex.value.kind == "lex"
    assert lex.value.offset == 40
    with pytest.raises(ParseError) as perr:
        execute("DEF main(): Integer DO RETURN 0 END")
    assert perr.value.kind == "parse"
    assert str(perr.value) == "expected ';', got 'END' at offset 32"
    with pytest.raises(PlcTypeError) as terr:
        execute("DEF main(): Integer DO RETURN 1.0; END")
    assert terr.value.kind == "type"
    assert terr.value.msg == "Decimal is not assignable to Integer"
    assert terr.value.offset == 30
    with pytest.raises(PlcRuntimeFault) as rerr:
        execute("DEF main(): Integer DO RETURN 1 / 0; END")
    assert rerr.value.kind == "runtime"
    assert rerr.value.msg == "division by zero"


def test_analysis_annotates_tree():
    tree = parse('DEF main(): Integer DO LET s = "a"; RETURN 0; END')
    analyze(tree)
    decl = tree.methods[0].statements[0]
    assert decl.variable.type == STRING
    assert decl.value.type == STRING
    assert tree.methods[0].function.return_type == INTEGER


# ---------------------------------------------------------------------------
# Annotation slots
# ---------------------------------------------------------------------------


def test_slot_read_before_analysis():
    node = Literal(0, LIT_INTEGER, 1)
    with pytest.raises(RuntimeError, match="type is not set on Literal"):
        node.type


def test_slot_written_twice():
    node = Literal(0, LIT_INTEGER, 1)
    node.type = INTEGER
    with pytest.raises(RuntimeError, match="type is already set on Literal"):
        node.type = INTEGER


def test_access_type_follows_variable():
    node = Access(0, None, "x")
    with pytest.raises(RuntimeError, match="variable is not set on Access"):
        node.type


def test_slots_do_not_affect_equality():
    a = Literal(0, LIT_INTEGER, 1)
    b = Literal(0, LIT_INTEGER, 1)
    a.type = INTEGER
    assert a == b


def test_analyzing_twice_fails():
    tree = parse("DEF main(): Integer DO RETURN 0; END")
    analyze(tree)
    with pytest.raises(RuntimeError, match="already set"):
        analyze(tree)


# ---------------------------------------------------------------------------
# Dynamic checks on unanalyzed trees
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "body,message",
    [
        ("RETURN 1 + 1.0;", "unsupported operand types: Integer + Decimal"),
        ("IF 1 DO END RETURN 0;", "expected Boolean, got Integer"),
        ("FOR i IN 5 DO END RETURN 0;", "FOR requires an IntegerIterable"),
        ('FOR i IN "abc" DO END RETURN 0;', "FOR requires an IntegerIterable"),
        ('RETURN 1 < "a";', "cannot compare Integer with String"),
        ("RETURN TRUE < FALSE;", "Boolean is not Comparable"),
        ("RETURN y;", "undefined variable 'y'"),
        ("RETURN nope(1);", "undefined function 'nope/1'"),
        ("RETURN range(1, 2.0);", "range expects two Integer arguments"),
        ("LET n = 1; RETURN n.x;", "Integer value has no members"),
    ],
)
def test_runtime_faults(body, message):
    tree = parse("DEF main(): Integer DO " + body + " END")
    with pytest.raises(PlcRuntimeFault) as exc:
        run(tree)
    assert exc.value.msg == message


def test_unanalyzed_missing_main():
    with pytest.raises(PlcRuntimeFault, match="missing entry point"):
        run(parse("DEF helper(): Integer DO RETURN 0; END"))


def test_unanalyzed_equality_compares_tags():
    tree = parse("DEF main(): Integer DO RETURN 1 == 1.0; END")
    assert run(tree).value is False


# ---------------------------------------------------------------------------
# Arithmetic helpers
# ---------------------------------------------------------------------------


def test_int_div_trunc():
    assert _int_div_trunc(7, 2) == 3
    assert _int_div_trunc(-7, 2) == -3
    assert _int_div_trunc(7, -2) == -3
    assert _int_div_trunc(-7, -2) == 3
    assert _int_div_trunc(1, 3) == 0
    assert _int_div_trunc(-1, 3) == 0


def test_integer_division_by_zero_faults():
    tree = parse("DEF main(): Integer DO LET z = 0; RETURN 1 / z; END")
    analyze(tree)
    with pytest.raises(PlcRuntimeFault, match="division by zero"):
        run(tree)


def test_round_half_even():
    assert _round_half_even(5, 2) == 2
    assert _round_half_even(7, 2) == 4
    assert _round_half_even(-5, 2) == -2
    assert _round_half_even(10, 3) == 3
    assert _round_half_even(5, -2) == -2


def test_decimal_divide_keeps_dividend_scale():
    assert str(_decimal_divide(Decimal("1.00"), Decimal("3"))) == "0.33"
    assert str(_decimal_divide(Decimal("10"), Decimal("4"))) == "2"
    assert str(_decimal_divide(Decimal("10.0"), Decimal("4"))) == "2.5"
    assert str(_decimal_divide(Decimal("2.50"), Decimal("0.5"))) == "5.00"
    assert str(_decimal_divide(Decimal("-1.0"), Decimal("3.0"))) == "-0.3"


def test_decimal_divide_by_zero():
    with pytest.raises(ZeroDivisionError):
        _decimal_divide(Decimal("1.0"), Decimal("0.00"))
