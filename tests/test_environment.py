"""Tests for scopes, the type catalog and runtime values."""

import io
import os
import subprocess
import sys
from decimal import Decimal
from pathlib import Path

import pytest

from plc import environment, parse
from plc.builtins import root_scope
from plc.check import Analyzer, require_assignable
from plc.environment import (
    ANY,
    BOOLEAN,
    CHARACTER,
    COMPARABLE,
    DECIMAL,
    INTEGER,
    INTEGER_ITERABLE,
    NIL,
    NIL_OBJECT,
    STRING,
    PlcObject,
    PlcType,
    Scope,
    ScopeError,
    create,
    create_character,
    get_type,
    register_type,
)
from plc.errors import PlcTypeError
from plc.runtime import Interpreter


# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------


def test_lookup_walks_parents():
    outer = Scope(None)
    outer.define_variable("x", "x", INTEGER, create(1))
    inner = Scope(outer)
    assert inner.lookup_variable("x").value.value == 1


def test_inner_definition_shadows_outer():
    outer = Scope(None)
    outer.define_variable("x", "x", INTEGER, create(1))
    inner = Scope(outer)
    inner.define_variable("x", "x", STRING, create("s"))
    assert inner.lookup_variable("x").type == STRING
    assert outer.lookup_variable("x").type == INTEGER


def test_redefinition_in_same_scope():
    scope = Scope(None)
    scope.define_variable("x", "x", INTEGER, NIL_OBJECT)
    with pytest.raises(ScopeError, match="already defined"):
        scope.define_variable("x", "x", INTEGER, NIL_OBJECT)


def test_undefined_variable():
    with pytest.raises(ScopeError) as exc:
        Scope(Scope(None)).lookup_variable("missing")
    assert exc.value.msg == "undefined variable 'missing'"


def test_functions_keyed_by_arity():
    scope = Scope(None)
    scope.define_function("f", "f", [], INTEGER, lambda args: create(0))
    scope.define_function("f", "f", [INTEGER], INTEGER, lambda args: args[0])
    assert scope.lookup_function("f", 0).arity == 0
    assert scope.lookup_function("f", 1).invoke([create(7)]).value == 7
    with pytest.raises(ScopeError, match="undefined function 'f/2'"):
        scope.lookup_function("f", 2)


def test_duplicate_function():
    scope = Scope(None)
    scope.define_function("f", "f", [ANY], NIL, lambda args: NIL_OBJECT)
    with pytest.raises(ScopeError, match="function 'f/1' is already defined"):
        scope.define_function("f", "f", [INTEGER], NIL, lambda args: NIL_OBJECT)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


def test_builtin_types_registered():
    for name in ("Any", "Nil", "IntegerIterable", "Comparable", "Boolean",
                 "Integer", "Decimal", "Character", "String"):
        assert get_type(name).name == name


def test_unknown_type():
    with pytest.raises(ScopeError, match="unknown type 'Widget'"):
        get_type("Widget")


def test_builtin_types_carry_member_tables():
    for typ in (ANY, NIL, INTEGER, STRING):
        assert isinstance(typ.scope, Scope)


def test_package_imports_in_fresh_interpreter():
    src = Path(__file__).parent.parent / "src"
    env = {**os.environ, "PYTHONPATH": str(src)}
    result = subprocess.run(
        [sys.executable, "-c", "import plc.cli; import plc.environment"],
        env=env,
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0, result.stderr


def test_types_compare_by_name():
    assert PlcType("Integer", "int") == INTEGER
    assert INTEGER != DECIMAL


def test_java_names():
    assert INTEGER.java_name == "int"
    assert DECIMAL.java_name == "double"
    assert ANY.java_name == "Object"
    assert INTEGER_ITERABLE.java_name == "Iterable<Integer>"


def test_assignability():
    require_assignable(INTEGER, INTEGER)
    require_assignable(ANY, STRING)
    require_assignable(ANY, NIL)
    for t in (INTEGER, DECIMAL, CHARACTER, STRING):
        require_assignable(COMPARABLE, t)
    with pytest.raises(PlcTypeError, match="Boolean is not assignable to Comparable"):
        require_assignable(COMPARABLE, BOOLEAN)
    with pytest.raises(PlcTypeError, match="Any is not assignable to Integer"):
        require_assignable(INTEGER, ANY)
    with pytest.raises(PlcTypeError, match="Integer is not assignable to Decimal"):
        require_assignable(DECIMAL, INTEGER)


def test_primitive_types_have_no_members():
    with pytest.raises(ScopeError, match="Integer has no field 'x'"):
        INTEGER.get_field("x")
    with pytest.raises(ScopeError, match="String has no method 'size/0'"):
        STRING.get_method("size", 0)


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


def test_create_infers_tags():
    assert create(None) is NIL_OBJECT
    assert create(True).type == BOOLEAN
    assert create(3).type == INTEGER
    assert create(Decimal("1.5")).type == DECIMAL
    assert create("s").type == STRING
    assert create(range(2)).type == INTEGER_ITERABLE
    assert create_character("c").type == CHARACTER


def test_create_character_needs_one_character():
    with pytest.raises(ValueError):
        create_character("ab")


def test_display():
    assert NIL_OBJECT.display() == "null"
    assert create(False).display() == "false"
    assert create(-4).display() == "-4"
    assert create(Decimal("2.50")).display() == "2.50"
    assert create("text").display() == "text"
    assert create(range(1, 4)).display() == "[1, 2, 3]"


def test_primitive_value_has_no_members():
    with pytest.raises(ScopeError, match="Integer value has no members"):
        create(1).get_field("x")


# ---------------------------------------------------------------------------
# Aggregate types
# ---------------------------------------------------------------------------


@pytest.fixture
def catalog(monkeypatch):
    """Give the test a private copy of the type catalog."""
    monkeypatch.setattr(environment, "_TYPES", dict(environment._TYPES))


def _point_type():
    """Point with an Integer field x and a method scale(Integer) : Integer."""
    point = PlcType("Point", "Point")

    def members() -> Scope:
        scope = Scope(None)
        scope.define_variable("x", "x", INTEGER, create(0))

        def scale(args: list[PlcObject]) -> PlcObject:
            receiver, factor = args
            return create(receiver.get_field("x").value.value * factor.value)

        scope.define_function("scale", "scale", [point, INTEGER], INTEGER, scale)
        return scope

    point.scope = members()
    return point, lambda: PlcObject(point, None, members())


def test_aggregate_members():
    point, new_point = _point_type()
    assert point.get_field("x").type == INTEGER
    assert point.get_method("scale", 1).arity == 2
    p = new_point()
    p.set_field("x", create(5))
    assert p.call_method("scale", [create(3)]).value == 15


def test_aggregate_in_program(catalog):
    point, new_point = _point_type()
    register_type(point)
    out = io.StringIO()
    scope = root_scope(out)
    scope.define_function("origin", "origin", [], point, lambda args: new_point())
    tree = parse(
        """
DEF main(): Integer DO
    LET p: Point = origin();
    p.x = 3;
    print(p.x);
    RETURN p.scale(2);
END
"""
    )
    Analyzer(scope).analyze(tree)
    assert Interpreter(scope).run(tree).value == 6
    assert out.getvalue() == "3\n"


def test_aggregate_member_errors(catalog):
    register_type(_point_type()[0])
    tree = parse("DEF main(): Integer DO LET p: Point; RETURN p.y; END")
    with pytest.raises(PlcTypeError, match="Point has no field 'y'"):
        Analyzer(root_scope()).analyze(tree)
    tree = parse("DEF main(): Integer DO LET p: Point; RETURN p.scale(); END")
    with pytest.raises(PlcTypeError, match="Point has no method 'scale/0'"):
        Analyzer(root_scope()).analyze(tree)


def test_registered_types_stay_with_their_test(catalog):
    with pytest.raises(ScopeError, match="unknown type 'Point'"):
        get_type("Point")
    register_type(_point_type()[0])
    assert get_type("Point").name == "Point"
