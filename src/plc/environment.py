"""PLC environment — type catalog, bindings, scopes and runtime objects.

The analyzer and the interpreter share this model: the analyzer fills scopes
with typed placeholders, the interpreter with live values. A scope only ever
points at its parent, so the scope chain of a running program is a tree that
is discarded block by block.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable


class ScopeError(Exception):
    """Unbound name, unknown type or duplicate definition.

    Passes translate it into their own diagnostic kind (type error during
    analysis, runtime fault during evaluation).
    """

    def __init__(self, msg: str):
        self.msg: str = msg
        super().__init__(msg)


# ============================================================
# TYPES
# ============================================================


class PlcType:
    """A named catalog entry with a member table. Equality is by name."""

    def __init__(self, name: str, java_name: str, scope: Scope | None = None):
        self.name: str = name
        self.java_name: str = java_name
        self.scope: Scope = scope if scope is not None else Scope(None)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PlcType) and other.name == self.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return "PlcType(" + self.name + ")"

    def get_field(self, name: str) -> Variable:
        try:
            return self.scope.lookup_variable(name)
        except ScopeError:
            raise ScopeError(self.name + " has no field '" + name + "'") from None

    def get_method(self, name: str, arity: int) -> Function:
        """Look up a method by the number of call arguments (receiver excluded)."""
        try:
            return self.scope.lookup_function(name, arity + 1)
        except ScopeError:
            raise ScopeError(
                self.name + " has no method '" + name + "/" + str(arity) + "'"
            ) from None



# ============================================================
# BINDINGS
# ============================================================


@dataclass(eq=False)
class Variable:
    name: str
    java_name: str
    type: PlcType
    value: PlcObject


@dataclass(eq=False)
class Function:
    """A callable binding. Member functions take their receiver first."""

    name: str
    java_name: str
    parameter_types: list[PlcType]
    return_type: PlcType
    body: Callable[[list[PlcObject]], PlcObject]

    @property
    def arity(self) -> int:
        return len(self.parameter_types)

    def invoke(self, args: list[PlcObject]) -> PlcObject:
        return self.body(args)


class Scope:
    """Binding tables for one lexical block, chained to the enclosing block."""

    def __init__(self, parent: Scope | None):
        self.parent: Scope | None = parent
        self._variables: dict[str, Variable] = {}
        self._functions: dict[tuple[str, int], Function] = {}

    def define_variable(
        self, name: str, java_name: str, typ: PlcType, value: PlcObject
    ) -> Variable:
        if name in self._variables:
            raise ScopeError("variable '" + name + "' is already defined in this scope")
        variable = Variable(name, java_name, typ, value)
        self._variables[name] = variable
        return variable

    def lookup_variable(self, name: str) -> Variable:
        scope: Scope | None = self
        while scope is not None:
            if name in scope._variables:
                return scope._variables[name]
            scope = scope.parent
        raise ScopeError("undefined variable '" + name + "'")

    def define_function(
        self,
        name: str,
        java_name: str,
        parameter_types: list[PlcType],
        return_type: PlcType,
        body: Callable[[list[PlcObject]], PlcObject],
    ) -> Function:
        key = (name, len(parameter_types))
        if key in self._functions:
            raise ScopeError(
                "function '" + name + "/" + str(key[1]) + "' is already defined in this scope"
            )
        function = Function(name, java_name, list(parameter_types), return_type, body)
        self._functions[key] = function
        return function

    def lookup_function(self, name: str, arity: int) -> Function:
        key = (name, arity)
        scope: Scope | None = self
        while scope is not None:
            if key in scope._functions:
                return scope._functions[key]
            scope = scope.parent
        raise ScopeError("undefined function '" + name + "/" + str(arity) + "'")


# ============================================================
# TYPE CATALOG
# ============================================================

ANY = PlcType("Any", "Object")
NIL = PlcType("Nil", "Void")
INTEGER_ITERABLE = PlcType("IntegerIterable", "Iterable<Integer>")
COMPARABLE = PlcType("Comparable", "Comparable")
BOOLEAN = PlcType("Boolean", "boolean")
INTEGER = PlcType("Integer", "int")
DECIMAL = PlcType("Decimal", "double")
CHARACTER = PlcType("Character", "char")
STRING = PlcType("String", "String")

COMPARABLE_TYPES: tuple[PlcType, ...] = (INTEGER, DECIMAL, CHARACTER, STRING)

_TYPES: dict[str, PlcType] = {}


def register_type(typ: PlcType) -> None:
    """Add a type to the catalog. Re-registering a name replaces the entry."""
    _TYPES[typ.name] = typ


def get_type(name: str) -> PlcType:
    if name not in _TYPES:
        raise ScopeError("unknown type '" + name + "'")
    return _TYPES[name]


for _t in (ANY, NIL, INTEGER_ITERABLE, COMPARABLE, BOOLEAN, INTEGER, DECIMAL, CHARACTER, STRING):
    register_type(_t)


# ============================================================
# RUNTIME OBJECTS
# ============================================================


@dataclass(eq=False)
class PlcObject:
    """A raw value tagged with its runtime type.

    scope holds the fields and methods of aggregate instances; primitive
    values have none.
    """

    type: PlcType
    value: object
    scope: Scope | None = None

    def _members(self) -> Scope:
        if self.scope is None:
            raise ScopeError(self.type.name + " value has no members")
        return self.scope

    def get_field(self, name: str) -> Variable:
        return self._members().lookup_variable(name)

    def set_field(self, name: str, value: PlcObject) -> None:
        self.get_field(name).value = value

    def get_method(self, name: str, arity: int) -> Function:
        """Look up a method by the number of call arguments (receiver excluded)."""
        return self._members().lookup_function(name, arity + 1)

    def call_method(self, name: str, args: list[PlcObject]) -> PlcObject:
        return self.get_method(name, len(args)).invoke([self] + args)

    def display(self) -> str:
        v = self.value
        if v is None:
            return "null"
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, Decimal, str)):
            return str(v)
        if isinstance(v, Iterable):
            return "[" + ", ".join(create(e).display() for e in v) + "]"
        return "<" + self.type.name + ">"


NIL_OBJECT = PlcObject(NIL, None)


def create(value: object) -> PlcObject:
    """Wrap a host value, inferring its runtime tag. Strings become String."""
    if isinstance(value, PlcObject):
        return value
    if value is None:
        return NIL_OBJECT
    if isinstance(value, bool):
        return PlcObject(BOOLEAN, value)
    if isinstance(value, int):
        return PlcObject(INTEGER, value)
    if isinstance(value, Decimal):
        return PlcObject(DECIMAL, value)
    if isinstance(value, str):
        return PlcObject(STRING, value)
    if isinstance(value, Iterable):
        return PlcObject(INTEGER_ITERABLE, value)
    return PlcObject(ANY, value)


def create_character(value: str) -> PlcObject:
    if len(value) != 1:
        raise ValueError("character value must be exactly one character")
    return PlcObject(CHARACTER, value)
