"""PLC AST — parse-time node definitions with late-bound analysis slots."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .environment import Function, PlcType, Variable


# ============================================================
# ANNOTATION SLOTS
# ============================================================


def _get_once(node: Node, slot: str) -> object:
    value = getattr(node, "_" + slot)
    if value is None:
        raise RuntimeError(slot + " is not set on " + type(node).__name__)
    return value


def _set_once(node: Node, slot: str, value: object) -> None:
    if getattr(node, "_" + slot) is not None:
        raise RuntimeError(slot + " is already set on " + type(node).__name__)
    setattr(node, "_" + slot, value)


@dataclass
class Node:
    """Base for all nodes. offset is the first token's character index."""

    offset: int


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Expr(Node):
    """Base for all expressions."""

    @property
    def type(self) -> PlcType:
        raise NotImplementedError


LIT_NIL = "nil"
LIT_BOOLEAN = "boolean"
LIT_CHARACTER = "character"
LIT_STRING = "string"
LIT_INTEGER = "integer"
LIT_DECIMAL = "decimal"


@dataclass
class Literal(Expr):
    """NIL, TRUE/FALSE, 'c', "s", 42, 1.5. Text literals are stored unescaped."""

    kind: str
    value: None | bool | str | int | Decimal
    _type: PlcType | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def type(self) -> PlcType:
        return _get_once(self, "type")  # type: ignore[return-value]

    @type.setter
    def type(self, value: PlcType) -> None:
        _set_once(self, "type", value)


@dataclass
class Group(Expr):
    """(expr). Kept so emitters reproduce the source's parentheses."""

    expression: Expr

    @property
    def type(self) -> PlcType:
        return self.expression.type


@dataclass
class Binary(Expr):
    """left op right. op is one of AND OR < <= > >= == != + - * /."""

    op: str
    left: Expr
    right: Expr
    _type: PlcType | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def type(self) -> PlcType:
        return _get_once(self, "type")  # type: ignore[return-value]

    @type.setter
    def type(self, value: PlcType) -> None:
        _set_once(self, "type", value)


@dataclass
class Access(Expr):
    """name or receiver.name."""

    receiver: Expr | None
    name: str
    _variable: Variable | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def variable(self) -> Variable:
        return _get_once(self, "variable")  # type: ignore[return-value]

    @variable.setter
    def variable(self, value: Variable) -> None:
        _set_once(self, "variable", value)

    @property
    def type(self) -> PlcType:
        return self.variable.type


@dataclass
class Call(Expr):
    """name(args) or receiver.name(args)."""

    receiver: Expr | None
    name: str
    arguments: list[Expr]
    _function: Function | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def function(self) -> Function:
        return _get_once(self, "function")  # type: ignore[return-value]

    @function.setter
    def function(self, value: Function) -> None:
        _set_once(self, "function", value)

    @property
    def type(self) -> PlcType:
        return self.function.return_type


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Stmt(Node):
    """Base for all statements."""


@dataclass
class ExprStmt(Stmt):
    expression: Expr


@dataclass
class Declaration(Stmt):
    """LET name (: Type)? (= value)?;"""

    name: str
    type_name: str | None
    value: Expr | None
    _variable: Variable | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def variable(self) -> Variable:
        return _get_once(self, "variable")  # type: ignore[return-value]

    @variable.setter
    def variable(self, value: Variable) -> None:
        _set_once(self, "variable", value)


@dataclass
class Assignment(Stmt):
    receiver: Expr
    value: Expr


@dataclass
class IfStmt(Stmt):
    condition: Expr
    then_statements: list[Stmt]
    else_statements: list[Stmt]


@dataclass
class ForStmt(Stmt):
    name: str
    value: Expr
    statements: list[Stmt]


@dataclass
class WhileStmt(Stmt):
    condition: Expr
    statements: list[Stmt]


@dataclass
class ReturnStmt(Stmt):
    value: Expr


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass
class Field(Node):
    """LET name: Type (= value)?; at top level."""

    name: str
    type_name: str
    value: Expr | None
    _variable: Variable | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def variable(self) -> Variable:
        return _get_once(self, "variable")  # type: ignore[return-value]

    @variable.setter
    def variable(self, value: Variable) -> None:
        _set_once(self, "variable", value)


@dataclass
class Method(Node):
    """DEF name(p: T, ...) (: R)? DO stmts END"""

    name: str
    parameters: list[str]
    parameter_type_names: list[str]
    return_type_name: str | None
    statements: list[Stmt]
    _function: Function | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def function(self) -> Function:
        return _get_once(self, "function")  # type: ignore[return-value]

    @function.setter
    def function(self, value: Function) -> None:
        _set_once(self, "function", value)


@dataclass
class Source(Node):
    """Top-level program: fields, then methods."""

    fields: list[Field]
    methods: list[Method]
