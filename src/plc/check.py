"""PLC analyzer — resolves names and types and annotates the AST in place."""

from __future__ import annotations

import math

from .ast import (
    LIT_BOOLEAN,
    LIT_CHARACTER,
    LIT_DECIMAL,
    LIT_INTEGER,
    LIT_NIL,
    LIT_STRING,
    Access,
    Assignment,
    Binary,
    Call,
    Declaration,
    Expr,
    ExprStmt,
    Field,
    ForStmt,
    Group,
    IfStmt,
    Literal,
    Method,
    Node,
    ReturnStmt,
    Source,
    Stmt,
    WhileStmt,
)
from .environment import (
    ANY,
    BOOLEAN,
    CHARACTER,
    COMPARABLE,
    COMPARABLE_TYPES,
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
    Variable,
    get_type,
)
from .backend.java import java_safe_name
from .errors import PlcTypeError

INT_MIN = -(2**31)
INT_MAX = 2**31 - 1

ENTRY_POINT = "main"

NUMERIC_TYPES: tuple[PlcType, ...] = (INTEGER, DECIMAL)

ARITH_OPS: set[str] = {"-", "*", "/"}

COMPARE_OPS: set[str] = {"<", "<=", ">", ">=", "==", "!="}

LITERAL_TYPES: dict[str, PlcType] = {
    LIT_NIL: NIL,
    LIT_BOOLEAN: BOOLEAN,
    LIT_CHARACTER: CHARACTER,
    LIT_STRING: STRING,
    LIT_INTEGER: INTEGER,
    LIT_DECIMAL: DECIMAL,
}


def require_assignable(target: PlcType, actual: PlcType, offset: int | None = None) -> None:
    """Fail unless a value of type actual may be used where target is expected."""
    if target == actual or target == ANY:
        return
    if target == COMPARABLE and actual in COMPARABLE_TYPES:
        return
    raise PlcTypeError(actual.name + " is not assignable to " + target.name, offset)


def _placeholder(args: list[PlcObject]) -> PlcObject:
    return NIL_OBJECT


class Analyzer:
    """Static checker. The root scope supplies built-ins and is never modified."""

    def __init__(self, scope: Scope):
        self.root: Scope = scope

    def error(self, msg: str, node: Node) -> PlcTypeError:
        return PlcTypeError(msg, node.offset)

    def _resolve_type(self, name: str, node: Node) -> PlcType:
        try:
            return get_type(name)
        except ScopeError as e:
            raise self.error(e.msg, node) from None

    def _define(self, scope: Scope, name: str, typ: PlcType, node: Node) -> Variable:
        try:
            return scope.define_variable(name, java_safe_name(name), typ, NIL_OBJECT)
        except ScopeError as e:
            raise self.error(e.msg, node) from None

    # ── Top level ────────────────────────────────────────────

    def analyze(self, source: Source) -> None:
        self.check_entry_point(source)
        top = Scope(self.root)
        for f in source.fields:
            self.check_field(f, top)
        for m in source.methods:
            self.register_method(m, top)
        for m in source.methods:
            self.check_method(m, top)

    def check_entry_point(self, source: Source) -> None:
        for m in source.methods:
            if m.name == ENTRY_POINT and not m.parameters:
                if m.return_type_name != INTEGER.name:
                    raise self.error("main() must return Integer", m)
                return
        raise self.error("missing entry point: main() : Integer", source)

    def check_field(self, f: Field, scope: Scope) -> None:
        typ = self._resolve_type(f.type_name, f)
        if f.value is not None:
            require_assignable(typ, self.check_expr(f.value, scope), f.value.offset)
        f.variable = self._define(scope, f.name, typ, f)

    def register_method(self, m: Method, scope: Scope) -> None:
        params = [self._resolve_type(t, m) for t in m.parameter_type_names]
        ret = NIL
        if m.return_type_name is not None:
            ret = self._resolve_type(m.return_type_name, m)
        try:
            m.function = scope.define_function(m.name, java_safe_name(m.name), params, ret, _placeholder)
        except ScopeError as e:
            raise self.error(e.msg, m) from None

    def check_method(self, m: Method, scope: Scope) -> None:
        fn = m.function
        body = Scope(scope)
        for name, typ in zip(m.parameters, fn.parameter_types):
            self._define(body, name, typ, m)
        self.check_stmts(m.statements, body, fn.return_type)

    # ── Statements ───────────────────────────────────────────

    def check_stmts(self, stmts: list[Stmt], scope: Scope, ret: PlcType) -> None:
        for s in stmts:
            self.check_stmt(s, scope, ret)

    def check_stmt(self, stmt: Stmt, scope: Scope, ret: PlcType) -> None:
        if isinstance(stmt, ExprStmt):
            if not isinstance(stmt.expression, Call):
                raise self.error("expression statement must be a function call", stmt)
            self.check_expr(stmt.expression, scope)
        elif isinstance(stmt, Declaration):
            self.check_declaration(stmt, scope)
        elif isinstance(stmt, Assignment):
            self.check_assignment(stmt, scope)
        elif isinstance(stmt, IfStmt):
            self.check_if_stmt(stmt, scope, ret)
        elif isinstance(stmt, ForStmt):
            self.check_for_stmt(stmt, scope, ret)
        elif isinstance(stmt, WhileStmt):
            require_assignable(BOOLEAN, self.check_expr(stmt.condition, scope), stmt.condition.offset)
            self.check_stmts(stmt.statements, Scope(scope), ret)
        elif isinstance(stmt, ReturnStmt):
            require_assignable(ret, self.check_expr(stmt.value, scope), stmt.value.offset)
        else:
            raise RuntimeError("unhandled statement " + type(stmt).__name__)

    def check_declaration(self, stmt: Declaration, scope: Scope) -> None:
        if stmt.type_name is None and stmt.value is None:
            raise self.error("declaration of '" + stmt.name + "' needs a type or an initializer", stmt)
        typ: PlcType | None = None
        if stmt.type_name is not None:
            typ = self._resolve_type(stmt.type_name, stmt)
        if stmt.value is not None:
            value_type = self.check_expr(stmt.value, scope)
            if typ is None:
                typ = value_type
            else:
                require_assignable(typ, value_type, stmt.value.offset)
        assert typ is not None
        stmt.variable = self._define(scope, stmt.name, typ, stmt)

    def check_assignment(self, stmt: Assignment, scope: Scope) -> None:
        if not isinstance(stmt.receiver, Access):
            raise self.error("assignment target must be a variable or field", stmt)
        target = self.check_expr(stmt.receiver, scope)
        require_assignable(target, self.check_expr(stmt.value, scope), stmt.value.offset)

    def check_if_stmt(self, stmt: IfStmt, scope: Scope, ret: PlcType) -> None:
        require_assignable(BOOLEAN, self.check_expr(stmt.condition, scope), stmt.condition.offset)
        self.check_stmts(stmt.then_statements, Scope(scope), ret)
        self.check_stmts(stmt.else_statements, Scope(scope), ret)

    def check_for_stmt(self, stmt: ForStmt, scope: Scope, ret: PlcType) -> None:
        require_assignable(INTEGER_ITERABLE, self.check_expr(stmt.value, scope), stmt.value.offset)
        body = Scope(scope)
        self._define(body, stmt.name, INTEGER, stmt)
        self.check_stmts(stmt.statements, body, ret)

    # ── Expressions ──────────────────────────────────────────

    def check_expr(self, expr: Expr, scope: Scope) -> PlcType:
        """Analyze an expression, annotate it, and return its type."""
        if isinstance(expr, Literal):
            expr.type = self.check_literal(expr)
        elif isinstance(expr, Group):
            self.check_expr(expr.expression, scope)
        elif isinstance(expr, Binary):
            expr.type = self.check_binary(expr, scope)
        elif isinstance(expr, Access):
            self.check_access(expr, scope)
        elif isinstance(expr, Call):
            self.check_call(expr, scope)
        else:
            raise RuntimeError("unhandled expression " + type(expr).__name__)
        return expr.type

    def check_literal(self, expr: Literal) -> PlcType:
        if expr.kind == LIT_INTEGER:
            assert isinstance(expr.value, int)
            if expr.value < INT_MIN or expr.value > INT_MAX:
                raise self.error("integer literal out of range", expr)
        elif expr.kind == LIT_DECIMAL:
            if math.isinf(float(expr.value)):  # type: ignore[arg-type]
                raise self.error("decimal literal out of range", expr)
        return LITERAL_TYPES[expr.kind]

    def check_binary(self, expr: Binary, scope: Scope) -> PlcType:
        left = self.check_expr(expr.left, scope)
        right = self.check_expr(expr.right, scope)
        op = expr.op
        if op == "AND" or op == "OR":
            require_assignable(BOOLEAN, left, expr.left.offset)
            require_assignable(BOOLEAN, right, expr.right.offset)
            return BOOLEAN
        if op in COMPARE_OPS:
            require_assignable(COMPARABLE, left, expr.left.offset)
            require_assignable(COMPARABLE, right, expr.right.offset)
            require_assignable(left, right, expr.right.offset)
            require_assignable(right, left, expr.left.offset)
            return BOOLEAN
        if op == "+" and (left == STRING or right == STRING):
            return STRING
        if (op == "+" or op in ARITH_OPS) and left in NUMERIC_TYPES and left == right:
            return left
        raise self.error(
            "operand types do not match: " + left.name + " " + op + " " + right.name, expr
        )

    def check_access(self, expr: Access, scope: Scope) -> None:
        try:
            if expr.receiver is None:
                expr.variable = scope.lookup_variable(expr.name)
            else:
                expr.variable = self.check_expr(expr.receiver, scope).get_field(expr.name)
        except ScopeError as e:
            raise self.error(e.msg, expr) from None

    def check_call(self, expr: Call, scope: Scope) -> None:
        arity = len(expr.arguments)
        try:
            if expr.receiver is None:
                fn = scope.lookup_function(expr.name, arity)
                params = fn.parameter_types
            else:
                fn = self.check_expr(expr.receiver, scope).get_method(expr.name, arity)
                params = fn.parameter_types[1:]
        except ScopeError as e:
            raise self.error(e.msg, expr) from None
        for arg, param in zip(expr.arguments, params):
            require_assignable(param, self.check_expr(arg, scope), arg.offset)
        expr.function = fn


def analyze(source: Source, scope: Scope) -> None:
    """Analyze source against a root scope of built-ins. Raises PlcTypeError."""
    Analyzer(scope).analyze(source)
