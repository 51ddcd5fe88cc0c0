"""PLC runtime — evaluate a PLC source tree.

The interpreter walks the AST directly. It does not depend on analysis
annotations, so it can run any parsed tree, but every dynamic check the
analyzer performs statically is repeated here against runtime tags.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import MAX_EMAX, MAX_PREC, MIN_EMIN, Context, Decimal

from .ast import (
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
from .check import ENTRY_POINT
from .environment import (
    ANY,
    BOOLEAN,
    COMPARABLE_TYPES,
    DECIMAL,
    INTEGER,
    NIL_OBJECT,
    STRING,
    PlcObject,
    Scope,
    ScopeError,
    create,
    create_character,
)
from .errors import PlcRuntimeFault

# Exact arithmetic for add, subtract and multiply
_EXACT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)


def _int_div_trunc(a: int, b: int) -> int:
    """Integer quotient rounded toward zero. b must be nonzero."""
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        return -q
    return q


def _round_half_even(num: int, den: int) -> int:
    """Round num/den to the nearest integer, ties to even."""
    if den < 0:
        num, den = -num, -den
    q, r = divmod(num, den)
    twice = 2 * r
    if twice > den or (twice == den and q % 2 == 1):
        q += 1
    return q


def _decimal_parts(d: Decimal) -> tuple[int, int]:
    """Split d into (coefficient, exponent) so that d == coefficient * 10**exponent."""
    t = d.as_tuple()
    coefficient = 0
    for digit in t.digits:
        coefficient = coefficient * 10 + digit
    if t.sign:
        coefficient = -coefficient
    assert isinstance(t.exponent, int)
    return (coefficient, t.exponent)


def _decimal_divide(a: Decimal, b: Decimal) -> Decimal:
    """a / b rounded half-to-even to the exponent of a."""
    ia, ea = _decimal_parts(a)
    ib, eb = _decimal_parts(b)
    if ib == 0:
        raise ZeroDivisionError
    if eb >= 0:
        q = _round_half_even(ia, ib * 10**eb)
    else:
        q = _round_half_even(ia * 10 ** (-eb), ib)
    digits = tuple(int(c) for c in str(abs(q)))
    return Decimal((1 if q < 0 else 0, digits, ea))


@dataclass
class _Return:
    """Result of a statement list that ended in RETURN."""

    value: PlcObject


class Interpreter:
    """Tree-walking evaluator. The root scope supplies built-ins."""

    def __init__(self, scope: Scope):
        self.root: Scope = scope

    def fault(self, msg: str, node: Node) -> PlcRuntimeFault:
        return PlcRuntimeFault(msg, node.offset)

    # ── Top level ────────────────────────────────────────────

    def run(self, source: Source) -> PlcObject:
        top = Scope(self.root)
        for f in source.fields:
            value = NIL_OBJECT if f.value is None else self.eval_expr(f.value, top)
            try:
                top.define_variable(f.name, f.name, ANY, value)
            except ScopeError as e:
                raise self.fault(e.msg, f) from None
        for m in source.methods:
            self.register_method(m, top)
        try:
            main = top.lookup_function(ENTRY_POINT, 0)
        except ScopeError:
            raise self.fault("missing entry point: main()", source) from None
        return main.invoke([])

    def register_method(self, m: Method, scope: Scope) -> None:
        """Define m in scope as a closure over scope."""

        def body(args: list[PlcObject]) -> PlcObject:
            frame = Scope(scope)
            for name, arg in zip(m.parameters, args):
                try:
                    frame.define_variable(name, name, ANY, arg)
                except ScopeError as e:
                    raise self.fault(e.msg, m) from None
            result = self.exec_stmts(m.statements, frame)
            if result is None:
                return NIL_OBJECT
            return result.value

        try:
            scope.define_function(m.name, m.name, [ANY] * len(m.parameters), ANY, body)
        except ScopeError as e:
            raise self.fault(e.msg, m) from None

    # ── Statements ───────────────────────────────────────────

    def exec_stmts(self, stmts: list[Stmt], scope: Scope) -> _Return | None:
        for st in stmts:
            result = self.exec_stmt(st, scope)
            if result is not None:
                return result
        return None

    def exec_stmt(self, st: Stmt, scope: Scope) -> _Return | None:
        if isinstance(st, ExprStmt):
            self.eval_expr(st.expression, scope)
            return None

        if isinstance(st, Declaration):
            value = NIL_OBJECT if st.value is None else self.eval_expr(st.value, scope)
            try:
                scope.define_variable(st.name, st.name, ANY, value)
            except ScopeError as e:
                raise self.fault(e.msg, st) from None
            return None

        if isinstance(st, Assignment):
            self.exec_assignment(st, scope)
            return None

        if isinstance(st, IfStmt):
            if self._truth(self.eval_expr(st.condition, scope), st.condition):
                return self.exec_stmts(st.then_statements, Scope(scope))
            return self.exec_stmts(st.else_statements, Scope(scope))

        if isinstance(st, WhileStmt):
            while self._truth(self.eval_expr(st.condition, scope), st.condition):
                result = self.exec_stmts(st.statements, Scope(scope))
                if result is not None:
                    return result
            return None

        if isinstance(st, ForStmt):
            return self.exec_for(st, scope)

        if isinstance(st, ReturnStmt):
            return _Return(self.eval_expr(st.value, scope))

        raise RuntimeError("unhandled statement " + type(st).__name__)

    def exec_assignment(self, st: Assignment, scope: Scope) -> None:
        target = st.receiver
        if not isinstance(target, Access):
            raise self.fault("assignment target must be a variable or field", st)
        try:
            if target.receiver is None:
                variable = scope.lookup_variable(target.name)
            else:
                variable = self.eval_expr(target.receiver, scope).get_field(target.name)
        except ScopeError as e:
            raise self.fault(e.msg, target) from None
        variable.value = self.eval_expr(st.value, scope)

    def exec_for(self, st: ForStmt, scope: Scope) -> _Return | None:
        iterable = self.eval_expr(st.value, scope).value
        if isinstance(iterable, str) or not isinstance(iterable, Iterable):
            raise self.fault("FOR requires an IntegerIterable", st.value)
        for element in iterable:
            frame = Scope(scope)
            frame.define_variable(st.name, st.name, INTEGER, create(element))
            result = self.exec_stmts(st.statements, frame)
            if result is not None:
                return result
        return None

    # ── Expressions ──────────────────────────────────────────

    def eval_expr(self, expr: Expr, scope: Scope) -> PlcObject:
        if isinstance(expr, Literal):
            return self.eval_literal(expr)
        if isinstance(expr, Group):
            return self.eval_expr(expr.expression, scope)
        if isinstance(expr, Binary):
            return self.eval_binary(expr, scope)
        if isinstance(expr, Access):
            try:
                if expr.receiver is None:
                    return scope.lookup_variable(expr.name).value
                return self.eval_expr(expr.receiver, scope).get_field(expr.name).value
            except ScopeError as e:
                raise self.fault(e.msg, expr) from None
        if isinstance(expr, Call):
            return self.eval_call(expr, scope)
        raise RuntimeError("unhandled expression " + type(expr).__name__)

    def eval_literal(self, expr: Literal) -> PlcObject:
        if expr.kind == LIT_NIL:
            return NIL_OBJECT
        if expr.kind == LIT_CHARACTER:
            return create_character(expr.value)  # type: ignore[arg-type]
        if expr.kind == LIT_STRING:
            return PlcObject(STRING, expr.value)
        if expr.kind == LIT_INTEGER:
            return PlcObject(INTEGER, expr.value)
        if expr.kind == LIT_DECIMAL:
            return PlcObject(DECIMAL, expr.value)
        return PlcObject(BOOLEAN, expr.value)

    def eval_call(self, expr: Call, scope: Scope) -> PlcObject:
        receiver: PlcObject | None = None
        try:
            if expr.receiver is None:
                fn = scope.lookup_function(expr.name, len(expr.arguments))
            else:
                receiver = self.eval_expr(expr.receiver, scope)
                fn = receiver.get_method(expr.name, len(expr.arguments))
        except ScopeError as e:
            raise self.fault(e.msg, expr) from None
        args = [self.eval_expr(a, scope) for a in expr.arguments]
        if receiver is not None:
            args.insert(0, receiver)
        return fn.invoke(args)

    def _truth(self, value: PlcObject, node: Node) -> bool:
        if value.type != BOOLEAN:
            raise self.fault("expected Boolean, got " + value.type.name, node)
        return bool(value.value)

    def eval_binary(self, expr: Binary, scope: Scope) -> PlcObject:
        op = expr.op

        # Short-circuit: the right operand is only evaluated when needed
        if op == "AND":
            if not self._truth(self.eval_expr(expr.left, scope), expr.left):
                return create(False)
            return create(self._truth(self.eval_expr(expr.right, scope), expr.right))
        if op == "OR":
            if self._truth(self.eval_expr(expr.left, scope), expr.left):
                return create(True)
            return create(self._truth(self.eval_expr(expr.right, scope), expr.right))

        left = self.eval_expr(expr.left, scope)
        right = self.eval_expr(expr.right, scope)

        if op == "==":
            return create(left.type == right.type and left.value == right.value)
        if op == "!=":
            return create(not (left.type == right.type and left.value == right.value))

        if op in ("<", "<=", ">", ">="):
            if left.type not in COMPARABLE_TYPES:
                raise self.fault(left.type.name + " is not Comparable", expr.left)
            if right.type != left.type:
                raise self.fault(
                    "cannot compare " + left.type.name + " with " + right.type.name, expr
                )
            a, b = left.value, right.value
            if op == "<":
                return create(a < b)  # type: ignore[operator]
            if op == "<=":
                return create(a <= b)  # type: ignore[operator]
            if op == ">":
                return create(a > b)  # type: ignore[operator]
            return create(a >= b)  # type: ignore[operator]

        if op == "+" and (left.type == STRING or right.type == STRING):
            if left.type != right.type:
                raise self.fault(
                    "cannot concatenate " + left.type.name + " and " + right.type.name, expr
                )
            return PlcObject(STRING, left.value + right.value)  # type: ignore[operator]

        if left.type == INTEGER and right.type == INTEGER:
            a, b = left.value, right.value
            assert isinstance(a, int) and isinstance(b, int)
            if op == "+":
                return PlcObject(INTEGER, a + b)
            if op == "-":
                return PlcObject(INTEGER, a - b)
            if op == "*":
                return PlcObject(INTEGER, a * b)
            if op == "/":
                if b == 0:
                    raise self.fault("division by zero", expr)
                return PlcObject(INTEGER, _int_div_trunc(a, b))

        if left.type == DECIMAL and right.type == DECIMAL:
            x, y = left.value, right.value
            assert isinstance(x, Decimal) and isinstance(y, Decimal)
            if op == "+":
                return PlcObject(DECIMAL, _EXACT.add(x, y))
            if op == "-":
                return PlcObject(DECIMAL, _EXACT.subtract(x, y))
            if op == "*":
                return PlcObject(DECIMAL, _EXACT.multiply(x, y))
            if op == "/":
                if y.is_zero():
                    raise self.fault("division by zero", expr)
                return PlcObject(DECIMAL, _decimal_divide(x, y))

        raise self.fault(
            "unsupported operand types: " + left.type.name + " " + op + " " + right.type.name,
            expr,
        )


def run(source: Source, scope: Scope) -> PlcObject:
    """Run source against a root scope of built-ins and return main()'s value."""
    return Interpreter(scope).run(source)
