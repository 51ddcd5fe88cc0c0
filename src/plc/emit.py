"""PLC emitter — converts an AST back into canonical PLC source.

Works on annotated and unannotated trees alike. Parentheses come only from
Group nodes, so a parsed tree prints back with its original grouping.
"""

from __future__ import annotations

from decimal import Decimal

from .ast import (
    LIT_BOOLEAN,
    LIT_CHARACTER,
    LIT_DECIMAL,
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
    ReturnStmt,
    Source,
    Stmt,
    WhileStmt,
)


def to_source(source: Source) -> str:
    """Render a Source back into PLC source text."""
    return _Emitter().emit_source(source)


class _Emitter:
    _INDENT: str = "    "

    _ESCAPES: dict[str, str] = {
        "\b": "\\b",
        "\n": "\\n",
        "\r": "\\r",
        "\t": "\\t",
        "\\": "\\\\",
    }

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._indent_level: int = 0

    # ── Public ──────────────────────────────────────────────

    def emit_source(self, source: Source) -> str:
        self._lines = []
        self._indent_level = 0
        for f in source.fields:
            self._emit_field(f)
        for m in source.methods:
            if self._lines:
                self._lines.append("")
            self._emit_method(m)
        text = "\n".join(self._lines)
        if text == "":
            return ""
        return text + "\n"

    # ── Lines / Blocks ──────────────────────────────────────

    def _emit_line(self, line: str) -> None:
        self._lines.append(self._INDENT * self._indent_level + line)

    def _emit_stmt_block(self, stmts: list[Stmt]) -> None:
        self._indent_level += 1
        for s in stmts:
            self._emit_stmt(s)
        self._indent_level -= 1

    # ── Declarations ────────────────────────────────────────

    def _emit_field(self, f: Field) -> None:
        line = "LET " + f.name + ": " + f.type_name
        if f.value is not None:
            line += " = " + self._render_expr(f.value)
        self._emit_line(line + ";")

    def _emit_method(self, m: Method) -> None:
        params = ", ".join(
            name + ": " + typ for name, typ in zip(m.parameters, m.parameter_type_names)
        )
        line = "DEF " + m.name + "(" + params + ")"
        if m.return_type_name is not None:
            line += ": " + m.return_type_name
        self._emit_line(line + " DO")
        self._emit_stmt_block(m.statements)
        self._emit_line("END")

    # ── Statements ──────────────────────────────────────────

    def _emit_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, ExprStmt):
            self._emit_line(self._render_expr(stmt.expression) + ";")
        elif isinstance(stmt, Declaration):
            line = "LET " + stmt.name
            if stmt.type_name is not None:
                line += ": " + stmt.type_name
            if stmt.value is not None:
                line += " = " + self._render_expr(stmt.value)
            self._emit_line(line + ";")
        elif isinstance(stmt, Assignment):
            self._emit_line(
                self._render_expr(stmt.receiver) + " = " + self._render_expr(stmt.value) + ";"
            )
        elif isinstance(stmt, IfStmt):
            self._emit_line("IF " + self._render_expr(stmt.condition) + " DO")
            self._emit_stmt_block(stmt.then_statements)
            if stmt.else_statements:
                self._emit_line("ELSE")
                self._emit_stmt_block(stmt.else_statements)
            self._emit_line("END")
        elif isinstance(stmt, ForStmt):
            self._emit_line("FOR " + stmt.name + " IN " + self._render_expr(stmt.value) + " DO")
            self._emit_stmt_block(stmt.statements)
            self._emit_line("END")
        elif isinstance(stmt, WhileStmt):
            self._emit_line("WHILE " + self._render_expr(stmt.condition) + " DO")
            self._emit_stmt_block(stmt.statements)
            self._emit_line("END")
        elif isinstance(stmt, ReturnStmt):
            self._emit_line("RETURN " + self._render_expr(stmt.value) + ";")
        else:
            raise RuntimeError("unhandled statement " + type(stmt).__name__)

    # ── Expressions ─────────────────────────────────────────

    def _render_expr(self, expr: Expr) -> str:
        if isinstance(expr, Literal):
            return self._render_literal(expr)
        if isinstance(expr, Group):
            return "(" + self._render_expr(expr.expression) + ")"
        if isinstance(expr, Binary):
            return self._render_expr(expr.left) + " " + expr.op + " " + self._render_expr(expr.right)
        if isinstance(expr, Access):
            if expr.receiver is None:
                return expr.name
            return self._render_expr(expr.receiver) + "." + expr.name
        if isinstance(expr, Call):
            args = "(" + ", ".join(self._render_expr(a) for a in expr.arguments) + ")"
            if expr.receiver is None:
                return expr.name + args
            return self._render_expr(expr.receiver) + "." + expr.name + args
        raise RuntimeError("unhandled expression " + type(expr).__name__)

    def _render_literal(self, expr: Literal) -> str:
        if expr.kind == LIT_NIL:
            return "NIL"
        if expr.kind == LIT_BOOLEAN:
            return "TRUE" if expr.value else "FALSE"
        if expr.kind == LIT_CHARACTER:
            return "'" + self._escape_text(str(expr.value), "'") + "'"
        if expr.kind == LIT_STRING:
            return '"' + self._escape_text(str(expr.value), '"') + '"'
        if expr.kind == LIT_DECIMAL:
            assert isinstance(expr.value, Decimal)
            return format(expr.value, "f")
        return str(expr.value)

    def _escape_text(self, s: str, quote: str) -> str:
        out = ""
        for ch in s:
            if ch in self._ESCAPES:
                out += self._ESCAPES[ch]
            elif ch == quote:
                out += "\\" + quote
            else:
                out += ch
        return out
