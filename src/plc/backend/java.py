"""Java backend: analyzed PLC AST → Java source.

The program becomes one class Main: fields become instance fields, methods
become instance methods, and a static main wrapper exits with the value of
the PLC entry point. Names and types come from the analyzer's annotations,
so the tree must have been analyzed first.
"""

from __future__ import annotations

from ..ast import (
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
from ..environment import NIL, STRING, PlcType

# Java reserved words that need escaping
_JAVA_RESERVED = frozenset(
    {
        "abstract",
        "assert",
        "boolean",
        "break",
        "byte",
        "case",
        "catch",
        "char",
        "class",
        "const",
        "continue",
        "default",
        "do",
        "double",
        "else",
        "enum",
        "extends",
        "final",
        "finally",
        "float",
        "for",
        "goto",
        "if",
        "implements",
        "import",
        "instanceof",
        "int",
        "interface",
        "long",
        "native",
        "new",
        "package",
        "private",
        "protected",
        "public",
        "return",
        "short",
        "static",
        "strictfp",
        "super",
        "switch",
        "synchronized",
        "this",
        "throw",
        "throws",
        "transient",
        "try",
        "void",
        "volatile",
        "while",
        "true",
        "false",
        "null",
        "var",
        "_",
    }
)

# Names that must not be shadowed or overridden by program identifiers
_JAVA_CLAIMED = frozenset(
    {
        "System",
        "java",
        "clone",
        "equals",
        "finalize",
        "getClass",
        "hashCode",
        "notify",
        "notifyAll",
        "toString",
        "wait",
    }
)

# Java operator precedence (higher = binds tighter). PLC puts AND/OR on one
# tier and all comparisons on another, Java does not.
_PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 6,
    "!=": 6,
    "<": 7,
    "<=": 7,
    ">": 7,
    ">=": 7,
    "+": 9,
    "-": 9,
    "*": 10,
    "/": 10,
}

_COMPARE_OPS = frozenset({"==", "!=", "<", "<=", ">", ">="})

# PLC identifiers never contain '$', so generated names cannot collide with them
RANGE_HELPER_NAME = "$range"

_RANGE_HELPER = [
    f"static Iterable<Integer> {RANGE_HELPER_NAME}(int start, int end) {{",
    "    return () -> java.util.stream.IntStream.range(start, end).iterator();",
    "}",
]


def java_safe_name(name: str) -> str:
    """Map a PLC identifier to a Java one: '-' becomes '$', reserved and claimed names get a '$' suffix."""
    result = name.replace("-", "$")
    if result in _JAVA_RESERVED or result in _JAVA_CLAIMED:
        return result + "$"
    return result


def generate(source: Source) -> str:
    """Emit Java code for an analyzed Source."""
    return JavaGenerator().generate(source)


class JavaGenerator:
    """Emit Java code from an analyzed PLC AST."""

    def __init__(self) -> None:
        self.indent = 0
        self.lines: list[str] = []
        self._return_type: PlcType = NIL
        self._needs_range = False
        self._hoisted: list[str] = []

    def generate(self, source: Source) -> str:
        self.indent = 0
        self.lines = []
        self._needs_range = False
        self._hoisted = []
        self._emit_source(source)
        return "\n".join(self.lines) + "\n"

    def _line(self, text: str = "") -> None:
        if text:
            self.lines.append("    " * self.indent + text)
        else:
            self.lines.append("")

    def _flush_hoisted(self) -> None:
        """Emit the Nil-valued calls collected while rendering the next statement."""
        pending, self._hoisted = self._hoisted, []
        for text in pending:
            self._line(text)

    # ── Declarations ────────────────────────────────────────

    def _emit_source(self, source: Source) -> None:
        self._line("public class Main {")
        self.indent += 1
        self._line()
        if source.fields:
            for f in source.fields:
                self._emit_field(f)
            self._line()
        self._line("public static void main(String[] args) {")
        self._line("    System.exit(new Main().main());")
        self._line("}")
        for m in source.methods:
            self._line()
            self._emit_method(m)
        if self._needs_range:
            self._line()
            for text in _RANGE_HELPER:
                self._line(text)
        self._line()
        self.indent -= 1
        self._line("}")

    def _emit_field(self, f: Field) -> None:
        var = f.variable
        text = f"{var.type.java_name} {var.java_name}"
        if f.value is not None:
            text += " = " + self._expr(f.value)
        if self._hoisted:
            # Instance initializers run in order with field initializers
            self._line("{")
            self.indent += 1
            self._flush_hoisted()
            self.indent -= 1
            self._line("}")
        self._line(text + ";")

    def _emit_method(self, m: Method) -> None:
        fn = m.function
        self._return_type = fn.return_type
        ret = "void" if fn.return_type == NIL else fn.return_type.java_name
        params = ", ".join(
            f"{typ.java_name} {java_safe_name(name)}"
            for name, typ in zip(m.parameters, fn.parameter_types)
        )
        self._line(f"{ret} {fn.java_name}({params}) {{")
        self._emit_block(m.statements)
        self._line("}")

    # ── Statements ──────────────────────────────────────────

    def _emit_block(self, stmts: list[Stmt]) -> None:
        self.indent += 1
        for s in stmts:
            self._emit_stmt(s)
        self.indent -= 1

    def _emit_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, ExprStmt):
            assert isinstance(stmt.expression, Call)
            text = self._call(stmt.expression)
            self._flush_hoisted()
            self._line(text + ";")
        elif isinstance(stmt, Declaration):
            var = stmt.variable
            text = f"{var.type.java_name} {var.java_name}"
            if stmt.value is not None:
                text += " = " + self._expr(stmt.value)
            self._flush_hoisted()
            self._line(text + ";")
        elif isinstance(stmt, Assignment):
            text = f"{self._expr(stmt.receiver)} = {self._expr(stmt.value)};"
            self._flush_hoisted()
            self._line(text)
        elif isinstance(stmt, IfStmt):
            cond = self._expr(stmt.condition)
            self._flush_hoisted()
            self._line(f"if ({cond}) {{")
            self._emit_block(stmt.then_statements)
            if stmt.else_statements:
                self._line("} else {")
                self._emit_block(stmt.else_statements)
            self._line("}")
        elif isinstance(stmt, ForStmt):
            name = java_safe_name(stmt.name)
            value = self._expr(stmt.value)
            self._flush_hoisted()
            self._line(f"for (int {name} : {value}) {{")
            self._emit_block(stmt.statements)
            self._line("}")
        elif isinstance(stmt, WhileStmt):
            self._emit_while(stmt)
        elif isinstance(stmt, ReturnStmt):
            value = self._expr(stmt.value)
            self._flush_hoisted()
            if self._return_type == NIL:
                # A void method has no value to return; only the call's effect remains
                self._line("return;")
            else:
                self._line(f"return {value};")
        else:
            raise RuntimeError("unhandled statement " + type(stmt).__name__)

    def _emit_while(self, stmt: WhileStmt) -> None:
        cond = self._expr(stmt.condition)
        if not self._hoisted:
            self._line(f"while ({cond}) {{")
            self._emit_block(stmt.statements)
            self._line("}")
            return
        # Hoisted calls must run before every test of the condition
        self._line("while (true) {")
        self.indent += 1
        self._flush_hoisted()
        self._line(f"if (!({cond})) {{")
        self._line("    break;")
        self._line("}")
        self.indent -= 1
        self._emit_block(stmt.statements)
        self._line("}")

    # ── Expressions ─────────────────────────────────────────

    def _expr(self, expr: Expr) -> str:
        if isinstance(expr, Literal):
            return self._literal(expr)
        if isinstance(expr, Group):
            inner = self._expr(expr.expression)
            if inner == "null":
                return inner
            return "(" + inner + ")"
        if isinstance(expr, Binary):
            return self._binary(expr)
        if isinstance(expr, Access):
            name = expr.variable.java_name
            if expr.receiver is None:
                return name
            return f"{self._expr(expr.receiver)}.{name}"
        if isinstance(expr, Call):
            text = self._call(expr)
            if expr.function.return_type == NIL:
                # A void call is not a Java expression: run it first, use null
                self._hoisted.append(text + ";")
                return "null"
            return text
        raise RuntimeError("unhandled expression " + type(expr).__name__)

    def _call(self, expr: Call) -> str:
        fn = expr.function
        if fn.java_name == RANGE_HELPER_NAME:
            self._needs_range = True
        params = fn.parameter_types if expr.receiver is None else fn.parameter_types[1:]
        args = []
        for arg, param in zip(expr.arguments, params):
            text = self._expr(arg)
            if text == "null":
                # Bare null is ambiguous between overloads such as println
                text = f"({param.java_name}) null"
            args.append(text)
        joined = ", ".join(args)
        if expr.receiver is None:
            return f"{fn.java_name}({joined})"
        return f"{self._expr(expr.receiver)}.{fn.java_name}({joined})"

    def _literal(self, expr: Literal) -> str:
        if expr.kind == LIT_NIL:
            return "null"
        if expr.kind == LIT_BOOLEAN:
            return "true" if expr.value else "false"
        if expr.kind == LIT_CHARACTER:
            return _char_literal(str(expr.value))
        if expr.kind == LIT_STRING:
            return _string_literal(str(expr.value))
        if expr.kind == LIT_DECIMAL:
            return format(expr.value, "f")
        return str(expr.value)

    def _binary(self, expr: Binary) -> str:
        op = _binary_op(expr.op)
        left = self._expr(expr.left)
        right = self._operand(expr.right, op, False)
        if expr.left.type == STRING and expr.right.type == STRING and op in _COMPARE_OPS:
            # Strings compare by value through method calls on the left operand
            if isinstance(expr.left, Binary):
                left = "(" + left + ")"
            if op == "==":
                return f"{left}.equals({right})"
            if op == "!=":
                return f"!{left}.equals({right})"
            if op in ("<", "<=", ">", ">="):
                return f"{left}.compareTo({right}) {op} 0"
        if isinstance(expr.left, Binary) and _needs_parens(_binary_op(expr.left.op), op, True):
            left = "(" + left + ")"
        return f"{left} {op} {right}"

    def _operand(self, expr: Expr, parent_op: str, is_left: bool) -> str:
        text = self._expr(expr)
        if isinstance(expr, Binary) and _needs_parens(_binary_op(expr.op), parent_op, is_left):
            return "(" + text + ")"
        return text


def _binary_op(op: str) -> str:
    match op:
        case "AND":
            return "&&"
        case "OR":
            return "||"
        case _:
            return op


def _prec(op: str) -> int:
    return _PRECEDENCE.get(op, 0)


def _needs_parens(child_op: str, parent_op: str, is_left: bool) -> bool:
    """Check if child binary op needs parens when used as operand of parent op."""
    child_prec = _prec(child_op)
    parent_prec = _prec(parent_op)
    if child_prec < parent_prec:
        return True
    if child_prec == parent_prec and not is_left:
        return True
    return False


_JAVA_ESCAPES = {
    "\\": "\\\\",
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\b": "\\b",
}


def _string_literal(value: str) -> str:
    out = ""
    for ch in value:
        if ch == '"':
            out += '\\"'
        else:
            out += _JAVA_ESCAPES.get(ch, ch)
    return f'"{out}"'


def _char_literal(c: str) -> str:
    """Emit a Java char literal with proper escaping."""
    if c == "'":
        return "'\\''"
    return f"'{_JAVA_ESCAPES.get(c, c)}'"
