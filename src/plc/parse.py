"""PLC parser — recursive descent, one method per grammar production."""

from __future__ import annotations

from decimal import Decimal

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
    ReturnStmt,
    Source,
    Stmt,
    WhileStmt,
)
from .errors import ParseError
from .tokens import (
    TK_CHARACTER,
    TK_DECIMAL,
    TK_IDENTIFIER,
    TK_INTEGER,
    TK_OPERATOR,
    TK_STRING,
    Token,
    unescape,
)

KEYWORDS: set[str] = {
    "LET",
    "DEF",
    "DO",
    "END",
    "IF",
    "ELSE",
    "FOR",
    "IN",
    "WHILE",
    "RETURN",
    "AND",
    "OR",
    "NIL",
    "TRUE",
    "FALSE",
}

LOGICAL_OPS: set[str] = {"AND", "OR"}

COMPARE_OPS: set[str] = {"<", "<=", ">", ">=", "==", "!="}


class Parser:
    """Recursive descent parser for PLC."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def has_more(self) -> bool:
        return self.pos < len(self.tokens)

    def current(self) -> Token | None:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def advance(self) -> Token:
        tok = self.current()
        if tok is None:
            raise self.error("unexpected end of input")
        self.pos += 1
        return tok

    def at(self, text: str) -> bool:
        """Match the current token's text. Keywords never match operators."""
        tok = self.current()
        if tok is None or tok.text != text:
            return False
        if text in KEYWORDS:
            return tok.kind == TK_IDENTIFIER
        return tok.kind == TK_OPERATOR

    def at_ident(self) -> bool:
        tok = self.current()
        return tok is not None and tok.kind == TK_IDENTIFIER and tok.text not in KEYWORDS

    def expect(self, text: str) -> Token:
        if not self.at(text):
            raise self.error("expected '" + text + "', got " + self._describe())
        return self.advance()

    def expect_ident(self) -> Token:
        if not self.at_ident():
            raise self.error("expected identifier, got " + self._describe())
        return self.advance()

    def error(self, msg: str) -> ParseError:
        return ParseError(msg, self._offset())

    def _describe(self) -> str:
        tok = self.current()
        if tok is None:
            return "end of input"
        return "'" + tok.text + "'"

    def _offset(self) -> int:
        """Offset of the current token, or the end of input once exhausted."""
        tok = self.current()
        if tok is not None:
            return tok.offset
        if not self.tokens:
            return 0
        last = self.tokens[len(self.tokens) - 1]
        return last.offset + len(last.text)

    # ── Top Level ────────────────────────────────────────────

    def parse_source(self) -> Source:
        """Source = Field* Method*"""
        offset = self._offset()
        fields: list[Field] = []
        methods: list[Method] = []
        while self.has_more():
            if self.at("LET"):
                if methods:
                    raise self.error("fields must precede methods")
                fields.append(self.parse_field())
            elif self.at("DEF"):
                methods.append(self.parse_method())
            else:
                raise self.error("expected field or method, got " + self._describe())
        return Source(offset, fields, methods)

    def parse_field(self) -> Field:
        """Field = 'LET' IDENT ':' IDENT ( '=' Expr )? ';'"""
        offset = self._offset()
        self.expect("LET")
        name = self.expect_ident().text
        self.expect(":")
        type_name = self.expect_ident().text
        value: Expr | None = None
        if self.at("="):
            self.advance()
            value = self.parse_expr()
        self.expect(";")
        return Field(offset, name, type_name, value)

    def parse_method(self) -> Method:
        """Method = 'DEF' IDENT '(' Params? ')' ( ':' IDENT )? 'DO' Stmt* 'END'"""
        offset = self._offset()
        self.expect("DEF")
        name = self.expect_ident().text
        self.expect("(")
        parameters: list[str] = []
        parameter_type_names: list[str] = []
        if not self.at(")"):
            while True:
                parameters.append(self.expect_ident().text)
                self.expect(":")
                parameter_type_names.append(self.expect_ident().text)
                if not self.at(","):
                    break
                self.advance()
        self.expect(")")
        return_type_name: str | None = None
        if self.at(":"):
            self.advance()
            return_type_name = self.expect_ident().text
        self.expect("DO")
        statements = self.parse_block("END")
        self.expect("END")
        return Method(offset, name, parameters, parameter_type_names, return_type_name, statements)

    def parse_block(self, *terminators: str) -> list[Stmt]:
        """Parse statements up to (not including) one of the terminators."""
        stmts: list[Stmt] = []
        while not any(self.at(t) for t in terminators):
            if not self.has_more():
                raise self.error("expected '" + terminators[0] + "', got end of input")
            stmts.append(self.parse_stmt())
        return stmts

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> Stmt:
        if self.at("LET"):
            return self.parse_declaration()
        if self.at("IF"):
            return self.parse_if_stmt()
        if self.at("FOR"):
            return self.parse_for_stmt()
        if self.at("WHILE"):
            return self.parse_while_stmt()
        if self.at("RETURN"):
            return self.parse_return_stmt()
        return self.parse_expr_stmt()

    def parse_declaration(self) -> Declaration:
        """Declaration = 'LET' IDENT ( ':' IDENT )? ( '=' Expr )? ';'"""
        offset = self._offset()
        self.expect("LET")
        name = self.expect_ident().text
        type_name: str | None = None
        if self.at(":"):
            self.advance()
            type_name = self.expect_ident().text
        value: Expr | None = None
        if self.at("="):
            self.advance()
            value = self.parse_expr()
        self.expect(";")
        return Declaration(offset, name, type_name, value)

    def parse_if_stmt(self) -> IfStmt:
        """If = 'IF' Expr 'DO' Stmt* ( 'ELSE' Stmt* )? 'END'"""
        offset = self._offset()
        self.expect("IF")
        condition = self.parse_expr()
        self.expect("DO")
        then_statements = self.parse_block("ELSE", "END")
        else_statements: list[Stmt] = []
        if self.at("ELSE"):
            self.advance()
            else_statements = self.parse_block("END")
        self.expect("END")
        return IfStmt(offset, condition, then_statements, else_statements)

    def parse_for_stmt(self) -> ForStmt:
        """For = 'FOR' IDENT 'IN' Expr 'DO' Stmt* 'END'"""
        offset = self._offset()
        self.expect("FOR")
        name = self.expect_ident().text
        self.expect("IN")
        value = self.parse_expr()
        self.expect("DO")
        statements = self.parse_block("END")
        self.expect("END")
        return ForStmt(offset, name, value, statements)

    def parse_while_stmt(self) -> WhileStmt:
        """While = 'WHILE' Expr 'DO' Stmt* 'END'"""
        offset = self._offset()
        self.expect("WHILE")
        condition = self.parse_expr()
        self.expect("DO")
        statements = self.parse_block("END")
        self.expect("END")
        return WhileStmt(offset, condition, statements)

    def parse_return_stmt(self) -> ReturnStmt:
        """Return = 'RETURN' Expr ';'"""
        offset = self._offset()
        self.expect("RETURN")
        value = self.parse_expr()
        self.expect(";")
        return ReturnStmt(offset, value)

    def parse_expr_stmt(self) -> Stmt:
        """ExprStmt = Expr ( '=' Expr )? ';'"""
        offset = self._offset()
        expr = self.parse_expr()
        if self.at("="):
            self.advance()
            value = self.parse_expr()
            self.expect(";")
            return Assignment(offset, expr, value)
        self.expect(";")
        return ExprStmt(offset, expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        return self.parse_logical()

    def parse_logical(self) -> Expr:
        """Logical = Comparison ( ( 'AND' | 'OR' ) Comparison )*"""
        left = self.parse_comparison()
        while self.at("AND") or self.at("OR"):
            op = self.advance().text
            right = self.parse_comparison()
            left = Binary(left.offset, op, left, right)
        return left

    def parse_comparison(self) -> Expr:
        """Comparison = Additive ( CompOp Additive )*"""
        left = self.parse_additive()
        while any(self.at(op) for op in COMPARE_OPS):
            op = self.advance().text
            right = self.parse_additive()
            left = Binary(left.offset, op, left, right)
        return left

    def parse_additive(self) -> Expr:
        """Additive = Multiplicative ( ( '+' | '-' ) Multiplicative )*"""
        left = self.parse_multiplicative()
        while self.at("+") or self.at("-"):
            op = self.advance().text
            right = self.parse_multiplicative()
            left = Binary(left.offset, op, left, right)
        return left

    def parse_multiplicative(self) -> Expr:
        """Multiplicative = Secondary ( ( '*' | '/' ) Secondary )*"""
        left = self.parse_secondary()
        while self.at("*") or self.at("/"):
            op = self.advance().text
            right = self.parse_secondary()
            left = Binary(left.offset, op, left, right)
        return left

    def parse_secondary(self) -> Expr:
        """Secondary = Primary ( '.' IDENT ( '(' Args? ')' )? )*"""
        expr = self.parse_primary()
        while self.at("."):
            self.advance()
            name = self.expect_ident().text
            if self.at("("):
                self.advance()
                args = self.parse_arg_list()
                self.expect(")")
                expr = Call(expr.offset, expr, name, args)
            else:
                expr = Access(expr.offset, expr, name)
        return expr

    def parse_arg_list(self) -> list[Expr]:
        """Args = ( Expr ( ',' Expr )* )?"""
        args: list[Expr] = []
        if self.at(")"):
            return args
        args.append(self.parse_expr())
        while self.at(","):
            self.advance()
            args.append(self.parse_expr())
        return args

    def parse_primary(self) -> Expr:
        """Parse a primary expression."""
        tok = self.current()
        if tok is None:
            raise self.error("expected expression, got end of input")
        offset = tok.offset

        # Keyword literals
        if self.at("NIL"):
            self.advance()
            return Literal(offset, LIT_NIL, None)
        if self.at("TRUE") or self.at("FALSE"):
            self.advance()
            return Literal(offset, LIT_BOOLEAN, tok.text == "TRUE")

        # Numeric and text literals
        if tok.kind == TK_INTEGER:
            self.advance()
            return Literal(offset, LIT_INTEGER, int(tok.text))
        if tok.kind == TK_DECIMAL:
            self.advance()
            return Literal(offset, LIT_DECIMAL, Decimal(tok.text))
        if tok.kind == TK_CHARACTER:
            self.advance()
            return Literal(offset, LIT_CHARACTER, unescape(tok.text[1:-1]))
        if tok.kind == TK_STRING:
            self.advance()
            return Literal(offset, LIT_STRING, unescape(tok.text[1:-1]))

        # Access or call
        if self.at_ident():
            name = self.advance().text
            if self.at("("):
                self.advance()
                args = self.parse_arg_list()
                self.expect(")")
                return Call(offset, None, name, args)
            return Access(offset, None, name)

        # Parenthesized expression
        if self.at("("):
            self.advance()
            inner = self.parse_expr()
            self.expect(")")
            return Group(offset, inner)

        raise self.error("expected expression, got " + self._describe())


def parse(tokens: list[Token]) -> Source:
    """Parse a token list into a Source node."""
    return Parser(tokens).parse_source()
