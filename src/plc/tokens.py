"""PLC scanner — lexes source into a flat token list."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import LexError

# Token kinds
TK_IDENTIFIER = "Identifier"
TK_INTEGER = "Integer"
TK_DECIMAL = "Decimal"
TK_CHARACTER = "Character"
TK_STRING = "String"
TK_OPERATOR = "Operator"

WHITESPACE: set[str] = {" ", "\t", "\n", "\r", "\b"}

# Operators that may be followed by '=' to form a two-character operator
COMPOUND_OPS: set[str] = {"<", ">", "!", "="}

ESCAPE_MAP: dict[str, str] = {
    "b": "\b",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "'": "'",
    '"': '"',
    "\\": "\\",
}


@dataclass(frozen=True)
class Token:
    """A classified lexeme. text is the exact source slice."""

    kind: str
    text: str
    offset: int

    def __repr__(self) -> str:
        return "Token(" + self.kind + ", " + repr(self.text) + ", " + str(self.offset) + ")"


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_ident_char(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c) or c == "-"


def _skip_escape(src: str, pos: int) -> int:
    """Validate the escape whose backslash is at pos. Returns the position after it."""
    if pos + 1 >= len(src):
        raise LexError("unterminated escape", pos + 1)
    if src[pos + 1] not in ESCAPE_MAP:
        raise LexError("invalid escape: \\" + src[pos + 1], pos)
    return pos + 2


def unescape(body: str) -> str:
    """Resolve escapes in the body of a character or string literal."""
    out: list[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\" and i + 1 < len(body) and body[i + 1] in ESCAPE_MAP:
            out.append(ESCAPE_MAP[body[i + 1]])
            i += 2
            continue
        out.append(c)
        i += 1
    return "".join(out)


def tokenize(source: str) -> list[Token]:
    """Tokenize PLC source into a flat list. Whitespace is never emitted."""
    tokens: list[Token] = []
    pos = 0
    length = len(source)

    while pos < length:
        c = source[pos]

        if c in WHITESPACE:
            pos += 1
            continue

        start = pos

        # Identifier: [A-Za-z_] [A-Za-z0-9_-]*
        if _is_alpha(c):
            pos += 1
            while pos < length and _is_ident_char(source[pos]):
                pos += 1
            tokens.append(Token(TK_IDENTIFIER, source[start:pos], start))
            continue

        # Number: [+-]? [0-9]+ ('.' [0-9]+)?
        signed = (c == "+" or c == "-") and pos + 1 < length and _is_digit(source[pos + 1])
        if _is_digit(c) or signed:
            pos += 1
            while pos < length and _is_digit(source[pos]):
                pos += 1
            kind = TK_INTEGER
            if pos < length and source[pos] == ".":
                if pos + 1 >= length or not _is_digit(source[pos + 1]):
                    raise LexError("trailing decimal point", pos)
                pos += 1
                while pos < length and _is_digit(source[pos]):
                    pos += 1
                kind = TK_DECIMAL
            tokens.append(Token(kind, source[start:pos], start))
            continue

        # Character literal: ' (char | escape) '
        if c == "'":
            pos += 1
            if pos >= length or source[pos] == "\n" or source[pos] == "\r":
                raise LexError("unterminated character literal", pos)
            if source[pos] == "'":
                raise LexError("empty character literal", pos)
            if source[pos] == "\\":
                pos = _skip_escape(source, pos)
            else:
                pos += 1
            if pos >= length or source[pos] != "'":
                raise LexError("unterminated character literal", pos)
            pos += 1
            tokens.append(Token(TK_CHARACTER, source[start:pos], start))
            continue

        # String literal: " (char | escape)* "
        if c == '"':
            pos += 1
            while pos < length and source[pos] != '"':
                if source[pos] == "\n" or source[pos] == "\r":
                    raise LexError("unterminated string literal", pos)
                if source[pos] == "\\":
                    pos = _skip_escape(source, pos)
                else:
                    pos += 1
            if pos >= length:
                raise LexError("unterminated string literal", pos)
            pos += 1
            tokens.append(Token(TK_STRING, source[start:pos], start))
            continue

        # Operator: [<>!=] '='? | any other character
        if c in COMPOUND_OPS and pos + 1 < length and source[pos + 1] == "=":
            pos += 2
        else:
            pos += 1
        tokens.append(Token(TK_OPERATOR, source[start:pos], start))

    return tokens
