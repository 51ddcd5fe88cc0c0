"""PLC diagnostics — one exception family shared by every pass."""

from __future__ import annotations


class PlcError(Exception):
    """Base error for scanning, parsing, analysis and evaluation."""

    kind: str = "plc"

    def __init__(self, msg: str, offset: int | None = None):
        if offset is None:
            super().__init__(msg)
        else:
            super().__init__(msg + " at offset " + str(offset))
        self.msg: str = msg
        self.offset: int | None = offset


class LexError(PlcError):
    """Malformed token, unterminated literal or invalid escape."""

    kind = "lex"


class ParseError(PlcError):
    """Grammar violation."""

    kind = "parse"


class PlcTypeError(PlcError):
    """Static type error found by the analyzer."""

    kind = "type"


class PlcRuntimeFault(PlcError):
    """Dynamic fault raised while interpreting a program."""

    kind = "runtime"
