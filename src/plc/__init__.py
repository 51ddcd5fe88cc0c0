"""PLC scanner, parser, analyzer, interpreter and emitters — public API."""

from __future__ import annotations

from typing import TextIO

from .ast import Source
from .backend.java import generate
from .builtins import root_scope
from .check import Analyzer
from .emit import to_source as to_source
from .environment import PlcObject, Scope
from .errors import (
    LexError as LexError,
    ParseError as ParseError,
    PlcError as PlcError,
    PlcRuntimeFault as PlcRuntimeFault,
    PlcTypeError as PlcTypeError,
)
from .parse import Parser
from .runtime import Interpreter
from .tokens import Token, tokenize


def scan(text: str) -> list[Token]:
    """Tokenize PLC source text."""
    return tokenize(text)


def parse(text: str) -> Source:
    """Parse PLC source text into a Source AST."""
    return Parser(tokenize(text)).parse_source()


def analyze(source: Source, scope: Scope | None = None) -> None:
    """Annotate source in place. Uses the default built-ins when scope is None."""
    Analyzer(scope if scope is not None else root_scope()).analyze(source)


def run(source: Source, scope: Scope | None = None) -> PlcObject:
    """Evaluate source and return the value of main()."""
    return Interpreter(scope if scope is not None else root_scope()).run(source)


def emit_java(source: Source) -> str:
    """Emit Java for an analyzed Source."""
    return generate(source)


def execute(text: str, out: TextIO | None = None) -> PlcObject:
    """Scan, parse, analyze and run text. print writes to out (default stdout)."""
    scope = root_scope(out)
    source = parse(text)
    Analyzer(scope).analyze(source)
    return Interpreter(scope).run(source)
