"""Built-in functions available to every PLC program."""

from __future__ import annotations

import sys
from typing import TextIO

from .environment import (
    ANY,
    INTEGER,
    INTEGER_ITERABLE,
    NIL,
    NIL_OBJECT,
    PlcObject,
    Scope,
)
from .backend.java import RANGE_HELPER_NAME
from .errors import PlcRuntimeFault


def root_scope(out: TextIO | None = None) -> Scope:
    """Build a root scope holding the built-ins.

    print writes to out, or to sys.stdout as it is at call time when out is None.
    """
    scope = Scope(None)

    def print_(args: list[PlcObject]) -> PlcObject:
        stream = out if out is not None else sys.stdout
        stream.write(args[0].display() + "\n")
        return NIL_OBJECT

    def range_(args: list[PlcObject]) -> PlcObject:
        if args[0].type != INTEGER or args[1].type != INTEGER:
            raise PlcRuntimeFault("range expects two Integer arguments")
        return PlcObject(INTEGER_ITERABLE, range(args[0].value, args[1].value))  # type: ignore[arg-type]

    scope.define_function("print", "System.out.println", [ANY], NIL, print_)
    scope.define_function("range", RANGE_HELPER_NAME, [INTEGER, INTEGER], INTEGER_ITERABLE, range_)
    return scope
