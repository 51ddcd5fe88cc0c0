"""PLC CLI — check, run or translate .plc files."""

from __future__ import annotations

import sys

from . import analyze, emit_java, parse, to_source
from .builtins import root_scope
from .errors import PlcError
from .runtime import Interpreter


USAGE: str = """\
plc [OPTIONS] FILE

Run a PLC (.plc) program. The exit status is the value returned by main().

Options:
  --check          Analyze only; print nothing on success
  --emit java|plc  Print the Java translation or the canonical source
  --help           Show this help message
"""

EMIT_TARGETS: set[str] = {"java", "plc"}

# Each PLC call costs about ten interpreter frames
RECURSION_LIMIT: int = 10000


def _interpret(source, scope):
    limit = sys.getrecursionlimit()
    sys.setrecursionlimit(max(limit, RECURSION_LIMIT))
    try:
        return Interpreter(scope).run(source)
    finally:
        sys.setrecursionlimit(limit)


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    check_only = False
    emit_target = ""
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--check":
            check_only = True
            i += 1
        elif arg == "--emit":
            if i + 1 >= len(args):
                print("plc: --emit requires a target (java or plc)", file=sys.stderr)
                return 2
            emit_target = args[i + 1]
            if emit_target not in EMIT_TARGETS:
                print("plc: unknown emit target '" + emit_target + "'", file=sys.stderr)
                return 2
            i += 2
        elif arg.startswith("-") and arg != "-":
            print("plc: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("plc: unexpected argument '" + arg + "'", file=sys.stderr)
            return 2
    if filepath == "":
        print("plc: missing file argument", file=sys.stderr)
        return 2

    try:
        if filepath == "-":
            text = sys.stdin.read()
        else:
            with open(filepath, "rb") as f:
                text = f.read().decode("utf-8")
    except FileNotFoundError:
        print("plc: " + filepath + ": No such file or directory", file=sys.stderr)
        return 1
    except OSError as e:
        print("plc: " + filepath + ": " + str(e), file=sys.stderr)
        return 1
    except ValueError:
        print("plc: " + filepath + ": invalid utf-8", file=sys.stderr)
        return 1

    try:
        source = parse(text)
        if emit_target == "plc":
            sys.stdout.write(to_source(source))
            return 0
        scope = root_scope()
        analyze(source, scope)
        if check_only:
            return 0
        if emit_target == "java":
            sys.stdout.write(emit_java(source))
            return 0
        result = _interpret(source, scope)
    except PlcError as e:
        print("plc: " + e.kind + " error: " + str(e), file=sys.stderr)
        return 1
    except RecursionError:
        print("plc: runtime error: maximum recursion depth exceeded", file=sys.stderr)
        return 1

    if isinstance(result.value, int) and not isinstance(result.value, bool):
        return result.value
    return 0


if __name__ == "__main__":
    sys.exit(main())
