"""Olox CLI — run a script, or start the REPL with no arguments."""

from __future__ import annotations

import sys

from . import (
    EXIT_DATA_ERR,
    EXIT_NO_INPUT,
    EXIT_USAGE,
    execute,
    exit_code,
    with_deep_stack,
)
from .report import Reporter, RunMode
from .runtime import Interpreter


USAGE: str = "Usage: olox [script]"
PROMPT: str = ">> "


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    if len(args) > 1:
        print(USAGE)
        return EXIT_USAGE
    if len(args) == 1:
        return with_deep_stack(run_file, args[0])
    with_deep_stack(run_prompt)
    return 0


def run_file(filepath: str) -> int:
    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("olox: " + filepath + ": No such file or directory", file=sys.stderr)
        return EXIT_NO_INPUT
    except OSError as e:
        print("olox: " + filepath + ": " + str(e), file=sys.stderr)
        return EXIT_NO_INPUT
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("olox: " + filepath + ": invalid utf-8", file=sys.stderr)
        return EXIT_DATA_ERR

    reporter = Reporter()
    interpreter = Interpreter(reporter)
    execute(source, interpreter, reporter)
    return exit_code(reporter)


def run_prompt() -> None:
    """Read-eval-print loop. Globals persist across lines; errors do not end it."""
    reporter = Reporter()
    interpreter = Interpreter(reporter, mode=RunMode.REPL)
    while True:
        print(PROMPT, end="", flush=True)
        line = sys.stdin.readline()
        if line == "":
            break
        execute(line, interpreter, reporter, RunMode.REPL)
        reporter.reset()


if __name__ == "__main__":
    sys.exit(main())
