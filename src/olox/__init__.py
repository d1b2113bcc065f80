"""Olox interpreter — public API."""

from __future__ import annotations

from dataclasses import dataclass
import io
import sys
import threading
from typing import Any, Callable, TypeVar

from .ast import Stmt
from .emit import to_sexpr as to_sexpr
from .parse import Parser
from .report import Reporter, RunMode as RunMode
from .resolve import Resolver
from .runtime import Interpreter, RuntimeFault as RuntimeFault
from .tokens import tokenize as tokenize

EXIT_OK = 0
EXIT_USAGE = 64
EXIT_DATA_ERR = 65
EXIT_NO_INPUT = 66
EXIT_SOFTWARE = 70

# Room for a few thousand nested Olox calls.
RECURSION_LIMIT = 50_000
STACK_SIZE = 256 * 1024 * 1024

T = TypeVar("T")


@dataclass
class RunResult:
    exit_code: int
    stdout: str
    stderr: str


def parse(source: str, reporter: Reporter, mode: str = RunMode.FILE) -> list[Stmt]:
    """Scan and parse Olox source. Syntax errors go to the reporter."""
    tokens = tokenize(source, reporter)
    return Parser(tokens, reporter, mode).parse_program()


def resolve(stmts: list[Stmt], interpreter: Interpreter, reporter: Reporter) -> None:
    """Record the frame slot of every local reference with the interpreter."""
    Resolver(interpreter, reporter).resolve(stmts)


def execute(
    source: str,
    interpreter: Interpreter,
    reporter: Reporter,
    mode: str = RunMode.FILE,
) -> None:
    """Run one source text against an existing interpreter.

    Stops after the first stage that reports a build error.
    """
    stmts = parse(source, reporter, mode)
    if reporter.had_build_error:
        return
    resolve(stmts, interpreter, reporter)
    if reporter.had_build_error:
        return
    interpreter.interpret(stmts)


def exit_code(reporter: Reporter) -> int:
    if reporter.had_build_error:
        return EXIT_DATA_ERR
    if reporter.had_runtime_error:
        return EXIT_SOFTWARE
    return EXIT_OK


def with_deep_stack(fn: Callable[..., T], *args: Any) -> T:
    """Call fn(*args) on a worker thread with a large stack and recursion limit.

    Every Olox call costs several Python frames, so the host defaults would
    cap Olox recursion at a couple of hundred calls.
    """
    result: list[T] = []
    errors: list[BaseException] = []

    def target() -> None:
        previous_limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(previous_limit, RECURSION_LIMIT))
        try:
            result.append(fn(*args))
        except BaseException as e:
            errors.append(e)
        finally:
            sys.setrecursionlimit(previous_limit)

    previous_size = threading.stack_size(STACK_SIZE)
    try:
        worker = threading.Thread(target=target, daemon=True)
        worker.start()
    finally:
        threading.stack_size(previous_size)
    worker.join()
    if errors:
        raise errors[0]
    return result[0]


def run(source: str, mode: str = RunMode.FILE) -> RunResult:
    """Run a whole program with in-memory streams."""
    out = io.StringIO()
    err = io.StringIO()
    reporter = Reporter(err)
    interpreter = Interpreter(reporter, out, mode)
    with_deep_stack(execute, source, interpreter, reporter, mode)
    return RunResult(exit_code(reporter), out.getvalue(), err.getvalue())
