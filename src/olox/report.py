"""Olox diagnostics — the sink shared by every pipeline stage."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, TextIO

from .tokens import EOF, Token

if TYPE_CHECKING:
    from .runtime import RuntimeFault


class RunMode:
    """How source text reaches the pipeline."""

    FILE = "file"
    REPL = "repl"


class Reporter:
    """Collects build and runtime diagnostics and writes them to a stream."""

    def __init__(self, err: TextIO | None = None):
        self.err: TextIO = err if err is not None else sys.stderr
        self.had_build_error: bool = False
        self.had_runtime_error: bool = False

    def error(self, line: int, message: str) -> None:
        self._report(line, "", message)

    def error_at(self, token: Token, message: str) -> None:
        self._report(token.line, _where(token), message)

    def warning_at(self, token: Token, message: str) -> None:
        print(
            "[line " + str(token.line) + "] Warning" + _where(token) + ": " + message,
            file=self.err,
        )

    def runtime_error(self, fault: RuntimeFault) -> None:
        print(fault.msg + "\n[line " + str(fault.token.line) + "]", file=self.err)
        self.had_runtime_error = True

    def reset(self) -> None:
        """Forget build errors; the REPL calls this between lines."""
        self.had_build_error = False

    def _report(self, line: int, where: str, message: str) -> None:
        print("[line " + str(line) + "] Error" + where + ": " + message, file=self.err)
        self.had_build_error = True


def _where(token: Token) -> str:
    if token.kind == EOF:
        return " at end"
    return " at '" + token.lexeme + "'"
