"""Pytest configuration for the Olox test suite."""

import io
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from olox import parse, resolve  # noqa: E402
from olox.report import Reporter, RunMode  # noqa: E402
from olox.runtime import Interpreter  # noqa: E402


class Pipeline:
    """One reporter and interpreter pair writing to in-memory streams."""

    def __init__(self, mode: str = RunMode.FILE):
        self.mode = mode
        self.out = io.StringIO()
        self.err = io.StringIO()
        self.reporter = Reporter(self.err)
        self.interpreter = Interpreter(self.reporter, self.out, mode)

    def parse(self, source: str):
        return parse(source, self.reporter, self.mode)

    def resolve(self, source: str):
        stmts = self.parse(source)
        resolve(stmts, self.interpreter, self.reporter)
        return stmts

    @property
    def stdout(self) -> str:
        return self.out.getvalue()

    @property
    def stderr(self) -> str:
        return self.err.getvalue()


@pytest.fixture
def pipeline() -> Pipeline:
    return Pipeline()


@pytest.fixture
def repl_pipeline() -> Pipeline:
    return Pipeline(RunMode.REPL)
