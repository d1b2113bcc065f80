"""Olox resolver — static pass that pins every local reference to a frame slot.

For each Variable / Assign / This / Super node bound in an enclosing local
scope, records (distance, slot) with the interpreter: how many frames to walk
outward and which slot of that frame holds the binding. Global references are
left out and looked up by name at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .ast import (
    Assign,
    Binary,
    Block,
    Break,
    Call,
    Class,
    Expr,
    Expression,
    Function,
    FunctionDecl,
    Get,
    Grouping,
    If,
    Literal,
    Logical,
    Print,
    Return,
    Set,
    Stmt,
    Super,
    Ternary,
    This,
    Unary,
    Var,
    Variable,
    While,
)
from .report import Reporter
from .tokens import SUPER, THIS, Token

if TYPE_CHECKING:
    from .runtime import Interpreter


# Variable states
DECLARED = "declared"
DEFINED = "defined"
READ = "read"

# Function kinds
FN_NONE = "none"
FN_FUNCTION = "function"
FN_METHOD = "method"
FN_INITIALIZER = "initializer"

# Class kinds
CLASS_NONE = "none"
CLASS_CLASS = "class"
CLASS_SUBCLASS = "subclass"


@dataclass
class _Local:
    token: Token
    state: str
    slot: int


class Resolver:
    def __init__(self, interpreter: Interpreter, reporter: Reporter):
        self.interpreter = interpreter
        self.reporter = reporter
        self.scopes: list[dict[str, _Local]] = []
        self.current_function: str = FN_NONE
        self.current_class: str = CLASS_NONE

    def resolve(self, stmts: list[Stmt]) -> None:
        for st in stmts:
            self._resolve_stmt(st)

    # ── Scope management ──────────────────────────────────────

    def enter_scope(self) -> None:
        self.scopes.append({})

    def exit_scope(self) -> None:
        scope = self.scopes.pop()
        for local in scope.values():
            if local.state == DEFINED:
                self.reporter.warning_at(local.token, "Local variable is never used.")

    def declare(self, name: Token) -> None:
        if not self.scopes:
            return
        scope = self.scopes[-1]
        if name.lexeme in scope:
            self.reporter.error_at(
                name, "Variable with this name already declared in this scope."
            )
        scope[name.lexeme] = _Local(name, DECLARED, len(scope))

    def define(self, name: Token) -> None:
        if not self.scopes:
            return
        self.scopes[-1][name.lexeme].state = DEFINED

    def _bind_keyword(self, kind: str, lexeme: str, line: int) -> None:
        """Seed the innermost scope with an implicit this / super binding."""
        scope = self.scopes[-1]
        scope[lexeme] = _Local(Token(kind, lexeme, None, line), READ, len(scope))

    def _resolve_local(self, expr: Expr, name: Token, is_read: bool) -> None:
        i = len(self.scopes) - 1
        while i >= 0:
            local = self.scopes[i].get(name.lexeme)
            if local is not None:
                self.interpreter.resolve(expr, len(self.scopes) - 1 - i, local.slot)
                if is_read:
                    local.state = READ
                return
            i -= 1

    # ── Statements ────────────────────────────────────────────

    def _resolve_stmt(self, st: Stmt) -> None:
        if isinstance(st, Block):
            self.enter_scope()
            self.resolve(st.statements)
            self.exit_scope()
            return

        if isinstance(st, Var):
            self.declare(st.name)
            if st.initializer is not None:
                self._resolve_expr(st.initializer)
            self.define(st.name)
            return

        if isinstance(st, FunctionDecl):
            # Defined before the body so the function can recurse.
            self.declare(st.name)
            self.define(st.name)
            self._resolve_function(st.function, FN_FUNCTION)
            return

        if isinstance(st, Class):
            self._resolve_class(st)
            return

        if isinstance(st, Expression):
            self._resolve_expr(st.expression)
            return

        if isinstance(st, Print):
            self._resolve_expr(st.expression)
            return

        if isinstance(st, If):
            self._resolve_expr(st.condition)
            self._resolve_stmt(st.then_branch)
            if st.else_branch is not None:
                self._resolve_stmt(st.else_branch)
            return

        if isinstance(st, While):
            self._resolve_expr(st.condition)
            self._resolve_stmt(st.body)
            return

        if isinstance(st, Return):
            if self.current_function == FN_NONE:
                self.reporter.error_at(st.keyword, "Can't return from top-level code.")
            if st.value is not None:
                if self.current_function == FN_INITIALIZER:
                    self.reporter.error_at(
                        st.keyword, "Can't return a value from an initializer."
                    )
                self._resolve_expr(st.value)
            return

        if isinstance(st, Break):
            return

        raise AssertionError("unhandled statement: " + type(st).__name__)

    def _resolve_class(self, st: Class) -> None:
        enclosing_class = self.current_class
        self.current_class = CLASS_CLASS

        self.declare(st.name)
        self.define(st.name)

        if st.superclass is not None:
            if st.superclass.name.lexeme == st.name.lexeme:
                self.reporter.error_at(
                    st.superclass.name, "A class can't inherit from itself."
                )
            self.current_class = CLASS_SUBCLASS
            self._resolve_expr(st.superclass)
            self.enter_scope()
            self._bind_keyword(SUPER, "super", st.superclass.name.line)

        self.enter_scope()
        self._bind_keyword(THIS, "this", st.name.line)
        for method in st.methods:
            kind = FN_INITIALIZER if method.name.lexeme == "init" else FN_METHOD
            self._resolve_function(method.function, kind)
        self.exit_scope()

        # Class methods bind `this` to the class object in a frame of their
        # own, alongside the instance-method frame rather than inside it.
        for method in st.class_methods:
            self.enter_scope()
            self._bind_keyword(THIS, "this", st.name.line)
            self._resolve_function(method.function, FN_METHOD)
            self.exit_scope()

        if st.superclass is not None:
            self.exit_scope()
        self.current_class = enclosing_class

    def _resolve_function(self, fn: Function, kind: str) -> None:
        enclosing_function = self.current_function
        self.current_function = kind
        self.enter_scope()
        if fn.params is not None:
            for param in fn.params:
                self.declare(param)
                self.define(param)
        self.resolve(fn.body)
        self.exit_scope()
        self.current_function = enclosing_function

    # ── Expressions ───────────────────────────────────────────

    def _resolve_expr(self, expr: Expr) -> None:
        if isinstance(expr, Variable):
            if self.scopes:
                local = self.scopes[-1].get(expr.name.lexeme)
                if local is not None and local.state == DECLARED:
                    self.reporter.error_at(
                        expr.name, "Can't read local variable in its own initializer."
                    )
            self._resolve_local(expr, expr.name, True)
            return

        if isinstance(expr, Assign):
            self._resolve_expr(expr.value)
            self._resolve_local(expr, expr.name, False)
            return

        if isinstance(expr, This):
            if self.current_class == CLASS_NONE:
                self.reporter.error_at(
                    expr.keyword, "Can't use 'this' outside of a class."
                )
                return
            self._resolve_local(expr, expr.keyword, True)
            return

        if isinstance(expr, Super):
            if self.current_class == CLASS_NONE:
                self.reporter.error_at(
                    expr.keyword, "Can't use 'super' outside of a class."
                )
            elif self.current_class == CLASS_CLASS:
                self.reporter.error_at(
                    expr.keyword, "Can't use 'super' in a class with no superclass."
                )
            self._resolve_local(expr, expr.keyword, True)
            return

        if isinstance(expr, (Binary, Logical)):
            self._resolve_expr(expr.left)
            self._resolve_expr(expr.right)
            return

        if isinstance(expr, Unary):
            self._resolve_expr(expr.right)
            return

        if isinstance(expr, Ternary):
            self._resolve_expr(expr.condition)
            self._resolve_expr(expr.then_expr)
            self._resolve_expr(expr.else_expr)
            return

        if isinstance(expr, Grouping):
            self._resolve_expr(expr.expression)
            return

        if isinstance(expr, Call):
            self._resolve_expr(expr.callee)
            for arg in expr.arguments:
                self._resolve_expr(arg)
            return

        if isinstance(expr, Get):
            self._resolve_expr(expr.object)
            return

        if isinstance(expr, Set):
            self._resolve_expr(expr.value)
            self._resolve_expr(expr.object)
            return

        if isinstance(expr, Function):
            self._resolve_function(expr, FN_FUNCTION)
            return

        if isinstance(expr, Literal):
            return

        raise AssertionError("unhandled expression: " + type(expr).__name__)
