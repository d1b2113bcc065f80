"""Olox AST printer — renders nodes as fully parenthesized prefix forms.

    1 + 2 * 3               →  (+ 1 (* 2 3))
    a = b ? c : d           →  (assign a (?: b c d))
    print f(x, 1);          →  (print (call f x 1))

Every node type in `olox/ast.py` has a rendering here; when a node type is
added, this printer should be updated alongside it.
"""

from __future__ import annotations

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
from .runtime import format_number


def to_sexpr(node: Expr | Stmt | list[Stmt] | None) -> str:
    """Render an expression, a statement, or a program (one line per statement)."""
    if isinstance(node, list):
        return "\n".join(_Printer().stmt(st) for st in node)
    if isinstance(node, Stmt):
        return _Printer().stmt(node)
    return _Printer().expr(node)


class _Printer:
    def _paren(self, head: str, *parts: str) -> str:
        if not parts:
            return "(" + head + ")"
        return "(" + head + " " + " ".join(parts) + ")"

    # ── Expressions ──────────────────────────────────────────

    def expr(self, e: Expr | None) -> str:
        if e is None:
            # Placeholder left behind by an error production.
            return "<error>"
        if isinstance(e, Literal):
            if e.value is None:
                return "nil"
            if isinstance(e.value, bool):
                return "true" if e.value else "false"
            if isinstance(e.value, float):
                return format_number(e.value)
            return '"' + e.value + '"'
        if isinstance(e, Variable):
            return e.name.lexeme
        if isinstance(e, Assign):
            return self._paren("assign", e.name.lexeme, self.expr(e.value))
        if isinstance(e, Unary):
            return self._paren(e.operator.lexeme, self.expr(e.right))
        if isinstance(e, (Binary, Logical)):
            return self._paren(e.operator.lexeme, self.expr(e.left), self.expr(e.right))
        if isinstance(e, Ternary):
            return self._paren(
                "?:", self.expr(e.condition), self.expr(e.then_expr), self.expr(e.else_expr)
            )
        if isinstance(e, Grouping):
            return self._paren("group", self.expr(e.expression))
        if isinstance(e, Call):
            return self._paren("call", self.expr(e.callee), *[self.expr(a) for a in e.arguments])
        if isinstance(e, Get):
            return self._paren(".", self.expr(e.object), e.name.lexeme)
        if isinstance(e, Set):
            return self._paren(".=", self.expr(e.object), e.name.lexeme, self.expr(e.value))
        if isinstance(e, This):
            return "this"
        if isinstance(e, Super):
            return self._paren("super", e.method.lexeme)
        if isinstance(e, Function):
            return self._function("lambda", None, e)
        raise AssertionError("unhandled expression: " + type(e).__name__)

    def _function(self, head: str, name: str | None, fn: Function) -> str:
        parts: list[str] = []
        if name is not None:
            parts.append(name)
        if fn.params is None:
            head = "getter"
        else:
            parts.append("(" + " ".join(p.lexeme for p in fn.params) + ")")
        parts.extend(self.stmt(st) for st in fn.body)
        return self._paren(head, *parts)

    # ── Statements ───────────────────────────────────────────

    def stmt(self, st: Stmt) -> str:
        if isinstance(st, Expression):
            return self._paren("expr", self.expr(st.expression))
        if isinstance(st, Print):
            return self._paren("print", self.expr(st.expression))
        if isinstance(st, Var):
            if st.initializer is None:
                return self._paren("var", st.name.lexeme)
            return self._paren("var", st.name.lexeme, self.expr(st.initializer))
        if isinstance(st, Block):
            return self._paren("block", *[self.stmt(s) for s in st.statements])
        if isinstance(st, If):
            parts = [self.expr(st.condition), self.stmt(st.then_branch)]
            if st.else_branch is not None:
                parts.append(self.stmt(st.else_branch))
            return self._paren("if", *parts)
        if isinstance(st, While):
            return self._paren("while", self.expr(st.condition), self.stmt(st.body))
        if isinstance(st, Break):
            return "(break)"
        if isinstance(st, Return):
            if st.value is None:
                return "(return)"
            return self._paren("return", self.expr(st.value))
        if isinstance(st, FunctionDecl):
            return self._function("fun", st.name.lexeme, st.function)
        if isinstance(st, Class):
            parts = [st.name.lexeme]
            if st.superclass is not None:
                parts.extend(["<", st.superclass.name.lexeme])
            parts.extend(self.stmt(m) for m in st.methods)
            parts.extend(self._paren("class", self.stmt(m)) for m in st.class_methods)
            return self._paren("class", *parts)
        raise AssertionError("unhandled statement: " + type(st).__name__)
