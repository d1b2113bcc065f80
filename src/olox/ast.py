"""Olox AST — parse-time node definitions.

Expression nodes hash and compare by identity: the resolver's side-table maps
each variable-referencing node to its binding, and two structurally equal
references at different sites must stay distinct keys.
"""

from __future__ import annotations

from dataclasses import dataclass

from .tokens import Token


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(eq=False)
class Expr:
    """Base for all expressions."""


@dataclass(eq=False)
class Literal(Expr):
    """nil, true/false, number or string."""

    value: float | str | bool | None


@dataclass(eq=False)
class Variable(Expr):
    """Read of a named binding."""

    name: Token


@dataclass(eq=False)
class Assign(Expr):
    """name = value."""

    name: Token
    value: Expr


@dataclass(eq=False)
class Unary(Expr):
    """! or - applied to one operand."""

    operator: Token
    right: Expr


@dataclass(eq=False)
class Binary(Expr):
    """Arithmetic, comparison, equality and the comma operator."""

    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Logical(Expr):
    """Short-circuit and / or."""

    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Ternary(Expr):
    """cond ? then_expr : else_expr."""

    condition: Expr
    then_expr: Expr
    else_expr: Expr


@dataclass(eq=False)
class Grouping(Expr):
    """( expression )."""

    expression: Expr


@dataclass(eq=False)
class Call(Expr):
    """callee(args). paren is the closing ')' for error lines."""

    callee: Expr
    paren: Token
    arguments: list[Expr]


@dataclass(eq=False)
class Get(Expr):
    """object.name."""

    object: Expr
    name: Token


@dataclass(eq=False)
class Set(Expr):
    """object.name = value."""

    object: Expr
    name: Token
    value: Expr


@dataclass(eq=False)
class This(Expr):
    keyword: Token


@dataclass(eq=False)
class Super(Expr):
    """super.method."""

    keyword: Token
    method: Token


@dataclass(eq=False)
class Function(Expr):
    """Function body. params is None for a getter, [] for a nullary function."""

    params: list[Token] | None
    body: list[Stmt]

    @property
    def is_getter(self) -> bool:
        return self.params is None


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Stmt:
    """Base for all statements."""


@dataclass
class Expression(Stmt):
    expression: Expr


@dataclass
class Print(Stmt):
    expression: Expr


@dataclass
class Var(Stmt):
    """var name ( = initializer )?;"""

    name: Token
    initializer: Expr | None


@dataclass
class Block(Stmt):
    statements: list[Stmt]


@dataclass
class If(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Stmt | None


@dataclass
class While(Stmt):
    """Also the lowered form of every for loop."""

    condition: Expr
    body: Stmt


@dataclass
class Break(Stmt):
    keyword: Token


@dataclass
class Return(Stmt):
    keyword: Token
    value: Expr | None


@dataclass
class FunctionDecl(Stmt):
    """fun name(params) { body }, and every method inside a class."""

    name: Token
    function: Function


@dataclass
class Class(Stmt):
    """class Name ( < Superclass )? { methods; class class_methods }."""

    name: Token
    superclass: Variable | None
    methods: list[FunctionDecl]
    class_methods: list[FunctionDecl]
