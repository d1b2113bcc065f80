"""Olox runtime — values, environments, and the tree-walking interpreter."""

from __future__ import annotations

from dataclasses import dataclass, field
import sys
import time
from typing import Callable, TextIO

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
from .report import Reporter, RunMode
from .tokens import (
    BANG,
    BANG_EQUAL,
    COMMA,
    EQUAL_EQUAL,
    GREATER,
    GREATER_EQUAL,
    LESS,
    LESS_EQUAL,
    MINUS,
    OR,
    PLUS,
    SLASH,
    STAR,
    Token,
)


# ============================================================
# Diagnostics
# ============================================================


class RuntimeFault(Exception):
    """Runtime error raised while evaluating; reported once per run."""

    def __init__(self, token: Token, msg: str):
        super().__init__(msg + " [line " + str(token.line) + "]")
        self.token = token
        self.msg = msg


# ============================================================
# Values
# ============================================================


def format_number(value: float) -> str:
    """Integral values print as whole numbers; others as Python's shortest repr."""
    if value.is_integer() and value != 0:
        return str(int(value))
    text = repr(value)
    if text.endswith(".0"):
        text = text[:-2]
    return text


class Value:
    """A runtime value."""

    def to_string(self) -> str:
        raise NotImplementedError


@dataclass(eq=False)
class VNil(Value):
    def to_string(self) -> str:
        return "nil"


@dataclass(eq=False)
class VBool(Value):
    value: bool

    def to_string(self) -> str:
        return "true" if self.value else "false"


@dataclass(eq=False)
class VNumber(Value):
    value: float

    def to_string(self) -> str:
        return format_number(self.value)


@dataclass(eq=False)
class VString(Value):
    value: str

    def to_string(self) -> str:
        return self.value


NIL = VNil()
TRUE = VBool(True)
FALSE = VBool(False)


def _bool(b: bool) -> VBool:
    return TRUE if b else FALSE


class VCallable(Value):
    """Anything that can appear before '(' in a call."""

    def arity(self) -> int:
        raise NotImplementedError

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        raise NotImplementedError


@dataclass(eq=False)
class VNative(VCallable):
    name: str
    n_params: int
    fn: Callable[[list[Value]], Value]

    def arity(self) -> int:
        return self.n_params

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        return self.fn(args)

    def to_string(self) -> str:
        return "<native fn>"


class Environment:
    """One frame of local slots, linked to the frame it is nested in."""

    def __init__(self, enclosing: Environment | None):
        self.enclosing = enclosing
        self.values: list[Value] = []

    def define(self, value: Value) -> None:
        self.values.append(value)

    def ancestor(self, distance: int) -> Environment:
        env = self
        for _ in range(distance):
            assert env.enclosing is not None
            env = env.enclosing
        return env

    def get_at(self, distance: int, slot: int) -> Value:
        return self.ancestor(distance).values[slot]

    def assign_at(self, distance: int, slot: int, value: Value) -> None:
        self.ancestor(distance).values[slot] = value

    def __repr__(self) -> str:
        text = "[" + ", ".join(v.to_string() for v in self.values) + "]"
        if self.enclosing is not None:
            text += " -> " + repr(self.enclosing)
        return text


@dataclass(eq=False)
class VFunction(VCallable):
    """A user function closed over the frame it was defined in."""

    name: str | None
    declaration: Function
    closure: Environment | None
    is_initializer: bool = False

    @property
    def is_getter(self) -> bool:
        return self.declaration.is_getter

    def arity(self) -> int:
        if self.declaration.params is None:
            return 0
        return len(self.declaration.params)

    def bind(self, instance: VInstance) -> VFunction:
        env = Environment(self.closure)
        env.define(instance)
        return VFunction(self.name, self.declaration, env, self.is_initializer)

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        env = Environment(self.closure)
        for arg in args:
            env.define(arg)
        try:
            interp.execute_block(self.declaration.body, env)
        except _Return as r:
            if self.is_initializer:
                return self._bound_this()
            return r.value
        if self.is_initializer:
            return self._bound_this()
        return NIL

    def _bound_this(self) -> Value:
        assert self.closure is not None
        return self.closure.get_at(0, 0)

    def to_string(self) -> str:
        if self.name is None:
            return "<fn>"
        return f"<fn {self.name}>"


@dataclass(eq=False)
class VInstance(Value):
    klass: VClass | None
    fields: dict[str, Value] = field(default_factory=dict)

    def get(self, name: Token) -> Value:
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]
        if self.klass is not None:
            method = self.klass.find_method(name.lexeme)
            if method is not None:
                return method.bind(self)
        raise RuntimeFault(name, f"Undefined property '{name.lexeme}'.")

    def set(self, name: Token, value: Value) -> None:
        self.fields[name.lexeme] = value

    def to_string(self) -> str:
        assert self.klass is not None
        return f"{self.klass.name} instance"


@dataclass(eq=False)
class VClass(VInstance, VCallable):
    """A class. It is itself an instance of its metaclass, which holds the
    class methods."""

    name: str = ""
    superclass: VClass | None = None
    methods: dict[str, VFunction] = field(default_factory=dict)

    def find_method(self, name: str) -> VFunction | None:
        if name in self.methods:
            return self.methods[name]
        if self.superclass is not None:
            return self.superclass.find_method(name)
        return None

    def arity(self) -> int:
        initializer = self.find_method("init")
        if initializer is None:
            return 0
        return initializer.arity()

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        instance = VInstance(self)
        initializer = self.find_method("init")
        if initializer is not None:
            initializer.bind(instance).call(interp, args)
        return instance

    def to_string(self) -> str:
        return self.name


# ============================================================
# Value helpers
# ============================================================


def is_truthy(v: Value) -> bool:
    if isinstance(v, VNil):
        return False
    if isinstance(v, VBool):
        return v.value
    return True


def _value_eq(a: Value, b: Value) -> bool:
    if isinstance(a, VNil) or isinstance(b, VNil):
        return isinstance(a, VNil) and isinstance(b, VNil)
    if isinstance(a, VBool) and isinstance(b, VBool):
        return a.value == b.value
    if isinstance(a, VNumber) and isinstance(b, VNumber):
        return a.value == b.value
    if isinstance(a, VString) and isinstance(b, VString):
        return a.value == b.value
    return a is b


def _literal(value: float | str | bool | None) -> Value:
    if value is None:
        return NIL
    if isinstance(value, bool):
        return _bool(value)
    if isinstance(value, float):
        return VNumber(value)
    return VString(value)


def _clock(args: list[Value]) -> Value:
    return VNumber(time.monotonic())


# ============================================================
# Control flow signals (internal)
# ============================================================


class _Signal(Exception):
    pass


@dataclass
class _Return(_Signal):
    value: Value


class _Break(_Signal):
    pass


# ============================================================
# Interpreter
# ============================================================


class Interpreter:
    def __init__(
        self,
        reporter: Reporter,
        out: TextIO | None = None,
        mode: str = RunMode.FILE,
    ):
        self.reporter = reporter
        self.out: TextIO = out if out is not None else sys.stdout
        self.mode = mode
        self.globals: dict[str, Value] = {"clock": VNative("clock", 0, _clock)}
        # None is the outermost lexical level; names there live in globals.
        self.environment: Environment | None = None
        self.locals: dict[Expr, tuple[int, int]] = {}

    def resolve(self, expr: Expr, depth: int, slot: int) -> None:
        self.locals[expr] = (depth, slot)

    def interpret(self, stmts: list[Stmt]) -> None:
        try:
            for st in stmts:
                self._eval_stmt(st)
        except RuntimeFault as e:
            self.reporter.runtime_error(e)

    # ---- Output ------------------------------------------------------------

    def _echo(self, text: str) -> None:
        print(text, file=self.out)

    def _at_top_level_repl(self) -> bool:
        return self.mode == RunMode.REPL and self.environment is None

    # ---- Bindings ----------------------------------------------------------

    def _define(self, name: Token, value: Value) -> None:
        if self.environment is not None:
            self.environment.define(value)
        else:
            self.globals[name.lexeme] = value

    def _look_up(self, name: Token, expr: Expr) -> Value:
        loc = self.locals.get(expr)
        if loc is not None:
            assert self.environment is not None
            return self.environment.get_at(loc[0], loc[1])
        if name.lexeme in self.globals:
            return self.globals[name.lexeme]
        raise RuntimeFault(name, f"Undefined variable '{name.lexeme}'.")

    # ---- Statements --------------------------------------------------------

    def execute_block(self, stmts: list[Stmt], env: Environment) -> None:
        previous = self.environment
        self.environment = env
        try:
            for st in stmts:
                self._eval_stmt(st)
        finally:
            self.environment = previous

    def _eval_stmt(self, st: Stmt) -> None:
        if isinstance(st, Expression):
            value = self._eval_expr(st.expression)
            if self._at_top_level_repl() and value is not NIL:
                self._echo(value.to_string())
            return

        if isinstance(st, Print):
            self._echo(self._eval_expr(st.expression).to_string())
            return

        if isinstance(st, Var):
            value: Value = NIL
            if st.initializer is not None:
                value = self._eval_expr(st.initializer)
                if self._at_top_level_repl():
                    self._echo(st.name.lexeme + " = " + value.to_string())
            self._define(st.name, value)
            return

        if isinstance(st, Block):
            self.execute_block(st.statements, Environment(self.environment))
            return

        if isinstance(st, If):
            if is_truthy(self._eval_expr(st.condition)):
                self._eval_stmt(st.then_branch)
            elif st.else_branch is not None:
                self._eval_stmt(st.else_branch)
            return

        if isinstance(st, While):
            try:
                while is_truthy(self._eval_expr(st.condition)):
                    self._eval_stmt(st.body)
            except _Break:
                pass
            return

        if isinstance(st, Break):
            raise _Break()

        if isinstance(st, Return):
            value = NIL
            if st.value is not None:
                value = self._eval_expr(st.value)
            raise _Return(value)

        if isinstance(st, FunctionDecl):
            fn = VFunction(st.name.lexeme, st.function, self.environment)
            self._define(st.name, fn)
            return

        if isinstance(st, Class):
            self._eval_class(st)
            return

        raise AssertionError("unhandled statement: " + type(st).__name__)

    def _eval_class(self, st: Class) -> None:
        superclass: VClass | None = None
        if st.superclass is not None:
            sv = self._eval_expr(st.superclass)
            if not isinstance(sv, VClass):
                raise RuntimeFault(st.superclass.name, "Superclass must be a class.")
            superclass = sv
            self.environment = Environment(self.environment)
            self.environment.define(superclass)

        class_methods: dict[str, VFunction] = {}
        for m in st.class_methods:
            class_methods[m.name.lexeme] = VFunction(
                m.name.lexeme, m.function, self.environment
            )
        metaclass = VClass(
            None,
            name=st.name.lexeme + " metaclass",
            superclass=superclass.klass if superclass is not None else None,
            methods=class_methods,
        )

        methods: dict[str, VFunction] = {}
        for m in st.methods:
            methods[m.name.lexeme] = VFunction(
                m.name.lexeme,
                m.function,
                self.environment,
                is_initializer=m.name.lexeme == "init",
            )
        klass = VClass(
            metaclass, name=st.name.lexeme, superclass=superclass, methods=methods
        )

        if superclass is not None:
            assert self.environment is not None
            self.environment = self.environment.enclosing
        self._define(st.name, klass)

    # ---- Expressions -------------------------------------------------------

    def _eval_expr(self, expr: Expr) -> Value:
        if isinstance(expr, Literal):
            return _literal(expr.value)

        if isinstance(expr, Grouping):
            return self._eval_expr(expr.expression)

        if isinstance(expr, Variable):
            return self._look_up(expr.name, expr)

        if isinstance(expr, Assign):
            value = self._eval_expr(expr.value)
            loc = self.locals.get(expr)
            if loc is not None:
                assert self.environment is not None
                self.environment.assign_at(loc[0], loc[1], value)
            elif expr.name.lexeme in self.globals:
                self.globals[expr.name.lexeme] = value
            else:
                raise RuntimeFault(
                    expr.name, f"Undefined variable '{expr.name.lexeme}'."
                )
            return value

        if isinstance(expr, Unary):
            right = self._eval_expr(expr.right)
            if expr.operator.kind == BANG:
                return _bool(not is_truthy(right))
            if not isinstance(right, VNumber):
                raise RuntimeFault(expr.operator, "Operand must be a number.")
            return VNumber(-right.value)

        if isinstance(expr, Logical):
            left = self._eval_expr(expr.left)
            if expr.operator.kind == OR:
                if is_truthy(left):
                    return left
            elif not is_truthy(left):
                return left
            return self._eval_expr(expr.right)

        if isinstance(expr, Binary):
            left = self._eval_expr(expr.left)
            right = self._eval_expr(expr.right)
            return self._eval_binary(expr.operator, left, right)

        if isinstance(expr, Ternary):
            if is_truthy(self._eval_expr(expr.condition)):
                return self._eval_expr(expr.then_expr)
            return self._eval_expr(expr.else_expr)

        if isinstance(expr, Call):
            return self._eval_call(expr)

        if isinstance(expr, Get):
            obj = self._eval_expr(expr.object)
            if not isinstance(obj, VInstance):
                raise RuntimeFault(expr.name, "Only instances have properties.")
            return self._invoke_getter(obj.get(expr.name))

        if isinstance(expr, Set):
            obj = self._eval_expr(expr.object)
            if not isinstance(obj, VInstance):
                raise RuntimeFault(expr.name, "Only instances have fields.")
            value = self._eval_expr(expr.value)
            obj.set(expr.name, value)
            return value

        if isinstance(expr, This):
            return self._look_up(expr.keyword, expr)

        if isinstance(expr, Super):
            return self._eval_super(expr)

        if isinstance(expr, Function):
            return VFunction(None, expr, self.environment)

        raise AssertionError("unhandled expression: " + type(expr).__name__)

    def _invoke_getter(self, value: Value) -> Value:
        if isinstance(value, VFunction) and value.is_getter:
            return value.call(self, [])
        return value

    def _eval_super(self, expr: Super) -> Value:
        distance, slot = self.locals[expr]
        assert self.environment is not None
        superclass = self.environment.get_at(distance, slot)
        receiver = self.environment.get_at(distance - 1, 0)
        assert isinstance(superclass, VClass)
        assert isinstance(receiver, VInstance)
        # Inside a class method the receiver is the class itself, so the
        # lookup continues in the superclass's metaclass.
        owner = superclass.klass if isinstance(receiver, VClass) else superclass
        method = owner.find_method(expr.method.lexeme) if owner is not None else None
        if method is None:
            raise RuntimeFault(
                expr.method, f"Undefined property '{expr.method.lexeme}'."
            )
        return self._invoke_getter(method.bind(receiver))

    def _eval_call(self, expr: Call) -> Value:
        callee = self._eval_expr(expr.callee)
        if not isinstance(callee, VCallable):
            raise RuntimeFault(expr.paren, "Can only call functions and classes.")
        args = [self._eval_expr(a) for a in expr.arguments]
        if len(args) != callee.arity():
            raise RuntimeFault(
                expr.paren,
                f"Expected {callee.arity()} arguments but got {len(args)}.",
            )
        try:
            return callee.call(self, args)
        except RecursionError:
            raise RuntimeFault(expr.paren, "Stack overflow.") from None

    def _eval_binary(self, op: Token, left: Value, right: Value) -> Value:
        kind = op.kind
        if kind == COMMA:
            return right
        if kind == EQUAL_EQUAL:
            return _bool(_value_eq(left, right))
        if kind == BANG_EQUAL:
            return _bool(not _value_eq(left, right))

        if kind == PLUS:
            if isinstance(left, VNumber) and isinstance(right, VNumber):
                return VNumber(left.value + right.value)
            if isinstance(left, VString) or isinstance(right, VString):
                return VString(left.to_string() + right.to_string())
            raise RuntimeFault(op, "Operands must be two numbers or two strings.")

        if not isinstance(left, VNumber) or not isinstance(right, VNumber):
            raise RuntimeFault(op, "Operands must be numbers.")
        a = left.value
        b = right.value
        if kind == MINUS:
            return VNumber(a - b)
        if kind == STAR:
            return VNumber(a * b)
        if kind == SLASH:
            if b == 0:
                raise RuntimeFault(op, "Arithmetic Error: Division by Zero")
            return VNumber(a / b)
        if kind == GREATER:
            return _bool(a > b)
        if kind == GREATER_EQUAL:
            return _bool(a >= b)
        if kind == LESS:
            return _bool(a < b)
        if kind == LESS_EQUAL:
            return _bool(a <= b)
        raise RuntimeFault(op, f"Unknown operator '{op.lexeme}'.")
