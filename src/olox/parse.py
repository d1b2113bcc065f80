"""Olox parser — recursive descent, one method per grammar production.

    program     → declaration* EOF
    declaration → classDecl | funDecl | varDecl | statement
    classDecl   → "class" IDENT ( "<" IDENT )? "{" ( "class"? function )* "}"
    funDecl     → "fun" function
    function    → IDENT funcBody
    funcBody    → ( "(" params? ")" )? "{" declaration* "}"
    varDecl     → "var" IDENT ( "=" expression )? ";"
    statement   → exprStmt | forStmt | ifStmt | printStmt | returnStmt
                | whileStmt | breakStmt | block
    expression  → comma
    comma       → ternary ( "," ternary )*
    ternary     → assignment ( "?" comma ":" ternary )?
    assignment  → ( call "." )? IDENT "=" assignment | logic_or
    logic_or    → logic_and ( "or" logic_and )*
    logic_and   → equality ( "and" equality )*
    equality    → comparison ( ( "!=" | "==" ) comparison )*
    comparison  → term ( ( ">" | ">=" | "<" | "<=" ) term )*
    term        → factor ( ( "-" | "+" ) factor )*
    factor      → unary ( ( "/" | "*" ) unary )*
    unary       → ( "!" | "-" ) unary | call
    call        → primary ( "(" args? ")" | "." IDENT )*
    args        → equality ( "," equality )*
    primary     → NUMBER | STRING | IDENT | "true" | "false" | "nil"
                | "(" expression ")" | "super" "." IDENT | "this"
                | "fun" funcBody
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
from .report import Reporter, RunMode
from .tokens import (
    AND,
    BANG,
    BANG_EQUAL,
    BREAK,
    CLASS,
    COLON,
    COMMA,
    DOT,
    ELSE,
    EOF,
    EQUAL,
    EQUAL_EQUAL,
    FALSE,
    FOR,
    FUN,
    GREATER,
    GREATER_EQUAL,
    IDENTIFIER,
    IF,
    LEFT_BRACE,
    LEFT_PAREN,
    LESS,
    LESS_EQUAL,
    MINUS,
    NIL,
    NUMBER,
    OR,
    PLUS,
    PRINT,
    QUESTION,
    RETURN,
    RIGHT_BRACE,
    RIGHT_PAREN,
    SEMICOLON,
    SLASH,
    STAR,
    STRING,
    SUPER,
    THIS,
    TRUE,
    VAR,
    WHILE,
    Token,
)

MAX_ARGS = 255

# Tokens that start a statement; synchronisation stops in front of them.
SYNC_KINDS: set[str] = {CLASS, FUN, VAR, FOR, IF, WHILE, PRINT, RETURN}

# Function-body flavours, used in diagnostics and to allow getters.
KIND_FUNCTION = "function"
KIND_METHOD = "method"


class ParseError(Exception):
    """Unwinds to the nearest declaration after a reported syntax error."""


class Parser:
    """Recursive descent parser for Olox."""

    def __init__(
        self, tokens: list[Token], reporter: Reporter, mode: str = RunMode.FILE
    ):
        self.tokens: list[Token] = tokens
        self.reporter: Reporter = reporter
        self.mode: str = mode
        self.pos: int = 0
        self.loop_depth: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[len(self.tokens) - 1]
        return self.tokens[idx]

    def previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def at_end(self) -> bool:
        return self.current().kind == EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if not self.at_end():
            self.pos += 1
        return tok

    def at(self, *kinds: str) -> bool:
        return self.current().kind in kinds

    def match(self, *kinds: str) -> bool:
        if self.at(*kinds) and not self.at_end():
            self.advance()
            return True
        return False

    def expect(self, kind: str, msg: str) -> Token:
        if self.at(kind) and not self.at_end():
            return self.advance()
        raise self.error(self.current(), msg)

    def expect_semicolon(self, msg: str) -> None:
        if self.match(SEMICOLON):
            return
        # The REPL tolerates a missing ';' at the end of the line.
        if self.mode == RunMode.REPL and self.at_end():
            return
        raise self.error(self.current(), msg)

    def error(self, tok: Token, msg: str) -> ParseError:
        self.reporter.error_at(tok, msg)
        return ParseError(msg)

    def synchronize(self) -> None:
        self.advance()
        while not self.at_end():
            if self.previous().kind == SEMICOLON:
                return
            if self.current().kind in SYNC_KINDS:
                return
            self.advance()

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> list[Stmt]:
        stmts: list[Stmt] = []
        while not self.at_end():
            stmt = self.parse_declaration()
            if stmt is not None:
                stmts.append(stmt)
        return stmts

    def parse_declaration(self) -> Stmt | None:
        try:
            if self.match(CLASS):
                return self.parse_class_decl()
            if self.at(FUN) and self.peek(1).kind == IDENTIFIER:
                self.advance()
                return self.parse_function(KIND_FUNCTION)
            if self.match(VAR):
                return self.parse_var_decl()
            return self.parse_stmt()
        except ParseError:
            self.synchronize()
            return None
        except RecursionError:
            self.error(self.current(), "Too much nesting.")
            self.synchronize()
            return None

    def parse_class_decl(self) -> Class:
        name = self.expect(IDENTIFIER, "Expected class name.")
        superclass: Variable | None = None
        if self.match(LESS):
            superclass = Variable(self.expect(IDENTIFIER, "Expected superclass name."))
        self.expect(LEFT_BRACE, "Expected '{' before class body.")
        methods: list[FunctionDecl] = []
        class_methods: list[FunctionDecl] = []
        while not self.at(RIGHT_BRACE) and not self.at_end():
            if self.match(CLASS):
                class_methods.append(self.parse_function(KIND_METHOD))
            else:
                methods.append(self.parse_function(KIND_METHOD))
        self.expect(RIGHT_BRACE, "Expected '}' after class body.")
        return Class(name, superclass, methods, class_methods)

    def parse_function(self, kind: str) -> FunctionDecl:
        name = self.expect(IDENTIFIER, "Expected " + kind + " name.")
        return FunctionDecl(name, self.parse_function_body(kind))

    def parse_function_body(self, kind: str) -> Function:
        """funcBody = ( '(' params? ')' )? '{' declaration* '}'

        Only methods may omit the parameter list; they become getters.
        """
        params: list[Token] | None = None
        if kind != KIND_METHOD or self.at(LEFT_PAREN):
            self.expect(LEFT_PAREN, "Expected '(' after " + kind + " name.")
            params = []
            if not self.at(RIGHT_PAREN):
                while True:
                    if len(params) >= MAX_ARGS:
                        self.error(
                            self.current(),
                            "Can't have more than " + str(MAX_ARGS) + " parameters.",
                        )
                    params.append(self.expect(IDENTIFIER, "Expected parameter name."))
                    if not self.match(COMMA):
                        break
            self.expect(RIGHT_PAREN, "Expected ')' after parameters.")
        self.expect(LEFT_BRACE, "Expected '{' before " + kind + " body.")
        # break never crosses a call boundary
        enclosing_loops = self.loop_depth
        self.loop_depth = 0
        try:
            body = self.parse_block()
        finally:
            self.loop_depth = enclosing_loops
        return Function(params, body)

    def parse_var_decl(self) -> Var:
        name = self.expect(IDENTIFIER, "Expected variable name.")
        initializer: Expr | None = None
        if self.match(EQUAL):
            initializer = self.parse_expr()
        self.expect_semicolon("Expected ';' after variable declaration.")
        return Var(name, initializer)

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> Stmt:
        if self.match(BREAK):
            return self.parse_break_stmt()
        if self.match(FOR):
            return self.parse_for_stmt()
        if self.match(IF):
            return self.parse_if_stmt()
        if self.match(PRINT):
            return self.parse_print_stmt()
        if self.match(RETURN):
            return self.parse_return_stmt()
        if self.match(WHILE):
            return self.parse_while_stmt()
        if self.match(LEFT_BRACE):
            return Block(self.parse_block())
        return self.parse_expr_stmt()

    def parse_block(self) -> list[Stmt]:
        """Declarations up to and including the closing '}'."""
        stmts: list[Stmt] = []
        while not self.at(RIGHT_BRACE) and not self.at_end():
            stmt = self.parse_declaration()
            if stmt is not None:
                stmts.append(stmt)
        self.expect(RIGHT_BRACE, "Expected '}' after block.")
        return stmts

    def parse_break_stmt(self) -> Break:
        keyword = self.previous()
        if self.loop_depth == 0:
            self.error(keyword, "Can't use 'break' outside of a loop.")
        self.expect_semicolon("Expected ';' after 'break'.")
        return Break(keyword)

    def parse_for_stmt(self) -> Stmt:
        """Lower for (init; cond; incr) body into { init; while (cond) { body; incr; } }."""
        self.expect(LEFT_PAREN, "Expected '(' after 'for'.")
        initializer: Stmt | None
        if self.match(SEMICOLON):
            initializer = None
        elif self.match(VAR):
            initializer = self.parse_var_decl()
        else:
            initializer = self.parse_expr_stmt()

        condition: Expr | None = None
        if not self.at(SEMICOLON):
            condition = self.parse_expr()
        self.expect(SEMICOLON, "Expected ';' after loop condition.")

        increment: Expr | None = None
        if not self.at(RIGHT_PAREN):
            increment = self.parse_expr()
        self.expect(RIGHT_PAREN, "Expected ')' after for clauses.")

        self.loop_depth += 1
        try:
            body = self.parse_stmt()
        finally:
            self.loop_depth -= 1

        if increment is not None:
            body = Block([body, Expression(increment)])
        if condition is None:
            condition = Literal(True)
        body = While(condition, body)
        if initializer is not None:
            body = Block([initializer, body])
        return body

    def parse_if_stmt(self) -> If:
        self.expect(LEFT_PAREN, "Expected '(' after 'if'.")
        condition = self.parse_expr()
        self.expect(RIGHT_PAREN, "Expected ')' after if condition.")
        then_branch = self.parse_stmt()
        else_branch: Stmt | None = None
        if self.match(ELSE):
            else_branch = self.parse_stmt()
        return If(condition, then_branch, else_branch)

    def parse_print_stmt(self) -> Print:
        value = self.parse_expr()
        self.expect_semicolon("Expected ';' after value.")
        return Print(value)

    def parse_return_stmt(self) -> Return:
        keyword = self.previous()
        value: Expr | None = None
        if not self.at(SEMICOLON) and not self.at_end():
            value = self.parse_expr()
        self.expect_semicolon("Expected ';' after return value.")
        return Return(keyword, value)

    def parse_while_stmt(self) -> While:
        self.expect(LEFT_PAREN, "Expected '(' after 'while'.")
        condition = self.parse_expr()
        self.expect(RIGHT_PAREN, "Expected ')' after while condition.")
        self.loop_depth += 1
        try:
            body = self.parse_stmt()
        finally:
            self.loop_depth -= 1
        return While(condition, body)

    def parse_expr_stmt(self) -> Expression:
        expr = self.parse_expr()
        self.expect_semicolon("Expected ';' after expression.")
        return Expression(expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        return self.parse_comma()

    def parse_comma(self) -> Expr:
        """Comma = Ternary ( ',' Ternary )*"""
        left = self.parse_ternary()
        while self.match(COMMA):
            op = self.previous()
            right = self.parse_ternary()
            left = Binary(left, op, right)
        return left

    def parse_ternary(self) -> Expr:
        """Ternary = Assignment ( '?' Comma ':' Ternary )?"""
        expr = self.parse_assignment()
        if self.match(QUESTION):
            then_expr = self.parse_comma()
            self.expect(COLON, "Expected ':' after then branch of ternary expression.")
            else_expr = self.parse_ternary()
            return Ternary(expr, then_expr, else_expr)
        return expr

    def parse_assignment(self) -> Expr:
        expr = self.parse_or()
        if self.match(EQUAL):
            equals = self.previous()
            value = self.parse_assignment()
            if isinstance(expr, Variable):
                return Assign(expr.name, value)
            if isinstance(expr, Get):
                return Set(expr.object, expr.name, value)
            self.error(equals, "Invalid assignment target.")
        return expr

    def parse_or(self) -> Expr:
        left = self.parse_and()
        while self.match(OR):
            op = self.previous()
            right = self.parse_and()
            left = Logical(left, op, right)
        return left

    def parse_and(self) -> Expr:
        left = self.parse_equality()
        while self.match(AND):
            op = self.previous()
            right = self.parse_equality()
            left = Logical(left, op, right)
        return left

    def parse_equality(self) -> Expr:
        left = self.parse_comparison()
        while self.match(BANG_EQUAL, EQUAL_EQUAL):
            op = self.previous()
            right = self.parse_comparison()
            left = Binary(left, op, right)
        return left

    def parse_comparison(self) -> Expr:
        left = self.parse_term()
        while self.match(GREATER, GREATER_EQUAL, LESS, LESS_EQUAL):
            op = self.previous()
            right = self.parse_term()
            left = Binary(left, op, right)
        return left

    def parse_term(self) -> Expr:
        left = self.parse_factor()
        while self.match(MINUS, PLUS):
            op = self.previous()
            right = self.parse_factor()
            left = Binary(left, op, right)
        return left

    def parse_factor(self) -> Expr:
        left = self.parse_unary()
        while self.match(SLASH, STAR):
            op = self.previous()
            right = self.parse_unary()
            left = Binary(left, op, right)
        return left

    def parse_unary(self) -> Expr:
        if self.match(BANG, MINUS):
            op = self.previous()
            right = self.parse_unary()
            return Unary(op, right)
        return self.parse_call()

    def parse_call(self) -> Expr:
        """Call = Primary ( '(' Args? ')' | '.' IDENT )*"""
        expr = self.parse_primary()
        while True:
            if self.match(LEFT_PAREN):
                expr = self.finish_call(expr)
            elif self.match(DOT):
                name = self.expect(IDENTIFIER, "Expected property name after '.'.")
                expr = Get(expr, name)
            else:
                break
        return expr

    def finish_call(self, callee: Expr) -> Call:
        # Arguments parse at equality so ',' separates them instead of
        # becoming the comma operator.
        args: list[Expr] = []
        if not self.at(RIGHT_PAREN):
            while True:
                if len(args) >= MAX_ARGS:
                    self.error(
                        self.current(),
                        "Can't have more than " + str(MAX_ARGS) + " arguments.",
                    )
                args.append(self.parse_equality())
                if not self.match(COMMA):
                    break
        paren = self.expect(RIGHT_PAREN, "Expected ')' after arguments.")
        return Call(callee, paren, args)

    def parse_primary(self) -> Expr:
        if self.match(FALSE):
            return Literal(False)
        if self.match(TRUE):
            return Literal(True)
        if self.match(NIL):
            return Literal(None)
        if self.match(NUMBER, STRING):
            return Literal(self.previous().literal)
        if self.match(IDENTIFIER):
            return Variable(self.previous())
        if self.match(LEFT_PAREN):
            expr = self.parse_expr()
            self.expect(RIGHT_PAREN, "Expected ')' after expression.")
            return Grouping(expr)
        if self.match(SUPER):
            keyword = self.previous()
            self.expect(DOT, "Expected '.' after 'super'.")
            method = self.expect(IDENTIFIER, "Expected superclass method name.")
            return Super(keyword, method)
        if self.match(THIS):
            return This(self.previous())
        if self.match(FUN):
            return self.parse_function_body(KIND_FUNCTION)
        return self.parse_missing_operand()

    def parse_missing_operand(self) -> Expr:
        """Binary operator with no left operand.

        Reports the error, parses and discards the right operand at the
        operator's own precedence, and yields no expression so parsing can
        go on to find further errors.
        """
        if self.match(COMMA):
            self.error(self.previous(), "Missing left-hand expression.")
            self.parse_comma()
        elif self.match(QUESTION, COLON):
            self.error(self.previous(), "Missing expression in ternary condition.")
            self.parse_ternary()
        elif self.match(BANG_EQUAL, EQUAL_EQUAL):
            self.error(self.previous(), "Missing left-hand expression in equality.")
            self.parse_equality()
        elif self.match(GREATER, GREATER_EQUAL, LESS, LESS_EQUAL):
            self.error(self.previous(), "Missing left-hand expression in comparison.")
            self.parse_comparison()
        elif self.match(PLUS):
            self.error(self.previous(), "Missing left-hand expression in addition.")
            self.parse_term()
        elif self.match(SLASH, STAR):
            self.error(
                self.previous(),
                "Missing left-hand expression in multiplication/division.",
            )
            self.parse_factor()
        else:
            raise self.error(self.current(), "Expected expression.")
        return None  # type: ignore[return-value]
