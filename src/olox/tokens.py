"""Olox tokenizer — lexes source into a flat token list."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .report import Reporter


# Single-character punctuation
LEFT_PAREN = "LEFT_PAREN"
RIGHT_PAREN = "RIGHT_PAREN"
LEFT_BRACE = "LEFT_BRACE"
RIGHT_BRACE = "RIGHT_BRACE"
COMMA = "COMMA"
DOT = "DOT"
MINUS = "MINUS"
PLUS = "PLUS"
SEMICOLON = "SEMICOLON"
SLASH = "SLASH"
STAR = "STAR"
QUESTION = "QUESTION"
COLON = "COLON"

# One- or two-character operators
BANG = "BANG"
BANG_EQUAL = "BANG_EQUAL"
EQUAL = "EQUAL"
EQUAL_EQUAL = "EQUAL_EQUAL"
GREATER = "GREATER"
GREATER_EQUAL = "GREATER_EQUAL"
LESS = "LESS"
LESS_EQUAL = "LESS_EQUAL"

# Literals
IDENTIFIER = "IDENTIFIER"
NUMBER = "NUMBER"
STRING = "STRING"

# Keywords
AND = "AND"
BREAK = "BREAK"
CLASS = "CLASS"
ELSE = "ELSE"
FALSE = "FALSE"
FOR = "FOR"
FUN = "FUN"
IF = "IF"
NIL = "NIL"
OR = "OR"
PRINT = "PRINT"
RETURN = "RETURN"
SUPER = "SUPER"
THIS = "THIS"
TRUE = "TRUE"
VAR = "VAR"
WHILE = "WHILE"

EOF = "EOF"

KEYWORDS: dict[str, str] = {
    "and": AND,
    "break": BREAK,
    "class": CLASS,
    "else": ELSE,
    "false": FALSE,
    "for": FOR,
    "fun": FUN,
    "if": IF,
    "nil": NIL,
    "or": OR,
    "print": PRINT,
    "return": RETURN,
    "super": SUPER,
    "this": THIS,
    "true": TRUE,
    "var": VAR,
    "while": WHILE,
}

SINGLE_OPS: dict[str, str] = {
    "(": LEFT_PAREN,
    ")": RIGHT_PAREN,
    "{": LEFT_BRACE,
    "}": RIGHT_BRACE,
    ",": COMMA,
    ".": DOT,
    "-": MINUS,
    "+": PLUS,
    ";": SEMICOLON,
    "*": STAR,
    "?": QUESTION,
    ":": COLON,
}

# Operators that become a different token when followed by '='
EQUAL_PAIRS: dict[str, tuple[str, str]] = {
    "!": (BANG, BANG_EQUAL),
    "=": (EQUAL, EQUAL_EQUAL),
    "<": (LESS, LESS_EQUAL),
    ">": (GREATER, GREATER_EQUAL),
}


class Token:
    """A token with kind, source lexeme, literal value, and line."""

    def __init__(
        self, kind: str, lexeme: str, literal: float | str | None, line: int
    ):
        self.kind: str = kind
        self.lexeme: str = lexeme
        self.literal: float | str | None = literal
        self.line: int = line

    def __repr__(self) -> str:
        return (
            "Token("
            + self.kind
            + ", "
            + repr(self.lexeme)
            + ", "
            + repr(self.literal)
            + ", "
            + str(self.line)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def _skip_block_comment(source: str, pos: int, line: int) -> tuple[int, int, bool]:
    """Skip a block comment body whose opening '/*' ends just before pos.

    Nested '/* ... */' pairs are tracked with a depth counter. Returns
    (new_pos, new_line, terminated).
    """
    length = len(source)
    depth = 1
    while pos < length:
        c = source[pos]
        if c == "*" and pos + 1 < length and source[pos + 1] == "/":
            pos += 2
            depth -= 1
            if depth == 0:
                return pos, line, True
            continue
        if c == "/" and pos + 1 < length and source[pos + 1] == "*":
            pos += 2
            depth += 1
            continue
        if c == "\n":
            line += 1
        pos += 1
    return pos, line, False


def tokenize(source: str, reporter: Reporter) -> list[Token]:
    """Tokenize Olox source into a flat list ending with an EOF token.

    Lexical errors are reported and skipped so a single pass surfaces all of
    them.
    """
    tokens: list[Token] = []
    pos = 0
    line = 1
    length = len(source)

    while pos < length:
        c = source[pos]

        # Newlines
        if c == "\n":
            pos += 1
            line += 1
            continue

        # Whitespace
        if c == " " or c == "\t" or c == "\r":
            pos += 1
            continue

        # Line comment: //
        if c == "/" and pos + 1 < length and source[pos + 1] == "/":
            while pos < length and source[pos] != "\n":
                pos += 1
            continue

        # Block comment: /* ... */, nestable
        if c == "/" and pos + 1 < length and source[pos + 1] == "*":
            start_line = line
            pos, line, closed = _skip_block_comment(source, pos + 2, line)
            if not closed:
                reporter.error(start_line, "Unterminated comment block.")
            continue

        start_pos = pos

        # String literal: "...", may span lines, no escapes
        if c == '"':
            pos += 1
            while pos < length and source[pos] != '"':
                if source[pos] == "\n":
                    line += 1
                pos += 1
            if pos >= length:
                reporter.error(line, "Unterminated string.")
                continue
            pos += 1  # skip closing "
            value = source[start_pos + 1 : pos - 1]
            tokens.append(Token(STRING, source[start_pos:pos], value, line))
            continue

        # Number: digits ( '.' digits )?
        if _is_digit(c):
            while pos < length and _is_digit(source[pos]):
                pos += 1
            if (
                pos + 1 < length
                and source[pos] == "."
                and _is_digit(source[pos + 1])
            ):
                pos += 1
                while pos < length and _is_digit(source[pos]):
                    pos += 1
            raw = source[start_pos:pos]
            tokens.append(Token(NUMBER, raw, float(raw), line))
            continue

        # Identifier or keyword
        if _is_alpha(c):
            while pos < length and _is_alnum(source[pos]):
                pos += 1
            word = source[start_pos:pos]
            tokens.append(Token(KEYWORDS.get(word, IDENTIFIER), word, None, line))
            continue

        # One- or two-character operators
        if c in EQUAL_PAIRS:
            single, double = EQUAL_PAIRS[c]
            if pos + 1 < length and source[pos + 1] == "=":
                tokens.append(Token(double, source[pos : pos + 2], None, line))
                pos += 2
            else:
                tokens.append(Token(single, c, None, line))
                pos += 1
            continue

        if c == "/":
            tokens.append(Token(SLASH, c, None, line))
            pos += 1
            continue

        if c in SINGLE_OPS:
            tokens.append(Token(SINGLE_OPS[c], c, None, line))
            pos += 1
            continue

        reporter.error(line, "Unexpected character.")
        pos += 1

    tokens.append(Token(EOF, "", None, line))
    return tokens
