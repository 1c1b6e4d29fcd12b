"""
Token types for the exprlang lexer.

Token categories follow the diagnostic code ranges used in errors.py:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Type errors
- E3xx: Name errors
- E4xx: Runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    INTEGER = auto()            # 42
    FLOAT = auto()              # 3.14
    STRING = auto()             # "hello\n"

    # --- Names ---
    IDENTIFIER = auto()         # user-defined names
    ENV_VARIABLE = auto()       # $name (host-provided)

    # --- Keywords ---
    NULL = auto()               # null
    TRUE = auto()               # true
    FALSE = auto()              # false
    LET = auto()                # let
    FN = auto()                 # fn
    IF = auto()                 # if
    ELSE = auto()               # else
    FOR = auto()                # for
    BREAK = auto()              # break
    CONTINUE = auto()           # continue
    RETURN = auto()             # return

    # --- Punctuation ---
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COMMA = auto()              # ,
    DOT = auto()                # .
    SEMICOLON = auto()          # ;

    # --- Operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %
    ASSIGN = auto()             # =
    BANG = auto()               # !
    EQ = auto()                 # ==
    NE = auto()                 # !=
    LT = auto()                 # <
    LE = auto()                 # <=
    GT = auto()                 # >
    GE = auto()                 # >=
    AND = auto()                # &&
    OR = auto()                 # ||
    INCREMENT = auto()          # ++
    DECREMENT = auto()          # --

    # --- Special ---
    EOF = auto()
    INVALID = auto()            # unrecognized input, escalated by the parser


@dataclass(frozen=True)
class SourceLocation:
    """A position in source code."""
    line: int       # 1-indexed
    column: int     # 1-indexed
    offset: int     # 0-indexed character offset
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """A range in source code (start inclusive, end exclusive)."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        return f"{self.start}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A lexical token."""
    type: TokenType
    value: Any          # decoded payload (int, float, unescaped str, env name)
    lexeme: str         # exact source text
    span: SourceSpan

    def describe(self) -> str:
        """Short human-readable description used in parse errors."""
        if self.type == TokenType.EOF:
            return "end of file"
        if self.type == TokenType.IDENTIFIER:
            return f"identifier '{self.lexeme}'"
        if self.type in (TokenType.INTEGER, TokenType.FLOAT, TokenType.STRING):
            return f"{self.type.name.lower()} {self.lexeme}"
        return f"'{self.lexeme}'"

    def __str__(self) -> str:
        return f"Token({self.type.name}, {self.lexeme!r}, {self.span.start})"


# Keyword lookup table, matched exactly against scanned identifiers.
KEYWORDS = MappingProxyType({
    "null": TokenType.NULL,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "let": TokenType.LET,
    "fn": TokenType.FN,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "return": TokenType.RETURN,
})

# Characters that always form a token on their own.
PUNCTUATION = MappingProxyType({
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ";": TokenType.SEMICOLON,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
})

# Operators that may extend to two characters: first char -> (single, {second: double}).
OPERATORS = MappingProxyType({
    "+": (TokenType.PLUS, {"+": TokenType.INCREMENT}),
    "-": (TokenType.MINUS, {"-": TokenType.DECREMENT}),
    "=": (TokenType.ASSIGN, {"=": TokenType.EQ}),
    "!": (TokenType.BANG, {"=": TokenType.NE}),
    "<": (TokenType.LT, {"=": TokenType.LE}),
    ">": (TokenType.GT, {"=": TokenType.GE}),
    "&": (None, {"&": TokenType.AND}),
    "|": (None, {"|": TokenType.OR}),
})


def is_keyword(name: str) -> bool:
    """Check if a name is a reserved keyword."""
    return name in KEYWORDS
