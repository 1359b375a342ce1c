"""
Token definitions for the NyaScript lexer.

This module defines all token types supported by NyaScript, including:
- Keywords (with their aliases such as `const` for `let`)
- Operators, compound assignments and the prefix step operators
- Literals (numbers and strings)
- Extension symbols (`$` native sigil, `@` reflective field)
- Punctuation and delimiters

Author: xwest
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Dict, Optional


class TokenType(Enum):
    """
    Enumeration of all token types in NyaScript.

    Organized by category for clarity and maintainability.
    """

    # ========================================================================
    # Special Tokens
    # ========================================================================
    EOF = auto()                    # End of input

    # ========================================================================
    # Punctuation
    # ========================================================================
    LEFT_PAREN = auto()             # (
    RIGHT_PAREN = auto()            # )
    LEFT_BRACE = auto()             # {
    RIGHT_BRACE = auto()            # }
    LEFT_BRACKET = auto()           # [
    RIGHT_BRACKET = auto()          # ]
    COMMA = auto()                  # ,
    DOT = auto()                    # .
    SEMICOLON = auto()              # ;
    COLON = auto()                  # :
    QUESTION = auto()               # ? (ternary)

    # ========================================================================
    # Operators
    # ========================================================================

    # Arithmetic
    PLUS = auto()                   # +
    MINUS = auto()                  # -
    STAR = auto()                   # *
    SLASH = auto()                  # /
    PERCENT = auto()                # %

    # Compound assignment
    PLUS_ASSIGN = auto()            # +=
    MINUS_ASSIGN = auto()           # -=
    STAR_ASSIGN = auto()            # *=
    SLASH_ASSIGN = auto()           # /=
    PERCENT_ASSIGN = auto()         # %=

    # Prefix step (postfix use is rejected by the parser)
    INCREMENT = auto()              # ++
    DECREMENT = auto()              # --

    # Bitwise
    BIT_AND = auto()                # &
    BIT_OR = auto()                 # |
    BIT_XOR = auto()                # ^
    BIT_NOT = auto()                # ~
    LEFT_SHIFT = auto()             # <<
    RIGHT_SHIFT = auto()            # >>

    # Logical (three separate precedence levels)
    AND = auto()                    # &&, and
    OR = auto()                     # ||, or
    XOR = auto()                    # ^^, xor
    BANG = auto()                   # !, not

    # Assignment and comparison
    ASSIGN = auto()                 # =
    EQUAL = auto()                  # ==
    NOT_EQUAL = auto()              # !=
    GREATER = auto()                # >
    GREATER_EQUAL = auto()          # >=
    LESS = auto()                   # <
    LESS_EQUAL = auto()             # <=

    # Extension symbols
    AT = auto()                     # @ (reflective field access)
    DOLLAR = auto()                 # $ (native function sigil)
    HASH = auto()                   # # (reserved for macros)
    ARROW = auto()                  # ->
    FAT_ARROW = auto()              # => (expression-bodied lambda)

    # ========================================================================
    # Literals
    # ========================================================================
    IDENTIFIER = auto()             # name, 变量, _tmp
    STRING = auto()                 # "hello\n"
    NUMBER = auto()                 # 42, 3.14 (always floating point)

    # ========================================================================
    # Keywords
    # ========================================================================
    NULL = auto()                   # null
    TRUE = auto()                   # true
    FALSE = auto()                  # false

    # Control flow
    IF = auto()                     # if
    ELSE = auto()                   # else
    WHILE = auto()                  # while
    FOR = auto()                    # for
    SWITCH = auto()                 # switch
    CASE = auto()                   # case
    DEFAULT = auto()                # default
    BREAK = auto()                  # break
    CONTINUE = auto()               # continue
    LABEL = auto()                  # label
    GOTO = auto()                   # goto

    # Declarations
    VAR = auto()                    # var
    LET = auto()                    # let, const
    FUN = auto()                    # fun, function, λ
    RETURN = auto()                 # return

    # Objects (class and base are reserved, not implemented)
    CLASS = auto()                  # class
    BASE = auto()                   # base
    THIS = auto()                   # this

    # Other
    PRINT = auto()                  # print


@dataclass(frozen=True)
class SourceLocation:
    """Represents a location in source code."""
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Token:
    """
    Represents a single token in NyaScript source code.

    Contains the token type, original text, parsed literal (if any),
    and source location information.
    """
    type: TokenType
    lexeme: str
    literal: Optional[Any]
    location: SourceLocation

    @property
    def line(self) -> int:
        """Source line the token starts on."""
        return self.location.line

    def __str__(self) -> str:
        if self.literal is not None:
            return f"{self.type.name}({self.lexeme!r}, {self.literal!r})"
        return f"{self.type.name}({self.lexeme!r})"


# Keywords mapping, aliases share a token type
KEYWORDS: Dict[str, TokenType] = {
    "var": TokenType.VAR,
    "let": TokenType.LET,
    "const": TokenType.LET,
    "function": TokenType.FUN,
    "fun": TokenType.FUN,
    "return": TokenType.RETURN,

    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,

    "and": TokenType.AND,
    "or": TokenType.OR,
    "xor": TokenType.XOR,
    "not": TokenType.BANG,

    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "switch": TokenType.SWITCH,
    "case": TokenType.CASE,
    "default": TokenType.DEFAULT,
    "for": TokenType.FOR,
    "while": TokenType.WHILE,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "label": TokenType.LABEL,
    "goto": TokenType.GOTO,

    "class": TokenType.CLASS,
    "base": TokenType.BASE,
    "this": TokenType.THIS,

    "print": TokenType.PRINT,
}

# Single character that stands in for the `fun` keyword
LAMBDA_CHAR = "λ"

# Operators mapping, longest match wins in the lexer
OPERATORS: Dict[str, TokenType] = {
    # Two-character operators
    "+=": TokenType.PLUS_ASSIGN,
    "-=": TokenType.MINUS_ASSIGN,
    "*=": TokenType.STAR_ASSIGN,
    "/=": TokenType.SLASH_ASSIGN,
    "%=": TokenType.PERCENT_ASSIGN,
    "++": TokenType.INCREMENT,
    "--": TokenType.DECREMENT,
    "->": TokenType.ARROW,
    "=>": TokenType.FAT_ARROW,
    "&&": TokenType.AND,
    "||": TokenType.OR,
    "^^": TokenType.XOR,
    "<<": TokenType.LEFT_SHIFT,
    ">>": TokenType.RIGHT_SHIFT,
    "==": TokenType.EQUAL,
    "!=": TokenType.NOT_EQUAL,
    ">=": TokenType.GREATER_EQUAL,
    "<=": TokenType.LESS_EQUAL,

    # Single-character operators
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "{": TokenType.LEFT_BRACE,
    "}": TokenType.RIGHT_BRACE,
    "[": TokenType.LEFT_BRACKET,
    "]": TokenType.RIGHT_BRACKET,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ";": TokenType.SEMICOLON,
    ":": TokenType.COLON,
    "?": TokenType.QUESTION,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
    "&": TokenType.BIT_AND,
    "|": TokenType.BIT_OR,
    "^": TokenType.BIT_XOR,
    "~": TokenType.BIT_NOT,
    "!": TokenType.BANG,
    "=": TokenType.ASSIGN,
    ">": TokenType.GREATER,
    "<": TokenType.LESS,
    "@": TokenType.AT,
    "$": TokenType.DOLLAR,
    "#": TokenType.HASH,
}


def is_identifier_start(char: str) -> bool:
    """Letters, underscore and anything at or above U+00A1 may start a name."""
    return (
        ("a" <= char <= "z")
        or ("A" <= char <= "Z")
        or char == "_"
        or (ord(char) >= 0xA1 and char != LAMBDA_CHAR)
    )


def is_identifier_char(char: str) -> bool:
    """Check if a character can continue an identifier (λ included)."""
    return is_identifier_start(char) or char == LAMBDA_CHAR or ("0" <= char <= "9")
