"""
NyaScript Lexer Package

Implements the lexical analyzer (tokenizer) for the NyaScript language.

Key Features:
- Non-ASCII identifiers (anything at or above U+00A1)
- `//` and `/* */` comments, escaped double-quoted strings
- Keyword aliases (`const`/`let`, `function`/`fun`/`λ`, `and`/`&&`, ...)
- Error collection with per-character recovery

Author: xwest
"""

from .tokens import Token, TokenType, SourceLocation, KEYWORDS, OPERATORS
from .lexer import Lexer, tokenize_string
from .errors import Diagnostic, LexerError

__all__ = [
    "Lexer",
    "tokenize_string",
    "Token",
    "TokenType",
    "SourceLocation",
    "KEYWORDS",
    "OPERATORS",
    "Diagnostic",
    "LexerError",
]
