"""
NyaScript Parser Package

Single-pass recursive-descent compiler: parses the token stream, manages
scopes and emits the executable IR in one walk.

Key Features:
- Forward `goto` through a per-block label pre-scan
- Per-declaration error recovery with scope unwinding
- Strict mode that aborts on the first error
- Compile-time resolution of `$Name(...)` native calls

Author: xwest
"""

from .parser import Parser, CompileResult, StrictModeAbort
from .errors import ParseError, SyntaxErrorRecovery, PARSER_ERROR_CODES

__all__ = [
    # Core parser
    "Parser",
    "CompileResult",

    # Error handling
    "ParseError",
    "StrictModeAbort",
    "SyntaxErrorRecovery",
    "PARSER_ERROR_CODES",
]
