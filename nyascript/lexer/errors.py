"""
Error handling for the NyaScript lexer.

Provides the shared Diagnostic record used by every compiler phase, plus
lexer-specific errors and the helpers that build them.

Author: xwest
"""

from typing import Optional, List
from dataclasses import dataclass

from .tokens import SourceLocation


@dataclass
class Diagnostic:
    """Base class for diagnostics (errors, warnings, info)."""
    message: str
    location: Optional[SourceLocation]
    severity: str  # "error", "warning", "info", "hint"
    code: Optional[str] = None
    help_text: Optional[str] = None
    suggestions: Optional[List[str]] = None

    def __str__(self) -> str:
        severity_prefix = self.severity.upper()
        result = f"{severity_prefix}: {self.message}\n"
        if self.location is not None:
            result += f"  --> {self.location}\n"

        if self.help_text:
            result += f"  help: {self.help_text}\n"

        if self.suggestions:
            result += "  suggestions:\n"
            for suggestion in self.suggestions:
                result += f"    - {suggestion}\n"

        return result


class LexerError(Exception):
    """
    Error found while scanning source text.

    The lexer collects these instead of raising them out of tokenize().
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="error",
            code=code,
            help_text=help_text,
            suggestions=suggestions
        )

    @property
    def location(self) -> SourceLocation:
        return self.diagnostic.location

    def __str__(self) -> str:
        return str(self.diagnostic)


# Common error codes for categorization
ERROR_CODES = {
    "L001": "Unexpected character",
    "L002": "Unterminated string literal",
    "L003": "Invalid escape sequence",
    "L004": "Unterminated block comment",
}


def create_unexpected_character_error(char: str, location: SourceLocation) -> LexerError:
    """Create an error for a character no token starts with."""
    if char.isprintable():
        help_text = f"The character '{char}' is not valid in NyaScript source code."
    else:
        help_text = f"Non-printable character (Unicode: U+{ord(char):04X}) is not allowed."

    return LexerError(
        message=f"Unexpected character [{char}].",
        location=location,
        code="L001",
        help_text=help_text,
    )


def create_unterminated_string_error(location: SourceLocation) -> LexerError:
    """Create an error for an unterminated string literal."""
    return LexerError(
        message="Unterminated string.",
        location=location,
        code="L002",
        help_text="String literals must be closed with a matching '\"'.",
        suggestions=["Add a closing '\"'", "Escape quotes inside the string as '\\\"'"]
    )


def create_invalid_escape_error(char: str, location: SourceLocation) -> LexerError:
    """Create an error for an unsupported escape sequence."""
    return LexerError(
        message=f"Unexpected character [{char}] after '\\'.",
        location=location,
        code="L003",
        help_text="Supported escapes are \\\", \\\\, \\n and \\t.",
    )


def create_unterminated_comment_error(location: SourceLocation) -> LexerError:
    """Create an error for a block comment that never closes."""
    return LexerError(
        message="Unterminated block comment.",
        location=location,
        code="L004",
        help_text="Block comments must be closed with '*/'.",
    )
