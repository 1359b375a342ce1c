"""
Scope resolution errors for NyaScript.

SymbolError reports user mistakes found while declaring names (the parser
turns them into parse errors). ScopeStackError signals a broken scope
stack, which valid grammar can never produce.

Author: xwest
"""

from typing import Optional, List

from ..lexer.tokens import SourceLocation
from ..lexer.errors import Diagnostic


class SymbolError(Exception):
    """
    Exception raised when a declaration conflicts with the current scope.

    Contains detailed diagnostic information for error reporting.
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.message = message
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="error",
            code=code,
            help_text=help_text,
            suggestions=suggestions
        )

    def __str__(self) -> str:
        return str(self.diagnostic)


class ScopeStackError(AssertionError):
    """Internal consistency failure: the scope stack was popped past its root."""


# Scope error codes for categorization
SCOPE_ERROR_CODES = {
    "S001": "Variable already declared in this scope",
    "S002": "Label already declared in this scope",
    "S003": "Cannot step out of the root scope",
}


def create_redeclaration_error(name: str, what: str, location: Optional[SourceLocation]) -> SymbolError:
    """Create an error for a name declared twice in the same scope."""
    code = "S002" if what == "label" else "S001"
    return SymbolError(
        f"{what.capitalize()} '{name}' is already declared in this scope.",
        location,
        code=code,
        help_text=f"Rename the {what} or declare it in a nested block.",
    )
