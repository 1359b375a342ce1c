"""
Error handling for the NyaScript parser.

Provides error reporting with source location information and the
recovery rules the parser uses to keep going after a syntax error.

Author: xwest
"""

from typing import Optional, List, Union

from ..lexer.tokens import Token, TokenType, SourceLocation
from ..lexer.errors import Diagnostic


class ParseError(Exception):
    """
    Exception raised when the parser encounters a syntax or resolution error.

    Contains detailed diagnostic information for error reporting.
    """

    def __init__(
        self,
        message: str,
        token: Optional[Token] = None,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
        location: Optional[SourceLocation] = None
    ):
        super().__init__(message)
        self.message = message
        self.token = token
        self.diagnostic = Diagnostic(
            message=message,
            location=location if location is not None else (token.location if token else None),
            severity="error",
            code=code,
            help_text=help_text,
            suggestions=suggestions
        )

    @property
    def location(self) -> Optional[SourceLocation]:
        return self.diagnostic.location

    def report(self) -> str:
        """One-line report in the form the diagnostics sink prints."""
        if self.token is None:
            return f"[ ParserError ] : {self.message}"
        where = "end" if self.token.type == TokenType.EOF else self.token.lexeme
        return f"[ ParserError ] at line [{self.token.line}] in [{where}] : {self.message}"

    def __str__(self) -> str:
        return self.report()


class SyntaxErrorRecovery:
    """
    Utilities for error recovery in the parser.

    After an error the parser discards tokens until it reaches a statement
    boundary, so later declarations can still be compiled and checked.
    """

    # Tokens that begin a new declaration or statement
    STATEMENT_BOUNDARIES = frozenset({
        TokenType.CLASS,
        TokenType.FUN,
        TokenType.VAR,
        TokenType.LET,
        TokenType.FOR,
        TokenType.IF,
        TokenType.WHILE,
        TokenType.PRINT,
        TokenType.RETURN,
    })

    @staticmethod
    def suggest_missing_token(expected: TokenType) -> List[str]:
        """Suggest what token might be missing."""
        token_suggestions = {
            TokenType.SEMICOLON: ["Add a semicolon ';' to end the statement"],
            TokenType.RIGHT_PAREN: ["Add a closing parenthesis ')'"],
            TokenType.RIGHT_BRACKET: ["Add a closing bracket ']'"],
            TokenType.RIGHT_BRACE: ["Add a closing brace '}'"],
            TokenType.LEFT_BRACE: ["Add an opening brace '{' to start a block"],
            TokenType.COLON: ["Add a colon ':'"],
            TokenType.ASSIGN: ["Add an initializer '= value'"],
        }
        return list(token_suggestions.get(expected, []))

    @staticmethod
    def synchronize_to_statement_boundary(tokens: List[Token], current_pos: int) -> int:
        """
        Find the position to resume parsing from.

        Always moves past at least one token; stops right after a `;` or
        right before a token in STATEMENT_BOUNDARIES, or at EOF.
        """
        last = len(tokens) - 1
        if current_pos < last:
            current_pos += 1
        while current_pos < last:
            if tokens[current_pos - 1].type == TokenType.SEMICOLON:
                return current_pos
            if tokens[current_pos].type in SyntaxErrorRecovery.STATEMENT_BOUNDARIES:
                return current_pos
            current_pos += 1
        return current_pos


# Parser error codes for categorization
PARSER_ERROR_CODES = {
    "P001": "Expected token not found",
    "P002": "Expected expression",
    "P003": "Invalid assignment target",
    "P004": "Undeclared identifier",
    "P005": "Jump outside of its construct",
    "P006": "Undefined label",
    "P007": "Unknown native method",
    "P008": "Malformed declaration",
    "P009": "Parsing canceled due to strict mode",
}


# Helper functions for creating common parser errors

def create_expected_token_error(expected: Union[TokenType, str], found: Token,
                                message: Optional[str] = None) -> ParseError:
    """Create an error for a token that is not the one the grammar needs."""
    expected_str = expected.name if isinstance(expected, TokenType) else expected
    suggestions = SyntaxErrorRecovery.suggest_missing_token(expected) if isinstance(expected, TokenType) else []
    return ParseError(
        message or f"Expect {expected_str}.",
        token=found,
        code="P001",
        suggestions=suggestions,
    )


def create_invalid_target_error(operator: Token, what: str = "assignment") -> ParseError:
    """Create an error for assigning to something that cannot hold a value."""
    return ParseError(
        f"Invalid {what} target.",
        token=operator,
        code="P003",
        help_text="Only variables, index expressions and fields can be assigned.",
    )


def create_undeclared_error(name: Token, suggestions: Optional[List[str]] = None) -> ParseError:
    """Create an error for a name used before its declaration."""
    return ParseError(
        f"Cannot use variable {name.lexeme} before Declaration",
        token=name,
        code="P004",
        suggestions=[f"Did you mean '{candidate}'?" for candidate in (suggestions or [])],
    )


def postfix_step_note(error: ParseError) -> Optional[str]:
    """Extra hint for an error reported at a stray `++`/`--` (as in `i++`)."""
    token = error.token
    if token is None or token.type not in (TokenType.INCREMENT, TokenType.DECREMENT):
        return None
    step = token.lexeme
    return (f"[ Note ] NyaScript doesn't support expressions like ' i{step} ', "
            f"do you mean ' {step}i '?")
