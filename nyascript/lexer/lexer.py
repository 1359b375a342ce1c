"""
NyaScript Lexer - turns source text into tokens

Plain character-at-a-time scanner. Nothing clever: longest-match for
operators, keywords looked up after reading a whole identifier. Errors get
collected and the bad character skipped so one typo doesn't hide the rest.

xwest
"""

from typing import List, Optional

from .tokens import (
    Token, TokenType, SourceLocation, KEYWORDS, OPERATORS, LAMBDA_CHAR,
    is_identifier_start, is_identifier_char
)
from .errors import (
    LexerError, create_unexpected_character_error,
    create_unterminated_string_error, create_invalid_escape_error,
    create_unterminated_comment_error
)


ESCAPES = {
    '"': '"',
    '\\': '\\',
    'n': '\n',
    't': '\t',
}


class Lexer:
    """
    NyaScript lexical analyzer.

    Converts source code text into a list of tokens terminated by EOF.
    """

    def __init__(self, source: str, filename: str = "<script>"):
        """
        Initialize the lexer with source code.

        Args:
            source: Source code string
            filename: Name of source file for error reporting
        """
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []
        self.errors: List[LexerError] = []

    def tokenize(self) -> List[Token]:
        """
        Tokenize the entire source code.

        Returns:
            List of tokens including EOF token
        """
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens = []
        self.errors = []

        while True:
            try:
                self._skip_whitespace_and_comments()

                if self._is_at_end():
                    break

                self.tokens.append(self._next_token())

            except LexerError as e:
                self.errors.append(e)

        self.tokens.append(Token(TokenType.EOF, "", None, self._location()))
        return self.tokens

    def _next_token(self) -> Token:
        """Scan one token starting at the current position."""
        start = self._location()
        start_pos = self.pos
        char = self.source[self.pos]

        if char == LAMBDA_CHAR:
            self._advance()
            return Token(TokenType.FUN, char, None, start)

        if char.isdigit() and char.isascii():
            return self._tokenize_number(start, start_pos)

        if is_identifier_start(char):
            return self._tokenize_identifier(start, start_pos)

        if char == '"':
            return self._tokenize_string(start)

        # Operators and punctuation, longest first
        for op_len in (2, 1):
            candidate = self.source[self.pos:self.pos + op_len]
            if len(candidate) == op_len and candidate in OPERATORS:
                self._advance_by(op_len)
                return Token(OPERATORS[candidate], candidate, None, start)

        self._advance()
        raise create_unexpected_character_error(char, start)

    def _tokenize_number(self, start: SourceLocation, start_pos: int) -> Token:
        while self._peek().isdigit() and self._peek().isascii():
            self._advance()

        # A fraction needs a digit after the dot: `1.x` stays NUMBER DOT IDENTIFIER
        if self._peek() == '.' and self._peek_next().isdigit() and self._peek_next().isascii():
            self._advance()
            while self._peek().isdigit() and self._peek().isascii():
                self._advance()

        lexeme = self.source[start_pos:self.pos]
        return Token(TokenType.NUMBER, lexeme, float(lexeme), start)

    def _tokenize_identifier(self, start: SourceLocation, start_pos: int) -> Token:
        while not self._is_at_end() and is_identifier_char(self._peek()):
            self._advance()

        lexeme = self.source[start_pos:self.pos]
        token_type = KEYWORDS.get(lexeme, TokenType.IDENTIFIER)
        return Token(token_type, lexeme, None, start)

    def _tokenize_string(self, start: SourceLocation) -> Token:
        start_pos = self.pos
        self._advance()  # opening quote
        chars: List[str] = []

        while not self._is_at_end() and self._peek() != '"':
            char = self._advance()
            if char == '\\':
                if self._is_at_end():
                    break
                escape_location = self._location()
                escaped = self._advance()
                if escaped in ESCAPES:
                    char = ESCAPES[escaped]
                else:
                    # Keep going, the raw character stands in for the escape
                    self.errors.append(create_invalid_escape_error(escaped, escape_location))
                    char = escaped
            chars.append(char)

        if self._is_at_end():
            raise create_unterminated_string_error(start)

        self._advance()  # closing quote
        return Token(TokenType.STRING, self.source[start_pos:self.pos], "".join(chars), start)

    def _skip_whitespace_and_comments(self):
        """Skip whitespace, line comments and block comments."""
        while not self._is_at_end():
            char = self._peek()

            if char in ' \t\r\n':
                self._advance()
            elif char == '/' and self._peek_next() == '/':
                while not self._is_at_end() and self._peek() != '\n':
                    self._advance()
            elif char == '/' and self._peek_next() == '*':
                start = self._location()
                self._advance_by(2)
                while not self._is_at_end() and not (self._peek() == '*' and self._peek_next() == '/'):
                    self._advance()
                if self._is_at_end():
                    raise create_unterminated_comment_error(start)
                self._advance_by(2)
            else:
                break

    # ------------------------------------------------------------------
    # Character helpers
    # ------------------------------------------------------------------

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _peek(self) -> str:
        if self._is_at_end():
            return '\0'
        return self.source[self.pos]

    def _peek_next(self) -> str:
        if self.pos + 1 >= len(self.source):
            return '\0'
        return self.source[self.pos + 1]

    def _advance(self) -> str:
        char = self.source[self.pos]
        self.pos += 1
        if char == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return char

    def _advance_by(self, count: int):
        for _ in range(count):
            self._advance()

    def _location(self) -> SourceLocation:
        return SourceLocation(self.filename, self.line, self.column)


def tokenize_string(source: str, filename: str = "<script>") -> List[Token]:
    """Convenience function to tokenize a string, ignoring lexer errors."""
    return Lexer(source, filename).tokenize()
