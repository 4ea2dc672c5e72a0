"""
Lexer for sable source text.

Converts source text into a flat stream of tokens for the parser.
Supports:
- Brace-delimited blocks (whitespace and newlines are not tokens)
- Line-break tracking through ``Token.newline_before``
- Single-line comments (``#`` and ``//``)
- Nestable block comments (``/* */``)
- String literals with escape sequences
- Integer literals (decimal, hex, binary, octal) checked against 64 bits
- Float literals (including scientific notation)
"""

import logging
from typing import List, Optional, Iterator
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_unterminated_comment,
    error_invalid_escape_sequence,
    error_invalid_number_literal,
)

logger = logging.getLogger(__name__)

INT64_MAX = 2 ** 63 - 1

_RADIX_DIGITS = {
    16: '0123456789abcdefABCDEF',
    8: '01234567',
    2: '01',
}


class Lexer:
    """
    Tokenizer for sable source.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list
        self._newline_seen = False  # A line break since the previous token

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
            self._newline_seen = True
        else:
            self.column += 1
        return ch

    def _match(self, expected: str) -> bool:
        """Consume character if it matches expected."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _skip_line_comment(self) -> None:
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_block_comment(self) -> None:
        """Skip /* ... */ comment, allowing nesting."""
        start = self._location()
        self._advance()  # consume '/'
        self._advance()  # consume '*'
        depth = 1

        while not self._is_at_end() and depth > 0:
            if self._peek() == '/' and self._peek(1) == '*':
                self._advance()
                self._advance()
                depth += 1
            elif self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                depth -= 1
            else:
                self._advance()

        if depth > 0:
            raise error_unterminated_comment(
                self._span(start),
                self.get_source_line(start.line)
            )

    def _skip_trivia(self) -> None:
        """Skip whitespace, newlines and comments."""
        while not self._is_at_end():
            ch = self._peek()
            if ch in ' \t\r\n':
                self._advance()
            elif ch == '#' or (ch == '/' and self._peek(1) == '/'):
                self._skip_line_comment()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_block_comment()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span, self._newline_seen)

    def _scan_string(self) -> Token:
        """Scan a single-line string literal."""
        start = self._location()
        quote = self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != quote:
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                self._advance()  # consume backslash
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING_LITERAL, ''.join(chars), start)

    def _scan_escape_sequence(self) -> str:
        """Parse an escape sequence after backslash."""
        esc_start = self._location()
        if self._is_at_end():
            raise error_invalid_escape_sequence(
                "", self._span(esc_start), self.get_source_line(esc_start.line)
            )

        ch = self._advance()
        escape_chars = {
            'n': '\n',
            't': '\t',
            'r': '\r',
            '\\': '\\',
            '"': '"',
            "'": "'",
            '0': '\0',
        }

        if ch in escape_chars:
            return escape_chars[ch]
        if ch in 'xu':
            width = 2 if ch == 'x' else 4
            hex_chars = ''.join(self._advance() for _ in range(width))
            try:
                return chr(int(hex_chars, 16))
            except ValueError:
                raise error_invalid_escape_sequence(
                    f"{ch}{hex_chars}", self._span(esc_start),
                    self.get_source_line(esc_start.line)
                ) from None
        raise error_invalid_escape_sequence(
            ch, self._span(esc_start), self.get_source_line(esc_start.line)
        )

    def _invalid_number(self, start: SourceLocation, reason: str = None):
        lexeme = self.source[start.offset:self.pos]
        return error_invalid_number_literal(
            lexeme, self._span(start), self.get_source_line(start.line), reason
        )

    def _scan_number(self) -> Token:
        """Scan a numeric literal (int or float)."""
        start = self._location()

        if self._peek() == '0' and self._peek(1) in 'xXoObB':
            self._advance()
            prefix = self._advance().lower()
            radix = {'x': 16, 'o': 8, 'b': 2}[prefix]
            return self._scan_radix_number(start, radix)

        while self._peek().isdigit() or self._peek() == '_':
            self._advance()

        is_float = False
        # '1..5' is a range, not a float
        if self._peek() == '.' and self._peek(1).isdigit():
            is_float = True
            self._advance()  # consume '.'
            while self._peek().isdigit() or self._peek() == '_':
                self._advance()

        if self._peek() in 'eE':
            is_float = True
            self._advance()  # consume 'e'
            if self._peek() in '+-':
                self._advance()
            if not self._peek().isdigit():
                raise self._invalid_number(start, "missing exponent digits")
            while self._peek().isdigit():
                self._advance()

        lexeme = self.source[start.offset:self.pos]
        text = lexeme.replace('_', '')
        if lexeme.endswith('_'):
            raise self._invalid_number(start, "trailing '_'")
        try:
            if is_float:
                return self._make_token(TokenType.FLOAT_LITERAL, float(text), start, lexeme)
            value = int(text)
        except ValueError:
            raise self._invalid_number(start) from None
        return self._finish_int(value, start, lexeme)

    def _scan_radix_number(self, start: SourceLocation, radix: int) -> Token:
        """Scan a 0x / 0o / 0b prefixed integer literal."""
        digits = _RADIX_DIGITS[radix]
        if self._peek() not in digits:
            raise self._invalid_number(start, "missing digits after prefix")

        while self._peek() in digits or self._peek() == '_':
            self._advance()

        if self._peek().isalnum():
            while self._peek().isalnum():
                self._advance()
            raise self._invalid_number(start, f"invalid digit for base {radix}")

        lexeme = self.source[start.offset:self.pos]
        value = int(lexeme[2:].replace('_', ''), radix)
        return self._finish_int(value, start, lexeme)

    def _finish_int(self, value: int, start: SourceLocation, lexeme: str) -> Token:
        if value > INT64_MAX:
            raise self._invalid_number(start, "does not fit in a 64-bit signed integer")
        return self._make_token(TokenType.INT_LITERAL, value, start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        start = self._location()

        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        token_type = KEYWORDS.get(lexeme, TokenType.IDENTIFIER)
        return self._make_token(token_type, lexeme, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._newline_seen = False
        self._skip_trivia()

        start = self._location()
        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, start, "")

        ch = self._peek()

        if ch in '"\'':
            return self._scan_string()

        if ch.isdigit():
            return self._scan_number()

        if ch.isalpha() or ch == '_':
            return self._scan_identifier_or_keyword()

        self._advance()

        # Two-character operators
        if ch == '=' and self._match('>'):
            return self._make_token(TokenType.DOUBLE_ARROW, "=>", start)
        if ch == '=' and self._match('='):
            return self._make_token(TokenType.EQ, "==", start)
        if ch == '!' and self._match('='):
            return self._make_token(TokenType.NE, "!=", start)
        if ch == '<' and self._match('='):
            return self._make_token(TokenType.LE, "<=", start)
        if ch == '>' and self._match('='):
            return self._make_token(TokenType.GE, ">=", start)
        if ch == '.' and self._match('.'):
            return self._make_token(TokenType.RANGE, "..", start)
        if ch == '+' and self._match('+'):
            return self._make_token(TokenType.PLUS_PLUS, "++", start)
        if ch == '-' and self._match('-'):
            return self._make_token(TokenType.MINUS_MINUS, "--", start)

        single_char_tokens = {
            '+': TokenType.PLUS,
            '-': TokenType.MINUS,
            '*': TokenType.STAR,
            '/': TokenType.SLASH,
            '<': TokenType.LT,
            '>': TokenType.GT,
            '=': TokenType.ASSIGN,
            '(': TokenType.LPAREN,
            ')': TokenType.RPAREN,
            '[': TokenType.LBRACKET,
            ']': TokenType.RBRACKET,
            '{': TokenType.LBRACE,
            '}': TokenType.RBRACE,
            ':': TokenType.COLON,
            ';': TokenType.SEMICOLON,
            ',': TokenType.COMMA,
            '|': TokenType.PIPE,
            '@': TokenType.AT,
        }

        if ch in single_char_tokens:
            return self._make_token(single_char_tokens[ch], ch, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        tokens = list(self)
        logger.debug("tokenized %s into %d tokens", self.filename or "<input>", len(tokens))
        return tokens

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self._scan_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens, always ending with an EOF token

    Raises:
        LexerError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
