"""
Token types for the sable lexer.

Token type categories follow the diagnostic code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    INT_LITERAL = auto()        # 42, 0xff, 0b1010, 0o17
    FLOAT_LITERAL = auto()      # 3.14, 1e-9, 2.5E+10
    STRING_LITERAL = auto()     # "hello", 'hi'

    # --- Identifiers ---
    IDENTIFIER = auto()         # user-defined names

    # --- Keywords ---
    LET = auto()                # let
    DEF = auto()                # def
    IF = auto()                 # if
    ELSE = auto()               # else
    WHILE = auto()              # while
    FOR = auto()                # for
    IN = auto()                 # in
    RETURN = auto()             # return
    BREAK = auto()              # break
    CONTINUE = auto()           # continue
    ASSERT = auto()             # assert
    TRUE = auto()               # true
    FALSE = auto()              # false
    NOTHING = auto()            # nothing

    # --- Logical operators (keyword-based) ---
    AND = auto()                # and
    OR = auto()                 # or
    NOT = auto()                # not

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PLUS_PLUS = auto()          # ++
    MINUS_MINUS = auto()        # --

    # --- Comparison operators ---
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=
    EQ = auto()                 # ==
    NE = auto()                 # !=

    # --- Assignment ---
    ASSIGN = auto()             # =

    # --- Delimiters ---
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COLON = auto()              # :
    SEMICOLON = auto()          # ;
    COMMA = auto()              # ,
    DOUBLE_ARROW = auto()       # => (function shorthand bodies)
    RANGE = auto()              # ..
    PIPE = auto()               # | (lambda parameter list)
    AT = auto()                 # @ (decorator)

    # --- Special ---
    EOF = auto()                # end of input


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        return str(self.start)

    def merge(self, other: "SourceSpan") -> "SourceSpan":
        """Span covering this span through the end of ``other``."""
        return SourceSpan(self.start, other.end)


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # int, float or str for literals and identifiers
    lexeme: str             # the original source text
    span: SourceSpan
    newline_before: bool = False  # a line break precedes this token

    def __str__(self) -> str:
        if self.type in (TokenType.INT_LITERAL, TokenType.FLOAT_LITERAL,
                         TokenType.STRING_LITERAL, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "def": TokenType.DEF,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "return": TokenType.RETURN,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "assert": TokenType.ASSERT,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "nothing": TokenType.NOTHING,
    "and": TokenType.AND,
    "or": TokenType.OR,
    "not": TokenType.NOT,
}


def lookup_keyword(name: str) -> Optional[TokenType]:
    """Return the keyword token type for ``name``, or None for identifiers."""
    return KEYWORDS.get(name)


def describe_token_type(token_type: TokenType) -> str:
    """Human readable name of a token type, used in parse errors."""
    for keyword, kw_type in KEYWORDS.items():
        if kw_type is token_type:
            return f"'{keyword}'"
    return _PUNCTUATION.get(token_type, token_type.name.lower().replace("_", " "))


_PUNCTUATION: dict[TokenType, str] = {
    TokenType.PLUS: "'+'",
    TokenType.MINUS: "'-'",
    TokenType.STAR: "'*'",
    TokenType.SLASH: "'/'",
    TokenType.PLUS_PLUS: "'++'",
    TokenType.MINUS_MINUS: "'--'",
    TokenType.LT: "'<'",
    TokenType.GT: "'>'",
    TokenType.LE: "'<='",
    TokenType.GE: "'>='",
    TokenType.EQ: "'=='",
    TokenType.NE: "'!='",
    TokenType.ASSIGN: "'='",
    TokenType.LBRACE: "'{'",
    TokenType.RBRACE: "'}'",
    TokenType.LPAREN: "'('",
    TokenType.RPAREN: "')'",
    TokenType.LBRACKET: "'['",
    TokenType.RBRACKET: "']'",
    TokenType.COLON: "':'",
    TokenType.SEMICOLON: "';'",
    TokenType.COMMA: "','",
    TokenType.DOUBLE_ARROW: "'=>'",
    TokenType.RANGE: "'..'",
    TokenType.PIPE: "'|'",
    TokenType.AT: "'@'",
    TokenType.EOF: "end of input",
}
