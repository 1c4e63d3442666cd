"""TinyML Lexer — Tokenizer with line/column tracking.

Produces a lazy stream of tokens from TinyML source code, ending in a
single EOF token. Whitespace and ``(* ... *)`` comments are skipped.
Lexing stops at the first malformed token with a ``LexError``.
"""

from __future__ import annotations

import logging
import string
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional

from tinyml.errors import ErrorKind, LexError, SourceLocation, lex_error

logger = logging.getLogger(__name__)


class TokenType(Enum):
    # Keywords
    VAL = auto()
    FUN = auto()
    IF = auto()
    THEN = auto()
    ELSE = auto()
    LET = auto()
    IN = auto()
    END = auto()
    FN = auto()

    # Type keywords
    INT = auto()
    CHAR = auto()
    STRING = auto()
    BOOL = auto()

    # Literals
    INT_LIT = auto()
    CHAR_LIT = auto()
    STRING_LIT = auto()
    BOOL_LIT = auto()

    # Names
    IDENT = auto()
    TYVAR = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    LT = auto()
    GT = auto()
    LTE = auto()
    GTE = auto()
    EQUALS = auto()
    ARROW = auto()
    FAT_ARROW = auto()

    # Delimiters
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COMMA = auto()
    SEMICOLON = auto()
    COLON = auto()
    BAR = auto()
    UNDERSCORE = auto()

    # Special
    EOF = auto()


KEYWORDS: dict[str, TokenType] = {
    "val": TokenType.VAL,
    "fun": TokenType.FUN,
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "else": TokenType.ELSE,
    "let": TokenType.LET,
    "in": TokenType.IN,
    "end": TokenType.END,
    "fn": TokenType.FN,
    "int": TokenType.INT,
    "char": TokenType.CHAR,
    "string": TokenType.STRING,
    "bool": TokenType.BOOL,
    "true": TokenType.BOOL_LIT,
    "false": TokenType.BOOL_LIT,
}

# Two-character symbols are tried before single characters.
PUNCTUATION: dict[str, TokenType] = {
    "->": TokenType.ARROW,
    "=>": TokenType.FAT_ARROW,
    "<=": TokenType.LTE,
    ">=": TokenType.GTE,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
    ":": TokenType.COLON,
    "=": TokenType.EQUALS,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "<": TokenType.LT,
    ">": TokenType.GT,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "|": TokenType.BAR,
    "_": TokenType.UNDERSCORE,
}

_WHITESPACE = " \t\r\n"
_LETTERS = frozenset(string.ascii_letters)
_DIGITS = frozenset(string.digits)
_IDENT_REST = _LETTERS | _DIGITS | {"'", "_"}
_LINE_BREAKS = ("\r", "\n")


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    location: SourceLocation
    negated: bool = False

    def describe(self) -> str:
        """Short human-readable form used in diagnostics."""
        if self.type == TokenType.EOF:
            return "EOF"
        if self.type in (TokenType.IDENT, TokenType.INT_LIT, TokenType.TYVAR):
            prefix = "~" if self.negated else ""
            quote = "'" if self.type == TokenType.TYVAR else ""
            return f"{self.type.name} {quote}{prefix}{self.value}"
        if self.type == TokenType.STRING_LIT:
            return f'STRING_LIT "{self.value}"'
        if self.type == TokenType.CHAR_LIT:
            return f'CHAR_LIT #"{self.value}"'
        return f"{self.type.name} '{self.value}'"

    def __repr__(self) -> str:
        neg = ", negated" if self.negated else ""
        return f"Token({self.type.name}, {self.value!r}{neg}, {self.location})"


class Lexer:
    """Tokenizer for TinyML source code.

    A lexer can start at any offset of the source; line and column are
    recomputed for that offset so positions stay absolute.
    """

    def __init__(self, source: str, filename: str = "<stdin>", offset: int = 0):
        if not 0 <= offset <= len(source):
            raise ValueError(f"offset {offset} outside source of length {len(source)}")
        self.source = source
        self.filename = filename
        self.pos = offset
        self.line = source.count("\n", 0, offset) + 1
        self.column = offset - (source.rfind("\n", 0, offset) + 1) + 1

    def _loc(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _peek(self) -> Optional[str]:
        if self.pos < len(self.source):
            return self.source[self.pos]
        return None

    def _peek_ahead(self, offset: int = 1) -> Optional[str]:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return None

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _fail(self, kind: ErrorKind, message: str, loc: SourceLocation) -> LexError:
        logger.debug("lex error %s at %s", kind.value, loc)
        return LexError(lex_error(kind, message, loc))

    def _skip_whitespace_and_comments(self) -> None:
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in _WHITESPACE:
                self._advance()
            elif ch == "(" and self._peek_ahead() == "*":
                loc = self._loc()
                self._advance()
                self._advance()
                while True:
                    if self.pos >= len(self.source):
                        raise self._fail(
                            ErrorKind.UNTERMINATED_COMMENT,
                            "Unterminated comment", loc,
                        )
                    if self.source[self.pos] == "*" and self._peek_ahead() == ")":
                        self._advance()
                        self._advance()
                        break
                    self._advance()
            else:
                break

    def _read_char(self) -> Token:
        loc = self._loc()
        self._advance()  # '#'
        self._advance()  # opening quote
        ch = self._peek()
        if ch is None:
            raise self._fail(ErrorKind.UNTERMINATED_CHAR, "Unterminated character literal", loc)
        if ch in _LINE_BREAKS:
            raise self._fail(
                ErrorKind.INVALID_CHAR_LITERAL,
                "Line break inside character literal", loc,
            )
        if ch == '"':
            raise self._fail(ErrorKind.INVALID_CHAR_LITERAL, "Empty character literal", loc)
        if not ch.isascii():
            # Char literals hold one byte.
            raise self._fail(
                ErrorKind.INVALID_CHAR_LITERAL,
                f"Non-ASCII character {ch!r} in character literal", loc,
            )
        value = self._advance()
        if self._peek() == '"':
            self._advance()
            return Token(TokenType.CHAR_LIT, value, loc)
        # Too long if a closing quote turns up before the line ends.
        idx = self.pos
        while idx < len(self.source) and self.source[idx] not in _LINE_BREAKS:
            if self.source[idx] == '"':
                raise self._fail(
                    ErrorKind.INVALID_CHAR_LITERAL,
                    "Character literal must contain exactly one character", loc,
                )
            idx += 1
        raise self._fail(ErrorKind.UNTERMINATED_CHAR, "Unterminated character literal", loc)

    def _read_string(self) -> Token:
        loc = self._loc()
        self._advance()  # opening quote
        start = self.pos
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == '"':
                value = self.source[start:self.pos]
                self._advance()
                return Token(TokenType.STRING_LIT, value, loc)
            if ch in _LINE_BREAKS:
                break
            self._advance()
        raise self._fail(ErrorKind.UNTERMINATED_STRING, "Unterminated string literal", loc)

    def _read_number(self) -> Token:
        loc = self._loc()
        negated = False
        if self._peek() == "~":
            negated = True
            self._advance()
        start = self.pos
        while self.pos < len(self.source) and self.source[self.pos] in _DIGITS:
            self._advance()
        return Token(TokenType.INT_LIT, self.source[start:self.pos], loc, negated=negated)

    def _read_tyvar(self) -> Token:
        loc = self._loc()
        self._advance()  # leading quote
        start = self.pos
        while self.pos < len(self.source) and self.source[self.pos] in _IDENT_REST:
            self._advance()
        return Token(TokenType.TYVAR, self.source[start:self.pos], loc)

    def _read_identifier(self) -> Token:
        loc = self._loc()
        start = self.pos
        while self.pos < len(self.source) and self.source[self.pos] in _IDENT_REST:
            self._advance()
        value = self.source[start:self.pos]
        token_type = KEYWORDS.get(value, TokenType.IDENT)
        return Token(token_type, value, loc)

    def _read_punctuation(self) -> Optional[Token]:
        loc = self._loc()
        two = self.source[self.pos:self.pos + 2]
        if len(two) == 2 and two in PUNCTUATION:
            self._advance()
            self._advance()
            return Token(PUNCTUATION[two], two, loc)
        ch = self.source[self.pos]
        if ch in PUNCTUATION:
            self._advance()
            return Token(PUNCTUATION[ch], ch, loc)
        return None

    def tokens(self) -> Iterator[Token]:
        """Yield tokens lazily, finishing with EOF."""
        logger.debug("lexing %s from offset %d", self.filename, self.pos)
        while True:
            self._skip_whitespace_and_comments()
            if self.pos >= len(self.source):
                break

            ch = self.source[self.pos]
            nxt = self._peek_ahead()

            if ch == "#" and nxt == '"':
                yield self._read_char()
            elif ch == '"':
                yield self._read_string()
            elif ch in _DIGITS or (ch == "~" and nxt is not None and nxt in _DIGITS):
                yield self._read_number()
            elif ch == "'":
                yield self._read_tyvar()
            elif ch in _LETTERS:
                yield self._read_identifier()
            else:
                tok = self._read_punctuation()
                if tok is None:
                    raise self._fail(
                        ErrorKind.UNRECOGNIZED_CHARACTER,
                        f"Unexpected character {ch!r}", self._loc(),
                    )
                yield tok

        yield Token(TokenType.EOF, "", self._loc())

    def __iter__(self) -> Iterator[Token]:
        return self.tokens()

    def tokenize(self) -> list[Token]:
        return list(self.tokens())


def tokenize(source: str, filename: str = "<stdin>") -> list[Token]:
    """Convenience function to tokenize TinyML source code."""
    return Lexer(source, filename).tokenize()


def iter_tokens(source: str, filename: str = "<stdin>", offset: int = 0) -> Iterator[Token]:
    """Lazily tokenize TinyML source code, optionally from ``offset``."""
    return Lexer(source, filename, offset).tokens()
