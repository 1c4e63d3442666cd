"""Structured error objects for the TinyML front end.

Every error is a record with a kind, a message and a source location, so a
caller can render diagnostics or serialise them as JSON. Lexing and parsing
stop at the first error; the record travels inside a ``CompileError``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional


class ErrorKind(Enum):
    # Lexical
    UNTERMINATED_COMMENT = "unterminated_comment"
    UNTERMINATED_STRING = "unterminated_string"
    UNTERMINATED_CHAR = "unterminated_char"
    INVALID_CHAR_LITERAL = "invalid_char_literal"
    UNRECOGNIZED_CHARACTER = "unrecognized_character"

    # Syntactic
    UNEXPECTED_TOKEN = "unexpected_token"
    UNEXPECTED_EOF = "unexpected_eof"
    NESTING_TOO_DEEP = "nesting_too_deep"

    @property
    def is_lexical(self) -> bool:
        return self in _LEXICAL_KINDS


_LEXICAL_KINDS = frozenset({
    ErrorKind.UNTERMINATED_COMMENT,
    ErrorKind.UNTERMINATED_STRING,
    ErrorKind.UNTERMINATED_CHAR,
    ErrorKind.INVALID_CHAR_LITERAL,
    ErrorKind.UNRECOGNIZED_CHARACTER,
})


@dataclass(frozen=True)
class SourceLocation:
    line: int
    column: int
    offset: int = 0
    file: str = "<stdin>"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass
class TinyMLError:
    kind: ErrorKind
    message: str
    location: Optional[SourceLocation] = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def production(self) -> Optional[str]:
        return self.details.get("production")

    @property
    def expected(self) -> list[str]:
        return self.details.get("expected", [])

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.location:
            d["location"] = {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
                "offset": self.location.offset,
            }
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        return f"[{self.kind.value}]{loc}: {self.message}"


def lex_error(
    kind: ErrorKind,
    message: str,
    location: Optional[SourceLocation] = None,
) -> TinyMLError:
    return TinyMLError(kind=kind, message=message, location=location)


def unexpected_token(
    production: str,
    expected: Iterable[str],
    actual: str,
    location: Optional[SourceLocation] = None,
) -> TinyMLError:
    """Build the error for a token no alternative of ``production`` accepts.

    An ``EOF`` actual token produces an ``UNEXPECTED_EOF`` record instead.
    """
    expected_names = sorted(set(expected))
    listing = ", ".join(expected_names)
    if actual == "EOF":
        return TinyMLError(
            kind=ErrorKind.UNEXPECTED_EOF,
            message=f"Unexpected end of input while parsing {production}; expected one of: {listing}",
            location=location,
            details={"production": production, "expected": expected_names},
        )
    return TinyMLError(
        kind=ErrorKind.UNEXPECTED_TOKEN,
        message=f"Unexpected {actual} while parsing {production}; expected one of: {listing}",
        location=location,
        details={
            "production": production,
            "expected": expected_names,
            "actual": actual,
        },
    )


def nesting_error(
    production: str,
    limit: int,
    location: Optional[SourceLocation] = None,
) -> TinyMLError:
    return TinyMLError(
        kind=ErrorKind.NESTING_TOO_DEEP,
        message=f"Nesting deeper than {limit} levels while parsing {production}",
        location=location,
        details={"production": production, "limit": limit},
    )


class CompileError(Exception):
    """Exception wrapping one or more TinyMLErrors."""

    def __init__(self, errors: list[TinyMLError] | TinyMLError):
        if isinstance(errors, TinyMLError):
            errors = [errors]
        self.errors = errors
        super().__init__(self._format())

    @property
    def error(self) -> TinyMLError:
        return self.errors[0]

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def location(self) -> Optional[SourceLocation]:
        return self.error.location

    def _format(self) -> str:
        return "\n".join(str(e) for e in self.errors)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps([e.to_dict() for e in self.errors], indent=indent)


class LexError(CompileError):
    """Raised by the lexer on the first malformed token."""


class ParseError(CompileError):
    """Raised by the parser on the first token no production accepts."""
