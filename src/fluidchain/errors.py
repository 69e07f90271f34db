"""Exception hierarchy shared by the lexer, parsers and configuration."""

from __future__ import annotations

from typing import Optional

from .token_types import Tok


class FluidError(Exception):
    """Base class for every error raised by fluidchain."""


class LexError(FluidError):
    """Lexical analysis error"""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(f"{message} at line {line}, col {column}")


class ParseError(FluidError):
    """Parse error with position info"""

    def __init__(self, message: str, token: Optional[Tok] = None):
        self.message = message
        self.token = token
        super().__init__(
            f"{message} at line {token.line}, col {token.column}" if token else message
        )

    @property
    def line(self) -> int:
        return self.token.line if self.token else 0

    @property
    def column(self) -> int:
        return self.token.column if self.token else 0


class MalformedStep(ParseError):
    """A step matches neither the call grammar nor the operator-bracket grammar."""


class UnbalancedDelimiter(ParseError):
    """A brace/bracket/paren without its matching partner."""


class MisplacedBody(ParseError):
    """A brace-delimited sub-scope that is not the last element of its step."""


class EmptyOperand(ParseError):
    """An operator step with an operator but nothing to apply it to."""


class NestingTooDeep(ParseError):
    """Sub-scopes nested deeper than the configured limit."""


class ConfigError(FluidError):
    pass
