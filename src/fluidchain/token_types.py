"""
Token Types for fluidchain

Shared between lexer, block parser and chain reader to avoid circular
dependencies.
"""

from typing import Any
from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types"""

    # Literals
    NUMBER = auto()
    STRING = auto()
    CHAR = auto()
    LIFETIME = auto()
    IDENT = auto()

    # Keywords
    AS = auto()

    # Arithmetic
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    MOD = auto()

    # Bitwise
    AMP = auto()  # &
    PIPE = auto()  # |
    CARET = auto()  # ^
    SHL = auto()  # <<
    SHR = auto()  # >>

    # Comparison
    EQ = auto()
    NEQ = auto()
    LT = auto()
    LTE = auto()
    GT = auto()
    GTE = auto()

    # Logical
    AND = auto()  # &&
    OR = auto()  # ||
    NEG = auto()  # !

    # Misc operators
    ASSIGN = auto()  # =
    PATHSEP = auto()  # ::
    ARROW = auto()  # ->
    FATARROW = auto()  # =>
    RANGE = auto()  # ..
    RANGEEQ = auto()  # ..=
    QMARK = auto()
    HASH = auto()
    AT = auto()
    DOLLAR = auto()

    # Punctuation
    LPAR = auto()
    RPAR = auto()
    LSQB = auto()
    RSQB = auto()
    LBRACE = auto()
    RBRACE = auto()
    DOT = auto()
    COMMA = auto()
    COLON = auto()
    SEMI = auto()

    # Special
    EOF = auto()


# Openers and their matching closers; used for delimiter balancing.
OPENERS = {TT.LPAR: TT.RPAR, TT.LSQB: TT.RSQB, TT.LBRACE: TT.RBRACE}
CLOSERS = {v: k for k, v in OPENERS.items()}

# Binary operators a bracketed operator step may use, keyed by symbol.
OPERATOR_SYMBOLS = {
    '+': TT.PLUS,
    '-': TT.MINUS,
    '*': TT.STAR,
    '/': TT.SLASH,
    '%': TT.MOD,
    '&': TT.AMP,
    '|': TT.PIPE,
    '^': TT.CARET,
    '<<': TT.SHL,
    '>>': TT.SHR,
    '==': TT.EQ,
    '!=': TT.NEQ,
    '<': TT.LT,
    '<=': TT.LTE,
    '>': TT.GT,
    '>=': TT.GTE,
    '&&': TT.AND,
    '||': TT.OR,
    'as': TT.AS,
}
OPERATOR_TYPES = frozenset(OPERATOR_SYMBOLS.values())


@dataclass
class Tok:
    """Token with position info.

    ``start``/``end`` are character offsets into the source so that opaque
    runs can be sliced back out verbatim.
    """

    type: TT
    value: Any
    line: int = 0
    column: int = 0
    start: int = 0
    end: int = 0

    def __repr__(self):
        return f"Tok({self.type.name}, {self.value!r}, {self.line}:{self.column})"
