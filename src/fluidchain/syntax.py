from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union
from typing_extensions import TypeAlias, TypeGuard

from .token_types import OPERATOR_SYMBOLS

# Operator symbols accepted inside `[op operand]` steps.
SUPPORTED_OPERATORS = frozenset(OPERATOR_SYMBOLS)

# ---------- Source locations ----------

@dataclass(frozen=True)
class Location:
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"

NOWHERE = Location()

# ---------- Expressions (fold output) ----------

@dataclass(frozen=True)
class Opaque:
    """Pass-through leaf: receiver text, a literal, an argument copied verbatim.

    ``atomic`` marks text that is a single primary (optionally with call or
    index groups) and can take a `.method()` suffix without parentheses.
    """
    text: str
    atomic: bool = field(default=True, compare=False)

    def __repr__(self) -> str:
        return f"Opaque({self.text!r})"

@dataclass(frozen=True)
class MethodCall:
    receiver: Expression
    name: str
    args: Tuple[Expression, ...] = ()

@dataclass(frozen=True)
class BinaryOp:
    left: Expression
    operator: str
    right: Expression

@dataclass(frozen=True)
class Closure:
    parameter: str
    body: Expression

Expression: TypeAlias = Union[Opaque, MethodCall, BinaryOp, Closure]

# ---------- Steps and blocks (parser output) ----------

@dataclass(frozen=True)
class Call:
    name: str
    args: Tuple[Opaque, ...] = ()
    body: Optional[Block] = None
    loc: Location = field(default=NOWHERE, compare=False, repr=False)

@dataclass(frozen=True)
class OperatorStep:
    operator: str
    operand: Opaque
    loc: Location = field(default=NOWHERE, compare=False, repr=False)

Step: TypeAlias = Union[Call, OperatorStep]

@dataclass(frozen=True)
class Block:
    steps: Tuple[Step, ...] = ()

    def __iter__(self):
        return iter(self.steps)

    def depth(self) -> int:
        """Deepest sub-scope nesting below this block (0 when flat)."""
        deepest = 0
        pending = [(self, 0)]
        while pending:
            block, level = pending.pop()
            deepest = max(deepest, level)
            for step in block.steps:
                if is_call(step) and step.body is not None:
                    pending.append((step.body, level + 1))
        return deepest

@dataclass(frozen=True)
class Invocation:
    """`receiver, { block }` as written at the expansion site."""
    receiver: Opaque
    block: Block

def is_call(step: Step) -> TypeGuard[Call]:
    return isinstance(step, Call)
