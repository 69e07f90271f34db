"""
Expression builder: left-folds a Block onto a receiver expression.

    receiver, { a(); b(1) { c(); } [* 2]; }
        => ((receiver.a().b(1, |b| b.c())) * 2)

Sub-scopes are folded with an explicit work-list instead of Python recursion,
so nesting depth is limited by memory, not by the interpreter stack.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .syntax import (
    BinaryOp,
    Block,
    Call,
    Closure,
    Expression,
    MethodCall,
    Opaque,
    OperatorStep,
    Step,
    is_call,
)

DEFAULT_PARAM_PREFIX = "b"


class ParamNamer:
    """Closure parameter names, one per nesting depth: b, b2, b3, ..."""

    def __init__(self, prefix: str = DEFAULT_PARAM_PREFIX):
        if not prefix.isidentifier():
            raise ValueError(f"closure parameter prefix must be an identifier, got {prefix!r}")
        self.prefix = prefix

    def name_for(self, depth: int) -> str:
        if depth < 1:
            raise ValueError(f"sub-scope depth starts at 1, got {depth}")
        return self.prefix if depth == 1 else f"{self.prefix}{depth}"


@dataclass
class _Frame:
    steps: Tuple[Step, ...]
    current: Expression
    depth: int
    # The call whose body this frame folds, and the parameter bound for it.
    call: Optional[Call] = None
    param: str = ""
    index: int = 0


def apply_step(current: Expression, step: Step) -> Expression:
    """One fold step for a step without a body."""
    match step:
        case OperatorStep(operator=op, operand=operand):
            return BinaryOp(current, op, operand)
        case Call(name=name, args=args, body=None):
            return MethodCall(current, name, tuple(args))
        case _:
            raise TypeError(f"apply_step cannot fold {step!r}")


def fold(block: Block, receiver: Expression, namer: Optional[ParamNamer] = None) -> Expression:
    """Fold block's steps, in source order, onto receiver."""
    namer = namer or ParamNamer()
    stack: List[_Frame] = [_Frame(block.steps, receiver, depth=0)]

    while True:
        frame = stack[-1]

        if frame.index == len(frame.steps):
            stack.pop()
            if not stack:
                return frame.current

            # Body finished: close over it and resume the enclosing scope.
            call = frame.call
            assert call is not None
            parent = stack[-1]
            closure = Closure(frame.param, frame.current)
            parent.current = MethodCall(parent.current, call.name, tuple(call.args) + (closure,))
            continue

        step = frame.steps[frame.index]
        frame.index += 1

        if is_call(step) and step.body is not None:
            depth = frame.depth + 1
            param = namer.name_for(depth)
            stack.append(_Frame(step.body.steps, Opaque(param), depth, call=step, param=param))
            continue

        frame.current = apply_step(frame.current, step)
