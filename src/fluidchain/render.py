"""Render expressions (and blocks) back to host syntax text.

Long chains fold into deeply left-nested MethodCalls, so rendering walks the
tree with an explicit stack.
"""

from __future__ import annotations

from typing import List, Tuple

from .syntax import (
    BinaryOp,
    Block,
    Call,
    Closure,
    Expression,
    MethodCall,
    Opaque,
    OperatorStep,
)


def _children(node: Expression) -> Tuple[Expression, ...]:
    match node:
        case MethodCall(receiver=receiver, args=args):
            return (receiver, *args)
        case BinaryOp(left=left, right=right):
            return (left, right)
        case Closure(body=body):
            return (body,)
        case _:
            return ()


def _needs_parens(node: Expression) -> bool:
    """Whether node must be parenthesized as a receiver or left operand"""
    if isinstance(node, Opaque):
        return not node.atomic
    return isinstance(node, Closure)


def _wrap(node: Expression, text: str) -> str:
    return f"({text})" if _needs_parens(node) else text


def _assemble(node: Expression, parts: List[str]) -> str:
    match node:
        case MethodCall(receiver=receiver, name=name):
            recv = _wrap(receiver, parts[0])
            return f"{recv}.{name}({', '.join(parts[1:])})"
        case BinaryOp(left=left, operator=op):
            return f"({_wrap(left, parts[0])} {op} {parts[1]})"
        case Closure(parameter=param):
            return f"|{param}| {parts[0]}"
        case _:
            raise TypeError(f"cannot render {node!r}")


def render(expr: Expression) -> str:
    """Expression -> host syntax, e.g. `x.add(5).multiplied(3, |b| b.add(4))`"""
    stack: List[Tuple[Expression, bool]] = [(expr, False)]
    results: List[str] = []

    while stack:
        node, ready = stack.pop()

        if isinstance(node, Opaque):
            results.append(node.text)
            continue

        children = _children(node)
        if not ready:
            stack.append((node, True))
            for child in reversed(children):
                stack.append((child, False))
            continue

        count = len(children)
        parts = results[len(results) - count:]
        del results[len(results) - count:]
        results.append(_assemble(node, parts))

    return results[0]


def pretty(expr: Expression, indent: str = "  ") -> str:
    """Indented structural dump of an expression tree."""
    lines: List[str] = []
    stack: List[Tuple[Expression, int]] = [(expr, 0)]

    while stack:
        node, level = stack.pop()
        pad = indent * level

        match node:
            case Opaque(text=text):
                lines.append(f"{pad}opaque {text}")
            case MethodCall(name=name):
                lines.append(f"{pad}method {name}")
            case BinaryOp(operator=op):
                lines.append(f"{pad}binop {op}")
            case Closure(parameter=param):
                lines.append(f"{pad}closure |{param}|")

        for child in reversed(_children(node)):
            stack.append((child, level + 1))

    return "\n".join(lines)


def format_block(block: Block, indent: str = "    ", level: int = 0) -> str:
    """Block -> canonical block notation, one step per line."""
    pad = indent * level
    lines: List[str] = []

    for step in block.steps:
        match step:
            case OperatorStep(operator=op, operand=operand):
                lines.append(f"{pad}[{op} {operand.text}];")
            case Call(name=name, args=args, body=None):
                lines.append(f"{pad}{name}({', '.join(a.text for a in args)});")
            case Call(name=name, args=args, body=body):
                lines.append(f"{pad}{name}({', '.join(a.text for a in args)}) {{")
                inner = format_block(body, indent, level + 1)
                if inner:
                    lines.append(inner)
                lines.append(f"{pad}}}")

    return "\n".join(lines)
