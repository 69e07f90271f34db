"""
Tree transformations from the parser's Lark trees into the `syntax` model.

Transformer_NonRecursive is used so that deeply nested sub-scopes are bounded
by the parser's depth limit only, not by the transformer's own recursion.
"""

from __future__ import annotations

from typing import List, Union

from lark import Token, Tree
from lark.visitors import Transformer_NonRecursive, v_args

from .parser import DEFAULT_MAX_DEPTH, parse_block_tree, parse_invocation_tree
from .syntax import Block, Call, Invocation, Location, Opaque, OperatorStep, Step


def _loc(tok: Token) -> Location:
    return Location(tok.line or 0, tok.column or 0)


class StepBuilder(Transformer_NonRecursive):
    """block/call/operator_step/atom/compound trees -> Block/Call/OperatorStep/Opaque"""

    def atom(self, c: List[Token]) -> Opaque:
        return Opaque(str(c[0]), atomic=True)

    def compound(self, c: List[Token]) -> Opaque:
        return Opaque(str(c[0]), atomic=False)

    def args(self, c: List[Opaque]) -> List[Opaque]:
        return list(c)

    def call(self, c: list) -> Call:
        name = c[0]
        args = c[1]
        body = c[2] if len(c) > 2 else None
        return Call(str(name), tuple(args), body, _loc(name))

    @v_args(inline=True)
    def operator_step(self, op: Token, operand: Opaque) -> OperatorStep:
        return OperatorStep(str(op), operand, _loc(op))

    def block(self, c: List[Step]) -> Block:
        return Block(tuple(c))

    @v_args(inline=True)
    def invocation(self, receiver: Opaque, block: Block) -> Invocation:
        return Invocation(receiver, block)


def to_block(tree: Tree) -> Block:
    result: Union[Block, Tree] = StepBuilder().transform(tree)
    assert isinstance(result, Block), result
    return result


def parse_block(source: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Block:
    """Parse the contents of one scope (`a(); b(1) { c(); }`) into a Block."""
    return to_block(parse_block_tree(source, max_depth=max_depth))


def parse_invocation(source: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Invocation:
    """Parse `receiver, { ... }` into its receiver and Block."""
    result = StepBuilder().transform(parse_invocation_tree(source, max_depth=max_depth))
    assert isinstance(result, Invocation), result
    return result
