"""
Recursive Descent Block Parser for fluidchain

Turns the block notation

    receiver, {
        name(arg, arg);
        name(arg) { nested; steps; }
        [op operand];
    }

into a Lark tree:

    invocation
      atom | compound          receiver text
      block
        call                   NAME token, args, optional block
          args
            atom | compound    one per argument
          block
        operator_step          OP token, atom | compound

Argument, operand and receiver expressions are never interpreted: each is a
delimiter-balanced token run whose source text is copied verbatim.
`transforms.StepBuilder` converts the tree into `syntax` dataclasses.
"""

from __future__ import annotations

import logging
from typing import FrozenSet, List, Optional

from lark import Token, Tree

from .errors import (
    EmptyOperand,
    MalformedStep,
    MisplacedBody,
    NestingTooDeep,
    ParseError,
    UnbalancedDelimiter,
)
from .token_types import CLOSERS, OPENERS, OPERATOR_TYPES, TT, Tok

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 100

# Tokens that end an opaque run when seen outside any delimiter.
ARG_STOPS = frozenset({TT.COMMA, TT.RPAR, TT.SEMI})
OPERAND_STOPS = frozenset({TT.RSQB, TT.SEMI})
RECEIVER_STOPS = frozenset({TT.COMMA})

# Top-level tokens that make an opaque run need parentheses as a receiver.
_LOOSE_BINDING = OPERATOR_TYPES | {
    TT.ASSIGN, TT.RANGE, TT.RANGEEQ, TT.ARROW, TT.FATARROW, TT.COMMA, TT.SEMI,
}
_PREFIX_OPS = frozenset({TT.MINUS, TT.NEG, TT.STAR, TT.AMP, TT.PIPE, TT.OR, TT.AND})


def describe(tok: Tok) -> str:
    if tok.type == TT.EOF:
        return "end of input"
    return f"'{tok.value}'"


def is_atomic(run: List[Tok]) -> bool:
    """True when the run is one primary plus postfix groups (`a::b(1)[0]?`)."""
    if not run or run[0].type in _PREFIX_OPS:
        return False

    depth = 0
    generics = 0
    prev: Optional[Tok] = None

    for tok in run:
        t = tok.type
        if t in OPENERS:
            depth += 1
        elif t in CLOSERS:
            depth -= 1
        elif depth == 0:
            # Turbofish generics: `Vec::<u8>::new()`
            if t == TT.LT and prev is not None and prev.type == TT.PATHSEP:
                generics += 1
            elif generics and t == TT.LT:
                generics += 1
            elif generics and t in (TT.GT, TT.SHR):
                generics = max(generics - (2 if t == TT.SHR else 1), 0)
            elif not generics and t in _LOOSE_BINDING:
                return False
        prev = tok

    return True


class Parser:
    """
    Recursive descent parser for the block notation.

    Grammar:
        invocation  := [IDENT '!'] ['('] opaque ',' '{' block '}' [','] [')'] [';']
        block       := step*
        step        := call | operator_step
        call        := name ['(' [opaque (',' opaque)* [',']] ')'] (body | ';' | <scope end>)
        name        := IDENT ['::' '<' generics '>']
        body        := '{' block '}' [';']
        operator_step := '[' OPERATOR opaque ']' (';' | <scope end>)
    """

    def __init__(self, tokens: List[Tok], source: str, max_depth: int = DEFAULT_MAX_DEPTH):
        self.tokens = tokens
        self.source = source
        self.max_depth = max_depth
        self.pos = 0
        self.current = tokens[0] if tokens else Tok(TT.EOF, None, 0, 0)

    # ========================================================================
    # Token Navigation
    # ========================================================================

    def peek(self, offset: int = 0) -> Tok:
        """Look ahead at token"""
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1] if self.tokens else Tok(TT.EOF, None, 0, 0)

    def advance(self) -> Tok:
        """Consume current token and move to next"""
        prev = self.current
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
            self.current = self.tokens[self.pos]
        return prev

    def check(self, *types: TT) -> bool:
        """Check if current token matches any of the given types"""
        return self.current.type in types

    def match(self, *types: TT) -> bool:
        """Check and consume if current token matches"""
        if self.check(*types):
            self.advance()
            return True
        return False

    def matching_close(self, idx: int) -> Optional[int]:
        """Index of the closer balancing the opener at idx, None if unbalanced"""
        stack: List[TT] = []
        for j in range(idx, len(self.tokens)):
            t = self.tokens[j].type
            if t in OPENERS:
                stack.append(OPENERS[t])
            elif t in CLOSERS:
                if not stack or stack.pop() != t:
                    return None
                if not stack:
                    return j
        return None

    # ========================================================================
    # Top-Level Parsing
    # ========================================================================

    def parse_invocation(self) -> Tree:
        """Parse `receiver, { block }`, optionally wrapped in `(...)` or `name!(...)`"""
        wrapper: Optional[Tok] = None

        if (
            self.check(TT.IDENT)
            and self.peek(1).type == TT.NEG
            and self.peek(2).type == TT.LPAR
            and self.wraps_invocation(self.pos + 2)
        ):
            self.advance()
            self.advance()
            wrapper = self.advance()
        elif self.check(TT.LPAR) and self.wraps_invocation(self.pos):
            wrapper = self.advance()

        receiver = self.parse_opaque(RECEIVER_STOPS, opener=wrapper)
        if receiver is None:
            raise MalformedStep("Expected a receiver expression", self.current)

        if not self.match(TT.COMMA):
            raise MalformedStep("Expected ',' and a '{ ... }' block after the receiver", self.current)
        if not self.check(TT.LBRACE):
            raise MalformedStep(f"Expected '{{' to open the block, got {describe(self.current)}", self.current)

        lbrace = self.advance()
        block = self.parse_block(0, lbrace)
        self.advance()  # }
        self.match(TT.COMMA)

        if wrapper is not None:
            if self.check(TT.EOF):
                raise UnbalancedDelimiter(f"Unclosed '{wrapper.value}'", wrapper)
            if not self.match(TT.RPAR):
                raise MalformedStep(
                    f"Unexpected {describe(self.current)} after the block", self.current
                )
            self.match(TT.SEMI)

        if not self.check(TT.EOF):
            raise MalformedStep(f"Unexpected {describe(self.current)} after the block", self.current)

        return Tree('invocation', [receiver, block])

    def wraps_invocation(self, idx: int) -> bool:
        """Is the '(' at idx the outer wrapper of `(receiver, { ... })`?

        It must close at end of input (or before a final ';') and hold a
        top-level `, {`; otherwise it belongs to the receiver (`vec!(1, 2)`).
        """
        close = self.matching_close(idx)
        if close is None:
            return False

        after = self.tokens[close + 1].type if close + 1 < len(self.tokens) else TT.EOF
        if after == TT.SEMI:
            after = self.tokens[close + 2].type if close + 2 < len(self.tokens) else TT.EOF
        if after != TT.EOF:
            return False

        depth = 0
        for j in range(idx + 1, close):
            t = self.tokens[j].type
            if t in OPENERS:
                depth += 1
            elif t in CLOSERS:
                depth -= 1
            elif depth == 0 and t == TT.COMMA and self.tokens[j + 1].type == TT.LBRACE:
                return True
        return False

    def parse_scope(self) -> Tree:
        """Parse the contents of one scope; an outer `{ ... }` pair is optional"""
        if self.check(TT.LBRACE) and self.matching_close(self.pos) == len(self.tokens) - 2:
            lbrace = self.advance()
            block = self.parse_block(0, lbrace)
            self.advance()  # }
            return block

        return self.parse_block(0, None)

    # ========================================================================
    # Blocks and Steps
    # ========================================================================

    def parse_block(self, depth: int, opener: Optional[Tok]) -> Tree:
        """
        Parse steps until the closer of `opener` (left unconsumed) or, for the
        outermost scope, until end of input.
        """
        steps: List[Tree] = []

        while True:
            if self.check(TT.RBRACE):
                if opener is None:
                    raise UnbalancedDelimiter("Unmatched '}'", self.current)
                break

            if self.check(TT.EOF):
                if opener is not None:
                    raise UnbalancedDelimiter("Unclosed '{'", opener)
                break

            steps.append(self.parse_step(depth))

        return Tree('block', steps)

    def parse_step(self, depth: int) -> Tree:
        if self.check(TT.IDENT):
            return self.parse_call(depth)

        if self.check(TT.LSQB):
            return self.parse_operator_step()

        if self.check(TT.RPAR, TT.RSQB):
            raise UnbalancedDelimiter(f"Unmatched {describe(self.current)}", self.current)

        if self.check(TT.LBRACE):
            raise MisplacedBody("A '{ ... }' body must follow a method call", self.current)

        raise MalformedStep(
            f"Expected a method name or '[' to start a step, got {describe(self.current)}",
            self.current,
        )

    def parse_call(self, depth: int) -> Tree:
        """
        Parse `name(args);` or `name(args) { body }`.

        A body closes the step; whatever follows it on the same line must be
        a ';' or the end of the scope.
        """
        name_tok = self.advance()
        last = name_tok

        # Turbofish: parse::<i32>
        if self.check(TT.PATHSEP):
            last = self.parse_turbofish()

        name = Token(
            'NAME',
            self.source[name_tok.start:last.end],
            start_pos=name_tok.start,
            line=name_tok.line,
            column=name_tok.column,
            end_pos=last.end,
        )

        args: List[Tree] = []
        if self.check(TT.LPAR):
            args = self.parse_arg_list()

        children: List[object] = [name, Tree('args', args)]

        if self.check(TT.LBRACE):
            if depth + 1 > self.max_depth:
                raise NestingTooDeep(
                    f"Sub-scopes nested deeper than {self.max_depth} levels", self.current
                )

            lbrace = self.advance()
            children.append(self.parse_block(depth + 1, lbrace))
            rbrace = self.advance()
            self.end_body(rbrace)
            return Tree('call', children)

        self.end_step("call")
        return Tree('call', children)

    def parse_turbofish(self) -> Tok:
        """Consume `::<...>` after a method name, return its last token"""
        self.advance()  # ::
        if not self.check(TT.LT):
            raise MalformedStep(
                f"Expected '<' after '::' in method name, got {describe(self.current)}",
                self.current,
            )

        open_tok = self.advance()
        depth = 1
        while depth:
            tok = self.current
            if tok.type == TT.EOF:
                raise UnbalancedDelimiter("Unclosed '<'", open_tok)
            if tok.type == TT.LT:
                depth += 1
            elif tok.type == TT.GT:
                depth -= 1
            elif tok.type == TT.SHR:
                if depth < 2:
                    raise UnbalancedDelimiter("Unmatched '>'", tok)
                depth -= 2
            elif tok.type in (TT.SEMI, TT.LBRACE, TT.RBRACE):
                raise UnbalancedDelimiter("Unclosed '<'", open_tok)
            self.advance()

        return self.tokens[self.pos - 1]

    def parse_arg_list(self) -> List[Tree]:
        """
        Parse `(arg, arg, ...)`; a trailing comma is allowed.
        Returns one opaque tree per argument.
        """
        lpar = self.advance()
        args: List[Tree] = []

        while not self.check(TT.RPAR):
            arg = self.parse_opaque(ARG_STOPS, opener=lpar)
            if arg is None:
                if self.check(TT.SEMI, TT.EOF):
                    raise UnbalancedDelimiter("Unclosed '('", lpar)
                raise MalformedStep(
                    f"Expected an argument, got {describe(self.current)}", self.current
                )
            args.append(arg)

            if self.check(TT.SEMI, TT.EOF):
                raise UnbalancedDelimiter("Unclosed '('", lpar)
            if not self.match(TT.COMMA):
                break

        if not self.match(TT.RPAR):
            raise UnbalancedDelimiter("Unclosed '('", lpar)

        return args

    def parse_operator_step(self) -> Tree:
        """Parse `[op operand]`"""
        lsqb = self.advance()

        if self.check(TT.EOF):
            raise UnbalancedDelimiter("Unclosed '['", lsqb)
        if self.check(TT.RSQB):
            raise MalformedStep("Operator step needs an operator and an operand", self.current)
        if self.current.type not in OPERATOR_TYPES:
            raise MalformedStep(f"Unsupported operator {describe(self.current)}", self.current)

        op_tok = self.advance()
        op = Token('OP', op_tok.value, start_pos=op_tok.start, line=lsqb.line,
                   column=lsqb.column, end_pos=op_tok.end)

        if self.check(TT.RSQB):
            raise EmptyOperand(f"Operator '{op_tok.value}' has no operand", self.current)
        if self.check(TT.EOF):
            raise UnbalancedDelimiter("Unclosed '['", lsqb)

        operand = self.parse_opaque(OPERAND_STOPS, opener=lsqb)
        if operand is None:
            raise EmptyOperand(f"Operator '{op_tok.value}' has no operand", self.current)

        if not self.match(TT.RSQB):
            raise UnbalancedDelimiter("Unclosed '['", lsqb)

        if self.check(TT.LBRACE):
            raise MisplacedBody("Operator steps cannot take a '{ ... }' body", self.current)
        self.end_step("operator step")

        return Tree('operator_step', [op, operand])

    def end_step(self, kind: str) -> None:
        """A step ends with ';' or at the end of its scope"""
        if self.match(TT.SEMI) or self.check(TT.RBRACE, TT.EOF):
            return

        raise MalformedStep(f"Expected ';' after {kind}, got {describe(self.current)}", self.current)

    def end_body(self, rbrace: Tok) -> None:
        """After a body: ';', end of scope, or a new step on a later line"""
        if self.match(TT.SEMI) or self.check(TT.RBRACE, TT.EOF):
            return

        if self.check(TT.LBRACE):
            raise MisplacedBody("A step can carry only one '{ ... }' body", self.current)

        if self.current.line > rbrace.line and self.check(TT.IDENT, TT.LSQB):
            return

        raise MisplacedBody(
            f"Unexpected {describe(self.current)} after a '{{ ... }}' body; "
            "the body must be the last part of its step",
            self.current,
        )

    # ========================================================================
    # Opaque expressions
    # ========================================================================

    def parse_opaque(self, stops: FrozenSet[TT], opener: Optional[Tok] = None) -> Optional[Tree]:
        """
        Consume a delimiter-balanced run up to a top-level stop token.
        Returns `atom`/`compound` holding the verbatim source text, or None
        when the run is empty.
        """
        start = self.pos
        stack: List[Tok] = []
        # Open `::<` generics at the top level; their commas do not split the run.
        generics = 0
        prev: Optional[Tok] = None

        while True:
            tok = self.current

            if tok.type == TT.EOF:
                if stack:
                    raise UnbalancedDelimiter(f"Unclosed '{stack[-1].value}'", stack[-1])
                break

            if not stack:
                if tok.type == TT.LT and prev is not None and prev.type == TT.PATHSEP:
                    generics += 1
                elif generics and tok.type == TT.LT:
                    generics += 1
                elif generics and tok.type in (TT.GT, TT.SHR):
                    generics = max(generics - (2 if tok.type == TT.SHR else 1), 0)
                elif not generics and tok.type in stops:
                    break

            if tok.type in OPENERS:
                stack.append(tok)
            elif tok.type in CLOSERS:
                if not stack:
                    if opener is not None:
                        raise UnbalancedDelimiter(f"Unclosed '{opener.value}'", opener)
                    raise UnbalancedDelimiter(f"Unmatched '{tok.value}'", tok)
                if OPENERS[stack[-1].type] != tok.type:
                    raise UnbalancedDelimiter(
                        f"Mismatched '{tok.value}' for '{stack[-1].value}'", tok
                    )
                stack.pop()

            prev = tok
            self.advance()

        run = self.tokens[start:self.pos]
        if not run:
            return None

        first, last = run[0], run[-1]
        text = Token(
            'TEXT',
            self.source[first.start:last.end],
            start_pos=first.start,
            line=first.line,
            column=first.column,
            end_pos=last.end,
        )
        return Tree('atom' if is_atomic(run) else 'compound', [text])


# ============================================================================
# Entry points
# ============================================================================

def parse_invocation_tree(source: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Tree:
    """Tokenize and parse `receiver, { block }` into a Lark tree."""
    from .lexer import tokenize

    parser = Parser(tokenize(source), source, max_depth=max_depth)
    tree = parser.parse_invocation()
    logger.debug("parsed invocation: %d top-level steps", len(tree.children[1].children))
    return tree


def parse_block_tree(source: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Tree:
    """Tokenize and parse the contents of a single scope into a Lark tree."""
    from .lexer import tokenize

    parser = Parser(tokenize(source), source, max_depth=max_depth)
    tree = parser.parse_scope()
    logger.debug("parsed block: %d top-level steps", len(tree.children))
    return tree


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "ParseError",
    "Parser",
    "is_atomic",
    "parse_block_tree",
    "parse_invocation_tree",
]
