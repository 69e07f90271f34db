"""
Chain Reader: parses ordinary (non-block) chain syntax back into Expressions.

Reads what `render` writes:

    expr     := closure | chain [OP operand]        (OP only inside parens)
    closure  := '|' IDENT '|' expr
    chain    := primary ('.' name '(' args ')')*
    primary  := '(' expr OP operand ')'             -> binop
              | '(' expr ')'
              | '(' opaque ')'                      -> compound receiver
              | atom run                            -> atom
    args     := [arg (',' arg)*]
    arg      := closure | opaque

Argument and operand text is opaque, exactly as the block parser treats it,
so `read_chain(render(fold(block, r))) == fold(block, r)` whenever the
receiver `r` is a plain primary (no method segments of its own) and no
opaque argument is itself written as a closure.
"""

from __future__ import annotations

from typing import List, Union

from lark import Token, Tree
from lark.visitors import Transformer_NonRecursive, v_args

from .errors import ParseError
from .lexer import tokenize
from .parser import Parser, describe
from .syntax import BinaryOp, Closure, Expression, MethodCall, Opaque
from .token_types import CLOSERS, OPENERS, OPERATOR_TYPES, TT

_ARG_END = frozenset({TT.COMMA, TT.RPAR})
_PAREN_END = frozenset({TT.RPAR})
# Top-level tokens that end an atom run.
_ATOM_END = OPERATOR_TYPES | {
    TT.COMMA, TT.RPAR, TT.RSQB, TT.RBRACE, TT.SEMI, TT.EOF,
}


class ChainReader(Parser):
    """Recursive descent reader for rendered chains; emits Lark trees."""

    def read(self) -> Tree:
        expr = self.parse_expr()
        if not self.check(TT.EOF):
            raise ParseError(f"Unexpected {describe(self.current)} after expression", self.current)
        return expr

    # ========================================================================
    # Expressions
    # ========================================================================

    def parse_expr(self) -> Tree:
        if self.check(TT.PIPE):
            return self.parse_closure()
        return self.parse_chain()

    def parse_closure(self) -> Tree:
        self.advance()  # |
        if not self.check(TT.IDENT):
            raise ParseError(f"Expected a closure parameter, got {describe(self.current)}", self.current)
        param_tok = self.advance()
        if not self.match(TT.PIPE):
            raise ParseError(f"Expected '|' after closure parameter, got {describe(self.current)}", self.current)

        param = Token('PARAM', param_tok.value, start_pos=param_tok.start,
                      line=param_tok.line, column=param_tok.column, end_pos=param_tok.end)
        return Tree('closure', [param, self.parse_expr()])

    def parse_chain(self) -> Tree:
        node = self.parse_primary()

        # Method segments: .name(args) / .name::<T>(args)
        while self.check(TT.DOT) and self.peek(1).type == TT.IDENT:
            self.advance()  # .
            name_tok = self.advance()
            last = name_tok
            if self.check(TT.PATHSEP):
                last = self.parse_turbofish()
            if not self.check(TT.LPAR):
                raise ParseError(f"Expected '(' after method name, got {describe(self.current)}", self.current)

            name = Token('NAME', self.source[name_tok.start:last.end], start_pos=name_tok.start,
                         line=name_tok.line, column=name_tok.column, end_pos=last.end)
            node = Tree('method_call', [node, name, Tree('args', self.parse_call_args())])

        return node

    def parse_call_args(self) -> List[Tree]:
        lpar = self.advance()
        args: List[Tree] = []

        while not self.check(TT.RPAR):
            if self.check(TT.PIPE) and self.peek(1).type == TT.IDENT and self.peek(2).type == TT.PIPE:
                args.append(self.parse_closure())
            else:
                arg = self.parse_opaque(_ARG_END, opener=lpar)
                if arg is None:
                    raise ParseError(f"Expected an argument, got {describe(self.current)}", self.current)
                args.append(arg)

            if not self.match(TT.COMMA):
                break

        if not self.match(TT.RPAR):
            raise ParseError("Unclosed '('", lpar)

        return args

    def parse_primary(self) -> Tree:
        if self.check(TT.LPAR):
            return self.parse_group()
        return self.parse_atom_run()

    def parse_group(self) -> Tree:
        """`(left OP operand)`, a parenthesized expression, or an opaque group"""
        lpar = self.advance()
        save = self.pos

        try:
            inner = self.parse_expr()
            if self.match(TT.RPAR):
                return inner

            if self.current.type in OPERATOR_TYPES:
                op_tok = self.advance()
                operand = self.parse_opaque(_PAREN_END, opener=lpar)
                if operand is None:
                    raise ParseError(f"Operator '{op_tok.value}' has no operand", self.current)
                if not self.match(TT.RPAR):
                    raise ParseError("Unclosed '('", lpar)
                op = Token('OP', op_tok.value, start_pos=op_tok.start, line=op_tok.line,
                           column=op_tok.column, end_pos=op_tok.end)
                return Tree('binop', [inner, op, operand])
        except ParseError:
            pass

        # Backtrack: the whole group is one opaque receiver
        self.pos = save
        self.current = self.tokens[save]
        opaque = self.parse_opaque(_PAREN_END, opener=lpar)
        if opaque is None or not self.match(TT.RPAR):
            raise ParseError("Expected an expression inside '( )'", lpar)
        text = opaque.children[0]
        return Tree('compound', [text])

    def parse_atom_run(self) -> Tree:
        """A primary with postfix groups/fields, up to the first method segment"""
        start = self.pos
        stack: List[TT] = []
        generics = 0
        prev = None

        while True:
            tok = self.current
            t = tok.type

            if t == TT.EOF:
                if stack:
                    raise ParseError("Unbalanced delimiters in expression", self.tokens[start])
                break

            if not stack:
                if t == TT.DOT and self.peek(1).type == TT.IDENT and self.peek(2).type in (TT.LPAR, TT.PATHSEP):
                    break
                if t == TT.LT and prev is not None and prev.type == TT.PATHSEP:
                    generics += 1
                elif generics and t == TT.LT:
                    generics += 1
                elif generics and t in (TT.GT, TT.SHR):
                    generics = max(generics - (2 if t == TT.SHR else 1), 0)
                elif t in _ATOM_END:
                    break

            if t in OPENERS:
                stack.append(OPENERS[t])
            elif t in CLOSERS:
                if not stack or stack.pop() != t:
                    raise ParseError(f"Unmatched {describe(tok)}", tok)

            prev = tok
            self.advance()

        run = self.tokens[start:self.pos]
        if not run:
            raise ParseError(f"Expected an expression, got {describe(self.current)}", self.current)

        first, last = run[0], run[-1]
        text = Token('TEXT', self.source[first.start:last.end], start_pos=first.start,
                     line=first.line, column=first.column, end_pos=last.end)
        return Tree('atom', [text])


class ExpressionBuilder(Transformer_NonRecursive):
    """Reader trees -> syntax Expressions"""

    def atom(self, c: List[Token]) -> Opaque:
        return Opaque(str(c[0]), atomic=True)

    def compound(self, c: List[Token]) -> Opaque:
        return Opaque(str(c[0]), atomic=False)

    def args(self, c: List[Expression]) -> List[Expression]:
        return list(c)

    @v_args(inline=True)
    def method_call(self, receiver: Expression, name: Token, args: List[Expression]) -> MethodCall:
        return MethodCall(receiver, str(name), tuple(args))

    @v_args(inline=True)
    def binop(self, left: Expression, op: Token, right: Opaque) -> BinaryOp:
        return BinaryOp(left, str(op), right)

    @v_args(inline=True)
    def closure(self, param: Token, body: Expression) -> Closure:
        return Closure(str(param), body)


def read_chain_tree(source: str) -> Tree:
    return ChainReader(tokenize(source), source).read()


def read_chain(source: str) -> Expression:
    """Parse `recv.a(1).b(2, |b| b.c())`-style text into an Expression."""
    result: Union[Expression, Tree] = ExpressionBuilder().transform(read_chain_tree(source))
    assert not isinstance(result, Tree), result
    return result
