"""prompt_toolkit lexer for live block-notation highlighting in the REPL."""

from __future__ import annotations

from typing import Callable

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .lexer import Lexer as FluidTokenizer, LexError
from .token_types import OPERATOR_TYPES, TT, Tok

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "lifetime": "italic ansiyellow",
    "identifier": "",
    "function": "bold ansiyellow",
    "operator": "",
    "step-operator": "bold ansired",
    "punctuation": "",
    "error": "bold ansired",
}

_TT_GROUP = {
    TT.AS: "keyword",
    TT.NUMBER: "number",
    TT.STRING: "string",
    TT.CHAR: "string",
    TT.LIFETIME: "lifetime",
    TT.IDENT: "identifier",
    TT.PATHSEP: "punctuation",
    TT.ARROW: "operator",
    TT.FATARROW: "operator",
    TT.RANGE: "operator",
    TT.RANGEEQ: "operator",
    TT.NEG: "operator",
    TT.ASSIGN: "operator",
    TT.QMARK: "operator",
    TT.LPAR: "punctuation",
    TT.RPAR: "punctuation",
    TT.LSQB: "punctuation",
    TT.RSQB: "punctuation",
    TT.LBRACE: "punctuation",
    TT.RBRACE: "punctuation",
    TT.DOT: "punctuation",
    TT.COMMA: "punctuation",
    TT.COLON: "punctuation",
    TT.SEMI: "punctuation",
    TT.HASH: "punctuation",
    TT.AT: "punctuation",
    TT.DOLLAR: "punctuation",
}
_TT_GROUP.update({t: "operator" for t in OPERATOR_TYPES if t != TT.AS})

# Tokens after which an identifier starts a step or a method segment.
_STEP_LEADS = {TT.SEMI, TT.LBRACE, TT.RBRACE, TT.DOT}


def _group_for(tokens: list[Tok], idx: int) -> str:
    tok = tokens[idx]
    prev = tokens[idx - 1] if idx > 0 else None
    nxt = tokens[idx + 1] if idx + 1 < len(tokens) else None

    if tok.type == TT.IDENT and nxt is not None and nxt.type in (TT.LPAR, TT.PATHSEP, TT.LBRACE, TT.SEMI):
        if prev is None or prev.type in _STEP_LEADS:
            return "function"

    # `[op operand]` steps: highlight the operator right after the bracket.
    if tok.type in OPERATOR_TYPES and prev is not None and prev.type == TT.LSQB:
        if idx < 2 or tokens[idx - 2].type in _STEP_LEADS:
            return "step-operator"

    return _TT_GROUP.get(tok.type, "")


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    try:
        tokens = FluidTokenizer(text).tokenize()
    except LexError:
        return [("", text)]

    result: StyleAndTextTuples = []
    pos = 0

    for i, tok in enumerate(tokens):
        if tok.type == TT.EOF:
            continue

        # Unstyled gap (whitespace, comments) before token.
        if tok.start > pos:
            result.append(("", text[pos:tok.start]))

        style = GROUP_STYLE.get(_group_for(tokens, i), "")
        result.append((style, text[tok.start:tok.end]))
        pos = tok.end

    # Trailing unstyled text.
    if pos < len(text):
        result.append(("", text[pos:]))

    return result if result else [("", text)]


class FluidLexer(Lexer):
    """prompt_toolkit Lexer that highlights block notation using the fluidchain lexer."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines

        # Pre-compute highlights for all lines.
        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
