"""
Lexer for fluidchain

Tokenizes the host expression syntax (Rust-flavoured) into a stream of tokens.

Features:
- Single-pass tokenization
- Position tracking (line, column, character offsets)
- String literal handling (plain, raw, raw-hash, byte)
- Char literals vs. lifetimes
- Raw identifiers (r#type)
"""

from typing import List

from .errors import LexError
from .token_types import TT, Tok

__all__ = ["Lexer", "LexError", "TT", "Tok", "tokenize"]

# ============================================================================
# Lexer Implementation
# ============================================================================

class Lexer:
    """
    fluidchain lexer.

    Newlines carry no meaning: statements are terminated by ';' and scopes by
    braces, so all whitespace and comments are skipped.
    """

    # Keyword mapping
    KEYWORDS = {
        'as': TT.AS,
    }

    # Operator mapping: longest matches first to handle prefixes correctly
    OPERATORS = [
        # Three-character operators
        ('..=', TT.RANGEEQ),

        # Two-character operators
        ('::', TT.PATHSEP),
        ('->', TT.ARROW),
        ('=>', TT.FATARROW),
        ('==', TT.EQ),
        ('!=', TT.NEQ),
        ('<=', TT.LTE),
        ('>=', TT.GTE),
        ('<<', TT.SHL),
        ('>>', TT.SHR),
        ('&&', TT.AND),
        ('||', TT.OR),
        ('..', TT.RANGE),

        # Single-character operators
        ('+', TT.PLUS),
        ('-', TT.MINUS),
        ('*', TT.STAR),
        ('/', TT.SLASH),
        ('%', TT.MOD),
        ('^', TT.CARET),
        ('<', TT.LT),
        ('>', TT.GT),
        ('!', TT.NEG),
        ('=', TT.ASSIGN),
        ('&', TT.AMP),
        ('|', TT.PIPE),
        ('(', TT.LPAR),
        (')', TT.RPAR),
        ('[', TT.LSQB),
        (']', TT.RSQB),
        ('{', TT.LBRACE),
        ('}', TT.RBRACE),
        ('.', TT.DOT),
        (',', TT.COMMA),
        (':', TT.COLON),
        (';', TT.SEMI),
        ('?', TT.QMARK),
        ('#', TT.HASH),
        ('@', TT.AT),
        ('$', TT.DOLLAR),
    ]

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Tok] = []

        # Start of the token being scanned
        self.tok_pos = 0
        self.tok_line = 1
        self.tok_column = 1

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def tokenize(self) -> List[Tok]:
        """Tokenize entire source, return token list"""
        while self.pos < len(self.source):
            self.scan_token()

        self.mark()
        self.emit(TT.EOF, None)
        return self.tokens

    def scan_token(self):
        """Scan next token"""
        # Skip whitespace (newlines included)
        if self.skip_whitespace():
            return

        # Comments
        if self.peek() == '/' and self.peek(1) in ('/', '*'):
            self.skip_comment()
            return

        self.mark()

        # String literals
        if self.peek() == '"':
            self.scan_string()
            return

        # Char literals and lifetimes
        if self.peek() == "'":
            self.scan_char_or_lifetime()
            return

        # Raw identifiers: r#type
        if self.peek() == 'r' and self.peek(1) == '#' and (self.peek(2).isalpha() or self.peek(2) == '_'):
            self.scan_identifier(raw=True)
            return

        # Raw strings
        if self.match_prefix('r#') or self.match_prefix('r"'):
            self.scan_raw_string()
            return

        # Byte strings
        if self.match_prefix('b"'):
            self.advance()  # b
            self.scan_string(prefix='b')
            return

        # Numbers
        if self.peek().isdigit():
            self.scan_number()
            return

        # Identifiers and keywords
        if self.peek().isalpha() or self.peek() == '_':
            self.scan_identifier()
            return

        # Operators and punctuation
        self.scan_operator()

    # ========================================================================
    # Token Scanners
    # ========================================================================

    def scan_string(self, prefix: str = ''):
        """Scan string literal: "..." """
        start_line, start_column = self.tok_line, self.tok_column
        value = prefix + self.advance()  # Keep opening quote

        while self.pos < len(self.source) and self.peek() != '"':
            if self.peek() == '\\':
                # Keep escape sequence as-is
                value += self.advance()
                if self.pos < len(self.source):
                    value += self.consume_char()
            else:
                value += self.consume_char()

        if self.pos >= len(self.source):
            raise LexError("Unterminated string", start_line, start_column)

        value += self.advance()  # Closing quote
        self.emit(TT.STRING, value)

    def scan_raw_string(self):
        """Scan raw string: r"..." or r#"..."#"""
        start_line, start_column = self.tok_line, self.tok_column
        self.advance()  # r
        hashes = ''
        while self.peek() == '#':
            hashes += self.advance()

        if self.peek() != '"':
            raise LexError("Expected '\"' after raw string prefix", self.line, self.column)
        self.advance()

        terminator = '"' + hashes
        content = ''
        while self.pos < len(self.source):
            if self.source.startswith(terminator, self.pos):
                self.advance(len(terminator))
                self.emit(TT.STRING, f'r{hashes}"{content}"{hashes}')
                return
            content += self.consume_char()

        raise LexError("Unterminated raw string", start_line, start_column)

    def scan_char_or_lifetime(self):
        """Scan char literal 'x' / '\\n' or lifetime 'a"""
        if self.peek(1) == '\\':
            value = self.advance(3)  # quote, backslash, escaped char
            while self.pos < len(self.source) and self.peek() not in ("'", '\n'):
                value += self.advance()
            if self.peek() != "'":
                raise LexError("Unterminated char literal", self.tok_line, self.tok_column)
            value += self.advance()
            self.emit(TT.CHAR, value)
            return

        if self.peek(2) == "'" and self.peek(1) not in ('\0', '\n'):
            self.emit(TT.CHAR, self.advance(3))
            return

        if self.peek(1).isalpha() or self.peek(1) == '_':
            value = self.advance()
            while self.peek().isalnum() or self.peek() == '_':
                value += self.advance()
            self.emit(TT.LIFETIME, value)
            return

        raise LexError("Unterminated char literal", self.tok_line, self.tok_column)

    def scan_number(self):
        """Scan number literal, including radix prefixes and type suffixes"""
        value = ''

        if self.peek() == '0' and self.peek(1) in ('x', 'o', 'b'):
            value += self.advance(2)
            while self.peek().isalnum() or self.peek() == '_':
                value += self.advance()
            self.emit(TT.NUMBER, value)
            return

        # Integer part
        while self.peek().isdigit() or self.peek() == '_':
            value += self.advance()

        # Decimal part; `1..2` is a range and `1.foo()` a method call
        if self.peek() == '.' and self.peek(1).isdigit():
            value += self.advance()  # .
            while self.peek().isdigit() or self.peek() == '_':
                value += self.advance()

        # Scientific notation
        if self.peek() in ('e', 'E') and (
            self.peek(1).isdigit() or (self.peek(1) in ('+', '-') and self.peek(2).isdigit())
        ):
            value += self.advance()
            if self.peek() in ('+', '-'):
                value += self.advance()
            while self.peek().isdigit():
                value += self.advance()

        # Type suffix: 5i32, 1.0f64
        while self.peek().isalnum() or self.peek() == '_':
            value += self.advance()

        self.emit(TT.NUMBER, value)

    def scan_identifier(self, raw: bool = False):
        """Scan identifier or keyword; raw identifiers (`r#type`) are never keywords"""
        value = self.advance(2) if raw else ''

        while self.peek().isalnum() or self.peek() == '_':
            value += self.advance()

        # Check if keyword
        token_type = TT.IDENT if raw else self.KEYWORDS.get(value, TT.IDENT)
        self.emit(token_type, value)

    def scan_operator(self):
        """Scan operators and punctuation"""
        for op_str, op_type in self.OPERATORS:
            if self.source.startswith(op_str, self.pos):
                self.advance(len(op_str))
                self.emit(op_type, op_str)
                return

        ch = self.peek()
        raise LexError(f"Unexpected character '{ch}'", self.line, self.column)

    # ========================================================================
    # Utilities
    # ========================================================================

    def peek(self, offset: int = 0) -> str:
        """Look ahead at character"""
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def advance(self, n: int = 1) -> str:
        """Consume n characters on the current line and return them"""
        if n < 0:
            raise ValueError(f"advance() requires n >= 0, got {n}")
        result = self.source[self.pos:self.pos + n]
        self.pos += n
        self.column += n
        return result

    def consume_char(self) -> str:
        """Consume one character, keeping line/column in step across newlines"""
        ch = self.advance()
        if ch == '\n':
            self.line += 1
            self.column = 1
        return ch

    def match_prefix(self, prefix: str) -> bool:
        """Check if the source continues with prefix (not part of an identifier)"""
        if not self.source.startswith(prefix, self.pos):
            return False
        # `r#` only opens a raw string when a quote or more hashes follow
        if prefix == 'r#':
            idx = self.pos + 1
            while idx < len(self.source) and self.source[idx] == '#':
                idx += 1
            return idx < len(self.source) and self.source[idx] == '"'
        return True

    def skip_whitespace(self) -> bool:
        """Skip whitespace, return True if any skipped"""
        skipped = False
        while self.peek() in (' ', '\t', '\n', '\r'):
            self.consume_char()
            skipped = True
        return skipped

    def skip_comment(self):
        """Skip // line comment or /* block comment */"""
        if self.peek(1) == '/':
            while self.peek() not in ('\n', '\0'):
                self.advance()
            return

        start_line, start_column = self.line, self.column
        self.advance(2)
        while self.pos < len(self.source):
            if self.peek() == '*' and self.peek(1) == '/':
                self.advance(2)
                return
            self.consume_char()

        raise LexError("Unterminated block comment", start_line, start_column)

    def mark(self):
        """Remember where the next token starts"""
        self.tok_pos = self.pos
        self.tok_line = self.line
        self.tok_column = self.column

    def emit(self, token_type: TT, value):
        """Emit a token"""
        tok = Tok(
            type=token_type,
            value=value,
            line=self.tok_line,
            column=self.tok_column,
            start=self.tok_pos,
            end=self.pos,
        )
        self.tokens.append(tok)


def tokenize(source: str) -> List[Tok]:
    """Convenience function to tokenize source"""
    lexer = Lexer(source)
    return lexer.tokenize()
