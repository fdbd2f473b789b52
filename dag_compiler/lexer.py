"""
Lexer / Tokenizer for the DAG expression compiler.

Converts one line of source text into a list of tokens for the parser.
The language is tiny: identifiers (ASCII letters only), decimal integer
literals, '+', '*', '(' and ')'. Runs of letters or digits are collected
by maximal munch.

Unknown characters do not stop the scan. They become INVALID tokens and
a warning is logged so the parser can report them again in context.
"""

from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from typing import Dict, List

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Token types
# ──────────────────────────────────────────────

class TokenType(enum.Enum):
    # Literals
    NUMBER = "NUMBER"

    # Identifier
    IDENT = "IDENT"

    # Operators
    PLUS = "+"
    STAR = "*"

    # Punctuation
    LPAREN = "("
    RPAREN = ")"

    # Special
    INVALID = "INVALID"
    EOF = "EOF"


# ──────────────────────────────────────────────
# Token data class
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    col: int = 0

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, C{self.col})"


SINGLE_CHAR_OPS: Dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "*": TokenType.STAR,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
}


def _is_letter(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _is_digit(ch: str) -> bool:
    return ch.isascii() and ch.isdigit()


# ──────────────────────────────────────────────
# Lexer
# ──────────────────────────────────────────────

class Lexer:
    """Tokenizes a single source line into a list of Tokens."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.tokens: List[Token] = []

    def _peek(self) -> str:
        return self.source[self.pos] if self.pos < len(self.source) else "\0"

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        return ch

    def _skip_whitespace(self):
        while self.pos < len(self.source) and self.source[self.pos].isspace():
            self._advance()

    def _read_run(self, ttype: TokenType, accept) -> Token:
        start = self.pos
        while self.pos < len(self.source) and accept(self.source[self.pos]):
            self._advance()
        return Token(ttype, self.source[start:self.pos], start + 1)

    def tokenize(self) -> List[Token]:
        """Tokenize the whole line. The last token is always EOF."""
        self.tokens = []

        while True:
            self._skip_whitespace()
            if self.pos >= len(self.source):
                break

            ch = self._peek()

            if _is_digit(ch):
                self.tokens.append(self._read_run(TokenType.NUMBER, _is_digit))
                continue

            if _is_letter(ch):
                self.tokens.append(self._read_run(TokenType.IDENT, _is_letter))
                continue

            col = self.pos + 1
            self._advance()
            if ch in SINGLE_CHAR_OPS:
                self.tokens.append(Token(SINGLE_CHAR_OPS[ch], ch, col))
                continue

            log.warning("unexpected character %r at position %d", ch, col)
            self.tokens.append(Token(TokenType.INVALID, ch, col))

        self.tokens.append(Token(TokenType.EOF, "", len(self.source) + 1))
        return self.tokens


def tokenize(source: str) -> List[Token]:
    """Convenience wrapper: ``Lexer(source).tokenize()``."""
    return Lexer(source).tokenize()
