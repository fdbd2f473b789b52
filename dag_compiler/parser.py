"""
Recursive-descent parser for the DAG expression compiler.

Grammar (left recursion removed; the *DASH rules thread the operand
built so far so that '+' and '*' stay left-associative):

    EXPR      -> TERM EXPRDASH
    EXPRDASH  -> '+' TERM EXPRDASH | ε
    TERM      -> FACTOR TERMDASH
    TERMDASH  -> '*' FACTOR TERMDASH | ε
    FACTOR    -> IDENTIFIER | NUMBER | '(' EXPR ')'

Every production returns ``(ParseTree, AstNode, remaining tokens)``.

Errors never raise. Each one is appended to ``Parser.errors``, logged
immediately, and the offending subtree is replaced by an ERROR node so a
complete tree always comes back.
"""

from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Iterable, List, Optional, Tuple

from .lexer import Token, TokenType
from .ast_nodes import AstNode, ParseTree

log = logging.getLogger(__name__)

Production = Tuple[ParseTree, AstNode, Deque[Token]]


@dataclass
class Diagnostic:
    """A recorded parse error."""
    message: str
    col: Optional[int] = None

    def __str__(self) -> str:
        return self.message


@dataclass
class ParseResult:
    tree: ParseTree
    ast: AstNode
    remaining: List[Token]
    errors: List[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _describe(tok: Optional[Token]) -> str:
    return tok.type.name if tok is not None else "nothing"


class Parser:
    """LL(1) parser with per-line error accumulation."""

    def __init__(self, tokens: Iterable[Token]):
        self.tokens: Deque[Token] = deque(tokens)
        self.errors: List[Diagnostic] = []

    # ── Helpers ─────────────────────────────

    def report_error(self, message: str, tok: Optional[Token] = None):
        log.error("Parse error: %s", message)
        self.errors.append(Diagnostic(message, tok.col if tok is not None else None))

    @staticmethod
    def _front(tokens: Deque[Token]) -> Optional[Token]:
        return tokens[0] if tokens else None

    # ── Entry point ──────────────────────────

    def parse(self) -> ParseResult:
        """Parse one full expression and flag anything left over."""
        tree, ast, rest = self.parse_expr(self.tokens)
        nxt = self._front(rest)
        if nxt is not None and nxt.type is not TokenType.EOF:
            self.report_error("Extra or unmatched tokens after valid expression", nxt)
        return ParseResult(tree, ast, list(rest), self.errors)

    # ── Productions ──────────────────────────

    def parse_expr(self, tokens: Deque[Token]) -> Production:
        node = ParseTree("EXPR")
        term_node, term_ast, tokens = self.parse_term(tokens)
        node.add(term_node)
        dash_node, ast, tokens = self.parse_exprdash(tokens, term_ast)
        node.add(dash_node)
        return node, ast, tokens

    def parse_exprdash(self, tokens: Deque[Token], left: AstNode) -> Production:
        return self._parse_dash(tokens, left, "EXPRDASH", TokenType.PLUS,
                                "PLUS", self.parse_term, "expression")

    def parse_term(self, tokens: Deque[Token]) -> Production:
        node = ParseTree("TERM")
        factor_node, factor_ast, tokens = self.parse_factor(tokens)
        node.add(factor_node)
        dash_node, ast, tokens = self.parse_termdash(tokens, factor_ast)
        node.add(dash_node)
        return node, ast, tokens

    def parse_termdash(self, tokens: Deque[Token], left: AstNode) -> Production:
        return self._parse_dash(tokens, left, "TERMDASH", TokenType.STAR,
                                "STAR", self.parse_factor, "term")

    def _parse_dash(self, tokens, left, label, op_type, op_label, operand, context) -> Production:
        """Shared body of EXPRDASH / TERMDASH.

        Loops instead of recursing on the tail, but still nests one
        *DASH tree node per operator so the parse tree has the same shape
        as the grammar.
        """
        root = ParseTree(label)
        node = root
        while True:
            tok = self._front(tokens)
            if tok is not None and tok.type is op_type:
                tokens.popleft()
                node.add(ParseTree(op_label))
                rhs_node, rhs_ast, tokens = operand(tokens)
                node.add(rhs_node)
                left = AstNode.binary(op_type.value, left, rhs_ast)
                node = node.add(ParseTree(label))
                continue
            if tok is not None and tok.type is TokenType.INVALID:
                # Stop chaining at this level; the caller may still continue.
                self.report_error(f"Invalid character '{tok.value}' in {context}", tok)
                tokens.popleft()
                node.add(ParseTree("ERROR"))
                return root, AstNode.error(), tokens
            node.add(ParseTree("EPSILON"))
            return root, left, tokens

    def parse_factor(self, tokens: Deque[Token]) -> Production:
        node = ParseTree("FACTOR")
        tok = self._front(tokens)
        ttype = tok.type if tok is not None else TokenType.EOF

        if ttype is TokenType.IDENT:
            tokens.popleft()
            node.add(ParseTree(f"IDENTIFIER({tok.value})"))
            return node, AstNode.ident(tok.value), tokens

        if ttype is TokenType.NUMBER:
            tokens.popleft()
            node.add(ParseTree(f"NUMBER({tok.value})"))
            return node, AstNode.number(tok.value), tokens

        if ttype is TokenType.LPAREN:
            tokens.popleft()
            node.add(ParseTree("BOPEN"))
            expr_node, expr_ast, tokens = self.parse_expr(tokens)
            node.add(expr_node)
            close = self._front(tokens)
            if close is not None and close.type is TokenType.RPAREN:
                tokens.popleft()
                node.add(ParseTree("BCLOSE"))
                return node, expr_ast, tokens
            self.report_error(f"Expected ')' but found {_describe(close)}", close)
            node.add(ParseTree("ERROR"))
            return node, AstNode.error(), tokens

        if ttype is TokenType.RPAREN:
            self.report_error("Unmatched ')'", tok)
        elif ttype is TokenType.INVALID:
            self.report_error(f"Invalid character '{tok.value}' in factor", tok)
        elif ttype is TokenType.EOF:
            self.report_error("Unexpected end of input while parsing factor", tok)
        else:
            self.report_error(f"Unexpected token in factor: {ttype.name}", tok)

        node.add(ParseTree("ERROR"))
        if ttype is not TokenType.EOF:
            tokens.popleft()
        return node, AstNode.error(), tokens


def parse(tokens: Iterable[Token]) -> ParseResult:
    """Parse a token list with a fresh Parser."""
    return Parser(tokens).parse()
