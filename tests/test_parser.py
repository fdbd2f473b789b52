"""
Parser tests.

Tests cover:
  - Left associativity and precedence of '+' / '*'
  - Parse tree shape (EXPR / TERM / *DASH derivation)
  - Error accumulation and recovery (ERROR nodes, multiple diagnostics)
  - Trailing-token detection
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

import pytest
from dag_compiler.lexer import TokenType, tokenize
from dag_compiler.parser import Parser, parse
from dag_compiler.ast_nodes import AstKind, AstNode


def _parse(src: str):
    return parse(tokenize(src))


def _messages(src: str) -> list:
    return [e.message for e in _parse(src).errors]


# ─── Valid input ─────────────────────────

class TestValidExpressions:
    @pytest.mark.parametrize("src, expected", [
        ("a", "a"),
        ("42", "42"),
        ("a+b*c", "+(a, *(b, c))"),
        ("a*b+c", "+(*(a, b), c)"),
        ("a+b+c", "+(+(a, b), c)"),
        ("a*b*c", "*(*(a, b), c)"),
        ("(a+b)*c", "*(+(a, b), c)"),
        ("((x))", "x"),
        ("2 * (y + 3) * z", "*(*(2, +(y, 3)), z)"),
    ])
    def test_ast_shape(self, src, expected):
        result = _parse(src)
        assert result.ok
        assert result.ast.to_sexpr() == expected

    @pytest.mark.parametrize("src", ["a", "a+b*c", "(a+b)*(a+b)", "1*(2+(3*x))"])
    def test_consumes_everything_but_eof(self, src):
        result = _parse(src)
        assert result.errors == []
        assert [t.type for t in result.remaining] == [TokenType.EOF]

    def test_binary_node_fields(self):
        ast = _parse("a*2").ast
        assert ast.kind is AstKind.BINARY
        assert ast.op == "*"
        assert ast.left == AstNode.ident("a")
        assert ast.right == AstNode.number("2")


class TestParseTree:
    def test_single_identifier(self):
        tree = _parse("a").tree
        assert tree.level_order() == [
            ["EXPR"],
            ["TERM", "EXPRDASH"],
            ["FACTOR", "TERMDASH", "EPSILON"],
            ["IDENTIFIER(a)", "EPSILON"],
        ]

    def test_addition_nests_exprdash(self):
        tree = _parse("a+1").tree
        exprdash = tree.children[1]
        assert [c.label for c in exprdash.children] == ["PLUS", "TERM", "EXPRDASH"]
        assert exprdash.children[2].children[0].label == "EPSILON"
        assert "NUMBER(1)" in tree.dump()

    def test_parens_recorded(self):
        factor = _parse("(a)").tree.children[0].children[0]
        assert [c.label for c in factor.children] == ["BOPEN", "EXPR", "BCLOSE"]


# ─── Error recovery ──────────────────────

class TestFactorErrors:
    def test_operator_in_factor_position(self):
        result = _parse("a + * b")
        assert [e.message for e in result.errors] == [
            "Unexpected token in factor: STAR",
            "Extra or unmatched tokens after valid expression",
        ]
        assert result.ast.to_sexpr() == "+(a, ERROR)"

    def test_unmatched_close_paren(self):
        assert _messages(")") == ["Unmatched ')'"]

    def test_missing_close_paren(self):
        result = _parse("(a+b")
        assert [e.message for e in result.errors] == ["Expected ')' but found EOF"]
        assert result.ast.kind is AstKind.ERROR

    def test_end_of_input(self):
        result = _parse("a+")
        assert [e.message for e in result.errors] == [
            "Unexpected end of input while parsing factor",
        ]
        assert result.ast.to_sexpr() == "+(a, ERROR)"

    def test_empty_input(self):
        assert _messages("") == ["Unexpected end of input while parsing factor"]

    def test_invalid_char_in_factor(self):
        assert _messages("$") == ["Invalid character '$' in factor"]

    def test_diagnostic_column(self):
        assert _parse("a + * b").errors[0].col == 5


class TestOperatorLevelErrors:
    def test_invalid_char_in_term_replaces_result(self):
        result = _parse("a $ b")
        assert [e.message for e in result.errors] == [
            "Invalid character '$' in term",
            "Extra or unmatched tokens after valid expression",
        ]
        assert result.ast.kind is AstKind.ERROR

    def test_invalid_char_in_expression(self):
        result = _parse("a $$")
        assert [e.message for e in result.errors] == [
            "Invalid character '$' in term",
            "Invalid character '$' in expression",
        ]
        assert [t.type for t in result.remaining] == [TokenType.EOF]

    def test_multiple_diagnostics_from_one_line(self):
        assert len(_messages("(+) * )")) >= 2


class TestTrailingTokens:
    def test_extra_close_paren(self):
        assert _messages("a)") == ["Extra or unmatched tokens after valid expression"]

    def test_adjacent_operands(self):
        result = _parse("a b")
        assert result.ast.to_sexpr() == "a"
        assert [t.value for t in result.remaining] == ["b", ""]
        assert not result.ok


def test_errors_are_echoed_to_log(caplog):
    with caplog.at_level(logging.ERROR, logger="dag_compiler.parser"):
        Parser(tokenize(")")).parse()
    assert "Parse error: Unmatched ')'" in caplog.text


def test_always_returns_tree():
    result = _parse("* ) ( +")
    assert result.tree.label == "EXPR"
    assert result.ast is not None
    assert any(n.is_error for n in result.ast.walk())
