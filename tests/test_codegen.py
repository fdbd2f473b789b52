"""
Code generator tests.

Tests cover:
  - Exact IR text for known inputs (both dialects)
  - DAG sharing turning into instruction sharing
  - Sorted, deduplicated parameter lists
  - Dependency order (no forward temp references)
  - Error paths: malformed nodes, unknown dialect, unknown operator
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import re

import pytest
from dag_compiler.lexer import tokenize
from dag_compiler.parser import parse
from dag_compiler.dag import DagBuilder, DagNode, build_dag
from dag_compiler.codegen import CodeGenerator, CodeGenError, generate_ir


def _ir(src: str, **kw):
    result = parse(tokenize(src))
    assert result.ok, result.errors
    dag, root = build_dag(result.ast)
    return generate_ir(dag, root, **kw)


def _body(src: str, **kw) -> list:
    return [ins.render() for ins in _ir(src, **kw).instructions]


# ─── Exact output ────────────────────────

class TestExactOutput:
    def test_add_of_multiply(self):
        fn = _ir("a+b*c")
        assert fn.params == ["a", "b", "c"]
        assert _body("a+b*c") == [
            "tmp1 = multiply i64 %b, %c",
            "tmp2 = add i64 %a, tmp1",
        ]
        assert fn.result == "tmp2"

    def test_full_text(self):
        assert _ir("a+b*c").to_text() == (
            "define i64 @foo(i64 %a, i64 %b, i64 %c) {\n"
            "    tmp1 = multiply i64 %b, %c\n"
            "    tmp2 = add i64 %a, tmp1\n"
            "    return i64 tmp2\n"
            "}\n"
        )

    def test_llvm_dialect(self):
        fn = _ir("a+b*c", dialect="llvm", function_name="expr")
        assert fn.lines() == [
            "define i64 @expr(i64 %a, i64 %b, i64 %c) {",
            "    %t1 = mul i64 %b, %c",
            "    %t2 = add i64 %a, %t1",
            "    ret i64 %t2",
            "}",
        ]

    def test_numbers_are_inline(self):
        fn = _ir("3*4")
        assert fn.params == []
        assert _body("3*4") == ["tmp1 = multiply i64 3, 4"]

    def test_single_identifier(self):
        fn = _ir("a")
        assert fn.instructions == []
        assert fn.result == "%a"
        assert fn.lines()[-2] == "    return i64 %a"

    def test_single_number(self):
        fn = _ir("7")
        assert fn.signature() == "define i64 @foo() {"
        assert fn.result == "7"


# ─── Sharing ─────────────────────────────

class TestInstructionSharing:
    def test_shared_sum_emitted_once(self):
        body = _body("(a+b)*(a+b)")
        assert body == [
            "tmp1 = add i64 %a, %b",
            "tmp2 = multiply i64 tmp1, tmp1",
        ]

    def test_shared_product_with_literal(self):
        assert _body("2*x+2*x") == [
            "tmp1 = multiply i64 2, %x",
            "tmp2 = add i64 tmp1, tmp1",
        ]

    def test_instruction_count_matches_internal_nodes(self):
        src = "(a+b)*(c+d) + (a+b)*(c+d) * (a+b)"
        result = parse(tokenize(src))
        dag, root = build_dag(result.ast)
        internal = [n for n in dag.nodes if not n.is_leaf]
        assert len(generate_ir(dag, root).instructions) == len(internal)


# ─── Parameters and ordering ─────────────

class TestParameters:
    def test_sorted_regardless_of_appearance(self):
        assert _ir("b+a*b").params == ["a", "b"]

    def test_numbers_not_params(self):
        assert _ir("z*10+y").params == ["y", "z"]

    def test_signature(self):
        assert _ir("q+p").signature() == "define i64 @foo(i64 %p, i64 %q) {"


def test_no_forward_references():
    fn = _ir("((a+b)*(c+1)+(a+b))*((c+1)*d+(a+b)*(c+1))")
    defined = set()
    for ins in fn.instructions:
        for operand in (ins.left, ins.right):
            if re.fullmatch(r"tmp\d+", operand):
                assert operand in defined
        defined.add(ins.dest)
    assert fn.result in defined


def test_temps_never_reused():
    fn = _ir("(a+b)*(c+d)*(e+f)")
    dests = [ins.dest for ins in fn.instructions]
    assert dests == [f"tmp{i}" for i in range(1, len(dests) + 1)]


def test_dag_not_mutated():
    result = parse(tokenize("(a+b)*(a+b)"))
    dag, root = build_dag(result.ast)
    before = list(dag.nodes), dict(dag.table)
    CodeGenerator().generate(dag, root)
    assert (list(dag.nodes), dict(dag.table)) == before


# ─── Error paths ─────────────────────────

class TestErrors:
    def test_unknown_operator_placeholder(self):
        dag = DagBuilder(nodes=[DagNode(0, "a"), DagNode(1, "b"), DagNode(2, "-", 0, 1)])
        fn = CodeGenerator().generate(dag, 2)
        assert fn.instructions[0].render() == "tmp1 = unknown i64 %a, %b"

    def test_missing_operand(self):
        dag = DagBuilder(nodes=[DagNode(0, "a"), DagNode(1, "+", 0, None)])
        with pytest.raises(CodeGenError):
            CodeGenerator().generate(dag, 1)

    def test_unknown_dialect(self):
        with pytest.raises(CodeGenError, match="unknown dialect"):
            CodeGenerator(dialect="wasm")


def test_deep_dag_emission_order():
    src = "+".join(["a", "b"] * 1500)
    fn = _ir(src)
    assert len(fn.instructions) == 2999
    assert fn.instructions[0].render() == "tmp1 = add i64 %a, %b"
    assert fn.instructions[1].render() == "tmp2 = add i64 tmp1, %a"
    defined = set()
    for ins in fn.instructions:
        for operand in (ins.left, ins.right):
            if operand.startswith("tmp"):
                assert operand in defined
        defined.add(ins.dest)
