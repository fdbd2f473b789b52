"""
DAG Expression Compiler
=======================
A miniature compiler front end for one-line arithmetic expressions over
identifiers and integer literals with '+', '*' and parentheses.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌───────────┐    ┌──────────┐
    │  Source  │───>│  Lexer   │───>│  Parser  │───>│ DagBuilder│───>│ CodeGen  │
    │  (line)  │    │ (tokens) │    │  (AST)   │    │  (CSE)    │    │ (IR text)│
    └──────────┘    └──────────┘    └──────────┘    └───────────┘    └──────────┘

    - lexer.py:     Maximal-munch scanner, unknown chars become INVALID tokens
    - parser.py:    LL(1) recursive descent, accumulates diagnostics
    - ast_nodes.py: Parse tree + tagged AST record
    - dag.py:       Structural-hash CSE into an index-linked arena
    - codegen.py:   Memoized emission, DAG sharing becomes temp sharing

Every line is compiled with fresh state; nothing carries over.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import List, Optional

__version__ = "0.1.0"

from .lexer import Lexer, Token, TokenType, tokenize
from .ast_nodes import AstKind, AstNode, ParseTree
from .parser import Diagnostic, ParseResult, Parser, parse
from .dag import DagBuilder, DagError, DagNode, build_dag
from .codegen import (CodeGenerator, CodeGenError, DIALECTS, IRFunction,
                      IRInstruction, PLACEHOLDER, generate_ir)

log = logging.getLogger(__name__)


@dataclass
class CompileResult:
    """Everything produced for one input line."""
    source: str
    tokens: List[Token]
    parse: ParseResult
    dag: Optional[DagBuilder] = None
    root: Optional[int] = None
    ir: Optional[IRFunction] = None

    @property
    def errors(self) -> List[Diagnostic]:
        return self.parse.errors

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def ast(self) -> AstNode:
        return self.parse.ast

    def artifact_text(self) -> str:
        """IR text on success, the placeholder comment otherwise."""
        if self.ir is None:
            return PLACEHOLDER + "\n"
        return self.ir.to_text()


def compile_line(source: str, *, dialect: str = "default",
                 function_name: str = "foo") -> CompileResult:
    """Compile one line of source.

    Full pipeline: Lexer -> Parser -> DagBuilder -> CodeGenerator. If the
    parser records any diagnostic, the DAG and IR stages are skipped and
    the result carries only the tokens and parse output.

    Args:
        source: A single expression line.
        dialect: IR rendering profile, a key of ``DIALECTS``.
        function_name: Name of the emitted function.
    """
    tokens = Lexer(source).tokenize()
    log.debug("%d token(s) from %r", len(tokens), source)

    result = CompileResult(source, tokens, Parser(tokens).parse())
    if not result.ok:
        log.info("%d diagnostic(s); skipping DAG and code generation", len(result.errors))
        return result

    dag, root = build_dag(result.ast)
    stats = dag.stats(result.ast)
    log.debug("DAG: %(dag_nodes)d node(s) from %(ast_nodes)d AST node(s)", stats)

    result.dag = dag
    result.root = root
    result.ir = generate_ir(dag, root, dialect=dialect, function_name=function_name)
    return result


def write_artifact(result: Optional[CompileResult], path) -> None:
    """Overwrite ``path`` with the artifact for ``result``.

    ``None`` stands for a line whose compilation failed outright; the
    placeholder is written so no earlier line's IR is left behind.
    """
    text = PLACEHOLDER + "\n" if result is None else result.artifact_text()
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
