"""
AST Node definitions for the DAG expression compiler.

Two trees come out of the parser:

  - ParseTree: the concrete derivation (EXPR, TERMDASH, ...). Kept only
    for diagnostics; nothing after the parser reads it.
  - AstNode: the abstract expression. A single tagged record whose
    ``kind`` says which fields are meaningful, so consumers dispatch on
    the tag instead of on subclasses.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import Iterator, List, Optional


# ──────────────────────────────────────────────
# Level-order helper shared by both trees
# ──────────────────────────────────────────────

def _levels(root, children, label) -> List[List[str]]:
    """Breadth-first walk returning the labels of each level."""
    levels: List[List[str]] = []
    queue = [root]
    while queue:
        levels.append([label(n) for n in queue])
        queue = [c for n in queue for c in children(n)]
    return levels


def format_levels(levels: List[List[str]]) -> str:
    """One line per level, labels separated by a single space."""
    return "\n".join(" ".join(level) for level in levels)


# ──────────────────────────────────────────────
# Concrete parse tree
# ──────────────────────────────────────────────

@dataclass
class ParseTree:
    """Derivation node: grammar symbol or terminal label plus children."""
    label: str
    children: List[ParseTree] = field(default_factory=list)

    def add(self, child: ParseTree) -> ParseTree:
        self.children.append(child)
        return child

    def level_order(self) -> List[List[str]]:
        return _levels(self, lambda n: n.children, lambda n: n.label)

    def dump(self) -> str:
        return format_levels(self.level_order())


# ──────────────────────────────────────────────
# Abstract syntax tree
# ──────────────────────────────────────────────

class AstKind(enum.Enum):
    NUMBER = "number"
    IDENT = "ident"
    BINARY = "binary"
    EMPTY = "empty"
    ERROR = "error"


EMPTY_LABEL = "ε"
ERROR_LABEL = "ERROR"


@dataclass(frozen=True)
class AstNode:
    """Expression node.

    NUMBER / IDENT carry ``text``; BINARY carries ``op``, ``left`` and
    ``right``; EMPTY and ERROR are sentinel leaves with no payload.
    """
    kind: AstKind
    text: str = ""
    op: str = ""
    left: Optional[AstNode] = None
    right: Optional[AstNode] = None

    # ── Constructors ──────────────────────────

    @classmethod
    def number(cls, text: str) -> AstNode:
        return cls(AstKind.NUMBER, text=text)

    @classmethod
    def ident(cls, name: str) -> AstNode:
        return cls(AstKind.IDENT, text=name)

    @classmethod
    def binary(cls, op: str, left: AstNode, right: AstNode) -> AstNode:
        return cls(AstKind.BINARY, op=op, left=left, right=right)

    @classmethod
    def empty(cls) -> AstNode:
        return cls(AstKind.EMPTY)

    @classmethod
    def error(cls) -> AstNode:
        return cls(AstKind.ERROR)

    # ── Queries ──────────────────────────────

    @property
    def is_error(self) -> bool:
        return self.kind is AstKind.ERROR

    @property
    def label(self) -> str:
        """Text shown for this node in level-order dumps."""
        if self.kind is AstKind.BINARY:
            return self.op
        if self.kind is AstKind.EMPTY:
            return EMPTY_LABEL
        if self.kind is AstKind.ERROR:
            return ERROR_LABEL
        return self.text

    def children(self) -> List[AstNode]:
        if self.kind is AstKind.BINARY:
            return [self.left, self.right]
        return []

    def walk(self) -> Iterator[AstNode]:
        """Pre-order iteration over every node."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children()))

    def level_order(self) -> List[List[str]]:
        return _levels(self, AstNode.children, lambda n: n.label)

    def dump(self) -> str:
        return format_levels(self.level_order())

    def to_sexpr(self) -> str:
        """Prefix form, e.g. ``+(a, *(b, c))``."""
        if self.kind is AstKind.BINARY:
            return f"{self.op}({self.left.to_sexpr()}, {self.right.to_sexpr()})"
        return self.label
