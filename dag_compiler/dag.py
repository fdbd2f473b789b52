"""
DAG builder (common-subexpression elimination) for the expression compiler.

Turns an AST into a maximally shared DAG by structural hashing:

  - A leaf is keyed by its label text, so every ``a`` (or every ``2``)
    becomes the same node.
  - An internal node is keyed by ``(op, left_id, right_id)``. Children
    are built first, so two structurally equal subtrees produce equal
    keys and collapse to one node.

Nodes live in a flat append-only arena and refer to children by index.
Ids are dense (0..n-1) and a child is always created before its parent.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Tuple

from .ast_nodes import AstKind, AstNode, EMPTY_LABEL, format_levels

log = logging.getLogger(__name__)

DAG_ERROR_LABEL = "ERR"


class DagError(Exception):
    def __init__(self, message: str, node_id: Optional[int] = None):
        self.node_id = node_id
        super().__init__(f"DAG error: {message}")


@dataclass(frozen=True)
class DagNode:
    id: int
    label: str
    left: Optional[int] = None
    right: Optional[int] = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None


@dataclass
class DagBuilder:
    """Owns one DAG arena. Build a fresh one per input line."""
    nodes: List[DagNode] = field(default_factory=list)
    table: Dict[Hashable, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.nodes)

    def _check(self, node_id: int):
        if not 0 <= node_id < len(self.nodes):
            raise DagError(f"no node with id {node_id}", node_id)

    def __getitem__(self, node_id: int) -> DagNode:
        self._check(node_id)
        return self.nodes[node_id]

    # ── Construction ──────────────────────────

    def from_ast(self, ast: AstNode) -> int:
        """Insert ``ast`` into the arena and return the id of its root.

        Post-order with an explicit stack: operator chains are as deep as
        they are long, so recursion would hit the interpreter limit.
        """
        ids: List[int] = []
        stack = [(ast, False)]
        while stack:
            node, children_done = stack.pop()
            if node.kind is not AstKind.BINARY:
                ids.append(self._leaf_for(node))
            elif children_done:
                right_id = ids.pop()
                left_id = ids.pop()
                ids.append(self._intern((node.op, left_id, right_id),
                                        node.op, left_id, right_id))
            else:
                stack.append((node, True))
                stack.append((node.right, False))
                stack.append((node.left, False))
        return ids.pop()

    def _leaf_for(self, ast: AstNode) -> int:
        if ast.kind is AstKind.EMPTY:
            return self.make_leaf(EMPTY_LABEL)
        if ast.kind is AstKind.ERROR:
            # Every error site shares this one leaf.
            return self.make_leaf(DAG_ERROR_LABEL)
        return self.make_leaf(ast.text)

    def make_leaf(self, label: str) -> int:
        return self._intern(label, label)

    def _intern(self, key: Hashable, label: str,
                left: Optional[int] = None, right: Optional[int] = None) -> int:
        existing = self.table.get(key)
        if existing is not None:
            log.debug("reusing node %d for %r", existing, key)
            return existing
        node_id = len(self.nodes)
        self.nodes.append(DagNode(node_id, label, left, right))
        self.table[key] = node_id
        return node_id

    # ── Inspection ──────────────────────────

    def children(self, node_id: int) -> List[int]:
        node = self[node_id]
        return [c for c in (node.left, node.right) if c is not None]

    def reachable(self, root: int) -> List[int]:
        """Ids reachable from ``root``, each once, in depth-first order."""
        seen = set()
        order = []
        stack = [root]
        while stack:
            node_id = stack.pop()
            if node_id in seen:
                continue
            seen.add(node_id)
            order.append(node_id)
            stack.extend(reversed(self.children(node_id)))
        return order

    def level_order(self, root: int) -> List[List[str]]:
        """BFS labels per level; a node reached twice is listed once."""
        self._check(root)
        levels: List[List[str]] = []
        visited = {root}
        queue = [root]
        while queue:
            levels.append([self.nodes[i].label for i in queue])
            nxt = []
            for node_id in queue:
                for child in self.children(node_id):
                    if child not in visited:
                        visited.add(child)
                        nxt.append(child)
            queue = nxt
        return levels

    def dump(self, root: int) -> str:
        return format_levels(self.level_order(root))

    def print(self, root: int, file=None):
        print(self.dump(root), file=file)

    def stats(self, ast: AstNode) -> Dict[str, int]:
        """Sizes before and after sharing, for verbose output."""
        return {
            "ast_nodes": sum(1 for _ in ast.walk()),
            "dag_nodes": len(self.nodes),
            "leaves": sum(1 for n in self.nodes if n.is_leaf),
        }


def build_dag(ast: AstNode) -> Tuple[DagBuilder, int]:
    """Build a DAG with a fresh builder. Returns ``(builder, root_id)``."""
    builder = DagBuilder()
    root = builder.from_ast(ast)
    return builder, root
