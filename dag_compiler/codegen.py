"""
IR Code Generator for the DAG expression compiler.

Walks a DAG from its root and emits a single function of three-address
instructions over 64-bit integers:

    define i64 @foo(i64 %a, i64 %b, i64 %c) {
        tmp1 = multiply i64 %b, %c
        tmp2 = add i64 %a, tmp1
        return i64 tmp2
    }

Value conventions:
  - Identifier leaves are function parameters, referenced as %name.
    The parameter list is every distinct identifier, sorted.
  - Number leaves are emitted inline as immediates.
  - Each internal node gets the next temp from a counter starting at 1.
    Temps are memoized per DAG id, so a node shared by two parents is
    computed once and referenced twice.

Operands are resolved before the temp for their parent is allocated, so
no instruction ever refers to a temp defined after it.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .dag import DagBuilder

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Output dialects
# ──────────────────────────────────────────────

DIALECTS = {
    "default": {
        "temp": "tmp{n}",
        "ops": {"+": "add", "*": "multiply"},
        "ret": "return",
        "description": "Readable three-address form (tmpN / multiply / return)",
    },
    "llvm": {
        "temp": "%t{n}",
        "ops": {"+": "add", "*": "mul"},
        "ret": "ret",
        "description": "LLVM IR text accepted by llc / lli",
    },
}

UNKNOWN_MNEMONIC = "unknown"
PLACEHOLDER = "; Unable to parse input"


class CodeGenError(Exception):
    def __init__(self, message: str, node_id: int = -1):
        self.node_id = node_id
        where = f" at node {node_id}" if node_id >= 0 else ""
        super().__init__(f"Code generation error{where}: {message}")


def is_identifier(label: str) -> bool:
    """Identifier leaves are all ASCII letters; anything else is a literal."""
    return bool(label) and label.isascii() and label.isalpha()


# ──────────────────────────────────────────────
# IR containers
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class IRInstruction:
    dest: str
    mnemonic: str
    left: str
    right: str

    def render(self) -> str:
        return f"{self.dest} = {self.mnemonic} i64 {self.left}, {self.right}"


@dataclass
class IRFunction:
    name: str
    params: List[str]
    instructions: List[IRInstruction] = field(default_factory=list)
    result: str = ""
    ret: str = "return"

    def signature(self) -> str:
        args = ", ".join(f"i64 %{p}" for p in self.params)
        return f"define i64 @{self.name}({args}) {{"

    def lines(self) -> List[str]:
        out = [self.signature()]
        out.extend(f"    {ins.render()}" for ins in self.instructions)
        out.append(f"    {self.ret} i64 {self.result}")
        out.append("}")
        return out

    def to_text(self) -> str:
        return "\n".join(self.lines()) + "\n"


# ──────────────────────────────────────────────
# Generator
# ──────────────────────────────────────────────

class CodeGenerator:
    """Emits IR for one DAG. Create a new instance per DAG."""

    def __init__(self, dialect: str = "default", function_name: str = "foo"):
        if dialect not in DIALECTS:
            raise CodeGenError(f"unknown dialect {dialect!r} "
                               f"(choose from {', '.join(DIALECTS)})")
        self.dialect = dialect
        self.profile = DIALECTS[dialect]
        self.function_name = function_name

        self._temp_counter = 1
        self._temp_map: Dict[int, str] = {}
        self._code: List[IRInstruction] = []

    @staticmethod
    def collect_identifiers(dag: DagBuilder, root: int) -> List[str]:
        """Sorted distinct identifier labels among leaves reachable from root."""
        names = set()
        for node_id in dag.reachable(root):
            node = dag[node_id]
            if node.is_leaf and is_identifier(node.label):
                names.add(node.label)
        return sorted(names)

    def _new_temp(self) -> str:
        temp = self.profile["temp"].format(n=self._temp_counter)
        self._temp_counter += 1
        return temp

    def _value(self, dag: DagBuilder, node_id: int) -> str:
        """Value of a leaf, or the temp already assigned to an operator."""
        if node_id in self._temp_map:
            return self._temp_map[node_id]
        node = dag[node_id]
        if is_identifier(node.label):
            return f"%{node.label}"
        return node.label

    def emit_node(self, dag: DagBuilder, node_id: int) -> str:
        """Return the value naming ``node_id``, emitting code on first visit.

        Operands are emitted left subtree first, then right, then the
        operator itself, using an explicit stack instead of recursion.
        """
        stack = [(node_id, False)]
        while stack:
            current, operands_done = stack.pop()
            if current in self._temp_map:
                continue
            node = dag[current]
            if node.is_leaf:
                continue
            if node.left is None or node.right is None:
                raise CodeGenError(f"operator {node.label!r} is missing an operand", current)

            if not operands_done:
                stack.append((current, True))
                stack.append((node.right, False))
                stack.append((node.left, False))
                continue

            left_val = self._value(dag, node.left)
            right_val = self._value(dag, node.right)

            temp = self._new_temp()
            mnemonic = self.profile["ops"].get(node.label, UNKNOWN_MNEMONIC)
            if mnemonic == UNKNOWN_MNEMONIC:
                log.warning("no mnemonic for operator %r, emitting %r", node.label, mnemonic)

            self._code.append(IRInstruction(temp, mnemonic, left_val, right_val))
            self._temp_map[current] = temp

        return self._value(dag, node_id)

    def generate(self, dag: DagBuilder, root: int) -> IRFunction:
        """Build the IR function computing the value of ``root``."""
        params = self.collect_identifiers(dag, root)
        result = self.emit_node(dag, root)
        log.debug("emitted %d instruction(s) for %d parameter(s)",
                  len(self._code), len(params))
        return IRFunction(
            name=self.function_name,
            params=params,
            instructions=list(self._code),
            result=result,
            ret=self.profile["ret"],
        )


def generate_ir(dag: DagBuilder, root: int, *, dialect: str = "default",
                function_name: str = "foo") -> IRFunction:
    return CodeGenerator(dialect=dialect, function_name=function_name).generate(dag, root)
