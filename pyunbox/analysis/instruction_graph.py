"""
Instruction dependency graph and escape analysis.

Nodes are the instructions of a code unit. An edge joins the instruction
that produced a stack value to the instruction that consumed it, labelled
with the stack position it was consumed from. Once built, the graph
decides which instructions may run on unboxed values ("escape") and how
every edge must convert between the two representations:

    graph = InstructionGraph(code, interp.start_states)
    for edge in graph.get_edges(offset):
        ...edge.escaped...

Unsound marks are reverted rather than reported; the worst outcome of a
revert is that a value stays boxed.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass

from pyunbox.analysis.unboxing import (
    EdgeEscape,
    classify_edge,
    supports_escaping,
    supports_unboxing,
)
from pyunbox.bytecode.code import CodeUnit, Instruction
from pyunbox.bytecode.opcodes import opmap, stack_effect
from pyunbox.core.sources import AbstractSource
from pyunbox.core.state import InterpreterState
from pyunbox.core.values import UNBOXABLE_KINDS, AbstractValue, AbstractValueKind
from pyunbox.logging import ESCAPE, UnboxLogger, get_logger
from pyunbox.reporting.dot import render_dot

_LOCAL_OPCODES = frozenset({opmap["LOAD_FAST"], opmap["STORE_FAST"]})


@dataclass
class InstructionNode:
    """An instruction and whether it runs on unboxed values."""

    instruction: Instruction
    escape: bool = False

    @property
    def index(self) -> int:
        return self.instruction.offset

    @property
    def opcode(self) -> int:
        return self.instruction.opcode

    @property
    def oparg(self) -> int:
        return self.instruction.arg

    @property
    def width(self) -> int:
        return self.instruction.width

    @property
    def opname(self) -> str:
        return self.instruction.opname


@dataclass
class Edge:
    """
    A value flowing from its producer to one consumer.
    Attributes:
        producer: Offset of the instruction that pushed the value
        consumer: Offset of the instruction that popped it
        position: Stack position at the consumer, 0 being the top of stack
        kind: Kind of the value as seen by the consumer
        value: The value itself
        label: Description of the value's source
        source: The source object, shared by every edge out of the producer
        escaped: Conversion needed along the edge
    """

    producer: int
    consumer: int
    position: int
    kind: AbstractValueKind
    value: AbstractValue
    label: str
    source: AbstractSource
    escaped: EdgeEscape = EdgeEscape.NO_ESCAPE


def _by_position(edges: Collection[Edge]) -> list[Edge]:
    # Later edges replace earlier ones at the same position.
    positions = {edge.position: edge for edge in edges}
    return [positions[position] for position in sorted(positions)]


class InstructionGraph:
    """Producer/consumer graph over the instructions of one code unit."""

    def __init__(
        self,
        code: CodeUnit,
        states: Mapping[int, InterpreterState],
        unbox_kinds: Collection[AbstractValueKind] = UNBOXABLE_KINDS,
        logger: UnboxLogger | None = None,
        run_passes: bool = True,
    ):
        self.code = code
        self.unbox_kinds = frozenset(unbox_kinds)
        self.logger = logger or get_logger()
        self.instructions: dict[int, InstructionNode] = {}
        self.edges: list[Edge] = []
        self._edges_to: dict[int, list[Edge]] = {}
        self._edges_from: dict[int, list[Edge]] = {}
        for instr in code.instructions():
            self.instructions[instr.offset] = InstructionNode(instr)
            state = states.get(instr.offset)
            if state is not None:
                self._add_edges(instr.offset, state)
        if run_passes:
            with self.logger.analyzing(code.name):
                self.fix_instructions()
                self.deoptimize_instructions()
                self.fix_locals()
                self.fix_edges()

    def _add_edges(self, index: int, state: InterpreterState) -> None:
        # A duplicated source sits in several slots; each consumed slot is one edge.
        seen: set[int] = set()
        for slot in state.stack:
            source = slot.source
            if source is None or id(source) in seen:
                continue
            seen.add(id(source))
            for position in source.consumed_positions(index):
                self.add_edge(
                    Edge(
                        producer=source.producer,
                        consumer=index,
                        position=position,
                        kind=slot.value.kind,
                        value=slot.value,
                        label=source.describe(),
                        source=source,
                    )
                )

    def add_edge(self, edge: Edge) -> None:
        self.edges.append(edge)
        self._edges_to.setdefault(edge.consumer, []).append(edge)
        self._edges_from.setdefault(edge.producer, []).append(edge)

    # Passes

    def fix_instructions(self) -> None:
        """Mark unboxing-capable instructions whose every edge carries an unboxable kind."""
        for index, node in self.instructions.items():
            if not supports_unboxing(node.opcode) or node.opcode in _LOCAL_OPCODES:
                continue
            edges = self.get_edges(index) + self.get_edges_from(index)
            if all(supports_escaping(edge.kind, self.unbox_kinds) for edge in edges):
                node.escape = True

    def deoptimize_instructions(self) -> None:
        """Revert escape marks that would leave a lone value converted for nothing."""
        for index, node in self.instructions.items():
            if not node.escape:
                continue
            edges_in = self.get_edges(index)
            edges_out = self.get_edges_from(index)
            if stack_effect(node.opcode, node.oparg) != len(edges_out) - len(edges_in):
                self._revert(node, "edges do not match the stack effect")
            elif not edges_in and len(edges_out) == 1 and not self.is_escaped(edges_out[0].consumer):
                self._revert(node, f"only consumer {edges_out[0].consumer} is boxed")
            elif len(edges_in) == 1 and not edges_out and not self.is_escaped(edges_in[0].producer):
                self._revert(node, f"only producer {edges_in[0].producer} is boxed")

    def _revert(self, node: InstructionNode, reason: str) -> None:
        node.escape = False
        self.logger.debug(f"{node.opname} at {node.index} stays boxed: {reason}", category=ESCAPE, offset=node.index)

    def fix_locals(self) -> None:
        """Decide which local slots may live unboxed.

        No local is unboxed yet: LOAD_FAST and STORE_FAST keep their default
        (boxed) marking, and ``get_unboxed_fast_locals`` stays empty.
        """

    def fix_edges(self) -> None:
        for edge in self.edges:
            edge.escaped = classify_edge(self.is_escaped(edge.producer), self.is_escaped(edge.consumer))

    # Queries

    def is_escaped(self, index: int) -> bool:
        node = self.instructions.get(index)
        return node is not None and node.escape

    def get_edges(self, index: int) -> list[Edge]:
        """Edges into ``index``, one per stack position, ascending."""
        return _by_position(self._edges_to.get(index, ()))

    def get_edges_from(self, index: int) -> list[Edge]:
        """Edges out of ``index``, one per stack position, ascending.

        A value read by several consumers at the same position (a duplicated
        or conditionally popped value) is reported once, by the consumer with
        the highest offset.
        """
        return _by_position(self._edges_from.get(index, ()))

    def get_unboxed_fast_locals(self) -> dict[int, AbstractValueKind]:
        """Local slots that may be stored unboxed, with their kind."""
        return {}

    def escaped_instructions(self) -> list[int]:
        return [index for index, node in self.instructions.items() if node.escape]

    def to_dot(self, name: str = "G") -> str:
        """Render the graph in Graphviz DOT syntax."""
        return render_dot(self, name)

    def __len__(self) -> int:
        return len(self.instructions)

    def __repr__(self) -> str:
        return f"InstructionGraph({self.code.name}, {len(self.instructions)} instructions, {len(self.edges)} edges)"


__all__ = ["InstructionGraph", "InstructionNode", "Edge"]
