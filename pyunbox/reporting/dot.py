"""Graphviz rendering of the instruction graph."""
from __future__ import annotations
from typing import TYPE_CHECKING
from pyunbox.analysis.unboxing import EdgeEscape
from pyunbox.bytecode.opcodes import opmap
if TYPE_CHECKING:
    from pyunbox.analysis.instruction_graph import InstructionGraph
EDGE_STYLES = {
    EdgeEscape.NO_ESCAPE: ("-", "black"),
    EdgeEscape.UNBOX: ("U", "red"),
    EdgeEscape.BOX: ("B", "green"),
    EdgeEscape.UNBOXED: ("UN", "purple"),
}
JUMP_OPCODES = frozenset(
    opmap[name]
    for name in (
        "JUMP_FORWARD",
        "JUMP_ABSOLUTE",
        "JUMP_IF_FALSE_OR_POP",
        "JUMP_IF_TRUE_OR_POP",
        "JUMP_IF_NOT_EXC_MATCH",
        "POP_JUMP_IF_TRUE",
        "POP_JUMP_IF_FALSE",
    )
)
def _quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
def render_dot(graph: InstructionGraph, name: str = "G") -> str:
    """Export the graph to DOT format for visualization.
    Escaped instructions are drawn blue, jumps as yellow edges, and each value
    edge is colored by the conversion it needs.
    """
    lines = [f"digraph {name} {{"]
    lines.append("  node [shape=box];")
    for index, node in graph.instructions.items():
        color = " color=blue" if node.escape else ""
        lines.append(f'  OP{index} [label="{node.opname} ({node.oparg})"{color}];')
        if node.opcode in JUMP_OPCODES:
            target = node.instruction.jump_target
            lines.append(f'  OP{index} -> OP{target} [label="Jump" color=yellow];')
    for edge in graph.edges:
        marker, color = EDGE_STYLES[edge.escaped]
        label = _quote(f"{edge.label} ({edge.value.describe()}) {marker}{edge.position}")
        lines.append(f'  OP{edge.producer} -> OP{edge.consumer} [label="{label}" color={color}];')
    lines.append("}")
    return "\n".join(lines)
__all__ = ["render_dot", "EDGE_STYLES", "JUMP_OPCODES"]
