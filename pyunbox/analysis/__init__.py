"""Escape analysis over the results of the abstract interpreter."""
from pyunbox.analysis.unboxing import (
    UNBOXING_OPCODES,
    EdgeEscape,
    classify_edge,
    supports_escaping,
    supports_unboxing,
)
from pyunbox.analysis.instruction_graph import Edge, InstructionGraph, InstructionNode
__all__ = [
    "UNBOXING_OPCODES",
    "EdgeEscape",
    "classify_edge",
    "supports_escaping",
    "supports_unboxing",
    "Edge",
    "InstructionGraph",
    "InstructionNode",
]
