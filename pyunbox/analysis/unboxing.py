"""Which instructions and values may skip boxing."""

from __future__ import annotations

from collections.abc import Collection
from enum import Enum

from pyunbox.bytecode.opcodes import opmap
from pyunbox.core.values import UNBOXABLE_KINDS, AbstractValueKind

# Instructions the code generator can emit in an unboxed form.
UNBOXING_OPCODES = frozenset(
    opmap[name]
    for name in (
        "LOAD_FAST",
        "STORE_FAST",
        "LOAD_CONST",
        "POP_TOP",
        "COMPARE_OP",
        "POP_JUMP_IF_FALSE",
        "POP_JUMP_IF_TRUE",
        "UNARY_NEGATIVE",
        "UNARY_POSITIVE",
        "UNARY_NOT",
        "BINARY_ADD",
        "BINARY_SUBTRACT",
        "BINARY_MULTIPLY",
        "BINARY_TRUE_DIVIDE",
        "BINARY_FLOOR_DIVIDE",
        "BINARY_MODULO",
        "BINARY_POWER",
        "BINARY_LSHIFT",
        "BINARY_RSHIFT",
        "BINARY_AND",
        "BINARY_OR",
        "BINARY_XOR",
        "INPLACE_ADD",
        "INPLACE_SUBTRACT",
        "INPLACE_MULTIPLY",
        "INPLACE_TRUE_DIVIDE",
        "INPLACE_FLOOR_DIVIDE",
        "INPLACE_MODULO",
        "INPLACE_POWER",
        "INPLACE_LSHIFT",
        "INPLACE_RSHIFT",
        "INPLACE_AND",
        "INPLACE_OR",
        "INPLACE_XOR",
    )
)


class EdgeEscape(Enum):
    """How a value travels along an edge.

    NO_ESCAPE: boxed producer, boxed consumer.
    UNBOX: boxed producer, unboxed consumer; the consumer unboxes.
    BOX: unboxed producer, boxed consumer; the producer boxes.
    UNBOXED: both sides unboxed.
    """

    NO_ESCAPE = "NoEscape"
    UNBOX = "Unbox"
    BOX = "Box"
    UNBOXED = "Unboxed"

    @property
    def converts(self) -> bool:
        """Whether the value changes representation along the edge."""
        return self in (EdgeEscape.UNBOX, EdgeEscape.BOX)


def supports_unboxing(opcode: int) -> bool:
    return opcode in UNBOXING_OPCODES


def supports_escaping(
    kind: AbstractValueKind, kinds: Collection[AbstractValueKind] = UNBOXABLE_KINDS
) -> bool:
    """Whether values of ``kind`` may travel unboxed."""
    return kind in kinds


def classify_edge(producer_escaped: bool, consumer_escaped: bool) -> EdgeEscape:
    if not producer_escaped:
        return EdgeEscape.UNBOX if consumer_escaped else EdgeEscape.NO_ESCAPE
    return EdgeEscape.UNBOXED if consumer_escaped else EdgeEscape.BOX


__all__ = [
    "UNBOXING_OPCODES",
    "EdgeEscape",
    "supports_unboxing",
    "supports_escaping",
    "classify_edge",
]
