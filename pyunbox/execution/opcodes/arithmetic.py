"""Arithmetic and unary opcodes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pyunbox.bytecode.code import Instruction
from pyunbox.core.typing_rules import binary_result, subscript_result, unary_result
from pyunbox.execution.dispatcher import OpcodeResult, opcode_handler

if TYPE_CHECKING:
    from pyunbox.core.state import InterpreterState
    from pyunbox.execution.interpreter import AbstractInterpreter

BINARY_OPERATORS: dict[str, str] = {
    "BINARY_ADD": "+",
    "BINARY_SUBTRACT": "-",
    "BINARY_MULTIPLY": "*",
    "BINARY_TRUE_DIVIDE": "/",
    "BINARY_FLOOR_DIVIDE": "//",
    "BINARY_MODULO": "%",
    "BINARY_POWER": "**",
    "BINARY_MATRIX_MULTIPLY": "@",
    "BINARY_LSHIFT": "<<",
    "BINARY_RSHIFT": ">>",
    "BINARY_AND": "&",
    "BINARY_OR": "|",
    "BINARY_XOR": "^",
}
# In-place variants share the operator of their binary counterpart.
BINARY_OPERATORS.update(
    {name.replace("BINARY_", "INPLACE_"): symbol for name, symbol in list(BINARY_OPERATORS.items())}
)

UNARY_OPERATORS: dict[str, str] = {
    "UNARY_NEGATIVE": "-",
    "UNARY_POSITIVE": "+",
    "UNARY_INVERT": "~",
    "UNARY_NOT": "not",
}


@opcode_handler(*BINARY_OPERATORS)
def handle_binary_op(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Binary operation: TOS = TOS1 op TOS."""
    right = state.pop_no_escape()
    left = state.pop_no_escape()
    result = binary_result(BINARY_OPERATORS[instr.opname], left.value, right.value)
    if not (ctx.unboxable(left.value) and ctx.unboxable(right.value) and ctx.unboxable(result)):
        left.escapes()
        right.escapes()
    ctx.push_result(state, instr, result)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler(*UNARY_OPERATORS)
def handle_unary_op(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Unary operation: TOS = op TOS."""
    operand = state.pop_no_escape()
    result = unary_result(UNARY_OPERATORS[instr.opname], operand.value)
    if not (ctx.unboxable(operand.value) and ctx.unboxable(result)):
        operand.escapes()
    ctx.push_result(state, instr, result)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("BINARY_SUBSCR")
def handle_binary_subscr(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Subscript: TOS = TOS1[TOS]."""
    index = state.pop()
    container = state.pop()
    ctx.push_result(state, instr, subscript_result(container.value, index.value))
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("STORE_SUBSCR")
def handle_store_subscr(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Subscript assignment: TOS1[TOS] = TOS2."""
    state.pop()
    state.pop()
    state.pop()
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("DELETE_SUBSCR")
def handle_delete_subscr(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Subscript deletion: del TOS1[TOS]."""
    state.pop()
    state.pop()
    return OpcodeResult.continue_with(instr.next_offset, state)
