"""Comparison opcodes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pyunbox.bytecode.code import Instruction
from pyunbox.bytecode.opcodes import cmp_op
from pyunbox.core.typing_rules import compare_result
from pyunbox.core.values import AbstractValueKind, value_of_kind
from pyunbox.errors import MalformedBytecodeError
from pyunbox.execution.dispatcher import OpcodeResult, opcode_handler

if TYPE_CHECKING:
    from pyunbox.core.state import InterpreterState
    from pyunbox.execution.interpreter import AbstractInterpreter


@opcode_handler("COMPARE_OP")
def handle_compare_op(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Rich comparison selected by the argument."""
    if instr.arg >= len(cmp_op):
        raise MalformedBytecodeError(f"Invalid comparison {instr.arg}", instr.offset)
    right = state.pop_no_escape()
    left = state.pop_no_escape()
    result = compare_result(cmp_op[instr.arg], left.value, right.value)
    if not (ctx.unboxable(left.value) and ctx.unboxable(right.value) and ctx.unboxable(result)):
        left.escapes()
        right.escapes()
    ctx.push_result(state, instr, result)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("IS_OP", "CONTAINS_OP")
def handle_identity_or_membership(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """``is`` / ``in`` tests (negated when the argument is 1); always a bool."""
    state.pop()
    state.pop()
    ctx.push_result(state, instr, value_of_kind(AbstractValueKind.BOOL))
    return OpcodeResult.continue_with(instr.next_offset, state)
