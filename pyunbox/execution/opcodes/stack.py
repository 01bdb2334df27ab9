"""Stack manipulation opcodes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pyunbox.bytecode.code import Instruction
from pyunbox.execution.dispatcher import OpcodeResult, opcode_handler

if TYPE_CHECKING:
    from pyunbox.core.state import InterpreterState
    from pyunbox.execution.interpreter import AbstractInterpreter


@opcode_handler("NOP")
def handle_nop(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Do nothing."""
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("POP_TOP")
def handle_pop_top(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Discard top of stack. Native values can be dropped without boxing."""
    value = state.pop_no_escape()
    if not ctx.unboxable(value.value):
        value.escapes()
    return OpcodeResult.continue_with(instr.next_offset, state)


# The shuffles move values without consuming them, so provenance travels
# with the value to whichever instruction finally pops it.


@opcode_handler("DUP_TOP")
def handle_dup_top(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Duplicate top of stack."""
    state.push(state.peek())
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("DUP_TOP_TWO")
def handle_dup_top_two(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Duplicate the two top-most stack items."""
    a = state.peek(0)
    b = state.peek(1)
    state.push(b)
    state.push(a)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("ROT_TWO")
def handle_rot_two(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Swap the two top-most stack items."""
    state.peek(1)
    state.stack[-1], state.stack[-2] = state.stack[-2], state.stack[-1]
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("ROT_THREE")
def handle_rot_three(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Rotate three stack items: TOP, SECOND, THIRD -> SECOND, THIRD, TOP."""
    state.peek(2)
    state.stack[-3:] = [state.stack[-1], state.stack[-3], state.stack[-2]]
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("ROT_FOUR")
def handle_rot_four(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Lift TOP below the three items under it."""
    state.peek(3)
    state.stack[-4:] = [state.stack[-1], state.stack[-4], state.stack[-3], state.stack[-2]]
    return OpcodeResult.continue_with(instr.next_offset, state)
