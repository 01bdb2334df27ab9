"""Control flow opcodes (jumps, branches, returns, loop regions)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pyunbox.bytecode.code import Instruction
from pyunbox.core.blocks import (
    BlockInfo,
    RegionFlags,
    RegionKind,
    current_handler,
    pop_block,
    push_block,
    truncate_stack,
    unwind,
)
from pyunbox.errors import BlockStackUnderflowError, MalformedBytecodeError
from pyunbox.execution.dispatcher import OpcodeResult, opcode_handler

if TYPE_CHECKING:
    from pyunbox.core.state import InterpreterState
    from pyunbox.execution.interpreter import AbstractInterpreter


def _branches(
    instr: Instruction,
    jump: InterpreterState,
    fall: InterpreterState,
    jump_when: bool,
    truth: bool | None,
) -> OpcodeResult:
    """Successors of a conditional jump, dropping a side that can never run."""
    successors = []
    if truth is None or truth == jump_when:
        successors.append((instr.jump_target, jump))
    if truth is None or truth != jump_when:
        successors.append((instr.next_offset, fall))
    return OpcodeResult.branch(successors)


@opcode_handler("RETURN_VALUE")
def handle_return_value(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Return TOS from the function."""
    value = state.pop()
    ctx.record_return(value.value)
    return OpcodeResult.terminate()


@opcode_handler("JUMP_FORWARD", "JUMP_ABSOLUTE")
def handle_jump(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Unconditional jump."""
    return OpcodeResult.continue_with(instr.jump_target, state)


@opcode_handler("POP_JUMP_IF_FALSE", "POP_JUMP_IF_TRUE")
def handle_pop_jump_if(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Pop TOS and jump if its truth value matches the opcode."""
    cond = state.pop_no_escape()
    if not ctx.unboxable(cond.value):
        cond.escapes()
    jump_when = instr.opname == "POP_JUMP_IF_TRUE"
    return _branches(instr, state.copy(), state, jump_when, ctx.known_truth(cond.value))


@opcode_handler("JUMP_IF_FALSE_OR_POP", "JUMP_IF_TRUE_OR_POP")
def handle_jump_if_or_pop(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Jump keeping TOS if its truth value matches, otherwise pop it."""
    jump_when = instr.opname == "JUMP_IF_TRUE_OR_POP"
    taken = state.copy()
    cond = state.pop()
    return _branches(instr, taken, state, jump_when, ctx.known_truth(cond.value))


@opcode_handler("SETUP_LOOP")
def handle_setup_loop(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Enter a loop region ending at the jump target."""
    push_block(
        state,
        BlockInfo(
            kind=RegionKind.LOOP,
            start=instr.offset,
            end_offset=instr.jump_target,
            handler=current_handler(state),
            continue_offset=ctx.loop_heads[instr.offset],
            flags=RegionFlags.BREAK | RegionFlags.CONTINUE,
            stack_depth=state.stack_size(),
        ),
    )
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("POP_BLOCK")
def handle_pop_block(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Leave the innermost region normally."""
    block = pop_block(state, offset=instr.offset)
    truncate_stack(state, block.stack_depth)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("BREAK_LOOP")
def handle_break_loop(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Leave the innermost loop, unwinding the regions nested inside it."""
    loop = unwind(state, RegionFlags.BREAK, instr.offset)
    if loop is None:
        raise BlockStackUnderflowError("'break' outside loop", instr.offset)
    pop_block(state, offset=instr.offset)
    truncate_stack(state, loop.stack_depth)
    return OpcodeResult.continue_with(loop.end_offset, state)


@opcode_handler("CONTINUE_LOOP")
def handle_continue_loop(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Jump back to the loop head, unwinding the regions nested inside the loop."""
    depth = state.stack_size()
    while state.blocks and not state.blocks[-1].absorbs(RegionFlags.CONTINUE):
        # Values below the outermost popped region (the loop iterator) survive.
        depth = pop_block(state, offset=instr.offset).stack_depth
    if not state.blocks:
        raise BlockStackUnderflowError("'continue' outside loop", instr.offset)
    loop = state.blocks[-1]
    if instr.jump_target != loop.continue_offset:
        raise MalformedBytecodeError(
            f"'continue' jumps to {instr.jump_target}, the loop head is {loop.continue_offset}", instr.offset
        )
    truncate_stack(state, depth)
    return OpcodeResult.continue_with(loop.continue_offset, state)
