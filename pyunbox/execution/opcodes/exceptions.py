"""Exception handling opcodes (try, with, raise)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pyunbox.bytecode.code import Instruction
from pyunbox.core.blocks import BlockInfo, RegionFlags, RegionKind, pop_block, push_block
from pyunbox.core.values import Any
from pyunbox.execution.dispatcher import OpcodeResult, opcode_handler

if TYPE_CHECKING:
    from pyunbox.core.state import InterpreterState
    from pyunbox.execution.interpreter import AbstractInterpreter


def _enter_region(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter, kind: RegionKind
) -> list[tuple[int, InterpreterState]]:
    handler = instr.jump_target
    push_block(
        state,
        BlockInfo(
            kind=kind,
            start=instr.offset,
            end_offset=handler,
            handler=handler,
            flags=RegionFlags.EXCEPTION,
            stack_depth=state.stack_size(),
        ),
    )
    # Seed the handler so it has a start state even when nothing in the
    # region is considered able to raise.
    return ctx.raise_from(state.copy(), instr)


@opcode_handler("SETUP_FINALLY")
def handle_setup_finally(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Enter a try region whose handler is the jump target."""
    successors = _enter_region(instr, state, ctx, RegionKind.TRY)
    return OpcodeResult.branch([(instr.next_offset, state), *successors])


@opcode_handler("SETUP_WITH")
def handle_setup_with(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Enter a with region: replace the manager by its __exit__ and push __enter__()."""
    state.pop()
    state.push(Any)
    successors = _enter_region(instr, state, ctx, RegionKind.WITH)
    ctx.push_result(state, instr, Any)
    return OpcodeResult.branch([(instr.next_offset, state), *successors])


@opcode_handler("POP_EXCEPT")
def handle_pop_except(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Leave an exception handler."""
    pop_block(state, RegionKind.EXCEPT_HANDLER, instr.offset)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("RAISE_VARARGS")
def handle_raise_varargs(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Raise an exception (with a cause when the argument is 2)."""
    for _ in range(instr.arg):
        state.pop()
    return OpcodeResult.branch(ctx.raise_from(state, instr))


@opcode_handler("RERAISE")
def handle_reraise(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Re-raise the exception on TOS."""
    state.pop()
    return OpcodeResult.branch(ctx.raise_from(state, instr))


@opcode_handler("JUMP_IF_NOT_EXC_MATCH")
def handle_jump_if_not_exc_match(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Pop an exception and a class; jump when the exception does not match."""
    state.pop()
    state.pop()
    return OpcodeResult.branch([(instr.jump_target, state.copy()), (instr.next_offset, state)])


@opcode_handler("WITH_EXCEPT_START")
def handle_with_except_start(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Call __exit__ (below the exception) with the exception; push its result."""
    state.peek(1)
    ctx.push_result(state, instr, Any)
    return OpcodeResult.continue_with(instr.next_offset, state)
