"""Local variable, constant, global and cell opcodes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pyunbox.bytecode.code import Instruction
from pyunbox.core.sources import AbstractValueWithSources
from pyunbox.core.state import AbstractLocalInfo
from pyunbox.core.values import Any, to_abstract
from pyunbox.errors import MalformedBytecodeError
from pyunbox.execution.dispatcher import OpcodeResult, opcode_handler

if TYPE_CHECKING:
    from pyunbox.core.state import InterpreterState
    from pyunbox.execution.interpreter import AbstractInterpreter


def _check_local(instr: Instruction, ctx: AbstractInterpreter) -> int:
    if instr.arg >= ctx.code.nlocals:
        raise MalformedBytecodeError(f"Local {instr.arg} out of range", instr.offset)
    return instr.arg


@opcode_handler("LOAD_FAST")
def handle_load_fast(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Push a local variable."""
    index = _check_local(instr, ctx)
    info = state.get_local(index)
    if info.is_unassigned:
        # Every path raises UnboundLocalError here.
        return OpcodeResult.terminate()
    source = ctx.arena.local_source(instr.offset, index)
    state.push(AbstractValueWithSources(info.value, source))
    if info.maybe_undefined:
        # Past a successful load the slot is known to be assigned.
        state.replace_local(index, AbstractLocalInfo(info.value_info))
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("STORE_FAST")
def handle_store_fast(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Store TOS into a local variable. Locals are always boxed."""
    index = _check_local(instr, ctx)
    value = state.pop()
    state.replace_local(index, AbstractLocalInfo(value))
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("DELETE_FAST")
def handle_delete_fast(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Delete a local variable."""
    index = _check_local(instr, ctx)
    info = state.get_local(index)
    if info.is_unassigned:
        return OpcodeResult.terminate()
    info.value_info.escapes()
    state.replace_local(index, AbstractLocalInfo.unassigned())
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("LOAD_CONST")
def handle_load_const(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Push a constant."""
    if instr.arg >= len(ctx.code.consts):
        raise MalformedBytecodeError(f"Constant {instr.arg} out of range", instr.offset)
    value = to_abstract(ctx.code.consts[instr.arg])
    state.push(AbstractValueWithSources(value, ctx.arena.const_source(instr.offset, instr.arg)))
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler(
    "LOAD_GLOBAL",
    "LOAD_NAME",
    "LOAD_DEREF",
    "LOAD_CLASSDEREF",
    "LOAD_CLOSURE",
    "LOAD_ASSERTION_ERROR",
    "LOAD_BUILD_CLASS",
)
def handle_load_unknown(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Push a value whose type is not tracked (globals, names, cells)."""
    ctx.push_result(state, instr, Any)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("STORE_GLOBAL", "STORE_NAME", "STORE_DEREF")
def handle_store_untracked(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Store TOS outside the tracked locals."""
    state.pop()
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("DELETE_GLOBAL", "DELETE_NAME", "DELETE_DEREF")
def handle_delete_untracked(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Delete a name outside the tracked locals."""
    return OpcodeResult.continue_with(instr.next_offset, state)
