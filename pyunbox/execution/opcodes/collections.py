"""Collection building, unpacking and iteration opcodes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pyunbox.bytecode.code import Instruction
from pyunbox.core.values import AbstractValueKind, Any, SizedValue, value_of_kind
from pyunbox.execution.dispatcher import OpcodeResult, opcode_handler

if TYPE_CHECKING:
    from pyunbox.core.state import InterpreterState
    from pyunbox.execution.interpreter import AbstractInterpreter

K = AbstractValueKind


def _pop_n(state: InterpreterState, count: int) -> None:
    for _ in range(count):
        state.pop()


@opcode_handler("BUILD_TUPLE")
def handle_build_tuple(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Build a tuple from the top N items; its length is known."""
    _pop_n(state, instr.arg)
    ctx.push_result(state, instr, SizedValue(K.TUPLE, instr.arg))
    return OpcodeResult.continue_with(instr.next_offset, state)


_BUILDERS = {
    "BUILD_LIST": (K.LIST, lambda n: n),
    "BUILD_SET": (K.SET, lambda n: n),
    "BUILD_STRING": (K.STRING, lambda n: n),
    "BUILD_MAP": (K.DICT, lambda n: 2 * n),
    "BUILD_CONST_KEY_MAP": (K.DICT, lambda n: n + 1),
    "BUILD_SLICE": (K.SLICE, lambda n: n),
}


@opcode_handler(*_BUILDERS)
def handle_build(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Build a list, set, string, dict or slice from stack items."""
    kind, operands = _BUILDERS[instr.opname]
    _pop_n(state, operands(instr.arg))
    ctx.push_result(state, instr, value_of_kind(kind))
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("LIST_APPEND", "SET_ADD", "LIST_EXTEND", "SET_UPDATE", "DICT_UPDATE", "DICT_MERGE")
def handle_container_add(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Add TOS to the container N items down."""
    state.pop()
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("MAP_ADD")
def handle_map_add(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Add the TOS1: TOS pair to the dict N items down."""
    _pop_n(state, 2)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("LIST_TO_TUPLE")
def handle_list_to_tuple(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Convert the list on TOS to a tuple."""
    state.pop()
    ctx.push_result(state, instr, value_of_kind(K.TUPLE))
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("UNPACK_SEQUENCE")
def handle_unpack_sequence(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Unpack TOS into N values."""
    sequence = state.pop()
    if isinstance(sequence.value, SizedValue) and sequence.value.length != instr.arg:
        # Unpacking a tuple of known, different length always raises.
        return OpcodeResult.terminate()
    for _ in range(instr.arg):
        state.push(Any)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("UNPACK_EX")
def handle_unpack_ex(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Unpack TOS into the values before and after a starred target."""
    state.pop()
    before, after = instr.arg & 0xFF, instr.arg >> 8
    for _ in range(after):
        state.push(Any)
    state.push(value_of_kind(K.LIST))
    for _ in range(before):
        state.push(Any)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("FORMAT_VALUE")
def handle_format_value(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Format TOS (with a format spec below it when flag 0x04 is set)."""
    if instr.arg & 0x04:
        state.pop()
    state.pop()
    ctx.push_result(state, instr, value_of_kind(K.STRING))
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("GET_ITER", "GET_YIELD_FROM_ITER")
def handle_get_iter(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Replace TOS with an iterator over it."""
    state.pop()
    ctx.push_result(state, instr, value_of_kind(K.ITERATOR))
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("FOR_ITER")
def handle_for_iter(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Advance the iterator on TOS; on exhaustion pop it and jump past the loop body."""
    exhausted = state.copy()
    exhausted.pop()
    state.peek()
    ctx.push_result(state, instr, Any)
    return OpcodeResult.branch([(instr.next_offset, state), (instr.jump_target, exhausted)])
