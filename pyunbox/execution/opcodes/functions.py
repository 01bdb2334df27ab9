"""Calls, function creation, attributes, imports and generators."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pyunbox.bytecode.code import Instruction
from pyunbox.core.values import AbstractValueKind, Any, value_of_kind
from pyunbox.execution.dispatcher import OpcodeResult, opcode_handler

if TYPE_CHECKING:
    from pyunbox.core.state import InterpreterState
    from pyunbox.execution.interpreter import AbstractInterpreter


def _call_operands(instr: Instruction) -> int:
    name = instr.opname
    if name == "CALL_FUNCTION":
        return instr.arg + 1
    if name in ("CALL_FUNCTION_KW", "CALL_METHOD"):
        return instr.arg + 2
    # CALL_FUNCTION_EX: callable, positional tuple, optional mapping
    return 3 if instr.arg & 0x01 else 2


@opcode_handler("CALL_FUNCTION", "CALL_FUNCTION_KW", "CALL_FUNCTION_EX", "CALL_METHOD")
def handle_call(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Call a callable; arguments and result are boxed objects."""
    for _ in range(_call_operands(instr)):
        state.pop()
    ctx.push_result(state, instr, Any)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("LOAD_METHOD")
def handle_load_method(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Replace TOS with a method and its bound receiver (or NULL)."""
    state.pop()
    state.push(Any)
    ctx.push_result(state, instr, Any)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("MAKE_FUNCTION")
def handle_make_function(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Create a function from code, qualified name and the flagged extras."""
    extras = bin(instr.arg & 0x0F).count("1")
    for _ in range(2 + extras):
        state.pop()
    ctx.push_result(state, instr, value_of_kind(AbstractValueKind.FUNCTION))
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("LOAD_ATTR", "IMPORT_FROM", "YIELD_VALUE")
def handle_replace_or_push_unknown(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Produce an untracked value (attribute, imported name, sent value)."""
    if instr.opname != "IMPORT_FROM":
        state.pop()
    ctx.push_result(state, instr, Any)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("IMPORT_NAME", "YIELD_FROM")
def handle_pop_two_push_unknown(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Consume two values and produce an untracked one."""
    state.pop()
    state.pop()
    ctx.push_result(state, instr, Any)
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("STORE_ATTR")
def handle_store_attr(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """TOS.name = TOS1."""
    state.pop()
    state.pop()
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("DELETE_ATTR", "IMPORT_STAR", "PRINT_EXPR")
def handle_pop_one(instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter) -> OpcodeResult:
    """Consume TOS."""
    state.pop()
    return OpcodeResult.continue_with(instr.next_offset, state)


@opcode_handler("SETUP_ANNOTATIONS")
def handle_setup_annotations(
    instr: Instruction, state: InterpreterState, ctx: AbstractInterpreter
) -> OpcodeResult:
    """Create ``__annotations__`` in the local namespace."""
    return OpcodeResult.continue_with(instr.next_offset, state)
