"""Opcode dispatcher with registration system.
This module provides a decorator-based system for registering the abstract
transfer function of each opcode, allowing modular organization of the
interpreter's semantics.
"""
from __future__ import annotations
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from pyunbox.bytecode.code import Instruction
from pyunbox.errors import MalformedBytecodeError
if TYPE_CHECKING:
    from pyunbox.core.state import InterpreterState
@dataclass
class OpcodeResult:
    """Result of abstractly executing one instruction.
    Attributes:
        successors: (offset, state) pairs to merge into successor start states.
        terminal: Whether control leaves the function on every path.
    """
    successors: list[tuple[int, InterpreterState]] = field(default_factory=list)
    terminal: bool = False
    @staticmethod
    def continue_with(offset: int, state: InterpreterState) -> OpcodeResult:
        """Continue with a single successor."""
        return OpcodeResult(successors=[(offset, state)])
    @staticmethod
    def branch(successors: list[tuple[int, InterpreterState]]) -> OpcodeResult:
        """Continue with several successors."""
        return OpcodeResult(successors=successors)
    @staticmethod
    def terminate() -> OpcodeResult:
        """End this path."""
        return OpcodeResult(successors=[], terminal=True)
OpcodeHandler = Callable[[Instruction, "InterpreterState", "OpcodeDispatcher"], OpcodeResult]
class OpcodeDispatcher:
    """Dispatches instructions to registered handlers.
    This class manages a registry of opcode handlers and the instruction table
    of the code unit being analyzed.
    Example:
        dispatcher = OpcodeDispatcher()
        @dispatcher.register("LOAD_FAST")
        def handle_load_fast(instr, state, ctx):
            ...
    """
    _global_handlers: dict[str, OpcodeHandler] = {}
    def __init__(self) -> None:
        """Initialize the dispatcher."""
        self._handlers: dict[str, OpcodeHandler] = {}
        self._instructions: list[Instruction] = []
        self._by_offset: dict[int, Instruction] = {}
    def register(self, *opcodes: str) -> Callable[[OpcodeHandler], OpcodeHandler]:
        """Decorator to register a handler for one or more opcodes on this dispatcher only.
        Args:
            opcodes: One or more opcode names (e.g., "LOAD_FAST", "STORE_FAST").
        Returns:
            Decorator function.
        """
        def decorator(handler: OpcodeHandler) -> OpcodeHandler:
            for opcode in opcodes:
                self._handlers[opcode] = handler
            return handler
        return decorator
    def set_instructions(self, instructions: list[Instruction]) -> None:
        """Set the instruction table for the current code unit."""
        self._instructions = instructions
        self._by_offset = {instr.offset: instr for instr in instructions}
    @property
    def instructions(self) -> list[Instruction]:
        return self._instructions
    def instruction_at(self, offset: int) -> Instruction:
        """Instruction starting at ``offset``.
        Raises:
            MalformedBytecodeError: If no instruction starts there.
        """
        instr = self._by_offset.get(offset)
        if instr is None:
            raise MalformedBytecodeError("No instruction starts here", offset)
        return instr
    def is_instruction_start(self, offset: int) -> bool:
        return offset in self._by_offset
    def dispatch(self, instr: Instruction, state: InterpreterState) -> OpcodeResult:
        """Dispatch an instruction to its handler.
        Raises:
            MalformedBytecodeError: If no handler is registered for the opcode.
        """
        handler = self._handlers.get(instr.opname)
        if handler is None:
            handler = OpcodeDispatcher._global_handlers.get(instr.opname)
        if handler is None:
            raise MalformedBytecodeError(f"Opcode not supported: {instr.opname}", instr.offset)
        return handler(instr, state, self)
    def has_handler(self, opcode: str) -> bool:
        """Check if a handler is registered for an opcode."""
        return opcode in self._handlers or opcode in OpcodeDispatcher._global_handlers
    def registered_opcodes(self) -> set[str]:
        """Get the set of registered opcode names."""
        return set(self._handlers.keys()) | set(OpcodeDispatcher._global_handlers.keys())
    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self._instructions)} instructions)"
def opcode_handler(*opcodes: str) -> Callable[[OpcodeHandler], OpcodeHandler]:
    """Decorator to register an opcode handler globally.
    Handlers registered with this decorator are available to all
    OpcodeDispatcher instances.
    Example:
        @opcode_handler("LOAD_FAST")
        def handle_load_fast(instr, state, ctx):
            ...
    """
    def decorator(handler: OpcodeHandler) -> OpcodeHandler:
        for opcode in opcodes:
            OpcodeDispatcher._global_handlers[opcode] = handler
        return handler
    return decorator
