"""Interpreter state management for the abstract interpreter.
This module defines the abstract machine state at one program point: the
operand stack, the locals and the active protected regions. States are
copied at every branch, so the locals live in a copy-on-write vector.
"""
from __future__ import annotations
from dataclasses import dataclass
from pyunbox.core.blocks import BlockInfo
from pyunbox.core.cow import CowVector
from pyunbox.core.sources import AbstractValueWithSources
from pyunbox.core.values import AbstractValue, AbstractValueKind, Undefined
from pyunbox.errors import (
    BlockStackMismatchError,
    InvalidLocalStateError,
    StackDepthMismatchError,
    StackUnderflowError,
)
@dataclass(frozen=True)
class AbstractLocalInfo:
    """What is known about one local slot.
    Attributes:
        value_info: Value (and provenance) the slot holds when assigned.
        maybe_undefined: Whether some path reaches this point with the slot unassigned.
    A slot that is definitely assigned can never hold UNDEFINED.
    """
    value_info: AbstractValueWithSources
    maybe_undefined: bool = False
    def __post_init__(self) -> None:
        if self.value_info.value.kind is AbstractValueKind.UNDEFINED and not self.maybe_undefined:
            raise InvalidLocalStateError("Local is definitely assigned but its value is undefined")
    @classmethod
    def unassigned(cls) -> AbstractLocalInfo:
        return cls(AbstractValueWithSources(Undefined), maybe_undefined=True)
    @classmethod
    def of(cls, value: AbstractValue) -> AbstractLocalInfo:
        return cls(AbstractValueWithSources(value))
    @property
    def value(self) -> AbstractValue:
        return self.value_info.value
    @property
    def is_unassigned(self) -> bool:
        """True when no path reaching this point assigned the slot."""
        return self.value.kind is AbstractValueKind.UNDEFINED
    def merge_with(self, other: AbstractLocalInfo) -> AbstractLocalInfo:
        merged = self.value_info.merge_with(other.value_info)
        maybe_undefined = self.maybe_undefined or other.maybe_undefined
        if merged is self.value_info and maybe_undefined == self.maybe_undefined:
            return self
        return AbstractLocalInfo(merged, maybe_undefined)
    def describe(self) -> str:
        text = self.value_info.describe()
        return f"{text} (maybe undefined)" if self.maybe_undefined else text
class InterpreterState:
    """Abstract machine state at one program point.
    Attributes:
        stack: Operand stack, top of stack last.
        locals: Local slots, shared copy-on-write between copies.
        blocks: Active protected regions, innermost last.
        consumer: Offset of the instruction popping from this state, if bound.
    """
    def __init__(
        self,
        locals: CowVector[AbstractLocalInfo] | None = None,
        stack: list[AbstractValueWithSources] | None = None,
        blocks: tuple[BlockInfo, ...] = (),
    ):
        self.locals: CowVector[AbstractLocalInfo] = locals if locals is not None else CowVector()
        self.stack: list[AbstractValueWithSources] = stack if stack is not None else []
        self.blocks: tuple[BlockInfo, ...] = blocks
        self.consumer: int | None = None
        self._pops = 0
    @classmethod
    def initial(cls, nlocals: int) -> InterpreterState:
        return cls(CowVector([AbstractLocalInfo.unassigned()] * nlocals))
    def bind_consumer(self, offset: int) -> None:
        """Attribute subsequent pops to the instruction at ``offset``."""
        self.consumer = offset
        self._pops = 0
    def unbind(self) -> None:
        self.consumer = None
        self._pops = 0
    def copy(self) -> InterpreterState:
        """Copy the state. The stack is copied, the locals are shared until written."""
        clone = InterpreterState(self.locals.copy(), list(self.stack), self.blocks)
        clone.consumer = self.consumer
        clone._pops = self._pops
        return clone
    def push(self, value: AbstractValueWithSources | AbstractValue) -> None:
        """Push a value onto the operand stack."""
        if isinstance(value, AbstractValue):
            value = AbstractValueWithSources(value)
        self.stack.append(value)
    def _pop(self) -> AbstractValueWithSources:
        if not self.stack:
            raise StackUnderflowError("Stack underflow", self.consumer)
        value = self.stack.pop()
        if self.consumer is not None and value.source is not None:
            value.source.add_consumer(self.consumer, self._pops)
        self._pops += 1
        return value
    def pop(self) -> AbstractValueWithSources:
        """Pop the top value. It leaves the tracked stack, so it escapes."""
        value = self._pop()
        value.escapes()
        return value
    def pop_no_escape(self) -> AbstractValueWithSources:
        """Pop the top value for an instruction that can consume it unboxed."""
        return self._pop()
    def peek(self, n: int = 0) -> AbstractValueWithSources:
        """Peek at the n-th value from the top of the stack."""
        if len(self.stack) <= n:
            raise StackUnderflowError(f"Stack underflow: cannot peek at position {n}", self.consumer)
        return self.stack[-(n + 1)]
    def stack_size(self) -> int:
        return len(self.stack)
    def get_local(self, index: int) -> AbstractLocalInfo:
        return self.locals[index]
    def replace_local(self, index: int, info: AbstractLocalInfo) -> None:
        self.locals.replace(index, info)
    def merge(self, other: InterpreterState, offset: int | None = None) -> InterpreterState:
        """Pointwise join of two states reaching the same instruction.
        Raises:
            StackDepthMismatchError: If the stacks have different depths.
            BlockStackMismatchError: If different regions are active.
        """
        if len(self.stack) != len(other.stack):
            raise StackDepthMismatchError(offset, len(self.stack), len(other.stack))
        if self.blocks != other.blocks:
            raise BlockStackMismatchError("Block stacks differ between incoming paths", offset)
        stack = [mine.merge_with(theirs) for mine, theirs in zip(self.stack, other.stack)]
        locals = self.locals.copy()
        if not self.locals.shares_storage_with(other.locals):
            for index, (mine, theirs) in enumerate(zip(self.locals, other.locals)):
                merged = mine.merge_with(theirs)
                if merged is not mine:
                    locals.replace(index, merged)
        return InterpreterState(locals, stack, self.blocks)
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InterpreterState):
            return NotImplemented
        return self.stack == other.stack and self.blocks == other.blocks and self.locals == other.locals
    __hash__ = None  # type: ignore[assignment]
    def __repr__(self) -> str:
        return f"InterpreterState(stack_depth={len(self.stack)}, locals={len(self.locals)}, blocks={len(self.blocks)})"
__all__ = ["AbstractLocalInfo", "InterpreterState"]
