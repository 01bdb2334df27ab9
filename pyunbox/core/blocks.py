"""Protected regions: loops, try blocks, with blocks and exception handlers."""
from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum, Flag, auto
from typing import TYPE_CHECKING
from pyunbox.core.sources import AbstractValueWithSources
from pyunbox.core.values import Any
from pyunbox.errors import BlockStackUnderflowError, InternalConsistencyError
if TYPE_CHECKING:
    from pyunbox.core.state import InterpreterState
class RegionKind(Enum):
    """Kind of an active region."""
    LOOP = auto()
    TRY = auto()
    WITH = auto()
    EXCEPT_HANDLER = auto()
class RegionFlags(Flag):
    """Control transfers a region absorbs."""
    NONE = 0
    BREAK = auto()
    CONTINUE = auto()
    EXCEPTION = auto()
@dataclass(frozen=True)
class BlockInfo:
    """One entry of the block stack.
    Attributes:
        kind: Region kind.
        start: Offset of the instruction that opened the region.
        end_offset: Where the region ends; the handler offset for TRY and WITH.
        handler: Nearest exception handler while inside this region, or None.
        continue_offset: Loop head a ``continue`` jumps to, for LOOP regions.
        flags: Control transfers this region absorbs.
        stack_depth: Operand stack depth to restore when the region is left.
    """
    kind: RegionKind
    start: int
    end_offset: int
    handler: int | None = None
    continue_offset: int | None = None
    flags: RegionFlags = RegionFlags.NONE
    stack_depth: int = 0
    def absorbs(self, transfer: RegionFlags) -> bool:
        return bool(self.flags & transfer)
    def describe(self) -> str:
        text = f"{self.kind.name.lower()}@{self.start}->{self.end_offset} depth={self.stack_depth}"
        if self.handler is not None:
            text += f" handler={self.handler}"
        return text
def current_handler(state: InterpreterState) -> int | None:
    """Offset an exception raised in this state would transfer to."""
    return state.blocks[-1].handler if state.blocks else None
def push_block(state: InterpreterState, block: BlockInfo) -> None:
    state.blocks = state.blocks + (block,)
def pop_block(
    state: InterpreterState, expected: RegionKind | None = None, offset: int | None = None
) -> BlockInfo:
    """Pop the innermost region.
    Raises:
        BlockStackUnderflowError: If no region is active.
        InternalConsistencyError: If the innermost region is not of the expected kind.
    """
    if not state.blocks:
        raise BlockStackUnderflowError("Block stack underflow", offset)
    block = state.blocks[-1]
    if expected is not None and block.kind is not expected:
        raise InternalConsistencyError(
            f"Expected {expected.name} region, found {block.kind.name}", offset
        )
    state.blocks = state.blocks[:-1]
    return block
def truncate_stack(state: InterpreterState, depth: int) -> None:
    """Drop values above ``depth``. Dropped values are released, so they escape."""
    while len(state.stack) > depth:
        state.stack.pop().escapes()
def unwind(
    state: InterpreterState, transfer: RegionFlags, offset: int | None = None
) -> BlockInfo | None:
    """Pop regions until one absorbs ``transfer``.
    Each popped region restores the stack depth it recorded. The absorbing
    region stays on the block stack and is returned; None means the transfer
    left the function.
    """
    while state.blocks:
        block = state.blocks[-1]
        if block.absorbs(transfer):
            return block
        pop_block(state, offset=offset)
        truncate_stack(state, block.stack_depth)
    return None
def handler_entry(state: InterpreterState, offset: int | None = None) -> tuple[int, BlockInfo] | None:
    """Turn ``state`` into the state seen on entry to the nearest handler.
    The absorbing region is replaced by an EXCEPT_HANDLER region and one
    exception value is pushed. Returns the handler offset and the replaced
    region, or None when the exception leaves the function.
    """
    block = unwind(state, RegionFlags.EXCEPTION, offset)
    if block is None:
        return None
    pop_block(state, offset=offset)
    truncate_stack(state, block.stack_depth)
    push_block(
        state,
        replace(
            block,
            kind=RegionKind.EXCEPT_HANDLER,
            handler=current_handler(state),
            flags=RegionFlags.NONE,
        ),
    )
    state.push(AbstractValueWithSources(Any))
    return block.end_offset, block
__all__ = [
    "RegionKind",
    "RegionFlags",
    "BlockInfo",
    "current_handler",
    "push_block",
    "pop_block",
    "truncate_stack",
    "unwind",
    "handler_entry",
]
