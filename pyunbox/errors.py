"""Error types raised while analyzing a code unit.
Every failure inside the abstract interpreter derives from AnalysisError so the
driver can turn it into a single "analysis failed, keep everything boxed" outcome.
"""
from __future__ import annotations
from enum import Enum, auto
from typing import Any
class AnalysisError(Exception):
    """Base class for all analysis failures."""
    def __init__(self, message: str, offset: int | None = None):
        self.offset = offset
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
class InternalConsistencyError(AnalysisError):
    """The analysis reached a state that verified bytecode can never produce."""
class StackUnderflowError(InternalConsistencyError):
    """A value was popped from an empty operand stack."""
class StackDepthMismatchError(InternalConsistencyError):
    """Two control-flow paths reach one instruction with different stack depths."""
    def __init__(self, offset: int | None, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Stack depth mismatch: {expected} != {actual}", offset)
class BlockStackUnderflowError(InternalConsistencyError):
    """A region was exited while no matching region was active."""
class BlockStackMismatchError(InternalConsistencyError):
    """Two control-flow paths reach one instruction inside different regions."""
class InvalidLocalStateError(InternalConsistencyError):
    """A local was described as definitely assigned to an undefined value."""
class MalformedBytecodeError(AnalysisError):
    """The code unit cannot be decoded or has an invalid jump target."""
class LimitType(Enum):
    """Budgets the driver enforces."""
    ITERATIONS = auto()
    STACK_DEPTH = auto()
class AnalysisLimitExceeded(AnalysisError):
    """Exception raised when an analysis budget is exhausted."""
    def __init__(self, limit_type: LimitType, current: Any, limit: Any):
        self.limit_type = limit_type
        self.current = current
        self.limit = limit
        super().__init__(f"{limit_type.name} limit exceeded: {current} >= {limit}")
__all__ = [
    "AnalysisError",
    "InternalConsistencyError",
    "StackUnderflowError",
    "StackDepthMismatchError",
    "BlockStackUnderflowError",
    "BlockStackMismatchError",
    "InvalidLocalStateError",
    "MalformedBytecodeError",
    "LimitType",
    "AnalysisLimitExceeded",
]
