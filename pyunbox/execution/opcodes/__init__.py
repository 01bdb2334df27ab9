"""Opcode handlers module.
This module imports all opcode handlers to ensure they are registered
with the global dispatcher when the module is loaded.
"""
from pyunbox.execution.opcodes import (
    arithmetic,
    collections,
    compare,
    control,
    exceptions,
    functions,
    locals,
    stack,
)
__all__ = [
    "arithmetic",
    "collections",
    "compare",
    "control",
    "exceptions",
    "functions",
    "locals",
    "stack",
]
