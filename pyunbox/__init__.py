"""PyUnbox: abstract interpretation and escape analysis for stack bytecode.

PyUnbox infers the kind of every stack slot and local of a function by
running an abstract interpreter to a fixed point, then decides which
instructions may operate on unboxed machine values and where values have
to be boxed or unboxed on the way.

Example:
    >>> from pyunbox import Assembler, analyze
    >>> asm = Assembler("add")
    >>> code = asm.load_const(1).load_const(2).emit("BINARY_ADD").emit("RETURN_VALUE").assemble()
    >>> result = analyze(code)
    >>> result.return_value.describe()
    'integer(3)'
"""

from pyunbox.analysis.instruction_graph import Edge, InstructionGraph, InstructionNode
from pyunbox.analysis.unboxing import EdgeEscape
from pyunbox.api import AnalysisResult, analyze
from pyunbox.bytecode.assembler import Assembler, Label
from pyunbox.bytecode.code import CodeUnit, Instruction
from pyunbox.core.state import AbstractLocalInfo, InterpreterState
from pyunbox.core.values import (
    AbstractValue,
    AbstractValueKind,
    Any,
    ConstantValue,
    SizedValue,
    Undefined,
)
from pyunbox.errors import AnalysisError, AnalysisLimitExceeded, MalformedBytecodeError
from pyunbox.execution.interpreter import AbstractInterpreter
from pyunbox.reporting.formatters import format_result

__version__ = "0.1.0"
from pyunbox.config import UnboxConfig, load_config
from pyunbox.logging import LogLevel, configure_logging, get_logger

__all__ = [
    "analyze",
    "AnalysisResult",
    "AbstractInterpreter",
    "InstructionGraph",
    "InstructionNode",
    "Edge",
    "EdgeEscape",
    "Assembler",
    "Label",
    "CodeUnit",
    "Instruction",
    "AbstractValue",
    "AbstractValueKind",
    "ConstantValue",
    "SizedValue",
    "Any",
    "Undefined",
    "AbstractLocalInfo",
    "InterpreterState",
    "AnalysisError",
    "AnalysisLimitExceeded",
    "MalformedBytecodeError",
    "UnboxConfig",
    "load_config",
    "configure_logging",
    "get_logger",
    "LogLevel",
    "format_result",
]
