"""Public API for PyUnbox."""
from __future__ import annotations
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from pyunbox.analysis.instruction_graph import InstructionGraph
from pyunbox.bytecode.code import CodeUnit
from pyunbox.config import UnboxConfig
from pyunbox.core.values import AbstractValue, AbstractValueKind
from pyunbox.execution.interpreter import AbstractInterpreter
from pyunbox.logging import UnboxLogger, get_logger
from pyunbox.reporting.formatters import format_result
@dataclass
class AnalysisResult:
    """Result of analyzing one code unit."""
    interpreter: AbstractInterpreter
    graph: InstructionGraph
    total_time_seconds: float = 0.0
    @property
    def function_name(self) -> str:
        return self.interpreter.code.name
    @property
    def return_value(self) -> AbstractValue:
        return self.interpreter.return_value
    @property
    def iterations(self) -> int:
        return self.interpreter.iterations
    def should_box(self, offset: int) -> bool:
        """Whether the value produced at ``offset`` must be boxed."""
        return self.interpreter.should_box(offset)
    def is_unboxed(self, offset: int) -> bool:
        """Whether the instruction at ``offset`` runs on unboxed values."""
        return self.graph.is_escaped(offset)
    def format_summary(self) -> str:
        """Format a summary of results."""
        reachable = len(self.interpreter.start_states)
        lines = [
            "=== PyUnbox Analysis Results ===",
            f"Function: {self.function_name}",
            f"Reachable instructions: {reachable}/{len(self.graph)}",
            f"Iterations: {self.iterations}",
            f"Returns: {self.return_value.describe()}",
            f"Edges: {len(self.graph.edges)}",
            f"Total time: {self.total_time_seconds:.3f}s",
        ]
        return "\n".join(lines)
    def format(self, format_type: str = "text", **kwargs) -> str:
        return format_result(self, format_type, **kwargs)
    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "function_name": self.function_name,
            "iterations": self.iterations,
            "reachable": sorted(self.interpreter.start_states),
            "return_value": self.return_value.describe(),
            "unboxed_instructions": self.graph.escaped_instructions(),
            "total_time_seconds": self.total_time_seconds,
        }
def analyze(
    code: CodeUnit,
    config: UnboxConfig | None = None,
    local_types: Mapping[int, AbstractValueKind | AbstractValue] | None = None,
    *,
    logger: UnboxLogger | None = None,
) -> AnalysisResult | None:
    """
    Run the abstract interpreter and the escape analysis on a code unit.
    Args:
        code: The code unit to analyze
        config: Analysis configuration (defaults apply when omitted)
        local_types: Known kinds of parameters, by local index
        logger: Logger to report to (the global logger when omitted)
    Returns:
        AnalysisResult, or None when the analysis failed; the failure has
        then been logged and the caller should box every value.
    Example:
        asm = Assembler("add")
        asm.load_const(1).load_const(2).emit("BINARY_ADD").emit("RETURN_VALUE")
        result = analyze(asm.assemble())
        result.return_value.describe()  # 'integer(3)'
    """
    logger = logger or get_logger()
    start = time.perf_counter()
    interp = AbstractInterpreter(code, config, logger)
    for index, kind in (local_types or {}).items():
        interp.set_local_type(index, kind)
    if not interp.interpret():
        return None
    graph = interp.instruction_graph()
    logger.count("functions_analyzed")
    return AnalysisResult(interp, graph, time.perf_counter() - start)
__all__ = ["AnalysisResult", "analyze"]
