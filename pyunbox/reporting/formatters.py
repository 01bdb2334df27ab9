"""Output formatters for PyUnbox results."""
from __future__ import annotations
import json
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any
if TYPE_CHECKING:
    from pyunbox.api import AnalysisResult
    from pyunbox.execution.interpreter import AbstractInterpreter
class Formatter(ABC):
    """Base class for output formatters."""
    name: str = "base"
    extension: str = ".txt"
    @abstractmethod
    def format(self, result: AnalysisResult) -> str:
        """Format the analysis result."""
    def save(self, result: AnalysisResult, filepath: str) -> None:
        """Save formatted result to file."""
        content = self.format(result)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
class TextFormatter(Formatter):
    """Plain text report: summary, escape decisions and optionally every state."""
    name = "text"
    extension = ".txt"
    def __init__(self, verbose: bool = False):
        self.verbose = verbose
    def format(self, result: AnalysisResult) -> str:
        lines = [result.format_summary(), ""]
        graph = result.graph
        escaped = graph.escaped_instructions()
        if escaped:
            lines.append(f"Unboxed instructions: {len(escaped)}")
            for index in escaped:
                node = graph.instructions[index]
                lines.append(f"  {index:>4} {node.opname} {node.oparg}")
        else:
            lines.append("Every value stays boxed.")
        conversions = [edge for edge in graph.edges if edge.escaped.converts]
        if conversions:
            lines.append("")
            lines.append("Conversions:")
            for edge in conversions:
                lines.append(
                    f"  {edge.producer:>4} -> {edge.consumer:<4} {edge.escaped.value:<6} "
                    f"{edge.value.describe()} [{edge.label}]"
                )
        if self.verbose:
            lines.append("")
            lines.append(format_states(result.interpreter))
        return "\n".join(lines)
class JSONFormatter(Formatter):
    """JSON formatter for machine-readable output."""
    name = "json"
    extension = ".json"
    def __init__(self, indent: int = 2):
        self.indent = indent
    def format(self, result: AnalysisResult) -> str:
        data = result.to_dict()
        data["edges"] = [self._format_edge(edge) for edge in result.graph.edges]
        return json.dumps(data, indent=self.indent, default=str)
    def _format_edge(self, edge: Any) -> dict[str, Any]:
        return {
            "producer": edge.producer,
            "consumer": edge.consumer,
            "position": edge.position,
            "kind": edge.kind.name,
            "value": edge.value.describe(),
            "label": edge.label,
            "escaped": edge.escaped.value,
        }
def format_states(interp: AbstractInterpreter) -> str:
    """List the start state of every instruction, unreachable ones marked."""
    code = interp.code
    lines = [f"=== {code.name} ==="]
    for instr in code.instructions():
        if not interp.has_info(instr.offset):
            lines.append(f"{instr}  (unreachable)")
            continue
        state = interp.start_states[instr.offset]
        lines.append(str(instr))
        stack = ", ".join(slot.describe() for slot in state.stack)
        lines.append(f"    stack: [{stack}]")
        for index, info in enumerate(state.locals):
            if not info.is_unassigned:
                lines.append(f"    {code.local_name(index)}: {info.describe()}")
        if state.blocks:
            blocks = ", ".join(block.describe() for block in state.blocks)
            lines.append(f"    blocks: {blocks}")
    lines.append(f"returns: {interp.return_value.describe()}")
    return "\n".join(lines)
def format_result(
    result: AnalysisResult,
    format_type: str = "text",
    **kwargs,
) -> str:
    """
    Format an analysis result.
    Args:
        result: The analysis result to format
        format_type: One of "text", "json", "dot"
        **kwargs: Additional formatter options
    Returns:
        Formatted string
    """
    if format_type.lower() == "dot":
        kwargs.setdefault("name", result.interpreter.config.output.graph_name)
        return result.graph.to_dot(**kwargs)
    formatters = {
        "text": TextFormatter,
        "json": JSONFormatter,
    }
    formatter_class = formatters.get(format_type.lower(), TextFormatter)
    formatter = formatter_class(**kwargs)
    return formatter.format(result)
__all__ = ["Formatter", "TextFormatter", "JSONFormatter", "format_states", "format_result"]
