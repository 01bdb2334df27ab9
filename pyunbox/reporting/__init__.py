"""Reporting: text, JSON and DOT output."""
from pyunbox.reporting.formatters import (
    Formatter,
    JSONFormatter,
    TextFormatter,
    format_result,
    format_states,
)
from pyunbox.reporting.dot import render_dot
__all__ = [
    "Formatter",
    "JSONFormatter",
    "TextFormatter",
    "format_result",
    "format_states",
    "render_dot",
]
