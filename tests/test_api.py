"""Tests for the public analysis API and the report formats."""

import json

import pyunbox
from pyunbox import analyze
from pyunbox.bytecode.assembler import Assembler
from pyunbox.core.values import AbstractValueKind
from pyunbox.reporting.formatters import JSONFormatter, TextFormatter

K = AbstractValueKind


def square():
    asm = Assembler("square", argcount=1, varnames=("x",))
    asm.emit("LOAD_FAST", "x").emit("LOAD_FAST", "x").emit("BINARY_MULTIPLY").emit("RETURN_VALUE")
    return asm.assemble()


class TestAnalyze:
    def test_result(self, constant_add, logger):
        result = analyze(constant_add, logger=logger)
        assert result.function_name == "constant_add"
        assert result.return_value.describe() == "integer(3)"
        assert result.iterations == 4
        assert result.is_unboxed(4)
        assert not result.should_box(0)
        assert logger.get_count("functions_analyzed") == 1

    def test_to_dict(self, constant_add, logger):
        data = analyze(constant_add, logger=logger).to_dict()
        assert data["reachable"] == [0, 2, 4, 6]
        assert data["unboxed_instructions"] == [0, 2, 4]
        assert data["return_value"] == "integer(3)"

    def test_local_types(self, logger):
        result = analyze(square(), local_types={0: K.FLOAT}, logger=logger)
        assert result.return_value.describe() == "float"
        assert result.is_unboxed(4)

    def test_failure_returns_none(self, logger):
        asm = Assembler("broken")
        asm.emit("POP_TOP").load_const(None).emit("RETURN_VALUE")
        assert analyze(asm.assemble(), logger=logger) is None
        assert logger.get_count("functions_analyzed") == 0

    def test_uses_global_logger_by_default(self, constant_add):
        assert analyze(constant_add) is not None
        assert pyunbox.get_logger().get_count("functions_analyzed") == 1


class TestFormats:
    def test_summary(self, constant_add, logger):
        summary = analyze(constant_add, logger=logger).format_summary()
        assert summary.startswith("=== PyUnbox Analysis Results ===")
        assert "Function: constant_add" in summary
        assert "Reachable instructions: 4/4" in summary

    def test_text(self, constant_add, logger):
        text = analyze(constant_add, logger=logger).format("text")
        assert "Unboxed instructions: 3" in text
        assert "Box" in text
        assert "=== constant_add ===" not in text

    def test_verbose_text_lists_states(self, constant_add, logger):
        text = TextFormatter(verbose=True).format(analyze(constant_add, logger=logger))
        assert "=== constant_add ===" in text

    def test_nothing_unboxed(self, logger):
        text = analyze(square(), logger=logger).format()
        assert "Every value stays boxed." in text

    def test_json(self, constant_add, logger):
        data = json.loads(analyze(constant_add, logger=logger).format("json"))
        assert data["function_name"] == "constant_add"
        edges = {(edge["producer"], edge["consumer"]): edge for edge in data["edges"]}
        assert edges[(0, 4)]["escaped"] == "Unboxed"
        assert edges[(4, 6)]["escaped"] == "Box"
        assert edges[(4, 6)]["kind"] == "INTEGER"

    def test_dot(self, constant_add, logger):
        dot = analyze(constant_add, logger=logger).format("dot", name="add")
        assert dot.startswith("digraph add {")

    def test_save(self, constant_add, logger, tmp_path):
        path = tmp_path / "report.json"
        JSONFormatter(indent=None).save(analyze(constant_add, logger=logger), str(path))
        assert json.loads(path.read_text(encoding="utf-8"))["function_name"] == "constant_add"
