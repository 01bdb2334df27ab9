"""Tests for the producer/consumer graph and the escape passes."""

import pytest
from hypothesis import given, settings

from pyunbox.analysis.instruction_graph import InstructionGraph
from pyunbox.analysis.unboxing import EdgeEscape, classify_edge, supports_escaping, supports_unboxing
from pyunbox.bytecode.assembler import Assembler, Label
from pyunbox.bytecode.opcodes import opmap, stack_effect
from pyunbox.config import EscapeConfig, UnboxConfig
from pyunbox.core.values import AbstractValueKind
from pyunbox.execution.interpreter import AbstractInterpreter
from pyunbox.testing.strategies import straight_line_programs

K = AbstractValueKind


def graph_of(code, logger=None, config=None, local_types=None, **kwargs):
    interp = AbstractInterpreter(code, config, logger)
    for index, kind in (local_types or {}).items():
        interp.set_local_type(index, kind)
    assert interp.interpret(), interp.error
    if kwargs:
        return InstructionGraph(code, interp.start_states, logger=logger, **kwargs)
    return interp.instruction_graph()


def square():
    asm = Assembler("square", argcount=1, varnames=("x",))
    asm.emit("LOAD_FAST", "x").emit("LOAD_FAST", "x").emit("BINARY_MULTIPLY").emit("RETURN_VALUE")
    return asm.assemble()


class TestUnboxingRules:
    @pytest.mark.parametrize(
        "producer, consumer, expected",
        [
            (False, False, EdgeEscape.NO_ESCAPE),
            (False, True, EdgeEscape.UNBOX),
            (True, False, EdgeEscape.BOX),
            (True, True, EdgeEscape.UNBOXED),
        ],
    )
    def test_classify_edge(self, producer, consumer, expected):
        assert classify_edge(producer, consumer) is expected

    def test_conversions(self):
        assert EdgeEscape.UNBOX.converts
        assert EdgeEscape.BOX.converts
        assert not EdgeEscape.UNBOXED.converts
        assert not EdgeEscape.NO_ESCAPE.converts

    def test_supported_opcodes(self):
        assert supports_unboxing(opmap["BINARY_ADD"])
        assert supports_unboxing(opmap["LOAD_CONST"])
        assert not supports_unboxing(opmap["RETURN_VALUE"])
        assert not supports_unboxing(opmap["CALL_FUNCTION"])

    def test_supported_kinds(self):
        assert supports_escaping(K.FLOAT)
        assert not supports_escaping(K.BIG_INTEGER)
        assert not supports_escaping(K.FLOAT, kinds=())


class TestEdges:
    def test_constant_add_edges(self, constant_add, logger):
        graph = graph_of(constant_add, logger)
        edges = graph.get_edges(4)
        assert [edge.position for edge in edges] == [0, 1]
        assert [edge.producer for edge in edges] == [2, 0]
        assert all(edge.kind is K.INTEGER for edge in edges)
        assert edges[0].label == "Const 1 @ 2"
        (out,) = graph.get_edges_from(4)
        assert out.consumer == 6
        assert out.position == 0

    def test_instructions_without_edges(self, constant_add, logger):
        graph = graph_of(constant_add, logger)
        assert graph.get_edges(0) == []
        assert graph.get_edges_from(6) == []
        assert len(graph) == 4

    def test_duplicated_value_has_one_edge_per_slot(self, logger):
        asm = Assembler("double")
        asm.load_const(1).emit("DUP_TOP").emit("BINARY_ADD").emit("RETURN_VALUE")
        graph = graph_of(asm.assemble(), logger)
        assert [(edge.producer, edge.position) for edge in graph.get_edges(4)] == [(0, 0), (0, 1)]
        assert [(edge.consumer, edge.position) for edge in graph.get_edges_from(0)] == [(4, 0), (4, 1)]
        assert graph.get_edges(2) == []

    def test_duplicated_value_with_two_consumers(self, logger):
        asm = Assembler("discard")
        asm.load_const(1).emit("DUP_TOP").emit("POP_TOP").emit("POP_TOP")
        asm.load_const(None).emit("RETURN_VALUE")
        graph = graph_of(asm.assemble(), logger)
        assert sorted(edge.consumer for edge in graph.edges if edge.producer == 0) == [4, 6]
        (edge,) = graph.get_edges_from(0)
        assert (edge.consumer, edge.position) == (6, 0)

    def test_conditionally_popped_value(self, logger):
        asm = Assembler("either")
        end = Label("end")
        asm.load_const(1).emit("JUMP_IF_TRUE_OR_POP", end).load_const(2)
        asm.mark(end).emit("RETURN_VALUE")
        graph = graph_of(asm.assemble(), logger)
        assert sorted(edge.consumer for edge in graph.edges if edge.producer == 0) == [2, 6]
        assert [edge.position for edge in graph.get_edges_from(0)] == [0]

    @settings(max_examples=50, deadline=None)
    @given(straight_line_programs())
    def test_positions_strictly_increase(self, code):
        interp = AbstractInterpreter(code)
        assert interp.interpret()
        graph = interp.instruction_graph()
        for index in graph.instructions:
            for edges in (graph.get_edges(index), graph.get_edges_from(index)):
                positions = [edge.position for edge in edges]
                assert positions == sorted(set(positions))

    def test_unreachable_instructions_are_nodes_without_edges(self, logger):
        asm = Assembler("dead")
        asm.load_const(1).emit("RETURN_VALUE").load_const(2).emit("RETURN_VALUE")
        graph = graph_of(asm.assemble(), logger)
        assert 4 in graph.instructions
        assert graph.get_edges(6) == []
        assert not graph.is_escaped(4)


class TestEscape:
    def test_constant_add(self, constant_add, logger):
        graph = graph_of(constant_add, logger)
        assert graph.escaped_instructions() == [0, 2, 4]
        assert {edge.escaped for edge in graph.get_edges(4)} == {EdgeEscape.UNBOXED}
        assert graph.get_edges_from(4)[0].escaped is EdgeEscape.BOX

    def test_typed_parameter(self, logger):
        graph = graph_of(square(), logger, local_types={0: K.FLOAT})
        assert graph.escaped_instructions() == [4]
        assert [edge.escaped for edge in graph.get_edges(4)] == [EdgeEscape.UNBOX, EdgeEscape.UNBOX]
        assert graph.get_edges_from(4)[0].escaped is EdgeEscape.BOX

    def test_untyped_parameter(self, logger):
        graph = graph_of(square(), logger)
        assert graph.escaped_instructions() == []
        assert all(edge.escaped is EdgeEscape.NO_ESCAPE for edge in graph.edges)

    def test_disabled(self, constant_add, logger):
        config = UnboxConfig(escape=EscapeConfig(enabled=False))
        graph = graph_of(constant_add, logger, config)
        assert graph.escaped_instructions() == []

    def test_restricted_kinds(self, constant_add, logger):
        graph = graph_of(constant_add, logger, unbox_kinds={K.FLOAT})
        assert graph.escaped_instructions() == []

    def test_locals_stay_boxed(self, logger):
        asm = Assembler("local", varnames=("a",))
        asm.load_const(1).emit("STORE_FAST", "a").emit("LOAD_FAST", "a").emit("RETURN_VALUE")
        graph = graph_of(asm.assemble(), logger)
        assert not graph.is_escaped(2)
        assert not graph.is_escaped(4)
        assert graph.get_unboxed_fast_locals() == {}

    def test_duplicated_producer_is_reverted(self, logger):
        asm = Assembler("double")
        asm.load_const(1).emit("DUP_TOP").emit("BINARY_ADD").emit("RETURN_VALUE")
        graph = graph_of(asm.assemble(), logger)
        assert not graph.is_escaped(0)
        assert graph.is_escaped(4)
        assert [edge.escaped for edge in graph.get_edges(4)] == [EdgeEscape.UNBOX, EdgeEscape.UNBOX]
        (entry,) = logger.get_entries(category="escape", offset=0)
        assert entry.message.startswith("LOAD_CONST at 0")
        assert entry.function == "double"

    def test_mismatched_stack_effect_is_reverted(self, logger):
        asm = Assembler("pick", argcount=1, varnames=("x",))
        other, join = Label("other"), Label("join")
        asm.emit("LOAD_FAST", "x").emit("POP_JUMP_IF_FALSE", other)
        asm.load_const(1).emit("JUMP_FORWARD", join)
        asm.mark(other).load_const(2)
        asm.mark(join).load_const(3).emit("BINARY_ADD").emit("RETURN_VALUE")
        graph = graph_of(asm.assemble(), logger)
        assert len(graph.get_edges(12)) == 1
        assert not graph.is_escaped(12)
        (entry,) = logger.get_entries(category="escape", offset=12)
        assert entry.message == "BINARY_ADD at 12 stays boxed: edges do not match the stack effect"
        assert entry.function == "pick"


class TestDeoptimize:
    def test_lone_consumer_of_boxed_producer(self, constant_add, logger):
        graph = graph_of(constant_add, logger, run_passes=False)
        graph.instructions[6].escape = True
        graph.deoptimize_instructions()
        assert not graph.is_escaped(6)

    def test_lone_producer_for_boxed_consumer(self, constant_add, logger):
        graph = graph_of(constant_add, logger, run_passes=False)
        graph.instructions[0].escape = True
        graph.deoptimize_instructions()
        assert not graph.is_escaped(0)
        assert "only consumer 4 is boxed" in logger.get_entries(category="escape")[-1].message

    def test_supported_chain_is_kept(self, constant_add, logger):
        graph = graph_of(constant_add, logger, run_passes=False)
        for index in (0, 2, 4):
            graph.instructions[index].escape = True
        graph.deoptimize_instructions()
        assert graph.escaped_instructions() == [0, 2, 4]

    def test_edges_default_to_no_escape(self, constant_add, logger):
        graph = graph_of(constant_add, logger, run_passes=False)
        assert all(edge.escaped is EdgeEscape.NO_ESCAPE for edge in graph.edges)

    @settings(max_examples=50, deadline=None)
    @given(straight_line_programs())
    def test_escaped_instructions_are_consistent(self, code):
        interp = AbstractInterpreter(code)
        assert interp.interpret()
        graph = interp.instruction_graph()
        for index in graph.escaped_instructions():
            node = graph.instructions[index]
            edges_in, edges_out = graph.get_edges(index), graph.get_edges_from(index)
            assert stack_effect(node.opcode, node.oparg) == len(edges_out) - len(edges_in)
            assert node.opname not in ("LOAD_FAST", "STORE_FAST")
            assert all(edge.kind in graph.unbox_kinds for edge in edges_in + edges_out)
        for edge in graph.edges:
            assert edge.escaped is classify_edge(graph.is_escaped(edge.producer), graph.is_escaped(edge.consumer))


class TestDot:
    def test_constant_add(self, constant_add, logger):
        dot = graph_of(constant_add, logger).to_dot()
        assert dot.startswith("digraph G {")
        assert dot.endswith("}")
        assert 'OP4 [label="BINARY_ADD (0)" color=blue];' in dot
        assert "color=purple" in dot
        assert "color=green" in dot
        assert 'label="Const 0 @ 0 (integer(1)) UN1"' in dot

    def test_jumps_are_drawn(self, logger):
        asm = Assembler("branch", argcount=1, varnames=("x",))
        other = Label("other")
        asm.emit("LOAD_FAST", "x").emit("POP_JUMP_IF_FALSE", other)
        asm.load_const(1).emit("RETURN_VALUE")
        asm.mark(other).load_const(2).emit("RETURN_VALUE")
        dot = graph_of(asm.assemble(), logger).to_dot(name="branch")
        assert dot.startswith("digraph branch {")
        assert 'OP2 -> OP8 [label="Jump" color=yellow];' in dot

    def test_repr(self, constant_add, logger):
        assert repr(graph_of(constant_add, logger)) == "InstructionGraph(constant_add, 4 instructions, 3 edges)"
