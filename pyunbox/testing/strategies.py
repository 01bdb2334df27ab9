"""Property-based testing infrastructure using Hypothesis.
Provides strategies for generating abstract values and well-formed
programs, and a state machine exercising the copy-on-write interpreter
state.
"""

from __future__ import annotations

from hypothesis import strategies as st
from hypothesis.stateful import RuleBasedStateMachine, initialize, invariant, precondition, rule

from pyunbox.bytecode.assembler import Assembler, Label
from pyunbox.bytecode.code import CodeUnit
from pyunbox.core.sources import AbstractValueWithSources
from pyunbox.core.state import AbstractLocalInfo, InterpreterState
from pyunbox.core.values import (
    AbstractValue,
    AbstractValueKind,
    SizedValue,
    to_abstract,
    value_of_kind,
)

ARITHMETIC_OPS = [
    "BINARY_ADD",
    "BINARY_SUBTRACT",
    "BINARY_MULTIPLY",
    "BINARY_AND",
    "BINARY_OR",
    "BINARY_XOR",
    "INPLACE_ADD",
    "INPLACE_SUBTRACT",
]


def abstract_kinds() -> st.SearchStrategy:
    """Strategy for any lattice kind."""
    return st.sampled_from(list(AbstractValueKind))


def constants() -> st.SearchStrategy:
    """Strategy for constants a code unit can carry."""
    return st.one_of(
        st.none(),
        st.booleans(),
        st.integers(min_value=-(2**70), max_value=2**70),
        st.floats(allow_nan=False),
        st.text(max_size=5),
        st.binary(max_size=5),
        st.tuples(st.integers(), st.integers()),
    )


def abstract_values() -> st.SearchStrategy:
    """Strategy for abstract values: plain kinds and their refinements."""
    return st.one_of(
        abstract_kinds().map(value_of_kind),
        constants().map(to_abstract),
        st.integers(min_value=0, max_value=4).map(
            lambda n: SizedValue(AbstractValueKind.TUPLE, n)
        ),
    )


def small_constants() -> st.SearchStrategy:
    """Constants that keep arithmetic in machine range."""
    return st.one_of(
        st.integers(min_value=-1000, max_value=1000),
        st.booleans(),
    )


@st.composite
def straight_line_programs(draw, max_length: int = 12) -> CodeUnit:
    """Strategy for branch-free programs that keep the stack balanced.

    Constants are pushed and combined with arithmetic; stores and loads go
    through up to two locals. The program returns its top of stack.
    """
    asm = Assembler("straight", varnames=("a", "b"))
    asm.load_const(draw(small_constants()))
    depth = 1
    assigned: set[str] = set()
    for _ in range(draw(st.integers(min_value=0, max_value=max_length))):
        choices = ["push"]
        if depth >= 2:
            choices.append("binary")
        choices.extend(["store", "dup"])
        if assigned:
            choices.append("load")
        action = draw(st.sampled_from(choices))
        if action == "push":
            asm.load_const(draw(small_constants()))
            depth += 1
        elif action == "binary":
            asm.emit(draw(st.sampled_from(ARITHMETIC_OPS)))
            depth -= 1
        elif action == "dup":
            asm.emit("DUP_TOP")
            depth += 1
        elif action == "store":
            name = draw(st.sampled_from(["a", "b"]))
            asm.emit("STORE_FAST", name)
            assigned.add(name)
            depth -= 1
        else:
            asm.emit("LOAD_FAST", draw(st.sampled_from(sorted(assigned))))
            depth += 1
        if depth == 0:
            asm.load_const(draw(small_constants()))
            depth = 1
    while depth > 1:
        asm.emit("POP_TOP")
        depth -= 1
    asm.emit("RETURN_VALUE")
    return asm.assemble()


@st.composite
def branching_programs(draw) -> CodeUnit:
    """Strategy for an if/else on the parameter, optionally followed by a counting loop.

    Both arms assign ``y``; the loop adds one to ``y`` up to a bound.
    """
    asm = Assembler("branching", argcount=1, varnames=("x", "y"))
    orelse = Label("orelse")
    join = Label("join")
    asm.emit("LOAD_FAST", "x").emit("POP_JUMP_IF_FALSE", orelse)
    asm.load_const(draw(small_constants())).emit("STORE_FAST", "y")
    asm.emit("JUMP_FORWARD", join)
    asm.mark(orelse)
    asm.load_const(draw(small_constants())).emit("STORE_FAST", "y")
    asm.mark(join)
    if draw(st.booleans()):
        head = Label("head")
        done = Label("done")
        asm.mark(head)
        asm.emit("LOAD_FAST", "y").load_const(draw(st.integers(0, 100)))
        asm.emit("COMPARE_OP", 0).emit("POP_JUMP_IF_FALSE", done)
        asm.emit("LOAD_FAST", "y").load_const(1).emit("INPLACE_ADD").emit("STORE_FAST", "y")
        asm.emit("JUMP_ABSOLUTE", head)
        asm.mark(done)
    asm.emit("LOAD_FAST", "y").emit("RETURN_VALUE")
    return asm.assemble()


class CowStateMachine(RuleBasedStateMachine):
    """State machine testing copy-on-write isolation of interpreter states.

    Every state is paired with a plain-list model of its locals and stack;
    writes through one state must never show up in another.
    """

    NLOCALS = 3

    def __init__(self):
        super().__init__()
        self.states: list[InterpreterState] = []
        self.models: list[tuple[list[AbstractLocalInfo], list[AbstractValue]]] = []

    @initialize()
    def start(self):
        state = InterpreterState.initial(self.NLOCALS)
        self.states.append(state)
        self.models.append((list(state.locals), []))

    @precondition(lambda self: len(self.states) < 8)
    @rule(data=st.data())
    def fork(self, data):
        index = data.draw(st.integers(0, len(self.states) - 1))
        self.states.append(self.states[index].copy())
        locals_model, stack_model = self.models[index]
        self.models.append((list(locals_model), list(stack_model)))

    @rule(data=st.data(), value=abstract_values())
    def write_local(self, data, value):
        if value.kind is AbstractValueKind.UNDEFINED:
            return
        index = data.draw(st.integers(0, len(self.states) - 1))
        slot = data.draw(st.integers(0, self.NLOCALS - 1))
        info = AbstractLocalInfo.of(value)
        self.states[index].replace_local(slot, info)
        self.models[index][0][slot] = info

    @rule(data=st.data(), value=abstract_values())
    def push(self, data, value):
        index = data.draw(st.integers(0, len(self.states) - 1))
        self.states[index].push(value)
        self.models[index][1].append(value)

    @rule(data=st.data())
    def pop(self, data):
        index = data.draw(st.integers(0, len(self.states) - 1))
        if not self.models[index][1]:
            return
        popped = self.states[index].pop()
        assert popped.value == self.models[index][1].pop()

    @invariant()
    def states_match_models(self):
        for state, (locals_model, stack_model) in zip(self.states, self.models):
            assert list(state.locals) == locals_model
            assert [slot.value for slot in state.stack] == stack_model

    @invariant()
    def stack_slots_carry_values(self):
        for state in self.states:
            assert all(isinstance(slot, AbstractValueWithSources) for slot in state.stack)


TestCowState = CowStateMachine.TestCase


__all__ = [
    "ARITHMETIC_OPS",
    "abstract_kinds",
    "abstract_values",
    "constants",
    "small_constants",
    "straight_line_programs",
    "branching_programs",
    "CowStateMachine",
]
