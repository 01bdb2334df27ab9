"""Abstract interpreter driving the fixed-point analysis of one code unit."""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping

import pyunbox.execution.opcodes  # noqa: F401  (registers the handlers)
from pyunbox.analysis.instruction_graph import InstructionGraph
from pyunbox.bytecode.code import CodeUnit, Instruction
from pyunbox.bytecode.opcodes import opmap, setup_opcodes
from pyunbox.config import UnboxConfig
from pyunbox.core.blocks import current_handler, handler_entry
from pyunbox.core.sources import AbstractValueWithSources, SourceArena
from pyunbox.core.state import AbstractLocalInfo, InterpreterState
from pyunbox.core.values import (
    AbstractValue,
    AbstractValueKind,
    Any,
    Undefined,
    value_of_kind,
)
from pyunbox.errors import (
    AnalysisError,
    AnalysisLimitExceeded,
    LimitType,
    MalformedBytecodeError,
)
from pyunbox.execution.dispatcher import OpcodeDispatcher
from pyunbox.logging import ABSINT, UnboxLogger, get_logger
from pyunbox.reporting.formatters import format_states


def _opcodes(*names: str) -> frozenset[int]:
    return frozenset(opmap[name] for name in names)


# Instructions that cannot fail part-way, so the code generator need not
# publish the instruction pointer before running them.
SKIP_LASTI_OPCODES = _opcodes(
    "DUP_TOP",
    "SETUP_FINALLY",
    "LOAD_CLOSURE",
    "POP_TOP",
    "NOP",
    "ROT_TWO",
    "ROT_THREE",
    "ROT_FOUR",
    "POP_BLOCK",
    "POP_JUMP_IF_FALSE",
    "POP_JUMP_IF_TRUE",
    "POP_EXCEPT",
    "STORE_FAST",
    "LOAD_FAST",
    "LOAD_CONST",
    "JUMP_FORWARD",
    "JUMP_ABSOLUTE",
    "DUP_TOP_TWO",
    "BUILD_SLICE",
    "BUILD_TUPLE",
    "BUILD_LIST",
    "BUILD_MAP",
    "BUILD_SET",
    "BUILD_CONST_KEY_MAP",
)

# Instructions that never raise on their own. RAISE_VARARGS and RERAISE
# raise explicitly and route to the handler themselves.
NON_RAISING_OPCODES = _opcodes(
    "NOP",
    "POP_TOP",
    "ROT_TWO",
    "ROT_THREE",
    "ROT_FOUR",
    "DUP_TOP",
    "DUP_TOP_TWO",
    "LOAD_CONST",
    "STORE_FAST",
    "LOAD_CLOSURE",
    "JUMP_FORWARD",
    "JUMP_ABSOLUTE",
    "POP_BLOCK",
    "POP_EXCEPT",
    "SETUP_LOOP",
    "SETUP_FINALLY",
    "BREAK_LOOP",
    "CONTINUE_LOOP",
    "BUILD_TUPLE",
    "RETURN_VALUE",
    "RAISE_VARARGS",
    "RERAISE",
    "JUMP_IF_NOT_EXC_MATCH",
)

LOAD_FAST = opmap["LOAD_FAST"]
SETUP_LOOP = opmap["SETUP_LOOP"]
BACK_EDGE_OPCODES = _opcodes("JUMP_ABSOLUTE", "CONTINUE_LOOP")


class AbstractInterpreter(OpcodeDispatcher):
    """Infers the kind and provenance of every stack slot and local.

    The interpreter runs a worklist over instruction offsets, merging the
    state produced by each instruction into the start state of its
    successors until nothing changes. Afterwards the start state of every
    reachable instruction can be queried.

    Example:
        interp = AbstractInterpreter(code)
        if interp.interpret():
            interp.get_stack_info(offset)
            graph = interp.instruction_graph()
    """

    def __init__(
        self,
        code: CodeUnit,
        config: UnboxConfig | None = None,
        logger: UnboxLogger | None = None,
    ):
        super().__init__()
        self.code = code
        self.config = config or UnboxConfig()
        self.logger = logger or get_logger()
        self.arena = SourceArena()
        self._unbox_kinds = self.config.escape.kinds()
        self._local_types: dict[int, AbstractValue] = {}
        self._reset()

    def _reset(self) -> None:
        self.arena.clear()
        self._start_states: dict[int, InterpreterState] = {}
        self._worklist: deque[int] = deque()
        self._scheduled: set[int] = set()
        self._return_value: AbstractValue = Undefined
        self.jump_targets: set[int] = set()
        self.block_ends: dict[int, int] = {}
        self.loop_heads: dict[int, int] = {}
        self.iterations = 0
        self.error: AnalysisError | None = None

    # -- setup -------------------------------------------------------------

    def set_local_type(self, index: int, kind: AbstractValueKind | AbstractValue) -> None:
        """Pre-type a parameter before ``interpret()`` runs."""
        if index >= self.code.total_args:
            raise ValueError(f"Local {index} is not a parameter of {self.code.name}")
        if isinstance(kind, AbstractValueKind):
            kind = value_of_kind(kind)
        self._local_types[index] = kind

    def preprocess(self) -> None:
        """Decode the code unit and record jump targets, region ends and loop heads.

        Raises:
            MalformedBytecodeError: If the code cannot be decoded or a jump
                does not land on the start of an instruction.
        """
        self.set_instructions(self.code.instructions())
        if not self.instructions:
            raise MalformedBytecodeError(f"{self.code.name} has no instructions")
        for instr in self.instructions:
            target = instr.jump_target
            if target is None:
                continue
            if not self.is_instruction_start(target):
                raise MalformedBytecodeError(f"{instr.opname} jumps to invalid offset {target}", instr.offset)
            self.jump_targets.add(target)
            if instr.opcode in setup_opcodes:
                self.block_ends[instr.offset] = target
        for start, end in self.block_ends.items():
            setup = self._by_offset[start]
            if setup.opcode == SETUP_LOOP:
                self.loop_heads[start] = self._loop_head(setup.next_offset, end)

    def _loop_head(self, first: int, end: int) -> int:
        # Target of the outermost back edge; a body without one restarts at its first instruction.
        heads = [
            instr.jump_target
            for instr in self.instructions
            if instr.opcode in BACK_EDGE_OPCODES
            and first <= instr.offset < end
            and first <= instr.jump_target <= instr.offset
        ]
        return min(heads, default=first)

    def initial_state(self) -> InterpreterState:
        """State on function entry: parameters bound, everything else unassigned."""
        code = self.code
        state = InterpreterState.initial(code.nlocals)
        for index in range(code.argcount + code.kwonlyargcount):
            state.replace_local(index, AbstractLocalInfo.of(self._local_types.get(index, Any)))
        for index, kind in (
            (code.varargs_slot, AbstractValueKind.TUPLE),
            (code.varkeywords_slot, AbstractValueKind.DICT),
        ):
            if index is not None:
                value = self._local_types.get(index, value_of_kind(kind))
                state.replace_local(index, AbstractLocalInfo.of(value))
        return state

    # -- driver ------------------------------------------------------------

    def interpret(self) -> bool:
        """Run the analysis to a fixed point.

        Returns:
            True on success. On failure the error is logged, kept in
            ``self.error`` and no results are available; callers should fall
            back to boxing everything.
        """
        self._reset()
        with self.logger.analyzing(self.code.name):
            self.logger.verbose(f"analyzing {len(self.code.code)} bytes", category=ABSINT)
            try:
                with self.logger.timer(f"interpret {self.code.name}", category=ABSINT):
                    self._run()
            except AnalysisError as exc:
                self.logger.warning(f"Analysis of {self.code.name} failed: {exc}", category=ABSINT)
                self._reset()
                self.error = exc
                return False
            self.logger.verbose(
                f"fixed point after {self.iterations} steps, {len(self._start_states)} reachable instructions",
                category=ABSINT,
            )
        return True

    def _run(self) -> None:
        self.preprocess()
        self.update_start_state(0, self.initial_state())
        limits = self.config.interpreter
        tracing = self.logger.tracing
        while self._worklist:
            offset = self._worklist.popleft()
            self._scheduled.discard(offset)
            self.iterations += 1
            if self.iterations > limits.max_iterations:
                raise AnalysisLimitExceeded(LimitType.ITERATIONS, self.iterations, limits.max_iterations)
            instr = self.instruction_at(offset)
            start = self._start_states[offset]
            if start.stack_size() > limits.max_stack_depth:
                raise AnalysisLimitExceeded(LimitType.STACK_DEPTH, start.stack_size(), limits.max_stack_depth)
            if tracing:
                self.logger.trace(f"{instr} depth={start.stack_size()}", category=ABSINT, offset=offset)
            if self._may_raise(instr, start):
                for target, entry in self.raise_from(start.copy(), instr):
                    self.update_start_state(target, entry)
            state = start.copy()
            state.bind_consumer(offset)
            result = self.dispatch(instr, state)
            for target, successor in result.successors:
                self.update_start_state(target, successor)

    def _may_raise(self, instr: Instruction, state: InterpreterState) -> bool:
        if current_handler(state) is None:
            return False
        if instr.opcode == LOAD_FAST:
            return instr.arg < self.code.nlocals and state.get_local(instr.arg).maybe_undefined
        return instr.opcode not in NON_RAISING_OPCODES

    def update_start_state(self, offset: int, state: InterpreterState) -> bool:
        """Merge ``state`` into the start state stored for ``offset``.

        Returns:
            Whether the stored state changed; the instruction is then
            scheduled for (re)processing.
        """
        if not self.is_instruction_start(offset):
            raise MalformedBytecodeError("Control flows to an invalid offset", offset)
        existing = self._start_states.get(offset)
        if existing is None:
            merged = state.copy()
            merged.unbind()
        else:
            merged = existing.merge(state, offset)
            if merged == existing:
                return False
        self._start_states[offset] = merged
        if offset not in self._scheduled:
            self._scheduled.add(offset)
            self._worklist.append(offset)
        return True

    # -- services for the opcode handlers ------------------------------------

    def unboxable(self, value: AbstractValue) -> bool:
        """Whether a value of this kind may stay unboxed."""
        return value.kind in self._unbox_kinds

    def known_truth(self, value: AbstractValue) -> bool | None:
        if not self.config.interpreter.prune_constant_branches:
            return None
        return value.truthiness()

    def push_result(self, state: InterpreterState, instr: Instruction, value: AbstractValue) -> None:
        """Push the value computed by ``instr``."""
        state.push(AbstractValueWithSources(value, self.arena.intermediate_source(instr.offset)))

    def record_return(self, value: AbstractValue) -> None:
        self._return_value = self._return_value.merge(value)

    def raise_from(self, state: InterpreterState, instr: Instruction) -> list[tuple[int, InterpreterState]]:
        """Successors of an exception raised in ``state``: the handler entry, if any."""
        entry = handler_entry(state, instr.offset)
        if entry is None:
            self.logger.debug(f"exception leaves {self.code.name}", category=ABSINT, offset=instr.offset)
            return []
        return [(entry[0], state)]

    # -- queries -------------------------------------------------------------

    @property
    def start_states(self) -> Mapping[int, InterpreterState]:
        return self._start_states

    @property
    def return_value(self) -> AbstractValue:
        """Join of every returned value; Undefined if the function never returns."""
        return self._return_value

    def get_return_info(self) -> AbstractValue:
        return self._return_value

    def has_info(self, offset: int) -> bool:
        """Whether the instruction at ``offset`` was reached."""
        return offset in self._start_states

    def get_stack_info(self, offset: int) -> list[AbstractValueWithSources]:
        """Stack at the start of an instruction, bottom first."""
        return list(self._start_states[offset].stack)

    def get_local_info(self, offset: int, local: int) -> AbstractLocalInfo:
        return self._start_states[offset].get_local(local)

    def should_box(self, offset: int) -> bool:
        """Whether the value produced at ``offset`` must be boxed."""
        source = self.arena.get(offset)
        return source is None or source.needs_boxing

    def can_skip_lasti_update(self, offset: int) -> bool:
        """Whether the instruction at a reached ``offset`` can never raise midway.

        A LOAD_FAST of a local that may be unassigned raises UnboundLocalError.
        """
        instr = self._by_offset.get(offset)
        state = self._start_states.get(offset)
        if instr is None or state is None or instr.opcode not in SKIP_LASTI_OPCODES:
            return False
        if instr.opcode == LOAD_FAST:
            return instr.arg < self.code.nlocals and not state.get_local(instr.arg).maybe_undefined
        return True

    def instruction_graph(self) -> InstructionGraph:
        """Escape analysis over the final states."""
        return InstructionGraph(self.code, self._start_states, self._unbox_kinds, self.logger)

    def dump(self) -> str:
        """Human readable listing of every start state."""
        return format_states(self)


__all__ = ["AbstractInterpreter", "SKIP_LASTI_OPCODES", "NON_RAISING_OPCODES"]
