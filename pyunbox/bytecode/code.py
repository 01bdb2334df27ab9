"""Code units and the instruction decoder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pyunbox.bytecode.opcodes import (
    EXTENDED_ARG,
    hasjabs,
    hasjrel,
    is_known,
    opname,
)
from pyunbox.errors import MalformedBytecodeError

CO_VARARGS = 0x04
CO_VARKEYWORDS = 0x08

CODE_UNIT_SIZE = 2


@dataclass(frozen=True)
class Instruction:
    """One logical instruction.

    Attributes:
        offset: Byte offset of the first physical code unit, which is the
            first EXTENDED_ARG prefix when the argument needed one.
        opcode: Opcode number.
        arg: Argument with all EXTENDED_ARG bits merged in.
        width: Size in bytes, prefixes included.
    """

    offset: int
    opcode: int
    arg: int
    width: int = CODE_UNIT_SIZE

    @property
    def opname(self) -> str:
        return opname[self.opcode]

    @property
    def next_offset(self) -> int:
        return self.offset + self.width

    @property
    def jump_target(self) -> int | None:
        """Offset this instruction may transfer control to, if any."""
        if self.opcode in hasjrel:
            return self.next_offset + self.arg
        if self.opcode in hasjabs:
            return self.arg
        return None

    def __str__(self) -> str:
        return f"{self.offset:>4} {self.opname} {self.arg}"


@dataclass(frozen=True)
class CodeUnit:
    """A function body to analyze.

    The analysis never executes anything, so a code unit only carries what
    the abstract semantics needs: the raw code units, constants, names and
    the shape of the parameter list.
    """

    code: bytes
    consts: tuple[Any, ...] = ()
    argcount: int = 0
    kwonlyargcount: int = 0
    nlocals: int = 0
    varnames: tuple[str, ...] = ()
    names: tuple[str, ...] = ()
    flags: int = 0
    name: str = "<code>"
    _instructions: list[Instruction] = field(
        default_factory=list, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if self.nlocals < self.total_args:
            raise MalformedBytecodeError(
                f"{self.name}: {self.nlocals} locals cannot hold {self.total_args} arguments"
            )

    @property
    def total_args(self) -> int:
        """Number of local slots bound on entry."""
        count = self.argcount + self.kwonlyargcount
        if self.flags & CO_VARARGS:
            count += 1
        if self.flags & CO_VARKEYWORDS:
            count += 1
        return count

    @property
    def varargs_slot(self) -> int | None:
        if self.flags & CO_VARARGS:
            return self.argcount + self.kwonlyargcount
        return None

    @property
    def varkeywords_slot(self) -> int | None:
        if self.flags & CO_VARKEYWORDS:
            slot = self.argcount + self.kwonlyargcount
            if self.flags & CO_VARARGS:
                slot += 1
            return slot
        return None

    def local_name(self, index: int) -> str:
        if index < len(self.varnames):
            return self.varnames[index]
        return f"local{index}"

    def instructions(self) -> list[Instruction]:
        """Decoded instructions, cached after the first call."""
        if not self._instructions:
            self._instructions.extend(decode(self.code))
        return self._instructions


def decode(code: bytes) -> list[Instruction]:
    """Decode raw code units into logical instructions.

    EXTENDED_ARG prefixes are folded into the instruction they extend.

    Raises:
        MalformedBytecodeError: On odd-length code, unknown opcodes, or a
            trailing prefix with nothing to extend.
    """
    if len(code) % CODE_UNIT_SIZE:
        raise MalformedBytecodeError(f"Code length {len(code)} is not a multiple of {CODE_UNIT_SIZE}")
    instructions = []
    extended = 0
    start = None
    for offset in range(0, len(code), CODE_UNIT_SIZE):
        op, arg = code[offset], code[offset + 1]
        if not is_known(op):
            raise MalformedBytecodeError(f"Unknown opcode {op}", offset)
        if start is None:
            start = offset
        if op == EXTENDED_ARG:
            extended = (extended | arg) << 8
            continue
        instructions.append(
            Instruction(
                offset=start,
                opcode=op,
                arg=extended | arg,
                width=offset + CODE_UNIT_SIZE - start,
            )
        )
        extended = 0
        start = None
    if start is not None:
        raise MalformedBytecodeError("Dangling EXTENDED_ARG", start)
    return instructions


__all__ = [
    "CO_VARARGS",
    "CO_VARKEYWORDS",
    "CODE_UNIT_SIZE",
    "Instruction",
    "CodeUnit",
    "decode",
]
