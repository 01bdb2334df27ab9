"""Small assembler for building code units by hand.

Used by the tests and by callers that generate code without a host
compiler. Jumps take Label arguments which are resolved once every
instruction has a final size.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pyunbox.bytecode.code import CODE_UNIT_SIZE, CodeUnit
from pyunbox.bytecode.opcodes import EXTENDED_ARG, hasjrel, hasjump, opmap

_LOCAL_OPS = frozenset(opmap[name] for name in ("LOAD_FAST", "STORE_FAST", "DELETE_FAST"))
_NAME_OPS = frozenset(
    opmap[name]
    for name in (
        "LOAD_GLOBAL",
        "STORE_GLOBAL",
        "DELETE_GLOBAL",
        "LOAD_NAME",
        "STORE_NAME",
        "DELETE_NAME",
        "LOAD_ATTR",
        "STORE_ATTR",
        "DELETE_ATTR",
        "LOAD_METHOD",
        "IMPORT_NAME",
        "IMPORT_FROM",
    )
)


def instrsize(oparg: int) -> int:
    """Number of code units needed to encode an argument."""
    if oparg <= 0xFF:
        return 1
    elif oparg <= 0xFFFF:
        return 2
    elif oparg <= 0xFFFFFF:
        return 3
    else:
        return 4


class Label:
    """A jump target placeholder."""

    def __init__(self, name: str = ""):
        self.name = name
        self.position: int | None = None

    def __repr__(self) -> str:
        return f"Label({self.name!r})"


@dataclass
class _Pending:
    opcode: int
    arg: int | Label
    oparg: int = 0


class Assembler:
    """Builds a CodeUnit from symbolic instructions.

    Example:
        asm = Assembler(argcount=1, varnames=("x",))
        end = Label("end")
        asm.emit("LOAD_FAST", "x").emit("POP_JUMP_IF_FALSE", end)
        asm.load_const(1).emit("RETURN_VALUE")
        asm.mark(end).load_const(None).emit("RETURN_VALUE")
        code = asm.assemble()
    """

    def __init__(
        self,
        name: str = "<asm>",
        argcount: int = 0,
        kwonlyargcount: int = 0,
        varnames: tuple[str, ...] = (),
        flags: int = 0,
    ):
        self.name = name
        self.argcount = argcount
        self.kwonlyargcount = kwonlyargcount
        self.flags = flags
        self.varnames: list[str] = list(varnames)
        self.names: list[str] = []
        self.consts: list[Any] = []
        self._insts: list[_Pending] = []

    def const(self, value: Any) -> int:
        """Index of a constant, adding it if needed."""
        for index, existing in enumerate(self.consts):
            if type(existing) is type(value) and repr(existing) == repr(value):
                return index
        self.consts.append(value)
        return len(self.consts) - 1

    def local(self, name: str) -> int:
        if name not in self.varnames:
            self.varnames.append(name)
        return self.varnames.index(name)

    def name_index(self, name: str) -> int:
        if name not in self.names:
            self.names.append(name)
        return self.names.index(name)

    def emit(self, name: str, arg: int | str | Label = 0) -> Assembler:
        """Append one instruction.

        String arguments name a local for the *_FAST opcodes and a global or
        attribute name for the name opcodes.
        """
        opcode = opmap[name]
        if isinstance(arg, str):
            if opcode in _LOCAL_OPS:
                arg = self.local(arg)
            elif opcode in _NAME_OPS:
                arg = self.name_index(arg)
            else:
                raise ValueError(f"{name} does not take a name argument")
        if isinstance(arg, Label) and opcode not in hasjump:
            raise ValueError(f"{name} does not take a label argument")
        self._insts.append(_Pending(opcode, arg))
        return self

    def load_const(self, value: Any) -> Assembler:
        return self.emit("LOAD_CONST", self.const(value))

    def mark(self, label: Label) -> Assembler:
        """Place a label before the next emitted instruction."""
        label.position = len(self._insts)
        return self

    def _resolve(self) -> None:
        # Jump arguments change size as offsets move, so repeat until no
        # instruction needs a different number of EXTENDED_ARG prefixes.
        for inst in self._insts:
            inst.oparg = 0 if isinstance(inst.arg, Label) else inst.arg
        recompile = True
        while recompile:
            recompile = False
            starts = []
            pc = 0
            for inst in self._insts:
                starts.append(pc)
                pc += instrsize(inst.oparg) * CODE_UNIT_SIZE
            starts.append(pc)
            for index, inst in enumerate(self._insts):
                if not isinstance(inst.arg, Label):
                    continue
                if inst.arg.position is None:
                    raise ValueError(f"Label {inst.arg.name!r} was never marked")
                offset = starts[inst.arg.position]
                if inst.opcode in hasjrel:
                    offset -= starts[index + 1]
                if offset < 0:
                    raise ValueError(f"Relative jump to {inst.arg.name!r} goes backwards")
                if instrsize(inst.oparg) != instrsize(offset):
                    recompile = True
                inst.oparg = offset

    def assemble(self) -> CodeUnit:
        self._resolve()
        code = bytearray()
        for inst in self._insts:
            oparg = inst.oparg
            if oparg > 0xFFFFFF:
                code += bytes((EXTENDED_ARG, (oparg >> 24) & 0xFF))
            if oparg > 0xFFFF:
                code += bytes((EXTENDED_ARG, (oparg >> 16) & 0xFF))
            if oparg > 0xFF:
                code += bytes((EXTENDED_ARG, (oparg >> 8) & 0xFF))
            code += bytes((inst.opcode, oparg & 0xFF))
        return CodeUnit(
            code=bytes(code),
            consts=tuple(self.consts),
            argcount=self.argcount,
            kwonlyargcount=self.kwonlyargcount,
            nlocals=len(self.varnames),
            varnames=tuple(self.varnames),
            names=tuple(self.names),
            flags=self.flags,
            name=self.name,
        )


__all__ = ["Assembler", "Label", "instrsize"]
