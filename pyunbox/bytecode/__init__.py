"""Bytecode dialect: opcode tables, code units, decoding and assembly."""
from pyunbox.bytecode.assembler import Assembler, Label
from pyunbox.bytecode.code import CO_VARARGS, CO_VARKEYWORDS, CodeUnit, Instruction, decode
from pyunbox.bytecode.opcodes import opmap, opname, stack_effect
__all__ = [
    "Assembler",
    "Label",
    "CO_VARARGS",
    "CO_VARKEYWORDS",
    "CodeUnit",
    "Instruction",
    "decode",
    "opmap",
    "opname",
    "stack_effect",
]
