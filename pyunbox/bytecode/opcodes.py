"""Opcode table for the analyzed bytecode dialect.

The numbering follows the CPython 3.9 family. The loop region opcodes that
3.9 removed (SETUP_LOOP, BREAK_LOOP, CONTINUE_LOOP) are kept at unused
numbers so loops can carry an explicit region. Everything here is a
stateless lookup table.
"""

from __future__ import annotations

HAVE_ARGUMENT = 90
EXTENDED_ARG = 144

opmap: dict[str, int] = {
    "POP_TOP": 1,
    "ROT_TWO": 2,
    "ROT_THREE": 3,
    "DUP_TOP": 4,
    "DUP_TOP_TWO": 5,
    "ROT_FOUR": 6,
    "NOP": 9,
    "UNARY_POSITIVE": 10,
    "UNARY_NEGATIVE": 11,
    "UNARY_NOT": 12,
    "UNARY_INVERT": 15,
    "BINARY_MATRIX_MULTIPLY": 16,
    "INPLACE_MATRIX_MULTIPLY": 17,
    "BINARY_POWER": 19,
    "BINARY_MULTIPLY": 20,
    "BINARY_MODULO": 22,
    "BINARY_ADD": 23,
    "BINARY_SUBTRACT": 24,
    "BINARY_SUBSCR": 25,
    "BINARY_FLOOR_DIVIDE": 26,
    "BINARY_TRUE_DIVIDE": 27,
    "INPLACE_FLOOR_DIVIDE": 28,
    "INPLACE_TRUE_DIVIDE": 29,
    "RERAISE": 48,
    "WITH_EXCEPT_START": 49,
    "INPLACE_ADD": 55,
    "INPLACE_SUBTRACT": 56,
    "INPLACE_MULTIPLY": 57,
    "INPLACE_MODULO": 59,
    "STORE_SUBSCR": 60,
    "DELETE_SUBSCR": 61,
    "BINARY_LSHIFT": 62,
    "BINARY_RSHIFT": 63,
    "BINARY_AND": 64,
    "BINARY_XOR": 65,
    "BINARY_OR": 66,
    "INPLACE_POWER": 67,
    "GET_ITER": 68,
    "GET_YIELD_FROM_ITER": 69,
    "PRINT_EXPR": 70,
    "LOAD_BUILD_CLASS": 71,
    "YIELD_FROM": 72,
    "LOAD_ASSERTION_ERROR": 74,
    "INPLACE_LSHIFT": 75,
    "INPLACE_RSHIFT": 76,
    "INPLACE_AND": 77,
    "INPLACE_XOR": 78,
    "INPLACE_OR": 79,
    "BREAK_LOOP": 80,
    "LIST_TO_TUPLE": 82,
    "RETURN_VALUE": 83,
    "IMPORT_STAR": 84,
    "SETUP_ANNOTATIONS": 85,
    "YIELD_VALUE": 86,
    "POP_BLOCK": 87,
    "POP_EXCEPT": 89,
    "STORE_NAME": 90,
    "DELETE_NAME": 91,
    "UNPACK_SEQUENCE": 92,
    "FOR_ITER": 93,
    "UNPACK_EX": 94,
    "STORE_ATTR": 95,
    "DELETE_ATTR": 96,
    "STORE_GLOBAL": 97,
    "DELETE_GLOBAL": 98,
    "LOAD_CONST": 100,
    "LOAD_NAME": 101,
    "BUILD_TUPLE": 102,
    "BUILD_LIST": 103,
    "BUILD_SET": 104,
    "BUILD_MAP": 105,
    "LOAD_ATTR": 106,
    "COMPARE_OP": 107,
    "IMPORT_NAME": 108,
    "IMPORT_FROM": 109,
    "JUMP_FORWARD": 110,
    "JUMP_IF_FALSE_OR_POP": 111,
    "JUMP_IF_TRUE_OR_POP": 112,
    "JUMP_ABSOLUTE": 113,
    "POP_JUMP_IF_FALSE": 114,
    "POP_JUMP_IF_TRUE": 115,
    "LOAD_GLOBAL": 116,
    "IS_OP": 117,
    "CONTAINS_OP": 118,
    "CONTINUE_LOOP": 119,
    "SETUP_LOOP": 120,
    "JUMP_IF_NOT_EXC_MATCH": 121,
    "SETUP_FINALLY": 122,
    "LOAD_FAST": 124,
    "STORE_FAST": 125,
    "DELETE_FAST": 126,
    "RAISE_VARARGS": 130,
    "CALL_FUNCTION": 131,
    "MAKE_FUNCTION": 132,
    "BUILD_SLICE": 133,
    "LOAD_CLOSURE": 135,
    "LOAD_DEREF": 136,
    "STORE_DEREF": 137,
    "DELETE_DEREF": 138,
    "CALL_FUNCTION_KW": 141,
    "CALL_FUNCTION_EX": 142,
    "SETUP_WITH": 143,
    "EXTENDED_ARG": EXTENDED_ARG,
    "LIST_APPEND": 145,
    "SET_ADD": 146,
    "MAP_ADD": 147,
    "LOAD_CLASSDEREF": 148,
    "FORMAT_VALUE": 155,
    "BUILD_CONST_KEY_MAP": 156,
    "BUILD_STRING": 157,
    "LOAD_METHOD": 160,
    "CALL_METHOD": 161,
    "LIST_EXTEND": 162,
    "SET_UPDATE": 163,
    "DICT_MERGE": 164,
    "DICT_UPDATE": 165,
}

opname: list[str] = [f"<{op}>" for op in range(256)]
for _name, _op in opmap.items():
    opname[_op] = _name
del _name, _op

cmp_op = ("<", "<=", "==", "!=", ">", ">=")

# Argument is a byte delta from the end of the instruction.
hasjrel = frozenset(
    opmap[name]
    for name in ("JUMP_FORWARD", "FOR_ITER", "SETUP_FINALLY", "SETUP_WITH", "SETUP_LOOP")
)
# Argument is a byte offset.
hasjabs = frozenset(
    opmap[name]
    for name in (
        "JUMP_ABSOLUTE",
        "POP_JUMP_IF_FALSE",
        "POP_JUMP_IF_TRUE",
        "JUMP_IF_FALSE_OR_POP",
        "JUMP_IF_TRUE_OR_POP",
        "JUMP_IF_NOT_EXC_MATCH",
        "CONTINUE_LOOP",
    )
)
hasjump = hasjrel | hasjabs

# Control never falls through to the next instruction.
unconditional = frozenset(
    opmap[name]
    for name in (
        "JUMP_FORWARD",
        "JUMP_ABSOLUTE",
        "RETURN_VALUE",
        "RAISE_VARARGS",
        "RERAISE",
        "BREAK_LOOP",
        "CONTINUE_LOOP",
    )
)

# Opcodes that open a protected region; the jump target is where it ends.
setup_opcodes = frozenset(opmap[name] for name in ("SETUP_LOOP", "SETUP_FINALLY", "SETUP_WITH"))

_FIXED_EFFECTS: dict[str, int] = {
    "POP_TOP": -1,
    "ROT_TWO": 0,
    "ROT_THREE": 0,
    "ROT_FOUR": 0,
    "DUP_TOP": 1,
    "DUP_TOP_TWO": 2,
    "NOP": 0,
    "EXTENDED_ARG": 0,
    "UNARY_POSITIVE": 0,
    "UNARY_NEGATIVE": 0,
    "UNARY_NOT": 0,
    "UNARY_INVERT": 0,
    "LIST_APPEND": -1,
    "SET_ADD": -1,
    "MAP_ADD": -2,
    "STORE_SUBSCR": -3,
    "DELETE_SUBSCR": -2,
    "GET_ITER": 0,
    "GET_YIELD_FROM_ITER": 0,
    "PRINT_EXPR": -1,
    "LOAD_BUILD_CLASS": 1,
    "RETURN_VALUE": -1,
    "IMPORT_STAR": -1,
    "SETUP_ANNOTATIONS": 0,
    "YIELD_VALUE": 0,
    "YIELD_FROM": -1,
    "POP_BLOCK": 0,
    "POP_EXCEPT": 0,
    "RERAISE": -1,
    "WITH_EXCEPT_START": 1,
    "LOAD_ASSERTION_ERROR": 1,
    "LIST_TO_TUPLE": 0,
    "LIST_EXTEND": -1,
    "SET_UPDATE": -1,
    "DICT_MERGE": -1,
    "DICT_UPDATE": -1,
    "STORE_NAME": -1,
    "DELETE_NAME": 0,
    "STORE_ATTR": -2,
    "DELETE_ATTR": -1,
    "STORE_GLOBAL": -1,
    "DELETE_GLOBAL": 0,
    "LOAD_CONST": 1,
    "LOAD_NAME": 1,
    "LOAD_ATTR": 0,
    "COMPARE_OP": -1,
    "IS_OP": -1,
    "CONTAINS_OP": -1,
    "JUMP_IF_NOT_EXC_MATCH": -2,
    "IMPORT_NAME": -1,
    "IMPORT_FROM": 1,
    "JUMP_FORWARD": 0,
    "JUMP_ABSOLUTE": 0,
    "POP_JUMP_IF_FALSE": -1,
    "POP_JUMP_IF_TRUE": -1,
    "LOAD_GLOBAL": 1,
    "SETUP_WITH": 1,
    "SETUP_LOOP": 0,
    "BREAK_LOOP": 0,
    "CONTINUE_LOOP": 0,
    "LOAD_FAST": 1,
    "STORE_FAST": -1,
    "DELETE_FAST": 0,
    "LOAD_CLOSURE": 1,
    "LOAD_DEREF": 1,
    "LOAD_CLASSDEREF": 1,
    "STORE_DEREF": -1,
    "DELETE_DEREF": 0,
    "LOAD_METHOD": 1,
}

for _name in (
    "BINARY_MATRIX_MULTIPLY",
    "INPLACE_MATRIX_MULTIPLY",
    "BINARY_POWER",
    "BINARY_MULTIPLY",
    "BINARY_MODULO",
    "BINARY_ADD",
    "BINARY_SUBTRACT",
    "BINARY_SUBSCR",
    "BINARY_FLOOR_DIVIDE",
    "BINARY_TRUE_DIVIDE",
    "INPLACE_FLOOR_DIVIDE",
    "INPLACE_TRUE_DIVIDE",
    "INPLACE_ADD",
    "INPLACE_SUBTRACT",
    "INPLACE_MULTIPLY",
    "INPLACE_MODULO",
    "BINARY_LSHIFT",
    "BINARY_RSHIFT",
    "BINARY_AND",
    "BINARY_XOR",
    "BINARY_OR",
    "INPLACE_POWER",
    "INPLACE_LSHIFT",
    "INPLACE_RSHIFT",
    "INPLACE_AND",
    "INPLACE_XOR",
    "INPLACE_OR",
):
    _FIXED_EFFECTS[_name] = -1
del _name


def has_argument(opcode: int) -> bool:
    """Whether the opcode uses its argument byte."""
    return opcode >= HAVE_ARGUMENT


def is_known(opcode: int) -> bool:
    """Whether the opcode belongs to the dialect."""
    return not opname[opcode].startswith("<")


def stack_effect(opcode: int, oparg: int = 0, jump: bool | None = None) -> int:
    """Net stack effect of one instruction.

    Args:
        opcode: Opcode number.
        oparg: The decoded argument, including EXTENDED_ARG bits.
        jump: True for the effect when the jump is taken, False for the
            fall-through effect, None for the maximum of both.

    Returns:
        Number of values pushed minus number of values popped.

    Raises:
        ValueError: If the opcode is not part of the dialect.
    """
    name = opname[opcode]
    if name in _FIXED_EFFECTS:
        return _FIXED_EFFECTS[name]
    if name == "UNPACK_SEQUENCE":
        return oparg - 1
    if name == "UNPACK_EX":
        return (oparg & 0xFF) + (oparg >> 8)
    if name == "FOR_ITER":
        if jump is None:
            return 1
        return -1 if jump else 1
    if name in ("BUILD_TUPLE", "BUILD_LIST", "BUILD_SET", "BUILD_STRING"):
        return 1 - oparg
    if name == "BUILD_MAP":
        return 1 - 2 * oparg
    if name == "BUILD_CONST_KEY_MAP":
        return -oparg
    if name in ("JUMP_IF_TRUE_OR_POP", "JUMP_IF_FALSE_OR_POP"):
        if jump is None:
            return 0
        return 0 if jump else -1
    if name == "SETUP_FINALLY":
        # The handler is entered with the current exception pushed.
        if jump is None:
            return 1
        return 1 if jump else 0
    if name == "RAISE_VARARGS":
        return -oparg
    if name == "CALL_FUNCTION":
        return -oparg
    if name == "CALL_METHOD":
        return -oparg - 1
    if name == "CALL_FUNCTION_KW":
        return -oparg - 1
    if name == "CALL_FUNCTION_EX":
        return -1 - ((oparg & 0x01) != 0)
    if name == "MAKE_FUNCTION":
        return -1 - bin(oparg & 0x0F).count("1")
    if name == "BUILD_SLICE":
        return -2 if oparg == 3 else -1
    if name == "FORMAT_VALUE":
        return -1 if (oparg & 0x04) else 0
    raise ValueError(f"Unknown opcode: {opcode}")


__all__ = [
    "HAVE_ARGUMENT",
    "EXTENDED_ARG",
    "opmap",
    "opname",
    "cmp_op",
    "hasjrel",
    "hasjabs",
    "hasjump",
    "unconditional",
    "setup_opcodes",
    "has_argument",
    "is_known",
    "stack_effect",
]
