"""Result typing for operators over abstract values.

Each rule answers "what could this operator produce for operands of these
kinds". Unknown combinations produce Any; constant operands are folded when
the operation is cheap and cannot raise.
"""

from __future__ import annotations

import operator
from collections.abc import Callable

from pyunbox.core.values import (
    INTEGRAL_KINDS,
    AbstractValue,
    AbstractValueKind,
    ConstantValue,
    SizedValue,
    Any,
    to_abstract,
    value_of_kind,
)

K = AbstractValueKind

_FOLDERS: dict[str, Callable[[object, object], object]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "//": operator.floordiv,
    "%": operator.mod,
    "&": operator.and_,
    "|": operator.or_,
    "^": operator.xor,
}
_COMPARERS: dict[str, Callable[[object, object], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
}
_BITWISE = frozenset({"<<", ">>", "&", "|", "^"})
_SEQUENCE_KINDS = frozenset({K.STRING, K.BYTES, K.BYTEARRAY, K.LIST, K.TUPLE})
_SET_KINDS = frozenset({K.SET, K.FROZENSET})
# Kinds whose comparison operators are known to return a bool.
_COMPARABLE_KINDS = frozenset(
    {
        K.BOOL,
        K.INTEGER,
        K.BIG_INTEGER,
        K.FLOAT,
        K.COMPLEX,
        K.NUMBER,
        K.NONE,
        K.STRING,
        K.BYTES,
        K.BYTEARRAY,
        K.LIST,
        K.TUPLE,
        K.SET,
        K.FROZENSET,
        K.DICT,
    }
)


def _foldable(value: AbstractValue) -> bool:
    return isinstance(value, ConstantValue) and value.kind in (K.BOOL, K.INTEGER, K.FLOAT)


def _fold(symbol: str, left: ConstantValue, right: ConstantValue) -> AbstractValue | None:
    folder = _FOLDERS.get(symbol)
    if folder is None:
        return None
    if symbol in _BITWISE and (left.kind is K.FLOAT or right.kind is K.FLOAT):
        return None
    if symbol in ("/", "//", "%") and not right.constant:
        return None
    try:
        return to_abstract(folder(left.constant, right.constant))
    except ArithmeticError:
        return None


def _numeric_rank(kinds: set[AbstractValueKind]) -> AbstractValueKind:
    if K.NUMBER in kinds:
        return K.NUMBER
    if K.COMPLEX in kinds:
        return K.COMPLEX
    if K.FLOAT in kinds:
        return K.FLOAT
    if K.BIG_INTEGER in kinds:
        return K.BIG_INTEGER
    return K.INTEGER


def _numeric_result(symbol: str, left: AbstractValue, right: AbstractValue) -> AbstractValue:
    kinds = {left.kind, right.kind}
    if symbol == "@":
        return Any
    if symbol in _BITWISE:
        if not kinds <= INTEGRAL_KINDS:
            return Any
        if kinds == {K.BOOL} and symbol in ("&", "|", "^"):
            return value_of_kind(K.BOOL)
        if K.BIG_INTEGER in kinds or symbol == "<<":
            return value_of_kind(K.BIG_INTEGER)
        return value_of_kind(K.INTEGER)
    rank = _numeric_rank(kinds)
    if symbol == "/":
        if rank in (K.NUMBER, K.COMPLEX):
            return value_of_kind(rank)
        return value_of_kind(K.FLOAT)
    if symbol == "**":
        if rank in (K.NUMBER, K.COMPLEX):
            return value_of_kind(rank)
        # Negative exponents turn ints into floats and fractional
        # exponents of negative floats produce complex numbers.
        non_negative = isinstance(right, ConstantValue) and right.constant >= 0
        if kinds <= INTEGRAL_KINDS and non_negative:
            return value_of_kind(K.BIG_INTEGER if K.BIG_INTEGER in kinds else K.INTEGER)
        if left.kind is K.FLOAT and right.kind in INTEGRAL_KINDS:
            return value_of_kind(K.FLOAT)
        return value_of_kind(K.NUMBER)
    if rank is K.COMPLEX and symbol in ("//", "%"):
        return Any
    return value_of_kind(rank)


def _sequence_result(symbol: str, left: AbstractValue, right: AbstractValue) -> AbstractValue:
    lk, rk = left.kind, right.kind
    if symbol == "+":
        if lk is K.TUPLE and rk is K.TUPLE:
            if isinstance(left, SizedValue) and isinstance(right, SizedValue):
                return SizedValue(K.TUPLE, left.length + right.length)
            return value_of_kind(K.TUPLE)
        if lk is rk and lk in _SEQUENCE_KINDS:
            return value_of_kind(lk)
        if lk is K.BYTEARRAY and rk is K.BYTES:
            return value_of_kind(K.BYTEARRAY)
    elif symbol == "*":
        if lk in _SEQUENCE_KINDS and rk in INTEGRAL_KINDS:
            return value_of_kind(lk)
        if rk in _SEQUENCE_KINDS and lk in INTEGRAL_KINDS:
            return value_of_kind(rk)
    elif symbol == "%":
        if lk in (K.STRING, K.BYTES):
            return value_of_kind(lk)
    elif symbol in ("|", "&", "-", "^"):
        if lk in _SET_KINDS and rk in _SET_KINDS:
            return value_of_kind(lk)
        if symbol == "|" and lk is K.DICT and rk is K.DICT:
            return value_of_kind(K.DICT)
    return Any


def binary_result(symbol: str, left: AbstractValue, right: AbstractValue) -> AbstractValue:
    """Type of ``left <symbol> right``."""
    if left.kind in (K.UNDEFINED, K.ANY) or right.kind in (K.UNDEFINED, K.ANY):
        return Any
    if _foldable(left) and _foldable(right):
        folded = _fold(symbol, left, right)
        if folded is not None:
            return folded
    if left.is_numeric and right.is_numeric:
        return _numeric_result(symbol, left, right)
    return _sequence_result(symbol, left, right)


def unary_result(symbol: str, value: AbstractValue) -> AbstractValue:
    """Type of a unary operator: one of ``-``, ``+``, ``~`` or ``not``."""
    kind = value.kind
    if symbol == "not":
        truth = value.truthiness()
        if truth is None:
            return value_of_kind(K.BOOL)
        return ConstantValue(K.BOOL, not truth)
    if isinstance(value, ConstantValue) and kind in (K.BOOL, K.INTEGER, K.FLOAT):
        if symbol == "-":
            return to_abstract(-value.constant)
        if symbol == "+":
            return to_abstract(+value.constant)
        if symbol == "~" and kind is not K.FLOAT:
            return to_abstract(~value.constant)
    if symbol in ("-", "+"):
        if kind in (K.BOOL, K.INTEGER):
            return value_of_kind(K.INTEGER)
        if kind in (K.BIG_INTEGER, K.FLOAT, K.COMPLEX, K.NUMBER):
            return value_of_kind(kind)
    elif symbol == "~":
        if kind in (K.BOOL, K.INTEGER):
            return value_of_kind(K.INTEGER)
        if kind is K.BIG_INTEGER:
            return value_of_kind(K.BIG_INTEGER)
    return Any


def compare_result(symbol: str, left: AbstractValue, right: AbstractValue) -> AbstractValue:
    """Type of a rich comparison."""
    if left.kind not in _COMPARABLE_KINDS or right.kind not in _COMPARABLE_KINDS:
        return Any
    comparer = _COMPARERS.get(symbol)
    if comparer is not None and _foldable(left) and _foldable(right):
        return ConstantValue(K.BOOL, comparer(left.constant, right.constant))
    return value_of_kind(K.BOOL)


def subscript_result(container: AbstractValue, index: AbstractValue) -> AbstractValue:
    """Type of ``container[index]``."""
    kind = container.kind
    is_slice = index.kind is K.SLICE
    is_int = index.kind in INTEGRAL_KINDS
    if kind is K.STRING and (is_slice or is_int):
        return value_of_kind(K.STRING)
    if kind in (K.BYTES, K.BYTEARRAY):
        if is_int:
            return value_of_kind(K.INTEGER)
        if is_slice:
            return value_of_kind(kind)
    if kind in (K.LIST, K.TUPLE) and is_slice:
        return value_of_kind(kind)
    return Any


__all__ = [
    "binary_result",
    "unary_result",
    "compare_result",
    "subscript_result",
]
