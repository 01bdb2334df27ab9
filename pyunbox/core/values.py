"""
Abstract value lattice.
Every stack slot and local is described by an AbstractValue: a kind from a
small tree of builtin types, optionally refined with a known constant or a
known length. The lattice is a tree, so the join of two values is their
lowest common ancestor:

    ANY
    ├── NUMBER: BOOL, INTEGER, BIG_INTEGER, FLOAT, COMPLEX
    └── OBJECT: NONE, STRING, BYTES, BYTEARRAY, LIST, TUPLE, DICT, SET,
                FROZENSET, SLICE, ITERATOR, FUNCTION, CODE

Refinements sit directly below their kind, and UNDEFINED sits below
everything.
"""

from __future__ import annotations

import types
from dataclasses import dataclass
from enum import Enum, auto

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class AbstractValueKind(Enum):
    """Nodes of the kind tree."""

    UNDEFINED = auto()
    ANY = auto()
    NUMBER = auto()
    OBJECT = auto()
    BOOL = auto()
    INTEGER = auto()
    BIG_INTEGER = auto()
    FLOAT = auto()
    COMPLEX = auto()
    NONE = auto()
    STRING = auto()
    BYTES = auto()
    BYTEARRAY = auto()
    LIST = auto()
    TUPLE = auto()
    DICT = auto()
    SET = auto()
    FROZENSET = auto()
    SLICE = auto()
    ITERATOR = auto()
    FUNCTION = auto()
    CODE = auto()


K = AbstractValueKind

NUMERIC_KINDS = frozenset({K.BOOL, K.INTEGER, K.BIG_INTEGER, K.FLOAT, K.COMPLEX})
OBJECT_KINDS = frozenset(
    {
        K.NONE,
        K.STRING,
        K.BYTES,
        K.BYTEARRAY,
        K.LIST,
        K.TUPLE,
        K.DICT,
        K.SET,
        K.FROZENSET,
        K.SLICE,
        K.ITERATOR,
        K.FUNCTION,
        K.CODE,
    }
)
INTEGRAL_KINDS = frozenset({K.BOOL, K.INTEGER, K.BIG_INTEGER})
UNBOXABLE_KINDS = frozenset({K.BOOL, K.INTEGER, K.FLOAT})


def parent_kind(kind: AbstractValueKind) -> AbstractValueKind | None:
    """Parent of a kind in the tree; None for ANY and UNDEFINED."""
    if kind in NUMERIC_KINDS:
        return K.NUMBER
    if kind in OBJECT_KINDS:
        return K.OBJECT
    if kind in (K.NUMBER, K.OBJECT):
        return K.ANY
    return None


def _ancestors(kind: AbstractValueKind) -> list[AbstractValueKind]:
    chain = [kind]
    while (parent := parent_kind(chain[-1])) is not None:
        chain.append(parent)
    return chain


def common_kind(a: AbstractValueKind, b: AbstractValueKind) -> AbstractValueKind:
    """Lowest common ancestor of two kinds."""
    if a is K.UNDEFINED:
        return b
    if b is K.UNDEFINED:
        return a
    seen = set(_ancestors(a))
    for kind in _ancestors(b):
        if kind in seen:
            return kind
    return K.ANY


@dataclass(frozen=True)
class AbstractValue:
    """An abstract description of every value a slot may hold."""

    kind: AbstractValueKind

    def is_bottom(self) -> bool:
        return self.kind is K.UNDEFINED

    def is_top(self) -> bool:
        return self.kind is K.ANY

    @property
    def is_numeric(self) -> bool:
        return self.kind in NUMERIC_KINDS or self.kind is K.NUMBER

    @property
    def supports_unboxing(self) -> bool:
        """Whether the value can live in a native register."""
        return self.kind in UNBOXABLE_KINDS

    def merge(self, other: AbstractValue) -> AbstractValue:
        """Join two values. Never fails; unrelated kinds widen upwards."""
        if self is other or self == other:
            return self
        if self.kind is K.UNDEFINED:
            return other
        if other.kind is K.UNDEFINED:
            return self
        return value_of_kind(common_kind(self.kind, other.kind))

    def leq(self, other: AbstractValue) -> bool:
        """Check whether this value is at or below other in the lattice."""
        return self.merge(other) == other

    def truthiness(self) -> bool | None:
        """Truth value when it is known statically."""
        if self.kind is K.NONE:
            return False
        if self.kind in (K.FUNCTION, K.CODE):
            return True
        return None

    def describe(self) -> str:
        return self.kind.name.lower()

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True, eq=False)
class ConstantValue(AbstractValue):
    """A kind refined by one known constant (e.g. a folded scalar)."""

    constant: object = None

    def _key(self) -> tuple:
        # repr keeps -0.0 apart from 0.0 and makes nan equal to itself
        if isinstance(self.constant, (float, complex)):
            return (self.kind, type(self.constant), repr(self.constant))
        return (self.kind, type(self.constant), self.constant)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConstantValue):
            return False
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def truthiness(self) -> bool | None:
        return bool(self.constant)

    def describe(self) -> str:
        text = repr(self.constant)
        if len(text) > 20:
            text = text[:17] + "..."
        return f"{self.kind.name.lower()}({text})"


@dataclass(frozen=True)
class SizedValue(AbstractValue):
    """A sequence kind refined by a known length."""

    length: int = 0

    def truthiness(self) -> bool | None:
        return self.length > 0

    def describe(self) -> str:
        return f"{self.kind.name.lower()}[{self.length}]"


_PLAIN: dict[AbstractValueKind, AbstractValue] = {kind: AbstractValue(kind) for kind in K}


def value_of_kind(kind: AbstractValueKind) -> AbstractValue:
    """The unrefined value of a kind."""
    return _PLAIN[kind]


Undefined = value_of_kind(K.UNDEFINED)
Any = value_of_kind(K.ANY)


def to_abstract(constant: object) -> AbstractValue:
    """Abstract value of a constant from a code unit's constant table."""
    if isinstance(constant, bool):
        return ConstantValue(K.BOOL, constant)
    if isinstance(constant, int):
        if INT64_MIN <= constant <= INT64_MAX:
            return ConstantValue(K.INTEGER, constant)
        return value_of_kind(K.BIG_INTEGER)
    if isinstance(constant, float):
        return ConstantValue(K.FLOAT, constant)
    if isinstance(constant, complex):
        return ConstantValue(K.COMPLEX, constant)
    if isinstance(constant, str):
        return ConstantValue(K.STRING, constant)
    if isinstance(constant, bytes):
        return ConstantValue(K.BYTES, constant)
    if constant is None:
        return value_of_kind(K.NONE)
    if isinstance(constant, tuple):
        return SizedValue(K.TUPLE, len(constant))
    if isinstance(constant, frozenset):
        return value_of_kind(K.FROZENSET)
    if isinstance(constant, types.CodeType):
        return value_of_kind(K.CODE)
    if isinstance(constant, slice):
        return value_of_kind(K.SLICE)
    return Any


__all__ = [
    "AbstractValueKind",
    "AbstractValue",
    "ConstantValue",
    "SizedValue",
    "NUMERIC_KINDS",
    "OBJECT_KINDS",
    "INTEGRAL_KINDS",
    "UNBOXABLE_KINDS",
    "INT64_MIN",
    "INT64_MAX",
    "Undefined",
    "Any",
    "common_kind",
    "parent_kind",
    "value_of_kind",
    "to_abstract",
]
