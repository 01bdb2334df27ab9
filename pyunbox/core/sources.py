"""Value provenance.

A source names the instruction that produced a value and remembers which
instructions consumed it, and at which stack position. Sources are compared
by identity only: two values produced by different instructions never share
a source even when their kinds agree.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from pyunbox.core.values import AbstractValue


class AbstractSource:
    """Base class for value provenance."""

    def __init__(self, producer: int):
        self.producer = producer
        self.escaped = False
        self.consumers: dict[int, set[int]] = {}

    def add_consumer(self, index: int, position: int) -> None:
        """Record that instruction ``index`` popped this value at ``position``."""
        self.consumers.setdefault(index, set()).add(position)

    def consumed_positions(self, index: int) -> list[int]:
        """Every stack position at which ``index`` pops this value, ascending."""
        return sorted(self.consumers.get(index, ()))

    def is_consumed_by(self, index: int) -> int | None:
        """Topmost stack position at which ``index`` consumes this value, if it does."""
        positions = self.consumers.get(index)
        return min(positions) if positions else None

    def escapes(self) -> None:
        self.escaped = True

    @property
    def needs_boxing(self) -> bool:
        return self.escaped

    def describe(self) -> str:
        return f"Intermediate @ {self.producer}"

    def __repr__(self) -> str:
        state = " escaped" if self.escaped else ""
        return f"<{self.describe()}{state}>"


class LocalSource(AbstractSource):
    """Value loaded from a local slot."""

    def __init__(self, producer: int, local: int):
        super().__init__(producer)
        self.local = local

    def describe(self) -> str:
        return f"Local {self.local} @ {self.producer}"


class ConstSource(AbstractSource):
    """Value loaded from the constant table."""

    def __init__(self, producer: int, const_index: int):
        super().__init__(producer)
        self.const_index = const_index

    def describe(self) -> str:
        return f"Const {self.const_index} @ {self.producer}"


class IntermediateSource(AbstractSource):
    """Value computed by an instruction."""


class SourceArena:
    """Owns every source created while analyzing one code unit.

    Each producing instruction gets exactly one source, so revisiting an
    instruction during the fixed-point iteration hands back the source
    created on the first visit.
    """

    def __init__(self) -> None:
        self._sources: dict[int, AbstractSource] = {}

    def local_source(self, index: int, local: int) -> AbstractSource:
        if index not in self._sources:
            self._sources[index] = LocalSource(index, local)
        return self._sources[index]

    def const_source(self, index: int, const_index: int) -> AbstractSource:
        if index not in self._sources:
            self._sources[index] = ConstSource(index, const_index)
        return self._sources[index]

    def intermediate_source(self, index: int) -> AbstractSource:
        if index not in self._sources:
            self._sources[index] = IntermediateSource(index)
        return self._sources[index]

    def get(self, index: int) -> AbstractSource | None:
        return self._sources.get(index)

    def clear(self) -> None:
        self._sources.clear()

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[AbstractSource]:
        return iter(self._sources.values())


@dataclass(frozen=True)
class AbstractValueWithSources:
    """A value paired with the source it came from (None when unknown)."""

    value: AbstractValue
    source: AbstractSource | None = None

    def escapes(self) -> None:
        if self.source is not None:
            self.source.escapes()

    def merge_with(self, other: AbstractValueWithSources) -> AbstractValueWithSources:
        """Join the values; provenance survives only when both sides agree.

        Values reaching one slot from different producers can no longer be
        traced to a single instruction, so both producers must box.
        """
        value = self.value.merge(other.value)
        if self.source is other.source:
            source = self.source
        else:
            self.escapes()
            other.escapes()
            source = None
        if value is self.value and source is self.source:
            return self
        return AbstractValueWithSources(value, source)

    def describe(self) -> str:
        if self.source is None:
            return self.value.describe()
        return f"{self.value.describe()} ({self.source.describe()})"


__all__ = [
    "AbstractSource",
    "LocalSource",
    "ConstSource",
    "IntermediateSource",
    "SourceArena",
    "AbstractValueWithSources",
]
