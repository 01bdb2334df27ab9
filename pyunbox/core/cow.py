"""Copy-on-write vector used for the locals of interpreter states."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar

T = TypeVar("T")


class _SharedStorage(Generic[T]):
    __slots__ = ("items", "owners")

    def __init__(self, items: list[T]):
        self.items = items
        self.owners = 1


class CowVector(Generic[T]):
    """A fixed-length vector whose copies share storage until written.

    ``copy()`` is O(1). The first ``replace()`` on a vector whose storage has
    other owners takes a private copy, so the other owners never observe the
    write. Owners are counted, not tracked, so a copy that was dropped
    without writing still counts as an owner and may cause one extra copy.
    """

    def __init__(self, items: Iterable[T] = ()):
        self._storage: _SharedStorage[T] = _SharedStorage(list(items))

    def copy(self) -> CowVector[T]:
        clone = CowVector.__new__(CowVector)
        clone._storage = self._storage
        self._storage.owners += 1
        return clone

    def is_shared(self) -> bool:
        return self._storage.owners > 1

    def shares_storage_with(self, other: CowVector[T]) -> bool:
        return self._storage is other._storage

    def replace(self, index: int, value: T) -> None:
        """Overwrite one element, copying the storage first if it is shared."""
        if self._storage.owners > 1:
            self._storage.owners -= 1
            self._storage = _SharedStorage(list(self._storage.items))
        self._storage.items[index] = value

    def __getitem__(self, index: int) -> T:
        return self._storage.items[index]

    def __len__(self) -> int:
        return len(self._storage.items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._storage.items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CowVector):
            return NotImplemented
        return self._storage is other._storage or self._storage.items == other._storage.items

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"CowVector({self._storage.items!r})"


__all__ = ["CowVector"]
