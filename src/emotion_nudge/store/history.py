"""Capacity-bounded, insertion-ordered event history."""

from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import Callable, Generic, Iterable, Iterator, TypeVar

T = TypeVar("T")


class BoundedHistory(Generic[T]):
    """Append-only FIFO with a fixed capacity.

    Appending beyond capacity evicts the oldest entries first; survivors
    keep their relative order.  Entries are never mutated or removed
    otherwise.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._items: deque[T] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._items.maxlen or 0

    def append(self, item: T) -> None:
        self._items.append(item)

    def extend(self, items: Iterable[T]) -> None:
        self._items.extend(items)

    def snapshot(self) -> list[T]:
        """Return a copy, oldest first."""
        return list(self._items)

    def since(self, cutoff: datetime, key: Callable[[T], datetime]) -> list[T]:
        """Return entries whose *key* timestamp is at or after *cutoff*."""
        return [item for item in self._items if key(item) >= cutoff]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())
