"""Binary max-heap used as the search frontier.

The heap is keyed by an injected ``less`` comparator rather than by the
natural ordering of its items, so any ranking function can drive it.  Items
are stored in a 1-based list which keeps the parent/child arithmetic of the
classic array heap (``k // 2`` and ``2 * k``) readable.

Example
-------
>>> pq = MaxPQ(lambda a, b: a < b)
>>> for value in (3, 9, 1):
...     pq.insert(value)
>>> pq.del_max()
9
"""

from __future__ import annotations

from typing import Callable, Generic, List, Optional, TypeVar

__all__ = ["EmptyQueueError", "MaxPQ"]

T = TypeVar("T")


class EmptyQueueError(IndexError):
    """Raised when removing from an empty :class:`MaxPQ`."""


class MaxPQ(Generic[T]):
    """Max priority queue ordered by ``less(a, b)`` ("is ``a`` below ``b``?").

    Items comparing equal are returned in no particular order.
    """

    def __init__(self, less: Callable[[T, T], bool]) -> None:
        self._heap: List[Optional[T]] = [None]
        self._less = less

    def is_empty(self) -> bool:
        return self.size() == 0

    def size(self) -> int:
        return len(self._heap) - 1

    def __len__(self) -> int:
        return self.size()

    def insert(self, item: T) -> None:
        self._heap.append(item)
        self._swim(self.size())

    def del_max(self) -> T:
        """Remove and return the largest item.

        Raises
        ------
        EmptyQueueError
            If the queue holds no items.
        """

        if self.is_empty():
            raise EmptyQueueError("del_max from an empty priority queue")
        self._exch(1, self.size())
        largest = self._heap.pop()
        self._sink(1)
        return largest  # type: ignore[return-value]

    def _less_at(self, i: int, j: int) -> bool:
        return self._less(self._heap[i], self._heap[j])  # type: ignore[arg-type]

    def _exch(self, i: int, j: int) -> None:
        self._heap[i], self._heap[j] = self._heap[j], self._heap[i]

    def _swim(self, k: int) -> None:
        while k > 1 and self._less_at(k // 2, k):
            self._exch(k // 2, k)
            k //= 2

    def _sink(self, k: int) -> None:
        n = self.size()
        while 2 * k <= n:
            j = 2 * k
            # Pick the larger child.
            if j < n and self._less_at(j, j + 1):
                j += 1
            if not self._less_at(k, j):
                break
            self._exch(k, j)
            k = j
