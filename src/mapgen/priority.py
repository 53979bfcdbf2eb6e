"""Array of priorities with fast retrieval of the minimum."""

import heapq
import math


class PriorityArray:
    """Fixed-size array of float priorities supporting min-index lookup.

    Values are stored densely; a heap of (value, index) entries tracks the
    finite ones. Entries made stale by later writes are discarded lazily.
    Among equal minimum values the lowest index wins. When every value is
    infinite, index 0 is reported.
    """

    def __init__(self, size: int, initial: float = math.inf):
        self._values = [initial] * size
        self._heap: list[tuple[float, int]] = []
        if initial != math.inf:
            self._heap = [(initial, i) for i in range(size)]

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> float:
        return self._values[index]

    def __setitem__(self, index: int, value: float) -> None:
        self._values[index] = value
        if value != math.inf:
            heapq.heappush(self._heap, (value, index))

    def min_index(self) -> int:
        """Index of the smallest value."""
        heap = self._heap
        while heap:
            value, index = heap[0]
            if self._values[index] == value:
                return index
            heapq.heappop(heap)
        return 0

    def min_value(self) -> float:
        return self._values[self.min_index()]
