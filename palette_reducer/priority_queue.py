"""Array-backed binary max-heap keyed by a numeric priority."""
from __future__ import annotations

from typing import Generic, List, Tuple, TypeVar

from .palette_ops import EmptyQueueError


T = TypeVar("T")


class PriorityQueue(Generic[T]):
    """Max-heap of ``(priority, payload)`` entries.

    Priorities are fixed once pushed and entries with equal priority come out
    in no particular order.
    """

    def __init__(self) -> None:
        self._heap: List[Tuple[float, T]] = []

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def push(self, priority: float, payload: T) -> None:
        heap = self._heap
        heap.append((priority, payload))
        idx = len(heap) - 1
        while idx > 0:
            parent_idx = (idx - 1) // 2
            if heap[parent_idx][0] >= heap[idx][0]:
                break
            heap[parent_idx], heap[idx] = heap[idx], heap[parent_idx]
            idx = parent_idx

    def peek_priority(self) -> float:
        if not self._heap:
            raise EmptyQueueError("Queue is empty")
        return self._heap[0][0]

    def pop(self) -> T:
        heap = self._heap
        if not heap:
            raise EmptyQueueError("Queue is empty")
        top = heap[0]
        last = heap.pop()
        if heap:
            heap[0] = last
            self._sift_down(0)
        return top[1]

    def _sift_down(self, idx: int) -> None:
        heap = self._heap
        size = len(heap)
        while True:
            child = 2 * idx + 1
            if child >= size:
                return
            right = child + 1
            if right < size and heap[right][0] > heap[child][0]:
                child = right
            if heap[idx][0] >= heap[child][0]:
                return
            heap[idx], heap[child] = heap[child], heap[idx]
            idx = child
