import numpy as np
import pytest

from palette_reducer.palette_ops import EmptyQueueError, PaletteError
from palette_reducer.priority_queue import PriorityQueue


def test_pops_highest_priority_first():
    queue = PriorityQueue()
    for priority, name in [(3, "c"), (10, "j"), (1, "a"), (7, "g"), (5, "e")]:
        queue.push(priority, name)
    assert len(queue) == 5
    assert [queue.pop() for _ in range(5)] == ["j", "g", "e", "c", "a"]
    assert not queue


def test_random_priorities_come_out_sorted():
    rng = np.random.default_rng(7)
    priorities = rng.integers(0, 1000, size=300).tolist()
    queue = PriorityQueue()
    for p in priorities:
        queue.push(p, p)
    out = [queue.pop() for _ in range(len(priorities))]
    assert out == sorted(priorities, reverse=True)


def test_interleaved_push_and_pop():
    queue = PriorityQueue()
    queue.push(4, "four")
    queue.push(9, "nine")
    assert queue.pop() == "nine"
    queue.push(6, "six")
    queue.push(2, "two")
    assert queue.peek_priority() == 6
    assert [queue.pop() for _ in range(3)] == ["six", "four", "two"]


def test_equal_priorities_all_returned():
    queue = PriorityQueue()
    for name in "abcd":
        queue.push(1, name)
    assert sorted(queue.pop() for _ in range(4)) == ["a", "b", "c", "d"]


def test_pop_empty_raises():
    queue = PriorityQueue()
    with pytest.raises(EmptyQueueError):
        queue.pop()
    queue.push(1, "x")
    queue.pop()
    with pytest.raises(PaletteError):
        queue.pop()
