"""Tests for the ``MaxPQ`` search frontier."""

import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from cantus_generator.priority_queue import EmptyQueueError, MaxPQ  # noqa: E402  # isort:skip


def _less(a, b):
    return a < b


def test_del_max_returns_items_in_descending_order():
    pq = MaxPQ(_less)
    values = [5, 1, 9, 3, 7, 7, 2, 8]
    for value in values:
        pq.insert(value)

    drained = [pq.del_max() for _ in range(len(values))]
    assert drained == sorted(values, reverse=True)
    assert pq.is_empty()


def test_size_tracks_inserts_and_removals():
    pq = MaxPQ(_less)
    assert pq.is_empty()
    assert pq.size() == 0
    pq.insert(4)
    pq.insert(6)
    assert len(pq) == 2
    pq.del_max()
    assert pq.size() == 1
    assert not pq.is_empty()


def test_interleaved_operations_match_reference():
    """Random inserts and removals always yield the current maximum."""

    rng = random.Random(1234)
    pq = MaxPQ(_less)
    reference = []
    for _ in range(300):
        if reference and rng.random() < 0.4:
            expected = max(reference)
            reference.remove(expected)
            assert pq.del_max() == expected
        else:
            value = rng.randint(-50, 50)
            reference.append(value)
            pq.insert(value)
        assert pq.size() == len(reference)


def test_comparator_is_injected():
    """Reversing the comparator turns the queue into a min-heap."""

    pq = MaxPQ(lambda a, b: len(a) > len(b))
    for word in ("counterpoint", "cf", "cantus", "firmus"):
        pq.insert(word)
    assert pq.del_max() == "cf"


def test_del_max_on_empty_queue_raises():
    pq = MaxPQ(_less)
    with pytest.raises(EmptyQueueError):
        pq.del_max()
    # Callers catching ``IndexError`` keep working.
    with pytest.raises(IndexError):
        pq.del_max()
