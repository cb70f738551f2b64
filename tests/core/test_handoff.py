import threading
import time

import pytest

from dribblecam.core.handoff import FrameHandoff, LatestValue


def test_offer_drops_oldest_when_full():
    handoff = FrameHandoff(capacity=2)
    assert handoff.offer(1) is True
    assert handoff.offer(2) is True
    assert handoff.offer(3) is False
    assert handoff.dropped == 1
    assert [handoff.take(timeout=0.01), handoff.take(timeout=0.01)] == [2, 3]
    assert handoff.take(timeout=0.01) is None


def test_single_slot_keeps_newest():
    handoff = FrameHandoff(capacity=1)
    for i in range(5):
        handoff.offer(i)
    assert handoff.take(timeout=0.01) == 4
    assert handoff.dropped == 4


def test_offer_never_blocks_without_consumer():
    handoff = FrameHandoff(capacity=1)
    started = time.perf_counter()
    for i in range(1000):
        handoff.offer(i)
    assert time.perf_counter() - started < 1.0
    assert len(handoff) == 1


def test_items_arrive_in_offer_order():
    handoff = FrameHandoff(capacity=100)
    received = []

    def consume():
        while len(received) < 50:
            item = handoff.take(timeout=1.0)
            if item is not None:
                received.append(item)

    t = threading.Thread(target=consume)
    t.start()
    for i in range(50):
        handoff.offer(i)
    t.join(timeout=5)
    assert received == list(range(50))


def test_clear_empties_queue():
    handoff = FrameHandoff(capacity=3)
    handoff.offer("a")
    handoff.offer("b")
    handoff.clear()
    assert len(handoff) == 0


def test_capacity_validation():
    with pytest.raises(ValueError):
        FrameHandoff(capacity=0)


def test_latest_value_versions():
    cell = LatestValue()
    assert cell.get() is None
    assert cell.get_versioned() == (0, None)
    cell.set("a")
    cell.set("b")
    assert cell.get() == "b"
    assert cell.get_versioned() == (2, "b")
