import pytest

from tokensale.ledger.allocation import Allocation, AllocationQueue


def _a(seq: int, amount: int, released: int = 0) -> Allocation:
    return Allocation(seq=seq, purchased_at=seq, vesting_start=seq + 10, amount=amount, released=released)


def test_fifo_order_and_head():
    q = AllocationQueue()
    for i in range(3):
        q.append(_a(i, 10 * (i + 1)))
    assert [a.seq for a in q] == [0, 1, 2]
    assert q.head().seq == 0
    assert sum(a.amount for a in q) == 60


def test_exhausted_front_is_dropped_and_next_becomes_head():
    q = AllocationQueue([_a(0, 5), _a(1, 7)])
    q.head().release(5)
    assert q.compact() == 1
    assert q.head().seq == 1
    assert len(q) == 1


def test_exhausted_middle_is_skipped_until_it_reaches_the_front():
    q = AllocationQueue([_a(0, 5), _a(1, 7), _a(2, 9)])
    middle = list(q)[1]
    middle.release(7)
    assert q.compact() == 0
    assert [a.seq for a in q.live()] == [0, 2]
    assert len(q) == 3

    q.head().release(5)
    assert q.compact() == 2
    assert [a.seq for a in q] == [2]


def test_release_moves_units_without_changing_total():
    a = _a(0, 100)
    a.release(30)
    assert (a.amount, a.released, a.total) == (70, 30, 100)
    assert not a.exhausted


def test_empty_and_fully_exhausted_queues_are_falsy():
    assert not AllocationQueue()
    q = AllocationQueue([_a(0, 1)])
    assert q
    q.head().release(1)
    assert not q
    assert q.head() is None


def test_cannot_enqueue_an_exhausted_allocation():
    with pytest.raises(ValueError):
        AllocationQueue().append(_a(0, 0, released=4))


def test_restoring_from_rows_drops_exhausted_front():
    q = AllocationQueue.from_list([_a(0, 0, 8).to_dict(), _a(1, 3).to_dict()])
    assert [a.seq for a in q] == [1]
    assert q.to_list() == [_a(1, 3).to_dict()]
