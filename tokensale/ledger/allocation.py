from __future__ import annotations

"""
Allocations: one vesting tranche per purchase, kept in purchase order.

An Allocation splits its original size between `amount` (not yet released)
and `released` (already paid out). The split moves in one direction only and
the sum never changes. An allocation whose `amount` reaches zero is
*exhausted*; the queue drops exhausted allocations from its front so the
next-oldest becomes the head in O(1).

Exhausted allocations behind a live head (possible when a younger tranche
finishes first, e.g. under sweep settlement with a larger rounding step) stay
in place, are skipped by iteration over `live()`, and are dropped once they
reach the front.
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterable, Iterator, List, Optional

from .. import uint

Amount = int
Timestamp = int


@dataclass
class Allocation:
    seq: int
    purchased_at: Timestamp
    vesting_start: Timestamp
    amount: Amount
    released: Amount = 0

    @property
    def total(self) -> Amount:
        return self.amount + self.released

    @property
    def exhausted(self) -> bool:
        return self.amount == 0

    def release(self, units: Amount) -> None:
        """Move `units` from amount to released."""
        self.amount = uint.sub(self.amount, units)
        self.released = uint.add(self.released, units)

    def to_dict(self) -> Dict[str, int]:
        return {
            "seq": self.seq,
            "purchased_at": self.purchased_at,
            "vesting_start": self.vesting_start,
            "amount": self.amount,
            "released": self.released,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Allocation":
        return Allocation(
            seq=int(d["seq"]),
            purchased_at=int(d.get("purchased_at", 0)),
            vesting_start=int(d["vesting_start"]),
            amount=int(d["amount"]),
            released=int(d.get("released", 0)),
        )


class AllocationQueue:
    """FIFO of allocations for a single buyer."""

    def __init__(self, items: Optional[Iterable[Allocation]] = None) -> None:
        self._items: Deque[Allocation] = deque(items or ())
        self.compact()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Allocation]:
        return iter(self._items)

    def __bool__(self) -> bool:
        return self.has_live()

    def append(self, alloc: Allocation) -> None:
        if alloc.exhausted:
            raise ValueError("cannot enqueue an exhausted allocation")
        self._items.append(alloc)

    def head(self) -> Optional[Allocation]:
        self.compact()
        return self._items[0] if self._items else None

    def live(self) -> Iterator[Allocation]:
        """Iterate non-exhausted allocations, oldest first."""
        return (a for a in self._items if not a.exhausted)

    def has_live(self) -> bool:
        return any(not a.exhausted for a in self._items)

    def compact(self) -> int:
        """Drop exhausted allocations from the front; return how many were dropped."""
        n = 0
        while self._items and self._items[0].exhausted:
            self._items.popleft()
            n += 1
        return n

    def to_list(self) -> List[Dict[str, int]]:
        return [a.to_dict() for a in self._items]

    @classmethod
    def from_list(cls, rows: Iterable[Dict[str, Any]]) -> "AllocationQueue":
        return cls(Allocation.from_dict(r) for r in rows)


__all__ = ["Allocation", "AllocationQueue", "Amount", "Timestamp"]
