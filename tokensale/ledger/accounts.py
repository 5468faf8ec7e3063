from __future__ import annotations

"""
Per-buyer account records.

A BuyerAccount is the only owner of its allocations. `purchased_total` only
feeds purchase-limit checks and keeps growing as the buyer buys, while the
allocations' `amount` fields shrink as claims settle. `released_total` is the
lifetime sum of claimed units.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from .. import uint
from .allocation import Allocation, AllocationQueue, Amount


@dataclass
class BuyerAccount:
    buyer: str
    purchased_total: Amount = 0
    released_total: Amount = 0
    limit_override: Amount = 0  # 0 = use the global default
    whitelisted: bool = False
    allocations: AllocationQueue = field(default_factory=AllocationQueue)
    next_seq: int = 0

    def add_allocation(self, *, purchased_at: int, vesting_start: int, amount: Amount) -> Allocation:
        alloc = Allocation(
            seq=self.next_seq,
            purchased_at=purchased_at,
            vesting_start=vesting_start,
            amount=amount,
        )
        self.allocations.append(alloc)
        self.next_seq += 1
        self.purchased_total = uint.add(self.purchased_total, amount)
        return alloc

    def is_blank(self) -> bool:
        """True when the record carries no information worth keeping."""
        return (
            self.purchased_total == 0
            and self.released_total == 0
            and self.limit_override == 0
            and not self.whitelisted
            and len(self.allocations) == 0
        )

    def snapshot(self) -> Dict[str, Any]:
        return {
            "buyer": self.buyer,
            "purchased_total": self.purchased_total,
            "released_total": self.released_total,
            "limit_override": self.limit_override,
            "whitelisted": self.whitelisted,
            "next_seq": self.next_seq,
            "allocations": self.allocations.to_list(),
        }

    @staticmethod
    def restore(d: Dict[str, Any]) -> "BuyerAccount":
        return BuyerAccount(
            buyer=str(d["buyer"]),
            purchased_total=int(d.get("purchased_total", 0)),
            released_total=int(d.get("released_total", 0)),
            limit_override=int(d.get("limit_override", 0)),
            whitelisted=bool(d.get("whitelisted", False)),
            allocations=AllocationQueue.from_list(d.get("allocations", [])),
            next_seq=int(d.get("next_seq", 0)),
        )


__all__ = ["BuyerAccount"]
