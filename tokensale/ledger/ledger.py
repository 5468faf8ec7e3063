from __future__ import annotations

"""
Allocation ledger: per-buyer allocation queues, vesting queries and claim
settlement.

Settlement is split in two phases. `plan_claim()` walks the buyer's queue and
computes what the settled allocations would release at `now` without touching state;
`apply()` then moves the planned units from `amount` to `released`, bumps the
buyer's lifetime `released_total` and compacts the queue. A plan that fails
(no allocation, nothing vested, arithmetic fault) therefore leaves the ledger
exactly as it was.

Two settlement shapes are supported and fixed per ledger:

- ``SettlementMode.SWEEP``: every live allocation contributes its releasable
  amount, oldest first.
- ``SettlementMode.FRONT``: only the oldest live allocation contributes; once
  it is exhausted it is dropped and the next one becomes the front.

The ledger does no transfers and no access control; the sale contract wraps
it with those.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .. import uint
from ..errors import NoAllocation, NothingVested
from .accounts import BuyerAccount
from .allocation import Allocation, Amount, Timestamp
from .vesting import VestingSchedule

log = logging.getLogger(__name__)


class SettlementMode(str, Enum):
    SWEEP = "sweep"
    FRONT = "front"


@dataclass(frozen=True)
class Settlement:
    """A computed (and possibly applied) claim: which allocation pays how much."""

    buyer: str
    now: Timestamp
    total: Amount
    parts: Tuple[Tuple[int, Amount], ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "buyer": self.buyer,
            "now": self.now,
            "total": self.total,
            "parts": [{"seq": s, "units": u} for s, u in self.parts],
        }


class AllocationLedger:
    def __init__(
        self,
        schedule: Optional[VestingSchedule] = None,
        mode: SettlementMode = SettlementMode.SWEEP,
    ) -> None:
        self.schedule = schedule or VestingSchedule()
        self.mode = SettlementMode(mode)
        self._accounts: Dict[str, BuyerAccount] = {}

    # ---- accounts -----------------------------------------------------------

    def account(self, buyer: str) -> BuyerAccount:
        """Get-or-create the account record for `buyer`."""
        acct = self._accounts.get(buyer)
        if acct is None:
            acct = BuyerAccount(buyer=buyer)
            self._accounts[buyer] = acct
        return acct

    def peek(self, buyer: str) -> Optional[BuyerAccount]:
        return self._accounts.get(buyer)

    def buyers(self) -> Iterator[str]:
        return iter(sorted(self._accounts))

    # ---- recording ----------------------------------------------------------

    def record(self, buyer: str, amount: Amount, now: Timestamp) -> Allocation:
        """Append a new allocation of `amount` units purchased at `now`."""
        uint.require_u256(amount, now)
        if amount == 0:
            raise ValueError("allocation amount must be > 0")
        acct = self.account(buyer)
        alloc = acct.add_allocation(
            purchased_at=now,
            vesting_start=self.schedule.start_for(now),
            amount=amount,
        )
        log.debug(
            "ledger: recorded buyer=%s seq=%d amount=%d vesting_start=%d",
            buyer, alloc.seq, amount, alloc.vesting_start,
        )
        return alloc

    # ---- queries ------------------------------------------------------------

    def allocations(self, buyer: str) -> List[Allocation]:
        """Copies of the buyer's live allocations, oldest first."""
        acct = self.peek(buyer)
        if acct is None:
            return []
        return [Allocation(**a.to_dict()) for a in acct.allocations.live()]

    def releasable_amount(self, buyer: str, now: Timestamp) -> Amount:
        """What the next claim at `now` would pay under this ledger's settlement mode."""
        acct = self.peek(buyer)
        if acct is None:
            return 0
        return sum(units for _, units in self._claimable(acct, now))

    def vested_amount(self, buyer: str, now: Timestamp) -> Amount:
        """Lifetime vested units: already released plus what every live allocation has vested."""
        acct = self.peek(buyer)
        if acct is None:
            return 0
        return acct.released_total + sum(self.schedule.releasable(a, now) for a in acct.allocations.live())

    def released_amount(self, buyer: str) -> Amount:
        acct = self.peek(buyer)
        return acct.released_total if acct else 0

    def purchased_amount(self, buyer: str) -> Amount:
        acct = self.peek(buyer)
        return acct.purchased_total if acct else 0

    # ---- settlement ---------------------------------------------------------

    def _claimable(self, acct: BuyerAccount, now: Timestamp) -> Iterator[Tuple[int, Amount]]:
        """(seq, units) for each allocation a claim at `now` would touch."""
        for alloc in acct.allocations.live():
            units = self.schedule.releasable(alloc, now)
            if units:
                yield alloc.seq, units
            if self.mode is SettlementMode.FRONT:
                break

    def plan_claim(self, buyer: str, now: Timestamp) -> Settlement:
        acct = self.peek(buyer)
        if acct is None or not acct.allocations.has_live():
            raise NoAllocation(buyer=buyer)

        parts: List[Tuple[int, Amount]] = []
        total = 0
        for seq, units in self._claimable(acct, now):
            parts.append((seq, units))
            total = uint.add(total, units)

        if total == 0:
            raise NothingVested(buyer=buyer, now=now)
        return Settlement(buyer=buyer, now=now, total=total, parts=tuple(parts))

    def apply(self, settlement: Settlement) -> int:
        """Apply a planned settlement; return the number of allocations removed."""
        acct = self.account(settlement.buyer)
        by_seq = {a.seq: a for a in acct.allocations.live()}
        for seq, units in settlement.parts:
            by_seq[seq].release(units)
        acct.released_total = uint.add(acct.released_total, settlement.total)
        removed = acct.allocations.compact()
        log.debug(
            "ledger: settled buyer=%s total=%d parts=%d removed=%d",
            settlement.buyer, settlement.total, len(settlement.parts), removed,
        )
        return removed

    def claim(self, buyer: str, now: Timestamp) -> Settlement:
        settlement = self.plan_claim(buyer, now)
        self.apply(settlement)
        return settlement

    # ---- checkpoints & persistence -----------------------------------------

    def snapshot_account(self, buyer: str) -> Optional[Dict[str, Any]]:
        acct = self.peek(buyer)
        return acct.snapshot() if acct is not None else None

    def restore_account(self, buyer: str, snap: Optional[Dict[str, Any]]) -> None:
        if snap is None:
            self._accounts.pop(buyer, None)
        else:
            self._accounts[buyer] = BuyerAccount.restore(snap)

    def dump(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "schedule": {
                "cliff_seconds": self.schedule.cliff_seconds,
                "period_seconds": self.schedule.period_seconds,
            },
            "accounts": {
                k: v.snapshot() for k, v in sorted(self._accounts.items()) if not v.is_blank()
            },
        }

    @classmethod
    def load(cls, data: Dict[str, Any]) -> "AllocationLedger":
        sched = data.get("schedule", {})
        ledger = cls(
            schedule=VestingSchedule(
                cliff_seconds=int(sched.get("cliff_seconds", VestingSchedule().cliff_seconds)),
                period_seconds=int(sched.get("period_seconds", VestingSchedule().period_seconds)),
            ),
            mode=SettlementMode(data.get("mode", SettlementMode.SWEEP.value)),
        )
        for k, v in data.get("accounts", {}).items():
            ledger._accounts[k] = BuyerAccount.restore(v)
        return ledger


__all__ = ["AllocationLedger", "Settlement", "SettlementMode"]
