from __future__ import annotations

"""
tokensale.ledger
================

Allocation/vesting accounting engine: allocations, buyer accounts, the
cliff-then-linear schedule and FIFO claim settlement. Pure integer math,
no I/O, no clocks (callers pass `now`).
"""

from .accounts import BuyerAccount
from .allocation import Allocation, AllocationQueue
from .ledger import AllocationLedger, Settlement, SettlementMode
from .vesting import DAY, VestingSchedule

__all__ = [
    "Allocation",
    "AllocationQueue",
    "AllocationLedger",
    "BuyerAccount",
    "DAY",
    "Settlement",
    "SettlementMode",
    "VestingSchedule",
]
