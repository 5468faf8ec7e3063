from __future__ import annotations

"""
Cliff-then-linear vesting schedule.

For an allocation of original size ``total`` whose cliff ends at
``vesting_start``:

    now <  vesting_start                      -> 0
    now >= vesting_start + period             -> total
    otherwise                                 -> floor(total * (now - vesting_start) / period)

Pure integer math; the function is monotonic non-decreasing in ``now`` and
exact at both endpoints.
"""

from dataclasses import dataclass
from typing import Final

from .. import uint
from .allocation import Allocation, Amount, Timestamp

DAY: Final[int] = 24 * 60 * 60
DEFAULT_CLIFF_SECONDS: Final[int] = 365 * DAY
DEFAULT_PERIOD_SECONDS: Final[int] = 365 * DAY


@dataclass(frozen=True)
class VestingSchedule:
    cliff_seconds: int = DEFAULT_CLIFF_SECONDS
    period_seconds: int = DEFAULT_PERIOD_SECONDS

    def __post_init__(self) -> None:
        if self.cliff_seconds < 0:
            raise ValueError(f"cliff_seconds must be >= 0, got {self.cliff_seconds}")
        if self.period_seconds <= 0:
            raise ValueError(f"period_seconds must be > 0, got {self.period_seconds}")

    def start_for(self, purchased_at: Timestamp) -> Timestamp:
        return uint.add(purchased_at, self.cliff_seconds)

    def fully_vested_at(self, alloc: Allocation) -> Timestamp:
        return uint.add(alloc.vesting_start, self.period_seconds)

    def vested(self, alloc: Allocation, now: Timestamp) -> Amount:
        total = alloc.total
        if now < alloc.vesting_start:
            return 0
        if now >= self.fully_vested_at(alloc):
            return total
        return uint.mul_div_down(total, now - alloc.vesting_start, self.period_seconds)

    def releasable(self, alloc: Allocation, now: Timestamp) -> Amount:
        # a clock reading earlier than the last claim releases nothing
        return uint.sub_floor(self.vested(alloc, now), alloc.released)


__all__ = [
    "DAY",
    "DEFAULT_CLIFF_SECONDS",
    "DEFAULT_PERIOD_SECONDS",
    "VestingSchedule",
]
