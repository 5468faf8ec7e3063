from __future__ import annotations

"""
Sale-wide scalar state.

One SaleState exists per sale. `total_sold` is the sum of every allocation
size ever created and never decreases; `total_released` is the sum of every
unit paid out by claims. Their difference is what the sale still owes its
buyers, which is what the held sale-asset balance must cover.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict

from .. import uint
from ..config import SaleConfig


@dataclass
class SaleState:
    rate: int
    sale_start: int
    sale_end: int
    vault: str
    presale: bool = True
    paused: bool = False
    global_purchase_limit: int = 0
    total_sold: int = 0
    total_released: int = 0

    @classmethod
    def from_config(cls, cfg: SaleConfig) -> "SaleState":
        return cls(
            rate=cfg.rate,
            sale_start=cfg.sale_start,
            sale_end=cfg.sale_end,
            vault=cfg.vault,
            presale=cfg.presale,
            global_purchase_limit=cfg.limits.global_purchase_limit,
        )

    def is_active(self, now: int) -> bool:
        return self.sale_start <= now < self.sale_end

    def committed(self) -> int:
        """Units sold and not yet released."""
        return uint.sub(self.total_sold, self.total_released)

    def remaining(self, held_balance: int) -> int:
        """Held sale-asset units not owed to any buyer."""
        return uint.sub_floor(held_balance, self.committed())

    def snapshot(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def restore(cls, d: Dict[str, Any]) -> "SaleState":
        return cls(
            rate=int(d["rate"]),
            sale_start=int(d["sale_start"]),
            sale_end=int(d["sale_end"]),
            vault=str(d["vault"]),
            presale=bool(d.get("presale", True)),
            paused=bool(d.get("paused", False)),
            global_purchase_limit=int(d.get("global_purchase_limit", 0)),
            total_sold=int(d.get("total_sold", 0)),
            total_released=int(d.get("total_released", 0)),
        )


__all__ = ["SaleState"]
