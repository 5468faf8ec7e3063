# -*- coding: utf-8 -*-
"""
tokensale.sale.assets
=====================

The two assets a sale moves are external collaborators. The sale only needs
two capabilities from each of them:

    balance_of(holder) -> int
    transfer(sender, recipient, amount) -> None      # all-or-nothing

`transfer` must either move the full amount or raise (``TransferFailed`` or
any ``SaleError``) without side effects. The sale uses:

- payment asset: ``transfer(buyer, vault, payment)``   ("debit buyer, credit vault")
- sale asset:    ``transfer(sale, recipient, units)``  ("credit recipient")
- sale asset:    ``balance_of(sale)``                  (held balance for supply checks)

``TokenBank`` is a deterministic in-memory fungible token implementing that
protocol (plus mint and JSON dump/load) for tests, the CLI and local
simulations.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from .. import uint
from ..errors import TransferFailed

log = logging.getLogger(__name__)


@runtime_checkable
class Asset(Protocol):
    def balance_of(self, holder: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...


class TokenBank:
    """In-memory fungible token ledger (balances only, no allowances)."""

    def __init__(self, symbol: str = "TOKEN", balances: Optional[Mapping[str, int]] = None) -> None:
        self.symbol = symbol
        self._balances: Dict[str, int] = {k: int(v) for k, v in (balances or {}).items() if int(v)}

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def mint(self, to: str, amount: int) -> None:
        uint.require_u256(amount)
        self._balances[to] = uint.add(self.balance_of(to), amount)
        log.debug("bank[%s]: mint to=%s amount=%d", self.symbol, to, amount)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise TransferFailed(f"{self.symbol}: bad amount", details={"amount": repr(amount)})
        have = self.balance_of(sender)
        if amount > have:
            raise TransferFailed(
                f"{self.symbol}: insufficient balance",
                details={"sender": sender, "balance": have, "amount": amount},
            )
        if sender == recipient or amount == 0:
            return
        self._set(sender, have - amount)
        self._set(recipient, uint.add(self.balance_of(recipient), amount))
        log.debug("bank[%s]: transfer %s -> %s amount=%d", self.symbol, sender, recipient, amount)

    def _set(self, holder: str, value: int) -> None:
        if value:
            self._balances[holder] = value
        else:
            self._balances.pop(holder, None)

    def dump(self) -> Dict[str, Any]:
        return {"symbol": self.symbol, "balances": dict(sorted(self._balances.items()))}

    @classmethod
    def load(cls, data: Mapping[str, Any]) -> "TokenBank":
        return cls(symbol=str(data.get("symbol", "TOKEN")), balances=data.get("balances", {}))


__all__ = ["Asset", "TokenBank"]
