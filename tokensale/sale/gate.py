from __future__ import annotations

"""
Sale gate: purchase admission.

`admit()` runs every purchase precondition against a consistent view of the
sale state and the buyer's account and returns the sale units the payment
buys. It never mutates anything; the caller records the allocation only
after admission succeeded, so a rejected purchase leaves no trace.

Pricing direction is fixed: ``sale_units = payment_amount * rate`` where
``rate`` is sale-asset units per one payment-asset unit.

Check order:
  1) payment_amount > 0                       -> InvalidAmount
  2) sale_start <= now < sale_end             -> SaleInactive
  3) not paused                               -> Paused
  4) presale => buyer whitelisted             -> NotWhitelisted
  5) units <= remaining supply                -> InsufficientSupply
  6) purchased + units < effective limit      -> PurchaseLimitExceeded
"""

import logging

from .. import uint
from ..errors import (InsufficientSupply, InvalidAmount, NotWhitelisted,
                      Paused, PurchaseLimitExceeded, SaleInactive)
from ..ledger.ledger import AllocationLedger
from .state import SaleState

log = logging.getLogger(__name__)


class SaleGate:
    def __init__(self, state: SaleState, ledger: AllocationLedger) -> None:
        self.state = state
        self.ledger = ledger

    def quote(self, payment_amount: int) -> int:
        """Sale units bought by `payment_amount` payment units."""
        return uint.mul(payment_amount, self.state.rate)

    def effective_limit(self, buyer: str) -> int:
        """Per-buyer override if set, else the global limit; 0 means unlimited."""
        acct = self.ledger.peek(buyer)
        if acct is not None and acct.limit_override:
            return acct.limit_override
        return self.state.global_purchase_limit

    def is_whitelisted(self, buyer: str) -> bool:
        acct = self.ledger.peek(buyer)
        return bool(acct and acct.whitelisted)

    def admit(self, buyer: str, payment_amount: int, *, now: int, held_balance: int) -> int:
        st = self.state
        if isinstance(payment_amount, bool) or not isinstance(payment_amount, int) or payment_amount <= 0:
            raise InvalidAmount("payment amount must be a positive integer",
                                details={"payment_amount": repr(payment_amount)})
        if not st.is_active(now):
            raise SaleInactive(now=now, sale_start=st.sale_start, sale_end=st.sale_end)
        if st.paused:
            raise Paused()
        if st.presale and not self.is_whitelisted(buyer):
            raise NotWhitelisted(buyer=buyer)

        units = self.quote(payment_amount)
        remaining = st.remaining(held_balance)
        if units > remaining:
            raise InsufficientSupply(requested=units, remaining=remaining)

        limit = self.effective_limit(buyer)
        purchased = self.ledger.purchased_amount(buyer)
        if limit and uint.add(purchased, units) >= limit:
            raise PurchaseLimitExceeded(buyer=buyer, limit=limit, purchased=purchased, requested=units)

        log.debug("gate: admitted buyer=%s payment=%d units=%d", buyer, payment_amount, units)
        return units


__all__ = ["SaleGate"]
