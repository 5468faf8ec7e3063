from __future__ import annotations

"""
TokenSale: the sale contract (Sale Gate -> Allocation Ledger) plus admin
controls, asset transfers, events and persistence.

Execution model
---------------
Every public operation is one indivisible unit:

  1) take the sale lock (calls are serialized; the lock is re-entrant)
  2) read the clock once (or use the caller-supplied `now`)
  3) checkpoint the sale state and the touched buyer account
  4) validate, then update internal bookkeeping
  5) perform the external transfer, if any, *last*
  6) emit the event

If anything in 4) or 5) raises, the checkpoint is restored and the error
propagates unchanged: a failed call leaves no mutation, no transfer and no
event behind.

Buyer-facing operations
-----------------------
    purchase(buyer, payment_amount)  -> PurchaseReceipt(sale_units, event, ...)
    claim(buyer) / release(buyer)    -> ClaimReceipt(amount, event, ...)

Pricing is ``sale_units = payment_amount * rate``.

Claims settle oldest-first. The settlement shape ("sweep" or "front") is
taken from the config at construction and never changes for the sale.

Admin operations take the caller first and raise ``Unauthorized`` unless it
is the owner.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from .. import events as ev
from .. import metrics, uint
from ..access import Ownable, require_nonzero
from ..config import SaleConfig, from_dict
from ..errors import (InvalidAmount, InvalidConfiguration, LengthMismatch,
                      SaleAlreadyEnded, SaleAlreadyStarted, SaleError,
                      TransferFailed)
from ..events import EventLog, SaleEvent
from ..ledger.allocation import Allocation
from ..ledger.ledger import AllocationLedger, Settlement
from .assets import Asset
from .gate import SaleGate
from .state import SaleState

log = logging.getLogger(__name__)

Clock = Callable[[], int]

DUMP_VERSION = 1


def system_clock() -> int:
    return int(time.time())


@dataclass(frozen=True)
class PurchaseReceipt:
    buyer: str
    payment_amount: int
    sale_units: int
    allocation: Allocation
    event: SaleEvent


@dataclass(frozen=True)
class ClaimReceipt:
    buyer: str
    amount: int
    settlement: Settlement
    event: SaleEvent


class TokenSale:
    def __init__(
        self,
        config: SaleConfig,
        *,
        address: str,
        payment_asset: Asset,
        sale_asset: Asset,
        clock: Clock = system_clock,
        state: Optional[SaleState] = None,
        ledger: Optional[AllocationLedger] = None,
        events: Optional[EventLog] = None,
        owner: Optional[str] = None,
    ) -> None:
        # A fresh sale must not start in the past; a restored one already did.
        config.validate(now=clock() if state is None else None)
        self.config = config
        self.address = require_nonzero(address, "address")
        self.payment_asset = payment_asset
        self.sale_asset = sale_asset
        self.clock = clock
        self.state = state or SaleState.from_config(config)
        self.ledger = ledger or AllocationLedger(config.vesting.schedule(), config.settlement_mode())
        self.gate = SaleGate(self.state, self.ledger)
        self.access = Ownable(owner or config.owner)
        self.events = events if events is not None else EventLog()
        self._lock = RLock()

    # ------------------------------------------------------------------
    # Execution plumbing
    # ------------------------------------------------------------------

    def _now(self, now: Optional[int]) -> int:
        t = self.clock() if now is None else now
        uint.require_u256(t)
        return t

    def _rollback(self, state_cp: Dict[str, Any], buyer: Optional[str], acct_cp: Optional[Dict[str, Any]]) -> None:
        for k, v in state_cp.items():
            setattr(self.state, k, v)
        if buyer is not None:
            self.ledger.restore_account(buyer, acct_cp)

    @contextmanager
    def _operation(self, op: str, buyer: Optional[str] = None) -> Iterator[None]:
        with self._lock, metrics.time_operation(op):
            state_cp = self.state.snapshot()
            acct_cp = self.ledger.snapshot_account(buyer) if buyer is not None else None
            try:
                yield
            except Exception as e:
                self._rollback(state_cp, buyer, acct_cp)
                if isinstance(e, SaleError) and not isinstance(e, TransferFailed):
                    metrics.record_rejection(op, e.code)
                    log.debug("sale: %s rejected buyer=%s err=%s", op, buyer, e)
                else:
                    metrics.record_rollback(op)
                    log.warning("sale: %s rolled back buyer=%s err=%r", op, buyer, e)
                raise

    @contextmanager
    def _admin(self, action: str, caller: str, now: Optional[int], buyer: Optional[str] = None) -> Iterator[int]:
        with self._operation("admin", buyer):
            self.access.require_owner(caller)
            t = self._now(now)
            yield t
            metrics.record_admin(action)
            log.info("sale: admin %s by %s", action, caller)

    def _refresh_supply(self) -> None:
        metrics.set_supply(self.state.total_sold, self.state.committed())

    # ------------------------------------------------------------------
    # Buyer-facing operations
    # ------------------------------------------------------------------

    def purchase(self, buyer: str, payment_amount: int, *, now: Optional[int] = None) -> PurchaseReceipt:
        """
        Exchange `payment_amount` payment units for `payment_amount * rate`
        sale units, recorded as a new allocation vesting after the cliff.
        """
        with self._operation("purchase", buyer):
            t = self._now(now)
            buyer = require_nonzero(buyer, "buyer")
            units = self.gate.admit(
                buyer,
                payment_amount,
                now=t,
                held_balance=self.sale_asset.balance_of(self.address),
            )
            alloc = self.ledger.record(buyer, units, t)
            self.state.total_sold = uint.add(self.state.total_sold, units)

            self.payment_asset.transfer(buyer, self.state.vault, payment_amount)

            event = self.events.emit(ev.PURCHASED, t, buyer=buyer, payment=payment_amount, units=units)
            metrics.record_purchase(units)
            self._refresh_supply()
            log.info("sale: purchase buyer=%s payment=%d units=%d seq=%d", buyer, payment_amount, units, alloc.seq)
            return PurchaseReceipt(
                buyer=buyer,
                payment_amount=payment_amount,
                sale_units=units,
                allocation=Allocation(**alloc.to_dict()),
                event=event,
            )

    def claim(self, buyer: str, *, now: Optional[int] = None) -> ClaimReceipt:
        """Release everything vested and unreleased for `buyer`, oldest allocation first."""
        with self._operation("claim", buyer):
            t = self._now(now)
            settlement = self.ledger.plan_claim(buyer, t)
            self.ledger.apply(settlement)
            self.state.total_released = uint.add(self.state.total_released, settlement.total)

            self.sale_asset.transfer(self.address, buyer, settlement.total)

            event = self.events.emit(ev.RELEASED, t, buyer=buyer, units=settlement.total)
            metrics.record_claim(self.ledger.mode.value, settlement.total, len(settlement.parts))
            self._refresh_supply()
            log.info("sale: release buyer=%s units=%d parts=%d", buyer, settlement.total, len(settlement.parts))
            return ClaimReceipt(buyer=buyer, amount=settlement.total, settlement=settlement, event=event)

    release = claim

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def owner(self) -> str:
        return self.access.owner

    def held_balance(self) -> int:
        return self.sale_asset.balance_of(self.address)

    def remaining_supply(self) -> int:
        with self._lock:
            return self.state.remaining(self.held_balance())

    def quote(self, payment_amount: int) -> int:
        return self.gate.quote(payment_amount)

    def is_sale_active(self, *, now: Optional[int] = None) -> bool:
        return self.state.is_active(self._now(now))

    def is_whitelisted(self, address: str) -> bool:
        return self.gate.is_whitelisted(address)

    def purchase_limit(self, buyer: str) -> int:
        """Effective purchase limit for `buyer` (0 = unlimited)."""
        return self.gate.effective_limit(buyer)

    def vested_amount(self, buyer: str, *, now: Optional[int] = None) -> int:
        with self._lock:
            return self.ledger.vested_amount(buyer, self._now(now))

    def releasable_amount(self, buyer: str, *, now: Optional[int] = None) -> int:
        with self._lock:
            return self.ledger.releasable_amount(buyer, self._now(now))

    def released_amount(self, buyer: str) -> int:
        return self.ledger.released_amount(buyer)

    def purchased_amount(self, buyer: str) -> int:
        return self.ledger.purchased_amount(buyer)

    def allocations(self, buyer: str) -> List[Allocation]:
        with self._lock:
            return self.ledger.allocations(buyer)

    def sale_info(self, *, now: Optional[int] = None) -> Dict[str, Any]:
        with self._lock:
            t = self._now(now)
            held = self.held_balance()
            return {
                "address": self.address,
                "owner": self.owner,
                "now": t,
                "active": self.state.is_active(t),
                "held_balance": held,
                "remaining_supply": self.state.remaining(held),
                "settlement": self.ledger.mode.value,
                "cliff_seconds": self.ledger.schedule.cliff_seconds,
                "period_seconds": self.ledger.schedule.period_seconds,
                **self.state.snapshot(),
            }

    # ------------------------------------------------------------------
    # Administrative controls (owner only)
    # ------------------------------------------------------------------

    def set_vault(self, caller: str, vault: str, *, now: Optional[int] = None) -> SaleEvent:
        with self._admin("set_vault", caller, now) as t:
            vault = require_nonzero(vault, "vault")
            previous, self.state.vault = self.state.vault, vault
            return self.events.emit(ev.VAULT_CHANGED, t, previous=previous, vault=vault)

    def set_purchase_limit(
        self,
        caller: str,
        amount: int,
        buyer: Optional[str] = None,
        *,
        now: Optional[int] = None,
    ) -> SaleEvent:
        """Set the global limit (buyer omitted) or a per-buyer override; 0 clears it."""
        with self._admin("set_purchase_limit", caller, now, buyer) as t:
            if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
                raise InvalidAmount("limit must be a non-negative integer", details={"amount": repr(amount)})
            if buyer is None:
                self.state.global_purchase_limit = amount
            else:
                buyer = require_nonzero(buyer, "buyer")
                self.ledger.account(buyer).limit_override = amount
            return self.events.emit(ev.PURCHASE_LIMIT_SET, t, buyer=buyer or "", limit=amount)

    def whitelist_add(
        self,
        caller: str,
        addresses: Sequence[str],
        limits: Optional[Sequence[int]] = None,
        *,
        now: Optional[int] = None,
    ) -> List[SaleEvent]:
        """
        Whitelist `addresses`; when `limits` is given it must pair 1:1 with
        them and sets each address's purchase-limit override.
        """
        with self._admin("whitelist_add", caller, now) as t:
            if limits is not None and len(limits) != len(addresses):
                raise LengthMismatch(left=len(addresses), right=len(limits))
            addrs = [require_nonzero(a, "address") for a in addresses]
            for lim in limits or ():
                if isinstance(lim, bool) or not isinstance(lim, int) or lim < 0:
                    raise InvalidAmount("limit must be a non-negative integer", details={"limit": repr(lim)})

            out: List[SaleEvent] = []
            for i, addr in enumerate(addrs):
                acct = self.ledger.account(addr)
                acct.whitelisted = True
                if limits is not None:
                    acct.limit_override = limits[i]
                out.append(self.events.emit(ev.WHITELIST_ADDED, t, address=addr, limit=acct.limit_override))
            return out

    def whitelist_remove(self, caller: str, addresses: Sequence[str], *, now: Optional[int] = None) -> List[SaleEvent]:
        with self._admin("whitelist_remove", caller, now) as t:
            addrs = [require_nonzero(a, "address") for a in addresses]
            out: List[SaleEvent] = []
            for addr in addrs:
                acct = self.ledger.peek(addr)
                if acct is None or not acct.whitelisted:
                    continue
                acct.whitelisted = False
                out.append(self.events.emit(ev.WHITELIST_REMOVED, t, address=addr))
            return out

    def start_public_sale(self, caller: str, *, now: Optional[int] = None) -> Optional[SaleEvent]:
        """Switch the whitelist gate off for good. Idempotent."""
        with self._admin("start_public_sale", caller, now) as t:
            if not self.state.presale:
                return None
            self.state.presale = False
            return self.events.emit(ev.PUBLIC_SALE_STARTED, t)

    def pause(self, caller: str, *, now: Optional[int] = None) -> Optional[SaleEvent]:
        """Idempotent: no event if already paused."""
        with self._admin("pause", caller, now) as t:
            if self.state.paused:
                return None
            self.state.paused = True
            return self.events.emit(ev.PAUSED, t, sender=caller)

    def unpause(self, caller: str, *, now: Optional[int] = None) -> Optional[SaleEvent]:
        with self._admin("unpause", caller, now) as t:
            if not self.state.paused:
                return None
            self.state.paused = False
            return self.events.emit(ev.UNPAUSED, t, sender=caller)

    def set_sale_start(self, caller: str, sale_start: int, *, now: Optional[int] = None) -> SaleEvent:
        with self._admin("set_sale_start", caller, now) as t:
            st = self.state
            if t >= st.sale_start:
                raise SaleAlreadyStarted("sale has already started", details={"sale_start": st.sale_start, "now": t})
            uint.require_u256(sale_start)
            if sale_start < t or sale_start >= st.sale_end:
                raise InvalidConfiguration(
                    "sale_start must be in [now, sale_end)",
                    details={"sale_start": sale_start, "sale_end": st.sale_end, "now": t},
                )
            previous, st.sale_start = st.sale_start, sale_start
            return self.events.emit(ev.SALE_START_CHANGED, t, previous=previous, sale_start=sale_start)

    def set_sale_end(self, caller: str, sale_end: int, *, now: Optional[int] = None) -> SaleEvent:
        with self._admin("set_sale_end", caller, now) as t:
            st = self.state
            if t >= st.sale_end:
                raise SaleAlreadyEnded("sale has already ended", details={"sale_end": st.sale_end, "now": t})
            uint.require_u256(sale_end)
            if sale_end <= st.sale_start or sale_end < t:
                raise InvalidConfiguration(
                    "sale_end must be after sale_start and not in the past",
                    details={"sale_start": st.sale_start, "sale_end": sale_end, "now": t},
                )
            previous, st.sale_end = st.sale_end, sale_end
            return self.events.emit(ev.SALE_END_CHANGED, t, previous=previous, sale_end=sale_end)

    def withdraw_unsold(self, caller: str, *, now: Optional[int] = None) -> SaleEvent:
        """Send every held sale unit not owed to a buyer back to the owner."""
        with self._admin("withdraw_unsold", caller, now) as t:
            units = self.state.remaining(self.held_balance())
            if units == 0:
                raise InvalidAmount("nothing to withdraw")
            self.sale_asset.transfer(self.address, self.owner, units)
            return self.events.emit(ev.UNSOLD_WITHDRAWN, t, to=self.owner, units=units)

    def transfer_ownership(self, caller: str, new_owner: str, *, now: Optional[int] = None) -> SaleEvent:
        with self._admin("transfer_ownership", caller, now) as t:
            previous = self.access.transfer_ownership(caller, new_owner)
            return self.events.emit(ev.OWNERSHIP_TRANSFERRED, t, previous=previous, new=self.owner)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def dump(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "version": DUMP_VERSION,
                "address": self.address,
                "owner": self.owner,
                "config": self.config.to_dict(),
                "state": self.state.snapshot(),
                "ledger": self.ledger.dump(),
                "events": self.events.to_list(),
            }

    @classmethod
    def load(
        cls,
        data: Dict[str, Any],
        *,
        payment_asset: Asset,
        sale_asset: Asset,
        clock: Clock = system_clock,
    ) -> "TokenSale":
        version = int(data.get("version", DUMP_VERSION))
        if version != DUMP_VERSION:
            raise InvalidConfiguration(f"unsupported sale dump version {version}")
        return cls(
            from_dict(data["config"]),
            address=str(data["address"]),
            payment_asset=payment_asset,
            sale_asset=sale_asset,
            clock=clock,
            state=SaleState.restore(data["state"]),
            ledger=AllocationLedger.load(data["ledger"]),
            events=EventLog.from_list(data.get("events", [])),
            owner=str(data["owner"]),
        )


__all__ = ["ClaimReceipt", "PurchaseReceipt", "TokenSale", "system_clock"]
