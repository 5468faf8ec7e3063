"""
tokensale.events: append-only event log for sale operations.

Each successful state change emits one SaleEvent per affected address;
idempotent admin calls that change nothing emit none. Events are
immutable, carry a per-log sequence number and the timestamp the operation
observed, and are only appended after the operation's external transfer (if
any) succeeded, so a rolled-back call never leaves an event behind.

Event names
-----------
- Purchased           {buyer, payment, units}
- Released            {buyer, units}
- VaultChanged        {previous, vault}
- WhitelistAdded      {address, limit}
- WhitelistRemoved    {address}
- PurchaseLimitSet    {buyer, limit}     buyer == "" for the global limit
- PublicSaleStarted   {}
- Paused / Unpaused   {sender}
- SaleStartChanged    {previous, sale_start}
- SaleEndChanged      {previous, sale_end}
- UnsoldWithdrawn     {to, units}
- OwnershipTransferred {previous, new}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

log = logging.getLogger(__name__)

PURCHASED = "Purchased"
RELEASED = "Released"
VAULT_CHANGED = "VaultChanged"
WHITELIST_ADDED = "WhitelistAdded"
WHITELIST_REMOVED = "WhitelistRemoved"
PURCHASE_LIMIT_SET = "PurchaseLimitSet"
PUBLIC_SALE_STARTED = "PublicSaleStarted"
PAUSED = "Paused"
UNPAUSED = "Unpaused"
SALE_START_CHANGED = "SaleStartChanged"
SALE_END_CHANGED = "SaleEndChanged"
UNSOLD_WITHDRAWN = "UnsoldWithdrawn"
OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


@dataclass(frozen=True)
class SaleEvent:
    seq: int
    name: str
    timestamp: int
    args: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"seq": self.seq, "name": self.name, "timestamp": self.timestamp, "args": dict(self.args)}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "SaleEvent":
        return SaleEvent(
            seq=int(d["seq"]),
            name=str(d["name"]),
            timestamp=int(d["timestamp"]),
            args=dict(d.get("args", {})),
        )


Subscriber = Callable[[SaleEvent], None]


class EventLog:
    """Append-only, ordered list of SaleEvent with optional subscribers."""

    def __init__(self, events: Optional[Iterable[SaleEvent]] = None) -> None:
        self._events: List[SaleEvent] = list(events or ())
        self._subscribers: List[Subscriber] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[SaleEvent]:
        return iter(self._events)

    def emit(self, name: str, timestamp: int, **args: Any) -> SaleEvent:
        ev = SaleEvent(seq=len(self._events), name=name, timestamp=int(timestamp), args=args)
        self._events.append(ev)
        for fn in list(self._subscribers):
            try:
                fn(ev)
            except Exception:
                # subscribers observe; they cannot veto a committed operation
                log.exception("events: subscriber failed for %s #%d", name, ev.seq)
        return ev

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        """Register `fn`; returns a callable that unsubscribes it."""
        self._subscribers.append(fn)

        def _unsubscribe() -> None:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

        return _unsubscribe

    def by_name(self, name: str) -> List[SaleEvent]:
        return [e for e in self._events if e.name == name]

    def last(self) -> Optional[SaleEvent]:
        return self._events[-1] if self._events else None

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._events]

    @classmethod
    def from_list(cls, rows: Iterable[Mapping[str, Any]]) -> "EventLog":
        return cls(SaleEvent.from_dict(r) for r in rows)


__all__ = [
    "SaleEvent",
    "EventLog",
    "PURCHASED",
    "RELEASED",
    "VAULT_CHANGED",
    "WHITELIST_ADDED",
    "WHITELIST_REMOVED",
    "PURCHASE_LIMIT_SET",
    "PUBLIC_SALE_STARTED",
    "PAUSED",
    "UNPAUSED",
    "SALE_START_CHANGED",
    "SALE_END_CHANGED",
    "UNSOLD_WITHDRAWN",
    "OWNERSHIP_TRANSFERRED",
]
