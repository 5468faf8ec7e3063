from __future__ import annotations

"""
Prometheus metrics for the token sale.

We expose counters, gauges and histograms covering:
- purchases: admitted purchases and sale units sold
- claims: settled claims, released units, allocations touched per claim
- rejections: refused operations by error code
- admin: privileged configuration calls by action
- supply: total sold and outstanding (owed, unreleased) units
- latency: time spent inside a sale operation

The module keeps its own registry so embedding apps can choose to merge or
expose it directly.
"""


import time
from contextlib import contextmanager
from typing import Optional

from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, Histogram, generate_latest)

REGISTRY = CollectorRegistry()

# ────────────────────────────────────────────────────────────────────────────────
# Label conventions
#   op: "purchase" | "claim" | "admin"
#   code: SaleError.code, e.g. "SALE_PAUSED"
#   action: admin operation name, e.g. "pause"
# ────────────────────────────────────────────────────────────────────────────────

PURCHASES = Counter(
    "tokensale_purchases_total",
    "Total admitted purchases.",
    registry=REGISTRY,
)

UNITS_SOLD = Counter(
    "tokensale_units_sold_total",
    "Total sale units allocated by purchases.",
    registry=REGISTRY,
)

CLAIMS = Counter(
    "tokensale_claims_total",
    "Total settled claims by settlement mode.",
    labelnames=("mode",),
    registry=REGISTRY,
)

UNITS_RELEASED = Counter(
    "tokensale_units_released_total",
    "Total sale units released to buyers.",
    registry=REGISTRY,
)

REJECTIONS = Counter(
    "tokensale_rejections_total",
    "Rejected operations by operation and error code.",
    labelnames=("op", "code"),
    registry=REGISTRY,
)

ROLLBACKS = Counter(
    "tokensale_rollbacks_total",
    "Operations rolled back after an external transfer failed.",
    labelnames=("op",),
    registry=REGISTRY,
)

ADMIN_ACTIONS = Counter(
    "tokensale_admin_actions_total",
    "Privileged configuration calls by action.",
    labelnames=("action",),
    registry=REGISTRY,
)

TOTAL_SOLD = Gauge(
    "tokensale_total_sold_units",
    "Sum of all allocation sizes ever created.",
    registry=REGISTRY,
)

OUTSTANDING = Gauge(
    "tokensale_outstanding_units",
    "Units allocated to buyers and not yet released.",
    registry=REGISTRY,
)

ALLOCATIONS_PER_CLAIM = Histogram(
    "tokensale_allocations_per_claim",
    "Number of allocations that paid out in a single claim.",
    buckets=(1, 2, 3, 5, 8, 13, 21, 50),
    registry=REGISTRY,
)

OP_SECONDS = Histogram(
    "tokensale_operation_seconds",
    "Time spent inside a sale operation.",
    labelnames=("op",),
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
    registry=REGISTRY,
)

# ────────────────────────────────────────────────────────────────────────────────
# Recording helpers
# ────────────────────────────────────────────────────────────────────────────────


def record_purchase(units: int) -> None:
    PURCHASES.inc()
    UNITS_SOLD.inc(units)


def record_claim(mode: str, units: int, parts: int) -> None:
    CLAIMS.labels(mode=mode).inc()
    UNITS_RELEASED.inc(units)
    ALLOCATIONS_PER_CLAIM.observe(parts)


def record_rejection(op: str, code: str) -> None:
    REJECTIONS.labels(op=op, code=code).inc()


def record_rollback(op: str) -> None:
    ROLLBACKS.labels(op=op).inc()


def record_admin(action: str) -> None:
    ADMIN_ACTIONS.labels(action=action).inc()


def set_supply(total_sold: int, outstanding: int) -> None:
    """Refresh supply gauges after a state change."""
    TOTAL_SOLD.set(total_sold)
    OUTSTANDING.set(outstanding)


@contextmanager
def time_operation(op: str):
    """Context manager to observe time spent in an operation."""
    start = time.perf_counter()
    try:
        yield
    finally:
        OP_SECONDS.labels(op=op).observe(time.perf_counter() - start)


def render(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Prometheus text exposition of the registry."""
    return generate_latest(registry or REGISTRY)


def make_prometheus_asgi_app(registry: Optional[CollectorRegistry] = None):
    """
    Return a minimal ASGI app that serves Prometheus metrics at '/'.
    No external web framework required.
    """
    reg = registry or REGISTRY

    async def app(scope, receive, send):  # type: ignore[override]
        if scope["type"] != "http" or (scope.get("path") or "/") != "/":
            await send({"type": "http.response.start", "status": 404, "headers": []})
            await send({"type": "http.response.body", "body": b"Not Found"})
            return
        headers = [
            (b"content-type", CONTENT_TYPE_LATEST.encode("ascii")),
            (b"cache-control", b"no-cache, no-store, must-revalidate"),
        ]
        await send({"type": "http.response.start", "status": 200, "headers": headers})
        await send({"type": "http.response.body", "body": generate_latest(reg)})

    return app


__all__ = [
    "REGISTRY",
    "PURCHASES",
    "UNITS_SOLD",
    "CLAIMS",
    "UNITS_RELEASED",
    "REJECTIONS",
    "ROLLBACKS",
    "ADMIN_ACTIONS",
    "TOTAL_SOLD",
    "OUTSTANDING",
    "ALLOCATIONS_PER_CLAIM",
    "OP_SECONDS",
    "record_purchase",
    "record_claim",
    "record_rejection",
    "record_rollback",
    "record_admin",
    "set_supply",
    "time_operation",
    "render",
    "make_prometheus_asgi_app",
]
