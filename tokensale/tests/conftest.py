# -*- coding: utf-8 -*-
"""
tokensale.tests.conftest
========================

Pytest fixtures for sale tests.

- Stable, non-zero addresses for the owner, vault, sale and two buyers.
- A `ManualClock` the sale reads from; tests move time explicitly.
- `make_sale(**overrides)`: builds a TokenSale over fresh TokenBanks, funds
  the sale with sale units and both buyers with payment units.

Usage (inside a test file):
    def test_something(sale, clock):
        clock.set(START)
        sale.whitelist_add(OWNER, [ALICE])
        sale.purchase(ALICE, 10)
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

import pytest

from tokensale.config import SaleConfig, VestingParams
from tokensale.ledger.vesting import DAY
from tokensale.sale.assets import TokenBank
from tokensale.sale.contract import TokenSale

OWNER = "0x" + "a" * 40
VAULT = "0x" + "b" * 40
SALE = "0x" + "5" * 40
ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40

T0 = 1_700_000_000
START = T0 + 100
END = START + 30 * DAY
YEAR = 365 * DAY

RATE = 100
SALE_FUNDING = 10_000_000
BUYER_FUNDING = 1_000_000


class ManualClock:
    def __init__(self, t: int) -> None:
        self.t = t

    def __call__(self) -> int:
        return self.t

    def set(self, t: int) -> None:
        self.t = t

    def advance(self, seconds: int) -> None:
        self.t += seconds


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T0)


@pytest.fixture
def config() -> SaleConfig:
    return SaleConfig(
        rate=RATE,
        sale_start=START,
        sale_end=END,
        owner=OWNER,
        vault=VAULT,
        vesting=VestingParams(cliff_seconds=YEAR, period_seconds=YEAR),
    )


@pytest.fixture
def make_sale(config: SaleConfig, clock: ManualClock) -> Callable[..., TokenSale]:
    def _make(funding: int = SALE_FUNDING, **overrides: Any) -> TokenSale:
        cfg = replace(config, **overrides)
        payment = TokenBank("PAY", {ALICE: BUYER_FUNDING, BOB: BUYER_FUNDING})
        token = TokenBank("SALE", {SALE: funding})
        return TokenSale(cfg, address=SALE, payment_asset=payment, sale_asset=token, clock=clock)

    return _make


@pytest.fixture
def sale(make_sale: Callable[..., TokenSale]) -> TokenSale:
    return make_sale()


@pytest.fixture
def open_sale(sale: TokenSale, clock: ManualClock) -> TokenSale:
    """A sale in its window with ALICE and BOB whitelisted."""
    sale.whitelist_add(OWNER, [ALICE, BOB])
    clock.set(START)
    return sale
