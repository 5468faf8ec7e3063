import pytest

from tokensale.errors import (InvalidAmount, InvalidConfiguration,
                              LengthMismatch, NonZeroAddressRequired, Paused,
                              SaleAlreadyEnded, SaleAlreadyStarted,
                              Unauthorized)
from tokensale.events import (OWNERSHIP_TRANSFERRED, PAUSED, UNPAUSED,
                              UNSOLD_WITHDRAWN, WHITELIST_ADDED)
from tokensale.access import ZERO_ADDRESS

from .conftest import ALICE, BOB, END, OWNER, SALE_FUNDING, START, VAULT, YEAR

ADMIN_CALLS = [
    ("set_vault", (BOB,)),
    ("set_purchase_limit", (10,)),
    ("whitelist_add", ([ALICE],)),
    ("whitelist_remove", ([ALICE],)),
    ("start_public_sale", ()),
    ("pause", ()),
    ("unpause", ()),
    ("set_sale_start", (START + 5,)),
    ("set_sale_end", (END + 5,)),
    ("withdraw_unsold", ()),
    ("transfer_ownership", (BOB,)),
]


@pytest.mark.parametrize("name,args", ADMIN_CALLS)
def test_admin_calls_require_the_owner(sale, name, args):
    n_events = len(sale.events)
    with pytest.raises(Unauthorized):
        getattr(sale, name)(ALICE, *args)
    assert len(sale.events) == n_events


def test_pause_blocks_purchases_and_is_idempotent(open_sale):
    sale = open_sale
    assert sale.pause(OWNER).name == PAUSED
    assert sale.pause(OWNER) is None
    with pytest.raises(Paused):
        sale.purchase(ALICE, 1)
    assert sale.unpause(OWNER).name == UNPAUSED
    assert sale.unpause(OWNER) is None
    assert sale.purchase(ALICE, 1).sale_units == 100


def test_claims_are_not_blocked_by_pause(open_sale, clock):
    sale = open_sale
    sale.purchase(ALICE, 1)
    sale.pause(OWNER)
    clock.set(START + 2 * YEAR)
    assert sale.claim(ALICE).amount == 100


def test_whitelist_add_with_limits_and_remove(sale):
    events = sale.whitelist_add(OWNER, [ALICE, BOB], [500, 0])
    assert [e.name for e in events] == [WHITELIST_ADDED, WHITELIST_ADDED]
    assert sale.is_whitelisted(ALICE) and sale.is_whitelisted(BOB)
    assert sale.purchase_limit(ALICE) == 500
    assert sale.purchase_limit(BOB) == 0

    removed = sale.whitelist_remove(OWNER, [ALICE, "0x" + "7" * 40])
    assert [e.args["address"] for e in removed] == [ALICE]
    assert not sale.is_whitelisted(ALICE)


def test_whitelist_add_validates_before_changing_anything(sale):
    with pytest.raises(LengthMismatch):
        sale.whitelist_add(OWNER, [ALICE, BOB], [1])
    with pytest.raises(NonZeroAddressRequired):
        sale.whitelist_add(OWNER, [ALICE, ZERO_ADDRESS])
    with pytest.raises(InvalidAmount):
        sale.whitelist_add(OWNER, [ALICE], [-1])
    assert not sale.is_whitelisted(ALICE)


def test_set_purchase_limit_global_and_override(sale):
    sale.set_purchase_limit(OWNER, 300)
    assert sale.purchase_limit(ALICE) == 300
    ev = sale.set_purchase_limit(OWNER, 900, ALICE)
    assert ev.args == {"buyer": ALICE, "limit": 900}
    assert sale.purchase_limit(ALICE) == 900
    assert sale.purchase_limit(BOB) == 300
    sale.set_purchase_limit(OWNER, 0, ALICE)
    assert sale.purchase_limit(ALICE) == 300
    with pytest.raises(InvalidAmount):
        sale.set_purchase_limit(OWNER, -5)


def test_set_vault_redirects_payments(open_sale):
    sale = open_sale
    with pytest.raises(NonZeroAddressRequired):
        sale.set_vault(OWNER, ZERO_ADDRESS)
    new_vault = "0x" + "c" * 40
    sale.set_vault(OWNER, new_vault)
    sale.purchase(ALICE, 3)
    assert sale.payment_asset.balance_of(new_vault) == 3
    assert sale.payment_asset.balance_of(VAULT) == 0


def test_reschedule_start_only_before_it_passes(sale, clock):
    sale.set_sale_start(OWNER, START + 50)
    assert sale.state.sale_start == START + 50
    with pytest.raises(InvalidConfiguration):
        sale.set_sale_start(OWNER, END)
    with pytest.raises(InvalidConfiguration):
        sale.set_sale_start(OWNER, clock() - 1)

    clock.set(START + 50)
    with pytest.raises(SaleAlreadyStarted):
        sale.set_sale_start(OWNER, START + 60)


def test_reschedule_end_only_before_it_passes(sale, clock):
    sale.set_sale_end(OWNER, END + 100)
    assert sale.state.sale_end == END + 100
    with pytest.raises(InvalidConfiguration):
        sale.set_sale_end(OWNER, START)

    clock.set(END + 100)
    with pytest.raises(SaleAlreadyEnded):
        sale.set_sale_end(OWNER, END + 200)


def test_withdraw_unsold_keeps_owed_units(open_sale, clock):
    sale = open_sale
    sale.purchase(ALICE, 10)
    ev = sale.withdraw_unsold(OWNER)
    assert ev.name == UNSOLD_WITHDRAWN
    assert ev.args == {"to": OWNER, "units": SALE_FUNDING - 1000}
    assert sale.sale_asset.balance_of(OWNER) == SALE_FUNDING - 1000
    assert sale.remaining_supply() == 0
    with pytest.raises(InvalidAmount):
        sale.withdraw_unsold(OWNER)

    # the buyer can still be paid in full
    clock.set(START + 2 * YEAR)
    assert sale.claim(ALICE).amount == 1000


def test_transfer_ownership(sale):
    with pytest.raises(NonZeroAddressRequired):
        sale.transfer_ownership(OWNER, ZERO_ADDRESS)
    ev = sale.transfer_ownership(OWNER, BOB)
    assert ev.name == OWNERSHIP_TRANSFERRED
    assert sale.owner == BOB
    with pytest.raises(Unauthorized):
        sale.pause(OWNER)
    assert sale.pause(BOB) is not None
