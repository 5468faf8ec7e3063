from __future__ import annotations

"""
tokensale.cli
-------------

Operate a local token sale deployment kept in a JSON store (the sale plus
in-memory payment and sale token banks).

Examples
--------
# Create a deployment from a YAML config, then fund it with 1M sale units
tokensale --now 1700000000 init --config sale.yaml
tokensale fund 1000000

# Give a buyer payment units, whitelist them and buy during the presale
tokensale mint 0xbuyer 100
tokensale admin whitelist-add 0xbuyer --limit 5000
tokensale --now 1700000100 purchase 0xbuyer 10

# One year later: inspect and claim
tokensale --now 1731536100 --json account 0xbuyer
tokensale --now 1731536100 claim 0xbuyer

Global options
--------------
  --store PATH   store file (default $TOKENSALE_STORE_FILE or ~/.tokensale/sale.json)
  --now INT      override the clock (unix seconds)
  --json         JSON output
  --verbose      debug logging

Sale errors are printed to stderr as their JSON `to_dict()` and exit with 1.
"""

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import typer

from . import config as config_mod
from .errors import SaleError
from .sale import store as store_mod
from .sale.contract import Clock, system_clock
from .sale.store import DEFAULT_SALE_ADDRESS, Deployment
from .version import get_version

log = logging.getLogger(__name__)

app = typer.Typer(
    name="tokensale",
    add_completion=False,
    no_args_is_help=True,
    help="Token sale with cliff-then-linear vesting (local deployment tooling).",
)
admin_app = typer.Typer(no_args_is_help=True, help="Owner-only sale controls.")
app.add_typer(admin_app, name="admin")


@dataclass
class CliState:
    store: Path
    now: Optional[int] = None
    json_output: bool = False

    def clock(self) -> Clock:
        if self.now is None:
            return system_clock
        fixed = self.now
        return lambda: fixed


# -------------------- utils --------------------

def _state(ctx: typer.Context) -> CliState:
    return ctx.find_root().obj


def _fail(err: SaleError) -> None:
    typer.echo(json.dumps(err.to_dict(), sort_keys=True), err=True)
    raise typer.Exit(code=1)


def _emit(state: CliState, data: Dict[str, Any]) -> None:
    if state.json_output:
        typer.echo(json.dumps(data, indent=2, sort_keys=True))
        return
    for k, v in data.items():
        if isinstance(v, (list, dict)):
            v = json.dumps(v, sort_keys=True)
        typer.echo(f"{k}: {v}")


@contextmanager
def _session(state: CliState, *, save: bool = True) -> Iterator[Deployment]:
    """Open the store; persist it only if the body completes without a sale error."""
    if not state.store.exists():
        typer.echo(f"No sale store at {state.store}; run `tokensale init` first.", err=True)
        raise typer.Exit(code=1)
    try:
        dep = store_mod.load(state.store, clock=state.clock())
        yield dep
    except SaleError as e:
        _fail(e)
    else:
        if save:
            store_mod.save(state.store, dep)


def _event_out(event) -> Dict[str, Any]:
    if event is None:
        return {"changed": False}
    return {"changed": True, "event": event.to_dict()}


@app.callback()
def main(
    ctx: typer.Context,
    store: Optional[Path] = typer.Option(
        None, "--store", envvar=store_mod.STORE_FILE_ENV, help="Path of the JSON sale store."
    ),
    now: Optional[int] = typer.Option(None, "--now", min=0, help="Override the clock (unix seconds)."),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CliState(store=store_mod.store_path(store), now=now, json_output=json_output)


# -------------------- deployment --------------------

@app.command("version")
def version_cmd() -> None:
    """Print the package version."""
    typer.echo(get_version())


@app.command("init")
def init_cmd(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", exists=True, dir_okay=False,
        help="Sale config (JSON/YAML). Defaults to $TOKENSALE_CONFIG_FILE plus TOKENSALE_* env vars.",
    ),
    address: str = typer.Option(DEFAULT_SALE_ADDRESS, "--address", help="Address the sale holds tokens under."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing store."),
) -> None:
    """Create a new deployment store."""
    state = _state(ctx)
    if state.store.exists() and not force:
        typer.echo(f"Sale store already exists at {state.store} (use --force).", err=True)
        raise typer.Exit(code=1)
    try:
        cfg = config_mod.from_env(config_mod.from_file(config)) if config else config_mod.load()
        dep = store_mod.create(cfg, address=address, clock=state.clock())
    except SaleError as e:
        _fail(e)
        return
    store_mod.save(state.store, dep)
    log.info("cli: initialized sale store %s", state.store)
    _emit(state, dep.sale.sale_info())


@app.command("fund")
def fund_cmd(ctx: typer.Context, amount: int = typer.Argument(..., min=1, help="Sale units to mint to the sale.")) -> None:
    """Mint sale-asset units into the sale's own balance."""
    state = _state(ctx)
    with _session(state) as dep:
        dep.token.mint(dep.sale.address, amount)
        _emit(state, {"held_balance": dep.sale.held_balance(), "remaining_supply": dep.sale.remaining_supply()})


@app.command("mint")
def mint_cmd(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Recipient."),
    amount: int = typer.Argument(..., min=1, help="Payment units to mint."),
) -> None:
    """Mint payment-asset units to an address."""
    state = _state(ctx)
    with _session(state) as dep:
        dep.payment.mint(address, amount)
        _emit(state, {"address": address, "balance": dep.payment.balance_of(address)})


# -------------------- buyer operations --------------------

@app.command("purchase")
def purchase_cmd(
    ctx: typer.Context,
    buyer: str = typer.Argument(...),
    amount: int = typer.Argument(..., help="Payment units to spend."),
) -> None:
    """Buy sale units with payment units."""
    state = _state(ctx)
    with _session(state) as dep:
        r = dep.sale.purchase(buyer, amount)
        _emit(state, {
            "buyer": r.buyer,
            "payment": r.payment_amount,
            "units": r.sale_units,
            "seq": r.allocation.seq,
            "vesting_start": r.allocation.vesting_start,
        })


@app.command("claim")
def claim_cmd(ctx: typer.Context, buyer: str = typer.Argument(...)) -> None:
    """Release everything vested for a buyer."""
    state = _state(ctx)
    with _session(state) as dep:
        r = dep.sale.claim(buyer)
        _emit(state, {"buyer": r.buyer, "amount": r.amount, "parts": r.settlement.to_dict()["parts"]})


# -------------------- queries --------------------

@app.command("status")
def status_cmd(ctx: typer.Context) -> None:
    """Show sale-wide state."""
    state = _state(ctx)
    with _session(state, save=False) as dep:
        _emit(state, dep.sale.sale_info())


@app.command("account")
def account_cmd(ctx: typer.Context, buyer: str = typer.Argument(...)) -> None:
    """Show a buyer's whitelist status, limits, balances and allocations."""
    state = _state(ctx)
    with _session(state, save=False) as dep:
        sale = dep.sale
        _emit(state, {
            "buyer": buyer,
            "whitelisted": sale.is_whitelisted(buyer),
            "purchase_limit": sale.purchase_limit(buyer),
            "purchased": sale.purchased_amount(buyer),
            "released": sale.released_amount(buyer),
            "vested": sale.vested_amount(buyer),
            "releasable": sale.releasable_amount(buyer),
            "payment_balance": dep.payment.balance_of(buyer),
            "token_balance": dep.token.balance_of(buyer),
            "allocations": [a.to_dict() for a in sale.allocations(buyer)],
        })


@app.command("events")
def events_cmd(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(None, "--name", help="Only events with this name."),
    limit: int = typer.Option(50, min=1, max=10000, help="Show at most the last N events."),
) -> None:
    """List emitted sale events."""
    state = _state(ctx)
    with _session(state, save=False) as dep:
        rows = dep.sale.events.by_name(name) if name else list(dep.sale.events)
        out = [e.to_dict() for e in rows[-limit:]]
        if state.json_output:
            typer.echo(json.dumps(out, indent=2, sort_keys=True))
            return
        if not out:
            typer.echo("No events.")
        for e in out:
            typer.echo(f"#{e['seq']} t={e['timestamp']} {e['name']} {json.dumps(e['args'], sort_keys=True)}")


# -------------------- admin --------------------

CallerOpt = typer.Option(None, "--caller", help="Acting address (defaults to the current owner).")


def _caller(dep: Deployment, caller: Optional[str]) -> str:
    return caller or dep.sale.owner


@admin_app.command("pause")
def admin_pause(ctx: typer.Context, caller: Optional[str] = CallerOpt) -> None:
    state = _state(ctx)
    with _session(state) as dep:
        _emit(state, _event_out(dep.sale.pause(_caller(dep, caller))))


@admin_app.command("unpause")
def admin_unpause(ctx: typer.Context, caller: Optional[str] = CallerOpt) -> None:
    state = _state(ctx)
    with _session(state) as dep:
        _emit(state, _event_out(dep.sale.unpause(_caller(dep, caller))))


@admin_app.command("public-sale")
def admin_public_sale(ctx: typer.Context, caller: Optional[str] = CallerOpt) -> None:
    """End the presale: purchases no longer require the whitelist."""
    state = _state(ctx)
    with _session(state) as dep:
        _emit(state, _event_out(dep.sale.start_public_sale(_caller(dep, caller))))


@admin_app.command("set-vault")
def admin_set_vault(ctx: typer.Context, vault: str = typer.Argument(...), caller: Optional[str] = CallerOpt) -> None:
    state = _state(ctx)
    with _session(state) as dep:
        _emit(state, _event_out(dep.sale.set_vault(_caller(dep, caller), vault)))


@admin_app.command("set-limit")
def admin_set_limit(
    ctx: typer.Context,
    amount: int = typer.Argument(..., help="Limit in sale units; 0 clears it."),
    buyer: Optional[str] = typer.Option(None, "--buyer", help="Per-buyer override instead of the global limit."),
    caller: Optional[str] = CallerOpt,
) -> None:
    state = _state(ctx)
    with _session(state) as dep:
        _emit(state, _event_out(dep.sale.set_purchase_limit(_caller(dep, caller), amount, buyer)))


@admin_app.command("whitelist-add")
def admin_whitelist_add(
    ctx: typer.Context,
    addresses: List[str] = typer.Argument(...),
    limits: Optional[List[int]] = typer.Option(None, "--limit", help="Per-address limit, repeat once per address."),
    caller: Optional[str] = CallerOpt,
) -> None:
    state = _state(ctx)
    with _session(state) as dep:
        events = dep.sale.whitelist_add(_caller(dep, caller), addresses, limits or None)
        _emit(state, {"added": [e.args["address"] for e in events]})


@admin_app.command("whitelist-remove")
def admin_whitelist_remove(
    ctx: typer.Context,
    addresses: List[str] = typer.Argument(...),
    caller: Optional[str] = CallerOpt,
) -> None:
    state = _state(ctx)
    with _session(state) as dep:
        events = dep.sale.whitelist_remove(_caller(dep, caller), addresses)
        _emit(state, {"removed": [e.args["address"] for e in events]})


@admin_app.command("set-start")
def admin_set_start(ctx: typer.Context, sale_start: int = typer.Argument(...), caller: Optional[str] = CallerOpt) -> None:
    state = _state(ctx)
    with _session(state) as dep:
        _emit(state, _event_out(dep.sale.set_sale_start(_caller(dep, caller), sale_start)))


@admin_app.command("set-end")
def admin_set_end(ctx: typer.Context, sale_end: int = typer.Argument(...), caller: Optional[str] = CallerOpt) -> None:
    state = _state(ctx)
    with _session(state) as dep:
        _emit(state, _event_out(dep.sale.set_sale_end(_caller(dep, caller), sale_end)))


@admin_app.command("withdraw-unsold")
def admin_withdraw_unsold(ctx: typer.Context, caller: Optional[str] = CallerOpt) -> None:
    """Send held sale units not owed to buyers back to the owner."""
    state = _state(ctx)
    with _session(state) as dep:
        _emit(state, _event_out(dep.sale.withdraw_unsold(_caller(dep, caller))))


@admin_app.command("transfer-ownership")
def admin_transfer_ownership(
    ctx: typer.Context,
    new_owner: str = typer.Argument(...),
    caller: Optional[str] = CallerOpt,
) -> None:
    state = _state(ctx)
    with _session(state) as dep:
        _emit(state, _event_out(dep.sale.transfer_ownership(_caller(dep, caller), new_owner)))


def get_app() -> typer.Typer:
    return app


if __name__ == "__main__":
    app()
