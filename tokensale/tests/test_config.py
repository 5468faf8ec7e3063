import json
from dataclasses import replace

import pytest

from tokensale import config as cfgmod
from tokensale.config import LimitParams, SaleConfig, VestingParams
from tokensale.errors import InvalidConfiguration
from tokensale.ledger import SettlementMode

OWNER = "0x" + "a" * 40
VAULT = "0x" + "b" * 40


def _cfg(**kw) -> SaleConfig:
    base = SaleConfig(rate=100, sale_start=1_000, sale_end=2_000, owner=OWNER, vault=VAULT)
    return replace(base, **kw)


def test_valid_config_passes():
    c = _cfg()
    c.validate(now=1_000)
    assert c.settlement_mode() is SettlementMode.SWEEP
    assert c.vesting.schedule().period_seconds == 365 * 86400


@pytest.mark.parametrize(
    "overrides",
    [
        {"rate": 0},
        {"owner": ""},
        {"owner": "0x" + "0" * 40},
        {"vault": "0x0"},
        {"sale_end": 1_000},
        {"sale_end": 999},
        {"settlement": "lifo"},
        {"vesting": VestingParams(cliff_seconds=-1)},
        {"vesting": VestingParams(period_seconds=0)},
        {"limits": LimitParams(global_purchase_limit=-1)},
    ],
)
def test_invalid_configs_are_rejected(overrides):
    with pytest.raises(InvalidConfiguration):
        _cfg(**overrides).validate()


def test_start_in_the_past_is_rejected_only_when_now_is_known():
    c = _cfg()
    c.validate()
    with pytest.raises(InvalidConfiguration):
        c.validate(now=1_001)


def test_from_file_yaml(tmp_path):
    p = tmp_path / "sale.yaml"
    p.write_text(
        "rate: 250\n"
        "sale_start: 10\n"
        "sale_end: 20\n"
        f"owner: '{OWNER}'\n"
        f"vault: '{VAULT}'\n"
        "settlement: front\n"
        "vesting:\n"
        "  cliff_seconds: 0\n"
        "  period_seconds: 100\n"
        "limits:\n"
        "  global_purchase_limit: 5000\n",
        encoding="utf-8",
    )
    c = cfgmod.from_file(p)
    assert c.rate == 250
    assert c.settlement_mode() is SettlementMode.FRONT
    assert c.vesting == VestingParams(cliff_seconds=0, period_seconds=100)
    assert c.limits.global_purchase_limit == 5000
    assert c.presale is True


def test_from_file_json_and_errors(tmp_path):
    p = tmp_path / "sale.json"
    p.write_text(json.dumps(_cfg(presale=False).to_dict()), encoding="utf-8")
    assert cfgmod.from_file(p) == _cfg(presale=False)

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"rate": "lots"}), encoding="utf-8")
    with pytest.raises(InvalidConfiguration):
        cfgmod.from_file(bad)

    with pytest.raises(FileNotFoundError):
        cfgmod.from_file(tmp_path / "missing.yaml")


@pytest.mark.parametrize("raw, expected", [
    ("false", False), ("No", False), ("0", False), (0, False),
    ("true", True), ("on", True), (1, True), (True, True),
])
def test_from_dict_parses_quoted_presale_flags(raw, expected):
    data = dict(_cfg().to_dict(), presale=raw)
    assert cfgmod.from_dict(data).presale is expected


def test_from_dict_rejects_an_unreadable_presale_flag():
    with pytest.raises(InvalidConfiguration):
        cfgmod.from_dict(dict(_cfg().to_dict(), presale="maybe"))


def test_env_overrides_file(tmp_path, monkeypatch):
    p = tmp_path / "sale.json"
    p.write_text(json.dumps(_cfg().to_dict()), encoding="utf-8")
    monkeypatch.setenv("TOKENSALE_CONFIG_FILE", str(p))
    monkeypatch.setenv("TOKENSALE_RATE", "7")
    monkeypatch.setenv("TOKENSALE_PRESALE", "off")
    monkeypatch.setenv("TOKENSALE_CLIFF_SECONDS", "60")

    c = cfgmod.load()
    assert c.rate == 7
    assert c.presale is False
    assert c.vesting.cliff_seconds == 60
    assert c.owner == OWNER
    assert json.loads(cfgmod.pretty(c))["rate"] == 7


def test_env_rejects_garbage(monkeypatch):
    monkeypatch.setenv("TOKENSALE_RATE", "many")
    with pytest.raises(InvalidConfiguration):
        cfgmod.from_env(_cfg())
    monkeypatch.setenv("TOKENSALE_RATE", "5")
    monkeypatch.setenv("TOKENSALE_PRESALE", "maybe")
    with pytest.raises(InvalidConfiguration):
        cfgmod.from_env(_cfg())
