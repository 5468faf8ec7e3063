from __future__ import annotations
"""
tokensale.config: configuration for a single token sale

Covers:
- Pricing: sale-asset units per one payment-asset unit (`rate`)
- Sale window: [sale_start, sale_end) as unix timestamps (seconds)
- Principals: owner (admin) and vault (receives payment proceeds)
- Pre-sale whitelist gate (on by default; switched off once, never back)
- Vesting: cliff after purchase and linear vesting period (seconds)
- Global purchase limit (sale units; 0 = unlimited)
- Claim settlement shape: "sweep" (all allocations) or "front" (oldest only)

Environment overrides (all optional):

  TOKENSALE_RATE=100
  TOKENSALE_SALE_START=1767225600
  TOKENSALE_SALE_END=1769904000
  TOKENSALE_OWNER=0xowner...
  TOKENSALE_VAULT=0xvault...
  TOKENSALE_PRESALE=1
  TOKENSALE_SETTLEMENT=sweep
  TOKENSALE_CLIFF_SECONDS=31536000
  TOKENSALE_PERIOD_SECONDS=31536000
  TOKENSALE_GLOBAL_PURCHASE_LIMIT=0

You can also load from a JSON or YAML file via `TOKENSALE_CONFIG_FILE=/path/to/sale.(json|yaml|yml)`.
File values override defaults; environment overrides the file.
"""


from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Optional
import json
import os
from pathlib import Path

import yaml

from .access import is_zero_address
from .errors import InvalidConfiguration
from .ledger.ledger import SettlementMode
from .ledger.vesting import DEFAULT_CLIFF_SECONDS, DEFAULT_PERIOD_SECONDS, VestingSchedule


# -------------------------- Data classes --------------------------


@dataclass
class VestingParams:
    """Cliff and linear vesting period, in seconds."""
    cliff_seconds: int = DEFAULT_CLIFF_SECONDS     # 365 days
    period_seconds: int = DEFAULT_PERIOD_SECONDS   # 365 days

    def validate(self) -> None:
        if self.cliff_seconds < 0:
            raise InvalidConfiguration("cliff_seconds must be non-negative.")
        if self.period_seconds <= 0:
            raise InvalidConfiguration("period_seconds must be positive.")

    def schedule(self) -> VestingSchedule:
        return VestingSchedule(cliff_seconds=self.cliff_seconds, period_seconds=self.period_seconds)


@dataclass
class LimitParams:
    """Default per-buyer purchase ceiling in sale units (0 = unlimited)."""
    global_purchase_limit: int = 0

    def validate(self) -> None:
        if self.global_purchase_limit < 0:
            raise InvalidConfiguration("global_purchase_limit must be non-negative.")


@dataclass
class SaleConfig:
    """Top-level configuration container."""
    rate: int = 0
    sale_start: int = 0
    sale_end: int = 0
    owner: str = ""
    vault: str = ""
    presale: bool = True
    settlement: str = SettlementMode.SWEEP.value
    vesting: VestingParams = field(default_factory=VestingParams)
    limits: LimitParams = field(default_factory=LimitParams)

    def validate(self, now: Optional[int] = None) -> None:
        """
        Structural checks; when `now` is given also reject a start in the past.
        """
        if self.rate <= 0:
            raise InvalidConfiguration("rate must be a positive integer.", details={"rate": self.rate})
        if is_zero_address(self.owner):
            raise InvalidConfiguration("owner address is required.")
        if is_zero_address(self.vault):
            raise InvalidConfiguration("vault address is required.")
        if self.sale_start < 0 or self.sale_end <= self.sale_start:
            raise InvalidConfiguration(
                "sale_end must be after sale_start.",
                details={"sale_start": self.sale_start, "sale_end": self.sale_end},
            )
        if now is not None and self.sale_start < now:
            raise InvalidConfiguration(
                "sale_start is in the past.",
                details={"sale_start": self.sale_start, "now": int(now)},
            )
        try:
            SettlementMode(self.settlement)
        except ValueError as e:
            raise InvalidConfiguration(f"unknown settlement mode {self.settlement!r}.") from e
        self.vesting.validate()
        self.limits.validate()

    def settlement_mode(self) -> SettlementMode:
        return SettlementMode(self.settlement)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except ValueError as e:
        raise InvalidConfiguration(f"Invalid int for {name}: {v!r}") from e


def _parse_bool(name: str, v: Any) -> bool:
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in ("1", "true", "yes", "on"):
        return True
    if s in ("0", "false", "no", "off"):
        return False
    raise InvalidConfiguration(f"Invalid bool for {name}: {v!r}")


def _getenv_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return _parse_bool(name, v)


def from_dict(data: Dict[str, Any]) -> SaleConfig:
    vesting = data.get("vesting", {}) or {}
    limits = data.get("limits", {}) or {}
    d = SaleConfig()
    try:
        return SaleConfig(
            rate=int(data.get("rate", d.rate)),
            sale_start=int(data.get("sale_start", d.sale_start)),
            sale_end=int(data.get("sale_end", d.sale_end)),
            owner=str(data.get("owner", d.owner)),
            vault=str(data.get("vault", d.vault)),
            presale=_parse_bool("presale", data.get("presale", d.presale)),
            settlement=str(data.get("settlement", d.settlement)),
            vesting=VestingParams(
                cliff_seconds=int(vesting.get("cliff_seconds", d.vesting.cliff_seconds)),
                period_seconds=int(vesting.get("period_seconds", d.vesting.period_seconds)),
            ),
            limits=LimitParams(
                global_purchase_limit=int(limits.get("global_purchase_limit", d.limits.global_purchase_limit)),
            ),
        )
    except (TypeError, ValueError) as e:
        raise InvalidConfiguration(f"malformed sale config: {e}") from e


def from_env(base: Optional[SaleConfig] = None, prefix: str = "TOKENSALE_") -> SaleConfig:
    """
    Build a SaleConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or SaleConfig()

    new_cfg = replace(
        cfg,
        rate=_getenv_int(f"{prefix}RATE", cfg.rate),
        sale_start=_getenv_int(f"{prefix}SALE_START", cfg.sale_start),
        sale_end=_getenv_int(f"{prefix}SALE_END", cfg.sale_end),
        owner=os.getenv(f"{prefix}OWNER") or cfg.owner,
        vault=os.getenv(f"{prefix}VAULT") or cfg.vault,
        presale=_getenv_bool(f"{prefix}PRESALE", cfg.presale),
        settlement=os.getenv(f"{prefix}SETTLEMENT") or cfg.settlement,
        vesting=VestingParams(
            cliff_seconds=_getenv_int(f"{prefix}CLIFF_SECONDS", cfg.vesting.cliff_seconds),
            period_seconds=_getenv_int(f"{prefix}PERIOD_SECONDS", cfg.vesting.period_seconds),
        ),
        limits=LimitParams(
            global_purchase_limit=_getenv_int(
                f"{prefix}GLOBAL_PURCHASE_LIMIT", cfg.limits.global_purchase_limit
            ),
        ),
    )
    new_cfg.validate()
    return new_cfg


def from_file(path: str | os.PathLike[str]) -> SaleConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")
    if not isinstance(data, dict):
        raise InvalidConfiguration(f"config file {p} must contain a mapping")

    cfg = from_dict(data)
    cfg.validate()
    return cfg


def load() -> SaleConfig:
    """
    Load configuration using the following precedence:
      1) File at $TOKENSALE_CONFIG_FILE (JSON/YAML)
      2) Environment variables (TOKENSALE_*), applied on top of defaults or file values
    """
    file_path = os.getenv("TOKENSALE_CONFIG_FILE")
    base = from_file(file_path) if file_path else SaleConfig()
    return from_env(base=base)


# -------------------------- Utilities --------------------------


def pretty(cfg: Optional[SaleConfig] = None) -> str:
    """Return a human-readable JSON string of the config."""
    obj = (cfg or load()).to_dict()
    return json.dumps(obj, indent=2, sort_keys=True)


__all__ = [
    "VestingParams",
    "LimitParams",
    "SaleConfig",
    "from_dict",
    "from_env",
    "from_file",
    "load",
    "pretty",
]
