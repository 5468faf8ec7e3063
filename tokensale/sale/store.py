from __future__ import annotations

"""
Local deployment store.

A deployment is a TokenSale plus the two in-memory TokenBanks it moves
(payment asset and sale asset), persisted together as one JSON document:

    {
      "version": 1,
      "sale":    {...TokenSale.dump()...},
      "payment": {...TokenBank.dump()...},
      "token":   {...TokenBank.dump()...}
    }

The file location is `$TOKENSALE_STORE_FILE` or ~/.tokensale/sale.json.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import SaleConfig
from ..errors import InvalidConfiguration
from .assets import TokenBank
from .contract import Clock, TokenSale, system_clock

log = logging.getLogger(__name__)

STORE_VERSION = 1
STORE_FILE_ENV = "TOKENSALE_STORE_FILE"
DEFAULT_STORE_PATH = Path.home() / ".tokensale" / "sale.json"
DEFAULT_SALE_ADDRESS = "0x" + "0" * 36 + "5a1e"


@dataclass
class Deployment:
    sale: TokenSale
    payment: TokenBank
    token: TokenBank

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": STORE_VERSION,
            "sale": self.sale.dump(),
            "payment": self.payment.dump(),
            "token": self.token.dump(),
        }


def store_path(path: Optional[Path] = None) -> Path:
    if path is not None:
        return Path(path)
    return Path(os.environ.get(STORE_FILE_ENV, DEFAULT_STORE_PATH))


def create(
    config: SaleConfig,
    *,
    address: str = DEFAULT_SALE_ADDRESS,
    clock: Clock = system_clock,
    payment_symbol: str = "PAY",
    token_symbol: str = "SALE",
) -> Deployment:
    payment = TokenBank(payment_symbol)
    token = TokenBank(token_symbol)
    sale = TokenSale(config, address=address, payment_asset=payment, sale_asset=token, clock=clock)
    return Deployment(sale=sale, payment=payment, token=token)


def load(path: Path, *, clock: Clock = system_clock) -> Deployment:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict) or "sale" not in data:
        raise InvalidConfiguration(f"malformed sale store at {path}")
    version = int(data.get("version", STORE_VERSION))
    if version != STORE_VERSION:
        raise InvalidConfiguration(f"unsupported sale store version {version} at {path}")

    payment = TokenBank.load(data.get("payment", {}))
    token = TokenBank.load(data.get("token", {}))
    sale = TokenSale.load(data["sale"], payment_asset=payment, sale_asset=token, clock=clock)
    return Deployment(sale=sale, payment=payment, token=token)


def save(path: Path, deployment: Deployment) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_name(p.name + ".tmp")
    tmp.write_text(json.dumps(deployment.to_dict(), indent=2, sort_keys=True), encoding="utf-8")
    os.replace(tmp, p)
    log.debug("store: saved %s", p)


__all__ = [
    "DEFAULT_SALE_ADDRESS",
    "DEFAULT_STORE_PATH",
    "Deployment",
    "STORE_FILE_ENV",
    "create",
    "load",
    "save",
    "store_path",
]
