# -*- coding: utf-8 -*-
"""
tokensale.access
================

Minimal **Ownable** helper for the sale: a single privileged principal that
may call configuration operations.

Surface:
- read the current owner (`owner`)
- check that a caller is the owner (`require_owner`)
- transfer ownership to a new, non-zero account (`transfer_ownership`)

Addresses are opaque strings. The all-zero hex address and the empty string
are treated as "no address".
"""
from __future__ import annotations

import re
from typing import Final, Optional

from .errors import NonZeroAddressRequired, Unauthorized

ZERO_ADDRESS: Final[str] = "0x" + "0" * 40

_ZERO_HEX = re.compile(r"^(0x)?0*$", re.IGNORECASE)


def is_zero_address(addr: Optional[str]) -> bool:
    return addr is None or _ZERO_HEX.match(addr.strip()) is not None


def require_nonzero(addr: Optional[str], field: str) -> str:
    if is_zero_address(addr):
        raise NonZeroAddressRequired(field=field)
    return str(addr)


class Ownable:
    """Owner storage and checks. The sale contract embeds one of these."""

    def __init__(self, owner: str) -> None:
        self._owner = require_nonzero(owner, "owner")

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, caller: str) -> bool:
        return caller == self._owner

    def require_owner(self, caller: str) -> None:
        if not self.is_owner(caller):
            raise Unauthorized(caller=caller)

    def transfer_ownership(self, caller: str, new_owner: str) -> str:
        """Owner-only: hand control to `new_owner`. Returns the previous owner."""
        self.require_owner(caller)
        new_owner = require_nonzero(new_owner, "new_owner")
        previous, self._owner = self._owner, new_owner
        return previous


__all__ = [
    "ZERO_ADDRESS",
    "Ownable",
    "is_zero_address",
    "require_nonzero",
]
