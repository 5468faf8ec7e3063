from __future__ import annotations
# tokensale/errors.py
"""
Error types for the token sale. Every failure surfaced by a sale operation is
a distinct subclass of SaleError carrying a stable `code`, a human message and
a small `details` mapping. They are serializable and safe to surface in logs
and CLI output.

Exports:
- SaleError (base)
- InvalidConfiguration
- SaleInactive, Paused, NotWhitelisted
- InvalidAmount, InsufficientSupply, PurchaseLimitExceeded
- NoAllocation (alias NotHolder), NothingVested
- Unauthorized, NonZeroAddressRequired
- SaleAlreadyStarted, SaleAlreadyEnded, LengthMismatch
- TransferFailed, ArithmeticFault
"""


import json
from typing import Any, Dict, Mapping, Optional


class SaleError(Exception):
    """Base class for token sale domain errors."""

    code: str = "SALE_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"))
            except (TypeError, ValueError):
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


class InvalidConfiguration(SaleError):
    """Bad construction or rescheduling arguments (zero rate, end before start, ...)."""
    code = "SALE_INVALID_CONFIGURATION"


class SaleInactive(SaleError):
    """Purchase attempted outside [sale_start, sale_end)."""
    code = "SALE_INACTIVE"

    def __init__(
        self,
        *,
        now: int,
        sale_start: int,
        sale_end: int,
        message: str = "sale is not active",
    ) -> None:
        super().__init__(
            message,
            details={"now": int(now), "sale_start": int(sale_start), "sale_end": int(sale_end)},
        )


class Paused(SaleError):
    code = "SALE_PAUSED"

    def __init__(self, message: str = "sale is paused") -> None:
        super().__init__(message)


class NotWhitelisted(SaleError):
    """Buyer is not on the whitelist while the pre-sale gate is on."""
    code = "SALE_NOT_WHITELISTED"

    def __init__(self, *, buyer: str, message: str = "buyer is not whitelisted") -> None:
        super().__init__(message, details={"buyer": buyer})


class InvalidAmount(SaleError):
    """Zero amounts, or amounts the sale cannot honour."""
    code = "SALE_INVALID_AMOUNT"


class InsufficientSupply(InvalidAmount):
    """Requested sale units exceed the remaining uncommitted supply."""
    code = "SALE_INSUFFICIENT_SUPPLY"

    def __init__(
        self,
        *,
        requested: int,
        remaining: int,
        message: str = "not enough sale units left",
    ) -> None:
        super().__init__(message, details={"requested": int(requested), "remaining": int(remaining)})


class PurchaseLimitExceeded(SaleError):
    code = "SALE_PURCHASE_LIMIT_EXCEEDED"

    def __init__(
        self,
        *,
        buyer: str,
        limit: int,
        purchased: int,
        requested: int,
        message: str = "purchase limit exceeded",
    ) -> None:
        super().__init__(
            message,
            details={
                "buyer": buyer,
                "limit": int(limit),
                "purchased": int(purchased),
                "requested": int(requested),
            },
        )


class NoAllocation(SaleError):
    """Buyer holds no allocation with an outstanding amount."""
    code = "SALE_NO_ALLOCATION"

    def __init__(self, *, buyer: str, message: str = "buyer holds no allocation") -> None:
        super().__init__(message, details={"buyer": buyer})


NotHolder = NoAllocation


class NothingVested(SaleError):
    """Claim computed a zero releasable total."""
    code = "SALE_NOTHING_VESTED"

    def __init__(self, *, buyer: str, now: int, message: str = "nothing vested yet") -> None:
        super().__init__(message, details={"buyer": buyer, "now": int(now)})


class Unauthorized(SaleError):
    code = "SALE_UNAUTHORIZED"

    def __init__(self, *, caller: str, message: str = "caller is not the owner") -> None:
        super().__init__(message, details={"caller": caller})


class NonZeroAddressRequired(SaleError):
    code = "SALE_ZERO_ADDRESS"

    def __init__(self, *, field: str, message: str = "address must be non-zero") -> None:
        super().__init__(message, details={"field": field})


class SaleAlreadyStarted(SaleError):
    code = "SALE_ALREADY_STARTED"


class SaleAlreadyEnded(SaleError):
    code = "SALE_ALREADY_ENDED"


class LengthMismatch(SaleError):
    code = "SALE_LENGTH_MISMATCH"

    def __init__(self, *, left: int, right: int, message: str = "list lengths differ") -> None:
        super().__init__(message, details={"left": int(left), "right": int(right)})


class TransferFailed(SaleError):
    """An external asset transfer could not be completed."""
    code = "SALE_TRANSFER_FAILED"


class ArithmeticFault(SaleError):
    """Checked unsigned arithmetic left the [0, U256_MAX] domain."""
    code = "SALE_ARITHMETIC_FAULT"


__all__ = [
    "SaleError",
    "InvalidConfiguration",
    "SaleInactive",
    "Paused",
    "NotWhitelisted",
    "InvalidAmount",
    "InsufficientSupply",
    "PurchaseLimitExceeded",
    "NoAllocation",
    "NotHolder",
    "NothingVested",
    "Unauthorized",
    "NonZeroAddressRequired",
    "SaleAlreadyStarted",
    "SaleAlreadyEnded",
    "LengthMismatch",
    "TransferFailed",
    "ArithmeticFault",
]
