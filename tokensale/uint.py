# -*- coding: utf-8 -*-
"""
tokensale.uint
==============

Checked unsigned-integer helpers for ledger arithmetic.

Every magnitude the sale tracks (payments, sale units, allocation amounts,
timestamps) is a non-negative integer bounded by U256_MAX. These helpers never
use floats and never wrap: leaving the domain raises ``ArithmeticFault``.

Conventions
-----------
- "checked" variants raise on overflow/underflow/div-by-zero.
- ``sub_floor`` is the only saturating helper; it is used where a negative
  difference means "none" (remaining supply, releasable after clock skew).
"""

from __future__ import annotations

from typing import Final

from .errors import ArithmeticFault

U256_MAX: Final[int] = (1 << 256) - 1

# Canonical error messages (short, stable)
ERR_OOB: Final[str] = "UINT:OOB"
ERR_OVER: Final[str] = "UINT:OVERFLOW"
ERR_UNDER: Final[str] = "UINT:UNDERFLOW"
ERR_DIV0: Final[str] = "UINT:DIV0"


def require_u256(*xs: int) -> None:
    """Raise if any value is not an int in [0, U256_MAX]."""
    for x in xs:
        if isinstance(x, bool) or not isinstance(x, int) or x < 0 or x > U256_MAX:
            raise ArithmeticFault(ERR_OOB, details={"value": repr(x)})


def add(x: int, y: int) -> int:
    """Checked add: raise on overflow."""
    require_u256(x, y)
    s = x + y
    if s > U256_MAX:
        raise ArithmeticFault(ERR_OVER, details={"x": x, "y": y})
    return s


def sub(x: int, y: int) -> int:
    """Checked sub: raise on underflow (y > x)."""
    require_u256(x, y)
    if y > x:
        raise ArithmeticFault(ERR_UNDER, details={"x": x, "y": y})
    return x - y


def sub_floor(x: int, y: int) -> int:
    """Saturating subtract: returns 0 when y > x."""
    require_u256(x, y)
    return x - y if x >= y else 0


def mul(x: int, y: int) -> int:
    """Checked multiply: raise on overflow."""
    require_u256(x, y)
    p = x * y
    if p > U256_MAX:
        raise ArithmeticFault(ERR_OVER, details={"x": x, "y": y})
    return p


def mul_div_down(x: int, y: int, d: int) -> int:
    """floor(x*y/d) with a full-width intermediate product."""
    require_u256(x, y, d)
    if d == 0:
        raise ArithmeticFault(ERR_DIV0)
    q = (x * y) // d
    if q > U256_MAX:
        raise ArithmeticFault(ERR_OVER, details={"x": x, "y": y, "d": d})
    return q


__all__ = [
    "U256_MAX",
    "require_u256",
    "add",
    "sub",
    "sub_floor",
    "mul",
    "mul_div_down",
]
