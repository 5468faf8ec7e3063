from __future__ import annotations
"""
tokensale - token sale with cliff-then-linear vesting.

Buyers pay in a payment asset and receive allocations of a sale asset at a
fixed rate. Allocations vest linearly after a cliff and are released
oldest-first. Submodules are lazily imported to keep import time minimal.

Public surface (lazily loaded):
- config, errors, events, metrics, access, uint
- ledger (allocation ledger and vesting), sale (gate, contract, store)
- cli
"""

import importlib
from typing import List

from .version import __version__

__all__: List[str] = [
    "__version__",
    "access",
    "cli",
    "config",
    "errors",
    "events",
    "ledger",
    "metrics",
    "sale",
    "uint",
]

# --- Lazy module loader (PEP 562) -------------------------------------------------

_lazy_modules = set(__all__) - {"__version__"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules)
