"""
Sale Gate + contract facade.

    from tokensale.sale import TokenSale, TokenBank
"""

from .assets import Asset, TokenBank
from .contract import ClaimReceipt, PurchaseReceipt, TokenSale, system_clock
from .gate import SaleGate
from .state import SaleState

__all__ = [
    "Asset",
    "ClaimReceipt",
    "PurchaseReceipt",
    "SaleGate",
    "SaleState",
    "TokenBank",
    "TokenSale",
    "system_clock",
]
