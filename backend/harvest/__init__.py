"""Lot ledger with target-price matching, dividend adjustment and replayed statistics."""

from .errors import (
    AssetNotFound,
    InsufficientOpenQuantity,
    LedgerError,
    UnavailableDividendData,
    UnavailableQuote,
    ValidationError,
)
from .fees import FeeModel
from .ledger import DisposalResult, LotLedger
from .models import AppliedDividend, Asset, DividendEvent, GlobalSettings, Lot, LotChange, LotKind, LotStatus
from .pricing import daily_rate, next_acquire_price, target_price

__all__ = [
    "AppliedDividend",
    "Asset",
    "DividendEvent",
    "GlobalSettings",
    "Lot",
    "LotChange",
    "LotKind",
    "LotStatus",
    "LotLedger",
    "DisposalResult",
    "FeeModel",
    "daily_rate",
    "target_price",
    "next_acquire_price",
    "LedgerError",
    "ValidationError",
    "InsufficientOpenQuantity",
    "AssetNotFound",
    "UnavailableQuote",
    "UnavailableDividendData",
]
