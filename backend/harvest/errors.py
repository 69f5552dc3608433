"""Error kinds raised by the ledger core and its collaborators."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger errors."""


class ValidationError(LedgerError, ValueError):
    """Raised when a request carries a non-positive price/quantity or bad date."""


class InsufficientOpenQuantity(LedgerError):
    """Raised when a disposal asks for more than the open acquisitions hold."""

    def __init__(self, requested: int, available: int):
        super().__init__(f"Cannot dispose {requested} shares; only {available} open")
        self.requested = requested
        self.available = available


class AssetNotFound(LedgerError, LookupError):
    """Raised when a repository has no asset with the requested id."""


class UnavailableQuote(LedgerError):
    """Raised when the live quote source cannot price a symbol."""


class UnavailableDividendData(LedgerError):
    """Raised when dividend history cannot be fetched or parsed."""


__all__ = [
    "LedgerError",
    "ValidationError",
    "InsufficientOpenQuantity",
    "AssetNotFound",
    "UnavailableQuote",
    "UnavailableDividendData",
]
