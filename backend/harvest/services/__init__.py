"""Service layer wiring the ledger core to its collaborators."""

from .ledger_service import LedgerService

__all__ = ["LedgerService"]
