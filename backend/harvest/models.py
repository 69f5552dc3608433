"""Domain models for the lot ledger."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional


class LotKind(str, enum.Enum):
    ACQUIRE = "ACQUIRE"
    DISPOSE = "DISPOSE"


class LotStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


@dataclass
class Lot:
    """A single acquisition or disposal record.

    ``origin_id`` points at the acquisition a piece was split from (a root lot
    points at itself) and ``original_quantity`` is the quantity that
    acquisition was recorded with. ``price`` is the current cost basis, which
    dividends lower, while ``acquire_price`` keeps what was actually paid. All
    three are copied onto every split piece.
    """

    id: int
    asset_id: int
    kind: LotKind
    price: Decimal
    quantity: int
    date: date
    is_virtual: bool = False
    status: LotStatus = LotStatus.OPEN
    origin_id: Optional[int] = None
    original_quantity: Optional[int] = None
    acquire_price: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if self.origin_id is None:
            self.origin_id = self.id
        if self.original_quantity is None:
            self.original_quantity = self.quantity
        if self.acquire_price is None:
            self.acquire_price = self.price

    @property
    def is_open_acquire(self) -> bool:
        return self.kind == LotKind.ACQUIRE and self.status == LotStatus.OPEN

    @property
    def cost(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class GlobalSettings:
    """Default rates applied to assets without their own override."""

    annual_rate: Decimal = Decimal("15")
    step_rate: Decimal = Decimal("3.5")


@dataclass
class Asset:
    """A tracked stock and the lots recorded against it."""

    id: int
    symbol: str
    name: str
    annual_rate: Optional[Decimal] = None
    step_rate: Optional[Decimal] = None
    max_investment: Optional[Decimal] = None
    last_dividend_date: Optional[date] = None
    lots: list[Lot] = field(default_factory=list)
    dividends: list[AppliedDividend] = field(default_factory=list)

    def effective_annual_rate(self, settings: GlobalSettings) -> Decimal:
        return self.annual_rate if self.annual_rate is not None else settings.annual_rate

    def effective_step_rate(self, settings: GlobalSettings) -> Decimal:
        return self.step_rate if self.step_rate is not None else settings.step_rate

    def open_acquires(self) -> list[Lot]:
        return [lot for lot in self.lots if lot.is_open_acquire]


@dataclass(frozen=True)
class DividendEvent:
    ex_date: date
    per_share: Decimal


@dataclass(frozen=True)
class AppliedDividend:
    """A dividend already applied to an asset's open lots.

    ``after_lot_id`` is the highest lot id the asset had when the dividend was
    applied, which places it in the recorded history.
    """

    ex_date: date
    per_share: Decimal
    after_lot_id: int = 0


@dataclass(frozen=True)
class Quote:
    symbol: str
    name: str
    price: Decimal
    open: Decimal = Decimal("0")
    prev_close: Decimal = Decimal("0")
    high: Decimal = Decimal("0")
    low: Decimal = Decimal("0")


@dataclass(frozen=True)
class LotChange:
    """A pending persistence mutation: ``created`` lots are new rows."""

    lot: Lot
    created: bool = False


__all__ = [
    "LotKind",
    "LotStatus",
    "Lot",
    "GlobalSettings",
    "Asset",
    "DividendEvent",
    "AppliedDividend",
    "Quote",
    "LotChange",
]
