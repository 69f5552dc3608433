"""Pydantic schemas for API payloads."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models import LotKind, LotStatus


class HealthResponse(BaseModel):
    status: str
    service: str
    database_url: Optional[str]


class TransactionRequest(BaseModel):
    kind: LotKind
    price: Decimal = Field(..., gt=0)
    quantity: int = Field(..., gt=0)
    date: dt.date
    is_virtual: bool = Field(default=False, description="Close and reopen at the same price")


class LotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: LotKind
    price: Decimal
    quantity: int
    date: dt.date
    is_virtual: bool
    status: LotStatus
    origin_id: int
    original_quantity: int
    acquire_price: Decimal


class TransactionResponse(BaseModel):
    lot: LotOut
    changes: list[LotOut] = Field(default_factory=list)
    realized_profit: Decimal = Decimal("0")
    replacement: Optional[LotOut] = None


class RankedLotOut(BaseModel):
    lot: LotOut
    target_price: Decimal


class SuggestionOut(BaseModel):
    asset_id: int
    symbol: str
    name: str
    live_price: Decimal
    invested: Decimal
    open_lots: list[RankedLotOut]
    is_last_holding: bool
    cap_reached: bool
    nearest_target: Optional[Decimal]
    next_acquire_price: Optional[Decimal]
    gap: Optional[Decimal]
    virtual_trade_lot_id: Optional[int]
    virtual_trade_target: Optional[Decimal]
    should_acquire: bool
    should_dispose: bool


class DividendCheckResponse(BaseModel):
    applied: bool
    adjusted_lots: int = 0
    last_dividend_date: Optional[dt.date] = None


class DividendSweepResponse(BaseModel):
    updated_assets: int


class StatisticsResponse(BaseModel):
    monthly: dict[str, Decimal]
    yearly: dict[str, Decimal]


class TodaysAcquireOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    index: int
    asset_name: str
    current_price: Decimal
    acquire_price: Decimal
    target_price: Decimal
    acquire_date: dt.date
    absolute_return: Decimal
    annualized_return: Decimal


class TodaysDisposeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    index: int
    asset_name: str
    acquire_price: Decimal
    sell_price: Decimal
    current_price: Decimal
    acquire_date: dt.date
    sell_date: dt.date
    days_held: int
    absolute_return: Decimal
    annualized_return: Decimal
    quantity: int
    profit: Decimal


class TodaysActivityResponse(BaseModel):
    acquires: list[TodaysAcquireOut]
    disposes: list[TodaysDisposeOut]


class ImportResponse(BaseModel):
    imported_assets: int
