"""JSON backup and restore of settings, assets and lots.

Every lot field is carried, including the virtual flag, status, split lineage
and the price paid, together with each asset's applied dividends, so a
restored ledger matches and replays disposals exactly as the original did.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from .models import AppliedDividend, Asset, GlobalSettings, Lot, LotKind, LotStatus


class BackupLot(BaseModel):
    id: int
    kind: LotKind
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=0)
    date: dt.date
    is_virtual: bool = False
    status: LotStatus
    origin_id: int
    original_quantity: int = Field(..., gt=0)
    acquire_price: Optional[Decimal] = Field(default=None, ge=0)


class BackupDividend(BaseModel):
    ex_date: dt.date
    per_share: Decimal = Field(..., ge=0)
    after_lot_id: int = Field(default=0, ge=0)


class BackupAsset(BaseModel):
    id: int
    symbol: str
    name: str
    annual_rate: Optional[Decimal] = None
    step_rate: Optional[Decimal] = None
    max_investment: Optional[Decimal] = None
    last_dividend_date: Optional[dt.date] = None
    lots: list[BackupLot] = Field(default_factory=list)
    dividends: list[BackupDividend] = Field(default_factory=list)


class BackupSettings(BaseModel):
    annual_rate: Decimal
    step_rate: Decimal


class Backup(BaseModel):
    version: int = 1
    exported_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
    settings: BackupSettings
    assets: list[BackupAsset] = Field(default_factory=list)


def to_backup(settings: GlobalSettings, assets: Sequence[Asset]) -> Backup:
    return Backup(
        settings=BackupSettings(annual_rate=settings.annual_rate, step_rate=settings.step_rate),
        assets=[
            BackupAsset(
                id=asset.id,
                symbol=asset.symbol,
                name=asset.name,
                annual_rate=asset.annual_rate,
                step_rate=asset.step_rate,
                max_investment=asset.max_investment,
                last_dividend_date=asset.last_dividend_date,
                lots=[
                    BackupLot(
                        id=lot.id,
                        kind=lot.kind,
                        price=lot.price,
                        quantity=lot.quantity,
                        date=lot.date,
                        is_virtual=lot.is_virtual,
                        status=lot.status,
                        origin_id=lot.origin_id,
                        original_quantity=lot.original_quantity,
                        acquire_price=lot.acquire_price,
                    )
                    for lot in asset.lots
                ],
                dividends=[
                    BackupDividend(
                        ex_date=dividend.ex_date,
                        per_share=dividend.per_share,
                        after_lot_id=dividend.after_lot_id,
                    )
                    for dividend in asset.dividends
                ],
            )
            for asset in assets
        ],
    )


def from_backup(backup: Backup) -> tuple[GlobalSettings, list[Asset]]:
    settings = GlobalSettings(annual_rate=backup.settings.annual_rate, step_rate=backup.settings.step_rate)
    assets = [
        Asset(
            id=item.id,
            symbol=item.symbol,
            name=item.name,
            annual_rate=item.annual_rate,
            step_rate=item.step_rate,
            max_investment=item.max_investment,
            last_dividend_date=item.last_dividend_date,
            lots=[Lot(asset_id=item.id, **lot.model_dump()) for lot in item.lots],
            dividends=[AppliedDividend(**dividend.model_dump()) for dividend in item.dividends],
        )
        for item in backup.assets
    ]
    return settings, assets


def dump_backup(settings: GlobalSettings, assets: Sequence[Asset]) -> str:
    return to_backup(settings, assets).model_dump_json(indent=2)


def load_backup(payload: str | bytes) -> tuple[GlobalSettings, list[Asset]]:
    return from_backup(Backup.model_validate_json(payload))


__all__ = [
    "Backup",
    "BackupAsset",
    "BackupDividend",
    "BackupLot",
    "BackupSettings",
    "to_backup",
    "from_backup",
    "dump_backup",
    "load_backup",
]
