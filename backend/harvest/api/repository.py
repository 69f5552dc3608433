"""SQLAlchemy-backed implementation of the ledger repository."""

from __future__ import annotations

import itertools
from decimal import Decimal
from typing import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.orm import selectinload

from ..errors import AssetNotFound
from ..models import AppliedDividend, Asset, GlobalSettings, Lot, LotChange
from .database import Database
from .models import DividendRecord, LedgerSettingsRecord, LotRecord, StockRecord


def _to_lot(record: LotRecord) -> Lot:
    return Lot(
        id=record.id,
        asset_id=record.stock_id,
        kind=record.kind,
        price=Decimal(record.price),
        quantity=record.quantity,
        date=record.date,
        is_virtual=record.is_virtual,
        status=record.status,
        origin_id=record.origin_id,
        original_quantity=record.original_quantity,
        acquire_price=Decimal(record.acquire_price),
    )


def _to_asset(record: StockRecord) -> Asset:
    return Asset(
        id=record.id,
        symbol=record.symbol,
        name=record.name,
        annual_rate=record.annual_rate,
        step_rate=record.step_rate,
        max_investment=record.max_investment,
        last_dividend_date=record.last_dividend_date,
        lots=[_to_lot(lot) for lot in record.lots],
        dividends=[
            AppliedDividend(
                ex_date=dividend.ex_date,
                per_share=Decimal(dividend.per_share),
                after_lot_id=dividend.after_lot_id,
            )
            for dividend in record.dividends
        ],
    )


def _to_record(lot: Lot, stock_id: int) -> LotRecord:
    return LotRecord(
        id=lot.id,
        stock_id=stock_id,
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


def _to_dividend_record(dividend: AppliedDividend, stock_id: int) -> DividendRecord:
    return DividendRecord(
        stock_id=stock_id,
        ex_date=dividend.ex_date,
        per_share=dividend.per_share,
        after_lot_id=dividend.after_lot_id,
    )


class SqlAlchemyRepository:
    """Repository over the ``stock``/``lot``/``dividend``/``ledger_settings`` tables.

    Lot ids are handed out by this process; call ``initialize`` once before
    recording lots so allocation resumes after the highest stored id.
    """

    def __init__(self, database: Database):
        self.database = database
        self._lot_ids: itertools.count | None = None

    async def initialize(self) -> None:
        await self.database.create_all()
        async with self.database.session() as session:
            highest = (await session.execute(select(func.max(LotRecord.id)))).scalar()
        self._lot_ids = itertools.count((highest or 0) + 1)

    def allocate_lot_id(self) -> int:
        if self._lot_ids is None:
            raise RuntimeError("SqlAlchemyRepository.initialize() has not been awaited")
        return next(self._lot_ids)

    async def list_assets(self) -> list[Asset]:
        async with self.database.session() as session:
            result = await session.execute(
                select(StockRecord)
                .options(selectinload(StockRecord.lots), selectinload(StockRecord.dividends))
                .order_by(StockRecord.id)
            )
            return [_to_asset(record) for record in result.scalars().all()]

    async def load_asset(self, asset_id: int) -> Asset:
        async with self.database.session() as session:
            record = await session.get(
                StockRecord,
                asset_id,
                options=[selectinload(StockRecord.lots), selectinload(StockRecord.dividends)],
            )
            if record is None:
                raise AssetNotFound(f"Asset {asset_id} not found")
            return _to_asset(record)

    async def add_asset(
        self,
        symbol: str,
        name: str,
        *,
        annual_rate: Decimal | None = None,
        step_rate: Decimal | None = None,
        max_investment: Decimal | None = None,
    ) -> Asset:
        async with self.database.session() as session:
            record = StockRecord(
                symbol=symbol,
                name=name,
                annual_rate=annual_rate,
                step_rate=step_rate,
                max_investment=max_investment,
            )
            session.add(record)
            await session.commit()
            return Asset(
                id=record.id,
                symbol=symbol,
                name=name,
                annual_rate=annual_rate,
                step_rate=step_rate,
                max_investment=max_investment,
            )

    async def load_settings(self) -> GlobalSettings | None:
        async with self.database.session() as session:
            record = (await session.execute(select(LedgerSettingsRecord).limit(1))).scalars().first()
            if record is None:
                return None
            return GlobalSettings(annual_rate=Decimal(record.annual_rate), step_rate=Decimal(record.step_rate))

    async def save_settings(self, settings: GlobalSettings) -> None:
        async with self.database.session() as session:
            async with session.begin():
                record = (await session.execute(select(LedgerSettingsRecord).limit(1))).scalars().first()
                if record is None:
                    session.add(LedgerSettingsRecord(annual_rate=settings.annual_rate, step_rate=settings.step_rate))
                else:
                    record.annual_rate = settings.annual_rate
                    record.step_rate = settings.step_rate

    async def save_lots(
        self,
        asset_id: int,
        changes: Sequence[LotChange],
        *,
        dividend: AppliedDividend | None = None,
    ) -> None:
        async with self.database.session() as session:
            async with session.begin():
                stock = await session.get(StockRecord, asset_id)
                if stock is None:
                    raise AssetNotFound(f"Asset {asset_id} not found")
                for change in changes:
                    lot = change.lot
                    if change.created:
                        session.add(_to_record(lot, asset_id))
                        continue
                    record = await session.get(LotRecord, lot.id)
                    if record is None or record.stock_id != asset_id:
                        raise AssetNotFound(f"Lot {lot.id} does not belong to asset {asset_id}")
                    record.price = lot.price
                    record.quantity = lot.quantity
                    record.status = lot.status
                    record.is_virtual = lot.is_virtual
                if dividend is not None:
                    session.add(_to_dividend_record(dividend, asset_id))
                    stock.last_dividend_date = dividend.ex_date

    async def replace_all(self, settings: GlobalSettings, assets: Sequence[Asset]) -> None:
        async with self.database.session() as session:
            async with session.begin():
                await session.execute(delete(LotRecord))
                await session.execute(delete(DividendRecord))
                await session.execute(delete(StockRecord))
                await session.execute(delete(LedgerSettingsRecord))
                session.add(LedgerSettingsRecord(annual_rate=settings.annual_rate, step_rate=settings.step_rate))
                for asset in assets:
                    session.add(
                        StockRecord(
                            id=asset.id,
                            symbol=asset.symbol,
                            name=asset.name,
                            annual_rate=asset.annual_rate,
                            step_rate=asset.step_rate,
                            max_investment=asset.max_investment,
                            last_dividend_date=asset.last_dividend_date,
                        )
                    )
                await session.flush()
                session.add_all([_to_record(lot, asset.id) for asset in assets for lot in asset.lots])
                session.add_all(
                    [_to_dividend_record(dividend, asset.id) for asset in assets for dividend in asset.dividends]
                )
        highest = max((lot.id for asset in assets for lot in asset.lots), default=0)
        self._lot_ids = itertools.count(highest + 1)


__all__ = ["SqlAlchemyRepository"]
