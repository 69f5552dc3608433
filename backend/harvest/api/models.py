"""ORM models for stocks, lots and global ledger settings."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Date, Enum, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..models import LotKind, LotStatus
from .database import Base


class StockRecord(Base):
    __tablename__ = "stock"

    id: Mapped[int] = mapped_column(primary_key=True)
    symbol: Mapped[str] = mapped_column(String(20), index=True)
    name: Mapped[str] = mapped_column(String(128))
    annual_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 4), nullable=True)
    step_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 4), nullable=True)
    max_investment: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 4), nullable=True)
    last_dividend_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    lots: Mapped[list["LotRecord"]] = relationship(
        back_populates="stock", cascade="all, delete-orphan", order_by="LotRecord.id"
    )
    dividends: Mapped[list["DividendRecord"]] = relationship(
        back_populates="stock", cascade="all, delete-orphan", order_by="DividendRecord.id"
    )


class LotRecord(Base):
    __tablename__ = "lot"
    __table_args__ = (
        Index("ix_lot_stock_status", "stock_id", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    stock_id: Mapped[int] = mapped_column(ForeignKey("stock.id", ondelete="CASCADE"))
    kind: Mapped[LotKind] = mapped_column(Enum(LotKind, name="lot_kind"))
    price: Mapped[Decimal] = mapped_column(Numeric(18, 6))
    quantity: Mapped[int] = mapped_column(Integer)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    is_virtual: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[LotStatus] = mapped_column(Enum(LotStatus, name="lot_status"))
    origin_id: Mapped[int] = mapped_column(Integer)
    original_quantity: Mapped[int] = mapped_column(Integer)
    acquire_price: Mapped[Decimal] = mapped_column(Numeric(18, 6))

    stock: Mapped[StockRecord] = relationship(back_populates="lots")


class DividendRecord(Base):
    """A cash dividend already applied to a stock's open lots."""

    __tablename__ = "dividend"

    id: Mapped[int] = mapped_column(primary_key=True)
    stock_id: Mapped[int] = mapped_column(ForeignKey("stock.id", ondelete="CASCADE"), index=True)
    ex_date: Mapped[dt.date] = mapped_column(Date)
    per_share: Mapped[Decimal] = mapped_column(Numeric(18, 6))
    after_lot_id: Mapped[int] = mapped_column(Integer)

    stock: Mapped[StockRecord] = relationship(back_populates="dividends")


class LedgerSettingsRecord(Base):
    __tablename__ = "ledger_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    annual_rate: Mapped[Decimal] = mapped_column(Numeric(10, 4))
    step_rate: Mapped[Decimal] = mapped_column(Numeric(10, 4))


__all__ = ["StockRecord", "LotRecord", "DividendRecord", "LedgerSettingsRecord"]
