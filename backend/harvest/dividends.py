"""Retroactive cost-basis adjustment for cash dividends."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Iterable

from .models import AppliedDividend, Asset, DividendEvent, Lot, LotChange

logger = logging.getLogger(__name__)


@dataclass
class DividendOutcome:
    applied: bool
    changes: list[LotChange] = field(default_factory=list)
    watermark: date | None = None
    record: AppliedDividend | None = None

    @property
    def adjusted(self) -> int:
        return len(self.changes)


def is_new(asset: Asset, event: DividendEvent) -> bool:
    watermark = asset.last_dividend_date or date.min
    return event.ex_date > watermark


def discount_lots(lots: Iterable[Lot], ex_date: date, per_share: Decimal) -> list[Lot]:
    """Return copies of the lots bought before ``ex_date`` with their price lowered, floored at zero."""

    zero = Decimal("0")
    return [replace(lot, price=max(zero, lot.price - per_share)) for lot in lots if lot.date < ex_date]


def apply_dividend_if_new(asset: Asset, event: DividendEvent) -> DividendOutcome:
    """Lower open lots bought before the ex-date by the per-share amount.

    The watermark advances even when no lot qualifies. New prices are computed
    before anything is assigned, so either every qualifying lot and the
    watermark change together or nothing changes. The applied dividend is
    logged on the asset so a replay can reprice lots at the same point.
    """

    if not is_new(asset, event):
        return DividendOutcome(applied=False, watermark=asset.last_dividend_date)

    changes = [LotChange(lot) for lot in discount_lots(asset.open_acquires(), event.ex_date, event.per_share)]
    record = AppliedDividend(
        ex_date=event.ex_date,
        per_share=event.per_share,
        after_lot_id=max((lot.id for lot in asset.lots), default=0),
    )
    updated = {change.lot.id: change.lot for change in changes}
    asset.lots = [updated.get(lot.id, lot) for lot in asset.lots]
    asset.dividends = [*asset.dividends, record]
    asset.last_dividend_date = event.ex_date
    logger.info(
        "Applied %s/share dividend (ex %s) to %d lot(s) of %s",
        event.per_share,
        event.ex_date,
        len(changes),
        asset.symbol,
    )
    return DividendOutcome(applied=True, changes=changes, watermark=event.ex_date, record=record)


__all__ = ["DividendOutcome", "apply_dividend_if_new", "discount_lots", "is_new"]
