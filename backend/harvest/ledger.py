"""Per-asset lot ledger: acquisitions, disposals and virtual trades."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Callable

from .errors import ValidationError
from .fees import FeeModel, Settlement, settle
from .matching import MatchedPortion, RankedLot, match_disposal, rank_open_lots
from .models import Asset, GlobalSettings, Lot, LotChange, LotKind, LotStatus

logger = logging.getLogger(__name__)


@dataclass
class DisposalResult:
    """Outcome of a disposal, ready to be persisted through ``changes``."""

    disposal: Lot
    portions: list[MatchedPortion]
    settlements: list[Settlement]
    changes: list[LotChange] = field(default_factory=list)
    replacement: Lot | None = None

    @property
    def realized_profit(self) -> Decimal:
        return sum((s.profit for s in self.settlements), Decimal("0"))


def coerce_price(value: object) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError("price must be a number")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"price is not a number: {value!r}") from exc
    if not price.is_finite() or price <= 0:
        raise ValidationError("price must be > 0")
    return price


def validate_trade(price: object, quantity: object, on: object) -> tuple[Decimal, int, date]:
    """Normalize trade inputs or raise ``ValidationError`` before any mutation."""

    normalized = coerce_price(price)
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be a whole number")
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    if isinstance(on, datetime) or not isinstance(on, date):
        raise ValidationError("date must be a calendar date")
    return normalized, quantity, on


class LotLedger:
    """Owns the lots of one asset and applies the matching policy to them.

    Callers are responsible for serializing mutating calls per asset.
    """

    def __init__(
        self,
        asset: Asset,
        settings: GlobalSettings,
        *,
        fees: FeeModel | None = None,
        id_factory: Callable[[], int] | None = None,
    ):
        self.asset = asset
        self.settings = settings
        self.fees = fees or FeeModel()
        if id_factory is None:
            start = max((lot.id for lot in asset.lots), default=0) + 1
            id_factory = itertools.count(start).__next__
        self._next_id = id_factory

    @property
    def annual_rate(self) -> Decimal:
        return self.asset.effective_annual_rate(self.settings)

    def open_buys_sorted_by_target(
        self,
        annual_rate: Decimal | None = None,
        as_of: date | None = None,
    ) -> list[RankedLot]:
        rate = self.annual_rate if annual_rate is None else annual_rate
        return rank_open_lots(self.asset.open_acquires(), rate, as_of or date.today())

    def record_acquire(self, price: object, quantity: object, on: object, *, is_virtual: bool = False) -> LotChange:
        price, quantity, on = validate_trade(price, quantity, on)
        lot = self._new_acquire(price, quantity, on, is_virtual)
        self.asset.lots.append(lot)
        logger.info("Acquired %s x %s @ %s for %s", quantity, self.asset.symbol, price, on)
        return LotChange(lot, created=True)

    def record_dispose(self, price: object, quantity: object, on: object) -> DisposalResult:
        price, quantity, on = validate_trade(price, quantity, on)
        result = self._dispose(price, quantity, on, is_virtual=False)
        self._commit(result.changes)
        logger.info(
            "Disposed %s x %s @ %s across %d lot(s), profit %s",
            quantity,
            self.asset.symbol,
            price,
            len(result.portions),
            result.realized_profit,
        )
        return result

    def record_virtual_trade(self, price: object, quantity: object, on: object) -> DisposalResult:
        """Close ``quantity`` at ``price`` and reopen it as a fresh lot on ``on``."""

        price, quantity, on = validate_trade(price, quantity, on)
        result = self._dispose(price, quantity, on, is_virtual=True)
        replacement = self._new_acquire(price, quantity, on, True)
        result.changes.append(LotChange(replacement, created=True))
        result.replacement = replacement
        self._commit(result.changes)
        logger.info("Virtual trade reset %s x %s to %s on %s", quantity, self.asset.symbol, price, on)
        return result

    def _new_acquire(self, price: Decimal, quantity: int, on: date, is_virtual: bool) -> Lot:
        return Lot(
            id=self._next_id(),
            asset_id=self.asset.id,
            kind=LotKind.ACQUIRE,
            price=price,
            quantity=quantity,
            date=on,
            is_virtual=is_virtual,
            status=LotStatus.OPEN,
        )

    def _dispose(self, price: Decimal, quantity: int, on: date, *, is_virtual: bool) -> DisposalResult:
        outcome = match_disposal(
            self.asset.open_acquires(),
            quantity,
            annual_rate=self.annual_rate,
            as_of=on,
        )
        changes: list[LotChange] = []
        settlements: list[Settlement] = []
        for portion in outcome.portions:
            lot = portion.lot
            if portion.closes_lot:
                changes.append(LotChange(replace(lot, status=LotStatus.CLOSED)))
            else:
                changes.append(LotChange(replace(lot, quantity=lot.quantity - portion.quantity)))
                piece = replace(lot, id=self._next_id(), quantity=portion.quantity, status=LotStatus.CLOSED)
                changes.append(LotChange(piece, created=True))
            settlements.append(
                settle(
                    self.fees,
                    quantity=portion.quantity,
                    acquire_price=lot.price,
                    lot_original_quantity=lot.original_quantity,
                    dispose_price=price,
                    dispose_quantity=quantity,
                    is_virtual=is_virtual,
                )
            )
        disposal = Lot(
            id=self._next_id(),
            asset_id=self.asset.id,
            kind=LotKind.DISPOSE,
            price=price,
            quantity=quantity,
            date=on,
            is_virtual=is_virtual,
            status=LotStatus.CLOSED,
        )
        changes.append(LotChange(disposal, created=True))
        return DisposalResult(disposal=disposal, portions=outcome.portions, settlements=settlements, changes=changes)

    def _commit(self, changes: list[LotChange]) -> None:
        updated = {change.lot.id: change.lot for change in changes if not change.created}
        created = [change.lot for change in changes if change.created]
        self.asset.lots = [updated.get(lot.id, lot) for lot in self.asset.lots] + created


__all__ = ["LotLedger", "DisposalResult", "validate_trade", "coerce_price"]
