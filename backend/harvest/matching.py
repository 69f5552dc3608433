"""Lowest-target-first matching of disposals against open acquisitions.

The functions here never mutate their inputs. Live ledger updates, the
statistics replay and the daily activity report all go through
``match_disposal`` so the three agree on which lots a disposal consumed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from .errors import InsufficientOpenQuantity, ValidationError
from .models import Lot
from .pricing import target_price


@dataclass(frozen=True)
class RankedLot:
    lot: Lot
    target: Decimal


@dataclass(frozen=True)
class MatchedPortion:
    """Quantity taken from ``lot``, which is the lot as it stood before matching."""

    lot: Lot
    quantity: int
    target: Decimal

    @property
    def closes_lot(self) -> bool:
        return self.quantity == self.lot.quantity


@dataclass(frozen=True)
class MatchOutcome:
    remaining: list[Lot]
    portions: list[MatchedPortion]

    @property
    def matched_quantity(self) -> int:
        return sum(portion.quantity for portion in self.portions)


def rank_open_lots(lots: Iterable[Lot], annual_rate: Decimal, as_of: date) -> list[RankedLot]:
    """Order lots by target price, ties falling back to purchase order."""

    ranked = [RankedLot(lot, target_price(lot.price, lot.date, annual_rate, as_of)) for lot in lots]
    ranked.sort(key=lambda item: (item.target, item.lot.origin_id, item.lot.id))
    return ranked


def match_disposal(
    open_lots: Sequence[Lot],
    quantity: int,
    *,
    annual_rate: Decimal,
    as_of: date,
) -> MatchOutcome:
    """Consume ``quantity`` from ``open_lots`` starting at the lowest target.

    Only lots acquired on or before ``as_of`` are eligible; later lots pass
    through to ``remaining`` untouched. Raises ``InsufficientOpenQuantity``
    without producing any partial result when the eligible lots cannot cover
    the request.
    """

    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    eligible = [lot for lot in open_lots if lot.date <= as_of]
    available = sum(lot.quantity for lot in eligible)
    if quantity > available:
        raise InsufficientOpenQuantity(quantity, available)

    portions: list[MatchedPortion] = []
    reduced: dict[int, Lot] = {}
    demand = quantity
    for ranked in rank_open_lots(eligible, annual_rate, as_of):
        if demand == 0:
            break
        lot = ranked.lot
        take = min(lot.quantity, demand)
        portions.append(MatchedPortion(lot=lot, quantity=take, target=ranked.target))
        demand -= take
        if take < lot.quantity:
            reduced[lot.id] = replace(lot, quantity=lot.quantity - take)

    consumed = {p.lot.id for p in portions if p.closes_lot}
    remaining = [
        reduced.get(lot.id, lot)
        for lot in open_lots
        if lot.id not in consumed
    ]
    return MatchOutcome(remaining=remaining, portions=portions)


__all__ = ["RankedLot", "MatchedPortion", "MatchOutcome", "rank_open_lots", "match_disposal"]
