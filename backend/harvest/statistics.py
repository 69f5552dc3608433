"""Realized profit statistics rebuilt from the full transaction history.

The replay never trusts the stored OPEN/CLOSED status or the current price of
acquisitions. It starts from an empty book and walks the history in the order
it was recorded: each purchase reopens with its full quantity at the price
actually paid, each applied dividend lowers the lots open at that point, and
each disposal re-runs the matching policy. Split pieces are skipped because
the replay produces its own. The result therefore reproduces what the live
ledger realized and only depends on the recorded history and the asset's
effective rate.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, Iterator, Union

from .dividends import discount_lots
from .fees import FeeModel, Settlement, settle
from .matching import match_disposal
from .models import AppliedDividend, Asset, GlobalSettings, Lot, LotKind, LotStatus


@dataclass(frozen=True)
class RealizedPortion:
    asset: Asset
    disposal: Lot
    acquired: Lot
    settlement: Settlement

    @property
    def profit(self) -> Decimal:
        return self.settlement.profit


@dataclass(frozen=True)
class ReplayStep:
    asset: Asset
    lot: Lot
    portions: tuple[RealizedPortion, ...] = ()


@dataclass
class RealizedStatistics:
    monthly: dict[str, Decimal] = field(default_factory=dict)
    yearly: dict[str, Decimal] = field(default_factory=dict)


def recorded_history(asset: Asset) -> list[Union[Lot, AppliedDividend]]:
    """Return root acquisitions, disposals and applied dividends in recorded order."""

    keyed: list[tuple[tuple[int, int], Union[Lot, AppliedDividend]]] = [
        ((lot.id, 0), lot)
        for lot in asset.lots
        if lot.kind == LotKind.DISPOSE or lot.id == lot.origin_id
    ]
    keyed += [((dividend.after_lot_id, 1), dividend) for dividend in asset.dividends]
    keyed.sort(key=lambda item: item[0])
    return [entry for _, entry in keyed]


def replay_history(asset: Asset, settings: GlobalSettings, fees: FeeModel) -> Iterator[ReplayStep]:
    """Yield one step per acquisition and disposal in recorded order."""

    annual_rate = asset.effective_annual_rate(settings)
    open_lots: list[Lot] = []
    for entry in recorded_history(asset):
        if isinstance(entry, AppliedDividend):
            discounted = {lot.id: lot for lot in discount_lots(open_lots, entry.ex_date, entry.per_share)}
            open_lots = [discounted.get(lot.id, lot) for lot in open_lots]
            continue
        lot = entry
        if lot.kind == LotKind.ACQUIRE:
            reopened = replace(
                lot,
                price=lot.acquire_price,
                quantity=lot.original_quantity,
                status=LotStatus.OPEN,
            )
            open_lots.append(reopened)
            yield ReplayStep(asset, reopened)
            continue
        outcome = match_disposal(open_lots, lot.quantity, annual_rate=annual_rate, as_of=lot.date)
        open_lots = outcome.remaining
        portions = tuple(
            RealizedPortion(
                asset=asset,
                disposal=lot,
                acquired=portion.lot,
                settlement=settle(
                    fees,
                    quantity=portion.quantity,
                    acquire_price=portion.lot.price,
                    lot_original_quantity=portion.lot.original_quantity,
                    dispose_price=lot.price,
                    dispose_quantity=lot.quantity,
                    is_virtual=lot.is_virtual,
                ),
            )
            for portion in outcome.portions
        )
        yield ReplayStep(asset, lot, portions)


def realized_portions(asset: Asset, settings: GlobalSettings, fees: FeeModel) -> list[RealizedPortion]:
    return [portion for step in replay_history(asset, settings, fees) for portion in step.portions]


def month_key(portion: RealizedPortion) -> str:
    return portion.disposal.date.strftime("%Y-%m")


def year_key(portion: RealizedPortion) -> str:
    return portion.disposal.date.strftime("%Y")


def compute_statistics(
    assets: Iterable[Asset],
    settings: GlobalSettings,
    fees: FeeModel,
) -> RealizedStatistics:
    """Sum realized profit by disposal month and year across ``assets``."""

    monthly: dict[str, Decimal] = {}
    yearly: dict[str, Decimal] = {}
    for asset in assets:
        for portion in realized_portions(asset, settings, fees):
            monthly[month_key(portion)] = monthly.get(month_key(portion), Decimal("0")) + portion.profit
            yearly[year_key(portion)] = yearly.get(year_key(portion), Decimal("0")) + portion.profit
    return RealizedStatistics(
        monthly=dict(sorted(monthly.items(), reverse=True)),
        yearly=dict(sorted(yearly.items(), reverse=True)),
    )


__all__ = [
    "RealizedPortion",
    "ReplayStep",
    "RealizedStatistics",
    "recorded_history",
    "replay_history",
    "realized_portions",
    "compute_statistics",
]
