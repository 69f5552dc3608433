"""Rows describing lots opened or closed on a given day."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, DecimalException
from typing import Iterable, Mapping

from .fees import FeeModel
from .models import Asset, GlobalSettings, LotKind
from .pricing import target_price
from .statistics import ReplayStep, replay_history


@dataclass(frozen=True)
class TodaysAcquire:
    index: int
    asset_name: str
    current_price: Decimal
    acquire_price: Decimal
    target_price: Decimal
    acquire_date: date
    absolute_return: Decimal
    annualized_return: Decimal


@dataclass(frozen=True)
class TodaysDispose:
    index: int
    asset_name: str
    acquire_price: Decimal
    sell_price: Decimal
    current_price: Decimal
    acquire_date: date
    sell_date: date
    days_held: int
    absolute_return: Decimal
    annualized_return: Decimal
    quantity: int
    profit: Decimal


@dataclass
class TodaysActivity:
    acquires: list[TodaysAcquire] = field(default_factory=list)
    disposes: list[TodaysDispose] = field(default_factory=list)


def annualize(absolute: Decimal, days: int) -> Decimal:
    """Compound ``absolute`` over ``days`` (floored at one) to a yearly rate."""

    base = 1 + absolute
    if base <= 0:
        return Decimal("-1")
    try:
        return base ** (Decimal("365") / max(1, days)) - 1
    except DecimalException:
        return Decimal("Infinity")


def _steps_in_order(assets: Iterable[Asset], settings: GlobalSettings, fees: FeeModel) -> list[ReplayStep]:
    steps = [step for asset in assets for step in replay_history(asset, settings, fees)]
    steps.sort(key=lambda step: step.lot.id)
    return steps


def todays_activity(
    assets: Iterable[Asset],
    settings: GlobalSettings,
    fees: FeeModel,
    live_prices: Mapping[int, Decimal],
    today: date | None = None,
) -> TodaysActivity:
    """Replay every asset and report real acquisitions and disposals dated ``today``.

    Virtual events still move the replayed book but produce no rows. Assets
    without a live price are reported against a price of zero.
    """

    today = today or date.today()
    report = TodaysActivity()
    for step in _steps_in_order(assets, settings, fees):
        lot = step.lot
        if lot.date != today or lot.is_virtual:
            continue
        current = Decimal(live_prices.get(step.asset.id, Decimal("0")))
        if lot.kind == LotKind.ACQUIRE:
            absolute = (current - lot.price) / lot.price if lot.price else Decimal("0")
            report.acquires.append(
                TodaysAcquire(
                    index=len(report.acquires) + 1,
                    asset_name=step.asset.name,
                    current_price=current,
                    acquire_price=lot.price,
                    target_price=target_price(
                        lot.price, lot.date, step.asset.effective_annual_rate(settings), today
                    ),
                    acquire_date=lot.date,
                    absolute_return=absolute,
                    annualized_return=annualize(absolute, 1),
                )
            )
            continue
        for portion in step.portions:
            settlement = portion.settlement
            held = max(1, (lot.date - portion.acquired.date).days)
            cost = portion.acquired.price * settlement.quantity
            absolute = settlement.profit / cost if cost else Decimal("0")
            report.disposes.append(
                TodaysDispose(
                    index=len(report.disposes) + 1,
                    asset_name=step.asset.name,
                    acquire_price=portion.acquired.price,
                    sell_price=settlement.net_sell_price,
                    current_price=current,
                    acquire_date=portion.acquired.date,
                    sell_date=lot.date,
                    days_held=held,
                    absolute_return=absolute,
                    annualized_return=annualize(absolute, held),
                    quantity=settlement.quantity,
                    profit=settlement.profit,
                )
            )
    return report


__all__ = ["TodaysAcquire", "TodaysDispose", "TodaysActivity", "annualize", "todays_activity"]
