"""Advisory signals derived from an asset's open lots and live price."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from .matching import RankedLot, rank_open_lots
from .models import Asset, GlobalSettings
from .pricing import next_acquire_price, target_price

GAP_THRESHOLD = Decimal("0.02")


@dataclass
class Suggestion:
    asset_id: int
    symbol: str
    name: str
    live_price: Decimal
    ranked: list[RankedLot] = field(default_factory=list)
    invested: Decimal = Decimal("0")
    is_last_holding: bool = False
    cap_reached: bool = False
    nearest_target: Decimal | None = None
    next_acquire_price: Decimal | None = None
    gap: Decimal | None = None
    virtual_trade_lot_id: int | None = None
    virtual_trade_target: Decimal | None = None
    should_acquire: bool = False
    should_dispose: bool = False

    @property
    def virtual_trade_suggested(self) -> bool:
        return self.virtual_trade_lot_id is not None


def suggest(
    asset: Asset,
    settings: GlobalSettings,
    live_price: Decimal | None,
    as_of: date | None = None,
) -> Suggestion:
    """Build the advisory view for ``asset``.

    A missing live price is treated as zero: targets are still reported but no
    price-driven signal (gap, acquire, dispose) fires.
    """

    as_of = as_of or date.today()
    price = Decimal(live_price) if live_price is not None else Decimal("0")
    annual_rate = asset.effective_annual_rate(settings)
    open_lots = asset.open_acquires()
    ranked = rank_open_lots(open_lots, annual_rate, as_of)
    invested = sum((lot.cost for lot in open_lots), Decimal("0"))

    suggestion = Suggestion(
        asset_id=asset.id,
        symbol=asset.symbol,
        name=asset.name,
        live_price=price,
        ranked=ranked,
        invested=invested,
        is_last_holding=len(open_lots) == 1,
        cap_reached=asset.max_investment is not None and invested >= asset.max_investment,
    )
    if not ranked:
        return suggestion

    nearest = ranked[0]
    suggestion.nearest_target = nearest.target
    suggestion.next_acquire_price = next_acquire_price(nearest.target, asset.effective_step_rate(settings))

    if price > 0:
        if len(ranked) >= 2:
            suggestion.gap = (ranked[1].target - nearest.target) / price
            if suggestion.gap > GAP_THRESHOLD:
                suggestion.virtual_trade_lot_id = nearest.lot.id
                # A virtual trade executes at the lot's current target, not the live price.
                suggestion.virtual_trade_target = target_price(nearest.target, as_of, annual_rate, as_of)
        suggestion.should_acquire = not suggestion.cap_reached and price <= suggestion.next_acquire_price
        suggestion.should_dispose = price >= nearest.target
    return suggestion


__all__ = ["GAP_THRESHOLD", "Suggestion", "suggest"]
