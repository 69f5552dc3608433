"""Target price model for open lots."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, getcontext

getcontext().prec = 28

MIN_DAYS_HELD = 30
DAYS_PER_YEAR = Decimal("365")


def daily_rate(annual_rate: Decimal) -> Decimal:
    """Convert an annual percentage (``15`` for 15%) to a daily fraction."""

    return Decimal(annual_rate) / Decimal("100") / DAYS_PER_YEAR


def days_held(acquired_on: date, as_of: date) -> int:
    """Calendar days used for accrual, never fewer than ``MIN_DAYS_HELD``."""

    return max(MIN_DAYS_HELD, (as_of - acquired_on).days)


def target_price(
    acquire_price: Decimal,
    acquired_on: date,
    annual_rate: Decimal,
    as_of: date | None = None,
) -> Decimal:
    """Price at which a lot is considered ready for disposal.

    Simple accrual: ``price * (1 + daily_rate * days_held)``.
    """

    as_of = as_of or date.today()
    return Decimal(acquire_price) * (1 + daily_rate(annual_rate) * days_held(acquired_on, as_of))


def next_acquire_price(target: Decimal, step_rate: Decimal) -> Decimal:
    return Decimal(target) * (1 - Decimal(step_rate) / Decimal("100"))


__all__ = [
    "MIN_DAYS_HELD",
    "daily_rate",
    "days_held",
    "target_price",
    "next_acquire_price",
]
