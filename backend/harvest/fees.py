"""Commission and stamp duty applied to realized disposals."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class FeeModel:
    """Flat commission per trade, prorated by matched quantity, plus stamp duty."""

    fixed_commission: Decimal = Decimal("5")
    stamp_duty_rate: Decimal = Decimal("0.0005")


@dataclass(frozen=True)
class Settlement:
    """Profit breakdown for one matched portion of a disposal."""

    quantity: int
    acquire_price: Decimal
    dispose_price: Decimal
    acquire_fee: Decimal
    dispose_fee: Decimal
    tax: Decimal

    @property
    def gross(self) -> Decimal:
        return (self.dispose_price - self.acquire_price) * self.quantity

    @property
    def total_fees(self) -> Decimal:
        return self.acquire_fee + self.dispose_fee + self.tax

    @property
    def profit(self) -> Decimal:
        return self.gross - self.total_fees

    @property
    def net_sell_price(self) -> Decimal:
        return self.dispose_price - self.total_fees / self.quantity


def settle(
    fees: FeeModel,
    *,
    quantity: int,
    acquire_price: Decimal,
    lot_original_quantity: int,
    dispose_price: Decimal,
    dispose_quantity: int,
    is_virtual: bool = False,
) -> Settlement:
    """Price one matched portion; virtual disposals carry no fees."""

    zero = Decimal("0")
    if is_virtual:
        return Settlement(quantity, acquire_price, dispose_price, zero, zero, zero)
    commission = Decimal(fees.fixed_commission)
    return Settlement(
        quantity=quantity,
        acquire_price=acquire_price,
        dispose_price=dispose_price,
        acquire_fee=commission * quantity / lot_original_quantity,
        dispose_fee=commission * quantity / dispose_quantity,
        tax=Decimal(dispose_price) * quantity * Decimal(fees.stamp_duty_rate),
    )


__all__ = ["FeeModel", "Settlement", "settle"]
