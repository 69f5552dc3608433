"""Dividend cost-basis adjustment."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from harvest.dividends import apply_dividend_if_new, is_new
from harvest.models import AppliedDividend, Asset, DividendEvent, Lot, LotKind, LotStatus


def build_asset() -> Asset:
    return Asset(
        id=1,
        symbol="sh600000",
        name="Pudong Bank",
        lots=[
            Lot(1, 1, LotKind.ACQUIRE, Decimal("10"), 1000, date(2024, 1, 2)),
            Lot(2, 1, LotKind.ACQUIRE, Decimal("0.2"), 500, date(2024, 2, 1)),
            Lot(3, 1, LotKind.ACQUIRE, Decimal("9"), 100, date(2024, 6, 3)),
            Lot(4, 1, LotKind.ACQUIRE, Decimal("8"), 100, date(2024, 1, 5), status=LotStatus.CLOSED),
            Lot(5, 1, LotKind.DISPOSE, Decimal("9"), 100, date(2024, 3, 1), status=LotStatus.CLOSED),
        ],
    )


def prices(asset: Asset) -> dict[int, Decimal]:
    return {lot.id: lot.price for lot in asset.lots}


def test_dividend_lowers_open_lots_bought_before_ex_date():
    asset = build_asset()

    outcome = apply_dividend_if_new(asset, DividendEvent(date(2024, 5, 6), Decimal("0.3")))

    assert outcome.applied
    assert outcome.adjusted == 2
    assert outcome.watermark == date(2024, 5, 6)
    assert asset.last_dividend_date == date(2024, 5, 6)
    assert prices(asset) == {
        1: Decimal("9.7"),
        2: Decimal("0"),
        3: Decimal("9"),
        4: Decimal("8"),
        5: Decimal("9"),
    }


def test_applied_dividend_is_logged_and_keeps_the_price_paid():
    asset = build_asset()

    outcome = apply_dividend_if_new(asset, DividendEvent(date(2024, 5, 6), Decimal("0.3")))

    assert outcome.record == AppliedDividend(date(2024, 5, 6), Decimal("0.3"), after_lot_id=5)
    assert asset.dividends == [outcome.record]
    paid = {lot.id: lot.acquire_price for lot in asset.lots}
    assert paid[1] == Decimal("10")
    assert paid[2] == Decimal("0.2")


def test_same_dividend_applies_once():
    asset = build_asset()
    event = DividendEvent(date(2024, 5, 6), Decimal("0.3"))
    apply_dividend_if_new(asset, event)
    after_first = prices(asset)

    outcome = apply_dividend_if_new(asset, event)

    assert not outcome.applied
    assert outcome.changes == []
    assert prices(asset) == after_first
    assert len(asset.dividends) == 1


def test_older_dividend_is_ignored_and_watermark_never_moves_back():
    asset = build_asset()
    apply_dividend_if_new(asset, DividendEvent(date(2024, 5, 6), Decimal("0.3")))
    after_first = prices(asset)

    outcome = apply_dividend_if_new(asset, DividendEvent(date(2023, 5, 6), Decimal("0.5")))

    assert not outcome.applied
    assert asset.last_dividend_date == date(2024, 5, 6)
    assert prices(asset) == after_first


def test_watermark_advances_without_qualifying_lots():
    asset = Asset(id=2, symbol="sz000001", name="Ping An")
    assert is_new(asset, DividendEvent(date(1990, 1, 1), Decimal("0.1")))

    outcome = apply_dividend_if_new(asset, DividendEvent(date(2024, 7, 1), Decimal("0.1")))

    assert outcome.applied
    assert outcome.adjusted == 0
    assert asset.last_dividend_date == date(2024, 7, 1)


def test_lot_bought_on_ex_date_is_not_adjusted():
    asset = Asset(
        id=3,
        symbol="sz002027",
        name="Focus Media",
        lots=[Lot(1, 3, LotKind.ACQUIRE, Decimal("7"), 100, date(2024, 7, 1))],
    )

    apply_dividend_if_new(asset, DividendEvent(date(2024, 7, 1), Decimal("0.2")))

    assert asset.lots[0].price == Decimal("7")
