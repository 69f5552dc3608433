"""Ledger service orchestration over the in-memory repository."""

from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from harvest.core.config import AppSettings
from harvest.errors import AssetNotFound, InsufficientOpenQuantity, UnavailableDividendData, UnavailableQuote
from harvest.models import DividendEvent, GlobalSettings, LotKind, Quote
from harvest.repository import InMemoryRepository
from harvest.services import LedgerService

DAY = date(2024, 3, 1)


class StubQuotes:
    def __init__(self, prices: dict[str, str]) -> None:
        self.prices = prices

    async def quote(self, symbol: str) -> Quote:
        if symbol not in self.prices:
            raise UnavailableQuote(f"no quote for {symbol}")
        return Quote(symbol=symbol, name=symbol, price=Decimal(self.prices[symbol]))


class StubDividends:
    def __init__(self, events: dict[str, DividendEvent | None]) -> None:
        self.events = events
        self.calls: list[str] = []

    async def latest_dividend(self, symbol: str) -> DividendEvent | None:
        self.calls.append(symbol)
        if symbol not in self.events:
            raise UnavailableDividendData(f"no dividend table for {symbol}")
        return self.events[symbol]


class YieldingRepository(InMemoryRepository):
    """Yields to the event loop between load and save to expose interleaving."""

    async def load_asset(self, asset_id: int):
        asset = await super().load_asset(asset_id)
        await asyncio.sleep(0)
        return asset


async def _service(repository=None, **kwargs) -> tuple[LedgerService, InMemoryRepository]:
    repository = repository or InMemoryRepository()
    await repository.add_asset("sz002027", "Focus Media")
    await repository.add_asset("sh600000", "Pudong Bank")
    kwargs.setdefault("app_settings", AppSettings(fixed_commission=Decimal("5"), stamp_duty_rate=Decimal("0.001")))
    return LedgerService(repository, **kwargs), repository


@pytest.mark.asyncio
async def test_settings_are_seeded_from_configuration():
    service, repository = await _service(
        app_settings=AppSettings(default_annual_rate=Decimal("12"), default_step_rate=Decimal("4"))
    )

    assert await repository.load_settings() is None
    assert await service.settings() == GlobalSettings(Decimal("12"), Decimal("4"))
    assert await repository.load_settings() == GlobalSettings(Decimal("12"), Decimal("4"))


@pytest.mark.asyncio
async def test_trades_are_persisted():
    service, repository = await _service()

    lot = await service.acquire(1, Decimal("10"), 1000, DAY)
    result = await service.dispose(1, Decimal("11"), 600, date(2024, 4, 15))

    stored = await repository.load_asset(1)
    assert lot.id in {item.id for item in stored.lots}
    assert result.disposal in stored.lots
    assert sum(item.quantity for item in stored.open_acquires()) == 400
    assert result.realized_profit == Decimal("600") - Decimal("3") - Decimal("5") - Decimal("6.6")


@pytest.mark.asyncio
async def test_concurrent_disposals_are_serialized_per_asset():
    service, repository = await _service(YieldingRepository())
    await service.acquire(1, Decimal("10"), 1000, DAY)

    results = await asyncio.gather(
        service.dispose(1, Decimal("11"), 600, date(2024, 4, 15)),
        service.dispose(1, Decimal("11"), 600, date(2024, 4, 15)),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientOpenQuantity)
    stored = await repository.load_asset(1)
    assert sum(item.quantity for item in stored.open_acquires()) == 400
    assert len([item for item in stored.lots if item.kind == LotKind.DISPOSE]) == 1


@pytest.mark.asyncio
async def test_virtual_trade_is_persisted_with_replacement():
    service, repository = await _service()
    await service.acquire(1, Decimal("10"), 1000, DAY)

    result = await service.virtual_trade(1, Decimal("10.8"), 1000, date(2024, 5, 1))

    stored = await repository.load_asset(1)
    assert stored.open_acquires() == [result.replacement]


@pytest.mark.asyncio
async def test_unknown_asset():
    service, _ = await _service()

    with pytest.raises(AssetNotFound):
        await service.acquire(99, Decimal("10"), 100, DAY)


@pytest.mark.asyncio
async def test_dashboard_tolerates_missing_quotes():
    service, _ = await _service(quotes=StubQuotes({"sz002027": "9.00"}))
    await service.acquire(1, Decimal("10"), 1000, DAY)
    await service.acquire(2, Decimal("8"), 1000, DAY)

    focus, bank = await service.dashboard(DAY)

    assert focus.live_price == Decimal("9.00")
    assert focus.should_acquire
    assert bank.live_price == 0
    assert not bank.should_acquire
    assert bank.nearest_target is not None


@pytest.mark.asyncio
async def test_dividend_sweep_applies_new_events_once():
    dividends = StubDividends(
        {
            "sz002027": DividendEvent(date(2024, 5, 27), Decimal("0.34")),
            "sh600000": DividendEvent(date(2030, 1, 1), Decimal("1")),
        }
    )
    service, repository = await _service(dividends=dividends)
    await service.acquire(1, Decimal("10"), 1000, DAY)
    await service.acquire(2, Decimal("8"), 1000, DAY)

    assert await service.check_all_dividends(date(2024, 6, 3)) == 1
    assert await service.check_all_dividends(date(2024, 6, 3)) == 0

    focus = await repository.load_asset(1)
    bank = await repository.load_asset(2)
    assert focus.last_dividend_date == date(2024, 5, 27)
    assert [(item.ex_date, item.per_share) for item in focus.dividends] == [(date(2024, 5, 27), Decimal("0.34"))]
    assert [item.price for item in focus.open_acquires()] == [Decimal("9.66")]
    assert bank.last_dividend_date is None
    assert [item.price for item in bank.open_acquires()] == [Decimal("8")]


@pytest.mark.asyncio
async def test_dividend_failures_are_skipped():
    service, repository = await _service(dividends=StubDividends({}))
    await service.acquire(1, Decimal("10"), 1000, DAY)

    outcome = await service.check_dividends(1, date(2024, 6, 3))

    assert not outcome.applied
    assert (await repository.load_asset(1)).open_acquires()[0].price == Decimal("10")


@pytest.mark.asyncio
async def test_reports_read_stored_history():
    service, _ = await _service(quotes=StubQuotes({"sz002027": "11.5"}))
    await service.acquire(1, Decimal("10"), 1000, DAY)
    await service.dispose(1, Decimal("11"), 1000, date(2024, 6, 3))

    stats = await service.statistics()
    activity = await service.todays_activity(date(2024, 6, 3))

    assert stats.monthly == {"2024-06": Decimal("1000") - Decimal("5") - Decimal("5") - Decimal("11")}
    (row,) = activity.disposes
    assert row.current_price == Decimal("11.5")
    assert row.profit == stats.monthly["2024-06"]


@pytest.mark.asyncio
async def test_backup_round_trip_between_services():
    service, _ = await _service()
    await service.acquire(1, Decimal("10"), 1000, DAY)
    await service.virtual_trade(1, Decimal("10.5"), 300, date(2024, 4, 1))
    payload = await service.export_backup()

    target = LedgerService(InMemoryRepository())
    assert await target.import_backup(payload) == 2

    assert await target.repository.list_assets() == await service.repository.list_assets()
    assert await target.settings() == await service.settings()
    lot = await target.acquire(1, Decimal("9"), 100, date(2024, 5, 1))
    assert lot.id > max(item.id for a in await service.repository.list_assets() for item in a.lots)


@pytest.mark.asyncio
async def test_backup_import_waits_for_writes_in_progress():
    source, _ = await _service()
    await source.acquire(1, Decimal("8"), 500, DAY)
    payload = await source.export_backup()

    service, repository = await _service(YieldingRepository())
    await service.acquire(1, Decimal("10"), 1000, DAY)

    result, imported = await asyncio.gather(
        service.dispose(1, Decimal("11"), 600, date(2024, 4, 15)),
        service.import_backup(payload),
    )

    assert result.disposal.quantity == 600
    assert imported == 2
    assert await repository.list_assets() == await source.repository.list_assets()
