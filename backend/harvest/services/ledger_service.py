"""Request-scoped orchestration around the ledger core.

The service owns one lock per asset so that mutating operations on the same
asset never interleave their read-modify-write of lot quantities. Importing a
backup takes every lock, in id order, before replacing the stored data. Replay
views (statistics, today's activity) only read stored history and take no
locks.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import AsyncIterator

from ..activity import TodaysActivity, todays_activity
from ..backup import dump_backup, load_backup
from ..core.config import AppSettings, get_settings
from ..dividends import DividendOutcome, apply_dividend_if_new, is_new
from ..errors import UnavailableDividendData, UnavailableQuote
from ..fees import FeeModel
from ..integrity import find_problems
from ..ledger import DisposalResult, LotLedger
from ..models import Asset, DividendEvent, GlobalSettings, Lot
from ..providers.sina import DividendSource, QuoteSource
from ..repository import Repository
from ..statistics import RealizedStatistics, compute_statistics
from ..suggestions import Suggestion, suggest

logger = logging.getLogger(__name__)


class LedgerService:
    def __init__(
        self,
        repository: Repository,
        *,
        quotes: QuoteSource | None = None,
        dividends: DividendSource | None = None,
        fees: FeeModel | None = None,
        app_settings: AppSettings | None = None,
    ):
        self.repository = repository
        self.quotes = quotes
        self.dividends = dividends
        self.app_settings = app_settings or get_settings()
        self.fees = fees or self.app_settings.fee_model()
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def settings(self) -> GlobalSettings:
        """Return stored global settings, seeding the configured defaults once."""

        settings = await self.repository.load_settings()
        if settings is None:
            settings = self.app_settings.default_global_settings()
            await self.repository.save_settings(settings)
        return settings

    @asynccontextmanager
    async def _ledger(self, asset_id: int) -> AsyncIterator[LotLedger]:
        async with self._locks[asset_id]:
            settings = await self.settings()
            asset = await self.repository.load_asset(asset_id)
            yield LotLedger(asset, settings, fees=self.fees, id_factory=self.repository.allocate_lot_id)

    async def acquire(self, asset_id: int, price: object, quantity: object, on: object) -> Lot:
        async with self._ledger(asset_id) as ledger:
            change = ledger.record_acquire(price, quantity, on)
            await self.repository.save_lots(asset_id, [change])
        return change.lot

    async def dispose(self, asset_id: int, price: object, quantity: object, on: object) -> DisposalResult:
        async with self._ledger(asset_id) as ledger:
            result = ledger.record_dispose(price, quantity, on)
            await self.repository.save_lots(asset_id, result.changes)
        return result

    async def virtual_trade(self, asset_id: int, price: object, quantity: object, on: object) -> DisposalResult:
        async with self._ledger(asset_id) as ledger:
            result = ledger.record_virtual_trade(price, quantity, on)
            await self.repository.save_lots(asset_id, result.changes)
        return result

    async def _latest_dividend(self, asset: Asset) -> DividendEvent | None:
        if self.dividends is None:
            return None
        try:
            return await self.dividends.latest_dividend(asset.symbol)
        except UnavailableDividendData as exc:
            logger.warning("Dividend data unavailable for %s: %s", asset.symbol, exc)
            return None

    async def check_dividends(self, asset_id: int, as_of: date | None = None) -> DividendOutcome:
        """Fetch the latest dividend for one asset and apply it if it is new."""

        as_of = as_of or date.today()
        asset = await self.repository.load_asset(asset_id)
        event = await self._latest_dividend(asset)
        if event is None or event.ex_date > as_of:
            return DividendOutcome(applied=False, watermark=asset.last_dividend_date)
        async with self._ledger(asset_id) as ledger:
            if not is_new(ledger.asset, event):
                return DividendOutcome(applied=False, watermark=ledger.asset.last_dividend_date)
            outcome = apply_dividend_if_new(ledger.asset, event)
            await self.repository.save_lots(asset_id, outcome.changes, dividend=outcome.record)
        return outcome

    async def check_all_dividends(self, as_of: date | None = None) -> int:
        """Apply new dividends to every asset and return how many were updated."""

        updated = 0
        for asset in await self.repository.list_assets():
            outcome = await self.check_dividends(asset.id, as_of)
            if outcome.applied:
                updated += 1
        return updated

    async def live_price(self, symbol: str) -> Decimal | None:
        if self.quotes is None:
            return None
        try:
            quote = await self.quotes.quote(symbol)
        except UnavailableQuote as exc:
            logger.warning("Quote unavailable for %s: %s", symbol, exc)
            return None
        return quote.price

    async def _live_prices(self, assets: list[Asset]) -> dict[int, Decimal | None]:
        prices = await asyncio.gather(*(self.live_price(asset.symbol) for asset in assets))
        return {asset.id: price for asset, price in zip(assets, prices)}

    async def dashboard(self, as_of: date | None = None) -> list[Suggestion]:
        settings = await self.settings()
        assets = await self.repository.list_assets()
        prices = await self._live_prices(assets)
        return [suggest(asset, settings, prices[asset.id], as_of) for asset in assets]

    async def suggestion(self, asset_id: int, as_of: date | None = None) -> Suggestion:
        settings = await self.settings()
        asset = await self.repository.load_asset(asset_id)
        return suggest(asset, settings, await self.live_price(asset.symbol), as_of)

    async def statistics(self) -> RealizedStatistics:
        settings = await self.settings()
        return compute_statistics(await self.repository.list_assets(), settings, self.fees)

    async def todays_activity(self, today: date | None = None) -> TodaysActivity:
        settings = await self.settings()
        assets = await self.repository.list_assets()
        prices = await self._live_prices(assets)
        live = {asset_id: price for asset_id, price in prices.items() if price is not None}
        return todays_activity(assets, settings, self.fees, live, today)

    async def verify(self) -> dict[str, list[str]]:
        """Check every stored asset and return the problems found, keyed by symbol."""

        settings = await self.settings()
        report = {}
        for asset in await self.repository.list_assets():
            problems = find_problems(asset, settings, self.fees)
            if problems:
                logger.warning("%s has %d consistency problem(s)", asset.symbol, len(problems))
                report[asset.symbol] = problems
        return report

    async def export_backup(self) -> str:
        return dump_backup(await self.settings(), await self.repository.list_assets())

    async def import_backup(self, payload: str | bytes) -> int:
        """Replace all stored data with ``payload`` once no asset is being written."""

        settings, assets = load_backup(payload)
        stored = await self.repository.list_assets()
        asset_ids = sorted({asset.id for asset in stored} | {asset.id for asset in assets} | set(self._locks))
        async with AsyncExitStack() as stack:
            for asset_id in asset_ids:
                await stack.enter_async_context(self._locks[asset_id])
            await self.repository.replace_all(settings, assets)
        logger.info("Imported %d asset(s) from backup", len(assets))
        return len(assets)


__all__ = ["LedgerService"]
