"""Persistence contract for the ledger plus an in-memory implementation."""

from __future__ import annotations

import copy
import itertools
from decimal import Decimal
from typing import Protocol, Sequence

from .errors import AssetNotFound
from .models import AppliedDividend, Asset, GlobalSettings, LotChange


class Repository(Protocol):
    """Load/save-by-id storage consumed by the ledger service.

    ``save_lots`` must apply all changes together with the optional applied
    dividend, which also advances the asset's dividend watermark.
    """

    async def list_assets(self) -> list[Asset]:
        ...

    async def load_asset(self, asset_id: int) -> Asset:
        ...

    async def add_asset(
        self,
        symbol: str,
        name: str,
        *,
        annual_rate: Decimal | None = None,
        step_rate: Decimal | None = None,
        max_investment: Decimal | None = None,
    ) -> Asset:
        ...

    async def load_settings(self) -> GlobalSettings | None:
        ...

    async def save_settings(self, settings: GlobalSettings) -> None:
        ...

    async def save_lots(
        self,
        asset_id: int,
        changes: Sequence[LotChange],
        *,
        dividend: AppliedDividend | None = None,
    ) -> None:
        ...

    def allocate_lot_id(self) -> int:
        ...

    async def replace_all(self, settings: GlobalSettings, assets: Sequence[Asset]) -> None:
        ...


class InMemoryRepository:
    """Simple repository for tests and embedding.

    Callers always receive copies, so a ledger mutated in memory is only
    persisted through ``save_lots``.
    """

    def __init__(self, settings: GlobalSettings | None = None, assets: Sequence[Asset] = ()):
        self._settings = copy.deepcopy(settings)
        self._assets: dict[int, Asset] = {}
        self._reset(assets)

    def _reset(self, assets: Sequence[Asset]) -> None:
        self._assets = {asset.id: copy.deepcopy(asset) for asset in assets}
        max_lot = max((lot.id for asset in assets for lot in asset.lots), default=0)
        self._lot_ids = itertools.count(max_lot + 1)
        self._asset_ids = itertools.count(max(self._assets, default=0) + 1)

    async def list_assets(self) -> list[Asset]:
        return [copy.deepcopy(asset) for _, asset in sorted(self._assets.items())]

    async def load_asset(self, asset_id: int) -> Asset:
        try:
            return copy.deepcopy(self._assets[asset_id])
        except KeyError:
            raise AssetNotFound(f"Asset {asset_id} not found") from None

    async def add_asset(
        self,
        symbol: str,
        name: str,
        *,
        annual_rate: Decimal | None = None,
        step_rate: Decimal | None = None,
        max_investment: Decimal | None = None,
    ) -> Asset:
        asset = Asset(
            id=next(self._asset_ids),
            symbol=symbol,
            name=name,
            annual_rate=annual_rate,
            step_rate=step_rate,
            max_investment=max_investment,
        )
        self._assets[asset.id] = asset
        return copy.deepcopy(asset)

    async def load_settings(self) -> GlobalSettings | None:
        return copy.deepcopy(self._settings)

    async def save_settings(self, settings: GlobalSettings) -> None:
        self._settings = copy.deepcopy(settings)

    async def save_lots(
        self,
        asset_id: int,
        changes: Sequence[LotChange],
        *,
        dividend: AppliedDividend | None = None,
    ) -> None:
        stored = self._assets.get(asset_id)
        if stored is None:
            raise AssetNotFound(f"Asset {asset_id} not found")
        known = {lot.id for lot in stored.lots}
        missing = [c.lot.id for c in changes if not c.created and c.lot.id not in known]
        if missing:
            raise AssetNotFound(f"Lots {missing} do not belong to asset {asset_id}")
        updated = {c.lot.id: copy.deepcopy(c.lot) for c in changes if not c.created}
        created = [copy.deepcopy(c.lot) for c in changes if c.created]
        stored.lots = [updated.get(lot.id, lot) for lot in stored.lots] + created
        if dividend is not None:
            stored.dividends = [*stored.dividends, dividend]
            stored.last_dividend_date = dividend.ex_date

    def allocate_lot_id(self) -> int:
        return next(self._lot_ids)

    async def replace_all(self, settings: GlobalSettings, assets: Sequence[Asset]) -> None:
        self._settings = copy.deepcopy(settings)
        self._reset(assets)


__all__ = ["Repository", "InMemoryRepository"]
