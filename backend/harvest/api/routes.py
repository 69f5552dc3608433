"""Ledger routes: transactions, dividends, suggestions and reports."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Request, Response, status

from ..ledger import DisposalResult
from ..models import Lot, LotKind
from ..services import LedgerService
from ..suggestions import Suggestion
from .schemas import (
    DividendCheckResponse,
    DividendSweepResponse,
    ImportResponse,
    LotOut,
    RankedLotOut,
    StatisticsResponse,
    SuggestionOut,
    TodaysAcquireOut,
    TodaysActivityResponse,
    TodaysDisposeOut,
    TransactionRequest,
    TransactionResponse,
)


def get_ledger_router(service: LedgerService) -> APIRouter:
    router = APIRouter(tags=["ledger"])

    @router.get("/stocks", response_model=list[SuggestionOut])
    async def list_stocks(as_of: date | None = None) -> list[SuggestionOut]:
        return [_to_suggestion_out(item) for item in await service.dashboard(as_of)]

    @router.get("/stocks/{asset_id}", response_model=SuggestionOut)
    async def get_stock(asset_id: int, as_of: date | None = None) -> SuggestionOut:
        return _to_suggestion_out(await service.suggestion(asset_id, as_of))

    @router.post(
        "/stocks/{asset_id}/transactions",
        response_model=TransactionResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def post_transaction(asset_id: int, payload: TransactionRequest) -> TransactionResponse:
        if payload.kind == LotKind.ACQUIRE and not payload.is_virtual:
            lot = await service.acquire(asset_id, payload.price, payload.quantity, payload.date)
            return TransactionResponse(lot=_to_lot_out(lot), changes=[_to_lot_out(lot)])
        if payload.is_virtual:
            result = await service.virtual_trade(asset_id, payload.price, payload.quantity, payload.date)
        else:
            result = await service.dispose(asset_id, payload.price, payload.quantity, payload.date)
        return _to_transaction_response(result)

    @router.post("/stocks/{asset_id}/dividends/check", response_model=DividendCheckResponse)
    async def check_stock_dividends(asset_id: int) -> DividendCheckResponse:
        outcome = await service.check_dividends(asset_id)
        return DividendCheckResponse(
            applied=outcome.applied,
            adjusted_lots=outcome.adjusted,
            last_dividend_date=outcome.watermark,
        )

    @router.post("/dividends/check", response_model=DividendSweepResponse)
    async def check_all_dividends() -> DividendSweepResponse:
        return DividendSweepResponse(updated_assets=await service.check_all_dividends())

    @router.get("/statistics", response_model=StatisticsResponse)
    async def get_statistics() -> StatisticsResponse:
        stats = await service.statistics()
        return StatisticsResponse(monthly=stats.monthly, yearly=stats.yearly)

    @router.get("/activity/today", response_model=TodaysActivityResponse)
    async def get_todays_activity(today: date | None = None) -> TodaysActivityResponse:
        report = await service.todays_activity(today)
        return TodaysActivityResponse(
            acquires=[TodaysAcquireOut.model_validate(row) for row in report.acquires],
            disposes=[TodaysDisposeOut.model_validate(row) for row in report.disposes],
        )

    @router.get("/backup")
    async def export_backup() -> Response:
        return Response(content=await service.export_backup(), media_type="application/json")

    @router.post("/backup", response_model=ImportResponse)
    async def import_backup(request: Request) -> ImportResponse:
        return ImportResponse(imported_assets=await service.import_backup(await request.body()))

    return router


def _to_lot_out(lot: Lot) -> LotOut:
    return LotOut.model_validate(lot)


def _to_transaction_response(result: DisposalResult) -> TransactionResponse:
    return TransactionResponse(
        lot=_to_lot_out(result.disposal),
        changes=[_to_lot_out(change.lot) for change in result.changes],
        realized_profit=result.realized_profit,
        replacement=_to_lot_out(result.replacement) if result.replacement else None,
    )


def _to_suggestion_out(item: Suggestion) -> SuggestionOut:
    return SuggestionOut(
        asset_id=item.asset_id,
        symbol=item.symbol,
        name=item.name,
        live_price=item.live_price,
        invested=item.invested,
        open_lots=[RankedLotOut(lot=_to_lot_out(r.lot), target_price=r.target) for r in item.ranked],
        is_last_holding=item.is_last_holding,
        cap_reached=item.cap_reached,
        nearest_target=item.nearest_target,
        next_acquire_price=item.next_acquire_price,
        gap=item.gap,
        virtual_trade_lot_id=item.virtual_trade_lot_id,
        virtual_trade_target=item.virtual_trade_target,
        should_acquire=item.should_acquire,
        should_dispose=item.should_dispose,
    )
