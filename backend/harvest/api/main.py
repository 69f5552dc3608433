"""Entrypoint for the harvest ledger FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import pydantic
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.config import get_settings
from ..core.logging import setup_logging
from ..errors import AssetNotFound, InsufficientOpenQuantity, ValidationError
from ..providers import SinaDividendSource, SinaQuoteSource
from ..services import LedgerService
from .database import Database
from .repository import SqlAlchemyRepository
from .routes import get_ledger_router
from .schemas import HealthResponse

logger = logging.getLogger(__name__)


def _default_service(database: Database) -> tuple[LedgerService, SqlAlchemyRepository]:
    repository = SqlAlchemyRepository(database)
    service = LedgerService(repository, quotes=SinaQuoteSource(), dividends=SinaDividendSource())
    return service, repository


def create_app(service: LedgerService | None = None, database: Database | None = None) -> FastAPI:
    settings = get_settings()
    repository: SqlAlchemyRepository | None = None
    if service is None:
        setup_logging()
        database = database or Database()
        service, repository = _default_service(database)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        if repository is not None:
            logger.info("Starting %s with settings %s", settings.app_name, settings.dict_for_logging())
            await repository.initialize()
        yield
        if database is not None:
            await database.dispose()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=_lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(get_ledger_router(service))

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})

    @app.exception_handler(pydantic.ValidationError)
    async def _payload_error(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.errors(include_url=False, include_context=False)},
        )

    @app.exception_handler(InsufficientOpenQuantity)
    async def _insufficient(request: Request, exc: InsufficientOpenQuantity) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "requested": exc.requested, "available": exc.available},
        )

    @app.exception_handler(AssetNotFound)
    async def _not_found(request: Request, exc: AssetNotFound) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            service="harvest-ledger",
            database_url=database.engine.url.render_as_string(hide_password=True) if database else None,
        )

    return app


app = create_app()
