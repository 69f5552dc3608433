"""Application configuration and environment helpers."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

from ..fees import FeeModel
from ..models import GlobalSettings


class AppSettings(BaseSettings):
    """Configuration options for the harvest ledger service."""

    model_config = SettingsConfigDict(env_prefix="HARVEST_", env_file=".env", env_file_encoding="utf-8")

    app_name: str = Field(default="Harvest Ledger")
    database_url: str = Field(
        default="sqlite+aiosqlite:///./harvest.db",
        description="SQLAlchemy async database URL.",
    )

    default_annual_rate: Decimal = Field(
        default=Decimal("15"),
        description="Annual accrual rate (percent) seeded when no settings are stored.",
    )
    default_step_rate: Decimal = Field(
        default=Decimal("3.5"),
        description="Step below the nearest target (percent) for the next acquisition.",
    )

    fixed_commission: Decimal = Field(default=Decimal("5"), ge=0)
    stamp_duty_rate: Decimal = Field(default=Decimal("0.0005"), ge=0)

    quote_base_url: str = Field(default="http://hq.sinajs.cn")
    dividend_base_url: str = Field(default="http://vip.stock.finance.sina.com.cn")
    quote_referer: str = Field(default="https://finance.sina.com.cn")
    http_timeout_seconds: float = Field(default=10.0, gt=0)
    cors_origins: str = Field(
        default="http://localhost:4200",
        description="Comma-separated origins allowed to call the API.",
    )

    def fee_model(self) -> FeeModel:
        return FeeModel(fixed_commission=self.fixed_commission, stamp_duty_rate=self.stamp_duty_rate)

    def default_global_settings(self) -> GlobalSettings:
        return GlobalSettings(annual_rate=self.default_annual_rate, step_rate=self.default_step_rate)

    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        data = self.model_dump()
        data["database_url"] = make_url(self.database_url).render_as_string(hide_password=True)
        return data


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = ["AppSettings", "get_settings"]
