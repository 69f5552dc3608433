"""Application settings."""

from __future__ import annotations

from decimal import Decimal

from harvest.core.config import AppSettings, get_settings
from harvest.fees import FeeModel
from harvest.models import GlobalSettings


def test_defaults():
    settings = AppSettings(_env_file=None)

    assert settings.fee_model() == FeeModel(Decimal("5"), Decimal("0.0005"))
    assert settings.default_global_settings() == GlobalSettings(Decimal("15"), Decimal("3.5"))
    assert settings.allowed_origins() == ["http://localhost:4200"]


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("HARVEST_FIXED_COMMISSION", "3")
    monkeypatch.setenv("HARVEST_DEFAULT_ANNUAL_RATE", "12.5")
    monkeypatch.setenv("HARVEST_CORS_ORIGINS", "http://a.test, http://b.test")

    settings = AppSettings(_env_file=None)

    assert settings.fee_model().fixed_commission == Decimal("3")
    assert settings.default_global_settings().annual_rate == Decimal("12.5")
    assert settings.allowed_origins() == ["http://a.test", "http://b.test"]


def test_logging_view_hides_database_password():
    settings = AppSettings(_env_file=None, database_url="postgresql+asyncpg://ledger:secret@db:5432/ledger")

    logged = settings.dict_for_logging()

    assert "secret" not in logged["database_url"]
    assert logged["database_url"].startswith("postgresql+asyncpg://ledger:")


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
    assert get_settings(app_name="Other").app_name == "Other"
