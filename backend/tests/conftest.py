import asyncio
import inspect
import pathlib
import sys
from datetime import date
from decimal import Decimal

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from harvest.fees import FeeModel  # noqa: E402
from harvest.ledger import LotLedger  # noqa: E402
from harvest.models import Asset, GlobalSettings  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            argnames = pyfuncitem._fixtureinfo.argnames
            loop.run_until_complete(test_function(**{name: pyfuncitem.funcargs[name] for name in argnames}))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


@pytest.fixture
def settings() -> GlobalSettings:
    return GlobalSettings(annual_rate=Decimal("15"), step_rate=Decimal("3.5"))


@pytest.fixture
def fees() -> FeeModel:
    return FeeModel(fixed_commission=Decimal("5"), stamp_duty_rate=Decimal("0.001"))


@pytest.fixture
def day0() -> date:
    return date(2024, 1, 2)


@pytest.fixture
def make_ledger(settings, fees):
    def _make(asset_id: int = 1, symbol: str = "sz002027", name: str = "Focus Media", **overrides) -> LotLedger:
        asset = Asset(id=asset_id, symbol=symbol, name=name, **overrides)
        return LotLedger(asset, settings, fees=fees)

    return _make
