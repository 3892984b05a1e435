"""
Pytest configuration and fixtures.
Provides fake rate sources, a controllable clock, and a test app client
wired to an isolated DI container.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import pytest
from dependency_injector import providers
from httpx import ASGITransport, AsyncClient

from costcalc.core.integrations.rate_sources import RateSourceError
from costcalc.db.repositories.project_repository import ProjectRepository
from costcalc.deps import di_container
from costcalc.main import app
from costcalc.schemas.currency_rate import RateTable
from costcalc.services.exchange_rate_service import ExchangeRateService
from costcalc.services.project_service import ProjectService
from costcalc.services.rate_history_service import HistoricalRateTracker


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeRateSource:
    """In-memory rate source that counts fetches and can be told to fail or stall."""

    def __init__(self, name: str, tables: Optional[Dict[str, Dict[str, float]]] = None):
        self.name = name
        self.tables = tables or {}
        self.calls = 0
        self.fail = False
        self.delay = 0.0

    async def fetch_table(self, base_currency: str) -> RateTable:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RateSourceError(f"{self.name}: simulated outage")
        rates = self.tables.get(base_currency.upper())
        if rates is None:
            raise RateSourceError(f"{self.name}: unknown base {base_currency}")
        return RateTable(base=base_currency, rates=rates, fetched_at=datetime.now(timezone.utc))

    async def close(self) -> None:
        pass


USD_TABLE = {"USD": 1.0, "EUR": 0.9, "GBP": 0.8, "INR": 83.0}
EUR_TABLE = {"EUR": 1.0, "USD": 1.1, "GBP": 0.87}
GBP_TABLE = {"GBP": 1.0, "USD": 1.25, "EUR": 1.15}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def primary_source():
    return FakeRateSource("primary", {"USD": dict(USD_TABLE), "EUR": dict(EUR_TABLE), "GBP": dict(GBP_TABLE)})


@pytest.fixture
def fallback_source():
    return FakeRateSource("fallback", {"USD": {"EUR": 0.95}, "EUR": {"USD": 1.05}, "GBP": {"USD": 1.2}})


@pytest.fixture
def rate_history(clock):
    return HistoricalRateTracker(retention_days=30, clock=clock)


@pytest.fixture
def exchange_rate_service(primary_source, fallback_source, clock, rate_history):
    return ExchangeRateService(
        primary=primary_source,
        fallback=fallback_source,
        ttl_seconds=300,
        clock=clock,
        history=rate_history,
    )


@pytest.fixture
def project_service(exchange_rate_service):
    return ProjectService(
        exchange_rate_service=exchange_rate_service,
        project_repo=ProjectRepository(),
        rate_timeout=0.5,
    )


@pytest.fixture
def container(primary_source, fallback_source):
    """Application container with fake rate sources in place of the HTTP ones."""
    test_container = di_container.create_container()
    test_container.primary_rate_source.override(providers.Object(primary_source))
    test_container.fallback_rate_source.override(providers.Object(fallback_source))
    test_container.config.project_rate_timeout.from_value(0.5)
    previous = di_container._container
    di_container.set_container(test_container)
    yield test_container
    di_container.set_container(previous)


@pytest.fixture(scope="function")
async def test_client(container):
    """
    Create a test HTTP client.
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
