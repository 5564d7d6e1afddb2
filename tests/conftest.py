"""Pytest configuration and shared fixtures."""

import os
from collections.abc import Callable
from datetime import date, timedelta

import pytest

from src.vintage.models import DailyObservation

POSTGRES_TEST_URL_ENV = "GRAPEYEAR_TEST_POSTGRES_URL"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "requires_db: mark test as requiring a PostgreSQL connection"
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip tests marked with requires_db if no PostgreSQL database is available."""
    skip_db = pytest.mark.skip(reason="PostgreSQL not available")

    db_available = False
    url = os.environ.get(POSTGRES_TEST_URL_ENV)
    if url:
        try:
            import psycopg2

            conn = psycopg2.connect(url.replace("postgresql+psycopg2://", "postgresql://"), connect_timeout=2)
            conn.close()
            db_available = True
        except Exception:
            db_available = False

    if not db_available:
        for item in items:
            if "requires_db" in item.keywords:
                item.add_marker(skip_db)


@pytest.fixture(autouse=True)
def reset_settings_env() -> None:
    """Reset environment variables before each test."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith(
            ("DATABASE_", "LOG_", "OPENROUTER_", "NARRATIVE_", "WEATHER_", "REGION", "BACKFILL_")
        ):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def reset_settings_singleton() -> None:
    """Reset the settings singleton between tests."""
    from src.shared.config import settings as settings_module

    settings_module._settings = None

    yield

    settings_module._settings = None


@pytest.fixture
def make_days() -> Callable[..., list[DailyObservation]]:
    """Factory for constant-weather daily series."""

    def _make(
        start: date,
        count: int,
        max_temp: float | None = 25.0,
        min_temp: float | None = 10.0,
        rain: float = 2.0,
        sunshine: float | None = 50000.0,
    ) -> list[DailyObservation]:
        return [
            DailyObservation(
                date=start + timedelta(days=i),
                max_temperature=max_temp,
                min_temperature=min_temp,
                precipitation=rain,
                sunshine_duration=sunshine,
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def make_range() -> Callable[..., list[DailyObservation]]:
    """Factory for constant-weather series covering an inclusive date range."""

    def _make(start: date, end: date, **kwargs) -> list[DailyObservation]:
        days = (end - start).days + 1
        max_temp = kwargs.get("max_temp", 25.0)
        min_temp = kwargs.get("min_temp", 10.0)
        rain = kwargs.get("rain", 2.0)
        sunshine = kwargs.get("sunshine", 50000.0)
        return [
            DailyObservation(
                date=start + timedelta(days=i),
                max_temperature=max_temp,
                min_temperature=min_temp,
                precipitation=rain,
                sunshine_duration=sunshine,
            )
            for i in range(days)
        ]

    return _make
