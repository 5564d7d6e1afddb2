"""Shared fixtures for integration tests."""

import os
from collections.abc import Generator

import pytest

from src.shared.db.connection import DatabaseManager
from src.shared.db.migrate import init_schema
from src.shared.db.models import Base


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest for integration tests."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test exercising real components"
    )


@pytest.fixture
def sqlite_db() -> Generator[DatabaseManager, None, None]:
    """Fresh in-memory vintage store."""
    db = DatabaseManager("sqlite://")
    init_schema(db)
    yield db
    db.close()


@pytest.fixture
def postgres_db() -> Generator[DatabaseManager, None, None]:
    """Vintage store on the PostgreSQL database named by GRAPEYEAR_TEST_POSTGRES_URL."""
    db = DatabaseManager(os.environ["GRAPEYEAR_TEST_POSTGRES_URL"])
    Base.metadata.drop_all(db.engine)
    init_schema(db)
    yield db
    Base.metadata.drop_all(db.engine)
    db.close()
