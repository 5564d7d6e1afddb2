"""End-to-end ingestion tests.

Runs the real client, aggregation, scoring and repository together, with
only the HTTP session replaced by canned archive payloads.
"""

from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from src.ingestion.orchestrator import VintageIngestor
from src.shared.api.open_meteo import OpenMeteoClient
from src.shared.config.regions import RegionCatalog, RegionConfig
from src.shared.db.repositories.vintage import VintageRepository
from src.shared.llm.narrative import TemplateNarrator

REGIONS = [
    RegionConfig(slug="bordeaux", name="Bordeaux", country="France", country_code="FR", lat=44.8378, lon=-0.5792),
    RegionConfig(slug="mendoza", name="Mendoza", country="Argentina", country_code="AR", lat=-32.8895, lon=-68.8272),
]


def _archive_payload(params: dict) -> dict:
    """Constant-weather archive payload for the requested range."""
    start = date.fromisoformat(params["start_date"])
    end = date.fromisoformat(params["end_date"])
    days = (end - start).days + 1
    return {
        "latitude": params["latitude"],
        "longitude": params["longitude"],
        "timezone": "GMT",
        "daily": {
            "time": [(start + timedelta(days=i)).isoformat() for i in range(days)],
            "temperature_2m_max": [25.0] * days,
            "temperature_2m_min": [10.0] * days,
            "precipitation_sum": [2.0] * days,
            "sunshine_duration": [50000.0] * days,
        },
    }


def _fake_get(url: str, params: dict, timeout: float) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = _archive_payload(params)
    return response


@pytest.fixture
def session() -> MagicMock:
    mock = MagicMock()
    mock.get.side_effect = _fake_get
    return mock


@pytest.fixture
def ingestor(session, sqlite_db) -> VintageIngestor:
    client = OpenMeteoClient(
        session=session,
        pacer=MagicMock(),
        today=lambda: date(2024, 6, 15),
    )
    return VintageIngestor(
        weather_client=client,
        regions=RegionCatalog.from_regions(REGIONS),
        repository=VintageRepository(sqlite_db),
        narrator=TemplateNarrator(),
        region_delay_seconds=0,
    )


@pytest.mark.integration
class TestEndToEnd:
    """Complete ingestion workflows on an in-memory store."""

    def test_ingest_one_persists_vintage(self, ingestor, sqlite_db) -> None:
        stats = ingestor.ingest_single("bordeaux", 2020)

        assert stats.updated == 1
        stored = VintageRepository(sqlite_db).get("bordeaux", 2020)
        assert stored.score == 95
        assert stored.quality == "exceptional"
        assert stored.growing_degree_days == 1605
        assert stored.sunshine_hours == 2972
        assert stored.narrative.endswith("A balanced, dependable vintage.")

    def test_backfill_then_resume(self, ingestor, session, sqlite_db) -> None:
        first = ingestor.backfill_all(2018, 2020)

        assert first.updated == 6
        assert first.failed == 0
        assert session.get.call_count == 2

        resumed = ingestor.backfill_all(2018, 2020, skip_existing=True)

        assert resumed.skipped == 6
        assert resumed.updated == 0
        assert session.get.call_count == 2

    def test_reingest_overwrites(self, ingestor, sqlite_db) -> None:
        ingestor.ingest_range("mendoza", 2019, 2020)
        ingestor.ingest_range("mendoza", 2019, 2020)

        repo = VintageRepository(sqlite_db)
        assert repo.count_for_range("mendoza", 2019, 2020) == 2

    def test_repeated_single_ingest_is_idempotent(self, ingestor, sqlite_db) -> None:
        repo = VintageRepository(sqlite_db)
        volatile = {"id", "created_at", "updated_at"}

        ingestor.ingest_one("bordeaux", 2022)
        first = repo.get("bordeaux", 2022).model_dump(exclude=volatile)
        ingestor.ingest_one("bordeaux", 2022)
        second = repo.get("bordeaux", 2022).model_dump(exclude=volatile)

        assert first == second
        assert first["score"] == 95
        assert first["quality"] == "exceptional"
        assert repo.count_for_range("bordeaux", 2022, 2022) == 1

    def test_current_vintage_not_yet_complete(self, ingestor, sqlite_db) -> None:
        """The archive ends yesterday, so the wide slice for this year is missing its end."""
        stats = ingestor.ingest_range("bordeaux", 2023, 2024)

        assert stats.updated == 1
        assert stats.failed == 1
        assert stats.failures[0]["year"] == 2024
        assert VintageRepository(sqlite_db).existing_years("bordeaux", 2023, 2024) == {2023}
