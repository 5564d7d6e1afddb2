"""Unit tests for the vintage ingestion orchestrator."""

from datetime import date
from unittest.mock import MagicMock

import pytest

from src.ingestion.orchestrator import (
    IngestionStats,
    JobState,
    VintageIngestor,
    VintageJob,
    create_ingestor,
)
from src.shared.api.errors import (
    ConfigurationError,
    FetchError,
    FetchTimeoutError,
    PersistenceError,
    UnknownRegionError,
)
from src.shared.config.regions import RegionCatalog, RegionConfig
from src.shared.config.settings import Settings
from src.shared.llm.narrative import TemplateNarrator

BORDEAUX = RegionConfig(
    slug="bordeaux", name="Bordeaux", country="France", country_code="FR", lat=44.8378, lon=-0.5792
)
MENDOZA = RegionConfig(
    slug="mendoza", name="Mendoza", country="Argentina", country_code="AR", lat=-32.8895, lon=-68.8272
)


def _region(slug: str, lat: float) -> RegionConfig:
    return RegionConfig(slug=slug, name=slug.title(), country="Testland", country_code="TL", lat=lat, lon=10.0)


@pytest.fixture
def weather(make_range) -> MagicMock:
    """Weather client that returns constant weather for whatever range is asked."""
    client = MagicMock()
    client.fetch_daily.side_effect = lambda lat, lon, start, end: make_range(start, end)
    return client


@pytest.fixture
def repository() -> MagicMock:
    repo = MagicMock()
    repo.existing_years.return_value = set()
    repo.bulk_upsert.side_effect = lambda records: len(records)
    return repo


@pytest.fixture
def sleep() -> MagicMock:
    return MagicMock()


@pytest.fixture
def ingestor(weather, repository, sleep) -> VintageIngestor:
    return VintageIngestor(
        weather_client=weather,
        regions=RegionCatalog.from_regions([BORDEAUX, MENDOZA]),
        repository=repository,
        narrator=None,
        region_delay_seconds=60.0,
        sleep=sleep,
        today=lambda: date(2024, 6, 15),
    )


class TestVintageJob:
    """Tests for job state tracking."""

    def test_initial_state(self) -> None:
        job = VintageJob(region_id="bordeaux", year=2020)

        assert job.state is JobState.PENDING
        assert job.history == [JobState.PENDING]
        assert not job.finished

    def test_fail_records_error(self) -> None:
        job = VintageJob(region_id="bordeaux", year=2020)

        job.fail(FetchError("down"))

        assert job.state is JobState.FAILED
        assert job.error == "FetchError: down"

    def test_finished_job_cannot_advance(self) -> None:
        job = VintageJob(region_id="bordeaux", year=2020)
        job.advance(JobState.DONE)

        with pytest.raises(ValueError):
            job.advance(JobState.FETCHING)


class TestIngestionStats:
    def test_merge(self) -> None:
        total = IngestionStats(updated=2)
        other = IngestionStats(updated=1, skipped=3)
        other.record_failure("mendoza", 2020, FetchError("down"))

        total.merge(other)

        assert total.updated == 3
        assert total.failed == 1
        assert total.skipped == 3
        assert total.failures[0]["region_id"] == "mendoza"
        assert not total.success

    def test_to_dict(self) -> None:
        data = IngestionStats(updated=4).finish().to_dict()

        assert data["updated"] == 4
        assert data["failed"] == 0
        assert data["duration_seconds"] >= 0


class TestIngestOne:
    """Tests for the single-vintage path."""

    def test_northern_vintage(self, ingestor, weather, repository) -> None:
        metrics = ingestor.ingest_one("bordeaux", 2020)

        weather.fetch_daily.assert_called_once_with(
            44.8378, -0.5792, date(2020, 4, 1), date(2020, 10, 31)
        )
        assert metrics.growing_degree_days == 1605
        assert metrics.total_rainfall_mm == 428.0

        record = repository.upsert.call_args.args[0]
        assert record.region_id == "bordeaux"
        assert record.year == 2020
        assert record.unique_composite == "bordeaux_2020"
        assert record.score == 95
        assert record.quality == "exceptional"
        assert record.story["flowering_status"] == "Good"
        assert record.narrative is None

    def test_southern_window_spans_previous_year(self, ingestor, weather) -> None:
        ingestor.ingest_one("mendoza", 2020)

        weather.fetch_daily.assert_called_once_with(
            -32.8895, -68.8272, date(2019, 10, 1), date(2020, 4, 30)
        )

    def test_days_outside_window_ignored(self, ingestor, weather, make_range) -> None:
        weather.fetch_daily.side_effect = None
        weather.fetch_daily.return_value = make_range(date(2020, 3, 1), date(2020, 11, 30))

        metrics = ingestor.ingest_one("bordeaux", 2020)

        assert metrics.growing_degree_days == 1605

    def test_job_history(self, ingestor) -> None:
        job = VintageJob(region_id="bordeaux", year=2020)

        ingestor.ingest_one("bordeaux", 2020, job=job)

        assert job.history == [
            JobState.PENDING,
            JobState.FETCHING,
            JobState.AGGREGATING,
            JobState.SCORING,
            JobState.PERSISTING,
            JobState.DONE,
        ]

    def test_unknown_region(self, ingestor, weather) -> None:
        with pytest.raises(UnknownRegionError):
            ingestor.ingest_one("atlantis", 2020)

        weather.fetch_daily.assert_not_called()

    def test_fetch_error_propagates(self, ingestor, weather) -> None:
        weather.fetch_daily.side_effect = FetchTimeoutError(timeout_seconds=30)
        job = VintageJob(region_id="bordeaux", year=2020)

        with pytest.raises(FetchTimeoutError):
            ingestor.ingest_one("bordeaux", 2020, job=job)

        assert job.state is JobState.FAILED

    def test_template_narrative(self, ingestor, repository) -> None:
        ingestor.narrator = TemplateNarrator()

        ingestor.ingest_one("bordeaux", 2020)

        narrative = repository.upsert.call_args.args[0].narrative
        assert "**Verdict:**" in narrative

    def test_narrator_crash_does_not_block_persistence(self, ingestor, repository) -> None:
        narrator = MagicMock()
        narrator.narrate.side_effect = RuntimeError("model unavailable")
        ingestor.narrator = narrator

        ingestor.ingest_one("bordeaux", 2020)

        record = repository.upsert.call_args.args[0]
        assert record.narrative is None
        assert record.score == 95


class TestIngestSingle:
    """Tests for failure isolation on the single path."""

    def test_success(self, ingestor) -> None:
        stats = ingestor.ingest_single("bordeaux", 2020)

        assert stats.updated == 1
        assert stats.failed == 0
        assert stats.completed_at is not None

    def test_fetch_failure_counted(self, ingestor, weather) -> None:
        weather.fetch_daily.side_effect = FetchError("connection refused")

        stats = ingestor.ingest_single("bordeaux", 2020)

        assert stats.updated == 0
        assert stats.failed == 1
        assert stats.failures[0]["error_type"] == "FetchError"
        assert stats.jobs[0].state is JobState.FAILED

    def test_persistence_failure_counted(self, ingestor, repository) -> None:
        repository.upsert.side_effect = PersistenceError("disk full")

        stats = ingestor.ingest_single("bordeaux", 2020)

        assert stats.failed == 1

    def test_unknown_region_propagates(self, ingestor) -> None:
        with pytest.raises(ConfigurationError):
            ingestor.ingest_single("atlantis", 2020)


class TestIngestRange:
    """Tests for the wide-fetch range path."""

    def test_single_fetch_for_northern_range(self, ingestor, weather, repository) -> None:
        stats = ingestor.ingest_range("bordeaux", 2018, 2020)

        weather.fetch_daily.assert_called_once_with(
            44.8378, -0.5792, date(2018, 1, 1), date(2020, 12, 31)
        )
        records = repository.bulk_upsert.call_args.args[0]
        assert [r.year for r in records] == [2018, 2019, 2020]
        assert stats.updated == 3
        assert stats.failed == 0

    def test_southern_range_starts_previous_july(self, ingestor, weather) -> None:
        ingestor.ingest_range("mendoza", 2019, 2020)

        weather.fetch_daily.assert_called_once_with(
            -32.8895, -68.8272, date(2018, 7, 1), date(2020, 6, 30)
        )

    def test_missing_year_isolated(self, ingestor, weather, repository, make_range) -> None:
        weather.fetch_daily.side_effect = None
        weather.fetch_daily.return_value = make_range(date(2018, 1, 1), date(2019, 12, 31))

        stats = ingestor.ingest_range("bordeaux", 2018, 2020)

        assert stats.updated == 2
        assert stats.failed == 1
        assert stats.failures[0]["year"] == 2020
        assert [r.year for r in repository.bulk_upsert.call_args.args[0]] == [2018, 2019]

    def test_fetch_failure_fails_every_year(self, ingestor, weather, repository) -> None:
        weather.fetch_daily.side_effect = FetchError("provider down")

        stats = ingestor.ingest_range("bordeaux", 2018, 2020)

        assert stats.updated == 0
        assert stats.failed == 3
        repository.bulk_upsert.assert_not_called()
        assert all(job.state is JobState.FAILED for job in stats.jobs)

    def test_persistence_failure_fails_batch(self, ingestor, repository) -> None:
        repository.bulk_upsert.side_effect = PersistenceError("constraint violated")

        stats = ingestor.ingest_range("bordeaux", 2018, 2020)

        assert stats.updated == 0
        assert stats.failed == 3

    def test_skip_existing_all_stored(self, ingestor, weather, repository) -> None:
        repository.existing_years.return_value = {2018, 2019, 2020}

        stats = ingestor.ingest_range("bordeaux", 2018, 2020, skip_existing=True)

        weather.fetch_daily.assert_not_called()
        assert stats.skipped == 3
        assert stats.updated == 0

    def test_skip_existing_narrows_fetch(self, ingestor, weather, repository) -> None:
        repository.existing_years.return_value = {2018}

        stats = ingestor.ingest_range("bordeaux", 2018, 2020, skip_existing=True)

        weather.fetch_daily.assert_called_once_with(
            44.8378, -0.5792, date(2019, 1, 1), date(2020, 12, 31)
        )
        assert stats.skipped == 1
        assert stats.updated == 2

    def test_store_read_failure_fails_every_year(self, ingestor, weather, repository) -> None:
        repository.existing_years.side_effect = PersistenceError("Failed to read stored years")

        stats = ingestor.ingest_range("bordeaux", 2018, 2020, skip_existing=True)

        weather.fetch_daily.assert_not_called()
        assert stats.failed == 3
        assert [f["year"] for f in stats.failures] == [2018, 2019, 2020]

    def test_inverted_range(self, ingestor) -> None:
        with pytest.raises(ConfigurationError):
            ingestor.ingest_range("bordeaux", 2020, 2018)

    def test_unknown_region(self, ingestor) -> None:
        with pytest.raises(UnknownRegionError):
            ingestor.ingest_range("atlantis", 2018, 2020)


class TestBackfillAll:
    """Tests for whole-catalogue backfill."""

    def test_partial_failure(self, weather, repository, sleep, make_range) -> None:
        """One region failing to fetch leaves the other four intact."""
        regions = [_region(f"region-{i}", 40.0 + i) for i in range(5)]
        failing_lat = regions[2].lat

        def fetch(lat, lon, start, end):
            if lat == failing_lat:
                raise FetchError("provider down")
            return make_range(start, end)

        weather.fetch_daily.side_effect = fetch
        ingestor = VintageIngestor(
            weather_client=weather,
            regions=RegionCatalog.from_regions(regions),
            repository=repository,
            region_delay_seconds=60.0,
            sleep=sleep,
        )

        stats = ingestor.backfill_all(2018, 2020)

        assert stats.updated == 12
        assert stats.failed == 3
        assert {f["region_id"] for f in stats.failures} == {"region-2"}
        assert repository.bulk_upsert.call_count == 4

    def test_store_read_failure_isolated_when_resuming(self, weather, repository, sleep) -> None:
        """A region whose stored years cannot be read fails alone."""
        regions = [_region(f"r{i}", 40.0 + i) for i in range(3)]

        def existing(region_id, start_year, end_year):
            if region_id == "r1":
                raise PersistenceError("Failed to read stored years", details={"region_id": region_id})
            return set()

        repository.existing_years.side_effect = existing
        ingestor = VintageIngestor(
            weather_client=weather,
            regions=RegionCatalog.from_regions(regions),
            repository=repository,
            region_delay_seconds=0,
            sleep=sleep,
        )

        stats = ingestor.backfill_all(2018, 2020, skip_existing=True)

        assert stats.updated == 6
        assert stats.failed == 3
        assert {f["region_id"] for f in stats.failures} == {"r1"}
        assert {f["error_type"] for f in stats.failures} == {"PersistenceError"}
        assert weather.fetch_daily.call_count == 2

    def test_region_error_does_not_stop_batch(self, ingestor) -> None:
        calls = []

        def ingest_range(slug, start_year, end_year, skip_existing=False):
            calls.append(slug)
            if slug == "bordeaux":
                raise FetchTimeoutError(endpoint="archive", timeout_seconds=30)
            return IngestionStats(updated=2).finish()

        ingestor.ingest_range = ingest_range

        stats = ingestor.backfill_all(2019, 2020)

        assert calls == ["bordeaux", "mendoza"]
        assert stats.updated == 2
        assert stats.failed == 2

    def test_configuration_error_still_raises(self, ingestor) -> None:
        with pytest.raises(UnknownRegionError):
            ingestor.backfill_all(2019, 2020, region_ids=["atlantis"])

    def test_pacing_reported(self, ingestor, weather) -> None:
        ingestor.backfill_all(2019, 2020)

        weather.pacer.get_metrics.assert_called_once()

    def test_pauses_between_regions(self, ingestor, sleep) -> None:
        ingestor.backfill_all(2019, 2020)

        sleep.assert_called_once_with(60.0)

    def test_restricted_regions(self, ingestor, weather, sleep) -> None:
        stats = ingestor.backfill_all(2019, 2020, region_ids=["mendoza"])

        assert weather.fetch_daily.call_count == 1
        assert stats.updated == 2
        sleep.assert_not_called()

    def test_zero_delay_skips_sleep(self, ingestor, sleep) -> None:
        ingestor.region_delay_seconds = 0

        ingestor.backfill_all(2019, 2020)

        sleep.assert_not_called()


class TestRefresh:
    """Tests for the recent-vintage refresh."""

    def test_refresh_years(self, ingestor) -> None:
        assert ingestor.refresh_years() == [2024, 2023]

    def test_refresh_recent(self, ingestor, weather, repository) -> None:
        stats = ingestor.refresh_recent()

        assert weather.fetch_daily.call_count == 4
        assert repository.upsert.call_count == 4
        assert stats.updated == 4

    def test_refresh_explicit_years(self, ingestor, repository) -> None:
        stats = ingestor.refresh_recent([2015])

        years = {call.args[0].year for call in repository.upsert.call_args_list}
        assert years == {2015}
        assert stats.updated == 2


class TestCreateIngestor:
    def test_wires_from_settings(self) -> None:
        settings = Settings(_env_file=None, database_url="sqlite://", region_delay_seconds=5)
        db = MagicMock()

        ingestor = create_ingestor(settings, db)

        assert ingestor.region_delay_seconds == 5.0
        assert isinstance(ingestor.narrator, TemplateNarrator)
        assert ingestor.repository._db is db

    def test_llm_mode_without_key(self) -> None:
        settings = Settings(_env_file=None, narrative_mode="llm")

        with pytest.raises(ConfigurationError):
            create_ingestor(settings, MagicMock())
