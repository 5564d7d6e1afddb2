"""Vintage ingestion orchestrator.

Drives each (region, year) through fetch, aggregate, score and persist:

- ingest_one / ingest_single: one narrow-window fetch per vintage
- ingest_range: one wide fetch for a span of years, sliced per year,
  persisted in a single batch
- backfill_all: every catalogue region, one after another, with a pause
  between regions
- refresh_recent: the current and previous vintage for every region

Fetch, data and persistence errors are isolated to the unit that raised
them and counted; configuration errors propagate.
"""

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from src.shared.api.errors import (
    ConfigurationError,
    FetchError,
    GrapeyearError,
    InsufficientDataError,
    PersistenceError,
    is_unit_error,
)
from src.shared.api.open_meteo import OpenMeteoClient
from src.shared.config.logging import get_logger
from src.shared.config.regions import RegionCatalog, RegionConfig
from src.shared.config.settings import Settings, get_settings
from src.shared.constants import ACTIVE_VINTAGE_YEARS
from src.shared.db.connection import DatabaseManager, get_db
from src.shared.db.repositories.vintage import VintageCreate, VintageRepository
from src.shared.llm.narrative import VintageNarrator, create_narrator
from src.vintage.aggregator import SeasonAggregate, aggregate_season, aggregate_wide_slice
from src.vintage.models import SeasonalMetrics, SeasonConventionName, VintageAssessment
from src.vintage.narrative import VintageStory, build_story
from src.vintage.scoring import score_vintage
from src.vintage.season import hemisphere_for, resolve_window, slice_window

logger = get_logger(__name__)


class JobState(Enum):
    """Lifecycle of one (region, year) ingestion."""

    PENDING = "pending"
    FETCHING = "fetching"
    AGGREGATING = "aggregating"
    SCORING = "scoring"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class VintageJob:
    """State and history of one (region, year) ingestion."""

    region_id: str
    year: int
    state: JobState = JobState.PENDING
    history: list[JobState] = field(default_factory=lambda: [JobState.PENDING])
    error: str | None = None

    @property
    def finished(self) -> bool:
        return self.state in (JobState.DONE, JobState.FAILED)

    def advance(self, state: JobState) -> None:
        if self.finished:
            raise ValueError(f"Job {self.region_id}/{self.year} already {self.state.value}")
        self.state = state
        self.history.append(state)
        logger.debug("vintage_job_state", region_id=self.region_id, year=self.year, state=state.value)

    def fail(self, error: Exception) -> None:
        self.error = f"{type(error).__name__}: {error}"
        self.advance(JobState.FAILED)


@dataclass
class IngestionStats:
    """Outcome of an ingestion entry point.

    Partial failures are reported here rather than raised.
    """

    updated: int = 0
    failed: int = 0
    skipped: int = 0
    failures: list[dict[str, Any]] = field(default_factory=list)
    jobs: list[VintageJob] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def duration_seconds(self) -> float:
        end = self.completed_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()

    def record_failure(self, region_id: str, year: int, error: Exception) -> None:
        self.failed += 1
        self.failures.append(
            {
                "region_id": region_id,
                "year": year,
                "error_type": type(error).__name__,
                "message": str(error),
            }
        )

    def merge(self, other: "IngestionStats") -> None:
        self.updated += other.updated
        self.failed += other.failed
        self.skipped += other.skipped
        self.failures.extend(other.failures)
        self.jobs.extend(other.jobs)

    def finish(self) -> "IngestionStats":
        self.completed_at = datetime.now(timezone.utc)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated": self.updated,
            "failed": self.failed,
            "skipped": self.skipped,
            "failures": self.failures,
            "duration_seconds": round(self.duration_seconds, 2),
        }


class VintageIngestor:
    """Runs vintage ingestion against injected collaborators.

    Example:
        ingestor = create_ingestor()
        stats = ingestor.ingest_range("bordeaux", 2015, 2020)
    """

    def __init__(
        self,
        weather_client: OpenMeteoClient,
        regions: RegionCatalog,
        repository: VintageRepository,
        narrator: VintageNarrator | None = None,
        region_delay_seconds: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize ingestor.

        Args:
            weather_client: Archive client used for every fetch
            regions: Region catalogue
            repository: Vintage store
            narrator: Narrative producer, None stores no narrative
            region_delay_seconds: Pause between regions during backfill
            sleep: Sleep function for the inter-region pause
            today: Date source for the refresh years
        """
        self.weather_client = weather_client
        self.regions = regions
        self.repository = repository
        self.narrator = narrator
        self.region_delay_seconds = region_delay_seconds
        self._sleep = sleep
        self._today = today

        logger.info(
            "vintage_ingestor_initialized",
            narrator=narrator.name if narrator else None,
            region_delay_seconds=region_delay_seconds,
        )

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def _narrate(
        self,
        region: RegionConfig,
        year: int,
        story: VintageStory,
        assessment: VintageAssessment,
    ) -> str | None:
        if self.narrator is None:
            return None
        try:
            return self.narrator.narrate(region.name, year, story, assessment)
        except Exception as e:
            logger.warning(
                "narrative_skipped",
                region_id=region.slug,
                year=year,
                error=str(e),
                exc_info=True,
            )
            return None

    def _build_record(
        self,
        region: RegionConfig,
        year: int,
        aggregate: SeasonAggregate,
        assessment: VintageAssessment,
    ) -> VintageCreate:
        metrics = aggregate.metrics
        story = build_story(metrics, aggregate.phases)
        return VintageCreate(
            region_id=region.slug,
            year=year,
            score=assessment.score,
            quality=assessment.quality.value,
            growing_degree_days=metrics.growing_degree_days,
            total_rainfall_mm=metrics.total_rainfall_mm,
            avg_temperature=metrics.avg_temperature,
            diurnal_shift_avg=metrics.diurnal_shift_avg,
            sunshine_hours=metrics.sunshine_hours,
            frost_days=metrics.frost_days,
            heat_spike_days=metrics.heat_spike_days,
            story=story.to_dict(),
            narrative=self._narrate(region, year, story, assessment),
        )

    # ------------------------------------------------------------------
    # Single vintage
    # ------------------------------------------------------------------

    def ingest_one(self, region_id: str, year: int, job: VintageJob | None = None) -> SeasonalMetrics:
        """Fetch, aggregate, score and persist one vintage.

        Args:
            region_id: Catalogue slug
            year: Vintage year
            job: Optional job record to track state on

        Returns:
            The seasonal metrics that were persisted

        Raises:
            ConfigurationError: Unknown region
            FetchError: Provider failure
            InsufficientDataError: No usable season data
            PersistenceError: Store rejected the write
        """
        region = self.regions.get_region(region_id)
        job = job or VintageJob(region_id=region_id, year=year)
        window = resolve_window(year, hemisphere_for(region.lat), SeasonConventionName.NARROW)

        log = logger.bind(region_id=region_id, year=year)
        log.info(
            "ingest_one_started",
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
            window_days=window.days,
        )

        try:
            job.advance(JobState.FETCHING)
            days = self.weather_client.fetch_daily(region.lat, region.lon, window.start, window.end)
            days = [day for day in days if window.contains(day.date)]

            job.advance(JobState.AGGREGATING)
            aggregate = aggregate_season(days, window)

            job.advance(JobState.SCORING)
            assessment = score_vintage(aggregate.metrics)
            record = self._build_record(region, year, aggregate, assessment)

            job.advance(JobState.PERSISTING)
            self.repository.upsert(record)
            job.advance(JobState.DONE)
        except GrapeyearError as e:
            job.fail(e)
            raise

        log.info(
            "ingest_one_completed",
            score=assessment.score,
            quality=assessment.quality.value,
            season_days=aggregate.season_days,
        )
        return aggregate.metrics

    def ingest_single(self, region_id: str, year: int) -> IngestionStats:
        """Ingest one vintage, reporting failure in the stats instead of raising.

        Raises:
            ConfigurationError: Unknown region
        """
        stats = IngestionStats()
        job = VintageJob(region_id=region_id, year=year)
        stats.jobs.append(job)
        try:
            self.ingest_one(region_id, year, job=job)
            stats.updated += 1
        except GrapeyearError as e:
            if not is_unit_error(e):
                raise
            stats.record_failure(region_id, year, e)
        return stats.finish()

    # ------------------------------------------------------------------
    # Year range for one region
    # ------------------------------------------------------------------

    def ingest_range(
        self,
        region_id: str,
        start_year: int,
        end_year: int,
        skip_existing: bool = False,
    ) -> IngestionStats:
        """Ingest a span of vintages from a single wide fetch.

        Args:
            region_id: Catalogue slug
            start_year: First vintage year (inclusive)
            end_year: Last vintage year (inclusive)
            skip_existing: Leave years already in the store untouched

        Returns:
            IngestionStats for the span

        Raises:
            ConfigurationError: Unknown region or inverted range
        """
        if start_year > end_year:
            raise ConfigurationError(
                f"start_year {start_year} is after end_year {end_year}",
                details={"start_year": start_year, "end_year": end_year},
            )

        region = self.regions.get_region(region_id)
        hemisphere = hemisphere_for(region.lat)
        stats = IngestionStats()
        log = logger.bind(region_id=region_id)

        years = list(range(start_year, end_year + 1))
        if skip_existing:
            try:
                existing = self.repository.existing_years(region_id, start_year, end_year)
            except PersistenceError as e:
                log.error("ingest_range_store_read_failed", error=str(e), years=len(years))
                for year in years:
                    stats.record_failure(region_id, year, e)
                return stats.finish()
            years = [year for year in years if year not in existing]
            stats.skipped = len(existing)
            if not years:
                log.info("ingest_range_nothing_to_do", start_year=start_year, end_year=end_year)
                return stats.finish()

        jobs = {year: VintageJob(region_id=region_id, year=year) for year in years}
        stats.jobs.extend(jobs.values())

        # The first southern window starts in the July before start_year
        fetch_start = resolve_window(years[0], hemisphere, SeasonConventionName.WIDE).start
        fetch_end = resolve_window(years[-1], hemisphere, SeasonConventionName.WIDE).end
        log.info(
            "ingest_range_started",
            years=len(years),
            fetch_start=fetch_start.isoformat(),
            fetch_end=fetch_end.isoformat(),
        )

        for job in jobs.values():
            job.advance(JobState.FETCHING)
        try:
            series = self.weather_client.fetch_daily(region.lat, region.lon, fetch_start, fetch_end)
        except (FetchError, InsufficientDataError) as e:
            log.error("ingest_range_fetch_failed", error=str(e), years=len(years))
            for year, job in jobs.items():
                job.fail(e)
                stats.record_failure(region_id, year, e)
            return stats.finish()

        records: list[VintageCreate] = []
        for year, job in jobs.items():
            try:
                job.advance(JobState.AGGREGATING)
                window = resolve_window(year, hemisphere, SeasonConventionName.WIDE)
                aggregate = aggregate_wide_slice(slice_window(series, window), window)

                job.advance(JobState.SCORING)
                assessment = score_vintage(aggregate.metrics)
                records.append(self._build_record(region, year, aggregate, assessment))
                job.advance(JobState.PERSISTING)
            except InsufficientDataError as e:
                log.warning("vintage_skipped_no_data", year=year, reason=str(e))
                job.fail(e)
                stats.record_failure(region_id, year, e)

        try:
            self.repository.bulk_upsert(records)
        except PersistenceError as e:
            for record in records:
                jobs[record.year].fail(e)
                stats.record_failure(region_id, record.year, e)
            return stats.finish()

        for record in records:
            jobs[record.year].advance(JobState.DONE)
        stats.updated += len(records)

        log.info("ingest_range_completed", updated=stats.updated, failed=stats.failed)
        return stats.finish()

    # ------------------------------------------------------------------
    # Whole catalogue
    # ------------------------------------------------------------------

    def backfill_all(
        self,
        start_year: int,
        end_year: int,
        skip_existing: bool = False,
        region_ids: Iterable[str] | None = None,
    ) -> IngestionStats:
        """Ingest a span of vintages for every region, one region at a time.

        Args:
            start_year: First vintage year
            end_year: Last vintage year
            skip_existing: Resume mode, see ingest_range
            region_ids: Restrict to these slugs (default: whole catalogue)

        Returns:
            Combined IngestionStats
        """
        slugs = list(region_ids) if region_ids is not None else list(self.regions.get_all_regions())
        total = IngestionStats()

        logger.info("backfill_started", regions=len(slugs), start_year=start_year, end_year=end_year)
        for idx, slug in enumerate(slugs):
            if idx > 0 and self.region_delay_seconds > 0:
                logger.debug("backfill_region_pause", seconds=self.region_delay_seconds)
                self._sleep(self.region_delay_seconds)

            try:
                stats = self.ingest_range(slug, start_year, end_year, skip_existing=skip_existing)
            except GrapeyearError as e:
                if not is_unit_error(e):
                    raise
                logger.error("backfill_region_failed", region_id=slug, error=str(e))
                stats = IngestionStats()
                for year in range(start_year, end_year + 1):
                    stats.record_failure(slug, year, e)
                stats.finish()
            total.merge(stats)
            logger.info(
                "backfill_region_completed",
                region_id=slug,
                progress=f"{idx + 1}/{len(slugs)}",
                updated=stats.updated,
                failed=stats.failed,
            )

        total.finish()
        logger.info(
            "backfill_completed",
            pacing=self.weather_client.pacer.get_metrics().to_dict(),
            **total.to_dict(),
        )
        return total

    def refresh_years(self) -> list[int]:
        current = self._today().year
        return [current - offset for offset in range(ACTIVE_VINTAGE_YEARS)]

    def refresh_recent(self, years: Iterable[int] | None = None) -> IngestionStats:
        """Re-ingest recent vintages for every region via the single-year path.

        Args:
            years: Vintage years to refresh (default: current and previous)

        Returns:
            Combined IngestionStats
        """
        years = list(years) if years is not None else self.refresh_years()
        total = IngestionStats()

        logger.info("refresh_started", years=years)
        for slug in self.regions.get_all_regions():
            for year in years:
                total.merge(self.ingest_single(slug, year))

        total.finish()
        logger.info("refresh_completed", **total.to_dict())
        return total


def create_ingestor(
    settings: Settings | None = None,
    db_manager: DatabaseManager | None = None,
) -> VintageIngestor:
    """Wire an ingestor from settings.

    Raises:
        ConfigurationError: If the narrative mode needs credentials that are missing
    """
    settings = settings or get_settings()
    return VintageIngestor(
        weather_client=OpenMeteoClient.from_settings(settings),
        regions=RegionCatalog(settings.regions_path),
        repository=VintageRepository(db_manager or get_db()),
        narrator=create_narrator(settings),
        region_delay_seconds=settings.region_delay_seconds,
    )

