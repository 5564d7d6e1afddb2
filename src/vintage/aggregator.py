"""Seasonal aggregation of daily observations.

A single pass over a season slice accumulates the seasonal metrics and,
keyed by the day's offset within the slice, the flowering and harvest
phase measurements. Two entry points share the pass:

- aggregate_season: a narrow window, every day is in season
- aggregate_wide_slice: a wide window, days pass the month filter first
"""

from collections.abc import Sequence
from dataclasses import dataclass

from src.shared.api.errors import InsufficientDataError
from src.shared.config.logging import get_logger
from src.shared.constants import (
    DROUGHT_RAIN_THRESHOLD_MM,
    DRY_DAY_THRESHOLD_MM,
    EARLY_FROST_WINDOW_DAYS,
    FROST_THRESHOLD_C,
    HARVEST_HEAT_THRESHOLD_C,
    HEAT_SPIKE_THRESHOLD_C,
    LATE_FROST_WINDOW_DAYS,
)
from src.vintage.metrics import daily_mean, daily_range, degree_day, round_half_up
from src.vintage.models import (
    DailyObservation,
    PhaseMetrics,
    SeasonalMetrics,
    SeasonConventionName,
    SeasonWindow,
)
from src.vintage.season import convention_for, in_growing_season

logger = get_logger(__name__)


@dataclass(frozen=True)
class SeasonAggregate:
    """Aggregation output for one vintage."""

    metrics: SeasonalMetrics
    phases: PhaseMetrics
    season_days: int
    skipped_days: int = 0


class _Accumulator:
    """Running sums for one pass over a season slice."""

    def __init__(self) -> None:
        self.gdd = 0.0
        self.rain = 0.0
        self.temp_sum = 0.0
        self.diurnal_sum = 0.0
        self.sunshine_seconds = 0.0
        self.frost_days = 0
        self.frost_flags: list[bool] = []
        self.heat_spike_days = 0
        self.season_days = 0
        self.skipped_days = 0
        self.dry_run = 0
        self.longest_dry_run = 0

        self.flowering_rain = 0.0
        self.flowering_temp_sum = 0.0
        self.flowering_temp_days = 0
        self.flowering_days = 0
        self.harvest_rain = 0.0
        self.harvest_heat_days = 0
        self.harvest_days = 0

    def add_season_day(self, day: DailyObservation) -> None:
        if not day.has_temperatures:
            self.skipped_days += 1
            return

        self.season_days += 1
        self.gdd += degree_day(day)
        self.temp_sum += daily_mean(day)
        self.diurnal_sum += daily_range(day)
        self.rain += day.precipitation
        self.sunshine_seconds += day.sunshine_duration or 0.0

        frost = day.min_temperature < FROST_THRESHOLD_C
        self.frost_flags.append(frost)
        if frost:
            self.frost_days += 1
        if day.max_temperature > HEAT_SPIKE_THRESHOLD_C:
            self.heat_spike_days += 1

        if day.precipitation < DRY_DAY_THRESHOLD_MM:
            self.dry_run += 1
            self.longest_dry_run = max(self.longest_dry_run, self.dry_run)
        else:
            self.dry_run = 0

    def add_flowering_day(self, day: DailyObservation) -> None:
        self.flowering_days += 1
        self.flowering_rain += day.precipitation
        if day.has_temperatures:
            self.flowering_temp_sum += daily_mean(day)
            self.flowering_temp_days += 1

    def add_harvest_day(self, day: DailyObservation) -> None:
        self.harvest_days += 1
        self.harvest_rain += day.precipitation
        if day.max_temperature is not None and day.max_temperature > HARVEST_HEAT_THRESHOLD_C:
            self.harvest_heat_days += 1

    def metrics(self) -> SeasonalMetrics:
        n = self.season_days
        return SeasonalMetrics(
            growing_degree_days=int(round_half_up(self.gdd)),
            total_rainfall_mm=round_half_up(self.rain, 1),
            avg_temperature=round_half_up(self.temp_sum / n, 1),
            diurnal_shift_avg=round_half_up(self.diurnal_sum / n, 1),
            sunshine_hours=int(round_half_up(self.sunshine_seconds / 3600)),
            frost_days=self.frost_days,
            heat_spike_days=self.heat_spike_days,
        )

    def phases(self) -> PhaseMetrics:
        flowering_avg = (
            round_half_up(self.flowering_temp_sum / self.flowering_temp_days, 1)
            if self.flowering_temp_days
            else None
        )
        return PhaseMetrics(
            flowering_rain_mm=round_half_up(self.flowering_rain, 1),
            flowering_avg_temp=flowering_avg,
            flowering_days=self.flowering_days,
            harvest_rain_mm=round_half_up(self.harvest_rain, 1),
            harvest_heat_days=self.harvest_heat_days,
            harvest_days=self.harvest_days,
            drought_stress=self.rain < DROUGHT_RAIN_THRESHOLD_MM,
            longest_dry_spell_days=self.longest_dry_run,
            early_frost_days=sum(self.frost_flags[:EARLY_FROST_WINDOW_DAYS]),
            late_frost_days=sum(self.frost_flags[-LATE_FROST_WINDOW_DAYS:]),
        )


def _aggregate(days: Sequence[DailyObservation], window: SeasonWindow) -> SeasonAggregate:
    convention = convention_for(window.convention)
    hemisphere = window.hemisphere
    acc = _Accumulator()

    for offset, day in enumerate(days):
        if not convention.filters_by_month or in_growing_season(day.date, hemisphere):
            acc.add_season_day(day)
        if convention.in_flowering(offset, hemisphere):
            acc.add_flowering_day(day)
        if convention.in_harvest(offset, hemisphere):
            acc.add_harvest_day(day)

    if acc.skipped_days:
        logger.warning(
            "season_days_missing_temperature",
            year=window.year,
            skipped_days=acc.skipped_days,
        )

    if acc.season_days == 0:
        raise InsufficientDataError(
            f"No usable in-season days for vintage {window.year}",
            details={
                "year": window.year,
                "observations": len(days),
                "skipped_days": acc.skipped_days,
            },
        )

    return SeasonAggregate(
        metrics=acc.metrics(),
        phases=acc.phases(),
        season_days=acc.season_days,
        skipped_days=acc.skipped_days,
    )


def aggregate_season(days: Sequence[DailyObservation], window: SeasonWindow) -> SeasonAggregate:
    """Aggregate a series already restricted to a narrow season window.

    Args:
        days: Date-ordered observations starting at window.start
        window: The narrow window the series was fetched for

    Returns:
        SeasonAggregate with metrics and phase measurements

    Raises:
        InsufficientDataError: If no in-season day has temperature readings
    """
    if window.convention is not SeasonConventionName.NARROW:
        raise ValueError(f"Expected a narrow window, got {window.convention.value}")
    return _aggregate(days, window)


def aggregate_wide_slice(days: Sequence[DailyObservation], window: SeasonWindow) -> SeasonAggregate:
    """Aggregate a wide-window slice, keeping only growing-season months.

    Raises:
        InsufficientDataError: If no in-season day has temperature readings
    """
    if window.convention is not SeasonConventionName.WIDE:
        raise ValueError(f"Expected a wide window, got {window.convention.value}")
    return _aggregate(days, window)
