"""Growing-season windows for northern and southern vineyards.

Two conventions are in use. The narrow convention covers exactly one
growing season and is what single-year ingestion fetches. The wide
convention covers a full twelve months around the season, is sliced out
of a multi-year series during backfill, and relies on the month filter
to drop off-season days.

Both conventions also locate the flowering and harvest phases as day
offsets from the start of their slice.
"""

from collections.abc import Sequence
from datetime import date

from src.shared.api.errors import InsufficientDataError
from src.vintage.models import DailyObservation, Hemisphere, SeasonConventionName, SeasonWindow

# Southern season runs October through April, wrapping the year end
SOUTHERN_SEASON_MONTHS = frozenset({10, 11, 12, 1, 2, 3, 4})
NORTHERN_SEASON_MONTHS = frozenset(range(4, 11))


def hemisphere_for(lat: float) -> Hemisphere:
    """Latitude 0 and above is northern."""
    return Hemisphere.NORTH if lat >= 0 else Hemisphere.SOUTH


def in_growing_season(day: date, hemisphere: Hemisphere) -> bool:
    """Month-only season test shared by both aggregation paths."""
    if hemisphere is Hemisphere.NORTH:
        return day.month in NORTHERN_SEASON_MONTHS
    return day.month in SOUTHERN_SEASON_MONTHS


class SeasonConvention:
    """Base class for season window conventions.

    Subclasses define the window for a vintage year and the inclusive
    day-offset ranges of the flowering and harvest phases.
    """

    name: SeasonConventionName
    filters_by_month: bool = False

    # Inclusive (first, last) day offsets from the window start, per hemisphere
    flowering_offsets: dict[Hemisphere, tuple[int, int]]
    harvest_offsets: dict[Hemisphere, tuple[int, int]]

    def bounds(self, year: int, hemisphere: Hemisphere) -> tuple[date, date]:
        raise NotImplementedError("Subclasses must implement bounds()")

    def window(self, year: int, hemisphere: Hemisphere) -> SeasonWindow:
        """Resolve the season window for a vintage year."""
        start, end = self.bounds(year, hemisphere)
        return SeasonWindow(
            start=start,
            end=end,
            year=year,
            hemisphere=hemisphere,
            convention=self.name,
        )

    def in_flowering(self, offset: int, hemisphere: Hemisphere) -> bool:
        first, last = self.flowering_offsets[hemisphere]
        return first <= offset <= last

    def in_harvest(self, offset: int, hemisphere: Hemisphere) -> bool:
        first, last = self.harvest_offsets[hemisphere]
        return first <= offset <= last


class NarrowSeason(SeasonConvention):
    """Exactly one growing season.

    North: 1 April to 31 October of the vintage year.
    South: 1 October of the previous year to 30 April of the vintage year.
    """

    name = SeasonConventionName.NARROW
    filters_by_month = False

    # Same calendar dates as the wide offsets, rebased onto 1 Apr / 1 Oct
    flowering_offsets = {Hemisphere.NORTH: (60, 85), Hemisphere.SOUTH: (43, 63)}
    harvest_offsets = {Hemisphere.NORTH: (160, 200), Hemisphere.SOUTH: (148, 178)}

    def bounds(self, year: int, hemisphere: Hemisphere) -> tuple[date, date]:
        if hemisphere is Hemisphere.NORTH:
            return date(year, 4, 1), date(year, 10, 31)
        return date(year - 1, 10, 1), date(year, 4, 30)


class WideSeason(SeasonConvention):
    """Twelve months around the season, filtered by month during aggregation.

    North: the calendar year. South: 1 July of the previous year to
    30 June of the vintage year.
    """

    name = SeasonConventionName.WIDE
    filters_by_month = True

    flowering_offsets = {Hemisphere.NORTH: (150, 175), Hemisphere.SOUTH: (135, 155)}
    harvest_offsets = {Hemisphere.NORTH: (250, 290), Hemisphere.SOUTH: (240, 270)}

    def bounds(self, year: int, hemisphere: Hemisphere) -> tuple[date, date]:
        if hemisphere is Hemisphere.NORTH:
            return date(year, 1, 1), date(year, 12, 31)
        return date(year - 1, 7, 1), date(year, 6, 30)


NARROW = NarrowSeason()
WIDE = WideSeason()

_CONVENTIONS: dict[SeasonConventionName, SeasonConvention] = {
    SeasonConventionName.NARROW: NARROW,
    SeasonConventionName.WIDE: WIDE,
}


def convention_for(name: SeasonConventionName) -> SeasonConvention:
    return _CONVENTIONS[name]


def resolve_window(
    year: int,
    hemisphere: Hemisphere,
    convention: SeasonConventionName = SeasonConventionName.NARROW,
) -> SeasonWindow:
    """Resolve the season window for a vintage year and hemisphere.

    Args:
        year: Vintage year (the harvest year)
        hemisphere: Region hemisphere
        convention: NARROW for single-season fetches, WIDE for backfill slices

    Returns:
        Inclusive SeasonWindow
    """
    return convention_for(convention).window(year, hemisphere)


def slice_window(
    observations: Sequence[DailyObservation],
    window: SeasonWindow,
) -> list[DailyObservation]:
    """Cut a window out of a date-ordered multi-year series.

    Both boundary dates must be present in the series. A missing boundary
    means the provider has no data for the vintage.

    Raises:
        InsufficientDataError: If the start or end date is not in the series
    """
    start_idx = end_idx = None
    for idx, obs in enumerate(observations):
        if obs.date == window.start:
            start_idx = idx
        if obs.date == window.end:
            end_idx = idx
            break

    if start_idx is None or end_idx is None or end_idx < start_idx:
        raise InsufficientDataError(
            f"No data for vintage {window.year}",
            details={
                "year": window.year,
                "window_start": window.start.isoformat(),
                "window_end": window.end.isoformat(),
                "start_found": start_idx is not None,
                "end_found": end_idx is not None,
            },
        )
    return list(observations[start_idx : end_idx + 1])
