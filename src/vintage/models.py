"""Value types shared by the vintage pipeline.

Daily observations come in from the weather provider; seasonal and phase
metrics come out of the aggregator; the assessment comes out of scoring.
All of them are immutable and replaced wholesale on recomputation.
"""

from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Any


class Hemisphere(Enum):
    """Hemisphere of a region, decided by the sign of its latitude."""

    NORTH = "north"
    SOUTH = "south"


class SeasonConventionName(Enum):
    """Which window convention produced a SeasonWindow."""

    NARROW = "narrow"
    WIDE = "wide"


class QualityLabel(Enum):
    """Qualitative vintage label derived from the score."""

    EXCEPTIONAL = "exceptional"
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    CHALLENGING = "challenging"


class FloweringStatus(Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"
    POOR = "Poor"


class HarvestCondition(Enum):
    WET = "Wet"
    MIXED = "Mixed"
    DRY = "Dry"


@dataclass(frozen=True)
class DailyObservation:
    """One calendar day of weather for a region.

    Temperatures are in °C and may be missing; precipitation is in mm with
    missing values already treated as 0; sunshine is in seconds and may be
    missing.
    """

    date: date
    max_temperature: float | None
    min_temperature: float | None
    precipitation: float = 0.0
    sunshine_duration: float | None = None

    @property
    def has_temperatures(self) -> bool:
        return self.max_temperature is not None and self.min_temperature is not None


@dataclass(frozen=True)
class SeasonWindow:
    """Inclusive date range of a growing season for one vintage year."""

    start: date
    end: date
    year: int
    hemisphere: Hemisphere
    convention: SeasonConventionName

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class SeasonalMetrics:
    """Derived climate metrics for one growing season."""

    growing_degree_days: int
    total_rainfall_mm: float
    avg_temperature: float
    diurnal_shift_avg: float
    sunshine_hours: int
    frost_days: int
    heat_spike_days: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PhaseMetrics:
    """Flowering and harvest sub-window measurements plus season story extras.

    Feeds narrative classification only, never the numeric score.
    """

    flowering_rain_mm: float
    flowering_avg_temp: float | None
    flowering_days: int
    harvest_rain_mm: float
    harvest_heat_days: int
    harvest_days: int
    drought_stress: bool
    longest_dry_spell_days: int
    early_frost_days: int = 0
    late_frost_days: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VintageAssessment:
    """Score (0-100) and label for a season."""

    score: int
    quality: QualityLabel
