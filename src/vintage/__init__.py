"""Vintage engine: season windows, climate metrics, scoring and phase stories."""

from src.vintage.aggregator import SeasonAggregate, aggregate_season, aggregate_wide_slice
from src.vintage.models import (
    DailyObservation,
    Hemisphere,
    PhaseMetrics,
    QualityLabel,
    SeasonalMetrics,
    SeasonConventionName,
    SeasonWindow,
    VintageAssessment,
)
from src.vintage.narrative import VintageStory, build_story, compose_summary
from src.vintage.scoring import score_vintage
from src.vintage.season import hemisphere_for, resolve_window, slice_window

__all__ = [
    "DailyObservation",
    "Hemisphere",
    "SeasonConventionName",
    "SeasonWindow",
    "SeasonalMetrics",
    "PhaseMetrics",
    "QualityLabel",
    "VintageAssessment",
    "hemisphere_for",
    "resolve_window",
    "slice_window",
    "SeasonAggregate",
    "aggregate_season",
    "aggregate_wide_slice",
    "score_vintage",
    "VintageStory",
    "build_story",
    "compose_summary",
]
