"""Vintage scoring.

Additive score from a base of 50, one adjustment per climate factor,
clamped to 0-100 and rounded. Every finite input produces a score; no
validation is applied to the metrics.
"""

from src.shared.constants import BASE_SCORE, MAX_SCORE, MIN_SCORE
from src.vintage.models import QualityLabel, SeasonalMetrics, VintageAssessment


def _gdd_adjustment(gdd: float) -> int:
    # Sweet spot is 1200-1800; cool and very warm seasons both get +5
    if 1200 < gdd < 1800:
        return 15
    elif 1000 <= gdd <= 1200:
        return 5
    elif gdd >= 1800:
        return 5
    return 0


def _rain_adjustment(rain_mm: float) -> int:
    if 200 < rain_mm < 500:
        return 15
    elif rain_mm <= 200:
        return 5
    elif rain_mm >= 500:
        return -10
    return 0


def _diurnal_adjustment(diurnal: float) -> int:
    if diurnal > 15:
        return 15
    elif diurnal > 10:
        return 10
    return 0


def _sunshine_adjustment(hours: float) -> int:
    adjustment = 0
    if hours > 1600:
        adjustment += 10
    elif hours > 1400:
        adjustment += 5

    # Excess sunshine penalty applies on top of the bonus
    if hours > 2200:
        adjustment -= 5
    return adjustment


def _frost_adjustment(frost_days: int) -> int:
    if frost_days > 3:
        return -20
    elif frost_days > 0:
        return -10
    return 0


def raw_score(metrics: SeasonalMetrics) -> int:
    """Unclamped additive score."""
    return (
        BASE_SCORE
        + _gdd_adjustment(metrics.growing_degree_days)
        + _rain_adjustment(metrics.total_rainfall_mm)
        + _diurnal_adjustment(metrics.diurnal_shift_avg)
        + _sunshine_adjustment(metrics.sunshine_hours)
        + _frost_adjustment(metrics.frost_days)
    )


def quality_for(score: int) -> QualityLabel:
    """Map a 0-100 score to its quality label."""
    if score >= 90:
        return QualityLabel.EXCEPTIONAL
    if score >= 80:
        return QualityLabel.EXCELLENT
    if score >= 70:
        return QualityLabel.GOOD
    if score < 50:
        return QualityLabel.CHALLENGING
    return QualityLabel.AVERAGE


def score_vintage(metrics: SeasonalMetrics) -> VintageAssessment:
    """Score a season and label it.

    Args:
        metrics: Seasonal climate metrics

    Returns:
        VintageAssessment with score in [0, 100] and its quality label
    """
    score = round(min(MAX_SCORE, max(MIN_SCORE, raw_score(metrics))))
    return VintageAssessment(score=score, quality=quality_for(score))
