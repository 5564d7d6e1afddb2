"""Pure temperature metrics over daily observations."""

import math
from collections.abc import Iterable

from src.shared.api.errors import MissingTemperatureError
from src.shared.constants import GDD_BASE_TEMP_C
from src.vintage.models import DailyObservation


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with ties going up: 1200.5 becomes 1201, 13.25 becomes 13.3."""
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def daily_mean(day: DailyObservation) -> float:
    """Mean of the day's max and min temperatures.

    Raises:
        MissingTemperatureError: If either temperature is missing
    """
    if not day.has_temperatures:
        raise MissingTemperatureError(day.date)
    return (day.max_temperature + day.min_temperature) / 2


def daily_range(day: DailyObservation) -> float:
    """Diurnal range (max minus min) for a single day."""
    if not day.has_temperatures:
        raise MissingTemperatureError(day.date)
    return day.max_temperature - day.min_temperature


def degree_day(day: DailyObservation, base_temp: float = GDD_BASE_TEMP_C) -> float:
    """One day's heat accumulation above the base temperature."""
    return max(0.0, daily_mean(day) - base_temp)


def growing_degree_days(
    days: Iterable[DailyObservation],
    base_temp: float = GDD_BASE_TEMP_C,
) -> float:
    """Sum of max(0, daily mean - base) over the days.

    Args:
        days: Daily observations
        base_temp: Base temperature in °C (vine growth threshold)

    Returns:
        Accumulated growing degree days, 0.0 for no days

    Raises:
        MissingTemperatureError: If any day lacks a temperature reading
    """
    return sum((degree_day(day, base_temp) for day in days), 0.0)


def diurnal_shift(days: Iterable[DailyObservation]) -> float:
    """Average daily temperature range, 0.0 for no days.

    Raises:
        MissingTemperatureError: If any day lacks a temperature reading
    """
    ranges = [daily_range(day) for day in days]
    if not ranges:
        return 0.0
    return sum(ranges) / len(ranges)
