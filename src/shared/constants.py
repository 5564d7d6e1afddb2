"""Core constants for the Grapeyear vintage engine.

Agronomic thresholds, scoring bands and provider parameters shared across
the aggregation, scoring and ingestion layers.
"""

from typing import Final

# Growing degree days
GDD_BASE_TEMP_C: Final[float] = 10.0

# Daily thresholds
FROST_THRESHOLD_C: Final[float] = 0.0  # min strictly below
HARVEST_HEAT_THRESHOLD_C: Final[float] = 30.0  # max strictly above
HEAT_SPIKE_THRESHOLD_C: Final[float] = 35.0  # max strictly above
DRY_DAY_THRESHOLD_MM: Final[float] = 1.0
DROUGHT_RAIN_THRESHOLD_MM: Final[float] = 200.0

# Frost timing: first days of the season (budburst) and last days (pre-harvest)
EARLY_FROST_WINDOW_DAYS: Final[int] = 60
LATE_FROST_WINDOW_DAYS: Final[int] = 30

# Scoring
BASE_SCORE: Final[int] = 50
MIN_SCORE: Final[int] = 0
MAX_SCORE: Final[int] = 100

# Open-Meteo daily variables, in request order
OPEN_METEO_DAILY_VARIABLES: Final[list[str]] = [
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "sunshine_duration",
]

# Timeouts (seconds)
API_TIMEOUT_SECONDS: Final[int] = 30

# Scheduled refresh covers the current and previous vintage
ACTIVE_VINTAGE_YEARS: Final[int] = 2
