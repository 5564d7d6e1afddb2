"""Weather provider client, request pacing and ingestion errors."""

from src.shared.api.errors import (
    ConfigurationError,
    ErrorCode,
    FetchError,
    FetchHTTPError,
    FetchTimeoutError,
    GrapeyearError,
    InsufficientDataError,
    MalformedResponseError,
    MissingTemperatureError,
    PersistenceError,
    UnknownRegionError,
    classify_fetch_error,
    is_unit_error,
)
from src.shared.api.open_meteo import OpenMeteoClient
from src.shared.api.rate_limiter import PacingMetrics, TokenBucket

__all__ = [
    "OpenMeteoClient",
    "TokenBucket",
    "PacingMetrics",
    "ErrorCode",
    "GrapeyearError",
    "ConfigurationError",
    "UnknownRegionError",
    "FetchError",
    "FetchTimeoutError",
    "FetchHTTPError",
    "MalformedResponseError",
    "InsufficientDataError",
    "MissingTemperatureError",
    "PersistenceError",
    "classify_fetch_error",
    "is_unit_error",
]
