"""Centralized error handling for ingestion.

Provides the exception hierarchy with error codes, retry hints, and
structured logging integration. Unit errors (fetch, data, persistence)
are isolated per region-year by the orchestrator; configuration errors
are fatal.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

import requests
from pydantic import ValidationError

from src.shared.config.logging import get_logger

logger = get_logger(__name__)


class ErrorCode(Enum):
    """Error codes for ingestion exceptions."""

    # Configuration errors (1xxx)
    CONFIG_UNKNOWN_REGION = 1001
    CONFIG_MISSING_CREDENTIALS = 1002
    CONFIG_INVALID = 1003

    # Fetch errors (2xxx)
    FETCH_TIMEOUT = 2001
    FETCH_CONNECTION = 2002
    FETCH_HTTP_STATUS = 2003
    FETCH_MALFORMED_RESPONSE = 2004

    # Data errors (3xxx)
    DATA_INSUFFICIENT = 3001
    DATA_MISSING_TEMPERATURE = 3002

    # Persistence errors (4xxx)
    PERSISTENCE_WRITE_FAILED = 4001
    PERSISTENCE_READ_FAILED = 4002

    # Unknown/Other
    UNKNOWN_ERROR = 9999


class GrapeyearError(Exception):
    """Base exception for all ingestion errors.

    Provides structured error information including error codes,
    retry hints, and context for logging.
    """

    log_level = "error"

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize error.

        Args:
            message: Human-readable error message
            error_code: Structured error code
            retryable: Whether the operation can be retried
            details: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.retryable = retryable
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)

        getattr(logger, self.log_level)(
            "grapeyear_error",
            error_type=type(self).__name__,
            error_code=error_code.name,
            message=message,
            retryable=retryable,
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code.name,
            "error_value": self.error_code.value,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class ConfigurationError(GrapeyearError):
    """Unknown region identifier, missing credentials, invalid settings.

    Fatal for the invocation; never isolated per unit.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_INVALID,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            retryable=False,
            details=details,
        )


class UnknownRegionError(ConfigurationError):
    """Region identifier not present in the catalogue."""

    def __init__(self, region_id: str) -> None:
        super().__init__(
            message=f"Unknown region: {region_id}",
            error_code=ErrorCode.CONFIG_UNKNOWN_REGION,
            details={"region_id": region_id},
        )
        self.region_id = region_id


class FetchError(GrapeyearError):
    """Provider unreachable, non-success status, timeout, or malformed payload."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.FETCH_CONNECTION,
        retryable: bool = True,
        endpoint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize fetch error.

        Args:
            message: Error message
            error_code: Specific fetch error code
            retryable: Whether a later attempt may succeed
            endpoint: Failed endpoint
            details: Additional context
        """
        details = details or {}
        if endpoint:
            details["endpoint"] = endpoint
        super().__init__(
            message=message,
            error_code=error_code,
            retryable=retryable,
            details=details,
        )
        self.endpoint = endpoint


class FetchTimeoutError(FetchError):
    """Request exceeded its timeout."""

    def __init__(
        self,
        endpoint: str | None = None,
        timeout_seconds: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds

        super().__init__(
            message=(
                f"Request timed out after {timeout_seconds}s"
                if timeout_seconds
                else "Request timed out"
            ),
            error_code=ErrorCode.FETCH_TIMEOUT,
            endpoint=endpoint,
            details=details,
        )


class FetchHTTPError(FetchError):
    """Provider answered with a non-success HTTP status."""

    def __init__(
        self,
        status_code: int,
        endpoint: str | None = None,
        response_body: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["status_code"] = status_code
        if response_body:
            details["response_body"] = response_body[:500]

        super().__init__(
            message=f"Weather provider returned HTTP {status_code}",
            error_code=ErrorCode.FETCH_HTTP_STATUS,
            retryable=status_code in [429, 500, 502, 503, 504],
            endpoint=endpoint,
            details=details,
        )
        self.status_code = status_code


class MalformedResponseError(FetchError):
    """Payload missing the daily block or carrying inconsistent arrays."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.FETCH_MALFORMED_RESPONSE,
            retryable=False,
            endpoint=endpoint,
            details=details,
        )


class InsufficientDataError(GrapeyearError):
    """Season window boundaries absent, or no usable in-season days."""

    log_level = "warning"

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATA_INSUFFICIENT,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            retryable=False,
            details=details,
        )


class MissingTemperatureError(InsufficientDataError, ValueError):
    """A day handed to a temperature metric lacks its max or min."""

    def __init__(self, day: Any) -> None:
        super().__init__(
            message=f"Missing temperature reading for {day}",
            error_code=ErrorCode.DATA_MISSING_TEMPERATURE,
            details={"date": str(day)},
        )


class PersistenceError(GrapeyearError):
    """Vintage store rejected a write or could not be read."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode = ErrorCode.PERSISTENCE_WRITE_FAILED,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            retryable=True,
            details=details,
        )


def classify_fetch_error(exception: Exception, endpoint: str | None = None) -> FetchError:
    """Classify a transport or parsing exception into a FetchError.

    Args:
        exception: Exception raised while fetching or parsing
        endpoint: Endpoint that failed

    Returns:
        Classified FetchError instance
    """
    if isinstance(exception, FetchError):
        return exception

    if isinstance(exception, requests.Timeout):
        return FetchTimeoutError(endpoint=endpoint)

    if isinstance(exception, requests.HTTPError):
        response = getattr(exception, "response", None)
        status_code = response.status_code if response is not None else 500
        body = response.text if response is not None else None
        return FetchHTTPError(status_code=status_code, endpoint=endpoint, response_body=body)

    if isinstance(exception, requests.ConnectionError):
        return FetchError(
            message="Failed to establish connection",
            error_code=ErrorCode.FETCH_CONNECTION,
            endpoint=endpoint,
        )

    if isinstance(exception, (ValidationError, ValueError, KeyError, TypeError)):
        return MalformedResponseError(
            message=f"Malformed weather payload: {exception}",
            endpoint=endpoint,
            details={"exception_type": type(exception).__name__},
        )

    return FetchError(
        message=str(exception),
        error_code=ErrorCode.FETCH_CONNECTION,
        endpoint=endpoint,
        details={"exception_type": type(exception).__name__},
    )


def is_unit_error(error: Exception) -> bool:
    """True for errors isolated to a single region-year."""
    return isinstance(error, (FetchError, InsufficientDataError, PersistenceError))
