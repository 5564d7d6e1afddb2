"""Open-Meteo historical archive client.

Fetches daily temperature, precipitation and sunshine series for a
coordinate and date range. Requests are paced through a token bucket,
retried on 429/5xx by the mounted adapter, and bounded by a timeout.
"""

from collections.abc import Callable
from datetime import date, timedelta
from typing import Any

import requests
from pydantic import ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from src.shared.api.errors import (
    InsufficientDataError,
    MalformedResponseError,
    classify_fetch_error,
)
from src.shared.api.rate_limiter import TokenBucket
from src.shared.api.response_models import ArchiveResponse
from src.shared.config.logging import get_logger
from src.shared.constants import API_TIMEOUT_SECONDS, OPEN_METEO_DAILY_VARIABLES
from src.vintage.models import DailyObservation

logger = get_logger(__name__)

DEFAULT_ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"
DEFAULT_USER_AGENT = "Grapeyear/1.0"
RETRY_BACKOFF_MAX_SECONDS = 8


class OpenMeteoClient:
    """Client for the Open-Meteo archive API.

    Handles pacing, retries and payload validation. Every failure to
    produce a usable series surfaces as a FetchError.
    """

    def __init__(
        self,
        archive_url: str = DEFAULT_ARCHIVE_URL,
        timeout: float = API_TIMEOUT_SECONDS,
        requests_per_second: float = 2.0,
        session: requests.Session | None = None,
        pacer: TokenBucket | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize archive client.

        Args:
            archive_url: Archive endpoint URL
            timeout: Per-request timeout in seconds
            requests_per_second: Pacing rate (2.0 leaves 500ms between calls)
            session: Preconfigured session, mainly for tests
            pacer: Token bucket shared with other callers
            today: Date source used to clamp future end dates
        """
        self.archive_url = archive_url
        self.timeout = timeout
        self.pacer = pacer or TokenBucket(rate=requests_per_second, capacity=1, name="open_meteo")
        self._today = today

        if session is None:
            session = requests.Session()
            retry_strategy = Retry(
                total=3,
                backoff_factor=1,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["GET"],
                raise_on_status=False,
                # Throttle hints can ask for minutes; keep each fetch bounded
                respect_retry_after_header=False,
                backoff_max=RETRY_BACKOFF_MAX_SECONDS,
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
            session.headers.update({"User-Agent": DEFAULT_USER_AGENT})
        self.session = session

        logger.info(
            "open_meteo_client_initialized",
            archive_url=archive_url,
            timeout=timeout,
            requests_per_second=self.pacer.rate,
        )

    @classmethod
    def from_settings(cls, settings: Any) -> "OpenMeteoClient":
        return cls(
            archive_url=settings.open_meteo_archive_url,
            timeout=settings.weather_timeout_seconds,
            requests_per_second=settings.weather_requests_per_second,
        )

    def clamp_range(self, start: date, end: date) -> tuple[date, date]:
        """Clamp the end date to yesterday; the archive has nothing later.

        Raises:
            InsufficientDataError: If the whole range lies in the future
        """
        yesterday = self._today() - timedelta(days=1)
        if end > yesterday:
            logger.debug("clamping_end_date", requested_end=end.isoformat(), end=yesterday.isoformat())
            end = yesterday
        if start > end:
            raise InsufficientDataError(
                f"No archive data yet for range starting {start.isoformat()}",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )
        return start, end

    def _make_request(self, params: dict[str, Any]) -> dict[str, Any]:
        """Issue one paced GET against the archive endpoint.

        Raises:
            FetchError: On timeout, connection failure, or non-success status
        """
        self.pacer.acquire()
        logger.debug("open_meteo_request", url=self.archive_url, params=params)

        try:
            response = self.session.get(self.archive_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            logger.debug("open_meteo_request_success", status=response.status_code)
            return response.json()
        except requests.Timeout as e:
            logger.error("open_meteo_request_timeout", url=self.archive_url, timeout=self.timeout)
            raise classify_fetch_error(e, endpoint=self.archive_url) from e
        except requests.HTTPError as e:
            logger.error(
                "open_meteo_request_failed",
                url=self.archive_url,
                status=e.response.status_code if e.response is not None else None,
                error=str(e),
            )
            raise classify_fetch_error(e, endpoint=self.archive_url) from e
        except (requests.RequestException, ValueError) as e:
            logger.error("open_meteo_request_error", url=self.archive_url, error=str(e))
            raise classify_fetch_error(e, endpoint=self.archive_url) from e

    def fetch_daily(
        self,
        lat: float,
        lon: float,
        start: date,
        end: date,
    ) -> list[DailyObservation]:
        """Fetch the daily series for a coordinate and inclusive date range.

        Args:
            lat: Latitude
            lon: Longitude
            start: First date
            end: Last date (clamped to yesterday)

        Returns:
            Date-ordered observations

        Raises:
            FetchError: Transport failure or malformed payload
            InsufficientDataError: Range entirely in the future

        Example:
            >>> client = OpenMeteoClient()
            >>> days = client.fetch_daily(44.84, -0.58, date(2020, 4, 1), date(2020, 10, 31))
        """
        start, end = self.clamp_range(start, end)
        params = {
            "latitude": lat,
            "longitude": lon,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "daily": ",".join(OPEN_METEO_DAILY_VARIABLES),
            "timezone": "auto",
        }

        logger.info(
            "fetching_open_meteo_archive",
            lat=lat,
            lon=lon,
            start=start.isoformat(),
            end=end.isoformat(),
        )

        data = self._make_request(params)
        if not isinstance(data, dict) or "daily" not in data:
            raise MalformedResponseError(
                "Archive response has no daily block",
                endpoint=self.archive_url,
                details={"keys": sorted(data) if isinstance(data, dict) else None},
            )

        try:
            parsed = ArchiveResponse.model_validate(data)
        except ValidationError as e:
            raise classify_fetch_error(e, endpoint=self.archive_url) from e

        observations = parsed.daily.to_observations()
        logger.info("open_meteo_archive_fetched", days=len(observations))
        return observations

    def close(self) -> None:
        self.session.close()

