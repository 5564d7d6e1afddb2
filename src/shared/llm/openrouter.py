"""OpenRouter chat-completions client.

OpenAI-compatible API with retry on transient failures and typed errors.
Used only for optional vintage narratives.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from src.shared.api.errors import ConfigurationError, ErrorCode
from src.shared.config.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "anthropic/claude-3-haiku"

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0


@dataclass(frozen=True)
class OpenRouterConfig:
    """Configuration for the OpenRouter client.

    Attributes:
        api_key: OpenRouter API key
        model: Model identifier
        timeout_seconds: Request timeout
        max_retries: Maximum attempts per request
        retry_delay_seconds: Initial delay between attempts, doubled each time
        max_tokens: Maximum tokens in the response
        temperature: Sampling temperature
    """

    api_key: str
    model: str = DEFAULT_MODEL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    max_tokens: int = 700
    temperature: float = 0.7


@dataclass
class LLMResponse:
    """Generated completion with usage and latency."""

    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str = "stop"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    latency_ms: float = 0.0


class OpenRouterError(Exception):
    """Base exception for OpenRouter API errors."""


class OpenRouterAuthError(OpenRouterError):
    """API key rejected."""


class OpenRouterRateLimitError(OpenRouterError):
    """Rate limit exceeded."""


class OpenRouterTimeoutError(OpenRouterError):
    """Request timed out on every attempt."""


class OpenRouterClient:
    """OpenRouter client with retry and exponential backoff.

    Example:
        client = OpenRouterClient(OpenRouterConfig(api_key="..."))
        response = client.chat("Describe the 2019 Bordeaux vintage.")
    """

    def __init__(
        self,
        config: OpenRouterConfig,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize client.

        Args:
            config: Client configuration including API key
            transport: Optional httpx transport (tests use httpx.MockTransport)
            sleep: Sleep function used between retries
        """
        self._config = config
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.Client | None = None
        logger.info(
            "openrouter_client_initialized",
            model=config.model,
            timeout=config.timeout_seconds,
        )

    @property
    def model(self) -> str:
        return self._config.model

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=OPENROUTER_BASE_URL,
                timeout=self._config.timeout_seconds,
                transport=self._transport,
                headers={
                    "Authorization": f"Bearer {self._config.api_key}",
                    "X-Title": "Grapeyear",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    def chat(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """Send a chat completion request.

        Raises:
            OpenRouterAuthError: If authentication fails
            OpenRouterRateLimitError: If rate limit exceeded
            OpenRouterTimeoutError: If every attempt times out
            OpenRouterError: For other API errors
        """
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        request_data = {
            "model": self._config.model,
            "messages": messages,
            "max_tokens": max_tokens or self._config.max_tokens,
            "temperature": self._config.temperature if temperature is None else temperature,
        }
        return self._post_with_retry(request_data)

    def _post_with_retry(self, request_data: dict[str, Any]) -> LLMResponse:
        client = self._get_client()
        last_error: OpenRouterError | None = None
        delay = self._config.retry_delay_seconds

        for attempt in range(self._config.max_retries):
            try:
                start_time = time.monotonic()
                response = client.post("/chat/completions", json=request_data)
                latency_ms = (time.monotonic() - start_time) * 1000
            except httpx.TimeoutException as e:
                last_error = OpenRouterTimeoutError(f"Request timed out: {e}")
                logger.warning("openrouter_timeout", attempt=attempt + 1)
            except httpx.RequestError as e:
                last_error = OpenRouterError(f"Request failed: {e}")
                logger.warning("openrouter_request_error", attempt=attempt + 1, error=str(e))
            else:
                if response.status_code == 200:
                    return self._parse_response(response.json(), latency_ms)
                if response.status_code == 401:
                    raise OpenRouterAuthError("Invalid API key")
                if response.status_code == 429:
                    raise OpenRouterRateLimitError("Rate limit exceeded")
                last_error = OpenRouterError(
                    f"API error ({response.status_code}): {self._extract_error(response)}"
                )
                if response.status_code < 500:
                    raise last_error
                logger.warning(
                    "openrouter_server_error",
                    attempt=attempt + 1,
                    status=response.status_code,
                )

            if attempt < self._config.max_retries - 1:
                self._sleep(delay)
                delay *= 2

        raise last_error or OpenRouterError("All retries exhausted")

    def _parse_response(self, data: dict[str, Any], latency_ms: float) -> LLMResponse:
        choices = data.get("choices", [])
        if not choices:
            raise OpenRouterError("No choices in response")

        choice = choices[0]
        usage = data.get("usage", {})
        return LLMResponse(
            content=choice.get("message", {}).get("content", "") or "",
            model=data.get("model", self._config.model),
            usage={
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
            },
            finish_reason=choice.get("finish_reason", "stop"),
            latency_ms=latency_ms,
        )

    @staticmethod
    def _extract_error(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or "Unknown error"
        error = body.get("error", body) if isinstance(body, dict) else body
        if isinstance(error, dict):
            return error.get("message", str(error))
        return str(error)

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "OpenRouterClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def create_openrouter_client(api_key: str | None, model: str = DEFAULT_MODEL) -> OpenRouterClient:
    """Create a client, failing fast when no key is configured.

    Raises:
        ConfigurationError: If no API key is provided
    """
    if not api_key:
        raise ConfigurationError(
            "OpenRouter API key required. Set OPENROUTER_API_KEY or disable llm narratives.",
            error_code=ErrorCode.CONFIG_MISSING_CREDENTIALS,
        )
    return OpenRouterClient(OpenRouterConfig(api_key=api_key, model=model))
