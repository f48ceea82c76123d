"""Client for the OpenUV forecast API with bounded retries and backoff."""
from __future__ import annotations

import time
from typing import Callable, List, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from suncal.errors import UpstreamError
from suncal.models import ForecastRequestKey, RawUvSample, UvForecastResponse
from utils.logging_utils import get_tagged_logger, mask_secret

logger = get_tagged_logger(__name__, tag="openuv_client")

OPENUV_BASE_URL = "https://api.openuv.io/api/v1"
UV_MAX_RETRIES = 6
UV_BACKOFF_START_MS = 1000
UV_REQUEST_TIMEOUT_SECONDS = 10.0


class OpenUvClient:
    """Fetch hourly UV forecasts from OpenUV.

    A fetch makes at most ``max_retries + 1`` attempts. Attempt ``i + 1`` is
    preceded by a wait of ``backoff_start_ms * 2 ** (i - 1)`` milliseconds, so
    the defaults wait 1s, 2s, 4s, 8s, 16s and 32s. Each attempt has its own
    timeout; a timeout, a transport error, a non-2xx status or a body without
    a ``result`` list all count as one failed attempt. When every attempt
    fails, the last failure is raised as :class:`UpstreamError`.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = OPENUV_BASE_URL,
        max_retries: int = UV_MAX_RETRIES,
        backoff_start_ms: int = UV_BACKOFF_START_MS,
        timeout_seconds: float = UV_REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api_key = api_key
        self.url = f"{base_url.rstrip('/')}/forecast"
        self.max_retries = max_retries
        self.backoff_start_ms = backoff_start_ms
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_settings(cls, settings, api_key: str, **overrides) -> "OpenUvClient":
        """Build a client from :class:`suncal.config.Settings` values."""
        kwargs = {
            "base_url": settings.openuv_base_url,
            "max_retries": settings.uv_max_retries,
            "backoff_start_ms": settings.uv_backoff_start_ms,
            "timeout_seconds": settings.uv_request_timeout_seconds,
        }
        kwargs.update(overrides)
        return cls(api_key, **kwargs)

    def backoff_seconds(self, attempt: int) -> float:
        """Wait before attempt number `attempt` (1-based); zero for the first."""
        if attempt <= 1:
            return 0.0
        return self.backoff_start_ms * (2 ** (attempt - 2)) / 1000.0

    def fetch_forecast(self, key: ForecastRequestKey, *, deadline: Optional[float] = None) -> List[RawUvSample]:
        """Return the raw ``result`` array for `key`.

        `deadline` is an optional absolute time on the client's monotonic
        clock. It bounds the whole retry loop: no wait or attempt is started
        that would run past it, and attempt timeouts are clamped to it.
        """
        params = key.as_openuv_params()
        attempts = self.max_retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            delay = self.backoff_seconds(attempt)
            if delay:
                if deadline is not None and self._clock() + delay >= deadline:
                    logger.warning(
                        "Deadline reached before OpenUV attempt %d/%d; giving up", attempt, attempts
                    )
                    break
                logger.debug("Waiting %.1fs before OpenUV attempt %d/%d", delay, attempt, attempts)
                self._sleep(delay)

            timeout = self.timeout_seconds
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    logger.warning("Deadline reached before OpenUV attempt %d/%d", attempt, attempts)
                    break
                timeout = min(timeout, remaining)

            try:
                result = self._attempt(params, timeout)
            except (requests.exceptions.RequestException, ValueError) as exc:
                last_error = exc
                logger.warning("OpenUV attempt %d/%d failed: %s", attempt, attempts, exc)
                continue

            logger.info("OpenUV returned %d samples on attempt %d", len(result), attempt)
            return result

        if last_error is None:
            raise UpstreamError("Failed to fetch openuv forecast")
        raise UpstreamError(str(last_error) or type(last_error).__name__) from last_error

    def _attempt(self, params: dict, timeout: float) -> List[RawUvSample]:
        """Make one request; raise on any failure."""
        logger.debug(
            "OpenUV GET %s params=%s token=%s timeout=%.1fs",
            self.url,
            params,
            mask_secret(self.api_key),
            timeout,
        )
        resp = self.session.get(
            self.url,
            params=params,
            headers={"x-access-token": self.api_key},
            timeout=timeout,
        )
        if not 200 <= resp.status_code < 300:
            raise requests.exceptions.HTTPError(f"openuv returned {resp.status_code}", response=resp)

        try:
            data = resp.json()
            envelope = UvForecastResponse.model_validate(data)
        except PydanticValidationError as exc:
            raise ValueError("Unexpected openuv response") from exc
        return envelope.result
