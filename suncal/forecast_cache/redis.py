"""Redis-backed forecast cache with TTL."""

from typing import List, Optional

from suncal.forecast_cache.base import (
    DEFAULT_PREFIX,
    DEFAULT_TTL_SECONDS,
    ForecastCache,
    cache_url,
    decode_payload,
    encode_payload,
)
from suncal.models import ForecastRequestKey, RawUvSample
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_cache/redis")


class RedisForecastCache(ForecastCache):
    """Forecast entries stored as JSON under a private key prefix with SETEX."""

    def __init__(
        self,
        client,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        prefix: str = DEFAULT_PREFIX,
    ) -> None:
        """Initialize with a Redis client, entry TTL, and key prefix."""
        logger.debug("Initializing RedisForecastCache")
        self.client = client
        self.ttl = ttl_seconds
        self.prefix = prefix

    def _key(self, key: ForecastRequestKey) -> str:
        """Return the Redis key for a forecast request."""
        return f"{self.prefix}{cache_url(key)}"

    def get(self, key: ForecastRequestKey) -> Optional[List[RawUvSample]]:
        """Fetch cached samples, or None if missing, expired or unreadable."""
        try:
            raw = self.client.get(self._key(key))
        except Exception as exc:  # pragma: no cover - defensive
            logger.error("Failed to read forecast from Redis: %s", exc)
            return None
        if not raw:
            return None
        return decode_payload(raw)

    def put(self, key: ForecastRequestKey, payload: List[RawUvSample]) -> None:
        """Best-effort write; errors are logged and swallowed."""
        try:
            self.client.setex(self._key(key), self.ttl, encode_payload(payload))
        except Exception as exc:
            logger.error("Failed to write forecast to Redis: %s", exc)

    def clear(self) -> None:
        """Best-effort clear for all entries under the configured prefix."""
        try:
            for store_key in self.client.scan_iter(f"{self.prefix}*"):
                self.client.delete(store_key)
        except Exception as exc:  # pragma: no cover - defensive
            logger.error("Failed to clear forecasts from Redis: %s", exc)
