"""In-memory forecast cache with TTL, intended for development and tests."""

import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

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

logger = get_tagged_logger(__name__, tag="forecast_cache/in_memory")


class InMemoryForecastCache(ForecastCache):
    """Thread-safe, TTL-aware in-memory cache (dev/test)."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        prefix: str = DEFAULT_PREFIX,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        logger.debug("Initializing InMemoryForecastCache")
        self.ttl = ttl_seconds
        self.prefix = prefix
        self._clock = clock
        self._entries: Dict[str, Tuple[float, bytes]] = {}
        self._lock = threading.Lock()

    def _key(self, key: ForecastRequestKey) -> str:
        return f"{self.prefix}{cache_url(key)}"

    def get(self, key: ForecastRequestKey) -> Optional[List[RawUvSample]]:
        """Return cached samples, dropping the entry if it has expired."""
        store_key = self._key(key)
        with self._lock:
            entry = self._entries.get(store_key)
            if entry is None:
                return None
            expires_at, raw = entry
            if expires_at <= self._clock():
                self._entries.pop(store_key, None)
                return None
        return decode_payload(raw)

    def put(self, key: ForecastRequestKey, payload: List[RawUvSample]) -> None:
        """Store a payload for the configured TTL (last write wins)."""
        try:
            raw = encode_payload(payload)
        except (TypeError, ValueError) as exc:
            logger.error("Failed to serialize forecast for cache: %s", exc)
            return
        with self._lock:
            self._entries[self._key(key)] = (self._clock() + self.ttl, raw)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()
