"""Shared protocol, key derivation and payload codec for forecast caches."""

from __future__ import annotations

import json
from typing import List, Optional, Protocol, Union
from urllib.parse import quote

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from suncal.models import ForecastRequestKey, RawUvSample, UvForecastResponse
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_cache")

CACHE_URL_BASE = "https://cache.sun-cal/uv"
DEFAULT_PREFIX = "sun-cal:uv:"
DEFAULT_TTL_SECONDS = 60 * 30

# Older entries were stored as the whole OpenUV envelope, newer ones as the
# bare `result` array.
_CachedPayload = TypeAdapter(Union[List[RawUvSample], UvForecastResponse])


def cache_url(key: ForecastRequestKey) -> str:
    """Synthetic URL identifying `key`, built from the raw request strings."""
    return (
        f"{CACHE_URL_BASE}?lat={quote(key.latitude, safe='')}"
        f"&lng={quote(key.longitude, safe='')}"
        f"&alt={quote(key.elevation, safe='')}"
    )


def encode_payload(payload: List[RawUvSample]) -> bytes:
    """Serialize the raw sample array for storage."""
    return json.dumps(payload).encode("utf-8")


def decode_payload(raw: Union[bytes, str]) -> Optional[List[RawUvSample]]:
    """Decode a stored entry into the sample array, or None if unusable."""
    try:
        decoded = _CachedPayload.validate_json(raw)
    except PydanticValidationError as exc:
        logger.warning("Discarding undecodable cache entry: %s", exc.errors()[:1])
        return None
    if isinstance(decoded, UvForecastResponse):
        return decoded.result
    return decoded


class ForecastCache(Protocol):
    """Protocol for UV forecast cache backends."""

    ttl: int

    def get(self, key: ForecastRequestKey) -> Optional[List[RawUvSample]]:
        """Return the cached samples for `key`, or None on a miss."""

    def put(self, key: ForecastRequestKey, payload: List[RawUvSample]) -> None:
        """Store `payload` for `key`; failures are logged, never raised."""
