"""Factory helpers for choosing a forecast cache backend at startup."""

from __future__ import annotations

import redis

from suncal import config
from suncal.forecast_cache.base import ForecastCache
from suncal.forecast_cache.memory import InMemoryForecastCache
from suncal.forecast_cache.redis import RedisForecastCache
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_cache/factory")


def build_forecast_cache(settings: config.Settings | None = None) -> ForecastCache:
    """Instantiate the configured forecast cache."""
    settings = settings or config.settings

    if settings.cache_redis_url:
        client = redis.Redis.from_url(settings.cache_redis_url)
        logger.info("Using RedisForecastCache", extra={"prefix": settings.cache_prefix})
        return RedisForecastCache(client, ttl_seconds=settings.uv_cache_ttl_seconds, prefix=settings.cache_prefix)

    logger.info("Using InMemoryForecastCache")
    return InMemoryForecastCache(ttl_seconds=settings.uv_cache_ttl_seconds, prefix=settings.cache_prefix)
