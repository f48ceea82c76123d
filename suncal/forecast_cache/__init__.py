"""Forecast cache backends."""

from .base import ForecastCache, cache_url, decode_payload, encode_payload
from .factory import build_forecast_cache
from .memory import InMemoryForecastCache
from .redis import RedisForecastCache

__all__ = [
    "ForecastCache",
    "InMemoryForecastCache",
    "RedisForecastCache",
    "build_forecast_cache",
    "cache_url",
    "decode_payload",
    "encode_payload",
]
