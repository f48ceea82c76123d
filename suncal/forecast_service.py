"""Cache-fronted retrieval of UV forecasts."""
from __future__ import annotations

from typing import Any, Callable, List, Optional

from suncal.data_sources import OpenUvClient
from suncal.forecast_cache import ForecastCache
from suncal.models import ForecastRequestKey, RawUvSample
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_service")

Scheduler = Callable[..., Any]


def _run_now(func: Callable[..., Any], *args: Any) -> None:
    func(*args)


def get_uv_forecast(
    key: ForecastRequestKey,
    *,
    cache: ForecastCache,
    client: OpenUvClient,
    schedule: Optional[Scheduler] = None,
    deadline: Optional[float] = None,
) -> List[RawUvSample]:
    """Return raw UV samples for `key`, from the cache when fresh.

    On a miss the client is called and the payload is handed to `schedule`
    together with ``cache.put`` so the write can run after the response has
    been sent (FastAPI's ``BackgroundTasks.add_task``). Without a scheduler
    the write happens inline.
    """
    cached = cache.get(key)
    if cached is not None:
        logger.debug("UV forecast cache hit for %s", key)
        return cached

    logger.info("UV forecast cache miss for %s; calling OpenUV", key)
    payload = client.fetch_forecast(key, deadline=deadline)
    (schedule or _run_now)(cache.put, key, payload)
    return payload
