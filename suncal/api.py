"""HTTP API serving the sunrise/sunset + peak UV calendar feed."""

import math
import time
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

import requests
from fastapi import APIRouter, BackgroundTasks, Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .calendar_builder import build_calendar
from .config import settings
from .data_sources import OpenUvClient
from .errors import CalendarBuildError, ConfigurationError, SunCalError, ValidationError
from .forecast_cache import build_forecast_cache
from .forecast_service import get_uv_forecast
from .models import CalendarEvent, ForecastRequestKey
from .sun_events import SkyfieldSunCalculator, build_sun_events
from .uv_aggregator import build_peak_event
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="suncal/api")

REQUIRED_PARAMS = ("latitude", "longitude", "height")
DEFAULT_MIN_UV = 1
DEFAULT_TZ_OFFSET = 0.0

router = APIRouter()
FORECAST_CACHE = build_forecast_cache(settings)
SUN_CALCULATOR = SkyfieldSunCalculator.from_settings(settings)
HTTP_SESSION = requests.Session()


@dataclass(frozen=True)
class SunCalendarQuery:
    """Validated query parameters for one calendar request."""
    key: ForecastRequestKey
    latitude: float
    longitude: float
    height: int
    min_uv: int
    tz_offset: float


_RADIX_PREFIXES = ("0x", "0o", "0b")


def _to_number(raw: str) -> Optional[float]:
    """Parse a finite number the way a URL query is read: blank is 0, no digit separators."""
    text = raw.strip()
    if not text:
        return 0.0
    if "_" in text:
        return None
    try:
        if text[:2].lower() in _RADIX_PREFIXES:
            value = float(int(text, 0))
        else:
            value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def first_values(query_params) -> Dict[str, str]:
    """First value of each query parameter; later duplicates are ignored."""
    return {name: query_params.getlist(name)[0] for name in query_params.keys()}


def parse_query(params: Mapping[str, str]) -> SunCalendarQuery:
    """Validate the query string; raises ValidationError naming the bad field."""
    raw = {name: params.get(name) for name in (*REQUIRED_PARAMS, "min-uv", "tz")}

    missing = [name for name in REQUIRED_PARAMS if not raw[name]]
    if missing:
        raise ValidationError.missing(missing)

    latitude = _to_number(raw["latitude"])
    if latitude is None:
        raise ValidationError.invalid("latitude")

    longitude = _to_number(raw["longitude"])
    if longitude is None:
        raise ValidationError.invalid("longitude")

    height = _to_number(raw["height"])
    if height is None or not height.is_integer():
        raise ValidationError.invalid("height")

    min_uv: Optional[float] = float(DEFAULT_MIN_UV)
    if raw["min-uv"]:
        min_uv = _to_number(raw["min-uv"])
        if min_uv is None or not min_uv.is_integer() or min_uv < 0:
            raise ValidationError.invalid("min-uv")

    tz_offset: Optional[float] = DEFAULT_TZ_OFFSET
    if raw["tz"]:
        tz_offset = _to_number(raw["tz"])
        if tz_offset is None:
            raise ValidationError.invalid("tz")

    return SunCalendarQuery(
        key=ForecastRequestKey(raw["latitude"], raw["longitude"], raw["height"]),
        latitude=latitude,
        longitude=longitude,
        height=int(height),
        min_uv=int(min_uv),
        tz_offset=tz_offset,
    )


def build_openuv_client(api_key: str) -> OpenUvClient:
    """Create an OpenUV client for this request from settings."""
    return OpenUvClient.from_settings(settings, api_key, session=HTTP_SESSION)


def _fetch_deadline() -> Optional[float]:
    """Absolute monotonic deadline for the OpenUV retry loop, if configured."""
    if settings.uv_fetch_deadline_seconds is None:
        return None
    return time.monotonic() + settings.uv_fetch_deadline_seconds


async def sun_cal_error_handler(_request: Request, exc: SunCalError) -> PlainTextResponse:
    """Render service errors as plain-text responses with their status code."""
    if isinstance(exc, CalendarBuildError):
        body = f"Failed to build calendar: {exc}"
    else:
        body = str(exc)
    return PlainTextResponse(body, status_code=exc.status_code)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Plain-text 405 for non-GET requests; other HTTP errors keep FastAPI's rendering."""
    if exc.status_code == 405:
        return PlainTextResponse("Method not allowed", status_code=405, headers=exc.headers)
    return await http_exception_handler(request, exc)


@router.get("/sun-cal.ics")
def sun_calendar(request: Request, background_tasks: BackgroundTasks):
    """Return the sunrise/sunset calendar with an optional peak UV event."""
    api_key = settings.openuv_api_key
    if not api_key:
        logger.error("OpenUV API key is not configured")
        raise ConfigurationError("Server misconfigured")

    query = parse_query(first_values(request.query_params))
    logger.info(
        "Building calendar",
        extra={"key": query.key, "min_uv": query.min_uv, "tz": query.tz_offset},
    )

    forecast = get_uv_forecast(
        query.key,
        cache=FORECAST_CACHE,
        client=build_openuv_client(api_key),
        schedule=background_tasks.add_task,
        deadline=_fetch_deadline(),
    )

    try:
        events: List[CalendarEvent] = build_sun_events(
            query.latitude,
            query.longitude,
            query.height,
            query.tz_offset,
            calculator=SUN_CALCULATOR,
        )
        uv_event = build_peak_event(forecast, query.min_uv, query.tz_offset)
        if uv_event:
            events.append(
                CalendarEvent(
                    summary=uv_event.summary,
                    start=uv_event.start,
                    end=uv_event.end,
                    description=uv_event.description,
                )
            )
        body = build_calendar(
            events,
            name=settings.calendar_name,
            ttl_seconds=settings.uv_cache_ttl_seconds,
        )
    except Exception as exc:
        logger.exception("Failed to build calendar")
        raise CalendarBuildError(str(exc) or type(exc).__name__) from exc

    return Response(
        content=body,
        media_type="text/calendar; charset=utf-8",
        headers={"Cache-Control": f"max-age={settings.uv_cache_ttl_seconds}"},
    )
