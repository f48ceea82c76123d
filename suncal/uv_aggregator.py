"""Turn raw hourly UV samples into a single peak-UV calendar event.

Filtering compares the unrounded UV with ``min_uv``; the peak and the bar
chart use UV rounded half-up to an integer. Samples keep the order OpenUV
returned them in, so the chart follows upstream order.
"""
from __future__ import annotations

import datetime as dt
import math
from typing import Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from suncal.models import HourlyUvPoint, PeakUvEvent, RawUvSample, UvSample
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="uv_aggregator")

BAR_CHAR = "█"

# Mathematical sans-serif forms render at a steady width in calendar apps,
# which keeps the bars lined up.
FIXED_WIDTH_CHARS = {
    "0": "𝟬",
    "1": "𝟭",
    "2": "𝟮",
    "3": "𝟯",
    "4": "𝟰",
    "5": "𝟱",
    "6": "𝟲",
    "7": "𝟳",
    "8": "𝟴",
    "9": "𝟵",
    "A": "𝖺",
    "P": "𝗉",
    "M": "𝗆",
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def floor_to_hour_utc(value: dt.datetime) -> dt.datetime:
    """Convert to UTC and truncate to the start of the hour; naive values are read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc).replace(minute=0, second=0, microsecond=0)


def to_hourly_points(samples: Iterable[RawUvSample], min_uv: float) -> List[HourlyUvPoint]:
    """Convert raw samples to rounded hourly points, keeping those at or above `min_uv`."""
    points: List[HourlyUvPoint] = []
    for item in samples:
        try:
            sample = UvSample.model_validate(item)
        except PydanticValidationError as exc:
            logger.warning("Skipping malformed UV sample %r: %s", item, exc.errors()[:1])
            continue

        raw_uv = sample.uv if sample.uv is not None else math.nan
        if not math.isfinite(raw_uv) or raw_uv < min_uv:
            continue

        points.append(
            HourlyUvPoint(
                uv=round_half_up(raw_uv),
                raw_uv=raw_uv,
                hour=floor_to_hour_utc(sample.uv_time),
            )
        )
    return points


def format_hour_label(hour: dt.datetime, tz_offset_hours: float) -> str:
    """Two-digit 12-hour clock label such as ``09AM``, in fixed-width glyphs."""
    local = hour + dt.timedelta(hours=tz_offset_hours)
    hour12 = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    label = f"{hour12:02d}{suffix}"
    return "".join(FIXED_WIDTH_CHARS.get(ch, ch) for ch in label)


def bar_length(uv: int, min_uv: int) -> int:
    # min_uv=0 gives uv + 1, so a zero reading still draws one block.
    return max(uv - (min_uv - 1), 0)


def bar_chart_line(point: HourlyUvPoint, min_uv: int, tz_offset_hours: float) -> str:
    """Render ``<hour> <bar> <uv>`` for one point."""
    bar = BAR_CHAR * bar_length(point.uv, min_uv)
    return f"{format_hour_label(point.hour, tz_offset_hours)} {bar} {point.uv}"


def build_peak_event(
    samples: Iterable[RawUvSample],
    min_uv: int,
    tz_offset_hours: float,
) -> Optional[PeakUvEvent]:
    """Summarize `samples` as one event, or None if no sample reaches `min_uv`.

    The event spans from the earliest to one hour past the latest hour whose
    rounded UV equals the maximum. Tied hours need not be adjacent, so the
    span can include hours below the peak.
    """
    points = to_hourly_points(samples, min_uv)
    if not points:
        logger.info("No UV samples at or above %s; skipping peak UV event", min_uv)
        return None

    max_uv = max(point.uv for point in points)
    peak_hours = [point.hour for point in points if point.uv == max_uv]

    return PeakUvEvent(
        peak_value=max_uv,
        start=min(peak_hours),
        end=max(peak_hours) + dt.timedelta(hours=1),
        description="\n".join(bar_chart_line(point, min_uv, tz_offset_hours) for point in points),
    )
