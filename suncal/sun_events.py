"""Daily sunrise and sunset calendar events.

The astronomy lives behind :class:`SunCalculator`; the default implementation
uses skyfield with the JPL DE421 ephemeris. Event building itself only needs
six named instants per day, so tests can substitute a fake calculator.
"""
from __future__ import annotations

import datetime as dt
import math
from bisect import bisect_left, bisect_right
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from skyfield import almanac
from skyfield.api import Loader, wgs84

from suncal.models import CalendarEvent, SunTimes
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="sun_events")

DAYS_BEFORE = 180
DAYS_AFTER = 180
FEET_TO_METRES = 0.3048

# Sun altitude (degrees) at each named instant, before horizon dip.
DAWN_DUSK_DEGREES = -6.0
SUNRISE_SUNSET_DEGREES = -0.833
SUNRISE_END_DEGREES = -0.3
HALF_DAY = dt.timedelta(hours=12)


class SunCalculator(Protocol):
    """Anything that can produce solar instants for a run of days."""

    def times_for_days(
        self,
        latitude: float,
        longitude: float,
        elevation_feet: float,
        days: Sequence[dt.date],
    ) -> Dict[dt.date, SunTimes]:
        """Return SunTimes keyed by day, one entry per requested day."""
        ...


def horizon_dip_degrees(height_m: float) -> float:
    """How far the visible horizon drops below the geometric one for an elevated observer."""
    return -2.076 * math.sqrt(max(height_m, 0.0)) / 60.0


@lru_cache(maxsize=4)
def _load_ephemeris(directory: str, filename: str):
    """Load the timescale and ephemeris once per process (downloads on first use)."""
    Path(directory).mkdir(parents=True, exist_ok=True)
    load = Loader(directory)
    logger.info("Loading ephemeris %s from %s", filename, directory)
    return load.timescale(), load(filename)


class Crossings:
    """Horizon crossings from one skyfield search, in time order.

    ``flags[i]`` is False where skyfield found no crossing and returned the
    sun's culmination instead (midnight sun or polar night).
    """

    def __init__(self, instants: List[dt.datetime], flags: List[bool]) -> None:
        self.instants = instants
        self.flags = flags

    def within(self, start: dt.datetime, end: dt.datetime, night: dt.datetime) -> dt.datetime:
        """The crossing between `start` and `end`; `night` is the edge at lower culmination.

        Without a real crossing, the nearest culmination fallback is snapped to
        whichever edge of the window it sits closest to, so the result always
        lies inside the window.
        """
        lo = bisect_left(self.instants, start)
        hi = bisect_right(self.instants, end)
        for i in range(lo, hi):
            if self.flags[i]:
                return self.instants[i]

        def distance(instant: dt.datetime) -> dt.timedelta:
            return max(start - instant, instant - end, dt.timedelta(0))

        fallbacks = [
            self.instants[i]
            for i in range(max(lo - 1, 0), min(hi + 1, len(self.instants)))
            if not self.flags[i]
        ]
        if not fallbacks:
            return night
        nearest = min(fallbacks, key=distance)
        return start if abs(nearest - start) <= abs(nearest - end) else end


class SkyfieldSunCalculator:
    """Compute dawn/sunrise/sunset/dusk with skyfield's almanac search."""

    def __init__(self, ephemeris_dir: str = "./.skyfield", ephemeris_file: str = "de421.bsp") -> None:
        self.ephemeris_dir = ephemeris_dir
        self.ephemeris_file = ephemeris_file

    @classmethod
    def from_settings(cls, settings) -> "SkyfieldSunCalculator":
        return cls(settings.ephemeris_dir, settings.ephemeris_file)

    def times_for_days(
        self,
        latitude: float,
        longitude: float,
        elevation_feet: float,
        days: Sequence[dt.date],
    ) -> Dict[dt.date, SunTimes]:
        if not days:
            return {}
        ts, eph = _load_ephemeris(self.ephemeris_dir, self.ephemeris_file)
        height_m = elevation_feet * FEET_TO_METRES
        observer = eph["earth"] + wgs84.latlon(latitude, longitude, elevation_m=height_m)
        sun = eph["sun"]
        dip = horizon_dip_degrees(height_m)

        # Search in UTC; a day is anchored on its local solar noon (upper transit).
        solar_shift = dt.timedelta(hours=longitude / 15.0)
        first = dt.datetime.combine(min(days), dt.time(0), tzinfo=dt.timezone.utc) - solar_shift
        last = dt.datetime.combine(max(days), dt.time(0), tzinfo=dt.timezone.utc) - solar_shift
        t0 = ts.from_datetime(first - dt.timedelta(days=1))
        t1 = ts.from_datetime(last + dt.timedelta(days=2))

        transits = [t.utc_datetime() for t in almanac.find_transits(observer, sun, t0, t1)]
        noon_index: Dict[dt.date, int] = {}
        for index, noon in enumerate(transits):
            noon_index.setdefault((noon + solar_shift).date(), index)

        def lower_culmination(index: int, step: int) -> dt.datetime:
            other = index + step
            if 0 <= other < len(transits):
                return transits[index] + (transits[other] - transits[index]) / 2
            return transits[index] + step * HALF_DAY

        def crossings(find, degrees: float) -> Crossings:
            times, flags = find(observer, sun, t0, t1, horizon_degrees=degrees + dip)
            return Crossings([t.utc_datetime() for t in times], [bool(flag) for flag in flags])

        dawn = crossings(almanac.find_risings, DAWN_DUSK_DEGREES)
        sunrise = crossings(almanac.find_risings, SUNRISE_SUNSET_DEGREES)
        sunrise_end = crossings(almanac.find_risings, SUNRISE_END_DEGREES)
        sunset_start = crossings(almanac.find_settings, SUNRISE_END_DEGREES)
        sunset = crossings(almanac.find_settings, SUNRISE_SUNSET_DEGREES)
        dusk = crossings(almanac.find_settings, DAWN_DUSK_DEGREES)

        out: Dict[dt.date, SunTimes] = {}
        for day in days:
            index = noon_index.get(day)
            if index is None:
                logger.warning("No solar transit found for %s at (%s, %s)", day, latitude, longitude)
                continue
            noon = transits[index]
            before, after = lower_culmination(index, -1), lower_culmination(index, 1)
            out[day] = SunTimes(
                dawn=dawn.within(before, noon, night=before),
                sunrise=sunrise.within(before, noon, night=before),
                sunrise_end=sunrise_end.within(before, noon, night=before),
                sunset_start=sunset_start.within(noon, after, night=after),
                sunset=sunset.within(noon, after, night=after),
                dusk=dusk.within(noon, after, night=after),
            )
        return out


def window_days(today: Optional[dt.date] = None) -> List[dt.date]:
    """The 360 days from 180 days before `today` (UTC) to 179 days after."""
    today = today or dt.datetime.now(dt.timezone.utc).date()
    return [today + dt.timedelta(days=offset) for offset in range(-DAYS_BEFORE, DAYS_AFTER)]


def format_simple_time(instant: dt.datetime, tz_offset_hours: float) -> str:
    """Render the UTC instant shifted by the offset as e.g. ``6:42 AM``."""
    local = instant.astimezone(dt.timezone.utc) + dt.timedelta(hours=tz_offset_hours)
    hour12 = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour12}:{local.minute:02d} {suffix}"


def build_sun_events(
    latitude: float,
    longitude: float,
    elevation_feet: float,
    tz_offset_hours: float,
    *,
    calculator: SunCalculator,
    today: Optional[dt.date] = None,
) -> List[CalendarEvent]:
    """Two events per day (sunrise window, sunset window) across the 360-day window."""
    days = window_days(today)
    times_by_day = calculator.times_for_days(latitude, longitude, elevation_feet, days)

    events: List[CalendarEvent] = []
    for day in days:
        times = times_by_day.get(day)
        if times is None:
            continue
        events.append(
            CalendarEvent(
                summary="🌅 Sunrise",
                start=times.dawn,
                end=times.sunrise_end,
                description=f"Sunrise: {format_simple_time(times.sunrise, tz_offset_hours)}",
                uid=f"sunrise-{day.isoformat()}@sun-cal",
            )
        )
        events.append(
            CalendarEvent(
                summary="🌇 Sunset",
                start=times.sunset_start,
                end=times.dusk,
                description=f"Sunset: {format_simple_time(times.sunset, tz_offset_hours)}",
                uid=f"sunset-{day.isoformat()}@sun-cal",
            )
        )
    logger.debug("Built %d sun events for %d days", len(events), len(days))
    return events
