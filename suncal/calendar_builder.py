"""Serialize calendar events into an iCalendar document with `ics`."""
from __future__ import annotations

from typing import Iterable

from ics import Calendar, Event
from ics.grammar.parse import ContentLine

from suncal.models import CalendarEvent
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="calendar_builder")


def ttl_duration(seconds: int) -> str:
    """ISO 8601 duration for a whole number of seconds, e.g. 1800 -> ``PT30M``."""
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    out = "PT"
    if hours:
        out += f"{hours}H"
    if minutes:
        out += f"{minutes}M"
    if secs or out == "PT":
        out += f"{secs}S"
    return out


def build_calendar(events: Iterable[CalendarEvent], *, name: str, ttl_seconds: int) -> str:
    """Return the calendar document for `events`.

    The feed advertises `ttl_seconds` as its refresh interval so subscribing
    clients poll no more often than the UV cache turns over.
    """
    cal = Calendar()
    duration = ttl_duration(ttl_seconds)
    cal.extra.append(ContentLine(name="X-WR-CALNAME", value=name))
    cal.extra.append(ContentLine(name="REFRESH-INTERVAL", params={"VALUE": ["DURATION"]}, value=duration))
    cal.extra.append(ContentLine(name="X-PUBLISHED-TTL", value=duration))

    count = 0
    for item in events:
        ev = Event(
            name=item.summary,
            begin=item.start,
            end=item.end,
            description=item.description,
        )
        if item.uid:
            ev.uid = item.uid
        cal.events.add(ev)
        count += 1

    logger.debug("Serializing calendar with %d events", count)
    return "".join(cal.serialize_iter())
