"""Shared data types for the UV forecast pipeline and calendar output."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt

# A sample exactly as OpenUV returned it; cached verbatim.
RawUvSample = Dict[str, Any]


@dataclass(frozen=True)
class ForecastRequestKey:
    """The raw (latitude, longitude, height) query strings of one request.

    Identity is the exact strings: "30.480" and "30.48" are different keys.
    """
    latitude: str
    longitude: str
    elevation: str

    def as_openuv_params(self) -> Dict[str, str]:
        """Query parameters for the OpenUV forecast endpoint."""
        return {"lat": self.latitude, "lng": self.longitude, "alt": self.elevation}


class UvSample(BaseModel):
    """One forecast entry from OpenUV (extra fields are tolerated)."""
    model_config = ConfigDict(extra="allow")

    # Numbers only: "5" or true are not UV readings.
    uv: Optional[Union[StrictInt, StrictFloat]] = None
    uv_time: datetime


class UvForecastResponse(BaseModel):
    """Envelope of the OpenUV forecast response; only `result` is required."""
    model_config = ConfigDict(extra="allow")

    result: List[RawUvSample]


@dataclass
class HourlyUvPoint:
    """A sample rounded to an integer UV and floored to its UTC hour."""
    uv: int
    raw_uv: float
    hour: datetime  # timezone-aware, UTC


@dataclass
class PeakUvEvent:
    """The single calendar entry summarizing the highest rounded UV."""
    peak_value: int
    start: datetime
    end: datetime
    description: str

    @property
    def summary(self) -> str:
        return f"☀️ Peak UV index ({self.peak_value})"


@dataclass
class SunTimes:
    """Named solar instants for one day, all timezone-aware UTC."""
    dawn: datetime
    sunrise: datetime
    sunrise_end: datetime
    sunset_start: datetime
    sunset: datetime
    dusk: datetime


@dataclass
class CalendarEvent:
    """A calendar-agnostic event handed to the calendar builder."""
    summary: str
    start: datetime
    end: datetime
    description: str
    uid: Optional[str] = None
