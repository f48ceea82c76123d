"""Error taxonomy for the sun calendar service.

Each error maps to one HTTP outcome at the request boundary:

- ValidationError: bad or missing query parameters (400). Never retried.
- ConfigurationError: the server is missing its OpenUV credential (500).
- UpstreamError: OpenUV could not be reached or answered badly on every
  attempt (502). Carries the last underlying failure.
- CalendarBuildError: any other failure while assembling the calendar (502).

An empty or fully filtered UV forecast is not an error: the calendar is
simply built without a peak UV event.
"""

from __future__ import annotations

from typing import Sequence


class SunCalError(Exception):
    """Base class for errors surfaced at the request boundary."""

    status_code: int = 500


class ValidationError(SunCalError):
    """Query parameters are missing or malformed."""

    status_code = 400

    def __init__(self, message: str, fields: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.fields = tuple(fields)

    @classmethod
    def missing(cls, names: Sequence[str]) -> "ValidationError":
        return cls(f"Missing required query params: {', '.join(names)}", names)

    @classmethod
    def invalid(cls, name: str) -> "ValidationError":
        return cls(f"Invalid {name}", [name])


class ConfigurationError(SunCalError):
    """The service is missing configuration an operator must supply."""

    status_code = 500


class CalendarBuildError(SunCalError):
    """The calendar could not be assembled; reported as a bad gateway."""

    status_code = 502


class UpstreamError(CalendarBuildError):
    """OpenUV failed on every attempt; the message is the last failure's."""
