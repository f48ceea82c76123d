"""FastAPI application setup for the sun calendar feed."""

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import http_error_handler, router as api_router, sun_cal_error_handler
from .errors import SunCalError

app = FastAPI(title="Sun Calendar")

app.add_exception_handler(SunCalError, sun_cal_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)

# Calendar feed at /sun-cal.ics
app.include_router(api_router)
