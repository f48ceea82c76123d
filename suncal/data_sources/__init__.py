"""Upstream data sources for UV forecasts."""

from .openuv_client import OPENUV_BASE_URL, OpenUvClient

__all__ = [
    "OPENUV_BASE_URL",
    "OpenUvClient",
]
