"""Application configuration pulled from environment variables via pydantic."""
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger, mask_secret
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the sun calendar service."""
    model_config = SettingsConfigDict(env_prefix="SUNCAL_", extra="ignore")

    openuv_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SUNCAL_OPENUV_API_KEY", "OPENUV_API_KEY"),
    )
    openuv_base_url: str = "https://api.openuv.io/api/v1"
    uv_cache_ttl_seconds: int = 1800
    uv_max_retries: int = 6
    uv_backoff_start_ms: int = 1000
    uv_request_timeout_seconds: float = 10.0
    uv_fetch_deadline_seconds: float | None = None
    cache_redis_url: str | None = None
    cache_prefix: str = "sun-cal:uv:"
    calendar_name: str = "☀️ Sun"
    ephemeris_dir: str = "./.skyfield"
    ephemeris_file: str = "de421.bsp"
    log_level: str = "INFO"

    @field_validator("openuv_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")


settings = Settings()


if __name__ == "__main__":
    logger.logger.setLevel("DEBUG")
    dumped = settings.model_dump()
    dumped["openuv_api_key"] = mask_secret(settings.openuv_api_key)
    logger.debug(f"Loaded settings: {dumped}")
