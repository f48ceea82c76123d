import os

import uvicorn

from suncal.config import settings
from utils.logging_utils import get_tagged_logger, mask_secret, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def check_credentials() -> None:
    """Warn at startup when requests are bound to fail with a 500."""
    if not settings.openuv_api_key:
        logger.warning("SUNCAL_OPENUV_API_KEY is not set; /sun-cal.ics will answer 500 until it is")
        return
    logger.info("OpenUV API key configured (%s)", mask_secret(settings.openuv_api_key))


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name="sun-cal")
    check_credentials()

    uvicorn.run(
        "suncal.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
