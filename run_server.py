import os

import uvicorn

from utils.logging_utils import get_tagged_logger, mask_api_key, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def log_startup_settings() -> None:
    """Log the settings that change rating behaviour, with secrets masked."""
    from dronecast.config import settings

    logger.info(
        "Starting dronecast",
        extra={
            "forecast_source": settings.forecast_source,
            "forecast_cache_seconds": settings.forecast_cache_seconds,
            "api_key": mask_api_key(settings.api_key),
        },
    )
    logger.info(f"Active thresholds: {settings.thresholds.model_dump()}")


if __name__ == "__main__":
    setup_logging(level=os.getenv("DRONE_LOG_LEVEL", "INFO"), job_name="dronecast")
    log_startup_settings()

    uvicorn.run(
        "dronecast.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
