"""
Central logging configuration for dronecast.

Usage
-----
In the server entrypoint:

    from utils.logging_utils import setup_logging

    setup_logging(level="INFO", job_name="dronecast")

In a module:

    from utils.logging_utils import get_tagged_logger

    logger = get_tagged_logger(__name__, tag="open_meteo_client")
    logger.info("Fetching hourly forecast", extra={"latitude": lat})

Every record carries `job_name` and `tag` fields so the formatter can show
which process and which component emitted it.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Any, Mapping, Optional


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(job_name)s | %(tag)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Records logged before setup_logging() still get a timestamp and level.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
    datefmt=LOG_DATE_FORMAT,
)

_CONFIGURED: bool = False


class MaxLevelFilter(logging.Filter):
    """Pass only records at or below `max_level` (keeps WARNING+ off stdout)."""

    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return record.levelno <= self.max_level


class EnsureTagFilter(logging.Filter):
    """
    Guarantee a `tag` attribute on every record.

    Records from get_tagged_logger() already have one; plain loggers (uvicorn,
    requests) get the last segment of their logger name.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "tag"):
            logger_name = getattr(record, "name", "")
            record.tag = logger_name.split(".")[-1] if logger_name else "-"
        return True


class JobNameFilter(logging.Filter):
    """Stamp a per-process `job_name` on records that lack one."""

    def __init__(self, job_name: Optional[str] = None) -> None:
        super().__init__()
        self._job_name = job_name or "-"

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "job_name"):
            record.job_name = self._job_name
        return True


# Chatty third-party loggers capped at WARNING (urllib3 logs every retry).
QUIET_LOGGERS = ("urllib3", "requests", "requests_cache", "uvicorn.access")


def _stream_handler(stream: str, level: str, *extra_filters: str) -> dict[str, Any]:
    return {
        "class": "logging.StreamHandler",
        "formatter": "dronecast",
        "filters": ["ensure_tag", "job_name", *extra_filters],
        "level": level,
        "stream": f"ext://sys.{stream}",
    }


def build_logging_config(*, level: str | int = "INFO", job_name: Optional[str] = None) -> Mapping[str, Any]:
    """
    Build a dictConfig mapping: DEBUG/INFO to stdout, WARNING and above to stderr.

    `level` sets the root logger; `job_name` is shown as `%(job_name)s`.
    QUIET_LOGGERS stay at WARNING whatever the root level.
    """
    filters = {
        "ensure_tag": {"()": EnsureTagFilter},
        "job_name": {"()": JobNameFilter, "job_name": job_name},
        "stdout_max_info": {"()": MaxLevelFilter, "max_level": logging.INFO},
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": filters,
        "formatters": {"dronecast": {"format": LOG_FORMAT, "datefmt": LOG_DATE_FORMAT}},
        "handlers": {
            "stdout": _stream_handler("stdout", "DEBUG", "stdout_max_info"),
            "stderr": _stream_handler("stderr", "WARNING"),
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {"level": level, "handlers": ["stdout", "stderr"]},
    }


def setup_logging(*, level: str | int = "INFO", job_name: Optional[str] = None) -> None:
    """Configure process-wide logging once; repeated calls are no-ops."""
    global _CONFIGURED

    if _CONFIGURED:
        return

    logging.config.dictConfig(build_logging_config(level=level, job_name=job_name))
    _CONFIGURED = True


def get_tagged_logger(
    name: str,
    *,
    tag: Optional[str] = None,
) -> logging.LoggerAdapter:
    """
    Return a LoggerAdapter that always carries a `tag` field.

    `tag` defaults to the last segment of `name`, e.g.
    "dronecast.data_sources.open_meteo_client" -> "open_meteo_client".
    """
    base_logger = logging.getLogger(name)
    if tag is None:
        tag = name.split(".")[-1]
    return logging.LoggerAdapter(base_logger, {"tag": tag})


def mask_api_key(value: str | None) -> str:
    """Return an API key safe for logs: first 4 characters, rest masked."""
    if not value:
        return ""
    if len(value) <= 4:
        return "***"
    return f"{value[:4]}***"
