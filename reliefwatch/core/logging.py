"""
ReliefWatch - Logging Configuration
Stdout logging for the service and per-request access lines for the API.
"""

import logging
import sys
from functools import lru_cache
from typing import Dict, Optional, TextIO

from reliefwatch.core.config import settings

APP_LOGGER = "reliefwatch"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

# Third-party loggers kept at WARNING unless DEBUG is requested
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "google", "firebase_admin")

_configured = False


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Configure stdout logging once and return the application logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_string: Custom format string for log messages
        stream: Output stream (default: stdout)

    Returns:
        The "reliefwatch" logger
    """
    global _configured

    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logger = logging.getLogger(APP_LOGGER)
    logger.setLevel(log_level)

    if _configured:
        return logger

    logging.basicConfig(
        level=log_level,
        format=format_string or LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(stream or sys.stdout)],
    )

    quiet_level = logging.DEBUG if log_level == logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    # SQL echo is controlled by DB_ECHO, not by the application level
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.db_echo else logging.WARNING
    )

    _configured = True
    logger.debug(f"Logging configured at {logging.getLevelName(log_level)}")
    return logger


@lru_cache()
def get_logger(name: str = APP_LOGGER) -> logging.Logger:
    """
    Get a logger inside the application namespace.

    Names from outside the package are nested under "reliefwatch" so a
    single level setting covers them.
    """
    if name != APP_LOGGER and not name.startswith(APP_LOGGER + "."):
        name = f"{APP_LOGGER}.{name.strip('_')}"
    return logging.getLogger(name)


def request_log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def log_request(
    logger: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    extra: Optional[Dict[str, str]] = None
) -> None:
    """Write one access line: method, path, status and duration."""
    suffix = ""
    if extra:
        suffix = " " + " ".join(f"{k}={v}" for k, v in sorted(extra.items()))
    logger.log(
        request_log_level(status_code),
        f"{method} {path} -> {status_code} ({duration_ms:.1f} ms){suffix}",
    )
