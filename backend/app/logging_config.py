"""Logging configuration for the Kreasi commerce ledger service."""
import logging
import sys
from typing import Optional

from app.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("sqlalchemy", "apscheduler", "slowapi", "aiosqlite")


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure stdout logging for the service.

    Args:
        level: Root level name. Defaults to ``settings.LOG_LEVEL``.
    """
    log_level = (level or settings.LOG_LEVEL).upper()

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # Uvicorn installs its own handlers; align levels only
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # DATABASE_ECHO already routes statements through sqlalchemy.engine
    if settings.DATABASE_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
