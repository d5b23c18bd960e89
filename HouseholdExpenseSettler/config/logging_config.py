"""Logging setup for the household expense settler."""

import logging

from config.settings import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """
    Configure the "household_settler" logger hierarchy once.

    Args:
        level: Level name; defaults to SETTLER_LOG_LEVEL.
    """
    level = (level or get_settings()["log_level"]).upper()
    logger = logging.getLogger("household_settler")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
