"""Logging setup shared by the API process and scripts."""

import logging

from vast_finance.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging() -> None:
    """Configure root logging from settings."""

    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
