import logging
from typing import Optional

from app.settings import settings


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None):
    logging.basicConfig(
        level=level or settings.LOG_LEVEL,
        format=fmt or settings.LOG_FORMAT,
    )
