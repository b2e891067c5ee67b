# backend/app/core/logging_config.py
import logging

from backend.app.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure root logging once; later calls are no-ops (basicConfig)."""
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT)

    # SQL statements are controlled by DATABASE_ECHO, not LOG_LEVEL
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # httpx logs full request URLs at INFO, which include QR sign values
    logging.getLogger("httpx").setLevel(logging.WARNING)
