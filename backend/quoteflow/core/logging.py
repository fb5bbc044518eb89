"""Structured JSON logging configuration."""
import logging
import sys
from pythonjsonlogger import jsonlogger
from quoteflow.core.config import settings


def setup_logging() -> None:
    """Configure JSON structured logging for production, human-readable for dev."""
    if settings.APP_ENV == "production":
        handler = logging.StreamHandler(sys.stdout)
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
        handler.setFormatter(formatter)
        logging.root.handlers = [handler]
        logging.root.setLevel(settings.LOG_LEVEL)
    else:
        logging.basicConfig(
            level=settings.LOG_LEVEL,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )
    # Approval transitions are logged at INFO; keep SQL echo out of them.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
