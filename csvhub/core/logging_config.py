"""
Console logging for the API process.

Modules log through ``logging.getLogger(__name__)``; ``configure_logging`` is
called once from ``csvhub.main`` with ``Settings.LOG_LEVEL``.
"""
import logging
from logging.config import dictConfig


LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def configure_logging(level: str) -> None:
    """Send every logger to one stderr handler; uvicorn's own loggers keep their handlers."""
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                },
            },
            "root": {"handlers": ["console"], "level": level},
            "loggers": {
                # SQL echo stays off unless DEBUG asks for it
                "sqlalchemy.engine": {"level": "INFO" if level == "DEBUG" else "WARNING"},
            },
        }
    )
    logging.getLogger(__name__).debug(f"Logging configured at {level}")
