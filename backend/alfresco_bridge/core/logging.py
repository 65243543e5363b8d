import logging
from logging.config import dictConfig


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once at startup; keeps uvicorn's own loggers."""
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {
                    "format": "%(asctime)s %(levelname)-5s [pid:%(process)d] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
            },
            "handlers": {
                "stream": {
                    "class": "logging.StreamHandler",
                    "level": level.upper(),
                    "formatter": "plain",
                }
            },
            "root": {"level": level.upper(), "handlers": ["stream"]},
        }
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
