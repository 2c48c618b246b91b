"""Process-wide logging setup."""

import logging

from app.config import Settings

LOG_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(funcName)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

ROOT_LOGGER_NAME = "app"


def configure_logging(settings: Settings) -> logging.Logger:
    """Attach a console handler to the application logger once."""

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(settings.log_level.upper())

    if not any(getattr(handler, "_backoffice", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._backoffice = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    # Avoid duplicate lines when uvicorn also configures the root logger.
    logger.propagate = False
    return logger
