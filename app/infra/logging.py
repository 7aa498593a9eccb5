"""Structured logging configuration."""

import logging
import sys
from pythonjsonlogger import jsonlogger
from app.infra.config import config

SERVICE_NAME = "maximo-mcp"


class ServiceContextFilter(logging.Filter):
    """Stamp every record with the service name and environment."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = SERVICE_NAME
        record.env = config.APP_ENV
        return True


def setup_logging(debug: bool = config.DEBUG) -> logging.Logger:
    """
    Configure JSON logging on the "app" logger.

    Module loggers (logging.getLogger(__name__) under app.*) inherit the
    handler. Outbound HTTP client chatter is kept at WARNING since the
    Maximo adapters log each exchange themselves.
    """
    logger = logging.getLogger("app")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.handlers = []

    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(service)s %(env)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ServiceContextFilter())
    logger.addHandler(console_handler)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)

    return logger


# Initialize logging
app_logger = setup_logging()
