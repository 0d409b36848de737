"""Logging setup shared by the service and the API layer.

Library modules log through ``logging.getLogger(__name__)``; the API layer
uses ``structlog`` key/value events. Both end up on the same stdlib handlers.
"""

import logging
import sys

import structlog

from .config import Settings


def configure_logging(settings: Settings) -> None:
    """Configure stdlib logging and structlog from settings."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format=settings.log_format,
        stream=sys.stdout,
        force=True,
    )

    # Quiet chatty third-party loggers
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("backoff").setLevel(logging.WARNING)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
