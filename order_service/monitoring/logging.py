"""
Logging for the API process and the payment worker.

structlog renders every event as one JSON line. Request and message
identifiers are bound with ``structlog.contextvars`` by the HTTP middleware and
the Kafka worker, and are merged into each event here.
"""
import logging
import sys
from typing import Any, Callable, Dict, Optional

import structlog
from pythonjsonlogger import jsonlogger

from order_service import __version__
from order_service.config import Settings, get_settings

EventDict = Dict[str, Any]

# Client libraries that log every request at INFO
_CHATTY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def service_context(settings: Settings) -> Callable[[Any, str, EventDict], EventDict]:
    """Build a processor stamping events with the service identity."""
    identity = {
        "service": settings.app_name,
        "env": settings.app_env,
        "version": __version__,
    }

    def add_service_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in identity.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_context


def _stdout_json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "@timestamp", "levelname": "level", "name": "logger"},
        )
    )
    return handler


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Route structlog and stdlib logging to JSON on stdout.

    Args:
        settings: Settings to configure from (uses config if not provided)
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            service_context(settings),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers = [_stdout_json_handler()]
    root.setLevel(level)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database_echo else logging.WARNING
    )

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_level=settings.log_level,
        order_store_backend=settings.order_store_backend,
    )
