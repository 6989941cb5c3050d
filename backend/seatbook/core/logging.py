"""
Structured logging for the booking service.

Every record goes through structlog, including records from stdlib loggers
(uvicorn, SQLAlchemy), so one formatter renders both: JSON in production,
coloured console lines elsewhere. Records carry the service name and the
active lock backend, so lock and commit events from instances running
different backends can be told apart.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from seatbook.core.config import Settings, get_settings

# Polled constantly by load balancers and scrapers
QUIET_PATHS = frozenset({"/health", "/metrics"})

# Third-party loggers held above INFO unless DEBUG is on
NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "sse_starlette": logging.WARNING,
    "redis": logging.WARNING,
}


def _service_context(settings: Settings) -> Processor:
    def add_service_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", settings.APP_NAME)
        event_dict.setdefault("lock_backend", settings.LOCK_BACKEND)
        return event_dict

    return add_service_context


def _drop_quiet_requests(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    if (
        event_dict.get("event") == "request_completed"
        and event_dict.get("path") in QUIET_PATHS
        and event_dict.get("status_code", 200) < 400
    ):
        raise structlog.DropEvent
    return event_dict


def _foreign_processors(settings: Settings) -> list[Processor]:
    """Applied to records from stdlib loggers before rendering."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_context(settings),
    ]


def _structlog_processors(settings: Settings) -> list[Processor]:
    processors = _foreign_processors(settings)
    if not settings.DEBUG:
        processors.insert(1, _drop_quiet_requests)
    processors += [
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    return processors


def _renderer(settings: Settings) -> Processor:
    if settings.ENVIRONMENT == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Route structlog and stdlib logging through a single stdout handler."""
    settings = settings or get_settings()
    renderer = _renderer(settings)

    structlog.configure(
        processors=_structlog_processors(settings),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    final = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if isinstance(renderer, structlog.processors.JSONRenderer):
        final.append(structlog.processors.format_exc_info)
    final.append(renderer)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(foreign_pre_chain=_foreign_processors(settings), processors=final)
    )

    root = logging.getLogger()
    root.handlers = [handler]
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    root.setLevel(logging.DEBUG if settings.DEBUG else level)

    for name, quiet_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(logging.DEBUG if settings.DEBUG else quiet_level)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
