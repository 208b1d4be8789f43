"""Structured logging configuration with structlog.

structlog loggers (middleware) and stdlib loggers (services, SQLAlchemy)
share one handler, so every line carries the request context bound by
``RequestContextMiddleware`` plus the service identity.
"""

import logging

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from tradeya.config import Settings

SERVICE_NAME = "tradeya-challenges"
HANDLER_NAME = "tradeya"


def service_context(settings: Settings) -> Processor:
    """Processor stamping service, environment and version onto each event."""

    def _add(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", settings.environment)
        event_dict.setdefault("version", settings.app_version)
        return event_dict

    return _add


def setup_logging(settings: Settings) -> None:
    """Configure structlog for JSON or console output and route stdlib logging through it.

    Safe to call repeatedly (one app per test): the previous handler is replaced.
    """
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        service_context(settings),
    ]

    if settings.log_format == "json":
        final: list[Processor] = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        final = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final],
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger("tradeya").setLevel(level)
    # SQL echo only in debug
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.debug else logging.WARNING)
