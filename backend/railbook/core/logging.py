"""
Structured logging for the reservation service.

Events are snake_case names with the identifiers involved bound as
key/value pairs, e.g.

    reservation_allocated reservation_id=12 tier=CNF seat_category=lower

Everything goes through the stdlib root logger, so uvicorn, SQLAlchemy and
alembic output share one formatter with the railbook events.
"""

import enum
import logging
import sys

import structlog

from railbook.core.config import Settings, get_settings

_configured = False

# Third-party loggers kept at WARNING regardless of LOG_LEVEL
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def _enum_values(logger, method_name, event_dict):
    """Log Tier/SeatCategory/Gender as their wire value, not their repr."""
    for key, value in event_dict.items():
        if isinstance(value, enum.Enum):
            event_dict[key] = value.value
    return event_dict


def _render_chain(settings: Settings) -> list:
    fmt = settings.LOG_FORMAT
    if fmt == "auto":
        fmt = "json" if settings.ENVIRONMENT == "production" else "console"
    if fmt == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    # ConsoleRenderer formats exc_info itself
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def setup_logging(settings: Settings | None = None) -> None:
    global _configured
    if _configured:
        return
    settings = settings or get_settings()

    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _enum_values,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_render_chain(settings),
            ],
        )
    )

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
