"""structlog setup shared by the worker and any embedding process."""

import logging

import structlog

from phare.config import Settings

# Loggers that drown the job events at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "arq.jobs", "asyncio")


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "console":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer(ensure_ascii=False)


def _app_context(settings: Settings) -> structlog.types.Processor:
    """Stamp every event with the environment and the regional timezone."""
    static = {"app": "phare", "env": settings.environment, "tz": settings.timezone}

    def add_context(logger: object, method_name: str, event_dict: dict) -> dict:  # type: ignore[type-arg]
        for key, value in static.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_context


def setup_logging(settings: Settings) -> None:
    """Configure structlog for the worker: JSON lines by default, console when asked."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _app_context(settings),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            _renderer(settings.log_format),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s")
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
