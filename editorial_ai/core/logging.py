"""structlog setup for the suggestion service.

One processor chain serves both structlog loggers and stdlib loggers
(uvicorn, redis, asyncio), so every line comes out in the same format: JSON
in production, ConsoleRenderer in debug. Each entry carries the service name
and, inside a request, the X-Request-ID correlation id.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

SERVICE_NAME = "editorial-ai"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "redis", "asyncio")


def add_correlation_id(logger, method, event_dict):
    """Inject correlation_id from asgi-correlation-id context into every log entry."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def add_service_name(logger, method, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def shared_processors() -> list:
    """Processors applied to structlog and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_name,
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def _dict_config(log_level: str, renderer, pre_chain: list) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                "foreign_pre_chain": pre_chain,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": log_level.upper()},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    }


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structlog and the stdlib root logger.

    Must run before anything calls structlog.get_logger(): the processor
    chain is cached on first use.

    Args:
        log_level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
        json_logs: JSON lines when True, ConsoleRenderer otherwise
    """
    processors = shared_processors()
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    logging.config.dictConfig(_dict_config(log_level, renderer, processors))

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
