"""
Structured logging for the claims platform.

Every entry carries an ISO timestamp, level, logger name and the bound
request/user context. Credentials never reach the output: password,
session token and API key fields are masked before rendering.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from claims_backend.config.config import Settings, get_settings

SENSITIVE_KEYS = frozenset({"password", "session_token", "ai_api_key", "authorization"})
REDACTED = "***REDACTED***"

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "multipart")


def redact_sensitive_fields(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential values, including inside one level of nested dicts."""
    for key, value in event_dict.items():
        if key.lower() in SENSITIVE_KEYS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                k: (REDACTED if k.lower() in SENSITIVE_KEYS and v else v)
                for k, v in value.items()
            }
    return event_dict


def _renderer(settings: Settings) -> Processor:
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure structlog and route standard library logging through it.

    JSON output is meant for aggregation in deployed environments; the
    console renderer is for local development.
    """
    settings = settings or get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_sensitive_fields,
    ]
    if settings.log_format == "json":
        shared_processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=_renderer(settings),
        foreign_pre_chain=shared_processors,
    ))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(settings.log_level.upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, typically for ``__name__``."""
    return structlog.get_logger(name)


def log_request_context(request_id: str, method: str, path: str, **extra: Any) -> None:
    """
    Start a fresh log context for an incoming request.

    Args:
        request_id: Identifier echoed back in the ``X-Request-ID`` header.
        method: HTTP method.
        path: Request path.
        **extra: Additional context fields.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        http_method=method,
        http_path=path,
        **extra,
    )


def bind_user_context(user_id: str | None, role: str | None) -> None:
    """Attach the authenticated user to the remaining entries of the request."""
    structlog.contextvars.bind_contextvars(user_id=user_id, user_role=role)
