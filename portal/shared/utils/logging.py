"""structlog setup and per-request log context for the portal."""

import logging
import os
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog

SERVICE_NAME = "challenge-portal"


def _renderer(json_format: bool) -> list[structlog.types.Processor]:
    if json_format:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(level: str | None = None, json_format: bool | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    ``level`` and ``json_format`` fall back to the ``LOG_LEVEL`` and
    ``LOG_FORMAT`` environment variables (``json`` or ``console``).
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if json_format is None:
        json_format = os.getenv("LOG_FORMAT", "json").lower() == "json"
    numeric_level = logging.getLevelName(level)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            *_renderer(json_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(request_id: str, actor_id: str | None = None, **kwargs: Any) -> None:
    """Attach ``request_id`` (and the acting user, if known) to later log entries."""
    context: dict[str, Any] = {"request_id": request_id, **kwargs}
    if actor_id:
        context["actor_id"] = actor_id
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    structlog.contextvars.unbind_contextvars("request_id", "actor_id")


@contextmanager
def request_context(request_id: str, actor_id: str | None = None) -> Iterator[None]:
    bind_request_context(request_id, actor_id)
    try:
        yield
    finally:
        clear_request_context()
