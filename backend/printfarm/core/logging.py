"""
Structured logging configuration with request and station correlation.

Several production stations drive the workflow concurrently, so every log
event carries the request id and, when the caller sent one, the station that
issued the request.
"""

import logging
import sys
import time
from contextvars import ContextVar
from typing import Any, Optional
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor

from printfarm.core.config import Settings, get_settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
station_id_ctx: ContextVar[Optional[str]] = ContextVar("station_id", default=None)


def add_correlation_ids(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the request id and calling station from context to a log event."""
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    station_id = station_id_ctx.get()
    if station_id:
        event_dict["station_id"] = station_id
    return event_dict


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structlog on top of the standard library root logger.

    Development gets the colored console renderer, every other environment
    emits one JSON object per line.

    Args:
        settings: Settings to configure from, defaults to cached settings
    """
    settings = settings or get_settings()

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_ids,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.is_development:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    # Engine echo and driver chatter stay quiet unless explicitly lowered
    for noisy in ("sqlalchemy.engine", "aiosqlite", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set request ID in context for correlation.

    Args:
        request_id: Optional request ID, generates UUID if not provided

    Returns:
        Request ID that was set
    """
    if request_id is None:
        request_id = str(uuid4())
    request_id_ctx.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get current request ID from context, empty string if unset."""
    return request_id_ctx.get()


def set_station_id(station_id: Optional[str]) -> None:
    """Set the calling production station, e.g. "printfarm-2" or "packing"."""
    station_id_ctx.set(station_id)


def get_station_id() -> Optional[str]:
    return station_id_ctx.get()


def clear_context() -> None:
    """Reset correlation context at the end of a request."""
    request_id_ctx.set("")
    station_id_ctx.set(None)


class PerformanceLogger:
    """
    Context manager that logs how long a block took.

    Completion is logged at info level, or warning once it exceeds
    ``slow_threshold_ms``; a block that raises is logged as failed.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation: str,
        slow_threshold_ms: float = 500,
        **context: Any,
    ):
        self.logger = logger
        self.operation = operation
        self.slow_threshold_ms = slow_threshold_ms
        self.context = context
        self.start_time: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is None:
            return

        duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)

        if exc_type is not None:
            self.logger.error(
                "Operation failed",
                operation=self.operation,
                duration_ms=duration_ms,
                error_type=exc_type.__name__,
                **self.context,
            )
            return

        log_method = (
            self.logger.warning
            if duration_ms > self.slow_threshold_ms
            else self.logger.info
        )
        log_method(
            "Operation completed",
            operation=self.operation,
            duration_ms=duration_ms,
            **self.context,
        )


def log_performance(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    **context: Any,
) -> PerformanceLogger:
    """Time a block of work, e.g. ``with log_performance(logger, "ship_order"):``."""
    return PerformanceLogger(logger, operation, **context)
