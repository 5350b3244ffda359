"""Structured logging for the booking service (structlog + request correlation)."""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from physiobook.settings import Settings

__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "correlation_id_var",
    "new_correlation_id",
]

# Request-scoped correlation id, set by the API middleware
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def new_correlation_id() -> str:
    """Generate a correlation ID and bind it to the current context."""
    cid = uuid.uuid4().hex
    correlation_id_var.set(cid)
    return cid


def _add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    cid = correlation_id_var.get("")
    if cid:
        event_dict.setdefault("correlation_id", cid)
    return event_dict


def _round_floats(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Keep scores readable in log lines (4 decimals)."""
    for key, value in event_dict.items():
        if isinstance(value, float):
            event_dict[key] = round(value, 4)
    return event_dict


def configure_logging(*, json_output: bool = True, level: str = "INFO") -> None:
    """Configure structlog processors and level filtering.

    Args:
        json_output: True for JSON lines, False for the coloured dev console.
        level: Minimum level name, e.g. ``"DEBUG"``.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_correlation_id,
        _round_floats,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    processors.append(
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping()[level.upper()]
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings: Settings) -> None:
    configure_logging(json_output=settings.log_json, level=settings.log_level)


def get_logger(**kwargs: Any) -> structlog.BoundLogger:
    """Get a bound logger with optional initial context."""
    return structlog.get_logger(**kwargs)  # type: ignore[no-any-return]
