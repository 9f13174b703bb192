"""structlog setup for reviewflow.

Every event carries the service name, the request's correlation id and any
ids bound by the services (``account_id``, ``review_id``). Credit amounts,
ids and timestamps are rendered as strings so ledger lines stay exact in JSON.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SERVICE_NAME = "reviewflow"

SECRET_KEYS = frozenset({"api_key", "admin_token", "authorization", "password"})
MASK = "***"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


def add_correlation_id(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    correlation_id = _correlation_id.get()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def stringify_ledger_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Render Decimal, UUID and datetime values as plain strings."""
    for key, value in event_dict.items():
        if isinstance(value, (Decimal, UUID)):
            event_dict[key] = str(value)
        elif isinstance(value, datetime):
            event_dict[key] = value.isoformat()
    return event_dict


def mask_secrets(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = MASK
    return event_dict


def _service_info(service_name: str, version: str) -> Processor:
    def add_service_info(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict["service"] = service_name
        event_dict["version"] = version
        return event_dict

    return add_service_info


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = SERVICE_NAME,
    version: str = "0.1.0",
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Logging level name.
        json_format: JSON lines when True, coloured console output otherwise.
        service_name: Value of the ``service`` field on every event.
        version: Value of the ``version`` field on every event.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_correlation_id,
        _service_info(service_name, version),
        mask_secrets,
        stringify_ledger_values,
    ]

    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
        force=True,
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """Bind ids for the duration of a block.

    Usage:
        with LogContext(account_id=str(account_id), review_id=str(review_id)):
            await orchestrator.generate(...)
    """

    def __init__(self, **values: Any):
        self._values = values

    def __enter__(self) -> LogContext:
        structlog.contextvars.bind_contextvars(**self._values)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self._values)


def bind_context(**values: Any) -> None:
    structlog.contextvars.bind_contextvars(**values)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)
