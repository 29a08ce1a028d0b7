"""
Structured JSON logging for the back office.

Every record under the ``backoffice`` logger namespace is written as one
JSON object per line: a fixed envelope (ts, level, logger, message), the
request-scoped fields held in ``LogContext``, the record's ``extra`` mapping,
and, when ``exc_info`` is set, the exception type, message, ``code`` and
public attributes.

Usage::

    logger = get_logger("modules.banking.service")
    with LogContext.bind(company_id=company_id, bank_account_id=account_id):
        logger.info("reconciliation_started", extra={"candidate_count": 12})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "backoffice"

_CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "company_id",
    "actor_id",
    "bank_account_id",
    "reconciliation_id",
)

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"backoffice_log_{name}", default=None)
    for name in _CONTEXT_FIELDS
}


def _context_var(name: str) -> ContextVar[str | None]:
    try:
        return _CONTEXT_VARS[name]
    except KeyError:
        raise TypeError(f"unknown log context field: {name!r}") from None


class LogContext:
    """
    Request-scoped log fields (company, actor, bank account, reconciliation).

    Values live in ``ContextVar``s, so they follow the current thread or
    asyncio task.  All values are stored as strings.
    """

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set context fields.  None values leave the field unchanged."""
        for name, value in fields.items():
            if value is not None:
                _context_var(name).set(str(value))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Fields that currently have a value."""
        return {
            name: value
            for name, var in _CONTEXT_VARS.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @classmethod
    def bind(cls, **fields: Any) -> "_BoundContext":
        """Context manager: set ``fields`` on entry, restore prior values on exit."""
        return _BoundContext(fields)


class _BoundContext:
    def __init__(self, fields: dict[str, Any]):
        self._fields = fields
        self._tokens: list[tuple[ContextVar[str | None], Token]] = []

    def __enter__(self) -> type[LogContext]:
        for name, value in self._fields.items():
            if value is None:
                continue
            var = _context_var(name)
            self._tokens.append((var, var.set(str(value))))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


# Attributes every LogRecord carries; anything else on a record came from ``extra``.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # BackofficeError subclasses keep their structured arguments as attributes.
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger ``backoffice.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_installed = False
_install_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``backoffice`` logger.

    Only the first call has an effect until ``reset_logging()``.  ``level``
    accepts a level name, as read from ``LoggingConfig.level``.
    """
    global _installed
    with _install_lock:
        if _installed:
            return
        _installed = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False
    root.addHandler(handler)


def reset_logging() -> None:
    """Remove handlers and forget configuration. FOR TESTING ONLY."""
    global _installed
    with _install_lock:
        _installed = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
