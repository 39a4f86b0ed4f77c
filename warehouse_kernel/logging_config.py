"""Structured JSON logging for the warehouse kernel.

Every record is one JSON line.  Request-scoped fields (who is acting, on
which document) live in ``LogContext`` and are stamped on every record
emitted while they are bound, so a single approval or receipt can be
followed through the kernel services without threading ids through every
log call.
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = (
    "correlation_id",
    "actor_id",
    "document_type",
    "document_id",
    "trace_id",
)

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"warehouse_log_{name}", default=None) for name in _CONTEXT_FIELDS
}


def _context_var(name: str) -> ContextVar[str | None]:
    try:
        return _context_vars[name]
    except KeyError:
        raise TypeError(
            f"Unknown log context field {name!r}; expected one of {_CONTEXT_FIELDS}"
        ) from None


class LogContext:
    """
    Request-scoped log fields, safe across threads and asyncio tasks.

    ``actor_id`` is the user performing an operation; ``document_type`` and
    ``document_id`` name the material request, purchase order, receipt or
    delivery order it acts on.  Values are stored as strings.
    """

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set context fields. ``None`` values leave the field untouched."""
        for name, value in fields.items():
            var = _context_var(name)
            if value is not None:
                var.set(str(value))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name in _CONTEXT_FIELDS
            if (value := _context_vars[name].get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _context_vars.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a block, restoring the previous values."""
        tokens = [
            (var, var.set(str(value)))
            for var, value in ((_context_var(name), value) for name, value in fields.items())
            if value is not None
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _to_json(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """Type, message and code of an exception plus its structured attributes.

    Kernel errors carry their offending ids and states as attributes
    (``material_request_item_id``, ``current_status`` ...); they are
    flattened with an ``exc_`` prefix.
    """
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for key, value in vars(exc).items():
        if not key.startswith("_") and key not in ("args", "code"):
            fields[f"exc_{key}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: base fields, context, extras, exception."""

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
            if key not in _STDLIB_KEYS and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "warehouse_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the warehouse_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``warehouse_kernel`` logger.

    Only the first call has an effect until ``reset_logging``.  ``level``
    accepts a number or a name such as ``"DEBUG"``.  Records do not
    propagate to the root logger.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level.upper() if isinstance(level, str) else level)
    kernel_logger.propagate = False

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(target)


def reset_logging() -> None:
    """Remove the handlers and allow ``configure_logging`` again. For tests."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
