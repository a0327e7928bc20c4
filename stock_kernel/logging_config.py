"""
Structured JSON logging for the stock kernel.

Every record leaving the ``stock_kernel`` logger tree is one JSON object per
line::

    {"ts": "...", "level": "INFO", "logger": "stock_kernel.engines.stock_check",
     "message": "stock_check_completed", "document_id": "CHK-...", "matches": 3}

The envelope (``ts``, ``level``, ``logger``, ``message``) is always present.
Request-scoped fields bound through ``LogContext`` come next, then the
``extra=`` payload of the call.  Exceptions add ``exc_type``,
``exc_message``, the kernel error ``code`` and every public attribute of
the exception as ``exc_<name>``.
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

_LOGGER_PREFIX = "stock_kernel"

# ---------------------------------------------------------------------------
# Request-scoped context
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "document_id",
    "actor_id",
    "warehouse_id",
    "trace_id",
)

_context: ContextVar[Mapping[str, str]] = ContextVar("stock_log_context", default={})


class LogContext:
    """
    Fields attached to every log record of the current thread / task.

    Backed by a single ``ContextVar`` holding an immutable snapshot, so
    asyncio tasks and threads each see their own values.  Only the names in
    ``FIELDS`` are accepted.
    """

    FIELDS = _CONTEXT_FIELDS

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        document_id: str | None = None,
        actor_id: str | None = None,
        warehouse_id: str | None = None,
        trace_id: str | None = None,
    ) -> None:
        """Update the given fields; ``None`` leaves a field unchanged."""
        cls._merge({
            "correlation_id": correlation_id,
            "document_id": document_id,
            "actor_id": actor_id,
            "warehouse_id": warehouse_id,
            "trace_id": trace_id,
        })

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """
        Set fields for the duration of a ``with`` block.

        Unknown names and ``None`` values are ignored.  The previous
        snapshot is restored on exit, including fields that were unset.
        """
        token = _context.set(cls._updated(fields))
        try:
            yield cls
        finally:
            _context.reset(token)

    @classmethod
    def _merge(cls, fields: Mapping[str, str | None]) -> None:
        _context.set(cls._updated(fields))

    @staticmethod
    def _updated(fields: Mapping[str, str | None]) -> Mapping[str, str]:
        current = dict(_context.get())
        for name, value in fields.items():
            if value is not None and name in _CONTEXT_FIELDS:
                current[name] = str(value)
        return current


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RESERVED: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _to_json(obj: Any) -> Any:
    """``default=`` hook: quantities, dates, enums and sets; anything else as ``str``."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if name.startswith("_") or name in ("args", "code"):
            continue
        fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; see the module docstring for the layout."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_context.get())

        for key, value in vars(record).items():
            if key not in _RESERVED and key not in payload:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under ``stock_kernel``, e.g. ``get_logger("engines.disposal")``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_installed: logging.Handler | None = None
_configure_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``stock_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.  Records do
    not propagate to the root logger, so host applications that configure
    their own logging never see them twice.

    Raises:
        ValueError: ``level`` is not a known level name.  Nothing is
            configured, so a later call with a valid level still succeeds.
    """
    global _installed
    if isinstance(level, str):
        names = logging.getLevelNamesMapping()
        if level.upper() not in names:
            raise ValueError(f"Unknown log level: {level!r}")
        level = names[level.upper()]

    with _configure_lock:
        if _installed is not None:
            return

        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())

        kernel_logger = logging.getLogger(_LOGGER_PREFIX)
        kernel_logger.setLevel(level)
        kernel_logger.propagate = False
        kernel_logger.addHandler(target)
        _installed = target


def reset_logging() -> None:
    """Remove the installed handler and allow ``configure_logging`` again. Tests only."""
    global _installed
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    with _configure_lock:
        if _installed is not None:
            kernel_logger.removeHandler(_installed)
            _installed.close()
        _installed = None
    kernel_logger.setLevel(logging.WARNING)
