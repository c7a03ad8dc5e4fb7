"""
erp_kernel.logging_config -- JSON log lines for every ERP component.

Responsibility:
    One logger hierarchy (``erp_kernel.*``) whose records are rendered as
    single-line JSON, enriched with the request context of the document
    being written (correlation id, actor, document type and id).

Invariants enforced:
    - Configuration happens once per process; later calls are no-ops
      until ``reset_logging``.
    - Context fields live in a ContextVar, so concurrent requests on
      threads or tasks never see each other's fields.

Audit relevance:
    - Typed ``ErpKernelError`` failures carry their ``code`` and structured
      attributes into the log line (``exc_code``, ``exc_<attr>``), so a
      rejected stock issue can be traced without parsing messages.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, TextIO

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

ROOT_LOGGER_NAME = "erp_kernel"

_CONTEXT_FIELDS = ("correlation_id", "actor_id", "document_type", "document_id", "trace_id")
_context: ContextVar[dict[str, str]] = ContextVar("erp_log_context", default={})


class LogContext:
    """
    Request-scoped fields added to every log line.

    Contract:
        Only the names in ``_CONTEXT_FIELDS`` are accepted; None values are
        ignored.  ``bind`` restores the previous fields on exit, ``set``
        does not.
    """

    @staticmethod
    def _merged(fields: dict[str, Any]) -> dict[str, str]:
        unknown = set(fields) - set(_CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"unknown log context field(s): {sorted(unknown)}")
        merged = dict(_context.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        return merged

    @classmethod
    def set(cls, **fields: Any) -> None:
        _context.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type[LogContext]]:
        token = _context.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _context.reset(token)


# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


class StructuredFormatter(logging.Formatter):
    """Render a record as ``{"ts", "level", "logger", "message", ...}``."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                line.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            line.update(self._exception_fields(record.exc_info[1]))
            line["traceback"] = self.formatException(record.exc_info)

        return json.dumps(line, default=_to_json)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        for attr, value in vars(exc).items():
            if attr != "code" and not attr.startswith("_"):
                fields[f"exc_{attr}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger ``erp_kernel.<name>``, e.g. ``get_logger("services.inventory_ledger")``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_config_lock = threading.Lock()
_is_configured = False


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the ``erp_kernel`` logger.  Idempotent."""
    global _is_configured
    with _config_lock:
        if _is_configured:
            return
        _is_configured = True

        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(level)
        root.propagate = False
        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())
        root.addHandler(target)


def reset_logging() -> None:
    """Drop the handlers installed by ``configure_logging``.  Tests only."""
    global _is_configured
    with _config_lock:
        _is_configured = False
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.handlers.clear()
        root.setLevel(logging.WARNING)
