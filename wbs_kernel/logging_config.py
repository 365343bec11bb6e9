"""
Structured JSON logging for the WBS engine.

Each record is written as one JSON line: timestamp, level, logger name and
event message, then the fields bound on ``LogContext`` (the project being
edited and its open measurement number), then the ``extra`` payload of the
logging call. Kernel exceptions attached to a record contribute their
``code`` and their structured attributes, prefixed with ``exc_``.

Usage:
    configure_logging(level=logging.DEBUG)
    logger = get_logger("engines.rollover")

    with LogContext.bind(project_id=project.id, measurement_number=2):
        logger.info("measurement_closed", extra={"period_total": total})
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
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from typing import Any, Iterator, TextIO

_LOGGER_PREFIX = "wbs_kernel"


# ---------------------------------------------------------------------------
# Project context
# ---------------------------------------------------------------------------

_project_id: ContextVar[str | None] = ContextVar("wbs_project_id", default=None)
_measurement_number: ContextVar[str | None] = ContextVar(
    "wbs_measurement_number", default=None
)

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    "project_id": _project_id,
    "measurement_number": _measurement_number,
}


class LogContext:
    """
    Project-scoped fields merged into every record.

    Backed by context variables, so concurrent threads or tasks working on
    different projects never see each other's values.
    """

    @staticmethod
    def set(
        *,
        project_id: str | None = None,
        measurement_number: int | str | None = None,
    ) -> None:
        """Set the given fields; None leaves a field as it is."""
        for name, value in (
            ("project_id", project_id),
            ("measurement_number", measurement_number),
        ):
            if value is not None:
                _CONTEXT_VARS[name].set(str(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: value
            for name, var in _CONTEXT_VARS.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(
        *,
        project_id: str | None = None,
        measurement_number: int | str | None = None,
    ) -> Iterator[None]:
        """Set fields for the duration of a block, restoring them on exit."""
        tokens = [
            (_CONTEXT_VARS[name], _CONTEXT_VARS[name].set(str(value)))
            for name, value in (
                ("project_id", project_id),
                ("measurement_number", measurement_number),
            )
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    # Decimal keeps its exact string form ("480.00", never 480.0)
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            code = getattr(exc, "code", None)
            if code is not None:
                payload["exc_code"] = code
            for key, val in vars(exc).items():
                if not key.startswith("_"):
                    payload[f"exc_{key}"] = val
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Logger factory and setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``wbs_kernel`` namespace, e.g. ``wbs_kernel.engines.structure``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``wbs_kernel`` logger hierarchy.

    Idempotent: only the first call configures; later calls are ignored
    until ``reset_logging``.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    package_logger = logging.getLogger(_LOGGER_PREFIX)
    package_logger.setLevel(level)
    package_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    package_logger.addHandler(h)


def reset_logging() -> None:
    """Drop handlers and allow ``configure_logging`` again. For tests."""
    global _configured
    with _lock:
        _configured = False
    package_logger = logging.getLogger(_LOGGER_PREFIX)
    package_logger.handlers.clear()
    package_logger.setLevel(logging.WARNING)
