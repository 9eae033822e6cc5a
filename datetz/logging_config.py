"""
Module: datetz.logging_config
Responsibility: JSON log lines for DateTz cast events.  Every line carries
    the field and operation in scope (``LogContext.bind``), so a rejected
    write or a read fallback can be traced back to its column.
Architecture position: Ambient.  Imported by config.py, db/field.py and
    db/listeners.py; imports nothing else from datetz.

Event names emitted by the package:

  Event                          | Level   | Extra fields
  -------------------------------|---------|---------------------------------
  datetz_cast_rejected           | INFO    | input_kind, reason
  datetz_read_fallback           | WARNING | stored_value, reason
  settings_loaded                | DEBUG   | source, default_timezone, read_as
  datetz_set_listener_registered | DEBUG   | model, field_name

Nothing is printed until an application calls configure_logging(); until
then records propagate to whatever the host application configured.
"""

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, Iterator

_ROOT = "datetz"

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


class LogContext:
    """Cast scope (model, field_name, operation) attached to every log line."""

    _vars: dict[str, ContextVar[str | None]] = {
        "model": ContextVar("datetz_model", default=None),
        "field_name": ContextVar("datetz_field_name", default=None),
        "operation": ContextVar("datetz_operation", default=None),
    }

    @classmethod
    def current(cls) -> dict[str, str]:
        return {name: var.get() for name, var in cls._vars.items() if var.get() is not None}

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[None]:
        """
        Scope fields for the duration of the block; None values are skipped.

        Raises:
            TypeError: On a field name other than model/field_name/operation.
        """
        unknown = set(fields) - set(cls._vars)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
        tokens = [
            (cls._vars[name], cls._vars[name].set(value))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


def _json_default(obj: Any) -> Any:
    to_record = getattr(obj, "to_record", None)
    if callable(to_record):
        return to_record()
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    return repr(obj)


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line.

    Keys: ts, level, logger, message, the bound LogContext fields, any
    ``extra`` fields, and for exceptions exc_type / exc_message / exc_code
    plus the exception's public attributes as ``exc_<name>``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.current(),
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
            for name, val in vars(exc).items():
                if not name.startswith("_"):
                    payload[f"exc_{name}"] = val

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``datetz`` namespace."""
    return logging.getLogger(f"{_ROOT}.{name}")


def configure_logging(level: int = logging.INFO, handler: logging.Handler | None = None) -> logging.Handler:
    """
    Send datetz events to ``handler`` (default: stderr) as JSON lines.

    Calling again replaces the handler installed by the previous call.
    """
    root = logging.getLogger(_ROOT)
    reset_logging()
    handler = handler or logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    handler._datetz_installed = True
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    return handler


def reset_logging() -> None:
    """Remove the handler installed by configure_logging()."""
    root = logging.getLogger(_ROOT)
    for handler in list(root.handlers):
        if getattr(handler, "_datetz_installed", False):
            root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
    root.propagate = True
