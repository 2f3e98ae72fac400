"""Structured logging configuration.

Every line is one JSON object. Workflow sessions log through a `SessionLogger`,
which stamps the thread and user a line belongs to, so one session can be
followed across its suspend points even when many run concurrently.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import IO, Any

# Keys lifted out of ``extra`` to the top level of each line.
SESSION_KEYS = ("thread_id", "user_id")

# Third-party loggers that only matter at INFO and above.
QUIET_LOGGERS = ("urllib3", "requests")

_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, None, None, None).__dict__) | {
    "message",
    "asctime",
    "taskName",
}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        line: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in SESSION_KEYS:
            if key in fields:
                line[key] = fields.pop(key)
        if fields:
            line["extra"] = fields
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


class SessionLogger(logging.LoggerAdapter):
    """Adds a session's correlation fields to every record it emits.

    Per-call ``extra`` values are kept alongside the bound ones; on a clash
    the per-call value wins.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


def session_logger(logger: logging.Logger, *, thread_id: int, user_id: int) -> SessionLogger:
    return SessionLogger(logger, {"thread_id": thread_id, "user_id": user_id})


def configure_logging(level: str, *, stream: IO[str] | None = None) -> logging.Handler:
    """Route all logging through one JSON handler at `level`.

    Calling it again replaces the handler instead of adding a second one.
    """

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.INFO))
    return handler
