"""JSON logging for the Dinas Sosial bot.

Every record is one JSON line. Structured fields travel under ``context``,
either through ``extra={"context": {...}}`` or a :func:`for_sender` adapter.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

NAMESPACE = "dinsos"
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{NAMESPACE}.{name}")


class SenderLoggerAdapter(logging.LoggerAdapter):
    """Adds the sender to ``context``; a per-call ``context=`` kwarg is merged in."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = {**self.extra, **kwargs.pop("context", {})}
        kwargs["extra"] = {"context": context}
        return msg, kwargs


def for_sender(logger: logging.Logger, sender: str) -> SenderLoggerAdapter:
    return SenderLoggerAdapter(logger, {"sender": sender})
