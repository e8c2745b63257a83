"""Structured JSON logging for the geometry engine and its HTTP adapter."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

_RESERVED_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class JsonLogFormatter(logging.Formatter):
    """Render LogRecords as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_FIELDS and not key.startswith("_")
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "module": record.name,
            "event": record.getMessage(),
            "data": data,
        }
        return json.dumps(payload, default=str, separators=(",", ":"))


def configure_logging(level: int | str = logging.INFO) -> None:
    """Install the JSON handler on the root logger. Safe to call more than once."""
    root = logging.getLogger()
    if getattr(root, "_siteplan_json_logging", False):
        root.setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())

    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)
    root._siteplan_json_logging = True  # type: ignore[attr-defined]
