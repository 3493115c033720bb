"""
Logging setup for the API process.

LOG_LEVEL picks the root level (default INFO). LOG_JSON=1 switches the
handler to one JSON object per line, which is what the log shipper expects
in production; local runs keep the plain text format.

Log users by numeric id only. Emails, passwords and tokens never go into
a message or an `extra=` field.
"""
import json
import logging
import os
import sys
from typing import Any, Dict, Optional

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Chatty libraries that only matter when debugging them
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "passlib")

# Every LogRecord has these; anything else arrived through `extra=`.
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def _to_jsonable(obj: Any):
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return str(obj)


class JsonFormatter(logging.Formatter):
    """One JSON object per record. `extra=` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in entry and value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=_to_jsonable)


def configure_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Install a single stdout handler on the root logger. Safe to call twice."""
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    resolved = getattr(logging, level_name, logging.INFO)
    if json_logs is None:
        json_logs = _env_flag("LOG_JSON")

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    handler.setFormatter(JsonFormatter() if json_logs else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(resolved)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
