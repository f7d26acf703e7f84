"""Logging setup for the API and the Celery worker.

Records are written to stdout, one JSON object per line in deployed
environments and a plain single line locally (``LOG_JSON=false``). Each
record carries the request ID and, once the session is resolved, the
caller's identity ID.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from .context import get_identity_id, get_request_id

# Keys callers may pass through ``extra=`` that end up as top-level JSON fields
STRUCTURED_FIELDS = (
    "resource_id",
    "storage_path",
    "fingerprint",
    "target_identity_id",
    "action",
    "status_code",
    "duration_ms",
)

TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s %(identity_id)s] %(name)s: %(message)s"

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "botocore", "urllib3", "celery.app.trace")


class RequestContextFilter(logging.Filter):

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        record.identity_id = get_identity_id() or "-"
        return True


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "no-request-id"),
        }

        identity_id = getattr(record, "identity_id", "-")
        if identity_id != "-":
            entry["identity_id"] = identity_id

        entry.update({key: getattr(record, key) for key in STRUCTURED_FIELDS if hasattr(record, key)})

        if record.exc_info:
            entry["error"] = repr(record.exc_info[1])
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Replace root handlers with a single stdout handler.

    Raises:
        ValueError: If ``level`` is not a standard level name
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    handler.addFilter(RequestContextFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
