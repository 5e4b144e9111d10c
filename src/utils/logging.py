"""Structured JSON logging configuration.

Every record becomes one JSON line. Fields passed through `extra=` become
top-level keys, except credentials, which are replaced before output.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

REDACTED = '[REDACTED]'

# extra= keys that must never reach a log sink
SENSITIVE_FIELDS = frozenset({
    'password', 'passwordHash', 'password_hash',
    'token', 'sessionToken', 'secret', 'secretKey',
})

# Standard LogRecord attributes, never copied as extra fields
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {'message', 'asctime', 'taskName'}


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace('+00:00', 'Z'),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or callable(value):
                continue
            log_data[key] = REDACTED if key in SENSITIVE_FIELDS else value

        return json.dumps(log_data, default=str)


def setup_structured_logging(level: int = logging.INFO) -> None:
    """Send all loggers to stderr as JSON lines.

    Safe to call more than once; the root handlers are replaced, not appended.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # pymongo logs every heartbeat/command at DEBUG/INFO
    logging.getLogger('pymongo').setLevel(logging.WARNING)
