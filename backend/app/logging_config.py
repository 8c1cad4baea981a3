"""Logging setup for the auth service.

Production emits one JSON object per line; other environments get a compact
text format. Structured context travels through ``extra=`` and only the keys
in ``CONTEXT_FIELDS`` are copied into JSON records.
"""

import json
import logging
import sys
from datetime import UTC, datetime

CONTEXT_FIELDS = ("user_id", "org_id", "request_id", "error_kind")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

# Third-party loggers and the level they are capped at outside development
NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def redact_email(email: str) -> str:
    """Keep enough of an address to correlate log lines without storing PII."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


def setup_logging(app_env: str = "development", log_level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    if app_env == "production":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for name, level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
    # SQL echo only in development
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if app_env == "development" else logging.WARNING
    )
