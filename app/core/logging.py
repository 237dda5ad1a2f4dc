import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Optional

from app.core.context import get_request_id, get_user_email
from app.core.settings import settings

AUDIT_LOGGER = "app.audit"

# Libraries that log every statement or hash round at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "passlib", "multipart")


class RequestContextFilter(logging.Filter):
    """Stamp each record with the current request id and caller email."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        record.user = get_user_email()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields are copied to the top level."""

    _RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "request_id", "user"}

    def __init__(self, stream_label: str = "app") -> None:
        super().__init__()
        self.stream_label = stream_label

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "stream": self.stream_label,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "user": getattr(record, "user", "-"),
        }
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in self._RESERVED and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _stdout_handler(formatter: str, level: str) -> dict[str, Any]:
    return {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": formatter,
        "filters": ["request_context"],
        "stream": "ext://sys.stdout",
    }


def configure_logging(level: Optional[str] = None) -> None:
    log_level = (level or settings.log_level).upper()
    loggers: dict[str, Any] = {
        "": {"handlers": ["default"], "level": log_level},
        AUDIT_LOGGER: {"handlers": ["audit"], "level": "INFO", "propagate": False},
    }
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        loggers[name] = {"handlers": ["default"], "level": log_level, "propagate": False}
    for name in _QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request_context": {"()": RequestContextFilter}},
            "formatters": {
                "json": {"()": JsonFormatter, "stream_label": "app"},
                "audit_json": {"()": JsonFormatter, "stream_label": "audit"},
            },
            "handlers": {
                "default": _stdout_handler("json", log_level),
                "audit": _stdout_handler("audit_json", "INFO"),
            },
            "loggers": loggers,
        }
    )
    logging.getLogger(__name__).info(
        "Logging configured for environment=%s level=%s", settings.environment, log_level
    )


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER)


def audit_event(event: str, *, actor: str | None = None, **fields: Any) -> None:
    """Record a loan or account state change on the audit stream.

    ``actor`` defaults to the authenticated caller of the current request.
    """
    get_audit_logger().info(event, extra={"event": event, "actor": actor or get_user_email(), **fields})
