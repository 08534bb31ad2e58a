"""
Logging for the mathkit library and API.

Library modules log through ``get_context_logger`` and attach structured
fields with ``extra_data=``. Nothing is printed until a host (the API, a
script) calls ``setup_logging()``, which renders those fields either as a
JSON object per line or as ``key=value`` pairs after a text message.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, MutableMapping

from .config import get_settings


def _fields(record: logging.LogRecord) -> dict[str, Any]:
    return dict(getattr(record, "extra_data", None) or {})


class JsonFormatter(logging.Formatter):
    """One JSON object per record; structured fields sit beside the message"""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update(_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class KeyValueFormatter(logging.Formatter):
    """Plain text line followed by the structured fields as key=value"""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-8s %(name)s: %(message)s", "%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _fields(record)
        if not fields:
            return line
        return line + " | " + " ".join(f"{key}={value!r}" for key, value in fields.items())


def setup_logging() -> None:
    """Install handlers on the root logger according to the LOG_* settings"""
    settings = get_settings()
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = JsonFormatter() if settings.LOG_FORMAT == "json" else KeyValueFormatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_FILE:
        path = Path(settings.LOG_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # uvicorn logs every request at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter merging fixed context fields into each record's extra_data"""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        fields = {**self.extra, **kwargs.pop("extra_data", {})}
        kwargs.setdefault("extra", {})["extra_data"] = fields
        return msg, kwargs


def get_context_logger(name: str, **context: Any) -> ContextLogger:
    """
    Logger for ``name`` carrying ``context`` on every record.

    Example:
        >>> logger = get_context_logger(__name__, component="parser")
        >>> logger.debug("Parsed expression", extra_data={"tokens": 4})
    """
    return ContextLogger(logging.getLogger(name), context)
