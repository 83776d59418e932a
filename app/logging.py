"""Process-wide logging setup.

Modules log through ``logging.getLogger(__name__)``; this module only decides
where records go and how they look.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import UTC, datetime

from app.config import settings

_CONFIGURED = False


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        trace_id = getattr(record, "otelTraceID", None)
        if trace_id and trace_id != "0":
            payload["trace_id"] = trace_id
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | None = None, json_lines: bool | None = None) -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    use_json = settings.log_json if json_lines is None else json_lines
    formatter = (
        {"()": JsonLineFormatter}
        if use_json
        else {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"}
    )
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": formatter},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                }
            },
            "root": {
                "level": (level or settings.log_level).upper(),
                "handlers": ["console"],
            },
            "loggers": {
                "sqlalchemy.engine": {"level": "WARNING"},
                "httpx": {"level": "WARNING"},
            },
        }
    )
    _CONFIGURED = True
