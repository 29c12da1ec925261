"""One JSON object per log line, tagged with the request and acting staff member."""

from __future__ import annotations

import json
import logging
from typing import Mapping

from ..middlewares import actor_ctx_var, request_id_ctx_var
from . import clock
from .config import settings

QUIET_LOGGERS = ("apscheduler", "httpx")


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": clock.to_iso(clock.utcnow()),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "request_id": request_id_ctx_var.get(),
            "actor": actor_ctx_var.get(),
        }
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            payload.update(extra)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        # Enums and dates in extra_data fall back to str().
        return json.dumps(payload, separators=(",", ":"), default=str)


def configure_logging(level: str | None = None) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel((level or settings.LOG_LEVEL).upper())
    # Scheduler job runs and webhook calls are logged by our own services.
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
