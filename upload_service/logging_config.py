from __future__ import annotations

import json
import logging
import os
import re
from datetime import UTC, datetime

from flask import g, has_request_context, request

LOG_FORMAT = (os.environ.get("UPLOAD_LOG_FORMAT", "json") or "json").strip().lower()
LOG_LEVEL = (os.environ.get("UPLOAD_LOG_LEVEL", "INFO") or "INFO").strip().upper()
REQUEST_ID_HEADER = (
    os.environ.get("UPLOAD_REQUEST_ID_HEADER", "X-Request-ID") or "X-Request-ID"
).strip()
REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{8,128}$")

# Attached by callers through ``extra=``; background threads have no request.
ASSET_FIELDS = ("asset_id", "task_id")
REQUEST_FIELDS = ("request_id", "remote_addr", "method", "path")


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            values = {
                "request_id": getattr(g, "request_id", None),
                "remote_addr": request.headers.get("X-Real-IP") or request.remote_addr,
                "method": request.method,
                "path": request.path,
            }
        else:
            values = {"request_id": getattr(record, "request_id", None)}
        for field in REQUEST_FIELDS:
            setattr(record, field, values.get(field))
        for field in ASSET_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, None)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in REQUEST_FIELDS + ASSET_FIELDS:
            value = getattr(record, field, None)
            if value:
                payload[field] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=True)


class PlainFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        tags = [f"{field}={getattr(record, field)}" for field in ASSET_FIELDS if getattr(record, field, None)]
        return f"{line} [{' '.join(tags)}]" if tags else line


def configure_logging(app=None) -> None:
    root = logging.getLogger()
    if not root.handlers:
        root.addHandler(logging.StreamHandler())

    formatter = JsonFormatter() if LOG_FORMAT == "json" else PlainFormatter()
    for handler in root.handlers:
        handler.setFormatter(formatter)
        if not any(isinstance(f, RequestContextFilter) for f in handler.filters):
            handler.addFilter(RequestContextFilter())
    root.setLevel(LOG_LEVEL)

    if app is not None:
        app.logger.handlers = root.handlers
        app.logger.setLevel(LOG_LEVEL)
        app.logger.propagate = False
