from __future__ import annotations

from flask import current_app
from flask_limiter import Limiter

from ..utils.request import _get_rate_limit_key

limiter = Limiter(key_func=_get_rate_limit_key, default_limits=[])


def upload_rate_limit() -> str:
    return current_app.config.get("UPLOAD_RATE_LIMIT") or "1000 per hour"


def init_rate_limiter(app) -> None:
    limiter.init_app(app)
