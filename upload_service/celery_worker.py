"""
Worker process entry point::

    UPLOAD_CELERY_BROKER_URL=redis://... celery -A upload_service.celery_worker worker

The web process builds its own Celery app in ``create_app`` and only sends
tasks; this module is imported by the Celery CLI alone.
"""

from __future__ import annotations

from .config import load_settings
from .logging_config import configure_logging
from .worker import create_celery_app

configure_logging()
settings = load_settings()
celery_app = create_celery_app(settings)
if celery_app is None:
    raise RuntimeError("UPLOAD_CELERY_BROKER_URL must be set to run a worker")
