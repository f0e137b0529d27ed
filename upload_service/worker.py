"""
Celery app factory and tasks for detached upload work.

Only used when ``UPLOAD_CELERY_BROKER_URL`` is set; otherwise the web process
runs the same jobs on background threads. Start with::

    celery -A upload_service.celery_worker worker
"""

from __future__ import annotations

import logging

from celery import Celery

from .config import Settings, load_settings
from .services.container import ServiceContainer, build_services
from .services.tasks import SEARCH_INDEX_TASK, TRANSCODE_TASK

logger = logging.getLogger("upload.worker")

_worker_services: ServiceContainer | None = None


def create_celery_app(settings: Settings) -> Celery | None:
    if not settings.celery_enabled:
        return None
    app = Celery(
        "upload_service",
        broker=settings.celery_broker_url,
        backend=settings.celery_result_backend or None,
    )
    # Early acks: a task lost with its worker is not redelivered.
    app.conf.update(
        task_acks_late=False,
        worker_prefetch_multiplier=1,
    )
    register_tasks(app)
    return app


def _services() -> ServiceContainer:
    global _worker_services
    if _worker_services is None:
        _worker_services = build_services(load_settings())
    return _worker_services


def register_tasks(app: Celery) -> None:
    @app.task(name=SEARCH_INDEX_TASK)
    def _celery_index_search(payload: dict) -> bool:
        return _services().index_in_search(payload)

    @app.task(name=TRANSCODE_TASK)
    def _celery_transcode_hls(raw_path: str) -> bool:
        return _services().transcode(raw_path)

