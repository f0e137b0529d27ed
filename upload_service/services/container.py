from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..config import Settings, load_settings
from ..models import VideoAsset
from .catalog import CatalogClient
from .notifier import CatalogNotifier, Notifier, SearchNotifier, notify_safely
from .search import SearchClient
from .storage import StorageWriter
from .tasks import BackgroundTaskRunner
from .transcoder import FfmpegTranscoder, TranscodeWorker


@dataclass
class ServiceContainer:
    settings: Settings
    storage: StorageWriter
    catalog: CatalogClient
    catalog_notifier: Notifier
    search_notifier: Notifier
    transcode_worker: TranscodeWorker
    tasks: BackgroundTaskRunner

    def index_in_search(self, payload: dict) -> bool:
        return notify_safely(self.search_notifier, VideoAsset.from_dict(payload))

    def transcode(self, raw_path: str) -> bool:
        return self.transcode_worker.run(raw_path)


def build_services(settings: Settings | None = None, *, celery_app=None) -> ServiceContainer:
    settings = settings or load_settings()
    catalog = CatalogClient(base_url=settings.catalog_service_url, timeout=settings.http_timeout_seconds)
    search = SearchClient(base_url=settings.search_service_url, timeout=settings.http_timeout_seconds)
    return ServiceContainer(
        settings=settings,
        storage=StorageWriter(settings.upload_root, max_bytes=settings.max_upload_bytes),
        catalog=catalog,
        catalog_notifier=CatalogNotifier(
            catalog,
            public_url=settings.public_url,
            thumbnail_base_url=settings.thumbnail_base_url,
        ),
        search_notifier=SearchNotifier(search),
        transcode_worker=TranscodeWorker(
            FfmpegTranscoder(settings),
            max_concurrency=settings.transcode_max_concurrency,
        ),
        tasks=BackgroundTaskRunner(celery_app),
    )


def init_services(app, services: ServiceContainer | None = None) -> ServiceContainer:
    container = services or build_services(app.config.get("UPLOAD_SETTINGS"))
    app.extensions["services"] = container
    return container


def get_services() -> ServiceContainer:
    container = current_app.extensions.get("services")
    if container is None:
        container = build_services(current_app.config.get("UPLOAD_SETTINGS"))
        current_app.extensions["services"] = container
    return container
