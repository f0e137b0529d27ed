from __future__ import annotations

import logging

from ..errors import DownstreamNotifyError
from ..metrics import NOTIFY_COUNT
from ..models import VideoAsset, public_video_url, thumbnail_url
from .catalog import CatalogClient
from .search import SearchClient

logger = logging.getLogger("upload.notifier")


class Notifier:
    """One downstream system that wants to hear about new uploads."""

    target = "downstream"

    def notify(self, asset: VideoAsset) -> None:
        raise NotImplementedError


class CatalogNotifier(Notifier):
    target = "catalog"

    def __init__(self, client: CatalogClient, *, public_url: str, thumbnail_base_url: str) -> None:
        self.client = client
        self.public_url = public_url
        self.thumbnail_base_url = thumbnail_base_url

    def payload_for(self, asset: VideoAsset) -> dict:
        return {
            "id": asset.id,
            "title": asset.title,
            "description": asset.description,
            "author": asset.author,
            "thumbnail": thumbnail_url(self.thumbnail_base_url, asset.id),
            "path": public_video_url(self.public_url, asset.id),
            "duration": asset.duration,
        }

    def notify(self, asset: VideoAsset) -> None:
        self.client.init_video(self.payload_for(asset))


class SearchNotifier(Notifier):
    target = "search"

    def __init__(self, client: SearchClient) -> None:
        self.client = client

    def document_for(self, asset: VideoAsset) -> dict:
        return {
            "id": asset.id,
            "title": asset.title,
            "description": asset.description,
            "author": asset.author,
        }

    def notify(self, asset: VideoAsset) -> None:
        body = self.client.index_video(self.document_for(asset))
        logger.info("Indexed %s via search service: %s", asset.id, body[:200], extra={"asset_id": asset.id})


def notify_safely(notifier: Notifier, asset: VideoAsset) -> bool:
    """
    Delivers one notification, best effort.

    Errors are logged and dropped: there is no retry and the caller's outcome
    never depends on the downstream system.
    """
    log_extra = {"asset_id": asset.id}
    try:
        notifier.notify(asset)
    except DownstreamNotifyError as exc:
        if NOTIFY_COUNT is not None:
            NOTIFY_COUNT.labels(notifier.target, "error").inc()
        logger.warning("%s notify failed for %s: %s", notifier.target, asset.id, exc, extra=log_extra)
        return False
    except Exception:
        if NOTIFY_COUNT is not None:
            NOTIFY_COUNT.labels(notifier.target, "error").inc()
        logger.exception("%s notify crashed for %s", notifier.target, asset.id, extra=log_extra)
        return False
    if NOTIFY_COUNT is not None:
        NOTIFY_COUNT.labels(notifier.target, "ok").inc()
    return True
