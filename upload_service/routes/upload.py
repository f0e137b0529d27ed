from __future__ import annotations

import logging
import secrets

from flask import Blueprint, jsonify, request

from ..errors import InvalidRequest, UploadServiceError
from ..metrics import UPLOAD_COUNT
from ..middleware.rate_limit import limiter, upload_rate_limit
from ..models import VideoAsset, normalize_asset_id, parse_duration, public_video_url
from ..services.container import get_services
from ..services.notifier import notify_safely
from ..services.tasks import SEARCH_INDEX_TASK, TRANSCODE_TASK

logger = logging.getLogger("upload.intake")

upload_bp = Blueprint("upload", __name__)


def _count(status: str) -> None:
    if UPLOAD_COUNT is not None:
        UPLOAD_COUNT.labels(status).inc()


def _submit(services, asset_id: str, task_id: str, task_name: str, fn, *args) -> None:
    if not services.tasks.submit(task_id, task_name, fn, *args):
        logger.warning(
            "Background task %s was not started for %s", task_id, asset_id,
            extra={"task_id": task_id, "asset_id": asset_id},
        )


@upload_bp.route("/", methods=["POST"])
@upload_bp.route("/upload", methods=["POST"])
@limiter.limit(upload_rate_limit)
def upload_video():
    services = get_services()

    file_storage = request.files.get("video")
    if not file_storage or not file_storage.filename:
        _count("invalid")
        raise InvalidRequest("No video file uploaded")

    asset_id = normalize_asset_id(file_storage.filename)
    if not asset_id:
        _count("invalid")
        raise InvalidRequest("Invalid file name")

    try:
        raw_path, _size = services.storage.save(file_storage.stream, asset_id)
    except UploadServiceError as exc:
        _count("invalid" if exc.status_code < 500 else "storage_error")
        raise

    asset = VideoAsset(
        id=asset_id,
        raw_path=raw_path,
        title=request.form.get("title", ""),
        description=request.form.get("description", ""),
        author=request.form.get("uploader", ""),
        duration=parse_duration(request.form.get("duration")),
    )
    public_url = public_video_url(services.settings.public_url, asset.id)

    # Catalog first and in-line: the public listing reads from it. Its
    # outcome does not change the response.
    notify_safely(services.catalog_notifier, asset)

    # Task ids are server-generated; the client's request id is only a log field.
    token = secrets.token_urlsafe(8)
    _submit(
        services,
        asset.id,
        f"search:{asset.id}:{token}",
        SEARCH_INDEX_TASK,
        services.index_in_search,
        asset.to_dict(),
    )
    _submit(
        services,
        asset.id,
        f"transcode:{asset.id}:{token}",
        TRANSCODE_TASK,
        services.transcode,
        asset.raw_path,
    )

    _count("accepted")
    logger.info("Accepted upload %s", asset.id, extra={"asset_id": asset.id})
    return jsonify({"message": "Video uploaded successfully", "path": public_url})
