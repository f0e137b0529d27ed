from __future__ import annotations

import logging
import os
from urllib.parse import quote

from flask import Blueprint, abort, jsonify, send_from_directory

from ..errors import DownstreamNotifyError, InvalidRequest
from ..middleware.rate_limit import limiter
from ..models import AssetState, manifest_rel_path, normalize_asset_id
from ..services.container import get_services
from ..services.transcoder import is_ready

logger = logging.getLogger("upload.videos")

videos_bp = Blueprint("videos", __name__)


def _flatten_catalog_entry(entry: dict) -> dict:
    views = entry.get("views")
    try:
        views = int(views or 0)
    except (TypeError, ValueError):
        views = 0
    return {
        "id": str(entry.get("_id") or entry.get("id") or ""),
        "title": str(entry.get("title") or ""),
        "thumbnail": str(entry.get("thumbnail") or ""),
        "src": str(entry.get("path") or ""),
        "channel": str(entry.get("author") or ""),
        "views": str(views),
    }


@videos_bp.route("/videos", methods=["GET"])
def list_videos():
    services = get_services()
    try:
        entries = services.catalog.list_videos()
    except DownstreamNotifyError as exc:
        logger.error("Failed to fetch videos: %s", exc)
        return jsonify({"error": "Failed to retrieve videos"}), 500
    return jsonify([_flatten_catalog_entry(entry) for entry in entries])


@videos_bp.route("/videos/<asset_id>/status", methods=["GET"])
def video_status(asset_id: str):
    services = get_services()
    normalized = normalize_asset_id(asset_id)
    if not normalized or normalized != asset_id:
        raise InvalidRequest("Invalid video id")

    raw_path = services.storage.path_for(normalized)
    if not os.path.isfile(raw_path):
        return jsonify({"error": "Video not found"}), 404

    ready = is_ready(raw_path)
    resp = jsonify(
        {
            "id": normalized,
            "state": (AssetState.READY if ready else AssetState.PROCESSING).value,
            "manifest": f"{services.settings.public_url}/uploads/{quote(manifest_rel_path(normalized))}"
            if ready
            else None,
        }
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@videos_bp.route("/uploads/<path:filename>", methods=["GET"])
@limiter.exempt
def serve_upload(filename: str):
    services = get_services()
    if filename.endswith(".uploading"):
        abort(404)
    return send_from_directory(services.storage.upload_root, filename)
