import os

from flask import Blueprint, jsonify

from ..middleware.rate_limit import limiter

health_bp = Blueprint("health", __name__)

VERSION = os.environ.get("UPLOAD_VERSION", "0.1.0-dev")


@health_bp.route("/health")
@limiter.exempt
def health_check():
    # Liveness only; catalog, search and ffmpeg health never affect it.
    return jsonify({"status": "ok"})


@health_bp.route("/version")
def version():
    return jsonify(
        {
            "version": VERSION,
            "release": os.environ.get("UPLOAD_RELEASE", "none"),
            "environment": os.environ.get("UPLOAD_ENV", "production"),
        }
    )
