from __future__ import annotations

from flask_cors import CORS

from ..config import Settings

CORS_METHODS = ["GET", "POST", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization"]


def init_cors(app, settings: Settings) -> None:
    """The browser client posts uploads and reads the listing cross-origin."""
    origins = list(settings.cors_origins)
    if not origins:
        return
    CORS(
        app,
        resources={r"/*": {"origins": origins}},
        methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
        # Credentialed requests cannot be paired with a wildcard origin.
        supports_credentials="*" not in origins,
    )
