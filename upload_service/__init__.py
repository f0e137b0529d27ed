"""
Video upload service

Provides:
- POST /upload (alias POST /): store a video, register it with the catalog,
  then index it for search and package it as HLS in the background
- GET /videos: public listing, flattened from the catalog
- GET /videos/<id>/status: HLS readiness, probed from the manifest on disk
- GET /uploads/<path>: raw uploads and HLS output
- GET /health, GET /version, GET /metrics
"""

from __future__ import annotations

import secrets
import time

import sentry_sdk
from flask import Flask, g, has_request_context, jsonify, request
from sentry_sdk.integrations.flask import FlaskIntegration
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from .config import Settings, load_flask_config, load_settings
from .errors import UploadServiceError
from .logging_config import REQUEST_ID_HEADER, REQUEST_ID_RE, configure_logging
from .metrics import (
    METRICS_ENABLED,
    REQUEST_COUNT,
    REQUEST_ERRORS,
    REQUEST_IN_FLIGHT,
    REQUEST_LATENCY,
)
from .middleware.cors import init_cors
from .middleware.rate_limit import init_rate_limiter
from .routes.health import health_bp
from .routes.metrics import metrics_bp
from .routes.upload import upload_bp
from .routes.videos import videos_bp
from .services.container import ServiceContainer, build_services, init_services
from .tracing import configure_tracing
from .worker import create_celery_app


def _generate_request_id(raw: str | None) -> str:
    candidate = (raw or "").strip()
    if candidate and REQUEST_ID_RE.fullmatch(candidate):
        return candidate
    return secrets.token_urlsafe(12)


def _init_sentry(settings: Settings) -> None:
    if not settings.sentry_dsn:
        return

    def _sentry_before_send(event, _hint):
        if has_request_context():
            request_id = getattr(g, "request_id", None)
            if request_id:
                event.setdefault("tags", {})["request_id"] = request_id
        return event

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_env,
        integrations=[FlaskIntegration()],
        send_default_pii=False,
        before_send=_sentry_before_send,
    )


def _record_request_metrics(response) -> None:
    if not METRICS_ENABLED or REQUEST_COUNT is None:
        return
    if getattr(g, "_metrics_done", False):
        return
    g._metrics_done = True
    if getattr(g, "_metrics_inflight", False):
        if REQUEST_IN_FLIGHT is not None:
            REQUEST_IN_FLIGHT.dec()
        g._metrics_inflight = False

    endpoint = request.endpoint or "unknown"
    method = request.method
    status = str(response.status_code)
    REQUEST_COUNT.labels(method, endpoint, status).inc()
    if REQUEST_LATENCY is not None and hasattr(g, "_request_started_at"):
        duration = time.perf_counter() - g._request_started_at
        REQUEST_LATENCY.labels(method, endpoint).observe(duration)
    if REQUEST_ERRORS is not None and response.status_code >= 400:
        REQUEST_ERRORS.labels(method, endpoint, status).inc()


def _register_request_hooks(app: Flask) -> None:
    @app.before_request
    def _init_request_context():
        g.request_id = _generate_request_id(request.headers.get(REQUEST_ID_HEADER))
        g._request_started_at = time.perf_counter()
        if METRICS_ENABLED and REQUEST_IN_FLIGHT is not None:
            REQUEST_IN_FLIGHT.inc()
            g._metrics_inflight = True

    @app.after_request
    def _finalize_request(response):
        if hasattr(g, "request_id"):
            response.headers[REQUEST_ID_HEADER] = g.request_id
        _record_request_metrics(response)
        return response

    @app.teardown_request
    def _teardown_request(_exc):
        if (
            METRICS_ENABLED
            and getattr(g, "_metrics_inflight", False)
            and REQUEST_IN_FLIGHT is not None
        ):
            REQUEST_IN_FLIGHT.dec()
            g._metrics_inflight = False


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(UploadServiceError)
    def _handle_service_error(exc: UploadServiceError):
        return jsonify({"error": str(exc)}), exc.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def _handle_too_large(_exc):
        return jsonify({"error": "File exceeds the maximum allowed size"}), 413

    @app.errorhandler(404)
    def _handle_not_found(_exc):
        return jsonify({"error": "Not Found"}), 404

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description or exc.name}), exc.code or 500


def create_app(
    settings: Settings | None = None,
    *,
    services: ServiceContainer | None = None,
    config: dict | None = None,
) -> Flask:
    settings = settings or (services.settings if services else load_settings())

    app = Flask(__name__)
    app.config.update(load_flask_config(settings))
    app.config["UPLOAD_SETTINGS"] = settings
    if config:
        app.config.update(config)

    configure_logging(app)
    _init_sentry(settings)
    configure_tracing(app)
    init_rate_limiter(app)
    init_cors(app, settings)

    if services is None:
        services = build_services(settings, celery_app=create_celery_app(settings))
    init_services(app, services)

    _register_request_hooks(app)
    _register_error_handlers(app)

    app.register_blueprint(health_bp)
    app.register_blueprint(metrics_bp)
    app.register_blueprint(upload_bp)
    app.register_blueprint(videos_bp)
    return app
