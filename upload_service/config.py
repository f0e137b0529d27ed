from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping

logger = logging.getLogger("upload.config")

DEFAULT_MAX_UPLOAD_BYTES = 1024 * 1024 * 1024
DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:3000,http://localhost:8081"


def parse_bool(value) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _env(environ: Mapping[str, str], *names: str, default: str = "") -> str:
    # First non-empty variable wins; later names are legacy fallbacks.
    for name in names:
        value = (environ.get(name) or "").strip()
        if value:
            return value
    logger.debug("%s not set, defaulting to %s", names[0], default)
    return default


def _env_int(environ: Mapping[str, str], *names: str, default: int) -> int:
    raw = _env(environ, *names, default=str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid integer for %s: %r, using %s", names[0], raw, default)
        return default


def _env_float(environ: Mapping[str, str], *names: str, default: float) -> float:
    raw = _env(environ, *names, default=str(default))
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid number for %s: %r, using %s", names[0], raw, default)
        return default


def _env_list(environ: Mapping[str, str], *names: str, default: str) -> tuple[str, ...]:
    raw = _env(environ, *names, default=default)
    return tuple(item.strip().rstrip("/") for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    catalog_service_url: str = "http://localhost:3002"
    search_service_url: str = "http://localhost:8080"
    public_url: str = "http://localhost:3001"
    host: str = "0.0.0.0"
    port: int = 3001
    upload_root: str = "./uploads"
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    thumbnail_base_url: str = "https://picsum.photos/seed"
    http_timeout_seconds: float = 10.0

    ffmpeg_bin: str = "ffmpeg"
    ffmpeg_timeout_seconds: int = 0
    hls_segment_seconds: int = 6
    hls_video_codec: str = "h264"
    hls_h264_preset: str = "veryfast"
    hls_h264_profile: str = "baseline"
    hls_h264_level: str = "3.1"
    hls_audio_bitrate: str = "128k"
    transcode_max_concurrency: int = 0

    port_release_timeout_seconds: float = 3.0
    port_poll_interval_seconds: float = 0.3
    kill_port_holder: bool = True

    rate_limit_uploads: str = "1000 per hour"
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"

    cors_origins: tuple[str, ...] = tuple(DEFAULT_CORS_ORIGINS.split(","))

    celery_broker_url: str = ""
    celery_result_backend: str = ""

    sentry_dsn: str = ""
    sentry_env: str = "production"

    @property
    def celery_enabled(self) -> bool:
        return bool(self.celery_broker_url)

    @property
    def ffmpeg_timeout(self) -> int | None:
        return self.ffmpeg_timeout_seconds if self.ffmpeg_timeout_seconds > 0 else None


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    broker = _env(env, "UPLOAD_CELERY_BROKER_URL")
    return Settings(
        catalog_service_url=_env(
            env, "UPLOAD_CATALOG_SERVICE_URL", "SOCIAL_SERVICE_URL", default="http://localhost:3002"
        ).rstrip("/"),
        search_service_url=_env(
            env, "UPLOAD_SEARCH_SERVICE_URL", "SEARCH_SERVICE_URL", default="http://localhost:8080"
        ).rstrip("/"),
        public_url=_env(env, "UPLOAD_PUBLIC_URL", "PUBLIC_URL", default="http://localhost:3001").rstrip(
            "/"
        ),
        host=_env(env, "UPLOAD_HOST", default="0.0.0.0"),
        port=_env_int(env, "UPLOAD_PORT", "PORT", default=3001),
        upload_root=_env(env, "UPLOAD_ROOT", default="./uploads"),
        max_upload_bytes=max(0, _env_int(env, "UPLOAD_MAX_BYTES", default=DEFAULT_MAX_UPLOAD_BYTES)),
        thumbnail_base_url=_env(
            env, "UPLOAD_THUMBNAIL_BASE_URL", default="https://picsum.photos/seed"
        ).rstrip("/"),
        http_timeout_seconds=max(0.1, _env_float(env, "UPLOAD_HTTP_TIMEOUT_SECONDS", default=10.0)),
        ffmpeg_bin=_env(env, "UPLOAD_FFMPEG_BIN", default="ffmpeg"),
        ffmpeg_timeout_seconds=max(0, _env_int(env, "UPLOAD_FFMPEG_TIMEOUT_SECONDS", default=0)),
        hls_segment_seconds=max(1, _env_int(env, "UPLOAD_HLS_SEGMENT_SECONDS", default=6)),
        hls_video_codec=_env(env, "UPLOAD_HLS_VIDEO_CODEC", default="h264"),
        hls_h264_preset=_env(env, "UPLOAD_HLS_H264_PRESET", default="veryfast"),
        hls_h264_profile=_env(env, "UPLOAD_HLS_H264_PROFILE", default="baseline"),
        hls_h264_level=_env(env, "UPLOAD_HLS_H264_LEVEL", default="3.1"),
        hls_audio_bitrate=_env(env, "UPLOAD_HLS_AUDIO_BITRATE", default="128k"),
        transcode_max_concurrency=max(0, _env_int(env, "UPLOAD_TRANSCODE_MAX_CONCURRENCY", default=0)),
        port_release_timeout_seconds=max(
            0.0, _env_float(env, "UPLOAD_PORT_RELEASE_TIMEOUT_SECONDS", default=3.0)
        ),
        port_poll_interval_seconds=max(
            0.01, _env_float(env, "UPLOAD_PORT_POLL_INTERVAL_SECONDS", default=0.3)
        ),
        kill_port_holder=parse_bool(_env(env, "UPLOAD_KILL_PORT_HOLDER", default="true")),
        rate_limit_uploads=_env(env, "UPLOAD_RATE_LIMIT", default="1000 per hour"),
        rate_limit_enabled=parse_bool(_env(env, "UPLOAD_RATE_LIMIT_ENABLED", default="true")),
        rate_limit_storage_uri=_env(env, "UPLOAD_RATE_LIMIT_STORAGE_URI", default="memory://"),
        cors_origins=_env_list(env, "UPLOAD_CORS_ORIGINS", default=DEFAULT_CORS_ORIGINS),
        celery_broker_url=broker,
        celery_result_backend=_env(env, "UPLOAD_CELERY_RESULT_BACKEND", default=broker),
        sentry_dsn=_env(env, "UPLOAD_SENTRY_DSN"),
        sentry_env=_env(env, "UPLOAD_SENTRY_ENV", "SENTRY_ENVIRONMENT", default="production"),
    )


def load_flask_config(settings: Settings) -> dict[str, Any]:
    return {
        "MAX_CONTENT_LENGTH": settings.max_upload_bytes or None,
        "RATELIMIT_ENABLED": settings.rate_limit_enabled,
        "RATELIMIT_STORAGE_URI": settings.rate_limit_storage_uri,
        "UPLOAD_RATE_LIMIT": settings.rate_limit_uploads,
    }
