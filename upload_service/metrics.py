from __future__ import annotations

import os

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, multiprocess

from .config import parse_bool

METRICS_ENABLED = parse_bool(os.environ.get("UPLOAD_METRICS_ENABLED", "true"))
PROMETHEUS_MULTIPROC_DIR = (os.environ.get("PROMETHEUS_MULTIPROC_DIR") or "").strip()
PROMETHEUS_MULTIPROC_ENABLED = bool(PROMETHEUS_MULTIPROC_DIR)

if METRICS_ENABLED:
    REQUEST_LATENCY = Histogram(
        "upload_http_request_duration_seconds",
        "HTTP request latency",
        ["method", "endpoint"],
    )
    REQUEST_COUNT = Counter(
        "upload_http_requests_total",
        "Total HTTP requests",
        ["method", "endpoint", "status"],
    )
    REQUEST_ERRORS = Counter(
        "upload_http_request_errors_total",
        "HTTP error responses",
        ["method", "endpoint", "status"],
    )
    REQUEST_IN_FLIGHT = Gauge(
        "upload_http_requests_in_flight",
        "In-flight HTTP requests",
    )
    UPLOAD_COUNT = Counter(
        "upload_videos_total",
        "Video uploads by outcome",
        ["status"],
    )
    UPLOAD_BYTES = Counter(
        "upload_video_bytes_total",
        "Bytes written to the upload root",
    )
    NOTIFY_COUNT = Counter(
        "upload_downstream_notify_total",
        "Downstream notifications by target and outcome",
        ["target", "status"],
    )
    BACKGROUND_TASKS = Gauge(
        "upload_background_tasks",
        "Background tasks running",
    )
    VIDEO_TRANSCODE_COUNT = Counter(
        "upload_video_transcode_total",
        "Total video transcode attempts",
        ["status"],
    )
    VIDEO_TRANSCODE_LATENCY = Histogram(
        "upload_video_transcode_duration_seconds",
        "Video transcode duration",
    )
else:
    REQUEST_LATENCY = None
    REQUEST_COUNT = None
    REQUEST_ERRORS = None
    REQUEST_IN_FLIGHT = None
    UPLOAD_COUNT = None
    UPLOAD_BYTES = None
    NOTIFY_COUNT = None
    BACKGROUND_TASKS = None
    VIDEO_TRANSCODE_COUNT = None
    VIDEO_TRANSCODE_LATENCY = None


def get_metrics_registry() -> CollectorRegistry:
    if PROMETHEUS_MULTIPROC_ENABLED:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return registry
    return REGISTRY
