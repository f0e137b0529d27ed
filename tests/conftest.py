import os
import sys
import tempfile

BASE_DIR = tempfile.mkdtemp(prefix="upload-tests-")

os.environ["UPLOAD_ROOT"] = os.path.join(BASE_DIR, "uploads")
os.environ["UPLOAD_LOG_FORMAT"] = "plain"
os.environ["UPLOAD_METRICS_ENABLED"] = "false"
os.environ["UPLOAD_OTEL_ENABLED"] = "false"
os.environ["UPLOAD_RATE_LIMIT_ENABLED"] = "false"
os.environ["UPLOAD_CELERY_BROKER_URL"] = ""
os.environ["UPLOAD_SENTRY_DSN"] = ""
os.environ["UPLOAD_CATALOG_SERVICE_URL"] = "http://catalog.test"
os.environ["UPLOAD_SEARCH_SERVICE_URL"] = "http://search.test"
os.environ["UPLOAD_PUBLIC_URL"] = "http://public.test"

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import io
import threading

import pytest

from upload_service import create_app
from upload_service.config import Settings
from upload_service.errors import DownstreamNotifyError, TranscodeError
from upload_service.services.catalog import CatalogClient
from upload_service.services.container import ServiceContainer
from upload_service.services.notifier import Notifier
from upload_service.services.storage import StorageWriter
from upload_service.services.tasks import BackgroundTaskRunner
from upload_service.services.transcoder import Transcoder, TranscodeWorker, hls_output_dir


class RecordingNotifier(Notifier):
    def __init__(self, target: str, *, error: Exception | None = None):
        self.target = target
        self.error = error
        self.calls = []
        self._lock = threading.Lock()

    def notify(self, asset):
        with self._lock:
            self.calls.append(asset)
        if self.error is not None:
            raise self.error


class FakeTranscoder(Transcoder):
    """Writes a manifest plus segments tagged with the source name, or fails."""

    def __init__(self, *, fail: bool = False, segments: int = 3):
        self.fail = fail
        self.segments = segments
        self.calls = []
        self._lock = threading.Lock()

    def produce_manifest(self, raw_path):
        with self._lock:
            self.calls.append(raw_path)
        out_dir = hls_output_dir(raw_path)
        os.makedirs(out_dir, exist_ok=True)
        if self.fail:
            with open(os.path.join(out_dir, "index0.ts"), "wb") as handle:
                handle.write(b"partial")
            raise TranscodeError("ffmpeg exited with 1", returncode=1)
        source = os.path.basename(raw_path)
        lines = ["#EXTM3U", "#EXT-X-PLAYLIST-TYPE:VOD"]
        for idx in range(self.segments):
            name = f"index{idx}.ts"
            with open(os.path.join(out_dir, name), "w", encoding="utf-8") as handle:
                handle.write(source)
            lines.extend(["#EXTINF:6.0,", name])
        lines.append("#EXT-X-ENDLIST")
        manifest = os.path.join(out_dir, "index.m3u8")
        with open(manifest, "w", encoding="utf-8") as handle:
            handle.write("\n".join(lines) + "\n")
        return manifest


class InlineTaskRunner(BackgroundTaskRunner):
    """Runs submitted work immediately, after recording it."""

    def __init__(self):
        super().__init__(None)
        self.submitted = []

    def submit(self, task_id, task_name, fn, *args, **kwargs):
        self.submitted.append((task_id, task_name, args))
        try:
            fn(*args, **kwargs)
        except Exception:
            pass
        return True


class DeferredTaskRunner(BackgroundTaskRunner):
    """Holds submitted work until run_all() is called."""

    def __init__(self):
        super().__init__(None)
        self.pending = []

    def submit(self, task_id, task_name, fn, *args, **kwargs):
        self.pending.append((task_id, task_name, fn, args, kwargs))
        return True

    def run_all(self):
        while self.pending:
            _task_id, _name, fn, args, kwargs = self.pending.pop(0)
            fn(*args, **kwargs)


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        catalog_service_url="http://catalog.test",
        search_service_url="http://search.test",
        public_url="http://public.test",
        upload_root=str(tmp_path / "uploads"),
        max_upload_bytes=1024 * 1024,
        rate_limit_enabled=False,
    )


@pytest.fixture()
def catalog_notifier():
    return RecordingNotifier("catalog")


@pytest.fixture()
def search_notifier():
    return RecordingNotifier("search")


@pytest.fixture()
def transcoder():
    return FakeTranscoder()


@pytest.fixture()
def task_runner():
    return InlineTaskRunner()


@pytest.fixture()
def services(settings, catalog_notifier, search_notifier, transcoder, task_runner):
    return ServiceContainer(
        settings=settings,
        storage=StorageWriter(settings.upload_root, max_bytes=settings.max_upload_bytes),
        catalog=CatalogClient(base_url=settings.catalog_service_url),
        catalog_notifier=catalog_notifier,
        search_notifier=search_notifier,
        transcode_worker=TranscodeWorker(transcoder),
        tasks=task_runner,
    )


@pytest.fixture()
def app(settings, services):
    app = create_app(settings, services=services)
    app.config.update(TESTING=True)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def upload_form():
    def _build(filename="clip.mp4", content=b"fake-video-bytes", **fields):
        data = {"video": (io.BytesIO(content), filename)}
        data.update(fields)
        return data

    return _build


@pytest.fixture()
def fakes():
    return {
        "RecordingNotifier": RecordingNotifier,
        "FakeTranscoder": FakeTranscoder,
        "InlineTaskRunner": InlineTaskRunner,
        "DeferredTaskRunner": DeferredTaskRunner,
        "DownstreamNotifyError": DownstreamNotifyError,
    }
