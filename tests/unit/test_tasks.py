from __future__ import annotations

import logging
import threading
from unittest.mock import MagicMock

from upload_service.services.tasks import TRANSCODE_TASK, BackgroundTaskRunner


def test_spawn_runs_detached():
    runner = BackgroundTaskRunner()
    done = threading.Event()

    assert runner.spawn("t1", done.set) is True
    assert done.wait(2)
    assert runner.wait_idle(2)
    assert runner.running == 0


def test_spawn_skips_duplicate_task_ids():
    runner = BackgroundTaskRunner()
    release = threading.Event()
    calls = []

    def work():
        calls.append(1)
        release.wait(2)

    assert runner.spawn("same", work) is True
    assert runner.spawn("same", work) is False
    release.set()
    assert runner.wait_idle(2)
    assert calls == [1]
    # The id is free again once the first run finishes.
    assert runner.spawn("same", lambda: None) is True
    assert runner.wait_idle(2)


def test_spawn_logs_failures(caplog):
    runner = BackgroundTaskRunner()

    def boom():
        raise RuntimeError("disk full")

    with caplog.at_level(logging.WARNING, logger="upload.tasks"):
        runner.spawn("fails", boom)
        assert runner.wait_idle(2)

    assert "background task fails failed: disk full" in caplog.text


def test_submit_without_celery_uses_threads():
    runner = BackgroundTaskRunner()
    seen = []
    assert runner.submit("t", TRANSCODE_TASK, seen.append, "/u/clip.mp4") is True
    assert runner.wait_idle(2)
    assert seen == ["/u/clip.mp4"]


def test_submit_sends_to_celery_by_name():
    celery_app = MagicMock()
    runner = BackgroundTaskRunner(celery_app)
    fn = MagicMock()

    assert runner.submit("transcode:clip.mp4", TRANSCODE_TASK, fn, "/u/clip.mp4") is True
    celery_app.send_task.assert_called_once_with(
        TRANSCODE_TASK, args=("/u/clip.mp4",), kwargs={}, task_id="transcode:clip.mp4"
    )
    fn.assert_not_called()


def test_submit_falls_back_when_broker_refuses(caplog):
    celery_app = MagicMock()
    celery_app.send_task.side_effect = ConnectionError("broker down")
    runner = BackgroundTaskRunner(celery_app)
    done = threading.Event()

    with caplog.at_level(logging.WARNING, logger="upload.tasks"):
        assert runner.submit("t", TRANSCODE_TASK, lambda _path: done.set(), "/u/clip.mp4") is True

    assert done.wait(2)
    assert "Celery enqueue failed" in caplog.text
    assert runner.wait_idle(2)


def test_wait_idle_times_out_while_busy():
    runner = BackgroundTaskRunner()
    release = threading.Event()
    runner.spawn("slow", release.wait, 2)

    assert runner.wait_idle(0.1, interval=0.01) is False
    release.set()
    assert runner.wait_idle(2)
