from __future__ import annotations

import logging
import threading
import time

from ..metrics import BACKGROUND_TASKS

logger = logging.getLogger("upload.tasks")

SEARCH_INDEX_TASK = "upload.index_search"
TRANSCODE_TASK = "upload.transcode_hls"


class BackgroundTaskRunner:
    """
    Fire-and-forget execution for work that must not hold up a response.

    With a Celery app the task is sent to the broker by name; otherwise, or if
    the broker refuses it, ``fn`` runs on a daemon thread. Nothing is joined
    back to the submitter and nothing is retried. No cap is placed on the
    number of concurrent threads.
    """

    def __init__(self, celery_app=None) -> None:
        self.celery_app = celery_app
        self._lock = threading.Lock()
        self._tasks: set[str] = set()

    @property
    def running(self) -> int:
        with self._lock:
            return len(self._tasks)

    def _update_gauge(self) -> None:
        if BACKGROUND_TASKS is not None:
            BACKGROUND_TASKS.set(len(self._tasks))

    def spawn(self, task_id: str, fn, *args, **kwargs) -> bool:
        with self._lock:
            if task_id in self._tasks:
                return False
            self._tasks.add(task_id)
            self._update_gauge()

        def runner():
            try:
                fn(*args, **kwargs)
            except Exception as e:
                logger.warning("background task %s failed: %s", task_id, e, extra={"task_id": task_id})
            finally:
                with self._lock:
                    self._tasks.discard(task_id)
                    self._update_gauge()

        t = threading.Thread(target=runner, name=f"bg-{task_id}", daemon=True)
        t.start()
        return True

    def submit(self, task_id: str, task_name: str, fn, *args, **kwargs) -> bool:
        if self.celery_app is not None:
            try:
                self.celery_app.send_task(task_name, args=args, kwargs=kwargs, task_id=task_id)
                return True
            except Exception as e:
                logger.warning("Celery enqueue failed for %s: %s", task_id, e, extra={"task_id": task_id})
        return self.spawn(task_id, fn, *args, **kwargs)

    def wait_idle(self, timeout: float, interval: float = 0.05) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if not self.running:
                return True
            time.sleep(interval)
        return not self.running
