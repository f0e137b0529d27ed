from __future__ import annotations

import logging
import signal
import threading

from werkzeug.serving import make_server

from .config import Settings

logger = logging.getLogger("upload.server")


class ShutdownCoordinator:
    """
    Drains a threaded WSGI server on SIGINT/SIGTERM.

    The listening socket stops accepting, in-flight request threads are
    joined with no deadline, and ``serve`` returns. Detached background work
    is not waited for.
    """

    def __init__(self, server) -> None:
        self.server = server
        # Non-daemon request threads are tracked and joined by server_close().
        self.server.daemon_threads = False
        self.server.block_on_close = True
        self._stopping = threading.Event()

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    def install(self, signals=(signal.SIGINT, signal.SIGTERM)) -> None:
        for sig in signals:
            signal.signal(sig, self.handle_signal)

    def handle_signal(self, signum, _frame=None) -> None:
        if self._stopping.is_set():
            return
        self._stopping.set()
        logger.info("Received signal %s, shutting down upload service", signum)
        # shutdown() blocks until serve_forever() returns, so it cannot run
        # on the thread that is serving.
        threading.Thread(target=self.server.shutdown, name="shutdown", daemon=True).start()

    def serve(self) -> None:
        try:
            self.server.serve_forever()
        finally:
            logger.info("Waiting for in-flight requests to finish")
            self.server.server_close()
            logger.info("Upload service stopped")


def build_server(app, settings: Settings):
    return make_server(settings.host, settings.port, app, threaded=True)


def serve(app, settings: Settings) -> None:
    coordinator = ShutdownCoordinator(build_server(app, settings))
    coordinator.install()
    logger.info("Upload service running at http://%s:%s", settings.host, settings.port)
    coordinator.serve()
