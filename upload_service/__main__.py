from __future__ import annotations

import logging
import sys

from . import create_app
from .config import load_settings
from .errors import PortBindError, StorageError
from .logging_config import configure_logging
from .server import serve
from .services.port_guard import PortLifecycleGuard

logger = logging.getLogger("upload.main")


def main() -> int:
    configure_logging()
    settings = load_settings()

    guard = PortLifecycleGuard(
        settings.host,
        settings.port,
        timeout=settings.port_release_timeout_seconds,
        interval=settings.port_poll_interval_seconds,
        kill_holder=settings.kill_port_holder,
    )
    try:
        guard.ensure_available()
    except PortBindError as exc:
        logger.critical("Port %s is still busy: %s", settings.port, exc)
        return 1

    app = create_app(settings)
    try:
        app.extensions["services"].storage.ensure_root()
    except StorageError as exc:
        logger.critical("%s", exc)
        return 1

    serve(app, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
