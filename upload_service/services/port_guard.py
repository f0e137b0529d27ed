from __future__ import annotations

import logging
import shutil
import socket
import subprocess
import time

from ..errors import PortBindError

logger = logging.getLogger("upload.port_guard")

FUSER_TIMEOUT_SECONDS = 5


def release_port(port: int) -> bool:
    """Best-effort kill of whatever holds ``port``. Never raises."""
    fuser = shutil.which("fuser")
    if not fuser:
        logger.info("fuser not available, not killing holders of port %s", port)
        return False
    try:
        result = subprocess.run(
            [fuser, "-k", f"{port}/tcp"],
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=FUSER_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("fuser failed for port %s: %s", port, exc)
        return False
    # fuser exits 1 when nothing held the port.
    return result.returncode == 0


def port_is_free(host: str, port: int) -> bool:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(1)
    except OSError:
        return False
    finally:
        sock.close()
    return True


def wait_for_port_release(host: str, port: int, timeout: float, interval: float = 0.3) -> None:
    deadline = time.monotonic() + timeout
    while True:
        if port_is_free(host, port):
            return
        if time.monotonic() >= deadline:
            raise PortBindError(f"port {port} did not free up in time")
        time.sleep(max(0.0, min(interval, deadline - time.monotonic())))


class PortLifecycleGuard:
    """Makes restarts deterministic by clearing the listening port before binding."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        timeout: float = 3.0,
        interval: float = 0.3,
        kill_holder: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.interval = interval
        self.kill_holder = kill_holder

    def ensure_available(self) -> None:
        if self.kill_holder:
            logger.info("Cleaning any process using port %s", self.port)
            release_port(self.port)
        wait_for_port_release(self.host, self.port, self.timeout, self.interval)
        logger.info("Port %s is free", self.port)
