from __future__ import annotations

import logging
import os

from ..errors import InvalidRequest

logger = logging.getLogger("upload.filesystem")

COPY_CHUNK_BYTES = 1024 * 1024


def _safe_join(base: str, *parts: str) -> str | None:
    base_abs = os.path.abspath(base)
    target = os.path.abspath(os.path.join(base_abs, *parts))
    if target == base_abs or target.startswith(base_abs + os.sep):
        return target
    return None


def _copy_stream_with_limit(src, dst, max_bytes: int | None) -> int:
    total = 0
    while True:
        chunk = src.read(COPY_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if max_bytes and total > max_bytes:
            raise InvalidRequest("File exceeds the maximum allowed size", 413)
        dst.write(chunk)
    return total


def _remove_quietly(path: str | None) -> None:
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Failed to remove %s: %s", path, exc)
