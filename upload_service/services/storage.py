from __future__ import annotations

import logging
import os
import secrets

from ..errors import InvalidRequest, StorageError
from ..metrics import UPLOAD_BYTES
from ..utils.filesystem import _copy_stream_with_limit, _remove_quietly, _safe_join

logger = logging.getLogger("upload.storage")


class StorageWriter:
    """
    Writes uploaded originals to the shared upload root under their asset id.

    The file is streamed to a private temporary name next to the target and
    renamed into place, so a failed write never leaves a file at
    ``<upload_root>/<id>``. An existing file with the same id is replaced.
    """

    def __init__(self, upload_root: str, *, max_bytes: int | None = None) -> None:
        self.upload_root = os.path.abspath(upload_root)
        self.max_bytes = max_bytes or None

    def ensure_root(self) -> None:
        try:
            os.makedirs(self.upload_root, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create upload root: {exc}") from exc

    def path_for(self, asset_id: str) -> str:
        target = _safe_join(self.upload_root, asset_id)
        if not target or os.path.dirname(target) != self.upload_root:
            raise InvalidRequest("Invalid file name")
        return target

    def save(self, stream, asset_id: str) -> tuple[str, int]:
        target = self.path_for(asset_id)
        self.ensure_root()

        tmp_path = f"{target}.{secrets.token_hex(6)}.uploading"
        if hasattr(stream, "seek"):
            try:
                stream.seek(0)
            except (OSError, ValueError):
                pass
        try:
            with open(tmp_path, "wb") as handle:
                size = _copy_stream_with_limit(stream, handle, self.max_bytes)
            os.replace(tmp_path, target)
        except InvalidRequest:
            _remove_quietly(tmp_path)
            raise
        except OSError as exc:
            _remove_quietly(tmp_path)
            logger.error("Failed to store %s: %s", asset_id, exc)
            raise StorageError("Failed to save video") from exc

        if UPLOAD_BYTES is not None:
            UPLOAD_BYTES.inc(size)
        logger.info("Stored %s (%d bytes)", asset_id, size, extra={"asset_id": asset_id})
        return target, size
