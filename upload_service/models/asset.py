from __future__ import annotations

import enum
import math
import os
from dataclasses import asdict, dataclass
from urllib.parse import quote

HLS_DIR_SUFFIX = "_hls"
MANIFEST_NAME = "index.m3u8"


class AssetState(str, enum.Enum):
    # Only the manifest on disk is observable; a failed transcode stays PROCESSING.
    PROCESSING = "processing"
    READY = "ready"


def normalize_asset_id(filename: str | None) -> str | None:
    """Reduce a client-supplied filename to its last path segment."""
    name = str(filename or "").replace("\\", "/").split("/")[-1].strip()
    if not name or name in {".", ".."}:
        return None
    if "\x00" in name:
        return None
    return name


def hls_dir_name(filename: str) -> str:
    # Stem only: clip.mp4 and clip.mov share clip_hls.
    base = os.path.basename(filename)
    stem, _ext = os.path.splitext(base)
    return f"{stem}{HLS_DIR_SUFFIX}"


def manifest_rel_path(filename: str) -> str:
    return f"{hls_dir_name(filename)}/{MANIFEST_NAME}"


def parse_duration(value) -> float:
    if value is None:
        return 0.0
    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(parsed):
        return 0.0
    return parsed


def public_video_url(public_base_url: str, asset_id: str) -> str:
    return f"{public_base_url.rstrip('/')}/uploads/{quote(asset_id)}"


def thumbnail_url(thumbnail_base_url: str, asset_id: str) -> str:
    return f"{thumbnail_base_url.rstrip('/')}/{quote(asset_id)}/640/360"


@dataclass(frozen=True)
class VideoAsset:
    id: str
    raw_path: str
    title: str = ""
    description: str = ""
    author: str = ""
    duration: float = 0.0

    @property
    def upload_root(self) -> str:
        return os.path.dirname(self.raw_path)

    @property
    def hls_dir(self) -> str:
        return os.path.join(self.upload_root, hls_dir_name(self.id))

    @property
    def manifest_path(self) -> str:
        return os.path.join(self.hls_dir, MANIFEST_NAME)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "VideoAsset":
        return cls(
            id=str(data["id"]),
            raw_path=str(data["raw_path"]),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            author=str(data.get("author") or ""),
            duration=parse_duration(data.get("duration")),
        )
