from __future__ import annotations

from .asset import (
    HLS_DIR_SUFFIX,
    MANIFEST_NAME,
    AssetState,
    VideoAsset,
    hls_dir_name,
    manifest_rel_path,
    normalize_asset_id,
    parse_duration,
    public_video_url,
    thumbnail_url,
)

__all__ = [
    "HLS_DIR_SUFFIX",
    "MANIFEST_NAME",
    "AssetState",
    "VideoAsset",
    "hls_dir_name",
    "manifest_rel_path",
    "normalize_asset_id",
    "parse_duration",
    "public_video_url",
    "thumbnail_url",
]
