from __future__ import annotations

import logging
import os
import subprocess
import threading
import time

from ..config import Settings
from ..errors import TranscodeError
from ..metrics import VIDEO_TRANSCODE_COUNT, VIDEO_TRANSCODE_LATENCY
from ..models import MANIFEST_NAME, hls_dir_name

logger = logging.getLogger("upload.transcoder")


def hls_output_dir(raw_path: str) -> str:
    return os.path.join(os.path.dirname(raw_path), hls_dir_name(raw_path))


def manifest_path_for(raw_path: str) -> str:
    return os.path.join(hls_output_dir(raw_path), MANIFEST_NAME)


def is_ready(raw_path: str) -> bool:
    """The manifest is the only readiness signal; there is no status store."""
    return os.path.isfile(manifest_path_for(raw_path))


class Transcoder:
    def produce_manifest(self, raw_path: str) -> str:
        """Produce an HLS manifest for raw_path and return its path, or raise TranscodeError."""
        raise NotImplementedError


class FfmpegTranscoder(Transcoder):
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def build_command(self, raw_path: str, out_dir: str) -> list[str]:
        s = self.settings
        return [
            s.ffmpeg_bin,
            "-hide_banner",
            "-nostdin",
            "-loglevel",
            "error",
            "-y",
            "-i",
            raw_path,
            "-c:v",
            s.hls_video_codec,
            "-preset",
            s.hls_h264_preset,
            "-profile:v",
            s.hls_h264_profile,
            "-level",
            s.hls_h264_level,
            "-c:a",
            "aac",
            "-b:a",
            s.hls_audio_bitrate,
            "-hls_time",
            str(s.hls_segment_seconds),
            "-hls_playlist_type",
            "vod",
            "-hls_flags",
            "independent_segments",
            "-hls_segment_type",
            "mpegts",
            "-hls_list_size",
            "0",
            os.path.join(out_dir, MANIFEST_NAME),
        ]

    def produce_manifest(self, raw_path: str) -> str:
        out_dir = hls_output_dir(raw_path)
        try:
            os.makedirs(out_dir, exist_ok=True)
        except OSError as exc:
            raise TranscodeError(f"Cannot create {out_dir}: {exc}") from exc

        cmd = self.build_command(raw_path, out_dir)
        try:
            result = subprocess.run(
                cmd,
                check=False,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.settings.ffmpeg_timeout,
            )
        except FileNotFoundError as exc:
            raise TranscodeError(f"ffmpeg not found: {self.settings.ffmpeg_bin}") from exc
        except subprocess.TimeoutExpired as exc:
            raise TranscodeError(f"ffmpeg timed out after {exc.timeout}s") from exc

        if result.returncode != 0:
            err = (result.stderr or b"").decode(errors="replace").strip()
            raise TranscodeError(
                f"ffmpeg exited with {result.returncode}: {err[-2000:]}",
                returncode=result.returncode,
            )
        return os.path.join(out_dir, MANIFEST_NAME)


class TranscodeWorker:
    """
    Runs a Transcoder for one stored upload, detached from the request.

    Failures are logged and counted, never raised: by the time this runs the
    uploader already has a response. Partial segments from a failed run stay
    on disk and no marker is written, so the asset simply never becomes ready.
    """

    def __init__(self, transcoder: Transcoder, *, max_concurrency: int = 0) -> None:
        self.transcoder = transcoder
        self._sema = threading.BoundedSemaphore(max_concurrency) if max_concurrency > 0 else None

    def run(self, raw_path: str) -> bool:
        asset_id = os.path.basename(raw_path)
        log_extra = {"asset_id": asset_id}
        start_time = time.perf_counter()
        try:
            if self._sema is not None:
                with self._sema:
                    manifest = self.transcoder.produce_manifest(raw_path)
            else:
                manifest = self.transcoder.produce_manifest(raw_path)
        except TranscodeError as exc:
            if VIDEO_TRANSCODE_COUNT:
                VIDEO_TRANSCODE_COUNT.labels("error").inc()
            logger.error("FFmpeg error for %s: %s", raw_path, exc, extra=log_extra)
            return False
        except Exception:
            if VIDEO_TRANSCODE_COUNT:
                VIDEO_TRANSCODE_COUNT.labels("error").inc()
            logger.exception("Transcode crashed for %s", raw_path, extra=log_extra)
            return False

        if VIDEO_TRANSCODE_LATENCY:
            VIDEO_TRANSCODE_LATENCY.observe(time.perf_counter() - start_time)
        if VIDEO_TRANSCODE_COUNT:
            VIDEO_TRANSCODE_COUNT.labels("success").inc()
        logger.info("HLS ready for %s at %s", raw_path, manifest, extra=log_extra)
        return True
