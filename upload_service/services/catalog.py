from __future__ import annotations

import logging

import requests

from ..errors import DownstreamNotifyError

logger = logging.getLogger("upload.catalog")

DUPLICATE_MARKERS = ("already exists", "duplicate")


def _is_duplicate_response(resp: requests.Response) -> bool:
    if resp.status_code == 409:
        return True
    if resp.status_code >= 400:
        return False
    try:
        data = resp.json()
    except ValueError:
        return False
    status = str(data.get("status") or "") if isinstance(data, dict) else ""
    return any(marker in status.lower() for marker in DUPLICATE_MARKERS)


class CatalogClient:
    """
    Client for the catalog (social) service.

    ``POST /init`` is idempotent on the video id: the catalog answers a repeated
    id with a duplicate-key response, which is reported here as success.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float = 10,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def init_video(self, payload: dict) -> dict:
        """Creates the catalog record for a video. Returns the decoded response body."""
        url = f"{self.base_url}/init"
        try:
            resp = self._session.post(
                url,
                headers={"Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DownstreamNotifyError("catalog", str(exc)) from exc

        if _is_duplicate_response(resp):
            logger.info(
                "Catalog already has %s, skipping init", payload.get("id"),
                extra={"asset_id": payload.get("id")},
            )
            return {"status": "ok (already exists)", "video": payload.get("id"), "duplicate": True}
        if resp.status_code >= 400:
            raise DownstreamNotifyError(
                "catalog", f"HTTP {resp.status_code}: {resp.text[:500]}", resp.status_code
            )
        try:
            data = resp.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def list_videos(self) -> list[dict]:
        """Fetches the public video listing."""
        url = f"{self.base_url}/videos"
        try:
            resp = self._session.get(url, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise DownstreamNotifyError("catalog", f"listing failed: {exc}") from exc
        if data is None:
            return []
        if not isinstance(data, list):
            raise DownstreamNotifyError("catalog", "listing is not a JSON array")
        return [item for item in data if isinstance(item, dict)]
