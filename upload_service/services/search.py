from __future__ import annotations

import logging

import requests

from ..errors import DownstreamNotifyError

logger = logging.getLogger("upload.search")


class SearchClient:
    """Client for the search service's ingestion endpoint."""

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

    def index_video(self, document: dict) -> str:
        url = f"{self.base_url}/index"
        try:
            resp = self._session.post(
                url,
                headers={"Content-Type": "application/json"},
                json=document,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DownstreamNotifyError("search", str(exc)) from exc
        if resp.status_code >= 400:
            raise DownstreamNotifyError(
                "search", f"HTTP {resp.status_code}: {resp.text[:500]}", resp.status_code
            )
        return resp.text
