from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import httpx

from .config import DEFAULT_RELEASES_URL, DEFAULT_TIMEOUT_S
from .errors import GdvmError, GithubHTTPError, NotFoundError

logger = logging.getLogger(__name__)

PER_PAGE = 100
CHUNK_SIZE = 1024 * 64


class GithubClient:
    """
    Reads the upstream releases list and downloads release assets.

    Both calls go through one ``httpx.Client``; a 404 is reported as
    ``NotFoundError`` so callers can tell "nothing there" apart from failures.
    """

    def __init__(
        self,
        *,
        releases_url: str = DEFAULT_RELEASES_URL,
        token: str | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.releases_url = releases_url
        self.token = token
        self.timeout_s = timeout_s

        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.Client(timeout=timeout_s, follow_redirects=True, headers=headers, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "GithubClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        logger.debug("GET %s", url)
        try:
            resp = self._http.get(url, params=params)
        except httpx.HTTPError as e:
            raise GdvmError(f"Request failed: {e}") from e
        if resp.status_code == 404:
            raise NotFoundError(f"Not found: {url}")
        if resp.status_code >= 400:
            raise GithubHTTPError(resp.status_code, resp.text)
        return resp

    def list_releases(self) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        url: str | None = self.releases_url
        params: dict[str, Any] | None = {"per_page": PER_PAGE}
        while url:
            resp = self._get(url, params=params)
            page = resp.json()
            if not isinstance(page, list):
                raise GdvmError(f"Unexpected releases payload from {url}")
            items.extend(r for r in page if isinstance(r, dict))
            # The "next" link already carries the query string.
            url = resp.links.get("next", {}).get("url")
            params = None
        logger.debug("Fetched %d releases", len(items))
        return items

    def download(self, url: str, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        part = dest.with_name(dest.name + ".part")
        logger.debug("Streaming %s to %s", url, part)
        try:
            with self._http.stream("GET", url) as resp:
                if resp.status_code == 404:
                    raise NotFoundError(f"Not found: {url}")
                if resp.status_code >= 400:
                    resp.read()
                    raise GithubHTTPError(resp.status_code, resp.text)
                with part.open("wb") as out:
                    for chunk in resp.iter_bytes(CHUNK_SIZE):
                        out.write(chunk)
        except httpx.HTTPError as e:
            part.unlink(missing_ok=True)
            raise GdvmError(f"Download failed: {e}") from e
        except GdvmError:
            part.unlink(missing_ok=True)
            raise
        os.replace(part, dest)
