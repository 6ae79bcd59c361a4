"""
GitHub Release Adapter

Architectural Intent:
- Implements ReleaseSourcePort against the GitHub REST releases API
- Uses stdlib urllib for the HTTP layer, run in the default executor
- Release documents are decoded into typed Release values, never scraped

Design Decisions:
- Rate limiting is reported as RateLimitError and never retried here
- fetch_by_version tries the tag "v<version>" before the bare "<version>"
- An optional token raises the anonymous API quota
"""

import asyncio
import json
import logging
import socket
from typing import Any, List, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from fleetwright.domain.errors import (
    FetchError,
    OperationTimeoutError,
    ParseError,
    RateLimitError,
)
from fleetwright.domain.ports.release_source_port import ReleaseSourcePort
from fleetwright.domain.value_objects.release import Release

logger = logging.getLogger(__name__)

USER_AGENT = "fleetwright"


class _NotFound(FetchError):
    pass


def _is_rate_limited(error: HTTPError, body: str) -> bool:
    if error.code not in (403, 429):
        return False
    remaining = error.headers.get("X-RateLimit-Remaining") if error.headers else None
    return remaining == "0" or "rate limit" in body.lower()


class GitHubReleaseAdapter(ReleaseSourcePort):
    """Adapter implementing ReleaseSourcePort via the GitHub API."""

    def __init__(
        self,
        repo: str,
        artifact_name: str,
        api_url: str = "https://api.github.com",
        raw_url: str = "https://raw.githubusercontent.com",
        timeout: float = 30.0,
        token: str = "",
    ) -> None:
        self.repo = repo
        self.artifact_name = artifact_name
        self.api_url = api_url.rstrip("/")
        self.raw_url = raw_url.rstrip("/")
        self.timeout = timeout
        self._token = token

    def _request(self, url: str, accept: str) -> Request:
        headers = {"User-Agent": USER_AGENT, "Accept": accept}
        if self._token and url.startswith(self.api_url):
            headers["Authorization"] = f"Bearer {self._token}"
        return Request(url, headers=headers)

    def _fetch_blocking(self, url: str, accept: str) -> bytes:
        try:
            with urlopen(self._request(url, accept), timeout=self.timeout) as response:
                return response.read()
        except HTTPError as e:
            body = e.read().decode("utf-8", errors="replace") if e.fp else ""
            if _is_rate_limited(e, body):
                raise RateLimitError(
                    "GitHub API rate limit exceeded; wait or configure a release token"
                ) from e
            if e.code == 404:
                raise _NotFound(f"Not found: {url}") from e
            raise FetchError(f"HTTP {e.code} fetching {url}") from e
        except (socket.timeout, TimeoutError) as e:
            raise OperationTimeoutError(f"Timed out fetching {url}") from e
        except URLError as e:
            if isinstance(e.reason, (socket.timeout, TimeoutError)):
                raise OperationTimeoutError(f"Timed out fetching {url}") from e
            raise FetchError(f"Cannot fetch {url}: {e.reason}") from e

    async def _fetch(self, url: str, accept: str = "application/vnd.github+json") -> bytes:
        logger.debug("GET %s", url)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._fetch_blocking, url, accept)

    async def _fetch_json(self, path: str) -> Any:
        raw = await self._fetch(f"{self.api_url}/repos/{self.repo}{path}")
        try:
            return json.loads(raw)
        except ValueError as e:
            raise ParseError(f"Invalid JSON from release API: {e}") from e

    def _decode(self, document: Any) -> Release:
        return Release.from_document(
            document,
            repo=self.repo,
            artifact_name=self.artifact_name,
            raw_url=self.raw_url,
        )

    async def fetch_latest(self) -> Release:
        try:
            document = await self._fetch_json("/releases/latest")
        except _NotFound as e:
            raise FetchError(f"No published releases for {self.repo}") from e
        return self._decode(document)

    async def fetch_by_version(self, version: str) -> Release:
        bare = version[1:] if version[:1] in ("v", "V") else version
        last_error: Optional[FetchError] = None
        for tag in (f"v{bare}", bare):
            try:
                return self._decode(await self._fetch_json(f"/releases/tags/{tag}"))
            except _NotFound as e:
                last_error = e
        raise FetchError(f"Release {version} not found in {self.repo}") from last_error

    async def list_releases(self) -> List[Release]:
        documents = await self._fetch_json("/releases")
        if not isinstance(documents, list):
            raise ParseError("Release list must be a JSON array")

        releases = []
        for document in documents:
            if isinstance(document, dict) and document.get("draft"):
                continue
            try:
                releases.append(self._decode(document))
            except ParseError as e:
                logger.warning("Skipping malformed release: %s", e)
        return sorted(releases, key=lambda r: r.parsed_version, reverse=True)

    async def download(self, url: str) -> bytes:
        data = await self._fetch(url, accept="application/octet-stream")
        if not data:
            raise FetchError(f"Downloaded artifact is empty: {url}")
        return data
