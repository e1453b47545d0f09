"""Commit metadata and diff retrieval from the GitHub REST API."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from gitreplay.core import Commit, FetchError
from gitreplay.settings import DEFAULT_API_URL

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/vnd.github.v3+json"
DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"

# Diff bodies are decoded byte-per-character so file content round-trips
DIFF_ENCODING = "latin-1"


class GitHubDiffFetcher:
    """Fetch commits and per-commit unified diffs for one repository.

    Metadata requests are retried for as long as the body is not usable
    JSON (including empty bodies and server errors). There is no cap unless
    ``max_retries`` is given, and no pause unless ``retry_delay`` is set.
    Diff requests are never retried.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        retry_delay: float = 0.0,
        max_retries: int | None = None,
        client: httpx.Client | None = None,
    ):
        self.owner = owner
        self.repo = repo
        self.token = token
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=api_url,
            timeout=timeout,
            follow_redirects=True,
        )

    def __enter__(self) -> "GitHubDiffFetcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this fetcher created it."""
        if self._owns_client:
            self._client.close()

    @property
    def repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    def get_headers(self, accept: str) -> dict[str, str]:
        """Build request headers for the given media type."""
        headers = {"Accept": accept}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def fetch_head(self) -> Commit:
        """Fetch the most recent commit on the default branch."""
        data = self._get_json(f"{self.repo_path}/commits", params={"per_page": 1}, expect=list)
        if not data:
            raise FetchError(f"Repository {self.owner}/{self.repo} has no commits")
        return Commit.from_api(data[0])

    def fetch_commit(self, sha: str) -> Commit:
        """Fetch metadata for a single commit."""
        data = self._get_json(f"{self.repo_path}/commits/{sha}", expect=dict)
        return Commit.from_api(data)

    def fetch_diff(self, sha: str) -> str:
        """Fetch the unified diff introduced by a commit.

        The body is returned as-is, even when empty.
        """
        response = self._request(f"{self.repo_path}/commits/{sha}", DIFF_MEDIA_TYPE)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"HTTP error {e.response.status_code} fetching diff for {sha}"
            ) from e
        return response.content.decode(DIFF_ENCODING)

    def _request(
        self, path: str, accept: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        logger.debug("GET %s (%s)", path, accept)
        try:
            return self._client.get(path, params=params, headers=self.get_headers(accept))
        except httpx.TimeoutException as e:
            raise FetchError(f"Timeout fetching {path}") from e
        except httpx.RequestError as e:
            raise FetchError(f"Network error fetching {path} - {e}") from e

    def _get_json(
        self, path: str, params: dict[str, Any] | None = None, expect: type = dict
    ) -> Any:
        attempts = 0
        while True:
            attempts += 1
            response = self._request(path, JSON_MEDIA_TYPE, params)
            if response.status_code >= 500:
                reason = f"server error {response.status_code}"
            else:
                try:
                    response.raise_for_status()
                except httpx.HTTPStatusError as e:
                    raise FetchError(
                        f"HTTP error {e.response.status_code} fetching {path}"
                    ) from e
                try:
                    data = response.json()
                except ValueError:
                    reason = "response body is not JSON"
                else:
                    if isinstance(data, expect):
                        return data
                    reason = f"expected a JSON {expect.__name__}, got {type(data).__name__}"

            if self.max_retries is not None and attempts > self.max_retries:
                raise FetchError(f"Giving up on {path} after {attempts} attempts: {reason}")
            logger.warning("Wrong response from %s (%s), retrying", path, reason)
            if self.retry_delay:
                time.sleep(self.retry_delay)
