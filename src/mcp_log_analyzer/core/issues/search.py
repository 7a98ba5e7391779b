"""GitHub issue search client."""

from __future__ import annotations

import logging
import os
import re
import time
from typing import Any, Protocol

import httpx

from .models import GitHubIssue

logger = logging.getLogger(__name__)

GITHUB_SEARCH_URL = "https://api.github.com/search/issues"
CACHE_TTL_SECONDS = 5 * 60

_REPO_FROM_API_URL_RE = re.compile(r"repos/([^/]+/[^/]+)$")


class IssueSearch(Protocol):
    async def search(
        self, terms: str, repository: str | None = None, limit: int = 3
    ) -> list[GitHubIssue]: ...


def build_search_query(terms: str, repository: str | None = None) -> str:
    query = f"{terms} is:issue"
    if repository:
        query = f"repo:{repository} {query}"
    return query


def _issue_from_item(item: dict[str, Any], repository: str | None) -> GitHubIssue:
    m = _REPO_FROM_API_URL_RE.search(item.get("repository_url") or "")
    return GitHubIssue(
        number=item["number"],
        title=item["title"],
        url=item["html_url"],
        state=item["state"],
        repository=m.group(1) if m else (repository or "unknown"),
        comments=item.get("comments") or 0,
        created_at=item.get("created_at") or "",
        labels=[label["name"] for label in item.get("labels") or []],
    )


class GitHubIssueSearch:
    """Search GitHub issues, caching results per query for a few minutes.

    Network or API errors are logged and produce an empty list.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        ttl_seconds: float = CACHE_TTL_SECONDS,
    ) -> None:
        self._token = token if token is not None else os.getenv("GITHUB_TOKEN")
        self._client = client
        self._ttl = ttl_seconds
        self._cache: dict[str, tuple[float, list[GitHubIssue]]] = {}

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "mcp-log-analyzer",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get(self, params: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(GITHUB_SEARCH_URL, params=params, headers=self._headers())
        async with httpx.AsyncClient(timeout=30.0) as client:
            return await client.get(GITHUB_SEARCH_URL, params=params, headers=self._headers())

    async def search(
        self, terms: str, repository: str | None = None, limit: int = 3
    ) -> list[GitHubIssue]:
        query = build_search_query(terms, repository)

        cache_key = query.lower()
        cached = self._cache.get(cache_key)
        if cached is not None and time.monotonic() - cached[0] < self._ttl:
            return cached[1]

        try:
            resp = await self._get({"q": query, "per_page": limit, "sort": "relevance"})
        except httpx.RequestError as e:
            logger.warning("GitHub issue search failed: %s", e)
            return []

        if resp.status_code != 200:
            logger.warning("GitHub API error: %s", resp.status_code)
            return []

        try:
            items = resp.json().get("items") or []
            issues = [_issue_from_item(item, repository) for item in items]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Unexpected GitHub search payload: %s", e)
            return []

        self._cache[cache_key] = (time.monotonic(), issues)
        return issues
