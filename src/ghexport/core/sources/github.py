"""
GitHub REST data source using httpx.

Provides async fetching with:
- Link-header pagination with a page cap
- Automatic retry with exponential backoff on transport errors and 5xx
- Server-side ``since`` filtering where the API supports it, client-side otherwise
- Flat, normalized record dictionaries per export type
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ghexport import __app_name__, __version__
from ghexport.core.config.models import ExportType, GitHubConfig
from ghexport.core.output import format_timestamp

from .base import (
    DataSource,
    DataSourceError,
    Record,
    RepositoryNotFoundError,
    TransientSourceError,
)

logger = logging.getLogger(__name__)


def parse_github_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp as returned by the GitHub API."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _login(user: dict[str, Any] | None) -> str | None:
    if not user:
        return None
    return user.get("login")


def _on_or_after(value: str | None, since: datetime | None) -> bool:
    if since is None:
        return True
    parsed = parse_github_datetime(value)
    return parsed is not None and parsed >= since


class GitHubDataSource(DataSource):
    """GitHub REST v3 data source.

    Features:
    - Persistent connection pooling
    - Optional bearer token header
    - Retry with exponential backoff
    """

    def __init__(
        self,
        api_url: str = "https://api.github.com",
        token: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        per_page: int = 100,
        max_pages: int = 50,
        retry_min_wait: float = 1.0,
        retry_max_wait: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the GitHub data source.

        Args:
            api_url: Base URL of the REST API
            token: API token sent as ``Authorization: Bearer``
            timeout: Request timeout in seconds
            max_retries: Maximum attempts per request
            per_page: Items per page (GitHub caps this at 100)
            max_pages: Maximum pages fetched per dataset
            retry_min_wait: Minimum backoff between attempts in seconds
            retry_max_wait: Maximum backoff between attempts in seconds
            client: Pre-built client (not closed by this source)
        """
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.per_page = per_page
        self.max_pages = max_pages
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait

        self.default_headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": f"{__app_name__}/{__version__}",
        }
        if token:
            self.default_headers["Authorization"] = f"Bearer {token}"

        self._client = client
        self._owns_client = client is None

        self._fetchers: dict[ExportType, Callable[[str, datetime | None], Any]] = {
            ExportType.CONTRIBUTORS: self._fetch_contributors,
            ExportType.COMMITS: self._fetch_commits,
            ExportType.ISSUES: self._fetch_issues,
            ExportType.PRS: self._fetch_prs,
            ExportType.RELEASES: self._fetch_releases,
            ExportType.BRANCHES: self._fetch_branches,
        }

    @classmethod
    def from_config(cls, config: GitHubConfig) -> "GitHubDataSource":
        return cls(
            api_url=config.api_url,
            token=config.token,
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
            per_page=config.per_page,
            max_pages=config.max_pages,
        )

    @property
    def name(self) -> str:
        return "github"

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers=self.default_headers,
                limits=httpx.Limits(
                    max_connections=20,
                    max_keepalive_connections=10,
                ),
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # -------------------------------------------------------------------------
    # HTTP plumbing
    # -------------------------------------------------------------------------

    def _check_response(self, response: httpx.Response, repository: str) -> None:
        status = response.status_code
        if status < 400:
            return

        message = response.reason_phrase
        try:
            body = response.json()
            if isinstance(body, dict) and body.get("message"):
                message = body["message"]
        except ValueError:
            pass

        if status == 404:
            raise RepositoryNotFoundError(
                f"Repository not found: {repository}",
                repository=repository,
                status_code=status,
            )
        if status >= 500:
            raise TransientSourceError(
                f"GitHub returned {status}: {message}",
                repository=repository,
                status_code=status,
            )
        raise DataSourceError(
            f"GitHub returned {status}: {message}",
            repository=repository,
            status_code=status,
        )

    async def _request(
        self,
        url: str,
        params: dict[str, Any] | None,
        repository: str,
    ) -> httpx.Response:
        client = await self._ensure_client()

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=self.retry_min_wait, max=self.retry_max_wait),
            retry=retry_if_exception_type(TransientSourceError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                try:
                    response = await client.get(url, params=params, headers=self.default_headers)
                except httpx.TransportError as e:
                    raise TransientSourceError(
                        f"Transport error: {e}",
                        repository=repository,
                        cause=e,
                    ) from e

                self._check_response(response, repository)
                return response

        raise DataSourceError(f"No attempt made for {url}", repository=repository)

    async def _paginate(
        self,
        path: str,
        repository: str,
        params: dict[str, Any] | None = None,
        stop_when: Callable[[list[dict[str, Any]]], bool] | None = None,
    ) -> list[dict[str, Any]]:
        """Collect items across ``Link: rel="next"`` pages.

        Args:
            path: API path below the base URL
            repository: Repository identifier for error context
            params: Query parameters for the first page
            stop_when: Called with each page; True stops pagination early
        """
        url: str | None = f"{self.api_url}{path}"
        query: dict[str, Any] | None = {**(params or {}), "per_page": self.per_page}
        items: list[dict[str, Any]] = []
        pages = 0

        while url and pages < self.max_pages:
            response = await self._request(url, query, repository)
            pages += 1

            # Empty repositories answer 204 on some list endpoints
            if response.status_code == 204 or not response.content:
                break

            try:
                page = response.json()
            except ValueError as e:
                raise DataSourceError(
                    f"Invalid JSON from {url}",
                    repository=repository,
                    status_code=response.status_code,
                    cause=e,
                ) from e

            if not isinstance(page, list):
                raise DataSourceError(
                    f"Expected a JSON array from {url}",
                    repository=repository,
                    status_code=response.status_code,
                )

            items.extend(page)

            if stop_when is not None and stop_when(page):
                break

            # The next link already carries the query string
            url = response.links.get("next", {}).get("url")
            query = None

        if url and pages >= self.max_pages:
            logger.warning(
                "Stopped %s after %d pages (max_pages); results may be incomplete",
                repository,
                pages,
            )

        return items

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    async def fetch(
        self,
        repository: str,
        export_type: ExportType,
        since: datetime | None = None,
    ) -> list[Record]:
        fetcher = self._fetchers[export_type]
        if since is not None:
            logger.debug("Fetching %s for %s since %s", export_type.value, repository, format_timestamp(since))
        records = await fetcher(repository, since)
        logger.debug("Fetched %d %s records for %s", len(records), export_type.value, repository)
        return records

    async def _fetch_contributors(self, repository: str, since: datetime | None) -> list[Record]:
        if since is None:
            raw = await self._paginate(f"/repos/{repository}/contributors", repository)
            return [
                {
                    "login": c.get("login") or c.get("name") or "anonymous",
                    "contributions": c.get("contributions", 0),
                    "type": c.get("type"),
                    "html_url": c.get("html_url"),
                }
                for c in raw
            ]

        # The contributors endpoint has no date filter; count commit authors instead
        commits = await self._paginate(
            f"/repos/{repository}/commits",
            repository,
            params={"since": format_timestamp(since)},
        )
        counts: Counter[str] = Counter()
        urls: dict[str, str | None] = {}
        for c in commits:
            author = c.get("author") or {}
            login = author.get("login") or (c.get("commit", {}).get("author") or {}).get("name") or "unknown"
            counts[login] += 1
            urls.setdefault(login, author.get("html_url"))

        ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0].lower()))
        return [
            {
                "login": login,
                "contributions": count,
                "type": "User",
                "html_url": urls.get(login),
            }
            for login, count in ordered
        ]

    async def _fetch_commits(self, repository: str, since: datetime | None) -> list[Record]:
        params = {"since": format_timestamp(since)} if since else None
        raw = await self._paginate(f"/repos/{repository}/commits", repository, params=params)

        records = []
        for c in raw:
            commit = c.get("commit") or {}
            author = commit.get("author") or {}
            message = commit.get("message") or ""
            records.append({
                "sha": c.get("sha"),
                "author": _login(c.get("author")) or author.get("name"),
                "date": author.get("date"),
                "message": message.splitlines()[0] if message else "",
                "html_url": c.get("html_url"),
            })
        return records

    async def _fetch_issues(self, repository: str, since: datetime | None) -> list[Record]:
        params: dict[str, Any] = {"state": "all", "sort": "updated", "direction": "desc"}
        if since:
            params["since"] = format_timestamp(since)
        raw = await self._paginate(f"/repos/{repository}/issues", repository, params=params)

        return [
            {
                "number": i.get("number"),
                "title": i.get("title"),
                "state": i.get("state"),
                "author": _login(i.get("user")),
                "labels": [label.get("name") for label in i.get("labels") or []],
                "created_at": i.get("created_at"),
                "updated_at": i.get("updated_at"),
                "closed_at": i.get("closed_at"),
                "html_url": i.get("html_url"),
            }
            for i in raw
            if "pull_request" not in i
        ]

    async def _fetch_prs(self, repository: str, since: datetime | None) -> list[Record]:
        def older_page(page: list[dict[str, Any]]) -> bool:
            # Sorted by updated desc: once a page ends before the cutoff, stop
            return bool(page) and not _on_or_after(page[-1].get("updated_at"), since)

        raw = await self._paginate(
            f"/repos/{repository}/pulls",
            repository,
            params={"state": "all", "sort": "updated", "direction": "desc"},
            stop_when=older_page if since else None,
        )

        return [
            {
                "number": p.get("number"),
                "title": p.get("title"),
                "state": p.get("state"),
                "author": _login(p.get("user")),
                "draft": bool(p.get("draft")),
                "created_at": p.get("created_at"),
                "updated_at": p.get("updated_at"),
                "merged_at": p.get("merged_at"),
                "html_url": p.get("html_url"),
            }
            for p in raw
            if _on_or_after(p.get("updated_at"), since)
        ]

    async def _fetch_releases(self, repository: str, since: datetime | None) -> list[Record]:
        raw = await self._paginate(f"/repos/{repository}/releases", repository)

        return [
            {
                "tag_name": r.get("tag_name"),
                "name": r.get("name"),
                "author": _login(r.get("author")),
                "draft": bool(r.get("draft")),
                "prerelease": bool(r.get("prerelease")),
                "created_at": r.get("created_at"),
                "published_at": r.get("published_at"),
                "html_url": r.get("html_url"),
            }
            for r in raw
            if _on_or_after(r.get("published_at") or r.get("created_at"), since)
        ]

    async def _fetch_branches(self, repository: str, since: datetime | None) -> list[Record]:
        # Branches carry no timestamps; every run lists them all
        raw = await self._paginate(f"/repos/{repository}/branches", repository)

        return [
            {
                "name": b.get("name"),
                "protected": bool(b.get("protected")),
                "sha": (b.get("commit") or {}).get("sha"),
            }
            for b in raw
        ]
