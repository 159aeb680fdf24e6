"""Google Search Console integration for per-query search analytics.

Authenticates with a service account (google-auth) and calls the
searchAnalytics REST endpoint over httpx. Data is fetched once per page URL
filter and aggregated by normalized query text.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import quote

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from scamwatch.config import settings
from scamwatch.core.exceptions import (
    AnalyticsAuthError,
    ExternalAPIError,
    RateLimitExceededError,
)
from scamwatch.services.analysis_types import DateRange, QueryMetric

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FetchResult:
    """Aggregated metrics plus warnings for sources that failed."""

    metrics: list[QueryMetric] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metrics": [metric.to_dict() for metric in self.metrics],
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "FetchResult":
        return cls(
            metrics=[QueryMetric.from_dict(item) for item in payload.get("metrics", [])],
            warnings=list(payload.get("warnings", [])),
        )


class AnalyticsSource(Protocol):
    """Anything that can return per-query metrics for a date range."""

    async def fetch_query_metrics(self, date_range: DateRange) -> FetchResult: ...


def aggregate_by_query(rows: list[dict[str, Any]]) -> list[QueryMetric]:
    """Merge rows sharing a normalized query.

    Impressions and clicks are summed, CTR is recomputed from the totals and
    position is averaged weighted by impressions.
    """
    merged: dict[str, QueryMetric] = {}

    for row in rows:
        keys = row.get("keys") or []
        query = str(keys[0]).strip().lower() if keys else ""
        impressions = row.get("impressions") or 0
        clicks = row.get("clicks") or 0
        position = float(row.get("position") or 0.0)

        existing = merged.get(query)
        if existing is None:
            merged[query] = QueryMetric(
                query=query,
                impressions=impressions,
                clicks=clicks,
                ctr=float(row.get("ctr") or 0.0),
                position=position,
            )
            continue

        total_impressions = existing.impressions + impressions
        total_clicks = existing.clicks + clicks
        if total_impressions > 0:
            existing.position = (
                existing.position * existing.impressions + position * impressions
            ) / total_impressions
            existing.ctr = total_clicks / total_impressions
        else:
            existing.ctr = 0.0
        existing.impressions = total_impressions
        existing.clicks = total_clicks

    return list(merged.values())


class SearchConsoleClient:
    """Client for the Search Console searchAnalytics API.

    Provides methods for:
    - Service-account authentication (fatal when it fails at startup)
    - Raw paged queries filtered to one page URL fragment
    - Per-filter fetches aggregated by query, tolerant of partial failure
    """

    BASE_URL = "https://searchconsole.googleapis.com/webmasters/v3"
    SCOPES = ["https://www.googleapis.com/auth/webmasters.readonly"]
    MAX_ROWS_PER_REQUEST = 25_000

    def __init__(
        self,
        credentials_path: str | None = None,
        site_url: str | None = None,
        url_filters: list[str] | None = None,
        timeout: float | None = None,
        throttle_seconds: float | None = None,
        credentials: Any | None = None,
    ) -> None:
        self.credentials_path = credentials_path or settings.google_application_credentials
        self.site_url = site_url or settings.search_console_site_url
        self.url_filters = url_filters if url_filters is not None else settings.search_console_url_filters
        self.timeout = timeout if timeout is not None else settings.search_console_timeout
        self.throttle_seconds = (
            throttle_seconds
            if throttle_seconds is not None
            else settings.search_console_throttle_seconds
        )
        self._credentials = credentials
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "SearchConsoleClient":
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def open(self) -> None:
        """Authenticate and create the HTTP client."""
        await self.authenticate()
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client must be opened before use")
        return self._client

    async def authenticate(self) -> None:
        """Load service-account credentials and obtain an access token."""
        logger.info("Loading Search Console credentials", extra={"path": self.credentials_path})
        try:
            if self._credentials is None:
                self._credentials = service_account.Credentials.from_service_account_file(
                    self.credentials_path,
                    scopes=self.SCOPES,
                )
            await asyncio.to_thread(self._credentials.refresh, GoogleAuthRequest())
        except (OSError, ValueError, GoogleAuthError) as e:
            logger.error("Search Console authentication failed", extra={"error": str(e)})
            raise AnalyticsAuthError(str(e)) from e
        logger.info("Search Console client authenticated", extra={"site_url": self.site_url})

    async def _auth_headers(self) -> dict[str, str]:
        if self._credentials is None:
            raise AnalyticsAuthError("credentials not loaded")
        if not self._credentials.valid:
            try:
                await asyncio.to_thread(self._credentials.refresh, GoogleAuthRequest())
            except GoogleAuthError as e:
                raise ExternalAPIError("Search Console", f"Token refresh failed: {e}") from e
        return {"Authorization": f"Bearer {self._credentials.token}"}

    async def query(
        self,
        *,
        start_date: str,
        end_date: str,
        dimensions: list[str] | None = None,
        row_limit: int = MAX_ROWS_PER_REQUEST,
        start_row: int = 0,
        page_filter: str | None = None,
    ) -> list[dict[str, Any]]:
        """Run one searchAnalytics query and return its raw rows."""
        body: dict[str, Any] = {
            "startDate": start_date,
            "endDate": end_date,
            "dimensions": dimensions or ["query"],
            "rowLimit": min(row_limit, self.MAX_ROWS_PER_REQUEST),
            "startRow": start_row,
        }
        if page_filter:
            body["dimensionFilterGroups"] = [
                {
                    "groupType": "and",
                    "filters": [
                        {
                            "dimension": "page",
                            "operator": "contains",
                            "expression": page_filter,
                        }
                    ],
                }
            ]

        url = f"{self.BASE_URL}/sites/{quote(self.site_url, safe='')}/searchAnalytics/query"
        logger.info(
            "Search Console API request",
            extra={"page_filter": page_filter, "start_row": start_row},
        )

        try:
            response = await self.client.post(url, json=body, headers=await self._auth_headers())

            if response.status_code == 429:
                logger.warning("Search Console rate limit hit", extra={"page_filter": page_filter})
                raise RateLimitExceededError("Search Console")

            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            logger.warning(
                "Search Console HTTP error",
                extra={"page_filter": page_filter, "error": str(e)},
            )
            raise ExternalAPIError("Search Console", str(e)) from e

        return [
            {
                "keys": row.get("keys") or [],
                "clicks": row.get("clicks") or 0,
                "impressions": row.get("impressions") or 0,
                "ctr": row.get("ctr") or 0.0,
                "position": row.get("position") or 0.0,
            }
            for row in result.get("rows") or []
        ]

    async def fetch_with_pagination(
        self,
        date_range: DateRange,
        url_filter: str,
        row_limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every row for one page filter, page by page."""
        limit = row_limit or settings.search_console_row_limit
        page_size = min(limit, self.MAX_ROWS_PER_REQUEST)
        rows: list[dict[str, Any]] = []
        start_row = 0

        while True:
            batch = await self.query(
                start_date=date_range.start_date,
                end_date=date_range.end_date,
                row_limit=page_size,
                start_row=start_row,
                page_filter=url_filter,
            )
            rows.extend(batch)
            if len(batch) < page_size or len(rows) >= limit:
                break
            start_row += page_size
            await asyncio.sleep(self.throttle_seconds)

        return rows[:limit]

    async def fetch_query_metrics(self, date_range: DateRange) -> FetchResult:
        """Fetch all filters, skipping (and reporting) the ones that fail."""
        all_rows: list[dict[str, Any]] = []
        warnings: list[str] = []

        for index, url_filter in enumerate(self.url_filters):
            if index > 0:
                await asyncio.sleep(self.throttle_seconds)
            try:
                all_rows.extend(await self.fetch_with_pagination(date_range, url_filter))
            except ExternalAPIError as e:
                logger.warning(
                    "Skipping page filter after fetch failure",
                    extra={"page_filter": url_filter, "error": e.message},
                )
                warnings.append(f"Failed to fetch data for filter {url_filter}: {e.message}")

        metrics = [metric for metric in aggregate_by_query(all_rows) if metric.query]
        logger.info(
            "Search Console fetch complete",
            extra={
                "start_date": date_range.start_date,
                "end_date": date_range.end_date,
                "rows": len(all_rows),
                "queries": len(metrics),
                "failed_filters": len(warnings),
            },
        )
        return FetchResult(metrics=metrics, warnings=warnings)
