"""Google Trends integration for monitoring scam keyword interest.

Google Trends has no public API. The web app's JSON endpoints are used the
same way the site does: an ``explore`` call returns one token per widget, and
each widget's data is then fetched with its token.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from scamwatch.config import settings
from scamwatch.core.exceptions import ExternalAPIError, RateLimitExceededError
from scamwatch.services.analysis_types import RelatedQueries, RelatedQuery, TrendPoint

logger = logging.getLogger(__name__)

API_NAME = "Google Trends"


def parse_trends_payload(text: str) -> dict[str, Any]:
    """Decode a Trends response body, skipping the ``)]}'`` guard prefix."""
    start = text.find("{")
    if start < 0:
        raise ExternalAPIError(API_NAME, "Response has no JSON body")
    try:
        payload = json.loads(text[start:])
    except json.JSONDecodeError as e:
        raise ExternalAPIError(API_NAME, f"Malformed response: {e}") from e
    if not isinstance(payload, dict):
        raise ExternalAPIError(API_NAME, "Malformed response: expected an object")
    return payload


def parse_timeline(payload: dict[str, Any]) -> list[TrendPoint]:
    """``default.timelineData`` rows as dated points (first keyword only)."""
    try:
        timeline = payload.get("default", {}).get("timelineData") or []
        return [
            TrendPoint(
                date=datetime.fromtimestamp(int(point["time"]), tz=timezone.utc).date().isoformat(),
                value=int((point.get("value") or [0])[0]),
            )
            for point in timeline
        ]
    except (KeyError, IndexError, TypeError, ValueError, AttributeError, OverflowError) as e:
        raise ExternalAPIError(API_NAME, f"Malformed timeline: {e}") from e


def parse_ranked_list(keyword: str, payload: dict[str, Any]) -> RelatedQueries:
    """``default.rankedList``: the first list is top queries, the second rising."""

    def ranked(index: int) -> list[RelatedQuery]:
        if index >= len(lists):
            return []
        return [
            RelatedQuery(
                query=str(item["query"]),
                value=int(item.get("value") or 0),
                is_breakout=item.get("formattedValue") == "Breakout",
            )
            for item in lists[index].get("rankedKeyword") or []
        ]

    try:
        lists = payload.get("default", {}).get("rankedList") or []
        return RelatedQueries(keyword=keyword, top=ranked(0), rising=ranked(1))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ExternalAPIError(API_NAME, f"Malformed related queries: {e}") from e


class GoogleTrendsClient:
    """Client for the Google Trends web JSON API.

    Provides methods for:
    - Interest over time for one keyword
    - Top and rising related queries for one keyword
    """

    BASE_URL = "https://trends.google.com"
    EXPLORE_PATH = "/trends/api/explore"
    WIDGET_DATA_PATH = "/trends/api/widgetdata"

    def __init__(
        self,
        geo: str | None = None,
        language: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.geo = geo or settings.trends_geo
        self.language = language or settings.trends_language
        self.timeout = timeout if timeout is not None else settings.trends_timeout
        self._client: httpx.AsyncClient | None = None
        self._session_ready = False

    async def __aenter__(self) -> "GoogleTrendsClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            self._session_ready = False

    @property
    def client(self) -> httpx.AsyncClient:
        # Created on first use; the cookie jar keeps the session cookie
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                timeout=self.timeout,
                follow_redirects=True,
                headers={"Accept-Language": self.language},
            )
        return self._client

    async def _ensure_session(self) -> None:
        """Fetch the landing page once so Trends sets its session cookie."""
        if self._session_ready:
            return
        try:
            response = await self.client.get("/", params={"geo": self.geo})
            if response.status_code == 429:
                raise RateLimitExceededError(API_NAME)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Google Trends session setup failed", extra={"error": str(e)})
            raise ExternalAPIError(API_NAME, str(e)) from e
        self._session_ready = True

    async def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        await self._ensure_session()
        logger.info("Google Trends API request", extra={"path": path})

        try:
            response = await self.client.get(path, params={"hl": self.language, "tz": "0", **params})

            if response.status_code == 429:
                logger.warning("Google Trends rate limit hit", extra={"path": path})
                raise RateLimitExceededError(API_NAME)

            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Google Trends HTTP error", extra={"path": path, "error": str(e)})
            raise ExternalAPIError(API_NAME, str(e)) from e

        return parse_trends_payload(response.text)

    async def _widget(self, keyword: str, time_range: str, widget_id: str) -> dict[str, Any]:
        request = {
            "comparisonItem": [{"keyword": keyword, "geo": self.geo, "time": time_range}],
            "category": 0,
            "property": "",
        }
        payload = await self._get(self.EXPLORE_PATH, {"req": json.dumps(request)})

        for widget in payload.get("widgets") or []:
            if isinstance(widget, dict) and widget.get("id") == widget_id:
                if "request" not in widget or "token" not in widget:
                    break
                return widget
        raise ExternalAPIError(API_NAME, f"No {widget_id} widget for '{keyword}'")

    async def _widget_data(self, kind: str, widget: dict[str, Any]) -> dict[str, Any]:
        return await self._get(
            f"{self.WIDGET_DATA_PATH}/{kind}",
            {"req": json.dumps(widget["request"]), "token": str(widget["token"])},
        )

    async def get_interest_over_time(self, keyword: str, time_range: str) -> list[TrendPoint]:
        """Daily (or weekly, for long ranges) relative interest for ``keyword``."""
        widget = await self._widget(keyword, time_range, "TIMESERIES")
        points = parse_timeline(await self._widget_data("multiline", widget))
        logger.info(
            "Google Trends interest fetched",
            extra={"keyword": keyword, "time_range": time_range, "points": len(points)},
        )
        return points

    async def get_related_queries(self, keyword: str, time_range: str) -> RelatedQueries:
        widget = await self._widget(keyword, time_range, "RELATED_QUERIES")
        return parse_ranked_list(keyword, await self._widget_data("relatedsearches", widget))
