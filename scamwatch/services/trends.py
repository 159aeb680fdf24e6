"""Google Trends monitoring for the configured scam keywords.

Trends data is supplementary: every lookup degrades to "no data" when Google
Trends fails or rate limits, and failures are not cached so the next request
retries.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Protocol

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.core.exceptions import ExternalAPIError
from scamwatch.schemas.keywords import KeywordsConfig
from scamwatch.services.analysis_types import (
    InterestOverTime,
    MonitoredKeyword,
    RelatedQueries,
    TrendDirection,
    TrendExploration,
    TrendPoint,
    TrendsPanel,
)

logger = logging.getLogger(__name__)

RECENT_POINTS = 7
TREND_CHANGE_THRESHOLD = 10.0


class TrendsSource(Protocol):
    geo: str

    async def get_interest_over_time(self, keyword: str, time_range: str) -> list[TrendPoint]: ...

    async def get_related_queries(self, keyword: str, time_range: str) -> RelatedQueries: ...


def _mean(points: Sequence[TrendPoint]) -> float:
    return sum(point.value for point in points) / len(points) if points else 0.0


def trend_direction(change_percent: float) -> TrendDirection:
    if change_percent > TREND_CHANGE_THRESHOLD:
        return "up"
    if change_percent < -TREND_CHANGE_THRESHOLD:
        return "down"
    return "stable"


def summarize_trend(keyword: str, points: Sequence[TrendPoint]) -> MonitoredKeyword | None:
    """Compare the last week of interest with the week before it."""
    if not points:
        return None
    recent_avg = _mean(points[-RECENT_POINTS:])
    older = points[-2 * RECENT_POINTS:-RECENT_POINTS]
    older_avg = _mean(older) if older else recent_avg
    change = (recent_avg - older_avg) / older_avg * 100 if older_avg > 0 else 0.0
    return MonitoredKeyword(
        keyword=keyword,
        current_interest=round(recent_avg),
        trend=trend_direction(change),
        change_percent=round(change),
    )


def normalize_keyword(keyword: str) -> str:
    return " ".join(keyword.lower().split())


class TrendsService:
    """Cached Google Trends lookups plus the scam keyword panel."""

    def __init__(
        self,
        source: TrendsSource,
        cache: TTLCache,
        keywords_config: KeywordsConfig,
        *,
        ttl_seconds: int | None = None,
        request_delay_seconds: float | None = None,
        panel_limit: int | None = None,
    ) -> None:
        self.source = source
        self.cache = cache
        self.keywords_config = keywords_config
        self.ttl_seconds = ttl_seconds or settings.trends_cache_ttl_seconds
        self.request_delay_seconds = (
            settings.trends_request_delay_seconds
            if request_delay_seconds is None
            else request_delay_seconds
        )
        self.panel_limit = panel_limit or settings.trends_panel_limit

    async def get_interest_over_time(
        self,
        keyword: str,
        time_range: str | None = None,
    ) -> InterestOverTime | None:
        keyword = normalize_keyword(keyword)
        window = time_range or settings.trends_time_range

        async def compute() -> InterestOverTime | None:
            try:
                points = await self.source.get_interest_over_time(keyword, window)
            except ExternalAPIError as exc:
                logger.warning(
                    "Failed to fetch trends interest",
                    extra={"keyword": keyword, "error": exc.message},
                )
                return None
            return InterestOverTime(
                keyword=keyword,
                geo=self.source.geo,
                time_range=window,
                points=points,
                average_interest=_mean(points),
            )

        return await self.cache.get_or_set(
            f"trends:interest:{keyword}:{window}",
            compute,
            self.ttl_seconds,
            encode=InterestOverTime.to_dict,
            decode=InterestOverTime.from_dict,
        )

    async def get_related_queries(
        self,
        keyword: str,
        time_range: str | None = None,
    ) -> RelatedQueries | None:
        keyword = normalize_keyword(keyword)
        window = time_range or settings.trends_time_range

        async def compute() -> RelatedQueries | None:
            try:
                return await self.source.get_related_queries(keyword, window)
            except ExternalAPIError as exc:
                logger.warning(
                    "Failed to fetch related queries",
                    extra={"keyword": keyword, "error": exc.message},
                )
                return None

        return await self.cache.get_or_set(
            f"trends:related:{keyword}:{window}",
            compute,
            self.ttl_seconds,
            encode=RelatedQueries.to_dict,
            decode=RelatedQueries.from_dict,
        )

    async def explore_keyword(
        self,
        keyword: str,
        time_range: str | None = None,
    ) -> TrendExploration | None:
        """Interest and related queries together; None without an interest series."""
        interest, related = await asyncio.gather(
            self.get_interest_over_time(keyword, time_range),
            self.get_related_queries(keyword, time_range),
        )
        if interest is None:
            return None
        return TrendExploration(
            interest=interest,
            related_queries=related or RelatedQueries(keyword=interest.keyword),
        )

    async def explore_keywords(
        self,
        keywords: Sequence[str],
        time_range: str | None = None,
    ) -> tuple[list[TrendExploration], list[str]]:
        """Explore each keyword in turn; returns (explorations, failed keywords)."""
        explorations: list[TrendExploration] = []
        failed: list[str] = []
        for index, keyword in enumerate(keywords):
            if index > 0:
                await asyncio.sleep(self.request_delay_seconds)
            exploration = await self.explore_keyword(keyword, time_range)
            if exploration is None:
                failed.append(keyword)
            else:
                explorations.append(exploration)
        return explorations, failed

    async def get_scam_keywords_trends(self) -> TrendsPanel:
        keywords = self.keywords_config.trends_keywords[: self.panel_limit]

        async def compute() -> TrendsPanel:
            monitored: list[MonitoredKeyword] = []
            warnings: list[str] = []

            for index, keyword in enumerate(keywords):
                if index > 0:
                    await asyncio.sleep(self.request_delay_seconds)
                interest = await self.get_interest_over_time(keyword)
                summary = summarize_trend(keyword, interest.points) if interest else None
                if summary is None:
                    warnings.append(f"No trends data for '{keyword}'")
                    continue
                monitored.append(summary)

            logger.info(
                "Scam keyword trends refreshed",
                extra={"keywords": len(keywords), "monitored": len(monitored), "skipped": len(warnings)},
            )
            return TrendsPanel(
                last_updated=datetime.now(timezone.utc).isoformat(),
                monitored_keywords=monitored,
                warnings=warnings,
            )

        return await self.cache.get_or_set(
            "trends:scam-panel",
            compute,
            self.ttl_seconds,
            encode=TrendsPanel.to_dict,
            decode=TrendsPanel.from_dict,
        )
