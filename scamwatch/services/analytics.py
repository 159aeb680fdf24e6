"""Cached access to per-query search analytics."""

from __future__ import annotations

import logging

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.integrations.search_console import AnalyticsSource, FetchResult
from scamwatch.services.analysis_types import AnalyticsSummary, DateRange, QueryMetric

logger = logging.getLogger(__name__)


def analytics_cache_key(date_range: DateRange) -> str:
    return f"analytics:{date_range.start_date}:{date_range.end_date}"


def summarize_metrics(
    date_range: DateRange,
    metrics: list[QueryMetric],
    impression_threshold: int,
    warnings: list[str] | None = None,
) -> AnalyticsSummary:
    """Totals, impression-weighted CTR and mean position across queries."""
    total_impressions = sum(metric.impressions for metric in metrics)
    total_clicks = sum(metric.clicks for metric in metrics)
    return AnalyticsSummary(
        period=date_range,
        total_queries=len(metrics),
        queries_above_threshold=sum(
            1 for metric in metrics if metric.impressions >= impression_threshold
        ),
        impression_threshold=impression_threshold,
        total_impressions=total_impressions,
        total_clicks=total_clicks,
        avg_ctr=total_clicks / total_impressions if total_impressions > 0 else 0.0,
        avg_position=(
            sum(metric.position for metric in metrics) / len(metrics) if metrics else 0.0
        ),
        warnings=list(warnings or []),
    )


class AnalyticsService:
    """Wraps an analytics source with the shared TTL cache."""

    def __init__(
        self,
        source: AnalyticsSource,
        cache: TTLCache,
        *,
        ttl_seconds: int | None = None,
    ) -> None:
        self.source = source
        self.cache = cache
        self.ttl_seconds = ttl_seconds or settings.analytics_cache_ttl_seconds

    async def get_analytics_for_date_range(self, date_range: DateRange) -> FetchResult:
        """Aggregated query metrics for a window, fetched at most once per TTL."""

        async def fetch() -> FetchResult:
            logger.info(
                "Fetching search analytics",
                extra={"start_date": date_range.start_date, "end_date": date_range.end_date},
            )
            return await self.source.fetch_query_metrics(date_range)

        return await self.cache.get_or_set(
            analytics_cache_key(date_range),
            fetch,
            self.ttl_seconds,
            encode=FetchResult.to_dict,
            decode=FetchResult.from_dict,
        )

    async def get_queries_above_threshold(
        self,
        date_range: DateRange,
        min_impressions: int | None = None,
    ) -> FetchResult:
        threshold = settings.impression_threshold if min_impressions is None else min_impressions
        result = await self.get_analytics_for_date_range(date_range)
        return FetchResult(
            metrics=[metric for metric in result.metrics if metric.impressions >= threshold],
            warnings=list(result.warnings),
        )

    async def get_summary(self, date_range: DateRange) -> AnalyticsSummary:
        result = await self.get_analytics_for_date_range(date_range)
        return summarize_metrics(
            date_range,
            result.metrics,
            settings.impression_threshold,
            result.warnings,
        )
