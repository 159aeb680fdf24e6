"""Period-over-period comparison of per-query search metrics."""

from __future__ import annotations

import asyncio
import logging
from datetime import date

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.services.analysis_types import (
    ComparisonResult,
    ComparisonSummary,
    DateRange,
    ImpressionTotals,
    MetricChange,
    PeriodMetrics,
    QueryMetric,
    TermComparison,
)
from scamwatch.services.analytics import AnalyticsService
from scamwatch.services.date_ranges import (
    date_range_for_days,
    previous_period,
    validate_date_range,
)

logger = logging.getLogger(__name__)

WEEK_DAYS = 7
MONTH_DAYS = 28

__all__ = [
    "ComparisonService",
    "compare_metrics",
    "date_range_for_days",
    "new_terms",
    "percent_change",
    "previous_period",
    "top_gainers",
]


def percent_change(previous: float, current: float) -> float:
    """Relative change in percent; growth from zero counts as 100%."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def _compare_term(
    query: str,
    current: QueryMetric | None,
    previous: QueryMetric | None,
) -> TermComparison:
    now = PeriodMetrics.from_metric(current)
    before = PeriodMetrics.from_metric(previous)
    return TermComparison(
        query=query,
        current=now,
        previous=before,
        change=MetricChange(
            impressions=now.impressions - before.impressions,
            impressions_percent=percent_change(before.impressions, now.impressions),
            clicks=now.clicks - before.clicks,
            clicks_percent=percent_change(before.clicks, now.clicks),
            ctr=now.ctr - before.ctr,
            position=now.position - before.position,
        ),
        is_new=current is not None and previous is None,
        is_gone=previous is not None and current is None,
    )


def compare_metrics(
    current: list[QueryMetric],
    previous: list[QueryMetric],
    current_period: DateRange,
    previous_period: DateRange,
) -> ComparisonResult:
    """Align two metric sets by query.

    Every non-empty query from either side appears exactly once; missing
    metrics are zero-filled. Terms are ordered by impressions gained, then
    by query text.
    """
    current_by_query = {metric.query: metric for metric in current if metric.query}
    previous_by_query = {metric.query: metric for metric in previous if metric.query}

    queries = set(current_by_query) | set(previous_by_query)
    terms = [
        _compare_term(query, current_by_query.get(query), previous_by_query.get(query))
        for query in queries
    ]
    terms.sort(key=lambda term: (-term.change.impressions, term.query))

    total_current = sum(term.current.impressions for term in terms)
    total_previous = sum(term.previous.impressions for term in terms)

    return ComparisonResult(
        current_period=current_period,
        previous_period=previous_period,
        summary=ComparisonSummary(
            total_terms=len(terms),
            new_terms=sum(1 for term in terms if term.is_new),
            gone_terms=sum(1 for term in terms if term.is_gone),
            total_impressions=ImpressionTotals(
                current=total_current,
                previous=total_previous,
                change=total_current - total_previous,
                change_percent=percent_change(total_previous, total_current),
            ),
        ),
        terms=terms,
    )


def top_gainers(result: ComparisonResult, limit: int = 20) -> list[TermComparison]:
    """Existing terms with the largest impression increase."""
    gainers = [term for term in result.terms if term.change.impressions > 0 and not term.is_new]
    return gainers[:limit]


def new_terms(result: ComparisonResult, min_impressions: int | None = None) -> list[TermComparison]:
    floor = settings.impression_threshold if min_impressions is None else min_impressions
    return [term for term in result.terms if term.is_new and term.current.impressions >= floor]


class ComparisonService:
    """Fetches two periods concurrently and caches their comparison."""

    def __init__(self, analytics: AnalyticsService, cache: TTLCache) -> None:
        self.analytics = analytics
        self.cache = cache

    async def compare_periods(
        self,
        current_period: DateRange,
        previous_period: DateRange,
    ) -> ComparisonResult:
        validate_date_range(current_period)
        validate_date_range(previous_period)
        key = (
            f"comparison:{current_period.start_date}:{current_period.end_date}:"
            f"{previous_period.start_date}:{previous_period.end_date}"
        )

        async def compute() -> ComparisonResult:
            current_data, previous_data = await asyncio.gather(
                self.analytics.get_analytics_for_date_range(current_period),
                self.analytics.get_analytics_for_date_range(previous_period),
            )
            result = compare_metrics(
                current_data.metrics,
                previous_data.metrics,
                current_period,
                previous_period,
            )
            result.warnings = [*current_data.warnings, *previous_data.warnings]
            logger.info(
                "Comparison complete",
                extra={
                    "total_terms": result.summary.total_terms,
                    "new_terms": result.summary.new_terms,
                    "gone_terms": result.summary.gone_terms,
                },
            )
            return result

        return await self.cache.get_or_set(
            key,
            compute,
            settings.analytics_cache_ttl_seconds,
            encode=ComparisonResult.to_dict,
            decode=ComparisonResult.from_dict,
        )

    async def compare_last_days(self, days: int, today: date | None = None) -> ComparisonResult:
        """Compare the last ``days`` days against the window just before."""
        current = date_range_for_days(days, today)
        return await self.compare_periods(current, previous_period(current, days))

    async def compare_week_over_week(self, today: date | None = None) -> ComparisonResult:
        return await self.compare_last_days(WEEK_DAYS, today)

    async def compare_month_over_month(self, today: date | None = None) -> ComparisonResult:
        return await self.compare_last_days(MONTH_DAYS, today)
