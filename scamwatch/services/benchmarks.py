"""Dynamic CTR benchmarks per search position bucket.

Baselines come from the site's own historical data: for every position
bucket the 10th, 50th and 90th CTR percentiles become the min, expected and
max envelope. Buckets without samples use fixed industry defaults.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timezone

import numpy as np

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.schemas.keywords import KeywordsConfig
from scamwatch.services.analysis_types import (
    POSITION_RANGES,
    CTRBenchmark,
    CTRBenchmarks,
    DateRange,
    PositionRange,
    QueryMetric,
)
from scamwatch.services.analytics import AnalyticsService
from scamwatch.services.date_ranges import date_range_for_days
from scamwatch.services.keyword_rules import classify_query

logger = logging.getLogger(__name__)

# (min, expected) per bucket; max is expected * FALLBACK_MAX_MULTIPLIER
FALLBACK_CTR: dict[str, tuple[float, float]] = {
    "1-3": (0.03, 0.20),
    "4-8": (0.02, 0.10),
    "9-15": (0.01, 0.05),
    "16+": (0.005, 0.02),
}
FALLBACK_MAX_MULTIPLIER = 1.5


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def bucket_for_position(position: float) -> PositionRange:
    if position <= 3:
        return "1-3"
    if position <= 8:
        return "4-8"
    if position <= 15:
        return "9-15"
    return "16+"


def fallback_benchmark(position_range: str) -> CTRBenchmark:
    minimum, expected = FALLBACK_CTR[position_range]
    return CTRBenchmark(
        position_range=position_range,
        min=minimum,
        expected=expected,
        max=expected * FALLBACK_MAX_MULTIPLIER,
        sample_size=0,
    )


def fallback_benchmarks(calculated_at: str | None = None) -> CTRBenchmarks:
    return CTRBenchmarks(
        buckets={position_range: fallback_benchmark(position_range) for position_range in POSITION_RANGES},
        calculated_at=calculated_at or _utc_now_iso(),
    )


def _bucket_benchmark(position_range: str, ctrs: list[float]) -> CTRBenchmark:
    if not ctrs:
        return fallback_benchmark(position_range)
    p10, p50, p90 = np.percentile(np.asarray(ctrs, dtype=float), [10, 50, 90])
    return CTRBenchmark(
        position_range=position_range,
        min=float(p10),
        expected=float(p50),
        max=float(p90),
        sample_size=len(ctrs),
    )


def compute_benchmarks(
    rows: Iterable[QueryMetric],
    min_impressions: int,
    exclude: Callable[[QueryMetric], bool] | None = None,
    *,
    data_range: DateRange | None = None,
    calculated_at: str | None = None,
) -> CTRBenchmarks:
    """Percentile benchmarks over rows with at least ``min_impressions``.

    Rows for which ``exclude`` returns True are left out of the population
    and counted in ``excluded_flagged``.
    """
    groups: dict[str, list[float]] = {position_range: [] for position_range in POSITION_RANGES}
    analyzed = 0
    excluded = 0

    for row in rows:
        if row.impressions < min_impressions:
            continue
        if exclude is not None and exclude(row):
            excluded += 1
            continue
        groups[bucket_for_position(row.position)].append(row.ctr)
        analyzed += 1

    return CTRBenchmarks(
        buckets={
            position_range: _bucket_benchmark(position_range, ctrs)
            for position_range, ctrs in groups.items()
        },
        calculated_at=calculated_at or _utc_now_iso(),
        data_range=data_range,
        total_queries_analyzed=analyzed,
        excluded_flagged=excluded,
    )


def flagged_query_filter(config: KeywordsConfig, today: date) -> Callable[[QueryMetric], bool]:
    """Predicate matching queries the rule-based classifier flags."""

    def is_flagged(row: QueryMetric) -> bool:
        return classify_query(row.query, config, month=today.month, day=today.day) is not None

    return is_flagged


class BenchmarkService:
    """Computes and caches CTR benchmarks from historical analytics."""

    def __init__(
        self,
        analytics: AnalyticsService,
        cache: TTLCache,
        *,
        keywords_config: KeywordsConfig | None = None,
        exclude_flagged: bool | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        self.analytics = analytics
        self.cache = cache
        self.keywords_config = keywords_config
        self.exclude_flagged = (
            settings.benchmark_exclude_flagged if exclude_flagged is None else exclude_flagged
        )
        self.ttl_seconds = ttl_seconds or settings.benchmarks_cache_ttl_seconds

    async def calculate_benchmarks(
        self,
        days: int | None = None,
        min_impressions: int | None = None,
        today: date | None = None,
    ) -> CTRBenchmarks:
        lookback = days or settings.benchmark_days
        floor = settings.benchmark_min_impressions if min_impressions is None else min_impressions
        key = f"ctr-benchmarks:{lookback}:{floor}"

        async def compute() -> CTRBenchmarks:
            reference_day = today or date.today()
            date_range = date_range_for_days(lookback, reference_day)
            fetched = await self.analytics.get_analytics_for_date_range(date_range)

            exclude = None
            if self.exclude_flagged and self.keywords_config is not None:
                exclude = flagged_query_filter(self.keywords_config, reference_day)

            benchmarks = compute_benchmarks(
                fetched.metrics,
                floor,
                exclude,
                data_range=date_range,
            )
            logger.info(
                "CTR benchmarks calculated",
                extra={
                    "analyzed": benchmarks.total_queries_analyzed,
                    "excluded_flagged": benchmarks.excluded_flagged,
                    "expected_1_3": round(benchmarks.buckets["1-3"].expected, 4),
                    "samples_1_3": benchmarks.buckets["1-3"].sample_size,
                    "expected_4_8": round(benchmarks.buckets["4-8"].expected, 4),
                    "samples_4_8": benchmarks.buckets["4-8"].sample_size,
                },
            )
            return benchmarks

        return await self.cache.get_or_set(
            key,
            compute,
            self.ttl_seconds,
            encode=CTRBenchmarks.to_dict,
            decode=CTRBenchmarks.from_dict,
        )

    async def get_benchmarks(self, today: date | None = None) -> CTRBenchmarks:
        """Configured benchmarks, or the static fallback when they cannot be computed."""
        try:
            return await self.calculate_benchmarks(today=today)
        except Exception as exc:
            logger.warning(
                "Failed to calculate CTR benchmarks, using fallback values",
                extra={"error": str(exc)},
            )
            return fallback_benchmarks()
