"""Unit tests for dynamic CTR benchmarks."""

from __future__ import annotations

from datetime import date

import pytest

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.core.exceptions import ExternalAPIError
from scamwatch.integrations.search_console import FetchResult
from scamwatch.services.analysis_types import DateRange, QueryMetric
from scamwatch.services.analytics import AnalyticsService
from scamwatch.services.benchmarks import (
    BenchmarkService,
    bucket_for_position,
    compute_benchmarks,
    fallback_benchmarks,
)
from scamwatch.services.keywords_config import load_keywords_config

TODAY = date(2026, 6, 1)


def _row(query: str, ctr: float, position: float, impressions: int = 100) -> QueryMetric:
    return QueryMetric(
        query=query,
        impressions=impressions,
        clicks=round(ctr * impressions),
        ctr=ctr,
        position=position,
    )


class _FakeSource:
    def __init__(self, metrics: list[QueryMetric] | None = None, error: Exception | None = None) -> None:
        self.metrics = metrics or []
        self.error = error
        self.calls: list[DateRange] = []

    async def fetch_query_metrics(self, date_range: DateRange) -> FetchResult:
        self.calls.append(date_range)
        if self.error is not None:
            raise self.error
        return FetchResult(metrics=list(self.metrics))


def test_bucket_percentiles_interpolate_linearly() -> None:
    rows = [_row(f"q{i}", ctr, 6) for i, ctr in enumerate([0.5, 0.1, 0.4, 0.2, 0.3])]

    bucket = compute_benchmarks(rows, min_impressions=10).buckets["4-8"]

    assert bucket.min == pytest.approx(0.14)
    assert bucket.expected == pytest.approx(0.3)
    assert bucket.max == pytest.approx(0.46)
    assert type(bucket.expected) is float


def test_single_sample_bucket_collapses_to_that_ctr() -> None:
    bucket = compute_benchmarks([_row("only", 0.7, 12)], min_impressions=10).buckets["9-15"]

    assert (bucket.min, bucket.expected, bucket.max) == (0.7, 0.7, 0.7)
    assert bucket.sample_size == 1


def test_bucket_boundaries() -> None:
    assert bucket_for_position(1) == "1-3"
    assert bucket_for_position(3.0) == "1-3"
    assert bucket_for_position(3.2) == "4-8"
    assert bucket_for_position(8) == "4-8"
    assert bucket_for_position(15) == "9-15"
    assert bucket_for_position(15.1) == "16+"


def test_fallback_buckets_have_no_samples() -> None:
    benchmarks = fallback_benchmarks()

    assert benchmarks.is_fallback
    top = benchmarks.buckets["1-3"]
    assert top.min == 0.03
    assert top.expected == 0.20
    assert top.max == pytest.approx(0.30)
    assert all(bucket.sample_size == 0 for bucket in benchmarks.buckets.values())


def test_computed_buckets_keep_min_expected_max_ordered() -> None:
    rows = [_row(f"q{i}", ctr, 2) for i, ctr in enumerate([0.05, 0.4, 0.1, 0.3, 0.2])]

    benchmarks = compute_benchmarks(rows, min_impressions=10)
    top = benchmarks.buckets["1-3"]

    assert top.sample_size == 5
    assert top.min <= top.expected <= top.max
    assert top.expected == pytest.approx(0.2)
    assert benchmarks.buckets["16+"].sample_size == 0
    assert benchmarks.buckets["16+"].expected == 0.02
    assert not benchmarks.is_fallback


def test_rows_below_min_impressions_are_ignored() -> None:
    rows = [_row("big", 0.2, 5, impressions=100), _row("tiny", 0.9, 5, impressions=5)]

    benchmarks = compute_benchmarks(rows, min_impressions=10)

    assert benchmarks.total_queries_analyzed == 1
    assert benchmarks.buckets["4-8"].expected == pytest.approx(0.2)


def test_excluded_rows_are_counted_but_not_sampled() -> None:
    rows = [_row("cra gift card", 0.01, 2), _row("tax forms", 0.2, 2)]

    benchmarks = compute_benchmarks(rows, 10, exclude=lambda row: "gift card" in row.query)

    assert benchmarks.excluded_flagged == 1
    assert benchmarks.total_queries_analyzed == 1
    assert benchmarks.buckets["1-3"].expected == pytest.approx(0.2)


@pytest.mark.asyncio
async def test_service_excludes_classifier_flagged_queries() -> None:
    source = _FakeSource([_row("cra gift card", 0.01, 2), _row("tax forms", 0.2, 2)])
    cache = TTLCache()
    service = BenchmarkService(
        AnalyticsService(source, cache),
        cache,
        keywords_config=load_keywords_config(settings.keywords_config_path),
        exclude_flagged=True,
    )

    benchmarks = await service.calculate_benchmarks(days=30, today=TODAY)

    assert benchmarks.excluded_flagged == 1
    assert benchmarks.buckets["1-3"].sample_size == 1
    assert benchmarks.data_range == DateRange(start_date="2026-04-30", end_date="2026-05-30")


@pytest.mark.asyncio
async def test_service_keeps_flagged_queries_when_exclusion_disabled() -> None:
    source = _FakeSource([_row("cra gift card", 0.01, 2), _row("tax forms", 0.2, 2)])
    cache = TTLCache()
    service = BenchmarkService(
        AnalyticsService(source, cache),
        cache,
        keywords_config=load_keywords_config(settings.keywords_config_path),
        exclude_flagged=False,
    )

    benchmarks = await service.calculate_benchmarks(days=30, today=TODAY)

    assert benchmarks.excluded_flagged == 0
    assert benchmarks.buckets["1-3"].sample_size == 2


@pytest.mark.asyncio
async def test_benchmarks_are_cached_per_lookback_and_floor() -> None:
    source = _FakeSource([_row("tax forms", 0.2, 2)])
    cache = TTLCache()
    service = BenchmarkService(AnalyticsService(source, cache), cache, exclude_flagged=False)

    first = await service.calculate_benchmarks(days=30, min_impressions=10, today=TODAY)
    second = await service.calculate_benchmarks(days=30, min_impressions=10, today=TODAY)

    assert len(source.calls) == 1
    assert second.buckets["1-3"].expected == first.buckets["1-3"].expected


@pytest.mark.asyncio
async def test_get_benchmarks_falls_back_when_source_fails() -> None:
    source = _FakeSource(error=ExternalAPIError("Search Console", "unavailable"))
    cache = TTLCache()
    service = BenchmarkService(AnalyticsService(source, cache), cache, exclude_flagged=False)

    benchmarks = await service.get_benchmarks(today=TODAY)

    assert benchmarks.is_fallback
    assert benchmarks.buckets["4-8"].expected == 0.10
