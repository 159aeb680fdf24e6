"""Unit tests for emerging threat ranking and pagination."""

from __future__ import annotations

from datetime import date

import pytest

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.services.analysis_types import (
    ComparisonResult,
    CTRBenchmarks,
    DateRange,
    EmbeddingMatch,
    QueryMetric,
)
from scamwatch.services.benchmarks import fallback_benchmarks
from scamwatch.services.comparison import compare_metrics
from scamwatch.services.emerging_threats import EmergingThreatService
from scamwatch.services.keywords_config import load_keywords_config
from scamwatch.services.semantic_matcher import SemanticMatcher

CURRENT = DateRange(start_date="2026-10-09", end_date="2026-10-16")
PREVIOUS = DateRange(start_date="2026-10-02", end_date="2026-10-08")
TODAY = date(2026, 10, 18)


def _metric(query: str, impressions: int, clicks: float, position: float) -> QueryMetric:
    return QueryMetric(
        query=query,
        impressions=impressions,
        clicks=clicks,
        ctr=clicks / impressions,
        position=position,
    )


def _comparison() -> ComparisonResult:
    current = [
        _metric("cra gift card refund", 600, 3, 2.0),
        _metric("cra bitcoin payment 2026", 300, 1, 5.0),
        _metric("free money canada", 400, 4, 10.0),
        _metric("report a scam cra", 900, 2, 1.5),
        _metric("weather toronto", 600, 6.6, 20.0),
        _metric("tiny query", 5, 0, 3.0),
    ]
    previous = [
        _metric("free money canada", 100, 1, 10.0),
        _metric("weather toronto", 580, 6.4, 20.0),
    ]
    result = compare_metrics(current, previous, CURRENT, PREVIOUS)
    result.warnings = ["Failed to fetch data for filter /fr/: boom"]
    return result


class _FakeComparisonService:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def compare_week_over_week(self, today: date | None = None) -> ComparisonResult:
        self.calls.append("week")
        return _comparison()

    async def compare_month_over_month(self, today: date | None = None) -> ComparisonResult:
        self.calls.append("month")
        return _comparison()


class _FakeBenchmarkService:
    async def get_benchmarks(self, today: date | None = None) -> CTRBenchmarks:
        return fallback_benchmarks()


class _RecordingMatcher:
    def __init__(self) -> None:
        self.batches: list[list[str]] = []

    def ready(self) -> bool:
        return True

    async def analyze_batch(self, queries: list[str]) -> list[EmbeddingMatch | None]:
        self.batches.append(list(queries))
        return [
            EmbeddingMatch(
                phrase="cra gift card payment",
                category="payment_scams",
                severity="critical",
                similarity=0.91,
            )
            if "gift card" in query
            else None
            for query in queries
        ]


def _service(matcher=None) -> tuple[EmergingThreatService, _FakeComparisonService]:
    comparison = _FakeComparisonService()
    service = EmergingThreatService(
        comparison,
        _FakeBenchmarkService(),
        matcher or SemanticMatcher(None, TTLCache(), []),
        TTLCache(),
        load_keywords_config(settings.keywords_config_path),
    )
    return service, comparison


@pytest.mark.asyncio
async def test_ranks_suspicious_terms_and_skips_whitelisted_and_benign() -> None:
    service, comparison = _service()

    result = await service.get_emerging_threats(days=7, today=TODAY)
    queries = [threat.query for threat in result.threats]

    assert comparison.calls == ["week"]
    assert set(queries) == {"cra gift card refund", "cra bitcoin payment 2026", "free money canada"}
    assert "report a scam cra" not in queries
    scores = [threat.risk_score for threat in result.threats]
    assert scores == sorted(scores, reverse=True)
    assert all(0 <= score <= 100 for score in scores)
    assert result.semantic_enabled is False
    assert result.warnings == ["Failed to fetch data for filter /fr/: boom"]


@pytest.mark.asyncio
async def test_pages_are_clamped_and_summary_covers_every_page() -> None:
    service, _ = _service()
    service.page_size = 1

    first = await service.get_emerging_threats(page=0, today=TODAY)
    last = await service.get_emerging_threats(page=99, today=TODAY)

    assert first.pagination.page == 1
    assert first.pagination.total_pages == 3
    assert len(first.threats) == 1
    assert last.pagination.page == 3
    assert not last.pagination.has_next
    assert first.summary.total == last.summary.total == 3
    assert first.threats[0].id != last.threats[0].id


@pytest.mark.asyncio
async def test_ranking_is_cached_per_window_length() -> None:
    service, comparison = _service()

    await service.get_emerging_threats(days=7, page=1, today=TODAY)
    await service.get_emerging_threats(days=7, page=2, today=TODAY)
    await service.get_emerging_threats(days=28, page=1, today=TODAY)
    await service.get_emerging_threats(days=30, page=1, today=TODAY)
    await service.get_emerging_threats(days=90, page=2, today=TODAY)

    assert comparison.calls == ["week", "month"]


@pytest.mark.asyncio
async def test_only_candidates_are_sent_for_semantic_matching() -> None:
    matcher = _RecordingMatcher()
    service, _ = _service(matcher)

    result = await service.get_emerging_threats(today=TODAY)

    assert len(matcher.batches) == 1
    assert "tiny query" not in matcher.batches[0]
    assert "report a scam cra" not in matcher.batches[0]
    gift_card = next(threat for threat in result.threats if threat.query == "cra gift card refund")
    assert gift_card.embedding_match is not None
    assert gift_card.similar_scams == []
    assert result.semantic_enabled is True


@pytest.mark.asyncio
async def test_max_results_caps_ranked_list() -> None:
    service, _ = _service()
    service.max_results = 2

    result = await service.get_emerging_threats(today=TODAY)

    assert result.pagination.total_threats == 2
    assert result.summary.total == 2
