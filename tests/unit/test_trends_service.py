"""Unit tests for scam keyword trends monitoring."""

from __future__ import annotations

import pytest

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.core.exceptions import ExternalAPIError, RateLimitExceededError
from scamwatch.services.analysis_types import RelatedQueries, RelatedQuery, TrendPoint
from scamwatch.services.keywords_config import load_keywords_config
from scamwatch.services.trends import TrendsService, summarize_trend


def _points(*values: int) -> list[TrendPoint]:
    return [TrendPoint(date=f"2026-09-{day:02d}", value=value) for day, value in enumerate(values, start=1)]


class _FakeTrends:
    geo = "CA"

    def __init__(self, series: dict[str, list[TrendPoint]] | None = None) -> None:
        self.series = series or {}
        self.failing: set[str] = set()
        self.related_failing = False
        self.calls: list[tuple[str, str, str]] = []

    async def get_interest_over_time(self, keyword: str, time_range: str) -> list[TrendPoint]:
        self.calls.append(("interest", keyword, time_range))
        if keyword in self.failing:
            raise RateLimitExceededError("Google Trends")
        return list(self.series.get(keyword, []))

    async def get_related_queries(self, keyword: str, time_range: str) -> RelatedQueries:
        self.calls.append(("related", keyword, time_range))
        if self.related_failing:
            raise ExternalAPIError("Google Trends", "no related widget")
        return RelatedQueries(keyword=keyword, rising=[RelatedQuery(query=f"{keyword} scam", value=300)])


def _service(source: _FakeTrends, trends_keywords: list[str] | None = None) -> TrendsService:
    config = load_keywords_config(settings.keywords_config_path)
    if trends_keywords is not None:
        config = config.model_copy(update={"trends_keywords": trends_keywords})
    return TrendsService(source, TTLCache(), config, request_delay_seconds=0, panel_limit=3)


def test_summarize_trend_compares_last_week_with_the_week_before() -> None:
    rising = summarize_trend("cra scam", _points(10, 10, 10, 10, 10, 10, 10, 20, 20, 20, 20, 20, 20, 20))
    falling = summarize_trend("cra scam", _points(50, 50, 50, 50, 50, 50, 50, 40, 40, 40, 40, 40, 40, 40))
    flat = summarize_trend("cra scam", _points(30, 30, 30, 30, 30, 30, 30, 32, 32, 32, 32, 32, 32, 32))

    assert rising is not None and rising.trend == "up"
    assert rising.change_percent == 100
    assert rising.current_interest == 20
    assert falling is not None and falling.trend == "down"
    assert falling.change_percent == -20
    assert flat is not None and flat.trend == "stable"


def test_summarize_trend_edge_cases() -> None:
    short = summarize_trend("cra scam", _points(4, 6))
    from_zero = summarize_trend("cra scam", _points(0, 0, 0, 0, 0, 0, 0, 5, 5, 5, 5, 5, 5, 5))

    assert summarize_trend("cra scam", []) is None
    assert short is not None
    assert (short.current_interest, short.change_percent, short.trend) == (5, 0, "stable")
    assert from_zero is not None
    assert from_zero.change_percent == 0


@pytest.mark.asyncio
async def test_interest_is_cached_per_keyword_and_range() -> None:
    source = _FakeTrends({"cra scam": _points(10, 30)})
    service = _service(source)

    first = await service.get_interest_over_time("  CRA   Scam ")
    second = await service.get_interest_over_time("cra scam")
    await service.get_interest_over_time("cra scam", "today 12-m")

    assert first is not None and second is not None
    assert first.average_interest == 20
    assert first.geo == "CA"
    assert first.time_range == "today 3-m"
    assert [call for call in source.calls if call[0] == "interest"] == [
        ("interest", "cra scam", "today 3-m"),
        ("interest", "cra scam", "today 12-m"),
    ]


@pytest.mark.asyncio
async def test_failed_lookup_returns_none_and_is_retried() -> None:
    source = _FakeTrends({"cra scam": _points(10)})
    source.failing.add("cra scam")
    service = _service(source)

    assert await service.get_interest_over_time("cra scam") is None

    source.failing.clear()
    result = await service.get_interest_over_time("cra scam")

    assert result is not None
    assert len(source.calls) == 2


@pytest.mark.asyncio
async def test_explore_keyword_combines_interest_and_related() -> None:
    source = _FakeTrends({"cra scam": _points(10, 20)})
    service = _service(source)

    exploration = await service.explore_keyword("cra scam")

    assert exploration is not None
    assert [point.value for point in exploration.interest.points] == [10, 20]
    assert [item.query for item in exploration.related_queries.rising] == ["cra scam scam"]


@pytest.mark.asyncio
async def test_explore_keyword_degrades_when_parts_fail() -> None:
    source = _FakeTrends({"cra scam": _points(10)})
    source.related_failing = True
    service = _service(source)

    exploration = await service.explore_keyword("cra scam")

    assert exploration is not None
    assert exploration.related_queries.top == []
    assert exploration.related_queries.rising == []

    source.failing.add("cerb payment")
    assert await service.explore_keyword("cerb payment") is None


@pytest.mark.asyncio
async def test_explore_keywords_reports_failures() -> None:
    source = _FakeTrends({"cra scam": _points(10)})
    source.failing.add("cra arrest")
    service = _service(source)

    explorations, failed = await service.explore_keywords(["cra scam", "cra arrest"])

    assert [item.interest.keyword for item in explorations] == ["cra scam"]
    assert failed == ["cra arrest"]


@pytest.mark.asyncio
async def test_scam_keyword_panel_respects_limit_and_skips_missing_data() -> None:
    source = _FakeTrends(
        {
            "cra scam": _points(10, 10, 10, 10, 10, 10, 10, 20, 20, 20, 20, 20, 20, 20),
            "cra gift card": _points(5, 5),
        }
    )
    source.failing.add("cerb payment")
    service = _service(source, ["cra scam", "cra gift card", "cerb payment", "cra arrest"])

    panel = await service.get_scam_keywords_trends()
    again = await service.get_scam_keywords_trends()

    assert [item.keyword for item in panel.monitored_keywords] == ["cra scam", "cra gift card"]
    assert panel.monitored_keywords[0].trend == "up"
    assert panel.warnings == ["No trends data for 'cerb payment'"]
    assert again == panel
    assert sum(1 for call in source.calls if call[1] == "cra scam") == 1
    assert all(keyword != "cra arrest" for _, keyword, _ in source.calls)
