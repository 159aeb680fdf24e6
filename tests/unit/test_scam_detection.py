"""Unit tests for rule-based scam detection over analytics."""

from __future__ import annotations

from datetime import date

import pytest

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.core.exceptions import InvalidDateRangeError
from scamwatch.integrations.search_console import FetchResult
from scamwatch.services.analysis_types import DateRange, QueryMetric
from scamwatch.services.analytics import AnalyticsService
from scamwatch.services.keywords_config import load_keywords_config
from scamwatch.services.scam_detection import ScamDetectionService, filter_by_severity

RANGE = DateRange(start_date="2026-05-01", end_date="2026-05-28")
QUIET_DAY = date(2026, 6, 1)


class _FakeSource:
    def __init__(self) -> None:
        self.calls = 0

    async def fetch_query_metrics(self, date_range: DateRange) -> FetchResult:
        self.calls += 1
        return FetchResult(
            metrics=[
                QueryMetric(query="cra gift card", impressions=900, clicks=9, ctr=0.01, position=2.0),
                QueryMetric(query="free money", impressions=600, clicks=30, ctr=0.05, position=6.0),
                QueryMetric(
                    query="report a scam cra gift card",
                    impressions=2000,
                    clicks=400,
                    ctr=0.2,
                    position=1.0,
                ),
                QueryMetric(query="cra my account", impressions=1000, clicks=500, ctr=0.5, position=1.0),
                QueryMetric(query="cerb payment 2026", impressions=400, clicks=1, ctr=0.0025, position=3.0),
            ],
            warnings=["Failed to fetch data for filter /fr/: boom"],
        )


def _service() -> tuple[ScamDetectionService, _FakeSource]:
    source = _FakeSource()
    cache = TTLCache()
    service = ScamDetectionService(
        AnalyticsService(source, cache),
        cache,
        load_keywords_config(settings.keywords_config_path),
    )
    return service, source


@pytest.mark.asyncio
async def test_detect_scams_flags_rule_matches_above_threshold() -> None:
    service, _ = _service()

    result = await service.detect_scams(RANGE, today=QUIET_DAY)

    assert result.total_queries_analyzed == 4
    assert [term.query for term in result.flagged_terms] == ["cra gift card", "free money"]
    critical, medium = result.flagged_terms
    assert critical.severity == "critical"
    assert critical.matched_category == "Illegitimate Payment Methods"
    assert critical.matched_patterns == ["CRA + gift card"]
    assert critical.status == "new"
    assert critical.id.startswith("flag_")
    assert medium.severity == "medium"
    assert result.summary.total == 2
    assert result.summary.critical == 1
    assert result.summary.medium == 1
    assert result.warnings == ["Failed to fetch data for filter /fr/: boom"]


@pytest.mark.asyncio
async def test_detection_results_are_cached() -> None:
    service, source = _service()

    first = await service.detect_scams(RANGE, today=QUIET_DAY)
    second = await service.detect_scams(RANGE, today=QUIET_DAY)

    assert source.calls == 1
    assert [term.id for term in second.flagged_terms] == [term.id for term in first.flagged_terms]


@pytest.mark.asyncio
async def test_flagged_terms_filter_by_severity() -> None:
    service, _ = _service()

    _, critical_only = await service.get_flagged_terms(RANGE, [" Critical "], today=QUIET_DAY)
    _, everything = await service.get_flagged_terms(RANGE, [], today=QUIET_DAY)

    assert [term.query for term in critical_only] == ["cra gift card"]
    assert len(everything) == 2


def test_filter_by_severity_without_values_keeps_all() -> None:
    assert filter_by_severity([], None) == []


@pytest.mark.asyncio
async def test_dashboard_highlights() -> None:
    service, _ = _service()

    dashboard = await service.get_dashboard(RANGE, today=QUIET_DAY)

    assert [term.query for term in dashboard.critical_alerts] == ["cra gift card"]
    assert [term.query for term in dashboard.trending_terms] == ["cra gift card", "free money"]
    assert len(dashboard.new_terms) == 2
    assert dashboard.total_queries_analyzed == 4


@pytest.mark.asyncio
async def test_inverted_range_is_rejected() -> None:
    service, source = _service()

    with pytest.raises(InvalidDateRangeError):
        await service.detect_scams(DateRange(start_date="2026-05-28", end_date="2026-05-01"))
    assert source.calls == 0
