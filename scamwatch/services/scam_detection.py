"""Rule-based scam detection over search analytics for a date range."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime, timezone

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.core.ids import stable_id
from scamwatch.schemas.keywords import KeywordsConfig
from scamwatch.services.analysis_types import (
    SEVERITY_ORDER,
    DashboardView,
    DateRange,
    FlaggedTerm,
    QueryMetric,
    ScamDetectionResult,
    SeveritySummary,
)
from scamwatch.services.analytics import AnalyticsService
from scamwatch.services.date_ranges import validate_date_range
from scamwatch.services.keyword_rules import classify_query

logger = logging.getLogger(__name__)

DASHBOARD_LIST_SIZE = 10


def flag_query(
    metric: QueryMetric,
    config: KeywordsConfig,
    *,
    today: date,
    period: DateRange,
    detected_at: str,
) -> FlaggedTerm | None:
    classification = classify_query(metric.query, config, month=today.month, day=today.day)
    if classification is None:
        return None
    return FlaggedTerm(
        id=stable_id("flag", metric.query, period.start_date, period.end_date),
        query=metric.query,
        impressions=metric.impressions,
        clicks=metric.clicks,
        ctr=metric.ctr,
        position=metric.position,
        severity=classification.severity,
        matched_category=classification.category,
        matched_patterns=classification.patterns,
        first_detected=detected_at,
        last_seen=detected_at,
    )


def summarize_severity(terms: Iterable[FlaggedTerm]) -> SeveritySummary:
    counts = Counter(term.severity for term in terms)
    return SeveritySummary(
        critical=counts["critical"],
        high=counts["high"],
        medium=counts["medium"],
        low=counts["low"],
        info=counts["info"],
        total=sum(counts.values()),
    )


def filter_by_severity(terms: list[FlaggedTerm], severities: Iterable[str] | None) -> list[FlaggedTerm]:
    """Keep terms whose severity is listed; no filter when nothing is given."""
    wanted = {severity.strip().lower() for severity in severities or [] if severity.strip()}
    if not wanted:
        return terms
    return [term for term in terms if term.severity in wanted]


def build_dashboard(result: ScamDetectionResult) -> DashboardView:
    flagged = result.flagged_terms
    return DashboardView(
        period=result.period,
        summary=result.summary,
        total_queries_analyzed=result.total_queries_analyzed,
        flagged_terms=flagged,
        critical_alerts=[term for term in flagged if term.severity == "critical"][:DASHBOARD_LIST_SIZE],
        new_terms=[term for term in flagged if term.status == "new"][:DASHBOARD_LIST_SIZE],
        trending_terms=sorted(flagged, key=lambda term: -term.impressions)[:DASHBOARD_LIST_SIZE],
        warnings=list(result.warnings),
    )


class ScamDetectionService:
    """Classifies high-impression queries with the keyword rules."""

    def __init__(
        self,
        analytics: AnalyticsService,
        cache: TTLCache,
        keywords_config: KeywordsConfig,
    ) -> None:
        self.analytics = analytics
        self.cache = cache
        self.keywords_config = keywords_config

    def get_keywords_config(self) -> KeywordsConfig:
        return self.keywords_config

    async def detect_scams(
        self,
        date_range: DateRange,
        today: date | None = None,
    ) -> ScamDetectionResult:
        validate_date_range(date_range)
        key = f"scams:{date_range.start_date}:{date_range.end_date}"

        async def compute() -> ScamDetectionResult:
            reference_day = today or date.today()
            detected_at = datetime.now(timezone.utc).isoformat()
            fetched = await self.analytics.get_queries_above_threshold(
                date_range,
                settings.impression_threshold,
            )
            logger.info(
                "Running scam detection",
                extra={
                    "start_date": date_range.start_date,
                    "end_date": date_range.end_date,
                    "queries": len(fetched.metrics),
                    "impression_threshold": settings.impression_threshold,
                },
            )

            flagged: list[FlaggedTerm] = []
            for metric in fetched.metrics:
                term = flag_query(
                    metric,
                    self.keywords_config,
                    today=reference_day,
                    period=date_range,
                    detected_at=detected_at,
                )
                if term is not None:
                    flagged.append(term)

            flagged.sort(key=lambda term: (SEVERITY_ORDER[term.severity], -term.impressions, term.query))
            result = ScamDetectionResult(
                analysis_date=detected_at,
                period=date_range,
                total_queries_analyzed=len(fetched.metrics),
                flagged_terms=flagged,
                summary=summarize_severity(flagged),
                warnings=list(fetched.warnings),
            )
            logger.info(
                "Scam detection complete",
                extra={
                    "flagged": result.summary.total,
                    "critical": result.summary.critical,
                    "high": result.summary.high,
                },
            )
            return result

        return await self.cache.get_or_set(
            key,
            compute,
            settings.keywords_cache_ttl_seconds,
            encode=ScamDetectionResult.to_dict,
            decode=ScamDetectionResult.from_dict,
        )

    async def get_flagged_terms(
        self,
        date_range: DateRange,
        severities: Iterable[str] | None = None,
        today: date | None = None,
    ) -> tuple[ScamDetectionResult, list[FlaggedTerm]]:
        result = await self.detect_scams(date_range, today)
        return result, filter_by_severity(result.flagged_terms, severities)

    async def get_dashboard(self, date_range: DateRange, today: date | None = None) -> DashboardView:
        return build_dashboard(await self.detect_scams(date_range, today))
