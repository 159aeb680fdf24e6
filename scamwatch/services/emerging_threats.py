"""Emerging threat detection across consecutive reporting periods.

Terms from a period comparison pass a cheap candidate filter, get an
optional semantic match in one batch, and are scored by ``risk_scoring``.
The full ranked list is cached per window length; pages are sliced from it.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.schemas.keywords import KeywordsConfig
from scamwatch.services.analysis_types import (
    ComparisonResult,
    EmergingThreat,
    EmergingThreatsResult,
    RankedThreats,
)
from scamwatch.services.benchmarks import BenchmarkService
from scamwatch.services.comparison import MONTH_DAYS, WEEK_DAYS, ComparisonService
from scamwatch.services.keyword_rules import is_whitelisted
from scamwatch.services.risk_scoring import (
    is_candidate,
    paginate,
    rank_threats,
    score_term,
    summarize_risk,
)
from scamwatch.services.semantic_matcher import SemanticMatcher

logger = logging.getLogger(__name__)


class EmergingThreatService:
    """Ranks suspicious queries by composite risk score."""

    def __init__(
        self,
        comparison: ComparisonService,
        benchmarks: BenchmarkService,
        matcher: SemanticMatcher,
        cache: TTLCache,
        keywords_config: KeywordsConfig,
    ) -> None:
        self.comparison = comparison
        self.benchmarks = benchmarks
        self.matcher = matcher
        self.cache = cache
        self.keywords_config = keywords_config
        self.max_results = settings.emerging_max_results
        self.page_size = settings.emerging_page_size
        self.max_pages = settings.emerging_max_pages

    @staticmethod
    def comparison_window(days: int) -> int:
        """7 compares week over week; anything else compares 28-day periods."""
        return WEEK_DAYS if days == WEEK_DAYS else MONTH_DAYS

    async def _compare(self, window: int, today: date | None) -> ComparisonResult:
        if window == WEEK_DAYS:
            return await self.comparison.compare_week_over_week(today)
        return await self.comparison.compare_month_over_month(today)

    async def rank_emerging_threats(self, days: int = 7, today: date | None = None) -> RankedThreats:
        """Score every candidate for the window; cached per comparison window."""
        window = self.comparison_window(days)

        async def compute() -> RankedThreats:
            benchmarks, comparison = await asyncio.gather(
                self.benchmarks.get_benchmarks(today),
                self._compare(window, today),
            )
            candidates = [
                term
                for term in comparison.terms
                if is_candidate(term) and not is_whitelisted(term.query, self.keywords_config)
            ]
            logger.info(
                "Scoring emerging threat candidates",
                extra={
                    "window_days": window,
                    "terms": len(comparison.terms),
                    "candidates": len(candidates),
                    "semantic_ready": self.matcher.ready(),
                },
            )

            matches = await self.matcher.analyze_batch([term.query for term in candidates])
            reference_terms = self.keywords_config.reference_terms()
            first_seen = datetime.now(timezone.utc).isoformat()
            period_key = f"{comparison.current_period.start_date}:{comparison.current_period.end_date}"

            threats: list[EmergingThreat] = []
            for term, match in zip(candidates, matches):
                threat = score_term(
                    term,
                    benchmarks,
                    reference_terms,
                    match,
                    first_seen=first_seen,
                    period_key=period_key,
                )
                if threat is not None:
                    threats.append(threat)

            ranked = rank_threats(threats, self.max_results)
            logger.info(
                "Emerging threats ranked",
                extra={
                    "included": len(threats),
                    "kept": len(ranked),
                    "semantic_matches": sum(1 for match in matches if match is not None),
                },
            )
            return RankedThreats(
                current_period=comparison.current_period,
                previous_period=comparison.previous_period,
                threats=ranked,
                semantic_enabled=self.matcher.ready(),
                warnings=list(comparison.warnings),
            )

        return await self.cache.get_or_set(
            f"emerging-threats:{window}",
            compute,
            settings.analytics_cache_ttl_seconds,
            encode=RankedThreats.to_dict,
            decode=RankedThreats.from_dict,
        )

    async def get_emerging_threats(
        self,
        days: int = 7,
        page: int = 1,
        today: date | None = None,
    ) -> EmergingThreatsResult:
        ranked = await self.rank_emerging_threats(days, today)
        threats, pagination = paginate(ranked.threats, page, self.page_size, self.max_pages)
        return EmergingThreatsResult(
            current_period=ranked.current_period,
            previous_period=ranked.previous_period,
            threats=threats,
            summary=summarize_risk(ranked.threats),
            pagination=pagination,
            semantic_enabled=ranked.semantic_enabled,
            warnings=list(ranked.warnings),
        )
