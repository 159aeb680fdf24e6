"""Service wiring and FastAPI dependency providers."""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache, build_cache_store
from scamwatch.integrations.google_trends import GoogleTrendsClient
from scamwatch.integrations.search_console import AnalyticsSource, SearchConsoleClient
from scamwatch.schemas.keywords import KeywordsConfig
from scamwatch.services.analytics import AnalyticsService
from scamwatch.services.benchmarks import BenchmarkService
from scamwatch.services.comparison import ComparisonService
from scamwatch.services.emerging_threats import EmergingThreatService
from scamwatch.services.keywords_config import get_keywords_config
from scamwatch.services.scam_detection import ScamDetectionService
from scamwatch.services.semantic_matcher import SemanticMatcher, build_semantic_matcher
from scamwatch.services.trends import TrendsService, TrendsSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Services:
    """Application-scoped service graph sharing one cache."""

    cache: TTLCache
    source: AnalyticsSource
    keywords_config: KeywordsConfig
    analytics: AnalyticsService
    comparison: ComparisonService
    benchmarks: BenchmarkService
    matcher: SemanticMatcher
    scam_detection: ScamDetectionService
    emerging_threats: EmergingThreatService
    trends_source: TrendsSource
    trends: TrendsService


def build_services(
    source: AnalyticsSource | None = None,
    cache: TTLCache | None = None,
    keywords_config: KeywordsConfig | None = None,
    matcher: SemanticMatcher | None = None,
    trends_source: TrendsSource | None = None,
) -> Services:
    """Assemble every service; arguments replace the configured defaults."""
    cache = cache or TTLCache(
        build_cache_store(),
        default_ttl_seconds=settings.analytics_cache_ttl_seconds,
    )
    source = source or SearchConsoleClient()
    keywords_config = keywords_config or get_keywords_config()
    matcher = matcher or build_semantic_matcher(cache)
    trends_source = trends_source or GoogleTrendsClient()

    analytics = AnalyticsService(source, cache)
    comparison = ComparisonService(analytics, cache)
    benchmarks = BenchmarkService(analytics, cache, keywords_config=keywords_config)
    logger.info(
        "Services assembled",
        extra={"cache_backend": settings.cache_backend, "semantic_enabled": settings.semantic_enabled},
    )
    return Services(
        cache=cache,
        source=source,
        keywords_config=keywords_config,
        analytics=analytics,
        comparison=comparison,
        benchmarks=benchmarks,
        matcher=matcher,
        scam_detection=ScamDetectionService(analytics, cache, keywords_config),
        emerging_threats=EmergingThreatService(comparison, benchmarks, matcher, cache, keywords_config),
        trends_source=trends_source,
        trends=TrendsService(trends_source, cache, keywords_config),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_analytics_service(services: Annotated[Services, Depends(get_services)]) -> AnalyticsService:
    return services.analytics


def get_comparison_service(services: Annotated[Services, Depends(get_services)]) -> ComparisonService:
    return services.comparison


def get_benchmark_service(services: Annotated[Services, Depends(get_services)]) -> BenchmarkService:
    return services.benchmarks


def get_semantic_matcher(services: Annotated[Services, Depends(get_services)]) -> SemanticMatcher:
    return services.matcher


def get_scam_detection_service(
    services: Annotated[Services, Depends(get_services)],
) -> ScamDetectionService:
    return services.scam_detection


def get_emerging_threat_service(
    services: Annotated[Services, Depends(get_services)],
) -> EmergingThreatService:
    return services.emerging_threats


def get_trends_service(services: Annotated[Services, Depends(get_services)]) -> TrendsService:
    return services.trends


AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
ComparisonServiceDep = Annotated[ComparisonService, Depends(get_comparison_service)]
BenchmarkServiceDep = Annotated[BenchmarkService, Depends(get_benchmark_service)]
SemanticMatcherDep = Annotated[SemanticMatcher, Depends(get_semantic_matcher)]
ScamDetectionServiceDep = Annotated[ScamDetectionService, Depends(get_scam_detection_service)]
EmergingThreatServiceDep = Annotated[EmergingThreatService, Depends(get_emerging_threat_service)]
TrendsServiceDep = Annotated[TrendsService, Depends(get_trends_service)]
