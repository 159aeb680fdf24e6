"""Scam detection API endpoints."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Query

from scamwatch.api.v1.errors import to_http_exception
from scamwatch.api.v1.scams.constants import (
    DATE_RANGE_DESCRIPTION,
    DEFAULT_EMERGING_DAYS,
    SEVERITY_FILTER_DESCRIPTION,
)
from scamwatch.core.exceptions import ScamWatchError
from scamwatch.dependencies import (
    BenchmarkServiceDep,
    EmergingThreatServiceDep,
    ScamDetectionServiceDep,
    SemanticMatcherDep,
)
from scamwatch.schemas.keywords import KeywordsConfig
from scamwatch.schemas.scams import (
    CTRBenchmarksResponse,
    DashboardResponse,
    EmergingThreatsResponse,
    FlaggedTermsResponse,
    ScamDetectionResponse,
    SemanticStatusResponse,
)
from scamwatch.services.date_ranges import resolve_date_range

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/detect",
    response_model=ScamDetectionResponse,
    summary="Run scam detection",
    description=f"Classify high-impression queries with the keyword rules. {DATE_RANGE_DESCRIPTION}.",
)
async def detect_scams(
    service: ScamDetectionServiceDep,
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    days: int | None = Query(None, ge=1),
) -> ScamDetectionResponse:
    try:
        date_range = resolve_date_range(start_date, end_date, days)
        result = await service.detect_scams(date_range)
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc
    return ScamDetectionResponse.model_validate(result.to_dict())


@router.get(
    "/flagged",
    response_model=FlaggedTermsResponse,
    summary="List flagged terms",
    description="Flagged terms for a date range, optionally filtered by severity.",
)
async def get_flagged_terms(
    service: ScamDetectionServiceDep,
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    days: int | None = Query(None, ge=1),
    severity: str | None = Query(None, description=SEVERITY_FILTER_DESCRIPTION),
) -> FlaggedTermsResponse:
    severities = severity.split(",") if severity else None
    try:
        date_range = resolve_date_range(start_date, end_date, days)
        result, flagged = await service.get_flagged_terms(date_range, severities)
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc
    return FlaggedTermsResponse.model_validate(
        {
            "period": asdict(result.period),
            "flagged_terms": [asdict(term) for term in flagged],
            "summary": asdict(result.summary),
            "warnings": result.warnings,
        }
    )


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Dashboard view",
    description="Severity summary with critical, new and highest-traffic flagged terms.",
)
async def get_dashboard(
    service: ScamDetectionServiceDep,
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    days: int | None = Query(None, ge=1),
) -> DashboardResponse:
    try:
        date_range = resolve_date_range(start_date, end_date, days)
        view = await service.get_dashboard(date_range)
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc
    return DashboardResponse.model_validate(view.to_dict())


@router.get(
    "/emerging",
    response_model=EmergingThreatsResponse,
    summary="Emerging threats",
    description=(
        "Ranked suspicious queries from a period-over-period comparison. "
        "days=7 compares week over week; any other value compares 28-day periods."
    ),
)
async def get_emerging_threats(
    service: EmergingThreatServiceDep,
    days: int = Query(DEFAULT_EMERGING_DAYS, ge=1),
    page: int = Query(1),
) -> EmergingThreatsResponse:
    try:
        result = await service.get_emerging_threats(days=days, page=page)
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc
    return EmergingThreatsResponse.model_validate(result.to_dict())


@router.get(
    "/benchmarks",
    response_model=CTRBenchmarksResponse,
    summary="CTR benchmarks",
    description="Expected CTR per position bucket computed from historical data.",
)
async def get_benchmarks(
    service: BenchmarkServiceDep,
    days: int | None = Query(None, ge=1),
    min_impressions: int | None = Query(None, ge=0),
) -> CTRBenchmarksResponse:
    try:
        benchmarks = await service.calculate_benchmarks(days, min_impressions)
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc
    return CTRBenchmarksResponse.model_validate(benchmarks.to_dict())


@router.get(
    "/keywords",
    response_model=KeywordsConfig,
    summary="Keyword configuration",
    description="The scam keyword categories, whitelist and seasonal windows in use.",
)
async def get_keywords_config(service: ScamDetectionServiceDep) -> KeywordsConfig:
    return service.get_keywords_config()


@router.get(
    "/semantic/status",
    response_model=SemanticStatusResponse,
    summary="Semantic matcher status",
)
async def get_semantic_status(matcher: SemanticMatcherDep) -> SemanticStatusResponse:
    return SemanticStatusResponse.model_validate(matcher.status())
