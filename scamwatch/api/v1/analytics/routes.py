"""Search analytics API endpoints."""

import logging

from fastapi import APIRouter, Query

from scamwatch.api.v1.analytics.constants import DATE_RANGE_DESCRIPTION
from scamwatch.api.v1.errors import to_http_exception
from scamwatch.core.exceptions import ScamWatchError
from scamwatch.dependencies import AnalyticsServiceDep
from scamwatch.schemas.analytics import AnalyticsSummaryResponse, QueryListResponse
from scamwatch.services.date_ranges import resolve_date_range

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/queries",
    response_model=QueryListResponse,
    summary="List query metrics",
    description=f"Per-query metrics aggregated across the monitored pages. {DATE_RANGE_DESCRIPTION}.",
)
async def get_queries(
    service: AnalyticsServiceDep,
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    days: int | None = Query(None, ge=1),
) -> QueryListResponse:
    try:
        date_range = resolve_date_range(start_date, end_date, days)
        result = await service.get_analytics_for_date_range(date_range)
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc

    return QueryListResponse.model_validate(
        {
            "queries": [metric.to_dict() for metric in result.metrics],
            "meta": {"period": date_range.to_dict(), "total_queries": len(result.metrics)},
            "warnings": result.warnings,
        }
    )


@router.get(
    "/summary",
    response_model=AnalyticsSummaryResponse,
    summary="Analytics summary",
    description="Totals, average CTR and position, and the count of high-impression queries.",
)
async def get_summary(
    service: AnalyticsServiceDep,
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    days: int | None = Query(None, ge=1),
) -> AnalyticsSummaryResponse:
    try:
        date_range = resolve_date_range(start_date, end_date, days)
        summary = await service.get_summary(date_range)
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc
    return AnalyticsSummaryResponse.model_validate(summary.to_dict())
