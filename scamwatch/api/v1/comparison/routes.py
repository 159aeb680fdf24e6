"""Period comparison API endpoints."""

import logging

from fastapi import APIRouter, Query

from scamwatch.api.v1.comparison.constants import (
    DEFAULT_COMPARISON_DAYS,
    DEFAULT_GAINERS_LIMIT,
    MAX_GAINERS_LIMIT,
)
from scamwatch.api.v1.errors import to_http_exception
from scamwatch.core.exceptions import ScamWatchError
from scamwatch.dependencies import ComparisonServiceDep
from scamwatch.schemas.comparison import (
    ComparisonRequest,
    ComparisonResponse,
    TermListResponse,
)
from scamwatch.services.analysis_types import ComparisonResult, DateRange, TermComparison
from scamwatch.services.comparison import new_terms, top_gainers

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_term_list(result: ComparisonResult, terms: list[TermComparison]) -> TermListResponse:
    return TermListResponse.model_validate(
        {
            "current_period": result.current_period.to_dict(),
            "previous_period": result.previous_period.to_dict(),
            "terms": [term.to_dict() for term in terms],
            "count": len(terms),
        }
    )


@router.get(
    "/week-over-week",
    response_model=ComparisonResponse,
    summary="Week-over-week comparison",
)
async def compare_week_over_week(service: ComparisonServiceDep) -> ComparisonResponse:
    try:
        result = await service.compare_week_over_week()
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc
    return ComparisonResponse.model_validate(result.to_dict())


@router.get(
    "/month-over-month",
    response_model=ComparisonResponse,
    summary="Month-over-month comparison",
    description="Compare the last 28 days with the 28 days before.",
)
async def compare_month_over_month(service: ComparisonServiceDep) -> ComparisonResponse:
    try:
        result = await service.compare_month_over_month()
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc
    return ComparisonResponse.model_validate(result.to_dict())


@router.post(
    "",
    response_model=ComparisonResponse,
    summary="Compare custom periods",
)
async def compare_periods(
    request: ComparisonRequest,
    service: ComparisonServiceDep,
) -> ComparisonResponse:
    logger.info(
        "Comparing custom periods",
        extra={
            "current_period": request.current_period.model_dump(),
            "previous_period": request.previous_period.model_dump(),
        },
    )
    try:
        result = await service.compare_periods(
            DateRange(**request.current_period.model_dump()),
            DateRange(**request.previous_period.model_dump()),
        )
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc
    return ComparisonResponse.model_validate(result.to_dict())


@router.get(
    "/gainers",
    response_model=TermListResponse,
    summary="Top gainers",
    description="Existing terms with the largest impression increase over the previous period.",
)
async def get_top_gainers(
    service: ComparisonServiceDep,
    days: int = Query(DEFAULT_COMPARISON_DAYS, ge=1),
    limit: int = Query(DEFAULT_GAINERS_LIMIT, ge=1, le=MAX_GAINERS_LIMIT),
) -> TermListResponse:
    try:
        result = await service.compare_last_days(days)
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc
    return _to_term_list(result, top_gainers(result, limit))


@router.get(
    "/new-terms",
    response_model=TermListResponse,
    summary="New terms",
    description="Terms absent from the previous period with at least min_impressions now.",
)
async def get_new_terms(
    service: ComparisonServiceDep,
    days: int = Query(DEFAULT_COMPARISON_DAYS, ge=1),
    min_impressions: int | None = Query(None, ge=0),
) -> TermListResponse:
    try:
        result = await service.compare_last_days(days)
    except ScamWatchError as exc:
        raise to_http_exception(exc) from exc
    return _to_term_list(result, new_terms(result, min_impressions))
