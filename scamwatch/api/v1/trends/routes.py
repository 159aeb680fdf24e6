"""Google Trends API endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Query, status

from scamwatch.api.v1.errors import to_http_exception
from scamwatch.api.v1.trends.constants import (
    KEYWORDS_DESCRIPTION,
    MAX_EXPLORE_KEYWORDS,
    MAX_KEYWORD_LENGTH,
    TIME_RANGE_DESCRIPTION,
    TRENDS_UNAVAILABLE,
)
from scamwatch.core.exceptions import ValidationError
from scamwatch.dependencies import TrendsServiceDep
from scamwatch.schemas.trends import (
    InterestOverTimeResponse,
    RelatedQueriesResponse,
    TrendExplorationsResponse,
    TrendsPanelResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _split_keywords(raw: str) -> list[str]:
    keywords = [keyword.strip() for keyword in raw.split(",") if keyword.strip()]
    if not keywords:
        raise ValidationError("At least one keyword is required")
    if len(keywords) > MAX_EXPLORE_KEYWORDS:
        raise ValidationError(f"At most {MAX_EXPLORE_KEYWORDS} keywords can be explored at once")
    return keywords


def _unavailable() -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=TRENDS_UNAVAILABLE)


@router.get(
    "/interest",
    response_model=InterestOverTimeResponse,
    summary="Interest over time",
)
async def get_interest_over_time(
    service: TrendsServiceDep,
    keyword: str = Query(..., min_length=1, max_length=MAX_KEYWORD_LENGTH),
    time_range: str | None = Query(None, description=TIME_RANGE_DESCRIPTION),
) -> InterestOverTimeResponse:
    if not keyword.strip():
        raise to_http_exception(ValidationError("At least one keyword is required"))
    interest = await service.get_interest_over_time(keyword, time_range)
    if interest is None:
        raise _unavailable()
    return InterestOverTimeResponse.model_validate(interest.to_dict())


@router.get(
    "/related",
    response_model=RelatedQueriesResponse,
    summary="Related queries",
    description="Top and rising searches related to a keyword.",
)
async def get_related_queries(
    service: TrendsServiceDep,
    keyword: str = Query(..., min_length=1, max_length=MAX_KEYWORD_LENGTH),
    time_range: str | None = Query(None, description=TIME_RANGE_DESCRIPTION),
) -> RelatedQueriesResponse:
    if not keyword.strip():
        raise to_http_exception(ValidationError("At least one keyword is required"))
    related = await service.get_related_queries(keyword, time_range)
    if related is None:
        raise _unavailable()
    return RelatedQueriesResponse.model_validate(related.to_dict())


@router.get(
    "/explore",
    response_model=TrendExplorationsResponse,
    summary="Explore keywords",
    description="Interest over time and related queries for one or more keywords.",
)
async def explore_keywords(
    service: TrendsServiceDep,
    keywords: str = Query(..., description=KEYWORDS_DESCRIPTION),
    time_range: str | None = Query(None, description=TIME_RANGE_DESCRIPTION),
) -> TrendExplorationsResponse:
    try:
        keyword_list = _split_keywords(keywords)
    except ValidationError as exc:
        raise to_http_exception(exc) from exc

    logger.info("Exploring trends", extra={"keywords": keyword_list, "time_range": time_range})
    explorations, failed = await service.explore_keywords(keyword_list, time_range)
    if not explorations:
        raise _unavailable()
    return TrendExplorationsResponse.model_validate(
        {
            "explorations": [exploration.to_dict() for exploration in explorations],
            "failed_keywords": failed,
        }
    )


@router.get(
    "/scam-keywords",
    response_model=TrendsPanelResponse,
    summary="Scam keyword trends",
    description="Recent interest movement for every monitored scam keyword.",
)
async def get_scam_keywords_trends(service: TrendsServiceDep) -> TrendsPanelResponse:
    panel = await service.get_scam_keywords_trends()
    return TrendsPanelResponse.model_validate(panel.to_dict())
