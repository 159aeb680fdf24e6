"""Google Trends API schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class TrendPointSchema(BaseModel):
    date: str
    value: int


class InterestOverTimeResponse(BaseModel):
    """Relative search interest (0-100) for one keyword."""

    keyword: str
    geo: str
    time_range: str
    points: list[TrendPointSchema]
    average_interest: float


class RelatedQuerySchema(BaseModel):
    query: str
    value: int
    is_breakout: bool


class RelatedQueriesResponse(BaseModel):
    keyword: str
    top: list[RelatedQuerySchema]
    rising: list[RelatedQuerySchema]


class TrendExplorationSchema(BaseModel):
    interest: InterestOverTimeResponse
    related_queries: RelatedQueriesResponse


class TrendExplorationsResponse(BaseModel):
    """Explorations for the keywords that returned data."""

    explorations: list[TrendExplorationSchema]
    failed_keywords: list[str] = Field(default_factory=list)


class MonitoredKeywordSchema(BaseModel):
    keyword: str
    current_interest: int
    trend: Literal["up", "down", "stable"]
    change_percent: int


class TrendsPanelResponse(BaseModel):
    """Week-over-week interest movement for the monitored scam keywords."""

    last_updated: str
    monitored_keywords: list[MonitoredKeywordSchema]
    warnings: list[str] = Field(default_factory=list)
