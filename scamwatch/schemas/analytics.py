"""Analytics API schemas."""

from pydantic import BaseModel, Field


class DateRangeSchema(BaseModel):
    """Inclusive ISO date window."""

    start_date: str = Field(..., examples=["2026-09-18"])
    end_date: str = Field(..., examples=["2026-10-16"])


class QueryMetricResponse(BaseModel):
    query: str
    impressions: float
    clicks: float
    ctr: float
    position: float


class QueryListMeta(BaseModel):
    period: DateRangeSchema
    total_queries: int


class QueryListResponse(BaseModel):
    """Aggregated per-query metrics for a date range."""

    queries: list[QueryMetricResponse]
    meta: QueryListMeta
    warnings: list[str] = Field(default_factory=list)


class AnalyticsSummaryResponse(BaseModel):
    """Aggregate traffic metrics for a date range."""

    period: DateRangeSchema
    total_queries: int
    queries_above_threshold: int
    impression_threshold: int
    total_impressions: float
    total_clicks: float
    avg_ctr: float
    avg_position: float
    warnings: list[str] = Field(default_factory=list)
