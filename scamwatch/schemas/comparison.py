"""Period comparison API schemas."""

from pydantic import BaseModel, Field

from scamwatch.schemas.analytics import DateRangeSchema


class PeriodMetricsSchema(BaseModel):
    impressions: float
    clicks: float
    ctr: float
    position: float


class MetricChangeSchema(BaseModel):
    impressions: float
    impressions_percent: float
    clicks: float
    clicks_percent: float
    ctr: float
    position: float


class TermComparisonResponse(BaseModel):
    query: str
    current: PeriodMetricsSchema
    previous: PeriodMetricsSchema
    change: MetricChangeSchema
    is_new: bool
    is_gone: bool


class ImpressionTotalsSchema(BaseModel):
    current: float
    previous: float
    change: float
    change_percent: float


class ComparisonSummarySchema(BaseModel):
    total_terms: int
    new_terms: int
    gone_terms: int
    total_impressions: ImpressionTotalsSchema


class ComparisonResponse(BaseModel):
    """Per-query comparison of two periods."""

    current_period: DateRangeSchema
    previous_period: DateRangeSchema
    summary: ComparisonSummarySchema
    terms: list[TermComparisonResponse]
    warnings: list[str] = Field(default_factory=list)


class ComparisonRequest(BaseModel):
    """Custom periods to compare."""

    current_period: DateRangeSchema
    previous_period: DateRangeSchema


class TermListResponse(BaseModel):
    """A filtered slice of a comparison (gainers or new terms)."""

    current_period: DateRangeSchema
    previous_period: DateRangeSchema
    terms: list[TermComparisonResponse]
    count: int
