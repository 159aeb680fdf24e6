"""Scam detection API schemas."""

from pydantic import BaseModel, Field

from scamwatch.schemas.analytics import DateRangeSchema
from scamwatch.schemas.comparison import PeriodMetricsSchema
from scamwatch.services.analysis_types import RiskLevel, Severity


class FlaggedTermResponse(BaseModel):
    id: str
    query: str
    impressions: float
    clicks: float
    ctr: float
    position: float
    severity: Severity
    matched_category: str
    matched_patterns: list[str]
    first_detected: str
    last_seen: str
    status: str


class SeveritySummarySchema(BaseModel):
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    info: int = 0
    total: int = 0


class ScamDetectionResponse(BaseModel):
    """Rule-based detection output for a date range."""

    analysis_date: str
    period: DateRangeSchema
    total_queries_analyzed: int
    flagged_terms: list[FlaggedTermResponse]
    summary: SeveritySummarySchema
    warnings: list[str] = Field(default_factory=list)


class FlaggedTermsResponse(BaseModel):
    period: DateRangeSchema
    flagged_terms: list[FlaggedTermResponse]
    summary: SeveritySummarySchema
    warnings: list[str] = Field(default_factory=list)


class DashboardResponse(BaseModel):
    """Detection summary plus highlight lists for the dashboard."""

    period: DateRangeSchema
    summary: SeveritySummarySchema
    total_queries_analyzed: int
    flagged_terms: list[FlaggedTermResponse]
    critical_alerts: list[FlaggedTermResponse]
    new_terms: list[FlaggedTermResponse]
    trending_terms: list[FlaggedTermResponse]
    warnings: list[str] = Field(default_factory=list)


class CTRAnomalySchema(BaseModel):
    expected_ctr: float
    actual_ctr: float
    anomaly_score: float
    is_anomalous: bool


class EmbeddingMatchSchema(BaseModel):
    phrase: str
    category: str
    severity: str
    similarity: float


class ThreatChangeSchema(BaseModel):
    impressions: float
    impressions_percent: float
    ctr_delta: float


class EmergingThreatResponse(BaseModel):
    id: str
    query: str
    risk_score: int = Field(..., ge=0, le=100)
    risk_level: RiskLevel
    ctr_anomaly: CTRAnomalySchema
    matched_patterns: list[str]
    similar_scams: list[str]
    embedding_match: EmbeddingMatchSchema | None = None
    current: PeriodMetricsSchema
    previous: PeriodMetricsSchema
    change: ThreatChangeSchema
    is_new: bool
    first_seen: str
    status: str


class RiskSummarySchema(BaseModel):
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    total: int = 0


class PaginationSchema(BaseModel):
    page: int
    page_size: int
    total_pages: int
    total_threats: int
    has_next: bool
    has_previous: bool


class EmergingThreatsResponse(BaseModel):
    """One page of ranked threats; summary covers every page."""

    current_period: DateRangeSchema
    previous_period: DateRangeSchema
    threats: list[EmergingThreatResponse]
    summary: RiskSummarySchema
    pagination: PaginationSchema
    semantic_enabled: bool
    warnings: list[str] = Field(default_factory=list)


class CTRBenchmarkSchema(BaseModel):
    position_range: str
    min: float
    expected: float
    max: float
    sample_size: int


class CTRBenchmarksResponse(BaseModel):
    """CTR envelopes per position bucket."""

    buckets: dict[str, CTRBenchmarkSchema]
    calculated_at: str
    data_range: DateRangeSchema | None = None
    total_queries_analyzed: int
    excluded_flagged: int


class SemanticStatusResponse(BaseModel):
    ready: bool
    seed_phrase_count: int
    model: str
    threshold: float

