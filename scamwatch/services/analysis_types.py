"""Domain types shared by the scam analysis services."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

Severity = Literal["critical", "high", "medium", "low", "info"]
RiskLevel = Literal["critical", "high", "medium", "low"]
PositionRange = Literal["1-3", "4-8", "9-15", "16+"]
TrendDirection = Literal["up", "down", "stable"]

SEVERITY_ORDER: dict[str, int] = {
    "critical": 0,
    "high": 1,
    "medium": 2,
    "low": 3,
    "info": 4,
}
POSITION_RANGES: tuple[PositionRange, ...] = ("1-3", "4-8", "9-15", "16+")


@dataclass(slots=True)
class DateRange:
    """Inclusive ISO date window (``YYYY-MM-DD``)."""

    start_date: str
    end_date: str

    def to_dict(self) -> dict[str, str]:
        return {"start_date": self.start_date, "end_date": self.end_date}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "DateRange":
        return cls(
            start_date=str(payload.get("start_date", "")),
            end_date=str(payload.get("end_date", "")),
        )


@dataclass(slots=True)
class QueryMetric:
    """Search metrics for one normalized query over one period."""

    query: str
    impressions: float = 0
    clicks: float = 0
    ctr: float = 0.0
    position: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "QueryMetric":
        return cls(
            query=str(payload.get("query", "")),
            impressions=payload.get("impressions", 0) or 0,
            clicks=payload.get("clicks", 0) or 0,
            ctr=float(payload.get("ctr", 0.0) or 0.0),
            position=float(payload.get("position", 0.0) or 0.0),
        )


@dataclass(slots=True)
class PeriodMetrics:
    """Metric snapshot embedded in comparisons (no query text)."""

    impressions: float = 0
    clicks: float = 0
    ctr: float = 0.0
    position: float = 0.0

    @classmethod
    def from_metric(cls, metric: QueryMetric | None) -> "PeriodMetrics":
        if metric is None:
            return cls()
        return cls(
            impressions=metric.impressions,
            clicks=metric.clicks,
            ctr=metric.ctr,
            position=metric.position,
        )


@dataclass(slots=True)
class MetricChange:
    """Deltas between the current and the previous period."""

    impressions: float = 0
    impressions_percent: float = 0.0
    clicks: float = 0
    clicks_percent: float = 0.0
    ctr: float = 0.0
    position: float = 0.0


@dataclass(slots=True)
class TermComparison:
    """One query aligned across two periods."""

    query: str
    current: PeriodMetrics
    previous: PeriodMetrics
    change: MetricChange
    is_new: bool = False
    is_gone: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "TermComparison":
        return cls(
            query=str(payload["query"]),
            current=PeriodMetrics(**payload.get("current", {})),
            previous=PeriodMetrics(**payload.get("previous", {})),
            change=MetricChange(**payload.get("change", {})),
            is_new=bool(payload.get("is_new", False)),
            is_gone=bool(payload.get("is_gone", False)),
        )


@dataclass(slots=True)
class ImpressionTotals:
    current: float = 0
    previous: float = 0
    change: float = 0
    change_percent: float = 0.0


@dataclass(slots=True)
class ComparisonSummary:
    total_terms: int = 0
    new_terms: int = 0
    gone_terms: int = 0
    total_impressions: ImpressionTotals = field(default_factory=ImpressionTotals)


@dataclass(slots=True)
class ComparisonResult:
    """Full period-over-period comparison."""

    current_period: DateRange
    previous_period: DateRange
    summary: ComparisonSummary
    terms: list[TermComparison] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ComparisonResult":
        summary = dict(payload.get("summary", {}))
        totals = ImpressionTotals(**summary.pop("total_impressions", {}))
        return cls(
            current_period=DateRange.from_dict(payload["current_period"]),
            previous_period=DateRange.from_dict(payload["previous_period"]),
            summary=ComparisonSummary(total_impressions=totals, **summary),
            terms=[TermComparison.from_dict(item) for item in payload.get("terms", [])],
            warnings=list(payload.get("warnings", [])),
        )


@dataclass(slots=True)
class CTRBenchmark:
    """Expected CTR envelope for one position bucket."""

    position_range: str
    min: float
    expected: float
    max: float
    sample_size: int = 0


@dataclass(slots=True)
class CTRBenchmarks:
    """Benchmarks for every position bucket plus provenance."""

    buckets: dict[str, CTRBenchmark]
    calculated_at: str
    data_range: DateRange | None = None
    total_queries_analyzed: int = 0
    excluded_flagged: int = 0

    def for_range(self, position_range: str) -> CTRBenchmark:
        return self.buckets[position_range]

    @property
    def is_fallback(self) -> bool:
        return all(bucket.sample_size == 0 for bucket in self.buckets.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "buckets": {key: asdict(value) for key, value in self.buckets.items()},
            "calculated_at": self.calculated_at,
            "data_range": self.data_range.to_dict() if self.data_range else None,
            "total_queries_analyzed": self.total_queries_analyzed,
            "excluded_flagged": self.excluded_flagged,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "CTRBenchmarks":
        data_range = payload.get("data_range")
        return cls(
            buckets={
                key: CTRBenchmark(**value)
                for key, value in dict(payload.get("buckets", {})).items()
            },
            calculated_at=str(payload.get("calculated_at", "")),
            data_range=DateRange.from_dict(data_range) if data_range else None,
            total_queries_analyzed=int(payload.get("total_queries_analyzed", 0)),
            excluded_flagged=int(payload.get("excluded_flagged", 0)),
        )


@dataclass(slots=True)
class FlaggedTerm:
    """A query matched by the rule-based classifier."""

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
    status: str = "new"


@dataclass(slots=True)
class SeveritySummary:
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    info: int = 0
    total: int = 0


@dataclass(slots=True)
class ScamDetectionResult:
    """Rule-based detection output for a date range."""

    analysis_date: str
    period: DateRange
    total_queries_analyzed: int
    flagged_terms: list[FlaggedTerm]
    summary: SeveritySummary
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ScamDetectionResult":
        return cls(
            analysis_date=str(payload["analysis_date"]),
            period=DateRange.from_dict(payload["period"]),
            total_queries_analyzed=int(payload.get("total_queries_analyzed", 0)),
            flagged_terms=[FlaggedTerm(**item) for item in payload.get("flagged_terms", [])],
            summary=SeveritySummary(**payload.get("summary", {})),
            warnings=list(payload.get("warnings", [])),
        )


@dataclass(slots=True)
class SeedPhrase:
    """Reference scam phrase used as a similarity target."""

    text: str
    category: str
    severity: str
    embedding: list[float] | None = None


@dataclass(slots=True)
class EmbeddingMatch:
    """Best semantic match of a query against the seed corpus."""

    phrase: str
    category: str
    severity: str
    similarity: float


@dataclass(slots=True)
class CTRAnomaly:
    expected_ctr: float
    actual_ctr: float
    anomaly_score: float
    is_anomalous: bool


@dataclass(slots=True)
class ThreatChange:
    impressions: float
    impressions_percent: float
    ctr_delta: float


@dataclass(slots=True)
class EmergingThreat:
    """A candidate query scored by the risk scorer."""

    id: str
    query: str
    risk_score: int
    risk_level: RiskLevel
    ctr_anomaly: CTRAnomaly
    matched_patterns: list[str]
    similar_scams: list[str]
    embedding_match: EmbeddingMatch | None
    current: PeriodMetrics
    previous: PeriodMetrics
    change: ThreatChange
    is_new: bool
    first_seen: str
    status: str = "pending"

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "EmergingThreat":
        match = payload.get("embedding_match")
        return cls(
            id=str(payload["id"]),
            query=str(payload["query"]),
            risk_score=int(payload["risk_score"]),
            risk_level=payload["risk_level"],
            ctr_anomaly=CTRAnomaly(**payload["ctr_anomaly"]),
            matched_patterns=list(payload.get("matched_patterns", [])),
            similar_scams=list(payload.get("similar_scams", [])),
            embedding_match=EmbeddingMatch(**match) if match else None,
            current=PeriodMetrics(**payload.get("current", {})),
            previous=PeriodMetrics(**payload.get("previous", {})),
            change=ThreatChange(**payload["change"]),
            is_new=bool(payload.get("is_new", False)),
            first_seen=str(payload.get("first_seen", "")),
            status=str(payload.get("status", "pending")),
        )


@dataclass(slots=True)
class RiskSummary:
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    total: int = 0


@dataclass(slots=True)
class Pagination:
    page: int
    page_size: int
    total_pages: int
    total_threats: int
    has_next: bool
    has_previous: bool


@dataclass(slots=True)
class EmergingThreatsResult:
    """One page of ranked threats with summary over the capped set."""

    current_period: DateRange
    previous_period: DateRange
    threats: list[EmergingThreat]
    summary: RiskSummary
    pagination: Pagination
    semantic_enabled: bool = False
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class AnalyticsSummary:
    """Aggregate traffic metrics for a date range."""

    period: DateRange
    total_queries: int
    queries_above_threshold: int
    impression_threshold: int
    total_impressions: float
    total_clicks: float
    avg_ctr: float
    avg_position: float
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class DashboardView:
    """Detection result plus the highlight lists shown on the dashboard."""

    period: DateRange
    summary: SeveritySummary
    total_queries_analyzed: int
    flagged_terms: list[FlaggedTerm]
    critical_alerts: list[FlaggedTerm]
    new_terms: list[FlaggedTerm]
    trending_terms: list[FlaggedTerm]
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class RankedThreats:
    """Every included threat for a comparison window, ranked and capped."""

    current_period: DateRange
    previous_period: DateRange
    threats: list[EmergingThreat]
    semantic_enabled: bool = False
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "RankedThreats":
        return cls(
            current_period=DateRange.from_dict(payload["current_period"]),
            previous_period=DateRange.from_dict(payload["previous_period"]),
            threats=[EmergingThreat.from_dict(item) for item in payload.get("threats", [])],
            semantic_enabled=bool(payload.get("semantic_enabled", False)),
            warnings=list(payload.get("warnings", [])),
        )


@dataclass(slots=True)
class TrendPoint:
    """Relative search interest (0-100) on one day."""

    date: str
    value: int = 0


@dataclass(slots=True)
class InterestOverTime:
    keyword: str
    geo: str
    time_range: str
    points: list[TrendPoint] = field(default_factory=list)
    average_interest: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "InterestOverTime":
        return cls(
            keyword=str(payload.get("keyword", "")),
            geo=str(payload.get("geo", "")),
            time_range=str(payload.get("time_range", "")),
            points=[TrendPoint(**item) for item in payload.get("points", [])],
            average_interest=float(payload.get("average_interest", 0.0) or 0.0),
        )


@dataclass(slots=True)
class RelatedQuery:
    query: str
    value: int = 0
    is_breakout: bool = False


@dataclass(slots=True)
class RelatedQueries:
    """Top and rising searches related to one keyword."""

    keyword: str
    top: list[RelatedQuery] = field(default_factory=list)
    rising: list[RelatedQuery] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "RelatedQueries":
        return cls(
            keyword=str(payload.get("keyword", "")),
            top=[RelatedQuery(**item) for item in payload.get("top", [])],
            rising=[RelatedQuery(**item) for item in payload.get("rising", [])],
        )


@dataclass(slots=True)
class TrendExploration:
    interest: InterestOverTime
    related_queries: RelatedQueries

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class MonitoredKeyword:
    keyword: str
    current_interest: int
    trend: TrendDirection
    change_percent: int


@dataclass(slots=True)
class TrendsPanel:
    """Recent interest movement for every monitored scam keyword."""

    last_updated: str
    monitored_keywords: list[MonitoredKeyword] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "TrendsPanel":
        return cls(
            last_updated=str(payload.get("last_updated", "")),
            monitored_keywords=[MonitoredKeyword(**item) for item in payload.get("monitored_keywords", [])],
            warnings=list(payload.get("warnings", [])),
        )
