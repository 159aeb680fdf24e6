"""Composite risk scoring for emerging scam queries.

Scoring is deterministic and free of I/O. A term's score blends how far its
CTR falls below the position benchmark, whether it ranks well yet gets few
clicks, how fast its impressions grew and whether it just appeared. Pattern
signals and similarity to known scam phrases add bounded boosts on top.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from scamwatch.core.ids import stable_id
from scamwatch.services.analysis_types import (
    CTRAnomaly,
    CTRBenchmarks,
    EmbeddingMatch,
    EmergingThreat,
    Pagination,
    RiskLevel,
    RiskSummary,
    TermComparison,
    ThreatChange,
)
from scamwatch.services.benchmarks import bucket_for_position

# Candidate pre-filter
NEW_TERM_MIN_IMPRESSIONS = 20
GROWTH_MIN_PERCENT = 50
GROWTH_MIN_IMPRESSIONS = 50
HIGH_VOLUME_IMPRESSIONS = 500

ANOMALY_BOOST = 0.3

LEXICAL_SIMILARITY_THRESHOLD = 0.70
MIN_SHARED_WORDS = 2
MAX_SIMILAR_SCAMS = 5

PATTERN_BOOST_PER_SIGNAL = 5
PATTERN_BOOST_CAP = 20
SIMILARITY_BOOST_PER_MATCH = 5
SIMILARITY_BOOST_CAP = 15

SEVERITY_MULTIPLIERS: dict[str, float] = {"critical": 1.3, "high": 1.15}

DOLLAR_AMOUNT_PATTERN = re.compile(
    r"\$\s*\d+(?:,\d{3})*(?:\.\d{2})?|\d+\s*(?:dollars?|bucks)", re.IGNORECASE
)
YEAR_PATTERN = re.compile(r"\b20(?:2[4-9]|[3-9]\d)\b")
URGENCY_PATTERN = re.compile(
    r"\b(?:urgent|immediate|immediately|act now|claim now|apply now|hurry|"
    r"limited time|expires|last chance|final notice)\b",
    re.IGNORECASE,
)
FREE_MONEY_PATTERN = re.compile(
    r"\b(?:free|bonus|extra|secret|hidden|unclaimed)\s+"
    r"(?:money|cash|payment|benefit|refund|cheque|check)\b",
    re.IGNORECASE,
)
AGENCY_CONTEXT_PATTERN = re.compile(r"\b(?:cra|canada revenue|revenue agency|tax)\b", re.IGNORECASE)

SIGNAL_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("DOLLAR_AMOUNT", DOLLAR_AMOUNT_PATTERN),
    ("YEAR", YEAR_PATTERN),
    ("URGENCY", URGENCY_PATTERN),
    ("FREE_MONEY", FREE_MONEY_PATTERN),
)
CONTEXT_SIGNAL = "CRA_CONTEXT"


@dataclass(frozen=True, slots=True)
class RiskFactors:
    """Normalized (0-1) inputs to the composite score."""

    ctr: float
    position: float
    volume: float
    emergence: float
    embedding: float = 0.0
    severity_multiplier: float = 1.0


def is_candidate(term: TermComparison) -> bool:
    """Cheap gate deciding which terms get full scoring."""
    impressions = term.current.impressions
    if term.is_new and impressions >= NEW_TERM_MIN_IMPRESSIONS:
        return True
    if term.change.impressions_percent >= GROWTH_MIN_PERCENT and impressions >= GROWTH_MIN_IMPRESSIONS:
        return True
    return impressions >= HIGH_VOLUME_IMPRESSIONS


def calculate_ctr_anomaly(actual_ctr: float, position: float, benchmarks: CTRBenchmarks) -> CTRAnomaly:
    """Un-boosted CTR shortfall relative to the position bucket benchmark."""
    benchmark = benchmarks.for_range(bucket_for_position(position))
    expected = benchmark.expected
    score = 0.0
    if expected > 0 and actual_ctr < expected:
        score = min(1.0, max(0.0, (expected - actual_ctr) / expected))
    return CTRAnomaly(
        expected_ctr=expected,
        actual_ctr=actual_ctr,
        anomaly_score=score,
        is_anomalous=actual_ctr < benchmark.min,
    )


def ctr_factor(anomaly: CTRAnomaly) -> float:
    if anomaly.is_anomalous:
        return min(1.0, anomaly.anomaly_score + ANOMALY_BOOST)
    return anomaly.anomaly_score


def position_factor(position: float, clicks: float, impressions: float) -> float:
    """High when a query ranks well but rarely gets clicked."""
    if position <= 3 and clicks < 50 and impressions > 100:
        return 0.9
    if position <= 8 and clicks < 20 and impressions > 50:
        return 0.7
    if position <= 15 and clicks < 10 and impressions > 30:
        return 0.5
    return 0.0


def volume_factor(impressions_percent: float) -> float:
    if impressions_percent >= 300:
        return 1.0
    if impressions_percent >= 200:
        return 0.8
    if impressions_percent >= 100:
        return 0.6
    if impressions_percent >= 50:
        return 0.3
    return 0.0


def emergence_factor(is_new: bool, impressions: float) -> float:
    if not is_new:
        return 0.0
    if impressions > 100:
        return 0.9
    if impressions > 50:
        return 0.6
    if impressions > 20:
        return 0.3
    return 0.0


def detect_dynamic_patterns(query: str) -> list[str]:
    """Money, year, urgency and free-money signals, labelled with the matched text."""
    matched = [
        f"{label}: {match.group(0)}"
        for label, pattern in SIGNAL_PATTERNS
        if (match := pattern.search(query))
    ]
    if matched and AGENCY_CONTEXT_PATTERN.search(query):
        matched.insert(0, CONTEXT_SIGNAL)
    return matched


def dice_coefficient(first: str, second: str) -> float:
    """Sorensen-Dice similarity over character bigrams, ignoring whitespace."""
    a = re.sub(r"\s+", "", first)
    b = re.sub(r"\s+", "", second)
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    bigrams = Counter(a[i:i + 2] for i in range(len(a) - 1))
    overlap = 0
    for i in range(len(b) - 1):
        bigram = b[i:i + 2]
        if bigrams[bigram] > 0:
            bigrams[bigram] -= 1
            overlap += 1
    return 2.0 * overlap / (len(a) + len(b) - 2)


def _meaningful_words(text: str) -> list[str]:
    seen: dict[str, None] = {}
    for word in text.split():
        if len(word) > 2:
            seen.setdefault(word, None)
    return list(seen)


def find_similar_scams(query: str, reference_terms: Sequence[str]) -> list[str]:
    """Known scam terms that look like ``query``, annotated with why."""
    lowered = query.lower()
    similar: list[str] = []

    for term in reference_terms:
        similarity = dice_coefficient(lowered, term.lower())
        if similarity >= LEXICAL_SIMILARITY_THRESHOLD:
            similar.append(f"{term} ({math.floor(similarity * 100 + 0.5)}%)")

    query_words = _meaningful_words(lowered)
    for term in reference_terms:
        term_words = set(_meaningful_words(term.lower()))
        shared = [word for word in query_words if word in term_words]
        if len(shared) >= MIN_SHARED_WORDS:
            annotation = f"{term} (shared: {', '.join(shared)})"
            if annotation not in similar:
                similar.append(annotation)

    return similar[:MAX_SIMILAR_SCAMS]


def pattern_boost(pattern_count: int) -> int:
    return min(PATTERN_BOOST_CAP, PATTERN_BOOST_PER_SIGNAL * pattern_count)


def similarity_boost(similar_count: int) -> int:
    return min(SIMILARITY_BOOST_CAP, SIMILARITY_BOOST_PER_MATCH * similar_count)


def severity_multiplier(severity: str) -> float:
    return SEVERITY_MULTIPLIERS.get(severity, 1.0)


def composite_score(
    factors: RiskFactors,
    *,
    pattern_count: int,
    similar_count: int,
    semantic: bool,
) -> int:
    """Weighted factor blend plus boosts, clamped to 0-100.

    With a semantic match the embedding similarity takes the largest weight
    and lexical similarity does not contribute.
    """
    if semantic:
        weighted = (
            0.35 * factors.embedding * factors.severity_multiplier
            + 0.25 * factors.ctr
            + 0.15 * factors.position
            + 0.15 * factors.volume
            + 0.10 * factors.emergence
        )
        score = 100 * weighted + pattern_boost(pattern_count)
    else:
        weighted = (
            0.40 * factors.ctr
            + 0.25 * factors.position
            + 0.20 * factors.volume
            + 0.15 * factors.emergence
        )
        score = 100 * weighted + pattern_boost(pattern_count) + similarity_boost(similar_count)
    # Half-up rounding
    return int(min(100.0, max(0.0, math.floor(score + 0.5))))


def risk_level_for(score: int) -> RiskLevel:
    if score >= 76:
        return "critical"
    if score >= 51:
        return "high"
    if score >= 31:
        return "medium"
    return "low"


def should_include(
    score: int,
    matched_patterns: Sequence[str],
    similar_scams: Sequence[str],
    embedding_match: EmbeddingMatch | None,
) -> bool:
    if embedding_match is not None:
        return True
    if (matched_patterns or similar_scams) and score >= 20:
        return True
    return score >= 30


def score_term(
    term: TermComparison,
    benchmarks: CTRBenchmarks,
    reference_terms: Sequence[str],
    embedding_match: EmbeddingMatch | None = None,
    *,
    first_seen: str,
    period_key: str = "",
) -> EmergingThreat | None:
    """Score one candidate; None when it does not clear the inclusion bar."""
    query = term.query.lower()
    current = term.current

    anomaly = calculate_ctr_anomaly(current.ctr, current.position, benchmarks)
    matched_patterns = detect_dynamic_patterns(query)
    similar_scams = [] if embedding_match else find_similar_scams(query, reference_terms)

    factors = RiskFactors(
        ctr=ctr_factor(anomaly),
        position=position_factor(current.position, current.clicks, current.impressions),
        volume=volume_factor(term.change.impressions_percent),
        emergence=emergence_factor(term.is_new, current.impressions),
        embedding=embedding_match.similarity if embedding_match else 0.0,
        severity_multiplier=severity_multiplier(embedding_match.severity) if embedding_match else 1.0,
    )
    score = composite_score(
        factors,
        pattern_count=len(matched_patterns),
        similar_count=len(similar_scams),
        semantic=embedding_match is not None,
    )

    if not should_include(score, matched_patterns, similar_scams, embedding_match):
        return None

    return EmergingThreat(
        id=stable_id("threat", term.query, period_key),
        query=term.query,
        risk_score=score,
        risk_level=risk_level_for(score),
        ctr_anomaly=anomaly,
        matched_patterns=matched_patterns,
        similar_scams=similar_scams,
        embedding_match=embedding_match,
        current=term.current,
        previous=term.previous,
        change=ThreatChange(
            impressions=term.change.impressions,
            impressions_percent=term.change.impressions_percent,
            ctr_delta=term.current.ctr - term.previous.ctr,
        ),
        is_new=term.is_new,
        first_seen=first_seen,
    )


def rank_threats(threats: list[EmergingThreat], max_results: int) -> list[EmergingThreat]:
    """Highest score first, then most impressions, then alphabetical; capped."""
    ordered = sorted(
        threats,
        key=lambda threat: (-threat.risk_score, -threat.current.impressions, threat.query),
    )
    return ordered[:max_results]


def summarize_risk(threats: Sequence[EmergingThreat]) -> RiskSummary:
    counts = Counter(threat.risk_level for threat in threats)
    return RiskSummary(
        critical=counts["critical"],
        high=counts["high"],
        medium=counts["medium"],
        low=counts["low"],
        total=len(threats),
    )


def paginate(
    threats: Sequence[EmergingThreat],
    page: int,
    page_size: int,
    max_pages: int,
) -> tuple[list[EmergingThreat], Pagination]:
    """Slice one page, clamping ``page`` into ``[1, total_pages]``."""
    total = len(threats)
    total_pages = max(1, min(max_pages, math.ceil(total / page_size)))
    current_page = min(max(page, 1), total_pages)
    start = (current_page - 1) * page_size
    return list(threats[start:start + page_size]), Pagination(
        page=current_page,
        page_size=page_size,
        total_pages=total_pages,
        total_threats=total,
        has_next=current_page < total_pages,
        has_previous=current_page > 1,
    )
