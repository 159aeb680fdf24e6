"""Rule-based scam keyword classifier.

Each category is a pure rule returning an optional ``RuleMatch``. Rules run
in precedence order: the first match decides category and base severity,
while matched patterns are collected from every rule that fired. Seasonal
escalation depends only on the (month, day) supplied by the caller.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from scamwatch.schemas.keywords import (
    DateWindow,
    KeywordCategory,
    KeywordsConfig,
    PaymentCalendar,
    SeasonalMultipliers,
)
from scamwatch.services.analysis_types import Severity


@dataclass(frozen=True, slots=True)
class RuleMatch:
    """Output of a single classifier rule."""

    category: str
    severity: Severity
    patterns: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Classification:
    """Final classifier verdict for a query."""

    category: str
    severity: Severity
    patterns: list[str]


ClassifierRule = Callable[[str, KeywordsConfig], RuleMatch | None]
CategorySelector = Callable[[KeywordsConfig], KeywordCategory]


def _matching_terms(query: str, terms: Sequence[str]) -> list[str]:
    return [term for term in terms if term.lower() in query]


def standalone_rule(select: CategorySelector) -> ClassifierRule:
    """Rule matching any category term on its own."""

    def rule(query: str, config: KeywordsConfig) -> RuleMatch | None:
        category = select(config)
        matched = _matching_terms(query, category.terms)
        if not matched:
            return None
        return RuleMatch(category.name, category.severity, tuple(matched))

    return rule


def contextual_rule(select: CategorySelector) -> ClassifierRule:
    """Rule requiring a context term plus a category term."""

    def rule(query: str, config: KeywordsConfig) -> RuleMatch | None:
        category = select(config)
        if not _matching_terms(query, category.must_contain or []):
            return None
        matched = _matching_terms(query, category.terms)
        if not matched:
            return None
        patterns = tuple(f"{category.context_tag} + {term}" for term in matched)
        return RuleMatch(category.name, category.severity, patterns)

    return rule


CLASSIFIER_RULES: tuple[ClassifierRule, ...] = (
    standalone_rule(lambda config: config.categories.fake_expired_benefits),
    contextual_rule(lambda config: config.categories.illegitimate_payment_methods),
    contextual_rule(lambda config: config.categories.threat_language),
    standalone_rule(lambda config: config.categories.suspicious_modifiers),
)


def is_whitelisted(query: str, config: KeywordsConfig) -> bool:
    """Whether the query contains a whitelisted pattern."""
    lowered = query.lower()
    return any(pattern.lower() in lowered for pattern in config.whitelist.patterns)


def evaluate_rules(
    query: str,
    config: KeywordsConfig,
    rules: Sequence[ClassifierRule] = CLASSIFIER_RULES,
) -> list[RuleMatch]:
    """Run every rule and return the matches in precedence order."""
    matches: list[RuleMatch] = []
    for rule in rules:
        match = rule(query, config)
        if match is not None:
            matches.append(match)
    return matches


def is_within_window(month: int, day: int, window: DateWindow) -> bool:
    """Inclusive month/day window check, wrapping past December."""
    current = (month, day)
    start = (window.start_month, window.start_day)
    end = (window.end_month, window.end_day)
    if start <= end:
        return start <= current <= end
    return current >= start or current <= end


def is_payment_date(month: int, day: int, calendars: dict[str, PaymentCalendar]) -> bool:
    return any(calendar.includes(month, day) for calendar in calendars.values())


def apply_seasonal_adjustment(
    severity: Severity,
    seasonal: SeasonalMultipliers,
    *,
    month: int,
    day: int,
) -> Severity:
    """Escalate severity during tax season and on benefit payment dates.

    Tax season lifts medium to high; payment dates lift high to critical.
    Both checks look at the incoming severity, so a term is escalated at
    most one level.
    """
    if severity == "medium" and is_within_window(month, day, seasonal.tax_season):
        return "high"
    if severity == "high" and is_payment_date(month, day, seasonal.payment_calendars):
        return "critical"
    return severity


def classify_query(
    query: str,
    config: KeywordsConfig,
    *,
    month: int,
    day: int,
    rules: Sequence[ClassifierRule] = CLASSIFIER_RULES,
) -> Classification | None:
    """Classify a normalized query, or return None when it is not suspicious."""
    normalized = query.lower()
    if is_whitelisted(normalized, config):
        return None

    matches = evaluate_rules(normalized, config, rules)
    if not matches:
        return None

    winner = matches[0]
    patterns = [pattern for match in matches for pattern in match.patterns]
    severity = apply_seasonal_adjustment(
        winner.severity,
        config.seasonal_multipliers,
        month=month,
        day=day,
    )
    return Classification(category=winner.category, severity=severity, patterns=patterns)
