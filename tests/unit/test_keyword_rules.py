"""Unit tests for the rule-based scam keyword classifier."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from scamwatch.config import settings
from scamwatch.core.exceptions import ConfigurationError
from scamwatch.schemas.keywords import DateWindow, KeywordsConfig
from scamwatch.services.keyword_rules import (
    CLASSIFIER_RULES,
    apply_seasonal_adjustment,
    classify_query,
    evaluate_rules,
    is_within_window,
)
from scamwatch.services.keywords_config import load_keywords_config

# Outside tax season and not a benefit payment date
QUIET_DAY = {"month": 6, "day": 1}


@pytest.fixture(scope="module")
def config() -> KeywordsConfig:
    return load_keywords_config(settings.keywords_config_path)


def test_payment_term_with_agency_context_is_critical_contextual_match(
    config: KeywordsConfig,
) -> None:
    result = classify_query("gift card payment to tax agency", config, **QUIET_DAY)

    assert result is not None
    assert result.category == "Illegitimate Payment Methods"
    assert result.severity == "critical"
    assert result.patterns == ["CRA + gift card"]


def test_whitelist_overrides_every_other_match(config: KeywordsConfig) -> None:
    query = "report a scam cra gift card arrest new cerb"

    assert evaluate_rules(query, config)
    assert classify_query(query, config, **QUIET_DAY) is None


def test_context_term_alone_does_not_match_contextual_categories(config: KeywordsConfig) -> None:
    assert classify_query("cra tax return deadline", config, **QUIET_DAY) is None


def test_payment_term_without_context_does_not_match(config: KeywordsConfig) -> None:
    assert classify_query("bitcoin price today", config, **QUIET_DAY) is None


def test_first_matching_rule_decides_category_while_patterns_are_unioned(
    config: KeywordsConfig,
) -> None:
    result = classify_query("new cerb cra bitcoin", config, **QUIET_DAY)

    assert result is not None
    assert result.category == "Fake/Expired Benefits"
    assert result.severity == "critical"
    assert result.patterns == ["new cerb", "CRA + bitcoin"]


def test_rules_are_ordered_by_precedence(config: KeywordsConfig) -> None:
    matches = evaluate_rules("cra arrest claim now", config, CLASSIFIER_RULES)

    assert [match.category for match in matches] == ["Threat Language", "Suspicious Modifiers"]
    assert matches[0].patterns == ("CRA + arrest",)


def test_tax_season_escalates_medium_to_high(config: KeywordsConfig) -> None:
    quiet = classify_query("free money canada", config, **QUIET_DAY)
    in_season = classify_query("free money canada", config, month=3, day=10)

    assert quiet is not None and quiet.severity == "medium"
    assert in_season is not None and in_season.severity == "high"


def test_payment_date_escalates_high_to_critical(config: KeywordsConfig) -> None:
    result = classify_query("cra arrest warrant", config, month=1, day=4)

    assert result is not None
    assert result.severity == "critical"
    assert result.patterns == ["CRA + arrest warrant", "CRA + arrest"]


def test_medium_term_escalates_only_once_when_both_windows_apply(config: KeywordsConfig) -> None:
    # April 4 is inside tax season and a GST payment date
    severity = apply_seasonal_adjustment(
        "medium",
        config.seasonal_multipliers,
        month=4,
        day=4,
    )

    assert severity == "high"


def test_tax_season_does_not_touch_high_severity(config: KeywordsConfig) -> None:
    result = classify_query("cra police call", config, month=3, day=10)

    assert result is not None
    assert result.severity == "high"


def test_date_window_wraps_past_year_end() -> None:
    window = DateWindow(start_month=11, start_day=15, end_month=2, end_day=15)

    assert is_within_window(12, 31, window)
    assert is_within_window(1, 10, window)
    assert is_within_window(11, 15, window)
    assert not is_within_window(3, 1, window)
    assert not is_within_window(11, 14, window)


def test_contextual_category_without_must_contain_is_rejected(tmp_path: Path) -> None:
    payload = json.loads(Path(settings.keywords_config_path).read_text(encoding="utf-8"))
    payload["categories"]["threat_language"]["must_contain"] = []
    config_path = tmp_path / "keywords.json"
    config_path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_keywords_config(config_path)


def test_missing_keywords_file_raises_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_keywords_config(tmp_path / "missing.json")
