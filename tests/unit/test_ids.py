"""Unit tests for deterministic identifiers."""

from __future__ import annotations

from scamwatch.core.ids import stable_id


def test_stable_id_is_deterministic_and_prefixed() -> None:
    first = stable_id("threat", "cra gift card", "2026-10-09:2026-10-16")
    second = stable_id("threat", "cra gift card", "2026-10-09:2026-10-16")

    assert first == second
    assert first.startswith("threat_")
    body = first.removeprefix("threat_")
    assert len(body) == 16
    assert body.isalnum() and body == body.lower()


def test_stable_id_depends_on_every_part() -> None:
    base = stable_id("flag", "cra gift card", "2026-01-01", "2026-01-28")

    assert stable_id("flag", "cra gift card", "2026-01-02", "2026-01-28") != base
    assert stable_id("flag", "cra gift cards", "2026-01-01", "2026-01-28") != base
    assert stable_id("threat", "cra gift card", "2026-01-01", "2026-01-28") != base
    # Part boundaries are significant
    assert stable_id("flag", "ab", "c") != stable_id("flag", "a", "bc")
