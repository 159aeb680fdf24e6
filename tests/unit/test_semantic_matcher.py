"""Unit tests for embedding-based seed phrase matching."""

from __future__ import annotations

import pytest

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.core.exceptions import ConfigurationError, ExternalAPIError
from scamwatch.services.analysis_types import SeedPhrase
from scamwatch.services.semantic_matcher import (
    SEED_EMBEDDINGS_CACHE_KEY,
    SemanticMatcher,
    load_seed_corpus,
)

SEED_VECTORS = {
    "cra gift card payment": [1.0, 0.0],
    "new cerb payment": [0.0, 1.0],
}


class _FakeProvider:
    def __init__(self, query_vectors: dict[str, list[float]] | None = None) -> None:
        self.query_vectors = query_vectors or {}
        self.calls: list[list[str]] = []
        self.fail = False

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail:
            raise ExternalAPIError("OpenAI Embeddings", "unavailable")
        return [SEED_VECTORS.get(text) or self.query_vectors[text] for text in texts]


def _seeds() -> list[SeedPhrase]:
    return [
        SeedPhrase(text="cra gift card payment", category="payment_scams", severity="critical"),
        SeedPhrase(text="new cerb payment", category="fake_benefits", severity="high"),
    ]


@pytest.mark.asyncio
async def test_matcher_without_provider_stays_not_ready() -> None:
    matcher = SemanticMatcher(None, TTLCache(), _seeds())

    assert await matcher.initialize() is False
    assert matcher.state == "not_ready"
    assert await matcher.analyze_batch(["cra gift card"]) == [None]
    assert await matcher.find_best_match("cra gift card") is None


@pytest.mark.asyncio
async def test_best_match_respects_threshold() -> None:
    provider = _FakeProvider({"pay cra in gift cards": [0.9, 0.1], "cra cerb overlap": [0.7, 0.7]})
    matcher = SemanticMatcher(provider, TTLCache(), _seeds(), similarity_threshold=0.8)

    assert await matcher.initialize() is True
    matches = await matcher.analyze_batch(["Pay CRA in gift cards", "cra cerb overlap"])

    assert matches[0] is not None
    assert matches[0].phrase == "cra gift card payment"
    assert matches[0].category == "payment_scams"
    assert matches[0].severity == "critical"
    assert matches[0].similarity == pytest.approx(0.9 / (0.82**0.5))
    assert matches[1] is None
    assert provider.calls[-1] == ["pay cra in gift cards", "cra cerb overlap"]


@pytest.mark.asyncio
async def test_threshold_override_applies_per_call() -> None:
    provider = _FakeProvider({"cra cerb overlap": [0.7, 0.7]})
    matcher = SemanticMatcher(provider, TTLCache(), _seeds(), similarity_threshold=0.8)
    await matcher.initialize()

    match = await matcher.find_best_match("cra cerb overlap", threshold=0.7)

    assert match is not None
    assert match.similarity == pytest.approx(2**-0.5)


@pytest.mark.asyncio
async def test_seed_vectors_are_cached_across_matchers() -> None:
    cache = TTLCache()
    first_provider = _FakeProvider()
    second_provider = _FakeProvider()

    await SemanticMatcher(first_provider, cache, _seeds()).initialize()
    second = SemanticMatcher(second_provider, cache, _seeds())

    assert await second.initialize() is True
    assert len(first_provider.calls) == 1
    assert second_provider.calls == []
    assert await cache.get(SEED_EMBEDDINGS_CACHE_KEY) == SEED_VECTORS


@pytest.mark.asyncio
async def test_seed_embedding_failure_leaves_matcher_not_ready() -> None:
    provider = _FakeProvider()
    provider.fail = True
    matcher = SemanticMatcher(provider, TTLCache(), _seeds())

    assert await matcher.initialize() is False
    assert not matcher.ready()


@pytest.mark.asyncio
async def test_query_embedding_failure_returns_no_matches() -> None:
    provider = _FakeProvider()
    matcher = SemanticMatcher(provider, TTLCache(), _seeds())
    await matcher.initialize()
    provider.fail = True

    assert await matcher.analyze_batch(["a", "b"]) == [None, None]
    assert matcher.ready()


@pytest.mark.asyncio
async def test_mismatched_query_vectors_return_no_matches() -> None:
    provider = _FakeProvider({"cra refund": [1.0, 0.0, 0.0], "cerb": [0.0, 1.0]})
    matcher = SemanticMatcher(provider, TTLCache(), _seeds())
    await matcher.initialize()

    assert await matcher.analyze_batch(["cra refund", "cerb"]) == [None, None]
    assert await matcher.find_best_match("cra refund") is None
    assert matcher.ready()


def test_status_reports_corpus_and_threshold() -> None:
    matcher = SemanticMatcher(None, TTLCache(), _seeds(), similarity_threshold=0.75, model="test-model")

    assert matcher.status() == {
        "ready": False,
        "seed_phrase_count": 2,
        "model": "test-model",
        "threshold": 0.75,
    }


def test_bundled_seed_corpus_loads() -> None:
    corpus = load_seed_corpus(settings.seed_phrases_path)

    assert corpus.phrases
    assert 0 < corpus.similarity_threshold <= 1
    assert all(phrase.text == phrase.text.lower() for phrase in corpus.phrases)


def test_unreadable_seed_corpus_raises(tmp_path) -> None:
    path = tmp_path / "seeds.json"
    path.write_text("{broken", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_seed_corpus(path)
