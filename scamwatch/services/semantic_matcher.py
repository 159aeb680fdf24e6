"""Embedding-based matching against a reference corpus of scam phrases.

The matcher is either ``not_ready`` (no embeddings backend configured, or
seed vectors unavailable) or ``ready``. Public lookups never raise: when not
ready, or when the backend fails mid-request, they return no matches and the
risk scorer falls back to lexical similarity.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Protocol

import numpy as np

from scamwatch.config import settings
from scamwatch.core.cache import TTLCache
from scamwatch.core.exceptions import ConfigurationError, ScamWatchError
from scamwatch.integrations.embeddings import EmbeddingsClient
from scamwatch.services.analysis_types import EmbeddingMatch, SeedPhrase

logger = logging.getLogger(__name__)

SEED_EMBEDDINGS_CACHE_KEY = "seed-embeddings-v1"

MatcherState = Literal["not_ready", "ready"]


class EmbeddingProvider(Protocol):
    async def embed(self, texts: list[str]) -> list[list[float]]: ...


class HttpEmbeddingProvider:
    """Embedding provider backed by ``EmbeddingsClient``."""

    def __init__(self, **client_kwargs: Any) -> None:
        self._client_kwargs = client_kwargs

    async def embed(self, texts: list[str]) -> list[list[float]]:
        async with EmbeddingsClient(**self._client_kwargs) as client:
            return await client.get_embeddings(texts)


@dataclass(slots=True)
class SeedCorpus:
    phrases: list[SeedPhrase]
    similarity_threshold: float
    model: str


def load_seed_corpus(path: str | Path) -> SeedCorpus:
    """Read the seed phrase file: ``{settings, phrases: {category: {severity, terms}}}``."""
    corpus_path = Path(path)
    try:
        payload = json.loads(corpus_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(str(corpus_path), str(exc)) from exc

    phrases: list[SeedPhrase] = []
    for category, data in dict(payload.get("phrases", {})).items():
        severity = str(data.get("severity", "medium"))
        for term in data.get("terms", []):
            phrases.append(SeedPhrase(text=str(term).lower(), category=category, severity=severity))

    corpus_settings = dict(payload.get("settings", {}))
    logger.info("Loaded seed phrases", extra={"count": len(phrases), "path": str(corpus_path)})
    return SeedCorpus(
        phrases=phrases,
        similarity_threshold=float(
            corpus_settings.get("similarity_threshold", settings.similarity_threshold)
        ),
        model=str(corpus_settings.get("model", settings.embeddings_model)),
    )


class SemanticMatcher:
    """Two-state semantic similarity engine."""

    def __init__(
        self,
        provider: EmbeddingProvider | None,
        cache: TTLCache,
        seed_phrases: list[SeedPhrase],
        *,
        similarity_threshold: float = 0.80,
        model: str = "",
        cache_ttl_seconds: int | None = None,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._seed_phrases = seed_phrases
        self.similarity_threshold = similarity_threshold
        self.model = model
        self._cache_ttl_seconds = cache_ttl_seconds or settings.embeddings_cache_ttl_seconds
        self._seed_matrix: np.ndarray | None = None
        self._state: MatcherState = "not_ready"

    @property
    def state(self) -> MatcherState:
        return self._state

    def ready(self) -> bool:
        return self._state == "ready"

    def status(self) -> dict[str, Any]:
        return {
            "ready": self.ready(),
            "seed_phrase_count": len(self._seed_phrases),
            "model": self.model,
            "threshold": self.similarity_threshold,
        }

    async def initialize(self) -> bool:
        """Embed the seed corpus (cached long-term) and become ready."""
        if self.ready():
            return True
        if self._provider is None:
            logger.warning("No embeddings backend configured - semantic detection disabled")
            return False
        if not self._seed_phrases:
            logger.warning("Seed corpus is empty - semantic detection disabled")
            return False

        texts = [phrase.text for phrase in self._seed_phrases]
        provider = self._provider

        async def compute() -> dict[str, list[float]]:
            logger.info("Computing embeddings for seed phrases", extra={"count": len(texts)})
            vectors = await provider.embed(texts)
            return dict(zip(texts, vectors))

        try:
            vectors_by_text = await self._cache.get_or_set(
                SEED_EMBEDDINGS_CACHE_KEY,
                compute,
                self._cache_ttl_seconds,
            )
        except ScamWatchError as exc:
            logger.error("Failed to initialize seed embeddings", extra={"error": exc.message})
            return False

        missing = [text for text in texts if text not in vectors_by_text]
        if missing:
            logger.error("Seed embeddings incomplete", extra={"missing": len(missing)})
            return False

        for phrase in self._seed_phrases:
            phrase.embedding = list(vectors_by_text[phrase.text])
        self._seed_matrix = np.asarray([phrase.embedding for phrase in self._seed_phrases], dtype=float)
        self._state = "ready"
        logger.info("Semantic matcher ready", extra={"seed_phrases": len(self._seed_phrases)})
        return True

    def best_match_for_vectors(
        self,
        vectors: list[list[float]],
        threshold: float | None = None,
    ) -> list[EmbeddingMatch | None]:
        """Best seed phrase per query vector, or None below the threshold."""
        if not self.ready() or self._seed_matrix is None or not vectors:
            return [None] * len(vectors)

        effective_threshold = self.similarity_threshold if threshold is None else threshold
        similarities = EmbeddingsClient.similarity_matrix(vectors, self._seed_matrix.tolist())

        results: list[EmbeddingMatch | None] = []
        for row in similarities:
            best_index = int(np.argmax(row))
            similarity = float(row[best_index])
            if similarity < effective_threshold:
                results.append(None)
                continue
            phrase = self._seed_phrases[best_index]
            results.append(
                EmbeddingMatch(
                    phrase=phrase.text,
                    category=phrase.category,
                    severity=phrase.severity,
                    similarity=similarity,
                )
            )
        return results

    async def analyze_batch(
        self,
        queries: list[str],
        threshold: float | None = None,
    ) -> list[EmbeddingMatch | None]:
        """Best match per query, aligned with the input order."""
        if not queries:
            return []
        if not self.ready() or self._provider is None:
            logger.debug("Semantic matcher not ready, returning empty results")
            return [None] * len(queries)

        try:
            vectors = await self._provider.embed([query.lower() for query in queries])
        except ScamWatchError as exc:
            logger.warning(
                "Query embedding failed, skipping semantic matching",
                extra={"error": exc.message, "queries": len(queries)},
            )
            return [None] * len(queries)

        dimension = self._seed_matrix.shape[1] if self._seed_matrix is not None else None
        if len(vectors) != len(queries) or any(len(vector) != dimension for vector in vectors):
            logger.warning(
                "Query embeddings do not line up with the seed vectors, skipping semantic matching",
                extra={"queries": len(queries), "vectors": len(vectors), "dimension": dimension},
            )
            return [None] * len(queries)

        return self.best_match_for_vectors(vectors, threshold)

    async def find_best_match(
        self,
        query: str,
        threshold: float | None = None,
    ) -> EmbeddingMatch | None:
        results = await self.analyze_batch([query], threshold)
        return results[0] if results else None


def build_semantic_matcher(cache: TTLCache) -> SemanticMatcher:
    """Create the matcher from settings; not ready until ``initialize``."""
    corpus = load_seed_corpus(settings.seed_phrases_path)
    provider = HttpEmbeddingProvider(model=corpus.model) if settings.semantic_enabled else None
    return SemanticMatcher(
        provider,
        cache,
        corpus.phrases,
        similarity_threshold=corpus.similarity_threshold,
        model=corpus.model,
    )
