"""Embeddings integration for semantic scam-phrase matching.

Talks to an OpenAI-compatible ``/embeddings`` endpoint and provides cosine
similarity helpers over numpy.
"""

import logging
from typing import Any

import httpx
import numpy as np

from scamwatch.config import settings
from scamwatch.core.exceptions import APIKeyMissingError, ExternalAPIError, RateLimitExceededError

logger = logging.getLogger(__name__)


class EmbeddingsClient:
    """Client for generating text embeddings in batches."""

    # Provider ceiling on inputs per request
    MAX_BATCH_SIZE = 2048

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_key = api_key or settings.openai_api_key
        self.base_url = (base_url or settings.embeddings_base_url).rstrip("/")
        self.model = model or settings.embeddings_model
        self.timeout = timeout if timeout is not None else settings.embeddings_timeout
        self._client: httpx.AsyncClient | None = None

        if not self.api_key:
            raise APIKeyMissingError("OpenAI (for embeddings)")

    @property
    def embedding_url(self) -> str:
        return f"{self.base_url}/embeddings"

    async def __aenter__(self) -> "EmbeddingsClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client must be used as async context manager")
        return self._client

    async def get_embeddings(
        self,
        texts: list[str],
        model: str | None = None,
    ) -> list[list[float]]:
        """Generate embeddings for a list of texts.

        Args:
            texts: List of text strings to embed
            model: Optional model override

        Returns:
            List of embedding vectors, aligned with ``texts``
        """
        if not texts:
            return []
        logger.info("Generating embeddings", extra={"text_count": len(texts), "model": model or self.model})

        all_embeddings: list[list[float]] = []

        for i in range(0, len(texts), self.MAX_BATCH_SIZE):
            batch = texts[i:i + self.MAX_BATCH_SIZE]

            try:
                response = await self.client.post(
                    self.embedding_url,
                    json={
                        "model": model or self.model,
                        "input": batch,
                    },
                )
            except httpx.HTTPError as e:
                logger.warning("Embeddings HTTP error", extra={"error": str(e)})
                raise ExternalAPIError("OpenAI Embeddings", str(e)) from e

            if response.status_code == 429:
                raise RateLimitExceededError("OpenAI Embeddings")
            if response.status_code != 200:
                logger.warning("Embeddings API error", extra={"status": response.status_code})
                raise ExternalAPIError(
                    "OpenAI Embeddings",
                    f"API error: {response.status_code} - {response.text}"
                )

            try:
                data = response.json().get("data", [])

                # Sort by index to maintain order
                sorted_data = sorted(data, key=lambda x: x.get("index", 0))
                all_embeddings.extend(
                    [float(value) for value in item["embedding"]] for item in sorted_data
                )
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.warning("Malformed embeddings response", extra={"error": str(e)})
                raise ExternalAPIError("OpenAI Embeddings", f"Malformed response: {e}") from e

            if len(texts) > self.MAX_BATCH_SIZE:
                logger.debug(
                    "Processed embedding batch",
                    extra={"batch": i // self.MAX_BATCH_SIZE + 1, "total_texts": len(texts)},
                )

        if len(all_embeddings) != len(texts):
            raise ExternalAPIError(
                "OpenAI Embeddings",
                f"Expected {len(texts)} vectors, received {len(all_embeddings)}",
            )
        if len({len(vector) for vector in all_embeddings}) > 1:
            raise ExternalAPIError("OpenAI Embeddings", "Vectors have inconsistent dimensions")
        return all_embeddings

    @staticmethod
    def similarity_matrix(queries: list[list[float]], seeds: list[list[float]]) -> np.ndarray:
        """Cosine similarity of every query vector against every seed vector."""
        q = np.asarray(queries, dtype=float)
        s = np.asarray(seeds, dtype=float)
        q_norms = np.linalg.norm(q, axis=1, keepdims=True)
        s_norms = np.linalg.norm(s, axis=1, keepdims=True)
        q_norms[q_norms == 0] = 1.0
        s_norms[s_norms == 0] = 1.0
        return (q / q_norms) @ (s / s_norms).T
