"""Vertex AI embedding client for semantic question dedupe.

Provides text embedding generation using Vertex AI's text-embedding-004 model
(through the google-genai SDK) with batch support and exponential backoff retry on rate limits.

- Task type: SEMANTIC_SIMILARITY
- Up to 5 texts per API call by default
- Retry strategy: 3 attempts with exponential backoff (1s -> 2s -> 4s) on 429/quota
- No cache: embeddings live only for the dedupe call that requested them
"""

from typing import List, Optional, Sequence
import logging

import numpy as np
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from src.common.config import EmbeddingConfig, load_embedding_config

logger = logging.getLogger(__name__)


class EmbeddingProviderError(Exception):
    """Embedding provider unreachable, failing, or returning a malformed payload."""

    pass


class RateLimitError(EmbeddingProviderError):
    """Raised when Vertex AI returns a rate limit (429) or quota error."""

    pass


class EmbeddingClient:
    """Client for generating question embeddings via Vertex AI.

    Implements the embedder contract used by the dedupe engine:
    ``embed(texts) -> list of vectors`` with the same length and order as
    ``texts``, raising EmbeddingProviderError on any failure.

    Usage:
        client = EmbeddingClient()
        vectors = client.embed(["How do I cancel?", "Where is my order?"])
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        """Initialize the embedding client.

        Args:
            config: Optional EmbeddingConfig. If not provided, loads from environment.
        """
        self.config = config or load_embedding_config()
        self._client = None  # Lazy initialization

    def _get_client(self):
        """Lazy-load the google-genai client bound to Vertex AI.

        Raises:
            EmbeddingProviderError: If client initialization fails.
        """
        if self._client is None:
            try:
                from google import genai

                self._client = genai.Client(
                    vertexai=True,
                    project=self.config.project,
                    location=self.config.location,
                )
                logger.info(
                    "Initialized embedding client",
                    extra={
                        "model": self.config.model,
                        "project": self.config.project,
                        "location": self.config.location,
                    },
                )
            except ImportError as e:
                raise EmbeddingProviderError(
                    "google-genai not installed. Run: pip install google-genai"
                ) from e
            except Exception as e:
                raise EmbeddingProviderError(f"Failed to initialize embedding client: {e}") from e
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(RateLimitError),
        reraise=True,
    )
    def _call_embedding_api(self, texts: List[str]) -> List[List[float]]:
        """Call the Vertex AI embedding API with retry on rate limits.

        Raises:
            RateLimitError: If rate limited (triggers retry).
            EmbeddingProviderError: For other API errors.
        """
        client = self._get_client()

        try:
            from google.genai import types

            response = client.models.embed_content(
                model=self.config.model,
                contents=texts,
                config=types.EmbedContentConfig(
                    task_type="SEMANTIC_SIMILARITY",
                    output_dimensionality=self.config.output_dimensionality,
                ),
            )
            return [e.values for e in (response.embeddings or [])]
        except Exception as e:
            error_str = str(e).lower()
            if "429" in error_str or "quota" in error_str or "resource_exhausted" in error_str:
                logger.warning(
                    "Rate limit hit, will retry",
                    extra={"error": str(e), "texts_count": len(texts)},
                )
                raise RateLimitError(str(e)) from e
            raise EmbeddingProviderError(f"Embedding API error: {e}") from e

    def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        """Embed ``texts`` in order, batching API calls.

        Args:
            texts: Texts to embed.

        Returns:
            One float32 vector per input text, in input order.

        Raises:
            EmbeddingProviderError: On transport, quota or payload-shape failures.
        """
        if not texts:
            return []

        batch_size = max(1, self.config.batch_size)
        vectors: List[List[float]] = []

        for batch_start in range(0, len(texts), batch_size):
            batch = list(texts[batch_start : batch_start + batch_size])
            values = self._call_embedding_api(batch)
            if values is None or len(values) != len(batch):
                raise EmbeddingProviderError(
                    f"Embedding API returned {0 if values is None else len(values)} vectors for {len(batch)} texts"
                )
            vectors.extend(values)

        return _to_arrays(vectors)

    def is_available(self) -> bool:
        """Check if the embedding client can be initialized (no API call)."""
        try:
            self._get_client()
            return True
        except EmbeddingProviderError:
            return False


def _to_arrays(vectors: List[List[float]]) -> List[np.ndarray]:
    """Convert raw vectors to float32 arrays, rejecting empty or ragged payloads."""
    arrays: List[np.ndarray] = []
    expected_length: Optional[int] = None
    for values in vectors:
        if not values:
            raise EmbeddingProviderError("Embedding API returned an empty vector")
        try:
            array = np.asarray(values, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise EmbeddingProviderError(f"Embedding API returned a non-numeric vector: {e}") from e
        if array.ndim != 1:
            raise EmbeddingProviderError("Embedding API returned a non-flat vector")
        if expected_length is None:
            expected_length = array.shape[0]
        elif array.shape[0] != expected_length:
            raise EmbeddingProviderError(
                f"Embedding API returned vectors of differing length ({array.shape[0]} != {expected_length})"
            )
        arrays.append(array)
    return arrays
