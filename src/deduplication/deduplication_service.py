"""Core dedupe engine for generated FAQ questions.

Implements the two-stage workflow:
1. Lexical pass: drop candidates whose normalized question matches an
   accepted question or an earlier candidate (always runs, pure).
2. Semantic pass (optional): embed the first 50 accepted questions and the
   lexical survivors, drop survivors whose cosine similarity to any accepted
   question is >= threshold, then greedily cluster the rest in input order
   (first-seen wins).

Embedding failures surface as EmbeddingProviderError from ``dedupe``.
``dedupe_with_fallback`` is the caller policy that degrades to the lexical
result; it is the only place such a failure is absorbed.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Protocol, Sequence
import logging
import time

import numpy as np

from src.deduplication.embedding_client import EmbeddingProviderError
from src.deduplication.models import DedupeOptions, DedupeResult
from src.deduplication.normalization import normalize_question, normalized_set
from src.deduplication.similarity import first_match_at_or_above
from src.faq_generation.models import FaqItem

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    """Embedding capability consumed by the semantic pass."""

    def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        ...


def lexical_pass(accepted: Sequence[str], candidates: Sequence[FaqItem]) -> List[FaqItem]:
    """Stage 1: exact dedupe on normalized questions.

    Within-batch duplicates collapse to their first occurrence. No I/O.
    """
    seen = normalized_set(accepted)
    kept: List[FaqItem] = []
    for candidate in candidates:
        key = normalize_question(candidate.question)
        if key in seen:
            continue
        seen.add(key)
        kept.append(candidate)
    return kept


def _checked_embed(embedder: Embedder, texts: List[str]) -> List[np.ndarray]:
    vectors = embedder.embed(texts)
    if vectors is None or len(vectors) != len(texts):
        raise EmbeddingProviderError(
            f"Embedder returned {0 if vectors is None else len(vectors)} vectors for {len(texts)} texts"
        )
    return [np.asarray(v, dtype=np.float32) for v in vectors]


def semantic_pass(
    accepted: Sequence[str],
    survivors: Sequence[FaqItem],
    embedder: Embedder,
    threshold: float,
    max_accepted: int,
) -> List[FaqItem]:
    """Stage 2: embedding-based dedupe over the lexical survivors.

    The accepted and survivor embedding calls run concurrently and are both
    joined before any comparison.

    Raises:
        EmbeddingProviderError: If either embedding call fails or returns a
            malformed payload.
    """
    if not survivors:
        return []

    accepted_texts = [normalize_question(q) for q in list(accepted)[:max_accepted]]
    survivor_texts = [c.question for c in survivors]

    if accepted_texts:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="embed") as executor:
            accepted_future = executor.submit(_checked_embed, embedder, accepted_texts)
            survivor_future = executor.submit(_checked_embed, embedder, survivor_texts)
            accepted_vectors = accepted_future.result()
            survivor_vectors = survivor_future.result()
    else:
        accepted_vectors = []
        survivor_vectors = _checked_embed(embedder, survivor_texts)

    dimensions = {v.shape for v in accepted_vectors + survivor_vectors}
    if len(dimensions) > 1:
        raise EmbeddingProviderError(f"Embedder returned vectors of differing shapes: {sorted(dimensions)}")

    # Against the accepted set.
    not_accepted: List[int] = []
    for index, vector in enumerate(survivor_vectors):
        if first_match_at_or_above(vector, accepted_vectors, threshold) is None:
            not_accepted.append(index)

    # Greedy within-batch clustering; first-seen wins.
    kept: List[FaqItem] = []
    kept_vectors: List[np.ndarray] = []
    for index in not_accepted:
        vector = survivor_vectors[index]
        if first_match_at_or_above(vector, kept_vectors, threshold) is not None:
            continue
        kept.append(survivors[index])
        kept_vectors.append(vector)

    return kept


class DeduplicationService:
    """Removes lexical and (optionally) semantic duplicates from a candidate batch.

    Holds no per-request state; one instance is safe to share between
    concurrent requests.

    Usage:
        service = DeduplicationService(embedder=EmbeddingClient())
        result = service.dedupe(existing_questions, candidates, DedupeOptions(semantic_enabled=True))
    """

    def __init__(self, embedder: Optional[Embedder] = None):
        """Initialize the dedupe service.

        Args:
            embedder: Embedding provider for the semantic pass. When None the
                semantic pass is skipped even if enabled in options.
        """
        self.embedder = embedder

    def dedupe(
        self,
        accepted: Sequence[str],
        candidates: Sequence[FaqItem],
        options: Optional[DedupeOptions] = None,
        request_id: Optional[str] = None,
    ) -> DedupeResult:
        """Return the candidates that duplicate neither ``accepted`` nor each other.

        Args:
            accepted: Questions already shown to the user (read-only).
            candidates: Sanitized generated FAQ items.
            options: Stage toggles and threshold; defaults to lexical only.
            request_id: Correlation id for logs.

        Returns:
            DedupeResult whose ``kept`` is an order-preserving subset of ``candidates``.

        Raises:
            EmbeddingProviderError: If the semantic pass runs and the provider fails.
        """
        options = options or DedupeOptions()
        start_time = time.time()

        if not candidates:
            return DedupeResult()

        lexical = lexical_pass(accepted, candidates)
        result = DedupeResult(kept=lexical, lexical_rejected=len(candidates) - len(lexical))

        if options.semantic_enabled and self.embedder is not None and lexical:
            semantic = semantic_pass(
                accepted=accepted,
                survivors=lexical,
                embedder=self.embedder,
                threshold=options.similarity_threshold,
                max_accepted=options.max_accepted_embedded,
            )
            result.kept = semantic
            result.semantic_rejected = len(lexical) - len(semantic)
            result.semantic_applied = True

        logger.info(
            "Dedupe complete",
            extra={
                "request_id": request_id,
                "accepted_count": len(accepted),
                "candidate_count": len(candidates),
                "kept_count": len(result.kept),
                "lexical_rejected": result.lexical_rejected,
                "semantic_rejected": result.semantic_rejected,
                "semantic_applied": result.semantic_applied,
                "threshold": options.similarity_threshold,
                "duration_ms": int((time.time() - start_time) * 1000),
            },
        )
        return result

    def dedupe_with_fallback(
        self,
        accepted: Sequence[str],
        candidates: Sequence[FaqItem],
        options: Optional[DedupeOptions] = None,
        request_id: Optional[str] = None,
    ) -> DedupeResult:
        """Like ``dedupe``, but degrade to the lexical-only result on embedding failure."""
        try:
            return self.dedupe(accepted, candidates, options, request_id=request_id)
        except EmbeddingProviderError as e:
            logger.warning(
                "Semantic dedupe failed; falling back to lexical result",
                extra={"request_id": request_id, "error": str(e), "decision": "lexical_fallback"},
            )
            lexical = lexical_pass(accepted, candidates)
            return DedupeResult(
                kept=lexical,
                lexical_rejected=len(candidates) - len(lexical),
                semantic_applied=False,
                semantic_error=str(e),
            )
