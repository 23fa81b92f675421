"""Unit tests for the semantic dedupe pass with a fake embedder.

No Vertex AI calls: the fake maps each text to a fixed vector and records
every embed call so call counts and arguments can be asserted.
"""

import math
import threading

import numpy as np
import pytest

from src.deduplication.deduplication_service import DeduplicationService, semantic_pass
from src.deduplication.embedding_client import EmbeddingProviderError
from src.deduplication.models import DedupeOptions
from src.deduplication.normalization import normalize_question
from src.deduplication.similarity import cosine_similarity, first_match_at_or_above
from src.faq_generation.models import FaqItem


def faq(question: str) -> FaqItem:
    return FaqItem(question=question, answer="Answer.")


def unit(angle_cos: float) -> list:
    """2-D unit vector whose cosine with [1, 0] is ``angle_cos``."""
    return [angle_cos, math.sqrt(1.0 - angle_cos**2)]


class FakeEmbedder:
    """Thread-safe fake returning fixed vectors; unknown texts get orthogonal axes."""

    def __init__(self, vectors=None, dims: int = 2):
        self.vectors = dict(vectors or {})
        self.dims = dims
        self.calls = []
        self._lock = threading.Lock()

    def _vector_for(self, text: str) -> list:
        if text in self.vectors:
            return self.vectors[text]
        raise KeyError(text)

    def embed(self, texts):
        with self._lock:
            self.calls.append(list(texts))
        return [self._vector_for(t) for t in texts]


class AxisEmbedder(FakeEmbedder):
    """Every distinct text gets its own axis, so nothing is similar."""

    def __init__(self, dims: int = 256):
        super().__init__(dims=dims)
        self._axes = {}

    def _vector_for(self, text: str) -> list:
        with self._lock:
            axis = self._axes.setdefault(text, len(self._axes))
        vector = [0.0] * self.dims
        vector[axis] = 1.0
        return vector


class FailingEmbedder:
    def __init__(self):
        self.calls = 0

    def embed(self, texts):
        self.calls += 1
        raise EmbeddingProviderError("connection refused")


SEMANTIC = DedupeOptions(semantic_enabled=True, similarity_threshold=0.88)


# ============================================================================
# Similarity helpers
# ============================================================================


def test_cosine_similarity_identical_and_orthogonal():
    a = np.array([1.0, 0.0])
    assert cosine_similarity(a, a) == pytest.approx(1.0)
    assert cosine_similarity(a, np.array([0.0, 1.0])) == pytest.approx(0.0)


def test_cosine_similarity_zero_vector_is_zero():
    assert cosine_similarity(np.zeros(3), np.array([1.0, 2.0, 3.0])) == 0.0


def test_first_match_is_inclusive_and_short_circuits():
    target = np.array([1.0, 0.0])
    others = [np.array([0.0, 1.0]), np.array([1.0, 0.0]), np.array([1.0, 0.0])]

    assert first_match_at_or_above(target, others, 0.5) == pytest.approx(1.0)
    assert first_match_at_or_above(target, others[:1], 0.5) is None


# ============================================================================
# Stage 2 behaviour
# ============================================================================


def test_greedy_clustering_keeps_first_seen():
    embedder = FakeEmbedder(
        {
            "How do I cancel?": unit(1.0),
            "How can I cancel my subscription?": unit(0.91),
        }
    )
    candidates = [faq("How do I cancel?"), faq("How can I cancel my subscription?")]

    result = DeduplicationService(embedder).dedupe([], candidates, SEMANTIC)

    assert [c.question for c in result.kept] == ["How do I cancel?"]
    assert result.semantic_rejected == 1
    assert result.semantic_applied is True


def test_empty_accepted_makes_single_embed_call():
    embedder = FakeEmbedder({"A?": unit(1.0), "B?": unit(0.1)})

    DeduplicationService(embedder).dedupe([], [faq("A?"), faq("B?")], SEMANTIC)

    assert embedder.calls == [["A?", "B?"]]


def test_survivor_similar_to_accepted_is_dropped():
    embedder = FakeEmbedder(
        {
            "do you ship internationally": unit(1.0),
            "Can you deliver overseas?": unit(0.95),
            "What sizes do you stock?": unit(0.2),
        }
    )
    candidates = [faq("Can you deliver overseas?"), faq("What sizes do you stock?")]

    result = DeduplicationService(embedder).dedupe(["Do you ship internationally?"], candidates, SEMANTIC)

    assert [c.question for c in result.kept] == ["What sizes do you stock?"]


def test_accepted_questions_are_embedded_normalized_and_candidates_raw():
    embedder = FakeEmbedder({"do you ship": unit(0.1), "Returns?": unit(1.0)})

    DeduplicationService(embedder).dedupe(["Do you SHIP?"], [faq("Returns?")], SEMANTIC)

    flat = sorted(embedder.calls)
    assert flat == [["Returns?"], ["do you ship"]]


def test_threshold_is_inclusive():
    first, second = unit(1.0), unit(0.9)
    exact = cosine_similarity(np.asarray(second, dtype=np.float32), np.asarray(first, dtype=np.float32))
    embedder = FakeEmbedder({"X?": first, "Y?": second})
    candidates = [faq("X?"), faq("Y?")]

    at_threshold = semantic_pass([], candidates, embedder, threshold=exact, max_accepted=50)
    above_threshold = semantic_pass([], candidates, embedder, threshold=exact + 1e-6, max_accepted=50)

    assert [c.question for c in at_threshold] == ["X?"]
    assert [c.question for c in above_threshold] == ["X?", "Y?"]


def test_clustering_compares_each_survivor_by_its_own_vector():
    # B is dropped as similar to the accepted question; C must then be
    # compared using C's own vector, not B's.
    embedder = FakeEmbedder(
        {
            "accepted": [1.0, 0.0, 0.0],
            "A?": [0.0, 1.0, 0.0],
            "B?": [1.0, 0.0, 0.0],
            "C?": [0.0, 0.0, 1.0],
        }
    )
    candidates = [faq("A?"), faq("B?"), faq("C?")]

    kept = semantic_pass(["accepted"], candidates, embedder, threshold=0.88, max_accepted=50)

    assert [c.question for c in kept] == ["A?", "C?"]


def test_only_first_max_accepted_questions_are_embedded():
    accepted = [f"Accepted question {i}?" for i in range(120)]
    embedder = AxisEmbedder()

    DeduplicationService(embedder).dedupe(accepted, [faq("Brand new question?")], SEMANTIC)

    accepted_calls = [call for call in embedder.calls if call != ["Brand new question?"]]
    assert len(accepted_calls) == 1
    assert accepted_calls[0] == [normalize_question(q) for q in accepted[:50]]


def test_semantic_output_is_subset_of_lexical_output():
    embedder = AxisEmbedder()
    candidates = [faq(q) for q in ["One?", "one", "Two?", "Three?"]]

    result = DeduplicationService(embedder).dedupe(["Three"], candidates, SEMANTIC)

    assert [c.question for c in result.kept] == ["One?", "Two?"]
    assert result.lexical_rejected == 2
    assert result.semantic_rejected == 0


def test_empty_candidates_make_no_provider_call():
    embedder = FakeEmbedder()

    result = DeduplicationService(embedder).dedupe(["Anything?"], [], SEMANTIC)

    assert result.kept == []
    assert embedder.calls == []


def test_all_candidates_removed_lexically_skips_embedding():
    embedder = FakeEmbedder()

    result = DeduplicationService(embedder).dedupe(["Hours?"], [faq("hours")], SEMANTIC)

    assert result.kept == []
    assert embedder.calls == []


# ============================================================================
# Failure handling
# ============================================================================


def test_provider_failure_raises_from_dedupe():
    service = DeduplicationService(FailingEmbedder())

    with pytest.raises(EmbeddingProviderError):
        service.dedupe(["Existing?"], [faq("New?")], SEMANTIC)


def test_fallback_returns_lexical_result_on_provider_failure():
    embedder = FailingEmbedder()
    candidates = [faq("Existing?"), faq("New?"), faq("new")]

    result = DeduplicationService(embedder).dedupe_with_fallback(["Existing"], candidates, SEMANTIC)

    assert [c.question for c in result.kept] == ["New?"]
    assert result.semantic_applied is False
    assert "connection refused" in result.semantic_error
    assert embedder.calls >= 1


def test_wrong_vector_count_is_provider_error():
    class ShortEmbedder:
        def embed(self, texts):
            return [[1.0, 0.0]]

    with pytest.raises(EmbeddingProviderError):
        semantic_pass([], [faq("A?"), faq("B?")], ShortEmbedder(), threshold=0.88, max_accepted=50)


def test_mismatched_dimensions_are_provider_error():
    embedder = FakeEmbedder({"accepted": [1.0, 0.0, 0.0], "A?": [1.0, 0.0]})

    with pytest.raises(EmbeddingProviderError):
        semantic_pass(["accepted"], [faq("A?")], embedder, threshold=0.88, max_accepted=50)


def test_threshold_is_inclusive_against_accepted_questions():
    accepted_vector, candidate_vector = unit(1.0), unit(0.9)
    exact = cosine_similarity(
        np.asarray(candidate_vector, dtype=np.float32), np.asarray(accepted_vector, dtype=np.float32)
    )
    embedder = FakeEmbedder({"how do i get a refund": accepted_vector, "Can I get my money back?": candidate_vector})
    candidates = [faq("Can I get my money back?")]

    at_threshold = semantic_pass(["How do I get a refund?"], candidates, embedder, threshold=exact, max_accepted=50)
    just_above = semantic_pass(
        ["How do I get a refund?"], candidates, embedder, threshold=exact + 1e-6, max_accepted=50
    )

    assert at_threshold == []
    assert [c.question for c in just_above] == ["Can I get my money back?"]
