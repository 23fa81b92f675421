"""Question dedupe engine.

Filters a batch of generated FAQ candidates against the questions a visitor
has already seen: a lexical pass on normalized text always runs, and an
optional semantic pass compares Vertex AI embeddings with cosine similarity
(inclusive threshold, default 0.88).

Shared Utilities (from src/common/):
    - config: load_dedupe_config(), load_embedding_config(), DedupeConfig, EmbeddingConfig

Modules:
    normalization: Question normalization (lowercase, punctuation, whitespace)
    similarity: Cosine similarity with epsilon and first-match search
    embedding_client: Vertex AI text embeddings with retry and payload checks
    models: DedupeOptions and DedupeResult
    deduplication_service: Lexical and semantic passes, fallback policy
"""

from src.deduplication.models import DedupeOptions, DedupeResult
from src.deduplication.normalization import normalize_question

__all__ = [
    "DedupeOptions",
    "DedupeResult",
    "normalize_question",
]
