"""Options and result types for the question dedupe engine.

Reuses FaqItem from the FAQ generation module as the candidate type.
"""

from dataclasses import dataclass, field
from typing import List

from src.common.config import DEFAULT_MAX_ACCEPTED_EMBEDDED, DEFAULT_SIMILARITY_THRESHOLD, DedupeConfig
from src.faq_generation.models import FaqItem


@dataclass(frozen=True)
class DedupeOptions:
    """Per-invocation dedupe settings.

    Attributes:
        semantic_enabled: Run the embedding stage after the lexical stage.
        similarity_threshold: Inclusive cosine cut-off, strictly between 0 and 1.
        max_accepted_embedded: Only the first N accepted questions are embedded.
    """

    semantic_enabled: bool = False
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    max_accepted_embedded: int = DEFAULT_MAX_ACCEPTED_EMBEDDED

    def __post_init__(self) -> None:
        if not 0.0 < self.similarity_threshold < 1.0:
            raise ValueError(
                f"similarity_threshold must be between 0 and 1 (exclusive), got {self.similarity_threshold}"
            )
        if self.max_accepted_embedded < 0:
            raise ValueError("max_accepted_embedded must be >= 0")

    @classmethod
    def from_config(cls, config: DedupeConfig) -> "DedupeOptions":
        return cls(
            semantic_enabled=config.semantic_enabled,
            similarity_threshold=config.similarity_threshold,
            max_accepted_embedded=config.max_accepted_embedded,
        )


@dataclass
class DedupeResult:
    """Candidates that survived dedupe, plus per-stage rejection counts."""

    kept: List[FaqItem] = field(default_factory=list)
    lexical_rejected: int = 0
    semantic_rejected: int = 0
    semantic_applied: bool = False
    semantic_error: str = ""
