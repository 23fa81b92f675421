"""Lexical normalization of FAQ questions.

Two questions are lexically equivalent iff their normalized forms are equal.
"""

import re
from typing import Iterable, Set

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_question(text: str) -> str:
    """Lowercase, drop punctuation, collapse whitespace and trim.

    Idempotent: ``normalize_question(normalize_question(s)) == normalize_question(s)``.

    Example:
        >>> normalize_question("  What is your RETURN policy???")
        'what is your return policy'
    """
    lowered = (text or "").lower()
    stripped = _PUNCTUATION_RE.sub("", lowered)
    return _WHITESPACE_RE.sub(" ", stripped).strip()


def normalized_set(questions: Iterable[str]) -> Set[str]:
    """Normalize every question into a set of normalized forms."""
    return {normalize_question(q) for q in questions}
