"""Turn raw model output into validated FaqItem candidates."""

from typing import Any, List, Optional

from pydantic import ValidationError

from src.common.logging import get_logger
from src.faq_generation.models import FaqItem, coerce_category, coerce_confidence

logger = get_logger(__name__)

MAX_SOURCES = 4


def _default_sources(site_domain: Optional[str]) -> List[str]:
    return [f"https://{site_domain}"] if site_domain else []


def sanitize_candidate(raw: Any, site_domain: Optional[str]) -> Optional[FaqItem]:
    """Return a FaqItem, or None when the entry lacks a question or answer."""
    if not isinstance(raw, dict):
        return None
    question = str(raw.get("q") or "").strip()
    answer = str(raw.get("a") or "").strip()
    if not question or not answer:
        return None

    sources = raw.get("sources")
    if isinstance(sources, list) and sources:
        sources = [str(s) for s in sources[:MAX_SOURCES]]
    else:
        sources = _default_sources(site_domain)

    try:
        return FaqItem(
            question=question,
            answer=answer,
            confidence=coerce_confidence(raw.get("confidence")),
            category=coerce_category(raw.get("category")),
            sources=sources,
        )
    except ValidationError:
        return None


def sanitize_candidates(raw_faqs: Any, site_domain: Optional[str], request_id: Optional[str] = None) -> List[FaqItem]:
    """Validate and normalize the ``faqs`` array from a model response.

    Malformed entries are dropped here, before dedupe sees the batch.
    """
    if not isinstance(raw_faqs, list):
        return []

    items: List[FaqItem] = []
    for raw in raw_faqs:
        item = sanitize_candidate(raw, site_domain)
        if item is not None:
            items.append(item)

    dropped = len(raw_faqs) - len(items)
    if dropped:
        logger.info(
            "Dropped malformed FAQ candidates",
            extra={"request_id": request_id, "dropped": dropped, "kept": len(items)},
        )
    return items
