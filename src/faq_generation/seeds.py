"""Deterministic placeholder FAQs used when generation is unavailable or empty."""

from typing import List, Sequence
from urllib.parse import urlsplit

from src.deduplication.deduplication_service import lexical_pass
from src.faq_generation.models import Category, Confidence, FaqItem

NEEDS_VERIFICATION = "(Needs verification)"


def _host(url: str) -> str:
    try:
        host = urlsplit(url or "").hostname
    except ValueError:
        host = None
    if not host:
        return "the site"
    return host[4:] if host.startswith("www.") else host


def seed_faqs(url: str, existing: Sequence[str] = ()) -> List[FaqItem]:
    """Two low-confidence starter FAQs, minus any the visitor has already seen."""
    host = _host(url)
    sources = [url] if url else []
    seeds = [
        FaqItem(
            question=f"What is {host}?",
            answer=f"This is the official website for {host}. {NEEDS_VERIFICATION}",
            confidence=Confidence.LOW,
            category=Category.PRODUCT,
            sources=sources,
        ),
        FaqItem(
            question="How do I contact support?",
            answer=(
                "Use the Contact/Support page linked in the site navigation or footer. "
                f"{NEEDS_VERIFICATION}"
            ),
            confidence=Confidence.LOW,
            category=Category.POLICIES,
            sources=sources,
        ),
    ]
    return lexical_pass(existing, seeds)
