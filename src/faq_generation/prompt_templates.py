"""Prompt builder for grounded FAQ generation.

The system prompt pins the model to the supplied site text, search snippets
and internal search queries, and asks for strict JSON. The user message is a
JSON payload with truncated previews of each input.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from src.faq_generation.models import Category, SearchFinding

# Preview caps applied to the user payload
SITE_TEXT_PREVIEW_CHARS = 40_000
SEARCH_FINDINGS_PREVIEW = 20
ANALYTICS_QUERIES_MAX = 50

INITIAL_TARGET_COUNT = 10
FOLLOW_UP_TARGET_COUNT = 7


@dataclass
class FaqPrompt:
    system: str
    user: str

    def combined(self) -> str:
        """Single-string form of both parts, hashed for request logging."""
        return f"{self.system}\n\n## Input\n\n{self.user}"


_SYSTEM_TEMPLATE = """You are a precise technical writer. Generate a grounded FAQ using ONLY the provided site text, public snippets, and internal search queries.
Rules:
- Transform INTERNAL SEARCH QUERIES into clear, helpful FAQs when supported by site text; prefer brand URLs in sources.
- If a query isn't supported by site text, either skip it or answer with "(Needs verification)" and confidence="low".
- Each answer is 1-4 sentences, concrete and helpful.
- Cite at least one source URL per FAQ (prefer brand pages).
- Exclude any question that matches existingQuestions after normalization.
- Aim for category diversity; prioritize: {priorities}.
Return STRICT JSON only:
{{ "faqs":[ {{ "q":"string", "a":"string", "confidence":"high|medium|low",
  "category":"{categories}",
  "sources":["url"], "alt":["string"] }} ],
  "meta": {{ "coverage": {{ {coverage} }} }} }}"""


def build_system_prompt(under_weighted: Optional[Sequence[str]] = None) -> str:
    priorities = ", ".join(under_weighted) if under_weighted else "none"
    categories = "|".join(c.value for c in Category)
    coverage = ",".join(f'"{c.value}":0' for c in Category)
    return _SYSTEM_TEMPLATE.format(priorities=priorities, categories=categories, coverage=coverage)


def target_count(existing_questions: Sequence[str]) -> int:
    """First batch aims for 10 FAQs; follow-up batches for 7."""
    return INITIAL_TARGET_COUNT if not existing_questions else FOLLOW_UP_TARGET_COUNT


def normalize_analytics_queries(raw: Optional[Sequence[Any]]) -> List[str]:
    """Trim, drop empties and cap pasted site-search queries."""
    if not isinstance(raw, (list, tuple)):
        return []
    cleaned = [str(item).strip() for item in raw if item is not None]
    return [q for q in cleaned if q][:ANALYTICS_QUERIES_MAX]


def build_faq_prompt(
    *,
    site_domain: str,
    site_text: Optional[str],
    search_findings: Sequence[SearchFinding],
    analytics_queries: Sequence[str],
    existing_questions: Sequence[str],
    under_weighted: Sequence[str],
) -> FaqPrompt:
    """Build the system and user messages for one generation call."""
    user_payload: Dict[str, Any] = {
        "siteDomain": site_domain,
        "targetCount": target_count(existing_questions),
        "existingQuestions": list(existing_questions),
        "underWeighted": list(under_weighted),
        "siteTextPreview": (site_text or "")[:SITE_TEXT_PREVIEW_CHARS],
        "searchFindingsPreview": [f.model_dump() for f in list(search_findings)[:SEARCH_FINDINGS_PREVIEW]],
        "analyticsQueries": list(analytics_queries)[:ANALYTICS_QUERIES_MAX],
    }
    return FaqPrompt(
        system=build_system_prompt(under_weighted),
        user=json.dumps(user_payload, ensure_ascii=False),
    )


def compute_prompt_hash(prompt: str) -> str:
    """SHA-256 of the prompt, first 16 hex chars, for log correlation."""
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:16]
