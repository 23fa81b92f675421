"""Tavily search enrichment.

Runs a fixed set of brand queries (topical, social, reviews) and collects
up to 28 unique result URLs with short snippets for the prompt.
"""

from __future__ import annotations

import re
import time
from typing import List, Optional

import requests

from src.common.config import SearchConfig, load_search_config
from src.common.logging import get_logger
from src.faq_generation.models import ProviderOutcome, SearchFinding

logger = get_logger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
MAX_FINDINGS = 28
MAX_SNIPPET_CHARS = 300
RESULTS_PER_QUERY = 3

TOPIC_SUFFIXES = (
    "faq",
    "pricing",
    "shipping",
    "returns",
    "privacy",
    "warranty",
    "troubleshooting",
    "accessibility",
    "subscription cancel",
    "reviews",
)
SOCIAL_SITES = (
    "twitter.com",
    "x.com",
    "instagram.com",
    "youtube.com",
    "linkedin.com/company",
)


def brand_from_url(base_url: str) -> str:
    """``https://shop.example/path`` -> ``shop.example``."""
    without_scheme = re.sub(r"^https?://", "", base_url or "", flags=re.IGNORECASE)
    return without_scheme.split("/", 1)[0]


def build_search_queries(
    base_url: str,
    include_search: bool,
    include_social: bool,
    include_reviews: bool,
) -> List[str]:
    brand = brand_from_url(base_url)
    queries: List[str] = []
    if include_search:
        queries.extend(f"{brand} {suffix}" for suffix in TOPIC_SUFFIXES)
    if include_social:
        queries.extend(f"site:{site} {brand}" for site in SOCIAL_SITES)
    if include_reviews:
        queries.extend(
            [
                f"{brand} site:google.com reviews",
                f"{brand} site:yelp.com",
                f"{brand} site:facebook.com reviews",
                f"{brand} press news",
            ]
        )
    return queries


class SearchClient:
    """Tavily-backed search enrichment."""

    def __init__(
        self,
        config: Optional[SearchConfig] = None,
        session: Optional[requests.Session] = None,
        sleep=time.sleep,
    ):
        self.config = config or load_search_config()
        self.session = session or requests.Session()
        self._sleep = sleep

    def _search(self, query: str) -> List[dict]:
        response = self.session.post(
            TAVILY_SEARCH_URL,
            headers={"Content-Type": "application/json", "X-API-Key": self.config.tavily_api_key},
            json={
                "query": query,
                "search_depth": "advanced",
                "include_answer": False,
                "max_results": RESULTS_PER_QUERY,
            },
            timeout=self.config.timeout_sec,
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"unexpected response type: {type(payload).__name__}")
        results = payload.get("results") or []
        if not isinstance(results, list):
            raise ValueError("results is not a list")
        return [r for r in results if isinstance(r, dict)]

    def find(
        self,
        base_url: str,
        *,
        include_search: bool = True,
        include_social: bool = False,
        include_reviews: bool = False,
        request_id: Optional[str] = None,
    ) -> ProviderOutcome[List[SearchFinding]]:
        """Collect unique findings across all enabled query groups.

        Individual query failures are logged and skipped. The outcome is a
        failure only when every query failed.
        """
        if not self.config.tavily_api_key:
            return ProviderOutcome.success("tavily", [])

        queries = build_search_queries(base_url, include_search, include_social, include_reviews)
        if not queries:
            return ProviderOutcome.success("tavily", [])

        findings: List[SearchFinding] = []
        seen = set()
        failed = 0

        for query in queries:
            try:
                results = self._search(query)
            except (requests.RequestException, ValueError) as exc:
                failed += 1
                logger.warning(
                    "Search query failed",
                    extra={"request_id": request_id, "query": query, "error": str(exc)},
                )
                continue

            for item in results:
                url = item.get("url")
                if not isinstance(url, str):
                    continue
                key = url.split("#", 1)[0]
                if not key or key in seen:
                    continue
                seen.add(key)
                title = item.get("title")
                snippet = item.get("snippet") or item.get("content") or ""
                findings.append(
                    SearchFinding(
                        url=url,
                        title=title if isinstance(title, str) else None,
                        snippet=(snippet if isinstance(snippet, str) else "")[:MAX_SNIPPET_CHARS],
                    )
                )
            self._sleep(self.config.pause_between_queries_sec)

        logger.info(
            "Search enrichment complete",
            extra={
                "request_id": request_id,
                "queries": len(queries),
                "failed_queries": failed,
                "findings": len(findings),
            },
        )

        if failed == len(queries):
            return ProviderOutcome.failure("tavily", f"all {failed} queries failed")
        return ProviderOutcome.success("tavily", findings[:MAX_FINDINGS])
