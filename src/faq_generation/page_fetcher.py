"""Fetch the text of a single public page.

Firecrawl is tried first when a key is configured; otherwise (or when it
fails) the page is fetched directly and reduced to text with BeautifulSoup.
Both steps are best-effort: the result is a ProviderOutcome, never an
exception.
"""

from __future__ import annotations

import re
from typing import Optional

import requests
from bs4 import BeautifulSoup

from src.common.config import ScraperConfig, load_scraper_config
from src.common.logging import get_logger
from src.faq_generation.models import ProviderOutcome

logger = get_logger(__name__)

FIRECRAWL_SCRAPE_URL = "https://api.firecrawl.dev/v1/scrape"
USER_AGENT = "Mozilla/5.0 (FAQGen/1.2)"

# Character caps on extracted text
FIRECRAWL_MAX_CHARS = 70_000
SIMPLE_FETCH_MAX_CHARS = 50_000

_WHITESPACE_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def html_to_text(html: str) -> str:
    """Strip scripts, styles and tags; collapse whitespace."""
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return collapse_whitespace(soup.get_text(separator=" "))


class PageFetcher:
    """Single-page text fetcher (Firecrawl with direct-fetch fallback)."""

    def __init__(
        self,
        config: Optional[ScraperConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or load_scraper_config()
        self.session = session or requests.Session()

    def _firecrawl(self, url: str) -> ProviderOutcome[str]:
        if not self.config.firecrawl_api_key:
            return ProviderOutcome.failure("firecrawl", "not_configured")

        try:
            response = self.session.post(
                FIRECRAWL_SCRAPE_URL,
                headers={
                    "Authorization": f"Bearer {self.config.firecrawl_api_key}",
                    "Content-Type": "application/json",
                },
                json={"url": url, "formats": ["markdown", "html"], "onlyMainContent": True},
                timeout=self.config.firecrawl_timeout_sec,
            )
        except requests.RequestException as exc:
            return ProviderOutcome.failure("firecrawl", f"request failed: {exc}")

        if not response.ok:
            return ProviderOutcome.failure("firecrawl", f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            return ProviderOutcome.failure("firecrawl", "invalid JSON")

        if not isinstance(payload, dict):
            return ProviderOutcome.failure("firecrawl", f"unexpected response type: {type(payload).__name__}")

        # v1 nests the document under "data"; older responses are flat.
        document = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        raw = document.get("markdown") or document.get("text") or ""
        if not isinstance(raw, str):
            return ProviderOutcome.failure("firecrawl", "document text is not a string")
        text = collapse_whitespace(raw)[:FIRECRAWL_MAX_CHARS]
        if not text:
            return ProviderOutcome.failure("firecrawl", "empty document")
        return ProviderOutcome.success("firecrawl", text)

    def _simple_fetch(self, url: str) -> ProviderOutcome[str]:
        try:
            response = self.session.get(
                url,
                headers={"User-Agent": USER_AGENT},
                timeout=self.config.simple_fetch_timeout_sec,
            )
        except requests.RequestException as exc:
            return ProviderOutcome.failure("simple_fetch", f"request failed: {exc}")

        text = html_to_text(response.text)[:SIMPLE_FETCH_MAX_CHARS]
        if not text:
            return ProviderOutcome.failure("simple_fetch", f"no text (HTTP {response.status_code})")
        return ProviderOutcome.success("simple_fetch", text)

    def fetch(self, url: str, request_id: Optional[str] = None) -> ProviderOutcome[str]:
        """Return page text from the first provider that yields any."""
        outcome = self._firecrawl(url)
        if outcome.ok:
            return outcome
        if outcome.error != "not_configured":
            logger.warning(
                "Firecrawl scrape failed, falling back to direct fetch",
                extra={"request_id": request_id, "error": outcome.error},
            )

        outcome = self._simple_fetch(url)
        if not outcome.ok:
            logger.warning(
                "Page fetch failed",
                extra={"request_id": request_id, "provider": outcome.provider, "error": outcome.error},
            )
        return outcome
