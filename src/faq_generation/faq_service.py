"""FAQ generation orchestration.

Implements the request workflow:
1. Validate the target URL (SSRF guard)
2. Fetch page text and search findings (best-effort)
3. Generate candidates with Gemini, or fall back to seed FAQs
4. Sanitize and dedupe against the visitor's existing questions
5. Fall back to seed FAQs when nothing survives
"""

from typing import List, Optional
import logging
import time
import uuid

from src.common.config import FaqServiceSettings, load_faq_service_settings
from src.common.logging import log_decision
from src.deduplication.deduplication_service import DeduplicationService
from src.deduplication.embedding_client import EmbeddingClient
from src.deduplication.models import DedupeOptions
from src.faq_generation.gemini_client import GeminiClient
from src.faq_generation.models import FaqItem, GenerateFaqsRequest, GenerateFaqsResponse, SearchFinding
from src.faq_generation.page_fetcher import PageFetcher
from src.faq_generation.prompt_templates import build_faq_prompt, compute_prompt_hash, normalize_analytics_queries
from src.faq_generation.sanitizer import sanitize_candidates
from src.faq_generation.search_client import SearchClient
from src.faq_generation.seeds import seed_faqs
from src.faq_generation.url_guard import validate_target_url

logger = logging.getLogger(__name__)


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class FaqGenerationService:
    """Service that turns a site URL into a deduplicated FAQ batch.

    All collaborators are injectable; missing ones are built from settings.
    ``generator=None`` with Gemini disabled means seed-only responses.

    Usage:
        service = FaqGenerationService()
        response = service.generate(GenerateFaqsRequest(url="https://shop.example"))
    """

    def __init__(
        self,
        settings: Optional[FaqServiceSettings] = None,
        page_fetcher: Optional[PageFetcher] = None,
        search_client: Optional[SearchClient] = None,
        generator: Optional[GeminiClient] = None,
        dedupe_service: Optional[DeduplicationService] = None,
    ):
        self.settings = settings or load_faq_service_settings()
        self.page_fetcher = page_fetcher or PageFetcher(config=self.settings.scraper)
        self.search_client = search_client or SearchClient(config=self.settings.search)
        if generator is None and self.settings.gemini.enabled:
            generator = GeminiClient(config=self.settings.gemini)
        self.generator = generator
        if dedupe_service is None:
            embedder = EmbeddingClient(config=self.settings.embedding) if self.settings.dedupe.semantic_enabled else None
            dedupe_service = DeduplicationService(embedder=embedder)
        self.dedupe_service = dedupe_service
        self.dedupe_options = DedupeOptions.from_config(self.settings.dedupe)

    def _seed_response(self, url: str, existing: List[str], start_time: float, request_id: str, reason: str) -> GenerateFaqsResponse:
        log_decision(logger, request_id=request_id, action="respond", outcome="seed_faqs", reason=reason)
        return GenerateFaqsResponse(
            faqs=seed_faqs(url, existing),
            took_ms=int((time.time() - start_time) * 1000),
            request_id=request_id,
        )

    def generate(self, request: GenerateFaqsRequest, request_id: Optional[str] = None) -> GenerateFaqsResponse:
        """Run the full generation workflow for one request.

        Raises:
            UrlValidationError: If the URL is missing, malformed or private.
            GeminiClientError: If the generator fails after retries.
        """
        start_time = time.time()
        request_id = request_id or new_request_id()

        target = validate_target_url(request.url)
        existing = list(request.existing_questions)
        analytics_queries = normalize_analytics_queries(request.site_search_queries)

        page = self.page_fetcher.fetch(target.url, request_id=request_id)
        site_text = page.value if page.ok else None

        search = self.search_client.find(
            target.url,
            include_search=True,
            include_social=request.social_enabled,
            include_reviews=request.reviews_enabled,
            request_id=request_id,
        )
        findings: List[SearchFinding] = search.value if search.ok and search.value else []

        if self.generator is None:
            return self._seed_response(target.url, existing, start_time, request_id, reason="generator_not_configured")

        prompt = build_faq_prompt(
            site_domain=target.site_domain,
            site_text=site_text,
            search_findings=findings,
            analytics_queries=analytics_queries,
            existing_questions=existing,
            under_weighted=request.under_weighted,
        )
        logger.info(
            "Generating FAQs",
            extra={
                "request_id": request_id,
                "site_domain": target.site_domain,
                "page_provider": page.provider if page.ok else None,
                "site_text_chars": len(site_text or ""),
                "findings": len(findings),
                "analytics_queries": len(analytics_queries),
                "existing_questions": len(existing),
                "prompt_hash": compute_prompt_hash(prompt.combined()),
            },
        )

        generated = self.generator.generate_faqs(prompt)
        candidates: List[FaqItem] = sanitize_candidates(
            generated.parsed_json.get("faqs"), target.site_domain, request_id=request_id
        )

        result = self.dedupe_service.dedupe_with_fallback(
            existing, candidates, self.dedupe_options, request_id=request_id
        )
        if not result.kept:
            return self._seed_response(target.url, existing, start_time, request_id, reason="no_candidates_survived")

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "FAQ generation complete",
            extra={
                "request_id": request_id,
                "duration_ms": duration_ms,
                "provider_used": "gemini",
                "retry_count": generated.attempts - 1,
                "count": len(result.kept),
            },
        )
        return GenerateFaqsResponse(faqs=result.kept, took_ms=duration_ms, request_id=request_id)

    def generator_status(self) -> str:
        return "configured" if self.generator is not None else "seed_only"
