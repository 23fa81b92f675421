"""Grounded FAQ generation service.

This package contains the FastAPI service that takes a public website URL,
fetches its text, enriches it with web search findings, asks Gemini for a
strict-JSON FAQ list, sanitizes the output and removes questions the visitor
has already seen (via src.deduplication).

Shared Utilities (from src/common/):
    - config: load_faq_service_settings(), FaqServiceSettings, GeminiConfig
    - logging: Structured JSON logging with request correlation

Modules:
    models: Pydantic request/response models and the FaqItem schema
    url_guard: URL validation and private-host (SSRF) blocking
    cors: Origin allowlist and CORS headers
    rate_limiter: Injected per-client request budget
    page_fetcher: Firecrawl scrape with plain HTML fallback
    search_client: Tavily search enrichment
    prompt_templates: System/user prompt builder
    gemini_client: Vertex AI Gemini wrapper using google-genai SDK
    sanitizer: Candidate validation and enum coercion
    seeds: Deterministic fallback FAQs
    faq_service: Request orchestration
    main: FastAPI app with /health, /api/generate-faqs and /api/tts
"""
