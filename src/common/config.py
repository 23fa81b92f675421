"""Configuration loader for FAQForge services.

Provides shared configuration dataclasses and environment variable helpers
used by the FAQ generation API, the deduplication engine and the speech
proxy.

All service configurations are centralized here to avoid duplication.

Exports:
    - ConfigError: Exception for configuration errors
    - _get_env, _int_env, _float_env, _bool_env, _optional_env: Environment helpers
    - GeminiConfig, EmbeddingConfig, DedupeConfig: Model and dedupe configuration
    - ScraperConfig, SearchConfig, HttpPolicyConfig, SpeechConfig: Collaborator configuration
    - FaqServiceSettings: Combined settings for the FAQ generation service
    - load_*: Loaders for each of the above
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


def _get_env(key: str, default: Optional[str] = None, required: bool = False) -> str:
    value = os.getenv(key, default)
    if required and (value is None or value == ""):
        raise ConfigError(f"Missing required environment variable: {key}")
    if value is None:
        raise ConfigError(f"Environment variable {key} is not set and no default provided")
    if value == "" and default is None:
        raise ConfigError(f"Environment variable {key} is empty and no default provided")
    return value


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid int for {key}: {raw}") from exc


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid float for {key}: {raw}") from exc


def _bool_env(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() == "true"


def _optional_env(key: str) -> Optional[str]:
    value = os.getenv(key)
    if value is None or value == "":
        return None
    return value


def _list_env(key: str) -> List[str]:
    raw = os.getenv(key) or ""
    return [item.strip() for item in raw.split(",") if item.strip()]


# =============================================================================
# Gemini (FAQ generation)
# =============================================================================

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_GEMINI_TEMPERATURE = 0.2
DEFAULT_GEMINI_MAX_OUTPUT_TOKENS = 4096
DEFAULT_VERTEX_AI_LOCATION = "us-central1"
DEFAULT_LLM_REQUEST_TIMEOUT_SEC = 25.0


@dataclass
class GeminiConfig:
    """Gemini model configuration for FAQ generation.

    ``enabled`` is false when no Google Cloud project is configured; the
    service then answers with deterministic seed FAQs.
    """

    model: str
    temperature: float
    max_output_tokens: int
    location: str
    project: Optional[str] = None
    enabled: bool = True
    request_timeout_sec: float = DEFAULT_LLM_REQUEST_TIMEOUT_SEC


def load_gemini_config() -> GeminiConfig:
    """Load Gemini configuration from environment variables.

    Returns:
        GeminiConfig with model settings for Vertex AI Gemini.
    """
    project = _optional_env("GOOGLE_CLOUD_PROJECT")
    return GeminiConfig(
        model=_get_env("GEMINI_MODEL", default=DEFAULT_GEMINI_MODEL),
        temperature=_float_env("GEMINI_TEMPERATURE", default=DEFAULT_GEMINI_TEMPERATURE),
        max_output_tokens=_int_env("GEMINI_MAX_OUTPUT_TOKENS", default=DEFAULT_GEMINI_MAX_OUTPUT_TOKENS),
        location=_get_env("VERTEX_AI_LOCATION", default=DEFAULT_VERTEX_AI_LOCATION),
        project=project,
        enabled=_bool_env("GEMINI_ENABLED", default=project is not None),
        request_timeout_sec=_float_env("LLM_REQUEST_TIMEOUT_SEC", default=DEFAULT_LLM_REQUEST_TIMEOUT_SEC),
    )


# =============================================================================
# Embeddings and deduplication
# =============================================================================

DEFAULT_EMBEDDING_MODEL = "text-embedding-004"
DEFAULT_EMBEDDING_BATCH_SIZE = 5
DEFAULT_SIMILARITY_THRESHOLD = 0.88
DEFAULT_MAX_ACCEPTED_EMBEDDED = 50


@dataclass
class EmbeddingConfig:
    """Vertex AI embedding model configuration for semantic dedupe."""

    model: str
    project: Optional[str]
    location: str
    output_dimensionality: int = 768
    batch_size: int = DEFAULT_EMBEDDING_BATCH_SIZE


@dataclass
class DedupeConfig:
    """Feature flag and tuning for the semantic dedupe stage."""

    semantic_enabled: bool
    similarity_threshold: float
    max_accepted_embedded: int


def load_embedding_config() -> EmbeddingConfig:
    """Load embedding configuration from environment variables.

    Returns:
        EmbeddingConfig with Vertex AI embedding model settings.
    """
    return EmbeddingConfig(
        model=_get_env("EMBEDDING_MODEL", default=DEFAULT_EMBEDDING_MODEL),
        project=_optional_env("VERTEX_AI_PROJECT") or _optional_env("GOOGLE_CLOUD_PROJECT"),
        location=_get_env("VERTEX_AI_LOCATION", default=DEFAULT_VERTEX_AI_LOCATION),
        output_dimensionality=_int_env("EMBEDDING_DIMENSIONALITY", default=768),
        batch_size=_int_env("EMBEDDING_BATCH_SIZE", default=DEFAULT_EMBEDDING_BATCH_SIZE),
    )


def load_dedupe_config() -> DedupeConfig:
    """Load dedupe settings; validates the threshold range."""
    threshold = _float_env("EMBED_DUP_THRESHOLD", default=DEFAULT_SIMILARITY_THRESHOLD)
    if not 0.0 < threshold < 1.0:
        raise ConfigError(f"EMBED_DUP_THRESHOLD must be between 0 and 1 (exclusive): {threshold}")
    return DedupeConfig(
        semantic_enabled=_bool_env("ENABLE_EMBED_DEDUPE", default=False),
        similarity_threshold=threshold,
        max_accepted_embedded=_int_env("EMBED_MAX_ACCEPTED", default=DEFAULT_MAX_ACCEPTED_EMBEDDED),
    )


# =============================================================================
# Page fetching and search enrichment
# =============================================================================

DEFAULT_FIRECRAWL_TIMEOUT_SEC = 25.0
DEFAULT_SIMPLE_FETCH_TIMEOUT_SEC = 12.0
DEFAULT_SEARCH_TIMEOUT_SEC = 12.0


@dataclass
class ScraperConfig:
    """Firecrawl credentials and page fetch timeouts."""

    firecrawl_api_key: Optional[str]
    firecrawl_timeout_sec: float = DEFAULT_FIRECRAWL_TIMEOUT_SEC
    simple_fetch_timeout_sec: float = DEFAULT_SIMPLE_FETCH_TIMEOUT_SEC


@dataclass
class SearchConfig:
    """Tavily credentials for search enrichment."""

    tavily_api_key: Optional[str]
    timeout_sec: float = DEFAULT_SEARCH_TIMEOUT_SEC
    pause_between_queries_sec: float = 0.08


def load_scraper_config() -> ScraperConfig:
    return ScraperConfig(
        firecrawl_api_key=_optional_env("FIRECRAWL_API_KEY"),
        firecrawl_timeout_sec=_float_env("FIRECRAWL_TIMEOUT_SEC", default=DEFAULT_FIRECRAWL_TIMEOUT_SEC),
        simple_fetch_timeout_sec=_float_env("SIMPLE_FETCH_TIMEOUT_SEC", default=DEFAULT_SIMPLE_FETCH_TIMEOUT_SEC),
    )


def load_search_config() -> SearchConfig:
    return SearchConfig(
        tavily_api_key=_optional_env("TAVILY_API_KEY"),
        timeout_sec=_float_env("SEARCH_TIMEOUT_SEC", default=DEFAULT_SEARCH_TIMEOUT_SEC),
    )


# =============================================================================
# HTTP policy (CORS allowlist and rate limiting)
# =============================================================================

DEFAULT_RATE_LIMIT_HOURLY = 10


@dataclass
class HttpPolicyConfig:
    """CORS allowlist and per-client request budget.

    An empty ``allowed_origins`` list allows every origin.
    """

    allowed_origins: List[str] = field(default_factory=list)
    rate_limit_hourly: int = DEFAULT_RATE_LIMIT_HOURLY


def load_http_policy_config() -> HttpPolicyConfig:
    return HttpPolicyConfig(
        allowed_origins=_list_env("ALLOWED_ORIGINS"),
        rate_limit_hourly=_int_env("RATE_LIMIT_HOURLY", default=DEFAULT_RATE_LIMIT_HOURLY),
    )


# =============================================================================
# Speech synthesis proxy
# =============================================================================


@dataclass
class SpeechConfig:
    """ElevenLabs credentials and voices.

    Both key and default voice are optional so the API can start without
    them; the speech route reports the missing value per request.
    """

    api_key: Optional[str]
    default_voice_id: Optional[str]
    alt_voice_id: Optional[str]
    timeout_sec: float = 30.0


def load_speech_config() -> SpeechConfig:
    return SpeechConfig(
        api_key=_optional_env("ELEVENLABS_API_KEY"),
        default_voice_id=_optional_env("ELEVENLABS_DEFAULT_VOICE_ID"),
        alt_voice_id=_optional_env("ELEVENLABS_ALT_VOICE_ID"),
    )


# =============================================================================
# Combined FAQ service settings
# =============================================================================


@dataclass
class FaqServiceSettings:
    """Combined settings for the FAQ generation service."""

    gemini: GeminiConfig
    embedding: EmbeddingConfig
    dedupe: DedupeConfig
    scraper: ScraperConfig
    search: SearchConfig
    http: HttpPolicyConfig


def load_faq_service_settings() -> FaqServiceSettings:
    """Load FAQ generation service settings from environment variables.

    Raises:
        ConfigError: If environment variables are invalid.
    """
    return FaqServiceSettings(
        gemini=load_gemini_config(),
        embedding=load_embedding_config(),
        dedupe=load_dedupe_config(),
        scraper=load_scraper_config(),
        search=load_search_config(),
        http=load_http_policy_config(),
    )
