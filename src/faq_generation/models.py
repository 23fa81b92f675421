"""Pydantic models for the FAQ generation API and the FaqItem candidate schema.

These models align with specs/001-faq-generation/contracts/faq-openapi.yaml. The wire format keeps the
short keys browsers already send and read (``q``, ``a``, camelCase request
fields); Python code uses the snake_case attribute names.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Enums (matching OpenAPI schema)
# ============================================================================


class Confidence(str, Enum):
    """How well an answer is supported by the site text."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Category(str, Enum):
    """Closed set of FAQ categories used for coverage balancing."""

    PRICING = "pricing"
    ORDERS = "orders"
    SHIPPING = "shipping"
    RETURNS = "returns"
    PRODUCT = "product"
    SETUP = "setup"
    TROUBLESHOOTING = "troubleshooting"
    POLICIES = "policies"
    ACCESSIBILITY = "accessibility"
    HOURS = "hours"
    OTHER = "other"


def coerce_confidence(value: Any) -> Confidence:
    """Map free-form model output onto Confidence; unknown values become medium."""
    if isinstance(value, Confidence):
        return value
    try:
        return Confidence(str(value or "").strip().lower())
    except ValueError:
        return Confidence.MEDIUM


def coerce_category(value: Any) -> Category:
    """Map free-form model output onto Category; unknown values become other."""
    if isinstance(value, Category):
        return value
    try:
        return Category(str(value or "").strip().lower())
    except ValueError:
        return Category.OTHER


# ============================================================================
# Candidate schema (core output model)
# ============================================================================


class FaqItem(BaseModel):
    """A generated FAQ entry awaiting (or having passed) deduplication."""

    question: str = Field(..., alias="q", min_length=1, description="Question text shown to the visitor.")
    answer: str = Field(..., alias="a", min_length=1, description="1-4 sentence grounded answer.")
    confidence: Confidence = Field(Confidence.MEDIUM, description="Support level in site text.")
    category: Category = Field(Category.OTHER, description="Coverage category.")
    sources: List[str] = Field(default_factory=list, description="Supporting URLs (max 4).")

    model_config = {"populate_by_name": True}

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: Any) -> Confidence:
        return coerce_confidence(value)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Category:
        return coerce_category(value)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire format used in API responses."""
        return {
            "q": self.question,
            "a": self.answer,
            "confidence": self.confidence.value,
            "category": self.category.value,
            "sources": list(self.sources),
        }


# ============================================================================
# Request / Response Models
# ============================================================================


class GenerateFaqsRequest(BaseModel):
    """Request body for POST /api/generate-faqs."""

    url: Optional[str] = Field(None, description="Public http(s) URL of the site to summarize.")
    include_search: bool = Field(True, alias="includeSearch")
    include_social: Optional[bool] = Field(
        None,
        alias="includeSocial",
        description="Search social profiles; defaults to includeSearch.",
    )
    include_reviews: Optional[bool] = Field(
        None,
        alias="includeReviews",
        description="Search review sites; defaults to includeSearch.",
    )
    site_search_queries: Optional[List[Any]] = Field(
        None,
        alias="siteSearchQueries",
        description="Internal site-search queries pasted from analytics.",
    )
    existing_questions: List[str] = Field(
        default_factory=list,
        alias="existingQuestions",
        description="Questions already shown to the visitor (the accepted set).",
    )
    under_weighted: List[str] = Field(
        default_factory=list,
        alias="underWeighted",
        description="Categories to prioritize in this batch.",
    )

    model_config = {"populate_by_name": True}

    @field_validator("existing_questions", "under_weighted", mode="before")
    @classmethod
    def _stringify_list(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None]

    @property
    def social_enabled(self) -> bool:
        return self.include_search if self.include_social is None else self.include_social

    @property
    def reviews_enabled(self) -> bool:
        return self.include_search if self.include_reviews is None else self.include_reviews


class GenerateFaqsResponse(BaseModel):
    """Successful FAQ generation response."""

    faqs: List[FaqItem]
    took_ms: int = Field(..., alias="tookMs", description="Wall time spent on the request.")
    request_id: Optional[str] = Field(None, alias="requestId")

    model_config = {"populate_by_name": True}

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "faqs": [faq.to_dict() for faq in self.faqs],
            "tookMs": self.took_ms,
        }
        if self.request_id:
            result["requestId"] = self.request_id
        return result


class ErrorResponse(BaseModel):
    """Error body shared by every route."""

    error: str = Field(..., description="Human-readable message.")
    code: Optional[str] = Field(None, description="Stable machine-readable code.")
    details: Optional[Any] = None


class HintResponse(BaseModel):
    """Usage hint returned by GET on POST-only routes."""

    ok: bool = True
    hint: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    generator: str
    embedding_service: str = Field(..., alias="embeddingService")

    model_config = {"populate_by_name": True}


class SearchFinding(BaseModel):
    """One search-enrichment hit handed to the prompt."""

    url: str
    title: Optional[str] = None
    snippet: str = ""


# ============================================================================
# Collaborator outcomes
# ============================================================================

T = TypeVar("T")


@dataclass
class ProviderOutcome(Generic[T]):
    """Explicit success/failure result from an optional collaborator.

    Page fetching and search enrichment are best-effort: their failures are
    reported here and logged by the caller instead of being raised.
    """

    provider: str
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, provider: str, value: T) -> "ProviderOutcome[T]":
        return cls(provider=provider, ok=True, value=value)

    @classmethod
    def failure(cls, provider: str, error: str) -> "ProviderOutcome[T]":
        return cls(provider=provider, ok=False, error=error)


# ============================================================================
# Gemini Response Schema (for structured output)
# ============================================================================


def get_faq_response_schema() -> Dict[str, Any]:
    """Return the JSON schema dict for Gemini response_schema parameter."""
    return {
        "type": "object",
        "properties": {
            "faqs": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "q": {"type": "string"},
                        "a": {"type": "string"},
                        "confidence": {
                            "type": "string",
                            "enum": [c.value for c in Confidence],
                        },
                        "category": {
                            "type": "string",
                            "enum": [c.value for c in Category],
                        },
                        "sources": {
                            "type": "array",
                            "items": {"type": "string"},
                        },
                        "alt": {
                            "type": "array",
                            "items": {"type": "string"},
                        },
                    },
                    "required": ["q", "a", "confidence", "category", "sources"],
                },
            },
            "meta": {
                "type": "object",
                "properties": {
                    "coverage": {
                        "type": "object",
                        "properties": {c.value: {"type": "integer"} for c in Category},
                    },
                },
            },
        },
        "required": ["faqs"],
    }
