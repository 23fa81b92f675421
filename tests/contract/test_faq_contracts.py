"""Contract tests for the FAQ generation API.

Validates that Pydantic models serialize to match OpenAPI schema definitions.
These tests do NOT require live services - they validate data shapes only.
"""

import pathlib

import yaml

from src.faq_generation.models import (
    Category,
    Confidence,
    ErrorResponse,
    FaqItem,
    GenerateFaqsRequest,
    GenerateFaqsResponse,
    HealthResponse,
    HintResponse,
    get_faq_response_schema,
)

SPEC_PATH = pathlib.Path(__file__).resolve().parents[2] / "specs/001-faq-generation/contracts/faq-openapi.yaml"


def load_faq_schemas():
    """Load the FAQ OpenAPI component schemas."""
    spec = yaml.safe_load(SPEC_PATH.read_text())
    return spec["components"]["schemas"]


def sample_response() -> GenerateFaqsResponse:
    return GenerateFaqsResponse(
        faqs=[
            FaqItem(
                question="Do you ship internationally?",
                answer="Yes, to 40 countries.",
                confidence=Confidence.HIGH,
                category=Category.SHIPPING,
                sources=["https://shop.example/shipping"],
            )
        ],
        took_ms=321,
        request_id="req_0123456789ab",
    )


def test_enums_match_schema():
    schemas = load_faq_schemas()

    assert schemas["Confidence"]["enum"] == [c.value for c in Confidence]
    assert schemas["Category"]["enum"] == [c.value for c in Category]


def test_faq_item_serialization_has_required_fields():
    schemas = load_faq_schemas()
    required = set(schemas["FaqItem"]["required"])

    data = sample_response().faqs[0].to_dict()

    assert required <= set(data)
    assert set(data) <= set(schemas["FaqItem"]["properties"])


def test_generate_response_serialization():
    schemas = load_faq_schemas()
    schema = schemas["GenerateFaqsResponse"]

    data = sample_response().to_dict()

    assert set(schema["required"]) <= set(data)
    assert set(data) <= set(schema["properties"])
    assert isinstance(data["tookMs"], int)


def test_request_accepts_contract_field_names():
    schemas = load_faq_schemas()
    properties = schemas["GenerateFaqsRequest"]["properties"]
    aliases = {field.alias or name for name, field in GenerateFaqsRequest.model_fields.items()}

    assert aliases == set(properties)


def test_error_codes_are_documented():
    schemas = load_faq_schemas()
    codes = set(schemas["ErrorResponse"]["properties"]["code"]["enum"])

    assert {"bad_request", "forbidden_origin", "ssrf_blocked", "rate_limited", "llm_failed", "timeout", "server_error"} == codes
    data = ErrorResponse(error="Blocked host", code="ssrf_blocked").model_dump(exclude_none=True)
    assert set(schemas["ErrorResponse"]["required"]) <= set(data)


def test_health_and_hint_serialization():
    schemas = load_faq_schemas()

    health = HealthResponse(status="healthy", version="1.0.0", generator="seed_only", embedding_service="disabled")
    assert set(schemas["HealthResponse"]["required"]) == set(health.model_dump(by_alias=True))

    hint = HintResponse(hint="POST { url }")
    assert set(schemas["HintResponse"]["required"]) == set(hint.model_dump())


def test_gemini_response_schema_matches_faq_item():
    schemas = load_faq_schemas()
    item_schema = get_faq_response_schema()["properties"]["faqs"]["items"]

    assert set(item_schema["required"]) == set(schemas["FaqItem"]["required"])
    assert item_schema["properties"]["category"]["enum"] == schemas["Category"]["enum"]
