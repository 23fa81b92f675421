"""HTTP surface tests using FastAPI TestClient with a stubbed service."""

from unittest.mock import MagicMock

import pytest
import requests
from fastapi.testclient import TestClient

from src.common.config import (
    DedupeConfig,
    EmbeddingConfig,
    FaqServiceSettings,
    GeminiConfig,
    HttpPolicyConfig,
    ScraperConfig,
    SearchConfig,
    SpeechConfig,
)
from src.faq_generation.gemini_client import GeminiAuthError, GeminiParseError, GeminiQuotaError, GeminiTimeoutError
from src.faq_generation.main import create_app
from src.faq_generation.models import FaqItem, GenerateFaqsResponse
from src.faq_generation.rate_limiter import InMemoryRateLimiter, UnlimitedRateLimiter
from src.faq_generation.url_guard import BlockedHostError, InvalidUrlError
from src.speech.elevenlabs_client import ElevenLabsClient, SpeechProviderError

ORIGIN = "https://shop.example"


def make_settings(allowed_origins=None) -> FaqServiceSettings:
    return FaqServiceSettings(
        gemini=GeminiConfig(model="m", temperature=0.2, max_output_tokens=10, location="us-central1", enabled=False),
        embedding=EmbeddingConfig(model="e", project=None, location="us-central1"),
        dedupe=DedupeConfig(semantic_enabled=False, similarity_threshold=0.88, max_accepted_embedded=50),
        scraper=ScraperConfig(firecrawl_api_key=None),
        search=SearchConfig(tavily_api_key=None),
        http=HttpPolicyConfig(allowed_origins=allowed_origins or []),
    )


def make_service():
    service = MagicMock()
    service.generate.return_value = GenerateFaqsResponse(
        faqs=[FaqItem(question="Do you ship?", answer="Yes.", sources=[ORIGIN])],
        took_ms=12,
        request_id="req_abc",
    )
    service.generator_status.return_value = "configured"
    return service


@pytest.fixture
def service():
    return make_service()


@pytest.fixture
def client(service):
    app = create_app(
        settings=make_settings([ORIGIN]),
        service=service,
        rate_limiter=UnlimitedRateLimiter(),
    )
    return TestClient(app)


def post(client, body=None, origin=ORIGIN, headers=None):
    headers = dict(headers or {})
    if origin:
        headers["Origin"] = origin
    return client.post("/api/generate-faqs", json=body if body is not None else {"url": ORIGIN}, headers=headers)


# ============================================================================
# /health and non-POST methods
# ============================================================================


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["generator"] == "configured"
    assert body["embeddingService"] == "disabled"


def test_options_preflight(client):
    response = client.options("/api/generate-faqs", headers={"Origin": ORIGIN})

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == ORIGIN
    assert response.headers["vary"] == "Origin"


def test_get_returns_hint(client):
    response = client.get("/api/generate-faqs")

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "hint": "POST { url, siteSearchQueries?, existingQuestions?, underWeighted? }",
    }


def test_other_methods_rejected(client):
    response = client.put("/api/generate-faqs", json={})

    assert response.status_code == 405
    assert response.json() == {"error": "Use POST"}


# ============================================================================
# POST /api/generate-faqs
# ============================================================================


def test_post_success(client, service):
    response = post(client, {"url": ORIGIN, "existingQuestions": ["Seen?"], "includeSocial": True})

    assert response.status_code == 200
    body = response.json()
    assert body["faqs"][0] == {
        "q": "Do you ship?",
        "a": "Yes.",
        "confidence": "medium",
        "category": "other",
        "sources": [ORIGIN],
    }
    assert body["tookMs"] == 12
    assert response.headers["access-control-allow-origin"] == ORIGIN

    payload, request_id = service.generate.call_args.args
    assert payload.existing_questions == ["Seen?"]
    assert payload.social_enabled is True
    assert request_id.startswith("req_")


def test_forbidden_origin(client, service):
    response = post(client, origin="https://evil.example")

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden origin", "code": "forbidden_origin"}
    assert response.headers["access-control-allow-origin"] == "null"
    service.generate.assert_not_called()


def test_rate_limited(service):
    app = create_app(settings=make_settings(), service=service, rate_limiter=InMemoryRateLimiter(limit=1))
    client = TestClient(app)

    assert post(client, origin=None).status_code == 200
    response = post(client, origin=None)

    assert response.status_code == 429
    assert response.json()["code"] == "rate_limited"


def test_rate_limit_keys_on_forwarded_for(service):
    app = create_app(settings=make_settings(), service=service, rate_limiter=InMemoryRateLimiter(limit=1))
    client = TestClient(app)

    assert post(client, origin=None, headers={"X-Forwarded-For": "203.0.113.1"}).status_code == 200
    assert post(client, origin=None, headers={"X-Forwarded-For": "203.0.113.2"}).status_code == 200


def test_unparseable_body_is_treated_as_empty(client, service):
    service.generate.side_effect = InvalidUrlError("Missing or invalid `url`")

    response = client.post(
        "/api/generate-faqs",
        content=b"not json at all",
        headers={"Origin": ORIGIN, "Content-Type": "text/plain"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Missing or invalid `url`", "code": "bad_request"}
    payload = service.generate.call_args.args[0]
    assert payload.url is None


def test_invalid_field_types_are_bad_request(client, service):
    response = post(client, {"url": ORIGIN, "includeSearch": {"nested": True}})

    assert response.status_code == 400
    assert response.json()["code"] == "bad_request"
    service.generate.assert_not_called()


@pytest.mark.parametrize(
    "error, status, body",
    [
        (BlockedHostError("Blocked host"), 403, {"error": "Blocked host", "code": "ssrf_blocked"}),
        (GeminiQuotaError("quota exceeded"), 429, {"error": "quota exceeded", "code": "llm_failed"}),
        (GeminiAuthError("bad credentials"), 401, {"error": "bad credentials", "code": "llm_failed"}),
        (GeminiParseError("Invalid JSON from model"), 502, {"error": "Invalid JSON from model", "code": "llm_failed"}),
        (GeminiTimeoutError("slow"), 500, {"error": "Timed out", "code": "timeout"}),
        (RuntimeError("boom"), 500, {"error": "boom", "code": "server_error"}),
    ],
)
def test_error_mapping(client, service, error, status, body):
    service.generate.side_effect = error

    response = post(client)

    assert response.status_code == status
    assert response.json() == body
    assert response.headers["access-control-allow-origin"] == ORIGIN


# ============================================================================
# /api/tts
# ============================================================================


def speech_client(api_key="xi-key", default_voice="voice-default", alt_voice="voice-alt"):
    return ElevenLabsClient(config=SpeechConfig(api_key=api_key, default_voice_id=default_voice, alt_voice_id=alt_voice))


def tts_app(speech):
    return TestClient(create_app(settings=make_settings(), service=make_service(), speech_client=speech))


def test_tts_hint_and_preflight():
    client = tts_app(speech_client())

    assert client.options("/api/tts").status_code == 200
    hint = client.get("/api/tts")
    assert hint.json()["ok"] is True
    assert hint.headers["access-control-allow-origin"] == "*"


def test_tts_missing_configuration():
    client = tts_app(speech_client(api_key=None))

    response = client.post("/api/tts", json={"text": "Hello"})

    assert response.status_code == 500
    assert response.json() == {"error": "ELEVENLABS_API_KEY is not set"}


def test_tts_missing_text():
    client = tts_app(speech_client())

    response = client.post("/api/tts", json={"text": 5})

    assert response.status_code == 400
    assert response.json() == {"error": 'Missing "text" (string)'}


def test_tts_returns_audio(monkeypatch):
    speech = speech_client()
    synthesize = MagicMock(return_value=b"ID3audio")
    monkeypatch.setattr(speech, "synthesize", synthesize)
    client = tts_app(speech)

    response = client.post("/api/tts", json={"text": "Hello", "voice": "alt"})

    assert response.status_code == 200
    assert response.content == b"ID3audio"
    assert response.headers["content-type"] == "audio/mpeg"
    assert response.headers["cache-control"] == "no-store"
    synthesize.assert_called_once_with("Hello", None, "alt", "eleven_monolingual_v1")


def test_tts_upstream_error(monkeypatch):
    speech = speech_client()
    monkeypatch.setattr(speech, "synthesize", MagicMock(side_effect=SpeechProviderError(401, "bad key")))
    client = tts_app(speech)

    response = client.post("/api/tts", json={"text": "Hello"})

    assert response.status_code == 502
    assert response.json() == {"error": "ElevenLabs 401", "details": "bad key"}


def test_tts_transport_error(monkeypatch):
    speech = speech_client()
    monkeypatch.setattr(speech, "synthesize", MagicMock(side_effect=requests.ConnectionError("refused")))
    client = tts_app(speech)

    response = client.post("/api/tts", json={"text": "Hello"})

    assert response.status_code == 500
    assert response.json()["error"] == "TTS request failed"
