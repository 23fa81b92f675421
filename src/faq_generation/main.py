"""FastAPI service for FAQ generation.

Provides REST API endpoints for:
- Health checks (Cloud Run compatibility)
- FAQ batch generation for a public site URL
- Text-to-speech proxy for reading answers aloud

Per specs/001-faq-generation/contracts/faq-openapi.yaml:
- GET /health: Service health status
- POST /api/generate-faqs: Generate a deduplicated FAQ batch
- POST /api/tts: Synthesize an answer as audio/mpeg
"""

import json
import logging
from typing import Any, Dict, Optional

import requests
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from src.common.config import FaqServiceSettings, load_faq_service_settings
from src.common.env import load_env
from src.common.logging import get_logger, log_decision, log_error
from src.faq_generation.cors import CorsPolicy
from src.faq_generation.faq_service import FaqGenerationService, new_request_id
from src.faq_generation.gemini_client import GeminiClientError, GeminiTimeoutError
from src.faq_generation.models import ErrorResponse, GenerateFaqsRequest, HealthResponse, HintResponse
from src.faq_generation.rate_limiter import InMemoryRateLimiter, RateLimiter, client_key
from src.faq_generation.url_guard import UrlValidationError
from src.speech.elevenlabs_client import ElevenLabsClient, SpeechError, SpeechProviderError

logger = get_logger(__name__)

# Service version
VERSION = "1.0.0"

GENERATE_HINT = "POST { url, siteSearchQueries?, existingQuestions?, underWeighted? }"
TTS_HINT = 'POST { text, voiceId?, voice? ("alt"), model? }'

TTS_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _error(status_code: int, error: str, code: Optional[str] = None, headers: Optional[Dict[str, str]] = None, details: Any = None) -> JSONResponse:
    body = ErrorResponse(error=error, code=code, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def _json_body(request: Request) -> Dict[str, Any]:
    """Parse the request body leniently; anything but a JSON object becomes ``{}``."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


def create_app(
    settings: Optional[FaqServiceSettings] = None,
    service: Optional[FaqGenerationService] = None,
    rate_limiter: Optional[RateLimiter] = None,
    cors_policy: Optional[CorsPolicy] = None,
    speech_client: Optional[ElevenLabsClient] = None,
) -> FastAPI:
    """Build the FastAPI app.

    Collaborators are created lazily on first use so the app can be
    imported without cloud credentials; tests pass fakes in directly.
    """
    settings = settings or load_faq_service_settings()

    app = FastAPI(
        title="FAQForge",
        description="Generates grounded, deduplicated FAQs for a public website.",
        version=VERSION,
    )
    app.state.settings = settings
    app.state.service = service
    app.state.speech_client = speech_client
    app.state.rate_limiter = rate_limiter or InMemoryRateLimiter(limit=settings.http.rate_limit_hourly)
    app.state.cors_policy = cors_policy or CorsPolicy(settings.http.allowed_origins)

    def get_service() -> FaqGenerationService:
        if app.state.service is None:
            app.state.service = FaqGenerationService(settings=app.state.settings)
        return app.state.service

    def get_speech_client() -> ElevenLabsClient:
        if app.state.speech_client is None:
            app.state.speech_client = ElevenLabsClient()
        return app.state.speech_client

    # ============================================================================
    # Health Check Endpoint
    # ============================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health check endpoint",
        description="Returns service health status for Cloud Run health checks.",
    )
    async def health_check() -> HealthResponse:
        embedding_status = "disabled"
        service = get_service()
        if app.state.settings.dedupe.semantic_enabled:
            embedding_status = "unavailable"
            embedder = service.dedupe_service.embedder
            try:
                if embedder is not None and getattr(embedder, "is_available", lambda: True)():
                    embedding_status = "available"
            except Exception as e:
                logger.warning(f"Embedding service check failed: {e}")

        return HealthResponse(
            status="healthy",
            version=VERSION,
            generator=service.generator_status(),
            embedding_service=embedding_status,
        )

    # ============================================================================
    # FAQ Generation Endpoint
    # ============================================================================

    @app.options("/api/generate-faqs", include_in_schema=False)
    async def generate_faqs_preflight(request: Request) -> Response:
        headers = app.state.cors_policy.headers_for(request.headers.get("origin"))
        return Response(status_code=204, headers=headers)

    @app.get("/api/generate-faqs", response_model=HintResponse, summary="Usage hint")
    async def generate_faqs_hint(request: Request) -> JSONResponse:
        headers = app.state.cors_policy.headers_for(request.headers.get("origin"))
        return JSONResponse(content=HintResponse(hint=GENERATE_HINT).model_dump(), headers=headers)

    @app.post(
        "/api/generate-faqs",
        responses={
            400: {"model": ErrorResponse, "description": "Missing or invalid input"},
            403: {"model": ErrorResponse, "description": "Forbidden origin or blocked host"},
            429: {"model": ErrorResponse, "description": "Rate limited"},
            502: {"model": ErrorResponse, "description": "Generator failed"},
        },
        summary="Generate a deduplicated FAQ batch",
    )
    async def generate_faqs(request: Request) -> JSONResponse:
        origin = request.headers.get("origin")
        cors: CorsPolicy = app.state.cors_policy
        headers = cors.headers_for(origin)
        request_id = new_request_id()

        if not cors.origin_allowed(origin):
            log_decision(logger, request_id=request_id, action="origin_check", outcome="rejected", origin=origin)
            return _error(403, "Forbidden origin", "forbidden_origin", headers)

        key = client_key(request.headers.get("x-forwarded-for"), request.client.host if request.client else None)
        if not app.state.rate_limiter.check(key):
            log_decision(logger, request_id=request_id, action="rate_limit", outcome="rejected", client=key)
            return _error(429, "Rate limit exceeded", "rate_limited", headers)

        try:
            payload = GenerateFaqsRequest.model_validate(await _json_body(request))
        except ValidationError as e:
            return _error(400, "Invalid request body", "bad_request", headers, details=e.errors(include_url=False, include_context=False))

        try:
            result = await run_in_threadpool(get_service().generate, payload, request_id)
        except UrlValidationError as e:
            log_decision(logger, request_id=request_id, action="url_check", outcome=e.code, url=payload.url)
            return _error(e.status_code, str(e), e.code, headers)
        except GeminiTimeoutError as e:
            log_error(logger, "FAQ generation timed out", request_id=request_id, error=e)
            return _error(500, "Timed out", "timeout", headers)
        except GeminiClientError as e:
            log_error(logger, "FAQ generation failed", request_id=request_id, error=e)
            return _error(e.status_code, str(e), "llm_failed", headers)
        except Exception as e:
            log_error(logger, "Unexpected error during FAQ generation", request_id=request_id, error=e)
            return _error(500, str(e) or "Server error", "server_error", headers)

        return JSONResponse(content=result.to_dict(), headers=headers)

    @app.api_route("/api/generate-faqs", methods=["PUT", "PATCH", "DELETE"], include_in_schema=False)
    async def generate_faqs_wrong_method(request: Request) -> JSONResponse:
        headers = app.state.cors_policy.headers_for(request.headers.get("origin"))
        return _error(405, "Use POST", headers=headers)

    # ============================================================================
    # Text-to-Speech Endpoint
    # ============================================================================

    @app.options("/api/tts", include_in_schema=False)
    async def tts_preflight() -> Response:
        return Response(status_code=200, headers=TTS_CORS_HEADERS)

    @app.get("/api/tts", response_model=HintResponse, summary="Usage hint")
    async def tts_hint() -> JSONResponse:
        return JSONResponse(content=HintResponse(hint=TTS_HINT).model_dump(), headers=TTS_CORS_HEADERS)

    @app.post(
        "/api/tts",
        responses={
            200: {"content": {"audio/mpeg": {}}, "description": "MP3 audio"},
            400: {"model": ErrorResponse, "description": "Missing text"},
            502: {"model": ErrorResponse, "description": "ElevenLabs error"},
        },
        summary="Synthesize speech",
    )
    async def tts(request: Request) -> Response:
        client = get_speech_client()
        try:
            client.ensure_configured()
        except SpeechError as e:
            return _error(e.status_code, str(e), headers=TTS_CORS_HEADERS)

        body = await _json_body(request)
        text = body.get("text")
        if not text or not isinstance(text, str):
            return _error(400, 'Missing "text" (string)', headers=TTS_CORS_HEADERS)

        try:
            audio = await run_in_threadpool(
                client.synthesize,
                text,
                body.get("voiceId"),
                body.get("voice"),
                body.get("model") or "eleven_monolingual_v1",
            )
        except SpeechProviderError as e:
            return _error(502, str(e), headers=TTS_CORS_HEADERS, details=e.details)
        except (SpeechError, requests.RequestException) as e:
            logger.error(f"TTS request failed: {e}", exc_info=True)
            return _error(500, "TTS request failed", headers=TTS_CORS_HEADERS, details=str(e))

        return Response(
            content=audio,
            media_type="audio/mpeg",
            headers={**TTS_CORS_HEADERS, "Cache-Control": "no-store"},
        )

    @app.api_route("/api/tts", methods=["PUT", "PATCH", "DELETE"], include_in_schema=False)
    async def tts_wrong_method() -> JSONResponse:
        return _error(405, "Method Not Allowed", headers=TTS_CORS_HEADERS)

    # ============================================================================
    # Error Handlers
    # ============================================================================

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """Global exception handler for unhandled errors."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="An unexpected error occurred.",
                code="server_error",
                details={"type": type(exc).__name__},
            ).model_dump(),
        )

    return app


load_env()
app = create_app()


# ============================================================================
# Main Entry Point
# ============================================================================


if __name__ == "__main__":
    import uvicorn

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    uvicorn.run(
        "src.faq_generation.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
