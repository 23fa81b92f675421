"""Gemini client wrapper using google-genai SDK.

Uses response_mime_type="application/json" with the FAQ response_schema so
Gemini returns structured JSON. Invalid JSON and transient API errors are
retried (3 attempts, exponential backoff); quota and credential errors are
not.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Any, Dict, Optional

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.common.config import GeminiConfig, load_gemini_config
from src.faq_generation.models import get_faq_response_schema
from src.faq_generation.prompt_templates import FaqPrompt

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class GeminiClientError(Exception):
    """Base exception for Gemini client errors."""

    status_code = 502


class GeminiAPIError(GeminiClientError):
    """Non-retryable error from Gemini API call."""

    pass


class GeminiTransientError(GeminiAPIError):
    """5xx or connection-level error; retried."""

    pass


class GeminiQuotaError(GeminiAPIError):
    """Quota exhausted or rate limited."""

    status_code = 429


class GeminiAuthError(GeminiAPIError):
    """Credentials rejected."""

    status_code = 401


class GeminiParseError(GeminiClientError):
    """Error parsing Gemini response; retried."""

    pass


class GeminiTimeoutError(GeminiClientError):
    """Gemini call exceeded timeout."""

    status_code = 500


@dataclass
class GeminiResponse:
    """Structured response from a Gemini generation call."""

    raw_text: str
    parsed_json: Dict[str, Any]
    attempts: int = 1
    usage_metadata: Optional[Dict[str, Any]] = None


def parse_jsonish(text: str) -> Optional[Dict[str, Any]]:
    """Parse JSON, falling back to the outermost ``{...}`` slice.

    Returns None when neither parse yields a JSON object.
    """
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            parsed = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            return None
    return parsed if isinstance(parsed, dict) else None


def classify_api_error(error: Exception) -> GeminiAPIError:
    """Map an SDK exception onto the client's error taxonomy."""
    error_msg = str(error)
    lower = error_msg.lower()

    if "insufficient_quota" in lower or "resource_exhausted" in lower or "429" in error_msg or "quota" in lower:
        return GeminiQuotaError(f"Gemini quota exceeded: {error_msg}")
    if "401" in error_msg or "403" in error_msg or "api key" in lower or "permission" in lower or "unauthenticated" in lower:
        return GeminiAuthError(f"Gemini credentials rejected: {error_msg}")
    if any(code in error_msg for code in ["500", "502", "503", "504"]) or "unavailable" in lower:
        return GeminiTransientError(f"Transient error: {error_msg}")
    return GeminiAPIError(f"API error: {error_msg}")


class GeminiClient:
    """Client for calling Gemini via google-genai SDK.

    Handles:
    - Structured JSON output via response_mime_type and response_schema
    - Per-call timeout enforced with a worker thread
    - Retry of parse failures and transient API errors
    - Error classification for HTTP mapping upstream
    """

    retry_wait = wait_exponential(multiplier=0.5, min=0.5, max=4)

    def __init__(self, config: Optional[GeminiConfig] = None):
        """Initialize the Gemini client.

        Args:
            config: Gemini configuration. Loads from environment if not provided.
        """
        self.config = config or load_gemini_config()
        self.request_timeout_sec = self.config.request_timeout_sec
        self._client = None
        self._response_schema = get_faq_response_schema()
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="gemini-call")

    def _get_client(self):
        """Lazy-load the google-genai client."""
        if self._client is None:
            try:
                from google import genai
                from google.genai.types import HttpOptions

                self._client = genai.Client(
                    vertexai=True,
                    project=self.config.project,
                    location=self.config.location,
                    http_options=HttpOptions(api_version="v1"),
                )
            except ImportError as e:
                raise GeminiClientError(
                    "google-genai package not installed. Run: pip install google-genai"
                ) from e
            except Exception as e:
                raise GeminiClientError(f"Failed to initialize Gemini client: {e}") from e

        return self._client

    def _make_api_call(self, prompt: FaqPrompt) -> GeminiResponse:
        """Make one Gemini call and parse its JSON body.

        Raises:
            GeminiAPIError: If the API call fails (subclass tells the cause).
            GeminiParseError: If the response is not a JSON object.
        """
        client = self._get_client()

        try:
            from google.genai import types

            config = types.GenerateContentConfig(
                system_instruction=prompt.system,
                temperature=self.config.temperature,
                max_output_tokens=self.config.max_output_tokens,
                response_mime_type="application/json",
                response_schema=self._response_schema,
            )

            response = client.models.generate_content(
                model=self.config.model,
                contents=prompt.user,
                config=config,
            )
        except Exception as e:
            api_error = classify_api_error(e)
            logger.warning(f"Gemini call failed: {api_error}")
            raise api_error from e

        raw_text = response.text or ""
        parsed_json = parse_jsonish(raw_text)
        if parsed_json is None:
            raise GeminiParseError("Invalid JSON from model")

        usage_metadata = None
        if getattr(response, "usage_metadata", None):
            usage_metadata = {
                "prompt_token_count": getattr(response.usage_metadata, "prompt_token_count", None),
                "candidates_token_count": getattr(response.usage_metadata, "candidates_token_count", None),
                "total_token_count": getattr(response.usage_metadata, "total_token_count", None),
            }

        return GeminiResponse(raw_text=raw_text, parsed_json=parsed_json, usage_metadata=usage_metadata)

    def _call_with_timeout(self, prompt: FaqPrompt) -> GeminiResponse:
        future = self._executor.submit(self._make_api_call, prompt)
        try:
            return future.result(timeout=self.request_timeout_sec)
        except FuturesTimeoutError:
            # Cancel the future (won't stop the underlying request, but prevents resource leak)
            future.cancel()
            error_msg = f"Gemini request exceeded timeout of {self.request_timeout_sec}s"
            logger.warning(error_msg)
            raise GeminiTimeoutError(error_msg)

    def generate_faqs(self, prompt: FaqPrompt) -> GeminiResponse:
        """Call Gemini to generate an FAQ batch.

        Args:
            prompt: System and user messages.

        Returns:
            GeminiResponse with the parsed JSON object and attempt count.

        Raises:
            GeminiParseError: If all attempts returned invalid JSON.
            GeminiQuotaError / GeminiAuthError / GeminiAPIError: Provider failures.
            GeminiTimeoutError: If an attempt exceeds the timeout.
        """
        retrying = Retrying(
            retry=retry_if_exception_type((GeminiParseError, GeminiTransientError)),
            stop=stop_after_attempt(MAX_ATTEMPTS),
            wait=self.retry_wait,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                response = self._call_with_timeout(prompt)
                response.attempts = attempt.retry_state.attempt_number
        return response

    def get_model_info(self) -> Dict[str, Any]:
        """Return current model configuration for logging."""
        return {
            "model": self.config.model,
            "temperature": self.config.temperature,
            "max_output_tokens": self.config.max_output_tokens,
            "location": self.config.location,
        }
