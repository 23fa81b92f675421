"""ElevenLabs text-to-speech client."""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from src.common.config import SpeechConfig, load_speech_config
from src.common.logging import get_logger

logger = get_logger(__name__)

ELEVENLABS_TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}/stream"
DEFAULT_MODEL = "eleven_monolingual_v1"
MAX_ERROR_DETAIL_CHARS = 600

VOICE_SETTINGS: Dict[str, Any] = {
    "stability": 0.4,
    "similarity_boost": 0.8,
    "style": 0.0,
    "use_speaker_boost": True,
}


class SpeechError(Exception):
    """Base exception for speech synthesis failures."""

    status_code = 500


class SpeechNotConfiguredError(SpeechError):
    """API key or default voice is missing."""


class SpeechProviderError(SpeechError):
    """ElevenLabs answered with a non-2xx status."""

    status_code = 502

    def __init__(self, upstream_status: int, details: str = ""):
        self.upstream_status = upstream_status
        self.details = (details or "")[:MAX_ERROR_DETAIL_CHARS]
        super().__init__(f"ElevenLabs {upstream_status}")


class ElevenLabsClient:
    """Synthesizes speech as MP3 bytes.

    Usage:
        client = ElevenLabsClient()
        audio = client.synthesize("Orders ship within two days.", voice="alt")
    """

    def __init__(
        self,
        config: Optional[SpeechConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or load_speech_config()
        self.session = session or requests.Session()

    def ensure_configured(self) -> None:
        """Raise SpeechNotConfiguredError naming the first missing setting."""
        if not self.config.api_key:
            raise SpeechNotConfiguredError("ELEVENLABS_API_KEY is not set")
        if not self.config.default_voice_id:
            raise SpeechNotConfiguredError("ELEVENLABS_DEFAULT_VOICE_ID is not set")

    def resolve_voice(self, voice_id: Optional[str] = None, voice: Optional[str] = None) -> str:
        """Explicit id wins, then the ``"alt"`` voice when configured, then the default."""
        if voice_id:
            return voice_id
        if voice == "alt" and self.config.alt_voice_id:
            return self.config.alt_voice_id
        return self.config.default_voice_id or ""

    def synthesize(
        self,
        text: str,
        voice_id: Optional[str] = None,
        voice: Optional[str] = None,
        model: str = DEFAULT_MODEL,
    ) -> bytes:
        """Return MP3 audio for ``text``.

        Raises:
            SpeechNotConfiguredError: Key or default voice missing.
            SpeechProviderError: Upstream returned a non-2xx status.
            requests.RequestException: Transport failure.
        """
        self.ensure_configured()
        resolved = self.resolve_voice(voice_id, voice)

        response = self.session.post(
            ELEVENLABS_TTS_URL.format(voice_id=resolved),
            params={"optimize_streaming_latency": 2},
            headers={"xi-api-key": self.config.api_key, "Content-Type": "application/json"},
            json={"text": text, "model_id": model or DEFAULT_MODEL, "voice_settings": VOICE_SETTINGS},
            timeout=self.config.timeout_sec,
        )
        if not response.ok:
            logger.warning(
                "ElevenLabs request failed",
                extra={"status": response.status_code, "voice_id": resolved},
            )
            raise SpeechProviderError(response.status_code, response.text)

        logger.info(
            "Synthesized speech",
            extra={"voice_id": resolved, "model": model, "chars": len(text), "bytes": len(response.content)},
        )
        return response.content
