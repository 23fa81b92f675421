import json

import pytest
import responses

from src.common.config import SpeechConfig
from src.speech.elevenlabs_client import (
    ElevenLabsClient,
    SpeechNotConfiguredError,
    SpeechProviderError,
)

DEFAULT_URL = "https://api.elevenlabs.io/v1/text-to-speech/voice-default/stream"


def make_client(**overrides) -> ElevenLabsClient:
    config = dict(api_key="xi-key", default_voice_id="voice-default", alt_voice_id="voice-alt")
    config.update(overrides)
    return ElevenLabsClient(config=SpeechConfig(**config))


def test_voice_resolution_order():
    client = make_client()

    assert client.resolve_voice("explicit", "alt") == "explicit"
    assert client.resolve_voice(None, "alt") == "voice-alt"
    assert client.resolve_voice(None, None) == "voice-default"
    assert make_client(alt_voice_id=None).resolve_voice(None, "alt") == "voice-default"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"api_key": None}, "ELEVENLABS_API_KEY is not set"),
        ({"default_voice_id": None}, "ELEVENLABS_DEFAULT_VOICE_ID is not set"),
    ],
)
def test_missing_configuration(overrides, message):
    with pytest.raises(SpeechNotConfiguredError, match=message):
        make_client(**overrides).synthesize("Hello")


@responses.activate
def test_synthesize_posts_text_and_voice_settings():
    responses.add(responses.POST, DEFAULT_URL, body=b"ID3audio", content_type="audio/mpeg")

    audio = make_client().synthesize("Hello there")

    assert audio == b"ID3audio"
    request = responses.calls[0].request
    assert request.headers["xi-api-key"] == "xi-key"
    assert "optimize_streaming_latency=2" in request.url
    body = json.loads(request.body)
    assert body["text"] == "Hello there"
    assert body["model_id"] == "eleven_monolingual_v1"
    assert body["voice_settings"]["stability"] == 0.4
    assert body["voice_settings"]["use_speaker_boost"] is True


@responses.activate
def test_upstream_error_truncates_details():
    responses.add(responses.POST, DEFAULT_URL, status=422, body="e" * 1000)

    with pytest.raises(SpeechProviderError) as exc_info:
        make_client().synthesize("Hello")

    assert exc_info.value.upstream_status == 422
    assert len(exc_info.value.details) == 600
    assert str(exc_info.value) == "ElevenLabs 422"
