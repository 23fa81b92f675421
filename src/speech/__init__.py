"""Text-to-speech proxy for reading FAQ answers aloud.

Wraps the ElevenLabs streaming endpoint so browser widgets never see the
API key. Routes live in ``src.faq_generation.main`` under ``/api/tts``.
"""
