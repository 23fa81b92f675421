"""Testing helpers for integration runs against live services."""

from __future__ import annotations

import os

import pytest

from src.common.config import ConfigError, load_faq_service_settings

VERTEX_CREDENTIAL_HINTS = (
    "GOOGLE_APPLICATION_CREDENTIALS",
    "GOOGLE_CLOUD_PROJECT",
)


def require_live_services() -> None:
    """Skip the test unless live Vertex AI credentials are configured."""
    if os.getenv("RUN_LIVE_TESTS") != "1":
        pytest.skip("Set RUN_LIVE_TESTS=1 to enable live integration tests.")
    try:
        load_faq_service_settings()
    except ConfigError as exc:
        pytest.skip(f"Live integration tests require valid configuration: {exc}")
    if not any(os.getenv(env) for env in VERTEX_CREDENTIAL_HINTS):
        pytest.skip(
            "Provide Vertex AI credentials via GOOGLE_APPLICATION_CREDENTIALS or GOOGLE_CLOUD_PROJECT "
            "to run live integration tests."
        )


def require_env(*names: str) -> None:
    """Skip the test unless every named environment variable is set."""
    missing = [name for name in names if not os.getenv(name)]
    if missing:
        pytest.skip(f"Missing environment variables for live test: {', '.join(missing)}")
