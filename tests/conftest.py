"""Pytest configuration and shared fixtures.

Automatically loads .env file for all tests, ensuring environment variables
are available for both unit tests (with mocks) and integration tests (with
real credentials).
"""

from src.common.env import load_env

load_env(verbose=False)
