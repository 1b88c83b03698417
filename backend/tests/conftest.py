"""Shared test fixtures and configuration."""
import os

import pytest

# Settings are read from the environment on first access; modules that build
# the app at import time need a backend URL before they are imported
os.environ.setdefault("API_BASE_URL", "http://backend.test/api")
# Sessions stay in process memory unless a test opts into Redis
os.environ["REDIS_URL"] = ""

from fake_backend import FakeBackend  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
