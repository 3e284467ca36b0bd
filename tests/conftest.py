"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from omniview.config import reset_config
from omniview.logging import reset_logging

from tests.utils import FakeLoop

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)

_ENV_VARS = ("OV_LOG", "OV_STAGGER_DELAY", "OV_PROXY_PREFIX")


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from OV_* variables, cached config and log handlers."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()
    reset_logging()


@pytest.fixture
def fake_loop() -> FakeLoop:
    """Manually advanced event loop for deterministic timing."""
    return FakeLoop()
