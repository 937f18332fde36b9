"""
Pytest fixtures and test configuration for paygate tests.
"""

import os
from unittest.mock import AsyncMock

import pytest

from paygate.config import Settings, get_settings

RECIPIENT = "0x49e0329808559a9aa742a3cf01cec9b773a53834"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep X402_* variables from the host out of the settings under test."""
    for name in list(os.environ):
        if name.startswith("X402_"):
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return Settings(_env_file=None, recipient=RECIPIENT)


@pytest.fixture
def payment_config(settings):
    return settings.payment_defaults()


@pytest.fixture
def fake_sleep():
    """Virtual clock: records requested delays without waiting."""
    return AsyncMock(return_value=None)
