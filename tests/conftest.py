"""Shared test fixtures for the auto-replier test suite."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    ``auto_replier.config`` resolves required values at import time, so
    these must exist before any test module imports the package.
    """
    os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key-123")
    os.environ.setdefault("VONAGE_WHATSAPP_NUMBER", "+14157386102")
    os.environ.setdefault("VONAGE_API_KEY", "test-vonage-key")
    os.environ.setdefault("VONAGE_API_SECRET", "test-vonage-secret")
    os.environ["METRICS_ENABLED"] = "false"


@pytest.fixture
def mock_http_response():
    """Factory fixture for fake ``httpx.Response`` objects."""

    def _make(data: dict | None, status_code: int = 202):
        mock = MagicMock()
        mock.status_code = status_code
        if data is None:
            mock.json.side_effect = ValueError("no JSON body")
            mock.text = ""
        else:
            mock.json.return_value = data
            mock.text = str(data)
        return mock

    return _make


@pytest.fixture
def knowledge_base() -> dict:
    return {
        "company": {"name": "Athens Day Cruise"},
        "packages": [
            {"name": "Standard Cruise", "price_eur": 119},
            {"name": "VIP Luxury Cruise", "price_eur": 235, "transfers_included": True},
        ],
    }
