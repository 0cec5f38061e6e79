"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

TEST_API_KEY = "AIzaSyTestTestTestTestTestTestTestTest123"
TEST_URL = "https://gcm.example.com/gcm/send"


@pytest.fixture
def api_key() -> str:
    """Server API key used by sender tests."""
    return TEST_API_KEY


@pytest.fixture
def endpoint_url() -> str:
    """Endpoint URL used by sender tests."""
    return TEST_URL


@pytest.fixture
def multicast_reply() -> dict[str, object]:
    """Reply for a three-recipient message with one canonical id and two errors."""
    return {
        "multicast_id": 216,
        "success": 1,
        "failure": 2,
        "canonical_ids": 1,
        "results": [
            {"message_id": "0:1", "registration_id": "canonical-a"},
            {"error": "NotRegistered"},
            {"error": "Unavailable"},
        ],
    }


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]:
    """Build an httpx client whose requests are answered by a handler."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(handler))

    return factory
