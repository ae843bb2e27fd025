"""Shared fixtures: isolated environment, instant retries, fake HTTP responses."""

from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

API_ENV_VARS = (
    "SERPER_API_KEY",
    "SCRAPEDO_API_KEY",
    "REDDIT_CLIENT_ID",
    "REDDIT_CLIENT_SECRET",
    "OPENROUTER_API_KEY",
    "OPENROUTER_BASE_URL",
    "RESEARCH_MODEL",
    "RESEARCH_FALLBACK_MODEL",
    "API_TIMEOUT_MS",
    "DEFAULT_REASONING_EFFORT",
    "DEFAULT_MAX_URLS",
    "LLM_EXTRACTION_MODEL",
    "LLM_ENABLE_REASONING",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without credentials, whatever the developer's .env holds."""
    for name in API_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def api_keys(monkeypatch):
    """Configure every upstream credential."""
    monkeypatch.setenv("SERPER_API_KEY", "serper_key")
    monkeypatch.setenv("SCRAPEDO_API_KEY", "scrapedo_key")
    monkeypatch.setenv("REDDIT_CLIENT_ID", "reddit_id")
    monkeypatch.setenv("REDDIT_CLIENT_SECRET", "reddit_secret")
    monkeypatch.setenv("OPENROUTER_API_KEY", "openrouter_key")


@pytest.fixture(autouse=True)
def no_sleep():
    """Make retry backoff instantaneous; the mock records requested delays."""
    with patch("core.reliability.asyncio") as mock_asyncio:
        mock_asyncio.sleep = AsyncMock()
        yield mock_asyncio.sleep


def make_response(
    status_code: int = 200,
    json_data: Any = None,
    text: str = "",
    headers: Optional[Dict[str, str]] = None,
    url: str = "https://example.com",
) -> MagicMock:
    """Build a mock httpx response whose raise_for_status mirrors httpx."""
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.reason_phrase = "OK" if response.is_success else "Error"
    response.text = text
    response.headers = headers or {}
    response.json.return_value = json_data

    if response.is_success:
        response.raise_for_status = MagicMock()
    else:
        real = httpx.Response(status_code, request=httpx.Request("GET", url))
        response.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError(
                f"HTTP {status_code}", request=real.request, response=real
            )
        )
    return response


@pytest.fixture
def fake_response():
    """Factory fixture for mock httpx responses."""
    return make_response
