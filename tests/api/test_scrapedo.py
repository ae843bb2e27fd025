"""Unit tests for api/scrapedo.py module."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from api.scrapedo import ScraperClient
from core.errors import MissingCredentialsError


class TestScraperClient:
    """Test suite for ScraperClient."""

    def test_requires_api_key(self):
        with pytest.raises(MissingCredentialsError):
            ScraperClient()

    @pytest.mark.asyncio
    async def test_basic_success(self, api_keys, fake_response):
        response = fake_response(text="<h1>Hi</h1>", headers={"Scrape.do-Request-Cost": "5"})
        with patch("httpx.AsyncClient") as mock_client:
            get = AsyncMock(return_value=response)
            mock_client.return_value.__aenter__.return_value.get = get
            result = await ScraperClient().scrape("https://example.com", timeout=20)

        params = get.await_args.kwargs["params"]
        assert params["token"] == "scrapedo_key"
        assert params["url"] == "https://example.com"
        assert params["timeout"] == "20000"
        assert "render" not in params
        assert result.ok
        assert result.content == "<h1>Hi</h1>"
        assert result.credits == 5
        assert result.mode == "basic"

    @pytest.mark.asyncio
    async def test_default_credit_cost(self, api_keys, fake_response):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=fake_response(text="ok")
            )
            result = await ScraperClient().scrape("https://example.com")
        assert result.credits == 1

    @pytest.mark.asyncio
    async def test_escalates_on_block(self, api_keys, fake_response):
        responses = [fake_response(403), fake_response(403), fake_response(text="finally")]
        with patch("httpx.AsyncClient") as mock_client:
            get = AsyncMock(side_effect=responses)
            mock_client.return_value.__aenter__.return_value.get = get
            result = await ScraperClient().scrape("https://example.com")

        modes = [call.kwargs["params"] for call in get.await_args_list]
        assert "render" not in modes[0]
        assert modes[1]["render"] == "true" and "super" not in modes[1]
        assert modes[2]["super"] == "true"
        assert result.ok
        assert result.mode == "super"

    @pytest.mark.asyncio
    async def test_server_errors_retried_then_escalated(self, api_keys, fake_response, no_sleep):
        responses = [fake_response(502)] * 4 + [fake_response(text="rendered")]
        with patch("httpx.AsyncClient") as mock_client:
            get = AsyncMock(side_effect=responses)
            mock_client.return_value.__aenter__.return_value.get = get
            result = await ScraperClient().scrape("https://example.com")

        assert get.await_count == 5
        assert [c.args[0] for c in no_sleep.await_args_list] == [2.0, 4.0, 8.0]
        assert result.mode == "render"
        assert result.ok

    @pytest.mark.asyncio
    async def test_not_found_is_final(self, api_keys, fake_response):
        with patch("httpx.AsyncClient") as mock_client:
            get = AsyncMock(return_value=fake_response(404))
            mock_client.return_value.__aenter__.return_value.get = get
            result = await ScraperClient().scrape("https://example.com/missing")

        assert get.await_count == 1
        assert not result.ok
        assert result.status_code == 404
        assert "404" in result.error

    @pytest.mark.asyncio
    async def test_never_raises_on_network_error(self, api_keys):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=httpx.ConnectError("refused")
            )
            result = await ScraperClient(retry_delays=()).scrape("https://example.com")

        assert not result.ok
        assert "Network error" in result.error

    @pytest.mark.asyncio
    async def test_scrape_multiple_keeps_order(self, api_keys, fake_response):
        async def fake_get(url, params):
            return fake_response(text=f"page {params['url']}")

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(side_effect=fake_get)
            urls = [f"https://example.com/{i}" for i in range(35)]
            results = await ScraperClient().scrape_multiple(urls)

        assert [r.url for r in results] == urls
        assert results[34].content == "page https://example.com/34"
