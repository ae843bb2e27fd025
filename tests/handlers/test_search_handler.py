"""Tests for the web_search handler."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from handlers.search import handle_web_search
from models import WebSearchInput
from models.results import KeywordSearchResult, MultipleSearchResponse, SearchResult


def _response(keyword_links):
    searches = [
        KeywordSearchResult(
            keyword=keyword,
            results=[
                SearchResult(title=f"Page {link}", link=link, snippet="x" * 200, position=i)
                for i, link in enumerate(links, start=1)
            ],
            related=["alt one", "alt two"],
        )
        for keyword, links in keyword_links
    ]
    return MultipleSearchResponse(searches=searches, total_keywords=len(searches), execution_time_ms=5)


@pytest.fixture
def search_client():
    with patch("handlers.search.SearchClient") as client_cls:
        yield client_cls.return_value


class TestHandleWebSearch:
    """Test suite for handle_web_search."""

    @pytest.mark.asyncio
    async def test_no_keywords(self):
        response = await handle_web_search(WebSearchInput(keywords=[]))
        assert response.is_error
        assert "`NO_KEYWORDS`" in response.content

    @pytest.mark.asyncio
    async def test_too_many_keywords(self):
        response = await handle_web_search(WebSearchInput(keywords=[f"k{i}" for i in range(101)]))
        assert response.is_error
        assert "`MAX_KEYWORDS`" in response.content
        assert "1 too many" in response.content

    @pytest.mark.asyncio
    async def test_consensus_report(self, search_client):
        search_client.search_multiple = AsyncMock(
            return_value=_response(
                [
                    ("a", ["https://x.com", "https://y.com"]),
                    ("b", ["https://x.com", "https://z.com"]),
                    ("c", ["https://x.com"]),
                ]
            )
        )
        response = await handle_web_search(WebSearchInput(keywords=["a", "b", "c"]))

        assert not response.is_error
        assert "## The Perfect Search Results (Aggregated from 3 Queries)" in response.content
        assert "## 📊 Full Search Results by Query" in response.content
        assert "Consensus: ✓✓✓ (3 searches)" in response.content
        assert "Consensus: ✓ (1 search)" in response.content
        assert "*Related:* `alt one`, `alt two`" in response.content
        assert 'scrape_links(urls=["https://x.com"' in response.content
        assert response.metadata["total_keywords"] == 3
        assert response.metadata["total_results"] == 5
        assert response.metadata["total_unique_urls"] == 3
        assert response.metadata["frequency_threshold"] == 1

    @pytest.mark.asyncio
    async def test_snippets_truncated(self, search_client):
        search_client.search_multiple = AsyncMock(return_value=_response([("a", ["https://x.com"])]))
        response = await handle_web_search(WebSearchInput(keywords=["a"]))
        assert "   - " + "x" * 147 + "...\n" in response.content

    @pytest.mark.asyncio
    async def test_many_queries_limited(self, search_client):
        pairs = [(f"k{i}", [f"https://site{i}.com/{j}" for j in range(10)]) for i in range(20)]
        search_client.search_multiple = AsyncMock(return_value=_response(pairs))
        response = await handle_web_search(WebSearchInput(keywords=[p[0] for p in pairs]))

        assert "(showing 15 of 20)" in response.content
        assert "5 additional queries not shown" in response.content
        # >10 keywords shows 5 results per query
        assert response.metadata["total_results"] == 75

    @pytest.mark.asyncio
    async def test_upstream_failure_is_structured(self, search_client):
        request = httpx.Request("POST", "https://google.serper.dev/search")
        error = httpx.HTTPStatusError(
            "boom", request=request, response=httpx.Response(429, request=request)
        )
        search_client.search_multiple = AsyncMock(side_effect=error)
        response = await handle_web_search(WebSearchInput(keywords=["a"]))

        assert response.is_error
        assert "`RATE_LIMITED`" in response.content
        assert "Retryable" in response.content
        assert response.metadata["error_code"] == "RATE_LIMITED"

    @pytest.mark.asyncio
    async def test_missing_key_is_structured(self):
        response = await handle_web_search(WebSearchInput(keywords=["a"]))
        assert response.is_error
        assert "`CONFIGURATION_ERROR`" in response.content
