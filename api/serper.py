"""Serper (Google Search) API integration.

Implements the two search flavours the tools need:
- Batched web search over many keywords (one request per 100 keywords)
- Reddit discovery via ``site:reddit.com`` queries with an optional date floor
"""

import logging
import re
import time
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import httpx

from core.concurrency import chunked, pmap
from core.config import SEARCH, SERVER, parse_env
from core.errors import MissingCredentialsError, UpstreamResponseError
from core.reliability import resilient_api_call
from models.results import (
    KeywordSearchResult,
    MultipleSearchResponse,
    RedditSearchResult,
    SearchResult,
)

DEFAULT_TIMEOUT = 30.0
BASE_URL = "https://google.serper.dev"
REDDIT_QUERY_CONCURRENCY = 10

logger = logging.getLogger(__name__)

_REDDIT_TITLE_SUFFIX = re.compile(r"\s*(?::\s*r/[\w-]+|-\s*Reddit)\s*$", re.IGNORECASE)
_REDDIT_POST_URL = re.compile(r"reddit\.com/r/[^/]+/comments/", re.IGNORECASE)


def _build_payload(query: str, num_results: int = 10, tbs: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"q": query, "num": min(max(num_results, 1), 100)}
    if tbs:
        payload["tbs"] = tbs
    return payload


def _date_filter(date_after: Optional[str]) -> Optional[str]:
    """Turn ``YYYY-MM-DD`` into Google's custom date range ``tbs`` value."""
    if not date_after:
        return None
    try:
        parsed = date.fromisoformat(date_after)
    except ValueError:
        logger.warning(f"Ignoring invalid date_after={date_after!r}")
        return None
    return f"cdr:1,cd_min:{parsed.month}/{parsed.day}/{parsed.year}"


def _parse_search(keyword: str, data: Dict[str, Any]) -> KeywordSearchResult:
    results: List[SearchResult] = []
    for index, item in enumerate(data.get("organic", []) or []):
        link = item.get("link")
        if not link:
            continue
        results.append(
            SearchResult(
                title=item.get("title", "Untitled"),
                link=link,
                snippet=item.get("snippet", ""),
                position=item.get("position") or index + 1,
                date=item.get("date"),
            )
        )

    related = [r.get("query", "") for r in data.get("relatedSearches", []) or [] if r.get("query")]
    info = data.get("searchInformation") or {}
    total = info.get("totalResults")
    try:
        total_results = int(total) if total is not None else len(results)
    except (TypeError, ValueError):
        total_results = len(results)

    return KeywordSearchResult(
        keyword=keyword,
        results=results,
        total_results=total_results,
        related=related,
    )


def clean_reddit_title(title: str) -> str:
    return _REDDIT_TITLE_SUFFIX.sub("", title or "").strip()


class SearchClient:
    """Serper client; construct once per tool invocation."""

    def __init__(self, api_key: Optional[str] = None, retry_delays: Sequence[float] = SEARCH.retry_delays):
        self.api_key = api_key or parse_env().serper_api_key
        if not self.api_key:
            raise MissingCredentialsError("SERPER_API_KEY")
        self.retry_delays = tuple(retry_delays)

    def _headers(self) -> Dict[str, str]:
        return {
            "X-API-KEY": self.api_key,
            "Content-Type": "application/json",
            "User-Agent": SERVER.user_agent,
        }

    async def _post(self, client: httpx.AsyncClient, payload: Any) -> Any:
        response = await client.post(f"{BASE_URL}/search", headers=self._headers(), json=payload)
        response.raise_for_status()
        return response.json()

    async def search_multiple(self, keywords: Sequence[str], num_results: int = 10) -> MultipleSearchResponse:
        """Search every keyword, batching up to 100 queries per request.

        Raises on upstream failure after retries; callers turn that into a
        structured error.
        """
        start = time.monotonic()
        searches: List[KeywordSearchResult] = []

        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
            for batch in chunked(list(keywords), SEARCH.serper_batch_size):
                payload = [_build_payload(k, num_results) for k in batch]
                data = await resilient_api_call(
                    self._post, client, payload, delays=self.retry_delays
                )
                if isinstance(data, dict):
                    data = [data]
                if not isinstance(data, list) or len(data) != len(batch):
                    raise UpstreamResponseError(
                        "Serper",
                        f"expected {len(batch)} batch results, got "
                        f"{len(data) if isinstance(data, list) else type(data).__name__}",
                    )
                searches.extend(_parse_search(k, d or {}) for k, d in zip(batch, data))

        elapsed = int((time.monotonic() - start) * 1000)
        logger.info(f"Serper: {len(searches)} searches in {elapsed}ms")
        return MultipleSearchResponse(
            searches=searches,
            total_keywords=len(keywords),
            execution_time_ms=elapsed,
        )

    async def search_reddit(
        self,
        client: httpx.AsyncClient,
        query: str,
        date_after: Optional[str] = None,
        num_results: int = 10,
    ) -> List[RedditSearchResult]:
        """Find Reddit threads for one query via Google."""
        payload = _build_payload(f"{query} site:reddit.com", num_results, _date_filter(date_after))
        data = await resilient_api_call(self._post, client, payload, delays=self.retry_delays)

        results: List[RedditSearchResult] = []
        seen: set = set()
        for item in data.get("organic", []) or []:
            link = item.get("link") or ""
            if not _REDDIT_POST_URL.search(link) or link in seen:
                continue
            seen.add(link)
            results.append(
                RedditSearchResult(
                    title=clean_reddit_title(item.get("title", "")),
                    url=link,
                    snippet=item.get("snippet", ""),
                    date=item.get("date"),
                )
            )
        return results

    async def search_reddit_multiple(
        self, queries: Sequence[str], date_after: Optional[str] = None
    ) -> Dict[str, List[RedditSearchResult]]:
        """Run Reddit searches in parallel; a failed query yields no results."""
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:

            async def run(query: str, index: int) -> List[RedditSearchResult]:
                try:
                    return await self.search_reddit(client, query, date_after)
                except (httpx.HTTPError, UpstreamResponseError, ValueError) as e:
                    logger.warning(f"Serper Reddit query {index + 1} failed: {e}")
                    return []

            found = await pmap(list(queries), run, REDDIT_QUERY_CONCURRENCY)

        return dict(zip(queries, found))
