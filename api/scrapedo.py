"""Scrape.do API integration.

Fetches pages through Scrape.do's proxy network. Requests start in basic
mode and escalate to JavaScript rendering, then residential proxies, when a
site blocks or keeps failing. ``scrape`` never raises: every outcome,
including exhausted retries, comes back as a ``ScrapeResult``.
"""

import logging
import time
from typing import Dict, List, Optional, Sequence

import httpx

from core.concurrency import chunked, pmap
from core.config import SCRAPER, parse_env
from core.errors import MissingCredentialsError, classify_error
from core.reliability import resilient_api_call
from models.config import ScrapeMode
from models.results import ScrapeResult

BASE_URL = "https://api.scrape.do/"
COST_HEADER = "Scrape.do-Request-Cost"

logger = logging.getLogger(__name__)

_MODE_PARAMS: Dict[ScrapeMode, Dict[str, str]] = {
    ScrapeMode.BASIC: {},
    ScrapeMode.RENDER: {"render": "true"},
    ScrapeMode.SUPER: {"render": "true", "super": "true"},
}

ESCALATION = (ScrapeMode.BASIC, ScrapeMode.RENDER, ScrapeMode.SUPER)


def _should_escalate(status_code: int) -> bool:
    return status_code in (401, 403) or status_code >= 500


def _parse_credits(response: httpx.Response) -> int:
    raw = response.headers.get(COST_HEADER)
    if raw is None:
        return 1
    try:
        return int(float(raw))
    except ValueError:
        return 1


class ScraperClient:
    """Scrape.do client with mode escalation and retry."""

    def __init__(self, api_key: Optional[str] = None, retry_delays: Sequence[float] = SCRAPER.retry_delays):
        self.api_key = api_key or parse_env().scrapedo_api_key
        if not self.api_key:
            raise MissingCredentialsError("SCRAPEDO_API_KEY")
        self.retry_delays = tuple(retry_delays)

    def _params(self, url: str, mode: ScrapeMode, timeout: int) -> Dict[str, str]:
        params = {"token": self.api_key, "url": url, "timeout": str(timeout * 1000)}
        params.update(_MODE_PARAMS[mode])
        return params

    async def _fetch(self, client: httpx.AsyncClient, url: str, mode: ScrapeMode, timeout: int) -> httpx.Response:
        response = await client.get(BASE_URL, params=self._params(url, mode, timeout))
        if response.status_code == 429 or response.status_code >= 500:
            # Let the retry loop see these as retryable
            response.raise_for_status()
        return response

    async def scrape(self, url: str, timeout: int = SCRAPER.default_timeout) -> ScrapeResult:
        """Scrape one URL, escalating modes on blocks and server errors."""
        last = ScrapeResult(url=url, error="Not attempted")

        async with httpx.AsyncClient(timeout=timeout + 15) as client:
            for mode in ESCALATION:
                try:
                    response = await resilient_api_call(
                        self._fetch, client, url, mode, timeout, delays=self.retry_delays
                    )
                except Exception as e:
                    structured = classify_error(e)
                    last = ScrapeResult(
                        url=url,
                        status_code=structured.status_code or 0,
                        error=structured.message,
                        mode=mode.value,
                    )
                    if structured.status_code and _should_escalate(structured.status_code):
                        logger.info(f"Scrape.do {mode.value} failed for {url}, escalating")
                        continue
                    return last

                if response.is_success:
                    return ScrapeResult(
                        url=url,
                        content=response.text,
                        status_code=response.status_code,
                        credits=_parse_credits(response),
                        mode=mode.value,
                    )

                last = ScrapeResult(
                    url=url,
                    status_code=response.status_code,
                    error=f"HTTP {response.status_code}: {response.reason_phrase}",
                    mode=mode.value,
                )
                if not _should_escalate(response.status_code):
                    return last
                logger.info(f"Scrape.do {mode.value} got HTTP {response.status_code} for {url}, escalating")

        return last

    async def scrape_multiple(self, urls: Sequence[str], timeout: int = SCRAPER.default_timeout) -> List[ScrapeResult]:
        """Scrape URLs in batches; results keep input order."""
        start = time.monotonic()
        results: List[ScrapeResult] = []

        async def run(url: str, index: int) -> ScrapeResult:
            return await self.scrape(url, timeout)

        for batch in chunked(list(urls), SCRAPER.batch_size):
            results.extend(await pmap(batch, run, SCRAPER.max_concurrent))

        ok = sum(1 for r in results if r.ok)
        logger.info(
            f"Scrape.do: {ok}/{len(results)} succeeded in {int((time.monotonic() - start) * 1000)}ms"
        )
        return results
