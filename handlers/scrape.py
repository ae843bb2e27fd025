"""scrape_links handler: scrape, clean, optionally LLM-extract."""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse

from api.openrouter import create_llm_processor, process_content_with_llm
from api.scrapedo import ScraperClient
from core.budget import calculate_token_allocation
from core.concurrency import pmap
from core.config import SCRAPER, TOKEN_BUDGETS
from core.errors import classify_error
from models import ScrapeLinksInput
from models.results import ToolResponse
from utils.formatting import format_batch_header, format_duration, format_error, format_success
from utils.markdown import MarkdownCleaner, remove_meta_tags

logger = logging.getLogger(__name__)

markdown_cleaner = MarkdownCleaner()

DEFAULT_INSTRUCTION = "Extract the main content and key information from this page."


@dataclass
class _Page:
    url: str
    content: str


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        # e.g. unbalanced IPv6 brackets
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _clean_page(url: str, content: str) -> str:
    try:
        return markdown_cleaner.process_content(content)
    except Exception as e:
        logger.warning(f"Markdown cleaning failed for {url}, using raw content: {e}")
        return content


def _strip_meta(url: str, content: str) -> str:
    try:
        return remove_meta_tags(content)
    except Exception as e:
        logger.warning(f"Meta tag removal failed for {url}: {e}")
        return content


def enhance_extraction_instruction(instruction: Optional[str]) -> str:
    return (
        f"{SCRAPER.extraction_prefix}\n\n{instruction or DEFAULT_INSTRUCTION}\n\n"
        f"{SCRAPER.extraction_suffix}"
    )


def _error_response(
    params: ScrapeLinksInput,
    start: float,
    code: str,
    message: str,
    alternatives: Optional[List[str]] = None,
    how_to_fix: Optional[List[str]] = None,
) -> ToolResponse:
    total = len(params.urls)
    return ToolResponse(
        content=format_error(
            code,
            message,
            tool_name="scrape_links",
            how_to_fix=how_to_fix,
            alternatives=alternatives,
        ),
        metadata={
            "total_urls": total,
            "successful": 0,
            "failed": total,
            "total_credits": 0,
            "execution_time_ms": int((time.monotonic() - start) * 1000),
        },
        is_error=True,
    )


async def handle_scrape_links(params: ScrapeLinksInput) -> ToolResponse:
    """Scrape URLs into token-budgeted markdown. Never raises."""
    start = time.monotonic()

    if not params.urls:
        return _error_response(
            params,
            start,
            "NO_URLS",
            "You called scrape_links with an empty URL list. You need at least 1 URL to scrape.",
            how_to_fix=["Provide at least one valid URL"],
            alternatives=[
                'web_search(keywords=["topic documentation", "topic guide"]) — search for URLs '
                "first, then pass the results to scrape_links",
                'search_reddit(queries=["topic recommendations"]) — find discussions with links to scrape',
            ],
        )

    if len(params.urls) > SCRAPER.max_urls:
        excess = len(params.urls) - SCRAPER.max_urls
        return _error_response(
            params,
            start,
            "MAX_URLS",
            f"You sent {len(params.urls)} URLs but the maximum is {SCRAPER.max_urls} per call. "
            f"You have {excess} too many.",
            how_to_fix=[
                f"Split into {-(-len(params.urls) // SCRAPER.max_urls)} calls of at most "
                f"{SCRAPER.max_urls} URLs each",
                f"Or drop the {excess} least relevant URLs and call scrape_links again",
            ],
        )

    valid_urls = [u for u in params.urls if is_valid_url(u)]
    invalid_urls = [u for u in params.urls if not is_valid_url(u)]

    if not valid_urls:
        return _error_response(
            params,
            start,
            "INVALID_URLS",
            f"All {len(params.urls)} URL(s) failed validation — none are valid HTTP/HTTPS URLs. "
            "Check for typos, missing protocols (https://), or malformed paths.",
            alternatives=[
                'Fix the URLs: ensure each starts with "https://" and is complete '
                '(e.g., "https://example.com/page" not "example.com/page")',
                'web_search(keywords=["topic documentation", "topic guide"]) — if you don\'t have '
                "valid URLs, search for them first",
            ],
        )

    tokens_per_url = calculate_token_allocation(len(valid_urls), TOKEN_BUDGETS.scraper)
    total_batches = -(-len(valid_urls) // SCRAPER.batch_size)
    logger.info(
        f"Starting scrape: {len(valid_urls)} URL(s), {tokens_per_url} tokens/URL, "
        f"{total_batches} batch(es)"
    )

    try:
        client = ScraperClient()
    except Exception as e:
        error = classify_error(e)
        return _error_response(
            params,
            start,
            "CLIENT_INIT_FAILED",
            f"Scraper client failed to initialize: {error.message}. This usually means "
            "SCRAPEDO_API_KEY is missing or invalid.",
            alternatives=[
                "Set SCRAPEDO_API_KEY in your environment — get a free key at https://scrape.do "
                "(1,000 free credits)",
                'web_search(keywords=["topic key findings", "topic overview"]) — search instead '
                "of scraping (uses Serper, a different service)",
                'deep_research(questions=[{question: "Summarize key findings about [topic]"}]) — '
                "AI research via OpenRouter",
            ],
        )

    try:
        llm_processor = create_llm_processor() if params.use_llm else None
        instruction = enhance_extraction_instruction(params.what_to_extract) if params.use_llm else None

        results = await client.scrape_multiple(valid_urls, params.timeout)
        logger.info(f"Scraping complete. Processing {len(results)} results...")

        successful = 0
        failed = 0
        total_credits = 0
        llm_errors = 0
        contents: List[str] = []

        for url in invalid_urls:
            failed += 1
            contents.append(f"## {url}\n\n❌ Invalid URL format")

        # Pass 1: clean markdown, count credits
        pages: List[_Page] = []
        for index, result in enumerate(results, start=1):
            if not result.ok:
                failed += 1
                message = result.error or f"HTTP {result.status_code}"
                contents.append(f"## {result.url}\n\n❌ Failed to scrape: {message}")
                logger.warning(f"[{index}/{len(results)}] Failed: {message}")
                continue

            successful += 1
            total_credits += result.credits
            pages.append(_Page(result.url, _clean_page(result.url, result.content)))

        # Pass 2: LLM extraction, falling back to cleaned content
        if llm_processor is not None and pages:
            logger.info(
                f"Starting parallel LLM extraction for {len(pages)} pages "
                f"(concurrency: {SCRAPER.llm_concurrency})"
            )

            async def extract(page: _Page, index: int) -> _Page:
                nonlocal llm_errors
                llm_result = await process_content_with_llm(
                    page.content, instruction, tokens_per_url, llm_processor, params.model
                )
                if llm_result.processed:
                    return _Page(page.url, llm_result.content)
                llm_errors += 1
                logger.warning(
                    f"LLM extraction skipped for {page.url}: {llm_result.error or 'unknown reason'}"
                )
                return page

            pages = await pmap(pages, extract, SCRAPER.llm_concurrency)

        # Pass 3: final assembly
        for page in pages:
            contents.append(f"## {page.url}\n\n{_strip_meta(page.url, page.content)}")

        elapsed = int((time.monotonic() - start) * 1000)
        logger.info(
            f"Completed: {successful} successful, {failed} failed, {total_credits} credits used"
        )

        extras = {"Credits used": total_credits}
        if llm_errors:
            extras["LLM extraction failures"] = llm_errors
        header = format_batch_header(
            f"Scraped Content ({len(params.urls)} URLs)",
            total_items=len(params.urls),
            successful=successful,
            failed=failed,
            tokens_per_item=tokens_per_url,
            batches=total_batches,
            extras=extras,
        )

        next_steps: List[str] = []
        if successful:
            next_steps += [
                "FOLLOW THE TRAIL: If the content above references other URLs, docs, or repos, "
                "scrape those too: scrape_links(urls=[...referenced URLs...], use_llm=true)",
                "VERIFY CLAIMS: The content may be outdated, marketing, or biased. Cross-check: "
                'web_search(keywords=["specific claim from above", "topic official documentation"])',
                'GET REAL-WORLD EXPERIENCE: search_reddit(queries=["topic experiences", "topic '
                'problems", "topic vs alternatives"]) — docs say what something IS, Reddit says '
                "how it WORKS IN PRACTICE",
                'ONLY THEN SYNTHESIZE: deep_research(questions=[{question: "Based on scraped primary '
                'sources and community validation..."}])',
            ]
        if failed:
            next_steps.append(
                f"RETRY FAILURES: {failed} URL(s) failed. Retry with a longer timeout: "
                "scrape_links(urls=[...failed URLs...], timeout=90). If still failing, the site may "
                "block scrapers — try web_search for cached or mirrored versions."
            )

        content = format_success(
            "Scraping Complete",
            header,
            "\n\n---\n\n".join(contents),
            next_steps,
            metadata={
                "Execution time": format_duration(elapsed),
                "Token budget": TOKEN_BUDGETS.scraper,
            },
        )
        return ToolResponse(
            content=content,
            metadata={
                "total_urls": len(params.urls),
                "successful": successful,
                "failed": failed,
                "total_credits": total_credits,
                "execution_time_ms": elapsed,
                "tokens_per_url": tokens_per_url,
                "total_token_budget": TOKEN_BUDGETS.scraper,
                "batches_processed": total_batches,
            },
        )

    except Exception as e:
        error = classify_error(e)
        logger.exception("scrape_links failed unexpectedly")
        response = _error_response(params, start, error.code.value, f"scrape_links failed: {error.message}")
        response.metadata["error_code"] = error.code.value
        return response
