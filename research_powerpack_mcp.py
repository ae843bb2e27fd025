#!/usr/bin/env python3
"""
Research Powerpack MCP Server

An MCP server that gives agents a full research loop: search the web, find
and read Reddit discussions, scrape pages into clean markdown and run deep
AI research over batches of questions.

Features:
- Consensus-ranked Google search across up to 100 keywords per call
- Reddit discovery and full comment threads via the Reddit API
- Scraping with automatic JS rendering / proxy escalation
- Optional LLM extraction over scraped pages and threads
- Tools degrade gracefully: missing API keys disable a tool with setup
  instructions instead of failing the server
"""

import io
import sys

# Fix Windows console encoding issues with emojis
if sys.platform == "win32":
    try:
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")
    except (AttributeError, io.UnsupportedOperation):
        sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
        sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8", errors="replace")

import json
import logging
import os

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from core.config import SERVER, get_capabilities, get_missing_env_message
from handlers import (
    handle_deep_research,
    handle_get_reddit_posts,
    handle_scrape_links,
    handle_search_reddit,
    handle_web_search,
)
from models import (
    DeepResearchInput,
    GetRedditPostInput,
    ScrapeLinksInput,
    SearchRedditInput,
    WebSearchInput,
)

logger = logging.getLogger("research_powerpack_mcp")

TRANSPORTS = ("stdio", "sse", "streamable-http")

mcp = FastMCP("research_powerpack_mcp")

_READ_ONLY = {
    "readOnlyHint": True,
    "destructiveHint": False,
    "idempotentHint": True,
    "openWorldHint": True,
}


# ============================================================================
# Search Tools
# ============================================================================


@mcp.tool(name="web_search", annotations={"title": "Web Search (Consensus Ranked)", **_READ_ONLY})
async def web_search(params: WebSearchInput) -> str:
    """
    Search Google for 1-100 keywords in parallel and rank URLs by consensus.

    URLs that show up across several of your searches are promoted; a URL
    found by 5 different phrasings is far more likely to matter than one
    that appears once. Use 3-7+ diverse keywords covering different angles
    of the same topic.

    Returns search results only, not page content. Follow up with
    scrape_links on the top URLs.
    """
    if not get_capabilities().search:
        return get_missing_env_message("search")
    return (await handle_web_search(params)).content


@mcp.tool(name="search_reddit", annotations={"title": "Search Reddit", **_READ_ONLY})
async def search_reddit(params: SearchRedditInput) -> str:
    """
    Find Reddit discussions for up to 50 queries via Google.

    Posts appearing across several queries are ranked first. Use
    date_after (YYYY-MM-DD) for recent discussions only. Follow up with
    get_reddit_post to read the comments.
    """
    if not get_capabilities().search:
        return get_missing_env_message("search")
    return (await handle_search_reddit(params)).content


# ============================================================================
# Reddit Tools
# ============================================================================


@mcp.tool(name="get_reddit_post", annotations={"title": "Fetch Reddit Posts", **_READ_ONLY})
async def get_reddit_post(params: GetRedditPostInput) -> str:
    """
    Fetch 2-50 Reddit posts with their comment trees.

    A budget of 1000 comments is split across the posts (at most 200 each)
    unless max_comments overrides it. With use_llm=true each thread is
    digested by an LLM according to what_to_extract.
    """
    if not get_capabilities().reddit:
        return get_missing_env_message("reddit")
    return (await handle_get_reddit_posts(params)).content


# ============================================================================
# Scraping Tools
# ============================================================================


@mcp.tool(name="scrape_links", annotations={"title": "Scrape Links", **_READ_ONLY})
async def scrape_links(params: ScrapeLinksInput) -> str:
    """
    Scrape 1-50 URLs into clean markdown.

    A 32K token budget is split evenly across URLs. Sites that block plain
    requests are retried with JavaScript rendering, then premium proxies.
    With use_llm=true an LLM extracts only what_to_extract from each page.
    """
    capabilities = get_capabilities()
    if not capabilities.scraping:
        return get_missing_env_message("scraping")

    content = (await handle_scrape_links(params)).content
    if params.use_llm and not capabilities.llm_extraction:
        content += "\n\n" + get_missing_env_message("llm_extraction")
    return content


# ============================================================================
# Research Tools
# ============================================================================


@mcp.tool(name="deep_research", annotations={"title": "Deep Research", **_READ_ONLY})
async def deep_research(params: DeepResearchInput) -> str:
    """
    Research 1-10 questions in parallel with a web-grounded reasoning model.

    A 32K token budget is split across the questions. Structure each
    question as WHAT I NEED, WHY, WHAT I KNOW, HOW I'LL USE IT and SPECIFIC
    QUESTIONS. Attach local files (with optional line ranges) when asking
    about code.
    """
    if not get_capabilities().deep_research:
        return get_missing_env_message("deep_research")
    return (await handle_deep_research(params)).content


@mcp.tool(
    name="get_server_capabilities",
    annotations={"title": "Server Capabilities", **_READ_ONLY, "openWorldHint": False},
)
async def get_server_capabilities() -> str:
    """Report which tools are enabled and which API keys are missing."""
    capabilities = get_capabilities()
    tools = {
        "web_search": capabilities.search,
        "search_reddit": capabilities.search,
        "get_reddit_post": capabilities.reddit,
        "scrape_links": capabilities.scraping,
        "deep_research": capabilities.deep_research,
    }
    missing = {
        name: get_missing_env_message(name)
        for name, enabled in vars(capabilities).items()
        if not enabled
    }
    return json.dumps(
        {
            "server": SERVER.name,
            "version": SERVER.version,
            "enabled_tools": [name for name, enabled in tools.items() if enabled],
            "disabled_tools": [name for name, enabled in tools.items() if not enabled],
            "llm_extraction": capabilities.llm_extraction,
            "missing_configuration": missing,
        },
        indent=2,
    )


@mcp.custom_route("/health", methods=["GET"])
async def health(request: Request) -> JSONResponse:
    return JSONResponse(
        {
            "status": "ok",
            "name": SERVER.name,
            "version": SERVER.version,
            "capabilities": vars(get_capabilities()),
        }
    )


# ============================================================================
# Main Entry Point
# ============================================================================


def configure_logging() -> None:
    # stdout carries the stdio transport
    level = os.getenv("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def validate_environment() -> None:
    capabilities = get_capabilities()
    enabled = [name for name, on in vars(capabilities).items() if on]
    disabled = [name for name, on in vars(capabilities).items() if not on]

    logger.info(f"{SERVER.name} v{SERVER.version}")
    if enabled:
        logger.info(f"Enabled capabilities: {', '.join(enabled)}")
    for name in disabled:
        logger.warning(f"Capability '{name}' disabled: {get_missing_env_message(name)}")


def main() -> None:
    configure_logging()
    validate_environment()

    transport = os.getenv("MCP_TRANSPORT", "stdio").strip().lower()
    if transport not in TRANSPORTS:
        logger.warning(f"Unknown MCP_TRANSPORT={transport!r}, falling back to stdio")
        transport = "stdio"

    mcp.run(transport=transport)


if __name__ == "__main__":
    main()
