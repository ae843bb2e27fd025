"""
Research Powerpack API Integrations.

Async clients for the upstream services behind each tool. Clients are built
per tool call and read their credentials from the environment when none are
passed explicitly.

Available Services:
─────────────────────────────────────────────────────────────────────────────
    serper       Google Search and Reddit discovery via Serper.dev
    scrapedo     Page scraping with JS rendering and proxy escalation
    reddit       Reddit posts and comment trees (application OAuth)
    openrouter   Deep research and LLM content extraction

Configuration:
─────────────────────────────────────────────────────────────────────────────
Set API keys in environment variables or .env file:

    SERPER_API_KEY                              https://serper.dev
    SCRAPEDO_API_KEY                            https://scrape.do
    REDDIT_CLIENT_ID / REDDIT_CLIENT_SECRET     https://www.reddit.com/prefs/apps
    OPENROUTER_API_KEY                          https://openrouter.ai/keys
"""

from api.openrouter import (
    LLMProcessor,
    ResearchClient,
    create_llm_processor,
    process_content_with_llm,
)
from api.reddit import RedditClient, parse_post_url
from api.scrapedo import ScraperClient
from api.serper import SearchClient

# ══════════════════════════════════════════════════════════════════════════════
# Public API
# ══════════════════════════════════════════════════════════════════════════════

__all__ = [
    "SearchClient",
    "ScraperClient",
    "RedditClient",
    "parse_post_url",
    "ResearchClient",
    "LLMProcessor",
    "create_llm_processor",
    "process_content_with_llm",
]
