"""
Consolidated configuration for the Research Powerpack MCP.

Environment variables, service limits, token budgets and capability
detection all live here. Values are read lazily through ``parse_env()`` so
tests can monkeypatch the environment without reloading modules.
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from models.config import ReasoningEffort

try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass  # Use system environment variables

__all__ = [
    "SERVER",
    "SCRAPER",
    "REDDIT",
    "SEARCH",
    "RESEARCH_LIMITS",
    "TOKEN_BUDGETS",
    "CTR_WEIGHTS",
    "RESEARCH_SUFFIX",
    "EnvConfig",
    "Capabilities",
    "parse_env",
    "get_capabilities",
    "get_missing_env_message",
]

logger = logging.getLogger(__name__)

# ══════════════════════════════════════════════════════════════════════════════
# Server Identity
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ServerInfo:
    name: str = "research-powerpack-mcp"
    version: str = "3.0.0"
    description: str = "Research toolkit for agents: search, scrape, Reddit and deep research"

    @property
    def user_agent(self) -> str:
        return f"{self.name}/{self.version}"


SERVER = ServerInfo()

# ══════════════════════════════════════════════════════════════════════════════
# Service Limits
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ScraperLimits:
    max_concurrent: int = 30
    batch_size: int = 30
    min_urls: int = 1
    max_urls: int = 50
    default_timeout: int = 30
    retry_delays: Tuple[float, ...] = (2.0, 4.0, 8.0)
    llm_concurrency: int = 3
    extraction_prefix: str = (
        "You are extracting information from a scraped web page for a research agent. "
        "Ignore navigation, cookie banners, ads and boilerplate."
    )
    extraction_suffix: str = (
        "Try to answer this information as comprehensive as possible while keeping info "
        "density super high without adding unnecessary words but satisfy the scope "
        "defined by previous instructions even more."
    )


@dataclass(frozen=True)
class RedditLimits:
    max_concurrent: int = 10
    batch_size: int = 10
    max_comment_budget: int = 1000
    max_comments_per_post: int = 200
    min_posts: int = 2
    max_posts: int = 50
    retry_delays: Tuple[float, ...] = (2.0, 4.0, 8.0, 16.0, 32.0)
    llm_concurrency: int = 3


@dataclass(frozen=True)
class SearchLimits:
    min_keywords: int = 1
    max_keywords: int = 100
    max_reddit_queries: int = 50
    serper_batch_size: int = 100
    retry_delays: Tuple[float, ...] = (1.0, 2.0, 4.0)


@dataclass(frozen=True)
class ResearchLimits:
    min_questions: int = 1
    max_questions: int = 10
    concurrency: int = 3
    max_search_results: int = 20


@dataclass(frozen=True)
class TokenBudgets:
    research: int = 32000
    scraper: int = 32000


SCRAPER = ScraperLimits()
REDDIT = RedditLimits()
SEARCH = SearchLimits()
RESEARCH_LIMITS = ResearchLimits()
TOKEN_BUDGETS = TokenBudgets()

# Click-through-rate weights by Google result position
CTR_WEIGHTS: Dict[int, float] = {
    1: 100.00,
    2: 60.00,
    3: 48.89,
    4: 33.33,
    5: 28.89,
    6: 26.44,
    7: 24.44,
    8: 17.78,
    9: 13.33,
    10: 12.56,
}

RESEARCH_SUFFIX = (
    "Answer with maximum information density. Prefer tables for comparisons and "
    "numbered bullets for everything else. Cite sources inline. Skip introductions, "
    "summaries of the question and closing remarks."
)

# ══════════════════════════════════════════════════════════════════════════════
# Environment Parsing
# ══════════════════════════════════════════════════════════════════════════════


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def _get_effort(name: str) -> ReasoningEffort:
    raw = os.getenv(name, "high").strip().lower()
    try:
        return ReasoningEffort(raw)
    except ValueError:
        return ReasoningEffort.HIGH


@dataclass
class EnvConfig:
    """Snapshot of every environment-driven setting."""

    serper_api_key: Optional[str] = None
    scrapedo_api_key: Optional[str] = None
    reddit_client_id: Optional[str] = None
    reddit_client_secret: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    research_model: str = "perplexity/sonar-deep-research"
    research_fallback_model: Optional[str] = None
    api_timeout_ms: int = 1800000
    reasoning_effort: ReasoningEffort = ReasoningEffort.HIGH
    max_urls: int = 100
    llm_extraction_model: str = "openai/gpt-4o-mini"
    llm_enable_reasoning: bool = False


def parse_env() -> EnvConfig:
    """Read the current environment into an ``EnvConfig``."""
    return EnvConfig(
        serper_api_key=os.getenv("SERPER_API_KEY") or None,
        scrapedo_api_key=os.getenv("SCRAPEDO_API_KEY") or None,
        reddit_client_id=os.getenv("REDDIT_CLIENT_ID") or None,
        reddit_client_secret=os.getenv("REDDIT_CLIENT_SECRET") or None,
        openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
        openrouter_base_url=os.getenv("OPENROUTER_BASE_URL")
        or "https://openrouter.ai/api/v1",
        research_model=os.getenv("RESEARCH_MODEL") or "perplexity/sonar-deep-research",
        research_fallback_model=os.getenv("RESEARCH_FALLBACK_MODEL") or None,
        api_timeout_ms=_get_int("API_TIMEOUT_MS", 1800000),
        reasoning_effort=_get_effort("DEFAULT_REASONING_EFFORT"),
        max_urls=_get_int("DEFAULT_MAX_URLS", 100),
        llm_extraction_model=os.getenv("LLM_EXTRACTION_MODEL") or "openai/gpt-4o-mini",
        llm_enable_reasoning=os.getenv("LLM_ENABLE_REASONING", "false").strip().lower()
        == "true",
    )


# ══════════════════════════════════════════════════════════════════════════════
# Capability Detection
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Capabilities:
    """Which tools can run with the credentials currently configured."""

    reddit: bool
    search: bool
    scraping: bool
    deep_research: bool
    llm_extraction: bool


def get_capabilities() -> Capabilities:
    env = parse_env()
    return Capabilities(
        reddit=bool(env.reddit_client_id and env.reddit_client_secret),
        search=bool(env.serper_api_key),
        scraping=bool(env.scrapedo_api_key),
        deep_research=bool(env.openrouter_api_key),
        llm_extraction=bool(env.openrouter_api_key),
    )


_MISSING_ENV_MESSAGES: Dict[str, str] = {
    "reddit": (
        "❌ **Reddit tools unavailable.** Set `REDDIT_CLIENT_ID` and "
        "`REDDIT_CLIENT_SECRET` to enable.\n\n"
        '👉 Create a Reddit app at: https://www.reddit.com/prefs/apps (select "script" type)'
    ),
    "search": (
        "❌ **Search unavailable.** Set `SERPER_API_KEY` to enable web search and "
        "Reddit search.\n\n"
        "👉 Get your free API key at: https://serper.dev (2,500 free queries)"
    ),
    "scraping": (
        "❌ **Web scraping unavailable.** Set `SCRAPEDO_API_KEY` to enable URL "
        "content extraction.\n\n"
        "👉 Sign up at: https://scrape.do (1,000 free credits)"
    ),
    "deep_research": (
        "❌ **Deep research unavailable.** Set `OPENROUTER_API_KEY` to enable "
        "AI-powered research.\n\n"
        "👉 Get your API key at: https://openrouter.ai/keys"
    ),
    "llm_extraction": (
        "⚠️ **AI extraction disabled.** The `use_llm` and `what_to_extract` features "
        "require `OPENROUTER_API_KEY`.\n\n"
        "Scraping will work but without intelligent content filtering."
    ),
}


def get_missing_env_message(capability: str) -> str:
    """Return the user-facing explanation for a disabled capability."""
    try:
        return _MISSING_ENV_MESSAGES[capability]
    except KeyError:
        raise ValueError(f"Unknown capability: {capability}") from None
