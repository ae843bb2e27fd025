"""Transient result objects returned by upstream clients."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


# ══════════════════════════════════════════════════════════════════════════════
# Search
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class SearchResult:
    title: str
    link: str
    snippet: str = ""
    position: int = 0
    date: Optional[str] = None


@dataclass
class KeywordSearchResult:
    keyword: str
    results: List[SearchResult] = field(default_factory=list)
    total_results: int = 0
    related: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class MultipleSearchResponse:
    searches: List[KeywordSearchResult]
    total_keywords: int
    execution_time_ms: int = 0


@dataclass
class RedditSearchResult:
    title: str
    url: str
    snippet: str = ""
    date: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════════
# Scraping
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class ScrapeResult:
    url: str
    content: str = ""
    status_code: int = 0
    credits: int = 0
    error: Optional[str] = None
    mode: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status_code < 300


# ══════════════════════════════════════════════════════════════════════════════
# Reddit
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class RedditPost:
    title: str
    author: str
    subreddit: str
    body: str
    score: int
    comment_count: int
    url: str
    created_utc: Optional[float] = None
    flair: Optional[str] = None


@dataclass
class RedditComment:
    author: str
    body: str
    score: int
    depth: int
    is_op: bool = False


@dataclass
class PostResult:
    post: RedditPost
    comments: List[RedditComment]
    allocated_comments: int


@dataclass
class BatchPostResult:
    results: Dict[str, Union[PostResult, Exception]]
    batches_processed: int
    total_posts: int
    rate_limit_hits: int = 0


# ══════════════════════════════════════════════════════════════════════════════
# LLM
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class ResearchResponse:
    content: str = ""
    model: Optional[str] = None
    usage: Optional[TokenUsage] = None
    error: Optional[str] = None


@dataclass
class LLMResult:
    content: str
    processed: bool
    error: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════════
# Tool Output
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class ToolResponse:
    """Markdown shown to the agent plus machine-readable metadata."""

    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    is_error: bool = False
