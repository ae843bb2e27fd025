"""
Data models for the Research Powerpack MCP.

Provides Pydantic models for tool input validation. Batch size bounds
(how many keywords, URLs or questions) are deliberately not enforced here:
the tool handlers check them so they can answer with remediation advice
instead of a bare validation error.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models.config import ReasoningEffort, ScrapeMode

__all__ = [
    "ReasoningEffort",
    "ScrapeMode",
    "WebSearchInput",
    "SearchRedditInput",
    "GetRedditPostInput",
    "ScrapeLinksInput",
    "FileAttachment",
    "ResearchQuestion",
    "DeepResearchInput",
]

_STRICT = ConfigDict(
    str_strip_whitespace=True,
    validate_assignment=True,
    extra="forbid",
)


def _drop_blank(values: List[str]) -> List[str]:
    return [v.strip() for v in values if v and v.strip()]


# ══════════════════════════════════════════════════════════════════════════════
# Search Inputs
# ══════════════════════════════════════════════════════════════════════════════


class WebSearchInput(BaseModel):
    """Input model for web_search."""

    model_config = _STRICT

    keywords: List[str] = Field(
        default_factory=list,
        description=(
            "Search keywords, 1-100 per call. Use many diverse angles of the same "
            "topic; URLs appearing across several searches are ranked as consensus."
        ),
    )

    @field_validator("keywords")
    @classmethod
    def strip_keywords(cls, v: List[str]) -> List[str]:
        return _drop_blank(v)


class SearchRedditInput(BaseModel):
    """Input model for search_reddit."""

    model_config = _STRICT

    queries: List[str] = Field(
        default_factory=list,
        description="Reddit search queries (up to 50; extra queries are ignored)",
    )

    date_after: Optional[str] = Field(
        default=None,
        description="Only return posts after this date (YYYY-MM-DD)",
        pattern=r"^\d{4}-\d{2}-\d{2}$",
    )

    @field_validator("queries")
    @classmethod
    def strip_queries(cls, v: List[str]) -> List[str]:
        return _drop_blank(v)


class GetRedditPostInput(BaseModel):
    """Input model for get_reddit_post."""

    model_config = _STRICT

    urls: List[str] = Field(
        default_factory=list,
        description="Reddit post URLs, 2-50 per call",
    )

    fetch_comments: bool = Field(
        default=True,
        description="Fetch comment trees (set false for post bodies only)",
    )

    max_comments: Optional[int] = Field(
        default=None,
        description="Override comments per post (default: 1000 comment budget split across posts)",
        ge=1,
        le=200,
    )

    use_llm: bool = Field(
        default=False,
        description="Digest each thread with an LLM (requires OPENROUTER_API_KEY)",
    )

    what_to_extract: Optional[str] = Field(
        default=None,
        description="What the LLM should extract when use_llm is true",
        max_length=2000,
    )

    @field_validator("urls")
    @classmethod
    def strip_urls(cls, v: List[str]) -> List[str]:
        return _drop_blank(v)


# ══════════════════════════════════════════════════════════════════════════════
# Scrape Input
# ══════════════════════════════════════════════════════════════════════════════


class ScrapeLinksInput(BaseModel):
    """Input model for scrape_links."""

    model_config = _STRICT

    urls: List[str] = Field(
        default_factory=list,
        description="URLs to scrape, 1-50 per call (http/https only)",
    )

    timeout: int = Field(
        default=30,
        description="Per-URL timeout in seconds",
        ge=5,
        le=120,
    )

    use_llm: bool = Field(
        default=False,
        description="Run AI extraction over each page (requires OPENROUTER_API_KEY)",
    )

    what_to_extract: Optional[str] = Field(
        default=None,
        description="Extraction instructions, e.g. 'pricing | limits | benchmarks'",
        max_length=2000,
    )

    model: Optional[str] = Field(
        default=None,
        description="Override the extraction model (OpenRouter model id)",
    )


# ══════════════════════════════════════════════════════════════════════════════
# Research Inputs
# ══════════════════════════════════════════════════════════════════════════════


class FileAttachment(BaseModel):
    """A local file to include with a research question."""

    model_config = _STRICT

    path: str = Field(..., description="Absolute path to the file", min_length=1)
    start_line: Optional[int] = Field(default=None, ge=1)
    end_line: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = Field(
        default=None,
        description="Why this file matters for the question",
        max_length=500,
    )

    @model_validator(mode="after")
    def check_range(self) -> "FileAttachment":
        if self.start_line and self.end_line and self.end_line < self.start_line:
            raise ValueError("end_line must be greater than or equal to start_line")
        return self


class ResearchQuestion(BaseModel):
    """One deep research question."""

    model_config = _STRICT

    question: str = Field(
        ...,
        description=(
            "Structured question: WHAT I NEED, WHY, WHAT I KNOW, HOW I'LL USE IT, "
            "SPECIFIC QUESTIONS"
        ),
        min_length=10,
    )

    file_attachments: Optional[List[FileAttachment]] = Field(
        default=None,
        description="Local files to attach (code being asked about)",
    )


class DeepResearchInput(BaseModel):
    """Input model for deep_research."""

    model_config = _STRICT

    questions: List[ResearchQuestion] = Field(
        default_factory=list,
        description="1-10 research questions processed in parallel",
    )
