"""Unit tests for tool input models."""

import pytest
from pydantic import ValidationError

from models import (
    DeepResearchInput,
    FileAttachment,
    GetRedditPostInput,
    ScrapeLinksInput,
    SearchRedditInput,
    WebSearchInput,
)


class TestInputModels:
    """Test suite for pydantic input validation."""

    def test_blank_keywords_dropped(self):
        params = WebSearchInput(keywords=["  python  ", "", "   "])
        assert params.keywords == ["python"]

    def test_batch_bounds_not_enforced_by_schema(self):
        assert len(WebSearchInput(keywords=[f"k{i}" for i in range(150)]).keywords) == 150
        assert GetRedditPostInput(urls=["https://reddit.com/r/a/comments/x"]).urls

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            WebSearchInput(keywords=["a"], unexpected=True)

    def test_date_after_format(self):
        assert SearchRedditInput(queries=["q"], date_after="2024-01-31").date_after == "2024-01-31"
        with pytest.raises(ValidationError):
            SearchRedditInput(queries=["q"], date_after="31/01/2024")

    def test_scrape_timeout_range(self):
        assert ScrapeLinksInput(urls=["https://a.com"]).timeout == 30
        with pytest.raises(ValidationError):
            ScrapeLinksInput(urls=["https://a.com"], timeout=500)

    def test_max_comments_range(self):
        with pytest.raises(ValidationError):
            GetRedditPostInput(urls=[], max_comments=0)

    def test_attachment_line_range(self):
        with pytest.raises(ValidationError):
            FileAttachment(path="/tmp/a.py", start_line=10, end_line=2)

    def test_research_questions(self):
        params = DeepResearchInput(
            questions=[{"question": "How does asyncio scheduling work in detail?"}]
        )
        assert params.questions[0].file_attachments is None
