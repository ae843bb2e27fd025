"""Tests for the deep_research handler."""

from unittest.mock import AsyncMock, patch

import pytest

from handlers.research import handle_deep_research
from models import DeepResearchInput
from models.config import ReasoningEffort
from models.results import ResearchResponse, TokenUsage

QUESTION = "How do Python asyncio task groups handle cancellation?"


def _params(count, **extra):
    return DeepResearchInput(questions=[{"question": f"{QUESTION} #{i}", **extra} for i in range(count)])


@pytest.fixture
def research_client():
    with patch("handlers.research.ResearchClient") as client_cls:
        yield client_cls.return_value


class TestHandleDeepResearch:
    """Test suite for handle_deep_research."""

    @pytest.mark.asyncio
    async def test_min_questions(self):
        response = await handle_deep_research(DeepResearchInput(questions=[]))
        assert "`MIN_QUESTIONS`" in response.content
        assert response.metadata["error"] is True

    @pytest.mark.asyncio
    async def test_max_questions(self):
        response = await handle_deep_research(_params(11))
        assert "`MAX_QUESTIONS`" in response.content
        assert "Split into 2 separate deep_research calls" in response.content

    @pytest.mark.asyncio
    async def test_client_init_failure(self):
        response = await handle_deep_research(_params(1))
        assert "`CLIENT_INIT_FAILED`" in response.content
        assert "OPENROUTER_API_KEY" in response.content

    @pytest.mark.asyncio
    async def test_batch_research(self, research_client, monkeypatch):
        monkeypatch.setenv("DEFAULT_REASONING_EFFORT", "medium")
        research_client.research = AsyncMock(
            side_effect=[
                ResearchResponse(content="Answer one", usage=TokenUsage(total_tokens=1500)),
                ResearchResponse(error="HTTP 500: Error"),
                ResearchResponse(content=""),
            ]
        )
        response = await handle_deep_research(_params(3))

        kwargs = research_client.research.await_args_list[0].kwargs
        question = research_client.research.await_args_list[0].args[0]
        assert question.startswith(f"{QUESTION} #0\n\n")
        assert "maximum information density" in question
        assert kwargs["max_tokens"] == 10666
        assert kwargs["max_search_results"] == 20
        assert kwargs["reasoning_effort"] is ReasoningEffort.MEDIUM

        assert "# ✅ Research Complete (1/3)" in response.content
        assert "Answer one" in response.content
        assert "*Tokens used: 1,500*" in response.content
        assert "**❌ Error:** HTTP 500: Error" in response.content
        assert "**❌ Error:** Empty response received" in response.content
        assert "RETRY FAILURES: 2 question(s)" in response.content
        assert response.metadata["tokens_per_question"] == 10666
        assert response.metadata["total_tokens_used"] == 1500
        assert response.metadata["results"][1]["error"] == "HTTP 500: Error"

    @pytest.mark.asyncio
    async def test_max_search_results_follows_env(self, research_client, monkeypatch):
        monkeypatch.setenv("DEFAULT_MAX_URLS", "8")
        research_client.research = AsyncMock(return_value=ResearchResponse(content="ok"))
        await handle_deep_research(_params(1))
        assert research_client.research.await_args.kwargs["max_search_results"] == 8

    @pytest.mark.asyncio
    async def test_attachments_appended(self, research_client, tmp_path):
        source = tmp_path / "app.py"
        source.write_text("print('hi')\n", encoding="utf-8")
        research_client.research = AsyncMock(return_value=ResearchResponse(content="ok"))

        await handle_deep_research(_params(1, file_attachments=[{"path": str(source)}]))

        question = research_client.research.await_args.args[0]
        assert "# 📎 Attached Files" in question
        assert "1 | print('hi')" in question
        # Compression suffix comes after the attachments
        assert question.index("Attached Files") < question.index("maximum information density")
