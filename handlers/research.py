"""deep_research handler: batch research with per-question token budgets."""

import logging
import time
from dataclasses import asdict, dataclass
from typing import List, Optional

from api.openrouter import ResearchClient
from core.attachments import FileAttachmentService
from core.budget import calculate_token_allocation
from core.concurrency import pmap
from core.config import RESEARCH_LIMITS, RESEARCH_SUFFIX, TOKEN_BUDGETS, parse_env
from core.errors import classify_error
from models import DeepResearchInput, ResearchQuestion
from models.results import ToolResponse
from utils.formatting import (
    format_batch_header,
    format_duration,
    format_error,
    format_number,
    format_success,
    truncate_text,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """Expert research engine. Multi-source: docs, papers, blogs, case studies. Cite inline [source].

FORMAT RULES:
- For comparisons/features/structured data → use markdown table |Col|Col|Col|
- For narrative/diagnostic/explanation → tight numbered bullets, no prose paragraphs
- No intro, no greeting, no conclusion, no meta-commentary
- No filler phrases: "it is worth noting", "overall", "in conclusion", "importantly"
- Every sentence = fact, data point, or actionable insight
- First line of output = content (never a preamble)"""


@dataclass
class QuestionResult:
    question: str
    content: str
    success: bool
    error: Optional[str] = None
    tokens_used: Optional[int] = None


def wrap_question(question: str) -> str:
    return f"{question}\n\n{RESEARCH_SUFFIX}"


def _bounds_error(count: int) -> Optional[ToolResponse]:
    if count < RESEARCH_LIMITS.min_questions:
        missing = RESEARCH_LIMITS.min_questions - count
        content = format_error(
            "MIN_QUESTIONS",
            f"You sent {count} question(s) but need at least {RESEARCH_LIMITS.min_questions}. "
            f"Add {missing} more question(s) and call deep_research again.",
            tool_name="deep_research",
            how_to_fix=[
                f"Add at least {missing} question(s) following the template: WHAT I NEED → WHY → "
                "WHAT I KNOW → HOW I'LL USE → SPECIFIC QUESTIONS",
                "Each question should target a different angle of your research topic",
            ],
            alternatives=[
                'web_search(keywords=["topic overview", "topic best practices"]) — gather context '
                "first, then formulate better research questions",
            ],
        )
        message = f"Need {missing} more question(s). Add them and retry."
    elif count > RESEARCH_LIMITS.max_questions:
        excess = count - RESEARCH_LIMITS.max_questions
        batches = -(-count // RESEARCH_LIMITS.max_questions)
        content = format_error(
            "MAX_QUESTIONS",
            f"You sent {count} questions but the maximum per call is "
            f"{RESEARCH_LIMITS.max_questions}. You have {excess} too many.",
            tool_name="deep_research",
            how_to_fix=[
                f"Split into {batches} separate deep_research calls of ~{-(-count // batches)} "
                "questions each",
                f"Call deep_research with the first {RESEARCH_LIMITS.max_questions} questions NOW, "
                f"then call again with the remaining {excess}",
                "Each call gets its own 32K token budget, so splitting gives you MORE tokens total",
            ],
        )
        message = f"Split into {batches} calls of {RESEARCH_LIMITS.max_questions} questions each"
    else:
        return None
    return ToolResponse(content=content, metadata={"error": True, "message": message}, is_error=True)


async def handle_deep_research(params: DeepResearchInput) -> ToolResponse:
    """Research every question in parallel. Never raises."""
    start = time.monotonic()
    questions = params.questions

    bounds_error = _bounds_error(len(questions))
    if bounds_error:
        return bounds_error

    tokens_per_question = calculate_token_allocation(len(questions), TOKEN_BUDGETS.research)
    logger.info(
        f"Starting batch research: {len(questions)} questions, "
        f"{format_number(tokens_per_question)} tokens/question"
    )

    try:
        client = ResearchClient()
    except Exception as e:
        error = classify_error(e)
        return ToolResponse(
            content=format_error(
                "CLIENT_INIT_FAILED",
                f"Cannot start research — OpenRouter client failed to initialize: {error.message}",
                tool_name="deep_research",
                how_to_fix=[
                    "Set the OPENROUTER_API_KEY environment variable — get a key at https://openrouter.ai/keys",
                    "If the key is set, verify it hasn't expired or been revoked",
                ],
                alternatives=[
                    'web_search(keywords=["topic best practices", "topic guide"]) — uses Serper, '
                    "will work even if OpenRouter is down",
                    'search_reddit(queries=["topic recommendations", "topic experience"]) — real '
                    "community perspective",
                    "scrape_links(urls=[...any relevant URLs...], use_llm=false) — raw content, no "
                    "OpenRouter needed",
                ],
            ),
            metadata={
                "error": True,
                "message": f"OpenRouter init failed: {error.message}. Use web_search or search_reddit instead.",
            },
            is_error=True,
        )

    env = parse_env()
    max_search_results = min(env.max_urls, RESEARCH_LIMITS.max_search_results)
    file_service = FileAttachmentService()

    async def run(item: ResearchQuestion, index: int) -> QuestionResult:
        try:
            question = item.question
            if item.file_attachments:
                try:
                    question += await file_service.format_attachments(item.file_attachments)
                except Exception as e:
                    logger.warning(f"Failed to process attachments for question {index + 1}: {e}")

            response = await client.research(
                wrap_question(question),
                system_prompt=SYSTEM_PROMPT,
                reasoning_effort=env.reasoning_effort,
                max_search_results=max_search_results,
                max_tokens=tokens_per_question,
            )
            if response.error:
                return QuestionResult(item.question, response.content, False, response.error)
            if not response.content:
                return QuestionResult(item.question, "", False, "Empty response received")
            return QuestionResult(
                item.question,
                response.content,
                True,
                tokens_used=response.usage.total_tokens if response.usage else None,
            )
        except Exception as e:
            # ResearchClient.research does not raise; this covers everything around it
            return QuestionResult(item.question, "", False, classify_error(e).message)

    results = await pmap(questions, run, RESEARCH_LIMITS.concurrency)

    successful = [r for r in results if r.success]
    failed = [r for r in results if not r.success]
    total_tokens = sum(r.tokens_used or 0 for r in successful)
    elapsed = int((time.monotonic() - start) * 1000)

    header = format_batch_header(
        "Deep Research Results",
        total_items=len(questions),
        successful=len(successful),
        failed=len(failed),
        tokens_per_item=tokens_per_question,
        extras={"Total tokens used": total_tokens},
    )

    sections: List[str] = []
    for index, result in enumerate(results, start=1):
        sections.append(f"## Question {index}: {truncate_text(result.question, 100)}\n")
        if result.success:
            sections.append(result.content)
            if result.tokens_used:
                sections.append(f"\n*Tokens used: {format_number(result.tokens_used)}*")
        else:
            sections.append(f"**❌ Error:** {result.error}")
        sections.append("\n---\n")

    next_steps: List[str] = []
    if successful:
        next_steps += [
            "VERIFY CITATIONS: scrape_links(urls=[...cited URLs from research above...], use_llm=true, "
            'what_to_extract="Extract evidence | data | methodology | conclusions") — AI research '
            "can hallucinate citations.",
            'REALITY CHECK: search_reddit(queries=["topic real experience", "topic problems", '
            '"topic criticism"]) — research gives the textbook answer, Reddit gives production reality.',
            "FOUND GAPS? If the answers mention tradeoffs or alternatives you hadn't considered, run "
            "deep_research again with NEW questions targeting those gaps.",
            'CROSS-CHECK KEY CLAIMS: web_search(keywords=["specific claim from research", "topic '
            'official docs"]) — independent verification.',
        ]
    if failed:
        next_steps.append(
            f"RETRY FAILURES: {len(failed)} question(s) failed. Retry with more specific context, or "
            "split complex questions into simpler sub-questions."
        )

    content = format_success(
        f"Research Complete ({len(successful)}/{len(questions)})",
        header,
        "\n".join(sections),
        next_steps,
        metadata={
            "Execution time": format_duration(elapsed),
            "Token budget": TOKEN_BUDGETS.research,
        },
    )

    logger.info(
        f"Research completed: {len(successful)}/{len(questions)} successful, "
        f"{format_number(total_tokens)} tokens"
    )
    return ToolResponse(
        content=content,
        metadata={
            "total_questions": len(questions),
            "successful": len(successful),
            "failed": len(failed),
            "tokens_per_question": tokens_per_question,
            "total_tokens_used": total_tokens,
            "execution_time_ms": elapsed,
            "results": [asdict(r) for r in results],
        },
    )
