"""web_search handler: parallel Google search with consensus ranking."""

import logging
import time
from typing import List

from api.serper import SearchClient
from core.config import SEARCH
from core.errors import classify_error
from core.ranking import (
    aggregate_and_rank,
    build_url_lookup,
    generate_enhanced_output,
    get_position_score,
    lookup_url,
    mark_consensus,
)
from models import WebSearchInput
from models.results import ToolResponse
from utils.formatting import format_duration, format_error, truncate_text

logger = logging.getLogger(__name__)

MAX_QUERIES_SHOWN = 15
MIN_CONSENSUS_URLS = 5


def _bounds_error(params: WebSearchInput) -> ToolResponse:
    count = len(params.keywords)
    if count < SEARCH.min_keywords:
        content = format_error(
            "NO_KEYWORDS",
            "You called web_search with no keywords. Provide at least 1 keyword "
            "(ideally 3-7 diverse angles of the same topic).",
            tool_name="web_search",
            how_to_fix=[
                'Call web_search again with keywords like ["topic guide", "topic best practices", "topic vs alternatives"]',
            ],
            alternatives=[
                'search_reddit(queries=["topic recommendations"]) — community discussions instead of web pages',
            ],
        )
    else:
        excess = count - SEARCH.max_keywords
        content = format_error(
            "MAX_KEYWORDS",
            f"You sent {count} keywords but the maximum is {SEARCH.max_keywords} per call. "
            f"You have {excess} too many.",
            tool_name="web_search",
            how_to_fix=[
                f"Remove the {excess} least relevant keywords and call web_search again",
                f"Or split into {-(-count // SEARCH.max_keywords)} calls of at most "
                f"{SEARCH.max_keywords} keywords each",
            ],
        )
    return ToolResponse(
        content=content,
        metadata={"total_keywords": count, "total_results": 0, "execution_time_ms": 0},
        is_error=True,
    )


async def handle_web_search(params: WebSearchInput) -> ToolResponse:
    """Search all keywords, rank URLs by cross-query consensus. Never raises."""
    start = time.monotonic()
    count = len(params.keywords)
    if count < SEARCH.min_keywords or count > SEARCH.max_keywords:
        return _bounds_error(params)

    try:
        logger.info(f"Searching for {count} keyword(s)")

        client = SearchClient()
        response = await client.search_multiple(params.keywords)

        aggregation = aggregate_and_rank(response.searches, MIN_CONSENSUS_URLS)
        url_lookup = build_url_lookup(aggregation.ranked_urls)
        consensus_urls = aggregation.consensus_urls

        parts: List[str] = []
        if consensus_urls:
            parts.append(
                generate_enhanced_output(
                    consensus_urls,
                    params.keywords,
                    aggregation.total_unique_urls,
                    aggregation.frequency_threshold,
                    aggregation.threshold_note,
                )
            )
            parts.append("\n---\n")
        else:
            parts.append(
                f"## The Perfect Search Results (Aggregated from {response.total_keywords} Queries)\n"
            )
            parts.append(
                "> *No high-consensus URLs found across searches. Results may be highly diverse.*\n"
            )
            parts.append("---\n")

        # Keep output near ~20k tokens
        max_results_per_query = 5 if response.total_keywords > 10 else 10
        shown = response.searches[:MAX_QUERIES_SHOWN]
        omitted = len(response.searches) - len(shown)

        heading = "## 📊 Full Search Results by Query"
        if omitted > 0:
            heading += f" (showing {len(shown)} of {len(response.searches)})"
        parts.append(heading + "\n")

        total_results = 0
        for index, search in enumerate(shown):
            parts.append(f'### Query {index + 1}: "{search.keyword}"\n')

            for position, result in enumerate(search.results[:max_results_per_query], start=1):
                ranked = lookup_url(result.link, url_lookup)
                frequency = ranked.frequency if ranked else 1
                searches_label = "searches" if frequency != 1 else "search"
                line = (
                    f"{position}. **[{result.title}]({result.link})** — Position {position} | "
                    f"Score: {get_position_score(position):.1f} | "
                    f"Consensus: {mark_consensus(frequency)} ({frequency} {searches_label})"
                )
                if result.snippet:
                    snippet = truncate_text(result.snippet, 150)
                    if result.date:
                        line += f"\n   - *{result.date}* — {snippet}"
                    else:
                        line += f"\n   - {snippet}"
                parts.append(line + "\n")
                total_results += 1

            if search.related:
                related = ", ".join(f"`{r}`" for r in search.related[:5])
                parts.append(f"*Related:* {related}\n")

            if index < len(shown) - 1:
                parts.append("---\n")

        if omitted > 0:
            parts.append(
                f"---\n\n> *{omitted} additional queries not shown. Consensus URLs above "
                f"include all {len(response.searches)} queries.*\n"
            )

        elapsed = int((time.monotonic() - start) * 1000)
        logger.info(
            f"Search completed: {total_results} results, {aggregation.total_unique_urls} "
            f"unique URLs, {len(consensus_urls)} consensus"
        )

        top_urls = ", ".join(
            f'"{u.url}"' for u in (consensus_urls or aggregation.ranked_urls)[:5]
        )
        next_steps = [
            f"SCRAPE NOW: scrape_links(urls=[{top_urls}], use_llm=true, "
            'what_to_extract="Extract key findings | recommendations | data | evidence | comparisons") '
            "— you only have URLs right now, NOT content. Scrape immediately.",
            'GET REAL OPINIONS: search_reddit(queries=["topic recommendations", "topic best 2025", '
            '"topic vs alternatives", "topic problems", "topic experience"]) — web results are '
            "curated marketing. Reddit has raw, unfiltered user experiences.",
            'SEARCH DEEPER: Look at the "Related" suggestions above. If any reveal angles you '
            "haven't covered, run web_search again with those as keywords.",
            'ONLY THEN SYNTHESIZE: deep_research(questions=[{question: "Based on scraped content '
            'and community feedback from Reddit, synthesize..."}]) — do NOT synthesize until '
            "you've scraped AND checked Reddit.",
        ]
        parts.append(
            "\n---\n\n**YOUR RESEARCH IS NOT DONE — Do ALL of these next steps "
            "(research is a loop, not a single search):**"
        )
        parts.append("\n".join(f"{i}. {step}" for i, step in enumerate(next_steps, start=1)))
        parts.append(
            "\n> **Stop and think:** Did this search fully answer your question? Almost "
            "certainly not. Scrape the top results AND cross-reference with community "
            "opinions before you have real answers.\n"
        )
        parts.append(
            f"---\n*{format_duration(elapsed)} | {aggregation.total_unique_urls} unique URLs | "
            f"{len(consensus_urls)} consensus*"
        )

        return ToolResponse(
            content="\n".join(parts),
            metadata={
                "total_keywords": response.total_keywords,
                "total_results": total_results,
                "execution_time_ms": elapsed,
                "total_unique_urls": aggregation.total_unique_urls,
                "consensus_url_count": len(consensus_urls),
                "frequency_threshold": aggregation.frequency_threshold,
            },
        )

    except Exception as e:
        error = classify_error(e)
        elapsed = int((time.monotonic() - start) * 1000)
        logger.error(f"web_search: {error.message}")

        content = format_error(
            error.code,
            f"web_search failed: {error.message}",
            tool_name="web_search",
            retryable=error.retryable,
            how_to_fix=[
                "Verify SERPER_API_KEY is set correctly in your environment variables — "
                "get a free key at https://serper.dev (2,500 free queries)",
                "This is temporary — wait 3 seconds and call web_search again with the same keywords"
                if error.retryable
                else "Fix the API key and retry",
            ],
            alternatives=[
                'search_reddit(queries=["topic recommendations", "topic best practices"]) '
                "— same API but different endpoint, may still work",
                'deep_research(questions=[{question: "What are the key findings and best practices '
                'for [topic]?"}]) — uses OpenRouter, will work even if Serper is down',
                "scrape_links(urls=[...any URLs you already have...], use_llm=true) — scrape what "
                "you gathered earlier instead of waiting for search to recover",
            ],
        )
        return ToolResponse(
            content=content,
            metadata={
                "total_keywords": count,
                "total_results": 0,
                "execution_time_ms": elapsed,
                "error_code": error.code.value,
            },
            is_error=True,
        )
