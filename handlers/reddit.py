"""search_reddit and get_reddit_post handlers."""

import logging
from typing import List, Optional

from api.openrouter import create_llm_processor, process_content_with_llm
from api.reddit import RedditClient
from api.serper import SearchClient
from core.budget import calculate_comment_allocation, calculate_token_allocation
from core.concurrency import pmap
from core.config import REDDIT, SEARCH, TOKEN_BUDGETS
from core.errors import classify_error
from core.ranking import aggregate_and_rank_reddit, generate_reddit_enhanced_output
from models import GetRedditPostInput, SearchRedditInput
from models.results import PostResult, RedditComment, ToolResponse
from utils.formatting import format_batch_header, format_error, format_success

logger = logging.getLogger(__name__)

MIN_CONSENSUS_POSTS = 3

DEFAULT_REDDIT_INSTRUCTION = (
    "Extract key insights, recommendations, and community consensus from these Reddit discussions."
)

REDDIT_EXTRACTION_SUFFIX = """---

⚠️ IMPORTANT: Extract and synthesize the key insights, opinions, and recommendations from these Reddit discussions. Focus on:
- Common themes and consensus across posts
- Specific recommendations with context
- Contrasting viewpoints and debates
- Real-world experiences and lessons learned
- Technical details and implementation tips

Be comprehensive but concise. Prioritize actionable insights.

---"""


# ══════════════════════════════════════════════════════════════════════════════
# Formatters
# ══════════════════════════════════════════════════════════════════════════════


def format_comments(comments: List[RedditComment]) -> str:
    blocks = []
    for c in comments:
        indent = "  " * c.depth
        op = " **[OP]**" if c.is_op else ""
        score = f"+{c.score}" if c.score >= 0 else str(c.score)
        body = "\n".join(f"{indent}  {line}" for line in c.body.split("\n"))
        blocks.append(f"{indent}- **u/{c.author}**{op} _({score})_\n{body}\n")
    return "\n".join(blocks)


def _post_stats(result: PostResult) -> str:
    post = result.post
    return (
        f"**r/{post.subreddit}** • u/{post.author} • ⬆️ {post.score} • "
        f"💬 {post.comment_count} comments\n🔗 {post.url}"
    )


def format_post(result: PostResult, fetch_comments: bool) -> str:
    post = result.post
    parts = [f"## {post.title}", "", _post_stats(result), ""]

    if post.body:
        parts += ["### Post Content", "", post.body, ""]

    if fetch_comments and result.comments:
        parts += [
            f"### Top Comments ({len(result.comments)}/{post.comment_count} shown, "
            f"allocated: {result.allocated_comments})",
            "",
            format_comments(result.comments),
        ]
    elif not fetch_comments:
        parts += ["_Comments not fetched (fetch_comments=false)_", ""]

    return "\n".join(parts).rstrip() + "\n"


def enhance_extraction_instruction(instruction: Optional[str]) -> str:
    return f"{instruction or DEFAULT_REDDIT_INSTRUCTION}\n\n{REDDIT_EXTRACTION_SUFFIX}"


def unique_queries(queries: List[str]) -> List[str]:
    """Drop repeated queries (case-insensitive), keeping first occurrences in order."""
    seen = set()
    unique = []
    for query in queries:
        key = query.casefold()
        if key not in seen:
            seen.add(key)
            unique.append(query)
    return unique


# ══════════════════════════════════════════════════════════════════════════════
# search_reddit
# ══════════════════════════════════════════════════════════════════════════════


async def handle_search_reddit(params: SearchRedditInput) -> ToolResponse:
    """Find Reddit threads across queries and rank them by consensus. Never raises."""
    if not params.queries:
        return ToolResponse(
            content=format_error(
                "NO_QUERIES",
                "You called search_reddit with no queries. Provide at least 1 query.",
                tool_name="search_reddit",
                how_to_fix=[
                    'Call search_reddit again with queries like ["topic recommendations", '
                    '"topic experience", "topic vs alternatives"]',
                ],
            ),
            metadata={"total_queries": 0, "total_results": 0},
            is_error=True,
        )

    queries = unique_queries(params.queries)
    duplicates = len(params.queries) - len(queries)
    limited = queries[: SEARCH.max_reddit_queries]
    truncated = len(queries) - len(limited)

    try:
        client = SearchClient()
        results = await client.search_reddit_multiple(limited, params.date_after)
        total_results = sum(len(items) for items in results.values())

        if total_results == 0:
            return ToolResponse(
                content=format_error(
                    "NO_RESULTS",
                    f"Zero Reddit results across all {len(limited)} queries. Your search terms "
                    "may be too specific, misspelled, or the topic has no Reddit coverage.",
                    tool_name="search_reddit",
                    how_to_fix=[
                        "Broaden your queries — replace multi-word phrases with single keywords "
                        '(e.g., "best React state management library 2025" → "React state management")',
                        'Double-check spelling of technical terms (e.g., "PostgreSQL" not "PostgressQL")',
                        "Remove the date_after filter if you used one — it may be filtering out all results",
                        f"Call search_reddit again NOW with {max(3, len(limited))} simplified, broader "
                        "queries targeting the same topic from different angles",
                    ],
                    alternatives=[
                        'web_search(keywords=["topic best practices", "topic guide", "topic '
                        'recommendations 2025"]) — Reddit had nothing, so pivot to the broader web',
                        "scrape_links(urls=[...any URLs you already have...], use_llm=true) — scrape "
                        "URLs from earlier searches instead of waiting",
                        'deep_research(questions=[{question: "What are the key findings about [topic]?"}]) '
                        "— use AI research to synthesize what you need",
                    ],
                ),
                metadata={"total_queries": len(limited), "total_results": 0},
                is_error=True,
            )

        aggregation = aggregate_and_rank_reddit(results, MIN_CONSENSUS_POSTS)
        content = generate_reddit_enhanced_output(aggregation, limited, results)
        if truncated:
            content = (
                f"> *Only the first {SEARCH.max_reddit_queries} queries were searched; "
                f"{truncated} extra queries were ignored.*\n\n{content}"
            )

        logger.info(
            f"Reddit search: {total_results} results, {aggregation.total_unique_urls} unique posts"
        )
        return ToolResponse(
            content=content,
            metadata={
                "total_queries": len(limited),
                "total_results": total_results,
                "total_unique_posts": aggregation.total_unique_urls,
                "consensus_post_count": len(aggregation.consensus_urls),
                "frequency_threshold": aggregation.frequency_threshold,
                "queries_truncated": truncated,
                "duplicate_queries_removed": duplicates,
            },
        )

    except Exception as e:
        error = classify_error(e)
        logger.error(f"search_reddit: {error.message}")
        return ToolResponse(
            content=format_error(
                error.code,
                f"search_reddit failed: {error.message}",
                tool_name="search_reddit",
                retryable=error.retryable,
                how_to_fix=[
                    "Verify SERPER_API_KEY is set correctly in your environment variables",
                    "This is a temporary error — call search_reddit again with the same queries in 3 seconds"
                    if error.retryable
                    else "Check the API key and fix configuration before retrying",
                ],
                alternatives=[
                    'web_search(keywords=["topic recommendations", "topic best practices"]) — '
                    "same API but different endpoint, may still work",
                    'deep_research(questions=[{question: "What does the community recommend for '
                    '[topic]?"}]) — uses OpenRouter, will work even if Serper is down',
                ],
            ),
            metadata={"total_queries": len(limited), "error_code": error.code.value},
            is_error=True,
        )


# ══════════════════════════════════════════════════════════════════════════════
# get_reddit_post
# ══════════════════════════════════════════════════════════════════════════════


def _post_bounds_error(count: int) -> Optional[ToolResponse]:
    if count < REDDIT.min_posts:
        deficit = REDDIT.min_posts - count
        content = format_error(
            "MIN_POSTS",
            f"You sent {count} Reddit URL(s) but the minimum is {REDDIT.min_posts}. "
            f"You need {deficit} more URL(s).",
            tool_name="get_reddit_post",
            how_to_fix=[
                f"You're only {deficit} URL(s) short! Run search_reddit first to find more posts, "
                f"then come back with {REDDIT.min_posts}+ URLs",
                'Call: search_reddit(queries=["topic discussion", "topic recommendations", '
                '"topic experiences"]) — this returns Reddit post URLs you can use',
                "Then call get_reddit_post again with the original URL(s) PLUS the new ones",
            ],
            alternatives=[
                f'search_reddit(queries=["topic discussion", "topic recommendations"]) — find '
                f"{deficit}+ more Reddit posts, then call get_reddit_post with ALL URLs combined",
                'web_search(keywords=["topic site:reddit.com"]) — find Reddit posts via web search',
            ],
        )
    elif count > REDDIT.max_posts:
        excess = count - REDDIT.max_posts
        batches = -(-count // REDDIT.max_posts)
        content = format_error(
            "MAX_POSTS",
            f"You sent {count} URLs but the maximum is {REDDIT.max_posts} per call. "
            f"You have {excess} too many.",
            tool_name="get_reddit_post",
            how_to_fix=[
                f"Split into {batches} separate calls of ~{-(-count // batches)} URLs each, "
                "then combine the results",
                f"Or remove the {excess} least-relevant URLs and call this tool again with the "
                f"top {REDDIT.max_posts}",
            ],
        )
    else:
        return None
    return ToolResponse(
        content=content,
        metadata={"total_posts": count, "successful": 0, "failed": count},
        is_error=True,
    )


async def handle_get_reddit_posts(params: GetRedditPostInput) -> ToolResponse:
    """Fetch Reddit posts with comments, optionally LLM-digested. Never raises."""
    urls = params.urls
    bounds_error = _post_bounds_error(len(urls))
    if bounds_error:
        return bounds_error

    try:
        allocation = calculate_comment_allocation(len(urls))
        comments_per_post = (
            (params.max_comments or allocation.per_post_capped) if params.fetch_comments else 0
        )
        total_batches = -(-len(urls) // REDDIT.batch_size)

        client = RedditClient()
        batch = await client.batch_get_posts(urls, comments_per_post, params.fetch_comments)

        llm_processor = create_llm_processor() if params.use_llm else None
        tokens_per_url = (
            calculate_token_allocation(len(urls), TOKEN_BUDGETS.research) if params.use_llm else 0
        )
        instruction = (
            enhance_extraction_instruction(params.what_to_extract) if params.use_llm else None
        )

        fetched = [(url, outcome) for url, outcome in batch.results.items()]
        successful = sum(1 for _, outcome in fetched if isinstance(outcome, PostResult))
        failed = len(fetched) - successful
        llm_errors = 0

        async def render(item, index: int) -> str:
            nonlocal llm_errors
            url, outcome = item
            if not isinstance(outcome, PostResult):
                return f"## ❌ Failed: {url}\n\n_{outcome}_"

            post_content = format_post(outcome, params.fetch_comments)
            if llm_processor is None:
                return post_content

            logger.info(f"[{index + 1}/{len(urls)}] Applying LLM extraction to {url}")
            llm_result = await process_content_with_llm(
                post_content, instruction, tokens_per_url, llm_processor
            )
            if not llm_result.processed:
                llm_errors += 1
                logger.warning(
                    f"[{index + 1}/{len(urls)}] LLM extraction failed: {llm_result.error or 'unknown'}"
                )
                return post_content
            return f"## LLM Analysis: {outcome.post.title}\n\n{_post_stats(outcome)}\n\n{llm_result.content}"

        contents = await pmap(fetched, render, REDDIT.llm_concurrency)

        header = format_batch_header(
            "Reddit Posts",
            total_items=len(urls),
            successful=successful,
            failed=failed,
            tokens_per_item=tokens_per_url if params.use_llm else None,
            batches=total_batches,
            extras={"Comments/post": comments_per_post} if params.fetch_comments else None,
        )

        status: List[str] = []
        if batch.rate_limit_hits > 0:
            status.append(f"⚠️ {batch.rate_limit_hits} rate limit retries")
        if params.use_llm and llm_processor is None:
            status.append("⚠️ LLM unavailable (OPENROUTER_API_KEY not set)")
        elif llm_errors > 0:
            status.append(f"⚠️ {llm_errors} LLM extraction failures")
        summary = header + ("\n" + " | ".join(status) if status else "")

        next_steps: List[str] = []
        if successful:
            next_steps += [
                "VERIFY WHAT REDDIT SAYS: Reddit comments are opinions, not facts. Cross-check the "
                'top claims: web_search(keywords=["specific claim from comments", "topic official '
                'benchmarks", "topic documentation"])',
                "FOLLOW THE LINKS: Comments above likely mention tools, blog posts, or docs. Scrape "
                "them: scrape_links(urls=[...URLs from comments...], use_llm=true, "
                'what_to_extract="Extract evidence | data | recommendations | benchmarks")',
            ]
        next_steps.append(
            "MISSING PERSPECTIVES? Look at the subreddits above. Are you only seeing one "
            'community\'s view? search_reddit(queries=["topic criticism", "topic alternatives"]) '
            "— a single subreddit is an echo chamber."
        )
        if successful:
            next_steps.append(
                'ONLY THEN SYNTHESIZE: deep_research(questions=[{question: "Based on verified Reddit '
                'community findings..."}]) — synthesize AFTER verifying claims and scraping links.'
            )
        if failed:
            next_steps.append(
                f"RETRY FAILURES: {failed} post(s) failed to fetch. Try them individually, or use "
                "scrape_links(urls=[...failed URLs...], use_llm=true) as a direct HTTP fallback."
            )

        logger.info(f"Reddit posts: {successful}/{len(urls)} fetched")
        return ToolResponse(
            content=format_success(
                f"Reddit Posts Fetched ({successful}/{len(urls)})",
                summary,
                "\n\n---\n\n".join(contents),
                next_steps,
            ),
            metadata={
                "total_posts": len(urls),
                "successful": successful,
                "failed": failed,
                "comments_per_post": comments_per_post,
                "batches_processed": batch.batches_processed,
                "rate_limit_hits": batch.rate_limit_hits,
                "llm_errors": llm_errors,
            },
        )

    except Exception as e:
        error = classify_error(e)
        logger.error(f"get_reddit_post: {error.message}")
        return ToolResponse(
            content=format_error(
                error.code,
                f"get_reddit_post failed: {error.message}",
                tool_name="get_reddit_post",
                retryable=error.retryable,
                how_to_fix=[
                    "Verify REDDIT_CLIENT_ID and REDDIT_CLIENT_SECRET are set in environment variables",
                    "Create a Reddit app at https://www.reddit.com/prefs/apps (select \"script\" type) "
                    "if you haven't already",
                    "This is temporary — call get_reddit_post again with the same URLs in 3 seconds"
                    if error.retryable
                    else "Fix the credentials and retry",
                ],
                alternatives=[
                    "scrape_links(urls=[...the same Reddit URLs...], use_llm=true) — scrape Reddit "
                    "pages directly as a fallback (no Reddit API credentials needed)",
                    'web_search(keywords=["topic reddit discussion"]) — find indexed Reddit content',
                ],
            ),
            metadata={"total_posts": len(urls), "error_code": error.code.value},
            is_error=True,
        )
