"""Reddit API integration.

Built on redditwarp's async client with application-only credentials; the
library owns the OAuth token and its renewal. Submissions and comment trees
are fetched through the shared retry helper, and comment trees are flattened
depth-first into a list the formatter can indent.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from redditwarp.ASYNC import Client

from core.concurrency import chunked, pmap
from core.config import REDDIT, parse_env
from core.errors import ErrorCode, MissingCredentialsError, classify_error
from core.reliability import resilient_api_call
from models.results import BatchPostResult, PostResult, RedditComment, RedditPost

COMMENT_DEPTH = 10

logger = logging.getLogger(__name__)

_POST_URL = re.compile(r"reddit\.com/r/([^/]+)/comments/([a-z0-9]+)", re.IGNORECASE)
_SHORT_URL = re.compile(r"redd\.it/([a-z0-9]+)", re.IGNORECASE)
_REMOVED_BODIES = {"[deleted]", "[removed]"}


def parse_post_url(url: str) -> Tuple[Optional[str], str]:
    """
    Extract ``(subreddit, post_id)`` from a Reddit post URL.

    Short ``redd.it`` links carry no subreddit, so it comes back as None.

    Raises:
        ValueError: If the URL is not a Reddit post URL
    """
    match = _POST_URL.search(url or "")
    if match:
        return match.group(1), match.group(2)
    match = _SHORT_URL.search(url or "")
    if match:
        return None, match.group(1)
    raise ValueError(f"Not a Reddit post URL: {url}")


def _parse_submission(submission: Any, fallback_url: str) -> RedditPost:
    subreddit = getattr(submission, "subreddit", None)
    created = getattr(submission, "created_at", None)
    flair = getattr(submission, "flair", None)

    permalink = getattr(submission, "permalink", "") or ""
    if permalink.startswith("/"):
        permalink = f"https://www.reddit.com{permalink}"

    # Text posts carry a body, link posts a target URL
    body = getattr(submission, "body", None)
    link = getattr(submission, "link", None)
    if not body and link:
        body = f"Link: {link}"

    return RedditPost(
        title=getattr(submission, "title", "") or "",
        author=getattr(submission, "author_display_name", None) or "[deleted]",
        subreddit=getattr(subreddit, "name", "") or "",
        body=body or "",
        score=getattr(submission, "score", 0) or 0,
        comment_count=getattr(submission, "comment_count", 0) or 0,
        url=permalink or fallback_url,
        created_utc=created.timestamp() if created is not None else None,
        flair=getattr(flair, "text", None) or None,
    )


def flatten_comments(nodes: Sequence[Any], op_author: str, limit: int) -> List[RedditComment]:
    """Walk comment tree nodes depth-first, keeping at most ``limit`` comments."""
    flat: List[RedditComment] = []

    def walk(children: Sequence[Any], depth: int) -> None:
        for node in children:
            if len(flat) >= limit:
                return
            comment = node.value
            body = (getattr(comment, "body", "") or "").strip()
            author = getattr(comment, "author_display_name", None) or "[deleted]"
            if body and body not in _REMOVED_BODIES:
                flat.append(
                    RedditComment(
                        author=author,
                        body=body,
                        score=getattr(comment, "score", 0) or 0,
                        depth=depth,
                        is_op=author == op_author and author != "[deleted]",
                    )
                )
            walk(getattr(node, "children", None) or [], depth + 1)

    if limit > 0:
        walk(nodes, 0)
    return flat


class RedditClient:
    """Reddit client using application-only credentials."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        retry_delays: Sequence[float] = REDDIT.retry_delays,
    ):
        env = parse_env()
        self.client_id = client_id or env.reddit_client_id
        self.client_secret = client_secret or env.reddit_client_secret
        if not self.client_id or not self.client_secret:
            raise MissingCredentialsError("REDDIT_CLIENT_ID/REDDIT_CLIENT_SECRET")
        self.retry_delays = tuple(retry_delays)
        self.rate_limit_hits = 0

    def _open(self) -> Client:
        return Client(self.client_id, self.client_secret)

    def _count_rate_limit(self, attempt: int, error: BaseException) -> None:
        if classify_error(error).code == ErrorCode.RATE_LIMITED:
            self.rate_limit_hits += 1

    async def _call(self, func, *args, **kwargs) -> Any:
        return await resilient_api_call(
            func,
            *args,
            delays=self.retry_delays,
            on_retry=self._count_rate_limit,
            **kwargs,
        )

    async def get_post(
        self,
        url: str,
        max_comments: int = 100,
        fetch_comments: bool = True,
        reddit: Optional[Client] = None,
    ) -> PostResult:
        """Fetch one post and up to ``max_comments`` of its comments."""
        if reddit is None:
            async with self._open() as own_client:
                return await self.get_post(url, max_comments, fetch_comments, own_client)

        _, post_id = parse_post_url(url)
        idn = int(post_id, 36)
        limit = max_comments if fetch_comments else 0

        submission = await self._call(reddit.p.submission.fetch, idn)
        post = _parse_submission(submission, url)

        comments: List[RedditComment] = []
        if limit > 0:
            tree = await self._call(
                reddit.p.comment_tree.fetch,
                idn,
                sort="top",
                limit=limit,
                depth=COMMENT_DEPTH,
            )
            comments = flatten_comments(getattr(tree, "children", None) or [], post.author, limit)
        return PostResult(post=post, comments=comments, allocated_comments=limit)

    async def batch_get_posts(
        self,
        urls: Sequence[str],
        max_comments: int = 100,
        fetch_comments: bool = True,
    ) -> BatchPostResult:
        """Fetch many posts; failures are returned per URL, not raised."""
        self.rate_limit_hits = 0
        results: Dict[str, Any] = {}
        batches = chunked(list(urls), REDDIT.batch_size)

        async with self._open() as reddit:

            async def run(url: str, index: int) -> Any:
                try:
                    return await self.get_post(url, max_comments, fetch_comments, reddit)
                except Exception as e:
                    logger.warning(f"Reddit fetch failed for {url}: {e}")
                    return e

            for number, batch in enumerate(batches, start=1):
                logger.info(f"Reddit batch {number}/{len(batches)} ({len(batch)} posts)")
                for url, outcome in zip(batch, await pmap(batch, run, REDDIT.max_concurrent)):
                    results[url] = outcome

        return BatchPostResult(
            results=results,
            batches_processed=len(batches),
            total_posts=len(urls),
            rate_limit_hits=self.rate_limit_hits,
        )
