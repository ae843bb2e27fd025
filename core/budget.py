"""Token and comment budget allocation across batch items."""

from dataclasses import dataclass

from core.config import REDDIT

__all__ = [
    "CommentAllocation",
    "calculate_token_allocation",
    "calculate_comment_allocation",
]


def calculate_token_allocation(count: int, budget: int) -> int:
    """Split a fixed token budget evenly across ``count`` items."""
    if count <= 0:
        return budget
    return budget // count


@dataclass(frozen=True)
class CommentAllocation:
    total_budget: int
    per_post_base: int
    per_post_capped: int


def calculate_comment_allocation(post_count: int) -> CommentAllocation:
    """Share the Reddit comment budget across posts, capped per post."""
    per_post = calculate_token_allocation(post_count, REDDIT.max_comment_budget)
    return CommentAllocation(
        total_budget=REDDIT.max_comment_budget,
        per_post_base=per_post,
        per_post_capped=min(per_post, REDDIT.max_comments_per_post),
    )
