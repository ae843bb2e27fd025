"""
Core building blocks shared by every tool.

    Configuration     Environment, limits, token budgets, capabilities
    Errors            Error codes and classification of upstream failures
    Retry Logic       Fixed backoff schedules per upstream service
    Concurrency       Bounded parallel map and batching
    Budgets           Token and comment allocation across batch items
    Ranking           CTR-weighted consensus ranking of search results
"""

from core.budget import (
    calculate_comment_allocation,
    calculate_token_allocation,
)
from core.concurrency import (
    chunked,
    pmap,
)
from core.config import (
    get_capabilities,
    get_missing_env_message,
    parse_env,
)
from core.errors import (
    ErrorCode,
    StructuredError,
    classify_error,
)
from core.ranking import (
    aggregate_and_rank,
    aggregate_and_rank_reddit,
)
from core.reliability import (
    resilient_api_call,
)

__all__ = [
    # Configuration
    "parse_env",
    "get_capabilities",
    "get_missing_env_message",
    # Errors
    "ErrorCode",
    "StructuredError",
    "classify_error",
    # Reliability
    "resilient_api_call",
    # Concurrency
    "pmap",
    "chunked",
    # Budgets
    "calculate_token_allocation",
    "calculate_comment_allocation",
    # Ranking
    "aggregate_and_rank",
    "aggregate_and_rank_reddit",
]
