"""
URL aggregation and consensus ranking across parallel searches.

When an agent fires many keyword variations at once, the same page tends to
resurface across queries. Each appearance earns the click-through-rate weight
of its position, and the number of distinct queries a URL appeared under is
its frequency. URLs are ordered by total weighted score, then frequency, then
best position.

The consensus threshold adapts to the result set: we start at 3 queries and
lower to 2, then 1, until at least ``min_consensus`` URLs qualify.
"""

import re
import urllib.parse
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from core.config import CTR_WEIGHTS
from models.results import KeywordSearchResult, RedditSearchResult

__all__ = [
    "RankedUrl",
    "AggregationResult",
    "normalize_url",
    "get_position_score",
    "aggregate_and_rank",
    "build_url_lookup",
    "lookup_url",
    "mark_consensus",
    "generate_enhanced_output",
    "extract_reddit_post_id",
    "extract_subreddit",
    "aggregate_and_rank_reddit",
    "generate_reddit_enhanced_output",
]

CONSENSUS_THRESHOLDS = (3, 2, 1)
MAX_CONSENSUS_SHOWN = 20
MAX_QUERIES_LISTED = 5

_REDDIT_POST_ID = re.compile(r"/comments/([a-z0-9]+)", re.IGNORECASE)
_SUBREDDIT = re.compile(r"reddit\.com/r/([^/?#]+)", re.IGNORECASE)

# ══════════════════════════════════════════════════════════════════════════════
# Data Classes
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class RankedUrl:
    url: str
    title: str
    snippet: str = ""
    positions: List[int] = field(default_factory=list)
    queries: List[str] = field(default_factory=list)
    score: float = 0.0
    rank: int = 0
    is_consensus: bool = False
    date: Optional[str] = None

    @property
    def frequency(self) -> int:
        return len(self.queries)

    @property
    def best_position(self) -> int:
        return min(self.positions) if self.positions else 0

    @property
    def average_position(self) -> float:
        if not self.positions:
            return 0.0
        return sum(self.positions) / len(self.positions)


@dataclass
class AggregationResult:
    ranked_urls: List[RankedUrl]
    total_unique_urls: int
    total_keywords: int
    frequency_threshold: int
    threshold_note: Optional[str] = None

    @property
    def consensus_urls(self) -> List[RankedUrl]:
        return [u for u in self.ranked_urls if u.is_consensus]


# ══════════════════════════════════════════════════════════════════════════════
# Scoring Primitives
# ══════════════════════════════════════════════════════════════════════════════


def normalize_url(url: str) -> str:
    """Reduce a URL to a comparison key (host without www, path without slash)."""
    raw = (url or "").strip()
    try:
        parts = urllib.parse.urlsplit(raw)
    except ValueError:
        return raw.lower()

    if not parts.netloc:
        return raw.lower().rstrip("/")

    host = parts.netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    path = parts.path.rstrip("/")
    key = f"{host}{path}"
    if parts.query:
        key = f"{key}?{parts.query}"
    return key


def get_position_score(position: int) -> float:
    """CTR weight for positions 1-10, linear decay beyond."""
    if 1 <= position <= 10:
        return CTR_WEIGHTS.get(position, 0.0)
    return max(0.0, 10 - (position - 10) * 0.5)


def mark_consensus(frequency: int) -> str:
    if frequency >= 3:
        return "✓✓✓"
    if frequency == 2:
        return "✓✓"
    return "✓"


def _select_threshold(
    ranked: Sequence[RankedUrl], min_consensus: int
) -> Tuple[int, Optional[str]]:
    for threshold in CONSENSUS_THRESHOLDS:
        qualifying = sum(1 for u in ranked if u.frequency >= threshold)
        if qualifying >= min_consensus or threshold == 1:
            note = None
            if threshold < CONSENSUS_THRESHOLDS[0]:
                note = (
                    f"Frequency threshold lowered to {threshold}: fewer than "
                    f"{min_consensus} URLs appeared in {CONSENSUS_THRESHOLDS[0]}+ searches."
                )
            return threshold, note
    return 1, None


def _rank(
    grouped: Iterable[Tuple[str, Sequence[Tuple[str, RankedUrl, int]]]],
) -> List[RankedUrl]:
    """Merge per-query hits keyed by normalized identity into ranked entries.

    ``grouped`` yields (query, [(key, candidate, position), ...]).
    """
    buckets: Dict[str, RankedUrl] = {}
    for query, hits in grouped:
        seen: set = set()
        for key, candidate, position in hits:
            entry = buckets.setdefault(key, candidate)
            if key in seen:
                continue
            seen.add(key)
            entry.positions.append(position)
            entry.queries.append(query)
            entry.score += get_position_score(position)
            if not entry.snippet and candidate.snippet:
                entry.snippet = candidate.snippet

    ranked = sorted(
        buckets.values(),
        key=lambda u: (-u.score, -u.frequency, u.best_position),
    )
    for index, entry in enumerate(ranked, start=1):
        entry.rank = index
        entry.score = round(entry.score, 2)
    return ranked


def _finalize(
    ranked: List[RankedUrl], total_queries: int, min_consensus: int
) -> AggregationResult:
    threshold, note = _select_threshold(ranked, min_consensus)
    for entry in ranked:
        entry.is_consensus = entry.frequency >= threshold
    return AggregationResult(
        ranked_urls=ranked,
        total_unique_urls=len(ranked),
        total_keywords=total_queries,
        frequency_threshold=threshold,
        threshold_note=note,
    )


# ══════════════════════════════════════════════════════════════════════════════
# Web Search Aggregation
# ══════════════════════════════════════════════════════════════════════════════


def aggregate_and_rank(
    searches: Sequence[KeywordSearchResult], min_consensus_urls: int = 5
) -> AggregationResult:
    """Aggregate web search results from many keywords into one ranking."""

    def hits(search: KeywordSearchResult) -> List[Tuple[str, RankedUrl, int]]:
        out = []
        for index, result in enumerate(search.results):
            if not result.link:
                continue
            candidate = RankedUrl(
                url=result.link,
                title=result.title or result.link,
                snippet=result.snippet or "",
                date=result.date,
            )
            out.append((normalize_url(result.link), candidate, result.position or index + 1))
        return out

    ranked = _rank((s.keyword, hits(s)) for s in searches)
    return _finalize(ranked, len(searches), min_consensus_urls)


def build_url_lookup(ranked_urls: Iterable[RankedUrl]) -> Dict[str, RankedUrl]:
    return {normalize_url(u.url): u for u in ranked_urls}


def lookup_url(url: str, lookup: Dict[str, RankedUrl]) -> Optional[RankedUrl]:
    return lookup.get(normalize_url(url))


def _format_queries(queries: Sequence[str]) -> str:
    shown = ", ".join(f"`{q}`" for q in queries[:MAX_QUERIES_LISTED])
    remaining = len(queries) - MAX_QUERIES_LISTED
    if remaining > 0:
        shown += f" (+{remaining} more)"
    return shown


def _shorten(text: str, limit: int) -> str:
    text = " ".join((text or "").split())
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def generate_enhanced_output(
    consensus_urls: Sequence[RankedUrl],
    keywords: Sequence[str],
    total_unique_urls: int,
    frequency_threshold: int,
    threshold_note: Optional[str] = None,
) -> str:
    """Render the consensus section that opens the web search report."""
    lines = [
        f"## The Perfect Search Results (Aggregated from {len(keywords)} Queries)",
        "",
    ]
    if threshold_note:
        lines += [f"> *{threshold_note}*", ""]

    lines += [
        f"**{len(consensus_urls)} consensus URLs** appeared in ≥{frequency_threshold} "
        f"searches (out of {total_unique_urls} unique URLs).",
        "",
    ]

    for entry in consensus_urls[:MAX_CONSENSUS_SHOWN]:
        lines.append(f"### {entry.rank}. [{entry.title}]({entry.url})")
        lines.append(
            f"**Score:** {entry.score:.1f} | "
            f"**Consensus:** {mark_consensus(entry.frequency)} "
            f"({entry.frequency}/{len(keywords)} searches) | "
            f"**Best position:** #{entry.best_position} | "
            f"**Avg position:** {entry.average_position:.1f}"
        )
        if entry.snippet:
            lines.append(f"> {_shorten(entry.snippet, 200)}")
        lines.append(f"*Found via:* {_format_queries(entry.queries)}")
        lines.append("")

    hidden = len(consensus_urls) - MAX_CONSENSUS_SHOWN
    if hidden > 0:
        lines += [f"*{hidden} more consensus URLs not shown.*", ""]

    return "\n".join(lines)


# ══════════════════════════════════════════════════════════════════════════════
# Reddit Aggregation
# ══════════════════════════════════════════════════════════════════════════════


def extract_reddit_post_id(url: str) -> Optional[str]:
    match = _REDDIT_POST_ID.search(url or "")
    return match.group(1).lower() if match else None


def extract_subreddit(url: str) -> Optional[str]:
    match = _SUBREDDIT.search(url or "")
    return match.group(1) if match else None


def _reddit_key(url: str) -> str:
    post_id = extract_reddit_post_id(url)
    return f"reddit:{post_id}" if post_id else normalize_url(url)


def aggregate_and_rank_reddit(
    results_by_query: Dict[str, List[RedditSearchResult]],
    min_consensus_posts: int = 3,
) -> AggregationResult:
    """Aggregate Reddit search hits, merging the same post across URL variants."""

    def hits(items: List[RedditSearchResult]) -> List[Tuple[str, RankedUrl, int]]:
        return [
            (
                _reddit_key(item.url),
                RankedUrl(url=item.url, title=item.title, snippet=item.snippet, date=item.date),
                index + 1,
            )
            for index, item in enumerate(items)
            if item.url
        ]

    ranked = _rank((query, hits(items)) for query, items in results_by_query.items())
    return _finalize(ranked, len(results_by_query), min_consensus_posts)


def generate_reddit_enhanced_output(
    aggregation: AggregationResult,
    queries: Sequence[str],
    results_by_query: Dict[str, List[RedditSearchResult]],
    max_per_query: int = 10,
) -> str:
    """Render consensus posts, per-query hits and follow-up guidance."""
    lines = [
        f"## 🔥 Reddit Discussions ({aggregation.total_unique_urls} unique posts "
        f"from {len(queries)} queries)",
        "",
    ]
    if aggregation.threshold_note:
        lines += [f"> *{aggregation.threshold_note}*", ""]

    consensus = aggregation.consensus_urls
    lines += [
        f"### 🏆 Top Posts (appeared in ≥{aggregation.frequency_threshold} queries)",
        "",
    ]
    for entry in consensus[:MAX_CONSENSUS_SHOWN]:
        subreddit = extract_subreddit(entry.url)
        where = f"r/{subreddit} | " if subreddit else ""
        lines.append(
            f"{entry.rank}. **[{entry.title}]({entry.url})** — {where}"
            f"Score: {entry.score:.1f} | Consensus: {mark_consensus(entry.frequency)} "
            f"({entry.frequency} queries)"
        )
        if entry.snippet:
            lines.append(f"   - {_shorten(entry.snippet, 150)}")
    hidden = len(consensus) - MAX_CONSENSUS_SHOWN
    if hidden > 0:
        lines.append(f"\n*{hidden} more top posts not shown.*")

    lines += ["", "---", "", "## 📋 Results by Query", ""]
    for index, query in enumerate(queries, start=1):
        lines.append(f'### Query {index}: "{query}"')
        lines.append("")
        items = results_by_query.get(query) or []
        if not items:
            lines.append("_No results_")
        for position, item in enumerate(items[:max_per_query], start=1):
            subreddit = extract_subreddit(item.url)
            suffix = f" — r/{subreddit}" if subreddit else ""
            if item.date:
                suffix += f" ({item.date})"
            lines.append(f"{position}. [{item.title}]({item.url}){suffix}")
        lines.append("")

    top_urls = ", ".join(f'"{u.url}"' for u in (consensus or aggregation.ranked_urls)[:10])
    next_steps = [
        f"FETCH THE THREADS: get_reddit_post(urls=[{top_urls}]) — titles and snippets "
        "are not opinions. The real insight lives in the comments.",
        "WIDEN THE NET: if one subreddit dominates the list above, run search_reddit "
        'again with different angles ("topic criticism", "topic alternatives", '
        '"topic experience") to avoid an echo chamber.',
        'CROSS-CHECK: web_search(keywords=["topic documentation", "topic benchmarks"]) '
        "— community opinion is a signal, not proof.",
    ]
    lines += ["---", "", "**Next Steps:**"]
    lines += [f"{i}. {step}" for i, step in enumerate(next_steps, start=1)]

    return "\n".join(lines)
