"""Unit tests for core/ranking.py."""

import pytest

from core.ranking import (
    aggregate_and_rank,
    aggregate_and_rank_reddit,
    build_url_lookup,
    extract_reddit_post_id,
    extract_subreddit,
    generate_enhanced_output,
    generate_reddit_enhanced_output,
    get_position_score,
    lookup_url,
    mark_consensus,
    normalize_url,
)
from models.results import KeywordSearchResult, RedditSearchResult, SearchResult


def _search(keyword, links):
    return KeywordSearchResult(
        keyword=keyword,
        results=[
            SearchResult(title=f"Title {link}", link=link, snippet=f"About {link}", position=i)
            for i, link in enumerate(links, start=1)
        ],
    )


class TestNormalizeUrl:
    """Test suite for normalize_url."""

    def test_strips_www_scheme_and_trailing_slash(self):
        assert normalize_url("https://www.Example.com/Docs/") == "example.com/Docs"

    def test_http_and_https_match(self):
        assert normalize_url("http://example.com/a") == normalize_url("https://example.com/a/")

    def test_drops_fragment_keeps_query(self):
        assert normalize_url("https://example.com/a?x=1#section") == "example.com/a?x=1"

    def test_non_url_lowercased(self):
        assert normalize_url("Not A Url/") == "not a url"


class TestPositionScore:
    """Test suite for get_position_score."""

    def test_ctr_weights_for_top_ten(self):
        assert get_position_score(1) == 100.0
        assert get_position_score(2) == 60.0
        assert get_position_score(10) == 12.56

    def test_linear_decay_beyond_ten(self):
        assert get_position_score(12) == 9.0
        assert get_position_score(30) == 0.0

    def test_never_negative(self):
        assert get_position_score(100) == 0.0


class TestMarkConsensus:
    @pytest.mark.parametrize("frequency,mark", [(1, "✓"), (2, "✓✓"), (3, "✓✓✓"), (7, "✓✓✓")])
    def test_marks(self, frequency, mark):
        assert mark_consensus(frequency) == mark


class TestAggregateAndRank:
    """Test suite for aggregate_and_rank."""

    def test_frequency_counts_distinct_keywords(self):
        searches = [
            _search("a", ["https://x.com", "https://y.com"]),
            _search("b", ["https://www.x.com/", "https://z.com"]),
            _search("c", ["http://x.com"]),
        ]
        result = aggregate_and_rank(searches, min_consensus_urls=1)

        top = result.ranked_urls[0]
        assert top.url == "https://x.com"
        assert top.frequency == 3
        assert top.score == 300.0
        assert top.rank == 1
        assert result.total_unique_urls == 3
        assert result.total_keywords == 3

    def test_duplicate_within_one_keyword_counted_once(self):
        searches = [_search("a", ["https://x.com", "https://x.com/"])]
        result = aggregate_and_rank(searches, min_consensus_urls=1)
        assert result.ranked_urls[0].frequency == 1
        assert result.ranked_urls[0].score == 100.0

    def test_orders_by_score_then_frequency(self):
        searches = [
            _search("a", ["https://first.com", "https://second.com"]),
            _search("b", ["https://third.com", "https://second.com"]),
        ]
        result = aggregate_and_rank(searches, min_consensus_urls=1)
        urls = [u.url for u in result.ranked_urls]
        # second.com: 60 + 60 = 120 beats single 100s
        assert urls[0] == "https://second.com"
        assert set(urls[1:]) == {"https://first.com", "https://third.com"}

    def test_threshold_stays_at_three_when_enough_consensus(self):
        links = [f"https://site{i}.com" for i in range(5)]
        searches = [_search(k, links) for k in ("a", "b", "c")]
        result = aggregate_and_rank(searches, min_consensus_urls=5)
        assert result.frequency_threshold == 3
        assert result.threshold_note is None
        assert len(result.consensus_urls) == 5

    def test_threshold_lowers_with_note(self):
        searches = [
            _search("a", ["https://x.com", "https://y.com"]),
            _search("b", ["https://x.com", "https://z.com"]),
        ]
        result = aggregate_and_rank(searches, min_consensus_urls=1)
        assert result.frequency_threshold == 2
        assert "lowered to 2" in result.threshold_note
        assert [u.url for u in result.consensus_urls] == ["https://x.com"]

    def test_threshold_falls_back_to_one(self):
        searches = [_search("a", ["https://x.com"]), _search("b", ["https://y.com"])]
        result = aggregate_and_rank(searches, min_consensus_urls=5)
        assert result.frequency_threshold == 1
        assert len(result.consensus_urls) == 2

    def test_empty_searches(self):
        result = aggregate_and_rank([], min_consensus_urls=5)
        assert result.ranked_urls == []
        assert result.total_unique_urls == 0
        assert result.frequency_threshold == 1


class TestUrlLookup:
    def test_lookup_by_normalized_url(self):
        result = aggregate_and_rank([_search("a", ["https://www.x.com/page/"])])
        lookup = build_url_lookup(result.ranked_urls)
        assert lookup_url("http://x.com/page", lookup).url == "https://www.x.com/page/"
        assert lookup_url("https://unknown.com", lookup) is None


class TestGenerateEnhancedOutput:
    def test_renders_consensus_entries(self):
        searches = [_search(k, ["https://x.com"]) for k in ("a", "b", "c")]
        result = aggregate_and_rank(searches, min_consensus_urls=1)
        output = generate_enhanced_output(
            result.consensus_urls, ["a", "b", "c"], result.total_unique_urls, 3
        )
        assert "## The Perfect Search Results (Aggregated from 3 Queries)" in output
        assert "### 1. [Title https://x.com](https://x.com)" in output
        assert "✓✓✓ (3/3 searches)" in output
        assert "*Found via:* `a`, `b`, `c`" in output

    def test_includes_threshold_note(self):
        output = generate_enhanced_output([], ["a"], 0, 1, "Frequency threshold lowered to 1")
        assert "> *Frequency threshold lowered to 1*" in output


class TestReddit:
    """Test suite for Reddit aggregation."""

    def test_extract_post_id_and_subreddit(self):
        url = "https://www.reddit.com/r/Python/comments/AbC123/some_title/"
        assert extract_reddit_post_id(url) == "abc123"
        assert extract_subreddit(url) == "Python"
        assert extract_reddit_post_id("https://example.com") is None

    def test_same_post_merged_across_url_variants(self):
        results = {
            "q1": [RedditSearchResult("Post", "https://www.reddit.com/r/py/comments/abc/title/")],
            "q2": [RedditSearchResult("Post", "https://old.reddit.com/r/py/comments/abc/")],
        }
        aggregation = aggregate_and_rank_reddit(results, min_consensus_posts=1)
        assert aggregation.total_unique_urls == 1
        assert aggregation.ranked_urls[0].frequency == 2

    def test_output_lists_empty_queries_and_next_steps(self):
        results = {
            "q1": [RedditSearchResult("Post", "https://www.reddit.com/r/py/comments/abc/title/")],
            "q2": [],
        }
        aggregation = aggregate_and_rank_reddit(results)
        output = generate_reddit_enhanced_output(aggregation, ["q1", "q2"], results)
        assert "## 🔥 Reddit Discussions (1 unique posts from 2 queries)" in output
        assert '### Query 2: "q2"' in output
        assert "_No results_" in output
        assert 'get_reddit_post(urls=["https://www.reddit.com/r/py/comments/abc/title/"])' in output
