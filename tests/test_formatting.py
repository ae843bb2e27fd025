"""Unit tests for utils/formatting.py."""

from core.errors import ErrorCode
from utils.formatting import (
    format_batch_header,
    format_duration,
    format_error,
    format_number,
    format_success,
    truncate_text,
)


class TestHelpers:
    def test_format_number(self):
        assert format_number(32000) == "32,000"
        assert format_number("n/a") == "n/a"
        assert format_number(True) == "True"

    def test_format_duration(self):
        assert format_duration(250) == "250ms"
        assert format_duration(1500) == "1.5s"
        assert format_duration(125000) == "2m 5s"

    def test_truncate_text(self):
        assert truncate_text("short", 10) == "short"
        assert truncate_text("a" * 20, 10) == "aaaaaaa..."
        assert len(truncate_text("a" * 200, 150)) == 150


class TestFormatSuccess:
    """Test suite for the 70/20/10 success layout."""

    def test_sections_in_order(self):
        output = format_success(
            "Done",
            "Summary here",
            "Data here",
            next_steps=["First", "Second"],
            metadata={"Token budget": 32000, "Execution time": "1.2s"},
        )
        assert output.startswith("# ✅ Done")
        assert output.index("Summary here") < output.index("Data here")
        assert output.index("Data here") < output.index("**Next Steps:**")
        assert "1. First\n2. Second" in output
        assert output.rstrip().endswith("*Token budget: 32,000 | Execution time: 1.2s*")

    def test_optional_sections_omitted(self):
        output = format_success("Done", "Summary", "Data")
        assert "Next Steps" not in output
        assert not output.rstrip().endswith("*")


class TestFormatError:
    def test_full_error(self):
        output = format_error(
            ErrorCode.RATE_LIMITED,
            "Too many requests",
            tool_name="web_search",
            retryable=True,
            how_to_fix=["Wait", "Retry"],
            alternatives=["search_reddit(...)"],
        )
        assert output.startswith("# ❌ web_search failed")
        assert "**Error code:** `RATE_LIMITED`" in output
        assert "🔄 **Retryable:**" in output
        assert "1. Wait\n2. Retry" in output
        assert "- search_reddit(...)" in output

    def test_plain_code_without_tool(self):
        output = format_error("NO_URLS", "Empty")
        assert output.startswith("# ❌ Error")
        assert "`NO_URLS`" in output
        assert "Retryable" not in output


class TestFormatBatchHeader:
    def test_header_lines(self):
        header = format_batch_header(
            "Scraped Content",
            total_items=4,
            successful=3,
            failed=1,
            tokens_per_item=8000,
            batches=1,
            extras={"Credits used": 12},
        )
        assert header.splitlines() == [
            "**Scraped Content**",
            "- Items: 4 | ✅ 3 succeeded | ❌ 1 failed",
            "- Token allocation: 8,000 tokens/item",
            "- Batches: 1",
            "- Credits used: 12",
        ]
