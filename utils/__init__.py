"""
Formatting helpers for tool output.

All utilities are stateless and lightweight.
"""

from utils.formatting import (
    format_batch_header,
    format_duration,
    format_error,
    format_number,
    format_success,
    truncate_text,
)
from utils.markdown import MarkdownCleaner, remove_meta_tags

__all__ = [
    # Reports
    "format_success",
    "format_error",
    "format_batch_header",
    # Helpers
    "format_duration",
    "format_number",
    "truncate_text",
    # Markdown
    "MarkdownCleaner",
    "remove_meta_tags",
]
