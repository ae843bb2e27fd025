"""HTML to Markdown cleaning for scraped pages."""

import re

from bs4 import BeautifulSoup, Comment
from markdownify import markdownify

__all__ = ["MarkdownCleaner", "remove_meta_tags"]

NON_CONTENT_TAGS = ["script", "style", "nav", "footer", "aside", "noscript"]

_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_META_TAGS = re.compile(r"<(?:meta|link)\b[^>]*>\s*", re.IGNORECASE)
_FRONT_MATTER = re.compile(r"\A---\s*\n.*?\n---\s*\n", re.DOTALL)


class MarkdownCleaner:
    """Stateless converter; one module-level instance is enough."""

    def process_content(self, html_content: str) -> str:
        if not html_content or not isinstance(html_content, str):
            return html_content

        # Already markdown or plain text
        if "<" not in html_content:
            return html_content.strip()

        soup = BeautifulSoup(html_content, "html.parser")
        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()
        for element in soup(NON_CONTENT_TAGS):
            element.decompose()

        content = markdownify(str(soup), heading_style="ATX", bullets="-")
        content = _EXCESS_NEWLINES.sub("\n\n", content)
        return content.strip()


def remove_meta_tags(content: str) -> str:
    """Strip leftover meta/link tags and a leading front-matter block."""
    if not content:
        return content
    content = _FRONT_MATTER.sub("", content, count=1)
    content = _META_TAGS.sub("", content)
    return content.strip()
