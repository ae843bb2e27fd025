"""
Tool handlers for the Research Powerpack MCP.

Each handler validates batch bounds, calls upstream clients and renders a
``ToolResponse``. Handlers never raise.
"""

from handlers.reddit import handle_get_reddit_posts, handle_search_reddit
from handlers.research import handle_deep_research
from handlers.scrape import handle_scrape_links
from handlers.search import handle_web_search

__all__ = [
    "handle_web_search",
    "handle_search_reddit",
    "handle_get_reddit_posts",
    "handle_scrape_links",
    "handle_deep_research",
]
