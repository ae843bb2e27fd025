"""Configuration enums for Research Powerpack MCP."""

from enum import Enum


class ReasoningEffort(str, Enum):
    """Reasoning depth requested from research models."""

    LOW = "low"  # Fast, shallow reasoning
    MEDIUM = "medium"
    HIGH = "high"  # Default, slowest and most thorough


class ScrapeMode(str, Enum):
    """Scrape.do fetch modes, in escalation order."""

    BASIC = "basic"
    RENDER = "render"  # Headless browser rendering
    SUPER = "super"  # Residential proxy network
