"""
Local file attachments for deep research questions.

Agents can attach source files to a question so the research model sees the
code being asked about. Files are read off the event loop, optionally sliced
to a line range, and rendered as numbered fenced code blocks.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from models import FileAttachment

__all__ = ["FileAttachmentService", "detect_language"]

logger = logging.getLogger(__name__)

MAX_FILE_BYTES = 1_000_000

LANGUAGE_BY_EXTENSION = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "jsx",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".kt": "kotlin",
    ".rb": "ruby",
    ".php": "php",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".swift": "swift",
    ".sh": "bash",
    ".sql": "sql",
    ".html": "html",
    ".css": "css",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".md": "markdown",
    ".xml": "xml",
}


def detect_language(path: str) -> str:
    return LANGUAGE_BY_EXTENSION.get(Path(path).suffix.lower(), "")


def _read_text(path: Path) -> str:
    if path.stat().st_size > MAX_FILE_BYTES:
        raise ValueError(f"file is larger than {MAX_FILE_BYTES:,} bytes")
    return path.read_text(encoding="utf-8", errors="replace")


class FileAttachmentService:
    """Render attachments as markdown appended to a research question."""

    async def format_attachment(self, attachment: FileAttachment, index: int) -> str:
        path = Path(attachment.path).expanduser()
        header = [f"## {index}. `{attachment.path}`"]
        if attachment.description:
            header.append(f"*{attachment.description}*")

        try:
            text = await asyncio.to_thread(_read_text, path)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read attachment {attachment.path}: {e}")
            return "\n".join(header + ["", f"❌ Could not read file: {e}"])

        lines = text.splitlines()
        start = max(attachment.start_line or 1, 1)
        end = min(attachment.end_line or len(lines), len(lines))
        if start > end and lines:
            return "\n".join(
                header + ["", f"❌ Invalid line range {start}-{end} (file has {len(lines)} lines)"]
            )

        selected = lines[start - 1 : end]
        if attachment.start_line or attachment.end_line:
            header.append(f"**Lines:** {start}-{end} of {len(lines)}")

        width = len(str(end)) if selected else 1
        numbered = [f"{n:>{width}} | {line}" for n, line in enumerate(selected, start=start)]
        block = [f"```{detect_language(attachment.path)}", *numbered, "```"]
        return "\n".join(header + [""] + block)

    async def format_attachments(self, attachments: Optional[Sequence[FileAttachment]]) -> str:
        """Markdown for all attachments, or an empty string when there are none."""
        if not attachments:
            return ""

        sections: List[str] = []
        for index, attachment in enumerate(attachments, start=1):
            sections.append(await self.format_attachment(attachment, index))

        return "\n\n---\n\n# 📎 Attached Files\n\n" + "\n\n".join(sections)
