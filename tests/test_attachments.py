"""Unit tests for core/attachments.py."""

import pytest

from core.attachments import FileAttachmentService, detect_language
from models import FileAttachment


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "worker.py"
    path.write_text("import os\n\n\ndef run():\n    return os.getpid()\n", encoding="utf-8")
    return path


class TestFileAttachmentService:
    """Test suite for FileAttachmentService."""

    @pytest.mark.asyncio
    async def test_no_attachments(self):
        assert await FileAttachmentService().format_attachments(None) == ""
        assert await FileAttachmentService().format_attachments([]) == ""

    @pytest.mark.asyncio
    async def test_whole_file(self, source_file):
        attachment = FileAttachment(path=str(source_file), description="Worker entry point")
        output = await FileAttachmentService().format_attachments([attachment])

        assert "# 📎 Attached Files" in output
        assert f"## 1. `{source_file}`" in output
        assert "*Worker entry point*" in output
        assert "```python" in output
        assert "1 | import os" in output
        assert "5 |     return os.getpid()" in output
        assert "**Lines:**" not in output

    @pytest.mark.asyncio
    async def test_line_range(self, source_file):
        attachment = FileAttachment(path=str(source_file), start_line=4, end_line=5)
        output = await FileAttachmentService().format_attachments([attachment])

        assert "**Lines:** 4-5 of 5" in output
        assert "4 | def run():" in output
        assert "import os" not in output

    @pytest.mark.asyncio
    async def test_missing_file_reported_inline(self, tmp_path):
        attachment = FileAttachment(path=str(tmp_path / "missing.py"))
        output = await FileAttachmentService().format_attachments([attachment])
        assert "❌ Could not read file" in output


class TestDetectLanguage:
    def test_known_and_unknown(self):
        assert detect_language("a/b.ts") == "typescript"
        assert detect_language("notes.TXT") == ""
