"""Unit tests for utils/markdown.py."""

from utils.markdown import MarkdownCleaner, remove_meta_tags


class TestMarkdownCleaner:
    """Test suite for MarkdownCleaner.process_content."""

    def setup_method(self):
        self.cleaner = MarkdownCleaner()

    def test_plain_text_passes_through_stripped(self):
        assert self.cleaner.process_content("  # Already markdown  ") == "# Already markdown"

    def test_empty_and_non_string_returned_as_is(self):
        assert self.cleaner.process_content("") == ""
        assert self.cleaner.process_content(None) is None

    def test_converts_html_and_drops_noise(self):
        html = """
        <html><head><style>body{color:red}</style><script>track()</script></head>
        <body>
          <nav>Home | About</nav>
          <!-- hidden comment -->
          <h1>Title</h1>
          <p>Main <b>content</b>.</p>
          <ul><li>One</li><li>Two</li></ul>
          <footer>Copyright</footer>
        </body></html>
        """
        result = self.cleaner.process_content(html)
        assert "# Title" in result
        assert "**content**" in result
        assert "- One" in result
        for noise in ("track()", "color:red", "Home | About", "hidden comment", "Copyright"):
            assert noise not in result

    def test_collapses_blank_lines(self):
        result = self.cleaner.process_content("<p>a</p><br><br><br><br><p>b</p>")
        assert "\n\n\n" not in result


class TestRemoveMetaTags:
    def test_removes_meta_and_link_tags(self):
        content = '<meta charset="utf-8"><link rel="icon" href="x">Body text'
        assert remove_meta_tags(content) == "Body text"

    def test_removes_front_matter(self):
        content = "---\ntitle: Page\n---\n# Heading"
        assert remove_meta_tags(content) == "# Heading"

    def test_empty(self):
        assert remove_meta_tags("") == ""
