"""Tests for feed text sanitization."""

from feedhub.ingestion import sanitize


class TestSanitize:
    """Test removal of dangerous constructs."""

    def test_plain_markup_untouched(self):
        html = '<p>Hello <b>world</b> <a href="http://example.com/">link</a></p>'
        assert sanitize(html) == html

    def test_script_block_removed(self):
        assert sanitize("before<script>alert(1)</script>after") == "beforeafter"

    def test_script_case_insensitive_multiline(self):
        html = '<p>a</p><SCRIPT type="text/javascript">\nvar x = 1;\n</SCRIPT><p>b</p>'
        assert sanitize(html) == "<p>a</p><p>b</p>"

    def test_unterminated_script_removed(self):
        assert sanitize("<p>ok</p><script>document.write('x')") == "<p>ok</p>"

    def test_style_block_removed(self):
        assert sanitize("<style>body { display: none }</style><p>x</p>") == "<p>x</p>"

    def test_javascript_uri_removed(self):
        result = sanitize('<a href="javascript:alert(1)">x</a>')
        assert "javascript:" not in result.lower()
        assert result.startswith("<a href=")

    def test_event_handler_removed(self):
        assert sanitize('<img src="a.png" onerror="alert(1)">') == '<img src="a.png">'

    def test_multiple_event_handlers_removed(self):
        html = "<div onclick=\"a()\" onmouseover='b()' class=\"c\">x</div>"
        assert sanitize(html) == '<div class="c">x</div>'

    def test_unquoted_event_handler_removed(self):
        assert sanitize("<body onload=init()>x</body>") == "<body>x</body>"

    def test_text_mentioning_on_is_kept(self):
        text = "Carry on=forever, said the onlooker"
        assert sanitize(text) == text

    def test_whitespace_trimmed(self):
        assert sanitize("  \n Title \t") == "Title"

    def test_empty(self):
        assert sanitize("") == ""
        assert sanitize(None) == ""
