#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for clipboard payload construction."""

import pytest

from mdguard.clipboard import ClipboardPayload, build_clipboard_payload, html_to_text


@pytest.mark.unit
class TestViewModes:
    """Test the payload for each view."""

    def test_raw(self):
        """Test that raw view copies the sanitized source."""
        payload = build_clipboard_payload("raw", "# Title\x00\n")
        assert payload == ClipboardPayload(text="# Title\n")
        assert not payload.is_rich

    def test_text_with_converter(self):
        """Test that text view uses the converter."""
        payload = build_clipboard_payload("text", "# Title", text_converter=lambda md: md.lstrip("# "))
        assert payload.to_dict() == {"text/plain": "Title"}

    def test_text_without_converter(self):
        """Test that text view falls back to the source."""
        assert build_clipboard_payload("text", "*x*").text == "*x*"

    @pytest.mark.parametrize("view", ["rendered", "split"])
    def test_rich_views(self, view):
        """Test that rich views copy sanitized HTML and text."""
        payload = build_clipboard_payload(view, "src", preview_html='<p onclick="x()">Hi <b>there</b></p>')
        assert payload.to_dict() == {"text/plain": "Hi there", "text/html": "<p>Hi <b>there</b></p>"}
        assert payload.is_rich

    def test_rich_view_with_preview_text(self):
        """Test that supplied preview text is used and sanitized."""
        payload = build_clipboard_payload("rendered", preview_html="<p>Hi</p>", preview_text="Hi\x07!")
        assert payload.text == "Hi!"

    def test_rich_view_without_preview(self):
        """Test that a rich view without a preview copies nothing."""
        assert build_clipboard_payload("rendered", "# Title") is None

    def test_fully_dangerous_preview_falls_back(self, caplog):
        """Test that a preview that sanitizes to nothing copies text only."""
        with caplog.at_level("WARNING"):
            payload = build_clipboard_payload(
                "rendered", preview_html="<script>alert(1)</script>", preview_text="fallback"
            )
        assert payload == ClipboardPayload(text="fallback")
        assert "[SECURITY]" in caplog.text

    def test_empty_preview(self):
        """Test that an empty preview yields an empty rich payload."""
        payload = build_clipboard_payload("split", preview_html="")
        assert payload == ClipboardPayload(text="", html="")

    def test_unknown_view(self):
        """Test that unknown views are rejected."""
        with pytest.raises(ValueError, match="Unknown view mode"):
            build_clipboard_payload("preview", "x")  # type: ignore[arg-type]


@pytest.mark.unit
class TestHtmlToText:
    """Test text extraction."""

    def test_extracts_text(self):
        """Test that tags are removed."""
        assert html_to_text("<ul><li>a</li><li>b</li></ul>") == "ab"

    def test_empty(self):
        """Test empty input."""
        assert html_to_text("") == ""
