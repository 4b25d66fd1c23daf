#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Property-based fuzzing tests for the clipboard HTML sanitizer.

Structured HTML is generated from a mix of allowed, unknown and dangerous
elements carrying a mix of safe and hostile attributes. The sanitized output
is re-parsed and checked structurally.
"""

import pytest
from bs4 import BeautifulSoup
from bs4.element import Comment, Tag
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from mdguard.constants import DANGEROUS_HTML_ELEMENTS
from mdguard.utils.html_sanitizer import is_url_safe, sanitize_html_for_clipboard, sanitize_text_for_clipboard

CONTAINER_TAGS = [
    "div",
    "p",
    "span",
    "a",
    "strong",
    "em",
    "ul",
    "li",
    "blockquote",
    "code",
    "pre",
    "custom-widget",
    "font",
    "center",
    "svg",
    "script",
    "style",
    "iframe",
    "form",
    "object",
    "noscript",
]

ATTRIBUTE_NAMES = ["href", "src", "title", "class", "id", "onclick", "onerror", "style", "data-x", "rel", "target"]

ATTRIBUTE_VALUES = [
    "https://example.com",
    "#frag",
    "page.md",
    "mailto:a@example.com",
    "javascript:alert(1)",
    "  JaVaScRiPt:alert(1)",
    "java&#x09;script:alert(1)",
    "vbscript:msgbox(1)",
    "data:text/html,x",
    "file:///etc/passwd",
    "alert(1)",
    "plain",
]

safe_text = st.text(alphabet="abcdefghij XYZ0123456789", max_size=12)

attributes = st.dictionaries(
    keys=st.sampled_from(ATTRIBUTE_NAMES),
    values=st.sampled_from(ATTRIBUTE_VALUES),
    max_size=4,
)


def _render_attrs(attrs: dict[str, str]) -> str:
    return "".join(f' {name}="{value}"' for name, value in attrs.items())


@st.composite
def element(draw, children):
    tag = draw(st.sampled_from(CONTAINER_TAGS))
    attrs = draw(attributes)
    inner = "".join(draw(st.lists(children, max_size=3)))
    return f"<{tag}{_render_attrs(attrs)}>{inner}</{tag}>"


whitespace_runs = st.text(alphabet=" \n\t\r", min_size=1, max_size=4)

leaves = st.one_of(
    safe_text,
    whitespace_runs,
    st.just("<!-- hidden -->"),
    st.just("<?pi ?>"),
    st.just("<script>x</script>"),
    st.builds(lambda attrs: f"<img{_render_attrs(attrs)}>", attributes),
    st.just("<br>"),
)

html_documents = st.recursive(leaves, lambda children: element(children), max_leaves=25)


def _assert_clean(html: str) -> None:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(True):
        assert isinstance(tag, Tag)
        assert tag.name not in DANGEROUS_HTML_ELEMENTS
        for name, value in tag.attrs.items():
            assert not name.startswith("on")
            assert name != "style"
            assert not name.startswith("data-")
            if name in ("href", "src"):
                assert is_url_safe(value)
        if tag.name == "a":
            assert tag.get("rel") == ["noopener", "noreferrer"]
    assert not soup.find_all(string=lambda s: isinstance(s, Comment))


@pytest.mark.unit
@pytest.mark.fuzzing
@pytest.mark.security
class TestSanitizerProperties:
    """Property-based tests for clipboard sanitization."""

    @given(html_documents)
    @settings(suppress_health_check=[HealthCheck.too_slow])
    def test_output_is_clean(self, html):
        """Property: sanitized output never contains dangerous markup."""
        result = sanitize_html_for_clipboard(html)
        assert isinstance(result, str)
        _assert_clean(result)

    @given(html_documents)
    @settings(suppress_health_check=[HealthCheck.too_slow])
    def test_idempotent(self, html):
        """Property: sanitizing twice equals sanitizing once."""
        once = sanitize_html_for_clipboard(html)
        assert sanitize_html_for_clipboard(once) == once

    @given(st.text())
    def test_arbitrary_text_never_raises(self, text):
        """Property: any string yields a string with no dangerous elements."""
        result = sanitize_html_for_clipboard(text)
        assert isinstance(result, str)
        soup = BeautifulSoup(result, "html.parser")
        assert not any(tag.name in DANGEROUS_HTML_ELEMENTS for tag in soup.find_all(True))

    @given(html_documents)
    @settings(suppress_health_check=[HealthCheck.too_slow])
    def test_safe_text_survives(self, html):
        """Property: wrapping in a paragraph keeps the paragraph."""
        result = sanitize_html_for_clipboard(f"<p>marker{html}</p>")
        assert result.startswith("<p>marker")

    @given(st.text())
    def test_clipboard_text_has_no_control_characters(self, text):
        """Property: sanitized clipboard text has no C0 controls except tab, LF and CR."""
        result = sanitize_text_for_clipboard(text)
        assert all(ord(c) >= 0x20 or c in "\t\n\r" for c in result)
        assert len(result) <= len(text)
