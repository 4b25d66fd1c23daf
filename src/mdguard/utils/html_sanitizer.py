#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/utils/html_sanitizer.py
"""HTML sanitization for clipboard export.

This module sanitizes HTML serialized out of the live preview pane before it
is placed on the OS clipboard, where other applications may paste and render
it. Sanitization is allowlist-based and fails closed:

- Subtrees rooted at dangerous elements (script, iframe, form controls, ...)
  are removed wholesale, text included
- Comments, doctypes, CDATA sections and processing instructions are removed
- Elements outside the allowlist are replaced by their flattened text
- Attributes are filtered against per-element and global allowlists; event
  handlers, ``style`` and ``data-*`` attributes never survive
- ``href``/``src`` values using a blocked protocol are dropped
- Every anchor gets ``rel="noopener noreferrer"``

The sanitized document is built as a fresh tree while walking the parsed
input, rather than by mutating the parsed tree during iteration. The walk
uses an explicit stack so deeply nested input cannot exhaust the interpreter
stack.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

from mdguard.constants import ANCHOR_REL_VALUE, CLIPBOARD_TEXT_CONTROL_PATTERN, URL_ATTRIBUTES
from mdguard.exceptions import ParseError
from mdguard.options.security import SanitizationPolicy

logger = logging.getLogger(__name__)

_TEXT_CONTROL_RE = re.compile(CLIPBOARD_TEXT_CONTROL_PATTERN)

# Characters browsers ignore or that can pad a scheme: C0 controls, space, DEL
_URL_IGNORABLE_RE = re.compile(r"[\x00-\x20\x7f]+")

# Document wrappers are unwrapped so only body content is copied
_TRANSPARENT_ELEMENTS = frozenset({"html", "body"})
_DROPPED_ELEMENTS = frozenset({"head"})

# html.parser stores a whitespace-only text run as a single space or newline
# unless it sits inside one of these elements
_PARSER_SPACES = "\x20\x0a\x09\x0c\x0d"
_WHITESPACE_PRESERVING_ELEMENTS = frozenset({"pre", "textarea"})

_DEFAULT_POLICY = SanitizationPolicy()


def is_url_safe(url: str, blocked_protocols: Iterable[str] | None = None) -> bool:
    """Check if a URL attribute value avoids every blocked protocol.

    The comparison is case-insensitive and ignores whitespace and control
    characters anywhere in the value, so padded or split schemes such as
    ``"  JavaScript:"`` or ``"java\\tscript:"`` are still caught. Relative
    paths, hash anchors, ``http:``, ``https:`` and ``mailto:`` pass through.

    Parameters
    ----------
    url : str
        Attribute value to check
    blocked_protocols : iterable of str, optional
        Lowercase protocols with trailing colon. Defaults to the clipboard
        blocklist.

    Returns
    -------
    bool
        True if the URL is safe to keep

    Examples
    --------
    >>> is_url_safe("https://example.com")
    True
    >>> is_url_safe("#section")
    True
    >>> is_url_safe("  JAVASCRIPT:alert(1)")
    False
    >>> is_url_safe("data:text/html,<script>alert(1)</script>")
    False

    """
    if not url:
        return True

    if blocked_protocols is None:
        blocked_protocols = _DEFAULT_POLICY.blocked_protocols

    normalized = _URL_IGNORABLE_RE.sub("", url).lower()
    return not any(normalized.startswith(protocol) for protocol in blocked_protocols)


def _attribute_text(value: Any) -> str:
    # Multi-valued attributes (class, rel, headers) come back as lists
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return str(value)


def _filter_attributes(tag_name: str, attrs: dict[str, Any], policy: SanitizationPolicy) -> dict[str, Any]:
    """Return the subset of ``attrs`` that may be kept on ``tag_name``."""
    allowed = policy.attributes_for(tag_name)
    kept: dict[str, Any] = {}

    for name, value in attrs.items():
        attr_name = name.lower()

        # Event handlers, inline CSS and data-* payloads never survive
        if attr_name.startswith("on") or attr_name == "style" or attr_name.startswith("data-"):
            continue

        if attr_name not in allowed:
            continue

        if attr_name in URL_ATTRIBUTES and not is_url_safe(_attribute_text(value), policy.blocked_protocols):
            logger.debug(f"Dropped {attr_name} with blocked protocol on <{tag_name}>")
            continue

        kept[attr_name] = value

    return kept


def _flatten_text(node: Tag, policy: SanitizationPolicy) -> str:
    """Collect the readable text beneath ``node``, skipping dangerous subtrees and comments."""
    parts: list[str] = []
    stack: list[Any] = list(reversed(node.contents))

    while stack:
        current = stack.pop()
        if isinstance(current, PreformattedString):
            continue
        if isinstance(current, NavigableString):
            parts.append(str(current))
            continue
        if isinstance(current, Tag):
            if (current.name or "").lower() in policy.dangerous_elements:
                continue
            stack.extend(reversed(current.contents))

    return "".join(parts)


def _preserves_whitespace(parent: Tag) -> bool:
    node: Any = parent
    while node is not None:
        if node.name in _WHITESPACE_PRESERVING_ELEMENTS:
            return True
        node = node.parent
    return False


def _append_text(parent: Tag, text: str) -> None:
    """Append ``text`` to ``parent`` the way the parser would have stored it.

    Text that ends up next to existing text (once a comment or dangerous
    element between them is gone) is merged into one node, and a
    whitespace-only run is collapsed like html.parser collapses it, so the
    serialized output parses back to the same tree.
    """
    if not text:
        return

    previous = parent.contents[-1] if parent.contents else None
    if isinstance(previous, NavigableString):
        text = str(previous) + text
        previous.extract()

    if not text.strip(_PARSER_SPACES) and not _preserves_whitespace(parent):
        text = "\n" if "\n" in text else " "

    parent.append(NavigableString(text))


def _build_sanitized_tree(source: BeautifulSoup, policy: SanitizationPolicy) -> BeautifulSoup:
    """Walk ``source`` top-down and build a new tree holding only allowed content."""
    output = BeautifulSoup("", "html.parser")
    stack: list[tuple[Any, Tag]] = [(child, output) for child in reversed(source.contents)]
    removed = 0

    while stack:
        node, parent = stack.pop()

        # Comments, doctypes, CDATA and processing instructions
        if isinstance(node, PreformattedString):
            removed += 1
            continue

        if isinstance(node, NavigableString):
            _append_text(parent, str(node))
            continue

        if not isinstance(node, Tag):
            continue

        tag_name = (node.name or "").lower()

        if tag_name in policy.dangerous_elements or tag_name in _DROPPED_ELEMENTS:
            removed += 1
            continue

        if tag_name in _TRANSPARENT_ELEMENTS:
            stack.extend((child, parent) for child in reversed(node.contents))
            continue

        if tag_name not in policy.allowed_elements:
            _append_text(parent, _flatten_text(node, policy))
            continue

        clean = output.new_tag(tag_name)
        for attr_name, value in _filter_attributes(tag_name, node.attrs, policy).items():
            clean[attr_name] = value

        if tag_name == "a":
            clean["rel"] = ANCHOR_REL_VALUE

        parent.append(clean)
        stack.extend((child, clean) for child in reversed(node.contents))

    if removed:
        logger.debug(f"Clipboard sanitization removed {removed} dangerous element(s) or markup node(s)")

    return output


def _parse_html(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, "html.parser")
    except Exception as e:
        raise ParseError(f"Could not parse clipboard HTML: {type(e).__name__}", original_error=e) from e


def sanitize_html_for_clipboard(html: str, policy: SanitizationPolicy | None = None) -> str:
    """Sanitize preview HTML for safe clipboard copying.

    Parameters
    ----------
    html : str
        Serialized HTML from the preview pane
    policy : SanitizationPolicy, optional
        Allowlists and blocked protocols. The default clipboard policy is
        used if None.

    Returns
    -------
    str
        Sanitized HTML. Empty string for empty or non-string input, and when
        the input cannot be parsed (fail closed). Never raises.

    Examples
    --------
    >>> sanitize_html_for_clipboard("<p>Hello <strong>world</strong></p>")
    '<p>Hello <strong>world</strong></p>'
    >>> sanitize_html_for_clipboard("<p onclick='x()'>Hi</p><script>alert(1)</script>")
    '<p>Hi</p>'
    >>> sanitize_html_for_clipboard('<a href="https://example.com">link</a>')
    '<a href="https://example.com" rel="noopener noreferrer">link</a>'

    """
    if not html or not isinstance(html, str):
        return ""

    if policy is None:
        policy = _DEFAULT_POLICY

    try:
        source = _parse_html(html)
        return str(_build_sanitized_tree(source, policy))
    except ParseError as e:
        logger.warning(f"[SECURITY] {e}")
        return ""
    except Exception as e:
        logger.error(f"[SECURITY] Failed to sanitize HTML for clipboard: {type(e).__name__}: {e}")
        return ""


def sanitize_text_for_clipboard(text: str) -> str:
    r"""Remove NUL bytes and problematic control characters from clipboard text.

    Characters U+0000-U+0008, U+000B, U+000C and U+000E-U+001F are removed;
    tab, newline and carriage return are preserved. Everything else is
    returned unchanged.

    Parameters
    ----------
    text : str
        Plain text to sanitize

    Returns
    -------
    str
        Sanitized text, or empty string for non-string input. Never raises.

    Examples
    --------
    >>> sanitize_text_for_clipboard("a\x00b\x07c\td\n")
    'abc\td\n'
    >>> sanitize_text_for_clipboard(None)
    ''

    """
    if not text or not isinstance(text, str):
        return ""
    return _TEXT_CONTROL_RE.sub("", text)


class HtmlSanitizer:
    """Clipboard sanitizer bound to one immutable policy.

    Parameters
    ----------
    policy : SanitizationPolicy, optional
        Allowlists and blocked protocols. The default clipboard policy is
        used if None.

    """

    def __init__(self, policy: SanitizationPolicy | None = None):
        """Initialize the sanitizer with its policy."""
        self.policy = policy or _DEFAULT_POLICY

    def sanitize_html(self, html: str) -> str:
        """Sanitize ``html``; see :func:`sanitize_html_for_clipboard`."""
        return sanitize_html_for_clipboard(html, self.policy)

    def sanitize_text(self, text: str) -> str:
        """Sanitize ``text``; see :func:`sanitize_text_for_clipboard`."""
        return sanitize_text_for_clipboard(text)


__all__ = [
    "HtmlSanitizer",
    "is_url_safe",
    "sanitize_html_for_clipboard",
    "sanitize_text_for_clipboard",
]
