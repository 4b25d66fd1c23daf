#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/clipboard.py
"""Clipboard payloads for the editor's copy command.

What gets copied depends on the active view:

- ``raw``: the markdown source as plain text
- ``text``: a plain-text rendering of the markdown, as plain text
- ``rendered`` / ``split``: the preview's HTML together with its text, so
  rich-text targets paste formatting and plain-text targets paste text

Every representation passes through :mod:`mdguard.utils.html_sanitizer`
before it is returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, get_args

from bs4 import BeautifulSoup

from mdguard.constants import ViewMode
from mdguard.options.security import SanitizationPolicy
from mdguard.utils.html_sanitizer import sanitize_html_for_clipboard, sanitize_text_for_clipboard

logger = logging.getLogger(__name__)

_VIEW_MODES = frozenset(get_args(ViewMode))


@dataclass(frozen=True)
class ClipboardPayload:
    """Sanitized data ready for the OS clipboard.

    Parameters
    ----------
    text : str
        Plain-text representation, always present
    html : str, optional
        Rich HTML representation, present only for rich copies

    """

    text: str
    html: str | None = None

    @property
    def is_rich(self) -> bool:
        """Whether the payload carries an HTML representation."""
        return self.html is not None

    def to_dict(self) -> dict[str, str]:
        """Return the payload keyed by MIME type."""
        data = {"text/plain": self.text}
        if self.html is not None:
            data["text/html"] = self.html
        return data


def html_to_text(html: str) -> str:
    """Extract the readable text of an HTML fragment.

    Examples
    --------
    >>> html_to_text("<p>Hello <strong>world</strong></p>")
    'Hello world'

    """
    if not html:
        return ""
    return BeautifulSoup(html, "html.parser").get_text()


def build_clipboard_payload(
    view_mode: ViewMode,
    content: str = "",
    preview_html: str | None = None,
    preview_text: str | None = None,
    *,
    text_converter: Callable[[str], str] | None = None,
    policy: SanitizationPolicy | None = None,
) -> ClipboardPayload | None:
    """Build the clipboard payload for the current view.

    Parameters
    ----------
    view_mode : {"rendered", "raw", "split", "text"}
        The editor's active view
    content : str, default ""
        Markdown source of the active document
    preview_html : str, optional
        Serialized HTML of the preview pane (rendered and split views)
    preview_text : str, optional
        Rendered text of the preview pane. Extracted from the sanitized HTML
        when not supplied.
    text_converter : callable, optional
        Markdown-to-plain-text conversion for the ``text`` view. The source
        is copied unchanged when not supplied.
    policy : SanitizationPolicy, optional
        HTML sanitization policy

    Returns
    -------
    ClipboardPayload or None
        The sanitized payload, or None when a rich view has no preview to
        copy

    Raises
    ------
    ValueError
        If ``view_mode`` is not a known view

    Examples
    --------
    >>> build_clipboard_payload("raw", "# Title\\x00").to_dict()
    {'text/plain': '# Title'}

    """
    if view_mode not in _VIEW_MODES:
        raise ValueError(f"Unknown view mode: {view_mode!r}. Expected one of {sorted(_VIEW_MODES)}")

    if view_mode == "raw":
        return ClipboardPayload(text=sanitize_text_for_clipboard(content))

    if view_mode == "text":
        plain = text_converter(content) if text_converter is not None else content
        return ClipboardPayload(text=sanitize_text_for_clipboard(plain))

    if preview_html is None:
        logger.debug(f"No preview available to copy in {view_mode} view")
        return None

    html = sanitize_html_for_clipboard(preview_html, policy)
    text = preview_text if preview_text is not None else html_to_text(html)
    sanitized_text = sanitize_text_for_clipboard(text)

    if preview_html.strip() and not html:
        # Sanitizer failed closed; copy the text alone
        logger.warning("[SECURITY] Rich copy unavailable, falling back to plain text")
        return ClipboardPayload(text=sanitized_text)

    return ClipboardPayload(text=sanitized_text, html=html)


__all__ = ["ClipboardPayload", "build_clipboard_payload", "html_to_text"]
