#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/constants.py
"""Policy constants and defaults for mdguard.

This module contains the default values used throughout the validation layer.
Every value here is a default only; the options classes in
:mod:`mdguard.options` accept overrides and :mod:`mdguard.config` loads them
from configuration files and environment variables.
"""

from __future__ import annotations

from typing import Literal

# =============================================================================
# File integrity (ByteContentValidator)
# =============================================================================

UTF8_BOM = b"\xef\xbb\xbf"

# Text files typically have < 1% control characters, binaries much more
DEFAULT_MAX_CONTROL_CHAR_RATIO = 0.1

# Whitespace/formatting control characters that never count towards the ratio
DEFAULT_ALLOWED_CONTROL_CHARS = frozenset({"\n", "\r", "\t"})

DEFAULT_MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB
DEFAULT_MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10MB of characters in command payloads

INVALID_UTF8_MESSAGE = "File contains invalid UTF-8 characters and cannot be opened."
BINARY_CONTENT_MESSAGE = "File appears to be binary, not text. Only text-based Markdown files are supported."

# =============================================================================
# Path security (PathGuard)
# =============================================================================

DEFAULT_ALLOWED_EXTENSIONS = (".md", ".markdown")

GENERIC_ERROR_MESSAGE = "An error occurred while processing the request"

# =============================================================================
# External URL security (UrlGuard)
# =============================================================================

DEFAULT_ALLOWED_PROTOCOLS = ("https:", "http:")

DEFAULT_BLOCKED_PROTOCOLS = (
    "javascript:",  # script execution
    "vbscript:",  # Windows script execution
    "file:",  # local file access
    "data:",  # inline content injection
    "blob:",  # in-memory object access
    "about:",  # browser internals
    "chrome:",
    "chrome-extension:",
)

DEFAULT_MAX_URL_LENGTH = 2048

# =============================================================================
# Command gate
# =============================================================================

DEFAULT_RATE_LIMIT_MAX_CALLS = 100
DEFAULT_RATE_LIMIT_WINDOW_MS = 1000
DEFAULT_RATE_LIMIT_SWEEP_INTERVAL_MS = 60_000

# Identifiers idle for longer than this multiple of the window are swept
STALE_IDENTIFIER_WINDOW_FACTOR = 2

INVALID_ORIGIN_MESSAGE = "Invalid IPC origin"
RATE_LIMIT_MESSAGE = "Rate limit exceeded"
UNKNOWN_COMMAND_MESSAGE = "Unknown command"

CommandName = Literal[
    "save-file",
    "read-file",
    "export-pdf",
    "create-window-for-tab",
    "show-unsaved-dialog",
    "reveal-in-finder",
    "read-image-file",
    "copy-image-to-document",
    "save-image-from-data",
    "open-external-url",
]

# =============================================================================
# Clipboard HTML sanitization (HtmlSanitizer)
# =============================================================================

# Subtrees rooted at these tags are removed wholesale, text included
DANGEROUS_HTML_ELEMENTS = frozenset(
    {
        "script",
        "style",
        "iframe",
        "frame",
        "frameset",
        "object",
        "embed",
        "applet",
        "form",
        "input",
        "button",
        "textarea",
        "select",
        "meta",
        "link",
        "base",
        "noscript",
        "template",
        "slot",
        "portal",
    }
)

CLIPBOARD_ALLOWED_ELEMENTS = frozenset(
    {
        # Document structure
        "div",
        "span",
        "p",
        "br",
        "hr",
        # Headings
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        # Text formatting
        "strong",
        "b",
        "em",
        "i",
        "u",
        "s",
        "del",
        "ins",
        "mark",
        "sub",
        "sup",
        "small",
        "big",
        # Code
        "code",
        "pre",
        "kbd",
        "samp",
        "var",
        # Lists
        "ul",
        "ol",
        "li",
        "dl",
        "dt",
        "dd",
        # Links and references
        "a",
        "abbr",
        "cite",
        "dfn",
        "q",
        "blockquote",
        # Tables
        "table",
        "thead",
        "tbody",
        "tfoot",
        "tr",
        "th",
        "td",
        "caption",
        "colgroup",
        "col",
        # Media
        "img",
        "figure",
        "figcaption",
        # Semantic
        "article",
        "section",
        "aside",
        "header",
        "footer",
        "nav",
        "main",
        "address",
        "time",
        "details",
        "summary",
        # Text direction
        "bdo",
        "bdi",
        "wbr",
    }
)

# "*" holds the attributes allowed on every element
CLIPBOARD_ALLOWED_ATTRIBUTES: dict[str, frozenset[str]] = {
    "*": frozenset({"class", "id", "title", "lang", "dir", "translate"}),
    "a": frozenset({"href", "target", "rel", "download", "hreflang", "type"}),
    "img": frozenset({"src", "alt", "width", "height", "loading"}),
    "td": frozenset({"colspan", "rowspan", "headers"}),
    "th": frozenset({"colspan", "rowspan", "headers", "scope"}),
    "col": frozenset({"span"}),
    "colgroup": frozenset({"span"}),
    "ol": frozenset({"start", "reversed", "type"}),
    "li": frozenset({"value"}),
    "blockquote": frozenset({"cite"}),
    "q": frozenset({"cite"}),
    "time": frozenset({"datetime"}),
    "abbr": frozenset({"title"}),
    "dfn": frozenset({"title"}),
    "bdo": frozenset({"dir"}),
    "table": frozenset({"border"}),
}

CLIPBOARD_BLOCKED_PROTOCOLS = frozenset(
    {
        "javascript:",
        "vbscript:",
        "data:",
        "file:",
        "blob:",
        "about:",
    }
)

CLIPBOARD_ALLOWED_PROTOCOLS = frozenset({"http:", "https:", "mailto:", "tel:"})

URL_ATTRIBUTES = frozenset({"href", "src"})

ANCHOR_REL_VALUE = "noopener noreferrer"

# C0 controls removed from clipboard text; \t, \n and \r survive
CLIPBOARD_TEXT_CONTROL_PATTERN = r"[\x00-\x08\x0b\x0c\x0e-\x1f]"

ViewMode = Literal["rendered", "raw", "split", "text"]

# =============================================================================
# Configuration discovery
# =============================================================================

CONFIG_FILENAMES = (".mdguard.toml", ".mdguard.yaml", ".mdguard.yml", ".mdguard.json")
ENV_PREFIX = "MDGUARD_"
