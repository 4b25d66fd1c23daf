#  Copyright (c) 2025 Tom Villani, Ph.D.
"""mdguard - Input validation and sanitization for a desktop Markdown editor.

mdguard guards every trust boundary the editor crosses. Each boundary has a
validator that reports rejections as values instead of raising:

- Raw bytes read from disk: strict UTF-8 and binary content detection
- Paths from dialogs, drag-and-drop and links: extension allowlist and
  directory containment
- URLs handed to the OS: protocol allow/block lists and normalization
- Preview HTML copied to the clipboard: allowlist-based sanitization

Cross-process commands pass through a gate that checks the sender's origin,
rate-limits each sender per command, and validates payloads against a schema
before any handler runs.

Requirements
------------
- Python 3.10+
- beautifulsoup4, pydantic, PyYAML, rich

Examples
--------
Validate bytes read from disk:

    >>> from mdguard import validate_file_content
    >>> validate_file_content(b"# Notes\\n").valid
    True

Check a link before opening it:

    >>> from mdguard import validate_external_url
    >>> validate_external_url("javascript:alert(1)").is_valid
    False

Sanitize preview HTML for the clipboard:

    >>> from mdguard import sanitize_html_for_clipboard
    >>> sanitize_html_for_clipboard('<p onclick="x()">Hi</p>')
    '<p>Hi</p>'

Gate a command handler:

    >>> import asyncio
    >>> from mdguard import CommandGate, SenderContext
    >>> with CommandGate() as gate:
    ...     window = SenderContext(id=1)
    ...     gate.origins.register(window)
    ...     echo = gate.wrap("echo", lambda payload, context: payload)
    ...     asyncio.run(echo(window, "hi")).data
    'hi'

"""

__version__ = "1.0.0"

from mdguard.clipboard import ClipboardPayload, build_clipboard_payload
from mdguard.exceptions import (
    BinaryContentError,
    ConfigurationError,
    EncodingError,
    FileTooLargeError,
    HandlerError,
    MdGuardError,
    OriginError,
    ParseError,
    RateLimitError,
    SchemaError,
    SecurityError,
    UnsafePathError,
    UnsafeUrlError,
    ValidationError,
)
from mdguard.gate import (
    CommandEnvelope,
    CommandGate,
    CommandRegistry,
    OriginRegistry,
    SenderContext,
    SlidingWindowRateLimiter,
    register_builtin_commands,
)
from mdguard.loader import LoadedDocument, load_document, read_document
from mdguard.options import (
    FileIntegrityOptions,
    GuardOptions,
    PathSecurityOptions,
    RateLimitOptions,
    SanitizationPolicy,
    UrlSecurityOptions,
)
from mdguard.utils.encoding import ByteContentValidator, ValidationResult, validate_file_content
from mdguard.utils.html_sanitizer import HtmlSanitizer, sanitize_html_for_clipboard, sanitize_text_for_clipboard
from mdguard.utils.network_security import UrlValidationResult, validate_external_url
from mdguard.utils.security import is_path_safe, is_within_directory

__all__ = [
    "__version__",
    # Validators
    "ByteContentValidator",
    "HtmlSanitizer",
    "UrlValidationResult",
    "ValidationResult",
    "is_path_safe",
    "is_within_directory",
    "sanitize_html_for_clipboard",
    "sanitize_text_for_clipboard",
    "validate_external_url",
    "validate_file_content",
    # Document loading and clipboard
    "ClipboardPayload",
    "LoadedDocument",
    "build_clipboard_payload",
    "load_document",
    "read_document",
    # Command gate
    "CommandEnvelope",
    "CommandGate",
    "CommandRegistry",
    "OriginRegistry",
    "SenderContext",
    "SlidingWindowRateLimiter",
    "register_builtin_commands",
    # Options
    "FileIntegrityOptions",
    "GuardOptions",
    "PathSecurityOptions",
    "RateLimitOptions",
    "SanitizationPolicy",
    "UrlSecurityOptions",
    # Exceptions
    "BinaryContentError",
    "ConfigurationError",
    "EncodingError",
    "FileTooLargeError",
    "HandlerError",
    "MdGuardError",
    "OriginError",
    "ParseError",
    "RateLimitError",
    "SchemaError",
    "SecurityError",
    "UnsafePathError",
    "UnsafeUrlError",
    "ValidationError",
]
