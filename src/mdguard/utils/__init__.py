#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/utils/__init__.py
"""Validators for each trust boundary of the editor.

This package contains the byte content validator, the path guard, the
external URL guard and the clipboard HTML sanitizer. None of them raise on
bad input; each reports rejections as a value.
"""

from mdguard.utils.encoding import ByteContentValidator, ValidationResult, validate_file_content
from mdguard.utils.html_sanitizer import HtmlSanitizer, sanitize_html_for_clipboard, sanitize_text_for_clipboard
from mdguard.utils.network_security import UrlValidationResult, validate_external_url
from mdguard.utils.security import is_path_safe, is_within_directory, resolve_document_resource

__all__ = [
    "ByteContentValidator",
    "HtmlSanitizer",
    "UrlValidationResult",
    "ValidationResult",
    "is_path_safe",
    "is_within_directory",
    "resolve_document_resource",
    "sanitize_html_for_clipboard",
    "sanitize_text_for_clipboard",
    "validate_external_url",
    "validate_file_content",
]
