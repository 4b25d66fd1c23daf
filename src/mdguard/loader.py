#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/loader.py
"""Secure document loading for the file-open flow.

A document path goes through three checks before any content is returned:
the path guard (extension allowlist), the file size limit, then the byte
content validator. Callers receive either validated text or a rejection;
content of a rejected file never leaves this module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from mdguard.exceptions import FileTooLargeError, MdGuardError, UnsafePathError
from mdguard.options.security import GuardOptions
from mdguard.utils.encoding import ValidationResult, validate_file_content
from mdguard.utils.security import is_path_safe, redact_paths

logger = logging.getLogger(__name__)

READ_FAILED_MESSAGE = "Failed to read file. Please try again."


@dataclass(frozen=True)
class LoadedDocument:
    """A document that passed every check.

    Parameters
    ----------
    file_path : Path
        Resolved path of the document
    content : str
        Validated text, BOM removed
    name : str
        File name shown in the tab

    """

    file_path: Path
    content: str
    name: str


def _size_message(limit: int) -> str:
    if limit >= 1024 * 1024:
        return f"The file exceeds the maximum size of {limit // (1024 * 1024)}MB."
    return f"The file exceeds the maximum size of {limit} bytes."


def _extension_message(options: GuardOptions) -> str:
    extensions = ", ".join(options.path_security.allowed_extensions)
    return f"Only Markdown files ({extensions}) can be opened."


def load_document(path: str | Path, options: GuardOptions | None = None) -> ValidationResult:
    """Read and validate a markdown document.

    Parameters
    ----------
    path : str or Path
        Path of the document to open
    options : GuardOptions, optional
        Extension allowlist, size limit and binary detection settings

    Returns
    -------
    ValidationResult
        The document text, or the reason it was rejected. Never raises.

    """
    if options is None:
        options = GuardOptions()

    if not is_path_safe(path, options.path_security.allowed_extensions):
        return ValidationResult.failure(_extension_message(options), UnsafePathError)

    file_path = Path(path)
    limit = options.file_integrity.max_file_size

    try:
        size = file_path.stat().st_size
        if size > limit:
            logger.warning(f"[SECURITY] Rejected file of {size} bytes (maximum {limit})")
            return ValidationResult.failure(_size_message(limit), FileTooLargeError)
        data = file_path.read_bytes()
    except OSError as e:
        logger.error(f"Failed to read file: {redact_paths(str(e))}")
        return ValidationResult.failure(READ_FAILED_MESSAGE, MdGuardError)

    # The file may have grown between stat and read
    if len(data) > limit:
        logger.warning(f"[SECURITY] Rejected file of {len(data)} bytes (maximum {limit})")
        return ValidationResult.failure(_size_message(limit), FileTooLargeError)

    return validate_file_content(data, options.file_integrity)


def read_document(path: str | Path, options: GuardOptions | None = None) -> LoadedDocument:
    """Read and validate a markdown document, raising on rejection.

    Raises
    ------
    MdGuardError
        ``UnsafePathError``, ``FileTooLargeError``, ``EncodingError`` or
        ``BinaryContentError`` describing the rejection

    """
    content = load_document(path, options).unwrap()
    file_path = Path(path).resolve()
    return LoadedDocument(file_path=file_path, content=content, name=file_path.name)


__all__ = ["LoadedDocument", "READ_FAILED_MESSAGE", "load_document", "read_document"]
