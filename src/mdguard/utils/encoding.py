#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/utils/encoding.py
"""Byte-level UTF-8 validation and binary content detection.

This module guards the file-read boundary. Raw bytes read from disk are
checked before any document model sees them:

1. A leading UTF-8 byte order mark is stripped.
2. The remaining bytes are run through a strict UTF-8 acceptor that rejects
   overlong encodings, encoded UTF-16 surrogates, code points beyond
   U+10FFFF, stray continuation bytes and truncated sequences.
3. The decoded text is checked for binary content (NUL bytes, or too high a
   ratio of control characters).

Validation never raises; every failure is returned as a ``ValidationResult``
so callers can branch without exception handling.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mdguard.constants import BINARY_CONTENT_MESSAGE, INVALID_UTF8_MESSAGE, UTF8_BOM
from mdguard.exceptions import BinaryContentError, EncodingError, MdGuardError
from mdguard.options.security import FileIntegrityOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating untrusted content.

    Parameters
    ----------
    valid : bool
        Whether the content passed validation
    content : str, optional
        The validated text. Present if and only if ``valid`` is True.
    error : str, optional
        User-facing reason for the rejection. Present if and only if
        ``valid`` is False.
    error_type : type, optional
        Exception class from :mod:`mdguard.exceptions` describing the failure

    """

    valid: bool
    content: str | None = None
    error: str | None = None
    error_type: type[MdGuardError] | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Enforce the content/error invariant."""
        if self.valid and (self.content is None or self.error is not None):
            raise ValueError("A valid result must carry content and no error")
        if not self.valid and (self.error is None or self.content is not None):
            raise ValueError("An invalid result must carry an error and no content")

    @classmethod
    def success(cls, content: str) -> ValidationResult:
        """Build a passing result."""
        return cls(valid=True, content=content)

    @classmethod
    def failure(cls, error: str, error_type: type[MdGuardError] = MdGuardError) -> ValidationResult:
        """Build a failing result."""
        return cls(valid=False, error=error, error_type=error_type)

    def unwrap(self) -> str:
        """Return the content or raise the error this result describes.

        Returns
        -------
        str
            The validated content

        Raises
        ------
        MdGuardError
            A subclass matching the rejection (``EncodingError``,
            ``BinaryContentError``, ...) when the result is invalid

        """
        if self.valid:
            assert self.content is not None
            return self.content
        error_type = self.error_type or MdGuardError
        raise error_type(self.error or "Validation failed")


def strip_bom(data: bytes) -> bytes:
    """Strip a UTF-8 byte order mark from the beginning of ``data`` if present.

    Examples
    --------
    >>> strip_bom(b"\\xef\\xbb\\xbfhello")
    b'hello'
    >>> strip_bom(b"hello")
    b'hello'

    """
    if data[:3] == UTF8_BOM:
        return data[3:]
    return data


def _is_continuation(byte: int) -> bool:
    # Continuation bytes have the bit pattern 10xxxxxx
    return 0x80 <= byte <= 0xBF


def is_valid_utf8(data: bytes) -> bool:
    """Check that ``data`` is well-formed UTF-8.

    This is a byte-exact acceptor following the well-formed byte sequence
    table of the Unicode standard, rather than a lenient decode that might
    substitute U+FFFD for bad input.

    Parameters
    ----------
    data : bytes
        Bytes to check

    Returns
    -------
    bool
        True if every byte belongs to a well-formed sequence

    Examples
    --------
    >>> is_valid_utf8("héllo 😀".encode("utf-8"))
    True
    >>> is_valid_utf8(b"\\xc0\\xaf")  # overlong "/"
    False
    >>> is_valid_utf8(b"\\xed\\xa0\\x80")  # encoded surrogate U+D800
    False

    """
    length = len(data)
    i = 0
    while i < length:
        byte = data[i]

        if byte <= 0x7F:
            i += 1
            continue

        if 0xC2 <= byte <= 0xDF:
            if i + 1 >= length or not _is_continuation(data[i + 1]):
                return False
            i += 2
            continue

        if 0xE0 <= byte <= 0xEF:
            if i + 2 >= length:
                return False
            first = data[i + 1]
            # E0 must be followed by A0-BF, lower values are overlong
            if byte == 0xE0 and not 0xA0 <= first <= 0xBF:
                return False
            # ED followed by A0-BF would encode a UTF-16 surrogate
            if byte == 0xED and not 0x80 <= first <= 0x9F:
                return False
            if not (_is_continuation(first) and _is_continuation(data[i + 2])):
                return False
            i += 3
            continue

        if 0xF0 <= byte <= 0xF4:
            if i + 3 >= length:
                return False
            first = data[i + 1]
            if byte == 0xF0 and not 0x90 <= first <= 0xBF:
                return False
            # F4 followed by 90 or above is beyond U+10FFFF
            if byte == 0xF4 and not 0x80 <= first <= 0x8F:
                return False
            if not (_is_continuation(first) and _is_continuation(data[i + 2]) and _is_continuation(data[i + 3])):
                return False
            i += 4
            continue

        # C0, C1, F5-FF and bare continuation bytes
        return False

    return True


def count_control_characters(content: str, allowed: frozenset[str]) -> int:
    """Count control characters (U+0000-U+001F, U+007F) in ``content`` not in ``allowed``."""
    count = 0
    for char in content:
        code = ord(char)
        if (code <= 0x1F or code == 0x7F) and char not in allowed:
            count += 1
    return count


def is_binary_content(content: str, options: FileIntegrityOptions | None = None) -> bool:
    """Detect whether decoded text looks like binary data.

    Parameters
    ----------
    content : str
        Decoded text
    options : FileIntegrityOptions, optional
        Threshold and allowed control characters. Defaults are used if None.

    Returns
    -------
    bool
        True if the content contains a NUL character or its control character
        ratio exceeds ``options.max_control_char_ratio``

    Examples
    --------
    >>> is_binary_content("# Title\\n\\nBody text\\n")
    False
    >>> is_binary_content("abc\\x00def")
    True

    """
    if options is None:
        options = FileIntegrityOptions()

    # A single NUL is decisive; text files never contain one
    if "\x00" in content:
        return True

    if not content:
        return False

    control_count = count_control_characters(content, options.allowed_control_chars)
    return control_count / len(content) > options.max_control_char_ratio


def validate_file_content(data: bytes, options: FileIntegrityOptions | None = None) -> ValidationResult:
    """Validate raw file bytes as legitimate UTF-8 text.

    Parameters
    ----------
    data : bytes
        Raw bytes as read from disk
    options : FileIntegrityOptions, optional
        Binary detection settings. Defaults are used if None.

    Returns
    -------
    ValidationResult
        ``valid=True`` with the decoded text (BOM removed), or ``valid=False``
        with an encoding or binary-content error

    Examples
    --------
    >>> validate_file_content(b"# Hello\\n").content
    '# Hello\\n'
    >>> validate_file_content(b"\\xff\\xfe").valid
    False

    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        logger.warning(f"[SECURITY] Rejected non-bytes content of type {type(data).__name__}")
        return ValidationResult.failure(INVALID_UTF8_MESSAGE, EncodingError)

    payload = strip_bom(bytes(data))

    if not is_valid_utf8(payload):
        logger.warning("[SECURITY] Rejected content with invalid UTF-8 encoding")
        return ValidationResult.failure(INVALID_UTF8_MESSAGE, EncodingError)

    # Strict decoding cannot fail here; the acceptor above admits exactly
    # the sequences Python's codec accepts
    content = payload.decode("utf-8")

    if is_binary_content(content, options):
        logger.warning("[SECURITY] Rejected content that appears to be binary")
        return ValidationResult.failure(BINARY_CONTENT_MESSAGE, BinaryContentError)

    return ValidationResult.success(content)


class ByteContentValidator:
    """Reusable content validator bound to one set of options.

    Instances hold no mutable state and may be shared between threads.

    Parameters
    ----------
    options : FileIntegrityOptions, optional
        Binary detection settings. Defaults are used if None.

    Examples
    --------
    >>> validator = ByteContentValidator()
    >>> validator.validate(b"plain text").valid
    True

    """

    def __init__(self, options: FileIntegrityOptions | None = None):
        """Initialize the validator with its options."""
        self.options = options or FileIntegrityOptions()

    def validate(self, data: bytes) -> ValidationResult:
        """Validate ``data``; see :func:`validate_file_content`."""
        return validate_file_content(data, self.options)


__all__ = [
    "ByteContentValidator",
    "ValidationResult",
    "count_control_characters",
    "is_binary_content",
    "is_valid_utf8",
    "strip_bom",
    "validate_file_content",
]
