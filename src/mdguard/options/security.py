#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/options/security.py
"""Configuration options for the validators and the command gate.

Each trust boundary gets its own frozen options class. ``GuardOptions``
aggregates them so that a whole policy can be loaded from one configuration
file (see :mod:`mdguard.config`) and handed to the components at startup.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from mdguard.constants import (
    CLIPBOARD_ALLOWED_ATTRIBUTES,
    CLIPBOARD_ALLOWED_ELEMENTS,
    CLIPBOARD_ALLOWED_PROTOCOLS,
    CLIPBOARD_BLOCKED_PROTOCOLS,
    DANGEROUS_HTML_ELEMENTS,
    DEFAULT_ALLOWED_CONTROL_CHARS,
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_ALLOWED_PROTOCOLS,
    DEFAULT_BLOCKED_PROTOCOLS,
    DEFAULT_MAX_CONTENT_SIZE,
    DEFAULT_MAX_CONTROL_CHAR_RATIO,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_URL_LENGTH,
    DEFAULT_RATE_LIMIT_MAX_CALLS,
    DEFAULT_RATE_LIMIT_SWEEP_INTERVAL_MS,
    DEFAULT_RATE_LIMIT_WINDOW_MS,
)
from mdguard.options.base import CloneFrozenMixin


def _normalize_protocol(protocol: str) -> str:
    protocol = protocol.strip().lower()
    return protocol if protocol.endswith(":") else f"{protocol}:"


def _normalize_extension(extension: str) -> str:
    extension = extension.strip().lower()
    return extension if extension.startswith(".") else f".{extension}"


@dataclass(frozen=True)
class FileIntegrityOptions(CloneFrozenMixin):
    """Options for the byte-level content validator.

    Parameters
    ----------
    max_control_char_ratio : float, default 0.1
        Content whose ratio of disallowed control characters to total length
        exceeds this value is treated as binary.
    allowed_control_chars : frozenset of str, default {"\\n", "\\r", "\\t"}
        Control characters that never count towards the ratio.
    max_file_size : int, default 50MB
        Largest file, in bytes, the document loader will read.

    """

    max_control_char_ratio: float = field(
        default=DEFAULT_MAX_CONTROL_CHAR_RATIO,
        metadata={"help": "Maximum ratio of control characters before content is treated as binary"},
    )
    allowed_control_chars: frozenset[str] = field(
        default=DEFAULT_ALLOWED_CONTROL_CHARS,
        metadata={"help": "Control characters permitted in text content"},
    )
    max_file_size: int = field(
        default=DEFAULT_MAX_FILE_SIZE,
        metadata={"help": "Maximum file size in bytes"},
    )

    def __post_init__(self) -> None:
        """Validate numeric ranges.

        Raises
        ------
        ValueError
            If any field value is outside its valid range.

        """
        if not 0.0 <= self.max_control_char_ratio <= 1.0:
            raise ValueError(f"max_control_char_ratio must be between 0 and 1, got {self.max_control_char_ratio}")
        if self.max_file_size <= 0:
            raise ValueError(f"max_file_size must be positive, got {self.max_file_size}")
        for char in self.allowed_control_chars:
            if len(char) != 1:
                raise ValueError(f"allowed_control_chars entries must be single characters, got {char!r}")
        object.__setattr__(self, "allowed_control_chars", frozenset(self.allowed_control_chars))


@dataclass(frozen=True)
class PathSecurityOptions(CloneFrozenMixin):
    """Options for the path guard.

    Parameters
    ----------
    allowed_extensions : tuple of str, default (".md", ".markdown")
        File extensions that may be opened. Compared case-insensitively.

    """

    allowed_extensions: tuple[str, ...] = field(
        default=DEFAULT_ALLOWED_EXTENSIONS,
        metadata={"help": "File extensions that may be opened"},
    )

    def __post_init__(self) -> None:
        """Normalize extensions to lowercase with a leading dot."""
        if not self.allowed_extensions:
            raise ValueError("allowed_extensions cannot be empty")
        object.__setattr__(
            self, "allowed_extensions", tuple(_normalize_extension(ext) for ext in self.allowed_extensions)
        )


@dataclass(frozen=True)
class UrlSecurityOptions(CloneFrozenMixin):
    """Options for the external URL guard.

    Parameters
    ----------
    allowed_protocols : tuple of str, default ("https:", "http:")
        Only these protocols may be opened.
    blocked_protocols : tuple of str
        Protocols rejected with a specific reason. Anything outside the
        allowlist is rejected anyway; this list only sharpens diagnostics.
    max_url_length : int, default 2048
        Longer URLs are rejected before parsing.

    """

    allowed_protocols: tuple[str, ...] = field(
        default=DEFAULT_ALLOWED_PROTOCOLS,
        metadata={"help": "Protocols that may be opened externally"},
    )
    blocked_protocols: tuple[str, ...] = field(
        default=DEFAULT_BLOCKED_PROTOCOLS,
        metadata={"help": "Protocols that are always refused"},
    )
    max_url_length: int = field(
        default=DEFAULT_MAX_URL_LENGTH,
        metadata={"help": "Maximum URL length in characters"},
    )

    def __post_init__(self) -> None:
        """Validate the length limit and normalize protocol spellings."""
        if self.max_url_length <= 0:
            raise ValueError(f"max_url_length must be positive, got {self.max_url_length}")
        object.__setattr__(self, "allowed_protocols", tuple(_normalize_protocol(p) for p in self.allowed_protocols))
        object.__setattr__(self, "blocked_protocols", tuple(_normalize_protocol(p) for p in self.blocked_protocols))
        overlap = set(self.allowed_protocols) & set(self.blocked_protocols)
        if overlap:
            raise ValueError(f"Protocols cannot be both allowed and blocked: {sorted(overlap)}")


@dataclass(frozen=True)
class RateLimitOptions(CloneFrozenMixin):
    """Options for the command gate's sliding-window rate limiter.

    Parameters
    ----------
    max_calls : int, default 100
        Calls allowed per identifier inside one window.
    window_ms : int, default 1000
        Length of the sliding window in milliseconds.
    sweep_interval_ms : int, default 60000
        How often idle identifiers are purged.

    """

    max_calls: int = DEFAULT_RATE_LIMIT_MAX_CALLS
    window_ms: int = DEFAULT_RATE_LIMIT_WINDOW_MS
    sweep_interval_ms: int = DEFAULT_RATE_LIMIT_SWEEP_INTERVAL_MS

    def __post_init__(self) -> None:
        """Validate that every limit is positive."""
        if self.max_calls <= 0:
            raise ValueError(f"max_calls must be positive, got {self.max_calls}")
        if self.window_ms <= 0:
            raise ValueError(f"window_ms must be positive, got {self.window_ms}")
        if self.sweep_interval_ms <= 0:
            raise ValueError(f"sweep_interval_ms must be positive, got {self.sweep_interval_ms}")


@dataclass(frozen=True)
class SanitizationPolicy(CloneFrozenMixin):
    """Allowlist policy for clipboard HTML sanitization.

    Parameters
    ----------
    allowed_elements : frozenset of str
        Elements kept as markup. Other elements are flattened to their text.
    allowed_attributes : mapping of str to frozenset of str
        Attributes allowed per element; the ``"*"`` entry applies to all.
    blocked_protocols : frozenset of str
        ``href``/``src`` values starting with one of these are dropped.
    allowed_protocols : frozenset of str
        Protocols documented as passing through (relative URLs always pass).
    dangerous_elements : frozenset of str
        Elements removed together with their whole subtree.

    """

    allowed_elements: frozenset[str] = CLIPBOARD_ALLOWED_ELEMENTS
    allowed_attributes: Mapping[str, frozenset[str]] = field(
        default_factory=lambda: MappingProxyType(dict(CLIPBOARD_ALLOWED_ATTRIBUTES))
    )
    blocked_protocols: frozenset[str] = CLIPBOARD_BLOCKED_PROTOCOLS
    allowed_protocols: frozenset[str] = CLIPBOARD_ALLOWED_PROTOCOLS
    dangerous_elements: frozenset[str] = DANGEROUS_HTML_ELEMENTS

    def __post_init__(self) -> None:
        """Freeze every collection and lowercase names."""
        object.__setattr__(self, "allowed_elements", frozenset(e.lower() for e in self.allowed_elements))
        object.__setattr__(self, "dangerous_elements", frozenset(e.lower() for e in self.dangerous_elements))
        object.__setattr__(
            self, "blocked_protocols", frozenset(_normalize_protocol(p) for p in self.blocked_protocols)
        )
        object.__setattr__(
            self, "allowed_protocols", frozenset(_normalize_protocol(p) for p in self.allowed_protocols)
        )
        attributes = {
            tag.lower(): frozenset(attr.lower() for attr in attrs) for tag, attrs in self.allowed_attributes.items()
        }
        object.__setattr__(self, "allowed_attributes", MappingProxyType(attributes))

        kept_dangerous = self.allowed_elements & self.dangerous_elements
        if kept_dangerous:
            raise ValueError(f"Dangerous elements cannot be allowlisted: {sorted(kept_dangerous)}")

    def attributes_for(self, tag_name: str) -> frozenset[str]:
        """Return the attributes allowed on ``tag_name`` (per-tag union global)."""
        return self.allowed_attributes.get("*", frozenset()) | self.allowed_attributes.get(tag_name, frozenset())


@dataclass(frozen=True)
class GuardOptions(CloneFrozenMixin):
    """Complete policy for the validation layer.

    Parameters
    ----------
    file_integrity : FileIntegrityOptions
        Byte content validation settings
    path_security : PathSecurityOptions
        Path guard settings
    url_security : UrlSecurityOptions
        URL guard settings
    rate_limit : RateLimitOptions
        Command gate rate limiting settings
    sanitization : SanitizationPolicy
        Clipboard sanitization policy
    max_content_size : int, default 10MB
        Largest string (in characters) accepted in a command payload
    production : bool, default True
        Production builds report generic error messages; development builds
        report detailed messages with paths reduced to basenames.

    """

    file_integrity: FileIntegrityOptions = field(default_factory=FileIntegrityOptions)
    path_security: PathSecurityOptions = field(default_factory=PathSecurityOptions)
    url_security: UrlSecurityOptions = field(default_factory=UrlSecurityOptions)
    rate_limit: RateLimitOptions = field(default_factory=RateLimitOptions)
    sanitization: SanitizationPolicy = field(default_factory=SanitizationPolicy)
    max_content_size: int = DEFAULT_MAX_CONTENT_SIZE
    production: bool = True

    def __post_init__(self) -> None:
        """Validate the payload size limit."""
        if self.max_content_size <= 0:
            raise ValueError(f"max_content_size must be positive, got {self.max_content_size}")
