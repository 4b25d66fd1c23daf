#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/utils/network_security.py
"""External URL validation for link activation and export.

This module guards the boundary between document content and the operating
system's URL handlers. URLs taken from markdown links are validated here
before they are handed to a shell-open collaborator (e.g. the default
browser) or embedded in an exported PDF.

The security measures include:
- Length limits to prevent DoS via extremely long URLs
- An explicit protocol blocklist for specific, loggable rejections
- An explicit protocol allowlist (anything not allowed is rejected)
- Host names restricted to the URL host grammar (IDNA labels or an IPv6
  literal)
- Re-serialization so the normalized URL, not the raw input, is opened

Functions
---------
- validate_external_url: Validate and normalize a URL for external opening
- normalize_url: Re-serialize a parsed http(s) URL in canonical form
"""

from __future__ import annotations

import ipaddress
import logging
import re
from dataclasses import dataclass, field
from urllib.parse import SplitResult, quote, urlsplit, urlunsplit

from mdguard.exceptions import MdGuardError, UnsafeUrlError
from mdguard.options.security import UrlSecurityOptions

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}

# Dot-separated labels of an ASCII (IDNA-encoded) host name or IPv4 address
_HOSTNAME_RE = re.compile(r"^[a-z0-9_-]+(?:\.[a-z0-9_-]+)*\.?$")

# Characters left untouched when re-encoding each component; "%" is kept so
# existing escapes are not double-encoded
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"
_QUERY_SAFE = "/?%:@!$&'()*+,;=-._~"
_USERINFO_SAFE = "%!$&'()*+,;=-._~"


@dataclass(frozen=True)
class UrlValidationResult:
    """Outcome of validating an external URL.

    Parameters
    ----------
    is_valid : bool
        Whether the URL may be opened
    sanitized_url : str, optional
        The normalized URL. Present only when ``is_valid`` is True.
    error : str, optional
        User-facing reason for the rejection. Present only when invalid.

    """

    is_valid: bool
    sanitized_url: str | None = None
    error: str | None = None
    error_type: type[MdGuardError] | None = field(default=None, repr=False, compare=False)

    def unwrap(self) -> str:
        """Return the sanitized URL or raise ``UnsafeUrlError``."""
        if self.is_valid and self.sanitized_url is not None:
            return self.sanitized_url
        raise (self.error_type or UnsafeUrlError)(self.error or "Invalid URL")


def _invalid(error: str) -> UrlValidationResult:
    return UrlValidationResult(is_valid=False, error=error, error_type=UnsafeUrlError)


def _normalize_hostname(hostname: str) -> str:
    """Normalize a hostname for comparison and output.

    Applies IDNA encoding (for internationalized domain names) and lowercasing
    so equivalent spellings of a host serialize identically.

    Examples
    --------
    >>> _normalize_hostname("Example.com")
    'example.com'

    """
    try:
        return hostname.encode("idna").decode("ascii").lower()
    except UnicodeError:
        # Labels idna cannot encode (e.g. too long) fall back to lowercasing
        return hostname.lower()


def _netloc_host(hostname: str) -> str:
    """Return ``hostname`` as written in a normalized netloc.

    Raises
    ------
    ValueError
        If the host contains characters outside the URL host grammar

    Examples
    --------
    >>> _netloc_host("B\u00fccher.example")
    'xn--bcher-kva.example'
    >>> _netloc_host("::1")
    '[::1]'

    """
    if ":" in hostname:
        # urlsplit strips the brackets from IPv6 literals; zone ids are refused
        if "%" in hostname:
            raise ValueError("IPv6 zone identifiers are not allowed in URLs")
        try:
            return f"[{ipaddress.IPv6Address(hostname).compressed}]"
        except ValueError:
            raise ValueError("URL host is not a valid IPv6 address") from None

    host = _normalize_hostname(hostname)
    if not _HOSTNAME_RE.match(host):
        raise ValueError("URL host contains characters that are not allowed")
    return host


def normalize_url(parts: SplitResult) -> str:
    """Re-serialize a parsed http(s) URL in canonical form.

    The scheme and host are lowercased, internationalized hosts are IDNA
    encoded, default ports are dropped, an empty path becomes ``/`` and
    characters that are unsafe in each component are percent-encoded.

    Parameters
    ----------
    parts : SplitResult
        Result of ``urllib.parse.urlsplit``

    Returns
    -------
    str
        Normalized URL

    Raises
    ------
    ValueError
        If the URL has no host, a host outside the URL host grammar, or an
        invalid port

    Examples
    --------
    >>> normalize_url(urlsplit("HTTPS://Example.COM:443"))
    'https://example.com/'
    >>> normalize_url(urlsplit("https://example.com/a b?q=1 2#frag"))
    'https://example.com/a%20b?q=1%202#frag'

    """
    scheme = parts.scheme.lower()
    hostname = parts.hostname
    if not hostname:
        raise ValueError("URL is missing a host")

    host = _netloc_host(hostname)
    port = parts.port  # raises ValueError for out-of-range ports

    netloc = host
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"

    if parts.username is not None:
        userinfo = quote(parts.username, safe=_USERINFO_SAFE)
        if parts.password is not None:
            userinfo = f"{userinfo}:{quote(parts.password, safe=_USERINFO_SAFE)}"
        netloc = f"{userinfo}@{netloc}"

    path = quote(parts.path, safe=_PATH_SAFE) or "/"
    query = quote(parts.query, safe=_QUERY_SAFE)
    fragment = quote(parts.fragment, safe=_QUERY_SAFE)

    return urlunsplit((scheme, netloc, path, query, fragment))


def validate_external_url(url: str, options: UrlSecurityOptions | None = None) -> UrlValidationResult:
    """Validate and normalize a URL before it is opened externally.

    Parameters
    ----------
    url : str
        URL from a markdown link or export request
    options : UrlSecurityOptions, optional
        Allow/block lists and the length limit. Defaults are used if None.

    Returns
    -------
    UrlValidationResult
        ``is_valid=True`` with the normalized URL, or ``is_valid=False`` with
        a reason. Never raises.

    Examples
    --------
    >>> validate_external_url("https://example.com/a?b=c").sanitized_url
    'https://example.com/a?b=c'
    >>> validate_external_url("javascript:alert(1)").error
    'Protocol "javascript:" is not allowed for security reasons'
    >>> validate_external_url("ftp://example.com").error
    'Only HTTP and HTTPS URLs are allowed'

    """
    if options is None:
        options = UrlSecurityOptions()

    if not isinstance(url, str):
        return _invalid("Invalid URL format")

    # Length check happens before any parsing work
    if len(url) > options.max_url_length:
        logger.warning(f"[SECURITY] Rejected URL of length {len(url)} (maximum {options.max_url_length})")
        return _invalid(f"URL exceeds maximum length of {options.max_url_length} characters")

    trimmed = url.strip()
    if not trimmed:
        return _invalid("URL cannot be empty")

    try:
        parts = urlsplit(trimmed)
    except ValueError:
        return _invalid("Invalid URL format")

    if not parts.scheme:
        return _invalid("Invalid URL format")

    protocol = f"{parts.scheme.lower()}:"

    if protocol in options.blocked_protocols:
        logger.warning(f"[SECURITY] Blocked dangerous URL protocol: {protocol}")
        return _invalid(f'Protocol "{protocol}" is not allowed for security reasons')

    if protocol not in options.allowed_protocols:
        logger.warning(f"[SECURITY] Blocked URL with unknown protocol: {protocol}")
        return _invalid("Only HTTP and HTTPS URLs are allowed")

    try:
        sanitized = normalize_url(parts)
    except ValueError as e:
        logger.debug(f"URL normalization failed: {e}")
        return _invalid("Invalid URL format")

    if len(sanitized) > options.max_url_length:
        # Percent-encoding can grow a URL past the limit
        return _invalid(f"URL exceeds maximum length of {options.max_url_length} characters")

    return UrlValidationResult(is_valid=True, sanitized_url=sanitized)


def is_url_allowed(url: str, options: UrlSecurityOptions | None = None) -> bool:
    """Return True if ``url`` passes :func:`validate_external_url`."""
    return validate_external_url(url, options).is_valid


__all__ = [
    "UrlValidationResult",
    "is_url_allowed",
    "normalize_url",
    "validate_external_url",
]
