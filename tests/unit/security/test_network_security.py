#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for external URL validation.

This module tests the protocol allow/block lists, the length limit and the
normalization applied before URLs are handed to the operating system.
"""

from urllib.parse import urlsplit

import pytest

from mdguard.exceptions import UnsafeUrlError
from mdguard.options import UrlSecurityOptions
from mdguard.utils.network_security import (
    is_url_allowed,
    normalize_url,
    validate_external_url,
)


@pytest.mark.unit
@pytest.mark.security
class TestBlockedProtocols:
    """Test rejection of dangerous protocols."""

    @pytest.mark.parametrize(
        "url,protocol",
        [
            ("file:///etc/passwd", "file:"),
            ("javascript:alert(1)", "javascript:"),
            ("JavaScript:alert(1)", "javascript:"),
            ("vbscript:msgbox", "vbscript:"),
            ("data:text/html,<script>alert(1)</script>", "data:"),
            ("blob:https://example.com/uuid", "blob:"),
            ("about:blank", "about:"),
            ("chrome://settings", "chrome:"),
            ("chrome-extension://abc/page.html", "chrome-extension:"),
        ],
    )
    def test_blocked_protocol(self, url, protocol):
        """Test that blocked protocols are named in the rejection."""
        result = validate_external_url(url)
        assert not result.is_valid
        assert result.sanitized_url is None
        assert result.error == f'Protocol "{protocol}" is not allowed for security reasons'

    @pytest.mark.parametrize("url", ["ftp://example.com/file", "mailto:someone@example.com", "ssh://host"])
    def test_unknown_protocol(self, url):
        """Test that protocols outside the allowlist are rejected."""
        result = validate_external_url(url)
        assert not result.is_valid
        assert result.error == "Only HTTP and HTTPS URLs are allowed"

    def test_leading_whitespace_does_not_hide_protocol(self):
        """Test that padding does not smuggle a blocked protocol through."""
        result = validate_external_url("   javascript:alert(1)")
        assert not result.is_valid

    def test_rejection_is_logged(self, caplog):
        """Test that blocked protocols are logged as security events."""
        with caplog.at_level("WARNING"):
            validate_external_url("file:///etc/passwd")
        assert "[SECURITY]" in caplog.text
        assert "/etc/passwd" not in caplog.text


@pytest.mark.unit
@pytest.mark.security
class TestUrlShape:
    """Test length limits and malformed input."""

    def test_too_long(self):
        """Test that URLs over the limit are rejected before parsing."""
        url = "https://example.com/" + "a" * 5000
        result = validate_external_url(url)
        assert not result.is_valid
        assert result.error == "URL exceeds maximum length of 2048 characters"

    def test_exactly_at_limit(self):
        """Test that a URL of exactly the maximum length passes."""
        prefix = "https://example.com/"
        url = prefix + "a" * (2048 - len(prefix))
        assert validate_external_url(url).is_valid

    def test_custom_limit(self):
        """Test that the length limit is configurable."""
        options = UrlSecurityOptions(max_url_length=20)
        assert not validate_external_url("https://example.com/long", options).is_valid

    @pytest.mark.parametrize("url", ["", "   "])
    def test_empty(self, url):
        """Test that empty URLs are rejected."""
        result = validate_external_url(url)
        assert result.error == "URL cannot be empty"

    @pytest.mark.parametrize("url", ["not a url", "example.com/page", "https://", "http://:80/"])
    def test_malformed(self, url):
        """Test that URLs without a scheme or host are rejected."""
        result = validate_external_url(url)
        assert not result.is_valid
        assert result.error == "Invalid URL format"

    def test_bad_port(self):
        """Test that an out-of-range port is rejected."""
        assert not validate_external_url("https://example.com:99999/").is_valid

    def test_non_string(self):
        """Test that non-string input is rejected without raising."""
        assert not validate_external_url(None).is_valid  # type: ignore[arg-type]


@pytest.mark.unit
class TestNormalization:
    """Test the canonical form of accepted URLs."""

    def test_query_preserved(self):
        """Test that an ordinary URL round-trips unchanged."""
        assert validate_external_url("https://example.com/a?b=c").sanitized_url == "https://example.com/a?b=c"

    def test_host_and_scheme_lowercased(self):
        """Test that scheme and host are lowercased."""
        assert validate_external_url("HTTPS://Example.COM/Path").sanitized_url == "https://example.com/Path"

    def test_default_port_dropped(self):
        """Test that default ports are removed."""
        assert validate_external_url("http://example.com:80/x").sanitized_url == "http://example.com/x"
        assert validate_external_url("https://example.com:443").sanitized_url == "https://example.com/"

    def test_custom_port_kept(self):
        """Test that non-default ports are kept."""
        assert validate_external_url("http://localhost:8080/").sanitized_url == "http://localhost:8080/"

    def test_spaces_encoded(self):
        """Test that unsafe characters are percent-encoded."""
        result = validate_external_url("https://example.com/a b")
        assert result.sanitized_url == "https://example.com/a%20b"

    def test_existing_escapes_kept(self):
        """Test that existing escapes are not double-encoded."""
        result = validate_external_url("https://example.com/a%20b")
        assert result.sanitized_url == "https://example.com/a%20b"

    def test_idn_host(self):
        """Test that internationalized hosts are IDNA encoded."""
        result = validate_external_url("https://bücher.example/")
        assert result.sanitized_url == "https://xn--bcher-kva.example/"

    def test_fragment_kept(self):
        """Test that fragments survive."""
        assert validate_external_url("https://example.com/#top").sanitized_url == "https://example.com/#top"

    def test_surrounding_whitespace_trimmed(self):
        """Test that surrounding whitespace is removed."""
        assert validate_external_url("  https://example.com  ").sanitized_url == "https://example.com/"

    def test_normalize_url_requires_host(self):
        """Test that normalize_url raises on a missing host."""
        with pytest.raises(ValueError):
            normalize_url(urlsplit("https:///path"))


@pytest.mark.unit
@pytest.mark.security
class TestHostGrammar:
    """Test that only well-formed hosts reach the normalized URL."""

    @pytest.mark.parametrize(
        "url",
        [
            'https://evil.com">x/',
            "https://a<b>.com/",
            "https://exa mple.com/",
            "https://exa\u3000mple.com/",
            "https://a..b.example/",
            "https://[zz::1]/",
            "https://[fe80::1%25eth0]/",
        ],
    )
    def test_rejected_hosts(self, url):
        """Test that hosts outside the URL host grammar are invalid."""
        result = validate_external_url(url)
        assert not result.is_valid
        assert result.sanitized_url is None
        assert result.error == "Invalid URL format"

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://[::1]:8080/", "https://[::1]:8080/"),
            ("https://[2001:DB8:0::1]/x", "https://[2001:db8::1]/x"),
            ("http://127.0.0.1:8000/", "http://127.0.0.1:8000/"),
            ("https://my_host.example/", "https://my_host.example/"),
            ("https://example.com./", "https://example.com./"),
        ],
    )
    def test_accepted_hosts(self, url, expected):
        """Test that domain names, IPv4 and IPv6 literals are accepted."""
        assert validate_external_url(url).sanitized_url == expected

    def test_normalize_url_rejects_bad_host(self):
        """Test that normalize_url raises on a host with markup characters."""
        with pytest.raises(ValueError):
            normalize_url(urlsplit("https://a<b>.com/"))


@pytest.mark.unit
class TestResultHelpers:
    """Test the result helpers."""

    def test_unwrap_valid(self):
        """Test that unwrap returns the sanitized URL."""
        assert validate_external_url("https://example.com").unwrap() == "https://example.com/"

    def test_unwrap_invalid_raises(self):
        """Test that unwrap raises UnsafeUrlError with the reason."""
        with pytest.raises(UnsafeUrlError, match="not allowed"):
            validate_external_url("javascript:alert(1)").unwrap()

    def test_is_url_allowed(self):
        """Test the boolean shortcut."""
        assert is_url_allowed("https://example.com")
        assert not is_url_allowed("file:///etc/passwd")
