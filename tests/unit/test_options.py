#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for the options classes."""

import dataclasses

import pytest

from mdguard.options import (
    FileIntegrityOptions,
    GuardOptions,
    PathSecurityOptions,
    RateLimitOptions,
    SanitizationPolicy,
    UrlSecurityOptions,
)


@pytest.mark.unit
class TestDefaults:
    """Test default policy values."""

    def test_guard_defaults(self):
        """Test the aggregate defaults."""
        options = GuardOptions()
        assert options.production is True
        assert options.max_content_size == 10 * 1024 * 1024
        assert options.file_integrity.max_control_char_ratio == 0.1
        assert options.file_integrity.allowed_control_chars == frozenset({"\n", "\r", "\t"})
        assert options.path_security.allowed_extensions == (".md", ".markdown")
        assert options.url_security.allowed_protocols == ("https:", "http:")
        assert options.url_security.max_url_length == 2048
        assert options.rate_limit == RateLimitOptions(max_calls=100, window_ms=1000, sweep_interval_ms=60_000)

    def test_frozen(self):
        """Test that options cannot be mutated."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            GuardOptions().production = False  # type: ignore[misc]

    def test_create_updated(self):
        """Test deriving a modified copy."""
        base = RateLimitOptions()
        updated = base.create_updated(max_calls=5)
        assert updated.max_calls == 5
        assert base.max_calls == 100

    def test_field_names(self):
        """Test listing field names."""
        assert RateLimitOptions.field_names() == frozenset({"max_calls", "window_ms", "sweep_interval_ms"})


@pytest.mark.unit
class TestNormalization:
    """Test normalization of user-supplied spellings."""

    def test_extensions(self):
        """Test extension normalization."""
        assert PathSecurityOptions(allowed_extensions=("MD", " .Markdown ")).allowed_extensions == (".md", ".markdown")

    def test_protocols(self):
        """Test protocol normalization."""
        options = UrlSecurityOptions(allowed_protocols=("HTTPS",), blocked_protocols=("javascript",))
        assert options.allowed_protocols == ("https:",)
        assert options.blocked_protocols == ("javascript:",)

    def test_policy_lowercases(self):
        """Test that sanitization names are lowercased."""
        policy = SanitizationPolicy(allowed_elements=frozenset({"P"}), allowed_attributes={"A": ["HREF"]})
        assert policy.allowed_elements == frozenset({"p"})
        assert policy.attributes_for("a") == frozenset({"href"})

    def test_global_attributes_merged(self):
        """Test that "*" attributes apply to every element."""
        policy = SanitizationPolicy()
        assert "class" in policy.attributes_for("td")
        assert "colspan" in policy.attributes_for("td")
        assert "colspan" not in policy.attributes_for("p")

    def test_policy_attributes_read_only(self):
        """Test that the attribute mapping cannot be modified."""
        with pytest.raises(TypeError):
            SanitizationPolicy().allowed_attributes["script"] = frozenset()  # type: ignore[index]


@pytest.mark.unit
class TestValidation:
    """Test range validation."""

    @pytest.mark.parametrize(
        "factory",
        [
            lambda: FileIntegrityOptions(max_control_char_ratio=-0.1),
            lambda: FileIntegrityOptions(max_control_char_ratio=1.1),
            lambda: FileIntegrityOptions(max_file_size=0),
            lambda: FileIntegrityOptions(allowed_control_chars=frozenset({"ab"})),
            lambda: PathSecurityOptions(allowed_extensions=()),
            lambda: UrlSecurityOptions(max_url_length=0),
            lambda: UrlSecurityOptions(allowed_protocols=("https:",), blocked_protocols=("https:",)),
            lambda: RateLimitOptions(max_calls=0),
            lambda: RateLimitOptions(window_ms=-5),
            lambda: RateLimitOptions(sweep_interval_ms=0),
            lambda: GuardOptions(max_content_size=0),
        ],
    )
    def test_invalid(self, factory):
        """Test that out-of-range values raise ValueError."""
        with pytest.raises(ValueError):
            factory()
