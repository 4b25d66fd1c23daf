#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Configuration options for the mdguard validators and command gate.

Options are frozen dataclasses: construct them once at startup, share them
freely between threads, and derive variants with ``create_updated``.
"""

from __future__ import annotations

from mdguard.options.base import CloneFrozenMixin
from mdguard.options.security import (
    FileIntegrityOptions,
    GuardOptions,
    PathSecurityOptions,
    RateLimitOptions,
    SanitizationPolicy,
    UrlSecurityOptions,
)

__all__ = [
    "CloneFrozenMixin",
    "FileIntegrityOptions",
    "GuardOptions",
    "PathSecurityOptions",
    "RateLimitOptions",
    "SanitizationPolicy",
    "UrlSecurityOptions",
]
