#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/options/base.py
"""Base classes for mdguard options.

This module defines the foundation shared by every options class: options are
frozen dataclasses, constructed once and never mutated, with a helper for
producing modified copies.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, fields, replace
from typing import Any

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self


@dataclass(frozen=True)
class CloneFrozenMixin:
    """Mixin providing frozen dataclass cloning capabilities.

    This mixin adds the ability to create modified copies of frozen dataclass
    instances, which is useful for immutable configuration objects.
    """

    def create_updated(self, **kwargs: Any) -> Self:
        """Create a new instance with updated field values.

        Parameters
        ----------
        **kwargs : Any
            Field names and their new values

        Returns
        -------
        Self
            New instance with specified fields updated

        """
        return replace(self, **kwargs)

    @classmethod
    def field_names(cls) -> frozenset[str]:
        """Return the names of the dataclass fields of this options class."""
        return frozenset(f.name for f in fields(cls))  # type: ignore[arg-type]
