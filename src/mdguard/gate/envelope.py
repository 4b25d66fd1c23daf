#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/gate/envelope.py
"""Result envelope returned by every gated command."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class CommandEnvelope:
    """Outcome of a gated command: either ``data`` or a user-safe ``error``.

    Parameters
    ----------
    success : bool
        Whether the command ran and returned normally
    data : any, optional
        Handler return value. Only meaningful when ``success`` is True.
    error : str, optional
        User-safe failure message. Present if and only if ``success`` is
        False.

    Examples
    --------
    >>> CommandEnvelope.ok({"saved": True}).to_dict()
    {'success': True, 'data': {'saved': True}}
    >>> CommandEnvelope.fail("Rate limit exceeded").to_dict()
    {'success': False, 'error': 'Rate limit exceeded'}

    """

    success: bool
    data: Any = None
    error: str | None = None

    def __post_init__(self) -> None:
        """Enforce that exactly one of the two shapes is used."""
        if self.success and self.error is not None:
            raise ValueError("A successful envelope cannot carry an error")
        if not self.success:
            if not self.error:
                raise ValueError("A failed envelope must carry an error message")
            if self.data is not None:
                raise ValueError("A failed envelope cannot carry data")

    @classmethod
    def ok(cls, data: Any = None) -> CommandEnvelope:
        """Build a success envelope."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> CommandEnvelope:
        """Build a failure envelope."""
        return cls(success=False, error=error)

    @property
    def is_success(self) -> bool:
        """Whether the command succeeded."""
        return self.success

    @property
    def is_error(self) -> bool:
        """Whether the command failed."""
        return not self.success

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the transport back to the sender."""
        if not self.success:
            return {"success": False, "error": self.error}

        data = self.data
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json", by_alias=True)
        return {"success": True, "data": data}


__all__ = ["CommandEnvelope"]
