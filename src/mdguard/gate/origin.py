#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/gate/origin.py
"""Sender contexts and the registry of trusted command origins.

A sender context stands for one renderer (an editor window). The window
manager registers each context it creates and unregisters it on teardown;
commands from any other sender are refused by the gate.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class CommandContext(Protocol):
    """What the gate needs to know about the sender of a command."""

    @property
    def id(self) -> int | str:
        """Stable identifier of the sender, used in rate-limit keys."""
        ...

    def is_destroyed(self) -> bool:
        """Return True once the sender has been torn down."""
        ...


@dataclass(eq=False)
class SenderContext:
    """Minimal concrete sender context.

    Parameters
    ----------
    id : int or str
        Sender identifier
    destroyed : bool, default False
        Whether the sender has been torn down

    """

    id: int | str
    destroyed: bool = field(default=False)

    def is_destroyed(self) -> bool:
        """Return True once :meth:`destroy` has been called."""
        return self.destroyed

    def destroy(self) -> None:
        """Mark the sender as torn down."""
        self.destroyed = True


class OriginRegistry:
    """Registry of sender contexts allowed to issue commands.

    Contexts are tracked by identity, so a different object carrying the
    same ``id`` is not trusted.

    Examples
    --------
    >>> registry = OriginRegistry()
    >>> window = SenderContext(id=1)
    >>> registry.register(window)
    >>> registry.is_valid_origin(window)
    True
    >>> registry.is_valid_origin(SenderContext(id=1))
    False

    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._contexts: dict[int, CommandContext] = {}
        self._lock = threading.Lock()

    def register(self, context: CommandContext) -> None:
        """Trust commands from ``context``."""
        with self._lock:
            self._contexts[id(context)] = context
        logger.debug(f"Registered command origin {context.id}")

    def unregister(self, context: CommandContext) -> None:
        """Stop trusting ``context``. Unknown contexts are ignored."""
        with self._lock:
            removed = self._contexts.pop(id(context), None)
        if removed is not None:
            logger.debug(f"Unregistered command origin {context.id}")

    def is_valid_origin(self, context: object) -> bool:
        """Check that ``context`` is registered and has not been torn down.

        Returns
        -------
        bool
            False for None, unknown or destroyed contexts, and for contexts
            whose state cannot be queried. Never raises.

        """
        if context is None:
            logger.warning("[SECURITY] Command received without a sender context")
            return False

        with self._lock:
            registered = self._contexts.get(id(context)) is context

        if not registered:
            logger.warning("[SECURITY] Command from unknown sender")
            return False

        try:
            destroyed = context.is_destroyed()  # type: ignore[attr-defined]
        except Exception as e:
            logger.error(f"Origin validation error: {e}")
            return False

        if destroyed:
            logger.warning("[SECURITY] Command from destroyed sender")
            return False

        return True

    def __len__(self) -> int:
        """Return the number of registered contexts."""
        with self._lock:
            return len(self._contexts)

    def __contains__(self, context: object) -> bool:
        """Return True if ``context`` is registered (destroyed or not)."""
        with self._lock:
            return self._contexts.get(id(context)) is context


__all__ = ["CommandContext", "OriginRegistry", "SenderContext"]
