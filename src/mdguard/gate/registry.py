#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/gate/registry.py
"""Allowlisted command dispatch.

The renderer can only reach commands registered here, and only commands
named in the schema registry can be registered. Each registered handler is
wrapped by the :class:`CommandGate` with the schema bound to its name.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import BaseModel

from mdguard.constants import UNKNOWN_COMMAND_MESSAGE
from mdguard.gate.command_gate import CommandGate, CommandHandler, GatedHandler
from mdguard.gate.envelope import CommandEnvelope
from mdguard.gate.schemas import SCHEMA_REGISTRY

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Registry mapping allowlisted command names to gated handlers.

    Parameters
    ----------
    gate : CommandGate
        Gate wrapping every registered handler
    schemas : mapping of str to type of BaseModel, optional
        Allowlisted command names and their payload schemas. Defaults to the
        editor's built-in command set.

    """

    def __init__(self, gate: CommandGate, schemas: Mapping[str, type[BaseModel]] | None = None):
        """Initialize an empty registry bound to ``gate``."""
        self.gate = gate
        self.schemas = schemas if schemas is not None else SCHEMA_REGISTRY
        self._handlers: dict[str, GatedHandler] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        *,
        skip_origin_check: bool = False,
        skip_rate_limit: bool = False,
    ) -> GatedHandler:
        """Register ``handler`` for the allowlisted command ``name``.

        Returns
        -------
        callable
            The gated handler, also stored for :meth:`dispatch`

        Raises
        ------
        ValueError
            If ``name`` is not allowlisted or already has a handler

        """
        if name not in self.schemas:
            raise ValueError(f"Command {name!r} is not in the allowlist: {sorted(self.schemas)}")
        if name in self._handlers:
            raise ValueError(f"Command {name!r} already has a handler")

        gated = self.gate.wrap(
            name,
            handler,
            schema=self.schemas[name],
            skip_origin_check=skip_origin_check,
            skip_rate_limit=skip_rate_limit,
        )
        self._handlers[name] = gated
        logger.debug(f"Registered command handler: {name}")
        return gated

    def unregister(self, name: str) -> None:
        """Remove the handler for ``name`` if one is registered."""
        self._handlers.pop(name, None)

    async def dispatch(self, name: str, context: Any, payload: Any = None) -> CommandEnvelope:
        """Route a command from ``context`` to its gated handler.

        Unknown or unregistered commands yield a failure envelope.
        """
        gated = self._handlers.get(name) if isinstance(name, str) else None
        if gated is None:
            logger.warning(f"[SECURITY] Rejected unknown command: {str(name)[:64]!r}")
            return CommandEnvelope.fail(UNKNOWN_COMMAND_MESSAGE)
        return await gated(context, payload)

    @property
    def names(self) -> list[str]:
        """Names of the commands that currently have handlers."""
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        """Return True if ``name`` has a registered handler."""
        return name in self._handlers


__all__ = ["CommandRegistry"]
