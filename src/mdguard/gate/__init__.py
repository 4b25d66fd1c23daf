#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/gate/__init__.py
"""Gated dispatch of cross-process commands.

Commands from the renderer reach business logic only through a
:class:`CommandGate`, which checks the sender's origin, applies per-sender
rate limits and validates the payload against the command's schema. The
:class:`CommandRegistry` restricts dispatch to an allowlisted command set.
"""

from mdguard.gate.command_gate import CommandGate
from mdguard.gate.envelope import CommandEnvelope
from mdguard.gate.handlers import BuiltinCommands, register_builtin_commands
from mdguard.gate.origin import CommandContext, OriginRegistry, SenderContext
from mdguard.gate.rate_limiter import SlidingWindowRateLimiter
from mdguard.gate.registry import CommandRegistry
from mdguard.gate.schemas import SCHEMA_REGISTRY, format_validation_error, validate_payload

__all__ = [
    "SCHEMA_REGISTRY",
    "BuiltinCommands",
    "CommandContext",
    "CommandEnvelope",
    "CommandGate",
    "CommandRegistry",
    "OriginRegistry",
    "SenderContext",
    "SlidingWindowRateLimiter",
    "format_validation_error",
    "register_builtin_commands",
    "validate_payload",
]
