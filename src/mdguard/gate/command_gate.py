#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/gate/command_gate.py
"""The command gate: security checks in front of every cross-process handler.

A wrapped handler runs only after the sender passes, in order:

1. Origin check: the sender context is registered and not torn down
2. Rate limit: fewer than ``max_calls`` calls for ``"{sender_id}-{command}"``
   inside the sliding window
3. Schema validation of the payload, when the command declares a schema

The handler may be a plain function or a coroutine function. Whatever
happens, the caller receives a :class:`CommandEnvelope`; exceptions never
cross the gate.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Literal

from pydantic import BaseModel

from mdguard.constants import INVALID_ORIGIN_MESSAGE, RATE_LIMIT_MESSAGE
from mdguard.exceptions import OriginError, RateLimitError, SchemaError
from mdguard.gate.envelope import CommandEnvelope
from mdguard.gate.origin import CommandContext, OriginRegistry
from mdguard.gate.rate_limiter import SlidingWindowRateLimiter
from mdguard.gate.schemas import validate_payload
from mdguard.options.security import GuardOptions
from mdguard.utils.security import redact_paths, sanitize_error_message

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Any, CommandContext], Any]
GatedHandler = Callable[..., Awaitable[CommandEnvelope]]


class CommandGate:
    """Wraps command handlers with origin, rate-limit and schema checks.

    The gate owns its rate limiter, including the limiter's sweep thread;
    call :meth:`close` (or use the gate as a context manager) when the
    application shuts down.

    Parameters
    ----------
    options : GuardOptions, optional
        Policy for rate limiting, payload size and error reporting
    origins : OriginRegistry, optional
        Trusted senders. A new, empty registry is created if None.
    rate_limiter : SlidingWindowRateLimiter, optional
        Limiter to use instead of one built from ``options.rate_limit``
    clock : callable, optional
        Millisecond clock for the default limiter
    start_sweeper : bool, default True
        Whether the default limiter starts its sweep thread

    Examples
    --------
    >>> import asyncio
    >>> from mdguard.gate.origin import SenderContext
    >>> with CommandGate() as gate:
    ...     window = SenderContext(id=1)
    ...     gate.origins.register(window)
    ...     ping = gate.wrap("ping", lambda payload, context: "pong")
    ...     asyncio.run(ping(window)).to_dict()
    {'success': True, 'data': 'pong'}

    """

    def __init__(
        self,
        options: GuardOptions | None = None,
        origins: OriginRegistry | None = None,
        *,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        clock: Callable[[], float] | None = None,
        start_sweeper: bool = True,
    ):
        """Initialize the gate."""
        self.options = options or GuardOptions()
        self.origins = origins if origins is not None else OriginRegistry()
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter.from_options(
            self.options.rate_limit, clock=clock, start_sweeper=start_sweeper
        )

    def authorize(
        self,
        handler_name: str,
        context: Any,
        *,
        skip_origin_check: bool = False,
        skip_rate_limit: bool = False,
    ) -> None:
        """Apply the origin check and the rate limit for one call.

        A call that passes is counted against the sender's rate limit.

        Raises
        ------
        OriginError
            If the sender is unknown or torn down
        RateLimitError
            If the sender exceeded the limit for ``handler_name``

        """
        if not skip_origin_check and not self.origins.is_valid_origin(context):
            logger.warning(f"[SECURITY] Rejected {handler_name} from invalid origin")
            raise OriginError(INVALID_ORIGIN_MESSAGE)

        if not skip_rate_limit:
            sender_id = getattr(context, "id", None)
            if not self.rate_limiter.check(f"{sender_id}-{handler_name}"):
                logger.warning(f"[SECURITY] Rate limit exceeded for {handler_name}")
                raise RateLimitError(RATE_LIMIT_MESSAGE)

    async def invoke(
        self,
        handler_name: str,
        handler: CommandHandler,
        context: Any,
        payload: Any = None,
        *,
        schema: type[BaseModel] | None = None,
        skip_origin_check: bool = False,
        skip_rate_limit: bool = False,
    ) -> CommandEnvelope:
        """Run ``handler`` behind the gate's checks.

        Parameters
        ----------
        handler_name : str
            Command name, used in rate-limit keys and logs
        handler : callable
            ``handler(payload, context)``, sync or async
        context : CommandContext
            Sender of the command
        payload : any, optional
            Raw payload from the sender
        schema : type of BaseModel, optional
            Payload schema; the handler receives the validated model
        skip_origin_check : bool, default False
            Skip the origin check
        skip_rate_limit : bool, default False
            Skip rate limiting

        Returns
        -------
        CommandEnvelope
            The handler's result, or a user-safe error. Never raises
            (except for task cancellation).

        """
        try:
            self.authorize(handler_name, context, skip_origin_check=skip_origin_check, skip_rate_limit=skip_rate_limit)
            if schema is not None:
                payload = validate_payload(schema, payload, self.options.max_content_size)
        except (OriginError, RateLimitError) as e:
            return CommandEnvelope.fail(e.message)
        except SchemaError as e:
            logger.warning(f"[SECURITY] Validation failed for {handler_name}: {e.message}")
            return CommandEnvelope.fail(e.message)

        try:
            result = handler(payload, context)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(f"Error in {handler_name}: {type(e).__name__}: {redact_paths(str(e))}")
            return CommandEnvelope.fail(sanitize_error_message(e, production=self.options.production))

        return CommandEnvelope.ok(result)

    def wrap(
        self,
        handler_name: str,
        handler: CommandHandler,
        *,
        schema: type[BaseModel] | None = None,
        skip_origin_check: bool = False,
        skip_rate_limit: bool = False,
    ) -> GatedHandler:
        """Return ``handler`` wrapped behind the gate.

        The returned coroutine function has the signature
        ``wrapped(context, payload=None) -> CommandEnvelope``. See
        :meth:`invoke` for the parameters.
        """

        async def wrapped(context: Any, payload: Any = None) -> CommandEnvelope:
            return await self.invoke(
                handler_name,
                handler,
                context,
                payload,
                schema=schema,
                skip_origin_check=skip_origin_check,
                skip_rate_limit=skip_rate_limit,
            )

        wrapped.__name__ = f"gated_{handler_name.replace('-', '_')}"
        wrapped.__doc__ = handler.__doc__
        return wrapped

    def close(self) -> None:
        """Stop the rate limiter's sweep thread."""
        self.rate_limiter.close()

    def __enter__(self) -> CommandGate:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> Literal[False]:
        """Context manager exit."""
        self.close()
        return False


__all__ = ["CommandGate", "CommandHandler", "GatedHandler"]
