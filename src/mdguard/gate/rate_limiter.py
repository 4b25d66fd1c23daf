#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/gate/rate_limiter.py
"""Sliding-window rate limiting for cross-process commands.

Each identifier (``"{sender_id}-{command}"``) owns a deque of call
timestamps. Timestamps older than the window are dropped lazily when the
identifier is next checked; identifiers that go quiet are dropped by a
background sweep so abandoned senders do not accumulate.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Literal

from mdguard.constants import (
    DEFAULT_RATE_LIMIT_MAX_CALLS,
    DEFAULT_RATE_LIMIT_SWEEP_INTERVAL_MS,
    DEFAULT_RATE_LIMIT_WINDOW_MS,
    STALE_IDENTIFIER_WINDOW_FACTOR,
)
from mdguard.options.security import RateLimitOptions

logger = logging.getLogger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class SlidingWindowRateLimiter:
    """Thread-safe sliding-window rate limiter with idle-identifier sweeping.

    Parameters
    ----------
    max_calls : int, default 100
        Calls allowed per identifier inside one window
    window_ms : float, default 1000
        Window length in milliseconds
    sweep_interval_ms : float, default 60000
        Interval between sweeps of idle identifiers
    clock : callable, optional
        Returns the current time in milliseconds. Defaults to a monotonic
        clock; tests inject a fake.
    start_sweeper : bool, default True
        Start the background sweep thread. When False, call :meth:`sweep`
        directly.

    Examples
    --------
    >>> with SlidingWindowRateLimiter(max_calls=2, window_ms=1000, start_sweeper=False) as limiter:
    ...     [limiter.check("1-save-file") for _ in range(3)]
    [True, True, False]

    """

    def __init__(
        self,
        max_calls: int = DEFAULT_RATE_LIMIT_MAX_CALLS,
        window_ms: float = DEFAULT_RATE_LIMIT_WINDOW_MS,
        sweep_interval_ms: float = DEFAULT_RATE_LIMIT_SWEEP_INTERVAL_MS,
        *,
        clock: Callable[[], float] | None = None,
        start_sweeper: bool = True,
    ):
        """Initialize rate limiter."""
        if max_calls <= 0:
            raise ValueError(f"max_calls must be positive, got {max_calls}")
        if window_ms <= 0:
            raise ValueError(f"window_ms must be positive, got {window_ms}")
        if sweep_interval_ms <= 0:
            raise ValueError(f"sweep_interval_ms must be positive, got {sweep_interval_ms}")

        self.max_calls = max_calls
        self.window_ms = window_ms
        self.sweep_interval_ms = sweep_interval_ms
        self._clock = clock or _monotonic_ms

        self._calls: dict[str, deque[float]] = {}
        self._last_access: dict[str, float] = {}
        self.lock = threading.Lock()

        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None
        if start_sweeper:
            self._sweeper = threading.Thread(target=self._sweep_loop, name="mdguard-rate-limit-sweep", daemon=True)
            self._sweeper.start()

    @classmethod
    def from_options(cls, options: RateLimitOptions, **kwargs: Any) -> SlidingWindowRateLimiter:
        """Create a limiter from ``RateLimitOptions``."""
        return cls(
            max_calls=options.max_calls,
            window_ms=options.window_ms,
            sweep_interval_ms=options.sweep_interval_ms,
            **kwargs,
        )

    @property
    def stale_after_ms(self) -> float:
        """Idle time after which an identifier is swept."""
        return self.window_ms * STALE_IDENTIFIER_WINDOW_FACTOR

    def check(self, identifier: str) -> bool:
        """Record a call for ``identifier`` if the limit allows it.

        Parameters
        ----------
        identifier : str
            Rate-limit key, typically ``"{sender_id}-{command}"``

        Returns
        -------
        bool
            True if the call is allowed (and recorded), False if the
            identifier already has ``max_calls`` calls inside the window

        """
        with self.lock:
            now = self._clock()
            self._last_access[identifier] = now

            timestamps = self._calls.get(identifier)
            if timestamps is None:
                timestamps = deque()
                self._calls[identifier] = timestamps

            while timestamps and now - timestamps[0] >= self.window_ms:
                timestamps.popleft()

            if len(timestamps) >= self.max_calls:
                return False

            timestamps.append(now)
            return True

    def remaining(self, identifier: str) -> int:
        """Return how many calls ``identifier`` may still make in the current window."""
        with self.lock:
            now = self._clock()
            timestamps = self._calls.get(identifier, ())
            recent = sum(1 for t in timestamps if now - t < self.window_ms)
            return max(0, self.max_calls - recent)

    def sweep(self) -> int:
        """Drop identifiers idle for longer than twice the window.

        Returns
        -------
        int
            Number of identifiers removed

        """
        with self.lock:
            now = self._clock()
            stale = [ident for ident, last in self._last_access.items() if now - last > self.stale_after_ms]
            for ident in stale:
                self._calls.pop(ident, None)
                self._last_access.pop(ident, None)

        if stale:
            logger.debug(f"Rate limiter sweep removed {len(stale)} stale identifier(s)")
        return len(stale)

    def reset(self, identifier: str | None = None) -> None:
        """Forget ``identifier``, or every identifier when None."""
        with self.lock:
            if identifier is None:
                self._calls.clear()
                self._last_access.clear()
            else:
                self._calls.pop(identifier, None)
                self._last_access.pop(identifier, None)

    def __len__(self) -> int:
        """Return the number of tracked identifiers."""
        with self.lock:
            return len(self._calls)

    def __contains__(self, identifier: object) -> bool:
        """Return True if ``identifier`` is currently tracked."""
        with self.lock:
            return identifier in self._calls

    def _sweep_loop(self) -> None:
        interval_s = self.sweep_interval_ms / 1000.0
        while not self._stop_event.wait(interval_s):
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Rate limiter sweep failed: {e}")

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        return self._stop_event.is_set()

    def close(self) -> None:
        """Stop the sweep thread. Safe to call more than once."""
        self._stop_event.set()
        if self._sweeper is not None and self._sweeper is not threading.current_thread():
            self._sweeper.join()
        self._sweeper = None

    def __enter__(self) -> SlidingWindowRateLimiter:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> Literal[False]:
        """Context manager exit."""
        self.close()
        return False


__all__ = ["SlidingWindowRateLimiter"]
