"""Bounded handler invocation.

Wraps one call into a capability handler with the server's timeout policy.
Coroutine handlers are awaited on a private event loop with a deadline;
plain handlers run inline and their result is discarded if they overran.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import Any

DEFAULT_TIMEOUT = 30.0


class InvocationTimeoutError(Exception):
    """Raised when a handler does not finish within its deadline."""

    pass


class InvocationCancelledError(Exception):
    """Raised when a cancelled invocation is asked to run."""

    pass


async def _await_with_timeout(awaitable: Awaitable[Any], timeout: float) -> Any:
    return await asyncio.wait_for(awaitable, timeout)


class Invocation:
    """A single pending handler call.

    Lifecycle: created, then either cancelled before it starts or run once
    with a bounded wait. Cancelling a running or finished invocation has no
    effect.
    """

    def __init__(self, handler: Callable[..., Any], *args: Any) -> None:
        """Prepare the call without starting it.

        Args:
            handler: Capability handler (plain or coroutine function).
            *args: Positional arguments for the handler.
        """
        self._handler = handler
        self._args = args
        self._started = False
        self._cancelled = False

    @property
    def started(self) -> bool:
        return self._started

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Prevent the invocation from starting.

        Returns:
            True if the invocation will not run, False if it already started.
        """
        if self._started:
            return False
        self._cancelled = True
        return True

    def run(self, timeout: float = DEFAULT_TIMEOUT) -> Any:
        """Run the handler and wait at most ``timeout`` seconds for it.

        Args:
            timeout: Deadline in seconds.

        Returns:
            Whatever the handler returned (awaited if it was a coroutine).

        Raises:
            InvocationCancelledError: If the invocation was cancelled.
            InvocationTimeoutError: If the deadline passed.
            RuntimeError: If the invocation was already run.
        """
        if self._cancelled:
            raise InvocationCancelledError("Invocation was cancelled before it started")
        if self._started:
            raise RuntimeError("Invocation already started")
        self._started = True

        started_at = time.monotonic()
        result = self._handler(*self._args)

        if inspect.isawaitable(result):
            remaining = max(timeout - (time.monotonic() - started_at), 0.0)
            try:
                return asyncio.run(_await_with_timeout(result, remaining))
            except TimeoutError as e:
                raise InvocationTimeoutError(f"Handler exceeded {timeout}s timeout") from e

        if time.monotonic() - started_at > timeout:
            raise InvocationTimeoutError(f"Handler exceeded {timeout}s timeout")
        return result
