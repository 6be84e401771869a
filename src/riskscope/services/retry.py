"""Bounded retry with exponential backoff for async operations.

Every failure is treated as retryable up to the attempt cap, except the
fail-fast family (:class:`ConfigurationError`, :class:`CircuitOpenError`,
:class:`AnalysisCancelledError`), which propagates on first sight.  On
exhaustion the executor raises :class:`RetryExhaustedError`; deciding what to
do next (the deterministic fallback) is the caller's job.

Cancellation: ``asyncio.CancelledError`` is never caught, so cancelling the
surrounding task aborts the in-flight attempt.  A caller may also pass an
``asyncio.Event``; setting it aborts the current attempt or backoff sleep
and skips every remaining attempt.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from riskscope.domain.exceptions import (
    AnalysisCancelledError,
    CircuitOpenError,
    ConfigurationError,
    RetryExhaustedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

#: ``(attempt, error, will_retry, backoff_seconds)`` -- may be sync or async.
FailureHook = Callable[[int, Exception, bool, float], Any]
#: ``(attempt)`` -- may be sync or async.
AttemptHook = Callable[[int], Any]

NON_RETRYABLE: tuple[type[Exception], ...] = (
    ConfigurationError,
    CircuitOpenError,
    AnalysisCancelledError,
)


async def _maybe_await(value: Any) -> None:
    if inspect.isawaitable(value):
        await value


class RetryExecutor:
    """Runs an async operation up to ``max_attempts`` times.

    The delay before attempt *n* (n >= 2) is
    ``min(base_delay * 2 ** (n - 2), max_delay)``: 1 s, 2 s, 4 s, ... capped
    at 10 s with the defaults.

    Parameters
    ----------
    max_attempts:
        Default attempt cap.  Defaults to 3.
    base_delay:
        Backoff after the first failure, in seconds.
    max_delay:
        Backoff ceiling, in seconds.
    sleep:
        Coroutine used to wait.  Injectable so tests never really sleep.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    def backoff_delay(self, failed_attempt: int) -> float:
        """Seconds to wait after *failed_attempt* (1-based) before the next."""
        return min(self.base_delay * 2 ** (failed_attempt - 1), self.max_delay)

    async def with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: int | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
        on_attempt: AttemptHook | None = None,
        on_failure: FailureHook | None = None,
    ) -> T:
        """Await ``operation()`` until it succeeds or attempts run out.

        Raises
        ------
        RetryExhaustedError
            After the last attempt fails; ``last_error`` holds its exception.
        AnalysisCancelledError
            If *cancel_event* is set before the operation succeeds.
        ConfigurationError, CircuitOpenError
            Immediately, without retrying.
        """
        cap = self.max_attempts if max_attempts is None else max_attempts
        if cap < 1:
            raise ValueError(f"max_attempts must be >= 1, got {cap}")

        last_error: Exception | None = None

        for attempt in range(1, cap + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise AnalysisCancelledError(attempts=attempt - 1)

            if on_attempt is not None:
                await _maybe_await(on_attempt(attempt))

            try:
                return await self._race(operation, cancel_event, attempt)
            except NON_RETRYABLE:
                raise
            except Exception as exc:
                last_error = exc
                will_retry = attempt < cap
                delay = self.backoff_delay(attempt) if will_retry else 0.0
                logger.warning(
                    "RetryExecutor: attempt %d/%d failed (%s: %s)%s",
                    attempt,
                    cap,
                    type(exc).__name__,
                    exc,
                    f", retrying in {delay:.1f}s" if will_retry else "",
                )
                if on_failure is not None:
                    await _maybe_await(on_failure(attempt, exc, will_retry, delay))
                if will_retry and delay > 0:
                    await self._race(lambda: self._sleep(delay), cancel_event, attempt)

        raise RetryExhaustedError(
            f"All {cap} attempts failed: {last_error}",
            attempts=cap,
            last_error=last_error,
        ) from last_error

    async def _race(
        self,
        operation: Callable[[], Awaitable[T]],
        cancel_event: asyncio.Event | None,
        attempt: int,
    ) -> T:
        """Await *operation*, aborting it if *cancel_event* fires first."""
        if cancel_event is None:
            return await operation()

        op_task = asyncio.ensure_future(operation())
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {op_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            op_task.cancel()
            cancel_task.cancel()
            raise

        if op_task in done:
            cancel_task.cancel()
            return op_task.result()

        op_task.cancel()
        await asyncio.wait({op_task})
        if not op_task.cancelled() and op_task.exception() is not None:
            logger.debug(
                "RetryExecutor: attempt %d errored while being cancelled: %r",
                attempt,
                op_task.exception(),
            )
        logger.info("RetryExecutor: cancelled during attempt %d", attempt)
        raise AnalysisCancelledError(attempts=attempt)
