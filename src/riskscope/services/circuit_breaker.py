"""Fail-fast gate in front of the upstream model.

After ``failure_threshold`` consecutive terminal failures the breaker opens
and analyses fail fast with :class:`CircuitOpenError` instead of launching
another retry storm.  There is no background timer: the cooldown is checked
lazily on the next :meth:`CircuitBreaker.is_open` call, which closes the
breaker once ``cooldown_seconds`` have passed since the last failure.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from riskscope.domain.values import CircuitState

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """Consecutive-failure circuit breaker.

    Parameters
    ----------
    failure_threshold:
        Consecutive failures that open the circuit.  Defaults to 5.
    cooldown_seconds:
        Time after the last failure before an open circuit closes again.
        Defaults to 60.
    clock:
        Monotonic clock in seconds.  Injectable for tests.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError(
                f"failure_threshold must be >= 1, got {failure_threshold}"
            )
        self._failure_threshold = failure_threshold
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock

        self._consecutive_failures = 0
        self._last_failure_at = 0.0
        self._is_open = False
        self._total_failures = 0
        self._times_opened = 0

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown_seconds

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def state(self) -> CircuitState:
        """Snapshot without triggering the lazy cooldown check."""
        return CircuitState(
            consecutive_failures=self._consecutive_failures,
            last_failure_at=self._last_failure_at,
            is_open=self._is_open,
        )

    def is_open(self) -> bool:
        """Whether calls should fail fast.

        Side effect: closes the circuit (and zeroes the failure count) if the
        cooldown has elapsed since the last failure.
        """
        if not self._is_open:
            return False

        elapsed = self._clock() - self._last_failure_at
        if elapsed > self._cooldown_seconds:
            logger.info(
                "CircuitBreaker: closed after %.1fs cooldown", elapsed
            )
            self._reset()
            return False
        return True

    def retry_after(self) -> float:
        """Seconds until an open circuit would close; 0 when closed."""
        if not self._is_open:
            return 0.0
        remaining = self._cooldown_seconds - (self._clock() - self._last_failure_at)
        return max(0.0, remaining)

    def record_failure(self) -> None:
        """Count a terminal failure; opens the circuit at the threshold."""
        self._consecutive_failures += 1
        self._total_failures += 1
        self._last_failure_at = self._clock()

        if not self._is_open and self._consecutive_failures >= self._failure_threshold:
            self._is_open = True
            self._times_opened += 1
            logger.warning(
                "CircuitBreaker: opened after %d consecutive failures",
                self._consecutive_failures,
            )

    def record_success(self) -> None:
        """Zero the failure count and close the circuit."""
        if self._is_open:
            logger.info("CircuitBreaker: closed after successful call")
        self._reset()

    def reset(self) -> None:
        """Force the circuit closed (operator override)."""
        self._reset()

    def health(self) -> dict[str, object]:
        return {
            "open": self._is_open,
            "consecutive_failures": self._consecutive_failures,
            "total_failures": self._total_failures,
            "times_opened": self._times_opened,
            "retry_after": self.retry_after(),
        }

    def _reset(self) -> None:
        self._consecutive_failures = 0
        self._last_failure_at = 0.0
        self._is_open = False

    def __repr__(self) -> str:
        status = "open" if self._is_open else "closed"
        return (
            f"CircuitBreaker(status={status}, "
            f"failures={self._consecutive_failures}/{self._failure_threshold})"
        )
