"""
Circuit Breaker — Failure Isolation for the Remote Client.

State machine:
    closed    --[threshold consecutive failed calls]--> open
    open      --[reset timeout elapsed]-->              half-open
    half-open --[probe succeeds]-->                     closed
    half-open --[probe fails]-->                        open (timer restarts)

INVARIANT: While open, no request is attempted.
INVARIANT: In half-open, exactly one probe call is in flight.

Transitions are driven only by call outcomes and the injected clock.
"""

import logging
import time
from collections.abc import Callable
from enum import Enum

from hapkit.models.failure import CircuitOpenError

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    Args:
        threshold: Consecutive failed calls that open the circuit
        reset_timeout: Seconds the circuit stays open before a probe
        clock: Monotonic time source in seconds
    """

    def __init__(
        self,
        threshold: int,
        reset_timeout: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at: float | None = None
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def before_call(self) -> None:
        """
        Admit or reject a call.

        Raises:
            CircuitOpenError: If the circuit is open, or a half-open probe
                is already in flight
        """
        if self._state is CircuitState.OPEN:
            opened_at = self._opened_at if self._opened_at is not None else self._clock()
            if self._clock() - opened_at < self.reset_timeout:
                raise CircuitOpenError()
            self._state = CircuitState.HALF_OPEN
            self._probe_in_flight = False
            logger.info("Circuit breaker half-open; allowing one probe call")

        if self._state is CircuitState.HALF_OPEN:
            if self._probe_in_flight:
                raise CircuitOpenError("Circuit breaker is half-open - probe call in progress")
            self._probe_in_flight = True

    def record_success(self) -> None:
        """Record a call that reached the service."""
        self._consecutive_failures = 0
        self._probe_in_flight = False
        if self._state is not CircuitState.CLOSED:
            logger.info("Circuit breaker closed after successful probe")
            self._state = CircuitState.CLOSED
            self._opened_at = None

    def record_failure(self) -> None:
        """Record a call that failed after exhausting its retries."""
        self._consecutive_failures += 1
        self._probe_in_flight = False

        if self._state is CircuitState.HALF_OPEN:
            self._open("probe call failed")
        elif self._consecutive_failures >= self.threshold:
            self._open(f"{self._consecutive_failures} consecutive failures")

    def release_probe(self) -> None:
        """Let another call probe after a cancelled one; the state is unchanged."""
        self._probe_in_flight = False

    def reset(self) -> None:
        """Return to the initial closed state."""
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = None
        self._probe_in_flight = False

    def _open(self, reason: str) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        logger.warning(
            "Circuit breaker opened (%s); failing fast for %.1fs",
            reason,
            self.reset_timeout,
        )
