"""
Tests for the circuit breaker state machine.
"""

import pytest

from conftest import FakeClock
from hapkit.client.circuit_breaker import CircuitBreaker, CircuitState
from hapkit.models.failure import CircuitOpenError


@pytest.fixture
def breaker(fake_clock: FakeClock) -> CircuitBreaker:
    return CircuitBreaker(threshold=3, reset_timeout=60.0, clock=fake_clock)


def _fail(breaker: CircuitBreaker, times: int) -> None:
    for _ in range(times):
        breaker.before_call()
        breaker.record_failure()


class TestClosedState:
    """Tests for the closed state."""

    def test_starts_closed(self, breaker: CircuitBreaker) -> None:
        assert breaker.state is CircuitState.CLOSED
        assert breaker.consecutive_failures == 0

    def test_below_threshold_stays_closed(self, breaker: CircuitBreaker) -> None:
        _fail(breaker, 2)
        assert breaker.state is CircuitState.CLOSED
        assert breaker.consecutive_failures == 2

    def test_success_resets_counter(self, breaker: CircuitBreaker) -> None:
        """Only consecutive failures count."""
        _fail(breaker, 2)
        breaker.record_success()
        _fail(breaker, 2)
        assert breaker.state is CircuitState.CLOSED

    def test_threshold_opens(self, breaker: CircuitBreaker) -> None:
        _fail(breaker, 3)
        assert breaker.state is CircuitState.OPEN


class TestOpenState:
    """Tests for the open state."""

    def test_fails_fast(self, breaker: CircuitBreaker, fake_clock: FakeClock) -> None:
        _fail(breaker, 3)
        fake_clock.advance(59.9)
        with pytest.raises(CircuitOpenError):
            breaker.before_call()

    def test_half_open_after_reset_timeout(
        self, breaker: CircuitBreaker, fake_clock: FakeClock
    ) -> None:
        _fail(breaker, 3)
        fake_clock.advance(60.0)
        breaker.before_call()
        assert breaker.state is CircuitState.HALF_OPEN


class TestHalfOpenState:
    """Tests for the single probe."""

    def _half_open(self, breaker: CircuitBreaker, clock: FakeClock) -> None:
        _fail(breaker, 3)
        clock.advance(61.0)
        breaker.before_call()

    def test_concurrent_call_fails_fast(
        self, breaker: CircuitBreaker, fake_clock: FakeClock
    ) -> None:
        """Only one probe may be in flight."""
        self._half_open(breaker, fake_clock)
        with pytest.raises(CircuitOpenError, match="probe call in progress"):
            breaker.before_call()

    def test_probe_success_closes(self, breaker: CircuitBreaker, fake_clock: FakeClock) -> None:
        self._half_open(breaker, fake_clock)
        breaker.record_success()
        assert breaker.state is CircuitState.CLOSED
        assert breaker.consecutive_failures == 0

    def test_probe_failure_reopens_with_fresh_timer(
        self, breaker: CircuitBreaker, fake_clock: FakeClock
    ) -> None:
        self._half_open(breaker, fake_clock)
        breaker.record_failure()
        assert breaker.state is CircuitState.OPEN

        fake_clock.advance(30.0)
        with pytest.raises(CircuitOpenError):
            breaker.before_call()

        fake_clock.advance(30.0)
        breaker.before_call()
        assert breaker.state is CircuitState.HALF_OPEN

    def test_released_probe_allows_another(
        self, breaker: CircuitBreaker, fake_clock: FakeClock
    ) -> None:
        """A cancelled probe frees the slot without changing state."""
        self._half_open(breaker, fake_clock)
        breaker.release_probe()
        breaker.before_call()
        assert breaker.state is CircuitState.HALF_OPEN


class TestReset:
    """Tests for reset()."""

    def test_reset_closes(self, breaker: CircuitBreaker) -> None:
        _fail(breaker, 3)
        breaker.reset()
        assert breaker.state is CircuitState.CLOSED
        assert breaker.consecutive_failures == 0
        breaker.before_call()
