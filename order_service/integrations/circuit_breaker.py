"""
Circuit breaker for calls to services owned by other teams.

Tracks a rolling window of recent calls. The circuit opens when the failure
rate or the slow-call rate over the window crosses its threshold, rejects
calls while open, and after a cooldown lets a few probe calls through
(half-open) to decide whether the dependency has recovered.
"""
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Tuple, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, rejecting requests
    HALF_OPEN = "half_open"  # Testing if recovered


@dataclass
class CircuitBreakerConfig:
    """
    Circuit breaker configuration.

    Attributes:
        failure_rate_threshold: Failure rate that opens the circuit (0.0-1.0)
        slow_call_rate_threshold: Slow call rate that opens the circuit (0.0-1.0)
        slow_call_duration: Calls taking at least this many seconds are slow
        window_size: Number of recent calls to track
        min_calls: Minimum calls before evaluating rates
        open_timeout: Seconds to stay open before probing
        half_open_max_calls: Probe calls permitted while half-open
    """

    failure_rate_threshold: float = 0.5
    slow_call_rate_threshold: float = 1.0
    slow_call_duration: float = 1.5
    window_size: int = 20
    min_calls: int = 10
    open_timeout: float = 30.0
    half_open_max_calls: int = 3


class CircuitBreakerOpenError(Exception):
    """Raised when a call is rejected because the circuit is open."""

    pass


class CircuitBreaker:
    """
    Count-based circuit breaker for async calls.

    Example:
        >>> breaker = CircuitBreaker(CircuitBreakerConfig(min_calls=5))
        >>> result = await breaker.call(client.get, "/api/v1/users/42")
    """

    def __init__(
        self,
        config: Optional[CircuitBreakerConfig] = None,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[Callable[[CircuitState], None]] = None,
    ):
        """
        Initialize circuit breaker.

        Args:
            config: Circuit breaker configuration
            name: Name used in log events
            clock: Monotonic time source
            on_state_change: Callback invoked with the new state on every transition
        """
        self.config = config or CircuitBreakerConfig()
        self.name = name
        self.clock = clock
        self.on_state_change = on_state_change
        self.state = CircuitState.CLOSED
        self.opened_at: Optional[float] = None
        # (succeeded, slow) per call
        self.call_history: Deque[Tuple[bool, bool]] = deque(maxlen=self.config.window_size)
        self.half_open_in_flight = 0
        self.half_open_results: list[Tuple[bool, bool]] = []

    def allow_request(self) -> bool:
        """Decide whether a call may go through right now."""
        if self.state == CircuitState.OPEN:
            if self.opened_at is not None and self.clock() - self.opened_at >= self.config.open_timeout:
                self._transition(CircuitState.HALF_OPEN)
            else:
                return False

        if self.state == CircuitState.HALF_OPEN:
            probes = self.half_open_in_flight + len(self.half_open_results)
            if probes >= self.config.half_open_max_calls:
                return False
            self.half_open_in_flight += 1

        return True

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Execute an async function with circuit breaker protection.

        Args:
            func: Coroutine function to call
            *args: Positional arguments
            **kwargs: Keyword arguments

        Returns:
            The function result

        Raises:
            CircuitBreakerOpenError: If the circuit rejects the call
        """
        if not self.allow_request():
            raise CircuitBreakerOpenError(f"Circuit breaker '{self.name}' is open")

        probing = self.state == CircuitState.HALF_OPEN
        start = self.clock()
        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._record(False, self.clock() - start, probing)
            raise
        except BaseException:
            # Cancelled: no outcome to record, only the probe slot to free
            self._release_probe(probing)
            raise
        self._record(True, self.clock() - start, probing)
        return result

    def _release_probe(self, probing: bool) -> None:
        if probing and self.state == CircuitState.HALF_OPEN:
            self.half_open_in_flight = max(0, self.half_open_in_flight - 1)

    def _record(self, succeeded: bool, duration: float, probing: bool) -> None:
        slow = duration >= self.config.slow_call_duration
        if probing and self.state == CircuitState.HALF_OPEN:
            self._release_probe(probing)
            self._record_probe(succeeded, slow)
            return

        self.call_history.append((succeeded, slow))
        if self.state == CircuitState.CLOSED and self._rates_exceeded(self.call_history):
            self._transition(CircuitState.OPEN)

    def _record_probe(self, succeeded: bool, slow: bool) -> None:
        if not succeeded:
            self._transition(CircuitState.OPEN)
            return

        self.half_open_results.append((succeeded, slow))
        if len(self.half_open_results) >= self.config.half_open_max_calls:
            slow_rate = sum(s for _, s in self.half_open_results) / len(self.half_open_results)
            if slow_rate >= self.config.slow_call_rate_threshold:
                self._transition(CircuitState.OPEN)
            else:
                self._transition(CircuitState.CLOSED)

    def _rates_exceeded(self, history: Deque[Tuple[bool, bool]]) -> bool:
        if len(history) < self.config.min_calls:
            return False

        total = len(history)
        failure_rate = sum(1 for ok, _ in history if not ok) / total
        slow_rate = sum(1 for _, slow in history if slow) / total
        return (
            failure_rate >= self.config.failure_rate_threshold
            or slow_rate >= self.config.slow_call_rate_threshold
        )

    def _transition(self, state: CircuitState) -> None:
        previous = self.state
        self.state = state
        self.half_open_in_flight = 0
        self.half_open_results = []

        if state == CircuitState.OPEN:
            self.opened_at = self.clock()
            logger.warning(
                "circuit_breaker_opened",
                breaker=self.name,
                previous_state=previous.value,
                **self._rates(),
            )
        elif state == CircuitState.CLOSED:
            self.opened_at = None
            self.call_history.clear()
            logger.info("circuit_breaker_closed", breaker=self.name)
        else:
            logger.info("circuit_breaker_half_open", breaker=self.name)

        if self.on_state_change is not None:
            self.on_state_change(state)

    def _rates(self) -> Dict[str, float]:
        if not self.call_history:
            return {"failure_rate": 0.0, "slow_call_rate": 0.0}
        total = len(self.call_history)
        return {
            "failure_rate": sum(1 for ok, _ in self.call_history if not ok) / total,
            "slow_call_rate": sum(1 for _, slow in self.call_history if slow) / total,
        }

    def get_state(self) -> Dict[str, Any]:
        """Get circuit breaker state information."""
        return {
            "state": self.state.value,
            "total_calls": len(self.call_history),
            **self._rates(),
        }
