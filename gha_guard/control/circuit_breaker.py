"""Circuit breakers for gha-guard.

Stops calling a failing remote dependency for a cooldown window after
repeated failures. There is no background timer: an open circuit is only
re-evaluated when :meth:`CircuitBreaker.check` is called.

State is in memory and per process. A restart always begins closed.
"""

import logging
import threading
import time
from typing import Any, Callable

from ..exceptions import CircuitOpenError
from ..types import CircuitBreakerConfig, CircuitState

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """Failure-counting breaker with lazy reopen.

    Failures older than ``failure_reset_ms`` (measured from the most recent
    failure) do not accumulate. A success only erodes the tally by one, so a
    single lucky call cannot mask a flapping dependency.

    Example:
        breaker = CircuitBreaker(
            breaker_id="github",
            config=CircuitBreakerConfig(threshold=3, cooldown_ms=300000)
        )

        # Check before making call
        breaker.check()  # Raises CircuitOpenError if open

        try:
            result = await with_deadline(fetch_runs(), 30000)
            breaker.success()
        except Exception:
            breaker.failure()
            raise
    """

    def __init__(
        self,
        breaker_id: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Callable[[str, CircuitState, CircuitState], None] | None = None,
    ):
        """Initialize circuit breaker.

        Args:
            breaker_id: Name of the guarded dependency.
            config: Threshold, reset window and cooldown.
            clock: Monotonic time source in seconds.
            on_state_change: Callback on state change (id, old_state, new_state).
        """
        self._id = breaker_id
        self._config = config or CircuitBreakerConfig()
        self._clock = clock
        self._on_state_change = on_state_change
        self._lock = threading.RLock()

        self._failure_count = 0
        self._last_failure_at: float | None = None
        self._open = False

    @property
    def breaker_id(self) -> str:
        return self._id

    @property
    def config(self) -> CircuitBreakerConfig:
        return self._config

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return CircuitState.OPEN if self._open else CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    def _elapsed_ms(self, now: float) -> float:
        if self._last_failure_at is None:
            return float("inf")
        return (now - self._last_failure_at) * 1000

    def check(self) -> None:
        """Fail fast while open.

        Once the cooldown has elapsed the circuit closes and the failure
        count is zeroed before the caller is let through.

        Raises:
            CircuitOpenError: If open and the cooldown has not elapsed.
        """
        with self._lock:
            if not self._open:
                return

            elapsed = self._elapsed_ms(self._clock())
            if elapsed >= self._config.cooldown_ms:
                self._failure_count = 0
                self._transition(open_=False)
                logger.info(f"Circuit '{self._id}' closed, resuming operations")
                return

            raise CircuitOpenError(self._id, self._config.cooldown_ms - elapsed)

    def success(self) -> None:
        """Record a successful call."""
        with self._lock:
            if self._failure_count > 0:
                self._failure_count -= 1

    def failure(self) -> None:
        """Record a failed call."""
        with self._lock:
            now = self._clock()

            # A quiet gap starts a fresh incident
            if self._elapsed_ms(now) > self._config.failure_reset_ms:
                self._failure_count = 0

            self._failure_count += 1
            self._last_failure_at = now

            if self._failure_count >= self._config.threshold and not self._open:
                self._transition(open_=True)
                logger.warning(
                    f"Circuit '{self._id}' opened after {self._failure_count} failures. "
                    f"Cooldown: {self._config.cooldown_ms / 1000:g}s"
                )

    def _transition(self, open_: bool) -> None:
        old_state = CircuitState.OPEN if self._open else CircuitState.CLOSED
        self._open = open_
        new_state = CircuitState.OPEN if open_ else CircuitState.CLOSED

        if self._on_state_change and old_state != new_state:
            self._on_state_change(self._id, old_state, new_state)

    def reset(self) -> None:
        """Reset circuit breaker to closed state."""
        with self._lock:
            self._failure_count = 0
            self._last_failure_at = None
            self._transition(open_=False)

    def get_stats(self) -> dict[str, Any]:
        """Get circuit breaker statistics."""
        with self._lock:
            retry_after_ms = 0.0
            if self._open:
                elapsed = self._elapsed_ms(self._clock())
                retry_after_ms = max(0.0, self._config.cooldown_ms - elapsed)
            return {
                "breaker_id": self._id,
                "state": CircuitState.OPEN.value if self._open else CircuitState.CLOSED.value,
                "failure_count": self._failure_count,
                "last_failure_at": self._last_failure_at,
                "retry_after_ms": retry_after_ms,
                "threshold": self._config.threshold,
            }


class CircuitBreakerRegistry:
    """One breaker per guarded dependency.

    Built once at startup and passed to whoever needs it.

    Example:
        registry = CircuitBreakerRegistry(config=CircuitBreakerConfig(threshold=3))

        github = registry.get_or_create("github")
        github.check()

        registry.get_open_breakers()  # ["github"] while tripped
    """

    def __init__(
        self,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Callable[[str, CircuitState, CircuitState], None] | None = None,
    ):
        """Initialize registry.

        Args:
            config: Default configuration for breakers created on demand.
            clock: Time source shared by every breaker.
            on_state_change: Callback when any breaker changes state.
        """
        self._config = config or CircuitBreakerConfig()
        self._clock = clock
        self._on_state_change = on_state_change
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = threading.RLock()

    def register(
        self,
        breaker_id: str,
        config: CircuitBreakerConfig | None = None,
    ) -> CircuitBreaker:
        """Register a new circuit breaker, replacing any existing one."""
        with self._lock:
            breaker = CircuitBreaker(
                breaker_id=breaker_id,
                config=config or self._config,
                clock=self._clock,
                on_state_change=self._on_state_change,
            )
            self._breakers[breaker_id] = breaker
            return breaker

    def get(self, breaker_id: str) -> CircuitBreaker | None:
        """Get a circuit breaker by ID."""
        with self._lock:
            return self._breakers.get(breaker_id)

    def get_or_create(self, breaker_id: str) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(breaker_id)
            if breaker is None:
                breaker = self.register(breaker_id)
            return breaker

    def reset_all(self) -> None:
        """Reset all circuit breakers."""
        with self._lock:
            for breaker in self._breakers.values():
                breaker.reset()

    def get_all_stats(self) -> dict[str, dict[str, Any]]:
        """Get stats for all breakers."""
        with self._lock:
            return {
                bid: breaker.get_stats()
                for bid, breaker in self._breakers.items()
            }

    def get_open_breakers(self) -> list[str]:
        """Get list of open breaker IDs."""
        with self._lock:
            return [
                bid for bid, breaker in self._breakers.items()
                if breaker.is_open
            ]
