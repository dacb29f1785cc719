"""Guard - every privileged remote call flows through here.

FLOW:
1. Call site invokes guard.call()
2. Guard checks ACCESS (permission level, repository scope)
3. Guard checks the CIRCUIT BREAKER for the dependency
4. Guard awaits the remote call under a DEADLINE
5. Guard reports the outcome to the breaker and reads RATE LIMIT headers
6. Guard returns the result

Denials, timeouts and open circuits are raised unchanged for the call site
to translate into its own response format.
"""

import inspect
import threading
import time
from collections import deque
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Generic, TypeVar

from .control.access import AccessController
from .control.circuit_breaker import CircuitBreaker, CircuitBreakerRegistry
from .control.deadline import DeadlineGuard, Operation, with_deadline
from .control.patterns import parse_resource
from .control.rate_limit import parse_rate_limit_headers
from .types import Config, PermissionLevel, RateLimitSnapshot, TimeoutClass
from .utils.formatting import status_icon
from .utils.logging import StructuredLogger

T = TypeVar("T")

DEFAULT_DEPENDENCY = "github"


class GuardedResult(Generic[T]):
    """Value returned by a guarded call, with the quota it reported."""

    __slots__ = ("value", "rate_limit", "elapsed_ms")

    def __init__(self, value: T, rate_limit: RateLimitSnapshot | None, elapsed_ms: float):
        self.value = value
        self.rate_limit = rate_limit
        self.elapsed_ms = elapsed_ms


class CallRecord:
    """Record of a single guarded call."""

    __slots__ = ("tool", "repo", "level", "dependency", "error", "elapsed_ms", "timestamp")

    def __init__(
        self,
        tool: str | None,
        repo: str,
        level: PermissionLevel,
        dependency: str,
        error: str | None = None,
        elapsed_ms: float = 0.0,
    ):
        self.tool = tool
        self.repo = repo
        self.level = level
        self.dependency = dependency
        self.error = error
        self.elapsed_ms = elapsed_ms
        self.timestamp = datetime.now()

    @property
    def success(self) -> bool:
        return self.error is None

    def describe(self) -> str:
        icon = status_icon("success" if self.success else "failure")
        line = f"{icon} {self.tool or self.level.value} {self.repo} ({self.elapsed_ms:.0f}ms)"
        if self.error:
            line += f": {self.error}"
        return line


class Guard:
    """Composes access control, circuit breaking and deadlines.

    Usage:
        guard = Guard(load_config())

        result = await guard.call(
            lambda: client.list_workflows("acme", "web"),
            repo="acme/web",
            level=PermissionLevel.READ,
            headers=lambda response: response.headers,
        )
        workflows = result.value
    """

    def __init__(
        self,
        config: Config | None = None,
        breakers: CircuitBreakerRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
        history_size: int = 1000,
    ):
        """Create guard.

        Args:
            config: Loaded configuration. Defaults to built-in defaults.
            breakers: Breaker registry to share. Built from config if omitted.
            clock: Monotonic time source in seconds.
            history_size: Number of call records kept for auditing.
        """
        self._config = config or Config()
        self._access = AccessController.from_config(self._config)
        self._deadlines = DeadlineGuard(self._config.neverhang)
        self._breakers = breakers or CircuitBreakerRegistry(
            config=self._config.circuit_breaker, clock=clock
        )
        self._clock = clock

        self._history: deque[CallRecord] = deque(maxlen=history_size)
        self._stats = {"calls": 0, "succeeded": 0, "failed": 0}
        self._lock = threading.Lock()
        self._log = StructuredLogger("guard")

    @property
    def config(self) -> Config:
        return self._config

    @property
    def access(self) -> AccessController:
        return self._access

    @property
    def breakers(self) -> CircuitBreakerRegistry:
        return self._breakers

    def breaker(self, dependency: str = DEFAULT_DEPENDENCY) -> CircuitBreaker:
        return self._breakers.get_or_create(dependency)

    # =========================================================================
    # MAIN ENTRY POINT - THE FLOW
    # =========================================================================

    async def call(
        self,
        operation: Operation[T],
        *,
        repo: str,
        level: PermissionLevel | str = PermissionLevel.READ,
        timeout_class: TimeoutClass | str = TimeoutClass.API,
        dependency: str = DEFAULT_DEPENDENCY,
        tool: str | None = None,
        message: str | None = None,
        headers: Callable[[T], Mapping[str, str | None]] | None = None,
    ) -> GuardedResult[T]:
        """Run a remote operation behind every check.

        Args:
            operation: Awaitable, or zero-argument callable returning one.
            repo: Target repository, ``owner/name``.
            level: Permission level the operation needs.
            timeout_class: Which configured deadline applies.
            dependency: Name of the breaker guarding the remote service.
            tool: Calling tool name, for the audit trail.
            message: Message for the timeout error.
            headers: Extracts response headers from the result for rate limit parsing.

        Raises:
            PermissionDeniedError, RepoAccessDeniedError, MalformedResourceError:
                Before any remote call; the breaker is untouched.
            CircuitOpenError: If the dependency is failing.
            DeadlineExceededError: If the deadline fires first.
        """
        try:
            level = PermissionLevel(level)

            # 1. ACCESS (a malformed repo is rejected even in bypass mode)
            parse_resource(repo)
            self._access.authorize(level, repo)

            # 2. BREAKER
            breaker = self.breaker(dependency)
            breaker.check()

            bound = self._deadlines.bound_for(timeout_class)
        except Exception:
            # A rejected coroutine will never run
            if inspect.iscoroutine(operation):
                operation.close()
            raise

        # 3. REMOTE CALL
        started = self._clock()
        try:
            value = await with_deadline(operation, bound, message)
        except Exception as e:
            breaker.failure()
            self._record(tool, repo, level, dependency, started, error=str(e))
            raise

        breaker.success()
        elapsed_ms = self._record(tool, repo, level, dependency, started)

        # 4. RATE LIMIT
        rate_limit = self._read_rate_limit(headers, value, dependency)
        if rate_limit is not None and rate_limit.exhausted:
            self._log.warning(
                "Rate limit exhausted",
                dependency=dependency,
                reset_at=rate_limit.reset_at.isoformat(),
            )

        return GuardedResult(value, rate_limit, elapsed_ms)

    def _read_rate_limit(
        self,
        headers: Callable[[T], Mapping[str, str | None]] | None,
        value: T,
        dependency: str,
    ) -> RateLimitSnapshot | None:
        if headers is None:
            return None
        try:
            raw = headers(value)
        except Exception as e:
            self._log.debug("Header extraction failed", dependency=dependency, error=str(e))
            return None
        return parse_rate_limit_headers(raw)

    def _record(
        self,
        tool: str | None,
        repo: str,
        level: PermissionLevel,
        dependency: str,
        started: float,
        error: str | None = None,
    ) -> float:
        elapsed_ms = (self._clock() - started) * 1000
        record = CallRecord(tool, repo, level, dependency, error=error, elapsed_ms=elapsed_ms)
        with self._lock:
            self._history.append(record)
            self._stats["calls"] += 1
            self._stats["succeeded" if record.success else "failed"] += 1

        self._log.debug(record.describe(), dependency=dependency, level=level.value)
        return elapsed_ms

    # =========================================================================
    # AUDIT
    # =========================================================================

    def get_call_history(
        self,
        repo: str | None = None,
        tool: str | None = None,
        limit: int | None = None,
    ) -> list[CallRecord]:
        """Get call history with optional filters."""
        with self._lock:
            history = list(self._history)

        if repo:
            history = [r for r in history if r.repo == repo]
        if tool:
            history = [r for r in history if r.tool == tool]
        if limit:
            history = history[-limit:]
        return history

    def get_stats(self) -> dict[str, Any]:
        """Call counts plus the state of every breaker."""
        with self._lock:
            stats: dict[str, Any] = dict(self._stats)
        stats["breakers"] = self._breakers.get_all_stats()
        return stats
