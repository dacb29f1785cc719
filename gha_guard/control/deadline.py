"""Deadline-bounded execution.

Every remote wait goes through :func:`with_deadline`. The guard only stops
waiting: it never cancels or retries the wrapped operation, and once the
deadline fires the operation's late outcome is discarded.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar, Union

from ..exceptions import DeadlineExceededError
from ..types import NeverhangConfig, TimeoutClass

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Union[Awaitable[T], Callable[[], Awaitable[T]]]


def _discard_outcome(task: asyncio.Future) -> None:
    """Consume a late result so it is never surfaced."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Discarded late failure after deadline: {error!r}")


async def with_deadline(
    operation: Operation[T],
    timeout_ms: float,
    message: str | None = None,
) -> T:
    """Await an operation, giving up after ``timeout_ms``.

    Args:
        operation: An awaitable, or a zero-argument callable returning one.
        timeout_ms: Maximum time to wait, in milliseconds.
        message: Optional message for the timeout error.

    Returns:
        The operation's result.

    Raises:
        DeadlineExceededError: If the timer fires first.
        Exception: Whatever the operation raises, if it settles first.
    """
    if callable(operation):
        operation = operation()

    task = asyncio.ensure_future(operation)
    timer = asyncio.ensure_future(asyncio.sleep(timeout_ms / 1000))

    try:
        done, _ = await asyncio.wait({task, timer}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        timer.cancel()
        task.add_done_callback(_discard_outcome)
        raise

    # Operation wins ties
    if task in done:
        timer.cancel()
        return task.result()

    task.add_done_callback(_discard_outcome)
    raise DeadlineExceededError(timeout_ms, message)


class DeadlineGuard:
    """Applies the configured bound for each timeout class.

    Example:
        guard = DeadlineGuard(NeverhangConfig(api_timeout=30000, log_timeout=60000))
        runs = await guard.run(lambda: client.list_runs(repo), TimeoutClass.API)
        logs = await guard.run(lambda: client.download_logs(repo, run_id), TimeoutClass.LOGS)
    """

    def __init__(self, timeouts: NeverhangConfig | None = None):
        self._timeouts = timeouts or NeverhangConfig()

    def bound_for(self, timeout_class: TimeoutClass | str) -> int:
        """Deadline in milliseconds for a timeout class."""
        return self._timeouts.bound_for(timeout_class)

    async def run(
        self,
        operation: Operation[Any],
        timeout_class: TimeoutClass | str = TimeoutClass.API,
        message: str | None = None,
    ) -> Any:
        return await with_deadline(operation, self.bound_for(timeout_class), message)
