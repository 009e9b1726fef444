"""Adaptive rate-limited task scheduler.

Each outbound API family owns one ``RateLimiter``. Tasks are queued in FIFO
order and drained in batches of at most ``burst_capacity`` concurrent tasks,
with a pause between batches derived from the configured request rate and
from recent throttling feedback.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, TypeVar

from wallet_trades.config import SchedulerConfig
from wallet_trades.logging_config import get_logger
from wallet_trades.utils.errors import is_rate_limit_error

T = TypeVar('T')

logger = get_logger(__name__)


class BackoffPhase(str, Enum):
    """Health of an outbound API family as seen by its scheduler."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    BACKOFF = "backoff"


class BackoffState:
    """Adaptive pacing state driven by task outcomes.

    * ``HEALTHY``: no recent errors and no residual penalty.
    * ``DEGRADED``: no consecutive throttling errors, but a residual
      ``adaptive_delay_ms`` penalty that decays with each success.
    * ``BACKOFF``: at least one consecutive throttling error; the inter-batch
      delay grows exponentially up to ``MAX_BACKOFF_MS``.
    """

    MAX_BACKOFF_MS = 5000
    MAX_ADAPTIVE_DELAY_MS = 1000
    ADAPTIVE_STEP_UP_MS = 50
    ADAPTIVE_STEP_DOWN_MS = 10

    def __init__(self, base_delay_ms: int, adaptive_timing: bool = True):
        self.base_delay_ms = base_delay_ms
        self.adaptive_timing = adaptive_timing
        self.consecutive_errors = 0
        self.adaptive_delay_ms = 0

    @property
    def phase(self) -> BackoffPhase:
        if self.consecutive_errors > 0:
            return BackoffPhase.BACKOFF
        if self.adaptive_delay_ms > 0:
            return BackoffPhase.DEGRADED
        return BackoffPhase.HEALTHY

    def record_success(self) -> None:
        self.consecutive_errors = 0
        self.adaptive_delay_ms = max(0, self.adaptive_delay_ms - self.ADAPTIVE_STEP_DOWN_MS)

    def record_throttled(self) -> None:
        self.consecutive_errors += 1
        self.adaptive_delay_ms = min(
            self.adaptive_delay_ms + self.ADAPTIVE_STEP_UP_MS,
            self.MAX_ADAPTIVE_DELAY_MS
        )

    def record_failure(self) -> None:
        self.consecutive_errors = max(0, self.consecutive_errors - 1)

    def next_delay_ms(self) -> int:
        """Delay to wait before pulling the next batch, in milliseconds."""
        if not self.adaptive_timing:
            return self.base_delay_ms

        if self.consecutive_errors > 0:
            exponential_delay = self.base_delay_ms * (2 ** self.consecutive_errors)
            return min(exponential_delay, self.MAX_BACKOFF_MS)

        return self.base_delay_ms + self.adaptive_delay_ms


@dataclass
class QueuedTask:
    """A task waiting in the scheduler queue."""

    task: Callable[[], Awaitable[Any]]
    future: "asyncio.Future[Any]"
    enqueued_at: float


class RateLimiter:
    """FIFO task scheduler with bounded bursts and adaptive backoff.

    The scheduler never retries a failed task: the caller's future fails with
    the task's exception and the caller decides whether to resubmit.
    """

    def __init__(self, config: SchedulerConfig, name: str = "rate_limiter"):
        """Initialize the scheduler.

        Args:
            config: Pacing configuration for this API family
            name: Name used in log messages and stats
        """
        self.config = config
        self.name = name
        self._queue: Deque[QueuedTask] = deque()
        self._is_processing = False
        self._drain_task: "asyncio.Task[None] | None" = None
        self._backoff = BackoffState(config.base_delay_ms, config.adaptive_timing)
        self._completed = 0
        self._failed = 0
        self._throttled = 0

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def backoff(self) -> BackoffState:
        return self._backoff

    def schedule(self, task: Callable[[], Awaitable[T]]) -> "asyncio.Future[T]":
        """Queue a task for rate-limited execution.

        The task is never started inside this call. Must be called from a
        running event loop.

        Args:
            task: Zero-argument callable returning an awaitable

        Returns:
            Future resolving or failing exactly as the task does
        """
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[T]" = loop.create_future()
        self._queue.append(QueuedTask(task=task, future=future, enqueued_at=time.monotonic()))

        if not self._is_processing:
            self._is_processing = True
            self._drain_task = loop.create_task(self._process_queue())

        return future

    def calculate_delay(self) -> int:
        """Current inter-batch delay in milliseconds."""
        return self._backoff.next_delay_ms()

    async def _process_queue(self) -> None:
        try:
            while self._queue:
                batch_size = min(self.config.burst_capacity, len(self._queue))
                batch = [self._queue.popleft() for _ in range(batch_size)]

                await asyncio.gather(
                    *(self._run_task(queued) for queued in batch),
                    return_exceptions=True
                )

                if self._queue:
                    delay = self.calculate_delay()
                    logger.debug(
                        f"{self.name}: {len(self._queue)} queued, sleeping {delay}ms "
                        f"(phase={self._backoff.phase.value})"
                    )
                    await asyncio.sleep(delay / 1000)
        finally:
            self._is_processing = False

    async def _run_task(self, queued: QueuedTask) -> None:
        waited = time.monotonic() - queued.enqueued_at
        if waited > 1.0:
            logger.debug(f"{self.name}: task started after waiting {waited:.2f}s")

        try:
            result = await queued.task()
        except Exception as exc:
            self._on_error(exc)
            if not queued.future.done():
                queued.future.set_exception(exc)
            return

        self._on_success()
        if not queued.future.done():
            queued.future.set_result(result)

    def _on_success(self) -> None:
        self._completed += 1
        self._backoff.record_success()

    def _on_error(self, error: Exception) -> None:
        self._failed += 1
        if is_rate_limit_error(error):
            self._throttled += 1
            self._backoff.record_throttled()
            logger.warning(
                f"{self.name}: rate limit error detected, adaptive delay increased to "
                f"{self._backoff.adaptive_delay_ms}ms "
                f"({self._backoff.consecutive_errors} consecutive)"
            )
        else:
            self._backoff.record_failure()
            logger.debug(f"{self.name}: task failed: {error}")

    def get_stats(self) -> Dict[str, Any]:
        """Read-only snapshot of the scheduler state for monitoring."""
        return {
            "name": self.name,
            "queueLength": len(self._queue),
            "isProcessing": self._is_processing,
            "consecutiveErrors": self._backoff.consecutive_errors,
            "adaptiveDelay": self._backoff.adaptive_delay_ms,
            "phase": self._backoff.phase.value,
            "currentDelay": self.calculate_delay(),
            "requestsPerSecond": self.config.requests_per_second,
            "burstCapacity": self.config.burst_capacity,
            "completed": self._completed,
            "failed": self._failed,
            "throttled": self._throttled,
        }
