"""
Single-flight request queue for upstream LLM calls.

The upstream endpoint gives no concurrency guarantees of its own, so every
call goes through this queue: operations run strictly one at a time in FIFO
submission order, and each caller awaits its own future.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Optional, TypeVar

from algovista_service_libs.logging_utils import create_service_logger

from services.algovista_service.metrics import get_metrics
from services.algovista_service.protocols import RequestQueueProtocol
from services.algovista_service.queue_models import QueuedOperation, QueueStats

logger = create_service_logger("algovista_service.request_queue")

T = TypeVar("T")


class SingleFlightRequestQueue(RequestQueueProtocol):
    """FIFO queue with a busy flag; at most one operation executes at any instant."""

    def __init__(self) -> None:
        self._pending: Deque[QueuedOperation] = deque()
        self._busy = False
        self._current_task: Optional[asyncio.Task[None]] = None
        self._processed_total = 0
        self._failed_total = 0
        self._skipped_total = 0
        self._metrics = get_metrics()

    @property
    def busy(self) -> bool:
        return self._busy

    def __len__(self) -> int:
        return len(self._pending)

    async def enqueue(
        self, operation: Callable[[], Awaitable[T]], operation_name: str = "operation"
    ) -> T:
        """Append operation to the tail and wait for it to be settled.

        A caller that is cancelled while still waiting abandons its entry; the
        entry is skipped at dequeue. An operation that already started runs to
        completion regardless.
        """
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._pending.append(
            QueuedOperation(operation=operation, future=future, operation_name=operation_name)
        )
        self._metrics["queue_depth"].set(len(self._pending))
        logger.debug(f"Enqueued {operation_name}, pending={len(self._pending)}")

        self.drain()
        return await future

    def drain(self) -> None:
        """Start the next pending operation unless one is already executing."""
        if self._busy:
            return

        while self._pending:
            entry = self._pending.popleft()
            self._metrics["queue_depth"].set(len(self._pending))

            if entry.is_abandoned:
                self._skipped_total += 1
                logger.debug(f"Skipping abandoned {entry.operation_name}")
                continue

            self._busy = True
            self._metrics["queue_wait_seconds"].observe(time.monotonic() - entry.queued_at)
            self._current_task = asyncio.create_task(self._execute(entry))
            return

    async def _execute(self, entry: QueuedOperation) -> None:
        try:
            result = await entry.operation()
        except asyncio.CancelledError:
            # Only reached when the queue itself is torn down
            if not entry.future.done():
                entry.future.cancel()
            raise
        except Exception as e:
            self._failed_total += 1
            logger.debug(f"{entry.operation_name} failed: {e}")
            if not entry.future.done():
                entry.future.set_exception(e)
        else:
            if not entry.future.done():
                entry.future.set_result(result)
        finally:
            self._processed_total += 1
            self._busy = False
            self._current_task = None

        self.drain()

    def stats(self) -> QueueStats:
        return {
            "type": "single_flight",
            "busy": self._busy,
            "pending": len(self._pending),
            "processed_total": self._processed_total,
            "failed_total": self._failed_total,
            "skipped_total": self._skipped_total,
        }

    async def close(self) -> None:
        """Cancel waiting callers and wait for the in-flight operation to finish."""
        while self._pending:
            entry = self._pending.popleft()
            if not entry.future.done():
                entry.future.cancel()
        self._metrics["queue_depth"].set(0)

        if self._current_task is not None:
            await asyncio.gather(self._current_task, return_exceptions=True)
        logger.info("Request queue closed")
